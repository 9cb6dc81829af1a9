from __future__ import annotations

import logging
from typing import Any, Mapping, Union

from sctrack.config import EngineConfig
from sctrack.domain import codec
from sctrack.domain.context import TransactionContext
from sctrack.domain.errors import AlreadyExistsError, NotFoundError, ValidationError
from sctrack.domain.models import NotificationType, QualityRecord
from sctrack.domain.validation import check_key_safe, parse_timestamp, validate_quality_record
from sctrack.repositories.contracts import LedgerAccessor
from sctrack.services.notification_service import NotificationService, severity_for_score
from sctrack.services.product_service import ProductService
from sctrack.services.query_service import decode_or_skip

log = logging.getLogger(__name__)


class QualityService:
    def __init__(
        self,
        ledger: LedgerAccessor,
        products: ProductService,
        notifications: NotificationService,
        config: EngineConfig | None = None,
    ):
        self.ledger = ledger
        self.products = products
        self.notifications = notifications
        self.config = config or EngineConfig()

    def _key_prefix(self, product_id: str) -> str:
        return f"{self.config.quality_key_prefix}_{product_id}_"

    def record_key(self, ctx: TransactionContext, product_id: str) -> str:
        return f"{self._key_prefix(product_id)}{ctx.epoch_millis:013d}_{ctx.tx_id}"

    def add(
        self,
        ctx: TransactionContext,
        product_id: str,
        record: Union[QualityRecord, Mapping[str, Any]],
    ) -> QualityRecord:
        if not self.products.exists(product_id):
            raise NotFoundError(f"The product {product_id} does not exist.")
        check_key_safe(product_id, "productId", self.config.reserved_prefixes)

        data = dict(record.to_dict() if isinstance(record, QualityRecord) else record)
        if data.get("productId") is None:
            data["productId"] = product_id
        elif data["productId"] != product_id:
            raise ValidationError(f"Quality record belongs to {data['productId']}, not {product_id}.")
        validate_quality_record(data)
        try:
            quality = QualityRecord.from_dict(data)
        except (ValueError, TypeError) as e:
            raise ValidationError(str(e)) from e

        key = self.record_key(ctx, product_id)
        if self.ledger.get(key):
            raise AlreadyExistsError(f"Quality record {key} already exists.")
        self.ledger.put(key, codec.encode(quality.to_dict()))
        severity = severity_for_score(quality.score)
        log.info("quality_recorded product=%s score=%s key=%s tx=%s", product_id, quality.score, key, ctx.tx_id)

        self.notifications.notify(
            ctx,
            product_id,
            NotificationType.QUALITY_CHECK,
            f"Quality inspection completed for {product_id}. Score: {quality.score}/100",
            location=quality.location,
            severity=severity,
        )
        return quality

    def list(self, product_id: str) -> list[QualityRecord]:
        """Records for one product, most recent inspection first."""
        start = self._key_prefix(product_id)
        ordered = []
        for key, raw in self.ledger.range_scan(start, start + "\uffff"):
            record = decode_or_skip(key, raw, QualityRecord.from_dict, "quality")
            # A longer product id can share this key prefix.
            if record is None or record.product_id != product_id:
                continue
            try:
                instant = parse_timestamp(record.timestamp)
            except (TypeError, ValueError) as e:
                log.warning("record_skipped kind=quality key=%s error=%s", key, e)
                continue
            ordered.append((instant, key, record))

        ordered.sort(key=lambda item: (item[0], item[1]), reverse=True)
        return [record for _instant, _key, record in ordered]
