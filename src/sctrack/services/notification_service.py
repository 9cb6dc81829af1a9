from __future__ import annotations

import logging
from typing import Optional

from sctrack.config import EngineConfig
from sctrack.domain import codec
from sctrack.domain.context import TransactionContext
from sctrack.domain.errors import NotFoundError, ValidationError
from sctrack.domain.models import Notification, NotificationType, Severity
from sctrack.repositories.contracts import LedgerAccessor
from sctrack.repositories.selector import build_query
from sctrack.services.query_service import QueryService

log = logging.getLogger("sctrack.notifications")


def severity_for_score(score: int) -> Severity:
    if score >= 80:
        return Severity.INFO
    if score >= 60:
        return Severity.WARNING
    return Severity.ERROR


class NotificationService:
    def __init__(self, ledger: LedgerAccessor, queries: QueryService, config: EngineConfig | None = None):
        self.ledger = ledger
        self.queries = queries
        self.config = config or EngineConfig()

    def notification_id(self, ctx: TransactionContext) -> str:
        return f"{self.config.notification_id_prefix}_{ctx.tx_id}"

    def emit(self, notification: Notification) -> bool:
        """Best-effort write. A failure is logged and never reaches the caller.

        An id already on the ledger is left untouched: a replayed transaction id
        must not reset an acknowledged notification.
        """
        try:
            if self.ledger.get(notification.id):
                log.warning("notification_exists id=%s product=%s", notification.id, notification.product_id)
                return False
            self.ledger.put(notification.id, codec.encode(notification.to_dict()))
        except Exception as e:
            log.warning("notification_emit_failed id=%s product=%s error=%s", notification.id, notification.product_id, e)
            return False
        log.info("notification_emitted id=%s type=%s severity=%s", notification.id, notification.type, notification.severity)
        return True

    def notify(
        self,
        ctx: TransactionContext,
        product_id: str,
        kind: NotificationType,
        message: str,
        location: Optional[str] = None,
        severity: Severity = Severity.INFO,
    ) -> Notification:
        notification = Notification(
            id=self.notification_id(ctx),
            product_id=product_id,
            type=kind.value,
            message=message,
            timestamp=ctx.utc_timestamp,
            severity=severity.value,
            location=location,
        )
        self.emit(notification)
        return notification

    def list(self, limit: int | str | None = None) -> list[Notification]:
        query = build_query(
            {"type": {"$exists": True}},
            sort=[{"timestamp": "desc"}],
            limit=self._parse_limit(limit),
        )
        return self.queries.execute(query, Notification.from_dict, "notification")

    def _parse_limit(self, limit: int | str | None) -> int:
        if isinstance(limit, str):
            limit = limit.strip() or None
            if limit is not None and not limit.isdecimal():
                raise ValidationError("Notification limit must be a positive integer.")
            limit = None if limit is None else int(limit)
        if limit is None:
            return self.config.notification_limit
        if not isinstance(limit, int) or isinstance(limit, bool) or limit <= 0:
            raise ValidationError("Notification limit must be a positive integer.")
        return limit

    def acknowledge(self, notification_id: str) -> Notification:
        raw = self.ledger.get(notification_id)
        if not raw:
            raise NotFoundError(f"Notification {notification_id} does not exist.")
        try:
            notification = Notification.from_dict(codec.decode_object(raw))
        except (UnicodeDecodeError, ValueError, TypeError, KeyError):
            raise NotFoundError(f"Notification {notification_id} does not exist.") from None

        if notification.acknowledged:
            return notification
        acknowledged = notification.acknowledge()
        self.ledger.put(notification_id, codec.encode(acknowledged.to_dict()))
        log.info("notification_acknowledged id=%s", notification_id)
        return acknowledged
