from __future__ import annotations

import logging
from dataclasses import replace
from typing import Any, Mapping, Union

from sctrack.config import EngineConfig
from sctrack.domain import codec
from sctrack.domain.context import TransactionContext
from sctrack.domain.errors import AlreadyExistsError, NotFoundError, ValidationError
from sctrack.domain.models import NotificationType, Product, ProductWithHistory
from sctrack.domain.validation import validate_product, validate_shipment
from sctrack.repositories.contracts import LedgerAccessor
from sctrack.services.notification_service import NotificationService

log = logging.getLogger(__name__)


class ProductService:
    def __init__(self, ledger: LedgerAccessor, notifications: NotificationService, config: EngineConfig | None = None):
        self.ledger = ledger
        self.notifications = notifications
        self.config = config or EngineConfig()

    def exists(self, product_id: str) -> bool:
        raw = self.ledger.get(product_id)
        return bool(raw)

    def create(self, ctx: TransactionContext, product: Union[Product, Mapping[str, Any]]) -> Product:
        data = product.to_dict() if isinstance(product, Product) else product
        if not isinstance(data, Mapping):
            raise ValidationError("Product payload must be a JSON object.")

        product_id = data.get("id")
        if isinstance(product_id, str) and product_id.strip() and self.exists(product_id):
            raise AlreadyExistsError(f"The product {product_id} already exists.")

        validate_product(data, self.config.reserved_prefixes)
        try:
            created = Product.from_dict(dict(data))
        except (ValueError, TypeError) as e:
            raise ValidationError(str(e)) from e

        self.ledger.put(created.id, codec.encode(created.to_dict()))
        log.info("product_created id=%s category=%s tx=%s", created.id, created.category, ctx.tx_id)

        self.notifications.notify(
            ctx,
            created.id,
            NotificationType.CREATED,
            f"Product {created.name} created at {created.place_of_origin}",
            location=created.place_of_origin,
        )
        return created

    def ship(self, ctx: TransactionContext, product_id: str, new_location: str, arrival_date: str) -> Product:
        if not self.exists(product_id):
            raise NotFoundError(f"The product {product_id} does not exist.")
        validate_shipment(new_location, arrival_date)

        product = self.read(product_id)
        shipped = replace(product, location_data=product.location_data.moved_to(new_location, arrival_date))
        self.ledger.put(product_id, codec.encode(shipped.to_dict()))
        log.info(
            "product_shipped id=%s to=%s transitions=%s tx=%s",
            product_id,
            new_location,
            shipped.location_data.transitions,
            ctx.tx_id,
        )

        self.notifications.notify(
            ctx,
            product_id,
            NotificationType.SHIPPED,
            f"Product {shipped.name} shipped to {new_location}",
            location=new_location,
        )
        return shipped

    def read(self, product_id: str) -> Product:
        raw = self.ledger.get(product_id)
        if not raw:
            raise NotFoundError(f"The product {product_id} does not exist.")
        try:
            return Product.from_dict(codec.decode_object(raw))
        except (UnicodeDecodeError, ValueError, TypeError, KeyError):
            raise NotFoundError(f"The record {product_id} is not a product.") from None

    def read_with_history(self, product_id: str) -> ProductWithHistory:
        product = self.read(product_id)
        components = []
        for component_id in product.component_product_ids:
            try:
                components.append(self.read(component_id))
            except NotFoundError:
                log.info("component_skipped product=%s component=%s", product_id, component_id)
        return ProductWithHistory(product=product, component_products=tuple(components))
