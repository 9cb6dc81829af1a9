"""Operations exposed to the gateway, in plain serializable structures.

Each public method is one invocation against the ledger. Mutating operations
take the caller's ``TransactionContext``; read-only ones do not.
"""
from __future__ import annotations

import inspect
import logging
from typing import Any, Mapping, Optional

from sctrack.domain import codec
from sctrack.domain.context import TransactionContext
from sctrack.domain.errors import ValidationError
from sctrack.services.analytics_service import AnalyticsService
from sctrack.services.notification_service import NotificationService
from sctrack.services.product_service import ProductService
from sctrack.services.quality_service import QualityService
from sctrack.services.query_service import QueryService

log = logging.getLogger(__name__)

# wire name -> (method, takes a transaction context)
OPERATIONS: dict[str, tuple[str, bool]] = {
    "productExists": ("product_exists", False),
    "createProduct": ("create_product", True),
    "shipProductTo": ("ship_product_to", True),
    "getProduct": ("get_product", False),
    "getProductWithHistory": ("get_product_with_history", False),
    "queryAllProducts": ("query_all_products", False),
    "queryProductsByCategory": ("query_products_by_category", False),
    "queryProductsByLocation": ("query_products_by_location", False),
    "addQualityRecord": ("add_quality_record", True),
    "getQualityRecords": ("get_quality_records", False),
    "getAnalyticsData": ("get_analytics_data", False),
    "getNotifications": ("get_notifications", False),
    "acknowledgeNotification": ("acknowledge_notification", False),
}


def _load_json(payload: Any, what: str) -> dict:
    if isinstance(payload, Mapping):
        return dict(payload)
    if isinstance(payload, (str, bytes)):
        try:
            return codec.decode_object(payload)
        except (UnicodeDecodeError, ValueError) as e:
            raise ValidationError(f"Invalid JSON for {what}: {e}") from e
    raise ValidationError(f"The {what} must be a JSON object.")


class SupplyChainContract:
    def __init__(
        self,
        products: ProductService,
        quality: QualityService,
        notifications: NotificationService,
        queries: QueryService,
        analytics: AnalyticsService,
    ):
        self.products = products
        self.quality = quality
        self.notifications = notifications
        self.queries = queries
        self.analytics = analytics

    def invoke(self, operation: str, args: list | tuple = (), ctx: Optional[TransactionContext] = None) -> Any:
        if operation not in OPERATIONS:
            raise ValidationError(f"Unknown operation: {operation}")
        method_name, needs_ctx = OPERATIONS[operation]
        method = getattr(self, method_name)
        call_args = tuple(args)
        if needs_ctx:
            if ctx is None:
                raise ValidationError(f"Operation {operation} requires a transaction id and timestamp.")
            call_args = (ctx, *call_args)
        try:
            inspect.signature(method).bind(*call_args)
        except TypeError as e:
            raise ValidationError(f"Bad arguments for {operation}: {e}") from e
        log.debug("invoke operation=%s args=%s", operation, len(args))
        return method(*call_args)

    # ---------- Products ----------
    def product_exists(self, product_id: str) -> bool:
        return self.products.exists(product_id)

    def create_product(self, ctx: TransactionContext, product_json: Any) -> dict:
        return self.products.create(ctx, _load_json(product_json, "product")).to_dict()

    def ship_product_to(self, ctx: TransactionContext, product_id: str, new_location: str, arrival_date: str) -> dict:
        return self.products.ship(ctx, product_id, new_location, arrival_date).to_dict()

    def get_product(self, product_id: str) -> dict:
        return self.products.read(product_id).to_dict()

    def get_product_with_history(self, product_id: str) -> dict:
        return self.products.read_with_history(product_id).to_dict()

    # ---------- Queries ----------
    def query_all_products(self) -> list[dict]:
        return [p.to_dict() for p in self.queries.all_products()]

    def query_products_by_category(self, category: str) -> list[dict]:
        return [p.to_dict() for p in self.queries.products_by_category(category)]

    def query_products_by_location(self, location: str) -> list[dict]:
        return [p.to_dict() for p in self.queries.products_by_location(location)]

    # ---------- Quality ----------
    def add_quality_record(self, ctx: TransactionContext, product_id: str, quality_json: Any) -> dict:
        return self.quality.add(ctx, product_id, _load_json(quality_json, "quality record")).to_dict()

    def get_quality_records(self, product_id: str) -> list[dict]:
        return [r.to_dict() for r in self.quality.list(product_id)]

    # ---------- Analytics ----------
    def get_analytics_data(self) -> dict:
        return self.analytics.compute().to_dict()

    # ---------- Notifications ----------
    def get_notifications(self, limit: int | str | None = None) -> list[dict]:
        return [n.to_dict() for n in self.notifications.list(limit)]

    def acknowledge_notification(self, notification_id: str) -> dict:
        return self.notifications.acknowledge(notification_id).to_dict()
