from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from sctrack.application.contract import SupplyChainContract
from sctrack.config import EngineConfig
from sctrack.repositories.contracts import LedgerAccessor
from sctrack.repositories.sqlite_ledger import SqliteLedger
from sctrack.services.analytics_service import AnalyticsService
from sctrack.services.notification_service import NotificationService
from sctrack.services.product_service import ProductService
from sctrack.services.quality_service import QualityService
from sctrack.services.query_service import QueryService
from sctrack.services.reporting_service import ReportingService


@dataclass(frozen=True)
class AppContainer:
    ledger: LedgerAccessor
    config: EngineConfig
    queries: QueryService
    notifications: NotificationService
    products: ProductService
    quality: QualityService
    analytics: AnalyticsService
    reporting: ReportingService
    contract: SupplyChainContract


def build_container(
    db_path: Path | str | None = None,
    *,
    ledger: LedgerAccessor | None = None,
    config: EngineConfig | None = None,
) -> AppContainer:
    if ledger is None:
        if db_path is None:
            raise ValueError("Either db_path or ledger is required.")
        sqlite_ledger = SqliteLedger(db_path)
        sqlite_ledger.init_db()
        ledger = sqlite_ledger

    config = config or EngineConfig()
    queries = QueryService(ledger)
    notifications = NotificationService(ledger, queries, config)
    products = ProductService(ledger, notifications, config)
    quality = QualityService(ledger, products, notifications, config)
    analytics = AnalyticsService(queries, config)
    reporting = ReportingService(analytics)
    contract = SupplyChainContract(products, quality, notifications, queries, analytics)

    return AppContainer(
        ledger=ledger,
        config=config,
        queries=queries,
        notifications=notifications,
        products=products,
        quality=quality,
        analytics=analytics,
        reporting=reporting,
        contract=contract,
    )
