from .query_service import QueryService
from .notification_service import NotificationService
from .product_service import ProductService
from .quality_service import QualityService
from .analytics_service import AnalyticsService
from .reporting_service import ReportingService

__all__ = [
    "QueryService",
    "NotificationService",
    "ProductService",
    "QualityService",
    "AnalyticsService",
    "ReportingService",
]
