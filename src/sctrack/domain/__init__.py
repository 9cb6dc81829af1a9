from .models import (
    AnalyticsData,
    MonthlyTrend,
    Notification,
    NotificationType,
    Product,
    ProductLocationData,
    ProductLocationEntry,
    ProductWithHistory,
    QualityRecord,
    Severity,
)
from .context import TransactionContext
from .errors import AppError, ValidationError, AlreadyExistsError, NotFoundError, StorageError

__all__ = [
    "AnalyticsData",
    "MonthlyTrend",
    "Notification",
    "NotificationType",
    "Product",
    "ProductLocationData",
    "ProductLocationEntry",
    "ProductWithHistory",
    "QualityRecord",
    "Severity",
    "TransactionContext",
    "AppError",
    "ValidationError",
    "AlreadyExistsError",
    "NotFoundError",
    "StorageError",
]
