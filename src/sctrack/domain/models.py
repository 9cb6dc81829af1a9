from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Optional, Union

Number = Union[int, float]


class NotificationType(str, Enum):
    CREATED = "created"
    SHIPPED = "shipped"
    QUALITY_CHECK = "quality_check"


class Severity(str, Enum):
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


def _required(data: dict, key: str) -> Any:
    if key not in data or data[key] is None:
        raise ValueError(f"Missing field: {key}")
    return data[key]


def _drop_none(payload: dict) -> dict:
    return {k: v for k, v in payload.items() if v is not None}


@dataclass(frozen=True)
class ProductLocationEntry:
    location: str
    arrival_date: str

    def to_dict(self) -> dict:
        return {"location": self.location, "arrivalDate": self.arrival_date}

    @classmethod
    def from_dict(cls, data: dict) -> "ProductLocationEntry":
        if not isinstance(data, dict):
            raise ValueError("Location entry must be an object")
        return cls(location=_required(data, "location"), arrival_date=_required(data, "arrivalDate"))


@dataclass(frozen=True)
class ProductLocationData:
    current: ProductLocationEntry
    previous: tuple[ProductLocationEntry, ...] = ()

    def moved_to(self, location: str, arrival_date: str) -> "ProductLocationData":
        """Return the data after a shipment; the superseded entry is archived last."""
        return ProductLocationData(
            current=ProductLocationEntry(location=location, arrival_date=arrival_date),
            previous=self.previous + (self.current,),
        )

    @property
    def transitions(self) -> int:
        return len(self.previous)

    def to_dict(self) -> dict:
        return {
            "current": self.current.to_dict(),
            "previous": [entry.to_dict() for entry in self.previous],
        }

    @classmethod
    def from_dict(cls, data: dict) -> "ProductLocationData":
        if not isinstance(data, dict):
            raise ValueError("locationData must be an object")
        previous = data.get("previous") or []
        if not isinstance(previous, list):
            raise ValueError("locationData.previous must be a list")
        return cls(
            current=ProductLocationEntry.from_dict(_required(data, "current")),
            previous=tuple(ProductLocationEntry.from_dict(p) for p in previous),
        )


@dataclass(frozen=True)
class Product:
    id: str
    name: str
    barcode: str
    place_of_origin: str
    production_date: str
    expiration_date: str
    unit_quantity: Number
    unit_quantity_type: str
    unit_price: Union[str, Number]
    category: str
    location_data: ProductLocationData
    batch_quantity: Optional[Number] = None
    variety: Optional[str] = None
    # Caller-owned payload, never inspected.
    misc: Any = None
    component_product_ids: tuple[str, ...] = ()

    def to_dict(self) -> dict:
        return _drop_none(
            {
                "id": self.id,
                "name": self.name,
                "barcode": self.barcode,
                "placeOfOrigin": self.place_of_origin,
                "productionDate": self.production_date,
                "expirationDate": self.expiration_date,
                "unitQuantity": self.unit_quantity,
                "unitQuantityType": self.unit_quantity_type,
                "batchQuantity": self.batch_quantity,
                "unitPrice": self.unit_price,
                "category": self.category,
                "variety": self.variety,
                "misc": self.misc,
                "componentProductIds": list(self.component_product_ids),
                "locationData": self.location_data.to_dict(),
            }
        )

    @classmethod
    def from_dict(cls, data: dict) -> "Product":
        if not isinstance(data, dict):
            raise ValueError("Product must be an object")
        components = data.get("componentProductIds") or []
        if not isinstance(components, list) or not all(isinstance(c, str) for c in components):
            raise ValueError("componentProductIds must be a list of strings")
        return cls(
            id=_required(data, "id"),
            name=_required(data, "name"),
            barcode=_required(data, "barcode"),
            place_of_origin=_required(data, "placeOfOrigin"),
            production_date=_required(data, "productionDate"),
            expiration_date=_required(data, "expirationDate"),
            unit_quantity=_required(data, "unitQuantity"),
            unit_quantity_type=_required(data, "unitQuantityType"),
            unit_price=_required(data, "unitPrice"),
            category=_required(data, "category"),
            location_data=ProductLocationData.from_dict(_required(data, "locationData")),
            batch_quantity=data.get("batchQuantity"),
            variety=data.get("variety"),
            misc=data.get("misc"),
            component_product_ids=tuple(components),
        )


@dataclass(frozen=True)
class ProductWithHistory:
    product: Product
    component_products: tuple[Product, ...] = ()

    def to_dict(self) -> dict:
        payload = self.product.to_dict()
        payload["componentProducts"] = [p.to_dict() for p in self.component_products]
        return payload


@dataclass(frozen=True)
class QualityRecord:
    product_id: str
    inspector: str
    score: int
    notes: str
    timestamp: str
    location: Optional[str] = None
    test_results: Optional[str] = None
    certification_type: Optional[str] = None
    inspection_standard: Optional[str] = None
    batch_id: Optional[str] = None

    def to_dict(self) -> dict:
        return _drop_none(
            {
                "productId": self.product_id,
                "inspector": self.inspector,
                "score": self.score,
                "notes": self.notes,
                "timestamp": self.timestamp,
                "location": self.location,
                "testResults": self.test_results,
                "certificationType": self.certification_type,
                "inspectionStandard": self.inspection_standard,
                "batchId": self.batch_id,
            }
        )

    @classmethod
    def from_dict(cls, data: dict) -> "QualityRecord":
        if not isinstance(data, dict):
            raise ValueError("Quality record must be an object")
        return cls(
            product_id=_required(data, "productId"),
            inspector=_required(data, "inspector"),
            score=_required(data, "score"),
            notes=_required(data, "notes"),
            timestamp=_required(data, "timestamp"),
            location=data.get("location"),
            test_results=data.get("testResults"),
            certification_type=data.get("certificationType"),
            inspection_standard=data.get("inspectionStandard"),
            batch_id=data.get("batchId"),
        )


@dataclass(frozen=True)
class Notification:
    id: str
    product_id: str
    type: str
    message: str
    timestamp: str
    severity: str = Severity.INFO.value
    location: Optional[str] = None
    acknowledged: bool = False

    def acknowledge(self) -> "Notification":
        return replace(self, acknowledged=True)

    def to_dict(self) -> dict:
        return _drop_none(
            {
                "id": self.id,
                "productId": self.product_id,
                "type": self.type,
                "message": self.message,
                "timestamp": self.timestamp,
                "location": self.location,
                "severity": self.severity,
                "acknowledged": self.acknowledged,
            }
        )

    @classmethod
    def from_dict(cls, data: dict) -> "Notification":
        if not isinstance(data, dict):
            raise ValueError("Notification must be an object")
        kind = NotificationType(_required(data, "type")).value
        severity = Severity(data.get("severity") or Severity.INFO.value).value
        acknowledged = data.get("acknowledged", False)
        if not isinstance(acknowledged, bool):
            raise ValueError("acknowledged must be a boolean")
        return cls(
            id=_required(data, "id"),
            product_id=_required(data, "productId"),
            type=kind,
            message=_required(data, "message"),
            timestamp=_required(data, "timestamp"),
            severity=severity,
            location=data.get("location"),
            acknowledged=acknowledged,
        )


@dataclass(frozen=True)
class MonthlyTrend:
    month: str
    products: int
    shipments: int

    def to_dict(self) -> dict:
        return {"month": self.month, "products": self.products, "shipments": self.shipments}


@dataclass(frozen=True)
class AnalyticsData:
    total_products: int
    active_shipments: int
    completed_deliveries: int
    average_delivery_time: int
    on_time_delivery_rate: int
    quality_score: float
    category_stats: dict[str, int] = field(default_factory=dict)
    location_stats: dict[str, int] = field(default_factory=dict)
    monthly_trends: tuple[MonthlyTrend, ...] = ()

    def to_dict(self) -> dict:
        return {
            "totalProducts": self.total_products,
            "activeShipments": self.active_shipments,
            "completedDeliveries": self.completed_deliveries,
            "averageDeliveryTime": self.average_delivery_time,
            "onTimeDeliveryRate": self.on_time_delivery_rate,
            "qualityScore": self.quality_score,
            "categoryStats": dict(self.category_stats),
            "locationStats": dict(self.location_stats),
            "monthlyTrends": [t.to_dict() for t in self.monthly_trends],
        }
