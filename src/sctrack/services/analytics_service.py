from __future__ import annotations

import logging
import math
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Optional

from sctrack.config import EngineConfig
from sctrack.domain.models import AnalyticsData, MonthlyTrend, Product
from sctrack.domain.validation import parse_timestamp
from sctrack.services.query_service import QueryService

log = logging.getLogger(__name__)

# Fixed English labels; process locale must not leak into results.
MONTH_LABELS = ("Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")

_DAY = timedelta(days=1)


def round_half_up(value: float, digits: int = 0) -> float:
    scale = 10 ** digits
    return math.floor(value * scale + 0.5) / scale


def month_key(instant: datetime) -> str:
    return instant.strftime("%Y-%m")


def month_label(key: str) -> str:
    return MONTH_LABELS[int(key[5:7]) - 1]


@dataclass
class _MonthBucket:
    products: int = 0
    shipments: int = 0


@dataclass
class _DeliveryTally:
    total: timedelta = field(default_factory=timedelta)
    count: int = 0
    on_time: int = 0


class AnalyticsService:
    def __init__(self, queries: QueryService, config: EngineConfig | None = None):
        self.queries = queries
        self.config = config or EngineConfig()

    def compute(self) -> AnalyticsData:
        products = self.queries.all_products()
        quality_records = self.queries.all_quality_records()

        categories: Counter[str] = Counter()
        locations: Counter[str] = Counter()
        months: dict[str, _MonthBucket] = {}
        deliveries = _DeliveryTally()
        on_time_limit = timedelta(days=self.config.on_time_days)

        shipments: list[datetime] = []
        for product in products:
            categories[product.category] += 1
            locations[product.location_data.current.location] += 1
            try:
                production, delivery = self._product_dates(product)
            except (TypeError, ValueError) as e:
                log.warning("analytics_product_skipped id=%s error=%s", product.id, e)
                continue

            months.setdefault(month_key(production), _MonthBucket()).products += 1
            if delivery is None:
                continue
            shipped_at, elapsed = delivery
            shipments.append(shipped_at)
            deliveries.total += elapsed
            deliveries.count += 1
            if elapsed <= on_time_limit:
                deliveries.on_time += 1

        # A shipment only counts toward a month that has production.
        for shipped_at in shipments:
            bucket = months.get(month_key(shipped_at))
            if bucket is not None:
                bucket.shipments += 1

        scores = [r.score for r in quality_records if isinstance(r.score, (int, float)) and not isinstance(r.score, bool)]

        if deliveries.count:
            average_days = int(round_half_up(deliveries.total / _DAY / deliveries.count))
            on_time_rate = int(round_half_up(deliveries.on_time / deliveries.count * 100))
        else:
            average_days = 0
            on_time_rate = 100

        quality_score = (
            round_half_up(sum(scores) / len(scores), 1) if scores else float(self.config.default_quality_score)
        )

        recent = sorted(months)[-self.config.trend_months:] if self.config.trend_months > 0 else []
        trends = tuple(
            MonthlyTrend(month=month_label(key), products=months[key].products, shipments=months[key].shipments)
            for key in recent
        )

        return AnalyticsData(
            total_products=len(products),
            active_shipments=sum(1 for p in products if 0 < p.location_data.transitions < 3),
            completed_deliveries=sum(1 for p in products if p.location_data.transitions >= 2),
            average_delivery_time=average_days,
            on_time_delivery_rate=on_time_rate,
            quality_score=quality_score,
            category_stats=dict(sorted(categories.items())),
            location_stats=dict(sorted(locations.items())),
            monthly_trends=trends,
        )

    @staticmethod
    def _product_dates(product: Product) -> tuple[datetime, Optional[tuple[datetime, timedelta]]]:
        """Production instant, plus (arrival, elapsed since origin) once shipped."""
        production = parse_timestamp(product.production_date)
        if not product.location_data.previous:
            return production, None
        origin = parse_timestamp(product.location_data.previous[0].arrival_date)
        shipped_at = parse_timestamp(product.location_data.current.arrival_date)
        return production, (shipped_at, shipped_at - origin)
