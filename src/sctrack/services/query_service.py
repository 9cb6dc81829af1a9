from __future__ import annotations

import logging
from typing import Callable, Iterable, Optional, TypeVar

from sctrack.domain import codec
from sctrack.domain.models import Product, QualityRecord
from sctrack.repositories.contracts import LedgerAccessor
from sctrack.repositories.selector import build_query

log = logging.getLogger(__name__)

T = TypeVar("T")

# Notifications also carry "id"; only products have locationData.
PRODUCT_GUARD = {"id": {"$exists": True}, "locationData": {"$exists": True}}
QUALITY_GUARD = {"inspector": {"$exists": True}, "score": {"$exists": True}}


def decode_or_skip(key: str, raw: bytes, from_dict: Callable[[dict], T], kind: str) -> Optional[T]:
    try:
        return from_dict(codec.decode_object(raw))
    except (UnicodeDecodeError, ValueError, TypeError, KeyError) as e:
        log.warning("record_skipped kind=%s key=%s error=%s", kind, key, e)
        return None


def decode_rows(rows: Iterable[tuple[str, bytes]], from_dict: Callable[[dict], T], kind: str) -> list[T]:
    decoded = (decode_or_skip(key, raw, from_dict, kind) for key, raw in rows)
    return [item for item in decoded if item is not None]


class QueryService:
    def __init__(self, ledger: LedgerAccessor):
        self.ledger = ledger

    def execute(self, query: str, from_dict: Callable[[dict], T], kind: str) -> list[T]:
        return decode_rows(self.ledger.query(query), from_dict, kind)

    def all_products(self) -> list[Product]:
        return self.execute(build_query(PRODUCT_GUARD), Product.from_dict, "product")

    def products_by_category(self, category: str) -> list[Product]:
        selector = dict(PRODUCT_GUARD, category=category)
        return self.execute(build_query(selector), Product.from_dict, "product")

    def products_by_location(self, location: str) -> list[Product]:
        selector = dict(PRODUCT_GUARD)
        selector["locationData.current.location"] = location
        return self.execute(build_query(selector), Product.from_dict, "product")

    def all_quality_records(self) -> list[QualityRecord]:
        return self.execute(build_query(QUALITY_GUARD), QualityRecord.from_dict, "quality")
