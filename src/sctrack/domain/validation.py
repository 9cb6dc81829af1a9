"""Structural and business-rule checks for incoming payloads.

Everything here is pure: no ledger access, no clock. Each check raises
``ValidationError`` with a message naming the offending field.
"""
from __future__ import annotations

import re
from datetime import datetime, timezone
from typing import Any, Mapping, Union

from sctrack.domain.errors import ValidationError
from sctrack.domain.models import Product, QualityRecord

DEFAULT_RESERVED_PREFIXES = ("QUALITY_", "NOTIF_")

MAX_NAME_LENGTH = 100
MAX_ORIGIN_LENGTH = 200
MIN_SCORE = 0
MAX_SCORE = 100

# Extended ISO-8601 only; fractions of exactly 3 or 6 digits.
_DATETIME_SHAPE = re.compile(
    r"[0-9]{4}-[0-9]{2}-[0-9]{2}T[0-9]{2}:[0-9]{2}:[0-9]{2}(\.[0-9]{3}|\.[0-9]{6})?(Z|[+-][0-9]{2}:[0-9]{2})?"
)


def parse_timestamp(value: str) -> datetime:
    """Parse an ISO-8601 date-time into an aware UTC datetime.

    Naive values are read as UTC. Raises ``ValueError`` for anything outside
    ``YYYY-MM-DDTHH:MM:SS[.fff|.ffffff][Z|+HH:MM]``, so every interpreter
    accepts and rejects the same strings.
    """
    if not isinstance(value, str) or not _DATETIME_SHAPE.fullmatch(value):
        raise ValueError(f"Not an ISO-8601 date-time: {value!r}")
    text = value
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def format_timestamp(instant: datetime) -> str:
    """Render an aware datetime as ``YYYY-MM-DDTHH:MM:SS.sssZ`` in UTC."""
    utc = instant.astimezone(timezone.utc)
    return (
        f"{utc.year:04d}-{utc.month:02d}-{utc.day:02d}T"
        f"{utc.hour:02d}:{utc.minute:02d}:{utc.second:02d}.{utc.microsecond // 1000:03d}Z"
    )


def is_valid_datetime(value: Any) -> bool:
    try:
        parse_timestamp(value)
    except (TypeError, ValueError):
        return False
    return True


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def require_field(value: Any, field_name: str) -> None:
    if value is None or (isinstance(value, str) and value.strip() == ""):
        raise ValidationError(f"The '{field_name}' field is required.")


def _require_date(value: Any, label: str) -> datetime:
    try:
        return parse_timestamp(value)
    except (TypeError, ValueError):
        raise ValidationError(f"Invalid {label} format. Use ISO 8601 format.") from None


def check_key_safe(identifier: str, field_name: str, reserved_prefixes=DEFAULT_RESERVED_PREFIXES) -> None:
    if not isinstance(identifier, str):
        raise ValidationError(f"The '{field_name}' field must be a string.")
    for prefix in reserved_prefixes:
        if identifier.startswith(prefix):
            raise ValidationError(f"The '{field_name}' value may not start with reserved prefix '{prefix}'.")


def validate_product(
    product: Union[Product, Mapping[str, Any]],
    reserved_prefixes=DEFAULT_RESERVED_PREFIXES,
) -> None:
    data = product.to_dict() if isinstance(product, Product) else product
    if not isinstance(data, Mapping):
        raise ValidationError("Product payload must be a JSON object.")

    location_data = data.get("locationData")
    current = location_data.get("current") if isinstance(location_data, Mapping) else None
    if not isinstance(current, Mapping):
        current = {}

    for name in (
        "id",
        "name",
        "barcode",
        "placeOfOrigin",
        "productionDate",
        "expirationDate",
        "unitQuantity",
        "unitQuantityType",
        "unitPrice",
        "category",
    ):
        require_field(data.get(name), name)
    require_field(current.get("location"), "locationData.current.location")
    require_field(current.get("arrivalDate"), "locationData.current.arrivalDate")

    check_key_safe(data["id"], "id", reserved_prefixes)

    production = _require_date(data["productionDate"], "production date")
    expiration = _require_date(data["expirationDate"], "expiration date")
    _require_date(current["arrivalDate"], "arrival date")
    if expiration <= production:
        raise ValidationError("Expiration date must be after production date.")

    if not _is_number(data["unitQuantity"]) or data["unitQuantity"] <= 0:
        raise ValidationError("Unit quantity must be positive.")
    batch = data.get("batchQuantity")
    if batch is not None and (not _is_number(batch) or batch <= 0):
        raise ValidationError("Batch quantity must be positive if specified.")

    if not isinstance(data["name"], str) or len(data["name"]) > MAX_NAME_LENGTH:
        raise ValidationError(f"Product name too long (max {MAX_NAME_LENGTH} characters).")
    if not isinstance(data["placeOfOrigin"], str) or len(data["placeOfOrigin"]) > MAX_ORIGIN_LENGTH:
        raise ValidationError(f"Place of origin too long (max {MAX_ORIGIN_LENGTH} characters).")

    components = data.get("componentProductIds")
    if components is not None and (
        not isinstance(components, list) or not all(isinstance(c, str) for c in components)
    ):
        raise ValidationError("componentProductIds must be a list of product ids.")


def validate_quality_record(record: Union[QualityRecord, Mapping[str, Any]]) -> None:
    data = record.to_dict() if isinstance(record, QualityRecord) else record
    if not isinstance(data, Mapping):
        raise ValidationError("Quality record payload must be a JSON object.")

    for name in ("inspector", "score", "notes", "timestamp"):
        require_field(data.get(name), name)

    score = data["score"]
    if not isinstance(score, int) or isinstance(score, bool):
        raise ValidationError("Quality score must be an integer.")
    if score < MIN_SCORE or score > MAX_SCORE:
        raise ValidationError(f"Quality score must be between {MIN_SCORE} and {MAX_SCORE}.")

    _require_date(data["timestamp"], "timestamp")


def validate_shipment(new_location: Any, arrival_date: Any) -> None:
    require_field(new_location, "newLocation")
    require_field(arrival_date, "arrivalDate")
    if not isinstance(new_location, str):
        raise ValidationError("The 'newLocation' field must be a string.")
    _require_date(arrival_date, "arrival date")
