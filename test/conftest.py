import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))


def tx(n: int, timestamp: str = "2021-06-24T18:25:43.511Z"):
    from sctrack.domain.context import TransactionContext

    return TransactionContext(tx_id=f"tx{n:04d}", timestamp=timestamp)


def product_payload(product_id: str = "P1", **overrides) -> dict:
    payload = {
        "id": product_id,
        "name": "Organic Apples",
        "barcode": "4006381333931",
        "placeOfOrigin": "Farm Valley",
        "productionDate": "2021-06-24T18:25:43.511Z",
        "expirationDate": "2021-06-25T18:25:43.511Z",
        "unitQuantity": 10,
        "unitQuantityType": "kg",
        "batchQuantity": 200,
        "unitPrice": "2.50 USD",
        "category": "Fruit",
        "variety": "Gala",
        "misc": {"certifications": ["organic"], "notes": "handle with care"},
        "componentProductIds": [],
        "locationData": {
            "current": {"location": "Farm Valley", "arrivalDate": "2021-06-24T18:25:43.511Z"},
            "previous": [],
        },
    }
    payload.update(overrides)
    return payload


def quality_payload(score: int = 90, timestamp: str = "2021-06-26T10:00:00.000Z", **overrides) -> dict:
    payload = {
        "inspector": "Jane Inspector",
        "score": score,
        "notes": "Visual and lab inspection",
        "timestamp": timestamp,
        "location": "Warehouse A",
        "certificationType": "ISO 22000",
    }
    payload.update(overrides)
    return payload
