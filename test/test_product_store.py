from pathlib import Path

import pytest
from conftest import product_payload, tx

from sctrack.application.container import build_container
from sctrack.domain.errors import AlreadyExistsError, NotFoundError, ValidationError
from sctrack.domain.models import Product, ProductLocationEntry


def _setup(tmp_path: Path):
    return build_container(tmp_path / "ledger.db")


def test_create_then_read_returns_the_input_unchanged(tmp_path: Path):
    app = _setup(tmp_path)
    payload = product_payload()

    created = app.products.create(tx(1), payload)
    stored = app.products.read("P1")

    assert stored == created
    assert stored.to_dict() == payload
    assert isinstance(stored.unit_quantity, int)
    assert stored.misc == {"certifications": ["organic"], "notes": "handle with care"}


def test_create_rejects_duplicate_id(tmp_path: Path):
    app = _setup(tmp_path)
    app.products.create(tx(1), product_payload())

    with pytest.raises(AlreadyExistsError, match="P1 already exists"):
        app.products.create(tx(2), product_payload(name="Other"))


def test_exists_reflects_ledger_state(tmp_path: Path):
    app = _setup(tmp_path)
    assert app.products.exists("P1") is False
    app.products.create(tx(1), product_payload())
    assert app.products.exists("P1") is True


def test_create_rejects_invalid_payload_without_writing(tmp_path: Path):
    app = _setup(tmp_path)

    with pytest.raises(ValidationError, match="Expiration date must be after production date"):
        app.products.create(tx(1), product_payload(expirationDate="2021-06-24T18:25:43.511Z"))

    assert app.products.exists("P1") is False
    assert app.notifications.list() == []


def test_ship_appends_previous_location_and_replaces_current(tmp_path: Path):
    app = _setup(tmp_path)
    app.products.create(tx(1), product_payload())
    origin = ProductLocationEntry(location="Farm Valley", arrival_date="2021-06-24T18:25:43.511Z")

    stops = [
        ("Warehouse A", "2021-06-26T00:00:00.000Z"),
        ("Distribution Center", "2021-06-28T08:00:00.000Z"),
        ("Store 12", "2021-06-30T09:30:00.000Z"),
    ]
    history = [origin]
    for i, (location, arrival) in enumerate(stops):
        before = app.products.read("P1").location_data
        app.products.ship(tx(10 + i), "P1", location, arrival)
        after = app.products.read("P1").location_data

        assert after.current == ProductLocationEntry(location=location, arrival_date=arrival)
        assert len(after.previous) == len(before.previous) + 1
        assert after.previous[:-1] == before.previous
        assert after.previous[-1] == before.current
        history.append(after.current)

    final = app.products.read("P1").location_data
    assert list(final.previous) == history[:-1]


def test_ship_unknown_product_fails_not_found(tmp_path: Path):
    app = _setup(tmp_path)

    with pytest.raises(NotFoundError, match="does not exist"):
        app.products.ship(tx(1), "NOPE", "Warehouse A", "2021-06-26T00:00:00.000Z")


@pytest.mark.parametrize(
    "location, arrival",
    [
        ("", "2021-06-26T00:00:00.000Z"),
        ("Warehouse A", ""),
        ("Warehouse A", "2021-06-26"),
        ("Warehouse A", "tomorrow"),
    ],
)
def test_ship_rejects_bad_location_or_date(tmp_path: Path, location, arrival):
    app = _setup(tmp_path)
    app.products.create(tx(1), product_payload())

    with pytest.raises(ValidationError):
        app.products.ship(tx(2), "P1", location, arrival)

    assert app.products.read("P1").location_data.previous == ()


def test_read_missing_product_fails(tmp_path: Path):
    app = _setup(tmp_path)

    with pytest.raises(NotFoundError):
        app.products.read("P404")


def test_read_with_history_skips_unresolvable_components(tmp_path: Path):
    app = _setup(tmp_path)
    app.products.create(tx(1), product_payload("C1", name="Flour"))
    app.products.create(tx(2), product_payload("C2", name="Sugar"))
    app.products.create(tx(3), product_payload("CAKE", name="Cake", componentProductIds=["C1", "GONE", "C2"]))

    result = app.products.read_with_history("CAKE")

    assert result.product.id == "CAKE"
    assert [p.id for p in result.component_products] == ["C1", "C2"]
    assert [c["name"] for c in result.to_dict()["componentProducts"]] == ["Flour", "Sugar"]


def test_product_value_round_trips_through_wire_format():
    product = Product.from_dict(product_payload(unitQuantity=2.5, batchQuantity=None, misc="free text"))

    assert Product.from_dict(product.to_dict()) == product
    assert product.to_dict()["unitQuantity"] == 2.5
    assert "batchQuantity" not in product.to_dict()
