from pathlib import Path

import pytest
from conftest import product_payload, quality_payload, tx

from sctrack.application.container import build_container
from sctrack.domain.errors import AlreadyExistsError, NotFoundError, StorageError, ValidationError
from sctrack.repositories.sqlite_ledger import SqliteLedger


class FailingNotificationLedger(SqliteLedger):
    def put(self, key, value):
        if key.startswith("NOTIF_"):
            raise StorageError("notification store offline")
        super().put(key, value)


class FailingProductLedger(SqliteLedger):
    def put(self, key, value):
        if key == "P1":
            raise StorageError("disk full")
        super().put(key, value)


def _setup(tmp_path: Path, ledger=None):
    if ledger is not None:
        ledger.init_db()
        return build_container(ledger=ledger)
    return build_container(tmp_path / "ledger.db")


def test_quality_records_come_back_newest_first_for_any_insertion_order(tmp_path: Path):
    app = _setup(tmp_path)
    app.products.create(tx(1), product_payload())

    stamps = [
        "2021-07-02T10:00:00.000Z",
        "2021-06-28T10:00:00.000Z",
        "2021-07-10T10:00:00.000Z",
        "2021-07-01T09:59:59.999Z",
    ]
    for i, stamp in enumerate(stamps):
        app.quality.add(tx(10 + i, stamp), "P1", quality_payload(score=70 + i, timestamp=stamp))

    records = app.quality.list("P1")

    assert [r.timestamp for r in records] == sorted(stamps, reverse=True)
    assert all(r.product_id == "P1" for r in records)


def test_quality_records_of_prefix_sharing_products_stay_separate(tmp_path: Path):
    app = _setup(tmp_path)
    app.products.create(tx(1), product_payload("P1"))
    app.products.create(tx(2), product_payload("P1_2"))

    app.quality.add(tx(3), "P1", quality_payload(score=90))
    app.quality.add(tx(4), "P1_2", quality_payload(score=40))

    assert [r.score for r in app.quality.list("P1")] == [90]
    assert [r.score for r in app.quality.list("P1_2")] == [40]


def test_malformed_quality_entries_are_skipped(tmp_path: Path):
    app = _setup(tmp_path)
    app.products.create(tx(1), product_payload())
    app.quality.add(tx(2), "P1", quality_payload(score=88))
    app.ledger.put("QUALITY_P1_0000000000000_broken", b"{not json")
    app.ledger.put("QUALITY_P1_0000000000001_partial", b'{"productId": "P1", "score": 10}')

    records = app.quality.list("P1")

    assert [r.score for r in records] == [88]


def test_add_quality_for_unknown_product_fails(tmp_path: Path):
    app = _setup(tmp_path)

    with pytest.raises(NotFoundError):
        app.quality.add(tx(1), "P404", quality_payload())


def test_quality_record_product_id_is_filled_and_checked(tmp_path: Path):
    app = _setup(tmp_path)
    app.products.create(tx(1), product_payload())

    record = app.quality.add(tx(2), "P1", quality_payload())
    assert record.product_id == "P1"

    with pytest.raises(ValidationError, match="belongs to P2"):
        app.quality.add(tx(3), "P1", quality_payload(productId="P2"))


def test_quality_record_key_is_derived_from_transaction(tmp_path: Path):
    app = _setup(tmp_path)
    app.products.create(tx(1), product_payload())
    ctx = tx(2, "2021-06-26T10:00:00.000Z")

    app.quality.add(ctx, "P1", quality_payload())

    assert app.quality.record_key(ctx, "P1") == "QUALITY_P1_1624701600000_tx0002"
    assert app.ledger.get("QUALITY_P1_1624701600000_tx0002") is not None


@pytest.mark.parametrize(
    "score, severity",
    [(100, "info"), (80, "info"), (79, "warning"), (60, "warning"), (59, "error"), (0, "error")],
)
def test_quality_notification_severity_follows_score(tmp_path: Path, score, severity):
    app = _setup(tmp_path)
    app.products.create(tx(1), product_payload())

    app.quality.add(tx(2, "2021-06-27T00:00:00.000Z"), "P1", quality_payload(score=score))

    latest = app.notifications.list(1)[0]
    assert latest.type == "quality_check"
    assert latest.severity == severity
    assert latest.message == f"Quality inspection completed for P1. Score: {score}/100"
    assert latest.location == "Warehouse A"


def test_mutations_emit_notifications_with_transaction_identity(tmp_path: Path):
    app = _setup(tmp_path)
    app.products.create(tx(1, "2021-06-24T18:25:43.511Z"), product_payload())
    app.products.ship(tx(2, "2021-06-26T00:00:00.000Z"), "P1", "Warehouse A", "2021-06-26T00:00:00.000Z")

    shipped, created = app.notifications.list()

    assert created.id == "NOTIF_tx0001"
    assert created.type == "created"
    assert created.message == "Product Organic Apples created at Farm Valley"
    assert created.timestamp == "2021-06-24T18:25:43.511Z"
    assert shipped.id == "NOTIF_tx0002"
    assert shipped.type == "shipped"
    assert shipped.location == "Warehouse A"
    assert not created.acknowledged and not shipped.acknowledged


def test_notification_list_honours_limit_and_order(tmp_path: Path):
    app = _setup(tmp_path)
    for i in range(5):
        app.products.create(tx(i, f"2021-06-2{i}T00:00:00.000Z"), product_payload(f"P{i}"))

    assert [n.product_id for n in app.notifications.list("2")] == ["P4", "P3"]
    assert len(app.notifications.list()) == 5

    with pytest.raises(ValidationError):
        app.notifications.list("abc")
    with pytest.raises(ValidationError):
        app.notifications.list(0)
    with pytest.raises(ValidationError):
        app.notifications.list("\u00b2")


def test_acknowledge_is_sticky_and_idempotent(tmp_path: Path):
    app = _setup(tmp_path)
    app.products.create(tx(1), product_payload())

    first = app.notifications.acknowledge("NOTIF_tx0001")
    again = app.notifications.acknowledge("NOTIF_tx0001")

    assert first.acknowledged is True
    assert again == first
    assert app.notifications.list()[0].acknowledged is True


def test_acknowledge_unknown_or_non_notification_fails(tmp_path: Path):
    app = _setup(tmp_path)
    app.products.create(tx(1), product_payload())

    with pytest.raises(NotFoundError):
        app.notifications.acknowledge("NOTIF_missing")
    with pytest.raises(NotFoundError):
        app.notifications.acknowledge("P1")
    assert "acknowledged" not in app.products.read("P1").to_dict()


def test_notification_failure_does_not_abort_the_mutation(tmp_path: Path):
    app = _setup(tmp_path, FailingNotificationLedger(tmp_path / "flaky.db"))

    app.products.create(tx(1), product_payload())
    app.products.ship(tx(2), "P1", "Warehouse A", "2021-06-26T00:00:00.000Z")
    app.quality.add(tx(3), "P1", quality_payload(score=20))

    assert app.products.read("P1").location_data.current.location == "Warehouse A"
    assert len(app.quality.list("P1")) == 1
    assert app.notifications.list() == []


def test_primary_write_failure_propagates(tmp_path: Path):
    app = _setup(tmp_path, FailingProductLedger(tmp_path / "full.db"))

    with pytest.raises(StorageError, match="disk full"):
        app.products.create(tx(1), product_payload())

    assert app.notifications.list() == []


def test_create_ship_inspect_acknowledge_walkthrough(tmp_path: Path):
    app = _setup(tmp_path)
    contract = app.contract

    contract.create_product(tx(1, "2021-06-24T18:25:43.511Z"), product_payload())
    shipped = contract.ship_product_to(
        tx(2, "2021-06-26T00:00:00.000Z"), "P1", "Warehouse A", "2021-06-26T00:00:00.000Z"
    )
    assert shipped["locationData"]["current"]["location"] == "Warehouse A"
    assert shipped["locationData"]["previous"] == [
        {"location": "Farm Valley", "arrivalDate": "2021-06-24T18:25:43.511Z"}
    ]

    contract.add_quality_record(tx(3, "2021-06-27T00:00:00.000Z"), "P1", quality_payload(score=45))
    quality_note = contract.get_notifications()[0]
    assert quality_note["severity"] == "error"

    contract.acknowledge_notification(quality_note["id"])

    acknowledged = [n["id"] for n in contract.get_notifications() if n["acknowledged"]]
    assert acknowledged == [quality_note["id"]]


def test_notifications_order_by_instant_whatever_the_timestamp_spelling(tmp_path: Path):
    app = _setup(tmp_path)
    app.products.create(tx(1, "2021-06-24T10:00:00Z"), product_payload("P_EARLY"))
    app.products.create(tx(2, "2021-06-24T10:00:00.500Z"), product_payload("P_LATE"))
    app.products.create(tx(3, "2021-06-24T11:00:00+02:00"), product_payload("P_OFF"))

    notes = app.notifications.list()

    assert [n.product_id for n in notes] == ["P_LATE", "P_EARLY", "P_OFF"]
    assert [n.timestamp for n in notes] == [
        "2021-06-24T10:00:00.500Z",
        "2021-06-24T10:00:00.000Z",
        "2021-06-24T09:00:00.000Z",
    ]
    assert [n.product_id for n in app.notifications.list(2)] == ["P_LATE", "P_EARLY"]


def test_reused_transaction_id_keeps_the_acknowledged_notification(tmp_path: Path):
    app = _setup(tmp_path)
    app.products.create(tx(1), product_payload())
    app.notifications.acknowledge("NOTIF_tx0001")

    app.products.ship(tx(1), "P1", "Warehouse A", "2021-06-26T00:00:00.000Z")

    [note] = app.notifications.list()
    assert (note.id, note.type, note.acknowledged) == ("NOTIF_tx0001", "created", True)
    assert app.products.read("P1").location_data.current.location == "Warehouse A"


def test_quality_record_under_a_taken_key_is_rejected(tmp_path: Path):
    app = _setup(tmp_path)
    app.products.create(tx(1), product_payload())
    ctx = tx(2, "2021-06-26T10:00:00.000Z")
    app.quality.add(ctx, "P1", quality_payload(score=90))

    with pytest.raises(AlreadyExistsError):
        app.quality.add(ctx, "P1", quality_payload(score=10))

    assert [r.score for r in app.quality.list("P1")] == [90]
