from __future__ import annotations

from dataclasses import replace
from datetime import date, datetime

import pytest
from sqlalchemy import select

from conftest import xlsx_bytes
from cargodock.core.config import settings
from cargodock.models.master_data import Carrier, Driver, Location
from cargodock.models.orders import InboundReceipt, Order, PickupManagement
from cargodock.services import container_update_import_service
from cargodock.services.imports.pipeline import MergeImportService
from cargodock.services.imports.registry import get_import_service

CONTAINER_HEADER = ["Container Number", "MBL Number", "Port", "Shipping Line", "Carrier", "ETA", "LFD"]
PICKUP_HEADER = ["Container Number", "Port Text", "Driver", "Pickup Date", "Current Location"]


@pytest.fixture
def tracked(seeded, db_session):
    order = seeded["order"]
    receipt = InboundReceipt(order_id=order.id, status="pending", planned_unload_at=date(2026, 3, 17))
    pickup = PickupManagement(order_id=order.id, port_text="LB terminal")
    db_session.add_all([receipt, pickup])
    db_session.commit()
    return {"order": order, "receipt": receipt, "pickup": pickup}


def _run(db_session, containers, pickups):
    payload = xlsx_bytes({"Containers": [CONTAINER_HEADER, *containers], "Pickup": [PICKUP_HEADER, *pickups]})
    return get_import_service("container_update").run(db_session, payload, user_email="tms@example.com")


def _reload(db_session, model, **where):
    db_session.expire_all()
    stmt = select(model)
    for column, value in where.items():
        stmt = stmt.where(getattr(model, column) == value)
    return db_session.execute(stmt).scalar_one()


def test_sheets_merge_per_container_and_update_existing_records(tracked, db_session):
    result = _run(
        db_session,
        [["MSCU1234567", "MBL-9", "PORT-LB", "MSC", "MAEU", "2026-03-16", None]],
        [["MSCU1234567", None, "D001", "2026-03-18 10:00", "Yard 4"]],
    )
    assert result.success is True
    assert (result.imported, result.total) == (1, 2)

    order = _reload(db_session, Order, order_number="MSCU1234567")
    carrier = _reload(db_session, Carrier, carrier_code="MAEU")
    port = _reload(db_session, Location, location_code="PORT-LB")
    assert order.mbl_number == "MBL-9"
    assert order.carrier_id == carrier.id
    assert order.port_location_id == port.id
    assert order.eta_date == date(2026, 3, 16)
    assert order.pickup_date == datetime(2026, 3, 18, 10, 0)
    assert order.updated_by == "tms@example.com"
    # Blank cells leave stored values alone.
    assert order.container_type == "40DH"

    pickup = _reload(db_session, PickupManagement, order_id=order.id)
    driver = _reload(db_session, Driver, driver_code="D001")
    assert pickup.driver_id == driver.id
    assert pickup.shipping_line == "MSC"
    assert pickup.current_location == "Yard 4"
    assert pickup.port_text == "LB terminal"

    receipt = _reload(db_session, InboundReceipt, order_id=order.id)
    assert receipt.planned_unload_at == date(2026, 3, 19)


def test_eta_change_without_pickup_recalculates_unload(tracked, db_session):
    result = _run(db_session, [["MSCU1234567", None, None, None, "Maersk", "2026-03-16", None]], [])
    assert result.success is True
    receipt = _reload(db_session, InboundReceipt, order_id=tracked["order"].id)
    # Monday ETA -> following Monday.
    assert receipt.planned_unload_at == date(2026, 3, 23)


def test_lfd_only_change_keeps_planned_unload(tracked, db_session):
    result = _run(db_session, [["MSCU1234567", None, None, None, None, None, "2026-03-25"]], [])
    assert result.success is True
    receipt = _reload(db_session, InboundReceipt, order_id=tracked["order"].id)
    assert receipt.planned_unload_at == date(2026, 3, 17)


def test_batch_mode_rejects_unknown_references_without_writing(tracked, db_session, monkeypatch):
    monkeypatch.setattr(settings, "IMPORT_UPDATE_ATOMICITY", "batch")
    result = _run(
        db_session,
        [
            ["MSCU1234567", "MBL-NEW", None, None, "NOPE", None, None],
            ["ZZZU0000000", None, None, None, None, None, None],
        ],
        [["MSCU1234567", None, "D404", None, None]],
    )
    assert result.success is False
    assert [(e.row, e.field) for e in result.errors] == [(2, "Carrier"), (2, "Driver"), (3, "Container Number")]
    assert _reload(db_session, Order, order_number="MSCU1234567").mbl_number is None


def test_port_must_be_a_port_location(tracked, db_session):
    result = _run(db_session, [["MSCU1234567", None, "WH1", None, None, None, None]], [])
    assert result.success is False
    assert [(e.row, e.field, e.message) for e in result.errors] == [
        (2, "Port", "Port 'WH1' does not exist.")
    ]
    assert _reload(db_session, Order, order_number="MSCU1234567").port_location_id is None


def test_row_mode_commits_good_rows_and_reports_failures(tracked, db_session, monkeypatch):
    monkeypatch.setattr(settings, "IMPORT_UPDATE_ATOMICITY", "row")
    result = _run(
        db_session,
        [
            ["ZZZU0000000", "MBL-X", None, None, None, None, None],
            ["MSCU1234567", "MBL-NEW", None, None, None, None, None],
        ],
        [],
    )
    assert result.success is True
    assert result.imported == 1
    assert [(e.row, e.message) for e in result.errors] == [
        (2, "Container 'ZZZU0000000' does not match any order.")
    ]
    assert _reload(db_session, Order, order_number="MSCU1234567").mbl_number == "MBL-NEW"

    body = result.to_dict(max_errors=10)
    assert body["success"] is True
    assert body["errors"][0]["field"] == "Container Number"


def test_row_mode_keeps_going_after_an_unexpected_row_error(tracked, db_session, monkeypatch):
    monkeypatch.setattr(settings, "IMPORT_UPDATE_ATOMICITY", "row")
    real_apply = container_update_import_service.apply_row

    def _flaky_apply(db, batch, row):
        if row.data.mbl_number == "MBL-BAD":
            raise RuntimeError("tracking feed rejected the update")
        return real_apply(db, batch, row)

    service = MergeImportService(replace(container_update_import_service.CONFIG, apply_row=_flaky_apply))
    payload = xlsx_bytes(
        {
            "Containers": [
                CONTAINER_HEADER,
                ["ZZZU0000000", "MBL-BAD"],
                ["MSCU1234567", "MBL-OK"],
            ],
            "Pickup": [PICKUP_HEADER],
        }
    )
    result = service.run(db_session, payload, user_email="tms@example.com")

    assert result.success is True
    assert result.imported == 1
    assert [(e.row, e.message) for e in result.errors] == [
        (2, "Container Number 'ZZZU0000000' was not updated: RuntimeError.")
    ]
    assert _reload(db_session, Order, order_number="MSCU1234567").mbl_number == "MBL-OK"


def test_container_only_in_pickup_sheet_keeps_its_row_number(tracked, db_session):
    result = _run(db_session, [], [["MSCU1234567", None, None, None, "Gate"], ["ZZZU0000000", None, None, None, None]])
    assert result.success is False
    assert result.errors[0].row == 3


def test_both_sheets_are_required(tracked, db_session):
    payload = xlsx_bytes({"Containers": [CONTAINER_HEADER, ["MSCU1234567", "MBL-1"]]})
    result = get_import_service("container_update").run(db_session, payload, user_email="tms@example.com")
    assert result.success is False
    assert result.errors[0].field == "file"
    assert "missing Pickup" in result.errors[0].message


def test_duplicate_container_within_a_sheet_is_rejected(tracked, db_session):
    result = _run(
        db_session,
        [["MSCU1234567", "A"], ["MSCU1234567", "B"]],
        [],
    )
    assert result.success is False
    assert result.errors[0].message == (
        "[Containers] Container Number 'MSCU1234567' appears more than once in the file (rows 2, 3)."
    )


def test_sheet_validation_errors_are_prefixed_with_sheet_name(tracked, db_session):
    result = _run(db_session, [["MSCU1234567", None, None, None, None, "not a date"]], [])
    assert result.success is False
    assert result.errors[0].field == "ETA"
    assert result.errors[0].message.startswith("[Containers] ETA: ")
