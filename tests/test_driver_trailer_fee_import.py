from __future__ import annotations

from datetime import date
from decimal import Decimal

from sqlalchemy import func, select

from conftest import xlsx_bytes
from cargodock.models.master_data import Carrier, Driver, Fee, Trailer
from cargodock.services.imports.registry import get_import_service

DRIVER_HEADER = [
    "Driver Code",
    "License Number",
    "License Plate",
    "Carrier Code",
    "Contact Name",
    "Contact Email",
    "License Expiration",
    "Status",
]
TRAILER_HEADER = ["Trailer Code", "Trailer Type", "Length (ft)", "Capacity Weight", "Status"]
FEE_HEADER = ["Fee Code", "Fee Name", "Unit", "Unit Price", "Currency", "Scope", "Container Type"]


def _run(db_session, key, sheet, rows):
    return get_import_service(key).run(
        db_session, xlsx_bytes({sheet: rows}), user_email="tms@example.com"
    )


def _count(db_session, model) -> int:
    return db_session.execute(select(func.count()).select_from(model)).scalar_one()


def test_drivers_resolve_carrier_codes(seeded, db_session):
    result = _run(
        db_session,
        "driver",
        "Drivers",
        [
            DRIVER_HEADER,
            ["D100", "CDL-100", "7ABC123", "MAEU", "Lee", "lee@example.com", "2027-05-31", "停用"],
            ["D101", "CDL-101", "8XYZ987", None, None, None, None, None],
        ],
    )
    assert result.to_dict(max_errors=10) == {"success": True, "imported": 2, "total": 2}

    carrier = db_session.execute(select(Carrier).where(Carrier.carrier_code == "MAEU")).scalar_one()
    drivers = {
        d.driver_code: d
        for d in db_session.execute(select(Driver).where(Driver.driver_code.in_(["D100", "D101"]))).scalars()
    }
    assert drivers["D100"].carrier_id == carrier.id
    assert drivers["D100"].license_expiration == date(2027, 5, 31)
    assert drivers["D100"].status == "inactive"
    assert drivers["D100"].created_by == "tms@example.com"
    assert drivers["D101"].carrier_id is None
    assert drivers["D101"].status == "active"


def test_driver_with_unknown_carrier_is_rejected(seeded, db_session):
    result = _run(
        db_session,
        "driver",
        "Drivers",
        [DRIVER_HEADER, ["D100", "CDL-100", "7ABC123", "MAEU"], ["D101", "CDL-101", "8XYZ987", "NOPE"]],
    )
    assert result.success is False
    assert [(e.row, e.field, e.message) for e in result.errors] == [
        (3, "Carrier Code", "Carrier 'NOPE' does not exist.")
    ]
    assert _count(db_session, Driver) == 1


def test_driver_codes_must_be_new_and_unique(seeded, db_session):
    in_file = _run(
        db_session,
        "driver",
        "Drivers",
        [DRIVER_HEADER, ["D100", "CDL-1", "P1"], ["D100", "CDL-2", "P2"]],
    )
    assert in_file.success is False
    assert in_file.errors[0].message == "Driver Code 'D100' appears more than once in the file (rows 2, 3)."

    stored = _run(db_session, "driver", "Drivers", [DRIVER_HEADER, ["D001", "CDL-3", "P3"]])
    assert stored.success is False
    assert (stored.errors[0].row, stored.errors[0].message) == (2, "Driver Code 'D001' already exists.")
    assert _count(db_session, Driver) == 1


def test_driver_contact_email_must_be_valid(seeded, db_session):
    result = _run(
        db_session,
        "driver",
        "Drivers",
        [DRIVER_HEADER, ["D100", "CDL-100", "7ABC123", None, None, "not-an-email"]],
    )
    assert result.success is False
    assert (result.errors[0].row, result.errors[0].field) == (2, "Contact Email")
    assert "not a valid email address" in result.errors[0].message


def test_driver_license_plate_is_required(seeded, db_session):
    result = _run(db_session, "driver", "Drivers", [DRIVER_HEADER, ["D100", "CDL-100", None]])
    assert result.success is False
    assert result.errors[0].field == "License Plate"


def test_trailers_default_status_and_keep_measurements(db_session):
    result = _run(
        db_session,
        "trailer",
        "Trailers",
        [
            TRAILER_HEADER,
            ["TR-53", "dry van", 53, 45000.5, None],
            ["TR-40", "chassis", None, None, "Maintenance"],
            ["TR-20", "chassis", None, None, "scrapped"],
        ],
    )
    assert result.success is True
    assert result.imported == 3

    trailers = {t.trailer_code: t for t in db_session.execute(select(Trailer)).scalars()}
    assert trailers["TR-53"].length_feet == Decimal("53")
    assert trailers["TR-53"].capacity_weight == Decimal("45000.5")
    assert trailers["TR-53"].status == "available"
    assert trailers["TR-40"].length_feet is None
    assert trailers["TR-40"].status == "maintenance"
    assert trailers["TR-20"].status == "available"


def test_trailer_length_cannot_be_negative(db_session):
    result = _run(db_session, "trailer", "Trailers", [TRAILER_HEADER, ["TR-1", "dry van", -1]])
    assert result.success is False
    assert result.errors[0].field == "Length (ft)"
    assert _count(db_session, Trailer) == 0


def test_existing_trailer_code_is_rejected(db_session):
    assert _run(db_session, "trailer", "Trailers", [TRAILER_HEADER, ["TR-1", "dry van"]]).success is True

    result = _run(db_session, "trailer", "Trailers", [TRAILER_HEADER, ["TR-2", "reefer"], ["TR-1", "reefer"]])
    assert result.success is False
    assert (result.errors[0].row, result.errors[0].message) == (3, "Trailer Code 'TR-1' already exists.")
    assert _count(db_session, Trailer) == 1


def test_fees_parse_prices_and_scopes(db_session):
    result = _run(
        db_session,
        "fee",
        "Fees",
        [
            FEE_HEADER,
            ["CHASSIS", "Chassis rental", "day", "1,200.50", None, "所有客户", "40DH"],
            ["STORAGE", "Storage", "pallet", 3, "cad", "customers", None],
        ],
    )
    assert result.success is True
    assert result.imported == 2

    fees = {f.fee_code: f for f in db_session.execute(select(Fee)).scalars()}
    assert fees["CHASSIS"].unit_price == Decimal("1200.50")
    assert fees["CHASSIS"].currency == "USD"
    assert fees["CHASSIS"].scope_type == "all"
    assert fees["CHASSIS"].is_active is True
    assert fees["STORAGE"].currency == "CAD"
    assert fees["STORAGE"].scope_type == "customers"


def test_fee_scope_must_be_known(db_session):
    result = _run(db_session, "fee", "Fees", [FEE_HEADER, ["X", "Extra", None, 10, None, "some customers"]])
    assert result.success is False
    assert (result.errors[0].row, result.errors[0].field) == (2, "Scope")
    assert _count(db_session, Fee) == 0


def test_duplicate_fee_code_in_file_is_rejected(db_session):
    result = _run(
        db_session,
        "fee",
        "Fees",
        [FEE_HEADER, ["X", "Extra", None, 10, None, "all"], ["X", "Extra 2", None, 12, None, "all"]],
    )
    assert result.success is False
    assert result.errors[0].message == "Fee Code 'X' appears more than once in the file (rows 2, 3)."


def test_fee_import_requires_an_oms_role(client):
    response = client.post(
        "/imports/fee?filename=fees.xlsx",
        headers={
            "Content-Type": "application/octet-stream",
            "X-User-Email": "dispatch@example.com",
            "X-User-Roles": "tms_manager",
        },
        content=xlsx_bytes({"Fees": [FEE_HEADER, ["X", "Extra", None, 10, None, "all"]]}),
    )
    assert response.status_code == 403
    assert "admin, oms_manager" in response.json()["detail"]
