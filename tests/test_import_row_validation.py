from __future__ import annotations

from datetime import date, datetime

import pytest

from cargodock.schemas.import_rows import (
    AppointmentImportRow,
    CustomerImportRow,
    LocationImportRow,
    OrderImportRow,
    parse_date,
    parse_datetime,
)
from cargodock.services.imports.types import MappedRow
from cargodock.services.imports.validator import RowValidator


def _order_values(**overrides):
    values = {
        "order_number": "MSCU7654321",
        "customer_code": "ACME",
        "order_date": "2026-03-02",
        "status": "",
        "operation_mode": "拆柜",
        "delivery_location_code": "WH1",
        "total_amount": "",
        "container_type": "40dh",
        "eta_date": "2026-03-12",
        "mbl_number": "MBL-1",
        "do_issued": True,
        "detail_location_code": "FTW1",
        "delivery_nature": "amz",
        "quantity": "10",
        "volume": "5",
    }
    values.update(overrides)
    return values


def test_order_row_normalizes_aliases_and_defaults():
    row = OrderImportRow.model_validate(_order_values())
    assert row.status == "pending"
    assert row.operation_mode == "unload"
    assert row.container_type == "40DH"
    assert row.delivery_nature == "AMZ"
    assert row.total_amount == 0
    assert row.order_date == date(2026, 3, 2)
    assert row.lfd_date is None


@pytest.mark.parametrize(("volume", "pallets"), [("5", 3), ("4", 2), ("0.4", 1), ("2.9", 1), ("3", 2)])
def test_order_row_estimates_pallets_from_volume(volume, pallets):
    row = OrderImportRow.model_validate(_order_values(volume=volume))
    assert row.estimated_pallets == pallets


def test_validator_reports_first_error_per_row_with_header_label():
    labels = {"order_number": "Order Number", "customer_code": "Customer Code", "quantity": "Quantity"}
    rows = [
        MappedRow(2, _order_values(order_number="bad", customer_code="")),
        MappedRow(3, _order_values()),
        MappedRow(4, _order_values(customer_code="")),
        MappedRow(5, _order_values(quantity="0")),
    ]
    valid, issues = RowValidator(OrderImportRow, labels).validate(rows)

    assert [row.row_number for row in valid] == [3]
    assert [issue.row for issue in issues] == [2, 4, 5]
    assert issues[0].field == "Order Number"
    assert issues[0].message.startswith("Order Number: expected 4 upper-case letters")
    assert issues[1].message == "Customer Code is required."
    assert issues[2].field == "Quantity"


def test_unknown_enum_value_lists_allowed_codes():
    rows = [MappedRow(2, _order_values(delivery_nature="express"))]
    _, issues = RowValidator(OrderImportRow, {"delivery_nature": "Delivery Nature"}).validate(rows)
    assert issues[0].message == (
        "Delivery Nature: 'express' is not one of AMZ, HOLD, PRIVATE, RELEASED, TRANSFER"
    )


def test_customer_row_drops_invalid_email_and_defaults_status():
    row = CustomerImportRow.model_validate(
        {"code": "ACME-2", "name": "Acme", "status": "bogus", "credit_limit": "", "contact_email": "nope"}
    )
    assert row.status == "active"
    assert row.credit_limit == 0
    assert row.contact_email is None
    assert row.has_contact is False

    with_contact = CustomerImportRow.model_validate({"code": "B1", "name": "B", "status": "停用", "contact_phone": "555"})
    assert with_contact.status == "inactive"
    assert with_contact.has_contact is True


def test_location_row_checks_code_and_type():
    row = LocationImportRow.model_validate({"location_code": "FTW1", "name": "Fort Worth", "location_type": "Amazon"})
    assert row.location_type == "amazon"
    with pytest.raises(ValueError):
        LocationImportRow.model_validate({"location_code": "FTW#1", "name": "x", "location_type": "amazon"})


def test_appointment_row_parses_datetime_and_flags():
    row = AppointmentImportRow.model_validate(
        {
            "reference_number": "APT-1",
            "order_number": "MSCU1234567",
            "delivery_method": "卡派",
            "appointment_type": "Pallet",
            "destination_location_code": "FTW1",
            "confirmed_start": "2026/03/20 09:30",
            "rejected": "",
            "detail_location_code": "FTW1",
            "delivery_nature": "AMZ",
            "estimated_pallets": "4",
        }
    )
    assert row.delivery_method == "trucking"
    assert row.appointment_type == "pallet"
    assert row.confirmed_start == datetime(2026, 3, 20, 9, 30)
    assert row.rejected is False
    assert row.appointment_account is None


def test_date_helpers():
    assert parse_date("2026-02-28 00:00") == date(2026, 2, 28)
    assert parse_datetime("2026-02-28") == datetime(2026, 2, 28)
    with pytest.raises(ValueError):
        parse_date("2026-02-30")
    with pytest.raises(ValueError):
        parse_date("28/02/2026")
    with pytest.raises(ValueError):
        parse_datetime("tomorrow")
