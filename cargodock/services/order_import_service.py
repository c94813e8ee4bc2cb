"""
Order import: one spreadsheet row per order detail line, grouped into orders
by order number.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.orm import Session

from cargodock.core.flow_logging import flow_info
from cargodock.models.master_data import Customer, Location
from cargodock.models.orders import InboundReceipt, Order, OrderDetail
from cargodock.schemas.import_rows import OrderImportRow
from cargodock.services.imports.checks import (
    check_existing_keys,
    check_group_child_duplicates,
    check_group_consistency,
    group_rows,
)
from cargodock.services.imports.errors import ReferenceNotFoundError
from cargodock.services.imports.mapper import FieldKind, ImportColumn
from cargodock.services.imports.pipeline import ImportConfig, SheetSource
from cargodock.services.imports.types import ImportBatch, ImportIssue, ReferenceSnapshot, ValidatedRow
from cargodock.services.inbound_schedule import calculate_unload_date

logger = logging.getLogger(__name__)

COLUMNS = (
    ImportColumn("Order Number", "order_number", required=True),
    ImportColumn("Customer Code", "customer_code", required=True),
    ImportColumn("Order Date", "order_date", FieldKind.DATE, required=True),
    ImportColumn("Status", "status"),
    ImportColumn("Operation Mode", "operation_mode", required=True),
    ImportColumn("Delivery Location", "delivery_location_code", required=True),
    ImportColumn("Total Amount", "total_amount", FieldKind.NUMBER),
    ImportColumn("Container Type", "container_type", required=True),
    ImportColumn("ETA", "eta_date", FieldKind.DATE, required=True),
    ImportColumn("LFD", "lfd_date", FieldKind.DATE),
    ImportColumn("Pickup Date", "pickup_date", FieldKind.DATE),
    ImportColumn("Ready Date", "ready_date", FieldKind.DATE),
    ImportColumn("Return Deadline", "return_deadline", FieldKind.DATE),
    ImportColumn("MBL Number", "mbl_number", required=True),
    ImportColumn("DO Issued", "do_issued", FieldKind.BOOLEAN),
    ImportColumn("Notes", "notes"),
    ImportColumn("Detail Location", "detail_location_code", required=True),
    ImportColumn("Delivery Nature", "delivery_nature", required=True),
    ImportColumn("Quantity", "quantity", FieldKind.INTEGER, required=True),
    ImportColumn("Volume", "volume", FieldKind.NUMBER, required=True),
    ImportColumn("FBA", "fba"),
    ImportColumn("Detail Notes", "detail_notes"),
    ImportColumn("PO", "po"),
    ImportColumn("Window Period", "window_period"),
)

GROUP_FIELDS = (
    "customer_code",
    "order_date",
    "status",
    "operation_mode",
    "delivery_location_code",
    "container_type",
    "eta_date",
    "mbl_number",
    "do_issued",
)

_LABELS = {col.field: col.header for col in COLUMNS}


def _as_datetime(value: date | None) -> datetime | None:
    if value is None:
        return None
    return datetime.combine(value, datetime.min.time())


@dataclass
class OrderReference(ReferenceSnapshot):
    customer_ids: dict[str, int] = field(default_factory=dict)
    location_ids: dict[str, int] = field(default_factory=dict)
    existing_orders: set[str] = field(default_factory=set)


def load_reference_data(db: Session, rows: list[ValidatedRow]) -> OrderReference:
    customer_codes = sorted({row.data.customer_code for row in rows})
    location_codes = sorted(
        {row.data.delivery_location_code for row in rows} | {row.data.detail_location_code for row in rows}
    )
    order_numbers = sorted({row.data.order_number for row in rows})

    customers = db.execute(select(Customer.code, Customer.id).where(Customer.code.in_(customer_codes))).all()
    locations = db.execute(
        select(Location.location_code, Location.id).where(Location.location_code.in_(location_codes))
    ).all()
    existing = db.execute(select(Order.order_number).where(Order.order_number.in_(order_numbers))).scalars().all()
    return OrderReference(
        customer_ids={code: int(pk) for code, pk in customers},
        location_ids={code: int(pk) for code, pk in locations},
        existing_orders=set(existing),
    )


def _check_references(batch: ImportBatch, ref: OrderReference) -> None:
    issues: list[ImportIssue] = []
    for row in batch.rows:
        data: OrderImportRow = row.data
        if data.customer_code not in ref.customer_ids:
            issues.append(
                ImportIssue(row.row_number, _LABELS["customer_code"], f"Customer '{data.customer_code}' does not exist.")
            )
        for field_name in ("delivery_location_code", "detail_location_code"):
            code = getattr(data, field_name)
            if code not in ref.location_ids:
                issues.append(ImportIssue(row.row_number, _LABELS[field_name], f"Location '{code}' does not exist."))
    if issues:
        raise ReferenceNotFoundError(issues)


def check_rows(db: Session, batch: ImportBatch) -> None:
    ref: OrderReference = batch.reference
    _check_references(batch, ref)
    groups = group_rows(batch.rows, lambda data: data.order_number)
    check_group_consistency(groups, GROUP_FIELDS, group_label="Order", labels=_LABELS)
    check_group_child_duplicates(
        groups,
        lambda data: (data.detail_location_code, data.delivery_nature),
        group_label="Order",
        field_label=_LABELS["detail_location_code"],
        describe=lambda key: f"detail line {key[0]}/{key[1]}",
    )
    check_existing_keys(
        batch.rows,
        lambda data: data.order_number,
        ref.existing_orders,
        field_label=_LABELS["order_number"],
    )


def execute(db: Session, batch: ImportBatch) -> int:
    ref: OrderReference = batch.reference
    user_email = batch.context.user_email
    groups = group_rows(batch.rows, lambda data: data.order_number)
    receipts = 0
    for order_number, members in groups.items():
        head: OrderImportRow = members[0].data
        order = Order(
            order_number=order_number,
            customer_id=ref.customer_ids[head.customer_code],
            order_date=head.order_date,
            status=head.status,
            operation_mode=head.operation_mode,
            delivery_location_id=ref.location_ids[head.delivery_location_code],
            total_amount=Decimal(str(head.total_amount)),
            container_type=head.container_type,
            mbl_number=head.mbl_number,
            do_issued=head.do_issued,
            eta_date=head.eta_date,
            lfd_date=head.lfd_date,
            pickup_date=_as_datetime(head.pickup_date),
            ready_date=head.ready_date,
            return_deadline=head.return_deadline,
            notes=head.notes,
            created_by=user_email,
            updated_by=user_email,
        )
        for member in members:
            data: OrderImportRow = member.data
            pallets = data.estimated_pallets
            order.details.append(
                OrderDetail(
                    delivery_location_id=ref.location_ids[data.detail_location_code],
                    delivery_nature=data.delivery_nature,
                    quantity=data.quantity,
                    volume=Decimal(str(data.volume)),
                    estimated_pallets=pallets,
                    remaining_pallets=pallets,
                    fba=data.fba,
                    po=data.po,
                    window_period=data.window_period,
                    notes=data.detail_notes,
                    created_by=user_email,
                    updated_by=user_email,
                )
            )
        db.add(order)
        db.flush()

        if order.operation_mode == "unload":
            db.add(
                InboundReceipt(
                    order_id=order.id,
                    status="pending",
                    planned_unload_at=calculate_unload_date(head.pickup_date, head.eta_date),
                    created_by=user_email,
                    updated_by=user_email,
                )
            )
            receipts += 1
        flow_info(
            logger,
            "order_created number=%s details=%s",
            order_number,
            len(members),
            category="import",
        )
    db.flush()
    logger.info("orders_imported orders=%s rows=%s receipts=%s", len(groups), len(batch.rows), receipts)
    return len(groups)


CONFIG = ImportConfig(
    key="order",
    label="Orders",
    sources=(
        SheetSource(
            name="Orders",
            columns=COLUMNS,
            row_schema=OrderImportRow,
            keywords=("order", "订单"),
        ),
    ),
    required_roles=frozenset({"admin", "oms_manager"}),
    load_reference_data=load_reference_data,
    check_rows=check_rows,
    execute=execute,
    description=[
        "One row per order detail line. Rows with the same Order Number form one order.",
        "Order columns (customer, date, status, mode, delivery location, container type, ETA, MBL, DO issued) must match on every row of an order.",
        "Detail Location + Delivery Nature must be unique inside an order.",
        "Estimated pallets are derived from Volume (two cubic metres per pallet, at least one).",
        "Dates: YYYY-MM-DD or a date-formatted cell.",
    ],
)
