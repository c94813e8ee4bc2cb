"""
Container tracking update import.

The workbook carries two sheets keyed by container number: `Containers`
(shipping data) and `Pickup` (drayage data). Rows are merged per container
and applied to the existing order with that number; only columns that were
filled in either sheet are written.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field

from sqlalchemy import or_, select
from sqlalchemy.orm import Session

from cargodock.core.config import settings
from cargodock.core.flow_logging import flow_info
from cargodock.models.master_data import Carrier, Driver, Location
from cargodock.models.orders import InboundReceipt, Order, PickupManagement
from cargodock.schemas.import_rows import ContainerSheetRow, ContainerUpdateRow, PickupSheetRow
from cargodock.services.imports.errors import ReferenceNotFoundError
from cargodock.services.imports.mapper import FieldKind, ImportColumn
from cargodock.services.imports.pipeline import ImportConfig, ImportMode, SheetSource
from cargodock.services.imports.types import ImportBatch, ImportIssue, ReferenceSnapshot, ValidatedRow
from cargodock.services.inbound_schedule import calculate_unload_date

logger = logging.getLogger(__name__)

CONTAINER_COLUMNS = (
    ImportColumn("Container Number", "container_number", required=True),
    ImportColumn("MBL Number", "mbl_number"),
    ImportColumn("Port", "port_location_code"),
    ImportColumn("Shipping Line", "shipping_line"),
    ImportColumn("Container Type", "container_type"),
    ImportColumn("Carrier", "carrier_name"),
    ImportColumn("ETA", "eta_date", FieldKind.DATE),
    ImportColumn("LFD", "lfd_date", FieldKind.DATE),
    ImportColumn("Return Deadline", "return_deadline", FieldKind.DATE),
)

PICKUP_COLUMNS = (
    ImportColumn("Container Number", "container_number", required=True),
    ImportColumn("Port Text", "port_text"),
    ImportColumn("Driver", "driver_code"),
    ImportColumn("Pickup Date", "pickup_date", FieldKind.DATETIME),
    ImportColumn("Current Location", "current_location"),
)

# Merged field -> Order column written as-is.
_ORDER_FIELDS = ("mbl_number", "container_type", "eta_date", "lfd_date", "return_deadline", "pickup_date")
_PICKUP_FIELDS = ("port_text", "shipping_line", "current_location")

_LABELS = {col.field: col.header for col in CONTAINER_COLUMNS + PICKUP_COLUMNS}


@dataclass
class ContainerReference(ReferenceSnapshot):
    orders_by_number: dict[str, Order] = field(default_factory=dict)
    carrier_ids: dict[str, int] = field(default_factory=dict)
    driver_ids: dict[str, int] = field(default_factory=dict)
    port_ids: dict[str, int] = field(default_factory=dict)
    pickups_by_order: dict[int, PickupManagement] = field(default_factory=dict)
    receipts_by_order: dict[int, InboundReceipt] = field(default_factory=dict)


def load_reference_data(db: Session, rows: list[ValidatedRow]) -> ContainerReference:
    numbers = sorted({row.data.container_number for row in rows})
    carriers = sorted({row.data.carrier_name for row in rows if row.data.carrier_name})
    drivers = sorted({row.data.driver_code for row in rows if row.data.driver_code})
    ports = sorted({row.data.port_location_code for row in rows if row.data.port_location_code})

    orders = db.execute(select(Order).where(Order.order_number.in_(numbers))).scalars().all()
    order_ids = [int(o.id) for o in orders]
    ref = ContainerReference(orders_by_number={o.order_number: o for o in orders})

    if carriers:
        for carrier in db.execute(
            select(Carrier).where(or_(Carrier.name.in_(carriers), Carrier.carrier_code.in_(carriers)))
        ).scalars():
            ref.carrier_ids[carrier.name] = int(carrier.id)
            if carrier.carrier_code:
                ref.carrier_ids[carrier.carrier_code] = int(carrier.id)
    if drivers:
        ref.driver_ids = {
            code: int(pk)
            for code, pk in db.execute(select(Driver.driver_code, Driver.id).where(Driver.driver_code.in_(drivers)))
        }
    if ports:
        ref.port_ids = {
            code: int(pk)
            for code, pk in db.execute(
                select(Location.location_code, Location.id)
                .where(Location.location_code.in_(ports))
                .where(Location.location_type == "port")
            )
        }
    if order_ids:
        ref.pickups_by_order = {
            int(p.order_id): p
            for p in db.execute(
                select(PickupManagement).where(PickupManagement.order_id.in_(order_ids))
            ).scalars()
        }
        ref.receipts_by_order = {
            int(r.order_id): r
            for r in db.execute(select(InboundReceipt).where(InboundReceipt.order_id.in_(order_ids))).scalars()
        }
    return ref


def _unresolved(ref: ContainerReference, row: ValidatedRow) -> list[ImportIssue]:
    data: ContainerUpdateRow = row.data
    if data.container_number not in ref.orders_by_number:
        return [
            ImportIssue(
                row.row_number,
                _LABELS["container_number"],
                f"Container '{data.container_number}' does not match any order.",
            )
        ]
    issues = []
    if data.carrier_name and data.carrier_name not in ref.carrier_ids:
        issues.append(
            ImportIssue(row.row_number, _LABELS["carrier_name"], f"Carrier '{data.carrier_name}' does not exist.")
        )
    if data.driver_code and data.driver_code not in ref.driver_ids:
        issues.append(
            ImportIssue(row.row_number, _LABELS["driver_code"], f"Driver '{data.driver_code}' does not exist.")
        )
    if data.port_location_code and data.port_location_code not in ref.port_ids:
        issues.append(
            ImportIssue(
                row.row_number,
                _LABELS["port_location_code"],
                f"Port '{data.port_location_code}' does not exist.",
            )
        )
    return issues


def check_rows(db: Session, batch: ImportBatch) -> None:
    # Row mode reports unresolved references per row from apply_row.
    if settings.IMPORT_UPDATE_ATOMICITY == "row":
        return
    issues: list[ImportIssue] = []
    for row in batch.rows:
        issues.extend(_unresolved(batch.reference, row))
    if issues:
        raise ReferenceNotFoundError(issues)


def apply_row(db: Session, batch: ImportBatch, row: ValidatedRow) -> None:
    ref: ContainerReference = batch.reference
    issues = _unresolved(ref, row)
    if issues:
        raise ReferenceNotFoundError(issues)

    data: ContainerUpdateRow = row.data
    present = data.model_fields_set
    user_email = batch.context.user_email
    order = ref.orders_by_number[data.container_number]

    for name in _ORDER_FIELDS:
        if name in present:
            setattr(order, name, getattr(data, name))
    if "carrier_name" in present:
        order.carrier_id = ref.carrier_ids[data.carrier_name]
    if "port_location_code" in present:
        order.port_location_id = ref.port_ids[data.port_location_code]
    order.touch(user_email)

    pickup = ref.pickups_by_order.get(int(order.id))
    if pickup is not None:
        for name in _PICKUP_FIELDS:
            if name in present:
                setattr(pickup, name, getattr(data, name))
        if "driver_code" in present:
            pickup.driver_id = ref.driver_ids[data.driver_code]
        pickup.touch(user_email)

    receipt = ref.receipts_by_order.get(int(order.id))
    if receipt is not None and present & {"eta_date", "pickup_date"}:
        receipt.planned_unload_at = calculate_unload_date(order.pickup_date, order.eta_date)
        receipt.touch(user_email)
    db.flush()
    flow_info(
        logger,
        "container_updated number=%s fields=%s",
        data.container_number,
        sorted(present - {"container_number"}),
        category="import",
    )


CONFIG = ImportConfig(
    key="container_update",
    label="Container tracking update",
    mode=ImportMode.UPDATE,
    sources=(
        SheetSource(name="Containers", columns=CONTAINER_COLUMNS, row_schema=ContainerSheetRow),
        SheetSource(name="Pickup", columns=PICKUP_COLUMNS, row_schema=PickupSheetRow),
    ),
    required_roles=frozenset({"admin", "tms_manager"}),
    merge_key="container_number",
    merged_schema=ContainerUpdateRow,
    load_reference_data=load_reference_data,
    check_rows=check_rows,
    apply_row=apply_row,
    description=[
        "Two sheets, Containers and Pickup, keyed by Container Number (the order number).",
        "Only filled cells are written; a value in Pickup overrides the same column in Containers.",
        "Carrier accepts a carrier name or code; Driver a driver code; Port the code of a port location.",
        "Changing ETA or Pickup Date recalculates the planned unload date.",
    ],
)
