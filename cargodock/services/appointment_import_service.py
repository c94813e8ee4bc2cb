"""
Delivery appointment booking import.

Rows sharing a reference number form one appointment; each row books
pallets from one order detail pool. The batch is rejected as a whole when a
reference does not resolve, an appointment's header columns disagree, a pool
repeats inside an appointment, the reference number already exists, or the
pallets requested from any pool across the whole file exceed what the pool
can give.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field

from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from cargodock.core.flow_logging import flow_info
from cargodock.models.appointments import AppointmentDetailLine, DeliveryAppointment
from cargodock.models.master_data import Location
from cargodock.models.orders import InventoryLot, Order, OrderDetail
from cargodock.schemas.import_rows import AppointmentImportRow
from cargodock.services.imports.capacity import (
    AllocationPlan,
    CapacityAllocator,
    CapacityPool,
    PoolKey,
    PoolRequest,
)
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
from cargodock.services.provisioning_service import (
    default_warehouse_location_id,
    provision_appointment_records,
)

logger = logging.getLogger(__name__)

COLUMNS = (
    ImportColumn("Reference Number", "reference_number", required=True),
    ImportColumn("Order Number", "order_number", required=True),
    ImportColumn("Delivery Method", "delivery_method", required=True),
    ImportColumn("Appointment Account", "appointment_account"),
    ImportColumn("Appointment Type", "appointment_type", required=True),
    ImportColumn("Origin", "origin_location_code"),
    ImportColumn("Destination", "destination_location_code", required=True),
    ImportColumn("Delivery Time", "confirmed_start", FieldKind.DATETIME, required=True),
    ImportColumn("Rejected", "rejected", FieldKind.BOOLEAN),
    ImportColumn("PO", "po"),
    ImportColumn("Notes", "notes"),
    ImportColumn("Warehouse Point", "detail_location_code", required=True),
    ImportColumn("Delivery Nature", "delivery_nature", required=True),
    ImportColumn("Pallets", "estimated_pallets", FieldKind.INTEGER, required=True),
)

# Columns that describe the appointment itself and must agree on every row.
GROUP_FIELDS = (
    "delivery_method",
    "appointment_account",
    "appointment_type",
    "origin_location_code",
    "destination_location_code",
    "confirmed_start",
    "rejected",
    "po",
    "notes",
)

_LABELS = {col.field: col.header for col in COLUMNS}


@dataclass
class AppointmentReference(ReferenceSnapshot):
    orders_by_number: dict[str, Order] = field(default_factory=dict)
    location_ids: dict[str, int] = field(default_factory=dict)
    lots_by_detail: dict[int, InventoryLot] = field(default_factory=dict)
    existing_references: set[str] = field(default_factory=set)
    # Filled by the checks: row number -> pool, and the accumulated plan.
    pools_by_row: dict[int, CapacityPool] = field(default_factory=dict)
    plan: AllocationPlan | None = None

    def find_detail(self, order: Order, location_id: int, nature: str) -> OrderDetail | None:
        for detail in order.details:
            if int(detail.delivery_location_id) == location_id and detail.delivery_nature == nature:
                return detail
        return None


def pool_key(row: AppointmentImportRow) -> PoolKey:
    return PoolKey(row.order_number, row.detail_location_code, row.delivery_nature)


def load_reference_data(db: Session, rows: list[ValidatedRow]) -> AppointmentReference:
    order_numbers = {row.data.order_number for row in rows}
    location_codes = set()
    for row in rows:
        location_codes.add(row.data.destination_location_code)
        location_codes.add(row.data.detail_location_code)
        if row.data.origin_location_code:
            location_codes.add(row.data.origin_location_code)
    references = {row.data.reference_number for row in rows}

    orders = (
        db.execute(
            select(Order)
            .where(Order.order_number.in_(sorted(order_numbers)))
            .options(selectinload(Order.details))
        )
        .scalars()
        .all()
    )
    detail_ids = [int(d.id) for order in orders for d in order.details]
    lots = (
        db.execute(select(InventoryLot).where(InventoryLot.order_detail_id.in_(detail_ids))).scalars().all()
        if detail_ids
        else []
    )
    location_rows = db.execute(
        select(Location.location_code, Location.id).where(Location.location_code.in_(sorted(location_codes)))
    ).all()
    existing = db.execute(
        select(DeliveryAppointment.reference_number).where(
            DeliveryAppointment.reference_number.in_(sorted(references))
        )
    ).scalars().all()

    flow_info(
        logger,
        "appointment_reference_loaded orders=%s locations=%s lots=%s",
        len(orders),
        len(location_rows),
        len(lots),
        category="import",
    )
    return AppointmentReference(
        orders_by_number={o.order_number: o for o in orders},
        location_ids={code: int(loc_id) for code, loc_id in location_rows},
        lots_by_detail={int(lot.order_detail_id): lot for lot in lots},
        existing_references=set(existing),
    )


def _check_references(batch: ImportBatch, ref: AppointmentReference) -> None:
    issues: list[ImportIssue] = []
    pools: dict[int, CapacityPool] = {}
    for row in batch.rows:
        data: AppointmentImportRow = row.data
        order = ref.orders_by_number.get(data.order_number)
        if order is None:
            issues.append(
                ImportIssue(row.row_number, _LABELS["order_number"], f"Order '{data.order_number}' does not exist.")
            )
            continue
        if data.origin_location_code and data.origin_location_code not in ref.location_ids:
            issues.append(
                ImportIssue(
                    row.row_number,
                    _LABELS["origin_location_code"],
                    f"Location '{data.origin_location_code}' does not exist.",
                )
            )
        if data.destination_location_code not in ref.location_ids:
            issues.append(
                ImportIssue(
                    row.row_number,
                    _LABELS["destination_location_code"],
                    f"Location '{data.destination_location_code}' does not exist.",
                )
            )
        location_id = ref.location_ids.get(data.detail_location_code)
        if location_id is None:
            issues.append(
                ImportIssue(
                    row.row_number,
                    _LABELS["detail_location_code"],
                    f"Location '{data.detail_location_code}' does not exist.",
                )
            )
            continue
        detail = ref.find_detail(order, location_id, data.delivery_nature)
        if detail is None:
            issues.append(
                ImportIssue(
                    row.row_number,
                    _LABELS["detail_location_code"],
                    (
                        f"Order '{data.order_number}' has no detail line for warehouse point "
                        f"'{data.detail_location_code}' with delivery nature '{data.delivery_nature}'."
                    ),
                )
            )
            continue
        pool = pools.get(int(detail.id))
        if pool is None:
            pool = CapacityAllocator.build_pool(pool_key(data), detail, ref.lots_by_detail.get(int(detail.id)))
            pools[int(detail.id)] = pool
        ref.pools_by_row[row.row_number] = pool
    if issues:
        raise ReferenceNotFoundError(issues)


def check_rows(db: Session, batch: ImportBatch) -> None:
    ref: AppointmentReference = batch.reference
    _check_references(batch, ref)

    groups = group_rows(batch.rows, lambda data: data.reference_number)
    check_group_consistency(
        groups,
        GROUP_FIELDS,
        group_label="Appointment",
        labels=_LABELS,
    )
    check_group_child_duplicates(
        groups,
        pool_key,
        group_label="Appointment",
        field_label=_LABELS["detail_location_code"],
        describe=lambda key: f"order detail {key}",
    )
    check_existing_keys(
        batch.rows,
        lambda data: data.reference_number,
        ref.existing_references,
        field_label=_LABELS["reference_number"],
    )

    allocator = CapacityAllocator(db, field_label=_LABELS["estimated_pallets"])
    ref.plan = allocator.plan(
        PoolRequest(
            row_number=row.row_number,
            pool=ref.pools_by_row[row.row_number],
            quantity=row.data.estimated_pallets,
        )
        for row in batch.rows
    )


def execute(db: Session, batch: ImportBatch) -> int:
    ref: AppointmentReference = batch.reference
    user_email = batch.context.user_email
    allocator = CapacityAllocator(db, field_label=_LABELS["estimated_pallets"])
    allocator.lock_and_recheck(ref.plan)
    warehouse_location_id = default_warehouse_location_id(db)

    groups = group_rows(batch.rows, lambda data: data.reference_number)
    for reference_number, members in groups.items():
        head: AppointmentImportRow = members[0].data
        appointment = DeliveryAppointment(
            reference_number=reference_number,
            delivery_method=head.delivery_method,
            appointment_account=head.appointment_account,
            appointment_type=head.appointment_type,
            origin_location_id=ref.location_ids.get(head.origin_location_code or ""),
            location_id=ref.location_ids[head.destination_location_code],
            status="requested",
            requested_start=head.confirmed_start,
            confirmed_start=head.confirmed_start,
            rejected=head.rejected,
            po=head.po,
            notes=head.notes,
            created_by=user_email,
            updated_by=user_email,
        )
        db.add(appointment)
        db.flush()

        for member in members:
            data: AppointmentImportRow = member.data
            pool = ref.pools_by_row[member.row_number]
            mode = pool.state.mode
            allocator.draw(pool, data.estimated_pallets, row_number=member.row_number)
            db.add(
                AppointmentDetailLine(
                    appointment_id=appointment.id,
                    order_detail_id=pool.order_detail_id,
                    estimated_pallets=data.estimated_pallets,
                    total_pallets_at_time=pool.snapshot,
                    accounting_mode=mode,
                    created_by=user_email,
                    updated_by=user_email,
                )
            )
        db.flush()
        provision_appointment_records(
            db,
            appointment,
            user_email=user_email,
            warehouse_location_id=warehouse_location_id,
        )
        flow_info(
            logger,
            "appointment_booked reference=%s lines=%s",
            reference_number,
            len(members),
            category="import",
        )
    return len(groups)


CONFIG = ImportConfig(
    key="appointment",
    label="Delivery appointments",
    sources=(
        SheetSource(
            name="Appointments",
            columns=COLUMNS,
            row_schema=AppointmentImportRow,
            keywords=("appointment", "booking", "预约"),
        ),
    ),
    required_roles=frozenset({"admin", "tms_manager"}),
    load_reference_data=load_reference_data,
    check_rows=check_rows,
    execute=execute,
    description=[
        "One row per order detail booked. Rows with the same Reference Number form one appointment.",
        "Appointment columns (method, account, type, origin, destination, time, rejected, PO, notes) must match on every row of an appointment.",
        "Order Number + Warehouse Point + Delivery Nature selects the pallet pool; the file may not book more pallets from a pool than it holds.",
        "Delivery Time accepts YYYY-MM-DD HH:mm, YYYY/MM/DD HH:mm or a date-time cell.",
    ],
)
