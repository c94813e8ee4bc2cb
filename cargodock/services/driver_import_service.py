from __future__ import annotations

import logging
from dataclasses import dataclass, field

from sqlalchemy import select
from sqlalchemy.orm import Session

from cargodock.models.master_data import Carrier, Driver
from cargodock.schemas.import_rows import DriverImportRow
from cargodock.services.imports.checks import check_existing_keys, check_file_duplicates
from cargodock.services.imports.errors import ReferenceNotFoundError
from cargodock.services.imports.mapper import FieldKind, ImportColumn
from cargodock.services.imports.pipeline import ImportConfig, SheetSource
from cargodock.services.imports.types import ImportBatch, ImportIssue, ReferenceSnapshot, ValidatedRow

logger = logging.getLogger(__name__)

COLUMNS = (
    ImportColumn("Driver Code", "driver_code", required=True),
    ImportColumn("License Number", "license_number", required=True),
    ImportColumn("License Plate", "license_plate", required=True),
    ImportColumn("Carrier Code", "carrier_code"),
    ImportColumn("Contact Name", "contact_name"),
    ImportColumn("Contact Phone", "contact_phone"),
    ImportColumn("Contact Email", "contact_email"),
    ImportColumn("License Expiration", "license_expiration", FieldKind.DATE),
    ImportColumn("Status", "status"),
    ImportColumn("Notes", "notes"),
)


@dataclass
class DriverReference(ReferenceSnapshot):
    existing_codes: set[str] = field(default_factory=set)
    carrier_ids: dict[str, int] = field(default_factory=dict)


def load_reference_data(db: Session, rows: list[ValidatedRow]) -> DriverReference:
    codes = sorted({row.data.driver_code for row in rows})
    carrier_codes = sorted({row.data.carrier_code for row in rows if row.data.carrier_code})
    existing = db.execute(select(Driver.driver_code).where(Driver.driver_code.in_(codes))).scalars().all()
    carriers = (
        db.execute(select(Carrier.carrier_code, Carrier.id).where(Carrier.carrier_code.in_(carrier_codes))).all()
        if carrier_codes
        else []
    )
    return DriverReference(
        existing_codes=set(existing),
        carrier_ids={code: int(carrier_id) for code, carrier_id in carriers},
    )


def check_rows(db: Session, batch: ImportBatch) -> None:
    ref: DriverReference = batch.reference
    missing = [
        ImportIssue(row.row_number, "Carrier Code", f"Carrier '{row.data.carrier_code}' does not exist.")
        for row in batch.rows
        if row.data.carrier_code and row.data.carrier_code not in ref.carrier_ids
    ]
    if missing:
        raise ReferenceNotFoundError(missing)
    check_file_duplicates(batch.rows, lambda data: data.driver_code, field_label="Driver Code")
    check_existing_keys(
        batch.rows,
        lambda data: data.driver_code,
        ref.existing_codes,
        field_label="Driver Code",
    )


def execute(db: Session, batch: ImportBatch) -> int:
    ref: DriverReference = batch.reference
    user_email = batch.context.user_email
    for row in batch.rows:
        data: DriverImportRow = row.data
        db.add(
            Driver(
                **data.model_dump(exclude={"carrier_code"}),
                carrier_id=ref.carrier_ids.get(data.carrier_code or ""),
                created_by=user_email,
                updated_by=user_email,
            )
        )
    db.flush()
    logger.info("drivers_imported count=%s", len(batch.rows))
    return len(batch.rows)


CONFIG = ImportConfig(
    key="driver",
    label="Drivers",
    sources=(
        SheetSource(
            name="Drivers",
            columns=COLUMNS,
            row_schema=DriverImportRow,
            keywords=("driver", "司机"),
        ),
    ),
    required_roles=frozenset({"admin", "tms_manager"}),
    load_reference_data=load_reference_data,
    check_rows=check_rows,
    execute=execute,
    description=[
        "One row per driver. Driver Code must be unique in the file and in the system.",
        "Carrier Code, when filled, must name an existing carrier.",
        "Status: active or inactive (blank or unknown means active).",
    ],
)
