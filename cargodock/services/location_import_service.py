from __future__ import annotations

import logging
from dataclasses import dataclass, field

from sqlalchemy import select
from sqlalchemy.orm import Session

from cargodock.models.master_data import Location
from cargodock.schemas.import_rows import LocationImportRow
from cargodock.services.imports.checks import check_existing_keys, check_file_duplicates
from cargodock.services.imports.mapper import ImportColumn
from cargodock.services.imports.pipeline import ImportConfig, SheetSource
from cargodock.services.imports.types import ImportBatch, ReferenceSnapshot, ValidatedRow

logger = logging.getLogger(__name__)

COLUMNS = (
    ImportColumn("Location Code", "location_code", required=True),
    ImportColumn("Name", "name", required=True),
    ImportColumn("Location Type", "location_type", required=True),
    ImportColumn("Address", "address"),
    ImportColumn("City", "city"),
    ImportColumn("State", "state"),
    ImportColumn("Postal Code", "postal_code"),
    ImportColumn("Country", "country"),
    ImportColumn("Notes", "notes"),
)


@dataclass
class LocationReference(ReferenceSnapshot):
    existing_codes: set[str] = field(default_factory=set)


def load_reference_data(db: Session, rows: list[ValidatedRow]) -> LocationReference:
    codes = sorted({row.data.location_code for row in rows})
    existing = db.execute(select(Location.location_code).where(Location.location_code.in_(codes))).scalars().all()
    return LocationReference(existing_codes=set(existing))


def check_rows(db: Session, batch: ImportBatch) -> None:
    check_file_duplicates(batch.rows, lambda data: data.location_code, field_label="Location Code")
    check_existing_keys(
        batch.rows,
        lambda data: data.location_code,
        batch.reference.existing_codes,
        field_label="Location Code",
    )


def execute(db: Session, batch: ImportBatch) -> int:
    user_email = batch.context.user_email
    for row in batch.rows:
        data: LocationImportRow = row.data
        db.add(
            Location(
                **data.model_dump(),
                created_by=user_email,
                updated_by=user_email,
            )
        )
    db.flush()
    logger.info("locations_imported count=%s", len(batch.rows))
    return len(batch.rows)


CONFIG = ImportConfig(
    key="location",
    label="Locations",
    sources=(
        SheetSource(
            name="Locations",
            columns=COLUMNS,
            row_schema=LocationImportRow,
            keywords=("location", "地点", "位置"),
        ),
    ),
    required_roles=frozenset({"admin", "oms_manager"}),
    load_reference_data=load_reference_data,
    check_rows=check_rows,
    execute=execute,
    description=[
        "One row per location. Location Code must be unique in the file and in the system.",
        "Location Type: port, amazon or warehouse.",
    ],
)
