from __future__ import annotations

import logging
from dataclasses import dataclass, field
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.orm import Session

from cargodock.models.master_data import Trailer
from cargodock.schemas.import_rows import TrailerImportRow
from cargodock.services.imports.checks import check_existing_keys, check_file_duplicates
from cargodock.services.imports.mapper import FieldKind, ImportColumn
from cargodock.services.imports.pipeline import ImportConfig, SheetSource
from cargodock.services.imports.types import ImportBatch, ReferenceSnapshot, ValidatedRow

logger = logging.getLogger(__name__)

COLUMNS = (
    ImportColumn("Trailer Code", "trailer_code", required=True),
    ImportColumn("Trailer Type", "trailer_type", required=True),
    ImportColumn("Length (ft)", "length_feet", FieldKind.NUMBER),
    ImportColumn("Capacity Weight", "capacity_weight", FieldKind.NUMBER),
    ImportColumn("Capacity Volume", "capacity_volume", FieldKind.NUMBER),
    ImportColumn("Status", "status"),
    ImportColumn("Notes", "notes"),
)


@dataclass
class TrailerReference(ReferenceSnapshot):
    existing_codes: set[str] = field(default_factory=set)


def _decimal(value: float | None) -> Decimal | None:
    return None if value is None else Decimal(str(value))


def load_reference_data(db: Session, rows: list[ValidatedRow]) -> TrailerReference:
    codes = sorted({row.data.trailer_code for row in rows})
    existing = db.execute(select(Trailer.trailer_code).where(Trailer.trailer_code.in_(codes))).scalars().all()
    return TrailerReference(existing_codes=set(existing))


def check_rows(db: Session, batch: ImportBatch) -> None:
    check_file_duplicates(batch.rows, lambda data: data.trailer_code, field_label="Trailer Code")
    check_existing_keys(
        batch.rows,
        lambda data: data.trailer_code,
        batch.reference.existing_codes,
        field_label="Trailer Code",
    )


def execute(db: Session, batch: ImportBatch) -> int:
    user_email = batch.context.user_email
    for row in batch.rows:
        data: TrailerImportRow = row.data
        db.add(
            Trailer(
                trailer_code=data.trailer_code,
                trailer_type=data.trailer_type,
                length_feet=_decimal(data.length_feet),
                capacity_weight=_decimal(data.capacity_weight),
                capacity_volume=_decimal(data.capacity_volume),
                status=data.status,
                notes=data.notes,
                created_by=user_email,
                updated_by=user_email,
            )
        )
    db.flush()
    logger.info("trailers_imported count=%s", len(batch.rows))
    return len(batch.rows)


CONFIG = ImportConfig(
    key="trailer",
    label="Trailers",
    sources=(
        SheetSource(
            name="Trailers",
            columns=COLUMNS,
            row_schema=TrailerImportRow,
            keywords=("trailer", "货柜"),
        ),
    ),
    required_roles=frozenset({"admin", "tms_manager"}),
    load_reference_data=load_reference_data,
    check_rows=check_rows,
    execute=execute,
    description=[
        "One row per trailer. Trailer Code must be unique in the file and in the system.",
        "Length, weight and volume are optional non-negative numbers.",
        "Status: available, in_use, maintenance or retired (blank or unknown means available).",
    ],
)
