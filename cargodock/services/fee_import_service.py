from __future__ import annotations

import logging
from dataclasses import dataclass, field
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.orm import Session

from cargodock.models.master_data import Fee
from cargodock.schemas.import_rows import FeeImportRow
from cargodock.services.imports.checks import check_existing_keys, check_file_duplicates
from cargodock.services.imports.mapper import FieldKind, ImportColumn
from cargodock.services.imports.pipeline import ImportConfig, SheetSource
from cargodock.services.imports.types import ImportBatch, ReferenceSnapshot, ValidatedRow

logger = logging.getLogger(__name__)

COLUMNS = (
    ImportColumn("Fee Code", "fee_code", required=True),
    ImportColumn("Fee Name", "fee_name", required=True),
    ImportColumn("Unit", "unit"),
    ImportColumn("Unit Price", "unit_price", FieldKind.NUMBER, required=True),
    ImportColumn("Currency", "currency"),
    ImportColumn("Scope", "scope_type", required=True),
    ImportColumn("Container Type", "container_type"),
    ImportColumn("Description", "description"),
)


@dataclass
class FeeReference(ReferenceSnapshot):
    existing_codes: set[str] = field(default_factory=set)


def load_reference_data(db: Session, rows: list[ValidatedRow]) -> FeeReference:
    codes = sorted({row.data.fee_code for row in rows})
    existing = db.execute(select(Fee.fee_code).where(Fee.fee_code.in_(codes))).scalars().all()
    return FeeReference(existing_codes=set(existing))


def check_rows(db: Session, batch: ImportBatch) -> None:
    check_file_duplicates(batch.rows, lambda data: data.fee_code, field_label="Fee Code")
    check_existing_keys(
        batch.rows,
        lambda data: data.fee_code,
        batch.reference.existing_codes,
        field_label="Fee Code",
    )


def execute(db: Session, batch: ImportBatch) -> int:
    user_email = batch.context.user_email
    for row in batch.rows:
        data: FeeImportRow = row.data
        db.add(
            Fee(
                **data.model_dump(exclude={"unit_price"}),
                unit_price=Decimal(str(data.unit_price)),
                is_active=True,
                created_by=user_email,
                updated_by=user_email,
            )
        )
    db.flush()
    logger.info("fees_imported count=%s", len(batch.rows))
    return len(batch.rows)


CONFIG = ImportConfig(
    key="fee",
    label="Fees",
    sources=(
        SheetSource(
            name="Fees",
            columns=COLUMNS,
            row_schema=FeeImportRow,
            keywords=("fee", "费用"),
        ),
    ),
    required_roles=frozenset({"admin", "oms_manager"}),
    load_reference_data=load_reference_data,
    check_rows=check_rows,
    execute=execute,
    description=[
        "One row per fee. Fee Code must be unique in the file and in the system.",
        "Unit Price is a non-negative number; thousands separators are accepted.",
        "Scope: all (every customer) or customers (assigned per customer later). Currency defaults to USD.",
    ],
)
