from __future__ import annotations

import logging
from dataclasses import dataclass, field
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.orm import Session

from cargodock.models.master_data import Customer, CustomerContact
from cargodock.schemas.import_rows import CustomerImportRow
from cargodock.services.imports.checks import check_existing_keys, check_file_duplicates
from cargodock.services.imports.mapper import FieldKind, ImportColumn
from cargodock.services.imports.pipeline import ImportConfig, SheetSource
from cargodock.services.imports.types import ImportBatch, ReferenceSnapshot, ValidatedRow

logger = logging.getLogger(__name__)

COLUMNS = (
    ImportColumn("Customer Code", "code", required=True),
    ImportColumn("Customer Name", "name", required=True),
    ImportColumn("Company Name", "company_name"),
    ImportColumn("Status", "status"),
    ImportColumn("Credit Limit", "credit_limit", FieldKind.NUMBER),
    ImportColumn("Contact Name", "contact_name"),
    ImportColumn("Contact Phone", "contact_phone"),
    ImportColumn("Contact Email", "contact_email"),
)


@dataclass
class CustomerReference(ReferenceSnapshot):
    existing_codes: set[str] = field(default_factory=set)


def load_reference_data(db: Session, rows: list[ValidatedRow]) -> CustomerReference:
    codes = sorted({row.data.code for row in rows})
    existing = db.execute(select(Customer.code).where(Customer.code.in_(codes))).scalars().all()
    return CustomerReference(existing_codes=set(existing))


def check_rows(db: Session, batch: ImportBatch) -> None:
    check_file_duplicates(batch.rows, lambda data: data.code, field_label="Customer Code")
    check_existing_keys(
        batch.rows,
        lambda data: data.code,
        batch.reference.existing_codes,
        field_label="Customer Code",
    )


def execute(db: Session, batch: ImportBatch) -> int:
    user_email = batch.context.user_email
    contacts = 0
    for row in batch.rows:
        data: CustomerImportRow = row.data
        customer = Customer(
            code=data.code,
            name=data.name,
            company_name=data.company_name,
            status=data.status,
            credit_limit=Decimal(str(data.credit_limit)),
            created_by=user_email,
            updated_by=user_email,
        )
        if data.has_contact:
            customer.contacts.append(
                CustomerContact(
                    name=data.contact_name,
                    phone=data.contact_phone,
                    email=data.contact_email,
                )
            )
            contacts += 1
        db.add(customer)
    db.flush()
    logger.info("customers_imported count=%s contacts=%s", len(batch.rows), contacts)
    return len(batch.rows)


CONFIG = ImportConfig(
    key="customer",
    label="Customers",
    sources=(
        SheetSource(
            name="Customers",
            columns=COLUMNS,
            row_schema=CustomerImportRow,
            keywords=("customer", "客户"),
        ),
    ),
    required_roles=frozenset({"admin", "oms_manager"}),
    load_reference_data=load_reference_data,
    check_rows=check_rows,
    execute=execute,
    description=[
        "One row per customer. Customer Code uses upper-case letters, digits, '_' or '-'.",
        "Status: active or inactive (blank means active).",
        "A contact is created only when a contact column is filled; an invalid email is left empty.",
    ],
)
