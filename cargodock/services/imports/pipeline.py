"""
Import pipeline orchestration.

    file -> reader -> mapper -> validator -> reference preload
         -> consistency checks -> transactional commit -> result

Any stage that raises an `ImportAbort` stops the run; nothing after it
executes and nothing is persisted. Creation imports commit the whole batch in
one transaction. Two-sheet update imports (`MergeImportService`) commit the
batch in one transaction too, unless `IMPORT_UPDATE_ATOMICITY=row`, in which
case every merged row gets its own savepoint and commit and row failures are
reported next to the success count.
"""
from __future__ import annotations

import enum
import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from typing import Any

from fastapi import HTTPException
from pydantic import BaseModel
from sqlalchemy.orm import Session

from cargodock.core.config import settings
from cargodock.core.flow_logging import flow_info
from cargodock.services.imports.checks import check_file_duplicates
from cargodock.services.imports.errors import (
    FileFormatError,
    ImportAbort,
    RowValidationError,
    TransactionAbortError,
)
from cargodock.services.imports.mapper import ImportColumn, RowMapper
from cargodock.services.imports.reader import TabularFileReader
from cargodock.services.imports.types import (
    CommitOutcome,
    ImportBatch,
    ImportContext,
    ImportIssue,
    ImportResult,
    ReferenceSnapshot,
    ValidatedRow,
)
from cargodock.services.imports.validator import RowValidator

logger = logging.getLogger(__name__)


class ImportMode(str, enum.Enum):
    CREATE = "create"
    UPDATE = "update"


@dataclass(frozen=True)
class SheetSource:
    name: str
    columns: tuple[ImportColumn, ...]
    row_schema: type[BaseModel]
    keywords: tuple[str, ...] = ()

    @property
    def labels(self) -> dict[str, str]:
        return {col.field: col.header for col in self.columns}


@dataclass
class ImportConfig:
    key: str
    label: str
    sources: tuple[SheetSource, ...]
    required_roles: frozenset[str]
    mode: ImportMode = ImportMode.CREATE
    load_reference_data: Callable[[Session, list[ValidatedRow]], ReferenceSnapshot] | None = None
    check_rows: Callable[[Session, ImportBatch], None] | None = None
    # Creation mode: commits the batch, returns a unit count or None for "one per row".
    execute: Callable[[Session, ImportBatch], int | None] | None = None
    # Update mode: key shared by the sheets, merged row model and per-row writer.
    merge_key: str | None = None
    merged_schema: type[BaseModel] | None = None
    apply_row: Callable[[Session, ImportBatch, ValidatedRow], None] | None = None
    description: list[str] = field(default_factory=list)

    @property
    def labels(self) -> dict[str, str]:
        merged: dict[str, str] = {}
        for source in self.sources:
            for field_name, header in source.labels.items():
                merged.setdefault(field_name, header)
        return merged

    def label_for(self, field_name: str) -> str:
        return self.labels.get(field_name, field_name)


def _no_rows() -> FileFormatError:
    return FileFormatError("The file has no data rows.")


class ImportService:
    def __init__(self, config: ImportConfig):
        self.config = config

    @property
    def key(self) -> str:
        return self.config.key

    def ensure_authorized(self, role_names: Iterable[str]) -> None:
        held = {(name or "").strip().lower() for name in role_names}
        required = {name.lower() for name in self.config.required_roles}
        if held & required:
            return
        logger.info("import_forbidden key=%s roles=%s", self.key, sorted(held))
        raise HTTPException(
            status_code=403,
            detail=f"Import '{self.key}' requires one of roles: {', '.join(sorted(required))}.",
        )

    def run(self, db: Session, payload: bytes, *, user_email: str) -> ImportResult:
        batch = ImportBatch(context=ImportContext(import_key=self.key, user_email=user_email))
        flow_info(
            logger,
            "import_started key=%s user=%s bytes=%s",
            self.key,
            user_email,
            len(payload or b""),
            category="import",
        )
        try:
            batch.rows = self._parse(payload, batch)
            if self.config.load_reference_data is not None:
                batch.reference = self.config.load_reference_data(db, batch.rows)
            if self.config.check_rows is not None:
                self.config.check_rows(db, batch)
            outcome = self._commit(db, batch)
        except ImportAbort as exc:
            db.rollback()
            logger.info(
                "import_rejected key=%s code=%s issues=%s total=%s",
                self.key,
                exc.code,
                len(exc.issues),
                batch.total,
            )
            return ImportResult.failed(exc.issues, total=batch.total or None)
        except Exception as exc:
            db.rollback()
            logger.exception("import_failed key=%s total=%s", self.key, batch.total)
            aborted = TransactionAbortError(f"Import failed before any change was saved: {exc}")
            return ImportResult.failed(aborted.issues, total=batch.total or None)

        flow_info(
            logger,
            "import_completed key=%s imported=%s total=%s failed=%s",
            self.key,
            outcome.imported,
            batch.total,
            len(outcome.failures),
            category="import",
        )
        return ImportResult(
            success=True,
            total=batch.total,
            imported=outcome.imported,
            errors=outcome.failures,
        )

    def _parse(self, payload: bytes, batch: ImportBatch) -> list[ValidatedRow]:
        source = self.config.sources[0]
        reader = TabularFileReader(payload)
        sheet = reader.select_sheet(preferred=source.name, keywords=source.keywords)
        mapped, _gap = RowMapper(source.columns).map(reader.read_grid(sheet), sheet=sheet)
        batch.total = len(mapped)
        if not mapped:
            raise _no_rows()
        rows, issues = RowValidator(source.row_schema, source.labels).validate(mapped)
        if issues:
            raise RowValidationError(issues)
        return rows

    def _commit(self, db: Session, batch: ImportBatch) -> CommitOutcome:
        if self.config.execute is None:
            raise TransactionAbortError(f"Import '{self.key}' has no commit step.")
        try:
            imported = self.config.execute(db, batch)
            db.commit()
        except ImportAbort:
            db.rollback()
            raise
        except Exception as exc:
            db.rollback()
            logger.exception("import_commit_failed key=%s rows=%s", self.key, len(batch.rows))
            raise TransactionAbortError(f"Import failed and was rolled back: {exc}") from exc
        return CommitOutcome(imported=len(batch.rows) if imported is None else imported)


class MergeImportService(ImportService):
    """
    Update-only import fed by two named sheets that share a natural key.

    Each sheet is validated on its own, then rows are merged per key in
    first-seen order; for a key present in both sheets, non-blank values of
    the later sheet override the earlier one. The merged rows only update
    existing records.
    """

    def _parse(self, payload: bytes, batch: ImportBatch) -> list[ValidatedRow]:
        merge_key = self.config.merge_key or ""
        reader = TabularFileReader(payload)
        sheet_names = reader.require_sheets([source.name for source in self.config.sources])

        per_source: list[list[ValidatedRow]] = []
        issues: list[ImportIssue] = []
        for source, sheet in zip(self.config.sources, sheet_names):
            mapped, _gap = RowMapper(source.columns).map(reader.read_grid(sheet), sheet=sheet)
            batch.total += len(mapped)
            rows, sheet_issues = RowValidator(source.row_schema, source.labels).validate(mapped)
            issues.extend(
                ImportIssue(row=issue.row, field=issue.field, message=f"[{source.name}] {issue.message}")
                for issue in sheet_issues
            )
            per_source.append(rows)

        if batch.total == 0:
            raise _no_rows()
        if issues:
            raise RowValidationError(issues)

        key_label = self.config.label_for(merge_key)
        for source, rows in zip(self.config.sources, per_source):
            check_file_duplicates(
                rows,
                lambda data: getattr(data, merge_key),
                field_label=key_label,
                context=f"[{source.name}] ",
            )
        return self._merge(per_source)

    def _merge(self, per_source: list[list[ValidatedRow]]) -> list[ValidatedRow]:
        merge_key = self.config.merge_key or ""
        merged_schema = self.config.merged_schema
        first_row: dict[Any, int] = {}
        values: dict[Any, dict[str, Any]] = {}
        for rows in per_source:
            for row in rows:
                key = getattr(row.data, merge_key)
                first_row.setdefault(key, row.row_number)
                bucket = values.setdefault(key, {})
                bucket.update(row.data.model_dump(exclude_none=True))
        return [
            ValidatedRow(row_number=first_row[key], data=merged_schema.model_validate(data))
            for key, data in values.items()
        ]

    def _commit(self, db: Session, batch: ImportBatch) -> CommitOutcome:
        if self.config.apply_row is None:
            raise TransactionAbortError(f"Import '{self.key}' has no commit step.")
        if settings.IMPORT_UPDATE_ATOMICITY != "row":
            try:
                for row in batch.rows:
                    self.config.apply_row(db, batch, row)
                db.commit()
            except ImportAbort:
                db.rollback()
                raise
            except Exception as exc:
                db.rollback()
                logger.exception("import_commit_failed key=%s rows=%s", self.key, len(batch.rows))
                raise TransactionAbortError(f"Import failed and was rolled back: {exc}") from exc
            return CommitOutcome(imported=len(batch.rows))

        imported = 0
        failures: list[ImportIssue] = []
        key_label = self.config.label_for(self.config.merge_key or "")
        for row in batch.rows:
            key = getattr(row.data, self.config.merge_key or "")
            try:
                with db.begin_nested():
                    self.config.apply_row(db, batch, row)
            except ImportAbort as exc:
                failures.extend(exc.issues)
                continue
            except Exception as exc:
                logger.warning("import_row_failed key=%s row=%s error=%s", self.key, row.row_number, exc)
                failures.append(
                    ImportIssue(
                        row=row.row_number,
                        field=key_label,
                        message=f"{key_label} '{key}' was not updated: {exc.__class__.__name__}.",
                    )
                )
                continue
            db.commit()
            imported += 1
        return CommitOutcome(imported=imported, failures=failures)
