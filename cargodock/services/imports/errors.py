"""
Failure categories raised by the import pipeline.

Every fatal category derives from `ImportAbort` and carries the full list of
row-addressable issues found at the stage that raised it, so the caller can
fix the spreadsheet and retry. `HeaderMappingGap` is the one non-fatal
category: it is recorded and logged, never raised.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from cargodock.services.imports.types import ImportIssue


class ImportAbort(Exception):
    code = "IMPORT_FAILED"
    default_field = "system"

    def __init__(self, issues: Iterable[ImportIssue] | str):
        if isinstance(issues, str):
            issues = [ImportIssue(row=0, field=self.default_field, message=issues)]
        self.issues: list[ImportIssue] = list(issues)
        summary = self.issues[0].message if self.issues else self.code
        super().__init__(summary)


class FileFormatError(ImportAbort):
    code = "FILE_FORMAT"
    default_field = "file"


class RowValidationError(ImportAbort):
    code = "ROW_INVALID"


class ReferenceNotFoundError(ImportAbort):
    code = "REF_NOT_FOUND"


class DuplicateKeyError(ImportAbort):
    code = "DUPLICATE_KEY"


class GroupConsistencyError(ImportAbort):
    code = "GROUP_INCONSISTENT"


class CapacityExceededError(ImportAbort):
    code = "CAPACITY_EXCEEDED"


class TransactionAbortError(ImportAbort):
    code = "TRANSACTION_ABORTED"


@dataclass(frozen=True)
class HeaderMappingGap:
    sheet: str
    headers: tuple[str, ...]
