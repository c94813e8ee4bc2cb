from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from pydantic import BaseModel


@dataclass(frozen=True)
class ImportIssue:
    row: int
    field: str
    message: str

    def to_dict(self) -> dict[str, Any]:
        return {"row": self.row, "field": self.field, "message": self.message}


@dataclass
class MappedRow:
    row_number: int
    values: dict[str, Any]


@dataclass
class ValidatedRow:
    row_number: int
    data: BaseModel


@dataclass
class ReferenceSnapshot:
    """
    Base for the request-scoped lookup tables an import preloads once and
    reads for the rest of the batch.
    """


@dataclass
class ImportContext:
    import_key: str
    user_email: str


@dataclass
class ImportBatch:
    context: ImportContext
    total: int = 0
    rows: list[ValidatedRow] = field(default_factory=list)
    reference: ReferenceSnapshot | None = None


@dataclass
class CommitOutcome:
    imported: int
    # Row-local failures; only populated when update rows commit independently.
    failures: list[ImportIssue] = field(default_factory=list)


@dataclass
class ImportResult:
    success: bool
    total: int | None = None
    imported: int | None = None
    errors: list[ImportIssue] = field(default_factory=list)

    @classmethod
    def failed(cls, errors: list[ImportIssue], *, total: int | None = None) -> "ImportResult":
        return cls(success=False, total=total, errors=list(errors))

    def to_dict(self, *, max_errors: int) -> dict[str, Any]:
        payload: dict[str, Any] = {"success": self.success}
        if self.success:
            payload["imported"] = self.imported or 0
            payload["total"] = self.total or 0
            if self.errors:
                payload["errors"] = [issue.to_dict() for issue in self.errors[:max_errors]]
            return payload
        if self.total is not None:
            payload["total"] = self.total
        payload["errors"] = [issue.to_dict() for issue in self.errors[:max_errors]]
        return payload
