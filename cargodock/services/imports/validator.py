from __future__ import annotations

from typing import Any, Mapping, Sequence

from pydantic import BaseModel, ValidationError

from cargodock.services.imports.types import ImportIssue, MappedRow, ValidatedRow

_VALUE_ERROR_PREFIX = "Value error, "


class RowValidator:
    """
    Validates mapped rows one by one against a pydantic row model.

    Every row is evaluated even after earlier rows fail; only the first
    error of each row is reported.
    """

    def __init__(self, schema: type[BaseModel], labels: Mapping[str, str] | None = None):
        self.schema = schema
        self.labels = dict(labels or {})

    def _issue(self, row_number: int, error: Mapping[str, Any]) -> ImportIssue:
        loc = error.get("loc") or ()
        field = str(loc[0]) if loc else "row"
        label = self.labels.get(field, field)
        if error.get("type") == "missing" or error.get("input", "") is None:
            message = f"{label} is required."
        else:
            message = str(error.get("msg") or "invalid value")
            if message.startswith(_VALUE_ERROR_PREFIX):
                message = message[len(_VALUE_ERROR_PREFIX):]
            message = f"{label}: {message}"
        return ImportIssue(row=row_number, field=label, message=message)

    def validate(self, rows: Sequence[MappedRow]) -> tuple[list[ValidatedRow], list[ImportIssue]]:
        valid: list[ValidatedRow] = []
        issues: list[ImportIssue] = []
        for row in rows:
            try:
                data = self.schema.model_validate(row.values)
            except ValidationError as exc:
                errors = exc.errors()
                if errors:
                    issues.append(self._issue(row.row_number, errors[0]))
                continue
            valid.append(ValidatedRow(row_number=row.row_number, data=data))
        return (valid, issues)
