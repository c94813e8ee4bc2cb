from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import Any, Sequence

from cargodock.services.imports.errors import HeaderMappingGap
from cargodock.services.imports.types import MappedRow

logger = logging.getLogger(__name__)

EXCEL_EPOCH = datetime(1899, 12, 30)
# Bare numbers strictly inside this range are read as date serials,
# but only for date / datetime columns.
SERIAL_MIN = 1000
SERIAL_MAX = 100000

TRUE_TOKENS = {"true", "1", "yes", "y", "on", "是"}
FALSE_TOKENS = {"false", "0", "no", "n", "off", "否"}


class FieldKind(str, enum.Enum):
    TEXT = "text"
    INTEGER = "integer"
    NUMBER = "number"
    DATE = "date"
    DATETIME = "datetime"
    BOOLEAN = "boolean"


@dataclass(frozen=True)
class ImportColumn:
    header: str
    field: str
    kind: FieldKind = FieldKind.TEXT
    required: bool = False


def normalize_header(value: Any) -> str:
    return " ".join(str(value or "").split()).casefold()


def _format_moment(moment: datetime) -> str:
    if moment.time() == time.min:
        return moment.strftime("%Y-%m-%d")
    return moment.strftime("%Y-%m-%d %H:%M")


def serial_to_text(value: float) -> str:
    minutes = round(value * 24 * 60)
    return _format_moment(EXCEL_EPOCH + timedelta(minutes=minutes))


def _number_to_text(value: int | float) -> str:
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def coerce_cell(value: Any, kind: FieldKind) -> Any:
    if value is None:
        return ""
    if isinstance(value, bool):
        if kind is FieldKind.BOOLEAN:
            return value
        return "true" if value else "false"
    if isinstance(value, datetime):
        return _format_moment(value)
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, time):
        return value.strftime("%H:%M")
    if isinstance(value, (int, float)):
        if kind in (FieldKind.DATE, FieldKind.DATETIME) and SERIAL_MIN < value < SERIAL_MAX:
            return serial_to_text(float(value))
        value = _number_to_text(value)
    text = str(value).strip()
    if kind is FieldKind.BOOLEAN and text:
        token = text.casefold()
        if token in TRUE_TOKENS:
            return True
        if token in FALSE_TOKENS:
            return False
    return text


class RowMapper:
    def __init__(self, columns: Sequence[ImportColumn]):
        self.columns = list(columns)
        self._by_header = {normalize_header(col.header): col for col in self.columns}

    def map(self, grid: Sequence[Sequence[Any]], *, sheet: str = "-") -> tuple[list[MappedRow], HeaderMappingGap | None]:
        header_cells = grid[0] if grid else ()
        positions: list[tuple[int, ImportColumn]] = []
        unmapped: list[str] = []
        for idx, cell in enumerate(header_cells):
            key = normalize_header(cell)
            if not key:
                continue
            column = self._by_header.get(key)
            if column is None:
                unmapped.append(str(cell).strip())
                continue
            positions.append((idx, column))

        gap = None
        if unmapped:
            gap = HeaderMappingGap(sheet=sheet, headers=tuple(unmapped))
            logger.warning("import_header_unmapped sheet=%s headers=%s", sheet, unmapped)

        rows: list[MappedRow] = []
        # Grid row 0 is the header, so grid index i is spreadsheet row i + 1.
        for grid_index, values in enumerate(grid[1:], start=1):
            if not any(cell is not None and str(cell).strip() for cell in values):
                continue
            mapped: dict[str, Any] = {}
            for idx, column in positions:
                raw = values[idx] if idx < len(values) else None
                mapped[column.field] = coerce_cell(raw, column.kind)
            rows.append(MappedRow(row_number=grid_index + 1, values=mapped))
        return (rows, gap)
