from __future__ import annotations

import logging
import zipfile
from io import BytesIO
from typing import Any, Sequence

from openpyxl import load_workbook
from openpyxl.utils.exceptions import InvalidFileException

from cargodock.core.config import settings
from cargodock.services.imports.errors import FileFormatError

logger = logging.getLogger(__name__)

Grid = list[tuple[Any, ...]]


class TabularFileReader:
    """
    Decodes an uploaded .xlsx payload into named grids of cell values.

    Row 0 of every grid is the header row. Sheets are picked by exact name,
    or, when the import allows it, by the first sheet whose name contains a
    recognized keyword, and finally by the first sheet of the workbook.
    """

    def __init__(self, payload: bytes):
        if not payload:
            raise FileFormatError("Uploaded file is empty.")
        if len(payload) > settings.IMPORT_MAX_FILE_BYTES:
            raise FileFormatError(
                f"Uploaded file is larger than {settings.IMPORT_MAX_FILE_BYTES} bytes."
            )
        try:
            self._workbook = load_workbook(filename=BytesIO(payload), data_only=True)
        except (InvalidFileException, zipfile.BadZipFile, KeyError, OSError, ValueError) as exc:
            logger.warning("import_file_unreadable error=%s", exc)
            raise FileFormatError("Uploaded file is not a readable .xlsx workbook.") from exc

    @property
    def sheet_names(self) -> list[str]:
        return list(self._workbook.sheetnames)

    def _find_exact(self, name: str) -> str | None:
        wanted = name.strip().casefold()
        for sheet_name in self._workbook.sheetnames:
            if sheet_name.strip().casefold() == wanted:
                return sheet_name
        return None

    def select_sheet(
        self,
        *,
        preferred: str | None = None,
        keywords: Sequence[str] = (),
        require_exact: bool = False,
    ) -> str:
        if preferred:
            match = self._find_exact(preferred)
            if match is not None:
                return match
            if require_exact:
                raise FileFormatError(
                    f"Sheet '{preferred}' is required; workbook has {self.sheet_names}."
                )
        for keyword in keywords:
            needle = keyword.strip().casefold()
            for sheet_name in self._workbook.sheetnames:
                if needle and needle in sheet_name.casefold():
                    return sheet_name
        if not self._workbook.sheetnames:
            raise FileFormatError("Workbook has no sheets.")
        return self._workbook.sheetnames[0]

    def require_sheets(self, names: Sequence[str]) -> list[str]:
        resolved: list[str] = []
        missing: list[str] = []
        for name in names:
            match = self._find_exact(name)
            if match is None:
                missing.append(name)
            else:
                resolved.append(match)
        if missing:
            expected = ", ".join(f"'{name}'" for name in names)
            raise FileFormatError(
                f"Workbook must contain sheets {expected}; missing {', '.join(missing)}."
            )
        return resolved

    def read_grid(self, sheet_name: str) -> Grid:
        if sheet_name not in self._workbook.sheetnames:
            raise FileFormatError(f"Sheet '{sheet_name}' is required.")
        rows = list(self._workbook[sheet_name].iter_rows(values_only=True))
        if not rows or not any(_has_value(cell) for cell in rows[0]):
            raise FileFormatError(f"Sheet '{sheet_name}' has no header row.")
        return rows


def _has_value(cell: Any) -> bool:
    return cell is not None and str(cell).strip() != ""
