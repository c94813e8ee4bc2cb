from __future__ import annotations

from io import BytesIO

from fastapi.responses import StreamingResponse
from openpyxl import Workbook
from openpyxl.styles import Font, PatternFill
from openpyxl.utils import get_column_letter

from cargodock.services.imports.mapper import ImportColumn
from cargodock.services.imports.pipeline import ImportConfig, ImportMode

_README_SHEET = "README"
_MANDATORY_FILL = PatternFill("solid", fgColor="FCE4D6")
_MANDATORY_FONT = Font(bold=True, color="9C0006")
_XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


def _append_header(ws, columns: tuple[ImportColumn, ...]) -> None:
    ws.append([col.header for col in columns])
    ws.freeze_panes = "A2"
    for idx, column in enumerate(columns, start=1):
        cell = ws.cell(row=1, column=idx)
        if column.required:
            cell.fill = _MANDATORY_FILL
            cell.font = _MANDATORY_FONT
        ws.column_dimensions[get_column_letter(idx)].width = max(14, min(36, len(column.header) + 5))


def _build_readme_sheet(workbook: Workbook, lines: list[str]) -> None:
    ws = workbook.create_sheet(_README_SHEET)
    ws.append(["Instruction"])
    for line in lines:
        ws.append([line])
    ws.column_dimensions["A"].width = 120


def build_template_workbook(config: ImportConfig) -> Workbook:
    wb = Workbook()
    wb.remove(wb.active)
    for source in config.sources:
        _append_header(wb.create_sheet(source.name), source.columns)

    lines = list(config.description)
    if config.mode is ImportMode.UPDATE:
        lines.append("Existing records are updated only; unknown keys are reported, never created.")
    else:
        lines.append("The whole file is imported in one transaction: any error and nothing is saved.")
    lines.append("Mandatory columns are highlighted in orange.")
    _build_readme_sheet(wb, lines)
    return wb


def template_response(config: ImportConfig) -> StreamingResponse:
    buffer = BytesIO()
    build_template_workbook(config).save(buffer)
    buffer.seek(0)
    filename = f"{config.key}_import_template.xlsx"
    return StreamingResponse(
        buffer,
        media_type=_XLSX_MEDIA_TYPE,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
