"""Excel export of an executed workboard page."""

import io
import re
from datetime import datetime
from typing import List

import pandas as pd
from openpyxl.styles import Alignment, Font, PatternFill
from openpyxl.utils import get_column_letter

from app.query.schemas import ColumnSpec, QueryPage

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"

# Characters Excel refuses in sheet titles.
_INVALID_SHEET_CHARS = re.compile(r"[\\/?*\[\]:]")

_NUMBER_FORMATS = {
    "currency": "$#,##0.00",
    "number": "#,##0",
    "date": "yyyy-mm-dd",
}


def page_to_frame(page: QueryPage) -> pd.DataFrame:
    """One spreadsheet column per visible workboard column, in board order."""
    columns: List[ColumnSpec] = page.columns
    records = [{column.label: row.get(column.field) for column in columns} for row in page.items]
    frame = pd.DataFrame.from_records(records, columns=[column.label for column in columns])
    for column in columns:
        if column.format == "date":
            frame[column.label] = pd.to_datetime(frame[column.label], errors="coerce")
    return frame


def sheet_title(name: str) -> str:
    """Board name as a valid Excel sheet title (no reserved characters, 31 chars max)."""
    title = _INVALID_SHEET_CHARS.sub("", name or "").strip().strip("'")[:31].strip()
    return title or "Workboard"


def page_to_xlsx(page: QueryPage, sheet_name: str) -> bytes:
    frame = page_to_frame(page)
    sheet_name = sheet_title(sheet_name)

    excel_buffer = io.BytesIO()
    with pd.ExcelWriter(excel_buffer, engine="openpyxl") as writer:
        frame.to_excel(writer, sheet_name=sheet_name, index=False)
        worksheet = writer.sheets[sheet_name]
        _format_worksheet(worksheet, page.columns, len(frame))

    excel_buffer.seek(0)
    return excel_buffer.getvalue()


def export_filename(name: str) -> str:
    safe = "".join(ch if ch.isalnum() or ch in "-_" else "_" for ch in name).strip("_") or "workboard"
    return f"{safe}_{datetime.now().strftime('%Y%m%d')}.xlsx"


def _format_worksheet(worksheet, columns: List[ColumnSpec], row_count: int) -> None:
    header_font = Font(bold=True, color="FFFFFF")
    header_fill = PatternFill(start_color="366092", end_color="366092", fill_type="solid")
    header_alignment = Alignment(horizontal="center", vertical="center")

    for index, column in enumerate(columns, start=1):
        cell = worksheet.cell(row=1, column=index)
        cell.font = header_font
        cell.fill = header_fill
        cell.alignment = header_alignment

        # Board widths are pixels; Excel widths are roughly characters.
        width = column.width or max(len(column.label) * 8, 80)
        worksheet.column_dimensions[get_column_letter(index)].width = min(max(width // 7, 8), 60)

        number_format = _NUMBER_FORMATS.get(column.format or "")
        if number_format:
            for row in range(2, row_count + 2):
                worksheet.cell(row=row, column=index).number_format = number_format
