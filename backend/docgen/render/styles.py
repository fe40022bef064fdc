from __future__ import annotations

from typing import Any, Optional

from openpyxl.styles import Alignment, Border, Font, PatternFill, Side
from openpyxl.worksheet.page import PageMargins
from openpyxl.worksheet.worksheet import Worksheet

# ---------------------------------------------------------------------
# Typography / fills / borders
# ---------------------------------------------------------------------

FONT_NAME = "Arial"

# Label column A, value columns B..D (collections use all four)
COLUMN_WIDTHS = {
    "A": 48.0,
    "B": 28.0,
    "C": 22.0,
    "D": 22.0,
}
LAST_COLUMN = "D"

FILL_TITLE = PatternFill("solid", fgColor="FF1F3864")
FILL_SECTION = PatternFill("solid", fgColor="FFD9D9D9")
FILL_TABLE_HEADER = PatternFill("solid", fgColor="FFDDEBF7")

THIN = Side(style="thin", color="FF000000")
EMPTY_DIAG = Side(style=None, color=None)


# ---------------------------------------------------------------------
# Layout helpers
# ---------------------------------------------------------------------

def apply_column_widths(ws: Worksheet, widths: dict[str, float]) -> None:
    for col, w in widths.items():
        ws.column_dimensions[col].width = w


def set_cell(
    ws: Worksheet,
    addr: str,
    value: Any,
    *,
    bold: bool = False,
    size: int = 10,
    h: str = "left",
    v: str = "center",
    fill: Optional[PatternFill] = None,
    wrap: Optional[bool] = True,
    color: Optional[str] = None,
) -> None:
    cell = ws[addr]
    cell.value = value
    cell.alignment = Alignment(horizontal=h, vertical=v, wrap_text=wrap)
    cell.font = Font(name=FONT_NAME, size=size, bold=bold, color=color)
    if fill is not None:
        cell.fill = fill


def apply_thin_grid(ws: Worksheet, top_left: str, bottom_right: str) -> None:
    tl = ws[top_left]
    br = ws[bottom_right]
    border = Border(left=THIN, right=THIN, top=THIN, bottom=THIN, diagonal=EMPTY_DIAG)

    for r in range(tl.row, br.row + 1):
        for c in range(tl.column, br.column + 1):
            ws.cell(r, c).border = border


# ---------------------------------------------------------------------
# Print setup
# ---------------------------------------------------------------------

def find_last_nonempty_row(ws: Worksheet, *, min_col: int = 1, max_col: int = 4) -> int:
    """
    Last row with at least one non-empty value in [min_col..max_col].
    Empty means None or a whitespace-only string.
    """
    for r in range(ws.max_row or 1, 0, -1):
        for c in range(min_col, max_col + 1):
            v = ws.cell(row=r, column=c).value
            if v is None:
                continue
            if isinstance(v, str) and v.strip() == "":
                continue
            return r
    return 1


def apply_print_setup(ws: Worksheet) -> None:
    """
    Portrait A4, one page wide, unlimited height, ~0.635 cm margins.
    Print area ends at the last non-empty row.
    """
    last_row = find_last_nonempty_row(ws)
    ws.print_area = f"A1:{LAST_COLUMN}{last_row}"

    ws.page_setup.orientation = "portrait"
    ws.page_setup.paperSize = ws.PAPERSIZE_A4
    ws.page_setup.fitToPage = True
    ws.page_setup.fitToWidth = 1
    ws.page_setup.fitToHeight = 0  # 0 == no limit

    m = 0.25
    ws.page_margins = PageMargins(left=m, right=m, top=m, bottom=m, header=0.2, footer=0.2)
