"""
templates.py — Fill a school's own Excel report template with subject statistics.

The first sheet is scanned for text cells naming a subject (one of the
gradebook's raw labels) and text cells naming a statistic. Each empty cell
where a subject row meets a statistic column, or a statistic row meets a
subject column, gets that subject's value. Cells that already hold a value
are never overwritten.
"""

import logging
from typing import Any, List, Optional, Sequence, Tuple

from openpyxl import load_workbook
from openpyxl.cell.cell import MergedCell

from core.stats import analyze_subject, cohort_average

logger = logging.getLogger(__name__)

# Checked in order; the first keyword found in a cell wins.
STAT_KEYWORDS = [
    ("معدل", "average"),
    ("نسبة", "pass_percentage"),
    ("ناجح", "count_above_10"),
    ("المتحصلين", "count_above_10"),
]

Location = Tuple[int, int, str]


def stat_key(text: str) -> Optional[str]:
    for keyword, key in STAT_KEYWORDS:
        if keyword in text:
            return key
    return None


def matched_subject(text: str, subjects: Sequence[str]) -> Optional[str]:
    """First raw label equal to, containing, or contained in the cell text."""
    for raw in subjects:
        if text == raw or text in raw or raw in text:
            return raw
    return None


def locate_cells(ws, subjects: Sequence[str]) -> Tuple[List[Location], List[Location]]:
    """(row, column, raw label) of subject cells and (row, column, stat) of statistic cells."""
    subject_cells: List[Location] = []
    stat_cells: List[Location] = []
    for row in ws.iter_rows():
        for cell in row:
            if not isinstance(cell.value, str) or not cell.value.strip():
                continue
            text = cell.value.strip()
            raw = matched_subject(text, subjects)
            if raw is not None:
                subject_cells.append((cell.row, cell.column, raw))
            key = stat_key(text)
            if key is not None:
                stat_cells.append((cell.row, cell.column, key))
    return subject_cells, stat_cells


def _fill(ws, row: int, column: int, value: Any) -> bool:
    cell = ws.cell(row=row, column=column)
    if isinstance(cell, MergedCell) or cell.value not in (None, ""):
        return False
    cell.value = round(value, 2) if isinstance(value, float) else value
    return True


def fill_sheet(ws, students: Sequence[Any], subjects: Sequence[str]) -> int:
    """Fill one worksheet in place; returns the number of cells written."""
    subject_cells, stat_cells = locate_cells(ws, subjects)
    reference = cohort_average(students)
    stats = {raw: analyze_subject(students, raw, reference) for _, _, raw in subject_cells}

    filled = 0
    for subject_row, _, raw in subject_cells:
        for _, stat_column, key in stat_cells:
            filled += _fill(ws, subject_row, stat_column, getattr(stats[raw], key))
    for stat_row, _, key in stat_cells:
        for _, subject_column, raw in subject_cells:
            filled += _fill(ws, stat_row, subject_column, getattr(stats[raw], key))

    logger.debug(
        "Template sheet %r: %d subject cells, %d statistic cells, %d filled",
        ws.title, len(subject_cells), len(stat_cells), filled,
    )
    return filled


def fill_template(template_path: str, output_path: str, students: Sequence[Any], subjects: Sequence[str]) -> int:
    """Fill the first sheet of the template and save the result to output_path."""
    wb = load_workbook(template_path)
    filled = fill_sheet(wb.worksheets[0], students, subjects)
    wb.save(output_path)
    logger.info("Filled %d template cells into %s", filled, output_path)
    return filled
