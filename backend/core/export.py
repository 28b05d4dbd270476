"""
export.py — Tabular exports with Arabic headers, and the .xlsx writer.

Sheets are written right-to-left with a frozen header row and columns sized
to their content.
"""

import re
from typing import Any, Dict, List, Sequence

from openpyxl import Workbook

DEFAULT_SHEET_NAME = "التقرير"
EXTRA_WIDTH = 10
MAX_SHEET_TITLE = 31
# Characters Excel rejects in sheet titles.
INVALID_TITLE_CHARS = re.compile(r"[\\/*?:\[\]]")


# ── Row builders ────────────────────────────────────────────────────

def subject_table_rows(subject_rows: Sequence[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Rows of the official subject table (see compute_subject_table)."""
    return [
        {
            "المواد التعليمية": row["display_name"],
            "عدد المتحصلين على معدل ≥ 10": row["count_above_10"],
            "نسبة عدد المتحصلين على معدل ≥ 10": f"{row['pass_percentage']:.1f}%",
            "معدل المادة": f"{row['average']:.2f}",
        }
        for row in subject_rows
    ]


def gender_comparison_rows(comparison: Sequence[Dict[str, Any]]) -> List[Dict[str, Any]]:
    return [
        {
            "المادة": row["subject"],
            "متوسط الذكور": f"{row['male_average']:.2f}",
            "متوسط الإناث": f"{row['female_average']:.2f}",
            "عدد ذكور ≥ 10": row["male_pass_count"],
            "عدد إناث ≥ 10": row["female_pass_count"],
            "الفارق": f"{row['gap']:.2f}",
        }
        for row in comparison
    ]


def candidate_rows(candidates: Sequence[Dict[str, Any]]) -> List[Dict[str, Any]]:
    return [
        {
            "الاسم واللقب": c["name"],
            "القسم": c["section"],
            "المعدل الفصلي": f"{c['average']:.2f}",
            "الوضعية": c["status"],
        }
        for c in candidates
    ]


def level_summary_rows(levels: Sequence[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Rows of the per-level table of the term report (see compute_quarterly_report)."""
    return [
        {
            "المستوى": level["full_name"],
            "إجمالي التلاميذ": level["total"],
            "متوسط المستوى": f"{level['average']:.2f}",
            "نسبة النجاح": f"{level['pass_rate']:.1f}%",
        }
        for level in levels
    ]


def student_report_rows(profile: Dict[str, Any]) -> List[Dict[str, Any]]:
    rows = []
    for row in profile["subjects"]:
        grade = row["grade"]
        rows.append({
            "المادة": row["subject"],
            "معدل التلميذ": grade if grade is not None else "-",
            "متوسط الفصل": f"{row['class_average']:.2f}",
            "الملاحظات": "أداء جيد" if (grade or 0) > row["class_average"] else "تحسين مطلوب",
        })
    return rows


# ── Workbook ────────────────────────────────────────────────────────

def sheet_title(name: str) -> str:
    """Excel-safe sheet title: invalid characters become "-", at most 31 characters."""
    title = INVALID_TITLE_CHARS.sub("-", name or "").strip()[:MAX_SHEET_TITLE]
    return title or DEFAULT_SHEET_NAME


def write_workbook(output_path: str, rows: Sequence[Dict[str, Any]], sheet_name: str = DEFAULT_SHEET_NAME) -> bool:
    """
    Write rows (dicts sharing the first row's keys) to a single-sheet
    workbook. Returns False without writing when there are no rows.
    """
    if not rows:
        return False

    headers = list(rows[0].keys())

    wb = Workbook()
    ws = wb.active
    ws.title = sheet_title(sheet_name)
    ws.sheet_view.rightToLeft = True

    ws.append(headers)
    for row in rows:
        ws.append([row.get(h, "") for h in headers])

    # Freeze header
    ws.freeze_panes = "A2"

    # Auto-width columns
    for col_cells in ws.columns:
        max_len = max(len(str(cell.value or "")) for cell in col_cells)
        ws.column_dimensions[col_cells[0].column_letter].width = max_len + EXTRA_WIDTH

    wb.save(output_path)
    return True
