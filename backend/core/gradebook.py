"""
gradebook.py — Student records and gradebook sheet ingestion.

Supports:
- Student record model (JSON in / out)
- Sheet rows exported by the digitization platform (list of rows or DataFrame)
- Level / section detection from the sheet title block
- Excel serial birth dates, gender and repeater flags
- Merging several sheets into one cohort
- Data validation issues for the frontend
"""

import logging
import re
import uuid
from dataclasses import asdict, dataclass, field
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple, Union

import numpy as np
import pandas as pd

from core.subjects import OFFICIAL_ORDER, average_key, unmatched_subjects

logger = logging.getLogger(__name__)

MALE = "ذكر"
FEMALE = "أنثى"
UNKNOWN_GENDER = "غير محدد"
UNKNOWN_LEVEL = "غير محدد"
ALL_SECTIONS = "الكل"

LEVELS_ORDER = [
    "السنة الأولى متوسط",
    "السنة الثانية متوسط",
    "السنة الثالثة متوسط",
    "السنة الرابعة متوسط",
]

LEVEL_NAMES = {
    "أولى": LEVELS_ORDER[0],
    "ثانية": LEVELS_ORDER[1],
    "ثالثة": LEVELS_ORDER[2],
    "رابعة": LEVELS_ORDER[3],
}

# e.g. "الفصل الأول 2024-2025 أولى متوسط 3"
TITLE_PATTERN = re.compile(
    r"الفصل\s+(الأول|الثاني|الثالث)\s+(\d{4}-\d{4})\s+(أولى|ثانية|ثالثة|رابعة)\s+متوسط\s+(\d+)"
)

TITLE_ROWS = 6
HEADER_ROW = 5
FIRST_SUBJECT_COL = 5
TOTALS_MARKER = "المجموع"
REPEATER_MARKS = ("نعم", "م")

# Excel serial day 25569 is 1970-01-01.
EXCEL_EPOCH = datetime(1899, 12, 30)


# ── Student model ───────────────────────────────────────────────────

@dataclass(frozen=True)
class Student:
    """One student row. Grades are keyed by raw spreadsheet header."""

    id: str
    name: str
    level: str = UNKNOWN_LEVEL
    section: str = ALL_SECTIONS
    gender: str = UNKNOWN_GENDER
    birth_date: str = ""
    is_repeater: bool = False
    grades: Mapping[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Student":
        """Build a student from a JSON record (snake_case or camelCase keys)."""
        if "id" not in data or "name" not in data:
            raise ValueError("Student records need 'id' and 'name'.")
        return cls(
            id=str(data["id"]),
            name=str(data["name"]),
            level=str(data.get("level") or UNKNOWN_LEVEL),
            section=str(data.get("section") or ALL_SECTIONS),
            gender=str(data.get("gender") or UNKNOWN_GENDER),
            birth_date=str(data.get("birth_date", data.get("birthDate")) or ""),
            is_repeater=bool(data.get("is_repeater", data.get("isRepeater", False))),
            grades=dict(data.get("grades") or {}),
        )

    def to_dict(self) -> Dict[str, Any]:
        record = asdict(self)
        record["grades"] = dict(self.grades)
        return record


# ── Cell helpers ────────────────────────────────────────────────────

def _is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, float) and np.isnan(value):
        return True
    return isinstance(value, str) and not value.strip()


def _cell_text(value: Any) -> str:
    return "" if _is_blank(value) else str(value).strip()


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float, np.integer, np.floating)) and not isinstance(value, (bool, np.bool_))


def _parse_grade(value: Any) -> Optional[float]:
    """Numeric cell or numeric text; anything else is not a grade."""
    if _is_number(value):
        v = float(value)
        return None if np.isnan(v) else v
    if isinstance(value, str):
        try:
            v = float(value.strip())
        except ValueError:
            return None
        return None if np.isnan(v) else v
    return None


def format_excel_date(value: Any) -> str:
    """Render an Excel serial date as dd/mm/yyyy; other values as text."""
    if _is_blank(value):
        return ""

    serial = None
    if _is_number(value):
        serial = float(value)
    elif isinstance(value, str):
        try:
            serial = float(value.strip())
        except ValueError:
            serial = None

    if serial is not None and not np.isnan(serial) and 10000 < serial < 100000:
        date = EXCEL_EPOCH + timedelta(days=serial)
        return date.strftime("%d/%m/%Y")

    return str(value).strip()


def _looks_like_date(value: Any) -> bool:
    if _is_number(value):
        return True
    if isinstance(value, str):
        try:
            return float(value.strip()) > 20000
        except ValueError:
            return False
    return False


def standardize_gender(value: Any) -> str:
    text = _cell_text(value)
    if MALE in text:
        return MALE
    if FEMALE in text or "انثى" in text:
        return FEMALE
    return UNKNOWN_GENDER


# ── Sheet parsing ───────────────────────────────────────────────────

Rows = Union[Sequence[Sequence[Any]], pd.DataFrame]


def _as_rows(rows: Rows) -> List[List[Any]]:
    if isinstance(rows, pd.DataFrame):
        frame = rows.astype(object).where(pd.notna(rows), None)
        return frame.values.tolist()
    if isinstance(rows, (str, bytes)) or not isinstance(rows, Sequence):
        raise ValueError("Sheet rows must be a list of rows or a DataFrame.")
    table = []
    for row in rows:
        if isinstance(row, (str, bytes)) or not isinstance(row, Sequence):
            raise ValueError("Each sheet row must be a list of cells.")
        table.append(list(row))
    return table


def extract_level_and_section(rows: Rows) -> Tuple[str, str]:
    """Read level and section from the title block above the header row."""
    for row in _as_rows(rows)[:TITLE_ROWS]:
        for cell in row:
            if not isinstance(cell, str):
                continue
            match = TITLE_PATTERN.search(cell)
            if match:
                level = LEVEL_NAMES.get(match.group(3), f"السنة {match.group(3)} متوسط")
                return level, match.group(4).zfill(2)
    return UNKNOWN_LEVEL, ALL_SECTIONS


def parse_sheet(rows: Rows, batch: Optional[str] = None) -> Tuple[List[Student], List[str]]:
    """
    Turn one gradebook sheet into (students, raw subject labels).

    Raw labels are returned verbatim, in column order.
    """
    table = _as_rows(rows)
    level, section = extract_level_and_section(table)

    data = [row for row in table[HEADER_ROW:] if any(not _is_blank(c) for c in row)]
    if not data:
        return [], []

    header = data[0]
    subject_cols = [
        (idx, cell) for idx, cell in enumerate(header)
        if idx >= FIRST_SUBJECT_COL and isinstance(cell, str) and cell.strip()
    ]
    subjects = [label for _, label in subject_cols]

    # Last row of the export holds column totals.
    body = data[1:-1] if len(data) > 2 else data[1:]
    batch = batch or uuid.uuid4().hex[:8]

    students = []
    for idx, row in enumerate(body):
        cells = list(row) + [None] * max(0, FIRST_SUBJECT_COL - len(row))

        name = _cell_text(cells[1])
        birth_date = ""
        if _looks_like_date(cells[2]):
            birth_date = format_excel_date(cells[2])
        else:
            first_name = _cell_text(cells[2])
            if first_name:
                name = f"{name} {first_name}"

        if not name.strip() or TOTALS_MARKER in name:
            continue

        grades = {}
        for col, label in subject_cols:
            value = _parse_grade(cells[col]) if col < len(cells) else None
            if value is not None:
                grades[label] = value

        students.append(Student(
            id=f"s-{batch}-{idx}",
            name=name,
            level=level,
            section=section,
            gender=standardize_gender(cells[3]),
            birth_date=birth_date,
            is_repeater=_cell_text(cells[4]) in REPEATER_MARKS,
            grades=grades,
        ))

    logger.info(
        "Parsed %d students and %d subject columns (level=%s, section=%s)",
        len(students), len(subjects), level, section,
    )
    return students, subjects


def parse_sheets(sheets: Sequence[Rows]) -> Tuple[List[Student], List[str]]:
    """Merge several sheets; raw labels keep first-seen order."""
    batch = uuid.uuid4().hex[:8]
    students: List[Student] = []
    subjects: List[str] = []
    for i, rows in enumerate(sheets):
        sheet_students, sheet_subjects = parse_sheet(rows, batch=f"{batch}{i}")
        students.extend(sheet_students)
        subjects.extend(sheet_subjects)
    return students, list(dict.fromkeys(subjects))


def read_workbook(file_path: str) -> List[pd.DataFrame]:
    """
    Read every sheet of an .xlsx gradebook as raw rows (no header inference).
    Empty sheets are skipped.
    """
    path = Path(file_path)
    if path.suffix.lower() != ".xlsx":
        raise ValueError(f"Unsupported file type: {path.suffix}. Use an Excel (.xlsx) gradebook.")

    xls = pd.ExcelFile(file_path, engine="openpyxl")
    sheets = []
    for sheet_name in xls.sheet_names:
        df = pd.read_excel(xls, sheet_name=sheet_name, header=None)
        if not df.empty:
            sheets.append(df)
    if not sheets:
        raise ValueError("No valid sheets found in the Excel file.")
    return sheets


# ── Validation ──────────────────────────────────────────────────────

def validate_gradebook(students: Sequence[Student], subjects: Sequence[str]) -> List[Dict]:
    """
    Report data issues found after ingestion. Nothing here blocks analysis.
    """
    issues = []

    if not students:
        issues.append({
            "type": "empty_data",
            "severity": "critical",
            "message": "The uploaded sheets contain no student rows.",
        })

    missing = unmatched_subjects(subjects)
    if missing:
        issues.append({
            "type": "unmatched_subjects",
            "severity": "info",
            "message": f"{len(missing)} of {len(OFFICIAL_ORDER)} subjects unmatched.",
            "subjects": missing,
        })

    key = average_key(subjects)
    if key is not None:
        without_average = sum(1 for s in students if _parse_grade(s.grades.get(key)) is None)
        if without_average:
            issues.append({
                "type": "missing_average",
                "severity": "warning",
                "message": f"{without_average} students have no term average.",
            })

    out_of_range = sum(
        1 for s in students for v in s.grades.values()
        if _parse_grade(v) is not None and not 0 <= _parse_grade(v) <= 20
    )
    if out_of_range:
        issues.append({
            "type": "out_of_range",
            "severity": "warning",
            "message": f"{out_of_range} grades fall outside the 0-20 scale.",
        })

    return issues
