"""
profile.py — One student's results against the class.

Grades are grouped into four domains by keyword, and every subject is
compared with the class average. A missing grade counts as 0.
"""

from typing import Any, Dict, List, Optional, Sequence

from core.stats import calculate_average, safe_float, sanitize, valid_grades
from core.subjects import average_key

HIGHLIGHT_SIZE = 3

DOMAIN_GROUPS = [
    ("اللغات", ["العربية", "الفرنسية", "الإنجليزية", "الأمازيغية"]),
    ("العلوم والرياضيات", ["الرياضيات", "فيزياء", "طبيعة", "تكنولوجيا"]),
    ("العلوم الإنسانية", ["التاريخ", "الجغرافيا", "الإسلامية", "المدنية"]),
    ("المواد الفنية والبدنية", ["تشكيلية", "موسيقية", "بدنية", "رياضية", "معلوماتية"]),
]


def class_averages(students: Sequence[Any], subjects: Sequence[str]) -> Dict[str, float]:
    return {raw: calculate_average(valid_grades(students, raw)) for raw in subjects}


def _domains(grades: Dict[str, float], subjects: Sequence[str]) -> List[Dict[str, Any]]:
    domains = []
    for name, keywords in DOMAIN_GROUPS:
        values = [grades[raw] for raw in subjects if any(k in raw for k in keywords)]
        domains.append({"domain": name, "average": calculate_average(values)})
    return domains


def compute_student_profile(
    students: Sequence[Any],
    subjects: Sequence[str],
    student_id: str,
) -> Optional[Dict[str, Any]]:
    """
    Profile of one student of the cohort, or None when the id is not in it.

    class_averages covers every column; the per-subject comparison leaves
    out the term average.
    """
    student = next((s for s in students if s.id == student_id), None)
    if student is None:
        return None

    key = average_key(subjects)
    actual = [raw for raw in subjects if raw != key]
    averages = class_averages(students, subjects)
    recorded = {raw: safe_float(student.grades.get(raw)) for raw in actual}
    grades = {raw: value or 0.0 for raw, value in recorded.items()}

    rows = [
        {
            "subject": raw,
            "grade": recorded[raw],
            "class_average": averages[raw],
            "gap": grades[raw] - averages[raw],
        }
        for raw in actual
    ]
    ranked = sorted(rows, key=lambda row: row["gap"], reverse=True)

    general = safe_float(student.grades.get(key)) if key else None
    return sanitize({
        "id": student.id,
        "name": student.name,
        "level": student.level,
        "section": student.section,
        "general_average": general or 0.0,
        "domains": _domains(grades, actual),
        "subjects": rows,
        "strengths": ranked[:HIGHLIGHT_SIZE],
        "weaknesses": ranked[::-1][:HIGHLIGHT_SIZE],
        "class_averages": averages,
    })
