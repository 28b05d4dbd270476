"""
remedial.py — Remedial groups and repeating students.

- Remedial group: subject pass / failure profile of hand-picked students
- Repeaters: whether students repeating the year now pass
"""

from typing import Any, Dict, List, Optional, Sequence

from core.stats import (
    PASS_MARK,
    calculate_average,
    sanitize,
    student_average,
    valid_grades,
)
from core.subject_analysis import filter_cohort
from core.subjects import average_key


def _subject_averages(student: Any, subjects: Sequence[str]) -> float:
    """A student's own mean over subject columns (term average left out)."""
    key = average_key(subjects)
    return student_average(student, exclude=(key,) if key else ())


def compute_remedial_group(
    students: Sequence[Any],
    subjects: Sequence[str],
    student_ids: Sequence[str],
) -> Dict[str, Any]:
    """Where a selected group of students fails, subject by subject."""
    selected = set(student_ids)
    group = [s for s in students if s.id in selected]

    detailed = []
    for raw in subjects:
        grades = valid_grades(group, raw)
        passed = sum(1 for g in grades if g >= PASS_MARK)
        average = calculate_average(grades)
        if average <= 0 and passed == 0:
            continue
        detailed.append({
            "name": raw,
            "count_above_10": passed,
            "pass_percentage": passed / len(grades) * 100 if grades else 0,
            "average": average,
        })

    # Failures are counted against the whole group, graded or not.
    failures = [
        {
            "subject": row["name"],
            "count": len(group) - row["count_above_10"],
            "percentage": 100 - row["pass_percentage"],
        }
        for row in detailed
        if len(group) - row["count_above_10"] > 0
    ]
    failures.sort(key=lambda f: f["count"], reverse=True)

    return sanitize({
        "total_students": len(group),
        "students": [{"id": s.id, "name": s.name, "section": s.section} for s in group],
        "global_average": calculate_average([_subject_averages(s, subjects) for s in group]),
        "subject_stats": detailed,
        "subject_failures": failures,
    })


def compute_repeater_analysis(
    students: Sequence[Any],
    subjects: Sequence[str],
    level: Optional[str] = None,
    section: Optional[str] = None,
) -> Dict[str, Any]:
    """Repeaters of a level / section, weakest first."""
    repeaters: List[Dict[str, Any]] = []
    for s in filter_cohort(students, level, section):
        if not s.is_repeater:
            continue
        average = _subject_averages(s, subjects)
        repeaters.append({
            "id": s.id,
            "name": s.name,
            "level": s.level,
            "section": s.section,
            "gender": s.gender,
            "average": average,
            "is_passing_now": average >= PASS_MARK,
        })
    repeaters.sort(key=lambda r: r["average"])

    total = len(repeaters)
    passing = sum(1 for r in repeaters if r["is_passing_now"])
    return sanitize({
        "repeaters": repeaters,
        "total_repeaters": total,
        "passing_repeaters": passing,
        "failing_repeaters": total - passing,
        "improvement_rate": passing / total * 100 if total > 0 else 0,
    })
