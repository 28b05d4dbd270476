"""
levels.py — Institution-wide results by level.

Computes:
- Global term-average distribution, pass / fail counts
- Per-level summary: headcount, girls, optional-subject enrolment, passes
- Grand totals and the honor roll
- Per-level honor roll
"""

from typing import Any, Dict, List, Optional, Sequence, Tuple

from core.gradebook import FEMALE, LEVELS_ORDER
from core.stats import (
    BAND_KEYS,
    PASS_MARK,
    band_counts,
    band_distribution,
    calculate_average,
    safe_float,
    sanitize,
    student_values,
)
from core.subjects import AMAZIGH, MUSIC, VISUAL_ARTS, average_key, resolve_subject

HONOR_ROLL_SIZE = 10


def _enrolled(students: Sequence[Any], raw: Optional[str]) -> int:
    """Students with a positive grade in an optional subject."""
    if raw is None:
        return 0
    count = 0
    for s in students:
        value = safe_float(s.grades.get(raw))
        if value is not None and value > 0:
            count += 1
    return count


def _ranked(students: Sequence[Any], key: Optional[str], size: int) -> List[Tuple[Any, float]]:
    """Best term averages first; equal averages keep input order."""
    ranked = sorted(zip(students, student_values(students, key)), key=lambda pair: pair[1], reverse=True)
    return ranked[:size]


def _level_summary(level: str, students: Sequence[Any], subjects: Sequence[str], key) -> Dict[str, Any]:
    averages = student_values(students, key)
    return {
        "name": level,
        "total": len(students),
        "females": sum(1 for s in students if s.gender == FEMALE),
        "amazigh": _enrolled(students, resolve_subject(AMAZIGH, subjects)),
        "art": _enrolled(students, resolve_subject(VISUAL_ARTS, subjects)),
        "music": _enrolled(students, resolve_subject(MUSIC, subjects)),
        "passed": sum(1 for v in averages if v >= PASS_MARK),
        "distribution": band_counts(averages),
    }


def compute_level_analysis(students: Sequence[Any], subjects: Sequence[str]) -> Dict[str, Any]:
    """Term-average results for the whole institution, split by level."""
    key = average_key(subjects)
    averages = student_values(students, key)

    total = len(students)
    passed = sum(1 for v in averages if v >= PASS_MARK)

    levels: List[Dict[str, Any]] = []
    for level in LEVELS_ORDER:
        level_students = [s for s in students if s.level == level]
        if level_students:
            levels.append(_level_summary(level, level_students, subjects, key))

    grand_totals = {
        field: sum(l[field] for l in levels)
        for field in ("total", "females", "amazigh", "art", "music", "passed")
    }
    grand_totals["distribution"] = {
        band: sum(l["distribution"][band] for l in levels) for band in BAND_KEYS
    }

    honor_roll = [
        {"name": s.name, "average": avg, "level": s.level}
        for s, avg in _ranked(students, key, HONOR_ROLL_SIZE)
    ]

    return sanitize({
        "total_students": total,
        "global_average": calculate_average(averages),
        "passed_count": passed,
        "failed_count": total - passed,
        "success_percentage": passed / total * 100 if total > 0 else 0,
        "distribution": band_distribution(averages),
        "levels": levels,
        "grand_totals": grand_totals,
        "honor_roll": honor_roll,
    })


def compute_level_honor_roll(
    students: Sequence[Any],
    subjects: Sequence[str],
    level: str,
    size: int = HONOR_ROLL_SIZE,
) -> List[Dict[str, Any]]:
    """Top students of one level by term average, with their section."""
    level_students = [s for s in students if s.level == level]
    return sanitize([
        {"name": s.name, "average": avg, "section": s.section}
        for s, avg in _ranked(level_students, average_key(subjects), size)
    ])
