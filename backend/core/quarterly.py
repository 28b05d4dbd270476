"""
quarterly.py — The term report of the whole institution.

Computes:
- Headcount, global term average and success rate
- Per-level average and pass rate, and the best level
- The three subjects with the highest and the lowest pass rates
- Pass / fail split
"""

from typing import Any, Dict, List, Sequence

from core.gradebook import LEVELS_ORDER
from core.stats import PASS_MARK, analyze_subject, calculate_average, sanitize, student_values
from core.subjects import average_key

HIGHLIGHT_SIZE = 3

FAILED_LABEL = "تعثر (<10)"
PASSED_LABEL = "نجاح (≥10)"


def short_level_name(level: str) -> str:
    """Level name without "السنة" and "متوسط"."""
    return level.replace("السنة ", "").replace(" متوسط", "")


def _level_row(level: str, students: Sequence[Any], key) -> Dict[str, Any]:
    averages = student_values(students, key)
    passed = sum(1 for v in averages if v >= PASS_MARK)
    return {
        "name": short_level_name(level),
        "full_name": level,
        "total": len(students),
        "average": calculate_average(averages),
        "pass_rate": passed / len(students) * 100,
    }


def compute_quarterly_report(students: Sequence[Any], subjects: Sequence[str]) -> Dict[str, Any]:
    key = average_key(subjects)
    averages = student_values(students, key)
    total = len(students)
    passed = sum(1 for v in averages if v >= PASS_MARK)

    levels: List[Dict[str, Any]] = []
    for level in LEVELS_ORDER:
        level_students = [s for s in students if s.level == level]
        if level_students:
            levels.append(_level_row(level, level_students, key))

    ranking = sorted(
        (
            {"name": raw, "pass_rate": analyze_subject(students, raw).pass_percentage}
            for raw in subjects if raw != key
        ),
        key=lambda row: row["pass_rate"],
        reverse=True,
    )

    best_level = max(levels, key=lambda l: l["pass_rate"])["name"] if levels else None

    return sanitize({
        "total": total,
        "global_average": calculate_average(averages),
        "success_rate": passed / total * 100 if total > 0 else 0,
        "levels": levels,
        "top_subjects": ranking[:HIGHLIGHT_SIZE],
        "bottom_subjects": ranking[::-1][:HIGHLIGHT_SIZE],
        "distribution": [
            {"name": FAILED_LABEL, "value": total - passed},
            {"name": PASSED_LABEL, "value": passed},
        ],
        "best_level": best_level,
    })
