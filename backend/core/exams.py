"""
exams.py — Official middle-school exam (BEM) outlook.

Fourth-year students are the exam candidates. Their term average gives the
current success rate; the 9-10 group is reachable with remedial work.
"""

from typing import Any, Dict, Optional, Sequence

from core.stats import PASS_MARK, sanitize, student_values
from core.subjects import average_key

BORDERLINE_MARK = 9
TOP_PERFORMERS = 15

PASSED = "ناجح"
BORDERLINE = "قريب جداً (استدراك ممكن)"
STRUGGLING = "متعثر"

# Seven bands: the exam view merges everything from 16 up.
EXAM_BANDS = [
    ("اقل من 8", None, 8),
    ("8.00-8.99", 8, 9),
    ("9.00-9.99", 9, 10),
    ("10.00-11.99", 10, 12),
    ("12.00-13.99", 12, 14),
    ("14.00-15.99", 14, 16),
    ("16.00 فما فوق", 16, None),
]


def is_candidate(student: Any) -> bool:
    return "الرابعة" in student.level or "4" in student.level


def candidate_status(average: float) -> str:
    if average >= PASS_MARK:
        return PASSED
    if average >= BORDERLINE_MARK:
        return BORDERLINE
    return STRUGGLING


def _in_band(value: float, low: Optional[float], high: Optional[float]) -> bool:
    return (low is None or value >= low) and (high is None or value < high)


def compute_official_exam_analysis(students: Sequence[Any], subjects: Sequence[str]) -> Optional[Dict[str, Any]]:
    """Exam outlook for the candidates; None when there are none."""
    candidates = [s for s in students if is_candidate(s)]
    if not candidates:
        return None

    key = average_key(subjects)
    averages = student_values(candidates, key)
    total = len(candidates)
    passed = sum(1 for v in averages if v >= PASS_MARK)
    borderline = sum(1 for v in averages if BORDERLINE_MARK <= v < PASS_MARK)

    ranked = sorted(zip(candidates, averages), key=lambda pair: pair[1], reverse=True)

    return sanitize({
        "total": total,
        "passed": passed,
        "borderline": borderline,
        "success_rate": passed / total * 100,
        "potential_rate": (passed + borderline) / total * 100,
        "distribution": [
            {"name": name, "value": sum(1 for v in averages if _in_band(v, low, high))}
            for name, low, high in EXAM_BANDS
        ],
        "high_performers": [
            {"name": s.name, "average": avg, "section": s.section}
            for s, avg in ranked[:TOP_PERFORMERS]
        ],
        "borderline_students": [
            {"id": s.id, "name": s.name, "section": s.section, "average": avg}
            for s, avg in zip(candidates, averages)
            if BORDERLINE_MARK <= avg < PASS_MARK
        ],
        "candidates": [
            {"name": s.name, "section": s.section, "average": avg, "status": candidate_status(avg)}
            for s, avg in ranked
        ],
    })
