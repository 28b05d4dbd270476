"""
orientation.py — Stream orientation predictions for fourth-year students.

Each student gets a science-group and an arts-group weighted average. In
"y3_y4_weighted" mode, a third-year record with the same name contributes
with weight 1 against weight 2 for the current year.
"""

from typing import Any, Dict, List, Optional, Sequence

from core.gradebook import FEMALE, LEVELS_ORDER, MALE
from core.stats import PASS_MARK, safe_float, sanitize
from core.subject_analysis import levels_of
from core.subjects import average_key, orientation_rule

Y4_ONLY = "y4_only"
Y3_Y4_WEIGHTED = "y3_y4_weighted"
MODES = (Y4_ONLY, Y3_Y4_WEIGHTED)

THIRD_YEAR = LEVELS_ORDER[2]
FOURTH_YEAR = LEVELS_ORDER[3]

SCIENCE_WEIGHTS = {"math": 4, "science": 4, "physics": 4, "arabic": 2}
ARTS_WEIGHTS = {"arabic": 5, "french": 4, "english": 3, "social": 2}
STREAM_MARGIN = 0.5

SCIENCE = "جذع مشترك علوم وتكنولوجيا"
ARTS = "جذع مشترك آداب"
SCIENCE_FLEXIBLE = "علوم (توجيه مرن)"
ARTS_FLEXIBLE = "آداب (توجيه مرن)"
REMEDIAL = "استدراك / إعادة"

SCIENCE_MARK = "علوم"
ARTS_MARK = "آداب"


def group_grade(student: Any, group: str) -> float:
    """Grade of the first of the student's columns in an orientation group; 0 if none."""
    rule = orientation_rule(group)
    for label, value in student.grades.items():
        if rule.matches(label):
            grade = safe_float(value)
            return grade if grade else 0.0
    return 0.0


def _weighted_mean(grades: Dict[str, float], weights: Dict[str, int]) -> float:
    return sum(grades[g] * w for g, w in weights.items()) / sum(weights.values())


def predict_stream(current_average: float, science_average: float, arts_average: float) -> str:
    if current_average < PASS_MARK:
        return REMEDIAL
    if science_average >= arts_average + STREAM_MARGIN:
        return SCIENCE
    if arts_average >= science_average + STREAM_MARGIN:
        return ARTS
    return SCIENCE_FLEXIBLE if science_average >= arts_average else ARTS_FLEXIBLE


def _default_level(students: Sequence[Any]) -> Optional[str]:
    levels = levels_of(students)
    if FOURTH_YEAR in levels:
        return FOURTH_YEAR
    return levels[0] if levels else None


def compute_orientation(
    students: Sequence[Any],
    subjects: Sequence[str],
    level: Optional[str] = None,
    mode: str = Y3_Y4_WEIGHTED,
) -> Dict[str, Any]:
    """Predicted stream for every student of the level, with a summary."""
    if mode not in MODES:
        raise ValueError(f"Unknown orientation mode: {mode}")

    level = level or _default_level(students)
    key = average_key(subjects)
    groups = set(SCIENCE_WEIGHTS) | set(ARTS_WEIGHTS)

    previous_year = {}
    for s in students:
        if s.level == THIRD_YEAR:
            previous_year.setdefault(s.name, s)

    results: List[Dict[str, Any]] = []
    for s in students:
        if s.level != level:
            continue
        history = previous_year.get(s.name)

        grades = {}
        for group in groups:
            grade = group_grade(s, group)
            if mode == Y3_Y4_WEIGHTED and history is not None:
                grade = (group_grade(history, group) + grade * 2) / 3
            grades[group] = grade

        current = safe_float(s.grades.get(key)) if key else None
        current = current or 0.0
        science = _weighted_mean(grades, SCIENCE_WEIGHTS)
        arts = _weighted_mean(grades, ARTS_WEIGHTS)

        results.append({
            "id": s.id,
            "name": s.name,
            "section": s.section,
            "gender": s.gender,
            "current_year_average": current,
            "science_group_average": science,
            "arts_group_average": arts,
            "prediction": predict_stream(current, science, arts),
            "has_history": history is not None,
        })

    def _count(predicate, gender=None):
        return sum(1 for r in results if predicate(r) and (gender is None or r["gender"] == gender))

    def is_science(r):
        return SCIENCE_MARK in r["prediction"]

    def is_arts(r):
        return ARTS_MARK in r["prediction"]

    def is_remedial(r):
        return r["prediction"] == REMEDIAL

    def is_successful(r):
        return r["current_year_average"] >= PASS_MARK

    total = len(results)
    successful = _count(is_successful)
    summary = {
        "science": _count(is_science),
        "science_male": _count(is_science, MALE),
        "science_female": _count(is_science, FEMALE),
        "arts": _count(is_arts),
        "arts_male": _count(is_arts, MALE),
        "arts_female": _count(is_arts, FEMALE),
        "remedial": _count(is_remedial),
        "remedial_male": _count(is_remedial, MALE),
        "remedial_female": _count(is_remedial, FEMALE),
        "total": total,
        "successful_count": successful,
        "successful_male": _count(is_successful, MALE),
        "successful_female": _count(is_successful, FEMALE),
        "success_rate": successful / total * 100 if total > 0 else 0,
    }

    return sanitize({
        "level": level,
        "mode": mode,
        "results": results,
        "stats": summary,
    })
