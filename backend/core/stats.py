"""
stats.py — Grade statistics shared by every analysis.

Computes:
- Valid-grade extraction (missing / non-numeric grades are skipped, never zeroed)
- Mean, population standard deviation, coefficient of variation, mode
- Eight-band grade distribution on the 0-20 scale
- Pass count / percentage (pass mark 10)
- Per-subject SubjectStats records
"""

import logging
from dataclasses import asdict, dataclass
from typing import Any, Dict, Iterable, List, Optional, Sequence

import numpy as np
import pandas as pd

logger = logging.getLogger(__name__)

PASS_MARK = 10

ABOVE = "above"
BELOW = "below"
EQUAL = "equal"

COMPARISON_LABELS = {
    ABOVE: "أعلى من المعدل العام",
    BELOW: "أقل من المعدل العام",
    EQUAL: "مساوي للمعدل العام",
}

# Half-open bands [low, high); the last one is unbounded above.
BAND_EDGES = [-np.inf, 8, 9, 10, 12, 14, 16, 18, np.inf]
BAND_KEYS = [
    "count_below_8",
    "count_8_to_9",
    "count_9_to_10",
    "count_10_to_12",
    "count_12_to_14",
    "count_14_to_16",
    "count_16_to_18",
    "count_above_18",
]
BAND_LABELS = [
    "اقل من 8",
    "8.00-8.99",
    "9.00-9.99",
    "10.00-11.99",
    "12.00-13.99",
    "14.00-15.99",
    "16.00-17.99",
    "18.00 فما فوق",
]


# ── Helpers ─────────────────────────────────────────────────────────

def safe_float(val) -> Optional[float]:
    """Convert to a finite float or return None."""
    if isinstance(val, (bool, np.bool_)):
        return None
    try:
        v = float(val)
    except (TypeError, ValueError):
        return None
    return None if np.isnan(v) or np.isinf(v) else v


def sanitize(obj):
    """Recursively coerce numpy/pandas scalars to JSON-safe Python types."""
    if isinstance(obj, dict):
        return {k: sanitize(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [sanitize(v) for v in obj]
    if isinstance(obj, (np.bool_,)):
        return bool(obj)
    if isinstance(obj, (np.integer,)):
        return int(obj)
    if isinstance(obj, (np.floating, float)):
        v = float(obj)
        return None if (np.isnan(v) or np.isinf(v)) else v
    return obj


def valid_grades(cohort: Iterable[Any], raw_label: str) -> List[float]:
    """Grades recorded under raw_label, skipping missing and malformed values."""
    grades = []
    for student in cohort:
        value = safe_float(student.grades.get(raw_label))
        if value is not None:
            grades.append(value)
    return grades


def student_values(cohort: Iterable[Any], raw_label: Optional[str]) -> List[float]:
    """One value per student; a missing grade counts as 0."""
    values = []
    for student in cohort:
        value = safe_float(student.grades.get(raw_label)) if raw_label else None
        values.append(value if value is not None else 0.0)
    return values


def student_average(student: Any, exclude: Sequence[str] = ()) -> float:
    """Mean of a student's valid grades, leaving out the labels in exclude."""
    values = [
        v for v in (safe_float(g) for k, g in student.grades.items() if k not in exclude)
        if v is not None
    ]
    return calculate_average(values)


# ── Numeric primitives ──────────────────────────────────────────────

def calculate_average(numbers: Sequence[float]) -> float:
    if len(numbers) == 0:
        return 0.0
    return float(np.mean(numbers))


def calculate_std_dev(numbers: Sequence[float]) -> float:
    """Population standard deviation (divides by n)."""
    if len(numbers) == 0:
        return 0.0
    return float(np.std(numbers, ddof=0))


def calculate_cv(std_dev: float, average: float) -> float:
    return std_dev / average * 100 if average != 0 else 0.0


def calculate_mode(numbers: Sequence[float]) -> float:
    """
    Most frequent value. On ties, the value that reached the top count
    first in a left-to-right scan wins.
    """
    if len(numbers) == 0:
        return 0.0
    frequency: Dict[float, int] = {}
    max_freq = 0
    mode = numbers[0]
    for num in numbers:
        frequency[num] = frequency.get(num, 0) + 1
        if frequency[num] > max_freq:
            max_freq = frequency[num]
            mode = num
    return float(mode)


def band_counts(numbers: Sequence[float]) -> Dict[str, int]:
    """Count values per grade band, keyed by BAND_KEYS in band order."""
    if len(numbers) == 0:
        return {key: 0 for key in BAND_KEYS}
    bands = pd.cut(pd.Series(numbers, dtype=float), bins=BAND_EDGES, right=False, labels=BAND_KEYS)
    counts = bands.value_counts(sort=False).reindex(BAND_KEYS, fill_value=0)
    return {key: int(counts[key]) for key in BAND_KEYS}


def band_distribution(numbers: Sequence[float]) -> List[Dict[str, Any]]:
    """Band counts as chart rows ({name, value}) with display labels."""
    counts = band_counts(numbers)
    return [
        {"name": label, "value": counts[key]}
        for key, label in zip(BAND_KEYS, BAND_LABELS)
    ]


def pass_count(numbers: Sequence[float]) -> int:
    return sum(1 for n in numbers if n >= PASS_MARK)


def pass_percentage(numbers: Sequence[float]) -> float:
    if len(numbers) == 0:
        return 0.0
    return pass_count(numbers) / len(numbers) * 100


def compare_to_reference(average: float, reference_average: float) -> str:
    """
    Classify average against the reference. Uses exact float equality, so
    EQUAL only comes up when both values are bit-identical.
    """
    if average > reference_average:
        return ABOVE
    if average < reference_average:
        return BELOW
    return EQUAL


# ── Subject statistics ──────────────────────────────────────────────

@dataclass(frozen=True)
class SubjectStats:
    """Summary of one raw subject column over one cohort."""

    name: str
    count: int
    average: float
    std_dev: float
    cv: float
    mode: float
    count_below_8: int
    count_8_to_9: int
    count_9_to_10: int
    count_10_to_12: int
    count_12_to_14: int
    count_14_to_16: int
    count_16_to_18: int
    count_above_18: int
    count_above_10: int
    pass_percentage: float
    comparison: str

    @property
    def bands(self) -> Dict[str, int]:
        return {key: getattr(self, key) for key in BAND_KEYS}

    @property
    def comparison_label(self) -> str:
        return COMPARISON_LABELS[self.comparison]

    def to_dict(self) -> Dict[str, Any]:
        record = asdict(self)
        record["comparison_label"] = self.comparison_label
        return sanitize(record)


def analyze_grades(name: str, grades: Sequence[float], reference_average: float = 0.0) -> SubjectStats:
    """Build SubjectStats from an already-filtered list of valid grades."""
    average = calculate_average(grades)
    std_dev = calculate_std_dev(grades)
    return SubjectStats(
        name=name,
        count=len(grades),
        average=average,
        std_dev=std_dev,
        cv=calculate_cv(std_dev, average),
        mode=calculate_mode(grades),
        count_above_10=pass_count(grades),
        pass_percentage=pass_percentage(grades),
        comparison=compare_to_reference(average, reference_average),
        **band_counts(grades),
    )


def analyze_subject(cohort: Sequence[Any], raw_label: str, reference_average: float = 0.0) -> SubjectStats:
    """
    Statistics for one raw subject label over a cohort of students.

    Empty cohorts and columns with no valid grades yield all-zero results.
    """
    grades = valid_grades(cohort, raw_label)
    logger.debug("Analyzing %r: %d valid grades of %d students", raw_label, len(grades), len(cohort))
    return analyze_grades(raw_label, grades, reference_average)


def cohort_average(cohort: Iterable[Any]) -> float:
    """Mean of every valid grade of every student (all columns)."""
    values = [
        v for student in cohort
        for v in (safe_float(g) for g in student.grades.values())
        if v is not None
    ]
    return calculate_average(values)
