"""
gaps.py — Gender gap analysis.

Computes:
- Male / female counts, term-average means and pass rates
- Gender split per level and for the whole institution
- Per-subject gender comparison (Welch t-test + Cohen's d)
- Only flags gaps where p < 0.05 and |Cohen's d| > 0.2
"""

from typing import Any, Dict, List, Optional, Sequence

import numpy as np
from scipy import stats as sp_stats

from core.gradebook import FEMALE, LEVELS_ORDER, MALE
from core.stats import (
    PASS_MARK,
    analyze_subject,
    calculate_average,
    safe_float,
    sanitize,
    student_values,
    valid_grades,
)
from core.subject_analysis import filter_cohort
from core.subjects import average_key, resolve_official_subjects


def _cohens_d(group_a: np.ndarray, group_b: np.ndarray) -> float:
    """Compute Cohen's d effect size."""
    n_a, n_b = len(group_a), len(group_b)
    if n_a < 2 or n_b < 2:
        return 0.0
    var_a = np.var(group_a, ddof=1)
    var_b = np.var(group_b, ddof=1)
    pooled_std = np.sqrt(((n_a - 1) * var_a + (n_b - 1) * var_b) / (n_a + n_b - 2))
    if pooled_std == 0:
        return 0.0
    return float((np.mean(group_a) - np.mean(group_b)) / pooled_std)


def _effect_size_label(d: float) -> str:
    """Label the effect size."""
    d_abs = abs(d)
    if d_abs < 0.2:
        return "negligible"
    elif d_abs < 0.5:
        return "small"
    elif d_abs < 0.8:
        return "medium"
    else:
        return "large"


def _percent(part: int, whole: int) -> float:
    return part / whole * 100 if whole > 0 else 0.0


def _split_by_gender(students: Sequence[Any]):
    males = [s for s in students if s.gender == MALE]
    females = [s for s in students if s.gender == FEMALE]
    return males, females


# ── Group summaries ─────────────────────────────────────────────────

def _gender_counts(students: Sequence[Any], key: Optional[str]) -> Dict[str, Any]:
    """Gender split and pass counts, measured on the term average."""
    males, females = _split_by_gender(students)
    total = len(students)
    male_passed = sum(1 for v in student_values(males, key) if v >= PASS_MARK)
    female_passed = sum(1 for v in student_values(females, key) if v >= PASS_MARK)
    return {
        "total": total,
        "female_count": len(females),
        "female_percentage": _percent(len(females), total),
        "female_passed": female_passed,
        "female_passed_percentage": _percent(female_passed, len(females)),
        "male_count": len(males),
        "male_percentage": _percent(len(males), total),
        "male_passed": male_passed,
        "male_passed_percentage": _percent(male_passed, len(males)),
    }


def _level_breakdown(students: Sequence[Any], key: Optional[str]) -> List[Dict[str, Any]]:
    rows = []
    for level in LEVELS_ORDER:
        level_students = [s for s in students if s.level == level]
        if not level_students:
            continue
        row = _gender_counts(level_students, key)
        row["level"] = level
        rows.append(row)
    return rows


# ── Per-subject gaps ────────────────────────────────────────────────

def _analyze_gender_gap(name: str, raw: str, males, females) -> Dict[str, Any]:
    male_stats = analyze_subject(males, raw, 0)
    female_stats = analyze_subject(females, raw, 0)

    result = {
        "subject": name,
        "raw_label": raw,
        "male_average": male_stats.average,
        "female_average": female_stats.average,
        "male_pass_count": male_stats.count_above_10,
        "female_pass_count": female_stats.count_above_10,
        "male_pass_rate": male_stats.pass_percentage,
        "female_pass_rate": female_stats.pass_percentage,
        "gap": male_stats.average - female_stats.average,
        "t_statistic": None,
        "p_value": None,
        "effect_size": None,
        "effect_size_label": None,
        "statistically_significant": False,
    }

    male_scores = np.array(valid_grades(males, raw))
    female_scores = np.array(valid_grades(females, raw))
    if len(male_scores) < 2 or len(female_scores) < 2:
        return result

    t_stat, p_value = sp_stats.ttest_ind(male_scores, female_scores, equal_var=False)
    d = _cohens_d(male_scores, female_scores)
    p = safe_float(p_value)
    result.update({
        "t_statistic": safe_float(t_stat),
        "p_value": p,
        "effect_size": d,
        "effect_size_label": _effect_size_label(d),
        "statistically_significant": p is not None and p < 0.05 and abs(d) > 0.2,
    })
    return result


# ── Main Entry Point ───────────────────────────────────────────────

def compute_gender_analysis(
    students: Sequence[Any],
    subjects: Sequence[str],
    level: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Gender comparison for one level (or all). The level and institution
    breakdowns always cover every student.
    """
    key = average_key(subjects)
    cohort = filter_cohort(students, level)
    males, females = _split_by_gender(cohort)

    male_values = student_values(males, key)
    female_values = student_values(females, key)
    male_passed = sum(1 for v in male_values if v >= PASS_MARK)
    female_passed = sum(1 for v in female_values if v >= PASS_MARK)

    return sanitize({
        "male_count": len(males),
        "female_count": len(females),
        "male_average": calculate_average(male_values),
        "female_average": calculate_average(female_values),
        "male_pass_rate": _percent(male_passed, len(males)),
        "female_pass_rate": _percent(female_passed, len(females)),
        "subject_comparison": [
            _analyze_gender_gap(name, raw, males, females)
            for name, raw in resolve_official_subjects(subjects)
        ],
        "level_breakdown": _level_breakdown(students, key),
        "institution_totals": _gender_counts(students, key),
    })
