"""
subject_analysis.py — Per-subject views over a cohort.

Computes:
- Official subject table for a level (canonical order, vs. level average)
- One subject compared across the sections of a level
- Section × subject performance matrix
- Category distributions with sorting / manual ordering
"""

import logging
from typing import Any, Dict, List, Optional, Sequence

from core.stats import (
    PASS_MARK,
    analyze_subject,
    calculate_average,
    calculate_cv,
    calculate_std_dev,
    cohort_average,
    sanitize,
    valid_grades,
)
from core.subjects import (
    ENGLISH_NAMES,
    OFFICIAL_ORDER,
    canonical_name,
    resolve_official_subjects,
    resolve_subject,
)

logger = logging.getLogger(__name__)

ALL = "all"


def filter_cohort(students: Sequence[Any], level: Optional[str] = None, section: Optional[str] = None) -> List[Any]:
    """Students of one level / section; None or "all" keeps everyone."""
    return [
        s for s in students
        if (not level or level == ALL or s.level == level)
        and (not section or section == ALL or s.section == section)
    ]


def sections_of(students: Sequence[Any]) -> List[str]:
    return sorted({s.section for s in students})


def levels_of(students: Sequence[Any]) -> List[str]:
    """Levels in first-seen order."""
    return list(dict.fromkeys(s.level for s in students))


def _subject_row(name: str, stats) -> Dict[str, Any]:
    row = stats.to_dict()
    row["display_name"] = name
    row["english_name"] = ENGLISH_NAMES[name]
    row["official_index"] = OFFICIAL_ORDER.index(name)
    return row


# ── Official table ──────────────────────────────────────────────────

def compute_subject_table(
    students: Sequence[Any],
    subjects: Sequence[str],
    level: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Statistics for every resolvable canonical subject of a level, in
    official order, compared with the level's overall grade average.
    """
    cohort = filter_cohort(students, level)
    reference = cohort_average(cohort)

    rows = [
        _subject_row(name, analyze_subject(cohort, raw, reference))
        for name, raw in resolve_official_subjects(subjects)
    ]
    logger.debug("Subject table for %s: %d students, %d subjects", level or ALL, len(cohort), len(rows))
    return sanitize({
        "level": level or ALL,
        "student_count": len(cohort),
        "reference_average": reference,
        "subjects": rows,
    })


# ── Cross-section comparison ────────────────────────────────────────

def compute_section_comparison(
    students: Sequence[Any],
    subjects: Sequence[str],
    subject: str,
    level: Optional[str] = None,
) -> Dict[str, Any]:
    """One canonical subject across every section of a level."""
    cohort = filter_cohort(students, level)
    raw = resolve_subject(subject, subjects)

    sections = []
    if raw is not None:
        for section in sections_of(cohort):
            grades = valid_grades(filter_cohort(cohort, section=section), raw)
            avg = calculate_average(grades)
            pass_rate = sum(1 for g in grades if g >= PASS_MARK) / len(grades) * 100 if grades else 0
            sections.append({
                "section": section,
                "average": round(avg, 2),
                "pass_rate": round(pass_rate, 1),
                "cv": round(calculate_cv(calculate_std_dev(grades), avg), 1),
                "count": len(grades),
            })

    return sanitize({
        "subject": canonical_name(subject) or subject,
        "raw_label": raw,
        "sections": sections,
        "level_average": calculate_average([s["average"] for s in sections]),
    })


def compute_performance_matrix(
    students: Sequence[Any],
    subjects: Sequence[str],
    level: Optional[str] = None,
) -> Dict[str, Any]:
    """Mean grade per (subject, section); sections with no grades show 0."""
    cohort = filter_cohort(students, level)
    sections = sections_of(cohort)

    rows = []
    for name, raw in resolve_official_subjects(subjects, include_average=False):
        row = {"subject": name, "sections": {}}
        for section in sections:
            grades = valid_grades(filter_cohort(cohort, section=section), raw)
            row["sections"][section] = calculate_average(grades)
        rows.append(row)

    return sanitize({"sections": sections, "rows": rows})


# ── Category distributions ──────────────────────────────────────────

SORT_KEYS = {
    "official", "display_name", "average", "std_dev", "cv", "mode",
    "count_above_10", "pass_percentage", "count_below_8", "count_8_to_9",
    "count_9_to_10", "count_10_to_12", "count_12_to_14", "count_14_to_16",
    "count_16_to_18", "count_above_18",
}


def compute_category_analysis(
    students: Sequence[Any],
    subjects: Sequence[str],
    level: Optional[str] = None,
    sort_by: str = "official",
    descending: bool = False,
    manual_order: Optional[Sequence[str]] = None,
) -> List[Dict[str, Any]]:
    """
    Band distribution of every resolvable subject. Rows follow the official
    order unless sorted by a statistic or placed by manual_order.
    """
    if sort_by not in SORT_KEYS:
        raise ValueError(f"Unsupported sort key: {sort_by}")

    cohort = filter_cohort(students, level)
    rows = [
        _subject_row(name, analyze_subject(cohort, raw, 0))
        for name, raw in resolve_official_subjects(subjects)
    ]

    if manual_order:
        order = [canonical_name(n) or n for n in manual_order]
        # Subjects missing from the manual order go last, official order kept.
        rows.sort(key=lambda r: order.index(r["display_name"]) if r["display_name"] in order else len(order))
    elif sort_by == "official":
        rows.sort(key=lambda r: r["official_index"], reverse=descending)
    else:
        rows.sort(key=lambda r: r[sort_by], reverse=descending)

    return rows
