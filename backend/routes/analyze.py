"""
Analyze routes — analytics API endpoints.

Every endpoint takes the cohort as {"students": [...], "subjects": [...]}
plus its own filters.
"""

from typing import List, Tuple

from fastapi import APIRouter, HTTPException

from core.exams import compute_official_exam_analysis
from core.gaps import compute_gender_analysis
from core.gradebook import Student
from core.levels import compute_level_analysis, compute_level_honor_roll
from core.orientation import Y3_Y4_WEIGHTED, compute_orientation
from core.profile import compute_student_profile
from core.quarterly import compute_quarterly_report
from core.remedial import compute_remedial_group, compute_repeater_analysis
from core.stats import analyze_subject, cohort_average, safe_float
from core.subject_analysis import (
    compute_category_analysis,
    compute_performance_matrix,
    compute_section_comparison,
    compute_subject_table,
    filter_cohort,
)
from core.subjects import canonical_name, resolve_official_subjects, resolve_subject, unmatched_subjects

router = APIRouter()


def _subjects_from_payload(payload: dict) -> List[str]:
    subjects = payload.get("subjects") or []
    if not isinstance(subjects, list):
        raise HTTPException(400, "'subjects' must be a list of column headers.")
    return [str(s) for s in subjects]


def _cohort_from_payload(payload: dict) -> Tuple[List[Student], List[str]]:
    """Extract students and raw subject labels from request payload."""
    records = payload.get("students")
    if not records:
        raise HTTPException(400, "No students provided.")
    try:
        students = [Student.from_dict(r) for r in records]
    except (TypeError, ValueError) as e:
        raise HTTPException(400, f"Invalid student record: {str(e)}")
    return students, _subjects_from_payload(payload)


def _canonical_or_404(payload: dict) -> str:
    subject = payload.get("subject")
    if not subject:
        raise HTTPException(400, "Provide 'subject'.")
    name = canonical_name(str(subject))
    if name is None:
        raise HTTPException(404, f"Unknown subject '{subject}'.")
    return name


@router.post("/resolve")
async def resolve(payload: dict):
    """
    Raw column header for one canonical subject, or every binding when no
    subject is given.
    """
    subjects = _subjects_from_payload(payload)
    if payload.get("subject"):
        name = _canonical_or_404(payload)
        return {"subject": name, "raw_label": resolve_subject(name, subjects)}

    return {
        "bindings": [{"subject": name, "raw_label": raw} for name, raw in resolve_official_subjects(subjects)],
        "unmatched": unmatched_subjects(subjects),
    }


@router.post("/subject")
async def subject_stats(payload: dict):
    """Statistics for one canonical subject over a level."""
    students, subjects = _cohort_from_payload(payload)
    name = _canonical_or_404(payload)
    cohort = filter_cohort(students, payload.get("level"))

    raw = resolve_subject(name, subjects)
    if raw is None:
        return {"subject": name, "raw_label": None, "stats": None}

    reference = safe_float(payload.get("reference_average"))
    if reference is None:
        reference = cohort_average(cohort)
    return {
        "subject": name,
        "raw_label": raw,
        "stats": analyze_subject(cohort, raw, reference).to_dict(),
    }


@router.post("/subjects")
async def subjects_table(payload: dict):
    """Official subject table for a level."""
    students, subjects = _cohort_from_payload(payload)
    return compute_subject_table(students, subjects, payload.get("level"))


@router.post("/sections")
async def sections(payload: dict):
    """One subject compared across the sections of a level."""
    students, subjects = _cohort_from_payload(payload)
    name = _canonical_or_404(payload)
    return compute_section_comparison(students, subjects, name, payload.get("level"))


@router.post("/matrix")
async def matrix(payload: dict):
    """Section × subject performance matrix."""
    students, subjects = _cohort_from_payload(payload)
    return compute_performance_matrix(students, subjects, payload.get("level"))


@router.post("/gender")
async def gender(payload: dict):
    """Gender comparison: counts, pass rates, per-subject gaps."""
    students, subjects = _cohort_from_payload(payload)
    return compute_gender_analysis(students, subjects, payload.get("level"))


@router.post("/levels")
async def levels(payload: dict):
    """Institution-wide results split by level, with the honor roll."""
    students, subjects = _cohort_from_payload(payload)
    return compute_level_analysis(students, subjects)


@router.post("/categories")
async def categories(payload: dict):
    """Band distribution per subject, sortable or manually ordered."""
    students, subjects = _cohort_from_payload(payload)
    try:
        rows = compute_category_analysis(
            students,
            subjects,
            level=payload.get("level"),
            sort_by=payload.get("sort_by", "official"),
            descending=bool(payload.get("descending", False)),
            manual_order=payload.get("manual_order"),
        )
    except ValueError as e:
        raise HTTPException(400, str(e))
    return {"subjects": rows}


@router.post("/remedial")
async def remedial(payload: dict):
    """Subject failure profile of a hand-picked group of students."""
    students, subjects = _cohort_from_payload(payload)
    student_ids = payload.get("student_ids")
    if not student_ids:
        raise HTTPException(400, "Provide 'student_ids'.")
    return compute_remedial_group(students, subjects, [str(i) for i in student_ids])


@router.post("/repeaters")
async def repeaters(payload: dict):
    """Repeating students and whether they pass now."""
    students, subjects = _cohort_from_payload(payload)
    return compute_repeater_analysis(students, subjects, payload.get("level"), payload.get("section"))


@router.post("/official-exams")
async def official_exams(payload: dict):
    """Exam outlook for fourth-year candidates."""
    students, subjects = _cohort_from_payload(payload)
    result = compute_official_exam_analysis(students, subjects)
    if result is None:
        raise HTTPException(404, "No fourth-year students found.")
    return result


@router.post("/orientation")
async def orientation(payload: dict):
    """Predicted stream for fourth-year students."""
    students, subjects = _cohort_from_payload(payload)
    try:
        return compute_orientation(
            students,
            subjects,
            level=payload.get("level"),
            mode=payload.get("mode", Y3_Y4_WEIGHTED),
        )
    except ValueError as e:
        raise HTTPException(400, str(e))


@router.post("/quarterly")
async def quarterly(payload: dict):
    """Term report of the institution: levels, pass rates, subject highlights."""
    students, subjects = _cohort_from_payload(payload)
    return compute_quarterly_report(students, subjects)


@router.post("/honor-roll")
async def honor_roll(payload: dict):
    """Top students of one level."""
    students, subjects = _cohort_from_payload(payload)
    level = payload.get("level")
    if not level:
        raise HTTPException(400, "Provide 'level'.")
    return {"level": level, "students": compute_level_honor_roll(students, subjects, level)}


@router.post("/student/{student_id}")
async def student_profile(student_id: str, payload: dict):
    """One student's domains and per-subject gaps against the class."""
    students, subjects = _cohort_from_payload(payload)
    cohort = filter_cohort(students, payload.get("level"), payload.get("section"))
    profile = compute_student_profile(cohort, subjects, student_id)
    if profile is None:
        raise HTTPException(404, f"Student '{student_id}' not found.")
    return profile
