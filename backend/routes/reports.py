"""
Report routes — Excel export endpoints.
"""

import json
import logging
import os
import re
import uuid
from pathlib import Path

from fastapi import APIRouter, File, Form, HTTPException, UploadFile
from fastapi.responses import FileResponse
from starlette.background import BackgroundTask

from core.exams import compute_official_exam_analysis
from core.export import (
    candidate_rows,
    gender_comparison_rows,
    level_summary_rows,
    student_report_rows,
    subject_table_rows,
    write_workbook,
)
from core.gaps import compute_gender_analysis
from core.gradebook import Student
from core.profile import compute_student_profile
from core.quarterly import compute_quarterly_report
from core.subject_analysis import compute_subject_table, filter_cohort
from core.templates import fill_template

logger = logging.getLogger(__name__)

router = APIRouter()

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
# Keep report path stable regardless of process working directory.
DEFAULT_REPORTS_DIR = Path(__file__).resolve().parent.parent / "uploads" / "reports"
TABLES = ("subjects", "gender", "official-exams", "quarterly", "student")


def _reports_dir() -> Path:
    path = Path(os.getenv("REPORTS_DIR") or DEFAULT_REPORTS_DIR)
    path.mkdir(parents=True, exist_ok=True)
    return path


def _safe_token(value: str, fallback: str = "item") -> str:
    """Create filesystem-safe token for filenames."""
    token = re.sub(r"[^A-Za-z0-9._-]+", "_", str(value)).strip("._-")
    return token or fallback


def _safe_unlink(path: str):
    """Best-effort file deletion after response is sent."""
    try:
        Path(path).unlink(missing_ok=True)
    except OSError:
        logger.warning("Could not delete report file %s", path)


def _cohort(payload: dict):
    records = payload.get("students")
    if not records:
        raise HTTPException(400, "No students provided.")
    try:
        students = [Student.from_dict(r) for r in records]
    except (TypeError, ValueError) as e:
        raise HTTPException(400, f"Invalid student record: {str(e)}")
    return students, [str(s) for s in payload.get("subjects") or []]


def _export_rows(table: str, students, subjects, payload: dict):
    level = payload.get("level")
    if table == "subjects":
        return subject_table_rows(compute_subject_table(students, subjects, level)["subjects"])
    if table == "gender":
        return gender_comparison_rows(compute_gender_analysis(students, subjects, level)["subject_comparison"])
    if table == "quarterly":
        return level_summary_rows(compute_quarterly_report(students, subjects)["levels"])
    if table == "student":
        if not payload.get("student_id"):
            raise HTTPException(400, "Provide 'student_id'.")
        cohort = filter_cohort(students, level, payload.get("section"))
        profile = compute_student_profile(cohort, subjects, str(payload["student_id"]))
        return student_report_rows(profile) if profile else []
    exams = compute_official_exam_analysis(students, subjects)
    return candidate_rows(exams["candidates"]) if exams else []


@router.post("/excel")
async def excel_export(payload: dict):
    """
    Export an analysis table as an Excel workbook.

    Body: {"students": [...], "subjects": [...], "level": ..., "table": ...}
    where table is one of "subjects" (default), "gender", "official-exams",
    "quarterly" or "student" (with "student_id").
    """
    students, subjects = _cohort(payload)
    table = payload.get("table", "subjects")
    if table not in TABLES:
        raise HTTPException(400, f"Unknown table '{table}'. Use one of {list(TABLES)}.")
    level = payload.get("level")

    rows = _export_rows(table, students, subjects, payload)
    report_id = str(uuid.uuid4())[:8]
    output_path = _reports_dir() / f"{_safe_token(table)}_{report_id}.xlsx"

    if not write_workbook(str(output_path), rows, sheet_name=str(payload.get("sheet_name") or "التقرير")):
        raise HTTPException(404, "Nothing to export for this selection.")

    logger.info("Exported %d rows (%s) to %s", len(rows), table, output_path.name)
    return FileResponse(
        str(output_path),
        media_type=XLSX_MEDIA_TYPE,
        filename=f"{_safe_token(table)}_{_safe_token(level or 'all')}_{report_id}.xlsx",
        background=BackgroundTask(_safe_unlink, str(output_path)),
    )


@router.post("/template")
async def template_fill(
    file: UploadFile = File(...),
    payload: str = Form(...),  # JSON string: {"students": [...], "subjects": [...], "level": ...}
):
    """
    Fill an uploaded report template with subject statistics and send it back.
    The number of cells written is returned in the X-Filled-Cells header.
    """
    ext = Path(file.filename or "").suffix.lower()
    if ext != ".xlsx":
        raise HTTPException(400, f"Unsupported file type: {ext or 'none'}. Use an Excel (.xlsx) template.")
    try:
        data = json.loads(payload)
    except json.JSONDecodeError:
        raise HTTPException(400, "Invalid payload JSON.")
    if not isinstance(data, dict):
        raise HTTPException(400, "Payload must be a JSON object.")

    students, subjects = _cohort(data)
    cohort = filter_cohort(students, data.get("level"))

    report_id = str(uuid.uuid4())[:8]
    template_path = _reports_dir() / f"template_{report_id}.xlsx"
    output_path = _reports_dir() / f"filled_{report_id}.xlsx"
    try:
        with open(template_path, "wb") as f:
            while True:
                chunk = await file.read(1024 * 1024)
                if not chunk:
                    break
                f.write(chunk)
        filled = fill_template(str(template_path), str(output_path), cohort, subjects)
    except Exception as e:
        _safe_unlink(str(output_path))
        raise HTTPException(400, f"Failed to fill template '{file.filename}': {str(e)}")
    finally:
        _safe_unlink(str(template_path))

    return FileResponse(
        str(output_path),
        media_type=XLSX_MEDIA_TYPE,
        filename=f"filled_{report_id}.xlsx",
        headers={"X-Filled-Cells": str(filled)},
        background=BackgroundTask(_safe_unlink, str(output_path)),
    )
