"""
Gradebook routes — sheet ingestion endpoints.
"""

import logging
import uuid
from pathlib import Path

from fastapi import APIRouter, File, HTTPException, UploadFile

from core.gradebook import parse_sheets, read_workbook, validate_gradebook

logger = logging.getLogger(__name__)

router = APIRouter()

# Keep upload path stable regardless of process working directory.
UPLOAD_DIR = Path(__file__).resolve().parent.parent / "uploads"


def _gradebook_response(sheets) -> dict:
    students, subjects = parse_sheets(sheets)
    return {
        "students": [s.to_dict() for s in students],
        "subjects": subjects,
        "issues": validate_gradebook(students, subjects),
        "sheet_count": len(sheets),
    }


@router.post("/parse")
async def parse(payload: dict):
    """Parse sheets sent as row grids: {"sheets": [[row, ...], ...]}."""
    sheets = payload.get("sheets")
    if not sheets or not isinstance(sheets, list):
        raise HTTPException(400, "No sheets provided.")
    try:
        return _gradebook_response(sheets)
    except ValueError as e:
        raise HTTPException(400, str(e))


@router.post("/upload")
async def upload(file: UploadFile = File(...)):
    """
    Upload an .xlsx gradebook exported from the digitization platform.
    The file is deleted as soon as it has been parsed.
    """
    ext = Path(file.filename or "").suffix.lower()
    if ext != ".xlsx":
        raise HTTPException(400, f"Unsupported file type: {ext or 'none'}. Use an Excel (.xlsx) gradebook.")

    UPLOAD_DIR.mkdir(exist_ok=True)
    save_path = UPLOAD_DIR / f"{uuid.uuid4()}{ext}"
    try:
        with open(save_path, "wb") as f:
            while True:
                chunk = await file.read(1024 * 1024)
                if not chunk:
                    break
                f.write(chunk)

        result = _gradebook_response(read_workbook(str(save_path)))
        logger.info("Parsed upload %s: %d students", file.filename, len(result["students"]))
        result["filename"] = file.filename
        return result
    except Exception as e:
        raise HTTPException(400, f"Failed to process upload '{file.filename}': {str(e)}")
    finally:
        save_path.unlink(missing_ok=True)
