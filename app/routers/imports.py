# =============================================================================
# app/routers/imports.py - Family Import Endpoints
# =============================================================================
# Imports parents and students from a CSV upload or a shared Google Sheet.
# Each source has a preview endpoint (nothing is written) and a run
# endpoint. Tutor-only.
#
# Columns are read by position after a header row: Parent Name, Parent
# Email, Parent Phone, Student Name, Student Age, Student Grade, Subjects.
# Known subjects are picked out of the Subjects text by substring.
# =============================================================================

import logging
from pathlib import Path as FilePath

from fastapi import APIRouter, File, UploadFile

from app.config import settings
from app.dependencies import TutorDep
from app.exceptions import FileTooLargeError, InvalidFileTypeError
from core.models.importing import ImportPreview, ImportResult, ImportSheetRequest
from core.services.import_service import ImportService

logger = logging.getLogger(__name__)

router = APIRouter()

ALLOWED_EXTENSIONS = [".csv"]


# =============================================================================
# Helper Functions
# =============================================================================

async def _read_upload(file: UploadFile) -> bytes:
    """
    Validate and read an uploaded CSV.

    Raises:
        InvalidFileTypeError: If the file isn't a .csv
        FileTooLargeError: If the file exceeds MAX_UPLOAD_SIZE_MB
    """
    filename = file.filename or ""
    if FilePath(filename).suffix.lower() not in ALLOWED_EXTENSIONS:
        raise InvalidFileTypeError(filename, ALLOWED_EXTENSIONS)

    content = await file.read()
    if len(content) > settings.max_upload_size_bytes:
        size_mb = round(len(content) / (1024 * 1024), 2)
        raise FileTooLargeError(size_mb, settings.MAX_UPLOAD_SIZE_MB)

    logger.info(f"Received import file {filename} ({len(content)} bytes)")
    return content


# =============================================================================
# CSV Upload
# =============================================================================

@router.post("/csv/preview", response_model=ImportPreview)
async def preview_csv(tutor: TutorDep, file: UploadFile = File(..., description="CSV file")):
    """Parse a CSV and show what would be imported."""
    return ImportService.preview_import(await _read_upload(file))


@router.post("/csv", response_model=ImportResult)
async def import_csv(tutor: TutorDep, file: UploadFile = File(..., description="CSV file")):
    """
    Create parents and students from a CSV.

    Existing parents (same email) are reused and students they already have
    are skipped, so re-running an import is safe.
    """
    return ImportService.run_import(await _read_upload(file), tutor_id=tutor.id)


# =============================================================================
# Google Sheets
# =============================================================================

@router.post("/sheet/preview", response_model=ImportPreview)
async def preview_sheet(data: ImportSheetRequest, tutor: TutorDep):
    """The sheet must be shared as 'Anyone with the link can view'."""
    return ImportService.preview_import(ImportService.load_sheet(data.sheet_url))


@router.post("/sheet", response_model=ImportResult)
async def import_sheet(data: ImportSheetRequest, tutor: TutorDep):
    return ImportService.run_import(ImportService.load_sheet(data.sheet_url), tutor_id=tutor.id)
