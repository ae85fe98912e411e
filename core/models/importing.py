# =============================================================================
# core/models/importing.py - Bulk Import Schemas
# =============================================================================
# Parent/student rows read from a CSV upload or a shared Google Sheet,
# and the summary returned after importing them.
# =============================================================================

from pydantic import BaseModel, Field


class ImportRow(BaseModel):
    """
    One parsed spreadsheet row: a parent and one of their children.

    Example:
        {
            "parent_name": "Jane Doe",
            "parent_email": "jane@example.com",
            "parent_phone": "555-0100",
            "student_name": "Max",
            "student_age": 8,
            "student_grade": "3",
            "subjects": ["piano", "math"]
        }
    """
    row_number: int = Field(..., ge=2, description="1-based spreadsheet row (header is row 1)")
    parent_name: str = Field(..., min_length=1)
    parent_email: str = Field(..., min_length=1, description="Lower-cased email")
    parent_phone: str | None = None
    student_name: str = Field(..., min_length=1)
    student_age: int = Field(..., gt=0)
    student_grade: str = Field(default="K")
    subjects: list[str] = Field(default_factory=list)


class ImportSheetRequest(BaseModel):
    """Import from a Google Sheets link shared as 'Anyone with the link'."""
    sheet_url: str = Field(
        ...,
        description="https://docs.google.com/spreadsheets/d/<id>/edit"
    )


class ImportPreview(BaseModel):
    """Rows that would be imported, plus rows that were dropped while parsing."""
    rows: list[ImportRow] = Field(default_factory=list)
    skipped: list[str] = Field(default_factory=list)


class ImportResult(BaseModel):
    """Outcome of an import run."""
    success: bool = False
    parents_created: int = 0
    students_created: int = 0
    errors: list[str] = Field(default_factory=list)
    skipped: list[str] = Field(default_factory=list)
