# =============================================================================
# lib/importer.py - Spreadsheet Import Parsing
# =============================================================================
# Turns a parents/students spreadsheet into ImportRow objects.
#
# Expected columns (by position, header row required):
#   Parent Name, Parent Email, Parent Phone, Student Name, Student Age,
#   Student Grade, Subjects
#
# Sources:
# - CSV bytes uploaded by the tutor
# - A Google Sheets link, converted to its CSV export URL and fetched
# =============================================================================

from __future__ import annotations

import io
import logging
import re

import httpx
import pandas as pd

from core.models.importing import ImportRow
from lib.utils import ApplicationError

logger = logging.getLogger(__name__)

KNOWN_SUBJECTS = ("piano", "math", "reading", "speech", "english")

SHEETS_ID_PATTERN = re.compile(r"/spreadsheets/d/([a-zA-Z0-9-_]+)")
EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

# Minimum number of columns the sheet must have
MIN_COLUMNS = 5

FETCH_TIMEOUT_SECONDS = 15


class ImportParseError(ApplicationError):
    """Spreadsheet couldn't be fetched or contained no usable rows."""

    def __init__(self, message: str, suggestion: str | None = None):
        super().__init__(message, code="IMPORT_PARSE_FAILED", suggestion=suggestion)


# =============================================================================
# Google Sheets
# =============================================================================

def sheets_csv_url(url: str) -> str | None:
    """
    Convert a Google Sheets link to the CSV export URL of its first sheet.

    Example:
        sheets_csv_url("https://docs.google.com/spreadsheets/d/abc123/edit#gid=0")
        # "https://docs.google.com/spreadsheets/d/abc123/export?format=csv"
    """
    match = SHEETS_ID_PATTERN.search(url)
    if not match:
        return None
    return f"https://docs.google.com/spreadsheets/d/{match.group(1)}/export?format=csv"


def fetch_sheet_csv(url: str) -> str:
    """
    Download a shared Google Sheet as CSV text.

    Raises:
        ImportParseError: If the URL isn't a sheet link or the fetch fails
    """
    csv_url = sheets_csv_url(url)
    if not csv_url:
        raise ImportParseError(
            "Invalid Google Sheets URL",
            suggestion="Use a URL like https://docs.google.com/spreadsheets/d/YOUR_ID/edit",
        )

    try:
        response = httpx.get(csv_url, timeout=FETCH_TIMEOUT_SECONDS, follow_redirects=True)
        response.raise_for_status()
    except httpx.HTTPError as e:
        logger.warning(f"Failed to fetch sheet {csv_url}: {e}")
        raise ImportParseError(
            "Failed to fetch spreadsheet",
            suggestion='Make sure sharing is set to "Anyone with the link can view"',
        )

    logger.debug(f"Fetched {len(response.text)} bytes from {csv_url}")
    return response.text


# =============================================================================
# Parsing
# =============================================================================

def parse_subjects(raw: str) -> list[str]:
    """
    Detect subjects in a free-text cell.

    Known subjects are matched by substring ("Piano & Reading" -> piano,
    reading). "both" means piano + math. Unrecognized text is kept as-is.
    """
    text = raw.strip().lower()
    if not text:
        return []
    if text == "both":
        return ["piano", "math"]

    subjects = [s for s in KNOWN_SUBJECTS if s in text]
    return subjects or [text]


def is_valid_email(email: str) -> bool:
    return bool(EMAIL_PATTERN.match(email))


def _parse_age(value: str) -> int:
    match = re.match(r"\s*(\d+)", value or "")
    return int(match.group(1)) if match else 0


def parse_import_csv(content: str | bytes) -> tuple[list[ImportRow], list[str]]:
    """
    Parse spreadsheet CSV into import rows.

    Returns:
        (rows, skipped) where skipped describes rows dropped for missing
        parent name/email, student name or a positive age.
    """
    if isinstance(content, bytes):
        content = content.decode("utf-8-sig", errors="replace")

    if not content.strip():
        return [], []

    try:
        df = pd.read_csv(
            io.StringIO(content),
            dtype=str,
            keep_default_na=False,
            skip_blank_lines=True,
            header=0,
        )
    except (pd.errors.ParserError, pd.errors.EmptyDataError) as e:
        raise ImportParseError(f"Could not read CSV: {e}")

    if df.shape[1] < MIN_COLUMNS:
        raise ImportParseError(
            f"Expected at least {MIN_COLUMNS} columns, found {df.shape[1]}",
            suggestion=(
                "Expected columns: Parent Name, Parent Email, Parent Phone, "
                "Student Name, Student Age, Student Grade, Subjects"
            ),
        )

    rows: list[ImportRow] = []
    skipped: list[str] = []

    for index, values in enumerate(df.itertuples(index=False, name=None)):
        row_number = index + 2
        cells = ["" if pd.isna(v) else str(v).strip() for v in values]
        if not any(cells):
            continue
        cells += [""] * (7 - len(cells))

        parent_name = cells[0]
        parent_email = cells[1].lower()
        student_name = cells[3]
        student_age = _parse_age(cells[4])

        if not (parent_name and parent_email and student_name and student_age > 0):
            skipped.append(f"Row {row_number}: missing required fields")
            continue

        rows.append(ImportRow(
            row_number=row_number,
            parent_name=parent_name,
            parent_email=parent_email,
            parent_phone=cells[2] or None,
            student_name=student_name,
            student_age=student_age,
            student_grade=cells[5] or "K",
            subjects=parse_subjects(cells[6]),
        ))

    logger.info(f"Parsed {len(rows)} import rows ({len(skipped)} skipped)")
    return rows, skipped


def group_rows_by_parent(
    rows: list[ImportRow],
) -> tuple[dict[str, list[ImportRow]], list[str]]:
    """
    Group rows by parent email, dropping invalid emails.

    Returns:
        (email -> rows in file order, error messages for invalid emails)
    """
    groups: dict[str, list[ImportRow]] = {}
    errors: list[str] = []

    for row in rows:
        if not is_valid_email(row.parent_email):
            errors.append(f"Invalid email for {row.parent_name}: {row.parent_email}")
            continue
        groups.setdefault(row.parent_email, []).append(row)

    return groups, errors
