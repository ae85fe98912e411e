# =============================================================================
# tests/test_importer.py - Spreadsheet Import Tests
# =============================================================================
# Tests for lib/importer.py parsing and core/services/import_service.py
# (Supabase mocked).
#
# Run with: poetry run pytest tests/test_importer.py -v
# =============================================================================

from unittest.mock import MagicMock, patch

import httpx
import pytest

from app.exceptions import InvalidImportError
from lib.importer import (
    ImportParseError,
    fetch_sheet_csv,
    group_rows_by_parent,
    parse_import_csv,
    parse_subjects,
    sheets_csv_url,
)

HEADER = "Parent Name,Parent Email,Parent Phone,Student Name,Student Age,Student Grade,Subjects\n"

FAMILY_CSV = (
    HEADER
    + "Jane Doe,Jane@Example.com,555-0100,Max,8,3,Piano & Math\n"
    + "Jane Doe,jane@example.com,555-0100,Lily,6 years,1,reading\n"
    + "Bob Roe,bob@example.com,,Sam,10,,both\n"
)


# =============================================================================
# Parsing
# =============================================================================

class TestParseSubjects:

    @pytest.mark.parametrize("raw,expected", [
        ("Piano", ["piano"]),
        ("Piano & Reading", ["piano", "reading"]),
        ("both", ["piano", "math"]),
        ("Chess", ["chess"]),
        ("  ", []),
    ])
    def test_detection(self, raw, expected):
        assert parse_subjects(raw) == expected


class TestParseImportCsv:

    def test_parses_rows(self):
        rows, skipped = parse_import_csv(FAMILY_CSV)

        assert skipped == []
        assert len(rows) == 3
        assert rows[0].row_number == 2
        assert rows[0].parent_email == "jane@example.com"
        assert rows[0].subjects == ["piano", "math"]
        assert rows[1].student_age == 6
        assert rows[2].student_grade == "K"
        assert rows[2].parent_phone is None

    def test_bytes_with_bom(self):
        rows, _ = parse_import_csv(("\ufeff" + FAMILY_CSV).encode("utf-8"))
        assert len(rows) == 3

    def test_missing_fields_are_skipped(self):
        content = HEADER + "Jane Doe,jane@example.com,,,8,3,piano\n" + "Bob,bob@example.com,,Sam,0,,math\n"
        rows, skipped = parse_import_csv(content)

        assert rows == []
        assert skipped == ["Row 2: missing required fields", "Row 3: missing required fields"]

    def test_blank_rows_ignored(self):
        content = HEADER + ",,,,,,\n" + "Bob Roe,bob@example.com,,Sam,10,,math\n"
        rows, skipped = parse_import_csv(content)
        assert len(rows) == 1
        assert skipped == []

    def test_empty_content(self):
        assert parse_import_csv("") == ([], [])

    def test_too_few_columns(self):
        with pytest.raises(ImportParseError):
            parse_import_csv("Name,Email\nJane,jane@example.com\n")


class TestGroupRowsByParent:

    def test_groups_by_email_and_drops_invalid(self):
        content = FAMILY_CSV + "Bad Email,not-an-email,,Kid,7,2,math\n"
        rows, _ = parse_import_csv(content)

        groups, errors = group_rows_by_parent(rows)

        assert list(groups) == ["jane@example.com", "bob@example.com"]
        assert [r.student_name for r in groups["jane@example.com"]] == ["Max", "Lily"]
        assert errors == ["Invalid email for Bad Email: not-an-email"]


# =============================================================================
# Google Sheets
# =============================================================================

class TestGoogleSheets:

    def test_export_url(self):
        url = "https://docs.google.com/spreadsheets/d/abc-123_XY/edit#gid=0"
        assert sheets_csv_url(url) == "https://docs.google.com/spreadsheets/d/abc-123_XY/export?format=csv"

    def test_not_a_sheet(self):
        assert sheets_csv_url("https://example.com/file.csv") is None
        with pytest.raises(ImportParseError):
            fetch_sheet_csv("https://example.com/file.csv")

    def test_fetch_failure(self):
        with patch("lib.importer.httpx.get", side_effect=httpx.ConnectError("boom")):
            with pytest.raises(ImportParseError) as exc_info:
                fetch_sheet_csv("https://docs.google.com/spreadsheets/d/abc/edit")
        assert "Anyone with the link" in exc_info.value.suggestion

    def test_fetch_success(self):
        response = MagicMock(text=FAMILY_CSV)
        with patch("lib.importer.httpx.get", return_value=response) as mock_get:
            assert fetch_sheet_csv("https://docs.google.com/spreadsheets/d/abc/edit") == FAMILY_CSV
        assert mock_get.call_args.args[0].endswith("/d/abc/export?format=csv")


# =============================================================================
# Import Service
# =============================================================================

class TestImportService:

    def test_creates_parents_and_students(self):
        from core.services.import_service import ImportService

        with patch("core.services.import_service.SupabaseClient") as mock_client:
            mock_client.fetch_parent_by_email.return_value = None
            mock_client.insert_row.side_effect = lambda table, row: {"id": f"{table}-{row['name']}", **row}
            mock_client.get_client.return_value.table.return_value.select.return_value \
                .eq.return_value.execute.return_value.data = []

            result = ImportService.run_import(FAMILY_CSV, tutor_id="00000000-0000-4000-8000-000000000001")

        assert result.success is True
        assert result.parents_created == 2
        assert result.students_created == 3
        tables = [c.args[0] for c in mock_client.insert_row.call_args_list]
        assert tables.count("parents") == 2
        assert tables.count("students") == 3

    def test_existing_parent_and_student_reused(self):
        from core.services.import_service import ImportService

        with patch("core.services.import_service.SupabaseClient") as mock_client:
            mock_client.fetch_parent_by_email.return_value = {"id": "parent-1", "email": "jane@example.com"}
            mock_client.insert_row.side_effect = lambda table, row: {"id": "new", **row}
            mock_client.get_client.return_value.table.return_value.select.return_value \
                .eq.return_value.execute.return_value.data = [{"name": "max"}]

            result = ImportService.run_import(HEADER + "Jane Doe,jane@example.com,,Max,8,3,piano\n")

        assert result.parents_created == 0
        assert result.students_created == 0
        mock_client.insert_row.assert_not_called()
        assert result.skipped == [
            'Parent "Jane Doe" (jane@example.com) already exists',
            'Student "Max" already exists for Jane Doe',
        ]

    def test_student_failure_is_recorded(self):
        from core.services.import_service import ImportService

        with patch("core.services.import_service.SupabaseClient") as mock_client:
            mock_client.fetch_parent_by_email.return_value = {"id": "parent-1"}
            mock_client.insert_row.side_effect = RuntimeError("insert failed")
            mock_client.get_client.return_value.table.return_value.select.return_value \
                .eq.return_value.execute.return_value.data = []

            result = ImportService.run_import(HEADER + "Jane Doe,jane@example.com,,Max,8,3,piano\n")

        assert result.success is False
        assert result.errors == ["Failed to create student Max: insert failed"]

    def test_parse_error_becomes_api_error(self):
        from core.services.import_service import ImportService

        with pytest.raises(InvalidImportError):
            ImportService.preview_import("Name,Email\nJane,jane@example.com\n")

    def test_preview(self):
        from core.services.import_service import ImportService

        preview = ImportService.preview_import(FAMILY_CSV + "X,bad,,Kid,7,,math\n")

        assert [r.student_name for r in preview.rows] == ["Max", "Lily", "Sam"]
        assert preview.skipped == ["Invalid email for X: bad"]
