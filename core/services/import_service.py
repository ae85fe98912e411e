# =============================================================================
# core/services/import_service.py - Bulk Family Import
# =============================================================================
# Imports parents and students from a CSV upload or a shared Google Sheet.
#
# Rows are grouped by parent email. An existing parent with the same email
# is reused, and a student the parent already has (same name) is left alone,
# so running an import twice doesn't create duplicates; both are reported
# in the result's skipped list.
# =============================================================================

import logging
from typing import Any
from uuid import UUID

from lib.supabase_client import SupabaseClient
from lib.importer import ImportParseError, fetch_sheet_csv, group_rows_by_parent, parse_import_csv
from lib.utils import normalize_uuid
from core.models.importing import ImportPreview, ImportResult, ImportRow
from app.exceptions import InvalidImportError

logger = logging.getLogger(__name__)


class ImportService:
    """Service for spreadsheet imports."""

    @staticmethod
    def _parse(content: str | bytes) -> tuple[list[ImportRow], list[str]]:
        try:
            return parse_import_csv(content)
        except ImportParseError as e:
            raise InvalidImportError(e.message, suggestion=e.suggestion)

    @staticmethod
    def load_sheet(sheet_url: str) -> str:
        """
        Fetch a Google Sheet as CSV text.

        Raises:
            InvalidImportError: If the link is wrong or the sheet isn't shared
        """
        try:
            return fetch_sheet_csv(sheet_url)
        except ImportParseError as e:
            raise InvalidImportError(e.message, suggestion=e.suggestion)

    @staticmethod
    def preview_import(content: str | bytes) -> ImportPreview:
        """Rows that would be imported; dropped rows are listed in `skipped`."""
        rows, skipped = ImportService._parse(content)
        groups, errors = group_rows_by_parent(rows)
        valid = [row for group in groups.values() for row in group]
        valid.sort(key=lambda r: r.row_number)
        return ImportPreview(rows=valid, skipped=skipped + errors)

    @staticmethod
    def run_import(content: str | bytes, tutor_id: str | UUID | None = None) -> ImportResult:
        """
        Create parents and students from spreadsheet content.

        Failures for one family are recorded in `errors` and don't stop the
        rest of the import.
        """
        rows, skipped = ImportService._parse(content)
        groups, errors = group_rows_by_parent(rows)
        result = ImportResult(skipped=skipped, errors=errors)

        for email, family_rows in groups.items():
            first = family_rows[0]
            try:
                parent = SupabaseClient.fetch_parent_by_email(email)
                if not parent:
                    parent = SupabaseClient.insert_row("parents", {
                        "name": first.parent_name,
                        "email": email,
                        "phone": first.parent_phone,
                        "role": "parent",
                        "tutor_id": normalize_uuid(tutor_id) if tutor_id else None,
                    })
                    result.parents_created += 1
                    logger.info(f"Import created parent {parent['id']} ({email})")
                else:
                    result.skipped.append(f"Parent \"{first.parent_name}\" ({email}) already exists")

                existing = ImportService._student_names(parent["id"])
                for row in family_rows:
                    if row.student_name.lower() in existing:
                        result.skipped.append(f"Student \"{row.student_name}\" already exists for {first.parent_name}")
                        continue
                    try:
                        SupabaseClient.insert_row("students", {
                            "parent_id": parent["id"],
                            "name": row.student_name,
                            "age": row.student_age,
                            "grade_level": row.student_grade,
                            "subjects": row.subjects,
                        })
                        existing.add(row.student_name.lower())
                        result.students_created += 1
                    except Exception as e:
                        logger.warning(f"Import failed for student on row {row.row_number}: {e}")
                        result.errors.append(f"Failed to create student {row.student_name}: {e}")

            except Exception as e:
                logger.warning(f"Import failed for parent {email}: {e}")
                result.errors.append(f"Error processing {first.parent_name}: {e}")

        result.success = not result.errors
        logger.info(
            f"Import finished: {result.parents_created} parents, {result.students_created} students, "
            f"{len(result.errors)} errors, {len(result.skipped)} skipped"
        )
        return result

    @staticmethod
    def _student_names(parent_id: str) -> set[str]:
        client = SupabaseClient.get_client()
        response = (
            client.table("students")
            .select("name")
            .eq("parent_id", parent_id)
            .execute()
        )
        return {(s.get("name") or "").lower() for s in response.data or []}
