# =============================================================================
# lib/supabase_client.py - Supabase Data Access
# =============================================================================
# One service-role client shared by the API, the worker and the scripts.
# Row Level Security is bypassed, so family scoping happens in core/services.
#
# Tables:
#   parents            parents and the tutor (role column)
#   students           belong to a parent
#   scheduled_lessons  one row per student per lesson; session_id groups rows
#   lesson_sessions    combined / group sessions
#   tutor_settings     rates, reminder days, group session settings
#
# Every failure surfaces as SupabaseClientError; lookups that find nothing
# return None.
#
#   from lib.supabase_client import SupabaseClient
#   lesson = SupabaseClient.fetch_lesson(lesson_id)
# =============================================================================

from __future__ import annotations

import logging
from typing import Any
from uuid import UUID

from supabase import Client, create_client

from app.config import settings
from lib.utils import ApplicationError, normalize_uuid

logger = logging.getLogger(__name__)

# Postgres SQLSTATE raised by unique constraints (one payment per family/month,
# one enrollment per student/session)
UNIQUE_VIOLATION = "23505"

LESSON_WITH_STUDENT = "*, student:students(*)"
STUDENT_WITH_PARENT = "*, parent:parents(*)"


class SupabaseClientError(ApplicationError):
    """A PostgREST call failed."""

    def __init__(self, message: str, code: str = "SUPABASE_ERROR", **kwargs):
        super().__init__(message, code=code, **kwargs)

    @property
    def is_unique_violation(self) -> bool:
        return self.details.get("pg_code") == UNIQUE_VIOLATION or UNIQUE_VIOLATION in self.message


def _failure(action: str, table: str, error: Exception, **details) -> SupabaseClientError:
    return SupabaseClientError(
        message=f"Failed to {action} {table}: {error}",
        code=f"{action.upper()}_FAILED",
        details={"table": table, "pg_code": getattr(error, "code", None), **details},
    )


class SupabaseClient:
    """Class-level access to the shared client plus the lookups services reuse."""

    _instance: Client | None = None

    @classmethod
    def get_client(cls) -> Client:
        if cls._instance is None:
            try:
                cls._instance = create_client(settings.SUPABASE_URL, settings.SUPABASE_SERVICE_KEY)
            except Exception as e:
                raise SupabaseClientError(
                    message=f"Could not create Supabase client: {e}",
                    code="CLIENT_INIT_FAILED",
                    suggestion="Check SUPABASE_URL and SUPABASE_SERVICE_KEY",
                )
            logger.info(f"Supabase client ready for {settings.SUPABASE_URL}")
        return cls._instance

    # -------------------------------------------------------------------------
    # Generic Rows
    # -------------------------------------------------------------------------

    @classmethod
    def _first(cls, table: str, column: str, value: Any, columns: str = "*") -> dict[str, Any] | None:
        try:
            rows = (
                cls.get_client().table(table)
                .select(columns)
                .eq(column, value)
                .limit(1)
                .execute()
            ).data
        except Exception as e:
            raise _failure("fetch", table, e, **{column: value})
        return rows[0] if rows else None

    @classmethod
    def fetch_row(
        cls,
        table: str,
        row_id: str | UUID,
        columns: str = "*",
        key: str = "id",
    ) -> dict[str, Any] | None:
        """
        One row where `key` equals `row_id`, or None.

        `columns` is a PostgREST select, so embeds like
        "*, student:students(*)" work.
        """
        return cls._first(table, key, normalize_uuid(row_id), columns)

    @classmethod
    def insert_row(cls, table: str, data: dict[str, Any]) -> dict[str, Any]:
        """
        Insert and return the stored row (with generated id/timestamps).

        Raises:
            SupabaseClientError: `is_unique_violation` is set for duplicates
        """
        try:
            rows = cls.get_client().table(table).insert(data).execute().data
        except Exception as e:
            raise _failure("insert", table, e)

        if not rows:
            raise SupabaseClientError(f"Insert into {table} returned no row", code="INSERT_NO_DATA")
        return rows[0]

    @classmethod
    def insert_rows(cls, table: str, rows: list[dict[str, Any]]) -> list[dict[str, Any]]:
        if not rows:
            return []
        try:
            return cls.get_client().table(table).insert(rows).execute().data or []
        except Exception as e:
            raise _failure("insert", table, e, rows=len(rows))

    @classmethod
    def update_row(cls, table: str, row_id: str | UUID, data: dict[str, Any]) -> dict[str, Any] | None:
        """Patch one row by id; None if the id matched nothing."""
        try:
            rows = cls.get_client().table(table).update(data).eq("id", normalize_uuid(row_id)).execute().data
        except Exception as e:
            raise _failure("update", table, e, id=normalize_uuid(row_id))
        return rows[0] if rows else None

    @classmethod
    def delete_row(cls, table: str, row_id: str | UUID, key: str = "id") -> None:
        try:
            cls.get_client().table(table).delete().eq(key, normalize_uuid(row_id)).execute()
        except Exception as e:
            raise _failure("delete", table, e, **{key: normalize_uuid(row_id)})

    # -------------------------------------------------------------------------
    # Profiles
    # -------------------------------------------------------------------------

    @classmethod
    def fetch_parent(cls, parent_id: str | UUID) -> dict[str, Any] | None:
        return cls.fetch_row("parents", parent_id)

    @classmethod
    def fetch_parent_by_user_id(cls, user_id: str | UUID) -> dict[str, Any] | None:
        """Profile linked to a Supabase auth user (the JWT `sub`)."""
        return cls.fetch_row("parents", user_id, key="user_id")

    @classmethod
    def fetch_parent_by_email(cls, email: str) -> dict[str, Any] | None:
        """Emails are stored lowercased; the lookup normalizes the same way."""
        return cls._first("parents", "email", email.strip().lower())

    @classmethod
    def fetch_tutor(cls) -> dict[str, Any] | None:
        """The studio's tutor profile. One tutor per deployment."""
        tutor = cls._first("parents", "role", "tutor")
        if tutor is None:
            logger.warning("No profile with role 'tutor'; tutor notifications will be skipped")
        return tutor

    # -------------------------------------------------------------------------
    # Students / Lessons / Sessions
    # -------------------------------------------------------------------------

    @classmethod
    def fetch_student(cls, student_id: str | UUID) -> dict[str, Any] | None:
        return cls.fetch_row("students", student_id, columns=STUDENT_WITH_PARENT)

    @classmethod
    def fetch_lesson(cls, lesson_id: str | UUID) -> dict[str, Any] | None:
        return cls.fetch_row("scheduled_lessons", lesson_id, columns=LESSON_WITH_STUDENT)

    @classmethod
    def fetch_lesson_session(cls, session_id: str | UUID) -> dict[str, Any] | None:
        return cls.fetch_row("lesson_sessions", session_id)

    @classmethod
    def fetch_session_lessons(cls, session_id: str | UUID) -> list[dict[str, Any]]:
        """Every lesson row of a combined or group session."""
        try:
            lessons = (
                cls.get_client().table("scheduled_lessons")
                .select(LESSON_WITH_STUDENT)
                .eq("session_id", normalize_uuid(session_id))
                .execute()
            ).data or []
        except Exception as e:
            raise _failure("fetch", "scheduled_lessons", e, session_id=normalize_uuid(session_id))

        logger.debug(f"Session {session_id} has {len(lessons)} lessons")
        return lessons

    # -------------------------------------------------------------------------
    # Tutor Settings
    # -------------------------------------------------------------------------

    @classmethod
    def fetch_tutor_settings(cls, tutor_id: str | UUID | None = None) -> dict[str, Any] | None:
        """
        Rates, reminder days and group session settings.

        Without a tutor_id the first row is returned. None when the tutor
        never saved settings; callers fall back to the DEFAULT_* config.
        """
        try:
            query = cls.get_client().table("tutor_settings").select("*")
            if tutor_id:
                query = query.eq("tutor_id", normalize_uuid(tutor_id))
            rows = query.limit(1).execute().data or []
        except Exception as e:
            raise _failure("fetch", "tutor_settings", e, tutor_id=str(tutor_id) if tutor_id else None)
        return rows[0] if rows else None
