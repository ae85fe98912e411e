# =============================================================================
# lib/ - Studio Rules and Integrations
# =============================================================================
# Pure rules, no I/O (unit tested directly):
#   billing.py        lesson prices, payment status, prepaid matching
#   recurrence.py     recurring series detection and next dates
#   enrollment.py     group session open/closed and capacity
#   reminders.py      reminder schedule and email copy
#   lesson_groups.py  calendar view of combined sessions
#   worksheets.py     piano note and math worksheet generators
#   importer.py       family CSV / Google Sheets parsing (pandas)
#   reports.py        monthly billing summary and CSV
#
# Integrations:
#   supabase_client.py  database access
#   email_client.py     Resend delivery
# =============================================================================

from lib.supabase_client import SupabaseClient, SupabaseClientError
from lib.utils import ApplicationError, normalize_uuid

__all__ = ["SupabaseClient", "SupabaseClientError", "ApplicationError", "normalize_uuid"]
