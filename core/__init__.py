# =============================================================================
# core/ - Studio Workflows
# =============================================================================
# models/    request/response schemas (Pydantic)
# services/  the workflows: family records, calendar, group enrollment,
#            lesson requests, billing, reminders, notifications,
#            worksheet assignments, import
#
# Services raise app.exceptions errors and read/write through
# lib.supabase_client. Pure rules (pricing, recurrence, capacity) live in lib/.
# =============================================================================
