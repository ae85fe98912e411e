# =============================================================================
# tests/conftest.py - Pytest Configuration
# =============================================================================
# This module provides pytest fixtures and configuration for all tests.
#
# Key features:
# - Sets up mock environment variables before any imports
# - Provides common row fixtures shaped like Supabase responses
# =============================================================================

import os

# =============================================================================
# Set up test environment BEFORE any imports
# =============================================================================
# This must happen before importing app.config which loads settings immediately

os.environ.setdefault("SUPABASE_URL", "https://test-project.supabase.co")
os.environ.setdefault("SUPABASE_SERVICE_KEY", "test-service-key")
os.environ.setdefault("SUPABASE_JWT_SECRET", "test-jwt-secret")
os.environ.setdefault("RESEND_API_KEY", "")
os.environ.setdefault("TIMEZONE", "America/Los_Angeles")
os.environ.setdefault("ENVIRONMENT", "development")
os.environ.setdefault("DEBUG", "true")

import pytest

TUTOR_ID = "00000000-0000-4000-8000-000000000001"
PARENT_ID = "00000000-0000-4000-8000-000000000002"
STUDENT_ID = "00000000-0000-4000-8000-000000000003"
SESSION_ID = "00000000-0000-4000-8000-000000000004"
LESSON_ID = "00000000-0000-4000-8000-000000000005"
PAYMENT_ID = "00000000-0000-4000-8000-000000000006"


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture
def tutor_row():
    return {
        "id": TUTOR_ID,
        "user_id": "00000000-0000-4000-9000-000000000001",
        "name": "Ms. Rivera",
        "email": "tutor@example.com",
        "role": "tutor",
        "tutor_id": None,
    }


@pytest.fixture
def parent_row():
    return {
        "id": PARENT_ID,
        "user_id": "00000000-0000-4000-9000-000000000002",
        "name": "Jane Doe",
        "email": "jane@example.com",
        "phone": "555-0100",
        "role": "parent",
        "tutor_id": TUTOR_ID,
        "preferences": {},
        "prepaid_subjects": [],
    }


@pytest.fixture
def student_row(parent_row):
    return {
        "id": STUDENT_ID,
        "parent_id": PARENT_ID,
        "name": "Max",
        "age": 8,
        "grade_level": "3",
        "subjects": ["piano", "math"],
        "parent": parent_row,
    }


@pytest.fixture
def tutor_settings():
    """Tutor settings as stored in tutor_settings."""
    return {
        "tutor_id": TUTOR_ID,
        "default_rate": 45,
        "default_base_duration": 60,
        "subject_rates": {
            "piano": {"rate": 35, "base_duration": 30},
            "math": {"rate": 50, "base_duration": 60},
        },
        "reminder_settings": {
            "enabled": True,
            "due_day_of_month": 7,
            "friendly_reminder_days_before": 3,
        },
    }
