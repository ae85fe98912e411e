# =============================================================================
# app/auth/ - Supabase Authentication
# =============================================================================
# Routers depend on the aliases in app/dependencies.py (ProfileDep,
# TutorDep); this package provides what they wrap.
# =============================================================================

from app.auth.dependencies import (
    decode_token,
    get_current_profile,
    get_current_user,
    require_tutor,
)
from app.auth.models import AuthUser, Profile, TokenPayload

__all__ = [
    "decode_token",
    "get_current_profile",
    "get_current_user",
    "require_tutor",
    "AuthUser",
    "Profile",
    "TokenPayload",
]
