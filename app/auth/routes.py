# =============================================================================
# app/auth/routes.py - Auth Endpoints
# =============================================================================
# Sign-up and login happen client-side against Supabase Auth. The API only
# answers "who am I" for a token.
# =============================================================================

from fastapi import APIRouter, Depends

from app.auth.dependencies import get_current_profile, get_current_user
from app.auth.models import AuthUser, Profile

router = APIRouter()


@router.get("/me", response_model=Profile)
async def get_me(profile: Profile = Depends(get_current_profile)) -> Profile:
    """
    The caller's profile: role, tutor link, preferences.

    The first call after an invited parent signs up links their account to
    the parent record the tutor created. 403 PROFILE_NOT_FOUND if there is
    no such record.
    """
    return profile


@router.get("/verify")
async def verify_token(user: AuthUser = Depends(get_current_user)) -> dict:
    """Token check that doesn't touch the database."""
    return {"valid": True, "user_id": str(user.id), "email": user.email}
