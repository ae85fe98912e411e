# =============================================================================
# app/dependencies.py - Route Dependencies
# =============================================================================
# Annotated aliases used in route signatures:
#
#   async def list_lessons(profile: ProfileDep): ...   any signed-in profile
#   async def create_lesson(tutor: TutorDep): ...      tutor only (403 otherwise)
# =============================================================================

from typing import Annotated

from fastapi import Depends

from app.auth import Profile, get_current_profile, require_tutor
from lib.supabase_client import SupabaseClient


def get_supabase_client() -> type[SupabaseClient]:
    return SupabaseClient


def owner_scope(profile: Profile) -> str | None:
    """The parent id a caller's reads are limited to; None for the tutor."""
    return None if profile.is_tutor else str(profile.id)


SupabaseDep = Annotated[type[SupabaseClient], Depends(get_supabase_client)]
ProfileDep = Annotated[Profile, Depends(get_current_profile)]
TutorDep = Annotated[Profile, Depends(require_tutor)]
