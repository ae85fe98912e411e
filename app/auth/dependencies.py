# =============================================================================
# app/auth/dependencies.py - FastAPI Auth Dependencies
# =============================================================================
# Request authentication in three layers:
#
#   get_current_user     Bearer token -> AuthUser (JWT only, no DB)
#   get_current_profile  AuthUser -> Profile (parents row, role parent|tutor)
#   require_tutor        Profile -> Profile, 403 for parents
#
# Supabase signs access tokens with either the project's asymmetric keys
# (ES256/RS256, published as JWKS) or the legacy HS256 secret. The token
# header decides which one is used.
# =============================================================================

import logging
import time
from uuid import UUID

import httpx
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import ExpiredSignatureError, JWTError, jwt
from pydantic import ValidationError

from app.auth.models import AuthUser, Profile, TokenPayload
from app.config import settings
from app.exceptions import PermissionDeniedError, ProfileNotFoundError
from lib.supabase_client import SupabaseClient

logger = logging.getLogger(__name__)

bearer = HTTPBearer()

AUDIENCE = "authenticated"
JWKS_TTL_SECONDS = 3600

_jwks: dict = {"keys": [], "fetched_at": 0.0}


# =============================================================================
# Token Verification
# =============================================================================

def _jwks_keys() -> list[dict]:
    """Signing keys from the project's JWKS endpoint, refreshed hourly.

    A failed refresh keeps serving the last good key set.
    """
    if _jwks["keys"] and time.time() - _jwks["fetched_at"] < JWKS_TTL_SECONDS:
        return _jwks["keys"]

    url = f"{settings.SUPABASE_URL.rstrip('/')}/auth/v1/.well-known/jwks.json"
    try:
        response = httpx.get(url, timeout=10)
        response.raise_for_status()
        _jwks["keys"] = response.json().get("keys", [])
        _jwks["fetched_at"] = time.time()
        logger.debug(f"Loaded {len(_jwks['keys'])} signing keys from {url}")
    except httpx.HTTPError as e:
        logger.warning(f"JWKS refresh failed, using cached keys: {e}")

    return _jwks["keys"]


def _verification_key(token: str) -> tuple[str | dict, str]:
    """Pick (key, algorithm) for a token from its unverified header."""
    try:
        header = jwt.get_unverified_header(token)
    except JWTError:
        return settings.SUPABASE_JWT_SECRET, "HS256"

    algorithm = header.get("alg", "HS256")
    if algorithm == "HS256":
        return settings.SUPABASE_JWT_SECRET, algorithm

    kid = header.get("kid")
    for key in _jwks_keys():
        if key.get("kid") == kid:
            return key, algorithm

    logger.warning(f"No JWKS key for kid={kid} ({algorithm}); trying legacy secret")
    return settings.SUPABASE_JWT_SECRET, "HS256"


def decode_token(token: str) -> TokenPayload:
    """
    Verify a Supabase access token and return its claims.

    Used by the HTTP dependencies and the WebSocket endpoint.

    Raises:
        JWTError: Bad signature, wrong audience, expired or malformed claims
    """
    key, algorithm = _verification_key(token)
    claims = jwt.decode(token, key, algorithms=[algorithm], audience=AUDIENCE)
    try:
        return TokenPayload(**claims)
    except ValidationError as e:
        raise JWTError(f"unexpected claims: {e.errors()[0]['loc']}")


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


# =============================================================================
# Dependencies
# =============================================================================

async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(bearer)
) -> AuthUser:
    """
    Authenticate the Bearer token.

    Raises:
        HTTPException: 401 if the token is expired, forged or has a bad subject
    """
    try:
        claims = decode_token(credentials.credentials)
    except ExpiredSignatureError:
        raise _unauthorized("Token has expired")
    except JWTError as e:
        logger.warning(f"Rejected token: {e}")
        raise _unauthorized(f"Invalid token: {e}")

    try:
        user_id = UUID(claims.sub)
    except ValueError:
        raise _unauthorized("Invalid token: malformed user ID")

    return AuthUser(id=user_id, email=claims.email)


async def get_current_profile(
    user: AuthUser = Depends(get_current_user)
) -> Profile:
    """
    Resolve the authenticated user's parents row.

    Parents are usually created by the tutor before they sign up. On first
    login the unclaimed row with the same email is linked to the auth user.

    Raises:
        ProfileNotFoundError: 403 if the user has no profile
    """
    row = SupabaseClient.fetch_parent_by_user_id(user.id)

    if not row and user.email:
        unclaimed = SupabaseClient.fetch_parent_by_email(user.email)
        if unclaimed and not unclaimed.get("user_id"):
            row = SupabaseClient.update_row("parents", unclaimed["id"], {"user_id": str(user.id)})
            logger.info(f"Linked auth user {user.id} to parent {unclaimed['id']}")

    if not row:
        logger.warning(f"No profile for auth user {user.id}")
        raise ProfileNotFoundError(str(user.id))

    return Profile(**row)


async def require_tutor(
    profile: Profile = Depends(get_current_profile)
) -> Profile:
    if not profile.is_tutor:
        raise PermissionDeniedError("perform tutor-only actions")
    return profile
