"""
User authentication for the Guest Pass review API.

Verifies a Google OAuth access token, then resolves the Google account's email
to an Approved profile in the directory.
"""

from __future__ import annotations

import os
from dataclasses import dataclass

import httpx
from cachetools import TTLCache
from fastapi import Depends, HTTPException, Request, status

from guestpass.infrastructure.settings import SECURITY_ORGANIZATION
from guestpass.intake.models import ApprovalState
from guestpass.intake.repository import ProfileRepository
from guestpass.observability.logging import get_logger
from guestpass.utils.redaction import redact

logger = get_logger(__name__)

GOOGLE_TOKEN_INFO_URL = "https://oauth2.googleapis.com/tokeninfo"
GOOGLE_USERINFO_URL = "https://www.googleapis.com/oauth2/v2/userinfo"

_CACHE_MAX_SIZE = 1000
_CACHE_TTL_SECONDS = 600  # shorter than Google's 1 hour token expiry


@dataclass
class GoogleIdentity:
    google_id: str
    email: str
    name: str | None = None


@dataclass
class AuthenticatedUser:
    """An approved directory user behind a verified Google token."""

    id: str  # profiles.user_id
    email: str
    name: str | None = None
    organization: str | None = None

    @property
    def is_security(self) -> bool:
        return self.organization == SECURITY_ORGANIZATION

    def can_access(self, user_id: str) -> bool:
        """Users act on their own records; Security may act on anyone's."""
        return self.id == user_id or self.is_security

    def __str__(self) -> str:
        return f"User({self.id}, {redact(self.email)})"


_token_cache: TTLCache[str, GoogleIdentity] = TTLCache(
    maxsize=_CACHE_MAX_SIZE, ttl=_CACHE_TTL_SECONDS
)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def verify_google_token(token: str) -> GoogleIdentity:
    """
    Validate a Google OAuth access token and fetch the account's identity.

    Raises:
        HTTPException: 401 for an invalid token, 503 if Google is unreachable
    """
    if token in _token_cache:
        return _token_cache[token]

    async with httpx.AsyncClient() as client:
        try:
            token_response = await client.get(
                GOOGLE_TOKEN_INFO_URL,
                params={"access_token": token},
                timeout=10.0,
            )
        except httpx.RequestError as e:
            logger.error("Token validation request failed: %s", e)
            raise HTTPException(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                detail="Authentication service unavailable",
            ) from e

        if token_response.status_code != 200:
            logger.warning("Invalid token (status %d)", token_response.status_code)
            raise _unauthorized("Invalid or expired token")

        expected_client_id = os.getenv("GOOGLE_OAUTH_CLIENT_ID")
        if expected_client_id and token_response.json().get("aud", "") != expected_client_id:
            logger.warning("Token audience mismatch")
            raise _unauthorized("Token not issued for this application")

        try:
            userinfo_response = await client.get(
                GOOGLE_USERINFO_URL,
                headers={"Authorization": f"Bearer {token}"},
                timeout=10.0,
            )
        except httpx.RequestError as e:
            logger.error("Failed to get user info: %s", e)
            raise HTTPException(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                detail="Failed to retrieve user information",
            ) from e

        if userinfo_response.status_code != 200:
            raise _unauthorized("Failed to retrieve user information")

        userinfo = userinfo_response.json()

    identity = GoogleIdentity(
        google_id=userinfo["id"],
        email=userinfo.get("email", ""),
        name=userinfo.get("name"),
    )
    _token_cache[token] = identity
    return identity


def resolve_profile(identity: GoogleIdentity) -> AuthenticatedUser:
    """
    Map a verified Google identity to an approved directory profile.

    Raises:
        HTTPException: 401 if no profile exists, 403 if it is not Approved
    """
    profile = ProfileRepository.get_by_email(identity.email)
    if profile is None:
        raise _unauthorized("Unauthorized: User profile not found")

    if profile.authentication_status != ApprovalState.APPROVED.value:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Forbidden: User account not approved",
        )

    user = AuthenticatedUser(
        id=profile.user_id,
        email=profile.email,
        name=profile.full_name or identity.name,
        organization=profile.organization,
    )
    logger.info("Authenticated %s (cache size: %d)", user, len(_token_cache))
    return user


def _extract_bearer_token(authorization: str | None) -> str:
    if not authorization:
        raise _unauthorized("Missing authorization header")

    parts = authorization.split()
    if len(parts) != 2 or parts[0].lower() != "bearer":
        raise _unauthorized("Invalid authorization header format. Expected: Bearer <token>")

    return parts[1]


async def get_google_identity(request: Request) -> GoogleIdentity:
    token = _extract_bearer_token(request.headers.get("Authorization"))
    return await verify_google_token(token)


def get_current_user(identity: GoogleIdentity = Depends(get_google_identity)) -> AuthenticatedUser:
    """
    FastAPI dependency for the review routes.

    Sync so FastAPI runs the profile lookup in its threadpool, off the event loop.

    Usage:
        @router.get("/endpoint")
        async def endpoint(user: AuthenticatedUser = Depends(get_current_user)):
            ...
    """
    return resolve_profile(identity)


def clear_token_cache() -> None:
    """Clear the token cache. Useful for testing."""
    _token_cache.clear()
