"""Request authentication context.

Verifies the identity provider's session token (Bearer header or the
``__session`` cookie), then normalizes the provider-specific claim shapes into
one ``AuthContext`` so nothing downstream branches on claim naming.
"""

import logging
import time
from typing import Any

import httpx
from fastapi import Request
from jose import JWTError, jwt

from src.config import Settings
from src.exceptions import MissingOrganizationException, UnauthenticatedException
from src.modules.tenancy.constants import (
    CLAIM_KEY_ORG_COMPACT,
    CLAIM_KEY_ROLES,
    CLAIM_KEYS_ORG_ID,
    CLAIM_KEYS_ORG_SLUG,
    CLAIM_KEYS_ROLE,
    CLAIM_KEYS_USER_ID,
    ROLE_ALIASES,
    ROLE_PREFIX,
    SESSION_COOKIE_NAME,
)
from src.modules.tenancy.schemas import AuthContext

logger = logging.getLogger(__name__)


def _first_claim(payload: dict[str, Any], keys: tuple[str, ...]) -> str | None:
    for key in keys:
        value = payload.get(key)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return None


def normalize_role(raw: str) -> str:
    role = raw.strip().lower()
    if role.startswith(ROLE_PREFIX):
        role = role[len(ROLE_PREFIX):]
    return ROLE_ALIASES.get(role, role)


def normalize_claims(payload: dict[str, Any]) -> AuthContext:
    """Build an AuthContext from verified claims.

    Raises UnauthenticatedException when no user id is present. Organization
    fields may be None here; ``require_organization`` enforces them.
    """
    user_id = _first_claim(payload, CLAIM_KEYS_USER_ID)
    if user_id is None:
        raise UnauthenticatedException("Authentication required")

    compact = payload.get(CLAIM_KEY_ORG_COMPACT)
    compact = compact if isinstance(compact, dict) else {}

    org_id = _first_claim(payload, CLAIM_KEYS_ORG_ID) or _first_claim(compact, ("id",))
    org_slug = _first_claim(payload, CLAIM_KEYS_ORG_SLUG) or _first_claim(compact, ("slg",))

    raw_roles: list[str] = []
    role = _first_claim(payload, CLAIM_KEYS_ROLE) or _first_claim(compact, ("rol",))
    if role:
        raw_roles.append(role)
    listed = payload.get(CLAIM_KEY_ROLES)
    if isinstance(listed, list):
        raw_roles.extend(r for r in listed if isinstance(r, str) and r.strip())

    return AuthContext(
        user_id=user_id,
        org_id=org_id,
        org_slug=org_slug,
        roles=frozenset(normalize_role(r) for r in raw_roles),
    )


def require_organization(context: AuthContext) -> AuthContext:
    if context.tenant_key is None:
        raise MissingOrganizationException("An active organization is required")
    return context


def extract_session_token(request: Request) -> str | None:
    authorization = request.headers.get("Authorization")
    if authorization:
        scheme, _, credentials = authorization.partition(" ")
        if scheme.lower() == "bearer" and credentials.strip():
            return credentials.strip()
    cookie = request.cookies.get(SESSION_COOKIE_NAME)
    return cookie or None


class SessionTokenVerifier:
    """Verifies identity provider session tokens.

    With ``clerk_jwks_url`` configured, tokens are RS256 and checked against
    the provider's published keys (fetched with httpx, cached per instance).
    Otherwise the shared ``jwt_secret_key`` is used, which is how development
    and test environments mint tokens. With neither configured every token is
    rejected.
    """

    def __init__(self, settings: Settings, http_client: httpx.AsyncClient | None = None) -> None:
        self._settings = settings
        self._http_client = http_client
        self._jwks: dict | None = None
        self._jwks_fetched_at = 0.0

    async def _get_jwks(self) -> dict:
        age = time.monotonic() - self._jwks_fetched_at
        if self._jwks is not None and age < self._settings.clerk_jwks_cache_seconds:
            return self._jwks
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(timeout=10.0)
        try:
            response = await self._http_client.get(self._settings.clerk_jwks_url)
            response.raise_for_status()
        except httpx.HTTPError as exc:
            logger.error("Failed to fetch JWKS from %s: %s", self._settings.clerk_jwks_url, exc)
            raise UnauthenticatedException("Unable to verify session token") from exc
        self._jwks = response.json()
        self._jwks_fetched_at = time.monotonic()
        return self._jwks

    async def verify(self, token: str) -> dict[str, Any]:
        settings = self._settings
        if not settings.uses_jwks and not settings.jwt_secret_key:
            logger.error("No JWKS URL or JWT secret configured; rejecting session token")
            raise UnauthenticatedException("Unable to verify session token")
        options = {"verify_aud": bool(settings.clerk_audience)}
        try:
            if settings.uses_jwks:
                return jwt.decode(
                    token,
                    await self._get_jwks(),
                    algorithms=["RS256"],
                    audience=settings.clerk_audience or None,
                    issuer=settings.clerk_issuer or None,
                    options=options,
                )
            return jwt.decode(
                token,
                settings.jwt_secret_key,
                algorithms=[settings.jwt_algorithm],
                audience=settings.clerk_audience or None,
                options=options,
            )
        except JWTError as exc:
            logger.warning("Session token validation failed: %s", exc)
            raise UnauthenticatedException("Invalid or expired session token") from exc

    async def aclose(self) -> None:
        if self._http_client is not None:
            await self._http_client.aclose()


async def authenticate_request(request: Request, verifier: SessionTokenVerifier) -> AuthContext:
    """Resolve the caller's AuthContext, failing closed.

    Raises:
        UnauthenticatedException: no token, an invalid token, or no user id.
        MissingOrganizationException: verified user not scoped to any organization.
    """
    token = extract_session_token(request)
    if token is None:
        raise UnauthenticatedException("Authentication required")
    claims = await verifier.verify(token)
    return require_organization(normalize_claims(claims))
