"""
app/services/identity.py — Verifies bearer tokens issued by the identity provider (Clerk).

Flow:
  1. Verify the session JWT (RS256) against the provider's JWKS → subject id
  2. Fetch the subject's user record → public_metadata.role
  3. Return an Identity; require_admin() gates template authoring

Nothing here writes anything.
"""

import logging
from dataclasses import dataclass
from functools import lru_cache
from typing import Any, Optional

import jwt
import requests
from jwt.exceptions import InvalidTokenError, PyJWKClientConnectionError, PyJWKClientError
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from app.config import settings
from app.errors import (
    CredentialInvalid,
    CredentialMissing,
    IdentityLookupFailed,
    NotAuthorized,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Identity:
    subject_id: str
    is_admin: bool


def extract_token(body_token: Optional[str], authorization: Optional[str]) -> str:
    """
    Pick the bearer token from the request. The body wins over the
    Authorization header because some proxies drop headers.
    """
    token = body_token.strip() if isinstance(body_token, str) else ""
    if token:
        return token
    header = (authorization or "").strip()
    if header.lower().startswith("bearer "):
        header = header[7:]
    return header.strip()


class IdentityGate:
    """Resolves a bearer token into an Identity."""

    def __init__(
        self,
        secret_key: str,
        api_url: str,
        jwks_url: str,
        admin_role: str = "admin",
        timeout: float = 10.0,
        leeway: int = 5,
        http: Optional[requests.Session] = None,
        jwks_client: Optional[jwt.PyJWKClient] = None,
    ):
        self.api_url = api_url.rstrip("/")
        self.admin_role = admin_role
        self.timeout = timeout
        self.leeway = leeway
        self._auth_headers = {"Authorization": f"Bearer {secret_key}"}
        self._http = http or requests.Session()
        self._jwks = jwks_client or jwt.PyJWKClient(
            jwks_url,
            headers=self._auth_headers,
            timeout=int(timeout),
        )

    def authorize(self, token: Optional[str]) -> Identity:
        """
        Verify a token and resolve the caller's role.

        Raises:
            CredentialMissing:    No token supplied.
            CredentialInvalid:    Bad signature, expired or malformed token.
            IdentityLookupFailed: Provider unreachable or subject unknown.
        """
        if not token or not token.strip():
            raise CredentialMissing("Missing token. Please sign in again.")

        subject_id = self._verify(token.strip())
        user = self._lookup_user(subject_id)
        metadata = user.get("public_metadata") or {}
        is_admin = metadata.get("role") == self.admin_role
        return Identity(subject_id=subject_id, is_admin=is_admin)

    def _verify(self, token: str) -> str:
        try:
            signing_key = self._jwks.get_signing_key_from_jwt(token)
            claims = jwt.decode(
                token,
                signing_key.key,
                algorithms=["RS256"],
                leeway=self.leeway,
                options={"require": ["exp", "sub"]},
            )
        except PyJWKClientConnectionError as exc:
            logger.error("JWKS endpoint unreachable: %s", exc)
            raise IdentityLookupFailed("Identity provider unavailable. Try again.") from exc
        except (PyJWKClientError, InvalidTokenError) as exc:
            logger.warning("Rejected token: %s", exc)
            raise CredentialInvalid("Invalid or expired token. Please sign in again.") from exc
        return str(claims["sub"])

    def _lookup_user(self, subject_id: str) -> dict[str, Any]:
        try:
            user = self._fetch_user(subject_id)
        except requests.RequestException as exc:
            logger.error("User lookup failed for %s after retries: %s", subject_id, exc)
            raise IdentityLookupFailed("Could not verify permissions. Try again.") from exc

        if user is None:
            logger.warning("Token subject %s not found at identity provider.", subject_id)
            raise IdentityLookupFailed("User not found at identity provider.")
        return user

    @retry(
        retry=retry_if_exception_type(requests.RequestException),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=0.2, min=0.2, max=2),
        reraise=True,
    )
    def _fetch_user(self, subject_id: str) -> Optional[dict[str, Any]]:
        """
        Internal: GET /users/{id}. Returns None for an unknown subject.
        Retries up to 3 times on transient network errors.
        """
        response = self._http.get(
            f"{self.api_url}/users/{subject_id}",
            headers=self._auth_headers,
            timeout=self.timeout,
        )
        if response.status_code == 404:
            return None
        response.raise_for_status()
        return response.json()


def require_admin(identity: Identity) -> Identity:
    """Raise NotAuthorized unless the identity is a platform administrator."""
    if not identity.is_admin:
        logger.warning("Non-admin %s attempted a template operation.", identity.subject_id)
        raise NotAuthorized("Access denied. Administrators only.")
    return identity


@lru_cache(maxsize=1)
def get_identity_gate() -> IdentityGate:
    """FastAPI dependency returning the process-wide gate (JWKS keys are cached inside)."""
    return IdentityGate(
        secret_key=settings.clerk_secret_key,
        api_url=settings.clerk_api_url,
        jwks_url=settings.jwks_url,
        admin_role=settings.admin_role,
        timeout=settings.identity_timeout_seconds,
        leeway=settings.token_leeway_seconds,
    )
