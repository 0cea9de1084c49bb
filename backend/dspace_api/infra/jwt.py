"""Access tokens for the REST API.

HS256 signed with ``settings.secret_key``. Tokens name the eperson in
``sub`` and may carry its group memberships in ``roles``; permission checks
treat those roles as resource policy groups.
"""

from __future__ import annotations

import time
from typing import Any, Dict, Iterable, Optional

import jwt
from jwt import InvalidTokenError

from dspace_api.settings import settings


ISSUER = "dspace-api"
AUDIENCE = "dspace-ui"
DEFAULT_TTL_SECONDS = 1800
_REQUIRED_CLAIMS = ["exp", "iat", "iss", "aud", "sub"]


def encode_access(payload: dict[str, object], *, ttl_seconds: int = DEFAULT_TTL_SECONDS) -> str:
    """Sign ``payload`` with issuer, audience and expiry filled in."""
    now = int(time.time())
    body: Dict[str, Any] = {"iss": ISSUER, "aud": AUDIENCE, "iat": now, "exp": now + ttl_seconds}
    body.update(payload)
    return jwt.encode(body, settings.secret_key, algorithm="HS256")


def encode_for_eperson(
    eperson_id: str,
    *,
    roles: Iterable[str] = (),
    email: Optional[str] = None,
    ttl_seconds: int = DEFAULT_TTL_SECONDS,
) -> str:
    claims: Dict[str, Any] = {"sub": eperson_id, "roles": sorted(set(roles))}
    if email:
        claims["email"] = email
    return encode_access(claims, ttl_seconds=ttl_seconds)


def decode_access(token: str) -> dict[str, object]:
    """Decode and validate an access token.

    Raises jwt.InvalidTokenError subclasses on failure.
    """
    payload = jwt.decode(
        token,
        settings.secret_key,
        algorithms=["HS256"],
        audience=AUDIENCE,
        issuer=ISSUER,
        leeway=5,
        options={"require": _REQUIRED_CLAIMS},
    )
    if not str(payload.get("sub") or "").strip():
        raise InvalidTokenError("missing_claim:sub")
    return payload  # type: ignore[return-value]
