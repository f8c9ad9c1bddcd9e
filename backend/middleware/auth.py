"""
Caller identity helpers.

Identity is issued by the storefront's auth service; this API only decodes it:
  - Authorization: Bearer <jwt>  (HS256, claims: sub, name?, phone?, role?)
  - X-User-Id / X-User-Name headers (legacy; not cryptographically secure)

Routes depend on `require_caller` (401 when absent) or `optional_caller`
(anonymous allowed, e.g. the event stream).
"""
import logging
from dataclasses import dataclass
from datetime import datetime, timezone, timedelta
from fastapi import Header
from typing import Optional

import jwt

from config import settings
from domain.errors import UnauthorizedError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Caller:
    """Authenticated identity passed explicitly into service functions."""
    id: str
    name: Optional[str] = None
    phone: Optional[str] = None
    role: Optional[str] = None


def _now_utc() -> datetime:
    return datetime.now(timezone.utc)


def _parse_bearer_token(authorization: Optional[str]) -> Optional[str]:
    if not authorization:
        return None
    parts = authorization.split(" ", 1)
    if len(parts) != 2 or parts[0].lower() != "bearer":
        return None
    token = parts[1].strip()
    return token or None


def decode_access_token(token: str) -> dict:
    if not settings.jwt_secret:
        logger.error("Bearer token received but JWT_SECRET is not configured")
        raise UnauthorizedError("Token authentication is not configured.")
    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret,
            algorithms=["HS256"],
            issuer=settings.jwt_issuer,
            options={"require": ["exp", "iat", "iss", "sub"]},
        )
        return payload
    except jwt.ExpiredSignatureError:
        raise UnauthorizedError("Access token expired.")
    except jwt.InvalidTokenError:
        raise UnauthorizedError("Invalid access token.")


def issue_access_token(
    *,
    user_id: str,
    name: Optional[str] = None,
    phone: Optional[str] = None,
    role: Optional[str] = None,
) -> str:
    """Mint a token the way the storefront's auth service does (tooling and tests)."""
    if not settings.jwt_secret:
        raise UnauthorizedError("Token authentication is not configured.")
    now = _now_utc()
    exp = now.replace(microsecond=0) + timedelta(minutes=settings.jwt_access_ttl_minutes)
    payload = {
        "iss": settings.jwt_issuer,
        "sub": user_id,
        "iat": int(now.timestamp()),
        "exp": int(exp.timestamp()),
    }
    for claim, value in (("name", name), ("phone", phone), ("role", role)):
        if value:
            payload[claim] = value
    return jwt.encode(payload, settings.jwt_secret, algorithm="HS256")


async def optional_caller(
    authorization: Optional[str] = Header(None, alias="Authorization"),
    x_user_id: Optional[str] = Header(None, alias="X-User-Id"),
    x_user_name: Optional[str] = Header(None, alias="X-User-Name"),
) -> Optional[Caller]:
    """
    Best-effort authentication:
      - Prefer Authorization Bearer JWT (an invalid token is still a 401)
      - Fall back to legacy X-User-Id header (NOT secure)
    """
    token = _parse_bearer_token(authorization)
    if token:
        payload = decode_access_token(token)
        return Caller(
            id=str(payload["sub"]),
            name=payload.get("name"),
            phone=payload.get("phone"),
            role=payload.get("role"),
        )
    if x_user_id:
        return Caller(id=x_user_id, name=x_user_name)
    return None


async def require_caller(
    authorization: Optional[str] = Header(None, alias="Authorization"),
    x_user_id: Optional[str] = Header(None, alias="X-User-Id"),
    x_user_name: Optional[str] = Header(None, alias="X-User-Name"),
) -> Caller:
    caller = await optional_caller(
        authorization=authorization,
        x_user_id=x_user_id,
        x_user_name=x_user_name,
    )
    if caller is None:
        raise UnauthorizedError(
            "Authentication required. Provide Authorization: Bearer <token> (preferred) or X-User-Id (legacy)."
        )
    return caller
