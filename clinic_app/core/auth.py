# clinic_app/core/auth.py
"""
Bearer tokens carrying the caller's identity.

Tokens are minted by the identity provider with the shared secret; this module
only needs to read them, plus mint test/seed tokens in the same format.
"""
from datetime import datetime, timedelta, timezone
from typing import Optional

from jose import jwt

from clinic_app.config.settings import settings
from clinic_app.schemas.shared import CallerContext, Role


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    lifetime = expires_delta or timedelta(minutes=settings.access_token_expire_minutes)
    claims = {**data, "exp": datetime.now(timezone.utc) + lifetime}
    return jwt.encode(claims, settings.secret_key, algorithm=settings.algorithm)


def create_token_for_user(user_id: int, role: str) -> str:
    return create_access_token({"sub": str(user_id), "role": Role(role).value})


def caller_from_token(token: str) -> CallerContext:
    """
    Decode a bearer token into the caller identity it carries.

    Raises jose.JWTError for bad signatures or expired tokens, and
    KeyError/ValueError when the identity claims are missing or malformed.
    """
    payload = jwt.decode(token, settings.secret_key, algorithms=[settings.algorithm])
    return CallerContext(user_id=int(payload["sub"]), role=Role(payload["role"]))
