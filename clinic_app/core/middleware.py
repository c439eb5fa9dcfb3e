# clinic_app/core/middleware.py
import logging
from typing import Iterable, Optional

from fastapi import Depends, HTTPException, Request

from .auth import caller_from_token
from clinic_app.db.session import get_db_session
from clinic_app.schemas.shared import CallerContext, Role

logger = logging.getLogger(__name__)

# Paths that never carry caller identity
PUBLIC_PATHS = [
    "/health",
    "/docs",
    "/openapi.json",
    "/redoc",
]


def _read_token(request: Request) -> Optional[str]:
    """Session cookie first, then an `Authorization: Bearer` header."""
    cookie = request.cookies.get("session")
    if cookie:
        return cookie
    header = request.headers.get("Authorization", "")
    if header.startswith("Bearer "):
        return header.split(" ", 1)[1]
    return None


async def verify_token_middleware(request: Request, call_next):
    """
    Attach the caller identity to `request.state.caller`.

    Requests without a valid token are let through with `caller = None`;
    routes decide whether they need one.
    """
    request.state.caller = None

    if not any(request.url.path.startswith(path) for path in PUBLIC_PATHS):
        token = _read_token(request)
        if token:
            try:
                request.state.caller = caller_from_token(token)
            except Exception as e:
                logger.debug(f"Ignoring invalid token on {request.url.path}: {e}")

    return await call_next(request)


def get_current_user(request: Request) -> CallerContext:
    """Dependency for routes that need an authenticated caller (401 otherwise)."""
    caller = getattr(request.state, "caller", None)
    if not caller:
        raise HTTPException(status_code=401, detail="Not authenticated")
    return caller


def get_optional_user(request: Request) -> Optional[CallerContext]:
    return getattr(request.state, "caller", None)


def require_roles(roles: Iterable[Role]):
    """
    Dependency factory restricting a route to some roles.
    Usage: current_user: CallerContext = Depends(require_roles([Role.doctor]))
    """
    allowed = {Role(r) for r in roles}

    def _require_roles(user: CallerContext = Depends(get_current_user)) -> CallerContext:
        if user.role not in allowed:
            raise HTTPException(status_code=403, detail="Not enough permissions")
        return user

    return _require_roles


async def get_db(request: Request):
    """Yield an async SQLAlchemy session (dependency)."""
    async for session in get_db_session(request):
        yield session
