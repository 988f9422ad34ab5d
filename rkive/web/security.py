# rkive/web/security.py

from __future__ import annotations

import threading
import time
from typing import Dict, Optional, Tuple

from fastapi import Header, HTTPException, Request, status

from rkive.config.settings import settings
from rkive.models.session import Role, Session


# -------------------------------
# API key auth
# -------------------------------

def api_key_auth(x_api_key: Optional[str] = Header(default=None, alias="X-API-Key")):
    """
    Simple header-based API key auth.
    If settings.API_KEY is None, auth is disabled.
    """
    expected = settings.API_KEY.get_secret_value() if settings.API_KEY else None
    if expected is None:
        # auth disabled
        return

    if x_api_key is None or x_api_key != expected:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or missing API key.",
        )


# -------------------------------
# Per-request session
# -------------------------------

def get_session(
    x_user_id: Optional[str] = Header(default=None, alias="X-User-Id"),
    x_user_role: Optional[str] = Header(default=None, alias="X-User-Role"),
) -> Session:
    """
    Build the caller's Session from request headers.

    Identity is asserted by the fronting auth layer; an absent user id gives
    an anonymous session.
    """
    role = Role.STUDENT
    if x_user_role:
        try:
            role = Role(x_user_role.lower())
        except ValueError:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Unknown role {x_user_role!r}.",
            )
    return Session(user_id=x_user_id or None, role=role)


def require_user(session: Session) -> str:
    if not session.is_authenticated:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="You must be logged in to bookmark papers.",
        )
    return session.user_id  # type: ignore[return-value]


def require_admin(session: Session) -> None:
    if not session.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin role required.",
        )


# -------------------------------
# Very simple in-memory rate limiter
# -------------------------------

# key -> (window_start, count)
_RATE_LIMIT_STATE: Dict[str, Tuple[float, int]] = {}
_RATE_LIMIT_LOCK = threading.Lock()

RATE_LIMIT_MAX_REQUESTS = 60      # requests
RATE_LIMIT_WINDOW_SECONDS = 60.0  # 1 minute


def _prune_expired(now: float) -> None:
    expired = [
        host
        for host, (window_start, _) in _RATE_LIMIT_STATE.items()
        if now - window_start >= RATE_LIMIT_WINDOW_SECONDS
    ]
    for host in expired:
        del _RATE_LIMIT_STATE[host]


def rate_limiter(request: Request):
    """
    Fixed-window request counter per client host, for a single process.
    Hosts whose window has run out are forgotten.
    """
    client_host = request.client.host if request.client else "unknown"

    now = time.time()
    with _RATE_LIMIT_LOCK:
        _prune_expired(now)
        window_start, count = _RATE_LIMIT_STATE.get(client_host, (now, 0))
        count += 1
        if count <= RATE_LIMIT_MAX_REQUESTS:
            _RATE_LIMIT_STATE[client_host] = (window_start, count)

    if count > RATE_LIMIT_MAX_REQUESTS:
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail="Rate limit exceeded. Try again later.",
        )
