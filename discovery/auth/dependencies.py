from __future__ import annotations

from fastapi import Depends, HTTPException, Request

ADMIN_ROLE = "admin"


def _session_user(request: Request) -> dict | None:
    user = request.session.get("user")
    return user if isinstance(user, dict) and user.get("id") else None


def get_current_user_id(request: Request) -> str | None:
    """Feed endpoints are public; a logged-in caller only changes the ordering."""
    user = _session_user(request)
    return user["id"] if user else None


def require_user(request: Request) -> dict:
    user = _session_user(request)
    if user is None:
        raise HTTPException(status_code=401, detail="Not authenticated")
    return user


def require_admin(user: dict = Depends(require_user)) -> dict:
    if user.get("role") != ADMIN_ROLE:
        raise HTTPException(status_code=403, detail="Admin access required")
    return user
