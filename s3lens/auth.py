from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

import httpx

from .config import Settings
from .errors import (
    ApiError,
    NotAuthenticatedError,
    NotFoundError,
    PermissionDeniedError,
    ServerError,
)

logger = logging.getLogger(__name__)


@dataclass
class Session:
    """Identity token issued by the external identity provider.

    The token is never refreshed here; an expired token simply stops being
    returned by ``get_token``.
    """

    token: Optional[str] = None
    expires_at: Optional[datetime] = None

    @classmethod
    def from_settings(cls, settings: Settings) -> "Session":
        return cls(token=settings.token, expires_at=settings.token_expires_at)

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        if self.expires_at is None:
            return False
        now = now or datetime.now(timezone.utc)
        return now >= self.expires_at

    def get_token(self) -> Optional[str]:
        if not self.token:
            return None
        if self.is_expired():
            return None
        return self.token


def auth_headers(session: Session) -> dict[str, str]:
    token = session.get_token()
    if token is None:
        raise NotAuthenticatedError("Not authenticated")
    # Raw identity token, no "Bearer" prefix.
    return {
        "Authorization": token,
        "Content-Type": "application/json",
    }


def _backend_message(response: httpx.Response) -> str:
    try:
        payload = response.json()
    except ValueError:
        payload = None
    if isinstance(payload, dict):
        message = payload.get("message")
        if isinstance(message, str) and message:
            return message
    text = response.text.strip()
    if text:
        return text
    return f"Request failed with status {response.status_code}"


def raise_for_response(response: httpx.Response) -> None:
    status = response.status_code
    if 200 <= status < 300:
        return
    logger.debug("Backend returned status %s", status)
    if status == 401:
        raise NotAuthenticatedError(
            "Authentication failed. Please sign in again.", status=status
        )
    if status == 403:
        raise PermissionDeniedError(
            "Access denied. You do not have permission to access this resource.",
            status=status,
        )
    if status >= 500:
        raise ServerError("Server error. Please try again later.", status=status)
    message = _backend_message(response)
    if status == 404:
        raise NotFoundError(message, status=status)
    raise ApiError(message, status=status)
