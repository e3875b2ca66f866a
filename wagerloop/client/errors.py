"""Failure kinds reported by relationship mutations and their translation."""
from __future__ import annotations

from typing import Any

import httpx

__all__ = [
    "MutationError",
    "NetworkUnavailable",
    "Unauthorized",
    "NotFound",
    "Conflict",
    "Unknown",
    "error_for_status",
    "classify_error",
]


class MutationError(Exception):
    """Base class for every failure a toggle can report to the user."""

    kind = "unknown"
    default_message = "Something went wrong. Please try again."

    def __init__(self, message: str | None = None, *, status_code: int | None = None) -> None:
        self.message = message or self.default_message
        self.status_code = status_code
        super().__init__(self.message)


class NetworkUnavailable(MutationError):
    kind = "network_unavailable"
    default_message = "You appear to be offline. Check your connection and try again."


class Unauthorized(MutationError):
    """The session is missing or expired; the user has to sign in again."""

    kind = "unauthorized"
    default_message = "Your session has expired. Please sign in again."


class NotFound(MutationError):
    kind = "not_found"
    default_message = "This item is no longer available."


class Conflict(MutationError):
    kind = "conflict"
    default_message = "That change conflicts with a newer update."


class Unknown(MutationError):
    kind = "unknown"


_STATUS_ERRORS: dict[int, type[MutationError]] = {
    401: Unauthorized,
    404: NotFound,
    409: Conflict,
}


def _detail_text(detail: Any) -> str | None:
    if detail is None:
        return None
    if isinstance(detail, str):
        return detail.strip() or None
    if isinstance(detail, list):
        # FastAPI validation errors: [{"loc": [...], "msg": "..."}]
        messages = [str(item.get("msg")) for item in detail if isinstance(item, dict) and item.get("msg")]
        return "; ".join(messages) or None
    return str(detail)


def error_for_status(status_code: int, detail: Any = None) -> MutationError:
    """Map an HTTP status and the server's ``detail`` to a mutation error."""

    error_cls = _STATUS_ERRORS.get(status_code, Unknown)
    message = _detail_text(detail)
    if error_cls is Unknown and message is None:
        message = f"Request failed with status {status_code}"
    return error_cls(message, status_code=status_code)


def _response_detail(response: httpx.Response) -> Any:
    try:
        payload = response.json()
    except ValueError:
        return response.text or None
    if isinstance(payload, dict):
        return payload.get("detail")
    return payload


def classify_error(exc: BaseException) -> MutationError:
    """Translate any exception raised by a remote call into a :class:`MutationError`."""

    if isinstance(exc, MutationError):
        return exc
    if isinstance(exc, httpx.HTTPStatusError):
        return error_for_status(exc.response.status_code, _response_detail(exc.response))
    if isinstance(exc, (httpx.TransportError, ConnectionError, TimeoutError)):
        return NetworkUnavailable()
    return Unknown(str(exc) or None)
