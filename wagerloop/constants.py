"""Project-wide constant values."""
from __future__ import annotations

CREATOR_CANNOT_LEAVE_DETAIL = "Cannot leave a community you created"

LEAVE_CONFIRMATION_PROMPT = "Leave this community? You can rejoin at any time."

__all__ = ["CREATOR_CANNOT_LEAVE_DETAIL", "LEAVE_CONFIRMATION_PROMPT"]
