"""Pydantic models for API I/O."""

from .push import LastPushResponse, PushResponse

__all__ = [
    "LastPushResponse",
    "PushResponse",
]
