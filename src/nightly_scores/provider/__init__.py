"""Statistics provider access."""

from .client import API_KEY_HEADER, INVALID_JSON, MISSING_API_KEY, UpstreamClient

__all__ = [
    "API_KEY_HEADER",
    "INVALID_JSON",
    "MISSING_API_KEY",
    "UpstreamClient",
]
