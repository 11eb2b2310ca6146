"""Run-scoped configuration helpers."""

from .context import DEFAULT_TIMEOUT, PROVIDER_BASE_URL, ResolutionContext

__all__ = [
    "DEFAULT_TIMEOUT",
    "PROVIDER_BASE_URL",
    "ResolutionContext",
]
