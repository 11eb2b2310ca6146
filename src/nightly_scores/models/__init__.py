"""Domain records shared across the resolver, scrape and report layers."""

from .athlete import AthleteTarget
from .push import PushRow
from .stats import (
    CanonicalStatRow,
    ProviderResponse,
    ReportBatch,
    ResolutionError,
    ShootingSplit,
)

__all__ = [
    "AthleteTarget",
    "CanonicalStatRow",
    "ProviderResponse",
    "PushRow",
    "ReportBatch",
    "ResolutionError",
    "ShootingSplit",
]
