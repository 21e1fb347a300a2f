"""Public interface for the advertising platform adapter."""

from __future__ import annotations

from .client import AdsAPIError, AdsClient
from .schema import MutateResponse, SearchResponse, SearchRow
from .translator import build_snapshot, mutate_operation, mutation_result

__all__ = [
    "AdsAPIError",
    "AdsClient",
    "MutateResponse",
    "SearchResponse",
    "SearchRow",
    "build_snapshot",
    "mutate_operation",
    "mutation_result",
]
