"""API Services."""

from src.api.services.scout_service import (
    ScoutService,
    get_scout_service,
    reset_scout_service,
)

__all__ = [
    "ScoutService",
    "get_scout_service",
    "reset_scout_service",
]
