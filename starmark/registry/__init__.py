from __future__ import annotations

from ._registry import FAVORITES_KEY, FavoritesRegistry, ensure_favorites
from .projection import project
from .types import FavoriteRecord, ProjectedPage, PrunePlan, ReconcileResult

__all__ = [
    "FAVORITES_KEY",
    "FavoriteRecord",
    "FavoritesRegistry",
    "ProjectedPage",
    "PrunePlan",
    "ReconcileResult",
    "ensure_favorites",
    "project",
]
