from __future__ import annotations

from dataclasses import dataclass, field
from typing import TypedDict


class FavoriteRecord(TypedDict):
    id: str
    messageRef: str
    sender: str
    role: str
    note: str


@dataclass
class ReconcileResult:
    removed: list[str] = field(default_factory=list)
    shifted: int = 0

    @property
    def changed(self) -> bool:
        return bool(self.removed) or self.shifted > 0


@dataclass(frozen=True)
class ProjectedPage:
    items: tuple[FavoriteRecord, ...]
    total_count: int
    total_pages: int
    page: int
    start_index: int


@dataclass
class PrunePlan:
    valid: list[FavoriteRecord]
    invalid: list[FavoriteRecord]

    @property
    def invalid_ids(self) -> set[str]:
        return {record["id"] for record in self.invalid}
