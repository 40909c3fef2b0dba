"""One page of a paginated collaborator listing."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Generic, TypeVar

T = TypeVar("T")


@dataclass(frozen=True)
class Page(Generic[T]):
    items: tuple[T, ...] = field(default_factory=tuple)
    next_token: str | None = None

    @property
    def has_more(self) -> bool:
        return bool(self.next_token)
