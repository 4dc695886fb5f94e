"""
Re-entrancy guard.

Execution is serialized, so the only hazard is a collaborator calling back
into the program mid-operation. Each state-mutating operation that reaches a
collaborator holds its named guard for the duration of the call.
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator, Set

from ..errors import ReentrantCall


class ReentrancyGuard:
    def __init__(self) -> None:
        self._held: Set[str] = set()

    @contextmanager
    def hold(self, operation: str) -> Iterator[None]:
        if operation in self._held:
            raise ReentrantCall(f"re-entrant call to {operation}")
        self._held.add(operation)
        try:
            yield
        finally:
            self._held.discard(operation)

    def is_held(self, operation: str) -> bool:
        return operation in self._held
