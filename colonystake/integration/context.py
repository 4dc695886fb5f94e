"""
Shared context handed to every shell service.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Any, Callable, Optional, TypeVar

from ..core.math import require_uint
from ..errors import NotEnabled
from ..state.program_state import ProgramState
from .best_effort import CallResult, OutcomeLog, best_effort
from .collaborators import Collaborators
from .config import ProgramConfig
from .guards import ReentrancyGuard


T = TypeVar("T")

Clock = Callable[[], int]


def system_clock() -> int:
    return int(time.time())


@dataclass
class ShellContext:
    config: ProgramConfig
    collaborators: Collaborators
    state: ProgramState = field(default_factory=ProgramState)
    clock: Clock = system_clock
    outcomes: OutcomeLog = field(default_factory=OutcomeLog)
    guard: ReentrancyGuard = field(default_factory=ReentrancyGuard)

    def now(self) -> int:
        return require_uint("clock", self.clock())

    def is_admin(self, account: str) -> bool:
        return self.config.is_admin(account)

    def require_enabled(self) -> None:
        if not self.config.enabled:
            raise NotEnabled("staking program is disabled")

    def best_effort(
        self,
        operation: str,
        target: str,
        fn: Optional[Callable[..., T]],
        *args: Any,
        identity_key: Optional[int] = None,
        record_success: bool = False,
    ) -> CallResult[T]:
        """Best-effort call; an unconfigured collaborator (`fn is None`) is a quiet skip."""
        if fn is None:
            return CallResult(ok=False, error="not configured")
        return best_effort(
            self.outcomes,
            operation,
            target,
            fn,
            *args,
            identity_key=identity_key,
            record_success=record_success,
        )

    def record(self, operation: str, target: str, status: str, detail: str = "", identity_key: Optional[int] = None) -> None:
        self.outcomes.record(operation, target, status, detail, identity_key)
