"""
Best-effort collaborator calls and the structured outcome log.

Secondary synchronization (experience, achievements, registry lookups,
authority propagation) must never abort a primary operation. Every such call
goes through `best_effort(...)`, which returns a `CallResult` and appends one
`Outcome` to the program's `OutcomeLog`. Repair sub-actions, cursor advances
and rollbacks are recorded in the same log with their own status strings.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Generic, List, Optional, Tuple, TypeVar


logger = logging.getLogger(__name__)

T = TypeVar("T")

STATUS_OK = "ok"
STATUS_FAILED = "failed"
STATUS_SKIPPED = "skipped"


@dataclass(frozen=True)
class Outcome:
    operation: str
    target: str
    status: str
    detail: str = ""
    identity_key: Optional[int] = None


@dataclass(frozen=True)
class CallResult(Generic[T]):
    ok: bool
    value: Optional[T] = None
    error: Optional[str] = None

    def value_or(self, default: T) -> T:
        if self.ok and self.value is not None:
            return self.value
        return default


@dataclass
class OutcomeLog:
    """Append-only list of outcomes, bounded to the newest `max_entries`."""

    max_entries: int = 10_000
    _entries: List[Outcome] = field(default_factory=list)

    def record(
        self,
        operation: str,
        target: str,
        status: str,
        detail: str = "",
        identity_key: Optional[int] = None,
    ) -> Outcome:
        outcome = Outcome(operation=operation, target=target, status=status, detail=detail, identity_key=identity_key)
        self._entries.append(outcome)
        if len(self._entries) > self.max_entries:
            del self._entries[: len(self._entries) - self.max_entries]
        level = logging.WARNING if status == STATUS_FAILED else logging.DEBUG
        logger.log(
            level,
            "%s %s: %s %s",
            operation,
            target,
            status,
            detail,
            extra={
                "operation": operation,
                "target": target,
                "status": status,
                "identity_key": identity_key,
            },
        )
        return outcome

    def entries(self) -> Tuple[Outcome, ...]:
        return tuple(self._entries)

    def filter(self, *, operation: Optional[str] = None, status: Optional[str] = None) -> Tuple[Outcome, ...]:
        return tuple(
            o
            for o in self._entries
            if (operation is None or o.operation == operation) and (status is None or o.status == status)
        )

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)


def best_effort(
    log: OutcomeLog,
    operation: str,
    target: str,
    fn: Callable[..., T],
    *args: Any,
    identity_key: Optional[int] = None,
    record_success: bool = False,
) -> CallResult[T]:
    """
    Call `fn(*args)`; never raises for ordinary exceptions.

    Failures are always recorded; successes only when `record_success` is set,
    which keeps hot read paths (accessory lookups during reward queries) quiet.
    """
    try:
        value = fn(*args)
    except Exception as exc:
        log.record(operation, target, STATUS_FAILED, f"{type(exc).__name__}: {exc}", identity_key)
        return CallResult(ok=False, error=str(exc))
    if record_success:
        log.record(operation, target, STATUS_OK, "", identity_key)
    return CallResult(ok=True, value=value)
