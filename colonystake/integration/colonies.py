"""
Colony registry.

Local colony metadata and membership, kept consistent with two sources:

- the position ledger: while a colony is active its member list holds
  exactly the staked identity keys whose position points at it;
- the external colony authority, which is the source of truth that
  `repair` reconciles against.

Assets that are not staked can still join or leave; the choice is stored as
a pending assignment and applied by the ledger at the next stake.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import List, Optional, Tuple

from ..core.math import require_uint
from ..errors import (
    ColonyExists,
    ColonyFull,
    ColonyInactive,
    ColonyNotFound,
    InvalidBonus,
    NotOwner,
    Unauthorized,
    ValidationError,
)
from ..state.colonies import Colony, derive_colony_id
from .best_effort import STATUS_OK, STATUS_SKIPPED
from .context import ShellContext


logger = logging.getLogger(__name__)

REPAIR_MEMBER_ADDED = "member_added"
REPAIR_CONFLICT = "conflict"
REPAIR_CONFLICT_OVERRIDDEN = "conflict_overridden"
REPAIR_MEMBER_REMOVED = "member_removed"
REPAIR_LOCAL_INDEX_FIXED = "local_index_fixed"
REPAIR_AUTHORITY_UNAVAILABLE = "authority_unavailable"


@dataclass(frozen=True)
class ColonyInfo:
    colony_id: int
    name: str
    creator: str
    active: bool
    bonus: int
    members: Tuple[int, ...]

    @property
    def member_count(self) -> int:
        return len(self.members)


@dataclass(frozen=True)
class StakeAssignment:
    """Colony chosen for a fresh stake plus what is needed to undo the choice."""

    colony_id: int = 0
    pending: Optional[int] = None
    registered: bool = False


@dataclass
class RepairReport:
    colonies_checked: int = 0
    added: int = 0
    removed: int = 0
    conflicts: int = 0
    overridden: int = 0
    fixed: int = 0
    unavailable: int = 0
    complete: bool = True
    cursor: int = 0


class ColonyRegistry:
    def __init__(self, ctx: ShellContext) -> None:
        self._ctx = ctx

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def _require(self, colony_id: int) -> Colony:
        colony = self._ctx.state.colonies.get(colony_id)
        if colony is None:
            raise ColonyNotFound(f"unknown colony: {colony_id}")
        return colony

    def colony_info(self, colony_id: int) -> ColonyInfo:
        colony = self._require(colony_id)
        return ColonyInfo(
            colony_id=colony.colony_id,
            name=colony.name,
            creator=colony.creator,
            active=colony.active,
            bonus=colony.bonus,
            members=self._ctx.state.members.members(colony_id),
        )

    def bonus_of(self, colony_id: int) -> int:
        if colony_id == 0:
            return 0
        colony = self._ctx.state.colonies.get(colony_id)
        if colony is None or not colony.active:
            return 0
        return colony.bonus

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def create_colony(self, name: str, creator: str, bonus: int = 0) -> Colony:
        if not isinstance(creator, str) or not creator:
            raise ValidationError("creator must be a non-empty account")
        try:
            colony_id = derive_colony_id(name)
            require_uint("bonus", bonus)
        except (TypeError, ValueError) as exc:
            raise ValidationError(str(exc)) from exc
        if bonus > self._ctx.config.colony.max_bonus:
            raise InvalidBonus(f"bonus {bonus} exceeds {self._ctx.config.colony.max_bonus}")
        if colony_id in self._ctx.state.colonies:
            raise ColonyExists(f"colony already registered: {colony_id}")
        colony = Colony(colony_id=colony_id, name=name.strip(), creator=creator, bonus=bonus)
        self._ctx.state.colonies.put(colony)
        self._ctx.record("colony_create", f"colony:{colony_id}", STATUS_OK, colony.name)
        return colony

    def _asset_owner(self, identity_key: int) -> str:
        pos = self._ctx.state.positions.get(identity_key)
        if pos is not None:
            return pos.owner
        return self._ctx.collaborators.custody.owner_of(identity_key)

    def join(self, identity_key: int, colony_id: int, caller: str) -> None:
        with self._ctx.guard.hold("colony_membership"):
            colony = self._require(colony_id)
            if not colony.active:
                raise ColonyInactive(f"colony {colony_id} is dissolved")
            if self._asset_owner(identity_key) != caller:
                raise NotOwner(f"{caller} does not own {identity_key}")

            state = self._ctx.state
            pos = state.positions.get(identity_key)
            if pos is not None and pos.colony_id == colony_id:
                return
            if state.members.count(colony_id) >= self._ctx.config.colony.max_members:
                raise ColonyFull(f"colony {colony_id} has {state.members.count(colony_id)} members")

            if pos is None:
                state.pending.set(identity_key, colony_id)
                self._ctx.record("colony_join", f"colony:{colony_id}", STATUS_SKIPPED, "pending", identity_key)
                return
            state.members.remove(identity_key)
            state.members.add(colony_id, identity_key)
            state.positions.replace(replace(pos, colony_id=colony_id))
            self._ctx.record("colony_join", f"colony:{colony_id}", STATUS_OK, "", identity_key)

    def leave(self, identity_key: int, caller: str) -> None:
        with self._ctx.guard.hold("colony_membership"):
            if self._asset_owner(identity_key) != caller:
                raise NotOwner(f"{caller} does not own {identity_key}")
            state = self._ctx.state
            pos = state.positions.get(identity_key)
            if pos is None:
                state.pending.set(identity_key, 0)
                self._ctx.record("colony_leave", str(identity_key), STATUS_SKIPPED, "pending", identity_key)
                return
            if pos.colony_id == 0:
                raise ValidationError(f"{identity_key} is not in a colony")
            state.members.remove(identity_key)
            state.positions.replace(replace(pos, colony_id=0))
            self._ctx.record("colony_leave", f"colony:{pos.colony_id}", STATUS_OK, "", identity_key)

    def set_bonus(self, colony_id: int, value: int, caller: str) -> Colony:
        try:
            require_uint("bonus", value)
        except (TypeError, ValueError) as exc:
            raise ValidationError(str(exc)) from exc
        with self._ctx.guard.hold("colony_bonus"):
            colony = self._require(colony_id)
            if not colony.active:
                raise ColonyInactive(f"colony {colony_id} is dissolved")

            cfg = self._ctx.config.colony
            if self._ctx.is_admin(caller):
                cap = cfg.max_bonus
            elif caller == colony.creator:
                authority = self._ctx.collaborators.colony_authority
                res = self._ctx.best_effort(
                    "creator_bonus_ceiling",
                    f"colony:{colony_id}",
                    getattr(authority, "creator_bonus_ceiling", None),
                )
                cap = res.value_or(cfg.creator_bonus_ceiling)
                if not isinstance(cap, int) or isinstance(cap, bool) or cap < 0:
                    cap = cfg.creator_bonus_ceiling
                cap = min(cap, cfg.max_bonus)
            else:
                raise Unauthorized(f"{caller} may not set the bonus of colony {colony_id}")
            if value > cap:
                raise InvalidBonus(f"bonus {value} exceeds cap {cap}")

            updated = replace(colony, bonus=value)
            self._ctx.state.colonies.put(updated)
            authority = self._ctx.collaborators.colony_authority
            self._ctx.best_effort(
                "colony_bonus_sync",
                f"colony:{colony_id}",
                getattr(authority, "set_colony_bonus", None),
                colony_id,
                value,
                record_success=True,
            )
            return updated

    def dissolve(self, colony_id: int, caller: str) -> Tuple[int, ...]:
        """Soft delete: members are released, name and creator are kept. Returns the released keys."""
        colony = self._require(colony_id)
        if not (self._ctx.is_admin(caller) or caller == colony.creator):
            raise Unauthorized(f"{caller} may not dissolve colony {colony_id}")
        if not colony.active:
            raise ColonyInactive(f"colony {colony_id} is already dissolved")

        state = self._ctx.state
        released = state.members.clear(colony_id)
        for key in released:
            pos = state.positions.get(key)
            if pos is not None and pos.colony_id == colony_id:
                state.positions.replace(replace(pos, colony_id=0))
        state.pending.discard_colony(colony_id)
        state.colonies.put(replace(colony, active=False))
        self._ctx.record("colony_dissolve", f"colony:{colony_id}", STATUS_OK, f"released={len(released)}")
        return released

    # ------------------------------------------------------------------
    # Ledger hooks
    # ------------------------------------------------------------------

    def assignment_for_stake(self, identity_key: int) -> StakeAssignment:
        """
        Colony a freshly staked position should join.

        A pending assignment wins; otherwise the authority is asked
        (best-effort). A colony id the authority reports but the registry has
        never seen is registered on first sight.
        """
        state = self._ctx.state
        pending = state.pending.pop(identity_key)
        if pending is not None:
            colony_id = pending
            registered = False
        else:
            authority = self._ctx.collaborators.colony_authority
            res = self._ctx.best_effort(
                "colony_lookup",
                str(identity_key),
                getattr(authority, "colony_of", None),
                identity_key,
                identity_key=identity_key,
            )
            colony_id = res.value_or(0)
            if not isinstance(colony_id, int) or isinstance(colony_id, bool) or colony_id < 0:
                colony_id = 0
            registered = False
            if colony_id and colony_id not in state.colonies:
                state.colonies.put(Colony(colony_id=colony_id, name=f"colony-{colony_id}", creator=""))
                registered = True

        if colony_id:
            colony = state.colonies.get(colony_id)
            if colony is None or not colony.active:
                self._ctx.record("colony_assign", f"colony:{colony_id}", STATUS_SKIPPED, "inactive", identity_key)
                colony_id = 0
            elif state.members.count(colony_id) >= self._ctx.config.colony.max_members:
                self._ctx.record("colony_assign", f"colony:{colony_id}", STATUS_SKIPPED, "full", identity_key)
                colony_id = 0
        return StakeAssignment(colony_id=colony_id, pending=pending, registered=registered)

    def attach(self, identity_key: int, colony_id: int) -> None:
        if colony_id:
            self._ctx.state.members.add(colony_id, identity_key)

    def detach(self, identity_key: int) -> int:
        return self._ctx.state.members.remove(identity_key)

    def undo_assignment(self, identity_key: int, assignment: StakeAssignment) -> None:
        state = self._ctx.state
        state.members.remove(identity_key)
        if assignment.pending is not None:
            state.pending.set(identity_key, assignment.pending)
        if assignment.registered and state.members.count(assignment.colony_id) == 0:
            state.colonies.discard(assignment.colony_id)

    # ------------------------------------------------------------------
    # Reconciliation
    # ------------------------------------------------------------------

    def repair(self, colony_id: Optional[int] = None, max_items: Optional[int] = None) -> RepairReport:
        """
        Reconcile local membership with the colony authority.

        With `colony_id` only that colony is checked. Otherwise every active
        colony is checked in id order, starting at the persisted cursor; a pass
        stops early once `max_items` work items (one per colony plus one per
        member examined) are used, and the next call resumes where it stopped.
        """
        budget = self._ctx.config.colony.repair_max_items if max_items is None else max_items
        try:
            require_uint("max_items", budget)
        except (TypeError, ValueError) as exc:
            raise ValidationError(str(exc)) from exc

        with self._ctx.guard.hold("colony_repair"):
            report = RepairReport()
            state = self._ctx.state
            if colony_id is not None:
                colony = self._require(colony_id)
                if not colony.active:
                    raise ColonyInactive(f"colony {colony_id} is dissolved")
                self._repair_one(colony_id, report)
                report.cursor = state.repair_cursor
                return report

            ids = [c.colony_id for c in state.colonies if c.active]
            start = state.repair_cursor if state.repair_cursor < len(ids) else 0
            used = 0
            idx = start
            while idx < len(ids):
                if used >= budget:
                    report.complete = False
                    break
                used += 1 + self._repair_one(ids[idx], report)
                idx += 1
            state.repair_cursor = idx if not report.complete else 0
            report.cursor = state.repair_cursor
            self._ctx.record(
                "colony_repair",
                "all",
                STATUS_OK if report.complete else STATUS_SKIPPED,
                f"checked={report.colonies_checked} cursor={report.cursor}",
            )
            return report

    def _repair_one(self, colony_id: int, report: RepairReport) -> int:
        """Reconcile one colony; returns the number of members examined."""
        state = self._ctx.state
        target = f"colony:{colony_id}"
        authority = self._ctx.collaborators.colony_authority
        report.colonies_checked += 1

        res = self._ctx.best_effort("colony_repair", target, getattr(authority, "members_of", None), colony_id)
        if not res.ok:
            self._ctx.record("colony_repair", target, REPAIR_AUTHORITY_UNAVAILABLE, res.error or "")
            report.unavailable += 1
            return 0

        external = {k for k in (res.value or ()) if isinstance(k, int) and not isinstance(k, bool)}
        examined = len(external)

        for key in sorted(external):
            pos = state.positions.get(key)
            if pos is None:
                continue
            if pos.colony_id == colony_id:
                continue
            if pos.colony_id == 0:
                state.members.remove(key)
                state.members.add(colony_id, key)
                state.positions.replace(replace(pos, colony_id=colony_id))
                self._ctx.record("colony_repair", target, REPAIR_MEMBER_ADDED, "", key)
                report.added += 1
                continue
            if self._ctx.config.colony.force_override:
                state.members.remove(key)
                state.members.add(colony_id, key)
                state.positions.replace(replace(pos, colony_id=colony_id))
                self._ctx.record("colony_repair", target, REPAIR_CONFLICT_OVERRIDDEN, f"from={pos.colony_id}", key)
                report.overridden += 1
            else:
                self._ctx.record("colony_repair", target, REPAIR_CONFLICT, f"local={pos.colony_id}", key)
                report.conflicts += 1

        local = state.members.members(colony_id)
        examined += len(local)
        for key in local:
            if key in external:
                continue
            state.members.remove(key)
            pos = state.positions.get(key)
            if pos is not None and pos.colony_id == colony_id:
                state.positions.replace(replace(pos, colony_id=0))
            self._ctx.record("colony_repair", target, REPAIR_MEMBER_REMOVED, "", key)
            report.removed += 1

        stray: List[int] = [
            p.identity_key
            for p in state.positions
            if p.colony_id == colony_id and not state.members.contains(colony_id, p.identity_key)
        ]
        for key in stray:
            state.members.remove(key)
            state.members.add(colony_id, key)
            self._ctx.record("colony_repair", target, REPAIR_LOCAL_INDEX_FIXED, "", key)
            report.fixed += 1

        logger.debug("colony %d repaired: examined=%d", colony_id, examined)
        return examined


__all__ = [
    "ColonyInfo",
    "ColonyRegistry",
    "RepairReport",
    "StakeAssignment",
    "REPAIR_AUTHORITY_UNAVAILABLE",
    "REPAIR_CONFLICT",
    "REPAIR_CONFLICT_OVERRIDDEN",
    "REPAIR_LOCAL_INDEX_FIXED",
    "REPAIR_MEMBER_ADDED",
    "REPAIR_MEMBER_REMOVED",
]
