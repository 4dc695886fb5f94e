"""
Deterministic ledger root hashing (v1).

This is intended for:
- debugging / audit (stable hashes for the same logical ledger),
- comparing a ledger before and after a rolled-back operation.

Sections are sorted by identity key / colony id, so insertion order never
affects the root.
"""

from __future__ import annotations

from .canonical import domain_sep_bytes, encode_bytes, encode_str, encode_uvarint, sha256_hex
from .colonies import ColonyTable, MembershipTable
from .infusions import InfusionTable
from .positions import PositionTable


STATE_ROOT_VERSION = 1


def _encode_positions_section(positions: PositionTable) -> bytes:
    out = bytearray()
    out += encode_uvarint(len(positions))
    for p in positions:
        out += encode_uvarint(p.identity_key)
        out += encode_str(p.owner)
        out += encode_str(p.custody_source)
        for v in (
            p.staked_at,
            p.last_claim_timestamp,
            p.last_sync_timestamp,
            p.variant,
            p.level,
            p.experience,
            p.charge_level,
            p.infusion_level,
            p.specialization,
            p.wear_level,
            p.wear_penalty,
            p.colony_id,
            p.total_rewards_claimed,
            1 if p.staked else 0,
        ):
            out += encode_uvarint(v)
    return bytes(out)


def _encode_colonies_section(colonies: ColonyTable, members: MembershipTable) -> bytes:
    out = bytearray()
    out += encode_uvarint(len(colonies))
    for c in colonies:
        out += encode_uvarint(c.colony_id)
        out += encode_str(c.name)
        out += encode_str(c.creator)
        out += encode_uvarint(1 if c.active else 0)
        out += encode_uvarint(c.bonus)
        # Member order depends on swap-with-last history; commit to the set.
        keys = sorted(members.members(c.colony_id))
        out += encode_uvarint(len(keys))
        for k in keys:
            out += encode_uvarint(k)
    return bytes(out)


def _encode_infusions_section(infusions: InfusionTable) -> bytes:
    out = bytearray()
    out += encode_uvarint(len(infusions))
    for e in infusions:
        out += encode_uvarint(e.identity_key)
        out += encode_str(e.depositor)
        out += encode_uvarint(e.infused_amount)
        out += encode_uvarint(e.infusion_time)
        out += encode_uvarint(e.last_harvest_time)
    return bytes(out)


def compute_state_root(
    *,
    positions: PositionTable,
    colonies: ColonyTable,
    members: MembershipTable,
    infusions: InfusionTable,
) -> str:
    """
    Compute a deterministic root hash for the staking ledger.

    Returns a 0x-prefixed sha256 digest.
    """
    if not isinstance(positions, PositionTable):
        raise TypeError("positions must be a PositionTable")
    if not isinstance(colonies, ColonyTable):
        raise TypeError("colonies must be a ColonyTable")
    if not isinstance(members, MembershipTable):
        raise TypeError("members must be a MembershipTable")
    if not isinstance(infusions, InfusionTable):
        raise TypeError("infusions must be an InfusionTable")

    payload = (
        domain_sep_bytes("state_root", version=STATE_ROOT_VERSION)
        + b"POS"
        + encode_bytes(_encode_positions_section(positions))
        + b"COL"
        + encode_bytes(_encode_colonies_section(colonies, members))
        + b"INF"
        + encode_bytes(_encode_infusions_section(infusions))
    )
    return sha256_hex(payload)
