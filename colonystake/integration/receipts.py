"""
Receipt wrapper: transferable claims on staked positions.

A receipt is minted by the position owner and carries the right to claim
rewards and, on release, to receive the asset. The receipt id is the
identity key of the position it wraps.

Holders whose account is a BLS public key (48-byte hex) can also move a
receipt with a signed permit instead of calling `transfer` themselves:

    message = sha256(domain_sep("receipt_permit:<chain_id>") ||
                     canonical_json({"chain_id", "nonce", "receipt_id", "to"}))
    signature = G2Basic.Sign(sk, message)

Each accepted permit increments the receipt nonce, so a signature is valid
once. Verification fails closed when py_ecc is not installed.
"""

from __future__ import annotations

import hashlib
import logging
from dataclasses import replace
from typing import Optional, Tuple

from ..errors import InvalidPermit, NotOwner, NotStaked, PositionWrapped, ReceiptNotFound, ValidationError
from ..state.canonical import canonical_json_bytes, domain_sep_bytes, hex_to_bytes_allow_0x
from ..state.positions import Position
from ..state.receipts import Receipt
from .best_effort import STATUS_FAILED, STATUS_OK
from .context import ShellContext
from .ledger import PositionLedger, UnstakeResult


try:
    from py_ecc.bls import G2Basic

    _BLS_AVAILABLE = True
except Exception:  # pragma: no cover - optional dependency
    G2Basic = None  # type: ignore[assignment]
    _BLS_AVAILABLE = False


logger = logging.getLogger(__name__)


def permit_message(receipt_id: int, to: str, nonce: int, chain_id: str) -> bytes:
    """32-byte digest a holder signs to authorize moving `receipt_id` to `to`."""
    payload = canonical_json_bytes(
        {
            "chain_id": chain_id,
            "nonce": nonce,
            "receipt_id": str(receipt_id),
            "to": to,
        }
    )
    return hashlib.sha256(domain_sep_bytes(f"receipt_permit:{chain_id}", version=1) + payload).digest()


def _verify_permit(holder: str, signature_hex: str, message: bytes) -> Tuple[bool, Optional[str]]:
    if not _BLS_AVAILABLE:
        return False, "py_ecc (BLS) not available"
    try:
        pubkey_bytes = hex_to_bytes_allow_0x(holder, nbytes=48, name="holder_pubkey")
        sig_bytes = hex_to_bytes_allow_0x(signature_hex, nbytes=96, name="signature")
        ok = bool(G2Basic.Verify(pubkey_bytes, message, sig_bytes))  # type: ignore[attr-defined]
        if not ok:
            return False, "invalid permit signature"
        return True, None
    except Exception as exc:
        return False, f"permit verification error: {exc}"


class ReceiptWrapper:
    def __init__(self, ctx: ShellContext, ledger: PositionLedger) -> None:
        self._ctx = ctx
        self._ledger = ledger

    def _require_active(self, receipt_id: int) -> Receipt:
        receipt = self._ctx.state.receipts.get(receipt_id)
        if receipt is None or not receipt.active:
            raise ReceiptNotFound(f"no active receipt {receipt_id}")
        return receipt

    def _require_position(self, identity_key: int) -> Position:
        pos = self._ctx.state.positions.get(identity_key)
        if pos is None:
            raise NotStaked(f"not staked: {identity_key}")
        return pos

    def receipt(self, receipt_id: int) -> Optional[Receipt]:
        return self._ctx.state.receipts.get(receipt_id)

    def nonce(self, receipt_id: int) -> int:
        return self._ctx.state.receipts.nonce(receipt_id)

    def wrap(self, identity_key: int, caller: str) -> Receipt:
        with self._ctx.guard.hold("receipt"):
            pos = self._require_position(identity_key)
            if pos.owner != caller:
                raise NotOwner(f"{caller} does not own {identity_key}")
            if self._ctx.state.receipts.active_holder(identity_key) is not None:
                raise PositionWrapped(f"{identity_key} is already wrapped")
            receipt = Receipt(receipt_id=identity_key, holder=caller)
            self._ctx.state.receipts.put(receipt)
            self._ctx.record("receipt_wrap", caller, STATUS_OK, "", identity_key)
            return receipt

    def transfer(self, receipt_id: int, sender: str, to: str) -> Receipt:
        if not isinstance(to, str) or not to:
            raise ValidationError("recipient must be a non-empty account")
        with self._ctx.guard.hold("receipt"):
            receipt = self._require_active(receipt_id)
            if receipt.holder != sender:
                raise NotOwner(f"{sender} does not hold receipt {receipt_id}")
            moved = Receipt(receipt_id=receipt_id, holder=to)
            self._ctx.state.receipts.put(moved)
            self._ctx.record("receipt_transfer", to, STATUS_OK, f"from={sender}", receipt_id)
            return moved

    def transfer_with_permit(self, receipt_id: int, to: str, signature_hex: str) -> Receipt:
        if not isinstance(to, str) or not to:
            raise ValidationError("recipient must be a non-empty account")
        if not isinstance(signature_hex, str):
            raise InvalidPermit("signature must be a hex string")
        with self._ctx.guard.hold("receipt"):
            receipts = self._ctx.state.receipts
            receipt = self._require_active(receipt_id)
            nonce = receipts.nonce(receipt_id)
            message = permit_message(receipt_id, to, nonce, self._ctx.config.chain_id)
            ok, err = _verify_permit(receipt.holder, signature_hex, message)
            if not ok:
                self._ctx.record("receipt_permit", receipt.holder, STATUS_FAILED, err or "", receipt_id)
                raise InvalidPermit(err or "invalid permit")
            receipts.bump_nonce(receipt_id)
            moved = Receipt(receipt_id=receipt_id, holder=to)
            receipts.put(moved)
            self._ctx.record("receipt_permit", to, STATUS_OK, f"from={receipt.holder} nonce={nonce}", receipt_id)
            return moved

    def unwrap(self, receipt_id: int, caller: str) -> Position:
        """Burn the receipt; the holder becomes the position owner."""
        with self._ctx.guard.hold("receipt"):
            receipt = self._require_active(receipt_id)
            if receipt.holder != caller:
                raise NotOwner(f"{caller} does not hold receipt {receipt_id}")
            positions = self._ctx.state.positions
            pos = self._require_position(receipt_id)
            self._ctx.state.receipts.put(Receipt(receipt_id=receipt_id, holder=caller, active=False))
            if pos.owner != caller:
                pos = replace(pos, owner=caller)
                positions.replace(pos)
            self._ctx.record("receipt_unwrap", caller, STATUS_OK, "", receipt_id)
            return pos

    def release(self, receipt_id: int, caller: str) -> UnstakeResult:
        """Burn the receipt and unstake; custody goes to the holder."""
        with self._ctx.guard.hold("receipt"):
            receipt = self._require_active(receipt_id)
            if receipt.holder != caller:
                raise NotOwner(f"{caller} does not hold receipt {receipt_id}")
            pos = self._require_position(receipt_id)
            receipts = self._ctx.state.receipts
            receipts.put(Receipt(receipt_id=receipt_id, holder=caller, active=False))
            try:
                result = self._ledger.exit(pos, recipient=caller, payer=caller)
            except Exception:
                receipts.put(receipt)
                raise
            self._ctx.record("receipt_release", caller, STATUS_OK, "", receipt_id)
            logger.info("receipt %d released to %s", receipt_id, caller)
            return result


__all__ = ["ReceiptWrapper", "permit_message"]
