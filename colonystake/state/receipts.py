"""
Receipt table.

A receipt is a transferable claim on a staked position; its id is the
position's identity key. Permit nonces survive unwrap so a signature can
never be replayed against a later receipt for the same position.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Optional


@dataclass(frozen=True)
class Receipt:
    receipt_id: int
    holder: str
    active: bool = True


@dataclass
class ReceiptTable:
    _receipts: Dict[int, Receipt] = field(default_factory=dict)
    _nonces: Dict[int, int] = field(default_factory=dict)

    def get(self, receipt_id: int) -> Optional[Receipt]:
        return self._receipts.get(receipt_id)

    def active_holder(self, identity_key: int) -> Optional[str]:
        r = self._receipts.get(identity_key)
        if r is None or not r.active:
            return None
        return r.holder

    def put(self, receipt: Receipt) -> None:
        if receipt.active:
            self._receipts[receipt.receipt_id] = receipt
        else:
            self._receipts.pop(receipt.receipt_id, None)

    def nonce(self, receipt_id: int) -> int:
        return self._nonces.get(receipt_id, 0)

    def bump_nonce(self, receipt_id: int) -> int:
        n = self._nonces.get(receipt_id, 0) + 1
        self._nonces[receipt_id] = n
        return n

    def __len__(self) -> int:
        return len(self._receipts)
