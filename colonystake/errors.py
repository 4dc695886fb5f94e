"""Exception types for the staking program.

Kernels in ``colonystake.core`` raise plain ``TypeError`` / ``ValueError`` for
malformed input. The imperative shell raises the ``StakingError`` family for
lifecycle, authorization and side-effect failures.
"""

from __future__ import annotations


class StakingError(Exception):
    """Base class for every failure raised by the staking program."""


class ValidationError(StakingError, ValueError):
    """Raised when an operation argument is outside its domain."""


class NotEnabled(StakingError):
    """Raised when the program is disabled."""


class InvalidCollection(StakingError):
    """Raised when a collection id is not registered with the program."""


class NotOwner(StakingError):
    """Raised when the caller does not own the asset or position."""


class Unauthorized(StakingError):
    """Raised when the caller lacks the role an operation requires."""


class AlreadyStaked(StakingError):
    pass


class NotStaked(StakingError):
    pass


class CooldownActive(StakingError):
    def __init__(self, identity_key: int, until: int) -> None:
        self.identity_key = identity_key
        self.until = until
        super().__init__(f"cooldown active for {identity_key} until {until}")


class PrerequisiteNotMet(StakingError):
    """Raised when the prerequisite activation policy rejects the caller."""


class PositionWrapped(StakingError):
    """Raised when an operation needs the receipt-specific path."""


class CustodyTransferFailed(StakingError):
    """Raised when the custody collaborator could not move the asset."""


class NoRewardsAvailable(StakingError):
    pass


class QuotaExceeded(StakingError):
    def __init__(self, account: str, requested: int, remaining: int) -> None:
        self.account = account
        self.requested = requested
        self.remaining = remaining
        super().__init__(
            f"daily issuance quota exceeded for {account}: requested={requested} remaining={remaining}"
        )


class InsufficientFeeBalance(StakingError):
    pass


class FeeNotAuthorized(StakingError):
    pass


class IssuanceFailed(StakingError):
    """Raised when a payout could not be delivered in full.

    ``delivered`` is the part that already reached the recipient and cannot
    be taken back.
    """

    def __init__(self, account: str, amount: int, delivered: int, reason: str) -> None:
        self.account = account
        self.amount = amount
        self.delivered = delivered
        self.reason = reason
        super().__init__(f"issuance of {amount} to {account} failed after {delivered} delivered: {reason}")


class ReentrantCall(StakingError):
    pass


class ColonyNotFound(StakingError):
    pass


class ColonyExists(StakingError):
    pass


class ColonyInactive(StakingError):
    pass


class ColonyFull(StakingError):
    pass


class InvalidBonus(StakingError):
    pass


class BelowMinimumDeposit(StakingError):
    pass


class InfusionCapReached(StakingError):
    pass


class NotInfused(StakingError):
    pass


class InsufficientInfusion(StakingError):
    pass


class ReceiptNotFound(StakingError):
    pass


class InvalidPermit(StakingError):
    pass


class CollaboratorError(StakingError):
    """Raised by collaborator implementations when an external call fails."""
