"""
FundUp Exceptions

Exception hierarchy for the allocation mechanism. Every error raised by the
package derives from FundUpError and falls into one of five families:

    ConfigurationError      invalid construction parameters
    AuthorizationError      wrong principal, bad or expired signature
    MechanismStateError     operation attempted in the wrong lifecycle state
    ArithmeticBoundsError   overflow ceilings, quadratic cost violations
    AssetTransferError      backing asset could not be moved
"""


class FundUpError(Exception):
    """Base exception for FundUp."""
    pass


# ══════════════════════════════════════════════════════════════════════
#  CONFIGURATION
# ══════════════════════════════════════════════════════════════════════

class ConfigurationError(FundUpError):
    """Configuration error."""
    pass


# ══════════════════════════════════════════════════════════════════════
#  AUTHORIZATION
# ══════════════════════════════════════════════════════════════════════

class AuthorizationError(FundUpError):
    """Caller is not allowed to perform the operation."""
    pass


class UnauthorizedError(AuthorizationError):
    """Principal does not hold the required role."""
    pass


class InvalidSignatureError(AuthorizationError):
    """Signature does not verify against the expected signer."""
    pass


class ExpiredSignatureError(AuthorizationError):
    """Signed instruction is past its deadline."""
    pass


class RecipientMismatchError(AuthorizationError):
    """Proposal recipient differs from the one the voter expected."""
    pass


class SignupNotAllowedError(AuthorizationError):
    """Strategy declined the signup."""
    pass


class ProposeNotAllowedError(AuthorizationError):
    """Strategy declined the proposer."""
    pass


class HookAccessError(AuthorizationError):
    """A strategy hook was invoked outside of mechanism dispatch."""
    pass


# ══════════════════════════════════════════════════════════════════════
#  STATE MACHINE
# ══════════════════════════════════════════════════════════════════════

class MechanismStateError(FundUpError):
    """Operation is not valid in the current state."""
    pass


class InvalidProposalError(MechanismStateError):
    """Proposal id out of range or rejected by the strategy."""
    pass


class RecipientUsedError(MechanismStateError):
    """Recipient already has a live proposal."""
    pass


class InvalidRecipientError(MechanismStateError):
    """Recipient is the zero address or the mechanism itself."""
    pass


class InvalidDescriptionError(MechanismStateError):
    """Description is empty or too long."""
    pass


class VotingNotActiveError(MechanismStateError):
    """Vote cast outside of the voting window."""
    pass


class VotingEndedError(MechanismStateError):
    """Operation requires the voting window to still be open."""
    pass


class VotingNotEndedError(MechanismStateError):
    """Operation requires the voting window to have closed."""
    pass


class TallyNotFinalizedError(MechanismStateError):
    """Operation requires a finalized tally."""
    pass


class TallyAlreadyFinalizedError(MechanismStateError):
    """Tally was already finalized."""
    pass


class FinalizeNotAllowedError(MechanismStateError):
    """Strategy declined finalization."""
    pass


class AlreadyQueuedError(MechanismStateError):
    """Proposal shares were already allocated."""
    pass


class NoQuorumError(MechanismStateError):
    """Proposal did not reach quorum."""
    pass


class NoAllocationError(MechanismStateError):
    """Vote-to-shares conversion yielded zero."""
    pass


class QueueWindowClosedError(MechanismStateError):
    """Queuing attempted at or after redemption start."""
    pass


class ProposalCanceledError(MechanismStateError):
    """Proposal was canceled."""
    pass


class AlreadyVotedError(MechanismStateError):
    """Voter already voted on this proposal."""
    pass


class UnsupportedVoteTypeError(MechanismStateError):
    """Strategy does not accept this vote choice."""
    pass


class TransferWindowClosedError(MechanismStateError):
    """Share transfer outside of the redemption window."""
    pass


class SweepNotAllowedError(MechanismStateError):
    """Sweep attempted before the grace period elapsed."""
    pass


class ReentrancyError(MechanismStateError):
    """Nested call into a guarded entrypoint."""
    pass


class AccessModeLockedError(MechanismStateError):
    """Access mode change attempted during active voting."""
    pass


# ══════════════════════════════════════════════════════════════════════
#  ARITHMETIC / BOUNDS
# ══════════════════════════════════════════════════════════════════════

class ArithmeticBoundsError(FundUpError):
    """Numeric bound or tally invariant violated."""
    pass


class InvalidDepositError(ArithmeticBoundsError):
    """Deposit is negative."""
    pass


class InvalidShareAmountError(ArithmeticBoundsError):
    """Share amount is negative."""
    pass


class DepositTooLargeError(ArithmeticBoundsError):
    """Deposit exceeds the safe ceiling."""
    pass


class VotingPowerOverflowError(ArithmeticBoundsError):
    """Accumulated voting power exceeds the safe ceiling."""
    pass


class InsufficientVotingPowerError(ArithmeticBoundsError):
    """Vote cost exceeds remaining voting power."""
    pass


class VotingPowerIncreasedError(ArithmeticBoundsError):
    """Strategy returned more power than the voter had."""
    pass


class QuadraticCostError(ArithmeticBoundsError):
    """Vote weight inconsistent with its quadratic contribution."""
    pass


class TallyInvariantError(ArithmeticBoundsError):
    """Aggregate would fall below a project's prior contribution."""
    pass


class InvalidAlphaError(ArithmeticBoundsError):
    """Alpha fraction outside [0, 1] or zero denominator."""
    pass


class ExceedsMaxRedeemError(ArithmeticBoundsError):
    """Redeem amount above max_redeem."""
    pass


class ZeroAssetsError(ArithmeticBoundsError):
    """Redeem would pay out zero assets."""
    pass


# ══════════════════════════════════════════════════════════════════════
#  BACKING ASSET
# ══════════════════════════════════════════════════════════════════════

class AssetTransferError(FundUpError):
    """Backing asset transfer failed."""
    pass


class InsufficientBalanceError(AssetTransferError):
    """Balance too low for the transfer."""
    pass


class InsufficientAllowanceError(AssetTransferError):
    """Allowance too low for the transfer."""
    pass
