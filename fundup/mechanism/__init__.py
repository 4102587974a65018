"""
Allocation mechanism.

Provides:
  - TokenizedAllocationMechanism / Timeline           (core.py)
  - AllocationStrategy / hook                         (hooks.py)
  - Proposal / ProposalState / VoteType               (proposals.py)
  - QuadraticFundingTally / ProjectTally              (tally.py)
  - Event records                                     (events.py)
"""

from .core import Timeline, TokenizedAllocationMechanism
from .events import (
    AccessModeChangedEvent,
    AlphaUpdatedEvent,
    OwnershipTransferredEvent,
    ProposalCanceledEvent,
    ProposalCreatedEvent,
    ProposalQueuedEvent,
    RedeemEvent,
    SignupEvent,
    SweepEvent,
    VoteCastEvent,
    VoteTallyFinalizedEvent,
)
from .hooks import HOOKS, AllocationStrategy, hook
from .proposals import TERMINAL_STATES, Proposal, ProposalState, VoteType
from .tally import ProjectTally, QuadraticFundingTally

__all__ = [
    # Core
    "Timeline",
    "TokenizedAllocationMechanism",
    # Hooks
    "AllocationStrategy",
    "HOOKS",
    "hook",
    # Proposals
    "Proposal",
    "ProposalState",
    "TERMINAL_STATES",
    "VoteType",
    # Tally
    "ProjectTally",
    "QuadraticFundingTally",
    # Events
    "AccessModeChangedEvent",
    "AlphaUpdatedEvent",
    "OwnershipTransferredEvent",
    "ProposalCanceledEvent",
    "ProposalCreatedEvent",
    "ProposalQueuedEvent",
    "RedeemEvent",
    "SignupEvent",
    "SweepEvent",
    "VoteCastEvent",
    "VoteTallyFinalizedEvent",
]
