"""
Proposal records and lifecycle states.
"""

from dataclasses import dataclass
from enum import IntEnum
from typing import Any, Dict


class ProposalState(IntEnum):
    """Lifecycle state of a proposal. CANCELED, DEFEATED and EXPIRED are terminal."""
    PENDING = 0
    ACTIVE = 1
    CANCELED = 2
    DEFEATED = 3
    SUCCEEDED = 4
    QUEUED = 5
    REDEEMABLE = 6
    EXPIRED = 7
    TALLYING = 8


TERMINAL_STATES = frozenset({
    ProposalState.CANCELED,
    ProposalState.DEFEATED,
    ProposalState.EXPIRED,
})


class VoteType(IntEnum):
    AGAINST = 0
    FOR = 1
    ABSTAIN = 2


@dataclass
class Proposal:
    """
    A funding proposal for one recipient.

    ``shares`` stays 0 until the proposal is queued.
    """
    id: int
    proposer: str
    recipient: str
    description: str
    created_at: int
    shares: int = 0
    canceled: bool = False

    @property
    def is_queued(self) -> bool:
        return self.shares > 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "proposer": self.proposer,
            "recipient": self.recipient,
            "description": self.description,
            "createdAt": self.created_at,
            "shares": str(self.shares),
            "canceled": self.canceled,
        }
