"""
Mechanism events.

Every state change a mechanism makes is recorded as one of these frozen
records, in order, on ``TokenizedAllocationMechanism.events``.
"""

from dataclasses import dataclass
from typing import Any, Dict


@dataclass(frozen=True)
class SignupEvent:
    user: str
    payer: str
    deposit: int
    voting_power: int
    timestamp: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event": "UserRegistered",
            "user": self.user,
            "payer": self.payer,
            "deposit": str(self.deposit),
            "votingPower": str(self.voting_power),
            "timestamp": self.timestamp,
        }


@dataclass(frozen=True)
class ProposalCreatedEvent:
    proposal_id: int
    proposer: str
    recipient: str
    description: str
    timestamp: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event": "ProposalCreated",
            "proposalId": self.proposal_id,
            "proposer": self.proposer,
            "recipient": self.recipient,
            "description": self.description,
            "timestamp": self.timestamp,
        }


@dataclass(frozen=True)
class VoteCastEvent:
    voter: str
    proposal_id: int
    choice: int
    weight: int
    remaining_power: int
    timestamp: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event": "VotesCast",
            "voter": self.voter,
            "proposalId": self.proposal_id,
            "choice": self.choice,
            "weight": str(self.weight),
            "remainingPower": str(self.remaining_power),
            "timestamp": self.timestamp,
        }


@dataclass(frozen=True)
class VoteTallyFinalizedEvent:
    total_assets: int
    redemption_start: int
    redemption_end: int
    timestamp: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event": "VoteTallyFinalized",
            "totalAssets": str(self.total_assets),
            "redemptionStart": self.redemption_start,
            "redemptionEnd": self.redemption_end,
            "timestamp": self.timestamp,
        }


@dataclass(frozen=True)
class ProposalQueuedEvent:
    proposal_id: int
    recipient: str
    shares: int
    custom_distribution: bool
    timestamp: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event": "ProposalQueued",
            "proposalId": self.proposal_id,
            "recipient": self.recipient,
            "shares": str(self.shares),
            "customDistribution": self.custom_distribution,
            "timestamp": self.timestamp,
        }


@dataclass(frozen=True)
class ProposalCanceledEvent:
    proposal_id: int
    proposer: str
    timestamp: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event": "ProposalCanceled",
            "proposalId": self.proposal_id,
            "proposer": self.proposer,
            "timestamp": self.timestamp,
        }


@dataclass(frozen=True)
class RedeemEvent:
    sender: str
    receiver: str
    owner: str
    assets: int
    shares: int
    timestamp: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event": "Withdraw",
            "sender": self.sender,
            "receiver": self.receiver,
            "owner": self.owner,
            "assets": str(self.assets),
            "shares": str(self.shares),
            "timestamp": self.timestamp,
        }


@dataclass(frozen=True)
class SweepEvent:
    token: str
    receiver: str
    amount: int
    timestamp: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event": "Swept",
            "token": self.token,
            "receiver": self.receiver,
            "amount": str(self.amount),
            "timestamp": self.timestamp,
        }


@dataclass(frozen=True)
class AlphaUpdatedEvent:
    numerator: int
    denominator: int
    total_funding: int
    timestamp: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event": "AlphaUpdated",
            "alpha": f"{self.numerator}/{self.denominator}",
            "totalFunding": str(self.total_funding),
            "timestamp": self.timestamp,
        }


@dataclass(frozen=True)
class AccessModeChangedEvent:
    old_mode: int
    new_mode: int
    timestamp: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event": "AccessModeSet",
            "oldMode": self.old_mode,
            "newMode": self.new_mode,
            "timestamp": self.timestamp,
        }


@dataclass(frozen=True)
class OwnershipTransferredEvent:
    role: str
    previous: str
    current: str
    timestamp: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event": "RoleTransferred",
            "role": self.role,
            "previous": self.previous,
            "current": self.current,
            "timestamp": self.timestamp,
        }
