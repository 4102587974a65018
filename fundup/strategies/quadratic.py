"""
Quadratic Voting Strategy

Wires the quadratic funding tally into the mechanism hooks:

    - voting power = deposit rescaled to 18 decimals
    - only FOR votes; weight w costs w² voting power
    - the tally records contribution w² with square root w
    - quorum: project funding >= quorum_shares
    - shares allocated = project funding

Only the keeper or management may propose.
"""

from typing import Any, Dict, Optional, Tuple

from ..constants import SHARE_DECIMALS
from ..exceptions import (
    InsufficientVotingPowerError,
    QuadraticCostError,
    TallyAlreadyFinalizedError,
    UnsupportedVoteTypeError,
)
from ..logger import get_logger
from ..mechanism.events import AlphaUpdatedEvent
from ..mechanism.hooks import AllocationStrategy
from ..mechanism.proposals import VoteType
from ..mechanism.tally import ProjectTally, QuadraticFundingTally
from ..tokens.shares import normalize_decimals

logger = get_logger(__name__)


class QuadraticVotingStrategy(AllocationStrategy):
    """
    Quadratic funding allocation.

    The tally is created when the strategy is bound, with the alpha and
    sqrt tolerance of the mechanism's configuration.
    """

    def __init__(self):
        super().__init__()
        self.tally: Optional[QuadraticFundingTally] = None

    def bind(self, mechanism) -> object:
        token = super().bind(mechanism)
        cfg = mechanism.config
        self.tally = QuadraticFundingTally(
            cfg.alpha_numerator,
            cfg.alpha_denominator,
            cfg.sqrt_tolerance_percent,
        )
        logger.debug(
            f"Quadratic tally for {mechanism.address}: alpha {cfg.alpha_numerator}/{cfg.alpha_denominator}, "
            f"sqrt tolerance {cfg.sqrt_tolerance_percent}%"
        )
        return token

    # ── Eligibility ───────────────────────────────────────────────────

    def before_signup(self, user: str) -> bool:
        return True

    def before_propose(self, proposer: str) -> bool:
        return self.mechanism.is_proposer_role(proposer)

    def get_voting_power(self, user: str, deposit: int) -> int:
        return normalize_decimals(deposit, self.mechanism.asset.decimals, SHARE_DECIMALS)

    def validate_proposal(self, proposal_id: int) -> bool:
        return 1 <= proposal_id <= self.mechanism.proposal_count

    def before_finalize_vote_tally(self) -> bool:
        return True

    def get_recipient(self, proposal_id: int) -> str:
        return self.mechanism.proposals(proposal_id).recipient

    # ── Voting ────────────────────────────────────────────────────────

    def process_vote(self, proposal_id: int, voter: str, choice: int, weight: int, old_power: int) -> int:
        if choice != VoteType.FOR:
            raise UnsupportedVoteTypeError(
                f"Quadratic voting only accepts FOR votes, got choice {choice}"
            )
        if weight <= 0:
            raise QuadraticCostError(f"Vote weight must be positive, got {weight}")

        cost = weight * weight
        if cost > old_power:
            raise InsufficientVotingPowerError(
                f"{voter} has {old_power} voting power, weight {weight} costs {cost}"
            )

        self.tally.process_vote(proposal_id, cost, weight)
        return old_power - cost

    def has_quorum(self, proposal_id: int) -> bool:
        return self.tally.project_funding(proposal_id) >= self.mechanism.config.quorum_shares

    def convert_votes_to_shares(self, proposal_id: int) -> int:
        return self.tally.project_funding(proposal_id)

    # ══════════════════════════════════════════════════════════════════
    #  GOVERNANCE / VIEWS
    # ══════════════════════════════════════════════════════════════════

    def set_alpha(self, sender: str, numerator: int, denominator: int):
        """Owner-only; only before the tally is finalized."""
        with self.mechanism.locked():
            self.mechanism.require_owner(sender)
            if self.mechanism.timeline.finalized:
                raise TallyAlreadyFinalizedError("Alpha is fixed once the tally is finalized")
            self.tally.set_alpha(numerator, denominator)
            self.mechanism.emit(AlphaUpdatedEvent(
                numerator, denominator, self.tally.total_funding, self.mechanism.chain.timestamp,
            ))

    def calculate_optimal_alpha(self, matching_pool: int, user_deposits: int) -> Tuple[int, int]:
        """
        Alpha that spends exactly *matching_pool* + *user_deposits* (asset
        units) given the current tally.
        """
        decimals = self.mechanism.asset.decimals
        return QuadraticFundingTally.calculate_optimal_alpha(
            normalize_decimals(matching_pool, decimals, SHARE_DECIMALS),
            self.tally.total_quadratic_sum,
            self.tally.total_linear_sum,
            normalize_decimals(user_deposits, decimals, SHARE_DECIMALS),
        )

    def get_proposal_funding(self, proposal_id: int) -> ProjectTally:
        return self.tally.get_tally(proposal_id)

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["tally"] = self.tally.to_dict() if self.tally else None
        return data
