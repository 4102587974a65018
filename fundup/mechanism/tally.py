"""
Quadratic Funding Tally Engine

Incremental quadratic-funding aggregates for a set of projects.

Per project p:
    SC(p)   sum of contributions
    SSR(p)  sum of square roots of contributions (the vote weights)

Globals:
    Q = Σ SSR(p)²            total quadratic sum
    L = Σ SC(p)              total linear sum
    F = ⌊α·Q⌋ + ⌊(1−α)·L⌋    total funding, α = num / den

Votes are folded in by removing the project's previous quadratic and linear
terms from Q and L and adding the new ones, so each vote costs O(1)
regardless of how many votes came before.

Rounding: per-project funding is floored per term, so
    Σ ⌊α·SSR(p)²⌋ + Σ ⌊(1−α)·SC(p)⌋  <=  F
with a surplus ε in [0, 2·(|P|−1)]. The surplus stays in the pool.
"""

from dataclasses import dataclass
from math import isqrt
from typing import Any, Dict, Tuple

from ..constants import DEFAULT_SQRT_TOLERANCE_PERCENT
from ..exceptions import InvalidAlphaError, QuadraticCostError, TallyInvariantError
from ..logger import get_logger

logger = get_logger(__name__)


@dataclass
class ProjectAggregate:
    """Running sums for a single project."""
    sum_contributions: int = 0
    sum_square_roots: int = 0


@dataclass(frozen=True)
class ProjectTally:
    """Read-only funding breakdown for a project."""
    sum_contributions: int
    sum_square_roots: int
    quadratic_funding: int
    linear_funding: int

    @property
    def total(self) -> int:
        return self.quadratic_funding + self.linear_funding

    def to_dict(self) -> Dict[str, str]:
        return {
            "sumContributions": str(self.sum_contributions),
            "sumSquareRoots": str(self.sum_square_roots),
            "quadraticFunding": str(self.quadratic_funding),
            "linearFunding": str(self.linear_funding),
        }


class QuadraticFundingTally:
    """
    Quadratic funding aggregates with a tunable quadratic/linear blend.

    Args:
        alpha_numerator: Weight of the quadratic term, numerator
        alpha_denominator: Weight of the quadratic term, denominator
        sqrt_tolerance_percent: How far below isqrt(contribution) a vote
            weight may fall and still be accepted
    """

    def __init__(
        self,
        alpha_numerator: int = 1,
        alpha_denominator: int = 1,
        sqrt_tolerance_percent: int = DEFAULT_SQRT_TOLERANCE_PERCENT,
    ):
        self._check_alpha(alpha_numerator, alpha_denominator)
        if not 0 <= sqrt_tolerance_percent <= 100:
            raise InvalidAlphaError(
                f"sqrt tolerance must be within 0-100%, got {sqrt_tolerance_percent}"
            )

        self.alpha_numerator = alpha_numerator
        self.alpha_denominator = alpha_denominator
        self.sqrt_tolerance_percent = sqrt_tolerance_percent

        self.projects: Dict[int, ProjectAggregate] = {}
        self.total_quadratic_sum = 0
        self.total_linear_sum = 0
        self.total_funding = 0

    # ══════════════════════════════════════════════════════════════════
    #  VOTE PROCESSING
    # ══════════════════════════════════════════════════════════════════

    def check_vote(self, contribution: int, vote_weight: int):
        """
        Validate a (contribution, vote_weight) pair.

        The weight may not exceed the square root of the contribution and
        may fall at most ``sqrt_tolerance_percent`` below it.

        Raises:
            QuadraticCostError: If the pair is outside the accepted band
        """
        if contribution <= 0:
            raise QuadraticCostError("Contribution must be positive")
        if vote_weight <= 0:
            raise QuadraticCostError("Vote weight must be positive")
        if vote_weight * vote_weight > contribution:
            raise QuadraticCostError(
                f"Vote weight {vote_weight} squared exceeds contribution {contribution}"
            )
        root = isqrt(contribution)
        floor = root - root * self.sqrt_tolerance_percent // 100
        if vote_weight < floor:
            raise QuadraticCostError(
                f"Vote weight {vote_weight} below sqrt band [{floor}, {root}] "
                f"for contribution {contribution}"
            )

    def process_vote(self, project_id: int, contribution: int, vote_weight: int):
        """
        Fold one vote into the project's sums and the global aggregates.

        Raises:
            QuadraticCostError: Invalid contribution / weight pair
            TallyInvariantError: An aggregate would go negative
        """
        self.check_vote(contribution, vote_weight)

        project = self.projects.setdefault(project_id, ProjectAggregate())
        old_quadratic = project.sum_square_roots * project.sum_square_roots
        old_linear = project.sum_contributions

        new_sum_square_roots = project.sum_square_roots + vote_weight
        new_sum_contributions = project.sum_contributions + contribution
        new_quadratic = new_sum_square_roots * new_sum_square_roots

        # ── Swap old terms for new ──
        if self.total_quadratic_sum < old_quadratic:
            raise TallyInvariantError(
                f"Quadratic sum {self.total_quadratic_sum} < project term {old_quadratic}"
            )
        if self.total_linear_sum < old_linear:
            raise TallyInvariantError(
                f"Linear sum {self.total_linear_sum} < project term {old_linear}"
            )

        self.total_quadratic_sum = self.total_quadratic_sum - old_quadratic + new_quadratic
        self.total_linear_sum = self.total_linear_sum - old_linear + new_sum_contributions

        project.sum_square_roots = new_sum_square_roots
        project.sum_contributions = new_sum_contributions

        self._recompute_total_funding()
        logger.debug(
            f"QF vote: project #{project_id} +{contribution} (weight {vote_weight}) "
            f"Q={self.total_quadratic_sum} L={self.total_linear_sum} F={self.total_funding}"
        )

    # ══════════════════════════════════════════════════════════════════
    #  ALPHA
    # ══════════════════════════════════════════════════════════════════

    @staticmethod
    def _check_alpha(numerator: int, denominator: int):
        if denominator <= 0:
            raise InvalidAlphaError(f"Alpha denominator must be positive, got {denominator}")
        if numerator < 0 or numerator > denominator:
            raise InvalidAlphaError(f"Alpha {numerator}/{denominator} must lie within [0, 1]")

    def set_alpha(self, numerator: int, denominator: int):
        """Change the blend and recompute total funding from current aggregates."""
        self._check_alpha(numerator, denominator)
        self.alpha_numerator = numerator
        self.alpha_denominator = denominator
        self._recompute_total_funding()
        logger.info(f"QF alpha set to {numerator}/{denominator}, total funding {self.total_funding}")

    @property
    def alpha(self) -> Tuple[int, int]:
        return self.alpha_numerator, self.alpha_denominator

    def _weighted(self, quadratic: int, linear: int) -> Tuple[int, int]:
        num, den = self.alpha_numerator, self.alpha_denominator
        return quadratic * num // den, linear * (den - num) // den

    def _recompute_total_funding(self):
        quadratic, linear = self._weighted(self.total_quadratic_sum, self.total_linear_sum)
        self.total_funding = quadratic + linear

    @staticmethod
    def calculate_optimal_alpha(
        matching_pool: int,
        quadratic_sum: int,
        linear_sum: int,
        user_deposits: int,
    ) -> Tuple[int, int]:
        """
        Alpha that spends exactly the available assets.

        Solves α·Q + (1−α)·L = matching_pool + user_deposits for α,
        clamped to [0, 1].

        Returns:
            (numerator, denominator)
        """
        if quadratic_sum <= linear_sum:
            return 0, 1

        available = matching_pool + user_deposits
        if available <= linear_sum:
            return 0, 1
        if available >= quadratic_sum:
            return 1, 1

        return available - linear_sum, quadratic_sum - linear_sum

    # ══════════════════════════════════════════════════════════════════
    #  QUERIES
    # ══════════════════════════════════════════════════════════════════

    def get_tally(self, project_id: int) -> ProjectTally:
        project = self.projects.get(project_id, ProjectAggregate())
        quadratic, linear = self._weighted(
            project.sum_square_roots * project.sum_square_roots,
            project.sum_contributions,
        )
        return ProjectTally(
            sum_contributions=project.sum_contributions,
            sum_square_roots=project.sum_square_roots,
            quadratic_funding=quadratic,
            linear_funding=linear,
        )

    def project_funding(self, project_id: int) -> int:
        return self.get_tally(project_id).total

    def rounding_discrepancy(self) -> int:
        """Dust left in the pool by per-project flooring (always >= 0)."""
        allocated = sum(self.project_funding(pid) for pid in self.projects)
        return self.total_funding - allocated

    def to_dict(self) -> Dict[str, Any]:
        return {
            "alpha": f"{self.alpha_numerator}/{self.alpha_denominator}",
            "totalQuadraticSum": str(self.total_quadratic_sum),
            "totalLinearSum": str(self.total_linear_sum),
            "totalFunding": str(self.total_funding),
            "projects": {str(pid): self.get_tally(pid).to_dict() for pid in sorted(self.projects)},
        }
