"""
Allocation strategies.

Provides:
  - QuadraticVotingStrategy                            (quadratic.py)
  - AccessGatedQuadraticVotingStrategy / AccessMode    (access_gated.py)
"""

from .access_gated import AccessGatedQuadraticVotingStrategy, AccessMode
from .quadratic import QuadraticVotingStrategy

__all__ = [
    "AccessGatedQuadraticVotingStrategy",
    "AccessMode",
    "QuadraticVotingStrategy",
]
