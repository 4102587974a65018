"""
FundUp Allocation Mechanism Package

Quorum-gated quadratic funding rounds with redeemable shares.

Core imports are lazily loaded; for direct access import from submodules:

    from fundup.mechanism import TokenizedAllocationMechanism
    from fundup.strategies import QuadraticVotingStrategy
    from fundup.exceptions import FundUpError
"""

__version__ = "1.0.0"


# Lazy imports keep `import fundup` from pulling in the crypto stack
def __getattr__(name):
    """Lazy module loading."""
    if name == 'TokenizedAllocationMechanism':
        from .mechanism import TokenizedAllocationMechanism
        return TokenizedAllocationMechanism
    elif name == 'QuadraticVotingStrategy':
        from .strategies import QuadraticVotingStrategy
        return QuadraticVotingStrategy
    elif name == 'AccessGatedQuadraticVotingStrategy':
        from .strategies import AccessGatedQuadraticVotingStrategy
        return AccessGatedQuadraticVotingStrategy
    elif name == 'Chain':
        from .chain import Chain
        return Chain
    elif name == 'FundUpError':
        from .exceptions import FundUpError
        return FundUpError
    raise AttributeError(f"module 'fundup' has no attribute {name!r}")

__all__ = [
    'AccessGatedQuadraticVotingStrategy',
    'Chain',
    'FundUpError',
    'QuadraticVotingStrategy',
    'TokenizedAllocationMechanism',
]
