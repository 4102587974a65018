"""
Token layer.

Provides:
  - ERC20Token / FungibleAsset / deploy_token   (erc20.py)
  - ShareLedger                                 (shares.py)
"""

from .erc20 import (
    ApprovalEvent,
    ERC20Token,
    FungibleAsset,
    TokenError,
    TransferEvent,
    deploy_token,
)
from .shares import ShareLedger, normalize_decimals

__all__ = [
    "ApprovalEvent",
    "ERC20Token",
    "FungibleAsset",
    "ShareLedger",
    "TokenError",
    "TransferEvent",
    "deploy_token",
    "normalize_decimals",
]
