"""
Signature authorization layer.

Provides:
  - KeyPairSigner / SmartAccount / ProgrammaticAccount   (signers.py)
  - SignatureVerifier                                    (verifier.py)
"""

from .signers import KeyPairSigner, ProgrammaticAccount, SmartAccount
from .verifier import SignatureVerifier

__all__ = [
    "KeyPairSigner",
    "ProgrammaticAccount",
    "SignatureVerifier",
    "SmartAccount",
]
