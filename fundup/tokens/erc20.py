"""
ERC-20 Backing Asset

In-process fungible token standing in for the backing asset system the
mechanism pulls deposits from and pays redemptions with:
  - ERC-20 interface (transfer, approve, transfer_from, balance_of)
  - Minter-gated mint / burn for funding test wallets and matching pools
  - Event log of every transfer and approval

Amounts are integers in base units (``10 ** decimals`` per whole token).
"""

import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Protocol, Tuple

from ..constants import ZERO_ADDRESS
from ..crypto.address import to_checksum_address
from ..exceptions import (
    FundUpError,
    InsufficientAllowanceError,
    InsufficientBalanceError,
    UnauthorizedError,
)
from ..logger import get_logger

logger = get_logger(__name__)

MAX_DECIMALS = 36


class TokenError(FundUpError):
    """Base exception for token operations."""


# ══════════════════════════════════════════════════════════════════════
#  EVENTS
# ══════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class TransferEvent:
    """Emitted on every balance movement (mint: sender is zero, burn: recipient is zero)."""
    token_symbol: str
    sender: str
    recipient: str
    amount: int
    timestamp: float = field(default_factory=time.time)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event": "Transfer",
            "token": self.token_symbol,
            "from": self.sender,
            "to": self.recipient,
            "amount": str(self.amount),
            "timestamp": self.timestamp,
        }


@dataclass(frozen=True)
class ApprovalEvent:
    """Emitted on every allowance change."""
    token_symbol: str
    owner: str
    spender: str
    amount: int
    timestamp: float = field(default_factory=time.time)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event": "Approval",
            "token": self.token_symbol,
            "owner": self.owner,
            "spender": self.spender,
            "amount": str(self.amount),
            "timestamp": self.timestamp,
        }


# ══════════════════════════════════════════════════════════════════════
#  ASSET INTERFACE
# ══════════════════════════════════════════════════════════════════════

class FungibleAsset(Protocol):
    """What the mechanism needs from its backing asset."""

    address: str
    symbol: str
    decimals: int

    def balance_of(self, address: str) -> int: ...
    def transfer(self, sender: str, recipient: str, amount: int) -> Any: ...
    def transfer_from(self, spender: str, owner: str, recipient: str, amount: int) -> Any: ...


# ══════════════════════════════════════════════════════════════════════
#  ERC-20 TOKEN
# ══════════════════════════════════════════════════════════════════════

class ERC20Token:
    """
    ERC-20 fungible token.

    Mirrors ERC-20 semantics:
        - balance_of(address) → int
        - transfer(sender, recipient, amount)
        - approve(owner, spender, amount)
        - transfer_from(spender, owner, recipient, amount)
        - total_supply → int

    Additional:
        - mint / burn (minter-only)
    """

    def __init__(
        self,
        name: str,
        symbol: str,
        decimals: int = 18,
        *,
        address: str,
        minter: str,
    ):
        """
        Args:
            name: Human-readable token name
            symbol: Short ticker (e.g. "USDC")
            decimals: Fractional digits
            address: Token contract address
            minter: Account allowed to mint and burn
        """
        if not name:
            raise TokenError("Token name cannot be empty")
        if not symbol:
            raise TokenError("Token symbol cannot be empty")
        if decimals < 0 or decimals > MAX_DECIMALS:
            raise TokenError(f"Decimals must be 0-{MAX_DECIMALS}, got {decimals}")

        self.name = name
        self.symbol = symbol
        self.decimals = decimals
        self.address = to_checksum_address(address)
        self.minter = to_checksum_address(minter)
        self._total_supply = 0

        self._balances: Dict[str, int] = {}
        self._allowances: Dict[Tuple[str, str], int] = {}  # (owner, spender)
        self._events: List[Any] = []

        logger.info(f"ERC-20 deployed: {symbol} ({name}) at {self.address}, decimals={decimals}")

    # ── Read-only views ───────────────────────────────────────────────

    @property
    def total_supply(self) -> int:
        return self._total_supply

    def balance_of(self, address: str) -> int:
        return self._balances.get(to_checksum_address(address), 0)

    def allowance(self, owner: str, spender: str) -> int:
        return self._allowances.get(
            (to_checksum_address(owner), to_checksum_address(spender)), 0
        )

    @property
    def events(self) -> List[Any]:
        return list(self._events)

    # ── Core ERC-20 operations ────────────────────────────────────────

    def transfer(self, sender: str, recipient: str, amount: int) -> TransferEvent:
        """
        Move *amount* from *sender* to *recipient*.

        Raises:
            InsufficientBalanceError: If sender balance is too low
        """
        sender = to_checksum_address(sender)
        recipient = to_checksum_address(recipient)
        if amount <= 0:
            raise TokenError("Transfer amount must be positive")

        bal = self.balance_of(sender)
        if bal < amount:
            raise InsufficientBalanceError(
                f"{sender} balance {bal} < transfer amount {amount} {self.symbol}"
            )

        self._balances[sender] = bal - amount
        self._balances[recipient] = self._balances.get(recipient, 0) + amount

        event = TransferEvent(self.symbol, sender, recipient, amount)
        self._events.append(event)
        logger.debug(f"Transfer: {sender} → {recipient} {amount} {self.symbol}")
        return event

    def approve(self, owner: str, spender: str, amount: int) -> ApprovalEvent:
        """Set spender allowance."""
        owner = to_checksum_address(owner)
        spender = to_checksum_address(spender)
        if amount < 0:
            raise TokenError("Allowance amount cannot be negative")

        self._allowances[(owner, spender)] = amount
        event = ApprovalEvent(self.symbol, owner, spender, amount)
        self._events.append(event)
        return event

    def transfer_from(self, spender: str, owner: str, recipient: str, amount: int) -> TransferEvent:
        """
        Move tokens from *owner* using *spender*'s allowance.

        Raises:
            InsufficientAllowanceError: If allowance is too low
            InsufficientBalanceError: If owner balance is too low
        """
        spender = to_checksum_address(spender)
        owner = to_checksum_address(owner)

        allowed = self.allowance(owner, spender)
        if allowed < amount:
            raise InsufficientAllowanceError(
                f"{spender} allowance {allowed} < {amount} {self.symbol} from {owner}"
            )

        event = self.transfer(owner, recipient, amount)
        self._allowances[(owner, spender)] = allowed - amount
        return event

    # ── Supply management ─────────────────────────────────────────────

    def mint(self, sender: str, recipient: str, amount: int) -> TransferEvent:
        sender = to_checksum_address(sender)
        if sender != self.minter:
            raise UnauthorizedError(f"{sender} is not the minter of {self.symbol}")
        if amount <= 0:
            raise TokenError("Mint amount must be positive")

        recipient = to_checksum_address(recipient)
        self._balances[recipient] = self._balances.get(recipient, 0) + amount
        self._total_supply += amount

        event = TransferEvent(self.symbol, ZERO_ADDRESS, recipient, amount)
        self._events.append(event)
        logger.debug(f"Mint: {amount} {self.symbol} → {recipient}")
        return event

    def burn(self, sender: str, holder: str, amount: int) -> TransferEvent:
        sender = to_checksum_address(sender)
        if sender != self.minter:
            raise UnauthorizedError(f"{sender} is not the minter of {self.symbol}")

        holder = to_checksum_address(holder)
        bal = self.balance_of(holder)
        if bal < amount:
            raise InsufficientBalanceError(f"{holder} balance {bal} < burn amount {amount}")

        self._balances[holder] = bal - amount
        self._total_supply -= amount

        event = TransferEvent(self.symbol, holder, ZERO_ADDRESS, amount)
        self._events.append(event)
        return event

    # ── Serialization ─────────────────────────────────────────────────

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "symbol": self.symbol,
            "decimals": self.decimals,
            "address": self.address,
            "totalSupply": str(self._total_supply),
            "holders": sum(1 for b in self._balances.values() if b > 0),
        }

    def __repr__(self) -> str:
        return f"<ERC20Token {self.symbol} supply={self._total_supply}>"


def deploy_token(
    chain,
    deployer: str,
    name: str,
    symbol: str,
    decimals: int = 18,
    minter: Optional[str] = None,
) -> ERC20Token:
    """Deploy a token at the deployer's next contract address on *chain*."""
    return ERC20Token(
        name,
        symbol,
        decimals,
        address=chain.next_contract_address(deployer),
        minter=minter or deployer,
    )
