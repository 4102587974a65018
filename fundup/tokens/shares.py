"""
Share Ledger

Redeemable-share accounting for a mechanism instance: balances, allowances,
total supply and the tracked total of backing assets the shares claim.

Tracked assets are set explicitly by the mechanism (at finalization, on
redemption, on sweep) and never read from the raw asset balance. A direct
transfer of assets to the mechanism therefore cannot move the exchange rate.

Invariant: total_supply == sum(balances).
"""

from typing import Any, Callable, Dict, Optional, Tuple

from ..constants import SHARE_DECIMALS, UNLIMITED, ZERO_ADDRESS
from ..crypto.address import to_checksum_address
from ..exceptions import (
    InsufficientAllowanceError,
    InsufficientBalanceError,
    InvalidRecipientError,
    InvalidShareAmountError,
    TallyInvariantError,
)
from .erc20 import ApprovalEvent, TransferEvent


def normalize_decimals(amount: int, from_decimals: int, to_decimals: int) -> int:
    """Rescale a base-unit amount between decimal precisions, flooring when narrowing."""
    if to_decimals >= from_decimals:
        return amount * 10 ** (to_decimals - from_decimals)
    return amount // 10 ** (from_decimals - to_decimals)


class ShareLedger:
    """
    Fungible share accounting.

    Args:
        symbol: Share ticker used in emitted events
        asset_decimals: Decimals of the backing asset
        emit: Callback receiving Transfer / Approval events
    """

    def __init__(
        self,
        symbol: str,
        asset_decimals: int,
        emit: Optional[Callable[[Any], None]] = None,
    ):
        self.symbol = symbol
        self.decimals = SHARE_DECIMALS
        self.asset_decimals = asset_decimals
        self._emit = emit or (lambda event: None)

        self._balances: Dict[str, int] = {}
        self._allowances: Dict[Tuple[str, str], int] = {}
        self._total_supply = 0
        self._total_assets = 0

    # ── Views ─────────────────────────────────────────────────────────

    @property
    def total_supply(self) -> int:
        return self._total_supply

    @property
    def total_assets(self) -> int:
        return self._total_assets

    def balance_of(self, owner: str) -> int:
        return self._balances.get(to_checksum_address(owner), 0)

    def allowance(self, owner: str, spender: str) -> int:
        return self._allowances.get(
            (to_checksum_address(owner), to_checksum_address(spender)), 0
        )

    def holders(self) -> Dict[str, int]:
        return {k: v for k, v in self._balances.items() if v > 0}

    # ── Conversion ────────────────────────────────────────────────────

    def convert_to_shares(self, assets: int) -> int:
        """
        Shares claimable for *assets*, floored.

        With no shares outstanding the rate falls back to the decimal
        difference between shares and the backing asset.
        """
        if self._total_supply == 0:
            return normalize_decimals(assets, self.asset_decimals, self.decimals)
        if self._total_assets == 0:
            return 0
        return assets * self._total_supply // self._total_assets

    def convert_to_assets(self, shares: int) -> int:
        """Assets redeemable for *shares*, floored."""
        if self._total_supply == 0:
            return normalize_decimals(shares, self.decimals, self.asset_decimals)
        return shares * self._total_assets // self._total_supply

    # ── Tracked assets ────────────────────────────────────────────────

    def set_total_assets(self, assets: int):
        if assets < 0:
            raise TallyInvariantError(f"Tracked assets cannot be negative ({assets})")
        self._total_assets = assets

    def decrease_total_assets(self, assets: int):
        if assets > self._total_assets:
            raise TallyInvariantError(
                f"Cannot release {assets} assets, only {self._total_assets} tracked"
            )
        self._total_assets -= assets

    # ── Supply ────────────────────────────────────────────────────────

    @staticmethod
    def _require_non_negative(shares: int):
        if shares < 0:
            raise InvalidShareAmountError(f"Share amount cannot be negative ({shares})")

    def mint(self, recipient: str, shares: int) -> TransferEvent:
        self._require_non_negative(shares)
        recipient = to_checksum_address(recipient)
        self._balances[recipient] = self._balances.get(recipient, 0) + shares
        self._total_supply += shares
        event = TransferEvent(self.symbol, ZERO_ADDRESS, recipient, shares)
        self._emit(event)
        return event

    def burn(self, owner: str, shares: int) -> TransferEvent:
        self._require_non_negative(shares)
        owner = to_checksum_address(owner)
        bal = self._balances.get(owner, 0)
        if bal < shares:
            raise InsufficientBalanceError(f"{owner} holds {bal} shares < {shares}")
        self._balances[owner] = bal - shares
        self._total_supply -= shares
        event = TransferEvent(self.symbol, owner, ZERO_ADDRESS, shares)
        self._emit(event)
        return event

    # ── Transfers ─────────────────────────────────────────────────────

    def transfer(self, sender: str, recipient: str, shares: int) -> TransferEvent:
        self._require_non_negative(shares)
        sender = to_checksum_address(sender)
        recipient = to_checksum_address(recipient)
        if recipient == ZERO_ADDRESS:
            raise InvalidRecipientError("Cannot transfer shares to the zero address")
        bal = self._balances.get(sender, 0)
        if bal < shares:
            raise InsufficientBalanceError(f"{sender} holds {bal} shares < {shares}")
        self._balances[sender] = bal - shares
        self._balances[recipient] = self._balances.get(recipient, 0) + shares
        event = TransferEvent(self.symbol, sender, recipient, shares)
        self._emit(event)
        return event

    def approve(self, owner: str, spender: str, shares: int) -> ApprovalEvent:
        owner = to_checksum_address(owner)
        spender = to_checksum_address(spender)
        if shares < 0:
            raise InsufficientAllowanceError("Allowance cannot be negative")
        self._allowances[(owner, spender)] = shares
        event = ApprovalEvent(self.symbol, owner, spender, shares)
        self._emit(event)
        return event

    def check_allowance(self, owner: str, spender: str, shares: int):
        self._require_non_negative(shares)
        allowed = self.allowance(owner, spender)
        if allowed < shares:
            raise InsufficientAllowanceError(
                f"{spender} allowance {allowed} < {shares} shares of {owner}"
            )

    def spend_allowance(self, owner: str, spender: str, shares: int):
        """Consume allowance; an UNLIMITED allowance is never decreased."""
        self.check_allowance(owner, spender, shares)
        key = (to_checksum_address(owner), to_checksum_address(spender))
        allowed = self._allowances.get(key, 0)
        if allowed != UNLIMITED:
            self._allowances[key] = allowed - shares

    # ── Serialization ─────────────────────────────────────────────────

    def to_dict(self) -> Dict[str, Any]:
        return {
            "symbol": self.symbol,
            "decimals": self.decimals,
            "totalSupply": str(self._total_supply),
            "totalAssets": str(self._total_assets),
            "balances": {k: str(v) for k, v in self.holders().items()},
        }

    def __repr__(self) -> str:
        return f"<ShareLedger {self.symbol} supply={self._total_supply} assets={self._total_assets}>"
