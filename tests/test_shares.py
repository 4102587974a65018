"""
Share Ledger & Backing Asset Test Suite

Coverage:
  - ShareLedger mint / burn / transfer / allowance accounting
  - floor conversions and the empty-supply decimal fallback
  - tracked assets independent of the raw balance
  - ERC20Token transfer / approve / transfer_from / minter gate
"""

import pytest

from fundup.constants import UNLIMITED, ZERO_ADDRESS
from fundup.exceptions import (
    InsufficientAllowanceError,
    InsufficientBalanceError,
    InvalidRecipientError,
    InvalidShareAmountError,
    TallyInvariantError,
    UnauthorizedError,
)
from fundup.tokens.erc20 import ERC20Token, TokenError, TransferEvent
from fundup.tokens.shares import ShareLedger, normalize_decimals


# ══════════════════════════════════════════════════════════════════════
#  HELPERS
# ══════════════════════════════════════════════════════════════════════

ALICE = "0x" + "a1" * 20
BOB = "0x" + "b2" * 20
CAROL = "0x" + "c3" * 20
MINTER = "0x" + "ff" * 20
TOKEN_ADDR = "0x" + "70" * 20


def make_ledger(asset_decimals=18):
    events = []
    ledger = ShareLedger("TR", asset_decimals, emit=events.append)
    return ledger, events


def make_token(decimals=18) -> ERC20Token:
    return ERC20Token("Test USD", "TUSD", decimals, address=TOKEN_ADDR, minter=MINTER)


# ══════════════════════════════════════════════════════════════════════
#  SHARE LEDGER
# ══════════════════════════════════════════════════════════════════════

class TestShareSupply:
    """Mint and burn keep total_supply equal to the sum of balances."""

    def test_mint(self):
        ledger, events = make_ledger()
        ledger.mint(ALICE, 400)
        assert ledger.balance_of(ALICE) == 400
        assert ledger.total_supply == 400
        assert events[-1].sender == ZERO_ADDRESS

    def test_burn(self):
        ledger, _ = make_ledger()
        ledger.mint(ALICE, 400)
        ledger.burn(ALICE, 150)
        assert ledger.balance_of(ALICE) == 250
        assert ledger.total_supply == 250

    def test_burn_more_than_balance(self):
        ledger, _ = make_ledger()
        ledger.mint(ALICE, 10)
        with pytest.raises(InsufficientBalanceError):
            ledger.burn(ALICE, 11)

    def test_supply_is_sum_of_balances(self):
        ledger, _ = make_ledger()
        ledger.mint(ALICE, 100)
        ledger.mint(BOB, 50)
        ledger.transfer(ALICE, CAROL, 30)
        ledger.burn(BOB, 20)
        assert ledger.total_supply == sum(ledger.holders().values())


class TestShareTransfers:
    """Transfers and allowances."""

    def test_transfer(self):
        ledger, events = make_ledger()
        ledger.mint(ALICE, 100)
        ledger.transfer(ALICE, BOB, 40)
        assert ledger.balance_of(ALICE) == 60
        assert ledger.balance_of(BOB) == 40
        assert isinstance(events[-1], TransferEvent)

    def test_transfer_to_zero_address(self):
        ledger, _ = make_ledger()
        ledger.mint(ALICE, 100)
        with pytest.raises(InvalidRecipientError):
            ledger.transfer(ALICE, ZERO_ADDRESS, 1)

    def test_transfer_insufficient(self):
        ledger, _ = make_ledger()
        with pytest.raises(InsufficientBalanceError):
            ledger.transfer(ALICE, BOB, 1)

    def test_spend_allowance(self):
        ledger, _ = make_ledger()
        ledger.approve(ALICE, BOB, 50)
        ledger.spend_allowance(ALICE, BOB, 20)
        assert ledger.allowance(ALICE, BOB) == 30

    def test_spend_allowance_insufficient(self):
        ledger, _ = make_ledger()
        ledger.approve(ALICE, BOB, 5)
        with pytest.raises(InsufficientAllowanceError):
            ledger.spend_allowance(ALICE, BOB, 6)

    def test_unlimited_allowance_not_decreased(self):
        ledger, _ = make_ledger()
        ledger.approve(ALICE, BOB, UNLIMITED)
        ledger.spend_allowance(ALICE, BOB, 10**30)
        assert ledger.allowance(ALICE, BOB) == UNLIMITED

    @pytest.mark.parametrize("op", [
        lambda ledger: ledger.mint(BOB, -1),
        lambda ledger: ledger.burn(BOB, -1),
        lambda ledger: ledger.transfer(BOB, ALICE, -100),
        lambda ledger: ledger.check_allowance(ALICE, BOB, -1),
        lambda ledger: ledger.spend_allowance(ALICE, BOB, -1),
    ])
    def test_negative_amounts_rejected(self, op):
        ledger, _ = make_ledger()
        ledger.mint(ALICE, 100)
        with pytest.raises(InvalidShareAmountError):
            op(ledger)
        assert ledger.balance_of(ALICE) == 100
        assert ledger.balance_of(BOB) == 0
        assert ledger.total_supply == 100
        assert ledger.allowance(ALICE, BOB) == 0

    def test_zero_spend_without_approval(self):
        ledger, _ = make_ledger()
        ledger.spend_allowance(ALICE, BOB, 0)
        assert ledger.allowance(ALICE, BOB) == 0


class TestShareConversion:
    """Floor conversions between shares and tracked assets."""

    def test_empty_supply_same_decimals(self):
        ledger, _ = make_ledger(18)
        assert ledger.convert_to_shares(123) == 123
        assert ledger.convert_to_assets(123) == 123

    def test_empty_supply_six_decimal_asset(self):
        ledger, _ = make_ledger(6)
        assert ledger.convert_to_shares(1_000_000) == 10**18
        assert ledger.convert_to_assets(10**18) == 1_000_000
        # sub-unit shares floor to zero assets
        assert ledger.convert_to_assets(10**12 - 1) == 0

    def test_ratio_conversion_floors(self):
        ledger, _ = make_ledger()
        ledger.mint(ALICE, 400)
        ledger.set_total_assets(200)
        assert ledger.convert_to_assets(400) == 200
        assert ledger.convert_to_assets(3) == 1
        assert ledger.convert_to_shares(100) == 200

    def test_zero_tracked_assets_with_supply(self):
        ledger, _ = make_ledger()
        ledger.mint(ALICE, 400)
        assert ledger.convert_to_shares(100) == 0
        assert ledger.convert_to_assets(400) == 0

    def test_decrease_tracked_assets(self):
        ledger, _ = make_ledger()
        ledger.set_total_assets(200)
        ledger.decrease_total_assets(50)
        assert ledger.total_assets == 150

    def test_decrease_below_zero(self):
        ledger, _ = make_ledger()
        ledger.set_total_assets(10)
        with pytest.raises(TallyInvariantError, match="only 10 tracked"):
            ledger.decrease_total_assets(11)

    def test_normalize_decimals(self):
        assert normalize_decimals(5, 6, 18) == 5 * 10**12
        assert normalize_decimals(5 * 10**12 + 7, 18, 6) == 5
        assert normalize_decimals(42, 18, 18) == 42

    def test_to_dict(self):
        ledger, _ = make_ledger()
        ledger.mint(ALICE, 7)
        d = ledger.to_dict()
        assert d["totalSupply"] == "7"
        assert len(d["balances"]) == 1


# ══════════════════════════════════════════════════════════════════════
#  BACKING ASSET
# ══════════════════════════════════════════════════════════════════════

class TestERC20Token:
    """In-process fungible asset."""

    def test_deploy_empty_name_raises(self):
        with pytest.raises(TokenError, match="name cannot be empty"):
            ERC20Token("", "X", address=TOKEN_ADDR, minter=MINTER)

    def test_deploy_invalid_decimals_raises(self):
        with pytest.raises(TokenError, match="Decimals"):
            make_token(decimals=37)

    def test_mint_minter_only(self):
        token = make_token()
        with pytest.raises(UnauthorizedError):
            token.mint(ALICE, ALICE, 100)
        token.mint(MINTER, ALICE, 100)
        assert token.balance_of(ALICE) == 100
        assert token.total_supply == 100

    def test_transfer(self):
        token = make_token()
        token.mint(MINTER, ALICE, 100)
        token.transfer(ALICE, BOB, 30)
        assert token.balance_of(ALICE) == 70
        assert token.balance_of(BOB) == 30

    def test_transfer_zero_amount_raises(self):
        token = make_token()
        with pytest.raises(TokenError, match="positive"):
            token.transfer(ALICE, BOB, 0)

    def test_transfer_insufficient_balance(self):
        token = make_token()
        with pytest.raises(InsufficientBalanceError):
            token.transfer(ALICE, BOB, 1)

    def test_transfer_from(self):
        token = make_token()
        token.mint(MINTER, ALICE, 100)
        token.approve(ALICE, BOB, 60)
        token.transfer_from(BOB, ALICE, CAROL, 50)
        assert token.balance_of(CAROL) == 50
        assert token.allowance(ALICE, BOB) == 10

    def test_transfer_from_without_allowance(self):
        token = make_token()
        token.mint(MINTER, ALICE, 100)
        with pytest.raises(InsufficientAllowanceError):
            token.transfer_from(BOB, ALICE, CAROL, 1)

    def test_burn(self):
        token = make_token()
        token.mint(MINTER, ALICE, 100)
        token.burn(MINTER, ALICE, 40)
        assert token.total_supply == 60

    def test_events_recorded(self):
        token = make_token()
        token.mint(MINTER, ALICE, 100)
        token.approve(ALICE, BOB, 1)
        kinds = [e.to_dict()["event"] for e in token.events]
        assert kinds == ["Transfer", "Approval"]

    def test_to_dict(self):
        token = make_token()
        token.mint(MINTER, ALICE, 5)
        d = token.to_dict()
        assert d["symbol"] == "TUSD"
        assert d["totalSupply"] == "5"
        assert d["holders"] == 1
