"""Token bank, custody transfers and claim receipts."""

from decimal import Decimal

import pytest

from takeprofit.tokens import (
    BankError,
    ClaimError,
    ClaimLedger,
    CustodyTransfer,
    InsufficientBalanceError,
    InsufficientReceiptsError,
    TokenBank,
)

ADDR_A = "alice"
ADDR_B = "bob"
TOKEN_ID = "ab" * 32


class TestTokenBank:

    def _make_bank(self):
        bank = TokenBank()
        bank.mint("ETH", ADDR_A, Decimal("100"))
        return bank

    def test_mint(self):
        bank = self._make_bank()
        assert bank.balance_of("ETH", ADDR_A) == Decimal("100")
        assert bank.total_supply("ETH") == Decimal("100")
        assert bank.balance_of("USDC", ADDR_A) == Decimal("0")

    def test_mint_non_positive(self):
        with pytest.raises(BankError, match="positive"):
            TokenBank().mint("ETH", ADDR_A, Decimal("0"))

    def test_transfer(self):
        bank = self._make_bank()
        event = bank.transfer("ETH", ADDR_A, ADDR_B, Decimal("40"))
        assert bank.balance_of("ETH", ADDR_A) == Decimal("60")
        assert bank.balance_of("ETH", ADDR_B) == Decimal("40")
        assert bank.total_supply("ETH") == Decimal("100")
        assert event.to_dict()["from"] == ADDR_A
        assert len(bank.events) == 2

    def test_transfer_insufficient(self):
        bank = self._make_bank()
        with pytest.raises(InsufficientBalanceError):
            bank.transfer("ETH", ADDR_A, ADDR_B, Decimal("101"))

    def test_transfer_to_self(self):
        bank = self._make_bank()
        with pytest.raises(BankError, match="self"):
            bank.transfer("ETH", ADDR_A, ADDR_A, Decimal("1"))

    def test_transfer_non_positive(self):
        bank = self._make_bank()
        with pytest.raises(BankError, match="positive"):
            bank.transfer("ETH", ADDR_A, ADDR_B, Decimal("-1"))

    def test_snapshot_restore(self):
        bank = self._make_bank()
        snap = bank.take_snapshot()
        bank.transfer("ETH", ADDR_A, ADDR_B, Decimal("40"))
        bank.mint("USDC", ADDR_B, Decimal("5"))
        bank.restore_snapshot(snap)

        assert bank.balance_of("ETH", ADDR_A) == Decimal("100")
        assert bank.balance_of("ETH", ADDR_B) == Decimal("0")
        assert bank.total_supply("USDC") == Decimal("0")
        assert len(bank.events) == 1


class TestCustodyTransfer:

    def test_pull_push(self):
        bank = TokenBank()
        bank.mint("ETH", ADDR_A, Decimal("10"))
        custody = CustodyTransfer(bank, "vault")

        custody.pull("ETH", ADDR_A, Decimal("7"))
        assert custody.custody_balance("ETH") == Decimal("7")
        custody.push("ETH", ADDR_B, Decimal("2"))
        assert custody.custody_balance("ETH") == Decimal("5")
        assert bank.balance_of("ETH", ADDR_B) == Decimal("2")

    def test_push_beyond_custody(self):
        custody = CustodyTransfer(TokenBank(), "vault")
        with pytest.raises(InsufficientBalanceError):
            custody.push("ETH", ADDR_B, Decimal("1"))


class TestClaimLedger:

    def test_mint_burn(self):
        claims = ClaimLedger()
        claims.mint(ADDR_A, TOKEN_ID, Decimal("10"))
        claims.burn(ADDR_A, TOKEN_ID, Decimal("4"))
        assert claims.balance_of(ADDR_A, TOKEN_ID) == Decimal("6")
        assert claims.total_supply(TOKEN_ID) == Decimal("6")

    def test_burn_too_much(self):
        claims = ClaimLedger()
        claims.mint(ADDR_A, TOKEN_ID, Decimal("1"))
        with pytest.raises(InsufficientReceiptsError):
            claims.burn(ADDR_A, TOKEN_ID, Decimal("2"))

    def test_transfer_keeps_supply(self):
        claims = ClaimLedger()
        claims.mint(ADDR_A, TOKEN_ID, Decimal("10"))
        claims.transfer(ADDR_A, ADDR_B, TOKEN_ID, Decimal("3"))
        assert claims.balance_of(ADDR_B, TOKEN_ID) == Decimal("3")
        assert claims.total_supply(TOKEN_ID) == Decimal("10")
        assert claims.events[-1].to_dict()["to"] == ADDR_B

    def test_ids_are_independent(self):
        claims = ClaimLedger()
        claims.mint(ADDR_A, TOKEN_ID, Decimal("10"))
        assert claims.balance_of(ADDR_A, "cd" * 32) == Decimal("0")

    def test_non_positive(self):
        claims = ClaimLedger()
        with pytest.raises(ClaimError):
            claims.mint(ADDR_A, TOKEN_ID, Decimal("0"))
        with pytest.raises(ClaimError):
            claims.transfer(ADDR_A, ADDR_B, TOKEN_ID, Decimal("0"))

    def test_snapshot_restore(self):
        claims = ClaimLedger()
        claims.mint(ADDR_A, TOKEN_ID, Decimal("10"))
        snap = claims.take_snapshot()
        claims.burn(ADDR_A, TOKEN_ID, Decimal("10"))
        claims.restore_snapshot(snap)
        assert claims.balance_of(ADDR_A, TOKEN_ID) == Decimal("10")
        assert len(claims.events) == 1
