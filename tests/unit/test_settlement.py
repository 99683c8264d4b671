"""
Tests for Settlement & Withdrawal.

Tests cover:
1. Deposits via the incoming funds channel
2. Full withdrawal
3. Percentage refunds and boundaries
4. Failed transfers roll back
5. Reentrant calls during a transfer
"""

import pytest

from gavel.core.auction import AuctionEngine, Phase
from gavel.core.errors import ErrorKind
from gavel.core.events import AuctionEnded, DepositReceived, EventLog, FundsReleased
from gavel.core.funds import InMemoryFunds, Payout
from gavel.utils.validation import MAX_AMOUNT

OPERATOR = "operator"
START = 1000
DURATION = 1000


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def funds():
    return InMemoryFunds()


@pytest.fixture
def journal():
    return EventLog()


@pytest.fixture
def engine(funds, journal):
    engine = AuctionEngine(OPERATOR, funds, observers=[journal])
    engine.configure(100, START, DURATION, now=0, caller=OPERATOR)
    return engine


# =============================================================================
# Deposit Tests
# =============================================================================


class TestDeposit:
    """Funds sent outside of a bid become a deposit."""

    def test_deposit_while_scheduled(self, engine):
        balance, err = engine.deposit("carol", 30, now=1)

        assert err is None
        assert balance == 30
        assert engine.phase(1) == Phase.SCHEDULED

    def test_deposits_accumulate(self, engine):
        engine.deposit("carol", 30, now=1)
        balance, _ = engine.deposit("carol", 5, now=START)

        assert balance == 35

    def test_zero_deposit(self, engine):
        _, err = engine.deposit("carol", 0, now=1)
        assert err.kind is ErrorKind.ZERO_DEPOSIT

    def test_deposit_unconfigured(self, funds):
        engine = AuctionEngine(OPERATOR, funds)
        _, err = engine.deposit("carol", 10, now=1)

        assert err.kind is ErrorKind.NOT_STARTED

    def test_balance_capped_at_max_amount(self, engine, journal):
        engine.deposit("carol", MAX_AMOUNT, now=1)
        balance, err = engine.deposit("carol", 1, now=1)

        assert balance == 0
        assert err.kind is ErrorKind.INVALID_INPUT
        assert engine.deposit_of("carol") == MAX_AMOUNT
        assert len(journal.of_type(DepositReceived)) == 1


# =============================================================================
# Withdrawal Tests
# =============================================================================


class TestWithdraw:
    """Tests for withdraw_deposit()."""

    def test_withdraw_all(self, engine, funds, journal):
        engine.deposit("carol", 30, now=1)
        amount, err = engine.withdraw_deposit("carol")

        assert err is None
        assert amount == 30
        assert engine.deposit_of("carol") == 0
        assert funds.payouts == [Payout("carol", 30)]
        assert journal.of_type(FundsReleased) == [FundsReleased("carol", 30, 0)]

    def test_no_deposit(self, engine, funds):
        _, err = engine.withdraw_deposit("carol")

        assert err.kind is ErrorKind.NO_DEPOSIT
        assert funds.payouts == []

    def test_bid_funds_not_withdrawable(self, engine):
        """Bid escrow is not a deposit."""
        engine.submit_bid("alice", False, 50, 50, now=START)
        _, err = engine.withdraw_deposit("alice")

        assert err.kind is ErrorKind.NO_DEPOSIT


# =============================================================================
# Refund Tests
# =============================================================================


class TestRefund:
    """Tests for refund_percentage()."""

    def test_half(self, engine, funds):
        engine.deposit("carol", 30, now=1)
        amount, err = engine.refund_percentage("carol", 50)

        assert err is None
        assert amount == 15
        assert engine.deposit_of("carol") == 15
        assert funds.paid_to("carol") == 15

    def test_rounds_down(self, engine):
        engine.deposit("carol", 7, now=1)
        amount, _ = engine.refund_percentage("carol", 50)

        assert amount == 3
        assert engine.deposit_of("carol") == 4

    def test_works_on_remainder(self, engine):
        engine.deposit("carol", 100, now=1)
        engine.refund_percentage("carol", 50)
        amount, _ = engine.refund_percentage("carol", 50)

        assert amount == 25
        assert engine.deposit_of("carol") == 25

    def test_full_refund_twice(self, engine):
        engine.deposit("carol", 30, now=1)
        amount, err = engine.refund_percentage("carol", 100)
        assert (amount, err) == (30, None)

        _, err = engine.refund_percentage("carol", 100)
        assert err.kind is ErrorKind.NO_DEPOSIT

    @pytest.mark.parametrize("percentage", [0, 101, -1, 2**64 + 1, -(2**64) - 1])
    def test_invalid_percentage(self, engine, percentage):
        engine.deposit("carol", 30, now=1)
        _, err = engine.refund_percentage("carol", percentage)

        assert err.kind is ErrorKind.INVALID_PERCENTAGE
        assert engine.deposit_of("carol") == 30

    @pytest.mark.parametrize("percentage", [50.0, "50", True, None])
    def test_non_integer_percentage(self, engine, percentage):
        engine.deposit("carol", 30, now=1)
        _, err = engine.refund_percentage("carol", percentage)

        assert err.kind is ErrorKind.INVALID_INPUT
        assert engine.deposit_of("carol") == 30

    def test_zero_percentage_after_end(self, engine):
        """A zero percentage is rejected as such in every phase."""
        engine.end(now=START + DURATION, caller=OPERATOR)
        _, err = engine.refund_percentage("carol", 0)

        assert err.kind is ErrorKind.INVALID_PERCENTAGE

    def test_refund_rounding_to_zero(self, engine, funds):
        """1% of a tiny balance moves nothing and leaves the balance intact."""
        engine.deposit("carol", 50, now=1)
        amount, err = engine.refund_percentage("carol", 1)

        assert (amount, err) == (0, None)
        assert engine.deposit_of("carol") == 50
        assert funds.payouts == []


# =============================================================================
# Transfer Failure Tests
# =============================================================================


class TestTransferFailure:
    """A failed transfer leaves the engine exactly as before."""

    def test_withdraw_rolls_back(self, engine, funds):
        engine.deposit("carol", 30, now=1)
        funds.failing_recipients.add("carol")

        amount, err = engine.withdraw_deposit("carol")

        assert amount == 0
        assert err.kind is ErrorKind.TRANSFER_FAILED
        assert engine.deposit_of("carol") == 30
        assert engine.ledger.total_paid_out == 0

    def test_refund_rolls_back_on_raise(self, engine, funds):
        engine.deposit("carol", 30, now=1)
        funds.fail_next = 1
        funds.raise_errors = True

        _, err = engine.refund_percentage("carol", 50)

        assert err.kind is ErrorKind.TRANSFER_FAILED
        assert engine.deposit_of("carol") == 30

    def test_settlement_failure_keeps_auction_open(self, engine, funds, journal):
        engine.submit_bid("alice", False, 50, 50, now=START)
        funds.fail_next = 1

        result, err = engine.end(now=START + DURATION, caller=OPERATOR)

        assert result is None
        assert err.kind is ErrorKind.TRANSFER_FAILED
        assert not engine.ended
        assert engine.phase(START + DURATION) == Phase.OPEN
        assert journal.of_type(AuctionEnded) == []

    def test_settlement_retry(self, engine, funds):
        engine.submit_bid("alice", False, 50, 50, now=START)
        funds.fail_next = 1
        engine.end(now=START + DURATION, caller=OPERATOR)

        result, err = engine.end(now=START + DURATION, caller=OPERATOR)

        assert err is None
        assert result == ("alice", 50)
        assert funds.payouts == [Payout(OPERATOR, 50)]

    def test_unexpected_backend_error_propagates_after_rollback(self, engine, funds):
        engine.deposit("carol", 30, now=1)

        def explode(to, amount):
            raise RuntimeError("backend down")

        funds.on_transfer = explode

        with pytest.raises(RuntimeError):
            engine.withdraw_deposit("carol")

        assert engine.deposit_of("carol") == 30
        assert not engine.settlement.in_transfer


# =============================================================================
# Reentrancy Tests
# =============================================================================


class TestReentrancy:
    """Calls into the engine from inside a transfer are refused."""

    def test_reentrant_withdraw(self, engine, funds):
        engine.deposit("carol", 30, now=1)
        inner = []

        def reenter(to, amount):
            inner.append(engine.withdraw_deposit("carol"))

        funds.on_transfer = reenter
        amount, err = engine.withdraw_deposit("carol")

        assert (amount, err) == (30, None)
        assert inner[0][1].kind is ErrorKind.REENTRANT_CALL
        assert funds.total_paid == 30

    def test_reentrant_bid_during_settlement(self, engine, funds):
        engine.submit_bid("alice", False, 50, 50, now=START)
        inner = []

        def reenter(to, amount):
            inner.append(engine.submit_bid("bob", False, 60, 60, now=START + DURATION))

        funds.on_transfer = reenter
        result, err = engine.end(now=START + DURATION, caller=OPERATOR)

        assert result == ("alice", 50)
        assert inner[0][1].kind is ErrorKind.REENTRANT_CALL
        assert engine.bid_of("bob") is None

    def test_queries_allowed_during_transfer(self, engine, funds):
        engine.deposit("carol", 30, now=1)
        seen = []

        def peek(to, amount):
            seen.append(engine.deposit_of("carol"))

        funds.on_transfer = peek
        engine.withdraw_deposit("carol")

        assert seen == [0]

    @pytest.mark.parametrize("fail", [False, True])
    def test_end_not_visible_during_settlement(self, engine, funds, fail):
        engine.submit_bid("alice", False, 50, 50, now=START)
        now = START + DURATION
        seen = []

        def peek(to, amount):
            seen.append((engine.get_winner(), engine.phase(now), engine.ended))

        funds.on_transfer = peek
        funds.fail_next = 1 if fail else 0
        _, err = engine.end(now=now, caller=OPERATOR)

        (winner, winner_err), phase, ended = seen[0]
        assert winner is None
        assert winner_err.kind is ErrorKind.AUCTION_NOT_ENDED
        assert phase == Phase.OPEN
        assert not ended

        if fail:
            assert err.kind is ErrorKind.TRANSFER_FAILED
            assert engine.get_winner()[1].kind is ErrorKind.AUCTION_NOT_ENDED
        else:
            assert err is None
            assert engine.get_winner() == (("alice", 50), None)


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
