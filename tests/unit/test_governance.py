"""Tests for limit configuration through the messenger."""

import pytest

from zkpool.exceptions import LimitExceededError, UnauthorizedError

ETHER = 10**18


class TestGovernance:
    """Tests for governance-only setters."""

    def test_configure_limits(self, pool, messenger):
        messenger.execute("governance", pool.configure_limits, ETHER // 100, 2 * ETHER)
        assert pool.minimal_withdrawal_amount == ETHER // 100
        assert pool.maximum_deposit_amount == 2 * ETHER

    def test_single_setters(self, pool, messenger):
        messenger.execute("governance", pool.set_minimum_withdrawal_amount, 7)
        messenger.execute("governance", pool.set_maximum_deposit_amount, 9)
        assert pool.get_state().minimal_withdrawal_amount == 7
        assert pool.get_state().maximum_deposit_amount == 9

    def test_wrong_origin(self, pool, messenger):
        with pytest.raises(UnauthorizedError):
            messenger.execute("mallory", pool.configure_limits, 0, 0)

    def test_wrong_chain(self, pool, messenger):
        with pytest.raises(UnauthorizedError):
            messenger.execute("governance", pool.set_maximum_deposit_amount, 0, chain_id=5)

    def test_direct_call(self, pool):
        with pytest.raises(UnauthorizedError):
            pool.set_maximum_deposit_amount(0, caller="governance")

    def test_messenger_state_cleared(self, pool, messenger):
        messenger.execute("governance", pool.set_maximum_deposit_amount, 1)
        assert messenger.message_sender is None
        with pytest.raises(UnauthorizedError):
            pool.set_maximum_deposit_amount(2, caller=messenger.address)

    def test_limit_out_of_range(self, pool, messenger):
        with pytest.raises(LimitExceededError):
            messenger.execute("governance", pool.set_maximum_deposit_amount, pool.MAX_EXT_AMOUNT)
        with pytest.raises(LimitExceededError):
            messenger.execute("governance", pool.set_minimum_withdrawal_amount, -1)
