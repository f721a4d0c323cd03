"""Pytest configuration and fixtures."""

import pytest
import sys
from pathlib import Path

# Add src to path for imports
src_path = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(src_path))

from zkpool.client.transaction import transaction
from zkpool.config import PoolSettings
from zkpool.core.pool import ShieldedPool
from zkpool.crypto.zk_snark import trusted_setup
from zkpool.ledger import AMBMessenger, OmniBridge, TokenLedger

ETHER = 10**18


@pytest.fixture(scope="session")
def circuit():
    """Prover and verifiers shared by the whole session."""
    return trusted_setup()


@pytest.fixture
def prover(circuit):
    return circuit[0]


@pytest.fixture
def verifiers(circuit):
    return circuit[1]


@pytest.fixture
def settings():
    """Small tree, default limits."""
    return PoolSettings(
        tree_height=5,
        root_history_size=100,
        minimal_withdrawal_amount=ETHER // 20,
        maximum_deposit_amount=ETHER,
        l1_chain_id=1,
        database_url="sqlite:///:memory:",
    )


@pytest.fixture
def token():
    token = TokenLedger()
    token.mint("alice", 10 * ETHER)
    return token


@pytest.fixture
def omni_bridge(token):
    return OmniBridge(token)


@pytest.fixture
def messenger():
    return AMBMessenger(source_chain_id=1)


@pytest.fixture
def make_pool(verifiers, token, omni_bridge, messenger, settings):
    """Factory for pools sharing the test ledger."""
    def _make(**overrides):
        kwargs = dict(
            verifiers=verifiers,
            token=token,
            omni_bridge=omni_bridge,
            messenger=messenger,
            governance="governance",
            multisig="multisig",
            settings=settings,
        )
        kwargs.update(overrides)
        return ShieldedPool(**kwargs)
    return _make


@pytest.fixture
def pool(make_pool):
    return make_pool()


@pytest.fixture
def deposit(pool, prover, token):
    """Deposit a note from an account holding tokens."""
    def _deposit(note, account="alice", target=None):
        target = target or pool
        token.approve(account, target.address, note.amount)
        return transaction(target, prover, outputs=[note], sender=account)
    return _deposit


@pytest.fixture
def test_data():
    """Fixture providing test data."""
    return {
        "sample_amount": ETHER // 10,
        "sample_tree_height": 5,
    }


@pytest.fixture
def temp_db(tmp_path):
    """Path of a throwaway SQLite database file."""
    return tmp_path / "events.db"
