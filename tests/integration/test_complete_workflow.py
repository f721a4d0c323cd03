"""Integration tests for the complete shielded pool."""

import pytest

from zkpool.client.scanner import scan_notes, unspent_notes
from zkpool.client.transaction import prepare_transaction, register_and_transact, transaction
from zkpool.core.bridge import BridgeStatus, encode_bridge_payload
from zkpool.core.compliance import ComplianceReport
from zkpool.core.events import NewCommitment, NewNullifier, PublicKey
from zkpool.core.keypair import Keypair
from zkpool.core.note import Note
from zkpool.core.pool import ShieldedPool
from zkpool.core.validator import TxState
from zkpool.exceptions import InsufficientAllowanceError, LimitExceededError, StaleRootError
from zkpool.storage import DatabaseManager

ETHER = 10**18


class TestCompletePoolWorkflow:
    """Deposit, private transfer and withdrawal."""

    def test_deposit_transfer_withdraw(self, pool, prover, token):
        alice, bob = Keypair(), Keypair()

        # Step 1: Alice deposits
        token.approve("alice", pool.address, ETHER // 2)
        transaction(pool, prover, outputs=[Note(amount=ETHER // 2, keypair=alice)], sender="alice")
        assert token.balance_of("alice") == 10 * ETHER - ETHER // 2

        # Step 2: Alice pays Bob through his public address
        bob_public = Keypair.from_address(bob.address())
        alice_note = unspent_notes(alice, pool.events)[0]
        transaction(
            pool,
            prover,
            inputs=[alice_note],
            outputs=[Note(amount=ETHER // 5, keypair=bob_public), Note(amount=3 * ETHER // 10, keypair=alice)],
        )
        assert pool.is_spent(alice_note.nullifier())
        assert [note.amount for note in unspent_notes(alice, pool.events)] == [3 * ETHER // 10]

        # Step 3: Bob finds his note and withdraws part of it
        bob_notes = unspent_notes(bob, pool.events)
        assert [note.amount for note in bob_notes] == [ETHER // 5]
        transaction(
            pool,
            prover,
            inputs=bob_notes,
            outputs=[Note(amount=ETHER // 10, keypair=bob)],
            recipient="bob-wallet",
        )
        assert token.balance_of("bob-wallet") == ETHER // 10
        assert [note.amount for note in unspent_notes(bob, pool.events)] == [ETHER // 10]

        # Custody equals the value of unspent notes
        unspent = unspent_notes(alice, pool.events) + unspent_notes(bob, pool.events)
        assert pool.router.custody == sum(note.amount for note in unspent) == 4 * ETHER // 10

        # Two commitments per transaction, one nullifier per (padded) input
        events = pool.events
        assert sum(isinstance(e, NewCommitment) for e in events) == 6
        assert sum(isinstance(e, NewNullifier) for e in events) == 6
        assert [e.index for e in events if isinstance(e, NewCommitment)] == list(range(6))

        stats = pool.get_statistics()
        assert stats["total_transactions"] == 3
        assert stats["total_deposited"] == ETHER // 2
        assert stats["total_withdrawn"] == ETHER // 10

    def test_relayed_withdrawal(self, pool, deposit, prover, token):
        keypair = Keypair()
        deposit(Note(amount=ETHER // 2, keypair=keypair))
        note = unspent_notes(keypair, pool.events)[0]

        transaction(
            pool,
            prover,
            inputs=[note],
            outputs=[Note(amount=39 * ETHER // 100, keypair=keypair)],
            fee=ETHER // 100,
            recipient="carol",
            relayer="relayer",
        )
        assert token.balance_of("carol") == ETHER // 10
        assert token.balance_of("relayer") == ETHER // 100
        assert pool.router.custody == 39 * ETHER // 100

    def test_l1_withdrawal_through_bridge(self, pool, deposit, prover, omni_bridge):
        keypair = Keypair()
        deposit(Note(amount=ETHER // 2, keypair=keypair))
        note = unspent_notes(keypair, pool.events)[0]

        transaction(
            pool,
            prover,
            inputs=[note],
            recipient="carol-l1",
            is_l1_withdrawal=True,
            l1_fee=ETHER // 1000,
        )
        assert pool.router.custody == 0
        transfer = omni_bridge.outbox[-1]
        assert transfer.recipient == "carol-l1"
        assert transfer.amount == ETHER // 2
        assert transfer.unwrapper == "l1-unwrapper"
        assert transfer.l1_fee == ETHER // 1000

    def test_sixteen_input_consolidation(self, pool, deposit, prover, token):
        keypair = Keypair()
        for _ in range(4):
            deposit(Note(amount=ETHER // 10, keypair=keypair))
        notes = unspent_notes(keypair, pool.events)
        assert len(notes) == 4

        receipt = transaction(pool, prover, inputs=notes, recipient="dave")
        assert len(receipt.events) == 2 + 16
        assert token.balance_of("dave") == 4 * ETHER // 10
        assert unspent_notes(keypair, pool.events) == []

    def test_dummy_inputs_use_sixteen_input_circuit(self, pool, prover, token):
        keypair = Keypair()
        tx = prepare_transaction(
            prover=prover,
            events=pool.events,
            tree_height=pool.state.accumulator.height,
            inputs=[Note(), Note(), Note()],
            outputs=[Note(amount=ETHER // 10, keypair=keypair)],
        )
        assert tx.arity == 16

        token.approve("alice", pool.address, ETHER // 10)
        receipt = pool.transact(tx, sender="alice")
        assert receipt.states[-1] == TxState.COMPLETE
        assert len(receipt.events) == 2 + 16
        assert sum(isinstance(e, NewNullifier) for e in receipt.events) == 16
        assert [note.amount for note in unspent_notes(keypair, pool.events)] == [ETHER // 10]

    def test_compliance_after_spend(self, pool, deposit, prover):
        keypair = Keypair()
        deposit(Note(amount=ETHER // 10, keypair=keypair))
        note = unspent_notes(keypair, pool.events)[0]
        transaction(pool, prover, inputs=[note], recipient="erin")

        result = ComplianceReport.from_note(note).verify(pool)
        assert result.compliant


class TestRootFreshness:
    """Proofs anchored to old roots."""

    @pytest.fixture
    def small_window_pool(self, make_pool, settings):
        return make_pool(settings=settings.model_copy(update={"root_history_size": 2}))

    def _prepared_spend(self, pool, deposit, prover, keypair):
        deposit(Note(amount=ETHER // 10, keypair=keypair), target=pool)
        note = unspent_notes(keypair, pool.events)[0]
        return prepare_transaction(
            prover=prover,
            events=pool.events,
            tree_height=pool.state.accumulator.height,
            inputs=[note],
            recipient="frank",
        )

    def test_recent_root_accepted(self, small_window_pool, deposit, prover):
        tx = self._prepared_spend(small_window_pool, deposit, prover, Keypair())
        deposit(Note(amount=ETHER // 10), target=small_window_pool)
        assert small_window_pool.is_known_root(tx.public_inputs.root)
        small_window_pool.transact(tx)

    def test_evicted_root_rejected(self, small_window_pool, deposit, prover):
        tx = self._prepared_spend(small_window_pool, deposit, prover, Keypair())
        deposit(Note(amount=ETHER // 10), target=small_window_pool)
        deposit(Note(amount=ETHER // 10), target=small_window_pool)
        assert not small_window_pool.is_known_root(tx.public_inputs.root)
        with pytest.raises(StaleRootError):
            small_window_pool.transact(tx)


class TestBridgedDeposits:
    """Deposits arriving through the omni bridge."""

    def test_bridged_deposit_then_spend(self, pool, prover, omni_bridge, token):
        keypair = Keypair()
        tx = prepare_transaction(
            prover=prover,
            events=pool.events,
            tree_height=pool.state.accumulator.height,
            outputs=[Note(amount=3 * ETHER // 10, keypair=keypair)],
        )
        outcome = omni_bridge.deliver(pool, 3 * ETHER // 10, encode_bridge_payload(tx))
        assert outcome.status == BridgeStatus.DEPOSITED
        assert pool.last_balance == pool.router.custody == 3 * ETHER // 10

        notes = unspent_notes(keypair, pool.events)
        transaction(pool, prover, inputs=notes, recipient="grace")
        assert token.balance_of("grace") == 3 * ETHER // 10

    def test_mismatched_amount_recovered(self, pool, prover, omni_bridge, token):
        tx = prepare_transaction(
            prover=prover,
            events=pool.events,
            tree_height=pool.state.accumulator.height,
            outputs=[Note(amount=ETHER // 10)],
        )
        outcome = omni_bridge.deliver(pool, ETHER // 5, encode_bridge_payload(tx))
        assert outcome.status == BridgeStatus.RECOVERED
        assert token.balance_of("multisig") == ETHER // 5
        assert pool.events == []
        assert pool.get_statistics()["total_recovered"] == ETHER // 5


class TestGovernance:
    """Limits changed from L1."""

    def test_raise_deposit_limit(self, pool, deposit, messenger):
        with pytest.raises(LimitExceededError):
            deposit(Note(amount=3 * ETHER // 2))

        messenger.execute("governance", pool.set_maximum_deposit_amount, 2 * ETHER)
        assert pool.maximum_deposit_amount == 2 * ETHER
        deposit(Note(amount=3 * ETHER // 2))
        assert pool.router.custody == 3 * ETHER // 2


class TestRegistration:
    """Publishing shielded addresses."""

    def test_pay_registered_address(self, pool, prover, token):
        bob = Keypair()
        token.mint("bob", ETHER)
        token.approve("bob", pool.address, ETHER // 10)
        register_and_transact(pool, prover, bob, "bob", outputs=[Note(amount=ETHER // 10, keypair=bob)])

        events = pool.events
        assert isinstance(events[0], PublicKey)
        assert isinstance(events[1], NewCommitment)

        # Alice looks Bob up and pays him
        registered = next(e for e in events if isinstance(e, PublicKey) and e.owner == "bob")
        token.approve("alice", pool.address, ETHER // 5)
        transaction(
            pool,
            prover,
            outputs=[Note(amount=ETHER // 5, keypair=Keypair.from_address(registered.key))],
            sender="alice",
        )
        assert sorted(note.amount for note in scan_notes(bob, pool.events)) == [ETHER // 10, ETHER // 5]

    def test_failed_transaction_does_not_register(self, pool, prover):
        bob = Keypair()
        with pytest.raises(InsufficientAllowanceError):
            register_and_transact(pool, prover, bob, "bob", outputs=[Note(amount=ETHER // 10, keypair=bob)])
        assert pool.events == []
        assert pool.router.custody == 0


class TestPersistence:
    """Restarting a pool from its stored log."""

    def test_restart_from_store(self, make_pool, prover, token, verifiers, settings):
        db = DatabaseManager("sqlite:///:memory:")
        db.create_tables()
        pool = make_pool(event_store=db)

        keypair = Keypair()
        token.approve("alice", pool.address, ETHER // 2)
        transaction(pool, prover, outputs=[Note(amount=ETHER // 2, keypair=keypair)], sender="alice")
        note = unspent_notes(keypair, pool.events)[0]
        transaction(pool, prover, inputs=[note], outputs=[Note(amount=ETHER // 4, keypair=keypair)], recipient="heidi")

        restarted = ShieldedPool.replay(db.load_events(), verifiers, token, settings=settings)
        assert restarted.current_root() == pool.current_root()
        assert restarted.is_spent(note.nullifier())

        # The restarted pool accepts spends of notes created before the restart
        remaining = unspent_notes(keypair, restarted.events)
        transaction(restarted, prover, inputs=remaining, recipient="heidi")
        assert token.balance_of("heidi") == ETHER // 2
