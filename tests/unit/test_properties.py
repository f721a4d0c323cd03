"""Property-based tests using Hypothesis for protocol invariants."""

from hypothesis import HealthCheck, given, settings, strategies as st

from zkpool.constants import FIELD_SIZE, MAX_EXT_AMOUNT, MAX_FEE
from zkpool.core.accumulator import MerkleAccumulator
from zkpool.core.keypair import Keypair
from zkpool.core.merkle_tree import MerkleTree
from zkpool.core.note import Note
from zkpool.core.transaction import calculate_public_amount
from zkpool.crypto.nullifier import NullifierSet

KEYPAIR = Keypair(bytes(range(32)))

field_elements = st.integers(min_value=0, max_value=FIELD_SIZE - 1)


class TestProtocolProperties:
    """Property-based tests for protocol invariants."""

    @given(st.integers(min_value=0, max_value=MAX_EXT_AMOUNT - 1), st.integers(min_value=0, max_value=2**248 - 1))
    @settings(max_examples=50, suppress_health_check=[HealthCheck.too_slow])
    def test_note_encryption_round_trip(self, amount: int, blinding: int):
        """Property: decrypt(encrypt(note)) restores the note."""
        note = Note(amount=amount, keypair=KEYPAIR, blinding=blinding)
        restored = Note.decrypt(KEYPAIR, note.encrypt(), 0)
        assert (restored.amount, restored.blinding) == (amount, blinding)

    @given(st.integers(min_value=-MAX_EXT_AMOUNT, max_value=MAX_EXT_AMOUNT), st.integers(min_value=0, max_value=MAX_FEE - 1))
    def test_public_amount_never_wraps_ambiguously(self, ext_amount: int, fee: int):
        """Property: the public amount identifies ext_amount - fee uniquely."""
        public = calculate_public_amount(ext_amount, fee)
        assert 0 <= public < FIELD_SIZE
        recovered = public if public < FIELD_SIZE // 2 else public - FIELD_SIZE
        assert recovered == ext_amount - fee

    @given(st.lists(field_elements, min_size=1, max_size=16))
    @settings(max_examples=30, suppress_health_check=[HealthCheck.too_slow])
    def test_accumulator_matches_replayed_tree(self, leaves):
        """Property: the incremental root equals the root of a tree replayed from the log."""
        accumulator = MerkleAccumulator(tree_height=4, root_history_size=100)
        for leaf in leaves:
            accumulator.insert(leaf)
        tree = MerkleTree(tree_height=4, leaves=leaves)
        assert accumulator.current_root == tree.root
        for index, leaf in enumerate(leaves):
            assert accumulator.proof_of_inclusion(index).verify(leaf, accumulator.current_root)

    @given(st.integers(min_value=1, max_value=10), st.integers(min_value=1, max_value=12))
    @settings(max_examples=30)
    def test_root_window(self, window: int, transactions: int):
        """Property: a root stays known for exactly window - 1 later insertions."""
        accumulator = MerkleAccumulator(tree_height=5, root_history_size=window)
        first = accumulator.current_root
        for i in range(transactions):
            accumulator.insert_pair(2 * i + 1, 2 * i + 2)
        assert accumulator.is_known_root(first) == (transactions < window)

    @given(st.lists(field_elements, max_size=30))
    def test_nullifier_set_rejects_every_repeat(self, nullifiers):
        """Property: a nullifier can be inserted once."""
        nullifier_set = NullifierSet()
        seen = set()
        for nullifier in nullifiers:
            if nullifier in seen:
                assert nullifier_set.contains(nullifier)
                continue
            nullifier_set.insert(nullifier)
            seen.add(nullifier)
        assert set(nullifier_set) == seen
