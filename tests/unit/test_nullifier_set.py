"""Tests for the spent-nullifier registry."""

import pytest

from zkpool.core.events import NewCommitment, NewNullifier
from zkpool.crypto.nullifier import NullifierSet
from zkpool.exceptions import DoubleSpendError


@pytest.fixture
def nullifier_set():
    return NullifierSet()


class TestNullifierSet:
    """Tests for nullifier registration."""

    def test_insert_and_contains(self, nullifier_set):
        assert not nullifier_set.contains(5)
        nullifier_set.insert(5, "0xabc")
        assert nullifier_set.contains(5)
        assert 5 in nullifier_set
        assert nullifier_set.is_spent(5)
        assert nullifier_set.size == 1

    def test_double_insert(self, nullifier_set):
        nullifier_set.insert(5, "0xabc")
        with pytest.raises(DoubleSpendError):
            nullifier_set.insert(5, "0xdef")
        assert nullifier_set.get_record(5).transaction_hash == "0xabc"

    def test_snapshot_restore(self, nullifier_set):
        nullifier_set.insert(1)
        snapshot = nullifier_set.snapshot()
        nullifier_set.insert(2)
        nullifier_set.insert(3)
        nullifier_set.restore(snapshot)
        assert list(nullifier_set) == [1]

    def test_serialize_round_trip(self, nullifier_set):
        nullifier_set.insert(1, "0x01", merkle_root=99)
        nullifier_set.insert(2, "0x02")
        restored = NullifierSet.deserialize(nullifier_set.serialize())
        assert restored.size == 2
        assert restored.get_record(1).merkle_root_at_spending == 99
        assert restored.get_record(2).transaction_hash == "0x02"

    def test_from_events(self):
        events = [NewCommitment(1, 0, b""), NewNullifier(7), NewNullifier(8)]
        nullifier_set = NullifierSet.from_events(events)
        assert set(nullifier_set) == {7, 8}
