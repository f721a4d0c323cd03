"""Ledger state of the pool: accumulator, spent nullifiers and public log."""

from dataclasses import dataclass
from typing import Iterable

from zkpool.constants import DEFAULT_ROOT_HISTORY_SIZE, DEFAULT_TREE_HEIGHT
from zkpool.core.accumulator import AccumulatorSnapshot, MerkleAccumulator
from zkpool.core.events import EventLog, NewCommitment, NewNullifier, PoolEvent
from zkpool.crypto.nullifier import NullifierSet
from zkpool.exceptions import DoubleSpendError, ReplayError, TreeFullError


@dataclass(frozen=True)
class StateSnapshot:
    accumulator: AccumulatorSnapshot
    nullifiers: tuple
    log_length: int


class PoolState:
    """
    The shared mutable resource of the pool.

    Mutated only by the TransactionValidator, under the pool lock.
    """

    def __init__(self, accumulator: MerkleAccumulator, nullifiers: NullifierSet, events: EventLog):
        self.accumulator = accumulator
        self.nullifiers = nullifiers
        self.events = events

    @classmethod
    def empty(
        cls,
        tree_height: int = DEFAULT_TREE_HEIGHT,
        root_history_size: int = DEFAULT_ROOT_HISTORY_SIZE,
    ) -> "PoolState":
        return cls(MerkleAccumulator(tree_height, root_history_size), NullifierSet(), EventLog())

    @classmethod
    def replay(
        cls,
        events: Iterable[PoolEvent],
        tree_height: int = DEFAULT_TREE_HEIGHT,
        root_history_size: int = DEFAULT_ROOT_HISTORY_SIZE,
    ) -> "PoolState":
        """
        Rebuild state from an ordered public log.

        Commitments are appended two at a time, as transactions append them,
        so the root history window comes out identical.

        Raises:
            ReplayError: If the log is out of order or inconsistent
        """
        state = cls.empty(tree_height, root_history_size)
        pending = []

        def flush():
            if len(pending) == 2:
                state.accumulator.insert_pair(pending[0].commitment, pending[1].commitment)
            else:
                state.accumulator.insert(pending[0].commitment)
            pending.clear()

        try:
            for event in events:
                if isinstance(event, NewCommitment):
                    expected = state.accumulator.next_index + len(pending)
                    if event.index != expected:
                        raise ReplayError(
                            f"Commitment index {event.index} out of order, expected {expected}"
                        )
                    pending.append(event)
                    if len(pending) == 2:
                        flush()
                elif isinstance(event, NewNullifier):
                    state.nullifiers.insert(event.nullifier)
                state.events.append(event)
            if pending:
                flush()
        except (DoubleSpendError, TreeFullError, ValueError) as e:
            raise ReplayError(f"Public log does not replay: {e}") from e

        return state

    def snapshot(self) -> StateSnapshot:
        return StateSnapshot(
            accumulator=self.accumulator.snapshot(),
            nullifiers=self.nullifiers.snapshot(),
            log_length=len(self.events),
        )

    def restore(self, snapshot: StateSnapshot) -> None:
        self.accumulator.restore(snapshot.accumulator)
        self.nullifiers.restore(snapshot.nullifiers)
        self.events.truncate(snapshot.log_length)
