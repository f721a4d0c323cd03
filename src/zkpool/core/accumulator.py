"""Append-only commitment accumulator with a window of recent roots."""

import logging
from collections import deque
from dataclasses import dataclass
from typing import Deque, Iterable, List, Tuple

from zkpool.constants import DEFAULT_ROOT_HISTORY_SIZE, DEFAULT_TREE_HEIGHT
from zkpool.core.merkle_tree import MerklePath, MerkleTree, check_leaf, zero_hashes
from zkpool.utils.hash import merkle_hash
from zkpool.exceptions import InvalidLeafIndexError, TreeFullError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AccumulatorSnapshot:
    leaf_count: int
    filled_subtrees: Tuple[int, ...]
    roots: Tuple[int, ...]


class MerkleAccumulator:
    """
    Fixed-height incremental Merkle tree.

    Only the rightmost frontier (one "filled subtree" per level) is kept, so
    an insertion costs O(height) hashes. The last `root_history_size` roots
    (current one included) are accepted as proof anchors, letting proofs built
    against a slightly older root still go through.

    The leaves are kept as the ordered public log; inclusion paths are derived
    by replaying them into a MerkleTree, exactly as an outside party would.
    """

    def __init__(
        self,
        tree_height: int = DEFAULT_TREE_HEIGHT,
        root_history_size: int = DEFAULT_ROOT_HISTORY_SIZE,
    ):
        """
        Args:
            tree_height: Height H; capacity is 2^H leaves
            root_history_size: Number of accepted roots W

        Raises:
            ValueError: If parameters are invalid
        """
        if tree_height < 1 or tree_height > 32:
            raise ValueError("Tree height must be between 1 and 32")
        if root_history_size < 1:
            raise ValueError("Root history size must be positive")

        self.height = tree_height
        self.capacity = 2**tree_height
        self.root_history_size = root_history_size

        self._zeros = zero_hashes(tree_height)
        self._filled_subtrees: List[int] = list(self._zeros[:tree_height])
        self._leaves: List[int] = []
        self._roots: Deque[int] = deque([self._zeros[tree_height]], maxlen=root_history_size)

    @property
    def current_root(self) -> int:
        return self._roots[-1]

    @property
    def next_index(self) -> int:
        return len(self._leaves)

    @property
    def leaves(self) -> Tuple[int, ...]:
        return tuple(self._leaves)

    @property
    def roots(self) -> Tuple[int, ...]:
        """Accepted roots, oldest first."""
        return tuple(self._roots)

    def has_capacity(self, count: int = 1) -> bool:
        return len(self._leaves) + count <= self.capacity

    def _append(self, leaf: int) -> Tuple[int, int]:
        index = len(self._leaves)
        current = leaf
        position = index

        for level in range(self.height):
            if position % 2 == 0:
                self._filled_subtrees[level] = current
                current = merkle_hash(current, self._zeros[level])
            else:
                current = merkle_hash(self._filled_subtrees[level], current)
            position >>= 1

        self._leaves.append(leaf)
        return index, current

    def insert(self, leaf: int) -> int:
        """
        Append a single leaf and record the new root.

        Raises:
            TreeFullError: If capacity is exhausted
            ValueError: If leaf is not a field element
        """
        check_leaf(leaf)
        if not self.has_capacity(1):
            raise TreeFullError(f"Merkle tree is full (capacity {self.capacity})")

        index, root = self._append(leaf)
        self._roots.append(root)
        logger.debug(f"Inserted leaf {index}, root {hex(root)}")
        return index

    def insert_pair(self, left: int, right: int) -> Tuple[int, int]:
        """
        Append two leaves and record a single new root.

        Raises:
            TreeFullError: If fewer than two slots remain
            ValueError: If a leaf is not a field element
        """
        check_leaf(left)
        check_leaf(right)
        if not self.has_capacity(2):
            raise TreeFullError(f"Merkle tree is full (capacity {self.capacity})")

        left_index, _ = self._append(left)
        right_index, root = self._append(right)
        self._roots.append(root)
        logger.debug(f"Inserted leaves {left_index},{right_index}, root {hex(root)}")
        return left_index, right_index

    def is_known_root(self, root: int) -> bool:
        """True iff root is the current root or still inside the history window."""
        if not isinstance(root, int) or root == 0:
            return False
        return root in self._roots

    def proof_of_inclusion(self, index: int) -> MerklePath:
        """
        Merkle path for the leaf at index against the current root.

        Raises:
            InvalidLeafIndexError: If no leaf sits at index
        """
        if index < 0 or index >= len(self._leaves):
            raise InvalidLeafIndexError(f"Invalid leaf index: {index}")
        return MerkleTree(self.height, self._leaves).get_path(index)

    def snapshot(self) -> AccumulatorSnapshot:
        return AccumulatorSnapshot(
            leaf_count=len(self._leaves),
            filled_subtrees=tuple(self._filled_subtrees),
            roots=tuple(self._roots),
        )

    def restore(self, snapshot: AccumulatorSnapshot) -> None:
        del self._leaves[snapshot.leaf_count:]
        self._filled_subtrees = list(snapshot.filled_subtrees)
        self._roots = deque(snapshot.roots, maxlen=self.root_history_size)

    @classmethod
    def from_leaves(
        cls,
        leaves: Iterable[int],
        tree_height: int = DEFAULT_TREE_HEIGHT,
        root_history_size: int = DEFAULT_ROOT_HISTORY_SIZE,
        pairwise: bool = True,
    ) -> "MerkleAccumulator":
        """
        Replay an ordered leaf log.

        With pairwise=True leaves are inserted two at a time, matching how
        transactions append them, so the root history is reproduced as well.
        """
        accumulator = cls(tree_height=tree_height, root_history_size=root_history_size)
        leaves = list(leaves)
        if pairwise and len(leaves) % 2 == 0:
            for i in range(0, len(leaves), 2):
                accumulator.insert_pair(leaves[i], leaves[i + 1])
        else:
            for leaf in leaves:
                accumulator.insert(leaf)
        return accumulator

    def get_state(self) -> dict:
        return {
            "height": self.height,
            "capacity": self.capacity,
            "num_leaves": len(self._leaves),
            "root": hex(self.current_root),
            "root_history_size": self.root_history_size,
        }

    def __len__(self) -> int:
        return len(self._leaves)

    def __repr__(self) -> str:
        return (
            f"MerkleAccumulator(height={self.height}, "
            f"leaves={len(self._leaves)}/{self.capacity}, "
            f"root={hex(self.current_root)[:18]}...)"
        )
