"""Merkle Tree over note commitments, rebuilt off-path from the public log."""

from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Tuple

from zkpool.constants import DEFAULT_TREE_HEIGHT, FIELD_SIZE
from zkpool.utils.hash import merkle_hash, ZERO_VALUE
from zkpool.exceptions import TreeFullError, InvalidLeafIndexError


def zero_hashes(height: int) -> List[int]:
    """Roots of empty subtrees for levels 0..height."""
    zeros = [ZERO_VALUE]
    for _ in range(height):
        zeros.append(merkle_hash(zeros[-1], zeros[-1]))
    return zeros


def check_leaf(leaf: int) -> None:
    if isinstance(leaf, bool) or not isinstance(leaf, int) or not 0 <= leaf < FIELD_SIZE:
        raise ValueError("Leaf must be a field element")


@dataclass(frozen=True)
class MerklePath:
    """Inclusion proof: sibling per level, plus whether the node is a right child."""

    leaf_index: int
    path_elements: Tuple[int, ...]
    path_indices: Tuple[int, ...]

    def compute_root(self, leaf: int) -> int:
        current = leaf
        for sibling, is_right in zip(self.path_elements, self.path_indices):
            if is_right:
                current = merkle_hash(sibling, current)
            else:
                current = merkle_hash(current, sibling)
        return current

    def verify(self, leaf: int, root: int) -> bool:
        try:
            return self.compute_root(leaf) == root
        except ValueError:
            return False


class MerkleTree:
    """
    Full binary Merkle tree over commitments.

    Any party can rebuild this tree by replaying NewCommitment entries of the
    public log in order, and then derive paths for its own notes.

    - Leaves are commitments (field elements)
    - Internal nodes are merkle_hash(left, right)
    - Missing nodes take the value of the empty subtree at their level
    """

    DEFAULT_HEIGHT = DEFAULT_TREE_HEIGHT

    def __init__(self, tree_height: int = DEFAULT_HEIGHT, leaves: Optional[Iterable[int]] = None):
        """
        Initialize a tree, optionally pre-filled.

        Args:
            tree_height: Height of the tree
            leaves: Commitments to insert in order

        Raises:
            ValueError: If height is invalid
        """
        if tree_height < 1 or tree_height > 32:
            raise ValueError("Tree height must be between 1 and 32")

        self.height = tree_height
        self.max_leaves = 2**tree_height
        self.zeros = zero_hashes(tree_height)

        self.leaves: List[int] = []
        self._positions: Dict[int, int] = {}

        # (level, position) -> node
        self.nodes: Dict[Tuple[int, int], int] = {}

        if leaves is not None:
            self.bulk_insert(leaves)

    def insert(self, commitment: int) -> int:
        """
        Insert commitment leaf and return leaf index.

        Raises:
            TreeFullError: If tree is full
            ValueError: If commitment is not a field element
        """
        check_leaf(commitment)

        if len(self.leaves) >= self.max_leaves:
            raise TreeFullError(f"Tree is full (max {self.max_leaves} commitments)")

        leaf_index = len(self.leaves)
        self.leaves.append(commitment)
        self._positions.setdefault(commitment, leaf_index)
        self.nodes[(0, leaf_index)] = commitment

        self._compute_parent_hashes(leaf_index)

        return leaf_index

    def bulk_insert(self, commitments: Iterable[int]) -> None:
        for commitment in commitments:
            self.insert(commitment)

    def _compute_parent_hashes(self, leaf_index: int) -> None:
        position = leaf_index

        for level in range(self.height):
            sibling_position = position ^ 1
            is_left = position % 2 == 0

            left_key = (level, position if is_left else sibling_position)
            right_key = (level, sibling_position if is_left else position)

            left_hash = self.nodes.get(left_key, self.zeros[level])
            right_hash = self.nodes.get(right_key, self.zeros[level])

            parent_position = position >> 1
            self.nodes[(level + 1, parent_position)] = merkle_hash(left_hash, right_hash)

            position = parent_position

    def get_path(self, leaf_index: int) -> MerklePath:
        """
        Return the Merkle path (sibling hashes) for a leaf.

        Raises:
            InvalidLeafIndexError: If leaf index is invalid
        """
        if leaf_index < 0 or leaf_index >= len(self.leaves):
            raise InvalidLeafIndexError(f"Invalid leaf index: {leaf_index}")

        elements = []
        indices = []
        position = leaf_index

        for level in range(self.height):
            sibling_position = position ^ 1
            elements.append(self.nodes.get((level, sibling_position), self.zeros[level]))
            indices.append(position & 1)
            position >>= 1

        return MerklePath(
            leaf_index=leaf_index,
            path_elements=tuple(elements),
            path_indices=tuple(indices),
        )

    def verify_path(self, commitment: int, path: MerklePath) -> bool:
        """Check that path leads from commitment to the current root."""
        if len(path.path_elements) != self.height:
            return False
        return path.verify(commitment, self.root)

    def index_of(self, commitment: int) -> int:
        """Leaf index of commitment, or -1 when absent."""
        return self._positions.get(commitment, -1)

    @classmethod
    def from_events(cls, events: Iterable, tree_height: int = DEFAULT_HEIGHT) -> "MerkleTree":
        """
        Rebuild the tree from NewCommitment entries of the public log.

        Entries are ordered by leaf index before insertion.
        """
        from zkpool.core.events import NewCommitment

        commitments = sorted(
            (event for event in events if isinstance(event, NewCommitment)),
            key=lambda event: event.index,
        )
        return cls(tree_height=tree_height, leaves=[event.commitment for event in commitments])

    @property
    def root(self) -> int:
        """Get the current Merkle root."""
        return self.nodes.get((self.height, 0), self.zeros[self.height])

    def get_state(self) -> dict:
        return {
            "height": self.height,
            "max_leaves": self.max_leaves,
            "num_leaves": len(self.leaves),
            "root": hex(self.root),
        }

    def __len__(self) -> int:
        return len(self.leaves)

    def __repr__(self) -> str:
        return (
            f"MerkleTree(height={self.height}, "
            f"leaves={len(self.leaves)}/{self.max_leaves}, "
            f"root={hex(self.root)[:18]}...)"
        )
