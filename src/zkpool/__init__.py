"""Main package initialization."""

__version__ = "0.1.0"
__author__ = "zkpool developers"
__description__ = "Shielded value pool with note commitments, nullifiers and bridged deposits"

from .core.keypair import Keypair
from .core.note import Note
from .core.merkle_tree import MerkleTree
from .core.accumulator import MerkleAccumulator
from .core.pool import ShieldedPool
from .crypto.zk_snark import trusted_setup

__all__ = [
    "Keypair",
    "Note",
    "MerkleTree",
    "MerkleAccumulator",
    "ShieldedPool",
    "trusted_setup",
]
