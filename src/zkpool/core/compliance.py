"""Voluntary disclosure of a note to a third party.

An owner can prove to an auditor that a given deposit was made and later
spent, without giving away spending power. The report carries the note's
opening and the owner signature used for its nullifier; the auditor
recomputes both values and checks them against the public state.
"""

from dataclasses import dataclass
from typing import TYPE_CHECKING

from zkpool.core.commitment import NoteCommitmentScheme
from zkpool.core.keypair import verify_signature
from zkpool.core.note import Note
from zkpool.utils.encoding import bytes_to_hex, hex_to_bytes

if TYPE_CHECKING:
    from zkpool.core.pool import ShieldedPool


@dataclass(frozen=True)
class ComplianceResult:
    commitment: int
    nullifier: int
    commitment_found: bool
    index_matches: bool
    signature_valid: bool
    nullifier_spent: bool

    @property
    def compliant(self) -> bool:
        """The disclosed note is in the pool at the stated index and was spent."""
        return self.commitment_found and self.index_matches and self.signature_valid and self.nullifier_spent

    def to_dict(self) -> dict:
        return {
            "commitment": hex(self.commitment),
            "nullifier": hex(self.nullifier),
            "commitment_found": self.commitment_found,
            "index_matches": self.index_matches,
            "signature_valid": self.signature_valid,
            "nullifier_spent": self.nullifier_spent,
            "compliant": self.compliant,
        }


@dataclass(frozen=True)
class ComplianceReport:
    """
    Disclosed opening of a note.

    Attributes:
        amount: Note value
        public_key: Owner's public key
        blinding: Note blinding
        leaf_index: Position of the commitment in the accumulator
        signature: Owner signature over (commitment, leaf_index)
    """

    amount: int
    public_key: bytes
    blinding: int
    leaf_index: int
    signature: bytes

    @classmethod
    def from_note(cls, note: Note) -> "ComplianceReport":
        """
        Build a report for a note the caller owns.

        Raises:
            ValueError: If the note has no leaf index
            KeyMismatchError: If the note's keypair cannot sign
        """
        if note.index is None:
            raise ValueError("Only notes with a leaf index can be disclosed")
        commitment = note.commitment()
        return cls(
            amount=note.amount,
            public_key=note.owner_public_key,
            blinding=note.blinding,
            leaf_index=note.index,
            signature=note.keypair.sign(commitment, note.index),
        )

    @property
    def commitment(self) -> int:
        return NoteCommitmentScheme.compute_commitment(self.amount, self.public_key, self.blinding)

    @property
    def nullifier(self) -> int:
        return NoteCommitmentScheme.compute_nullifier(self.commitment, self.leaf_index, self.signature)

    def verify(self, pool: "ShieldedPool") -> ComplianceResult:
        """Recompute commitment and nullifier and check them against pool state."""
        commitment = self.commitment
        nullifier = self.nullifier
        leaves = pool.state.accumulator.leaves
        return ComplianceResult(
            commitment=commitment,
            nullifier=nullifier,
            commitment_found=commitment in leaves,
            index_matches=0 <= self.leaf_index < len(leaves) and leaves[self.leaf_index] == commitment,
            signature_valid=verify_signature(self.public_key, commitment, self.leaf_index, self.signature),
            nullifier_spent=pool.is_spent(nullifier),
        )

    def to_dict(self) -> dict:
        return {
            "amount": self.amount,
            "public_key": bytes_to_hex(self.public_key),
            "blinding": hex(self.blinding),
            "leaf_index": self.leaf_index,
            "signature": bytes_to_hex(self.signature),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "ComplianceReport":
        return cls(
            amount=int(data["amount"]),
            public_key=hex_to_bytes(data["public_key"]),
            blinding=int(data["blinding"], 16),
            leaf_index=int(data["leaf_index"]),
            signature=hex_to_bytes(data["signature"]),
        )
