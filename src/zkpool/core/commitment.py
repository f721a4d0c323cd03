"""Commitment and nullifier derivation for shielded notes."""

from typing import TYPE_CHECKING, Optional

from zkpool.core.keypair import Keypair, verify_signature
from zkpool.utils.hash import field_hash
from zkpool.exceptions import KeyMismatchError

if TYPE_CHECKING:
    from zkpool.core.note import Note


class NoteCommitmentScheme:
    """
    Pure functions deriving commitments and nullifiers.

        commitment = H(amount, owner_public_key, blinding)
        nullifier  = H(commitment, leaf_index, Sign(sk, commitment, leaf_index))

    Only the owner can produce the signature, so only the owner can compute
    the nullifier. Anyone holding the disclosed signature can recompute it.
    """

    @staticmethod
    def compute_commitment(amount: int, public_key: bytes, blinding: int) -> int:
        """
        Compute a note commitment from its raw fields.

        Args:
            amount: Note value
            public_key: Owner's raw Ed25519 public key
            blinding: Random blinding factor

        Returns:
            int: Commitment field element
        """
        return field_hash(amount, public_key, blinding)

    @staticmethod
    def commitment(note: "Note") -> int:
        return NoteCommitmentScheme.compute_commitment(
            note.amount, note.owner_public_key, note.blinding
        )

    @staticmethod
    def compute_nullifier(commitment: int, leaf_index: int, signature: bytes) -> int:
        """Recompute a nullifier from disclosed data."""
        return field_hash(commitment, leaf_index, signature)

    @staticmethod
    def nullifier(note: "Note", leaf_index: int, keypair: Keypair) -> int:
        """
        Derive the nullifier that marks note as spent.

        Args:
            note: The note being spent
            leaf_index: Position of the note's commitment in the accumulator
            keypair: Owner keypair holding the private key

        Returns:
            int: Nullifier field element

        Raises:
            KeyMismatchError: If keypair does not own the note or has no private key
        """
        if keypair.public_key != note.owner_public_key:
            raise KeyMismatchError("Private key does not correspond to the note owner")
        if not keypair.has_private_key:
            raise KeyMismatchError("Spending a note requires the owner's private key")

        commitment = NoteCommitmentScheme.commitment(note)
        signature = keypair.sign(commitment, leaf_index)
        return NoteCommitmentScheme.compute_nullifier(commitment, leaf_index, signature)

    @staticmethod
    def verify_nullifier(
        commitment: int,
        leaf_index: int,
        signature: bytes,
        nullifier: int,
        public_key: Optional[bytes] = None,
    ) -> bool:
        """
        Check a disclosed (commitment, leaf_index, signature) against a nullifier.

        When the owner's public key is supplied the signature itself is also
        checked, which rules out nullifiers built from forged signatures.
        """
        if public_key is not None and not verify_signature(public_key, commitment, leaf_index, signature):
            return False
        return NoteCommitmentScheme.compute_nullifier(commitment, leaf_index, signature) == nullifier
