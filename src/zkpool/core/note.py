"""
Shielded notes (UTXOs).

A note n = (amount, owner key, blinding). It exists on the ledger only as its
commitment; it is unspent once the commitment is in the accumulator and spent
once its nullifier is published.
"""

import secrets
from dataclasses import dataclass, field
from typing import Optional

from zkpool.constants import MAX_EXT_AMOUNT, NOTE_VALUE_BYTES
from zkpool.core.commitment import NoteCommitmentScheme
from zkpool.core.keypair import Keypair
from zkpool.exceptions import DecryptionError


def random_blinding() -> int:
    """Fresh 31-byte blinding factor."""
    return int.from_bytes(secrets.token_bytes(NOTE_VALUE_BYTES), 'big')


@dataclass
class Note:
    """
    A shielded note.

    A note built without arguments is a zero-value dummy with a fresh
    keypair, used to pad transactions to the circuit's arity.
    """

    amount: int = 0
    keypair: Keypair = field(default_factory=Keypair)
    blinding: int = field(default_factory=random_blinding)
    index: Optional[int] = None

    def __post_init__(self):
        if not isinstance(self.amount, int) or not 0 <= self.amount < MAX_EXT_AMOUNT:
            raise ValueError(f"Note amount must be in [0, 2^248): {self.amount}")
        if not 0 <= self.blinding < 2 ** (8 * NOTE_VALUE_BYTES):
            raise ValueError("Blinding must fit in 31 bytes")

    @property
    def owner_public_key(self) -> bytes:
        return self.keypair.public_key

    def commitment(self) -> int:
        return NoteCommitmentScheme.commitment(self)

    def nullifier(self) -> int:
        """
        Nullifier of this note.

        Raises:
            ValueError: If a non-zero note has no leaf index yet
            KeyMismatchError: If the keypair cannot sign
        """
        if self.index is None and self.amount > 0:
            raise ValueError("Cannot compute nullifier without a leaf index")
        return NoteCommitmentScheme.nullifier(self, self.index or 0, self.keypair)

    def encrypt(self) -> bytes:
        """Encrypt (amount, blinding) to the owner's encryption key."""
        plaintext = (
            self.amount.to_bytes(NOTE_VALUE_BYTES, 'big')
            + self.blinding.to_bytes(NOTE_VALUE_BYTES, 'big')
        )
        return self.keypair.encrypt(plaintext)

    @classmethod
    def decrypt(cls, keypair: Keypair, data: bytes, index: int) -> "Note":
        """
        Rebuild a note from an encrypted output found in the public log.

        Raises:
            DecryptionError: If the output is not addressed to keypair
        """
        plaintext = keypair.decrypt(data)
        if len(plaintext) != 2 * NOTE_VALUE_BYTES:
            raise DecryptionError("Unexpected note payload size")
        return cls(
            amount=int.from_bytes(plaintext[:NOTE_VALUE_BYTES], 'big'),
            keypair=keypair,
            blinding=int.from_bytes(plaintext[NOTE_VALUE_BYTES:], 'big'),
            index=index,
        )

    def __repr__(self) -> str:
        return f"Note(amount={self.amount}, index={self.index}, owner={self.owner_public_key.hex()[:8]}...)"
