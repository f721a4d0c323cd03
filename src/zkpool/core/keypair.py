"""Shielded keypairs: spending (signature) key plus note encryption key."""

import secrets
from typing import Optional

from Crypto.PublicKey import ECC
from Crypto.Signature import eddsa
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.hkdf import HKDF

from zkpool.crypto.note_encryption import NoteEncryption
from zkpool.utils.encoding import hex_to_bytes
from zkpool.exceptions import KeyMismatchError

SIGNATURE_DOMAIN = b"zkpool/nullifier-signature/v1"


def signing_message(commitment: int, leaf_index: int) -> bytes:
    """Message signed by the owner to derive a nullifier."""
    return SIGNATURE_DOMAIN + commitment.to_bytes(32, 'big') + leaf_index.to_bytes(32, 'big')


def verify_signature(public_key: bytes, commitment: int, leaf_index: int, signature: bytes) -> bool:
    """Check an owner signature over (commitment, leaf_index) against a raw Ed25519 key."""
    try:
        verifier = eddsa.new(eddsa.import_public_key(public_key), 'rfc8032')
        verifier.verify(signing_message(commitment, leaf_index), signature)
        return True
    except (ValueError, TypeError):
        return False


class Keypair:
    """
    Owner key material for notes.

    The 32-byte private key is a seed from which two keys are derived:
    - an Ed25519 key: its public point is the note owner key, and its
      deterministic RFC 8032 signatures feed nullifier derivation;
    - an X25519 key used to receive encrypted notes.

    A keypair built from an address is public-only: it can be paid but it
    cannot sign or decrypt.
    """

    KEY_SIZE = 32
    ADDRESS_SIZE = 2 * KEY_SIZE

    def __init__(
        self,
        private_key: Optional[bytes] = None,
        public_key: Optional[bytes] = None,
        encryption_key: Optional[bytes] = None,
    ):
        """
        Create a keypair.

        Args:
            private_key: 32-byte seed; generated when neither key is given
            public_key: Raw Ed25519 public key (public-only keypairs)
            encryption_key: Raw X25519 public key (public-only keypairs)

        Raises:
            ValueError: If key material has the wrong size
        """
        if private_key is None and public_key is None:
            private_key = secrets.token_bytes(self.KEY_SIZE)

        if private_key is not None:
            if not isinstance(private_key, bytes) or len(private_key) != self.KEY_SIZE:
                raise ValueError("Private key must be 32 bytes")
            self._private_key = private_key
            self._signing_key = ECC.construct(curve="Ed25519", seed=private_key)
            self._encryption_secret = HKDF(
                algorithm=hashes.SHA256(),
                length=self.KEY_SIZE,
                salt=None,
                info=b"zkpool/keypair/encryption",
            ).derive(private_key)
            self.public_key = self._signing_key.public_key().export_key(format="raw")
            self.encryption_key = NoteEncryption.public_key_for(self._encryption_secret)
        else:
            if not isinstance(public_key, bytes) or len(public_key) != self.KEY_SIZE:
                raise ValueError("Public key must be 32 bytes")
            if not isinstance(encryption_key, bytes) or len(encryption_key) != self.KEY_SIZE:
                raise ValueError("Encryption key must be 32 bytes")
            self._private_key = None
            self._signing_key = None
            self._encryption_secret = None
            self.public_key = public_key
            self.encryption_key = encryption_key

    @property
    def has_private_key(self) -> bool:
        return self._private_key is not None

    @property
    def private_key(self) -> bytes:
        """Return the private seed. Never log this value."""
        if self._private_key is None:
            raise KeyMismatchError("Keypair holds no private key")
        return self._private_key

    def address(self) -> str:
        """Shareable address: owner key followed by encryption key."""
        return "0x" + self.public_key.hex() + self.encryption_key.hex()

    @classmethod
    def from_address(cls, address: str) -> "Keypair":
        """Build a public-only keypair able to receive notes."""
        raw = hex_to_bytes(address)
        if len(raw) != cls.ADDRESS_SIZE:
            raise ValueError(f"Address must be {cls.ADDRESS_SIZE} bytes")
        return cls(public_key=raw[:cls.KEY_SIZE], encryption_key=raw[cls.KEY_SIZE:])

    def sign(self, commitment: int, leaf_index: int) -> bytes:
        """
        Deterministically sign (commitment, leaf_index).

        Raises:
            KeyMismatchError: If this keypair is public-only
        """
        if self._signing_key is None:
            raise KeyMismatchError("Cannot sign with a public-only keypair")
        signer = eddsa.new(self._signing_key, 'rfc8032')
        return signer.sign(signing_message(commitment, leaf_index))

    def verify(self, commitment: int, leaf_index: int, signature: bytes) -> bool:
        return verify_signature(self.public_key, commitment, leaf_index, signature)

    def encrypt(self, plaintext: bytes) -> bytes:
        return NoteEncryption.encrypt(self.encryption_key, plaintext)

    def decrypt(self, ciphertext: bytes) -> bytes:
        """
        Decrypt a note addressed to this keypair.

        Raises:
            DecryptionError: If the ciphertext is not ours or is corrupted
            KeyMismatchError: If this keypair is public-only
        """
        if self._encryption_secret is None:
            raise KeyMismatchError("Cannot decrypt with a public-only keypair")
        return NoteEncryption.decrypt(self._encryption_secret, ciphertext)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Keypair):
            return NotImplemented
        return self.public_key == other.public_key and self.encryption_key == other.encryption_key

    def __hash__(self) -> int:
        return hash((self.public_key, self.encryption_key))

    def __repr__(self) -> str:
        kind = "private" if self.has_private_key else "public"
        return f"Keypair({kind}, owner={self.public_key.hex()[:16]}...)"
