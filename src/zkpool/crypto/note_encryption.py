"""Authenticated encryption of note payloads to a recipient's X25519 key.

Every ciphertext carries its own ephemeral public key, so the sender keeps no
state and the recipient needs only its private key to scan the public log:

    shared  = X25519(ephemeral_secret, recipient_public)
    key     = HKDF-SHA256(shared, salt = ephemeral_public || recipient_public)
    payload = ChaCha20-Poly1305(key, nonce, plaintext, aad = header)

Wire layout::

    version (1) || ephemeral_public (32) || nonce (12) || ciphertext || tag (16)
"""

import os

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric.x25519 import X25519PrivateKey, X25519PublicKey
from cryptography.hazmat.primitives.ciphers.aead import ChaCha20Poly1305
from cryptography.hazmat.primitives.kdf.hkdf import HKDF

from zkpool.exceptions import DecryptionError, EncryptionError

VERSION = 1
KEY_SIZE = 32
NONCE_SIZE = 12
TAG_SIZE = 16
HEADER_SIZE = 1 + KEY_SIZE
KDF_INFO = b"zkpool/note-encryption/v1"


def _raw_public(key: X25519PublicKey) -> bytes:
    return key.public_bytes(
        encoding=serialization.Encoding.Raw,
        format=serialization.PublicFormat.Raw,
    )


def _derive_key(shared: bytes, ephemeral_public: bytes, recipient_public: bytes) -> bytes:
    return HKDF(
        algorithm=hashes.SHA256(),
        length=KEY_SIZE,
        salt=ephemeral_public + recipient_public,
        info=KDF_INFO,
    ).derive(shared)


class NoteEncryption:
    """
    ECIES-style encryption over X25519 and ChaCha20-Poly1305.

    Encrypting to one's own public key is no different from encrypting to
    anyone else's.
    """

    @staticmethod
    def public_key_for(private_key: bytes) -> bytes:
        """Return the raw X25519 public key for a raw private key."""
        try:
            return _raw_public(X25519PrivateKey.from_private_bytes(private_key).public_key())
        except (TypeError, ValueError) as e:
            raise EncryptionError(f"Invalid encryption private key: {e}")

    @staticmethod
    def encrypt(public_key: bytes, plaintext: bytes) -> bytes:
        """
        Encrypt plaintext for the holder of public_key.

        Args:
            public_key: Recipient's raw X25519 public key (32 bytes)
            plaintext: Payload to protect

        Returns:
            bytes: Self-contained ciphertext

        Raises:
            EncryptionError: If the key or plaintext is unusable
        """
        if not isinstance(plaintext, (bytes, bytearray)):
            raise EncryptionError("Plaintext must be bytes")
        ephemeral = X25519PrivateKey.generate()
        ephemeral_public = _raw_public(ephemeral.public_key())
        try:
            shared = ephemeral.exchange(X25519PublicKey.from_public_bytes(public_key))
        except (TypeError, ValueError) as e:
            raise EncryptionError(f"Invalid recipient public key: {e}")
        key = _derive_key(shared, ephemeral_public, bytes(public_key))

        header = bytes([VERSION]) + ephemeral_public
        nonce = os.urandom(NONCE_SIZE)
        sealed = ChaCha20Poly1305(key).encrypt(nonce, bytes(plaintext), header)
        return header + nonce + sealed

    @staticmethod
    def decrypt(private_key: bytes, ciphertext: bytes) -> bytes:
        """
        Decrypt a ciphertext produced by encrypt().

        Args:
            private_key: Recipient's raw X25519 private key (32 bytes)
            ciphertext: Output of encrypt()

        Returns:
            bytes: Original plaintext

        Raises:
            DecryptionError: If the ciphertext is malformed or the key does not match
        """
        if not isinstance(ciphertext, (bytes, bytearray)):
            raise DecryptionError("Ciphertext must be bytes")
        ciphertext = bytes(ciphertext)
        if len(ciphertext) < HEADER_SIZE + NONCE_SIZE + TAG_SIZE:
            raise DecryptionError("Ciphertext too short")
        if ciphertext[0] != VERSION:
            raise DecryptionError(f"Unsupported ciphertext version: {ciphertext[0]}")

        header = ciphertext[:HEADER_SIZE]
        ephemeral_public = header[1:]
        nonce = ciphertext[HEADER_SIZE:HEADER_SIZE + NONCE_SIZE]
        sealed = ciphertext[HEADER_SIZE + NONCE_SIZE:]

        try:
            secret = X25519PrivateKey.from_private_bytes(private_key)
            shared = secret.exchange(X25519PublicKey.from_public_bytes(ephemeral_public))
            key = _derive_key(shared, ephemeral_public, _raw_public(secret.public_key()))
            return ChaCha20Poly1305(key).decrypt(nonce, sealed, header)
        except InvalidTag:
            raise DecryptionError("Authentication failed: wrong key or tampered ciphertext")
        except (TypeError, ValueError) as e:
            raise DecryptionError(f"Failed to decrypt note: {e}")
