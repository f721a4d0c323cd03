"""Tests for note encryption."""

import pytest

from zkpool.core.keypair import Keypair
from zkpool.core.note import Note
from zkpool.crypto.note_encryption import NoteEncryption
from zkpool.exceptions import DecryptionError, EncryptionError


@pytest.fixture
def keypair():
    return Keypair()


class TestNoteEncryption:
    """Tests for raw payload encryption."""

    def test_round_trip(self, keypair):
        ciphertext = keypair.encrypt(b"secret payload")
        assert keypair.decrypt(ciphertext) == b"secret payload"

    def test_ciphertexts_are_randomized(self, keypair):
        assert keypair.encrypt(b"same") != keypair.encrypt(b"same")

    def test_wrong_key(self, keypair):
        ciphertext = keypair.encrypt(b"secret payload")
        with pytest.raises(DecryptionError):
            Keypair().decrypt(ciphertext)

    def test_tampered_ciphertext(self, keypair):
        ciphertext = bytearray(keypair.encrypt(b"secret payload"))
        ciphertext[-1] ^= 0x01
        with pytest.raises(DecryptionError):
            keypair.decrypt(bytes(ciphertext))

    def test_tampered_header(self, keypair):
        ciphertext = bytearray(keypair.encrypt(b"secret payload"))
        ciphertext[5] ^= 0x01
        with pytest.raises(DecryptionError):
            keypair.decrypt(bytes(ciphertext))

    def test_truncated_ciphertext(self, keypair):
        with pytest.raises(DecryptionError):
            keypair.decrypt(b"\x01" * 10)

    def test_unknown_version(self, keypair):
        ciphertext = bytearray(keypair.encrypt(b"secret payload"))
        ciphertext[0] = 99
        with pytest.raises(DecryptionError):
            keypair.decrypt(bytes(ciphertext))

    def test_invalid_public_key(self):
        with pytest.raises(EncryptionError):
            NoteEncryption.encrypt(b"\x01" * 5, b"payload")


class TestNotePayload:
    """Tests for encrypted notes."""

    def test_note_round_trip(self, keypair):
        note = Note(amount=12345, keypair=keypair)
        restored = Note.decrypt(keypair, note.encrypt(), 7)
        assert restored.amount == note.amount
        assert restored.blinding == note.blinding
        assert restored.index == 7
        assert restored.commitment() == note.commitment()

    def test_note_sent_to_address(self, keypair):
        receiver = Keypair.from_address(keypair.address())
        note = Note(amount=5, keypair=receiver)
        restored = Note.decrypt(keypair, note.encrypt(), 0)
        assert restored.commitment() == note.commitment()

    def test_note_for_someone_else(self, keypair):
        note = Note(amount=5, keypair=keypair)
        with pytest.raises(DecryptionError):
            Note.decrypt(Keypair(), note.encrypt(), 0)
