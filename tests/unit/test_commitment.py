"""Tests for commitments and nullifiers."""

import pytest

from zkpool.constants import FIELD_SIZE, MAX_EXT_AMOUNT
from zkpool.core.commitment import NoteCommitmentScheme
from zkpool.core.keypair import Keypair
from zkpool.core.note import Note
from zkpool.exceptions import KeyMismatchError


class TestCommitment:
    """Tests for note commitments."""

    def test_commitment_is_field_element(self):
        commitment = Note(amount=10).commitment()
        assert 0 <= commitment < FIELD_SIZE

    def test_commitment_deterministic(self):
        keypair = Keypair()
        note = Note(amount=10, keypair=keypair, blinding=42)
        again = Note(amount=10, keypair=keypair, blinding=42)
        assert note.commitment() == again.commitment()

    def test_commitment_binds_every_field(self):
        keypair = Keypair()
        base = Note(amount=10, keypair=keypair, blinding=42).commitment()
        assert Note(amount=11, keypair=keypair, blinding=42).commitment() != base
        assert Note(amount=10, keypair=keypair, blinding=43).commitment() != base
        assert Note(amount=10, keypair=Keypair(), blinding=42).commitment() != base

    def test_amount_bounds(self):
        with pytest.raises(ValueError):
            Note(amount=-1)
        with pytest.raises(ValueError):
            Note(amount=MAX_EXT_AMOUNT)

    def test_default_note_is_dummy(self):
        note = Note()
        assert note.amount == 0
        assert note.keypair.has_private_key


class TestNullifier:
    """Tests for nullifier derivation."""

    def test_nullifier_requires_index(self):
        with pytest.raises(ValueError):
            Note(amount=10).nullifier()

    def test_zero_note_nullifier_without_index(self):
        note = Note()
        assert note.nullifier() == NoteCommitmentScheme.nullifier(note, 0, note.keypair)

    def test_nullifier_depends_on_index(self):
        keypair = Keypair()
        note = Note(amount=10, keypair=keypair, blinding=42, index=1)
        other = Note(amount=10, keypair=keypair, blinding=42, index=2)
        assert note.nullifier() != other.nullifier()

    def test_wrong_owner(self):
        note = Note(amount=10, index=0)
        with pytest.raises(KeyMismatchError):
            NoteCommitmentScheme.nullifier(note, 0, Keypair())

    def test_public_only_owner(self):
        keypair = Keypair()
        note = Note(amount=10, keypair=Keypair.from_address(keypair.address()), index=0)
        with pytest.raises(KeyMismatchError):
            note.nullifier()

    def test_third_party_recomputation(self):
        keypair = Keypair()
        note = Note(amount=10, keypair=keypair, index=3)
        commitment = note.commitment()
        signature = keypair.sign(commitment, 3)
        assert NoteCommitmentScheme.compute_nullifier(commitment, 3, signature) == note.nullifier()
        assert NoteCommitmentScheme.verify_nullifier(
            commitment, 3, signature, note.nullifier(), public_key=keypair.public_key
        )

    def test_forged_signature_rejected(self):
        keypair = Keypair()
        note = Note(amount=10, keypair=keypair, index=3)
        commitment = note.commitment()
        forged = Keypair().sign(commitment, 3)
        forged_nullifier = NoteCommitmentScheme.compute_nullifier(commitment, 3, forged)
        assert not NoteCommitmentScheme.verify_nullifier(
            commitment, 3, forged, forged_nullifier, public_key=keypair.public_key
        )
