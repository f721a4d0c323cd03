"""Cryptographic primitives module"""

from zkpool.crypto.note_encryption import NoteEncryption
from zkpool.crypto.nullifier import NullifierSet, NullifierRecord

__all__ = [
    'NoteEncryption',
    'NullifierSet',
    'NullifierRecord',
]
