"""Finding notes addressed to a keypair in the public log."""

import logging
from typing import Iterable, List

from zkpool.core.events import NewCommitment, NewNullifier, PoolEvent
from zkpool.core.keypair import Keypair
from zkpool.core.note import Note
from zkpool.exceptions import DecryptionError

logger = logging.getLogger(__name__)


def scan_notes(keypair: Keypair, events: Iterable[PoolEvent], include_zero: bool = False) -> List[Note]:
    """
    Decrypt every output addressed to keypair.

    Outputs that do not decrypt belong to someone else and are skipped, as
    are decryptions whose commitment does not match the logged one.
    """
    notes = []
    for event in events:
        if not isinstance(event, NewCommitment):
            continue
        try:
            note = Note.decrypt(keypair, event.encrypted_output, event.index)
        except DecryptionError:
            continue
        if note.commitment() != event.commitment:
            logger.debug(f"Output {event.index} decrypts but does not match its commitment")
            continue
        if note.amount > 0 or include_zero:
            notes.append(note)
    return notes


def unspent_notes(keypair: Keypair, events: Iterable[PoolEvent]) -> List[Note]:
    """Notes of keypair whose nullifier is not in the log yet."""
    events = list(events)
    spent = {event.nullifier for event in events if isinstance(event, NewNullifier)}
    return [note for note in scan_notes(keypair, events) if note.nullifier() not in spent]
