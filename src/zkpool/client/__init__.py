"""Client-side helpers: building transactions and finding one's notes."""

from zkpool.client.transaction import (
    build_merkle_tree,
    prepare_transaction,
    register_and_transact,
    transaction,
)
from zkpool.client.scanner import scan_notes, unspent_notes

__all__ = [
    'build_merkle_tree',
    'prepare_transaction',
    'register_and_transact',
    'transaction',
    'scan_notes',
    'unspent_notes',
]
