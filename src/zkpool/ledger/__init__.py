"""In-process models of the ledger the pool settles against."""

from zkpool.ledger.token import TokenLedger
from zkpool.ledger.bridge import OmniBridge, OutboundTransfer
from zkpool.ledger.messenger import AMBMessenger

__all__ = [
    'TokenLedger',
    'OmniBridge',
    'OutboundTransfer',
    'AMBMessenger',
]
