"""Arbitrary message bridge used to reach the pool's governance functions."""

import logging
from typing import Callable, Optional

logger = logging.getLogger(__name__)


class AMBMessenger:
    """
    Relays calls originating on another chain.

    While a relayed call executes, `message_sender` and
    `message_source_chain_id` describe its origin; otherwise both are None.
    """

    def __init__(self, address: str = "amb-messenger", source_chain_id: int = 1):
        self.address = address
        self.source_chain_id = source_chain_id
        self.message_sender: Optional[str] = None
        self.message_source_chain_id: Optional[int] = None

    def execute(self, origin: str, fn: Callable, *args, chain_id: Optional[int] = None):
        """
        Call fn(*args, caller=messenger address) on behalf of origin.

        Args:
            origin: Account that sent the message on the source chain
            fn: Target entry point
            chain_id: Source chain id (defaults to this messenger's)
        """
        self.message_sender = origin
        self.message_source_chain_id = chain_id if chain_id is not None else self.source_chain_id
        logger.debug(f"Relaying {getattr(fn, '__name__', fn)} from {origin}")
        try:
            return fn(*args, caller=self.address)
        finally:
            self.message_sender = None
            self.message_source_chain_id = None
