"""Bridge egress and inbound delivery."""

import logging
from dataclasses import dataclass
from typing import List, Optional

from zkpool.ledger.token import TokenLedger

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OutboundTransfer:
    """Tokens handed to the bridge for release on the other chain."""

    sender: str
    recipient: str
    amount: int
    unwrapper: str
    l1_fee: int = 0

    def to_dict(self) -> dict:
        return {
            "sender": self.sender,
            "recipient": self.recipient,
            "amount": self.amount,
            "unwrapper": self.unwrapper,
            "l1_fee": self.l1_fee,
        }


class OmniBridge:
    """
    Token bridge between the pool's chain and L1.

    Outbound: tokens transferred to the bridge are queued in `outbox`.
    Inbound: `deliver` credits the pool and calls its bridged-deposit hook
    exactly once; the call cannot be retried or reverted from this side.
    """

    def __init__(self, token: TokenLedger, address: str = "omni-bridge"):
        self.token = token
        self.address = address
        self.outbox: List[OutboundTransfer] = []

    def relay(
        self,
        sender: str,
        amount: int,
        recipient: str,
        unwrapper: str,
        l1_fee: int = 0,
    ) -> OutboundTransfer:
        """Take amount from sender and queue it for release to recipient."""
        self.token.transfer(sender, self.address, amount)
        transfer = OutboundTransfer(
            sender=sender,
            recipient=recipient,
            amount=amount,
            unwrapper=unwrapper,
            l1_fee=l1_fee,
        )
        self.outbox.append(transfer)
        logger.info(f"Queued {amount} for {recipient} via {unwrapper}")
        return transfer

    def deliver(self, pool, amount: int, payload: bytes, token: Optional[str] = None, fund: bool = True):
        """
        Deliver an inbound message to the pool.

        Args:
            pool: Receiving ShieldedPool
            amount: Bridged token amount
            payload: Encoded (proof, ext data)
            token: Token address reported to the pool (defaults to ours)
            fund: Credit the pool before calling it

        Returns:
            BridgeOutcome of the pool's handler
        """
        if fund:
            self.token.mint(pool.address, amount)
        return pool.on_token_bridged(
            token if token is not None else self.token.address,
            amount,
            payload,
            sender=self.address,
        )

    def snapshot(self) -> int:
        return len(self.outbox)

    def restore(self, snapshot: int) -> None:
        del self.outbox[snapshot:]
