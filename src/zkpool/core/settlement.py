"""Token movements caused by shielded transactions."""

import logging
from dataclasses import dataclass
from typing import Optional

from zkpool.config import WithdrawalRouting
from zkpool.ledger.bridge import OmniBridge
from zkpool.ledger.token import TokenLedger, TokenSnapshot

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SettlementSnapshot:
    token: TokenSnapshot
    outbox_length: int


class FundRouter:
    """
    Moves tokens in and out of the pool's custody.

    Withdrawals go either straight to the recipient or through bridge egress,
    as decided by the routing policy.
    """

    def __init__(
        self,
        token: TokenLedger,
        pool_address: str,
        omni_bridge: Optional[OmniBridge] = None,
        l1_unwrapper: str = "l1-unwrapper",
        routing: WithdrawalRouting = WithdrawalRouting.FLAG,
    ):
        self.token = token
        self.pool_address = pool_address
        self.omni_bridge = omni_bridge
        self.l1_unwrapper = l1_unwrapper
        self.routing = routing

    @property
    def custody(self) -> int:
        """Tokens currently held by the pool."""
        return self.token.balance_of(self.pool_address)

    def uses_bridge(self, is_l1_withdrawal: bool) -> bool:
        if self.routing == WithdrawalRouting.BRIDGE:
            return True
        if self.routing == WithdrawalRouting.DIRECT:
            return False
        return is_l1_withdrawal

    def pull_deposit(self, sender: str, amount: int) -> None:
        """Take a deposit from sender using the allowance granted to the pool."""
        self.token.transfer_from(self.pool_address, sender, self.pool_address, amount)

    def pay_withdrawal(self, recipient: str, amount: int, is_l1_withdrawal: bool = False, l1_fee: int = 0) -> None:
        if self.uses_bridge(is_l1_withdrawal):
            if self.omni_bridge is None:
                raise ValueError("Bridge egress requested but no bridge is configured")
            self.omni_bridge.relay(self.pool_address, amount, recipient, self.l1_unwrapper, l1_fee)
        else:
            self.token.transfer(self.pool_address, recipient, amount)
        logger.debug(f"Paid withdrawal of {amount} to {recipient}")

    def pay_fee(self, relayer: str, fee: int) -> None:
        if fee > 0:
            self.token.transfer(self.pool_address, relayer, fee)

    def refund(self, recipient: str, amount: int) -> None:
        """Forward custody to a recovery account."""
        self.token.transfer(self.pool_address, recipient, amount)

    def snapshot(self) -> SettlementSnapshot:
        return SettlementSnapshot(
            token=self.token.snapshot(),
            outbox_length=self.omni_bridge.snapshot() if self.omni_bridge is not None else 0,
        )

    def restore(self, snapshot: SettlementSnapshot) -> None:
        self.token.restore(snapshot.token)
        if self.omni_bridge is not None:
            self.omni_bridge.restore(snapshot.outbox_length)
