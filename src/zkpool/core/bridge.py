"""
Bridged deposits.

A bridged deposit arrives as a one-shot message carrying tokens and a
payload. The message cannot be rejected or retried by its origin, so the
handler never fails once the tokens are in: it either applies the payload
as a transaction or forwards the tokens to the recovery account.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Optional

from pydantic import ValidationError

from zkpool.core.transaction import Transaction
from zkpool.models.schemas import BridgePayload, TransactionModel
from zkpool.exceptions import (
    InvalidBridgePayloadError,
    LimitExceededError,
    TreeFullError,
    UnauthorizedError,
    ZKPoolException,
)

if TYPE_CHECKING:
    from zkpool.core.pool import ShieldedPool
    from zkpool.core.validator import TransactionReceipt

logger = logging.getLogger(__name__)


def encode_bridge_payload(tx: Transaction) -> bytes:
    """Encode a transaction as a bridge message payload."""
    payload = BridgePayload(transaction=TransactionModel.from_domain(tx))
    return payload.model_dump_json().encode("utf-8")


def decode_bridge_payload(data: bytes) -> Transaction:
    """
    Decode a bridge message payload.

    Raises:
        InvalidBridgePayloadError: If data is not a valid payload
    """
    try:
        payload = BridgePayload.model_validate_json(data)
        if payload.version != 1:
            raise InvalidBridgePayloadError(f"Unsupported payload version: {payload.version}")
        return payload.transaction.to_domain()
    except (ValidationError, ValueError) as e:
        raise InvalidBridgePayloadError(f"Malformed bridge payload: {e}") from e


class BridgeStatus(str, Enum):
    DEPOSITED = "deposited"
    RECOVERED = "recovered"


@dataclass
class BridgeOutcome:
    """Resolution of one bridged deposit."""

    status: BridgeStatus
    amount: int
    receipt: Optional["TransactionReceipt"] = None
    error: Optional[str] = None

    @property
    def deposited(self) -> bool:
        return self.status == BridgeStatus.DEPOSITED

    def to_dict(self) -> dict:
        return {
            "status": self.status.value,
            "amount": self.amount,
            "receipt": self.receipt.to_dict() if self.receipt is not None else None,
            "error": self.error,
        }


class BridgeDepositHandler:
    """Turns bridged deposits into pool transactions, with a recovery fallback."""

    def __init__(self, pool: "ShieldedPool"):
        self.pool = pool

    def on_token_bridged(self, token: str, amount: int, data: bytes, sender: str) -> BridgeOutcome:
        """
        Handle a bridged deposit.

        Args:
            token: Token the bridge delivered
            amount: Delivered amount, already credited to the pool
            data: Encoded (proof, ext data) payload
            sender: Caller of the hook

        Returns:
            BridgeOutcome: DEPOSITED, or RECOVERED when the payload could not be applied

        Raises:
            UnauthorizedError: If sender is not the bridge or token is not the pool token
            LimitExceededError: If the pool did not actually receive amount
        """
        pool = self.pool
        if pool.omni_bridge is None or sender != pool.omni_bridge.address:
            raise UnauthorizedError("Only the omni bridge may deliver deposits")
        if token != pool.token.address:
            raise UnauthorizedError(f"Unsupported token: {token}")

        with pool.lock:
            custody = pool.router.custody
            if custody < pool.last_balance + amount:
                raise LimitExceededError(
                    f"Bridge did not send enough tokens: custody {custody}, "
                    f"expected at least {pool.last_balance + amount}"
                )

            try:
                tx = decode_bridge_payload(data).with_ext_amount(amount)
                receipt = pool.on_transact(tx, caller=pool.address)
            except TreeFullError as e:
                logger.error(f"Pool is full, recovering bridged deposit of {amount}: {e}")
                return self._recover(amount, e)
            except ZKPoolException as e:
                logger.warning(f"Bridged deposit of {amount} rejected ({type(e).__name__}), recovering: {e}")
                return self._recover(amount, e)

            return BridgeOutcome(BridgeStatus.DEPOSITED, amount, receipt=receipt)

    def _recover(self, amount: int, error: Exception) -> BridgeOutcome:
        pool = self.pool
        pool.router.refund(pool.multisig, amount)
        pool.last_balance = pool.router.custody
        logger.info(f"Forwarded {amount} to recovery account {pool.multisig}")
        return BridgeOutcome(BridgeStatus.RECOVERED, amount, error=f"{type(error).__name__}: {error}")
