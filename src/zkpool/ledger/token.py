"""Fungible token ledger with balances and allowances."""

import logging
from dataclasses import dataclass
from typing import Dict, Tuple

from zkpool.exceptions import InsufficientAllowanceError, InsufficientBalanceError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TokenSnapshot:
    balances: Tuple[Tuple[str, int], ...]
    allowances: Tuple[Tuple[Tuple[str, str], int], ...]


class TokenLedger:
    """
    ERC20-like token.

    Accounts are plain strings. Amounts are non-negative integers.
    """

    def __init__(self, address: str = "token", symbol: str = "WETH"):
        self.address = address
        self.symbol = symbol
        self.balances: Dict[str, int] = {}
        self.allowances: Dict[Tuple[str, str], int] = {}

    @staticmethod
    def _check_amount(amount: int) -> None:
        if isinstance(amount, bool) or not isinstance(amount, int) or amount < 0:
            raise ValueError(f"Invalid token amount: {amount}")

    def balance_of(self, account: str) -> int:
        return self.balances.get(account, 0)

    @property
    def total_supply(self) -> int:
        return sum(self.balances.values())

    def mint(self, account: str, amount: int) -> None:
        self._check_amount(amount)
        self.balances[account] = self.balance_of(account) + amount

    def approve(self, owner: str, spender: str, amount: int) -> None:
        self._check_amount(amount)
        self.allowances[(owner, spender)] = amount

    def allowance(self, owner: str, spender: str) -> int:
        return self.allowances.get((owner, spender), 0)

    def transfer(self, sender: str, recipient: str, amount: int) -> None:
        """
        Move amount from sender to recipient.

        Raises:
            InsufficientBalanceError: If sender cannot cover amount
        """
        self._check_amount(amount)
        balance = self.balance_of(sender)
        if balance < amount:
            raise InsufficientBalanceError(
                f"{sender} holds {balance} {self.symbol}, needs {amount}"
            )
        self.balances[sender] = balance - amount
        self.balances[recipient] = self.balance_of(recipient) + amount
        logger.debug(f"{self.symbol} transfer {sender} -> {recipient}: {amount}")

    def transfer_from(self, spender: str, owner: str, recipient: str, amount: int) -> None:
        """
        Move amount from owner to recipient using spender's allowance.

        Raises:
            InsufficientAllowanceError: If the allowance is too small
            InsufficientBalanceError: If owner cannot cover amount
        """
        self._check_amount(amount)
        allowed = self.allowance(owner, spender)
        if allowed < amount:
            raise InsufficientAllowanceError(
                f"{spender} may spend {allowed} {self.symbol} of {owner}, needs {amount}"
            )
        self.transfer(owner, recipient, amount)
        self.allowances[(owner, spender)] = allowed - amount

    def snapshot(self) -> TokenSnapshot:
        return TokenSnapshot(
            balances=tuple(self.balances.items()),
            allowances=tuple(self.allowances.items()),
        )

    def restore(self, snapshot: TokenSnapshot) -> None:
        self.balances = dict(snapshot.balances)
        self.allowances = dict(snapshot.allowances)

    def __repr__(self) -> str:
        return f"TokenLedger({self.symbol}, holders={len(self.balances)})"
