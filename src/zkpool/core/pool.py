"""Shielded pool: entry points, governance and queries.

The pool ties the ledger-side components together:

    transact            - direct deposits, transfers and withdrawals
    register            - publish a shielded address for an account
    on_token_bridged    - deposits arriving through the omni bridge
    configure_limits    - governance, reached through the AMB messenger

State Flow:
    1. Client builds a transaction against a recent root
    2. TransactionValidator checks proof, root, nullifiers and bounds
    3. Nullifiers recorded, both output commitments appended as a pair
    4. Tokens moved: deposit pulled, withdrawal paid, fee to relayer
    5. NewCommitment x2 and NewNullifier xk appended to the public log

Key Invariants:
    - Value Conservation: custody changes by exactly ext_amount
    - Nullifier Uniqueness: no nullifier is recorded twice
    - Root Validity: proofs must use a root inside the history window
    - Atomicity: a failed transaction leaves no trace
"""

import logging
import threading
from datetime import datetime
from typing import Iterable, List, Optional

from zkpool.config import PoolSettings, get_settings
from zkpool.constants import FIELD_SIZE, MAX_EXT_AMOUNT, MAX_FEE
from zkpool.core.bridge import BridgeDepositHandler, BridgeOutcome
from zkpool.core.events import PoolEvent, PublicKey
from zkpool.core.keypair import Keypair
from zkpool.core.settlement import FundRouter
from zkpool.core.state import PoolState
from zkpool.core.transaction import Transaction
from zkpool.core.validator import (
    Funding,
    TransactionReceipt,
    TransactionValidator,
    ValidatorPolicy,
)
from zkpool.crypto.zk_snark import VerifierSet
from zkpool.ledger.bridge import OmniBridge
from zkpool.ledger.messenger import AMBMessenger
from zkpool.ledger.token import TokenLedger
from zkpool.exceptions import LimitExceededError, UnauthorizedError

logger = logging.getLogger(__name__)


class PoolStatus:
    """State of the pool."""

    def __init__(
        self,
        current_root: int,
        tree_height: int,
        num_commitments: int,
        num_nullifiers: int,
        root_history_size: int,
        custody: int,
        minimal_withdrawal_amount: int,
        maximum_deposit_amount: int,
    ):
        self.current_root = current_root
        self.tree_height = tree_height
        self.num_commitments = num_commitments
        self.num_nullifiers = num_nullifiers
        self.root_history_size = root_history_size
        self.custody = custody
        self.minimal_withdrawal_amount = minimal_withdrawal_amount
        self.maximum_deposit_amount = maximum_deposit_amount

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "current_root": hex(self.current_root),
            "tree_height": self.tree_height,
            "num_commitments": self.num_commitments,
            "num_nullifiers": self.num_nullifiers,
            "root_history_size": self.root_history_size,
            "custody": self.custody,
            "minimal_withdrawal_amount": self.minimal_withdrawal_amount,
            "maximum_deposit_amount": self.maximum_deposit_amount,
        }


class ShieldedPool:
    """
    Main shielded pool.

    One RLock serialises every state transition; reads that only need a
    consistent root (proof preparation) go through the public log.
    """

    MAX_EXT_AMOUNT = MAX_EXT_AMOUNT
    MAX_FEE = MAX_FEE
    FIELD_SIZE = FIELD_SIZE

    def __init__(
        self,
        verifiers: VerifierSet,
        token: TokenLedger,
        omni_bridge: Optional[OmniBridge] = None,
        l1_unwrapper: str = "l1-unwrapper",
        governance: str = "governance",
        messenger: Optional[AMBMessenger] = None,
        multisig: str = "multisig",
        settings: Optional[PoolSettings] = None,
        address: str = "shielded-pool",
        event_store=None,
        state: Optional[PoolState] = None,
    ):
        """
        Initialize a pool.

        Args:
            verifiers: Deployed circuit verifiers
            token: Token held in custody
            omni_bridge: Bridge for inbound deposits and L1 withdrawals
            l1_unwrapper: L1 contract unwrapping bridged withdrawals
            governance: L1 account allowed to change limits
            messenger: Messenger relaying governance calls
            multisig: Recovery account for undeliverable bridged deposits
            settings: Pool settings (defaults from environment)
            address: Account of the pool on the token ledger
            event_store: Optional store receiving every new public log entry
            state: Existing state to resume from (see `replay`)
        """
        self.settings = settings or get_settings()
        self.address = address
        self.token = token
        self.omni_bridge = omni_bridge
        self.governance = governance
        self.messenger = messenger
        self.multisig = multisig
        self.event_store = event_store
        self.lock = threading.RLock()

        self.state = state or PoolState.empty(
            self.settings.tree_height, self.settings.root_history_size
        )
        self.router = FundRouter(
            token=token,
            pool_address=address,
            omni_bridge=omni_bridge,
            l1_unwrapper=l1_unwrapper,
            routing=self.settings.withdrawal_routing,
        )
        self.policy = ValidatorPolicy(
            minimal_withdrawal_amount=self.settings.minimal_withdrawal_amount,
            maximum_deposit_amount=self.settings.maximum_deposit_amount,
            output_ordering=self.settings.output_ordering,
            withdrawal_routing=self.settings.withdrawal_routing,
        )
        self.validator = TransactionValidator(
            state=self.state,
            verifiers=verifiers,
            router=self.router,
            policy=self.policy,
            entry_point=address,
            lock=self.lock,
            event_sink=self._record_events,
        )
        self.bridge_handler = BridgeDepositHandler(self)

        # Custody after the last settled transaction
        self.last_balance = self.router.custody

        # Statistics
        self.total_transactions = 0
        self.total_deposited = 0
        self.total_withdrawn = 0
        self.total_recovered = 0
        self.start_time = datetime.now()

    @classmethod
    def replay(cls, events: Iterable[PoolEvent], verifiers: VerifierSet, token: TokenLedger, **kwargs) -> "ShieldedPool":
        """
        Rebuild a pool from its public log.

        Raises:
            ReplayError: If the log does not replay
        """
        settings = kwargs.get("settings") or get_settings()
        state = PoolState.replay(events, settings.tree_height, settings.root_history_size)
        kwargs["settings"] = settings
        return cls(verifiers, token, state=state, **kwargs)

    def _record_events(self, events: List[PoolEvent]) -> None:
        if self.event_store is not None and events:
            self.event_store.append_events(events)

    def _settled(self, receipt: TransactionReceipt) -> TransactionReceipt:
        self.last_balance = self.router.custody
        self.total_transactions += 1
        if receipt.ext_amount > 0:
            self.total_deposited += receipt.ext_amount
        elif receipt.ext_amount < 0:
            self.total_withdrawn += -receipt.ext_amount
        return receipt

    def transact(self, tx: Transaction, sender: str = "") -> TransactionReceipt:
        """
        Submit a transaction.

        Args:
            tx: The transaction
            sender: Account a deposit is pulled from (needs an allowance for the pool)

        Returns:
            TransactionReceipt: Trace, leaf indices and events

        Raises:
            TransactionError: If the transaction is rejected
            TreeFullError: If the pool cannot take more commitments
        """
        with self.lock:
            receipt = self.validator.process(tx, caller=self.address, sender=sender)
            return self._settled(receipt)

    def _registration(self, owner: str, public_key: str, sender: str) -> PublicKey:
        if sender != owner:
            raise UnauthorizedError("Only the owner can register its key")
        Keypair.from_address(public_key)
        return PublicKey(owner=owner, key=public_key)

    def register(self, owner: str, public_key: str, sender: str) -> PublicKey:
        """
        Publish a shielded address for owner.

        Raises:
            UnauthorizedError: If sender is not owner
            ValueError: If public_key is not a shielded address
        """
        event = self._registration(owner, public_key, sender)
        with self.lock:
            self.state.events.append(event)
            self._record_events([event])
        logger.info(f"Registered shielded address for {owner}")
        return event

    def register_and_transact(
        self, owner: str, public_key: str, tx: Transaction, sender: str
    ) -> TransactionReceipt:
        """Register and transact atomically."""
        event = self._registration(owner, public_key, sender)
        with self.lock:
            receipt = self.validator.process(
                tx, caller=self.address, sender=sender, prelude=[event]
            )
            return self._settled(receipt)

    def on_token_bridged(self, token: str, amount: int, data: bytes, sender: str) -> BridgeOutcome:
        """Hook called by the omni bridge after crediting the pool."""
        outcome = self.bridge_handler.on_token_bridged(token, amount, data, sender)
        if not outcome.deposited:
            self.total_recovered += amount
        return outcome

    def on_transact(self, tx: Transaction, caller: str) -> TransactionReceipt:
        """
        Apply a bridged transaction whose tokens are already in custody.

        Raises:
            UnauthorizedError: Unless called by the pool's own bridge handler
        """
        if caller != self.address:
            raise UnauthorizedError("can be called only from on_token_bridged")
        with self.lock:
            receipt = self.validator.process(tx, caller=self.address, funding=Funding.PREFUNDED)
            return self._settled(receipt)

    # Governance

    def _check_governance(self, caller: str) -> None:
        messenger = self.messenger
        if (
            messenger is None
            or caller != messenger.address
            or messenger.message_sender != self.governance
            or messenger.message_source_chain_id != self.settings.l1_chain_id
        ):
            raise UnauthorizedError("only governance")

    @staticmethod
    def _check_limit(name: str, value: int) -> None:
        if isinstance(value, bool) or not isinstance(value, int) or not 0 <= value < MAX_EXT_AMOUNT:
            raise LimitExceededError(f"Invalid {name}: {value}")

    def configure_limits(self, minimal_withdrawal_amount: int, maximum_deposit_amount: int, *, caller: str) -> None:
        """Set both amount bounds. Governance only."""
        self._check_governance(caller)
        self._check_limit("minimal withdrawal amount", minimal_withdrawal_amount)
        self._check_limit("maximum deposit amount", maximum_deposit_amount)
        with self.lock:
            self.policy.minimal_withdrawal_amount = minimal_withdrawal_amount
            self.policy.maximum_deposit_amount = maximum_deposit_amount
        logger.info(
            f"Limits configured: min withdrawal {minimal_withdrawal_amount}, "
            f"max deposit {maximum_deposit_amount}"
        )

    def set_minimum_withdrawal_amount(self, amount: int, *, caller: str) -> None:
        self._check_governance(caller)
        self._check_limit("minimal withdrawal amount", amount)
        with self.lock:
            self.policy.minimal_withdrawal_amount = amount
        logger.info(f"Minimal withdrawal amount set to {amount}")

    def set_maximum_deposit_amount(self, amount: int, *, caller: str) -> None:
        self._check_governance(caller)
        self._check_limit("maximum deposit amount", amount)
        with self.lock:
            self.policy.maximum_deposit_amount = amount
        logger.info(f"Maximum deposit amount set to {amount}")

    # Queries

    @property
    def minimal_withdrawal_amount(self) -> int:
        return self.policy.minimal_withdrawal_amount

    @property
    def maximum_deposit_amount(self) -> int:
        return self.policy.maximum_deposit_amount

    @property
    def events(self) -> List[PoolEvent]:
        """Public log, oldest first."""
        with self.lock:
            return list(self.state.events)

    def current_root(self) -> int:
        return self.state.accumulator.current_root

    def is_known_root(self, root: int) -> bool:
        return self.state.accumulator.is_known_root(root)

    def is_spent(self, nullifier: int) -> bool:
        return self.state.nullifiers.is_spent(nullifier)

    def get_state(self) -> PoolStatus:
        """
        Return current pool state.

        Returns:
            PoolStatus: Root, tree height, counts, custody and limits
        """
        with self.lock:
            return PoolStatus(
                current_root=self.current_root(),
                tree_height=self.state.accumulator.height,
                num_commitments=len(self.state.accumulator),
                num_nullifiers=len(self.state.nullifiers),
                root_history_size=self.state.accumulator.root_history_size,
                custody=self.router.custody,
                minimal_withdrawal_amount=self.policy.minimal_withdrawal_amount,
                maximum_deposit_amount=self.policy.maximum_deposit_amount,
            )

    def get_statistics(self) -> dict:
        """Get pool statistics."""
        uptime = (datetime.now() - self.start_time).total_seconds() / 3600

        return {
            "total_transactions": self.total_transactions,
            "total_deposited": self.total_deposited,
            "total_withdrawn": self.total_withdrawn,
            "total_recovered": self.total_recovered,
            "num_commitments": len(self.state.accumulator),
            "num_nullifiers": len(self.state.nullifiers),
            "custody": self.router.custody,
            "uptime_hours": uptime,
            "current_root": hex(self.current_root()),
        }

    def __repr__(self) -> str:
        return f"ShieldedPool(address={self.address}, {self.state.accumulator!r})"
