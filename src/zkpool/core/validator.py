"""
Transaction validation and application.

A transaction walks through

    RECEIVED -> PROOF_VERIFIED -> ROOT_FRESH -> BALANCE_OK
             -> NULLIFIERS_CONSUMED -> COMMITMENTS_INSERTED
             -> FUNDS_SETTLED -> COMPLETE

or stops at the first failed check with no observable effect.
"""

import logging
import secrets
import threading
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, List, Optional, Sequence, Tuple

from zkpool.config import OutputOrdering, WithdrawalRouting
from zkpool.constants import FIELD_SIZE, MAX_EXT_AMOUNT, MAX_FEE, OUTPUT_COUNT
from zkpool.core.events import NewCommitment, NewNullifier, PoolEvent
from zkpool.core.settlement import FundRouter
from zkpool.core.state import PoolState
from zkpool.core.transaction import Transaction
from zkpool.crypto.zk_snark import PublicSignals, VerifierSet
from zkpool.exceptions import (
    DoubleSpendError,
    InvalidExtDataError,
    InvalidProofError,
    LimitExceededError,
    StaleRootError,
    TreeFullError,
    UnauthorizedError,
)

logger = logging.getLogger(__name__)


class TxState(str, Enum):
    RECEIVED = "received"
    PROOF_VERIFIED = "proof_verified"
    ROOT_FRESH = "root_fresh"
    BALANCE_OK = "balance_ok"
    NULLIFIERS_CONSUMED = "nullifiers_consumed"
    COMMITMENTS_INSERTED = "commitments_inserted"
    FUNDS_SETTLED = "funds_settled"
    COMPLETE = "complete"


class Funding(Enum):
    """Where a deposit's tokens come from."""

    PULL_FROM_SENDER = "pull_from_sender"
    PREFUNDED = "prefunded"  # already in custody (bridged deposits)


@dataclass
class TransactionReceipt:
    """Outcome of an applied transaction."""

    tx_hash: str
    states: List[TxState]
    commitment_indices: Tuple[int, int]
    root: int
    ext_amount: int
    fee: int
    events: List[PoolEvent] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "tx_hash": self.tx_hash,
            "states": [state.value for state in self.states],
            "commitment_indices": list(self.commitment_indices),
            "root": hex(self.root),
            "ext_amount": self.ext_amount,
            "fee": self.fee,
            "events": [event.to_dict() for event in self.events],
        }


@dataclass
class ValidatorPolicy:
    """Public, policy-level bounds and ordering choices."""

    minimal_withdrawal_amount: int
    maximum_deposit_amount: int
    output_ordering: OutputOrdering = OutputOrdering.SORTED
    withdrawal_routing: WithdrawalRouting = WithdrawalRouting.FLAG


def order_outputs(
    commitments: Sequence[int], ciphertexts: Sequence[bytes], ordering: OutputOrdering
) -> List[Tuple[int, bytes]]:
    """Permute (commitment, ciphertext) pairs so log order does not follow input order."""
    pairs = list(zip(commitments, ciphertexts))
    if ordering == OutputOrdering.RANDOM:
        secrets.SystemRandom().shuffle(pairs)
    else:
        pairs.sort(key=lambda pair: pair[0])
    return pairs


class TransactionValidator:
    """
    Checks a transaction and applies it to the pool state.

    Every call runs under the pool lock inside a snapshot of the state, the
    token ledger and the bridge outbox; any exception restores all of them
    before propagating.
    """

    def __init__(
        self,
        state: PoolState,
        verifiers: VerifierSet,
        router: FundRouter,
        policy: ValidatorPolicy,
        entry_point: str,
        lock: Optional[threading.RLock] = None,
        event_sink: Optional[Callable[[List[PoolEvent]], None]] = None,
    ):
        """
        Args:
            state: Pool state to mutate
            verifiers: Deployed circuit verifiers
            router: Token movements
            policy: Amount bounds and ordering policy
            entry_point: The only caller allowed to submit transactions
            lock: Lock serialising transitions
            event_sink: Called with the new events of each applied transaction
        """
        self.state = state
        self.verifiers = verifiers
        self.router = router
        self.policy = policy
        self.entry_point = entry_point
        self.lock = lock or threading.RLock()
        self.event_sink = event_sink

    def process(
        self,
        tx: Transaction,
        *,
        caller: str,
        sender: str = "",
        funding: Funding = Funding.PULL_FROM_SENDER,
        prelude: Sequence[PoolEvent] = (),
    ) -> TransactionReceipt:
        """
        Validate and apply a transaction.

        Args:
            tx: The transaction
            caller: Entry point submitting it
            sender: Account deposits are pulled from
            funding: Origin of deposited tokens
            prelude: Events logged ahead of the transaction's own (registrations)

        Returns:
            TransactionReceipt: Trace, new leaf indices and emitted events

        Raises:
            UnauthorizedError: If caller is not the entry point
            InvalidProofError: If the proof does not verify
            StaleRootError: If the root left the history window
            DoubleSpendError: If an input nullifier is already spent
            LimitExceededError: If an amount breaks a public bound
            InvalidExtDataError: If a withdrawal has no recipient
            TreeFullError: If the accumulator cannot take two more leaves
            LedgerError: If token movements fail
        """
        if caller != self.entry_point:
            raise UnauthorizedError(f"{caller} may not submit transactions")

        tx_hash = ""
        with self.lock:
            snapshot = self.state.snapshot()
            funds_snapshot = self.router.snapshot()
            states = [TxState.RECEIVED]
            log_start = len(self.state.events)
            try:
                self.state.events.append_all(prelude)
                self._verify_proof(tx)
                tx_hash = tx.tx_hash()
                states.append(TxState.PROOF_VERIFIED)

                self._check_root(tx)
                states.append(TxState.ROOT_FRESH)

                self._check_nullifiers(tx)
                self._check_limits(tx)
                states.append(TxState.BALANCE_OK)

                for nullifier in tx.public_inputs.input_nullifiers:
                    self.state.nullifiers.insert(nullifier, tx_hash, tx.public_inputs.root)
                states.append(TxState.NULLIFIERS_CONSUMED)

                indices = self._insert_outputs(tx)
                states.append(TxState.COMMITMENTS_INSERTED)

                self._settle(tx, sender, funding)
                states.append(TxState.FUNDS_SETTLED)

                new_events = self.state.events.since(log_start)
                if self.event_sink is not None:
                    self.event_sink(new_events)
                states.append(TxState.COMPLETE)
            except Exception as e:
                self.state.restore(snapshot)
                self.router.restore(funds_snapshot)
                logger.warning(
                    f"Transaction {tx_hash[:18] or '(unhashed)'} rejected after {states[-1].value}: "
                    f"{type(e).__name__}: {e}"
                )
                raise

        logger.info(
            f"Transaction {tx_hash[:18]} complete: ext={tx.public_inputs.ext_amount} "
            f"fee={tx.public_inputs.fee} leaves={indices}"
        )
        return TransactionReceipt(
            tx_hash=tx_hash,
            states=states,
            commitment_indices=indices,
            root=self.state.accumulator.current_root,
            ext_amount=tx.public_inputs.ext_amount,
            fee=tx.public_inputs.fee,
            events=new_events,
        )

    def _verify_proof(self, tx: Transaction) -> None:
        inputs = tx.public_inputs
        if len(inputs.output_commitments) != OUTPUT_COUNT:
            raise InvalidProofError(f"Expected {OUTPUT_COUNT} output commitments")
        if len(tx.ext_data.encrypted_outputs) != OUTPUT_COUNT:
            raise InvalidProofError(f"Expected {OUTPUT_COUNT} encrypted outputs")
        if not isinstance(inputs.ext_amount, int) or not isinstance(inputs.fee, int):
            raise InvalidProofError("External amount and fee must be integers")
        for value in (inputs.root, *inputs.input_nullifiers, *inputs.output_commitments):
            if isinstance(value, bool) or not isinstance(value, int) or not 0 <= value < FIELD_SIZE:
                raise InvalidProofError("Public inputs must be field elements")

        verifier = self.verifiers.select(tx.arity)
        if not verifier.verify(tx.proof, PublicSignals.from_transaction(tx)):
            raise InvalidProofError("Invalid transaction proof")

    def _check_root(self, tx: Transaction) -> None:
        if not self.state.accumulator.is_known_root(tx.public_inputs.root):
            raise StaleRootError(f"Unknown or expired root: {hex(tx.public_inputs.root)}")

    def _check_nullifiers(self, tx: Transaction) -> None:
        nullifiers = tx.public_inputs.input_nullifiers
        if len(set(nullifiers)) != len(nullifiers):
            raise DoubleSpendError("Input nullifiers repeat within the transaction")
        for nullifier in nullifiers:
            if self.state.nullifiers.is_spent(nullifier):
                raise DoubleSpendError(f"Input is already spent: {hex(nullifier)}")

    def _check_limits(self, tx: Transaction) -> None:
        ext_amount = tx.public_inputs.ext_amount
        fee = tx.public_inputs.fee

        if not 0 <= fee < MAX_FEE:
            raise LimitExceededError(f"Invalid fee: {fee}")
        if abs(ext_amount) > MAX_EXT_AMOUNT:
            raise LimitExceededError(f"Invalid external amount: {ext_amount}")
        if ext_amount + fee >= FIELD_SIZE:
            raise LimitExceededError("External amount and fee wrap around the field")
        if ext_amount > 0 and ext_amount > self.policy.maximum_deposit_amount:
            raise LimitExceededError(
                f"Deposit {ext_amount} exceeds maximum {self.policy.maximum_deposit_amount}"
            )
        if ext_amount < 0:
            if -ext_amount < self.policy.minimal_withdrawal_amount:
                raise LimitExceededError(
                    f"Withdrawal {-ext_amount} below minimum {self.policy.minimal_withdrawal_amount}"
                )
            if not tx.ext_data.recipient:
                raise InvalidExtDataError("Withdrawal requires a recipient")
        if fee > 0 and not tx.ext_data.relayer:
            raise InvalidExtDataError("A fee requires a relayer")

        if not self.state.accumulator.has_capacity(OUTPUT_COUNT):
            raise TreeFullError("Merkle tree is full. No more commitments can be added")

    def _insert_outputs(self, tx: Transaction) -> Tuple[int, int]:
        pairs = order_outputs(
            tx.public_inputs.output_commitments,
            tx.ext_data.encrypted_outputs,
            self.policy.output_ordering,
        )
        (first, first_ciphertext), (second, second_ciphertext) = pairs
        left, right = self.state.accumulator.insert_pair(first, second)
        self.state.events.append_all(
            [NewCommitment(first, left, first_ciphertext), NewCommitment(second, right, second_ciphertext)]
        )
        self.state.events.append_all(
            NewNullifier(nullifier) for nullifier in tx.public_inputs.input_nullifiers
        )
        return left, right

    def _settle(self, tx: Transaction, sender: str, funding: Funding) -> None:
        ext_amount = tx.public_inputs.ext_amount
        if ext_amount > 0 and funding == Funding.PULL_FROM_SENDER:
            self.router.pull_deposit(sender, ext_amount)
        elif ext_amount < 0:
            self.router.pay_withdrawal(
                tx.ext_data.recipient,
                -ext_amount,
                tx.ext_data.is_l1_withdrawal,
                tx.ext_data.l1_fee,
            )
        self.router.pay_fee(tx.ext_data.relayer, tx.public_inputs.fee)
