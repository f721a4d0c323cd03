"""Building shielded transactions from notes."""

import logging
from typing import Iterable, List, Optional, Sequence

from zkpool.constants import OUTPUT_COUNT, SUPPORTED_INPUT_COUNTS
from zkpool.core.events import PoolEvent
from zkpool.core.keypair import Keypair
from zkpool.core.merkle_tree import MerklePath, MerkleTree
from zkpool.core.note import Note
from zkpool.core.transaction import ExtData, PublicInputs, Transaction, calculate_public_amount
from zkpool.crypto.zk_snark import CircuitProver, Witness

logger = logging.getLogger(__name__)

MAX_INPUTS = max(SUPPORTED_INPUT_COUNTS)


def build_merkle_tree(events: Iterable[PoolEvent], tree_height: int) -> MerkleTree:
    """Rebuild the commitment tree from the public log."""
    return MerkleTree.from_events(events, tree_height)


def _pad_inputs(inputs: Sequence[Note]) -> List[Note]:
    padded = list(inputs)
    while len(padded) not in SUPPORTED_INPUT_COUNTS and len(padded) < MAX_INPUTS:
        padded.append(Note())
    return padded


def _input_paths(tree: MerkleTree, inputs: Sequence[Note]) -> List[Optional[MerklePath]]:
    paths = []
    for note in inputs:
        if note.amount == 0:
            paths.append(None)
            continue
        commitment = note.commitment()
        if note.index is None:
            note.index = tree.index_of(commitment)
        if note.index < 0 or note.index >= len(tree) or tree.leaves[note.index] != commitment:
            raise ValueError(f"Input commitment {hex(commitment)} was not found")
        paths.append(tree.get_path(note.index))
    return paths


def prepare_transaction(
    prover: CircuitProver,
    events: Iterable[PoolEvent],
    tree_height: int,
    inputs: Sequence[Note] = (),
    outputs: Sequence[Note] = (),
    fee: int = 0,
    recipient: str = "",
    relayer: str = "",
    is_l1_withdrawal: bool = False,
    l1_fee: int = 0,
) -> Transaction:
    """
    Build and prove a transaction.

    Inputs are padded with zero-value notes up to the next circuit size and
    outputs up to two. The external amount is whatever balances the notes:
    ext_amount = fee + sum(outputs) - sum(inputs).

    Args:
        prover: Circuit prover
        events: Public log used to rebuild the commitment tree
        tree_height: Height of the pool's tree
        inputs: Notes to spend
        outputs: Notes to create
        fee: Relayer fee
        recipient: Withdrawal recipient
        relayer: Fee recipient
        is_l1_withdrawal: Pay the withdrawal through the bridge
        l1_fee: Fee for the L1 side of a bridged withdrawal

    Returns:
        Transaction: Ready to submit

    Raises:
        ValueError: If there are too many notes or an input is not in the tree
        CircuitConstraintError: If the notes do not form a valid transaction
    """
    if len(inputs) > MAX_INPUTS:
        raise ValueError(f"Incorrect inputs number: at most {MAX_INPUTS}")
    if len(outputs) > OUTPUT_COUNT:
        raise ValueError(f"Incorrect outputs number: at most {OUTPUT_COUNT}")

    inputs = _pad_inputs(inputs)
    outputs = list(outputs)
    while len(outputs) < OUTPUT_COUNT:
        outputs.append(Note())

    ext_amount = fee + sum(note.amount for note in outputs) - sum(note.amount for note in inputs)

    tree = build_merkle_tree(events, tree_height)
    paths = _input_paths(tree, inputs)

    ext_data = ExtData(
        recipient=recipient,
        relayer=relayer,
        encrypted_outputs=tuple(note.encrypt() for note in outputs),
        is_l1_withdrawal=is_l1_withdrawal,
        l1_fee=l1_fee,
    )
    witness = Witness(
        root=tree.root,
        public_amount=calculate_public_amount(ext_amount, fee),
        ext_data_hash=ext_data.hash(ext_amount, fee),
        inputs=inputs,
        input_paths=paths,
        outputs=outputs,
    )
    proof, signals = prover.prove(witness)
    logger.debug(f"Prepared {len(inputs)}-input transaction, ext_amount={ext_amount}")

    return Transaction(
        proof=proof,
        public_inputs=PublicInputs(
            root=signals.root,
            input_nullifiers=signals.input_nullifiers,
            output_commitments=signals.output_commitments,
            ext_amount=ext_amount,
            fee=fee,
        ),
        ext_data=ext_data,
    )


def transaction(pool, prover: CircuitProver, sender: str = "", **kwargs):
    """Prepare a transaction against pool's public log and submit it."""
    tx = prepare_transaction(
        prover=prover,
        events=pool.events,
        tree_height=pool.state.accumulator.height,
        **kwargs,
    )
    return pool.transact(tx, sender=sender)


def register_and_transact(pool, prover: CircuitProver, keypair: Keypair, owner: str, **kwargs):
    """Publish keypair's address for owner and submit a transaction in one step."""
    tx = prepare_transaction(
        prover=prover,
        events=pool.events,
        tree_height=pool.state.accumulator.height,
        **kwargs,
    )
    return pool.register_and_transact(owner, keypair.address(), tx, sender=owner)
