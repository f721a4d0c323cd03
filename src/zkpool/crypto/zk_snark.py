"""Transaction circuit backend: verifier variants and a development prover.

The pool treats the zero-knowledge circuit as an opaque capability: a
verifying key per circuit variant and `verify(proof, public_signals)`.
Two variants are deployed, for 2 and 16 inputs, both with 2 outputs.

Public signals, in order:
    1. root             - accumulator root the inputs are proven against
    2. public_amount    - (ext_amount - fee) mod FIELD_SIZE
    3. ext_data_hash    - binds recipient, relayer, fee and ciphertexts
    4. input_nullifiers - one per input
    5. output_commitments - one per output

Example Usage:
    >>> from zkpool.crypto.zk_snark import trusted_setup, Witness
    >>>
    >>> prover, verifiers = trusted_setup()
    >>> proof, signals = prover.prove(witness)
    >>> verifiers.select(len(signals.input_nullifiers)).verify(proof, signals)
    True

Development Backend:
    [!] The prover checks every circuit constraint in the clear, then signs
        the public signals with the variant's proving key (Ed25519).
    [!] It is NOT zero-knowledge and the proving key must stay with the
        party running the prover. It stands in for a Groth16 backend with
        the same interface: a proof is accepted iff an honest witness for
        the exact public signals existed.
"""

import logging
import secrets
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Dict, List, Optional, Sequence, Tuple

from Crypto.PublicKey import ECC
from Crypto.Signature import eddsa

from zkpool.constants import FIELD_SIZE, MAX_EXT_AMOUNT, OUTPUT_COUNT
from zkpool.core.commitment import NoteCommitmentScheme
from zkpool.core.merkle_tree import MerklePath
from zkpool.core.note import Note
from zkpool.utils.hash import sha256
from zkpool.exceptions import CircuitConstraintError, InvalidProofError

logger = logging.getLogger(__name__)

PROOF_DOMAIN = b"zkpool/transaction-proof/v1"


class CircuitVariant(IntEnum):
    """Deployed circuit sizes, by input count."""

    TWO_INPUTS = 2
    SIXTEEN_INPUTS = 16

    @classmethod
    def for_inputs(cls, count: int) -> "CircuitVariant":
        """
        Raises:
            ValueError: If no circuit takes count inputs
        """
        try:
            return cls(count)
        except ValueError:
            raise ValueError(f"No circuit for {count} inputs") from None


@dataclass(frozen=True)
class PublicSignals:
    """Public signals of one proof."""

    root: int
    public_amount: int
    ext_data_hash: int
    input_nullifiers: Tuple[int, ...]
    output_commitments: Tuple[int, ...]

    def encode(self) -> bytes:
        values = [self.root, self.public_amount, self.ext_data_hash]
        values.extend(self.input_nullifiers)
        values.extend(self.output_commitments)
        header = bytes([len(self.input_nullifiers), len(self.output_commitments)])
        return header + b"".join(v.to_bytes(32, 'big') for v in values)

    @classmethod
    def from_transaction(cls, transaction) -> "PublicSignals":
        inputs = transaction.public_inputs
        return cls(
            root=inputs.root,
            public_amount=inputs.public_amount,
            ext_data_hash=transaction.ext_data_hash,
            input_nullifiers=tuple(inputs.input_nullifiers),
            output_commitments=tuple(inputs.output_commitments),
        )


@dataclass(frozen=True)
class VerifyingKey:
    variant: CircuitVariant
    key: bytes  # raw Ed25519 public key


@dataclass(frozen=True)
class ProvingKey:
    variant: CircuitVariant
    seed: bytes = field(repr=False)

    def verifying_key(self) -> VerifyingKey:
        signing_key = ECC.construct(curve="Ed25519", seed=self.seed)
        return VerifyingKey(self.variant, signing_key.public_key().export_key(format="raw"))

    def sign(self, message: bytes) -> bytes:
        signing_key = ECC.construct(curve="Ed25519", seed=self.seed)
        return eddsa.new(signing_key, 'rfc8032').sign(message)


def generate_setup(
    variant: CircuitVariant, seed: Optional[bytes] = None
) -> Tuple[ProvingKey, VerifyingKey]:
    """Generate a key pair for one circuit variant."""
    proving_key = ProvingKey(variant, seed if seed is not None else secrets.token_bytes(32))
    return proving_key, proving_key.verifying_key()


def _message(variant: CircuitVariant, signals: PublicSignals) -> bytes:
    return PROOF_DOMAIN + bytes([int(variant)]) + signals.encode()


class CircuitVerifier:
    """Verifier for a single circuit variant."""

    def __init__(self, verifying_key: VerifyingKey):
        self.verifying_key = verifying_key
        self._public_key = eddsa.import_public_key(verifying_key.key)

    @property
    def variant(self) -> CircuitVariant:
        return self.verifying_key.variant

    def verify(self, proof: bytes, signals: PublicSignals) -> bool:
        """
        Verify a proof against public signals.

        Returns:
            bool: True iff the proof was produced for exactly these signals
        """
        if len(signals.input_nullifiers) != int(self.variant):
            return False
        if len(signals.output_commitments) != OUTPUT_COUNT:
            return False
        try:
            eddsa.new(self._public_key, 'rfc8032').verify(_message(self.variant, signals), proof)
            return True
        except (ValueError, TypeError):
            return False

    def __repr__(self) -> str:
        return f"CircuitVerifier(inputs={int(self.variant)})"


class VerifierSet:
    """The deployed verifiers, selected by input count."""

    def __init__(self, two: CircuitVerifier, sixteen: CircuitVerifier):
        if two.variant != CircuitVariant.TWO_INPUTS:
            raise ValueError("First verifier must be the 2-input circuit")
        if sixteen.variant != CircuitVariant.SIXTEEN_INPUTS:
            raise ValueError("Second verifier must be the 16-input circuit")
        self._verifiers = {two.variant: two, sixteen.variant: sixteen}

    def select(self, arity: int) -> CircuitVerifier:
        """
        Raises:
            InvalidProofError: If no circuit takes arity inputs
        """
        try:
            return self._verifiers[CircuitVariant.for_inputs(arity)]
        except ValueError:
            raise InvalidProofError(f"Unsupported number of inputs: {arity}") from None


@dataclass
class Witness:
    """
    Private and public inputs of one transaction.

    Attributes:
        root: Root the input paths lead to
        public_amount: (ext_amount - fee) mod FIELD_SIZE
        ext_data_hash: Hash of the external data
        inputs: Notes being spent (zero-value dummies pad the list)
        input_paths: Merkle path per input, None for zero-value inputs
        outputs: Notes being created
    """

    root: int
    public_amount: int
    ext_data_hash: int
    inputs: List[Note]
    input_paths: List[Optional[MerklePath]]
    outputs: List[Note]


class CircuitProver:
    """Development prover holding a proving key per circuit variant."""

    def __init__(self, proving_keys: Dict[CircuitVariant, ProvingKey]):
        self.proving_keys = dict(proving_keys)

    def prove(self, witness: Witness) -> Tuple[bytes, PublicSignals]:
        """
        Check the circuit constraints and produce a proof.

        Returns:
            Tuple of (proof, public signals)

        Raises:
            CircuitConstraintError: If the witness does not satisfy the circuit
        """
        try:
            variant = CircuitVariant.for_inputs(len(witness.inputs))
        except ValueError as e:
            raise CircuitConstraintError(str(e)) from None
        if variant not in self.proving_keys:
            raise CircuitConstraintError(f"No proving key for {int(variant)} inputs")
        if len(witness.outputs) != OUTPUT_COUNT:
            raise CircuitConstraintError(f"Circuit takes exactly {OUTPUT_COUNT} outputs")
        if len(witness.input_paths) != len(witness.inputs):
            raise CircuitConstraintError("One Merkle path slot per input is required")

        nullifiers = self._check_inputs(witness.root, witness.inputs, witness.input_paths)
        commitments = self._check_outputs(witness.outputs)

        total_in = sum(note.amount for note in witness.inputs)
        total_out = sum(note.amount for note in witness.outputs)
        if (total_in + witness.public_amount) % FIELD_SIZE != total_out % FIELD_SIZE:
            raise CircuitConstraintError("Inputs plus public amount do not match outputs")

        signals = PublicSignals(
            root=witness.root,
            public_amount=witness.public_amount,
            ext_data_hash=witness.ext_data_hash,
            input_nullifiers=tuple(nullifiers),
            output_commitments=tuple(commitments),
        )
        proof = self.proving_keys[variant].sign(_message(variant, signals))
        logger.debug(f"Generated {int(variant)}-input proof")
        return proof, signals

    @staticmethod
    def _check_inputs(
        root: int, inputs: Sequence[Note], paths: Sequence[Optional[MerklePath]]
    ) -> List[int]:
        nullifiers = []
        for position, (note, path) in enumerate(zip(inputs, paths)):
            commitment = note.commitment()
            leaf_index = note.index or 0
            try:
                nullifier = note.nullifier()
            except ValueError as e:
                raise CircuitConstraintError(f"Input {position}: {e}") from None

            if note.amount > 0:
                if path is None or path.leaf_index != leaf_index:
                    raise CircuitConstraintError(f"Input {position}: missing Merkle path")
                if not path.verify(commitment, root):
                    raise CircuitConstraintError(f"Input {position}: Merkle path does not reach root")
            nullifiers.append(nullifier)

        if len(set(nullifiers)) != len(nullifiers):
            raise CircuitConstraintError("Input nullifiers must be distinct")
        return nullifiers

    @staticmethod
    def _check_outputs(outputs: Sequence[Note]) -> List[int]:
        commitments = []
        for position, note in enumerate(outputs):
            if not 0 <= note.amount < MAX_EXT_AMOUNT:
                raise CircuitConstraintError(f"Output {position}: amount out of range")
            commitments.append(NoteCommitmentScheme.commitment(note))
        return commitments


def trusted_setup(seed: Optional[bytes] = None) -> Tuple[CircuitProver, VerifierSet]:
    """
    Generate keys for both deployed circuits.

    Args:
        seed: Optional 32-byte seed for reproducible keys

    Returns:
        Tuple of (prover, verifiers)
    """
    proving_keys = {}
    verifiers = {}
    for variant in CircuitVariant:
        variant_seed = None
        if seed is not None:
            variant_seed = sha256(seed + bytes([int(variant)]))
        proving_key, verifying_key = generate_setup(variant, variant_seed)
        proving_keys[variant] = proving_key
        verifiers[variant] = CircuitVerifier(verifying_key)

    return (
        CircuitProver(proving_keys),
        VerifierSet(verifiers[CircuitVariant.TWO_INPUTS], verifiers[CircuitVariant.SIXTEEN_INPUTS]),
    )
