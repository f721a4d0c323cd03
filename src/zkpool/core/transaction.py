"""Shielded transaction types."""

import json
from dataclasses import dataclass, field, replace
from typing import Tuple

from zkpool.constants import FIELD_SIZE
from zkpool.utils.hash import sha256
from zkpool.utils.encoding import bytes_to_hex


def calculate_public_amount(ext_amount: int, fee: int) -> int:
    """Signal seen by the circuit: (ext_amount - fee) mod FIELD_SIZE."""
    return (ext_amount - fee) % FIELD_SIZE


@dataclass(frozen=True)
class ExtData:
    """
    Data the circuit binds to through its hash but never interprets.

    Attributes:
        recipient: Withdrawal recipient (empty for deposits and transfers)
        relayer: Account receiving the fee
        encrypted_outputs: Ciphertexts of the two output notes
        is_l1_withdrawal: Route the withdrawal through the bridge
        l1_fee: Fee paid on the other side of the bridge
    """

    recipient: str = ""
    relayer: str = ""
    encrypted_outputs: Tuple[bytes, ...] = field(default_factory=tuple)
    is_l1_withdrawal: bool = False
    l1_fee: int = 0

    def encode(self, ext_amount: int, fee: int) -> bytes:
        """Canonical JSON encoding, external amount and fee included."""
        return json.dumps(
            {
                "recipient": self.recipient,
                "ext_amount": ext_amount,
                "relayer": self.relayer,
                "fee": fee,
                "encrypted_outputs": [bytes_to_hex(c) for c in self.encrypted_outputs],
                "is_l1_withdrawal": self.is_l1_withdrawal,
                "l1_fee": self.l1_fee,
            },
            sort_keys=True,
            separators=(",", ":"),
        ).encode("utf-8")

    def hash(self, ext_amount: int, fee: int) -> int:
        return hash_ext_data(self, ext_amount, fee)


def hash_ext_data(ext_data: ExtData, ext_amount: int, fee: int) -> int:
    """SHA-256 of the canonical encoding, reduced to a field element."""
    return int.from_bytes(sha256(ext_data.encode(ext_amount, fee)), 'big') % FIELD_SIZE


@dataclass(frozen=True)
class PublicInputs:
    """Public inputs of the transaction circuit, before ext data hashing."""

    root: int
    input_nullifiers: Tuple[int, ...]
    output_commitments: Tuple[int, ...]
    ext_amount: int
    fee: int = 0

    @property
    def public_amount(self) -> int:
        return calculate_public_amount(self.ext_amount, self.fee)


@dataclass(frozen=True)
class Transaction:
    """A proof together with everything needed to check and apply it."""

    proof: bytes
    public_inputs: PublicInputs
    ext_data: ExtData

    @property
    def arity(self) -> int:
        return len(self.public_inputs.input_nullifiers)

    @property
    def ext_data_hash(self) -> int:
        return self.ext_data.hash(self.public_inputs.ext_amount, self.public_inputs.fee)

    def with_ext_amount(self, ext_amount: int) -> "Transaction":
        """Copy of this transaction with the external amount overridden."""
        return replace(self, public_inputs=replace(self.public_inputs, ext_amount=ext_amount))

    def tx_hash(self) -> str:
        digest = sha256(
            self.proof
            + b"".join(n.to_bytes(32, 'big') for n in self.public_inputs.input_nullifiers)
            + b"".join(c.to_bytes(32, 'big') for c in self.public_inputs.output_commitments)
            + self.ext_data_hash.to_bytes(32, 'big')
        )
        return bytes_to_hex(digest)
