"""Pydantic data models for the shielded pool."""

import re
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

from zkpool.constants import FIELD_SIZE
from zkpool.core.transaction import ExtData, PublicInputs, Transaction
from zkpool.utils.encoding import bytes_to_hex, hex_to_bytes, hex_to_int, to_fixed_hex

HEX_PATTERN = re.compile(r"^(0x)?[0-9a-fA-F]+$")


def _check_hex(value: str) -> str:
    if not HEX_PATTERN.match(value):
        raise ValueError(f"Not a hex string: {value!r}")
    return value


def _check_field_element(value: str) -> str:
    if hex_to_int(_check_hex(value)) >= FIELD_SIZE:
        raise ValueError(f"Not a field element: {value[:18]}...")
    return value


class ExtDataModel(BaseModel):
    """External data of a transaction."""
    recipient: str = Field("", description="Withdrawal recipient")
    relayer: str = Field("", description="Fee recipient")
    encrypted_outputs: List[str] = Field(..., min_length=2, max_length=2, description="Encrypted notes (hex)")
    is_l1_withdrawal: bool = False
    l1_fee: int = Field(0, ge=0)

    @field_validator("encrypted_outputs")
    @classmethod
    def _hex_list(cls, v: List[str]) -> List[str]:
        return [_check_hex(item) for item in v]

    def to_domain(self) -> ExtData:
        return ExtData(
            recipient=self.recipient,
            relayer=self.relayer,
            encrypted_outputs=tuple(hex_to_bytes(c) for c in self.encrypted_outputs),
            is_l1_withdrawal=self.is_l1_withdrawal,
            l1_fee=self.l1_fee,
        )

    @classmethod
    def from_domain(cls, ext_data: ExtData) -> "ExtDataModel":
        return cls(
            recipient=ext_data.recipient,
            relayer=ext_data.relayer,
            encrypted_outputs=[bytes_to_hex(c) for c in ext_data.encrypted_outputs],
            is_l1_withdrawal=ext_data.is_l1_withdrawal,
            l1_fee=ext_data.l1_fee,
        )


class TransactionModel(BaseModel):
    """A shielded transaction: proof, public inputs and external data."""
    proof: str = Field(..., description="Proof (hex)")
    root: str = Field(..., description="Merkle root the proof is anchored to (hex)")
    input_nullifiers: List[str] = Field(..., min_length=1, description="Nullifiers (hex)")
    output_commitments: List[str] = Field(..., description="Output commitments (hex)")
    ext_amount: int = Field(..., description="Signed external amount")
    fee: int = Field(0, description="Relayer fee")
    ext_data: ExtDataModel

    @field_validator("proof")
    @classmethod
    def _hex(cls, v: str) -> str:
        return _check_hex(v)

    @field_validator("root")
    @classmethod
    def _field_element(cls, v: str) -> str:
        return _check_field_element(v)

    @field_validator("input_nullifiers", "output_commitments")
    @classmethod
    def _field_elements(cls, v: List[str]) -> List[str]:
        return [_check_field_element(item) for item in v]

    def to_domain(self) -> Transaction:
        return Transaction(
            proof=hex_to_bytes(self.proof),
            public_inputs=PublicInputs(
                root=hex_to_int(self.root),
                input_nullifiers=tuple(hex_to_int(n) for n in self.input_nullifiers),
                output_commitments=tuple(hex_to_int(c) for c in self.output_commitments),
                ext_amount=self.ext_amount,
                fee=self.fee,
            ),
            ext_data=self.ext_data.to_domain(),
        )

    @classmethod
    def from_domain(cls, tx: Transaction) -> "TransactionModel":
        inputs = tx.public_inputs
        return cls(
            proof=bytes_to_hex(tx.proof),
            root=to_fixed_hex(inputs.root),
            input_nullifiers=[to_fixed_hex(n) for n in inputs.input_nullifiers],
            output_commitments=[to_fixed_hex(c) for c in inputs.output_commitments],
            ext_amount=inputs.ext_amount,
            fee=inputs.fee,
            ext_data=ExtDataModel.from_domain(tx.ext_data),
        )


class BridgePayload(BaseModel):
    """Payload carried by a bridged deposit message."""
    version: int = Field(1, description="Payload format version")
    transaction: TransactionModel


class TransactRequest(BaseModel):
    """Request model for transact operations."""
    sender: str = Field("", description="Account deposits are pulled from")
    transaction: TransactionModel


class RegisterRequest(BaseModel):
    """Request model for public key registration."""
    owner: str = Field(..., min_length=1, description="Registering account")
    sender: str = Field(..., min_length=1, description="Account submitting the registration")
    public_key: str = Field(..., description="Shielded address (hex)")

    @field_validator("public_key")
    @classmethod
    def _hex(cls, v: str) -> str:
        return _check_hex(v)


class ReceiptResponse(BaseModel):
    """Response model for an applied transaction."""
    tx_hash: str
    states: List[str]
    commitment_indices: List[int]
    root: str
    ext_amount: int
    fee: int
    events: List[dict]


class PoolStateResponse(BaseModel):
    """Response model for pool state."""
    current_root: str = Field(..., description="Current Merkle root (hex)")
    tree_height: int = Field(..., description="Merkle tree height")
    num_commitments: int = Field(..., description="Number of commitments")
    num_nullifiers: int = Field(..., description="Number of spent nullifiers")
    root_history_size: int
    custody: int = Field(..., description="Tokens held by the pool")
    minimal_withdrawal_amount: int
    maximum_deposit_amount: int


class RootStatusResponse(BaseModel):
    root: str
    known: bool
    current: bool


class NullifierStatusResponse(BaseModel):
    nullifier: str
    spent: bool
    spent_at: Optional[str] = None


class EventListResponse(BaseModel):
    events: List[dict]
    total_count: int


class HealthResponse(BaseModel):
    """Health check response."""
    status: str = Field(..., description="Service status")
    timestamp: str = Field(default_factory=lambda: datetime.now().isoformat())
    version: str
