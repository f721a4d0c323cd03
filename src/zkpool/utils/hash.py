"""Cryptographic hash utilities."""

import hashlib
from typing import Union

from zkpool.constants import FIELD_SIZE

FIELD_HASH_DOMAIN = b"zkpool/field-hash/v1"


def sha256(data: Union[bytes, str]) -> bytes:
    """
    Compute SHA-256 hash of data.

    Args:
        data: Bytes or string to hash

    Returns:
        bytes: 32-byte SHA-256 hash
    """
    if isinstance(data, str):
        data = data.encode('utf-8')
    return hashlib.sha256(data).digest()


def _encode_input(item: Union[int, bytes]) -> bytes:
    if isinstance(item, bool):
        raise TypeError("Field hash inputs must be int or bytes, got bool")
    if isinstance(item, int):
        if item < 0 or item >= 2**256:
            raise ValueError(f"Integer input out of range: {item}")
        return b"\x00" + item.to_bytes(32, 'big')
    if isinstance(item, (bytes, bytearray)):
        if len(item) > 0xFFFF:
            raise ValueError("Byte input too long")
        return b"\x01" + len(item).to_bytes(2, 'big') + bytes(item)
    raise TypeError(f"Field hash inputs must be int or bytes, got {type(item)}")


def field_hash(*inputs: Union[int, bytes]) -> int:
    """
    Hash a sequence of integers and byte strings to a field element.

    Integers are encoded as 32-byte big-endian words, byte strings are length
    prefixed, and the SHA-256 digest is reduced modulo FIELD_SIZE.

    Returns:
        int: element of [0, FIELD_SIZE)
    """
    payload = FIELD_HASH_DOMAIN + b"".join(_encode_input(item) for item in inputs)
    return int.from_bytes(sha256(payload), 'big') % FIELD_SIZE


def merkle_hash(left: int, right: int) -> int:
    """
    Compute Merkle tree hash of two sibling field elements.

    Args:
        left: Left child
        right: Right child

    Returns:
        int: Parent node
    """
    if not isinstance(left, int) or not 0 <= left < FIELD_SIZE:
        raise ValueError("Left node must be a field element")
    if not isinstance(right, int) or not 0 <= right < FIELD_SIZE:
        raise ValueError("Right node must be a field element")

    return field_hash(left, right)


# Value of an empty leaf.
ZERO_VALUE = int.from_bytes(sha256(b"zkpool"), 'big') % FIELD_SIZE
