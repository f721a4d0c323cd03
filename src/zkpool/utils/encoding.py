"""Encoding and decoding utilities."""

from typing import Union


def bytes_to_hex(data: bytes) -> str:
    """
    Convert bytes to hexadecimal string.

    Args:
        data: Bytes to convert

    Returns:
        str: Hexadecimal string with '0x' prefix
    """
    return "0x" + data.hex()


def hex_to_bytes(hex_str: str) -> bytes:
    """
    Convert hexadecimal string to bytes.

    Args:
        hex_str: Hexadecimal string (with or without '0x' prefix)

    Returns:
        bytes: Decoded bytes

    Raises:
        ValueError: If hex string is invalid
    """
    if hex_str.startswith("0x"):
        hex_str = hex_str[2:]

    if len(hex_str) % 2 != 0:
        raise ValueError("Hex string must have even number of characters")

    return bytes.fromhex(hex_str)


def to_fixed_hex(value: Union[int, bytes], length: int = 32) -> str:
    """
    Render a field element or byte string as a zero-padded '0x' hex string.

    Args:
        value: Non-negative integer or bytes
        length: Width in bytes

    Returns:
        str: '0x' followed by exactly 2 * length hex digits
    """
    if isinstance(value, (bytes, bytearray)):
        value = int.from_bytes(value, 'big')
    if value < 0:
        raise ValueError("Cannot render a negative value as fixed hex")
    return "0x" + value.to_bytes(length, 'big').hex()


def hex_to_int(hex_str: str) -> int:
    """Parse a '0x' hex string into an integer."""
    if hex_str.startswith("0x"):
        hex_str = hex_str[2:]
    if not hex_str:
        raise ValueError("Empty hex string")
    return int(hex_str, 16)
