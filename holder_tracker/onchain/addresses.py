"""Base58 helpers for 32-byte Solana account identities."""
from __future__ import annotations

import base58

ADDRESS_LENGTH = 32

# System program id; base58 of 32 zero bytes is a run of '1' characters.
NULL_ADDRESS = '1' * ADDRESS_LENGTH


class InvalidAddressError(ValueError):
    """Raised when a string is not the base58 text of a 32-byte identity."""


def encode_address(raw: bytes) -> str:
    if len(raw) != ADDRESS_LENGTH:
        raise InvalidAddressError(f"Expected {ADDRESS_LENGTH} bytes, got {len(raw)}")
    return base58.b58encode(bytes(raw)).decode('ascii')


def decode_address(address: str) -> bytes:
    try:
        raw = base58.b58decode(address)
    except ValueError as e:
        raise InvalidAddressError(f"Address '{address}' is not valid base58") from e
    if len(raw) != ADDRESS_LENGTH:
        raise InvalidAddressError(
            f"Address '{address}' decodes to {len(raw)} bytes, expected {ADDRESS_LENGTH}"
        )
    return raw


def is_valid_address(address: str) -> bool:
    try:
        decode_address(address)
    except InvalidAddressError:
        return False
    return True


__all__ = ['ADDRESS_LENGTH', 'NULL_ADDRESS', 'InvalidAddressError', 'encode_address', 'decode_address', 'is_valid_address']
