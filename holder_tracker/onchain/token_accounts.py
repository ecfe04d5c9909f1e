"""SPL token account decoding and per-owner balance aggregation.

Token account layout (only the leading 72 bytes are read):

    mint    [0:32]   32-byte identity
    owner   [32:64]  32-byte identity
    amount  [64:72]  u64, little-endian, smallest token unit

Records arrive already filtered to the target mint and to the full account
size by the scan call, so length is not re-validated here beyond the decode
window.
"""
from __future__ import annotations

import struct
from collections import defaultdict
from dataclasses import dataclass
from typing import Dict, Iterable, Literal, Mapping

from loguru import logger

from .addresses import encode_address

TOKEN_PROGRAM_ID = 'TokenkegQfeZyiNwAJbNbGKPFXCWuBvf9Ss623VQ5DA'
TOKEN_ACCOUNT_SIZE = 165

MINT_OFFSET = 0
OWNER_OFFSET = 32
AMOUNT_OFFSET = 64
DECODE_WINDOW = AMOUNT_OFFSET + 8

# owner address (base58) -> summed raw amount
HolderBalances = Dict[str, int]

_U64_LE = struct.Struct('<Q')


class MalformedRecordError(ValueError):
    """Record is shorter than the fixed decode window."""


@dataclass(frozen=True)
class TokenAccount:
    mint: str
    owner: str
    amount: int


def _decode_owner_amount(data: bytes):
    if len(data) < DECODE_WINDOW:
        raise MalformedRecordError(
            f"Token account record is {len(data)} bytes, need at least {DECODE_WINDOW}"
        )
    amount = _U64_LE.unpack_from(data, AMOUNT_OFFSET)[0]
    return data[OWNER_OFFSET:AMOUNT_OFFSET], amount


def decode_token_account(data: bytes) -> TokenAccount:
    owner, amount = _decode_owner_amount(data)
    return TokenAccount(
        mint=encode_address(data[MINT_OFFSET:OWNER_OFFSET]),
        owner=encode_address(owner),
        amount=amount,
    )


def aggregate(
    records: Iterable[bytes],
    on_malformed: Literal['raise', 'skip'] = 'raise',
) -> HolderBalances:
    """Sum `amount` per owner across token account records.

    Zero-amount records never create a key. With ``on_malformed='skip'`` a
    record shorter than the decode window is logged and skipped; the default
    ``'raise'`` aborts with `MalformedRecordError`.
    """
    if on_malformed not in ('raise', 'skip'):
        raise ValueError(f"on_malformed must be 'raise' or 'skip', got {on_malformed!r}")

    by_owner: Dict[bytes, int] = defaultdict(int)
    skipped = 0
    for idx, data in enumerate(records):
        try:
            owner, amount = _decode_owner_amount(data)
        except MalformedRecordError:
            if on_malformed == 'raise':
                raise
            skipped += 1
            logger.warning(f"Skipping malformed token account record #{idx} ({len(data)} bytes)")
            continue
        if amount > 0:
            by_owner[bytes(owner)] += amount

    if skipped:
        logger.warning(f"Skipped {skipped} malformed token account record(s)")
    return {encode_address(owner): total for owner, total in by_owner.items()}


def merge_balances(*partials: Mapping[str, int]) -> HolderBalances:
    """Merge partial holder maps (e.g. from sharded scans) by summation."""
    merged: Dict[str, int] = defaultdict(int)
    for part in partials:
        for owner, amount in part.items():
            if amount > 0:
                merged[owner] += int(amount)
    return dict(merged)


__all__ = [
    'TOKEN_PROGRAM_ID',
    'TOKEN_ACCOUNT_SIZE',
    'MINT_OFFSET',
    'OWNER_OFFSET',
    'AMOUNT_OFFSET',
    'DECODE_WINDOW',
    'HolderBalances',
    'MalformedRecordError',
    'TokenAccount',
    'decode_token_account',
    'aggregate',
    'merge_balances',
]
