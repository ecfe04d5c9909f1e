"""
Pytest fixtures shared by the holder-tracker test suite.

`make_record` builds raw 165-byte token account blobs so decoding and
aggregation can be exercised without a network.
"""
import struct

import base58
import pytest

from holder_tracker.core.config import Settings
from holder_tracker.onchain.token_accounts import TOKEN_ACCOUNT_SIZE

MINT_BYTES = bytes(range(1, 33))


def owner_bytes(n: int) -> bytes:
    """Deterministic 32-byte owner identity for test holder `n`."""
    return bytes([n % 256]) * 31 + bytes([(n * 7 + 1) % 256])


def owner_address(n: int) -> str:
    return base58.b58encode(owner_bytes(n)).decode('ascii')


def build_record(owner: bytes, amount: int, mint: bytes = MINT_BYTES, size: int = TOKEN_ACCOUNT_SIZE) -> bytes:
    data = bytearray(size)
    data[0:32] = mint
    data[32:64] = owner
    data[64:72] = struct.pack('<Q', amount)
    # delegate / state fields after the decode window must not matter
    for i in range(72, size):
        data[i] = 0xAB
    return bytes(data)


@pytest.fixture
def make_record():
    return build_record


@pytest.fixture
def settings_fixture(tmp_path) -> Settings:
    return Settings.model_validate({
        "rpc": {"endpoint": "http://localhost:1/", "max_retries": 0},
        "token": {"mint": base58.b58encode(MINT_BYTES).decode('ascii'), "decimals": 6, "symbol": "TEST"},
        "filters": {"whale_threshold_percent": 1.0, "min_balance_to_include": 1000},
        "reports": {"data_dir": str(tmp_path / "data")},
    })


@pytest.fixture
def make_owner():
    """Returns `(owner_bytes, base58_address)` for test holder `n`."""
    def _make(n: int):
        return owner_bytes(n), owner_address(n)
    return _make


def total_amount(records) -> int:
    """Sum of every raw amount in `records`, for reconciling against `aggregate`."""
    return sum(struct.unpack_from('<Q', r, 64)[0] for r in records)
