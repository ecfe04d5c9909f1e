"""Solana token account scanning.

`rpc` issues the single account scan, `token_accounts` decodes the raw
records and folds them into a per-owner balance map, and `addresses` holds
the base58 helpers shared by both.
"""

__all__ = [
    'addresses',
    'rpc',
    'token_accounts',
]
