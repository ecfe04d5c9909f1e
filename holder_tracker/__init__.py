"""Point-in-time token holder snapshots for Solana SPL tokens.

Raw token accounts are scanned once, folded into a per-owner balance map and
classified into real holders versus service wallets, whales and dust.
"""
from holder_tracker.classify import ClassificationPolicy, ClassificationResult, HolderClassifier, classify
from holder_tracker.onchain.token_accounts import aggregate

__all__ = [
    'ClassificationPolicy',
    'ClassificationResult',
    'HolderClassifier',
    'aggregate',
    'classify',
]
