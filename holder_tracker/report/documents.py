"""JSON documents built from a `ClassificationResult`.

Balances are serialized as strings so that consumers without arbitrary
precision integers do not lose digits.
"""
from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional, Sequence

from holder_tracker.classify.classifier import ClassificationResult, ExcludedHolder
from holder_tracker.classify.policy import ClassificationPolicy

from .stats import format_balance


def rank_holders(balances: Mapping[str, int], limit: Optional[int] = None) -> List[tuple]:
    """(address, balance) pairs by balance descending, ties by address ascending."""
    ranked = sorted(balances.items(), key=lambda kv: (-int(kv[1]), kv[0]))
    if limit is not None:
        ranked = ranked[:limit]
    return ranked


def _holder_row(address: str, balance: int, decimals: int) -> Dict[str, str]:
    return {
        'address': address,
        'balance': str(balance),
        'balance_formatted': format_balance(balance, decimals),
    }


def build_filtered_report(
    result: ClassificationResult,
    *,
    token_mint: str,
    timestamp: str,
    policy: ClassificationPolicy,
    decimals: int = 6,
    max_holders: Optional[int] = None,
) -> Dict[str, Any]:
    top = rank_holders(result.kept, max_holders)
    return {
        'token_mint': token_mint,
        'timestamp': timestamp,
        'filter_settings': policy.to_dict(),
        'total_holders': result.counters.total_holders,
        'filtered_holders': len(result.kept),
        'saved_holders': len(top),
        'filter_stats': result.counters.to_dict(),
        'total_supply': str(result.total_supply),
        'holders': [_holder_row(addr, bal, decimals) for addr, bal in top],
    }


def _excluded_rows(entries: Sequence[ExcludedHolder], decimals: int) -> List[Dict[str, object]]:
    rows = []
    for entry in entries:
        row = entry.to_dict()
        row['balance_formatted'] = format_balance(entry.balance, decimals)
        rows.append(row)
    return rows


def build_excluded_report(
    result: ClassificationResult,
    *,
    timestamp: str,
    decimals: int = 6,
    dust_preview_limit: int = 100,
) -> Dict[str, Any]:
    return {
        'timestamp': timestamp,
        'services': _excluded_rows(result.excluded_services, decimals),
        'whales': _excluded_rows(result.excluded_whales, decimals),
        'dust_total': len(result.excluded_dust),
        'dust': [e.to_dict() for e in result.excluded_dust[:dust_preview_limit]],
    }


def has_exclusions(result: ClassificationResult) -> bool:
    return bool(result.excluded_services or result.excluded_whales or result.excluded_dust)
