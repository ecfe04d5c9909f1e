"""Pre-filter holder statistics and balance formatting.

All arithmetic stays on Python ints; `Decimal` is used only to render raw
amounts in whole-token units. An empty holder map yields zeros rather than a
division error.
"""
from __future__ import annotations

from decimal import Decimal
from typing import Any, Dict, Mapping


def format_balance(raw: int, decimals: int, places: int = 6) -> str:
    """Render a raw amount in whole-token units with `places` fraction digits."""
    value = Decimal(int(raw)).scaleb(-decimals)
    return f"{value:.{places}f}"


def compute_holder_statistics(balances: Mapping[str, int], decimals: int = 6) -> Dict[str, Any]:
    values = sorted((int(v) for v in balances.values()), reverse=True)
    count = len(values)
    total = sum(values)
    average = total // count if count else 0
    largest = values[0] if values else 0
    smallest = values[-1] if values else 0
    return {
        'total_holders': count,
        'total_supply_held': str(total),
        'total_supply_held_formatted': format_balance(total, decimals, 2),
        'average_balance': str(average),
        'average_balance_formatted': format_balance(average, decimals),
        'largest_holder': str(largest),
        'largest_holder_formatted': format_balance(largest, decimals, 2),
        'smallest_holder': str(smallest),
        'smallest_holder_formatted': format_balance(smallest, decimals),
    }
