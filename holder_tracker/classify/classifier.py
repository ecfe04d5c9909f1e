"""Holder classifier: partitions a holder map into kept / service / whale / dust.

Single pass over the input in iteration order with fixed precedence
service > whale > dust > kept. Whale decisions use exact rational arithmetic
against the total of the *input* map; the float percentage attached to a
whale record is display-only (rounded to 2 places).
"""
from __future__ import annotations

from dataclasses import asdict, dataclass, field
from decimal import Decimal
from fractions import Fraction
from typing import Dict, List, Mapping, Optional

from loguru import logger

from .policy import ClassificationPolicy


@dataclass
class ExcludedHolder:
    address: str
    balance: int
    percentage_of_supply: Optional[float] = None

    def to_dict(self) -> Dict[str, object]:
        out: Dict[str, object] = {'address': self.address, 'balance': str(self.balance)}
        if self.percentage_of_supply is not None:
            out['percentage'] = f"{self.percentage_of_supply:.2f}"
        return out


@dataclass
class FilterCounters:
    total_holders: int = 0
    services_filtered: int = 0
    whales_filtered: int = 0
    dust_filtered: int = 0
    remaining_holders: int = 0

    def is_consistent(self) -> bool:
        return self.total_holders == (
            self.services_filtered + self.whales_filtered + self.dust_filtered + self.remaining_holders
        )

    def to_dict(self) -> Dict[str, int]:
        return asdict(self)


@dataclass
class ClassificationResult:
    kept: Dict[str, int]
    excluded_services: List[ExcludedHolder] = field(default_factory=list)
    excluded_whales: List[ExcludedHolder] = field(default_factory=list)
    excluded_dust: List[ExcludedHolder] = field(default_factory=list)
    counters: FilterCounters = field(default_factory=FilterCounters)
    total_supply: int = 0
    whale_threshold_percent: float = 0.0

    def summary(self) -> str:
        return format_filter_summary(self.counters, self.whale_threshold_percent)


def format_filter_summary(counters: FilterCounters, whale_threshold_percent: float) -> str:
    return "\n".join([
        "=== Filter Summary ===",
        f"Total Holders: {counters.total_holders}",
        f"Services Filtered: {counters.services_filtered}",
        f"Whales Filtered: {counters.whales_filtered} (>{whale_threshold_percent:g}% of supply)",
        f"Dust Filtered: {counters.dust_filtered}",
        f"Remaining Holders: {counters.remaining_holders}",
    ])


def share_of_supply(balance: int, total_supply: int) -> Fraction:
    """Exact percentage of `total_supply` held by `balance`; 0 when supply is 0."""
    if total_supply <= 0:
        return Fraction(0)
    return Fraction(balance * 100, total_supply)


class HolderClassifier:
    """Reusable classifier bound to one policy.

    `counters` reflects the most recent `classify` call only; it is reset at
    the start of every call.
    """

    def __init__(self, policy: Optional[ClassificationPolicy] = None):
        self.policy = policy or ClassificationPolicy()
        self._whale_threshold = Fraction(Decimal(str(self.policy.whale_threshold_percent)))
        self.counters = FilterCounters()

    def is_service(self, address: str) -> bool:
        return self.policy.exclude_services and self.policy.is_service(address)

    def is_whale(self, balance: int, total_supply: int) -> bool:
        if not self.policy.exclude_whales or total_supply <= 0:
            return False
        return share_of_supply(balance, total_supply) > self._whale_threshold

    def is_dust(self, balance: int) -> bool:
        return balance < self.policy.min_balance_to_include

    def classify(self, balances: Mapping[str, int]) -> ClassificationResult:
        counters = FilterCounters(total_holders=len(balances))
        self.counters = counters
        total_supply = sum(int(b) for b in balances.values())

        result = ClassificationResult(
            kept={},
            counters=counters,
            total_supply=total_supply,
            whale_threshold_percent=self.policy.whale_threshold_percent,
        )

        for address, balance in balances.items():
            balance = int(balance)
            if self.is_service(address):
                counters.services_filtered += 1
                result.excluded_services.append(ExcludedHolder(address, balance))
                continue

            if self.is_whale(balance, total_supply):
                counters.whales_filtered += 1
                pct = round(float(share_of_supply(balance, total_supply)), 2)
                result.excluded_whales.append(ExcludedHolder(address, balance, pct))
                continue

            if self.is_dust(balance):
                counters.dust_filtered += 1
                result.excluded_dust.append(ExcludedHolder(address, balance))
                continue

            result.kept[address] = balance

        counters.remaining_holders = len(result.kept)
        if not counters.is_consistent():
            raise RuntimeError(f"Inconsistent filter counters: {counters}")
        logger.debug(f"Classified {counters.total_holders} holders: {counters.to_dict()}")
        return result

    def summary(self) -> str:
        return format_filter_summary(self.counters, self.policy.whale_threshold_percent)


def classify(balances: Mapping[str, int], policy: Optional[ClassificationPolicy] = None) -> ClassificationResult:
    return HolderClassifier(policy).classify(balances)


__all__ = [
    'ExcludedHolder',
    'FilterCounters',
    'ClassificationResult',
    'HolderClassifier',
    'classify',
    'format_filter_summary',
    'share_of_supply',
]
