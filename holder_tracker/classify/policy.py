"""Classification policy: thresholds, known service wallets and pattern detectors.

A policy is immutable for the duration of a run. Service detection is the
union of an explicit address set and an ordered tuple of named predicates;
new detectors are added with `with_pattern` rather than by touching the
classification loop.
"""
from __future__ import annotations

import math
from dataclasses import dataclass, field, replace
from typing import Callable, Iterable, Optional, Tuple

from holder_tracker.onchain.addresses import NULL_ADDRESS

# Known service wallets (programs, AMM authorities, aggregators, fee receivers)
KNOWN_SERVICES = frozenset({
    # Pump.fun
    '6EF8rrecthR5Dkzon8Nwu78hRvfCKubJ14M5uBEwF6P',   # program
    'Ce6TQqeHC9p8KetsN6JsjHK7UTZk7nasjjnr7XxXp9F1',  # bonding curve
    'CebN5WGQ4jvEPvsVU4EoHEpgzq1VV7AbicfhtW4xC9iM',  # fee receiver
    # DEXes
    '5Q544fKrFoe6tsEbD7S8EmxGTJYAKtTVhAW5Q5pge4j1',  # Raydium authority V4
    'EhhTKczWMGQt46ynNeRX1WfeagwwJd7ufHvCDjRxjo5Q',  # Raydium LP
    '675kPX9MHTjS2zt1qfr1NYHuzeLXfQM9H24wFSUt1Mp8',  # Raydium AMM
    'JUP6LkbZbjS1jKKwapdHNy74zcZ3tLUZoi5QNyVTaV4',   # Jupiter aggregator
    'JUP4Fb2cqiRUcaTHdrPC8h2gNsA2ETXiPDD33WcGuJB',   # Jupiter V6
    'whirLbMiicVdio4qvUfM5KAg6Ct8VwpYzGff3uctyCc',   # Orca whirlpool
})

DEFAULT_WHALE_THRESHOLD_PERCENT = 1.0
DEFAULT_MIN_BALANCE_TO_INCLUDE = 1_000_000

PROGRAM_ACCOUNT_SUFFIX = NULL_ADDRESS[:28]


@dataclass(frozen=True)
class ServicePattern:
    """Named structural detector over an address string."""
    name: str
    predicate: Callable[[str], bool]

    def __call__(self, address: str) -> bool:
        return bool(self.predicate(address))


def is_program_account(address: str) -> bool:
    return address.endswith(PROGRAM_ACCOUNT_SUFFIX)


DEFAULT_SERVICE_PATTERNS: Tuple[ServicePattern, ...] = (
    ServicePattern('program_account', is_program_account),
)


@dataclass(frozen=True)
class ClassificationPolicy:
    exclude_services: bool = True
    exclude_whales: bool = True
    whale_threshold_percent: float = DEFAULT_WHALE_THRESHOLD_PERCENT
    min_balance_to_include: int = DEFAULT_MIN_BALANCE_TO_INCLUDE
    service_addresses: frozenset = KNOWN_SERVICES
    service_patterns: Tuple[ServicePattern, ...] = field(default=DEFAULT_SERVICE_PATTERNS)

    def __post_init__(self):
        if not math.isfinite(self.whale_threshold_percent) or self.whale_threshold_percent < 0:
            raise ValueError('whale_threshold_percent must be a finite number >= 0')
        if self.min_balance_to_include < 0:
            raise ValueError('min_balance_to_include must be >= 0')
        object.__setattr__(self, 'service_addresses', frozenset(self.service_addresses))
        object.__setattr__(self, 'service_patterns', tuple(self.service_patterns))

    def is_service(self, address: str) -> bool:
        if address in self.service_addresses:
            return True
        return any(pattern(address) for pattern in self.service_patterns)

    def with_service_addresses(self, addresses: Iterable[str]) -> 'ClassificationPolicy':
        return replace(self, service_addresses=self.service_addresses | frozenset(addresses))

    def with_pattern(self, name: str, predicate: Callable[[str], bool]) -> 'ClassificationPolicy':
        kept = tuple(p for p in self.service_patterns if p.name != name)
        return replace(self, service_patterns=kept + (ServicePattern(name, predicate),))

    def without_pattern(self, name: str) -> 'ClassificationPolicy':
        return replace(self, service_patterns=tuple(p for p in self.service_patterns if p.name != name))

    def pattern_names(self) -> Tuple[str, ...]:
        return tuple(p.name for p in self.service_patterns)

    def to_dict(self) -> dict:
        """JSON-friendly view, as recorded in the snapshot report."""
        return {
            'exclude_services': self.exclude_services,
            'exclude_whales': self.exclude_whales,
            'whale_threshold_percent': self.whale_threshold_percent,
            'min_balance_to_include': self.min_balance_to_include,
            'service_address_count': len(self.service_addresses),
            'service_patterns': list(self.pattern_names()),
        }

    @classmethod
    def from_settings(cls, filters, extra_service_addresses: Optional[Iterable[str]] = None) -> 'ClassificationPolicy':
        """Build from `FilterSettings` plus any registry-loaded addresses."""
        addresses = set(KNOWN_SERVICES)
        addresses.update(filters.custom_service_wallets or [])
        addresses.update(extra_service_addresses or [])
        return cls(
            exclude_services=filters.exclude_services,
            exclude_whales=filters.exclude_whales,
            whale_threshold_percent=filters.whale_threshold_percent,
            min_balance_to_include=filters.min_balance_to_include,
            service_addresses=frozenset(addresses),
        )


__all__ = [
    'KNOWN_SERVICES',
    'DEFAULT_SERVICE_PATTERNS',
    'ServicePattern',
    'ClassificationPolicy',
    'is_program_account',
]
