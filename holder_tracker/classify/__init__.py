"""Holder classification: service wallets, whales and dust versus real holders."""
from .classifier import (
    ClassificationResult,
    ExcludedHolder,
    FilterCounters,
    HolderClassifier,
    classify,
    format_filter_summary,
)
from .policy import KNOWN_SERVICES, ClassificationPolicy, ServicePattern
from .registry import Registry, load_latest_registry

__all__ = [
    'ClassificationPolicy',
    'ClassificationResult',
    'ExcludedHolder',
    'FilterCounters',
    'HolderClassifier',
    'KNOWN_SERVICES',
    'Registry',
    'ServicePattern',
    'classify',
    'format_filter_summary',
    'load_latest_registry',
]
