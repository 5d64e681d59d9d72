"""
Data models and contracts module.

Immutable value types for indicator results, market snapshots and trade
signals. Every type is a frozen dataclass created fresh per computation.
"""

from .indicators import (
    BandPosition,
    DispersionResult,
    DispersionSource,
    MarketSnapshot,
    PrimaryAction,
    SecondaryAction,
    TradeSignal,
    TrendResult,
    TrendZone,
    ValuationResult,
    ValuationZone,
)

__all__ = [
    "BandPosition",
    "DispersionResult",
    "DispersionSource",
    "MarketSnapshot",
    "PrimaryAction",
    "SecondaryAction",
    "TradeSignal",
    "TrendResult",
    "TrendZone",
    "ValuationResult",
    "ValuationZone",
]
