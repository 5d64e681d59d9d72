"""Decision cascade mapping market snapshots to trade signals"""

from .engine import (
    Classification,
    LeverageBreach,
    TopSignal,
    ZoneBased,
    classify,
    classify_valuation_zone,
    evaluate,
    secondary_action,
)

__all__ = [
    "Classification",
    "LeverageBreach",
    "TopSignal",
    "ZoneBased",
    "classify",
    "classify_valuation_zone",
    "evaluate",
    "secondary_action",
]
