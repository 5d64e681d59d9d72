"""Value types for indicator results and decision engine input/output"""

from dataclasses import asdict, dataclass
from datetime import datetime
from enum import Enum
from typing import Any


class TrendZone(str, Enum):
    """Price position against the two-year moving average bands."""
    NORMAL = "normal"
    BELOW_BAND = "below_band"              # Under the MA, accumulation zone
    ABOVE_UPPER_BAND = "above_upper_band"  # Over MA x 5, blow-off top


class BandPosition(str, Enum):
    """Secondary asset position within its regression channel."""
    LOWER = "lower"
    MIDDLE = "middle"
    UPPER = "upper"


class ValuationZone(str, Enum):
    """Base zone from the valuation index breakpoints."""
    STRONG_BUY = "strong_buy"
    DCA_BUY = "dca_buy"
    HOLD = "hold"
    SELL = "sell"


class DispersionSource(str, Enum):
    """How a dispersion Z-score was obtained."""
    HISTORICAL = "historical"
    APPROXIMATE = "approximate"            # Fixed mean/std fallback
    DEFAULT = "default"                    # Neutral value, no data


class PrimaryAction(str, Enum):
    """Asset A (BTC) action identifiers."""
    HALT = "HALT"
    SELL_ALERT = "SELL_ALERT"
    STRONG_BUY = "STRONG_BUY"
    DCA_BUY = "DCA_BUY"
    HOLD = "HOLD"
    HOLD_CAUTION = "HOLD_CAUTION"
    SELL = "SELL"


class SecondaryAction(str, Enum):
    """Asset B (ETH) action identifiers."""
    HALT = "HALT"
    SELL_ALERT = "SELL_ALERT"
    BUY_HEAVY = "BUY_HEAVY"
    SELL_OR_SWAP = "SELL_OR_SWAP_BTC"
    FOLLOW_PRIMARY = "FOLLOW_BTC"


@dataclass(frozen=True)
class ValuationResult:
    """Valuation index computed from a daily close window"""
    current_price: float
    cost_basis: float           # Geometric mean of the window
    fair_value: float           # Power-law regression estimate
    index: float
    age_days: int
    computed_at: datetime


@dataclass(frozen=True)
class TrendResult:
    """Long-window moving average classification"""
    current_price: float
    moving_average: float
    upper_band: float
    multiple: float
    zone: TrendZone
    computed_at: datetime


@dataclass(frozen=True)
class DispersionResult:
    """Standardized deviation of the latest ratio sample"""
    current_ratio: float
    z_score: float
    sample_size: int
    computed_at: datetime
    source: DispersionSource = DispersionSource.HISTORICAL

    @property
    def is_approximate(self) -> bool:
        return self.source is not DispersionSource.HISTORICAL


@dataclass(frozen=True)
class MarketSnapshot:
    """
    Point-in-time input to the decision engine.

    Every field is mandatory. Callers substitute documented neutral values
    for indicators they could not compute instead of omitting them.
    """
    price_asset_a: float
    price_asset_b: float
    valuation_index: float
    dispersion_z: float
    trend_zone: TrendZone
    trend_cross_signal: bool
    asset_b_band_position: BandPosition
    account_leverage: float
    timestamp: datetime
    source_label: str


@dataclass(frozen=True)
class TradeSignal:
    """Decision engine output for one snapshot"""
    action_asset_a: PrimaryAction
    action_asset_b: SecondaryAction
    amount_factor: float
    warning_message: str = ""
    is_halted: bool = False
    report_body: str = ""

    @property
    def has_warning(self) -> bool:
        return bool(self.warning_message)

    def to_dict(self) -> dict[str, Any]:
        """JSON-ready mapping keyed by the wire identifiers."""
        data = asdict(self)
        data["action_asset_a"] = self.action_asset_a.value
        data["action_asset_b"] = self.action_asset_b.value
        return data
