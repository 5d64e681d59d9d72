"""Indicator estimators for valuation, trend and dispersion"""

from .calculator import IndicatorAggregator, IndicatorBundle, build_snapshot
from .dispersion import DispersionCalculator, calculate_z_score, newton_sqrt, sample_variance
from .trend import TrendCalculator, calculate_sma, classify_trend_zone
from .valuation import (
    ValuationCalculator,
    calculate_age_days,
    calculate_fair_value,
    calculate_geometric_mean,
    calculate_valuation_index,
)

__all__ = [
    "IndicatorAggregator",
    "IndicatorBundle",
    "build_snapshot",
    "ValuationCalculator",
    "calculate_geometric_mean",
    "calculate_age_days",
    "calculate_fair_value",
    "calculate_valuation_index",
    "TrendCalculator",
    "calculate_sma",
    "classify_trend_zone",
    "DispersionCalculator",
    "calculate_z_score",
    "newton_sqrt",
    "sample_variance",
]
