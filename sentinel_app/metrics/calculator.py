"""Indicator aggregator that assembles estimator outputs into a market snapshot"""

import math
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, Union

import structlog

from ..config.defaults import DefaultConfig, get_default_config
from ..data.sources import PriceHistoryProvider, RatioHistoryProvider
from ..errors import (
    DataQualityError,
    IndicatorCalculationError,
    SourceUnavailableError,
)
from ..models.indicators import (
    BandPosition,
    DispersionResult,
    MarketSnapshot,
    TrendResult,
    TrendZone,
    ValuationResult,
)
from ..utils.time import get_market_time
from .dispersion import DispersionCalculator
from .trend import TrendCalculator
from .valuation import ValuationCalculator

logger = structlog.get_logger(__name__)

# Neutral values substituted when a non-critical estimator fails
NEUTRAL_TREND_ZONE = TrendZone.NORMAL
NEUTRAL_DISPERSION_Z = 0.0


@dataclass(frozen=True)
class IndicatorBundle:
    """Estimator outputs for one evaluation; failed optional indicators are None"""
    valuation: ValuationResult
    trend: Optional[TrendResult] = None
    dispersion: Optional[DispersionResult] = None
    errors: dict[str, str] = field(default_factory=dict)

    @property
    def is_complete(self) -> bool:
        return self.trend is not None and self.dispersion is not None


def build_snapshot(
    bundle: IndicatorBundle,
    account_leverage: float,
    trend_cross_signal: bool = False,
    asset_b_band_position: Union[BandPosition, str] = BandPosition.MIDDLE,
    price_asset_b: float = 0.0,
    source_label: str = "",
    timestamp: Optional[datetime] = None,
    neutral_dispersion_z: float = NEUTRAL_DISPERSION_Z,
) -> MarketSnapshot:
    """
    Assemble a fully-populated snapshot from estimator outputs and external inputs

    Missing trend and dispersion results are replaced by their neutral
    values (NORMAL zone, Z-score 0.0 unless overridden).
    """
    trend_zone = bundle.trend.zone if bundle.trend is not None else NEUTRAL_TREND_ZONE
    dispersion_z = (bundle.dispersion.z_score if bundle.dispersion is not None
                    else neutral_dispersion_z)

    return MarketSnapshot(
        price_asset_a=bundle.valuation.current_price,
        price_asset_b=price_asset_b,
        valuation_index=bundle.valuation.index,
        dispersion_z=dispersion_z,
        trend_zone=trend_zone,
        trend_cross_signal=trend_cross_signal,
        asset_b_band_position=BandPosition(asset_b_band_position),
        account_leverage=account_leverage,
        timestamp=get_market_time(timestamp or bundle.valuation.computed_at),
        source_label=source_label,
    )


class IndicatorAggregator:
    """
    Runs the three estimators and collects their results

    The valuation index drives the zone classification, so its failure
    propagates. Trend and dispersion failures are logged and recorded in
    the bundle, and the snapshot falls back to neutral values for them.
    """

    def __init__(self, price_source: PriceHistoryProvider,
                 ratio_source: Optional[RatioHistoryProvider] = None,
                 config: Optional[DefaultConfig] = None):
        self.config = config or get_default_config()
        symbol = self.config.data_source.primary_symbol

        self.valuation_calculator = ValuationCalculator(
            price_source, self.config.valuation, symbol=symbol
        )
        self.trend_calculator = TrendCalculator(
            price_source, self.config.trend, symbol=symbol
        )
        self.dispersion_calculator = (
            DispersionCalculator(ratio_source, self.config.dispersion)
            if ratio_source is not None else None
        )

    def compute(self, now: Optional[datetime] = None) -> IndicatorBundle:
        """
        Calculate all indicators for one evaluation time

        Raises:
            DataQualityError: if the valuation window cannot be retrieved
            SourceUnavailableError: if the price source is unreachable for valuation
            IndicatorCalculationError: if the valuation index is undefined
        """
        now = get_market_time(now)
        errors: dict[str, str] = {}

        valuation = self.valuation_calculator.calculate(now)
        self._validate_finite("valuation_index", valuation.index)

        trend = None
        try:
            trend = self.trend_calculator.calculate(now)
            self._validate_finite("trend_multiple", trend.multiple)
        except (DataQualityError, SourceUnavailableError, IndicatorCalculationError) as e:
            errors["trend"] = str(e)
            logger.warning(
                "Trend multiple unavailable, using neutral zone",
                error=str(e),
                error_type=type(e).__name__,
                neutral_zone=NEUTRAL_TREND_ZONE.value
            )
            trend = None

        dispersion = None
        if self.dispersion_calculator is None:
            errors["dispersion"] = "no ratio source configured"
        else:
            try:
                dispersion = self.dispersion_calculator.calculate_with_fallback(now)
                self._validate_finite("dispersion_z", dispersion.z_score)
            except (DataQualityError, SourceUnavailableError, IndicatorCalculationError) as e:
                errors["dispersion"] = str(e)
                logger.warning(
                    "Dispersion Z-score unavailable, using neutral value",
                    error=str(e),
                    error_type=type(e).__name__,
                    neutral_z=self.config.dispersion.neutral_z_score
                )
                dispersion = None

        return IndicatorBundle(
            valuation=valuation,
            trend=trend,
            dispersion=dispersion,
            errors=errors
        )

    def build_snapshot(self, bundle: IndicatorBundle,
                       account_leverage: Optional[float] = None,
                       source_label: str = "") -> MarketSnapshot:
        """Build a snapshot using configured values for the external inputs"""
        signals = self.config.signals
        leverage = (self.config.account.leverage if account_leverage is None
                    else account_leverage)

        return build_snapshot(
            bundle,
            account_leverage=leverage,
            trend_cross_signal=signals.trend_cross_signal,
            asset_b_band_position=signals.asset_b_band_position,
            price_asset_b=signals.asset_b_price,
            source_label=source_label,
            neutral_dispersion_z=self.config.dispersion.neutral_z_score,
        )

    def _validate_finite(self, metric_name: str, value: float) -> None:
        """Reject NaN and infinite indicator values."""
        if math.isnan(value) or math.isinf(value):
            raise IndicatorCalculationError(
                f"Invalid {metric_name} value: {value}",
                metric_name=metric_name
            )
