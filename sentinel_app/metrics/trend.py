"""Two-year moving average multiple calculations"""

from collections.abc import Sequence
from datetime import datetime
from typing import Optional

import structlog

from ..config.defaults import TrendParams
from ..data.sources import PriceHistoryProvider
from ..errors import IndicatorCalculationError, InsufficientDataError
from ..models.indicators import TrendResult, TrendZone
from ..utils.time import get_market_time

logger = structlog.get_logger(__name__)


def calculate_sma(prices: Sequence[float]) -> float:
    """
    Simple moving average over the whole sequence

    Args:
        prices: Price sequence

    Returns:
        Arithmetic mean, or 0.0 for an empty sequence
    """
    if not prices:
        return 0.0

    return sum(prices) / len(prices)


def classify_trend_zone(current_price: float, moving_average: float,
                        upper_band: float) -> TrendZone:
    """
    Classify price against the moving average and its upper band

    Both comparisons are strict: a price equal to the moving average or to
    the upper band is NORMAL.
    """
    if current_price < moving_average:
        return TrendZone.BELOW_BAND
    if current_price > upper_band:
        return TrendZone.ABOVE_UPPER_BAND
    return TrendZone.NORMAL


class TrendCalculator:
    """Trend multiple estimator fed by an injected price history provider"""

    def __init__(self, provider: Optional[PriceHistoryProvider] = None,
                 params: Optional[TrendParams] = None,
                 symbol: str = "BTCUSDT"):
        self.provider = provider
        self.params = params or TrendParams()
        self.symbol = symbol

    def calculate(self, now: Optional[datetime] = None) -> TrendResult:
        """Fetch the moving average window and classify the current price"""
        if self.provider is None:
            raise ValueError("TrendCalculator.calculate requires a price history provider")

        closes = self.provider.fetch_closes(self.symbol, self.params.window)
        return self.calculate_from_closes(closes, now)

    def calculate_from_closes(self, closes: Sequence[float],
                              now: Optional[datetime] = None) -> TrendResult:
        """
        Compute the moving average multiple from chronological daily closes

        Args:
            closes: Daily closes, oldest first; the trailing ``window`` are used
            now: Evaluation time, defaults to wall-clock UTC

        Returns:
            TrendResult with the zone classification

        Raises:
            InsufficientDataError: if fewer closes than the window are supplied
            IndicatorCalculationError: if the moving average is not positive
        """
        window = self.params.window
        if len(closes) < window:
            raise InsufficientDataError(
                f"Insufficient closes for moving average: need {window}, got {len(closes)}",
                required_count=window,
                available_count=len(closes)
            )

        recent = list(closes[-window:])
        current_price = recent[-1]
        moving_average = calculate_sma(recent)

        if moving_average <= 0:
            raise IndicatorCalculationError(
                f"Non-positive moving average: {moving_average}",
                metric_name="moving_average",
                calculation_input={"window": window}
            )

        upper_band = moving_average * self.params.upper_band_multiplier
        zone = classify_trend_zone(current_price, moving_average, upper_band)

        logger.debug(
            "Calculated trend multiple",
            current_price=current_price,
            moving_average=moving_average,
            multiple=current_price / moving_average,
            zone=zone.value
        )

        return TrendResult(
            current_price=current_price,
            moving_average=moving_average,
            upper_band=upper_band,
            multiple=current_price / moving_average,
            zone=zone,
            computed_at=get_market_time(now)
        )
