"""Valuation index (AHR999) calculations"""

import math
from collections.abc import Sequence
from datetime import datetime
from typing import Optional

import structlog

from ..config.defaults import ValuationParams
from ..data.sources import PriceHistoryProvider
from ..errors import IndicatorCalculationError, InsufficientDataError
from ..models.indicators import ValuationResult
from ..utils.time import ensure_utc, get_market_time

logger = structlog.get_logger(__name__)


def calculate_geometric_mean(prices: Sequence[float]) -> float:
    """
    Calculate the geometric mean of strictly positive prices

    GM = exp(sum(ln(p)) / n)

    Summing logarithms avoids the overflow a direct product of a few
    hundred prices would hit. Prices <= 0 are excluded from both the sum
    and the count.

    Args:
        prices: Price sequence in any order

    Returns:
        Geometric mean, or 0.0 if no price is positive
    """
    log_sum = 0.0
    count = 0
    for price in prices:
        if price > 0:
            log_sum += math.log(price)
            count += 1

    if count == 0:
        return 0.0

    return math.exp(log_sum / count)


def calculate_age_days(now: datetime, origin: datetime) -> int:
    """
    Whole days elapsed since ``origin``

    Args:
        now: Evaluation time (naive values are taken as UTC)
        origin: Asset inception time

    Returns:
        floor(total hours / 24); negative before the origin
    """
    elapsed = ensure_utc(now) - ensure_utc(origin)
    return math.floor(elapsed.total_seconds() / 3600 / 24)


def calculate_fair_value(age_days: int, coefficient: float = 5.84,
                         intercept: float = 17.01) -> float:
    """
    Power-law fair value for an asset of the given age

    fair = 10 ^ (coefficient * log10(age_days) - intercept)

    Args:
        age_days: Days since inception
        coefficient: Slope of the log-log regression
        intercept: Offset of the log-log regression

    Returns:
        Fair value, or 0.0 when age_days <= 0
    """
    if age_days <= 0:
        return 0.0

    exponent = coefficient * math.log10(age_days) - intercept
    return math.pow(10, exponent)


def calculate_valuation_index(current_price: float, cost_basis: float,
                              fair_value: float) -> float:
    """
    Combine price, cost basis and fair value into the valuation index

    index = (price / cost_basis) * (price / fair_value)

    Raises:
        IndicatorCalculationError: if either denominator is not positive
    """
    if cost_basis <= 0 or fair_value <= 0:
        raise IndicatorCalculationError(
            "Valuation index undefined for non-positive cost basis or fair value",
            metric_name="valuation_index",
            calculation_input={
                "current_price": current_price,
                "cost_basis": cost_basis,
                "fair_value": fair_value,
            }
        )

    return (current_price / cost_basis) * (current_price / fair_value)


class ValuationCalculator:
    """Valuation index estimator fed by an injected price history provider"""

    def __init__(self, provider: Optional[PriceHistoryProvider] = None,
                 params: Optional[ValuationParams] = None,
                 symbol: str = "BTCUSDT"):
        self.provider = provider
        self.params = params or ValuationParams()
        self.symbol = symbol

    def calculate(self, now: Optional[datetime] = None) -> ValuationResult:
        """
        Fetch the cost-basis window and compute the valuation index

        Raises:
            InsufficientDataError: if the provider returns fewer closes than the window
        """
        if self.provider is None:
            raise ValueError("ValuationCalculator.calculate requires a price history provider")

        closes = self.provider.fetch_closes(self.symbol, self.params.window)
        return self.calculate_from_closes(closes, now)

    def calculate_from_closes(self, closes: Sequence[float],
                              now: Optional[datetime] = None) -> ValuationResult:
        """
        Compute the valuation index from chronological daily closes

        Only the trailing ``window`` closes are used; the last one is the
        current price.

        Args:
            closes: Daily closes, oldest first
            now: Evaluation time, defaults to wall-clock UTC

        Returns:
            ValuationResult for the window
        """
        window = self.params.window
        if len(closes) < window:
            raise InsufficientDataError(
                f"Insufficient closes for valuation index: need {window}, got {len(closes)}",
                required_count=window,
                available_count=len(closes)
            )

        now = get_market_time(now)
        recent = list(closes[-window:])
        current_price = recent[-1]

        cost_basis = calculate_geometric_mean(recent)
        age_days = calculate_age_days(now, self.params.origin)
        fair_value = calculate_fair_value(
            age_days,
            self.params.fair_value_coefficient,
            self.params.fair_value_intercept
        )
        index = calculate_valuation_index(current_price, cost_basis, fair_value)

        logger.debug(
            "Calculated valuation index",
            index=index,
            current_price=current_price,
            cost_basis=cost_basis,
            fair_value=fair_value,
            age_days=age_days
        )

        return ValuationResult(
            current_price=current_price,
            cost_basis=cost_basis,
            fair_value=fair_value,
            index=index,
            age_days=age_days,
            computed_at=now
        )
