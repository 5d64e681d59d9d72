"""MVRV Z-score (dispersion) calculations"""

import math
from collections.abc import Sequence
from datetime import datetime
from typing import Optional

import structlog

from ..config.defaults import DispersionParams
from ..data.sources import RatioHistoryProvider
from ..errors import DataQualityError, EmptyDataError, SourceUnavailableError
from ..models.indicators import DispersionResult, DispersionSource
from ..utils.time import get_market_time

logger = structlog.get_logger(__name__)


def newton_sqrt(value: float, max_iterations: int = 100) -> float:
    """
    Square root by Newton iteration

    z' = z - (z^2 - x) / 2z

    The starting guess is the power of two nearest the root, so the
    iteration converges in a handful of steps for any finite input and
    stops early once the estimate no longer changes.

    Args:
        value: Operand
        max_iterations: Iteration cap

    Returns:
        Square root of ``value``; 0.0 for zero or negative input
    """
    if value <= 0:
        return 0.0

    _, exponent = math.frexp(value)
    z = math.ldexp(1.0, (exponent + 1) // 2)

    for _ in range(max_iterations):
        next_z = z - (z * z - value) / (2 * z)
        if next_z == z:
            break
        # Newton approaches from above; a step that grows is float jitter
        if next_z > z:
            break
        z = next_z

    return z


def sample_mean(samples: Sequence[float]) -> float:
    """Arithmetic mean, 0.0 for an empty sequence"""
    if not samples:
        return 0.0
    return sum(samples) / len(samples)


def sample_variance(samples: Sequence[float]) -> float:
    """
    Unbiased sample variance (divisor N - 1)

    Returns:
        Variance, or 0.0 when fewer than two samples are given
    """
    if len(samples) < 2:
        return 0.0

    mean = sample_mean(samples)
    squared = sum((s - mean) * (s - mean) for s in samples)
    return squared / (len(samples) - 1)


def calculate_z_score(samples: Sequence[float], max_iterations: int = 100) -> float:
    """
    Z-score of the first (most recent) sample against the whole sample

    z = (samples[0] - mean) / std

    Returns:
        Z-score, or 0.0 when std is zero or fewer than two samples are given
    """
    if len(samples) < 2:
        return 0.0

    std = newton_sqrt(sample_variance(samples), max_iterations)
    if std == 0:
        return 0.0

    return (samples[0] - sample_mean(samples)) / std


class DispersionCalculator:
    """Z-score estimator fed by an injected ratio history provider"""

    def __init__(self, provider: Optional[RatioHistoryProvider] = None,
                 params: Optional[DispersionParams] = None):
        self.provider = provider
        self.params = params or DispersionParams()

    def _require_provider(self) -> RatioHistoryProvider:
        if self.provider is None:
            raise ValueError("DispersionCalculator requires a ratio history provider")
        return self.provider

    def calculate(self, now: Optional[datetime] = None) -> DispersionResult:
        """Fetch the lookback history and compute the Z-score"""
        samples = self._require_provider().fetch_ratios(self.params.lookback_days)
        return self.calculate_from_samples(samples, now)

    def calculate_from_samples(self, samples: Sequence[float],
                               now: Optional[datetime] = None) -> DispersionResult:
        """
        Compute the Z-score from ratio samples, most recent first

        Raises:
            EmptyDataError: if no samples are supplied
        """
        if not samples:
            raise EmptyDataError(
                "No ratio samples for Z-score calculation",
                data_type="ratio"
            )

        z_score = calculate_z_score(samples, self.params.sqrt_iterations)

        logger.debug(
            "Calculated dispersion Z-score",
            current_ratio=samples[0],
            z_score=z_score,
            sample_size=len(samples)
        )

        return DispersionResult(
            current_ratio=samples[0],
            z_score=z_score,
            sample_size=len(samples),
            computed_at=get_market_time(now),
            source=DispersionSource.HISTORICAL
        )

    def calculate_approximate(self, current_ratio: float,
                              now: Optional[datetime] = None) -> DispersionResult:
        """
        Degraded single-point Z-score against fixed historical constants

        The constants are a rough placeholder, so the result is labelled
        APPROXIMATE.
        """
        z_score = (current_ratio - self.params.fallback_mean) / self.params.fallback_std

        return DispersionResult(
            current_ratio=current_ratio,
            z_score=z_score,
            sample_size=1,
            computed_at=get_market_time(now),
            source=DispersionSource.APPROXIMATE
        )

    def calculate_with_fallback(self, now: Optional[datetime] = None) -> DispersionResult:
        """
        Historical Z-score, degrading to the approximate path on data failure

        Errors from the approximate path propagate.
        """
        try:
            return self.calculate(now)
        except (DataQualityError, SourceUnavailableError) as e:
            logger.warning(
                "Historical Z-score unavailable, using approximate constants",
                error=str(e),
                error_type=type(e).__name__
            )

        current_ratio = self._require_provider().fetch_latest_ratio()
        return self.calculate_approximate(current_ratio, now)
