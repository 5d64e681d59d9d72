"""Pytest configuration and shared fixtures."""

from datetime import datetime, timezone
from typing import Any, Optional

import pytest

from sentinel_app.models.indicators import (
    BandPosition,
    MarketSnapshot,
    TrendZone,
)

EVALUATION_TIME = datetime(2024, 1, 1, 0, 0, 0, tzinfo=timezone.utc)


class FakePriceSource:
    """In-memory price history provider."""

    name = "fake-prices"

    def __init__(self, closes: list[float]):
        self.closes = closes
        self.calls: list[tuple[str, int]] = []

    def fetch_closes(self, symbol: str, limit: int) -> list[float]:
        self.calls.append((symbol, limit))
        return self.closes[-limit:]


class FakeRatioSource:
    """In-memory ratio history provider; samples are most recent first."""

    name = "fake-ratios"

    def __init__(self, samples: list[float], fail_history: Optional[Exception] = None):
        self.samples = samples
        self.fail_history = fail_history

    def fetch_ratios(self, limit: int) -> list[float]:
        if self.fail_history is not None:
            raise self.fail_history
        return self.samples[:limit]

    def fetch_latest_ratio(self) -> float:
        return self.samples[0]


@pytest.fixture
def evaluation_time() -> datetime:
    """Fixed evaluation time for reproducible indicator values."""
    return EVALUATION_TIME


@pytest.fixture
def make_snapshot():
    """Factory for snapshots with neutral defaults."""
    def _make(**overrides: Any) -> MarketSnapshot:
        values: dict[str, Any] = {
            "price_asset_a": 42000.0,
            "price_asset_b": 2300.0,
            "valuation_index": 0.70,
            "dispersion_z": 1.0,
            "trend_zone": TrendZone.NORMAL,
            "trend_cross_signal": False,
            "asset_b_band_position": BandPosition.MIDDLE,
            "account_leverage": 1.0,
            "timestamp": EVALUATION_TIME,
            "source_label": "test",
        }
        values.update(overrides)
        return MarketSnapshot(**values)

    return _make


@pytest.fixture
def flat_closes() -> list[float]:
    """Two years of constant daily closes."""
    return [40000.0] * 730


@pytest.fixture
def price_source(flat_closes) -> FakePriceSource:
    return FakePriceSource(flat_closes)


@pytest.fixture
def ratio_samples() -> list[float]:
    """Ratio history, most recent first."""
    return [3.0, 2.0, 1.0, 2.0, 2.0]


@pytest.fixture
def ratio_source(ratio_samples) -> FakeRatioSource:
    return FakeRatioSource(ratio_samples)


@pytest.fixture
def kline_payload() -> list[list[Any]]:
    """Binance kline rows, oldest first."""
    return [
        [1704067200000, "42000.0", "42500.0", "41800.0", "42283.58", "1200.5",
         1704153599999, "0", 100, "0", "0", "0"],
        [1704153600000, "42283.58", "45000.0", "42100.0", "44179.55", "1800.1",
         1704239999999, "0", 120, "0", "0", "0"],
    ]


@pytest.fixture
def ratio_payload() -> dict[str, Any]:
    """CoinMetrics timeseries document, oldest first as the API pages it."""
    return {
        "data": [
            {"asset": "btc", "time": "2024-01-01T00:00:00.000000000Z", "CapMVRVCur": "1.80"},
            {"asset": "btc", "time": "2024-01-02T00:00:00.000000000Z", "CapMVRVCur": "1.85"},
        ]
    }


@pytest.fixture
def make_price_source():
    """Factory for in-memory price providers."""
    return FakePriceSource


@pytest.fixture
def make_ratio_source():
    """Factory for in-memory ratio providers."""
    return FakeRatioSource
