"""Tests for the indicator aggregator and snapshot assembly."""

import math
from dataclasses import replace
from unittest.mock import Mock

import pytest

from sentinel_app.config.defaults import ExternalSignalParams, TrendParams, get_default_config
from sentinel_app.data.sources import BinanceKlineSource
from sentinel_app.errors import EmptyDataError, InsufficientDataError
from sentinel_app.metrics.calculator import IndicatorAggregator, IndicatorBundle, build_snapshot
from sentinel_app.models.indicators import BandPosition, DispersionSource, TrendZone


class TestIndicatorAggregator:
    """Test estimator aggregation and neutral defaults."""

    def test_complete_bundle(self, price_source, ratio_source, evaluation_time):
        aggregator = IndicatorAggregator(price_source, ratio_source)
        bundle = aggregator.compute(evaluation_time)

        assert bundle.is_complete
        assert bundle.errors == {}
        assert 0.59 < bundle.valuation.index < 0.61
        assert bundle.trend.zone is TrendZone.NORMAL
        assert math.isclose(bundle.dispersion.z_score, math.sqrt(2.0))

    def test_trend_failure_uses_neutral_zone(self, make_price_source, ratio_source,
                                              evaluation_time):
        """Too little history for the 730-day MA leaves the zone NORMAL."""
        aggregator = IndicatorAggregator(make_price_source([40000.0] * 300), ratio_source)
        bundle = aggregator.compute(evaluation_time)

        assert bundle.trend is None
        assert "trend" in bundle.errors
        assert aggregator.build_snapshot(bundle).trend_zone is TrendZone.NORMAL

    def test_trend_window_beyond_kline_limit_uses_neutral_zone(self, ratio_source,
                                                                evaluation_time):
        """A trend window the kline endpoint cannot serve degrades to NORMAL."""
        rows = [[0, "0", "0", "0", "40000.0", "0", 0, "0", 0, "0", "0", "0"]] * 200
        client = Mock()
        client.get_json.return_value = rows
        config = replace(get_default_config(), trend=TrendParams(window=1200))

        aggregator = IndicatorAggregator(BinanceKlineSource(client=client), ratio_source, config)
        bundle = aggregator.compute(evaluation_time)

        assert bundle.trend is None
        assert "1200" in bundle.errors["trend"]
        assert bundle.dispersion is not None
        assert aggregator.build_snapshot(bundle).trend_zone is TrendZone.NORMAL

    def test_missing_ratio_source_uses_neutral_z(self, price_source, evaluation_time):
        aggregator = IndicatorAggregator(price_source)
        bundle = aggregator.compute(evaluation_time)

        assert bundle.dispersion is None
        assert bundle.errors["dispersion"] == "no ratio source configured"
        assert aggregator.build_snapshot(bundle).dispersion_z == 0.0

    def test_dispersion_falls_back_to_approximate(self, price_source, make_ratio_source,
                                                  evaluation_time):
        source = make_ratio_source([2.7], fail_history=EmptyDataError("empty"))
        bundle = IndicatorAggregator(price_source, source).compute(evaluation_time)

        assert bundle.dispersion.source is DispersionSource.APPROXIMATE
        assert "dispersion" not in bundle.errors

    def test_valuation_failure_propagates(self, make_price_source, ratio_source,
                                          evaluation_time):
        """The valuation index drives the zone, so its failure is not masked."""
        aggregator = IndicatorAggregator(make_price_source([40000.0] * 50), ratio_source)
        with pytest.raises(InsufficientDataError):
            aggregator.compute(evaluation_time)

    def test_build_snapshot_uses_configured_inputs(self, price_source, ratio_source,
                                                   evaluation_time):
        config = replace(
            get_default_config(),
            signals=ExternalSignalParams(
                trend_cross_signal=True, asset_b_band_position="lower", asset_b_price=2300.0
            )
        )
        aggregator = IndicatorAggregator(price_source, ratio_source, config)
        snapshot = aggregator.build_snapshot(
            aggregator.compute(evaluation_time), account_leverage=1.3, source_label="unit"
        )

        assert snapshot.account_leverage == 1.3
        assert snapshot.trend_cross_signal is True
        assert snapshot.asset_b_band_position is BandPosition.LOWER
        assert snapshot.price_asset_b == 2300.0
        assert snapshot.price_asset_a == 40000.0
        assert snapshot.timestamp == evaluation_time
        assert snapshot.source_label == "unit"

    def test_build_snapshot_defaults_leverage_from_config(self, price_source, evaluation_time):
        aggregator = IndicatorAggregator(price_source)
        snapshot = aggregator.build_snapshot(aggregator.compute(evaluation_time))
        assert snapshot.account_leverage == 1.0


class TestBuildSnapshot:
    """Test the module-level snapshot builder."""

    def test_neutral_override(self, price_source, evaluation_time):
        bundle = IndicatorAggregator(price_source).compute(evaluation_time)
        snapshot = build_snapshot(bundle, account_leverage=1.0, neutral_dispersion_z=0.5)
        assert snapshot.dispersion_z == 0.5

    def test_bundle_completeness(self, price_source, evaluation_time):
        bundle = IndicatorAggregator(price_source).compute(evaluation_time)
        assert not bundle.is_complete
        assert not IndicatorBundle(valuation=bundle.valuation).is_complete
