"""
Main evaluation engine coordinator.

Orchestrates the weekly evaluation pipeline:
History Sources → Estimators → Aggregator → Decision Engine → Renderer → Delivery
"""

import time
from dataclasses import replace
from datetime import datetime
from typing import Callable, Optional

import structlog

from .config.defaults import DefaultConfig, get_default_config
from .data.sources import (
    BinanceKlineSource,
    CoinMetricsRatioSource,
    PriceHistoryProvider,
    RatioHistoryProvider,
)
from .delivery.base import BaseReportDelivery
from .delivery.stdout_delivery import StdoutReportDelivery
from .delivery.telegram_delivery import TelegramReportDelivery
from .errors import ConfigurationError, DataQualityError, SystemFailureError
from .metrics.calculator import IndicatorAggregator, IndicatorBundle
from .models.indicators import TradeSignal
from .report.formatter import render_indicator_details
from .strategy.engine import evaluate
from .utils.time import format_market_time, get_market_time, time_elapsed_seconds

logger = structlog.get_logger(__name__)


def build_deliveries(config: DefaultConfig) -> list[BaseReportDelivery]:
    """
    Create the delivery channels selected by ``delivery.method``.

    Raises:
        ConfigurationError: for an unknown method or missing Telegram credentials
    """
    method = config.delivery.method
    if method == "stdout":
        return [StdoutReportDelivery()]
    if method == "telegram":
        if not config.telegram.bot_token or not config.telegram.chat_id:
            raise ConfigurationError(
                "Telegram delivery requires bot_token and chat_id",
                field="telegram.bot_token"
            )
        return [TelegramReportDelivery(config.telegram, proxy=config.data_source.proxy)]

    raise ConfigurationError(f"Unknown delivery method: {method}", field="delivery.method")


def failure_notice(error: Exception) -> str:
    """Markdown notice for a failed evaluation; the error text is sent as inline code."""
    detail = str(error).replace("`", "'")
    return f"*Crypto Sentinel* evaluation failed: `{detail}`"


def _source_name(source: object) -> str:
    return getattr(source, "name", type(source).__name__)


class SentinelEngine:
    """
    Coordinator for one or more evaluations.

    Holds no state between runs apart from its collaborators: each run
    fetches fresh history, evaluates it and delivers the report.
    """

    def __init__(
        self,
        config: Optional[DefaultConfig] = None,
        price_source: Optional[PriceHistoryProvider] = None,
        ratio_source: Optional[RatioHistoryProvider] = None,
        deliveries: Optional[list[BaseReportDelivery]] = None
    ) -> None:
        self.config = config or get_default_config()
        self.price_source = price_source or BinanceKlineSource(self.config.data_source)
        self.ratio_source = ratio_source
        self.deliveries = deliveries if deliveries is not None else []
        self.aggregator = IndicatorAggregator(self.price_source, self.ratio_source, self.config)

        self.logger = logger.bind(
            price_source=_source_name(self.price_source),
            ratio_source=_source_name(self.ratio_source) if self.ratio_source else None
        )

    @classmethod
    def create_from_config(cls, config: DefaultConfig,
                           deliveries: Optional[list[BaseReportDelivery]] = None) -> "SentinelEngine":
        """Wire the HTTP sources and configured delivery channels."""
        return cls(
            config=config,
            price_source=BinanceKlineSource(config.data_source),
            ratio_source=CoinMetricsRatioSource(config.data_source),
            deliveries=deliveries if deliveries is not None else build_deliveries(config)
        )

    @property
    def source_label(self) -> str:
        names = [_source_name(self.price_source)]
        if self.ratio_source is not None:
            names.append(_source_name(self.ratio_source))
        return "+".join(names)

    def compute_indicators(self, now: Optional[datetime] = None) -> IndicatorBundle:
        """Run the estimators for one evaluation time."""
        bundle = self.aggregator.compute(now)

        if bundle.errors:
            self.logger.warning(
                "Indicators computed with neutral defaults",
                failed=sorted(bundle.errors)
            )
        else:
            self.logger.info("Indicators computed", valuation_index=bundle.valuation.index)

        return bundle

    def run_once(self, leverage: Optional[float] = None,
                 now: Optional[datetime] = None,
                 deliver: bool = True) -> TradeSignal:
        """
        Evaluate the current market and deliver the report.

        Args:
            leverage: Account leverage, defaults to the configured value
            now: Evaluation time, defaults to wall-clock UTC
            deliver: Send the report through the delivery channels

        Returns:
            TradeSignal whose report body includes the indicator details

        Raises:
            DataQualityError: if the valuation index cannot be computed
            SystemFailureError: if the price source fails for the valuation window
        """
        start = get_market_time()
        now = get_market_time(now)

        bundle = self.compute_indicators(now)
        snapshot = self.aggregator.build_snapshot(
            bundle, account_leverage=leverage, source_label=self.source_label
        )
        signal = evaluate(snapshot, self.config.strategy)

        details = render_indicator_details(bundle.valuation, bundle.trend, bundle.dispersion)
        signal = replace(signal, report_body=f"{signal.report_body}\n\n```\n{details}\n```")

        self.logger.info(
            "Evaluation complete",
            evaluated_at=format_market_time(now),
            action_asset_a=signal.action_asset_a.value,
            action_asset_b=signal.action_asset_b.value,
            amount_factor=signal.amount_factor,
            is_halted=signal.is_halted,
            elapsed_seconds=round(time_elapsed_seconds(start), 3)
        )

        if deliver:
            self.deliver(signal.report_body)

        return signal

    def deliver(self, text: str) -> int:
        """
        Send a report through every delivery channel.

        Failures are logged per channel and never raised.

        Returns:
            Number of channels that delivered successfully
        """
        delivered = 0
        for delivery in self.deliveries:
            result = delivery.deliver_with_retry(
                text,
                max_retries=self.config.delivery.retry_attempts,
                retry_delay=self.config.delivery.retry_delay_seconds
            )
            if result.succeeded:
                delivered += 1
            else:
                self.logger.error(
                    "Report delivery failed",
                    delivery_name=delivery.name,
                    status=result.status.value,
                    attempts=result.attempt_count,
                    error=result.message
                )
        return delivered

    def run_forever(self, interval_seconds: Optional[float] = None,
                    max_runs: Optional[int] = None,
                    sleep: Callable[[float], None] = time.sleep) -> int:
        """
        Run evaluations on a fixed interval.

        A failed evaluation is logged and reported through the delivery
        channels; the loop carries on with the next interval.

        Args:
            interval_seconds: Seconds between runs, defaults to the schedule config
            max_runs: Stop after this many runs, None for no limit
            sleep: Sleep function, injectable for tests

        Returns:
            Number of runs performed
        """
        interval = interval_seconds if interval_seconds is not None \
            else self.config.schedule.interval_seconds
        runs = 0

        self.logger.info("Scheduler started", interval_seconds=interval, max_runs=max_runs)

        if not self.config.schedule.run_on_start:
            sleep(interval)

        while max_runs is None or runs < max_runs:
            try:
                self.run_once()
            except (DataQualityError, SystemFailureError) as e:
                self.logger.error(
                    "Evaluation failed",
                    error=str(e),
                    error_type=type(e).__name__,
                    recoverable=e.recoverable
                )
                self.deliver(failure_notice(e))

            runs += 1
            if max_runs is not None and runs >= max_runs:
                break
            sleep(interval)

        self.logger.info("Scheduler stopped", runs=runs)
        return runs
