"""
Multi-factor decision engine.

Maps a market snapshot to a trade signal through a strict priority cascade:
risk circuit breakers first, then the valuation zone, then the overheat
override, then the secondary asset sub-strategy. The first two stages
short-circuit everything after them.

The cascade is split in two steps. ``classify`` decides which stage owns
the outcome and returns a tagged classification; ``evaluate`` turns each
classification into a signal. Both are pure; the only side effect is audit
logging.
"""

from dataclasses import dataclass, replace
from typing import Callable, Optional, Union, assert_never

from ..config.defaults import StrategyParams
from ..logging.config import get_decision_logger, log_stage_decision
from ..models.indicators import (
    BandPosition,
    MarketSnapshot,
    PrimaryAction,
    SecondaryAction,
    TradeSignal,
    TrendZone,
    ValuationZone,
)

decision_logger = get_decision_logger(__name__)

DEFAULT_PARAMS = StrategyParams()

ReportRenderer = Callable[[MarketSnapshot, TradeSignal], str]


@dataclass(frozen=True)
class LeverageBreach:
    """Account leverage is above the allowed maximum."""
    leverage: float
    limit: float


@dataclass(frozen=True)
class TopSignal:
    """A cycle-top indicator fired."""
    trend_cross_signal: bool
    trend_zone: TrendZone


@dataclass(frozen=True)
class ZoneBased:
    """No breaker fired; the valuation zone decides."""
    zone: ValuationZone
    overheated: bool


Classification = Union[LeverageBreach, TopSignal, ZoneBased]

ZONE_ACTIONS = {
    ValuationZone.STRONG_BUY: PrimaryAction.STRONG_BUY,
    ValuationZone.DCA_BUY: PrimaryAction.DCA_BUY,
    ValuationZone.HOLD: PrimaryAction.HOLD,
    ValuationZone.SELL: PrimaryAction.SELL,
}

BUYING_ZONES = frozenset({ValuationZone.STRONG_BUY, ValuationZone.DCA_BUY})


def classify_valuation_zone(index: float,
                            params: StrategyParams = DEFAULT_PARAMS) -> ValuationZone:
    """
    Place the valuation index in one of four zones

    Each breakpoint belongs to the zone above it: ``index == 0.45`` is
    DCA_BUY, ``index == 1.20`` is HOLD and ``index == 5.00`` is SELL.
    Values that compare false against every breakpoint (NaN) land in SELL.
    """
    if index < params.strong_buy_below:
        return ValuationZone.STRONG_BUY
    if index < params.dca_buy_below:
        return ValuationZone.DCA_BUY
    if index < params.hold_below:
        return ValuationZone.HOLD
    return ValuationZone.SELL


def zone_amount_factor(zone: ValuationZone,
                       params: StrategyParams = DEFAULT_PARAMS) -> float:
    """Capital multiplier for a valuation zone."""
    if zone is ValuationZone.STRONG_BUY:
        return params.strong_buy_factor
    if zone is ValuationZone.DCA_BUY:
        return params.dca_buy_factor
    return 0.0


def secondary_action(band_position: BandPosition, buying_allowed: bool) -> SecondaryAction:
    """
    Secondary asset sub-strategy

    Only the buying-allowed flag links it to the primary asset's outcome.
    """
    if band_position == BandPosition.LOWER and buying_allowed:
        return SecondaryAction.BUY_HEAVY
    if band_position == BandPosition.UPPER:
        return SecondaryAction.SELL_OR_SWAP
    return SecondaryAction.FOLLOW_PRIMARY


def classify(snapshot: MarketSnapshot,
             params: StrategyParams = DEFAULT_PARAMS) -> Classification:
    """Decide which cascade stage owns the outcome for ``snapshot``."""
    if snapshot.account_leverage > params.max_leverage:
        log_stage_decision(
            decision_logger, "leverage_breaker", True,
            f"leverage {snapshot.account_leverage:.2f} above {params.max_leverage:.2f}"
        )
        return LeverageBreach(leverage=snapshot.account_leverage, limit=params.max_leverage)
    log_stage_decision(decision_logger, "leverage_breaker", False, "leverage within limit")

    if snapshot.trend_cross_signal or snapshot.trend_zone == TrendZone.ABOVE_UPPER_BAND:
        log_stage_decision(
            decision_logger, "top_signal_breaker", True, "cycle top signal",
            context={
                "trend_cross_signal": snapshot.trend_cross_signal,
                "trend_zone": str(snapshot.trend_zone),
            }
        )
        return TopSignal(
            trend_cross_signal=snapshot.trend_cross_signal,
            trend_zone=snapshot.trend_zone
        )
    log_stage_decision(decision_logger, "top_signal_breaker", False, "no top signal")

    zone = classify_valuation_zone(snapshot.valuation_index, params)
    overheated = zone in BUYING_ZONES and snapshot.dispersion_z > params.overheat_z_score
    log_stage_decision(
        decision_logger, "overheat_override", overheated,
        f"zone {zone.value}, dispersion z {snapshot.dispersion_z:.2f}"
    )
    return ZoneBased(zone=zone, overheated=overheated)


def _decide(snapshot: MarketSnapshot, classification: Classification,
            params: StrategyParams) -> TradeSignal:
    match classification:
        case LeverageBreach(leverage=leverage, limit=limit):
            return TradeSignal(
                action_asset_a=PrimaryAction.HALT,
                action_asset_b=SecondaryAction.HALT,
                amount_factor=0.0,
                warning_message=(
                    f"Leverage too high ({leverage:.2f}x > {limit:.1f}x)! "
                    "Stop buying and add margin."
                ),
                is_halted=True,
            )
        case TopSignal():
            return TradeSignal(
                action_asset_a=PrimaryAction.SELL_ALERT,
                action_asset_b=SecondaryAction.SELL_ALERT,
                amount_factor=0.0,
                warning_message=(
                    "Top signal triggered: Pi cycle cross or price above the "
                    "two-year MA upper band. Buying is suspended."
                ),
                is_halted=True,
            )
        case ZoneBased(overheated=True):
            return TradeSignal(
                action_asset_a=PrimaryAction.HOLD_CAUTION,
                action_asset_b=secondary_action(snapshot.asset_b_band_position, False),
                amount_factor=0.0,
                warning_message=(
                    f"MVRV-Z score ({snapshot.dispersion_z:.2f}) is extremely "
                    "overheated; buying paused."
                ),
            )
        case ZoneBased(zone=zone, overheated=False):
            return TradeSignal(
                action_asset_a=ZONE_ACTIONS[zone],
                action_asset_b=secondary_action(
                    snapshot.asset_b_band_position, zone in BUYING_ZONES
                ),
                amount_factor=zone_amount_factor(zone, params),
            )
        case _:
            assert_never(classification)


def evaluate(snapshot: MarketSnapshot,
             params: Optional[StrategyParams] = None,
             renderer: Optional[ReportRenderer] = None) -> TradeSignal:
    """
    Evaluate a snapshot into a trade signal

    Total over its input type: out-of-range numbers are compared at face
    value and never raise.

    Args:
        snapshot: Fully-populated market snapshot
        params: Cascade thresholds, defaults to the built-in values
        renderer: Report renderer, defaults to the markdown formatter

    Returns:
        Freshly built TradeSignal with the rendered report body
    """
    params = params or DEFAULT_PARAMS
    if renderer is None:
        from ..report.formatter import render_report
        renderer = render_report

    signal = _decide(snapshot, classify(snapshot, params), params)

    decision_logger.info(
        "Snapshot evaluated",
        action_asset_a=signal.action_asset_a.value,
        action_asset_b=signal.action_asset_b.value,
        amount_factor=signal.amount_factor,
        is_halted=signal.is_halted
    )

    return replace(signal, report_body=renderer(snapshot, signal))
