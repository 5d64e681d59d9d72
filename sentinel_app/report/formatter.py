"""
Markdown rendering of trade signals.

The report is the human-facing artifact delivered to Telegram or stdout.
Rendering is pure: every value comes from the snapshot and the signal, and
the report date defaults to the snapshot timestamp.
"""

from datetime import datetime
from typing import Optional

from ..config.defaults import StrategyParams
from ..models.indicators import (
    BandPosition,
    DispersionResult,
    MarketSnapshot,
    PrimaryAction,
    SecondaryAction,
    TradeSignal,
    TrendResult,
    TrendZone,
    ValuationResult,
    ValuationZone,
)
from ..strategy.engine import classify_valuation_zone
from ..utils.time import format_report_date

REPORT_TITLE = "Crypto Sentinel Weekly Report"

VALUATION_ZONE_LABELS = {
    ValuationZone.STRONG_BUY: "Bottom zone",
    ValuationZone.DCA_BUY: "Accumulation zone",
    ValuationZone.HOLD: "Hold zone",
    ValuationZone.SELL: "Bubble zone",
}

TREND_ZONE_LABELS = {
    TrendZone.NORMAL: "Normal",
    TrendZone.BELOW_BAND: "Below two-year MA",
    TrendZone.ABOVE_UPPER_BAND: "Above upper band",
}

BAND_POSITION_LABELS = {
    BandPosition.LOWER: "Lower band (cheap)",
    BandPosition.MIDDLE: "Middle band",
    BandPosition.UPPER: "Upper band (expensive)",
}

PRIMARY_ACTION_LABELS = {
    PrimaryAction.HALT: "HALT - stop all buying",
    PrimaryAction.SELL_ALERT: "SELL ALERT - cycle top signal",
    PrimaryAction.STRONG_BUY: "STRONG BUY - heavy accumulation",
    PrimaryAction.DCA_BUY: "DCA BUY - regular accumulation",
    PrimaryAction.HOLD: "HOLD - stop buying, keep position",
    PrimaryAction.HOLD_CAUTION: "HOLD (CAUTION) - overheated, buying paused",
    PrimaryAction.SELL: "SELL - take profits in batches",
}

SECONDARY_ACTION_LABELS = {
    SecondaryAction.HALT: "HALT - stop all buying",
    SecondaryAction.SELL_ALERT: "SELL ALERT - cycle top signal",
    SecondaryAction.BUY_HEAVY: "BUY HEAVY - asset B is cheap",
    SecondaryAction.SELL_OR_SWAP: "SELL or swap into asset A",
    SecondaryAction.FOLLOW_PRIMARY: "Follow asset A",
}


def leverage_status(leverage: float, params: Optional[StrategyParams] = None) -> str:
    """SAFE, ALERT or DANGER for an account leverage ratio."""
    params = params or StrategyParams()
    if leverage > params.max_leverage:
        return "DANGER"
    if leverage > params.leverage_alert:
        return "ALERT"
    return "SAFE"


def render_report(snapshot: MarketSnapshot, signal: TradeSignal,
                  report_date: Optional[datetime] = None,
                  params: Optional[StrategyParams] = None) -> str:
    """
    Render a trade signal as a markdown report

    Args:
        snapshot: Snapshot the signal was evaluated from
        signal: Evaluated signal
        report_date: Date shown in the title, defaults to the snapshot timestamp
        params: Thresholds used for the zone and leverage labels

    Returns:
        Markdown text
    """
    params = params or StrategyParams()
    date_str = format_report_date(report_date or snapshot.timestamp)
    zone = classify_valuation_zone(snapshot.valuation_index, params)

    lines = [f"*{REPORT_TITLE}* ({date_str})", ""]

    if signal.has_warning:
        lines += [f"*WARNING:* {signal.warning_message}", ""]

    lines += [
        "*Risk*",
        f"- Leverage: {snapshot.account_leverage:.2f}x "
        f"({leverage_status(snapshot.account_leverage, params)})",
        f"- Pi cycle cross: {'YES' if snapshot.trend_cross_signal else 'no'}",
        f"- Two-year MA: {TREND_ZONE_LABELS.get(snapshot.trend_zone, str(snapshot.trend_zone))}",
        "",
        "*Indicators*",
        f"- AHR999: {snapshot.valuation_index:.4f} ({VALUATION_ZONE_LABELS[zone]})",
        f"- MVRV-Z: {snapshot.dispersion_z:.2f}",
        f"- Asset B channel: "
        f"{BAND_POSITION_LABELS.get(snapshot.asset_b_band_position, str(snapshot.asset_b_band_position))}",
        "",
        "*Recommendation*",
        f"- Asset A: {PRIMARY_ACTION_LABELS[signal.action_asset_a]}",
        f"- Amount factor: {signal.amount_factor:.1f}x",
        f"- Asset B: {SECONDARY_ACTION_LABELS[signal.action_asset_b]}",
    ]

    if snapshot.source_label:
        lines += ["", f"_Source: {snapshot.source_label}_"]

    return "\n".join(lines)


def render_indicator_details(valuation: ValuationResult,
                             trend: Optional[TrendResult] = None,
                             dispersion: Optional[DispersionResult] = None) -> str:
    """Plain-text breakdown of the estimator outputs, for the CLI."""
    lines = [
        f"Price:            {valuation.current_price:.2f}",
        f"Cost basis (GM):  {valuation.cost_basis:.2f}",
        f"Fair value:       {valuation.fair_value:.2f}",
        f"Age (days):       {valuation.age_days}",
        f"AHR999:           {valuation.index:.4f}",
    ]

    if trend is None:
        lines.append("Two-year MA:      unavailable")
    else:
        lines += [
            f"Two-year MA:      {trend.moving_average:.2f}",
            f"Upper band:       {trend.upper_band:.2f}",
            f"MA multiple:      {trend.multiple:.2f} ({trend.zone.value})",
        ]

    if dispersion is None:
        lines.append("MVRV-Z:           unavailable")
    else:
        lines += [
            f"MVRV ratio:       {dispersion.current_ratio:.4f}",
            f"MVRV-Z:           {dispersion.z_score:.2f}",
            f"Z-score source:   {dispersion.source.value} (n={dispersion.sample_size})",
        ]

    return "\n".join(lines)
