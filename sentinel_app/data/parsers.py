"""
Parsers for raw market history payloads.

This module turns exchange kline payloads and on-chain metric payloads into
plain float series. Individual entries that cannot be parsed are skipped and
counted; a payload only fails as a whole when nothing usable remains.
"""

import math
from typing import Any

import structlog

from ..errors import EmptyDataError, MalformedSampleError

logger = structlog.get_logger(__name__)

# Binance kline row: [open_time, open, high, low, close, volume, ...]
KLINE_CLOSE_INDEX = 4


def parse_number(raw: Any) -> float:
    """
    Parse a single numeric sample.

    Exchanges deliver prices as decimal strings; plain numbers are accepted
    as well. Booleans, NaN and infinities are rejected.

    Raises:
        MalformedSampleError: if the value is not a finite number
    """
    if isinstance(raw, bool) or raw is None:
        raise MalformedSampleError(
            f"Sample is not numeric: {raw!r}",
            raw_data=repr(raw),
            expected_format="decimal string or number"
        )

    try:
        value = float(raw)
    except (TypeError, ValueError):
        raise MalformedSampleError(
            f"Sample is not numeric: {raw!r}",
            raw_data=repr(raw)[:100],
            expected_format="decimal string or number"
        )

    if math.isnan(value) or math.isinf(value):
        raise MalformedSampleError(
            f"Sample is not finite: {raw!r}",
            raw_data=repr(raw),
            expected_format="finite number"
        )

    return value


def parse_kline_closes(payload: Any) -> list[float]:
    """
    Extract daily closing prices from a Binance kline payload.

    Args:
        payload: Decoded JSON array of kline rows, oldest first

    Returns:
        Closing prices in chronological order. May be shorter than the
        payload when rows are skipped.

    Raises:
        MalformedSampleError: if the payload is not a list
    """
    if not isinstance(payload, list):
        raise MalformedSampleError(
            f"Kline payload must be a list, got {type(payload).__name__}",
            raw_data=str(payload)[:100],
            expected_format="list of kline rows"
        )

    closes = []
    skipped = 0
    for row in payload:
        if not isinstance(row, (list, tuple)) or len(row) <= KLINE_CLOSE_INDEX:
            skipped += 1
            continue
        try:
            closes.append(parse_number(row[KLINE_CLOSE_INDEX]))
        except MalformedSampleError:
            skipped += 1

    if skipped:
        logger.warning(
            "Skipped malformed kline rows",
            skipped=skipped,
            parsed=len(closes)
        )

    return closes


def parse_ratio_samples(payload: Any, metric: str = "CapMVRVCur") -> list[float]:
    """
    Extract ratio samples from a CoinMetrics asset-metrics payload.

    When every row carries a ``time`` the result is ordered most-recent-first
    regardless of the order the API returned the rows in; otherwise the
    payload order is kept.

    Args:
        payload: Decoded JSON object with a ``data`` array
        metric: Name of the metric column to read

    Returns:
        Ratio samples, most recent first

    Raises:
        EmptyDataError: if no sample could be parsed
    """
    rows = payload.get("data") if isinstance(payload, dict) else None
    if not rows:
        raise EmptyDataError(
            "Ratio payload contains no data rows",
            data_type=metric
        )

    parsed = []
    skipped = 0
    for position, row in enumerate(rows):
        if not isinstance(row, dict):
            skipped += 1
            continue
        try:
            value = parse_number(row.get(metric))
        except MalformedSampleError:
            skipped += 1
            continue
        # ISO-8601 strings of one feed share a format, so they sort chronologically
        parsed.append((str(row.get("time") or ""), position, value))

    if skipped:
        logger.warning(
            "Skipped malformed ratio samples",
            metric=metric,
            skipped=skipped,
            parsed=len(parsed)
        )

    if not parsed:
        raise EmptyDataError(
            f"No usable {metric} samples in payload",
            data_type=metric,
            context={"rows": len(rows)}
        )

    # Rows without timestamps are taken to be most-recent-first already
    if all(timestamp for timestamp, _, _ in parsed):
        parsed.sort(key=lambda item: (item[0], -item[1]), reverse=True)
    return [value for _, _, value in parsed]
