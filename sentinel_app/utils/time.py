"""
Time utilities for evaluation timestamps and report dates.

Estimators accept an explicit evaluation time so that results are
reproducible; these helpers supply the wall-clock fallback and keep every
timestamp in UTC.
"""

from datetime import datetime, timezone
from typing import Optional


def ensure_utc(ts: datetime) -> datetime:
    """
    Normalize a datetime to aware UTC.

    Args:
        ts: Aware or naive datetime; naive values are taken as UTC

    Returns:
        The same instant as an aware UTC datetime
    """
    if ts.tzinfo is None:
        return ts.replace(tzinfo=timezone.utc)
    return ts.astimezone(timezone.utc)


def get_market_time(market_ts: Optional[datetime] = None) -> datetime:
    """
    Get the evaluation time, preferring a supplied timestamp over wall-clock time.

    Args:
        market_ts: Optional explicit evaluation time

    Returns:
        Evaluation time as UTC datetime
    """
    if market_ts is not None:
        return ensure_utc(market_ts)

    return datetime.now(timezone.utc)


def format_report_date(ts: Optional[datetime] = None) -> str:
    """
    Format a timestamp as the report date (YYYY-MM-DD, UTC).

    Args:
        ts: Timestamp to format, defaults to now

    Returns:
        Date string
    """
    return get_market_time(ts).strftime("%Y-%m-%d")


def format_market_time(market_ts: datetime) -> str:
    """
    Format a timestamp for logging and serialized output.

    Args:
        market_ts: Timestamp to format

    Returns:
        ISO8601 formatted string
    """
    return ensure_utc(market_ts).isoformat()


def time_elapsed_seconds(start_time: datetime, end_time: Optional[datetime] = None) -> float:
    """
    Calculate elapsed time in seconds between two timestamps.

    Args:
        start_time: Start timestamp
        end_time: End timestamp, defaults to current time

    Returns:
        Elapsed time in seconds
    """
    end_time = get_market_time(end_time)
    return (end_time - ensure_utc(start_time)).total_seconds()
