"""
Data quality error classifications for market history processing.

These exceptions categorize the ways a retrieved price or ratio series can
be unusable for an estimator.
"""

from typing import Any, Dict, Optional


class DataQualityError(Exception):
    """Base class for data quality issues that can be handled gracefully."""

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.context = context or {}
        self.recoverable = True


class InsufficientDataError(DataQualityError):
    """Series is shorter than the estimator's required window."""

    def __init__(self, message: str, required_count: Optional[int] = None,
                 available_count: Optional[int] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.required_count = required_count
        self.available_count = available_count


class EmptyDataError(DataQualityError):
    """No usable samples remain after parsing."""

    def __init__(self, message: str, data_type: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.data_type = data_type


class MalformedSampleError(DataQualityError):
    """A single entry could not be parsed into a number."""

    def __init__(self, message: str, raw_data: Optional[str] = None,
                 expected_format: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.raw_data = raw_data
        self.expected_format = expected_format
