"""
Error classification for indicator calculation and report delivery.

Data quality errors describe missing or unusable market data and can be
handled by defaulting the affected indicator. System failures describe
conditions the caller cannot paper over.
"""

from .data_quality import (
    DataQualityError,
    EmptyDataError,
    InsufficientDataError,
    MalformedSampleError,
)
from .system_failures import (
    ConfigurationError,
    DeliveryError,
    IndicatorCalculationError,
    SourceUnavailableError,
    SystemFailureError,
)

__all__ = [
    # Data Quality Errors
    "DataQualityError",
    "InsufficientDataError",
    "EmptyDataError",
    "MalformedSampleError",
    # System Failures
    "SystemFailureError",
    "IndicatorCalculationError",
    "SourceUnavailableError",
    "DeliveryError",
    "ConfigurationError",
]
