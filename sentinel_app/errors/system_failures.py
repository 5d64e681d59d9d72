"""
System failure error classifications.

These exceptions represent failures that an estimator or the delivery
layer cannot recover from by itself.
"""

from typing import Any, Dict, Optional


class SystemFailureError(Exception):
    """Base class for unrecoverable system failures."""

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.context = context or {}
        self.recoverable = False


class IndicatorCalculationError(SystemFailureError):
    """Indicator arithmetic produced an undefined result."""

    def __init__(self, message: str, metric_name: Optional[str] = None,
                 calculation_input: Optional[Dict[str, Any]] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.metric_name = metric_name
        self.calculation_input = calculation_input


class SourceUnavailableError(SystemFailureError):
    """Remote market data source could not be reached or answered badly."""

    def __init__(self, message: str, source: Optional[str] = None,
                 status_code: Optional[int] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.source = source
        self.status_code = status_code


class DeliveryError(SystemFailureError):
    """Report delivery system failures."""

    def __init__(self, message: str, delivery_method: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.delivery_method = delivery_method


class ConfigurationError(SystemFailureError):
    """Configuration is missing a required value or holds an invalid one."""

    def __init__(self, message: str, field: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.field = field
