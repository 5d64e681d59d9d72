"""Report delivery mechanisms."""

from .base import (
    BaseReportDelivery,
    DeliveryResult,
    DeliveryStatus,
    ReportDeliveryError,
    ReportDeliveryPermanentError,
    ReportDeliveryRetryableError,
)
from .stdout_delivery import StdoutReportDelivery
from .telegram_delivery import TelegramReportDelivery

__all__ = [
    "BaseReportDelivery",
    "DeliveryResult",
    "DeliveryStatus",
    "ReportDeliveryError",
    "ReportDeliveryPermanentError",
    "ReportDeliveryRetryableError",
    "StdoutReportDelivery",
    "TelegramReportDelivery",
]
