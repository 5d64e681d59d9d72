"""Base classes for report delivery mechanisms."""

import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

import structlog


class DeliveryStatus(Enum):
    """Report delivery status."""
    SUCCESS = "success"
    FAILED = "failed"
    DEAD_LETTER = "dead_letter"


@dataclass
class DeliveryResult:
    """Result of a report delivery attempt."""
    status: DeliveryStatus
    message: Optional[str] = None
    attempt_count: int = 1
    delivery_time_ms: Optional[int] = None
    error: Optional[Exception] = None

    @property
    def succeeded(self) -> bool:
        return self.status is DeliveryStatus.SUCCESS


class ReportDeliveryError(Exception):
    """Base exception for report delivery errors."""
    pass


class ReportDeliveryRetryableError(ReportDeliveryError):
    """Transient delivery error, e.g. a network failure."""
    pass


class ReportDeliveryPermanentError(ReportDeliveryError):
    """Delivery error that should not be retried."""
    pass


class BaseReportDelivery(ABC):
    """Base class for report delivery mechanisms."""

    def __init__(self, name: str, config: Any = None):
        self.name = name
        self.config = config
        self.logger = structlog.get_logger(f"sentinel_app.delivery.{name}")
        self._delivery_count = 0
        self._error_count = 0

    @abstractmethod
    def deliver(self, text: str) -> DeliveryResult:
        """
        Deliver one rendered report.

        Args:
            text: Report body

        Returns:
            Delivery result

        Raises:
            ReportDeliveryRetryableError: on transient failures
            ReportDeliveryPermanentError: on failures a retry cannot fix
        """
        pass

    @abstractmethod
    def health_check(self) -> bool:
        """Check if delivery mechanism is healthy."""
        pass

    def deliver_with_retry(
        self,
        text: str,
        max_retries: int = 3,
        retry_delay: float = 1
    ) -> DeliveryResult:
        """
        Deliver a report with retry logic.

        Args:
            text: Report body
            max_retries: Maximum number of retry attempts after the first
            retry_delay: Delay between retries in seconds

        Returns:
            Final delivery result; DEAD_LETTER once retries are exhausted
        """
        attempt = 0
        last_error: Optional[Exception] = None

        while attempt <= max_retries:
            try:
                start_time = time.time()
                result = self.deliver(text)
                delivery_time = int((time.time() - start_time) * 1000)

                if result.succeeded:
                    result.delivery_time_ms = delivery_time
                    result.attempt_count = attempt + 1
                    self._delivery_count += 1
                    return result

                last_error = result.error

            except ReportDeliveryPermanentError as e:
                self._error_count += 1
                self.logger.error(
                    "Report delivery failed permanently",
                    delivery_name=self.name,
                    error=str(e)
                )
                return DeliveryResult(
                    status=DeliveryStatus.FAILED,
                    message=f"Permanent error: {e}",
                    attempt_count=attempt + 1,
                    error=e
                )

            except ReportDeliveryRetryableError as e:
                last_error = e

            attempt += 1

            if attempt <= max_retries:
                self.logger.warning(
                    "Delivery attempt failed, retrying",
                    delivery_name=self.name,
                    attempt=attempt,
                    retry_delay=retry_delay,
                    error=str(last_error)
                )
                time.sleep(retry_delay)

        self._error_count += 1
        self.logger.error(
            "Report delivery retries exhausted",
            delivery_name=self.name,
            attempts=attempt,
            error=str(last_error)
        )
        return DeliveryResult(
            status=DeliveryStatus.DEAD_LETTER,
            message=f"Max retries exceeded: {last_error}",
            attempt_count=attempt,
            error=last_error
        )

    def get_stats(self) -> dict[str, Any]:
        """Get delivery statistics."""
        total = self._delivery_count + self._error_count
        return {
            "name": self.name,
            "delivery_count": self._delivery_count,
            "error_count": self._error_count,
            "success_rate": self._delivery_count / total if total > 0 else 0.0
        }

    def reset_stats(self):
        """Reset delivery statistics."""
        self._delivery_count = 0
        self._error_count = 0
