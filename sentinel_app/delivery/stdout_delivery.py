"""Standard output report delivery mechanism."""

import sys
from typing import Optional, TextIO

from .base import BaseReportDelivery, DeliveryResult, DeliveryStatus, ReportDeliveryPermanentError


class StdoutReportDelivery(BaseReportDelivery):
    """Prints reports to a text stream, stdout by default."""

    def __init__(self, name: str = "stdout", stream: Optional[TextIO] = None):
        super().__init__(name)
        self._stream = stream

    @property
    def stream(self) -> TextIO:
        # Resolved lazily so that captured or redirected stdout is honoured
        return self._stream if self._stream is not None else sys.stdout

    def deliver(self, text: str) -> DeliveryResult:
        """Write the report followed by a newline."""
        try:
            print(text, file=self.stream, flush=True)
        except (OSError, ValueError) as e:
            raise ReportDeliveryPermanentError(f"Stdout error: {e}") from e

        self.logger.info("Report printed", delivery_name=self.name, length=len(text))
        return DeliveryResult(status=DeliveryStatus.SUCCESS, message="Printed to stdout")

    def health_check(self) -> bool:
        """Check if the stream is writable."""
        try:
            return self.stream.writable()
        except (OSError, ValueError):
            return False
