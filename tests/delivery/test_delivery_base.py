"""Tests for delivery retry handling and stdout delivery."""

import io
from unittest.mock import patch

from sentinel_app.delivery import (
    BaseReportDelivery,
    DeliveryResult,
    DeliveryStatus,
    ReportDeliveryPermanentError,
    ReportDeliveryRetryableError,
    StdoutReportDelivery,
)


class ScriptedDelivery(BaseReportDelivery):
    """Delivery whose attempts follow a script of outcomes."""

    def __init__(self, outcomes):
        super().__init__("scripted")
        self.outcomes = list(outcomes)
        self.sent = []

    def deliver(self, text):
        self.sent.append(text)
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    def health_check(self):
        return True


def success():
    return DeliveryResult(status=DeliveryStatus.SUCCESS)


class TestDeliverWithRetry:
    """Test retry semantics."""

    @patch("sentinel_app.delivery.base.time.sleep")
    def test_first_attempt_succeeds(self, mock_sleep):
        delivery = ScriptedDelivery([success()])
        result = delivery.deliver_with_retry("report")

        assert result.succeeded
        assert result.attempt_count == 1
        assert result.delivery_time_ms is not None
        mock_sleep.assert_not_called()

    @patch("sentinel_app.delivery.base.time.sleep")
    def test_retryable_errors_are_retried(self, mock_sleep):
        delivery = ScriptedDelivery([
            ReportDeliveryRetryableError("timeout"),
            ReportDeliveryRetryableError("timeout"),
            success(),
        ])
        result = delivery.deliver_with_retry("report", max_retries=3, retry_delay=2)

        assert result.succeeded
        assert result.attempt_count == 3
        assert mock_sleep.call_count == 2
        mock_sleep.assert_called_with(2)

    @patch("sentinel_app.delivery.base.time.sleep")
    def test_permanent_error_stops_immediately(self, mock_sleep):
        delivery = ScriptedDelivery([ReportDeliveryPermanentError("chat not found")])
        result = delivery.deliver_with_retry("report", max_retries=3)

        assert result.status is DeliveryStatus.FAILED
        assert "chat not found" in result.message
        assert len(delivery.sent) == 1
        mock_sleep.assert_not_called()

    @patch("sentinel_app.delivery.base.time.sleep")
    def test_retries_exhausted(self, mock_sleep):
        delivery = ScriptedDelivery([ReportDeliveryRetryableError("down")] * 3)
        result = delivery.deliver_with_retry("report", max_retries=2)

        assert result.status is DeliveryStatus.DEAD_LETTER
        assert result.attempt_count == 3
        assert isinstance(result.error, ReportDeliveryRetryableError)

    @patch("sentinel_app.delivery.base.time.sleep")
    def test_stats(self, mock_sleep):
        delivery = ScriptedDelivery([success(), ReportDeliveryPermanentError("bad")])
        delivery.deliver_with_retry("one")
        delivery.deliver_with_retry("two")

        stats = delivery.get_stats()
        assert stats["delivery_count"] == 1
        assert stats["error_count"] == 1
        assert stats["success_rate"] == 0.5

        delivery.reset_stats()
        assert delivery.get_stats()["success_rate"] == 0.0


class TestStdoutDelivery:
    """Test stdout delivery."""

    def test_prints_report(self):
        stream = io.StringIO()
        result = StdoutReportDelivery(stream=stream).deliver("*report*")

        assert result.succeeded
        assert stream.getvalue() == "*report*\n"

    def test_defaults_to_sys_stdout(self, capsys):
        StdoutReportDelivery().deliver("hello")
        assert capsys.readouterr().out == "hello\n"

    def test_closed_stream_is_permanent_error(self):
        stream = io.StringIO()
        stream.close()
        delivery = StdoutReportDelivery(stream=stream)

        assert not delivery.health_check()
        result = delivery.deliver_with_retry("report")
        assert result.status is DeliveryStatus.FAILED

    def test_health_check(self):
        assert StdoutReportDelivery(stream=io.StringIO()).health_check()
