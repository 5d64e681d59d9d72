"""Tests for the HTTP history sources with a mocked transport."""

import io
from unittest.mock import MagicMock, Mock
from urllib.error import HTTPError, URLError
from urllib.parse import parse_qs, urlparse
from urllib.request import ProxyHandler

import pytest

from sentinel_app.config.defaults import DataSourceParams
from sentinel_app.data.sources import (
    BinanceKlineSource,
    CoinMetricsRatioSource,
    JsonHttpClient,
)
from sentinel_app.errors import (
    ConfigurationError,
    InsufficientDataError,
    SourceUnavailableError,
)


def query_of(url):
    return {k: v[0] for k, v in parse_qs(urlparse(url).query).items()}


class TestJsonHttpClient:
    """Test transport error mapping."""

    def make_client(self, body=b"{}", error=None):
        client = JsonHttpClient(DataSourceParams())
        opener = MagicMock()
        if error is not None:
            opener.open.side_effect = error
        else:
            opener.open.return_value.__enter__.return_value.read.return_value = body
        client._opener = opener
        return client

    def test_decodes_json(self):
        client = self.make_client(b'{"data": [1]}')
        assert client.get_json("https://example.test", "test") == {"data": [1]}

    def test_http_error(self):
        error = HTTPError("https://example.test", 503, "unavailable", None, io.BytesIO(b""))
        client = self.make_client(error=error)

        with pytest.raises(SourceUnavailableError) as exc_info:
            client.get_json("https://example.test", "binance")
        assert exc_info.value.status_code == 503
        assert exc_info.value.source == "binance"
        assert exc_info.value.recoverable is False

    def test_network_error(self):
        client = self.make_client(error=URLError("timed out"))
        with pytest.raises(SourceUnavailableError):
            client.get_json("https://example.test", "binance")

    def test_invalid_json(self):
        client = self.make_client(b"<html>")
        with pytest.raises(SourceUnavailableError, match="invalid JSON"):
            client.get_json("https://example.test", "coinmetrics")

    def test_proxy_without_scheme(self):
        client = JsonHttpClient(DataSourceParams(proxy="127.0.0.1:10809"))
        proxies = [h.proxies for h in client._opener.handlers if isinstance(h, ProxyHandler)]
        assert {"http": "http://127.0.0.1:10809", "https": "http://127.0.0.1:10809"} in proxies


class TestBinanceKlineSource:
    """Test kline requests."""

    def test_fetch_closes(self, kline_payload):
        client = Mock()
        client.get_json.return_value = kline_payload
        closes = BinanceKlineSource(client=client).fetch_closes("BTCUSDT", 2)

        assert closes == [42283.58, 44179.55]
        url, source = client.get_json.call_args[0]
        assert url.startswith("https://api.binance.com/api/v3/klines?")
        assert query_of(url) == {"symbol": "BTCUSDT", "interval": "1d", "limit": "2"}
        assert source == "binance"

    def test_non_positive_limit(self):
        with pytest.raises(ConfigurationError):
            BinanceKlineSource(client=Mock()).fetch_closes("BTCUSDT", 0)

    def test_limit_above_one_request(self):
        """Windows longer than one kline page are a data shortfall, not a crash."""
        client = Mock()
        with pytest.raises(InsufficientDataError) as exc_info:
            BinanceKlineSource(client=client).fetch_closes("BTCUSDT", 1001)

        assert exc_info.value.required_count == 1001
        assert exc_info.value.available_count == 1000
        client.get_json.assert_not_called()


class TestCoinMetricsRatioSource:
    """Test ratio history requests."""

    def test_fetch_ratios(self, ratio_payload):
        client = Mock()
        client.get_json.return_value = ratio_payload
        samples = CoinMetricsRatioSource(client=client).fetch_ratios(1460)

        assert samples == [1.85, 1.80]
        query = query_of(client.get_json.call_args[0][0])
        assert query["assets"] == "btc"
        assert query["metrics"] == "CapMVRVCur"
        assert query["page_size"] == "1460"
        assert query["paging_from"] == "end"

    def test_fetch_latest_ratio(self, ratio_payload):
        client = Mock()
        client.get_json.return_value = ratio_payload
        assert CoinMetricsRatioSource(client=client).fetch_latest_ratio() == 1.85
        assert query_of(client.get_json.call_args[0][0])["page_size"] == "1"
