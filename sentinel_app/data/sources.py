"""
Remote market history sources.

Estimators never fetch data themselves; they receive a provider satisfying
one of the protocols below. The HTTP implementations wrap the Binance kline
endpoint and the CoinMetrics community API.
"""

import json
import socket
from typing import Any, Optional, Protocol
from urllib.error import HTTPError, URLError
from urllib.parse import urlencode
from urllib.request import ProxyHandler, Request, build_opener

import structlog

from ..config.defaults import MAX_KLINE_LIMIT, DataSourceParams
from ..errors import ConfigurationError, InsufficientDataError, SourceUnavailableError
from .parsers import parse_kline_closes, parse_ratio_samples

logger = structlog.get_logger(__name__)


class PriceHistoryProvider(Protocol):
    """Supplies daily closing prices, oldest first."""

    def fetch_closes(self, symbol: str, limit: int) -> list[float]:
        ...


class RatioHistoryProvider(Protocol):
    """Supplies daily ratio samples, most recent first."""

    def fetch_ratios(self, limit: int) -> list[float]:
        ...

    def fetch_latest_ratio(self) -> float:
        ...


class JsonHttpClient:
    """Minimal JSON-over-HTTP GET client with optional proxy."""

    def __init__(self, params: DataSourceParams):
        self.params = params
        handlers = []
        if params.proxy:
            proxy_url = params.proxy if "://" in params.proxy else f"http://{params.proxy}"
            handlers.append(ProxyHandler({"http": proxy_url, "https": proxy_url}))
        self._opener = build_opener(*handlers)

    def get_json(self, url: str, source: str) -> Any:
        """
        Fetch and decode a JSON document.

        Raises:
            SourceUnavailableError: on transport, status or decoding failures
        """
        req = Request(url, headers={
            "User-Agent": self.params.user_agent,
            "Accept": "application/json",
        })

        try:
            with self._opener.open(req, timeout=self.params.timeout_seconds) as response:
                body = response.read()
        except HTTPError as e:
            raise SourceUnavailableError(
                f"{source} returned HTTP {e.code}",
                source=source,
                status_code=e.code
            ) from e
        except (URLError, socket.timeout) as e:
            raise SourceUnavailableError(
                f"{source} request failed: {e}",
                source=source
            ) from e

        try:
            return json.loads(body.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            raise SourceUnavailableError(
                f"{source} returned invalid JSON: {e}",
                source=source
            ) from e


class BinanceKlineSource:
    """Daily closes from the Binance spot kline endpoint."""

    name = "binance"

    def __init__(self, params: Optional[DataSourceParams] = None,
                 client: Optional[JsonHttpClient] = None):
        self.params = params or DataSourceParams()
        self.client = client or JsonHttpClient(self.params)

    def fetch_closes(self, symbol: str, limit: int) -> list[float]:
        """
        Fetch the last ``limit`` daily closes for ``symbol``, oldest first.

        Raises:
            ConfigurationError: if ``limit`` is not positive
            InsufficientDataError: if ``limit`` exceeds what one request can return
            SourceUnavailableError: on transport failures
        """
        if limit <= 0:
            raise ConfigurationError(f"Kline limit must be positive, got {limit}", field="limit")
        if limit > MAX_KLINE_LIMIT:
            raise InsufficientDataError(
                f"{self.name} serves at most {MAX_KLINE_LIMIT} daily closes, {limit} requested",
                required_count=limit,
                available_count=MAX_KLINE_LIMIT
            )

        query = urlencode({"symbol": symbol, "interval": "1d", "limit": limit})
        url = f"{self.params.kline_base_url}/api/v3/klines?{query}"
        payload = self.client.get_json(url, self.name)
        closes = parse_kline_closes(payload)

        logger.debug(
            "Fetched daily closes",
            source=self.name,
            symbol=symbol,
            requested=limit,
            received=len(closes)
        )
        return closes


class CoinMetricsRatioSource:
    """Daily MVRV ratio samples from the CoinMetrics community API."""

    name = "coinmetrics"

    def __init__(self, params: Optional[DataSourceParams] = None,
                 client: Optional[JsonHttpClient] = None):
        self.params = params or DataSourceParams()
        self.client = client or JsonHttpClient(self.params)

    def _url(self, page_size: int) -> str:
        query = urlencode({
            "assets": self.params.ratio_asset,
            "metrics": self.params.ratio_metric,
            "frequency": "1d",
            "page_size": page_size,
            "paging_from": "end",
            "api_key": "community",
        })
        return f"{self.params.ratio_base_url}/timeseries/asset-metrics?{query}"

    def fetch_ratios(self, limit: int) -> list[float]:
        """Fetch up to ``limit`` daily samples, most recent first."""
        payload = self.client.get_json(self._url(limit), self.name)
        samples = parse_ratio_samples(payload, self.params.ratio_metric)

        logger.debug(
            "Fetched ratio history",
            source=self.name,
            metric=self.params.ratio_metric,
            requested=limit,
            received=len(samples)
        )
        return samples

    def fetch_latest_ratio(self) -> float:
        """Fetch the most recent daily sample only."""
        return self.fetch_ratios(1)[0]
