"""Default configuration parameters for the indicator and decision pipeline."""

from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Optional, Union

# Binance rejects kline requests above this limit
MAX_KLINE_LIMIT = 1000


@dataclass(frozen=True)
class ValuationParams:
    """Valuation index (AHR999) parameters."""
    window: int = 200                         # Daily closes in the cost-basis window
    origin_date: Union[str, date] = "2009-01-03"  # Asset inception (genesis block), UTC
    fair_value_coefficient: float = 5.84      # C1 in 10^(C1*log10(age) - C2)
    fair_value_intercept: float = 17.01       # C2

    @property
    def origin(self) -> datetime:
        """Origin date as an aware UTC datetime at midnight."""
        # YAML loads unquoted dates as date objects
        if isinstance(self.origin_date, date):
            origin = self.origin_date
        else:
            origin = datetime.strptime(self.origin_date, "%Y-%m-%d").date()
        return datetime(origin.year, origin.month, origin.day, tzinfo=timezone.utc)


@dataclass(frozen=True)
class TrendParams:
    """Two-year moving average multiple parameters."""
    window: int = 730
    upper_band_multiplier: float = 5.0


@dataclass(frozen=True)
class DispersionParams:
    """MVRV Z-score parameters."""
    lookback_days: int = 1460
    sqrt_iterations: int = 100
    # Placeholder approximation, not derived from data; calibrate before relying on it
    fallback_mean: float = 1.5
    fallback_std: float = 1.2
    neutral_z_score: float = 0.0


@dataclass(frozen=True)
class StrategyParams:
    """Decision cascade thresholds and amount factors."""
    max_leverage: float = 1.5
    leverage_alert: float = 1.2               # Report-only warning level
    strong_buy_below: float = 0.45
    dca_buy_below: float = 1.20
    hold_below: float = 5.00
    overheat_z_score: float = 6.0
    strong_buy_factor: float = 1.5
    dca_buy_factor: float = 1.0


@dataclass(frozen=True)
class AccountParams:
    """Account state supplied by the operator."""
    leverage: float = 1.0


@dataclass(frozen=True)
class ExternalSignalParams:
    """Snapshot inputs that are not derived by this system."""
    trend_cross_signal: bool = False          # Pi cycle top cross
    asset_b_band_position: str = "middle"     # lower, middle, upper
    asset_b_price: float = 0.0


@dataclass(frozen=True)
class DataSourceParams:
    """Remote market data source parameters."""
    kline_base_url: str = "https://api.binance.com"
    primary_symbol: str = "BTCUSDT"
    ratio_base_url: str = "https://community-api.coinmetrics.io/v4"
    ratio_asset: str = "btc"
    ratio_metric: str = "CapMVRVCur"
    timeout_seconds: int = 30
    proxy: Optional[str] = None
    user_agent: str = "crypto-sentinel/0.1"


@dataclass(frozen=True)
class TelegramParams:
    """Telegram bot delivery parameters."""
    bot_token: str = ""
    chat_id: str = ""
    api_base: str = "https://api.telegram.org"
    parse_mode: str = "Markdown"
    timeout_seconds: int = 30


@dataclass(frozen=True)
class DeliveryParams:
    """Report delivery parameters."""
    method: str = "stdout"                    # stdout, telegram
    retry_attempts: int = 3
    retry_delay_seconds: int = 1


@dataclass(frozen=True)
class ScheduleParams:
    """Fixed-interval runner parameters."""
    interval_seconds: int = 7 * 24 * 3600     # Weekly report
    run_on_start: bool = True


@dataclass(frozen=True)
class DefaultConfig:
    """Complete default configuration."""
    valuation: ValuationParams
    trend: TrendParams
    dispersion: DispersionParams
    strategy: StrategyParams
    account: AccountParams
    signals: ExternalSignalParams
    data_source: DataSourceParams
    telegram: TelegramParams
    delivery: DeliveryParams
    schedule: ScheduleParams


def get_default_config() -> DefaultConfig:
    """Get the default configuration instance."""
    return DefaultConfig(
        valuation=ValuationParams(),
        trend=TrendParams(),
        dispersion=DispersionParams(),
        strategy=StrategyParams(),
        account=AccountParams(),
        signals=ExternalSignalParams(),
        data_source=DataSourceParams(),
        telegram=TelegramParams(),
        delivery=DeliveryParams(),
        schedule=ScheduleParams(),
    )
