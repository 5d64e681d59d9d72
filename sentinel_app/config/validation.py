"""Configuration validation utilities."""

from dataclasses import asdict, dataclass
from typing import Any

from .defaults import MAX_KLINE_LIMIT, DefaultConfig

BAND_POSITIONS = ("lower", "middle", "upper")
KLINE_SECTIONS = ("valuation", "trend")
DELIVERY_METHODS = ("stdout", "telegram")


@dataclass(frozen=True)
class ValidationError:
    """Represents a configuration validation error."""
    field: str
    message: str
    value: Any


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _is_positive_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value > 0


class ConfigValidator:
    """Validates configuration parameters."""

    @staticmethod
    def validate_strategy_params(params: dict[str, Any]) -> list[ValidationError]:
        """Validate decision cascade thresholds."""
        errors = []

        for name in ("max_leverage", "leverage_alert", "strong_buy_below",
                     "dca_buy_below", "hold_below"):
            if name in params:
                value = params[name]
                if not _is_number(value) or value <= 0:
                    errors.append(ValidationError(
                        field=f"strategy.{name}",
                        message="Must be a positive number",
                        value=value
                    ))

        for name in ("strong_buy_factor", "dca_buy_factor"):
            if name in params:
                value = params[name]
                if not _is_number(value) or value < 0:
                    errors.append(ValidationError(
                        field=f"strategy.{name}",
                        message="Must be a non-negative number",
                        value=value
                    ))

        if "overheat_z_score" in params and not _is_number(params["overheat_z_score"]):
            errors.append(ValidationError(
                field="strategy.overheat_z_score",
                message="Must be a number",
                value=params["overheat_z_score"]
            ))

        # Zone breakpoints must partition the index axis in order
        breakpoints = [params.get(name) for name in
                       ("strong_buy_below", "dca_buy_below", "hold_below")]
        if all(_is_number(b) for b in breakpoints):
            if not breakpoints[0] < breakpoints[1] < breakpoints[2]:
                errors.append(ValidationError(
                    field="strategy.breakpoints",
                    message="Zone breakpoints must be strictly increasing",
                    value=breakpoints
                ))

        return errors

    @staticmethod
    def validate_window_params(section: str, params: dict[str, Any]) -> list[ValidationError]:
        """Validate estimator window parameters."""
        errors = []

        for name in ("window", "lookback_days", "sqrt_iterations"):
            if name in params:
                value = params[name]
                if not _is_positive_int(value):
                    errors.append(ValidationError(
                        field=f"{section}.{name}",
                        message="Must be a positive integer",
                        value=value
                    ))

        # Price windows are fetched in a single kline request
        if section in KLINE_SECTIONS and _is_positive_int(params.get("window")):
            if params["window"] > MAX_KLINE_LIMIT:
                errors.append(ValidationError(
                    field=f"{section}.window",
                    message=f"Must not exceed {MAX_KLINE_LIMIT} daily closes",
                    value=params["window"]
                ))

        if "upper_band_multiplier" in params:
            value = params["upper_band_multiplier"]
            if not _is_number(value) or value <= 1:
                errors.append(ValidationError(
                    field=f"{section}.upper_band_multiplier",
                    message="Must be a number greater than 1",
                    value=value
                ))

        if "fallback_std" in params:
            value = params["fallback_std"]
            if not _is_number(value) or value <= 0:
                errors.append(ValidationError(
                    field=f"{section}.fallback_std",
                    message="Must be a positive number",
                    value=value
                ))

        return errors

    @staticmethod
    def validate_signal_params(params: dict[str, Any]) -> list[ValidationError]:
        """Validate externally supplied snapshot inputs."""
        errors = []

        if "asset_b_band_position" in params:
            value = params["asset_b_band_position"]
            if value not in BAND_POSITIONS:
                errors.append(ValidationError(
                    field="signals.asset_b_band_position",
                    message=f"Must be one of {', '.join(BAND_POSITIONS)}",
                    value=value
                ))

        if "trend_cross_signal" in params and not isinstance(params["trend_cross_signal"], bool):
            errors.append(ValidationError(
                field="signals.trend_cross_signal",
                message="Must be a boolean",
                value=params["trend_cross_signal"]
            ))

        return errors

    @staticmethod
    def validate_delivery_params(delivery: dict[str, Any],
                                 telegram: dict[str, Any]) -> list[ValidationError]:
        """Validate delivery method and its credentials."""
        errors = []

        method = delivery.get("method")
        if method not in DELIVERY_METHODS:
            errors.append(ValidationError(
                field="delivery.method",
                message=f"Must be one of {', '.join(DELIVERY_METHODS)}",
                value=method
            ))

        if method == "telegram":
            if not telegram.get("bot_token"):
                errors.append(ValidationError(
                    field="telegram.bot_token",
                    message="Required for telegram delivery",
                    value=telegram.get("bot_token")
                ))
            if not telegram.get("chat_id"):
                errors.append(ValidationError(
                    field="telegram.chat_id",
                    message="Required for telegram delivery",
                    value=telegram.get("chat_id")
                ))

        if "retry_attempts" in delivery:
            value = delivery["retry_attempts"]
            if not isinstance(value, int) or isinstance(value, bool) or value < 0:
                errors.append(ValidationError(
                    field="delivery.retry_attempts",
                    message="Must be a non-negative integer",
                    value=value
                ))

        return errors

    @staticmethod
    def validate_config(config: dict[str, Any]) -> list[ValidationError]:
        """Validate complete configuration."""
        errors = []

        if "strategy" in config:
            errors.extend(ConfigValidator.validate_strategy_params(config["strategy"]))

        for section in ("valuation", "trend", "dispersion"):
            if section in config:
                errors.extend(ConfigValidator.validate_window_params(section, config[section]))

        if "signals" in config:
            errors.extend(ConfigValidator.validate_signal_params(config["signals"]))

        if "delivery" in config:
            errors.extend(ConfigValidator.validate_delivery_params(
                config["delivery"], config.get("telegram", {})
            ))

        if "account" in config:
            leverage = config["account"].get("leverage")
            if leverage is not None and not _is_number(leverage):
                errors.append(ValidationError(
                    field="account.leverage",
                    message="Must be a number",
                    value=leverage
                ))

        return errors

    @staticmethod
    def validate_loaded(config: DefaultConfig) -> list[ValidationError]:
        """Validate a typed configuration."""
        return ConfigValidator.validate_config(asdict(config))
