"""
Logging configuration and utilities for the Crypto Sentinel system.
"""
from .config import configure_logging, get_decision_logger, get_logger, log_stage_decision

__all__ = ["configure_logging", "get_logger", "get_decision_logger", "log_stage_decision"]
