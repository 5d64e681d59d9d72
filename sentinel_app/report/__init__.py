"""Report rendering for trade signals."""

from .formatter import leverage_status, render_indicator_details, render_report

__all__ = ["leverage_status", "render_indicator_details", "render_report"]
