"""
Crypto Sentinel - Valuation-Driven Accumulation Advisor

Computes valuation, trend and dispersion indicators for BTC from daily market
history and turns a snapshot of them into a deterministic BTC/ETH action
recommendation, rendered as a markdown report.
"""

__version__ = "0.1.0"
__author__ = "Crypto Sentinel Team"
