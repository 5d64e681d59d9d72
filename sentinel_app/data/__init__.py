"""
Market history ingestion module.

Parses raw kline and on-chain metric payloads and provides the history
sources that estimators receive by injection.
"""
