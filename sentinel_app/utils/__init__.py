"""
Utility functions module.

Time Semantics:
- All indicator timestamps are timezone-aware UTC
- Naive datetimes supplied by callers are interpreted as UTC
- Wall-clock time is only read when the caller supplies no evaluation time
"""
