"""Course analytics module.

Provides:
- Reporting windows (week, month, year) with chronological buckets
- Read-only course reports with graceful degradation
- Optional Redis cache for reports
"""

from .windows import Timeframe, build_window


__all__ = ["Timeframe", "build_window"]
