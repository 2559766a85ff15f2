"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

ROLLING_WINDOW_DAYS = 7
DEFAULT_TIMEZONE = "UTC"
DEFAULT_CLEANUP_INTERVAL_MINUTES = 30
DEFAULT_ASSIGNED_BY = "System"
ISO_DATE_FORMAT = "%Y-%m-%d"
TIME_FORMAT = "%H:%M"
