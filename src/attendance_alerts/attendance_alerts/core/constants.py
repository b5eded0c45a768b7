"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

from datetime import timedelta

DEFAULT_LOW_ATTENDANCE_THRESHOLD = 75
DEFAULT_SCHEDULE_DAY = "friday"
DEFAULT_SCHEDULE_TIME = "17:00"

LOW_ATTENDANCE_WINDOW_DAYS = 30
LOW_ATTENDANCE_MIN_DAYS = 10
WEEKLY_REPORT_DAYS = 7
MONTHLY_REPORT_DAYS = 30

LOW_ATTENDANCE_DEDUP_WINDOW = timedelta(days=7)
WEEKLY_REPORT_DEDUP_WINDOW = timedelta(days=7)
# Shortest calendar month; the scheduler fires monthly entries once per month.
MONTHLY_REPORT_DEDUP_WINDOW = timedelta(days=28)
REPORT_DEDUP_TOLERANCE = timedelta(hours=1)
PERMANENT_FAILURE_SUPPRESSION = timedelta(hours=24)

DEFAULT_WORKER_POOL_SIZE = 8
DEFAULT_SCHEDULER_TICK_SECONDS = 60
DEFAULT_RECENT_DELIVERIES_LIMIT = 50
MAX_RECENT_DELIVERIES_LIMIT = 500

SMS_MAX_LENGTH = 1600
DEFAULT_SEND_TIMEOUT_SECONDS = 15
