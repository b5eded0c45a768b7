import os

from .common import flag, db_config, notify_config, smtp_config, twilio_config

SECRET_KEY = os.getenv("SECRET_KEY", "please-set-SECRET_KEY")

DB_CONFIG = db_config()
SMTP_CONFIG = smtp_config()
TWILIO_CONFIG = twilio_config()
NOTIFY_CONFIG = notify_config()

SCHOOL_NAME = os.getenv("SCHOOL_NAME", "")

DEBUG = False
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

AUTO_INIT_DB = flag("AUTO_INIT_DB", "0")
AUTO_SEED_DB = flag("AUTO_SEED_DB", "0")

# Run the scheduler in exactly one process (see scripts/run_scheduler.py).
NOTIFY_SCHEDULER_ENABLED = flag("NOTIFY_SCHEDULER_ENABLED", "0")
