import os

from .common import flag, db_config, notify_config, smtp_config, twilio_config

SECRET_KEY = "test-secret"

DB_CONFIG = db_config(default_password="12345")
SMTP_CONFIG = smtp_config()
TWILIO_CONFIG = twilio_config()
NOTIFY_CONFIG = notify_config()

SCHOOL_NAME = "Test School"

DEBUG = False
TESTING = True
LOG_LEVEL = os.getenv("LOG_LEVEL", "WARNING")

AUTO_INIT_DB = flag("AUTO_INIT_DB", "0")
AUTO_SEED_DB = flag("AUTO_SEED_DB", "0")

NOTIFY_SCHEDULER_ENABLED = False
