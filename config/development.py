import os

from .common import flag, db_config, notify_config, smtp_config, twilio_config

SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-key")

DB_CONFIG = db_config(default_password="")
SMTP_CONFIG = smtp_config()
TWILIO_CONFIG = twilio_config()
NOTIFY_CONFIG = notify_config()

SCHOOL_NAME = os.getenv("SCHOOL_NAME", "Demo School")

DEBUG = True
LOG_LEVEL = os.getenv("LOG_LEVEL", "DEBUG")

# If enabled, app will apply schema.sql on startup (idempotent: CREATE IF NOT EXISTS)
AUTO_INIT_DB = flag("AUTO_INIT_DB", "1")
# Optional: also seed demo data on startup
AUTO_SEED_DB = flag("AUTO_SEED_DB", "0")

NOTIFY_SCHEDULER_ENABLED = flag("NOTIFY_SCHEDULER_ENABLED", "1")
