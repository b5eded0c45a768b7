"""Settings shared by every environment; each reads the process environment."""

import os


def flag(name: str, default: str) -> bool:
    return bool(int(os.getenv(name, default)))


def db_config(default_password: str = "") -> dict:
    return {
        "host": os.getenv("DB_HOST", "localhost"),
        "port": int(os.getenv("DB_PORT", "3306")),
        "user": os.getenv("DB_USER", "root"),
        "password": os.getenv("DB_PASSWORD", default_password),
        "database": os.getenv("DB_NAME", "attendance_db"),
        "connection_timeout": int(os.getenv("DB_CONNECT_TIMEOUT", "10")),
    }


def smtp_config() -> dict:
    return {
        "host": os.getenv("SMTP_HOST", ""),
        "port": int(os.getenv("SMTP_PORT", "587")),
        "user": os.getenv("SMTP_USER", ""),
        "password": os.getenv("SMTP_PASSWORD", ""),
        "from_email": os.getenv("SMTP_FROM_EMAIL", ""),
        "from_name": os.getenv("SMTP_FROM_NAME", "School Attendance"),
        "use_tls": flag("SMTP_USE_TLS", "1"),
        "use_ssl": flag("SMTP_USE_SSL", "0"),
        "timeout": int(os.getenv("SMTP_TIMEOUT", "15")),
    }


def twilio_config() -> dict:
    return {
        "account_sid": os.getenv("TWILIO_ACCOUNT_SID", ""),
        "auth_token": os.getenv("TWILIO_AUTH_TOKEN", ""),
        "from_number": os.getenv("TWILIO_PHONE_NUMBER", ""),
        "messaging_service_sid": os.getenv("TWILIO_MESSAGING_SERVICE_SID", ""),
        "timeout": int(os.getenv("TWILIO_TIMEOUT", "15")),
    }


def notify_config() -> dict:
    deadline = os.getenv("NOTIFY_BATCH_DEADLINE_SECONDS", "")
    return {
        "worker_pool_size": int(os.getenv("NOTIFY_WORKER_POOL_SIZE", "8")),
        "audit_skips": flag("NOTIFY_AUDIT_SKIPS", "0"),
        "scheduler_tick_seconds": int(os.getenv("NOTIFY_SCHEDULER_TICK_SECONDS", "60")),
        "absence_sweep_time": os.getenv("NOTIFY_ABSENCE_SWEEP_TIME", "16:00"),
        "batch_deadline_seconds": int(deadline) if deadline else None,
    }
