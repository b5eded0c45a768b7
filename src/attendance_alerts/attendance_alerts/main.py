from __future__ import annotations

import atexit
import importlib
import logging
from pathlib import Path

from dotenv import load_dotenv
from flask import Flask

from config import get_settings_module

from .container import Container, build_container
from .database.bootstrap import apply_schema, apply_seed_sql, list_tables
from .notifications.controller import register as register_notifications

logger = logging.getLogger(__name__)

REPO_ROOT = Path(__file__).resolve().parents[3]

LOG_FORMAT = "%(asctime)s %(levelname)s [%(threadName)s] %(name)s: %(message)s"


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(level=getattr(logging, str(level).upper(), logging.INFO), format=LOG_FORMAT)


def load_settings():
    load_dotenv(override=False)
    return importlib.import_module(get_settings_module())


def container_from_settings(settings) -> Container:
    return build_container(
        db_config=getattr(settings, "DB_CONFIG"),
        smtp_config=getattr(settings, "SMTP_CONFIG", None),
        twilio_config=getattr(settings, "TWILIO_CONFIG", None),
        engine_config=getattr(settings, "NOTIFY_CONFIG", None),
        school_name=getattr(settings, "SCHOOL_NAME", ""),
    )


def prepare_database(settings, container: Container) -> None:
    """Apply schema/seed when enabled, then seed templates and system schedules."""
    db_config = getattr(settings, "DB_CONFIG")
    if bool(getattr(settings, "AUTO_INIT_DB", False)):
        apply_schema(db_config, schema_path=REPO_ROOT / "database" / "schema.sql")
        logger.info("Schema ready (tables=%s)", len(list_tables(db_config)))
    if bool(getattr(settings, "AUTO_SEED_DB", False)):
        apply_seed_sql(db_config, seed_path=REPO_ROOT / "database" / "seed.sql")
        logger.info("Demo seed ready")

    inserted = container.template_store.seed_global_defaults()
    if inserted:
        logger.info("Seeded %s global templates", inserted)
    container.scheduler.ensure_system_entries()


def create_app() -> Flask:
    settings = load_settings()
    configure_logging(getattr(settings, "LOG_LEVEL", "INFO"))

    app = Flask(__name__)
    app.secret_key = getattr(settings, "SECRET_KEY")
    app.config["DEBUG"] = bool(getattr(settings, "DEBUG", False))
    app.config["TESTING"] = bool(getattr(settings, "TESTING", False))

    db_config = getattr(settings, "DB_CONFIG")
    logger.info(
        "settings=%s db=%s@%s:%s/%s",
        get_settings_module(),
        db_config.get("user"),
        db_config.get("host"),
        db_config.get("port", 3306),
        db_config.get("database"),
    )

    container = container_from_settings(settings)
    prepare_database(settings, container)
    register_notifications(app, container)
    app.extensions["attendance_alerts"] = container

    if bool(getattr(settings, "NOTIFY_SCHEDULER_ENABLED", False)):
        container.scheduler.start()
        atexit.register(container.scheduler.stop)

    return app
