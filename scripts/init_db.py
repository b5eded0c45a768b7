from __future__ import annotations

import argparse
import sys
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from src.attendance_alerts.attendance_alerts.database.bootstrap import apply_schema, apply_seed_sql, list_tables
from src.attendance_alerts.attendance_alerts.main import configure_logging, container_from_settings, load_settings


def main() -> None:
    parser = argparse.ArgumentParser(description="Apply schema.sql and seed default templates/schedules.")
    parser.add_argument("--demo", action="store_true", help="also load database/seed.sql demo data")
    args = parser.parse_args()

    settings = load_settings()
    configure_logging(getattr(settings, "LOG_LEVEL", "INFO"))
    db_config = dict(settings.DB_CONFIG)

    apply_schema(db_config, schema_path=REPO_ROOT / "database" / "schema.sql")
    if args.demo:
        apply_seed_sql(db_config, seed_path=REPO_ROOT / "database" / "seed.sql")

    container = container_from_settings(settings)
    templates = container.template_store.seed_global_defaults()
    schedules = container.scheduler.ensure_system_entries()

    tables = list_tables(db_config)
    print(
        "OK: Applied schema.sql -> "
        f"{db_config.get('user')}@{db_config.get('host')}:{db_config.get('port', 3306)}/{db_config.get('database')} "
        f"(tables={len(tables)}, new templates={templates}, new system schedules={schedules})"
    )


if __name__ == "__main__":
    main()
