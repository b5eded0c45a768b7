"""Run the notification scheduler as its own process.

Use this when the web app runs with NOTIFY_SCHEDULER_ENABLED=0 (e.g. several
web workers): exactly one scheduler process should be running.
"""

from __future__ import annotations

import logging
import signal
import sys
import threading
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from src.attendance_alerts.attendance_alerts.main import configure_logging, container_from_settings, load_settings

logger = logging.getLogger("run_scheduler")


def main() -> None:
    settings = load_settings()
    configure_logging(getattr(settings, "LOG_LEVEL", "INFO"))

    container = container_from_settings(settings)
    container.template_store.seed_global_defaults()
    container.scheduler.ensure_system_entries()

    stopped = threading.Event()

    def _shutdown(signum, _frame):
        logger.info("Received signal %s, stopping", signum)
        stopped.set()

    signal.signal(signal.SIGINT, _shutdown)
    signal.signal(signal.SIGTERM, _shutdown)

    container.scheduler.start()
    try:
        stopped.wait()
    finally:
        container.scheduler.stop()


if __name__ == "__main__":
    main()
