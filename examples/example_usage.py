"""Example: drive the engine through the service layer (no Flask).

Triggers today's absence alerts for owner 1, then prints the batch result
and the latest delivery log entries.
"""

from src.attendance_alerts.attendance_alerts.core.enums import TriggerKind
from src.attendance_alerts.attendance_alerts.main import configure_logging, container_from_settings, load_settings


def main():
    settings = load_settings()
    configure_logging("INFO")
    container = container_from_settings(settings)

    result = container.notification_service.trigger_now(TriggerKind.ABSENCE, owner_id=1)
    print(result.to_dict())

    for record in container.notification_service.recent_deliveries(owner_id=1, limit=5):
        print(record.to_dict())


if __name__ == "__main__":
    main()
