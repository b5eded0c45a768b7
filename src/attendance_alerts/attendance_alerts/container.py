from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .alerts.mysql_alert_repository import MySQLAlertRepository
from .alerts.service import AlertService
from .channels.email_provider import SMTPConfig, SMTPEmailProvider
from .channels.sms_provider import TwilioConfig, TwilioSMSProvider
from .core.constants import DEFAULT_SCHEDULER_TICK_SECONDS, DEFAULT_WORKER_POOL_SIZE
from .core.enums import Channel
from .database.connection import DBConfig, DatabaseConnection
from .delivery.mysql_delivery_repository import MySQLDeliveryLogRepository
from .delivery.policy import DedupPolicy
from .dispatch.dispatcher import Dispatcher
from .message_templates.mysql_template_repository import MySQLTemplateRepository
from .message_templates.store import TemplateStore
from .notifications.service import NotificationService
from .recipients.mysql_attendance_source import MySQLAttendanceSource
from .recipients.resolver import RecipientResolver
from .scheduling.mysql_schedule_repository import MySQLScheduleRepository
from .scheduling.scheduler import Scheduler
from .settings.mysql_settings_repository import MySQLSettingsRepository
from .settings.service import SettingsService


@dataclass(frozen=True)
class Container:
    conn: DatabaseConnection

    settings_repo: MySQLSettingsRepository
    templates_repo: MySQLTemplateRepository
    delivery_log: MySQLDeliveryLogRepository
    schedules_repo: MySQLScheduleRepository
    alerts_repo: MySQLAlertRepository
    attendance_source: MySQLAttendanceSource

    email_provider: SMTPEmailProvider
    sms_provider: TwilioSMSProvider

    template_store: TemplateStore
    settings_service: SettingsService
    alert_service: AlertService
    resolver: RecipientResolver
    dispatcher: Dispatcher
    scheduler: Scheduler
    notification_service: NotificationService


def build_container(
    *,
    db_config: dict,
    smtp_config: Optional[dict] = None,
    twilio_config: Optional[dict] = None,
    engine_config: Optional[dict] = None,
    school_name: str = "",
) -> Container:
    config = DBConfig(
        host=str(db_config["host"]),
        port=int(db_config.get("port", 3306)),
        user=str(db_config["user"]),
        password=str(db_config["password"]),
        database=str(db_config["database"]),
        connection_timeout=int(db_config.get("connection_timeout", 10)),
    )
    conn = DatabaseConnection.get_instance(config)
    engine = dict(engine_config or {})

    settings_repo = MySQLSettingsRepository(conn)
    templates_repo = MySQLTemplateRepository(conn)
    delivery_log = MySQLDeliveryLogRepository(conn)
    schedules_repo = MySQLScheduleRepository(conn)
    alerts_repo = MySQLAlertRepository(conn)
    attendance_source = MySQLAttendanceSource(conn)

    email_provider = SMTPEmailProvider(SMTPConfig.from_dict(smtp_config))
    sms_provider = TwilioSMSProvider(TwilioConfig.from_dict(twilio_config))
    providers = {Channel.EMAIL: email_provider, Channel.SMS: sms_provider}

    template_store = TemplateStore(templates_repo)
    settings_service = SettingsService(settings_repo, schedules_repo)
    alert_service = AlertService(alerts_repo)
    resolver = RecipientResolver(attendance_source, settings_repo, school_name=school_name)
    dispatcher = Dispatcher(
        resolver,
        template_store,
        providers,
        settings_repo,
        delivery_log,
        DedupPolicy(delivery_log),
        alerts=alert_service,
        pool_size=int(engine.get("worker_pool_size", DEFAULT_WORKER_POOL_SIZE)),
        audit_skips=bool(engine.get("audit_skips", False)),
    )
    scheduler = Scheduler(
        schedules_repo,
        settings_repo,
        dispatcher,
        tick_seconds=int(engine.get("scheduler_tick_seconds", DEFAULT_SCHEDULER_TICK_SECONDS)),
        absence_sweep_time=str(engine.get("absence_sweep_time", "16:00")),
        batch_deadline_seconds=engine.get("batch_deadline_seconds"),
    )
    notification_service = NotificationService(
        dispatcher,
        settings_service,
        delivery_log,
        providers,
        school_name=school_name,
    )

    return Container(
        conn=conn,
        settings_repo=settings_repo,
        templates_repo=templates_repo,
        delivery_log=delivery_log,
        schedules_repo=schedules_repo,
        alerts_repo=alerts_repo,
        attendance_source=attendance_source,
        email_provider=email_provider,
        sms_provider=sms_provider,
        template_store=template_store,
        settings_service=settings_service,
        alert_service=alert_service,
        resolver=resolver,
        dispatcher=dispatcher,
        scheduler=scheduler,
        notification_service=notification_service,
    )
