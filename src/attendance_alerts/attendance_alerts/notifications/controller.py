from __future__ import annotations

from functools import wraps

from flask import Flask, jsonify, request, session

from ..common.datetime_utils import parse_iso_date
from ..common.validators import require_int_in_range
from ..core.enums import RecurrenceKind, TemplateType
from ..core.exceptions import AuthorizationError, InfrastructureError, ValidationError
from ..container import Container
from .service import parse_channel, parse_trigger_kind


def register(app: Flask, container: Container) -> None:
    def login_required(view):
        @wraps(view)
        def wrapper(*args, **kwargs):
            if "user_id" not in session:
                return jsonify({"success": False, "message": "Please log in to continue"}), 401
            return view(*args, **kwargs)

        return wrapper

    def json_errors(view):
        @wraps(view)
        def wrapper(*args, **kwargs):
            try:
                return view(*args, **kwargs)
            except ValidationError as e:
                return jsonify({"success": False, "message": str(e)}), 400
            except AuthorizationError as e:
                return jsonify({"success": False, "message": str(e)}), 403
            except InfrastructureError:
                app.logger.exception("Database unavailable")
                return jsonify({"success": False, "message": "Service temporarily unavailable"}), 503

        return wrapper

    def _owner_id() -> int:
        return int(session["user_id"])

    def _payload() -> dict:
        return request.get_json(silent=True) or {}

    def _parse_template_type(value: str) -> TemplateType:
        try:
            return TemplateType(value)
        except ValueError:
            raise ValidationError(f"Unknown template type: {value!r}")

    def _parse_recurrence(value) -> RecurrenceKind:
        try:
            return RecurrenceKind(str(value or "").strip().lower())
        except ValueError:
            raise ValidationError(f"Unknown recurrence: {value!r}")

    @app.route("/notifications/settings", methods=["GET"], endpoint="notification_settings")
    @login_required
    @json_errors
    def get_settings():
        settings = container.settings_service.settings_for(_owner_id())
        return jsonify({"success": True, "settings": settings.to_dict()})

    @app.route("/notifications/settings", methods=["PUT", "POST"], endpoint="update_notification_settings")
    @login_required
    @json_errors
    def update_settings():
        settings = container.settings_service.update_settings(_owner_id(), _payload())
        return jsonify({"success": True, "settings": settings.to_dict()})

    @app.route("/notifications/trigger/<kind>", methods=["POST"], endpoint="trigger_notifications")
    @login_required
    @json_errors
    def trigger(kind: str):
        raw_date = _payload().get("date")
        try:
            on_date = parse_iso_date(raw_date) if raw_date else None
        except ValueError:
            raise ValidationError("Invalid date (YYYY-MM-DD)")
        result = container.notification_service.trigger_now(parse_trigger_kind(kind), _owner_id(), on_date)
        return jsonify({"success": True, "result": result.to_dict()})

    @app.route("/notifications/deliveries", methods=["GET"], endpoint="recent_deliveries")
    @login_required
    @json_errors
    def deliveries():
        limit = request.args.get("limit", 50)
        records = container.notification_service.recent_deliveries(_owner_id(), limit)
        return jsonify({"success": True, "deliveries": [r.to_dict() for r in records]})

    @app.route("/notifications/summary", methods=["GET"], endpoint="delivery_summary")
    @login_required
    @json_errors
    def summary():
        days = request.args.get("days", 7)
        return jsonify({"success": True, "summary": container.notification_service.delivery_summary(_owner_id(), days=days)})

    @app.route("/notifications/custom", methods=["POST"], endpoint="send_custom_message")
    @login_required
    @json_errors
    def custom_message():
        data = _payload()
        result = container.notification_service.send_custom_message(
            _owner_id(), data.get("message") or "", data.get("subject")
        )
        return jsonify({"success": True, "result": result.to_dict()})

    @app.route("/notifications/test", methods=["POST"], endpoint="send_test_message")
    @login_required
    @json_errors
    def test_message():
        data = _payload()
        record = container.notification_service.send_test_message(
            _owner_id(), parse_channel(data.get("channel")), data.get("to") or ""
        )
        return jsonify({"success": record.status.value == "SENT", "delivery": record.to_dict()})

    @app.route("/notifications/templates", methods=["GET"], endpoint="notification_templates")
    @login_required
    @json_errors
    def list_templates():
        templates = container.template_store.list_for_owner(_owner_id())
        return jsonify({"success": True, "templates": [t.to_dict() for t in templates]})

    @app.route("/notifications/templates/<type>", methods=["PUT", "POST"], endpoint="save_notification_template")
    @login_required
    @json_errors
    def save_template(type: str):
        template_id = container.template_store.save_owner_template(
            owner_id=_owner_id(), type=_parse_template_type(type), content=_payload().get("content") or ""
        )
        return jsonify({"success": True, "id": template_id})

    @app.route("/notifications/templates/<type>", methods=["DELETE"], endpoint="delete_notification_template")
    @login_required
    @json_errors
    def delete_template(type: str):
        container.template_store.delete_owner_template(owner_id=_owner_id(), type=_parse_template_type(type))
        return jsonify({"success": True})

    @app.route("/notifications/schedules", methods=["GET"], endpoint="notification_schedules")
    @login_required
    @json_errors
    def list_schedules():
        entries = container.scheduler.list_for_owner(_owner_id())
        return jsonify({"success": True, "schedules": [e.to_dict() for e in entries]})

    @app.route("/notifications/schedules", methods=["POST"], endpoint="add_notification_schedule")
    @login_required
    @json_errors
    def add_schedule():
        data = _payload()
        anchor_day = data.get("anchor_day")
        entry_id = container.scheduler.add_custom_entry(
            owner_id=_owner_id(),
            trigger_kind=parse_trigger_kind(data.get("trigger_kind")),
            recurrence=_parse_recurrence(data.get("recurrence")),
            anchor_day=require_int_in_range(anchor_day, "Anchor day", low=0, high=31) if anchor_day not in (None, "") else None,
            anchor_time=str(data.get("anchor_time") or ""),
            message=data.get("message"),
        )
        return jsonify({"success": True, "id": entry_id}), 201

    @app.route("/notifications/schedules/<int:entry_id>/deactivate", methods=["POST"], endpoint="deactivate_notification_schedule")
    @login_required
    @json_errors
    def deactivate_schedule(entry_id: int):
        container.scheduler.deactivate(owner_id=_owner_id(), entry_id=entry_id)
        return jsonify({"success": True})

    @app.route("/notifications/alerts", methods=["GET"], endpoint="owner_alerts")
    @login_required
    @json_errors
    def list_alerts():
        owner_id = _owner_id()
        alerts = container.alert_service.unread(owner_id)
        return jsonify(
            {
                "success": True,
                "alerts": [a.to_dict() for a in alerts],
                "counts": container.alert_service.counts(owner_id),
            }
        )

    @app.route("/notifications/alerts/<int:alert_id>/read", methods=["POST"], endpoint="mark_alert_read")
    @login_required
    @json_errors
    def mark_alert_read(alert_id: int):
        container.alert_service.mark_read(owner_id=_owner_id(), alert_id=alert_id)
        return jsonify({"success": True})

    @app.route("/notifications/alerts/read-all", methods=["POST"], endpoint="mark_all_alerts_read")
    @login_required
    @json_errors
    def mark_all_alerts_read():
        updated = container.alert_service.mark_all_read(_owner_id())
        return jsonify({"success": True, "updated": updated})
