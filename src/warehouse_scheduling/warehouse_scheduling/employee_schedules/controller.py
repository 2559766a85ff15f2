from __future__ import annotations

from flask import Flask, jsonify

from ..common.http import current_user, json_body, json_errors, login_required, role_required
from ..core.enums import SCHEDULE_MANAGERS, Role
from ..container import Container

_EDITORS = (*SCHEDULE_MANAGERS, Role.TEAM_LEADER)


def register(app: Flask, container: Container) -> None:
    editors_only = role_required(*_EDITORS)
    managers_only = role_required(*SCHEDULE_MANAGERS)
    service = container.employee_schedule_service

    @app.route("/api/employee-schedules", methods=["GET"], endpoint="employee_schedules_list")
    @login_required
    @json_errors
    def employee_schedules_list():
        return jsonify([s.to_dict() for s in service.list_schedules()])

    @app.route("/api/employee-schedules/<int:schedule_id>", methods=["GET"], endpoint="employee_schedules_get")
    @login_required
    @json_errors
    def employee_schedules_get(schedule_id: int):
        return jsonify(service.get_schedule(schedule_id).to_dict())

    @app.route("/api/employee-schedules/employee/<employee_id>", methods=["GET"], endpoint="employee_schedules_by_employee")
    @login_required
    @json_errors
    def employee_schedules_by_employee(employee_id: str):
        direct = [s.to_dict() for s in service.list_by_employee(employee_id)]
        from_templates = container.template_service.get_employee_schedules_from_templates(employee_id=employee_id)
        return jsonify({"schedules": direct, "template_schedules": from_templates})

    @app.route("/api/employee-schedules/today/<employee_id>", methods=["GET"], endpoint="employee_schedules_today")
    @login_required
    @json_errors
    def employee_schedules_today(employee_id: str):
        return jsonify(service.get_todays_schedule(employee_id))

    @app.route(
        "/api/employee-schedules/department/<department>", methods=["GET"], endpoint="employee_schedules_by_department"
    )
    @login_required
    @json_errors
    def employee_schedules_by_department(department: str):
        return jsonify([s.to_dict() for s in service.list_by_department(department)])

    @app.route("/api/employee-schedules/assign", methods=["POST"], endpoint="employee_schedules_assign")
    @editors_only
    @json_errors
    def employee_schedules_assign():
        body = json_body()
        if not body.get("assigned_by"):
            user = current_user()
            body["assigned_by"] = user.name if user else None
        schedule = service.assign_schedule_to_employee(body)
        return jsonify({"message": "Schedule assigned successfully", "schedule": schedule.to_dict()}), 201

    @app.route("/api/employee-schedules/regenerate-weekly", methods=["POST"], endpoint="employee_schedules_regenerate")
    @managers_only
    @json_errors
    def employee_schedules_regenerate():
        count = service.regenerate_weekly_schedules()
        return jsonify({"message": f"Regenerated {count} schedule(s)", "count": count})

    @app.route("/api/employee-schedules/cleanup-expired", methods=["POST"], endpoint="employee_schedules_cleanup")
    @managers_only
    @json_errors
    def employee_schedules_cleanup():
        count = service.deactivate_expired_schedules()
        return jsonify({"message": f"Deactivated {count} expired schedule(s)", "count": count})

    @app.route("/api/employee-schedules/<int:schedule_id>", methods=["PUT"], endpoint="employee_schedules_update")
    @editors_only
    @json_errors
    def employee_schedules_update(schedule_id: int):
        schedule = service.update_schedule(schedule_id, json_body(), actor=current_user())
        return jsonify({"message": "Schedule updated successfully", "schedule": schedule.to_dict()})

    @app.route("/api/employee-schedules/<int:schedule_id>/days", methods=["DELETE"], endpoint="employee_schedules_remove_days")
    @editors_only
    @json_errors
    def employee_schedules_remove_days(schedule_id: int):
        body = json_body()
        schedule = service.remove_specific_days(schedule_id, body.get("days"), actor=current_user())
        if schedule is None:
            return jsonify({"message": "All days removed, schedule deleted", "schedule": None})
        return jsonify({"message": "Days removed successfully", "schedule": schedule.to_dict()})

    @app.route("/api/employee-schedules/<int:schedule_id>", methods=["DELETE"], endpoint="employee_schedules_delete")
    @editors_only
    @json_errors
    def employee_schedules_delete(schedule_id: int):
        service.delete_schedule(schedule_id, actor=current_user())
        return jsonify({"message": "Schedule deleted successfully"})
