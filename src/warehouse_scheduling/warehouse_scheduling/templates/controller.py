from __future__ import annotations

from flask import Flask, jsonify

from ..common.http import actor_name, json_body, json_errors, login_required, role_required
from ..core.enums import SCHEDULE_MANAGERS
from ..core.exceptions import ValidationError
from ..container import Container


def register(app: Flask, container: Container) -> None:
    managers_only = role_required(*SCHEDULE_MANAGERS)

    @app.route("/api/templates", methods=["GET"], endpoint="templates_list")
    @login_required
    @json_errors
    def templates_list():
        return jsonify([t.to_dict() for t in container.template_service.list_templates()])

    @app.route("/api/templates/published", methods=["GET"], endpoint="templates_published")
    @login_required
    @json_errors
    def templates_published():
        return jsonify([t.to_dict() for t in container.template_service.list_published_templates()])

    @app.route("/api/templates/stats", methods=["GET"], endpoint="templates_stats")
    @login_required
    @json_errors
    def templates_stats():
        return jsonify(container.template_service.template_stats())

    @app.route("/api/templates/pending", methods=["GET"], endpoint="templates_pending")
    @managers_only
    @json_errors
    def templates_pending():
        return jsonify(container.publish_service.pending_changes())

    @app.route("/api/templates/department/<department>", methods=["GET"], endpoint="templates_by_department")
    @login_required
    @json_errors
    def templates_by_department(department: str):
        return jsonify([t.to_dict() for t in container.template_service.list_by_department(department)])

    @app.route("/api/templates/employee/<employee_id>", methods=["GET"], endpoint="templates_for_employee")
    @login_required
    @json_errors
    def templates_for_employee(employee_id: str):
        return jsonify(container.template_service.get_employee_schedules_from_templates(employee_id=employee_id))

    @app.route("/api/templates/<int:template_id>", methods=["GET"], endpoint="templates_get")
    @login_required
    @json_errors
    def templates_get(template_id: int):
        return jsonify(container.template_service.get_template(template_id).to_dict())

    @app.route("/api/templates", methods=["POST"], endpoint="templates_create")
    @managers_only
    @json_errors
    def templates_create():
        body = json_body()
        template = container.template_service.create_template(body, created_by=actor_name(body, "created_by"))
        return jsonify(template.to_dict()), 201

    @app.route("/api/templates/<int:template_id>", methods=["PUT"], endpoint="templates_update")
    @managers_only
    @json_errors
    def templates_update(template_id: int):
        body = json_body()
        template = container.template_service.update_template(
            template_id, body, edited_by=actor_name(body, "edited_by")
        )
        return jsonify({"message": "Template updated successfully", "template": template.to_dict()})

    @app.route("/api/templates/<int:template_id>", methods=["DELETE"], endpoint="templates_delete")
    @managers_only
    @json_errors
    def templates_delete(template_id: int):
        result = container.template_service.delete_template(template_id)
        message = "Template deleted successfully" if result["deleted"] else "Template marked for deletion"
        return jsonify({"message": message, **result})

    @app.route("/api/templates/publish", methods=["POST"], endpoint="templates_publish")
    @managers_only
    @json_errors
    def templates_publish():
        body = json_body()
        return jsonify(container.publish_service.publish(actor_name(body, "published_by")))

    @app.route("/api/templates/assign-employees", methods=["POST"], endpoint="templates_assign_employees")
    @managers_only
    @json_errors
    def templates_assign_employees():
        body = json_body()
        if not body.get("template_id") or not isinstance(body.get("employee_ids"), list):
            raise ValidationError("template_id and employee_ids array are required")
        template, added = container.template_service.assign_employees_to_template(
            body["template_id"], body["employee_ids"], actor_name(body, "assigned_by")
        )
        return jsonify(
            {
                "message": "Employees assigned successfully",
                "template_id": template.id,
                "employee_ids": added,
                "assigned_count": len(added),
                "template": template.to_dict(),
            }
        )

    @app.route("/api/templates/<int:template_id>/employees", methods=["DELETE"], endpoint="templates_remove_employees")
    @managers_only
    @json_errors
    def templates_remove_employees(template_id: int):
        body = json_body()
        if not isinstance(body.get("employee_ids"), list):
            raise ValidationError("employee_ids array is required")
        template = container.template_service.remove_employees_from_template(template_id, body["employee_ids"])
        return jsonify(
            {
                "message": "Employees removed successfully",
                "template_id": template.id,
                "employee_ids": body["employee_ids"],
                "removed_count": len(body["employee_ids"]),
                "template": template.to_dict(),
            }
        )
