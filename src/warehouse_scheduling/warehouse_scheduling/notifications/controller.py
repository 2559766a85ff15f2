from __future__ import annotations

from flask import Flask, jsonify

from ..common.http import current_user, error_response, json_errors, login_required
from ..core.enums import Role
from ..container import Container


def register(app: Flask, container: Container) -> None:
    service = container.notification_service

    def _forbidden_for(user_id: int):
        # Users manage their own inbox; admins may manage any.
        user = current_user()
        if user is not None and user.user_id != int(user_id) and user.role != Role.ADMIN:
            return error_response("You can only access your own notifications", 403)
        return None

    @app.route("/api/notifications/user/<int:user_id>", methods=["GET"], endpoint="notifications_list")
    @login_required
    @json_errors
    def notifications_list(user_id: int):
        denied = _forbidden_for(user_id)
        if denied:
            return denied
        return jsonify([n.to_dict() for n in service.list_for_user(user_id)])

    @app.route("/api/notifications/user/<int:user_id>/unread", methods=["GET"], endpoint="notifications_unread")
    @login_required
    @json_errors
    def notifications_unread(user_id: int):
        denied = _forbidden_for(user_id)
        if denied:
            return denied
        return jsonify({"count": service.unread_count(user_id)})

    @app.route("/api/notifications/user/<int:user_id>/read-all", methods=["PUT"], endpoint="notifications_read_all")
    @login_required
    @json_errors
    def notifications_read_all(user_id: int):
        denied = _forbidden_for(user_id)
        if denied:
            return denied
        count = service.mark_all_as_read(user_id)
        return jsonify({"message": "All notifications marked as read", "count": count})

    @app.route("/api/notifications/user/<int:user_id>/clear-all", methods=["DELETE"], endpoint="notifications_clear_all")
    @login_required
    @json_errors
    def notifications_clear_all(user_id: int):
        denied = _forbidden_for(user_id)
        if denied:
            return denied
        count = service.clear_all(user_id)
        return jsonify({"message": "All notifications cleared", "count": count})

    @app.route("/api/notifications/<int:notification_id>/read", methods=["PUT"], endpoint="notifications_read")
    @login_required
    @json_errors
    def notifications_read(notification_id: int):
        notification = service.mark_as_read(notification_id)
        return jsonify({"message": "Notification marked as read", "notification": notification.to_dict()})

    @app.route("/api/notifications/<int:notification_id>", methods=["DELETE"], endpoint="notifications_delete")
    @login_required
    @json_errors
    def notifications_delete(notification_id: int):
        service.delete(notification_id)
        return jsonify({"message": "Notification deleted successfully"})
