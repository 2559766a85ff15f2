from __future__ import annotations

import logging

from flask import Flask, jsonify, session

from ..common.http import current_user, json_body, json_errors, login_required
from ..container import Container

logger = logging.getLogger(__name__)


def register(app: Flask, container: Container) -> None:
    @app.route("/api/auth/login", methods=["POST"], endpoint="auth_login")
    @json_errors
    def auth_login():
        body = json_body()
        user = container.auth_service.authenticate(body.get("username"), body.get("password"))

        session.clear()
        session["user_id"] = user.user_id
        session["name"] = user.name
        session["role"] = user.role.value
        session["employee_id"] = user.employee_id
        session["department"] = user.department
        logger.info("User %s logged in as %s", user.user_id, user.role.value)

        return jsonify(
            {
                "message": "Login successful",
                "user": {
                    "id": user.user_id,
                    "name": user.name,
                    "role": user.role.value,
                    "employee_id": user.employee_id,
                    "department": user.department,
                },
            }
        )

    @app.route("/api/auth/logout", methods=["POST"], endpoint="auth_logout")
    def auth_logout():
        session.clear()
        return jsonify({"message": "Logged out"})

    @app.route("/api/auth/me", methods=["GET"], endpoint="auth_me")
    @login_required
    def auth_me():
        user = current_user()
        return jsonify(
            {
                "id": user.user_id,
                "name": user.name,
                "role": user.role.value,
                "employee_id": user.employee_id,
                "department": user.department,
            }
        )
