from __future__ import annotations

from flask import Flask, session

from ..common.http import current_actor, json_body, ok
from ..container import Container
from ..core.exceptions import AuthenticationError
from .policy import Actor, actor_to_session


def register(app: Flask, container: Container) -> None:
    def _login(actor: Actor, remember: bool):
        session.clear()
        session.permanent = remember
        session.update(actor_to_session(actor))
        return ok(actor_to_session(actor))

    @app.route("/api/auth/staff-login", methods=["POST"], endpoint="api_staff_login")
    def staff_login():
        data = json_body()
        actor = container.auth_service.authenticate_staff(data.get("email", ""), data.get("password", ""))
        return _login(actor, bool(data.get("rememberMe")))

    @app.route("/api/auth/student-login", methods=["POST"], endpoint="api_student_login")
    def student_login():
        data = json_body()
        actor = container.auth_service.authenticate_student(data.get("studentNumber", ""), data.get("email", ""))
        return _login(actor, bool(data.get("rememberMe")))

    @app.route("/api/auth/logout", methods=["POST"], endpoint="api_logout")
    def logout():
        session.clear()
        return ok()

    @app.route("/api/auth/me", methods=["GET"], endpoint="api_me")
    def me():
        actor = current_actor()
        if actor is None:
            raise AuthenticationError("Unauthorized")
        return ok(actor_to_session(actor))
