from __future__ import annotations

from flask import Flask, jsonify, session

from ..common.http import (
    camelize,
    current_caller,
    error_response,
    json_body,
    login_required,
    manager_required,
    roles_required,
    server_error,
)
from ..core.enums import Role
from ..core.exceptions import DomainError, ValidationError
from ..container import Container
from .model import User
from .service import SessionUser


def user_to_dict(user: User) -> dict:
    return {
        "user_id": user.user_id,
        "name": user.name,
        "email": user.email,
        "role": user.role.value,
        "status": user.status.value,
        "department": user.department,
        "joined_date": user.joined_date.isoformat() if user.joined_date else None,
        "last_login": user.last_login.isoformat() if user.last_login else None,
    }


def register(app: Flask, container: Container) -> None:
    def _start_session(s_user: SessionUser) -> None:
        session.clear()
        session.permanent = True
        session["user_id"] = s_user.user_id
        session["name"] = s_user.name
        session["role"] = s_user.role.value

    @app.route("/api/auth/login", methods=["POST"], endpoint="login")
    def login():
        body = json_body()
        try:
            s_user = container.auth_service.authenticate(body.get("email", ""), body.get("password", ""))
            _start_session(s_user)
            user = container.user_service.get_profile(s_user.user_id)
            return jsonify({"success": True, "message": "Login successful", "user": camelize(user_to_dict(user))})
        except DomainError as e:
            return error_response(e)
        except Exception:
            return server_error("Login")

    @app.route("/api/auth/signup", methods=["POST"], endpoint="signup")
    def signup():
        body = json_body()
        try:
            s_user = container.auth_service.signup(
                name=body.get("name", ""),
                email=body.get("email", ""),
                password=body.get("password", ""),
                department=body.get("department"),
            )
            _start_session(s_user)
            user = container.user_service.get_profile(s_user.user_id)
            return jsonify(
                {"success": True, "message": "Account created successfully", "user": camelize(user_to_dict(user))}
            ), 201
        except DomainError as e:
            return error_response(e)
        except Exception:
            return server_error("Signup")

    @app.route("/api/auth/logout", methods=["POST"], endpoint="logout")
    def logout():
        session.clear()
        return jsonify({"success": True, "message": "Logged out successfully"})

    @app.route("/api/auth/me", methods=["GET"], endpoint="me")
    @login_required
    def me():
        try:
            user = container.user_service.get_profile(current_caller().user_id)
            out = user_to_dict(user)
            out["assigned_tasks"] = container.user_service.assigned_task_ids(user.user_id)
            return jsonify({"success": True, "user": camelize(out)})
        except DomainError as e:
            return error_response(e)
        except Exception:
            return server_error("Get current user")

    @app.route("/api/auth/profile", methods=["PUT"], endpoint="update_profile")
    @login_required
    def update_profile():
        body = json_body()
        try:
            user = container.user_service.update_profile(
                user_id=current_caller().user_id,
                name=body.get("name", ""),
                email=body.get("email", ""),
                department=body.get("department"),
            )
            session["name"] = user.name
            return jsonify(
                {"success": True, "message": "Profile updated successfully", "user": camelize(user_to_dict(user))}
            )
        except DomainError as e:
            return error_response(e)
        except Exception:
            return server_error("Update profile")

    @app.route("/api/auth/password", methods=["PUT"], endpoint="update_password")
    @login_required
    def update_password():
        body = json_body()
        try:
            container.user_service.change_password(
                user_id=current_caller().user_id,
                current_password=body.get("currentPassword", ""),
                new_password=body.get("newPassword", ""),
            )
            return jsonify({"success": True, "message": "Password updated successfully"})
        except DomainError as e:
            return error_response(e)
        except Exception:
            return server_error("Update password")

    @app.route("/api/users", methods=["GET"], endpoint="list_users")
    @manager_required
    def list_users():
        try:
            users = container.user_service.list_directory(current_role=current_caller().role)
            return jsonify({"success": True, "users": camelize([user_to_dict(u) for u in users])})
        except DomainError as e:
            return error_response(e)
        except Exception:
            return server_error("List users")

    @app.route("/api/users", methods=["POST"], endpoint="create_user")
    @roles_required(Role.ADMIN)
    def create_user():
        body = json_body()
        try:
            try:
                role = Role(body.get("role", Role.EMPLOYEE.value))
            except ValueError:
                raise ValidationError("Invalid role")

            user_id = container.user_service.create_account(
                current_role=current_caller().role,
                name=body.get("name", ""),
                email=body.get("email", ""),
                password=body.get("password", ""),
                role=role,
                department=body.get("department"),
            )
            user = container.user_service.get_profile(user_id)
            return jsonify(
                {"success": True, "message": "User created successfully", "user": camelize(user_to_dict(user))}
            ), 201
        except DomainError as e:
            return error_response(e)
        except Exception:
            return server_error("Create user")
