from __future__ import annotations

from flask import Flask, jsonify, request

from ..common.http import camelize, current_caller, error_response, json_body, login_required, server_error
from ..core.exceptions import DomainError
from ..container import Container
from .query import build_task_query
from .serializers import comment_to_dict, task_to_dict, time_entry_to_dict

# Request body keys (camelCase API or snake_case) -> Task attribute names.
FIELD_ALIASES = {
    "assignedTo": "assigned_to",
    "dueDate": "due_date",
    "estimatedHours": "estimated_hours",
    "actualHours": "actual_hours",
    "completionReason": "completion_reason",
    "isRecurring": "is_recurring",
    "recurringPattern": "recurring_pattern",
}


def _normalize_keys(body: dict) -> dict:
    return {FIELD_ALIASES.get(key, key): value for key, value in body.items()}


def register(app: Flask, container: Container) -> None:
    @app.route("/api/tasks", methods=["GET"], endpoint="list_tasks")
    @login_required
    def list_tasks():
        try:
            args = request.args
            query = build_task_query(
                current_caller(),
                assigned_to=args.get("assignedTo"),
                status=args.get("status"),
                priority=args.get("priority"),
                category=args.get("category"),
                search=args.get("search"),
                page=args.get("page"),
                limit=args.get("limit"),
                sort_by=args.get("sortBy"),
                sort_order=args.get("sortOrder"),
            )
            page = container.task_service.list_tasks(query)
            return jsonify(
                {
                    "success": True,
                    "tasks": camelize([task_to_dict(t) for t in page.tasks]),
                    "pagination": {
                        "currentPage": page.page,
                        "totalPages": page.total_pages,
                        "totalTasks": page.total,
                        "hasNext": page.has_next,
                        "hasPrev": page.has_prev,
                    },
                }
            )
        except DomainError as e:
            return error_response(e)
        except Exception:
            return server_error("Get tasks")

    @app.route("/api/tasks/<int:task_id>", methods=["GET"], endpoint="get_task")
    @login_required
    def get_task(task_id: int):
        try:
            task = container.task_service.get_task(current_caller(), task_id)
            return jsonify({"success": True, "task": camelize(task_to_dict(task))})
        except DomainError as e:
            return error_response(e)
        except Exception:
            return server_error("Get task")

    @app.route("/api/tasks", methods=["POST"], endpoint="create_task")
    @login_required
    def create_task():
        try:
            task = container.task_service.create_task(current_caller(), _normalize_keys(json_body()))
            return jsonify(
                {"success": True, "message": "Task created successfully", "task": camelize(task_to_dict(task))}
            ), 201
        except DomainError as e:
            return error_response(e)
        except Exception:
            return server_error("Create task")

    @app.route("/api/tasks/<int:task_id>", methods=["PUT"], endpoint="update_task")
    @login_required
    def update_task(task_id: int):
        try:
            task = container.task_service.update_task(current_caller(), task_id, _normalize_keys(json_body()))
            return jsonify(
                {"success": True, "message": "Task updated successfully", "task": camelize(task_to_dict(task))}
            )
        except DomainError as e:
            return error_response(e)
        except Exception:
            return server_error("Update task")

    @app.route("/api/tasks/<int:task_id>/comments", methods=["POST"], endpoint="add_task_comment")
    @login_required
    def add_task_comment(task_id: int):
        try:
            comments = container.task_service.add_comment(current_caller(), task_id, json_body().get("comment"))
            return jsonify(
                {
                    "success": True,
                    "message": "Comment added successfully",
                    "comments": camelize([comment_to_dict(c) for c in comments]),
                }
            )
        except DomainError as e:
            return error_response(e)
        except Exception:
            return server_error("Add comment")

    @app.route("/api/tasks/<int:task_id>/time-tracking", methods=["POST"], endpoint="add_time_entry")
    @login_required
    def add_time_entry(task_id: int):
        try:
            body = json_body()
            entries = container.task_service.add_time_entry(
                current_caller(),
                task_id,
                start_time=body.get("startTime", body.get("start_time")),
                end_time=body.get("endTime", body.get("end_time")),
                description=body.get("description"),
            )
            return jsonify(
                {
                    "success": True,
                    "message": "Time tracking entry added successfully",
                    "timeTracking": camelize([time_entry_to_dict(e) for e in entries]),
                }
            )
        except DomainError as e:
            return error_response(e)
        except Exception:
            return server_error("Add time tracking")

    @app.route("/api/tasks/<int:task_id>", methods=["DELETE"], endpoint="delete_task")
    @login_required
    def delete_task(task_id: int):
        try:
            container.task_service.delete_task(current_caller(), task_id)
            return jsonify({"success": True, "message": "Task deleted successfully"})
        except DomainError as e:
            return error_response(e)
        except Exception:
            return server_error("Delete task")
