from __future__ import annotations

from flask import Flask, jsonify, request

from ..common.http import camelize, current_caller, error_response, manager_required, server_error
from ..core.exceptions import DomainError
from ..container import Container
from ..tasks.serializers import task_to_dict, user_ref_to_dict
from .model import EmployeeTaskStats


def _stats_to_dict(stats: EmployeeTaskStats, *, with_tasks: bool) -> dict:
    out = {
        "employee": user_ref_to_dict(stats.employee),
        "total_tasks": stats.total_tasks,
        "completed_tasks": stats.completed_tasks,
        "in_progress_tasks": stats.in_progress_tasks,
        "overdue_tasks": stats.overdue_tasks,
        "total_estimated_hours": stats.total_estimated_hours,
        "total_actual_hours": stats.total_actual_hours,
        "avg_progress": stats.avg_progress,
        "completion_rate": stats.completion_rate,
        "efficiency": stats.efficiency,
    }
    if with_tasks:
        out["tasks"] = [task_to_dict(t) for t in stats.tasks]
    return out


def register(app: Flask, container: Container) -> None:
    @app.route("/api/tasks/stats/overview", methods=["GET"], endpoint="task_stats_overview")
    @manager_required
    def task_stats_overview():
        try:
            report = container.report_service.overview(
                current_caller(),
                user_id=request.args.get("userId"),
                start_date=request.args.get("startDate"),
                end_date=request.args.get("endDate"),
            )
            return jsonify(
                {
                    "success": True,
                    "stats": camelize(report.stats),
                    "priorityStats": camelize(report.priority_stats),
                    "categoryStats": camelize(report.category_stats),
                }
            )
        except DomainError as e:
            return error_response(e)
        except Exception:
            return server_error("Get task stats")

    @app.route("/api/tasks/employee-summary", methods=["GET"], endpoint="employee_summary")
    @manager_required
    def employee_summary():
        try:
            report = container.report_service.employee_summary(
                current_caller(),
                start_date=request.args.get("startDate"),
                end_date=request.args.get("endDate"),
            )
            return jsonify(
                {
                    "success": True,
                    "data": camelize([_stats_to_dict(r, with_tasks=False) for r in report.rows]),
                    "summary": {
                        "totalEmployees": report.total_employees,
                        "avgCompletionRate": report.avg_completion_rate,
                    },
                }
            )
        except DomainError as e:
            return error_response(e)
        except Exception:
            return server_error("Get employee summary")

    @app.route("/api/tasks/by-employee", methods=["GET"], endpoint="tasks_by_employee")
    @manager_required
    def tasks_by_employee():
        try:
            args = request.args
            report = container.report_service.tasks_by_employee(
                current_caller(),
                status=args.get("status"),
                priority=args.get("priority"),
                category=args.get("category"),
                search=args.get("search"),
                start_date=args.get("startDate"),
                end_date=args.get("endDate"),
                page=args.get("page"),
                limit=args.get("limit"),
            )
            return jsonify(
                {
                    "success": True,
                    "data": camelize([_stats_to_dict(r, with_tasks=True) for r in report.rows]),
                    "pagination": {
                        "currentPage": report.page,
                        "totalPages": report.total_pages,
                        "totalEmployees": report.total_employees,
                        "hasNext": report.has_next,
                        "hasPrev": report.has_prev,
                    },
                }
            )
        except DomainError as e:
            return error_response(e)
        except Exception:
            return server_error("Get tasks by employee")
