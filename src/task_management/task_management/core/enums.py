from __future__ import annotations

from enum import Enum


class Role(str, Enum):
    """User role used for authorization."""

    ADMIN = "admin"
    HR = "hr"
    EMPLOYEE = "employee"


# Roles with management rights over tasks and reports.
MANAGER_ROLES = frozenset({Role.ADMIN, Role.HR})


class UserStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"


class TaskStatus(str, Enum):
    """Task lifecycle status. COMPLETED is terminal for the access policy."""

    PENDING = "pending"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"
    OVERDUE = "overdue"
    CANCELLED = "cancelled"


class TaskPriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


class TaskCategory(str, Enum):
    DEVELOPMENT = "development"
    DESIGN = "design"
    TESTING = "testing"
    DOCUMENTATION = "documentation"
    MEETING = "meeting"
    RESEARCH = "research"
    OTHER = "other"
