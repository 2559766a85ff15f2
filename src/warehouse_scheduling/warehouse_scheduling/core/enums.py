from __future__ import annotations

from enum import Enum


class Role(str, Enum):
    """User roles used for dashboards and permission checks."""

    ADMIN = "admin"
    SUPERVISOR = "supervisor"
    TEAM_LEADER = "teamleader"
    EMPLOYEE = "employee"
    WAREHOUSE_ADMIN = "warehouseadmin"


# Roles allowed to edit templates and publish drafts.
SCHEDULE_MANAGERS = frozenset({Role.ADMIN, Role.SUPERVISOR, Role.WAREHOUSE_ADMIN})


class RecordStatus(str, Enum):
    ACTIVE = "Active"
    INACTIVE = "Inactive"


class PublishStatus(str, Enum):
    """Draft templates stay invisible to team leaders until published."""

    DRAFT = "Draft"
    PUBLISHED = "Published"


class NotificationType(str, Enum):
    SCHEDULE_UPDATE = "schedule_update"
    SCHEDULE_PUBLISHED = "schedule_published"
    SCHEDULE_DELETED = "schedule_deleted"
    GENERAL = "general"


# Ordered like Python's isoweekday() % 7: Sunday first.
WEEKDAYS: tuple[str, ...] = (
    "Sunday",
    "Monday",
    "Tuesday",
    "Wednesday",
    "Thursday",
    "Friday",
    "Saturday",
)
