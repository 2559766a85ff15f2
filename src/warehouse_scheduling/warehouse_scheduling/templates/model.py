from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional

from ..core.enums import PublishStatus, RecordStatus


def _iso(value) -> Optional[str]:
    return value.isoformat() if value is not None else None


@dataclass(frozen=True)
class TemplateAssignment:
    """One employee assigned to one template (row of template_assignments)."""

    template_id: int
    employee_id: str
    assigned_by: Optional[str] = None
    assigned_date: Optional[datetime] = None

    def to_dict(self) -> dict:
        return {
            "employee_id": self.employee_id,
            "assigned_date": _iso(self.assigned_date),
            "assigned_by": self.assigned_by,
        }


@dataclass(frozen=True)
class ScheduleTemplate:
    id: int
    department: str
    shift_name: str
    start_time: str
    end_time: str
    days: tuple[str, ...]
    specific_date: Optional[date] = None
    member_limit: Optional[int] = None
    day_limits: Optional[dict[str, int]] = None
    created_by: Optional[str] = None
    status: RecordStatus = RecordStatus.ACTIVE
    publish_status: PublishStatus = PublishStatus.DRAFT
    published_at: Optional[datetime] = None
    published_by: Optional[str] = None
    pending_deletion: bool = False
    edited_at: Optional[datetime] = None
    edited_by: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    assigned_employees: tuple[TemplateAssignment, ...] = ()

    @property
    def is_published(self) -> bool:
        return self.publish_status == PublishStatus.PUBLISHED

    @property
    def assigned_employee_ids(self) -> list[str]:
        return [a.employee_id for a in self.assigned_employees]

    def limit_for(self, day: str) -> Optional[int]:
        """Per-day cap; `day_limits` wins over `member_limit`."""

        if self.day_limits and self.day_limits.get(day):
            return int(self.day_limits[day])
        return self.member_limit

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "department": self.department,
            "shift_name": self.shift_name,
            "start_time": self.start_time,
            "end_time": self.end_time,
            "days": list(self.days),
            "specific_date": _iso(self.specific_date),
            "member_limit": self.member_limit,
            "day_limits": dict(self.day_limits) if self.day_limits else None,
            "created_by": self.created_by,
            "status": self.status.value,
            "publish_status": self.publish_status.value,
            "published_at": _iso(self.published_at),
            "published_by": self.published_by,
            "pending_deletion": self.pending_deletion,
            "edited_at": _iso(self.edited_at),
            "edited_by": self.edited_by,
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
            "assigned_employees": [a.to_dict() for a in self.assigned_employees],
        }
