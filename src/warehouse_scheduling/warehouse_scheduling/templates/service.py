from __future__ import annotations

import logging
from contextlib import nullcontext
from typing import Any, Callable, ContextManager, Iterable, Mapping, Optional, Sequence

from ..common.datetime_utils import Clock, format_iso_date, weekday_name
from ..common.validators import (
    normalize_day_limits,
    optional_positive_int,
    require_int,
    require_non_empty,
    require_time,
    require_weekdays,
)
from ..core.constants import DEFAULT_ASSIGNED_BY
from ..core.enums import NotificationType, PublishStatus, RecordStatus
from ..core.exceptions import NotFoundError, ValidationError
from ..notifications.service import NotificationService
from ..realtime import events
from ..realtime.events import EventBroadcaster
from ..users.repository import UserRepository
from .model import ScheduleTemplate
from .repository import TemplateRepository

logger = logging.getLogger(__name__)

Transaction = Callable[[], ContextManager]

_DIFFED_FIELDS = (
    ("shift_name", "Shift"),
    ("start_time", "Start time"),
    ("end_time", "End time"),
    ("days", "Days"),
    ("member_limit", "Member limit"),
    ("day_limits", "Day limits"),
)


def _show(value: Any) -> str:
    if value is None or value == () or value == {}:
        return "none"
    if isinstance(value, (list, tuple)):
        return ", ".join(str(v) for v in value)
    if isinstance(value, dict):
        return ", ".join(f"{k}: {v}" for k, v in value.items())
    return str(value)


def describe_changes(before: ScheduleTemplate, after: ScheduleTemplate) -> list[str]:
    """Human-readable 'field: old -> new' lines for the fields team leaders see."""

    out: list[str] = []
    for attr, label in _DIFFED_FIELDS:
        old, new = getattr(before, attr), getattr(after, attr)
        if attr == "days":
            old, new = tuple(old), tuple(new)
        if old != new:
            out.append(f"{label}: {_show(old)} -> {_show(new)}")
    return out


def employee_id_list(value: Any, field_name: str = "employee_ids") -> list[str]:
    if not isinstance(value, (list, tuple)):
        raise ValidationError(f"{field_name} array is required")
    out: list[str] = []
    for v in value:
        eid = str(v).strip() if v is not None else ""
        if eid and eid not in out:
            out.append(eid)
    return out


class TemplateService:
    """Template lifecycle and the employee assignments embedded in templates."""

    def __init__(
        self,
        templates: TemplateRepository,
        users: UserRepository,
        notifications: NotificationService,
        events_bus: EventBroadcaster,
        *,
        clock: Clock,
        transaction: Transaction = nullcontext,
    ):
        self._templates = templates
        self._users = users
        self._notifications = notifications
        self._events = events_bus
        self._clock = clock
        self._transaction = transaction

    # Queries

    def list_templates(self) -> Sequence[ScheduleTemplate]:
        return self._templates.list_active()

    def list_published_templates(self) -> Sequence[ScheduleTemplate]:
        return self._templates.list_published()

    def list_by_department(self, department: str) -> Sequence[ScheduleTemplate]:
        return self._templates.list_by_department(require_non_empty(department, "department"))

    def get_template(self, template_id: int) -> ScheduleTemplate:
        template = self._templates.get(require_int(template_id, "template_id"))
        if template is None:
            raise NotFoundError("Template not found")
        return template

    def template_stats(self) -> dict[str, int]:
        counts = self._templates.count_by_status()
        active = counts.get(RecordStatus.ACTIVE.value, 0)
        total = sum(counts.values())
        return {"active": active, "inactive": total - active, "total": total}

    def get_employee_schedules_from_templates(
        self, employee_id: Optional[str] = None, department: Optional[str] = None
    ) -> list[dict]:
        out: list[dict] = []
        for t in self._templates.list_active():
            if department and t.department != department:
                continue
            for a in t.assigned_employees:
                if employee_id and a.employee_id != str(employee_id):
                    continue
                out.append(
                    {
                        "id": f"{t.id}-{a.employee_id}",
                        "template_id": t.id,
                        "employee_id": a.employee_id,
                        "department": t.department,
                        "shift_name": t.shift_name,
                        "start_time": t.start_time,
                        "end_time": t.end_time,
                        "days": list(t.days),
                        "specific_date": format_iso_date(t.specific_date) if t.specific_date else None,
                        "member_limit": t.member_limit,
                        "day_limits": dict(t.day_limits) if t.day_limits else None,
                        "publish_status": t.publish_status.value,
                        "assigned_by": a.assigned_by,
                        "assigned_date": a.assigned_date.isoformat() if a.assigned_date else None,
                    }
                )
        return out

    def get_todays_schedule_from_templates(self, employee_id: str) -> Optional[dict]:
        today = self._clock.today()
        day = weekday_name(today)
        for t in self._templates.list_active():
            if not t.is_published or t.pending_deletion:
                continue
            if str(employee_id) not in t.assigned_employee_ids:
                continue
            matches = t.specific_date == today if t.specific_date else day in t.days
            if matches:
                return {
                    "date": format_iso_date(today),
                    "day": day,
                    "template_id": t.id,
                    "employee_id": str(employee_id),
                    "department": t.department,
                    "shift_name": t.shift_name,
                    "start_time": t.start_time,
                    "end_time": t.end_time,
                }
        return None

    # Commands

    def create_template(self, data: Mapping[str, Any], *, created_by: Optional[str] = None) -> ScheduleTemplate:
        department = require_non_empty(data.get("department"), "department")
        shift_name = require_non_empty(data.get("shift_name"), "shift_name")
        start_time = require_time(data.get("start_time"), "start_time")
        end_time = require_time(data.get("end_time"), "end_time")

        specific_date = self._clock.to_local_date(data["specific_date"]) if data.get("specific_date") else None
        if data.get("days"):
            days = require_weekdays(data.get("days"))
        elif specific_date is not None:
            days = [weekday_name(specific_date)]
        else:
            raise ValidationError("days or specific_date is required")

        member_limit = optional_positive_int(data.get("member_limit"), "member_limit")
        day_limits = normalize_day_limits(data.get("day_limits"))
        publish_status = self._parse_publish_status(data.get("publish_status"))
        creator = data.get("created_by") or created_by
        created_by = str(creator) if creator else None
        employee_ids = employee_id_list(data.get("employee_ids") or [])

        with self._transaction():
            existing = None
            if specific_date is None and publish_status == PublishStatus.DRAFT:
                existing = self._templates.find_draft_by_shift(
                    department=department, shift_name=shift_name, start_time=start_time, end_time=end_time
                )

            if existing is not None:
                merged_days = list(existing.days) + [d for d in days if d not in existing.days]
                merged_limits = {**(existing.day_limits or {}), **(day_limits or {})} or None
                logger.info(
                    "Merging template %s (%s) days %s into %s",
                    existing.id,
                    existing.shift_name,
                    list(existing.days),
                    merged_days,
                )
                self._templates.update(
                    existing.id,
                    fields={
                        "days": merged_days,
                        "day_limits": merged_limits,
                        "member_limit": member_limit or existing.member_limit,
                    },
                )
                template_id = existing.id
            else:
                now = self._clock.wall_time()
                published = publish_status == PublishStatus.PUBLISHED
                template_id = self._templates.create(
                    department=department,
                    shift_name=shift_name,
                    start_time=start_time,
                    end_time=end_time,
                    days=days,
                    specific_date=specific_date,
                    member_limit=member_limit,
                    day_limits=day_limits,
                    created_by=created_by,
                    publish_status=publish_status,
                    published_at=now if published else None,
                    published_by=created_by if published else None,
                )

            self._assign(template_id, employee_ids, assigned_by=created_by or DEFAULT_ASSIGNED_BY)
            template = self.get_template(template_id)

        logger.info("Template %s created for %s (%s)", template.id, template.department, template.publish_status.value)
        self._events.emit(events.TEMPLATE_CREATED, template.to_dict())
        return template

    def update_template(
        self, template_id: int, data: Mapping[str, Any], *, edited_by: Optional[str] = None
    ) -> ScheduleTemplate:
        before = self.get_template(template_id)
        fields: dict[str, Any] = {}

        if "department" in data:
            fields["department"] = require_non_empty(data.get("department"), "department")
        if "shift_name" in data:
            fields["shift_name"] = require_non_empty(data.get("shift_name"), "shift_name")
        if "start_time" in data:
            fields["start_time"] = require_time(data.get("start_time"), "start_time")
        if "end_time" in data:
            fields["end_time"] = require_time(data.get("end_time"), "end_time")
        if "specific_date" in data:
            specific = self._clock.to_local_date(data["specific_date"]) if data.get("specific_date") else None
            fields["specific_date"] = specific
            if specific is not None and not data.get("days"):
                fields["days"] = [weekday_name(specific)]
        if data.get("days") is not None:
            fields["days"] = require_weekdays(data.get("days"))
        if "member_limit" in data:
            fields["member_limit"] = optional_positive_int(data.get("member_limit"), "member_limit")
        if "day_limits" in data:
            fields["day_limits"] = normalize_day_limits(data.get("day_limits"))
        if data.get("status"):
            try:
                fields["status"] = RecordStatus(str(data["status"]).capitalize())
            except ValueError:
                raise ValidationError(f"Invalid status: {data['status']!r}")

        if not fields:
            raise ValidationError("No fields to update")

        editor = str(data.get("edited_by") or edited_by or DEFAULT_ASSIGNED_BY)
        fields["edited_at"] = self._clock.wall_time()
        fields["edited_by"] = editor

        self._templates.update(before.id, fields=fields)
        after = self.get_template(before.id)

        if before.is_published:
            changes = describe_changes(before, after)
            if changes:
                self._notify_change(before, after, changes, editor)

        self._events.emit(events.TEMPLATE_UPDATED, after.to_dict())
        return after

    def delete_template(self, template_id: int) -> dict:
        """Flag for deletion at the next publish; never-published drafts go immediately."""

        template = self.get_template(template_id)
        if not template.is_published and template.published_at is None:
            with self._transaction():
                self._templates.delete_assignments(template.id)
                self._templates.delete(template.id)
            logger.info("Draft template %s deleted", template.id)
            result = {"id": template.id, "deleted": True, "pending_deletion": False}
        else:
            self._templates.mark_pending_deletion(template.id)
            logger.info("Template %s marked for deletion", template.id)
            result = {"id": template.id, "deleted": False, "pending_deletion": True}

        self._events.emit(events.TEMPLATE_DELETED, result)
        return result

    def assign_employees_to_template(
        self, template_id: int, employee_ids: Any, assigned_by: Optional[str] = None
    ) -> tuple[ScheduleTemplate, list[str]]:
        """Returns the template and the ids newly assigned by this call."""

        template_id = require_int(template_id, "template_id")
        ids = employee_id_list(employee_ids)
        with self._transaction():
            added = self._assign(template_id, ids, assigned_by=assigned_by or DEFAULT_ASSIGNED_BY)
            template = self.get_template(template_id)

        self._events.emit(events.EMPLOYEE_ASSIGNED, {"template_id": template.id, "employee_ids": added})
        return template, added

    def remove_employees_from_template(self, template_id: int, employee_ids: Any) -> ScheduleTemplate:
        ids = employee_id_list(employee_ids)
        template = self.get_template(template_id)
        removed = self._templates.remove_assignments(template.id, ids)
        logger.info("Removed %d employee(s) from template %s", removed, template.id)

        self._events.emit(events.EMPLOYEE_REMOVED, {"template_id": template.id, "employee_ids": ids})
        return self.get_template(template.id)

    # Helpers

    def _parse_publish_status(self, value: Any) -> PublishStatus:
        if not value:
            return PublishStatus.DRAFT
        try:
            return PublishStatus(str(value).capitalize())
        except ValueError:
            raise ValidationError(f"Invalid publish_status: {value!r}")

    def _assign(self, template_id: int, employee_ids: Iterable[str], *, assigned_by: str) -> list[str]:
        """Add employees plus the department's team leader. Returns the ids actually added."""

        template = self._templates.get(template_id, for_update=True)
        if template is None:
            raise NotFoundError("Template not found")

        ids = list(employee_ids)
        leader = self._users.get_team_leader_for_department(template.department)
        leader_id = leader.employee_id if leader else None
        if leader_id is None:
            logger.info("No team leader found for department %s, skipping auto-assignment", template.department)
        elif leader_id not in ids:
            ids.append(leader_id)

        existing = set(template.assigned_employee_ids)
        new_ids = [i for i in ids if i not in existing]
        if any(i != leader_id for i in new_ids):
            self._check_limits(template, [*template.assigned_employee_ids, *new_ids], leader_id)

        now = self._clock.wall_time()
        added: list[str] = []
        for eid in new_ids:
            if self._templates.add_assignment(template.id, employee_id=eid, assigned_by=assigned_by, assigned_date=now):
                added.append(eid)
        if added:
            logger.info("Assigned %s to template %s", added, template.id)
        return added

    @staticmethod
    def _check_limits(template: ScheduleTemplate, employee_ids: Sequence[str], leader_id: Optional[str]) -> None:
        # Team leaders do not take a member slot.
        members = [e for e in employee_ids if e != leader_id]
        for day in template.days:
            cap = template.limit_for(day)
            if cap is not None and len(members) > cap:
                raise ValidationError(
                    f"Member limit reached for {template.shift_name} on {day}. Maximum {cap} members allowed."
                )

    def _notify_change(
        self, before: ScheduleTemplate, after: ScheduleTemplate, changes: list[str], editor: str
    ) -> None:
        departments = {before.department, after.department}
        summary = "; ".join(changes)
        message = f"{after.shift_name} ({after.start_time}-{after.end_time}) in {after.department} was updated. {summary}"
        try:
            self._notifications.notify_team_leaders(
                departments,
                title="Schedule Updated",
                message=message,
                type=NotificationType.SCHEDULE_UPDATE,
                related_id=after.id,
                created_by=editor,
            )
        except Exception:
            logger.exception("Failed to notify team leaders about template %s", after.id)
