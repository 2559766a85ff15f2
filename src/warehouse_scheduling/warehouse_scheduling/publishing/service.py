"""Draft -> Published transition for schedule templates.

One `publish` call applies every pending change:

1. templates flagged `pending_deletion` are removed with their assignments;
2. each draft replaces Published templates of its department that share a weekday;
3. the remaining drafts are published in one update;
4. the department team leader gets an employee schedule for each template
   published by this call.

Steps 1-4 run in a single transaction. Team leaders and schedule managers are
notified afterwards, and a notification failure never undoes the publish.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from contextlib import nullcontext
from dataclasses import dataclass
from typing import Callable, ContextManager, Iterable, Optional

from ..common.datetime_utils import Clock
from ..core.constants import DEFAULT_ASSIGNED_BY
from ..core.enums import SCHEDULE_MANAGERS, NotificationType
from ..employee_schedules.service import EmployeeScheduleService
from ..notifications.service import NotificationService
from ..realtime import events
from ..realtime.events import EventBroadcaster
from ..templates.model import ScheduleTemplate
from ..templates.repository import TemplateRepository
from ..users.model import User
from ..users.repository import UserRepository

logger = logging.getLogger(__name__)


def _label(t: ScheduleTemplate) -> str:
    return f"{t.shift_name} ({t.start_time}-{t.end_time})"


@dataclass(frozen=True)
class Replacement:
    department: str
    old_template_id: int
    new_template_id: int
    old: str
    new: str
    days: tuple[str, ...]

    def describe(self) -> str:
        return f"{self.old} replaced by {self.new} on {', '.join(self.days)}"


class PublishService:
    def __init__(
        self,
        templates: TemplateRepository,
        employee_schedules: EmployeeScheduleService,
        users: UserRepository,
        notifications: NotificationService,
        events_bus: EventBroadcaster,
        *,
        clock: Clock,
        transaction: Callable[[], ContextManager] = nullcontext,
    ):
        self._templates = templates
        self._employee_schedules = employee_schedules
        self._users = users
        self._notifications = notifications
        self._events = events_bus
        self._clock = clock
        self._transaction = transaction

    def pending_changes(self) -> dict:
        drafts = self._templates.list_drafts()
        pending = self._templates.list_pending_deletion()
        return {
            "drafts": [t.to_dict() for t in drafts],
            "pending_deletions": [t.to_dict() for t in pending],
            "count": len(drafts) + len(pending),
        }

    def publish(self, published_by: Optional[str] = None) -> dict:
        published_by = str(published_by or DEFAULT_ASSIGNED_BY)

        with self._transaction():
            to_delete = list(self._templates.list_pending_deletion())
            drafts = list(self._templates.list_drafts())
            if not to_delete and not drafts:
                logger.info("Publish requested by %s with nothing pending", published_by)
                return {
                    "message": "No changes to publish",
                    "count": 0,
                    "published": 0,
                    "deleted": 0,
                    "replaced": 0,
                    "departments": [],
                    "templates": [],
                }

            departments = sorted({t.department for t in to_delete} | {d.department for d in drafts})
            leaders = self._users.list_team_leaders(departments)
            # Snapshot before deletions cascade away the leaders' coverage.
            published_before = [t for t in self._templates.list_active() if t.is_published]
            days_before = {
                leader.employee_id: self._covered_days(leader.employee_id, published_before)
                for leader in leaders
                if leader.employee_id
            }

            for t in to_delete:
                self._templates.delete_assignments(t.id)
                self._templates.delete(t.id)
                logger.info("Deleted template %s (%s, %s)", t.id, t.department, _label(t))

            replacements = self._replace_overlapping(drafts)
            draft_ids = [d.id for d in drafts]

            published_count = self._templates.publish(
                draft_ids, published_by=published_by, published_at=self._clock.wall_time()
            )
            self._assign_team_leaders(draft_ids, published_by)
            published = [t for t in (self._templates.get(i) for i in draft_ids) if t is not None]

        self._notify_deletions(to_delete, published_by)
        self._notify_additions(published, replacements, leaders, days_before, published_by)

        result = {
            "message": f"Published {published_count} template(s), deleted {len(to_delete)}",
            "count": published_count + len(to_delete),
            "published": published_count,
            "deleted": len(to_delete),
            "replaced": len(replacements),
            "departments": departments,
            "templates": [t.to_dict() for t in published],
        }
        logger.info(
            "Publish by %s: %d published, %d deleted, %d replaced across %s",
            published_by,
            published_count,
            len(to_delete),
            len(replacements),
            departments,
        )
        self._notify_managers(result, published_by)
        self._events.emit(events.SCHEDULES_PUBLISHED, result)
        return result

    def _covered_days(self, employee_id: str, published: Iterable[ScheduleTemplate]) -> set[str]:
        """Weekdays worked through direct schedules or Published template assignments."""

        days = set(self._employee_schedules.assigned_days(employee_id))
        for t in published:
            if employee_id in t.assigned_employee_ids:
                days.update(t.days)
        return days

    def _replace_overlapping(self, drafts: Iterable[ScheduleTemplate]) -> list[Replacement]:
        by_department: dict[str, list[ScheduleTemplate]] = defaultdict(list)
        for t in self._templates.list_published():
            by_department[t.department].append(t)

        out: list[Replacement] = []
        removed: set[int] = set()
        for draft in drafts:
            for old in by_department.get(draft.department, []):
                if old.id in removed:
                    continue
                overlap = tuple(d for d in draft.days if d in old.days)
                if not overlap:
                    continue
                self._templates.delete_assignments(old.id)
                self._templates.delete(old.id)
                removed.add(old.id)
                r = Replacement(
                    department=draft.department,
                    old_template_id=old.id,
                    new_template_id=draft.id,
                    old=_label(old),
                    new=_label(draft),
                    days=overlap,
                )
                out.append(r)
                logger.info("Template %s replaced by draft %s: %s", old.id, draft.id, r.describe())
        return out

    def _assign_team_leaders(self, template_ids: Iterable[int], published_by: str) -> int:
        count = 0
        for template_id in template_ids:
            template = self._templates.get(template_id)
            if template is None or template.pending_deletion:
                continue
            leader = self._users.get_team_leader_for_department(template.department)
            if leader is None or not leader.employee_id:
                logger.info("No team leader for %s, template %s published without one", template.department, template.id)
                continue
            if self._employee_schedules.find_active(leader.employee_id, template.id) is not None:
                continue

            self._templates.add_assignment(
                template.id,
                employee_id=leader.employee_id,
                assigned_by=published_by,
                assigned_date=self._clock.wall_time(),
            )
            self._employee_schedules.assign_schedule_to_employee(
                {
                    "employee_id": leader.employee_id,
                    "template_id": template.id,
                    "days": list(template.days),
                    "assigned_by": published_by,
                }
            )
            count += 1
        return count

    def _notify_deletions(self, deleted: list[ScheduleTemplate], published_by: str) -> None:
        by_department: dict[str, list[ScheduleTemplate]] = defaultdict(list)
        for t in deleted:
            by_department[t.department].append(t)

        for department, templates in by_department.items():
            shifts = "; ".join(f"{_label(t)} on {', '.join(t.days)}" for t in templates)
            try:
                self._notifications.notify_team_leaders(
                    [department],
                    title="Schedule Removed",
                    message=f"The following shifts in {department} were removed: {shifts}",
                    type=NotificationType.SCHEDULE_DELETED,
                    created_by=published_by,
                )
            except Exception:
                logger.exception("Failed to notify %s team leaders about deleted templates", department)

    def _notify_additions(
        self,
        published: list[ScheduleTemplate],
        replacements: list[Replacement],
        leaders: Iterable[User],
        days_before: dict[str, set[str]],
        published_by: str,
    ) -> None:
        affected_days: dict[str, set[str]] = defaultdict(set)
        lines: dict[str, list[str]] = defaultdict(list)
        for t in published:
            affected_days[t.department].update(t.days)
            lines[t.department].append(f"New: {_label(t)} on {', '.join(t.days)}")
        for r in replacements:
            affected_days[r.department].update(r.days)
            lines[r.department].append(f"Changed: {r.describe()}")

        for leader in leaders:
            department = leader.department
            if department not in affected_days:
                continue
            own_days = days_before.get(leader.employee_id or "", set())
            # Only leaders whose own shifts are touched hear about it.
            if not own_days & affected_days[department]:
                continue
            try:
                self._notifications.create_notification(
                    user_id=leader.id,
                    employee_id=leader.employee_id,
                    title="Schedule Published",
                    message=f"Schedule changes for {department}: " + " | ".join(lines[department]),
                    type=NotificationType.SCHEDULE_PUBLISHED,
                    created_by=published_by,
                )
            except Exception:
                logger.exception("Failed to notify team leader %s about published schedules", leader.id)

    def _notify_managers(self, result: dict, published_by: str) -> None:
        departments = ", ".join(result["departments"])
        try:
            self._notifications.notify_roles(
                SCHEDULE_MANAGERS,
                title="Schedules Published",
                message=(
                    f"{published_by} published {result['published']} template(s), deleted {result['deleted']} "
                    f"and replaced {result['replaced']} in {departments}"
                ),
                type=NotificationType.SCHEDULE_PUBLISHED,
                created_by=published_by,
            )
        except Exception:
            logger.exception("Failed to send publish summary to schedule managers")
