from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass, replace
from datetime import datetime

import pytest
from werkzeug.security import generate_password_hash

from src.warehouse_scheduling.warehouse_scheduling.common.datetime_utils import Clock
from src.warehouse_scheduling.warehouse_scheduling.core.enums import PublishStatus, RecordStatus, Role
from src.warehouse_scheduling.warehouse_scheduling.employee_schedules.model import EmployeeSchedule
from src.warehouse_scheduling.warehouse_scheduling.employee_schedules.service import EmployeeScheduleService
from src.warehouse_scheduling.warehouse_scheduling.notifications.model import Notification
from src.warehouse_scheduling.warehouse_scheduling.notifications.service import NotificationService
from src.warehouse_scheduling.warehouse_scheduling.publishing.service import PublishService
from src.warehouse_scheduling.warehouse_scheduling.templates.model import ScheduleTemplate, TemplateAssignment
from src.warehouse_scheduling.warehouse_scheduling.templates.service import TemplateService
from src.warehouse_scheduling.warehouse_scheduling.users.model import User


@dataclass(frozen=True)
class FixedClock(Clock):
    # 2024-01-01 is a Monday.
    fixed: datetime = datetime(2024, 1, 1, 9, 0, 0)

    def now(self) -> datetime:
        return self.fixed.replace(tzinfo=self.tzinfo)


class FakeUserRepo:
    def __init__(self, users):
        self.users = {u.id: u for u in users}

    def get_by_id(self, user_id):
        return self.users.get(int(user_id))

    def get_by_username(self, username):
        return next((u for u in self.users.values() if u.username == username), None)

    def get_team_leader_for_department(self, department):
        leaders = self.list_team_leaders([department])
        return leaders[0] if leaders else None

    def list_team_leaders(self, departments):
        wanted = set(departments)
        return [
            u
            for u in sorted(self.users.values(), key=lambda u: u.id)
            if u.role == Role.TEAM_LEADER and u.is_active and u.department in wanted
        ]

    def list_by_roles(self, roles):
        wanted = {Role(r) for r in roles}
        return [u for u in sorted(self.users.values(), key=lambda u: u.id) if u.role in wanted and u.is_active]


class FakeTemplateRepo:
    def __init__(self):
        self._next_id = 1
        self.rows: dict[int, ScheduleTemplate] = {}
        self.assignments: dict[int, list[TemplateAssignment]] = {}
        self.schedules = None  # FakeEmployeeScheduleRepo, for ON DELETE CASCADE

    def _full(self, t):
        return replace(t, assigned_employees=tuple(self.assignments.get(t.id, [])))

    def _where(self, pred, key=lambda t: t.id):
        return [self._full(t) for t in sorted(self.rows.values(), key=key) if pred(t)]

    def list_active(self):
        return self._where(lambda t: t.status == RecordStatus.ACTIVE, key=lambda t: (t.department, t.shift_name))

    def list_published(self):
        return self._where(
            lambda t: t.status == RecordStatus.ACTIVE and t.is_published and not t.pending_deletion,
            key=lambda t: (t.department, t.shift_name),
        )

    def list_by_department(self, department):
        return self._where(
            lambda t: t.department == department and t.status == RecordStatus.ACTIVE, key=lambda t: t.shift_name
        )

    def list_drafts(self):
        return self._where(lambda t: t.publish_status == PublishStatus.DRAFT and not t.pending_deletion)

    def list_pending_deletion(self):
        return self._where(lambda t: t.pending_deletion)

    def find_draft_by_shift(self, *, department, shift_name, start_time, end_time):
        rows = self._where(
            lambda t: (t.department, t.shift_name, t.start_time, t.end_time)
            == (department, shift_name, start_time, end_time)
            and t.status == RecordStatus.ACTIVE
            and t.publish_status == PublishStatus.DRAFT
            and not t.pending_deletion
        )
        return rows[0] if rows else None

    def get(self, template_id, *, for_update=False):
        t = self.rows.get(int(template_id))
        return self._full(t) if t else None

    def create(
        self,
        *,
        department,
        shift_name,
        start_time,
        end_time,
        days,
        specific_date,
        member_limit,
        day_limits,
        created_by,
        publish_status,
        published_at=None,
        published_by=None,
    ):
        tid = self._next_id
        self._next_id += 1
        self.rows[tid] = ScheduleTemplate(
            id=tid,
            department=department,
            shift_name=shift_name,
            start_time=start_time,
            end_time=end_time,
            days=tuple(days),
            specific_date=specific_date,
            member_limit=member_limit,
            day_limits=dict(day_limits) if day_limits else None,
            created_by=created_by,
            publish_status=publish_status,
            published_at=published_at,
            published_by=published_by,
        )
        return tid

    def update(self, template_id, *, fields):
        t = self.rows.get(int(template_id))
        if t is None:
            return False
        values = dict(fields)
        if "days" in values:
            values["days"] = tuple(values["days"])
        self.rows[t.id] = replace(t, **values)
        return True

    def mark_pending_deletion(self, template_id):
        return self.update(template_id, fields={"pending_deletion": True})

    def delete(self, template_id):
        t = self.rows.pop(int(template_id), None)
        self.assignments.pop(int(template_id), None)
        if t is not None and self.schedules is not None:
            self.schedules.cascade_template(t.id)
        return t is not None

    def publish(self, template_ids, *, published_by, published_at):
        count = 0
        for tid in set(template_ids):
            t = self.rows.get(int(tid))
            if t is None or t.pending_deletion:
                continue
            self.rows[t.id] = replace(
                t, publish_status=PublishStatus.PUBLISHED, published_by=published_by, published_at=published_at
            )
            count += 1
        return count

    def count_by_status(self):
        out: dict[str, int] = {}
        for t in self.rows.values():
            out[t.status.value] = out.get(t.status.value, 0) + 1
        return out

    def add_assignment(self, template_id, *, employee_id, assigned_by, assigned_date):
        rows = self.assignments.setdefault(int(template_id), [])
        if any(a.employee_id == employee_id for a in rows):
            return False
        rows.append(TemplateAssignment(int(template_id), employee_id, assigned_by, assigned_date))
        return True

    def remove_assignments(self, template_id, employee_ids):
        ids = set(employee_ids)
        rows = self.assignments.get(int(template_id), [])
        kept = [a for a in rows if a.employee_id not in ids]
        self.assignments[int(template_id)] = kept
        return len(rows) - len(kept)

    def delete_assignments(self, template_id):
        return len(self.assignments.pop(int(template_id), []))

    def list_assignments(self, template_id):
        return list(self.assignments.get(int(template_id), []))


class FakeEmployeeScheduleRepo:
    def __init__(self):
        self._next_id = 1
        self.rows: dict[int, EmployeeSchedule] = {}
        self.templates = None  # FakeTemplateRepo

    def list_all(self):
        return sorted(self.rows.values(), key=lambda s: -s.id)

    def list_active(self):
        return [s for s in sorted(self.rows.values(), key=lambda s: s.id) if s.is_active]

    def list_by_employee(self, employee_id):
        return [s for s in sorted(self.rows.values(), key=lambda s: s.id) if s.employee_id == str(employee_id)]

    def list_by_department(self, department):
        out = []
        for s in sorted(self.rows.values(), key=lambda s: s.id):
            t = self.templates.rows.get(s.template_id) if self.templates else None
            if t is not None and t.department == department:
                out.append(s)
        return out

    def get(self, schedule_id):
        return self.rows.get(int(schedule_id))

    def find_active(self, employee_id, template_id, *, for_update=False):
        return next(
            (
                s
                for s in sorted(self.rows.values(), key=lambda s: s.id)
                if s.employee_id == str(employee_id) and s.template_id == int(template_id) and s.is_active
            ),
            None,
        )

    def create(self, *, employee_id, template_id, days, schedule_dates, start_date, end_date, assigned_by):
        sid = self._next_id
        self._next_id += 1
        self.rows[sid] = EmployeeSchedule(
            id=sid,
            employee_id=str(employee_id),
            template_id=int(template_id),
            days=tuple(days),
            schedule_dates={k: list(v) for k, v in schedule_dates.items()},
            start_date=start_date,
            end_date=end_date,
            assigned_by=assigned_by,
        )
        return sid

    def update(self, schedule_id, *, fields):
        s = self.rows.get(int(schedule_id))
        if s is None:
            return False
        values = dict(fields)
        if "days" in values:
            values["days"] = tuple(values["days"])
        if "status" in values:
            values["status"] = RecordStatus(values["status"])
        self.rows[s.id] = replace(s, **values)
        return True

    def delete(self, schedule_id):
        return self.rows.pop(int(schedule_id), None) is not None

    def deactivate_ended_before(self, day):
        count = 0
        for s in list(self.rows.values()):
            if s.is_active and s.end_date is not None and s.end_date < day:
                self.rows[s.id] = replace(s, status=RecordStatus.INACTIVE)
                count += 1
        return count

    def cascade_template(self, template_id):
        for s in list(self.rows.values()):
            if s.template_id == template_id:
                del self.rows[s.id]


class FakeNotificationRepo:
    def __init__(self):
        self._next_id = 1
        self.rows: dict[int, Notification] = {}
        self.fail = False

    def create(self, *, user_id, type, title, message, employee_id=None, related_id=None, created_by=None):
        if self.fail:
            raise RuntimeError("notification store down")
        nid = self._next_id
        self._next_id += 1
        self.rows[nid] = Notification(
            id=nid,
            user_id=int(user_id),
            type=type,
            title=title,
            message=message,
            employee_id=employee_id,
            related_id=related_id,
            created_by=created_by,
            created_at=datetime(2024, 1, 1, 9, 0, nid),
        )
        return nid

    def get(self, notification_id):
        return self.rows.get(int(notification_id))

    def list_for_user(self, user_id):
        return sorted((n for n in self.rows.values() if n.user_id == int(user_id)), key=lambda n: -n.id)

    def count_unread(self, user_id):
        return sum(1 for n in self.rows.values() if n.user_id == int(user_id) and not n.is_read)

    def mark_read(self, notification_id):
        n = self.rows.get(int(notification_id))
        if n is None:
            return False
        self.rows[n.id] = replace(n, is_read=True)
        return True

    def mark_all_read(self, user_id):
        count = 0
        for n in list(self.rows.values()):
            if n.user_id == int(user_id) and not n.is_read:
                self.rows[n.id] = replace(n, is_read=True)
                count += 1
        return count

    def delete(self, notification_id):
        return self.rows.pop(int(notification_id), None) is not None

    def delete_for_user(self, user_id):
        ids = [n.id for n in self.rows.values() if n.user_id == int(user_id)]
        for i in ids:
            del self.rows[i]
        return len(ids)


class RecordingEvents:
    def __init__(self):
        self.emitted: list[tuple[str, object]] = []

    def emit(self, name, payload=None):
        self.emitted.append((name, payload))
        return 0

    def names(self):
        return [name for name, _ in self.emitted]


class RecordingTransaction:
    def __init__(self):
        self.entered = 0
        self.depth = 0

    @contextmanager
    def __call__(self):
        self.entered += 1
        self.depth += 1
        try:
            yield
        finally:
            self.depth -= 1


def _users():
    pw = generate_password_hash("secret123")
    return [
        User(id=1, username="admin", password_hash=pw, role=Role.ADMIN, name="Administrator"),
        User(id=2, username="ana", password_hash=pw, role=Role.TEAM_LEADER, name="Ana", employee_id="003", department="Zone A"),
        User(id=3, username="liza", password_hash=pw, role=Role.TEAM_LEADER, name="Liza", employee_id="005", department="Zone B"),
        User(id=4, username="maria", password_hash=pw, role=Role.EMPLOYEE, name="Maria", employee_id="001", department="Zone A"),
        User(id=5, username="sam", password_hash=pw, role=Role.SUPERVISOR, name="Sam"),
    ]


@pytest.fixture
def clock():
    return FixedClock()


@pytest.fixture
def users_repo():
    return FakeUserRepo(_users())


@pytest.fixture
def schedules_repo():
    return FakeEmployeeScheduleRepo()


@pytest.fixture
def templates_repo(schedules_repo):
    repo = FakeTemplateRepo()
    repo.schedules = schedules_repo
    schedules_repo.templates = repo
    return repo


@pytest.fixture
def notifications_repo():
    return FakeNotificationRepo()


@pytest.fixture
def events():
    return RecordingEvents()


@pytest.fixture
def transaction():
    return RecordingTransaction()


@pytest.fixture
def notification_service(notifications_repo, users_repo):
    return NotificationService(notifications_repo, users_repo)


@pytest.fixture
def template_service(templates_repo, users_repo, notification_service, events, clock, transaction):
    return TemplateService(
        templates_repo, users_repo, notification_service, events, clock=clock, transaction=transaction
    )


@pytest.fixture
def employee_schedule_service(schedules_repo, templates_repo, template_service, clock, transaction):
    return EmployeeScheduleService(
        schedules_repo, templates_repo, template_service, clock=clock, transaction=transaction
    )


@pytest.fixture
def publish_service(templates_repo, employee_schedule_service, users_repo, notification_service, events, clock, transaction):
    return PublishService(
        templates_repo,
        employee_schedule_service,
        users_repo,
        notification_service,
        events,
        clock=clock,
        transaction=transaction,
    )
