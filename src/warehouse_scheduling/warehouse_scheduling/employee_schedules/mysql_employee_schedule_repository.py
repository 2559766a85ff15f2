from __future__ import annotations

from datetime import date
from typing import Any, Mapping, Optional, Sequence

from ..core.enums import RecordStatus
from ..database.connection import DatabaseConnection
from ..database.mysql_base import as_date, db_cursor, dump_json, fetchall, load_json
from .model import EmployeeSchedule
from .repository import EmployeeScheduleRepository

_COLUMNS = """
    s.id, s.employee_id, s.template_id, s.days, s.schedule_dates, s.start_date, s.end_date,
    s.assigned_by, s.status, s.created_at, s.updated_at
"""

_UPDATABLE = {"days", "schedule_dates", "start_date", "end_date", "assigned_by", "status"}


def _to_schedule(r: dict) -> EmployeeSchedule:
    dates = load_json(r.get("schedule_dates"), {}) or {}
    return EmployeeSchedule(
        id=int(r["id"]),
        employee_id=str(r["employee_id"]),
        template_id=int(r["template_id"]),
        days=tuple(load_json(r.get("days"), [])),
        schedule_dates={str(k): list(v or []) for k, v in dates.items()},
        start_date=as_date(r.get("start_date")),
        end_date=as_date(r.get("end_date")),
        assigned_by=r.get("assigned_by"),
        status=RecordStatus(r.get("status") or RecordStatus.ACTIVE.value),
        created_at=r.get("created_at"),
        updated_at=r.get("updated_at"),
    )


class MySQLEmployeeScheduleRepository(EmployeeScheduleRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def _select(self, sql_tail: str, params: tuple = ()) -> list[EmployeeSchedule]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM employee_schedules s {sql_tail}", params)
            return [_to_schedule(r) for r in fetchall(cur)]

    def list_all(self) -> Sequence[EmployeeSchedule]:
        return self._select("ORDER BY s.created_at DESC, s.id DESC")

    def list_active(self) -> Sequence[EmployeeSchedule]:
        return self._select("WHERE s.status=%s ORDER BY s.id ASC", (RecordStatus.ACTIVE.value,))

    def list_by_employee(self, employee_id: str) -> Sequence[EmployeeSchedule]:
        return self._select("WHERE s.employee_id=%s ORDER BY s.id ASC", (str(employee_id),))

    def list_by_department(self, department: str) -> Sequence[EmployeeSchedule]:
        return self._select(
            """
            JOIN schedule_templates t ON t.id = s.template_id
            WHERE t.department=%s
            ORDER BY s.employee_id ASC, s.id ASC
            """,
            (department,),
        )

    def get(self, schedule_id: int) -> Optional[EmployeeSchedule]:
        rows = self._select("WHERE s.id=%s", (int(schedule_id),))
        return rows[0] if rows else None

    def find_active(self, employee_id: str, template_id: int, *, for_update: bool = False) -> Optional[EmployeeSchedule]:
        rows = self._select(
            f"""
            WHERE s.employee_id=%s AND s.template_id=%s AND s.status=%s
            ORDER BY s.id ASC
            LIMIT 1
            {"FOR UPDATE" if for_update else ""}
            """,
            (str(employee_id), int(template_id), RecordStatus.ACTIVE.value),
        )
        return rows[0] if rows else None

    def create(
        self,
        *,
        employee_id: str,
        template_id: int,
        days: Sequence[str],
        schedule_dates: Mapping[str, Sequence[str]],
        start_date: Optional[date],
        end_date: Optional[date],
        assigned_by: Optional[str],
    ) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO employee_schedules(
                    employee_id, template_id, days, schedule_dates, start_date, end_date, assigned_by, status
                )
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s)
                """,
                (
                    str(employee_id),
                    int(template_id),
                    dump_json(list(days)),
                    dump_json({k: list(v) for k, v in schedule_dates.items()}),
                    start_date,
                    end_date,
                    assigned_by,
                    RecordStatus.ACTIVE.value,
                ),
            )
            return int(cur.lastrowid)

    def update(self, schedule_id: int, *, fields: Mapping[str, Any]) -> bool:
        unknown = set(fields) - _UPDATABLE
        if unknown:
            raise ValueError(f"Cannot update employee schedule columns: {sorted(unknown)}")
        if not fields:
            return False

        sets: list[str] = []
        params: list[Any] = []
        for key, value in fields.items():
            if key == "days":
                value = dump_json(list(value))
            elif key == "schedule_dates":
                value = dump_json({k: list(v) for k, v in (value or {}).items()})
            elif key == "status":
                value = RecordStatus(value).value
            sets.append(f"{key}=%s")
            params.append(value)

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"UPDATE employee_schedules SET {', '.join(sets)} WHERE id=%s",
                (*params, int(schedule_id)),
            )
            return cur.rowcount > 0

    def delete(self, schedule_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM employee_schedules WHERE id=%s", (int(schedule_id),))
            return cur.rowcount > 0

    def deactivate_ended_before(self, day: date) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE employee_schedules
                SET status=%s
                WHERE status=%s AND end_date IS NOT NULL AND end_date < %s
                """,
                (RecordStatus.INACTIVE.value, RecordStatus.ACTIVE.value, day),
            )
            return int(cur.rowcount)
