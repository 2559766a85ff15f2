from __future__ import annotations

from datetime import date, datetime
from typing import Any, Iterable, Mapping, Optional, Sequence

from ..core.enums import PublishStatus, RecordStatus
from ..database.connection import DatabaseConnection
from ..database.mysql_base import as_date, db_cursor, dump_json, fetchall, load_json, placeholders
from .model import ScheduleTemplate, TemplateAssignment
from .repository import TemplateRepository

_COLUMNS = """
    t.id, t.department, t.shift_name, t.start_time, t.end_time, t.days, t.specific_date,
    t.member_limit, t.day_limits, t.created_by, t.status, t.publish_status, t.published_at,
    t.published_by, t.pending_deletion, t.edited_at, t.edited_by, t.created_at, t.updated_at
"""

_JSON_FIELDS = {"days", "day_limits"}
_UPDATABLE = {
    "department",
    "shift_name",
    "start_time",
    "end_time",
    "days",
    "specific_date",
    "member_limit",
    "day_limits",
    "status",
    "publish_status",
    "edited_at",
    "edited_by",
}


def _to_assignment(r: dict) -> TemplateAssignment:
    return TemplateAssignment(
        template_id=int(r["template_id"]),
        employee_id=str(r["employee_id"]),
        assigned_by=r.get("assigned_by"),
        assigned_date=r.get("assigned_date"),
    )


def _to_template(r: dict, assignments: Sequence[TemplateAssignment] = ()) -> ScheduleTemplate:
    day_limits = load_json(r.get("day_limits"), None)
    return ScheduleTemplate(
        id=int(r["id"]),
        department=r["department"],
        shift_name=r["shift_name"],
        start_time=str(r["start_time"])[:5],
        end_time=str(r["end_time"])[:5],
        days=tuple(load_json(r.get("days"), [])),
        specific_date=as_date(r.get("specific_date")),
        member_limit=int(r["member_limit"]) if r.get("member_limit") is not None else None,
        day_limits={str(k): int(v) for k, v in day_limits.items()} if day_limits else None,
        created_by=r.get("created_by"),
        status=RecordStatus(r.get("status") or RecordStatus.ACTIVE.value),
        publish_status=PublishStatus(r.get("publish_status") or PublishStatus.DRAFT.value),
        published_at=r.get("published_at"),
        published_by=r.get("published_by"),
        pending_deletion=bool(r.get("pending_deletion")),
        edited_at=r.get("edited_at"),
        edited_by=r.get("edited_by"),
        created_at=r.get("created_at"),
        updated_at=r.get("updated_at"),
        assigned_employees=tuple(assignments),
    )


class MySQLTemplateRepository(TemplateRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def _select(self, where: str, params: tuple, *, order_by: str, for_update: bool = False) -> list[ScheduleTemplate]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM schedule_templates t
                WHERE {where}
                ORDER BY {order_by}
                {"FOR UPDATE" if for_update else ""}
                """,
                params,
            )
            rows = fetchall(cur)
            if not rows:
                return []

            ids = [int(r["id"]) for r in rows]
            cur.execute(
                f"""
                SELECT template_id, employee_id, assigned_by, assigned_date
                FROM template_assignments
                WHERE template_id IN ({placeholders(len(ids))})
                ORDER BY assigned_date ASC, id ASC
                """,
                tuple(ids),
            )
            by_template: dict[int, list[TemplateAssignment]] = {}
            for a in fetchall(cur):
                by_template.setdefault(int(a["template_id"]), []).append(_to_assignment(a))

            return [_to_template(r, by_template.get(int(r["id"]), [])) for r in rows]

    def list_active(self) -> Sequence[ScheduleTemplate]:
        return self._select("t.status=%s", (RecordStatus.ACTIVE.value,), order_by="t.department ASC, t.shift_name ASC")

    def list_published(self) -> Sequence[ScheduleTemplate]:
        return self._select(
            "t.status=%s AND t.publish_status=%s AND t.pending_deletion=0",
            (RecordStatus.ACTIVE.value, PublishStatus.PUBLISHED.value),
            order_by="t.department ASC, t.shift_name ASC",
        )

    def list_by_department(self, department: str) -> Sequence[ScheduleTemplate]:
        return self._select(
            "t.department=%s AND t.status=%s",
            (department, RecordStatus.ACTIVE.value),
            order_by="t.shift_name ASC",
        )

    def list_drafts(self) -> Sequence[ScheduleTemplate]:
        return self._select(
            "t.publish_status=%s AND t.pending_deletion=0",
            (PublishStatus.DRAFT.value,),
            order_by="t.id ASC",
            for_update=self._conn_factory.active() is not None,
        )

    def list_pending_deletion(self) -> Sequence[ScheduleTemplate]:
        return self._select(
            "t.pending_deletion=1",
            (),
            order_by="t.id ASC",
            for_update=self._conn_factory.active() is not None,
        )

    def find_draft_by_shift(
        self, *, department: str, shift_name: str, start_time: str, end_time: str
    ) -> Optional[ScheduleTemplate]:
        rows = self._select(
            """
            t.department=%s AND t.shift_name=%s AND t.start_time=%s AND t.end_time=%s
            AND t.status=%s AND t.publish_status=%s AND t.pending_deletion=0
            """,
            (department, shift_name, start_time, end_time, RecordStatus.ACTIVE.value, PublishStatus.DRAFT.value),
            order_by="t.id ASC",
        )
        return rows[0] if rows else None

    def get(self, template_id: int, *, for_update: bool = False) -> Optional[ScheduleTemplate]:
        rows = self._select("t.id=%s", (int(template_id),), order_by="t.id ASC", for_update=for_update)
        return rows[0] if rows else None

    def create(
        self,
        *,
        department: str,
        shift_name: str,
        start_time: str,
        end_time: str,
        days: Sequence[str],
        specific_date: Optional[date],
        member_limit: Optional[int],
        day_limits: Optional[Mapping[str, int]],
        created_by: Optional[str],
        publish_status: PublishStatus,
        published_at: Optional[datetime] = None,
        published_by: Optional[str] = None,
    ) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO schedule_templates(
                    department, shift_name, start_time, end_time, days, specific_date,
                    member_limit, day_limits, created_by, status, publish_status,
                    published_at, published_by, pending_deletion
                )
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,0)
                """,
                (
                    department,
                    shift_name,
                    start_time,
                    end_time,
                    dump_json(list(days)),
                    specific_date,
                    member_limit,
                    dump_json(dict(day_limits)) if day_limits else None,
                    created_by,
                    RecordStatus.ACTIVE.value,
                    publish_status.value,
                    published_at,
                    published_by,
                ),
            )
            return int(cur.lastrowid)

    def update(self, template_id: int, *, fields: Mapping[str, Any]) -> bool:
        unknown = set(fields) - _UPDATABLE
        if unknown:
            raise ValueError(f"Cannot update template columns: {sorted(unknown)}")
        if not fields:
            return False

        sets: list[str] = []
        params: list[Any] = []
        for key, value in fields.items():
            if key in _JSON_FIELDS:
                value = dump_json(list(value) if key == "days" else (dict(value) if value else None))
            elif hasattr(value, "value"):
                value = value.value
            sets.append(f"{key}=%s")
            params.append(value)

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"UPDATE schedule_templates SET {', '.join(sets)} WHERE id=%s",
                (*params, int(template_id)),
            )
            return cur.rowcount > 0

    def mark_pending_deletion(self, template_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("UPDATE schedule_templates SET pending_deletion=1 WHERE id=%s", (int(template_id),))
            return cur.rowcount > 0

    def delete(self, template_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM schedule_templates WHERE id=%s", (int(template_id),))
            return cur.rowcount > 0

    def publish(self, template_ids: Iterable[int], *, published_by: str, published_at: datetime) -> int:
        ids = sorted({int(i) for i in template_ids})
        if not ids:
            return 0
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                UPDATE schedule_templates
                SET publish_status=%s, published_at=%s, published_by=%s
                WHERE id IN ({placeholders(len(ids))}) AND pending_deletion=0
                """,
                (PublishStatus.PUBLISHED.value, published_at, published_by, *ids),
            )
            return int(cur.rowcount)

    def count_by_status(self) -> dict[str, int]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT status, COUNT(*) AS n FROM schedule_templates GROUP BY status")
            return {str(r["status"]): int(r["n"]) for r in fetchall(cur)}

    def add_assignment(
        self, template_id: int, *, employee_id: str, assigned_by: Optional[str], assigned_date: datetime
    ) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            # The unique (template_id, employee_id) key makes a repeat a no-op.
            cur.execute(
                """
                INSERT IGNORE INTO template_assignments(template_id, employee_id, assigned_by, assigned_date)
                VALUES(%s,%s,%s,%s)
                """,
                (int(template_id), str(employee_id), assigned_by, assigned_date),
            )
            return cur.rowcount > 0

    def remove_assignments(self, template_id: int, employee_ids: Iterable[str]) -> int:
        ids = sorted({str(e) for e in employee_ids})
        if not ids:
            return 0
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                DELETE FROM template_assignments
                WHERE template_id=%s AND employee_id IN ({placeholders(len(ids))})
                """,
                (int(template_id), *ids),
            )
            return int(cur.rowcount)

    def delete_assignments(self, template_id: int) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM template_assignments WHERE template_id=%s", (int(template_id),))
            return int(cur.rowcount)

    def list_assignments(self, template_id: int) -> Sequence[TemplateAssignment]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT template_id, employee_id, assigned_by, assigned_date
                FROM template_assignments
                WHERE template_id=%s
                ORDER BY assigned_date ASC, id ASC
                """,
                (int(template_id),),
            )
            return [_to_assignment(r) for r in fetchall(cur)]
