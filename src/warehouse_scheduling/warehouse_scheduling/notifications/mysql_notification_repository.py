from __future__ import annotations

from typing import Optional, Sequence

from ..core.enums import NotificationType
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone
from .model import Notification
from .repository import NotificationRepository

_COLUMNS = "id, user_id, employee_id, type, title, message, is_read, related_id, created_by, created_at"


def _to_notification(r: dict) -> Notification:
    return Notification(
        id=int(r["id"]),
        user_id=int(r["user_id"]),
        employee_id=r.get("employee_id"),
        type=NotificationType(r["type"]),
        title=r["title"],
        message=r["message"],
        is_read=bool(r.get("is_read")),
        related_id=int(r["related_id"]) if r.get("related_id") is not None else None,
        created_by=r.get("created_by"),
        created_at=r.get("created_at"),
    )


class MySQLNotificationRepository(NotificationRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def create(
        self,
        *,
        user_id: int,
        type: NotificationType,
        title: str,
        message: str,
        employee_id: Optional[str] = None,
        related_id: Optional[int] = None,
        created_by: Optional[str] = None,
    ) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO notifications(user_id, employee_id, type, title, message, is_read, related_id, created_by)
                VALUES(%s,%s,%s,%s,%s,0,%s,%s)
                """,
                (int(user_id), employee_id, type.value, title, message, related_id, created_by),
            )
            return int(cur.lastrowid)

    def get(self, notification_id: int) -> Optional[Notification]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM notifications WHERE id=%s", (int(notification_id),))
            r = fetchone(cur)
            return _to_notification(r) if r else None

    def list_for_user(self, user_id: int) -> Sequence[Notification]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_COLUMNS} FROM notifications WHERE user_id=%s ORDER BY created_at DESC, id DESC",
                (int(user_id),),
            )
            return [_to_notification(r) for r in fetchall(cur)]

    def count_unread(self, user_id: int) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "SELECT COUNT(*) AS n FROM notifications WHERE user_id=%s AND is_read=0",
                (int(user_id),),
            )
            r = fetchone(cur)
            return int(r["n"]) if r else 0

    def mark_read(self, notification_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("UPDATE notifications SET is_read=1 WHERE id=%s", (int(notification_id),))
            return cur.rowcount > 0

    def mark_all_read(self, user_id: int) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "UPDATE notifications SET is_read=1 WHERE user_id=%s AND is_read=0",
                (int(user_id),),
            )
            return int(cur.rowcount)

    def delete(self, notification_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM notifications WHERE id=%s", (int(notification_id),))
            return cur.rowcount > 0

    def delete_for_user(self, user_id: int) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM notifications WHERE user_id=%s", (int(user_id),))
            return int(cur.rowcount)
