from __future__ import annotations

from typing import Iterable, Optional, Sequence

from ..core.enums import Role
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, placeholders
from .model import User
from .repository import UserRepository

_USER_COLUMNS = """
    u.id, u.username, u.password_hash, u.name, u.role, u.employee_id, u.is_active,
    e.department
"""


def _to_user(r: dict) -> User:
    return User(
        id=int(r["id"]),
        username=r["username"],
        password_hash=r["password_hash"],
        role=Role(r["role"]),
        name=r.get("name"),
        employee_id=r.get("employee_id"),
        department=r.get("department"),
        is_active=bool(r.get("is_active", True)),
    )


class MySQLUserRepository(UserRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, user_id: int) -> Optional[User]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_USER_COLUMNS}
                FROM users u
                LEFT JOIN employees e ON e.employee_id = u.employee_id
                WHERE u.id=%s
                """,
                (int(user_id),),
            )
            row = fetchone(cur)
            return _to_user(row) if row else None

    def get_by_username(self, username: str) -> Optional[User]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_USER_COLUMNS}
                FROM users u
                LEFT JOIN employees e ON e.employee_id = u.employee_id
                WHERE u.username=%s
                """,
                (username,),
            )
            row = fetchone(cur)
            return _to_user(row) if row else None

    def get_team_leader_for_department(self, department: str) -> Optional[User]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_USER_COLUMNS}
                FROM users u
                JOIN employees e ON e.employee_id = u.employee_id
                WHERE u.role=%s AND u.is_active=1 AND e.department=%s
                ORDER BY u.id ASC
                LIMIT 1
                """,
                (Role.TEAM_LEADER.value, department),
            )
            row = fetchone(cur)
            return _to_user(row) if row else None

    def list_team_leaders(self, departments: Iterable[str]) -> Sequence[User]:
        depts = sorted({d for d in departments if d})
        if not depts:
            return []
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_USER_COLUMNS}
                FROM users u
                JOIN employees e ON e.employee_id = u.employee_id
                WHERE u.role=%s AND u.is_active=1 AND e.department IN ({placeholders(len(depts))})
                ORDER BY u.id ASC
                """,
                (Role.TEAM_LEADER.value, *depts),
            )
            return [_to_user(r) for r in fetchall(cur)]

    def list_by_roles(self, roles: Iterable[Role]) -> Sequence[User]:
        values = sorted({Role(r).value for r in roles})
        if not values:
            return []
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_USER_COLUMNS}
                FROM users u
                LEFT JOIN employees e ON e.employee_id = u.employee_id
                WHERE u.is_active=1 AND u.role IN ({placeholders(len(values))})
                ORDER BY u.id ASC
                """,
                tuple(values),
            )
            return [_to_user(r) for r in fetchall(cur)]
