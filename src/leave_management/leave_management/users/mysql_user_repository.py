from __future__ import annotations

from datetime import datetime
from typing import Mapping, Optional, Sequence

from ..core.enums import Role
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, like_pattern, unique_guard
from .model import EmergencyContact, NewUser, User
from .repository import PROFILE_COLUMNS, UserRepository

_USER_COLUMNS = """
    user_id, name, email, role, student_id, year, department, hostel, room_number,
    contact_number, emergency_name, emergency_relationship, emergency_phone,
    external_id, profile_picture, is_active, last_login, created_at
"""


def _row_to_user(row: dict) -> User:
    return User(
        user_id=int(row["user_id"]),
        name=row["name"],
        email=row["email"],
        role=Role(row["role"]),
        student_id=row.get("student_id"),
        year=int(row["year"]) if row.get("year") is not None else None,
        department=row.get("department"),
        hostel=row.get("hostel"),
        room_number=row.get("room_number"),
        contact_number=row.get("contact_number"),
        emergency_contact=EmergencyContact(
            name=row.get("emergency_name") or "",
            relationship=row.get("emergency_relationship") or "",
            phone=row.get("emergency_phone") or "",
        ),
        external_id=row.get("external_id"),
        profile_picture=row.get("profile_picture") or "",
        is_active=bool(row.get("is_active", True)),
        last_login=row.get("last_login"),
        created_at=row.get("created_at"),
    )


class MySQLUserRepository(UserRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, user_id: int) -> Optional[User]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_USER_COLUMNS} FROM users WHERE user_id=%s", (int(user_id),))
            row = fetchone(cur)
            return _row_to_user(row) if row else None

    def get_by_email(self, email: str) -> Optional[User]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_USER_COLUMNS} FROM users WHERE email=%s", (email,))
            row = fetchone(cur)
            return _row_to_user(row) if row else None

    def create_user(self, new_user: NewUser, *, now: datetime) -> int:
        with unique_guard("A user with this email already exists"):
            with db_cursor(self._conn_factory) as (_, cur):
                cur.execute(
                    """
                    INSERT INTO users(name, email, role, external_id, profile_picture, is_active, last_login)
                    VALUES(%s,%s,%s,%s,%s,1,%s)
                    """,
                    (
                        new_user.name,
                        new_user.email,
                        new_user.role.value,
                        new_user.external_id,
                        new_user.profile_picture,
                        now,
                    ),
                )
                return int(cur.lastrowid)

    def record_login(self, user_id: int, *, external_id: Optional[str], profile_picture: str, now: datetime) -> bool:
        with unique_guard("External identity is linked to another account"):
            with db_cursor(self._conn_factory) as (_, cur):
                cur.execute(
                    """
                    UPDATE users
                    SET external_id=COALESCE(%s, external_id), profile_picture=%s, last_login=%s
                    WHERE user_id=%s
                    """,
                    (external_id, profile_picture, now, int(user_id)),
                )
                return cur.rowcount > 0

    def update_profile(self, user_id: int, *, changes: Mapping[str, object]) -> bool:
        sets: list[str] = []
        params: list[object] = []
        for attr, value in changes.items():
            column = PROFILE_COLUMNS.get(attr)
            if column is None:
                raise ValueError(f"Unsupported profile field: {attr}")
            sets.append(f"{column}=%s")
            params.append(value)
        if not sets:
            return False

        with unique_guard("Student ID is already registered to another account"):
            with db_cursor(self._conn_factory) as (_, cur):
                cur.execute(
                    f"UPDATE users SET {', '.join(sets)} WHERE user_id=%s",
                    tuple(params + [int(user_id)]),
                )
                return cur.rowcount > 0

    def update_role(
        self,
        user_id: int,
        *,
        role: Role,
        clear_student_fields: bool,
        student_id: Optional[str] = None,
        year: Optional[int] = None,
    ) -> bool:
        if student_id is not None and year is not None and not clear_student_fields:
            with unique_guard("Student ID is already registered to another account"):
                with db_cursor(self._conn_factory) as (_, cur):
                    cur.execute(
                        "UPDATE users SET role=%s, student_id=%s, year=%s WHERE user_id=%s",
                        (role.value, student_id, int(year), int(user_id)),
                    )
                    return cur.rowcount > 0

        with db_cursor(self._conn_factory) as (_, cur):
            if clear_student_fields:
                cur.execute(
                    "UPDATE users SET role=%s, student_id=NULL, year=NULL WHERE user_id=%s",
                    (role.value, int(user_id)),
                )
            else:
                cur.execute("UPDATE users SET role=%s WHERE user_id=%s", (role.value, int(user_id)))
            return cur.rowcount > 0

    def set_active(self, user_id: int, *, is_active: bool) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("UPDATE users SET is_active=%s WHERE user_id=%s", (1 if is_active else 0, int(user_id)))
            return cur.rowcount > 0

    def list_users(
        self,
        *,
        role: Optional[Role] = None,
        search: Optional[str] = None,
        offset: int = 0,
        limit: int = 20,
        order_by_name: bool = False,
    ) -> tuple[Sequence[User], int]:
        clauses = ["1=1"]
        params: list[object] = []

        if role is not None:
            clauses.append("role=%s")
            params.append(role.value)
        if search:
            pattern = like_pattern(search.strip())
            clauses.append("(name LIKE %s OR email LIKE %s OR student_id LIKE %s)")
            params.extend([pattern, pattern, pattern])

        where = " AND ".join(clauses)
        order = "name ASC, user_id ASC" if order_by_name else "created_at DESC, user_id DESC"

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT COUNT(*) AS total FROM users WHERE {where}", tuple(params))
            total = int((fetchone(cur) or {}).get("total", 0))

            cur.execute(
                f"""
                SELECT {_USER_COLUMNS}
                FROM users
                WHERE {where}
                ORDER BY {order}
                LIMIT %s OFFSET %s
                """,
                tuple(params + [int(limit), int(offset)]),
            )
            return [_row_to_user(r) for r in fetchall(cur)], total

    def count_by_role(self) -> Mapping[Role, int]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT role, COUNT(*) AS total FROM users GROUP BY role")
            counts = {r: 0 for r in Role}
            for row in fetchall(cur):
                counts[Role(row["role"])] = int(row["total"])
            return counts
