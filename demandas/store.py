"""Task Store: every read and write against the `demandas` table.

Each public method runs exactly one SQL statement in its own session, so
there is no cross-request locking; concurrent writers to the same id simply
race and the last one wins.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Iterator

from sqlalchemy import delete, func, or_, select, update
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from .codec import contains_assignee, encode_list
from .db import make_session_factory
from .errors import StorageError, TaskNotFound, ValidationError
from .models import TEXT_FIELDS, Task

logger = logging.getLogger(__name__)

DEFAULT_STATUS = "pending"
REQUIRED_FIELDS = ("employeeId", "employeeName", "category", "priority")
UNKNOWN_STATUS = "unknown"
TOTAL_KEY = "total"

# SQLite INTEGER is a signed 64-bit value
MIN_INT = -(2**63)
MAX_INT = 2**63 - 1


def utc_now_iso() -> str:
    """Current time as e.g. '2025-09-07T18:30:00.123Z'."""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def parse_id(raw: Any, name: str = "id") -> int:
    """Positive integer id from a path segment or JSON value."""
    if isinstance(raw, bool):
        raise ValidationError(f"Invalid {name}: {raw!r}")
    if isinstance(raw, int):
        value = raw
    else:
        s = str(raw).strip() if raw is not None else ""
        if not (s.isascii() and s.isdigit()):
            raise ValidationError(f"Invalid {name}: {raw!r}")
        value = int(s)
    if not 0 < value <= MAX_INT:
        raise ValidationError(f"Invalid {name}: {raw!r}")
    return value


def _optional_int(raw: Any, name: str) -> int | None:
    if raw is None or raw == "":
        return None
    if isinstance(raw, bool):
        raise ValidationError(f"{name} must be an integer")
    if isinstance(raw, int):
        value = raw
    else:
        s = str(raw).strip()
        digits = s[1:] if s.startswith("-") else s
        if not (digits.isascii() and digits.isdigit()):
            raise ValidationError(f"{name} must be an integer")
        value = int(s)
    if not MIN_INT <= value <= MAX_INT:
        raise ValidationError(f"{name} is out of range")
    return value


def _blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and value.strip() == "")


def _list_column(data: dict, key: str) -> str | None:
    value = data.get(key)
    if value is None:
        return None
    if not isinstance(value, (list, tuple)):
        raise ValidationError(f"{key} must be an array")
    return encode_list(value)


class TaskStore:
    def __init__(self, engine: Engine) -> None:
        self._engine = engine
        self._sessions = make_session_factory(engine)

    def close(self) -> None:
        self._engine.dispose()

    @contextmanager
    def _session(self, action: str) -> Iterator[Session]:
        db = self._sessions()
        try:
            yield db
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            logger.exception("Storage error during %s", action)
            orig = getattr(e, "orig", None)
            raise StorageError(str(orig) if orig is not None else str(e)) from e
        finally:
            db.close()

    @staticmethod
    def _newest_first(stmt):
        return stmt.order_by(Task.created_at.desc(), Task.id.desc())

    # ---- reads ----

    def list_all(self) -> list[dict]:
        with self._session("list_all") as db:
            tasks = db.execute(self._newest_first(select(Task))).scalars().all()
            return [t.to_dict() for t in tasks]

    def list_by_status(self, status: str) -> list[dict]:
        if _blank(status):
            raise ValidationError("status is required")
        with self._session("list_by_status") as db:
            stmt = self._newest_first(select(Task).where(Task.status == status))
            return [t.to_dict() for t in db.execute(stmt).scalars().all()]

    def list_by_employee(self, employee_id: Any) -> list[dict]:
        """Tasks owned by the employee or listing them among the assignees."""
        eid = parse_id(employee_id, "employee id")
        with self._session("list_by_employee") as db:
            stmt = self._newest_first(
                select(Task).where(or_(Task.employee_id == eid, Task.assignees.is_not(None)))
            )
            rows = [t.to_dict() for t in db.execute(stmt).scalars().all()]
        return [r for r in rows if r["employeeId"] == eid or contains_assignee(r["assignees"], eid)]

    def stats(self) -> dict[str, int]:
        with self._session("stats") as db:
            rows = db.execute(select(Task.status, func.count()).group_by(Task.status)).all()
        out: dict[str, int] = {}
        for status, n in rows:
            if status is None:
                key = UNKNOWN_STATUS
            elif status == TOTAL_KEY:
                # "total" is reserved for the overall count
                key = f"status:{TOTAL_KEY}"
            else:
                key = status
            out[key] = out.get(key, 0) + int(n)
        out[TOTAL_KEY] = sum(int(n) for _, n in rows)
        return out

    def count(self) -> int:
        with self._session("count") as db:
            return int(db.execute(select(func.count()).select_from(Task)).scalar() or 0)

    # ---- writes ----

    def create(self, data: dict) -> dict:
        missing = [k for k in REQUIRED_FIELDS if _blank(data.get(k))]
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")

        task = Task(
            employee_id=_optional_int(data["employeeId"], "employeeId"),
            created_at=data.get("createdAt") or utc_now_iso(),
            status=data.get("status") or DEFAULT_STATUS,
            is_recurring=1 if data.get("isRecurring") else 0,
            week_days=_list_column(data, "weekDays"),
            assignees=_list_column(data, "assignees"),
            comments=data.get("comments") or "",
            manager_comment=data.get("managerComment") or "",
            **{attr: data.get(key) or "" for key, attr in TEXT_FIELDS.items()},
        )

        with self._session("create") as db:
            db.add(task)
            db.flush()
            created = task.to_dict()
        logger.info("Task created id=%s employee=%s status=%s", created["id"], created["employeeId"], created["status"])
        return created

    def update(self, task_id: Any, data: dict) -> dict:
        """Overwrite every mutable column of the row; raises TaskNotFound if absent."""
        tid = parse_id(task_id)

        values = {
            Task.employee_id: _optional_int(data.get("employeeId"), "employeeId"),
            Task.status: data.get("status"),
            Task.is_recurring: 1 if data.get("isRecurring") else 0,
            Task.week_days: _list_column(data, "weekDays"),
            Task.assignees: _list_column(data, "assignees"),
            Task.comments: data.get("comments") or "",
            Task.manager_comment: data.get("managerComment") or "",
            Task.completed_at: data.get("completedAt") or None,
        }
        for key, attr in TEXT_FIELDS.items():
            values[getattr(Task, attr)] = data.get(key)

        with self._session("update") as db:
            stmt = (
                update(Task)
                .where(Task.id == tid)
                .values(values)
                .execution_options(synchronize_session=False)
            )
            matched = db.execute(stmt).rowcount

        if not matched:
            raise TaskNotFound(tid)
        logger.info("Task updated id=%s status=%s", tid, data.get("status"))
        return {**data, "id": tid}

    def delete(self, task_id: Any) -> bool:
        """Remove the row; returns False when nothing matched."""
        tid = parse_id(task_id)
        with self._session("delete") as db:
            stmt = delete(Task).where(Task.id == tid).execution_options(synchronize_session=False)
            removed = db.execute(stmt).rowcount > 0
        logger.info("Task delete id=%s removed=%s", tid, removed)
        return removed
