# tests/test_store.py

from __future__ import annotations

from datetime import datetime, timezone

import pytest
from sqlalchemy import text

from demandas.errors import StorageError, TaskNotFound, ValidationError
from demandas.store import TaskStore, parse_id

from .factories import make_task


@pytest.mark.parametrize("field", ["employeeId", "employeeName", "category", "priority"])
def test_create_requires_field(store: TaskStore, field: str) -> None:
    data = make_task()
    del data[field]

    with pytest.raises(ValidationError) as exc:
        store.create(data)

    assert field in exc.value.message
    assert store.count() == 0


def test_create_rejects_blank_required_field(store: TaskStore) -> None:
    with pytest.raises(ValidationError):
        store.create(make_task(employeeName="  "))
    assert store.count() == 0


def test_create_fills_defaults(store: TaskStore) -> None:
    before = datetime.now(timezone.utc)
    task = store.create(make_task())

    assert task["id"] > 0
    assert task["status"] == "pending"
    assert task["comments"] == ""
    assert task["managerComment"] == ""
    assert task["description"] == ""
    assert task["completedAt"] is None
    assert task["isRecurring"] is False
    assert task["weekDays"] == []
    assert task["assignees"] == []

    created = datetime.fromisoformat(task["createdAt"].replace("Z", "+00:00"))
    assert abs((created - before).total_seconds()) < 5


def test_create_keeps_given_values(store: TaskStore) -> None:
    task = store.create(
        make_task(
            employeeId="9",
            createdAt="2024-05-01T10:00:00.000Z",
            status="done",
            isRecurring=True,
            weekDays=["seg", "sex"],
            assignees=[{"id": 3, "nome": "Carla"}],
        )
    )

    assert task["employeeId"] == 9
    assert task["createdAt"] == "2024-05-01T10:00:00.000Z"
    assert task["status"] == "done"
    assert task["isRecurring"] is True
    assert task["weekDays"] == ["seg", "sex"]
    assert task["assignees"] == [{"id": 3, "nome": "Carla"}]


def test_create_rejects_non_integer_employee_id(store: TaskStore) -> None:
    with pytest.raises(ValidationError):
        store.create(make_task(employeeId="abc"))
    assert store.count() == 0


def test_create_rejects_list_field_that_is_not_a_list(store: TaskStore) -> None:
    with pytest.raises(ValidationError):
        store.create(make_task(weekDays="seg"))


def test_list_all_newest_first(store: TaskStore) -> None:
    stamps = ["2024-01-02T00:00:00.000Z", "2024-03-01T00:00:00.000Z", "2024-02-01T00:00:00.000Z"]
    for ts in stamps:
        store.create(make_task(createdAt=ts))

    rows = store.list_all()

    assert len(rows) == 3
    assert [r["createdAt"] for r in rows] == sorted(stamps, reverse=True)


def test_update_overwrites_every_column(store: TaskStore) -> None:
    created = store.create(
        make_task(description="old", tag="x", weekDays=["seg"], assignees=[{"id": 2}])
    )

    payload = {
        "employeeId": 5,
        "employeeName": "Bruno",
        "category": "Limpeza",
        "priority": "baixa",
        "status": "done",
        "completedAt": "2024-06-01T12:00:00.000Z",
    }
    result = store.update(str(created["id"]), payload)

    assert result == {**payload, "id": created["id"]}

    row = store.list_all()[0]
    assert row["employeeId"] == 5
    assert row["status"] == "done"
    assert row["completedAt"] == "2024-06-01T12:00:00.000Z"
    # fields missing from the payload are cleared, not merged
    assert row["description"] is None
    assert row["tag"] is None
    assert row["weekDays"] == []
    assert row["assignees"] == []
    # creation timestamp is not part of the update
    assert row["createdAt"] == created["createdAt"]


def test_update_empty_completed_at_is_stored_as_null(store: TaskStore) -> None:
    created = store.create(make_task())
    store.update(created["id"], make_task(completedAt=""))
    assert store.list_all()[0]["completedAt"] is None


@pytest.mark.parametrize("bad_id", ["abc", "0", "-3", "1.5", "", None, True])
def test_update_with_invalid_id_never_touches_storage(store: TaskStore, monkeypatch, bad_id) -> None:
    def _no_session(action):
        raise AssertionError(f"storage was called for {action}")

    monkeypatch.setattr(store, "_session", _no_session)

    with pytest.raises(ValidationError):
        store.update(bad_id, make_task())


def test_update_missing_id_raises_not_found(store: TaskStore) -> None:
    with pytest.raises(TaskNotFound) as exc:
        store.update(999, make_task())
    assert exc.value.task_id == 999


def test_delete_reports_whether_a_row_was_removed(store: TaskStore) -> None:
    created = store.create(make_task())

    assert store.delete(created["id"]) is True
    assert store.delete(created["id"]) is False
    assert store.count() == 0


def test_list_by_employee_matches_owner_or_assignee(store: TaskStore) -> None:
    owned = store.create(make_task(employeeId=7, description="owned"))
    assigned = store.create(
        make_task(employeeId=1, description="assigned", assignees=[{"id": 8}, {"id": 7}])
    )
    store.create(make_task(employeeId=70, description="other owner", assignees=[{"id": 71}]))
    store.create(make_task(employeeId=2, description="no assignees"))

    rows = store.list_by_employee("7")

    assert {r["id"] for r in rows} == {owned["id"], assigned["id"]}


def test_list_by_employee_rejects_bad_id(store: TaskStore) -> None:
    with pytest.raises(ValidationError):
        store.list_by_employee("seven")


def test_list_by_status_is_exact(store: TaskStore) -> None:
    for status in ("pending", "done", "pending", "Pending"):
        store.create(make_task(status=status))

    rows = store.list_by_status("pending")

    assert len(rows) == 2
    assert all(r["status"] == "pending" for r in rows)


def test_list_by_status_requires_value(store: TaskStore) -> None:
    with pytest.raises(ValidationError):
        store.list_by_status(" ")


def test_stats_counts_per_status_and_total(store: TaskStore) -> None:
    for status in ["pending"] * 3 + ["done"] * 2:
        store.create(make_task(status=status))

    assert store.stats() == {"pending": 3, "done": 2, "total": 5}


def test_stats_groups_null_status_as_unknown(store: TaskStore) -> None:
    created = store.create(make_task())
    store.update(created["id"], make_task(status=None))

    assert store.stats() == {"unknown": 1, "total": 1}


def test_stats_on_empty_table(store: TaskStore) -> None:
    assert store.stats() == {"total": 0}


def test_malformed_stored_lists_decode_to_empty(store: TaskStore, engine) -> None:
    created = store.create(make_task(weekDays=["seg"], assignees=[{"id": 4}]))
    with engine.begin() as conn:
        conn.execute(
            text("UPDATE demandas SET atribuidos = :a, diasSemana = :d WHERE id = :id"),
            {"a": '[{"id":4', "d": "not json", "id": created["id"]},
        )

    row = store.list_all()[0]
    assert row["assignees"] == []
    assert row["weekDays"] == []
    assert store.list_by_employee(4) == []


def test_storage_failure_is_wrapped(store: TaskStore, engine) -> None:
    with engine.begin() as conn:
        conn.execute(text("DROP TABLE demandas"))

    with pytest.raises(StorageError) as exc:
        store.count()
    assert "demandas" in exc.value.message


def test_parse_id_accepts_digits_and_ints() -> None:
    assert parse_id("42") == 42
    assert parse_id(" 7 ") == 7
    assert parse_id(3) == 3


@pytest.mark.parametrize("bad_id", [str(2**63), "99999999999999999999", 2**63])
def test_ids_beyond_sqlite_integer_are_rejected(store: TaskStore, monkeypatch, bad_id) -> None:
    def _no_session(action):
        raise AssertionError(f"storage was called for {action}")

    monkeypatch.setattr(store, "_session", _no_session)

    with pytest.raises(ValidationError):
        store.update(bad_id, make_task())
    with pytest.raises(ValidationError):
        store.delete(bad_id)
    with pytest.raises(ValidationError):
        store.list_by_employee(bad_id)


def test_largest_sqlite_integer_is_a_valid_id(store: TaskStore) -> None:
    assert parse_id(str(2**63 - 1)) == 2**63 - 1
    assert store.delete(2**63 - 1) is False


@pytest.mark.parametrize("employee_id", ["99999999999999999999", -(2**63) - 1])
def test_create_rejects_employee_id_out_of_range(store: TaskStore, employee_id) -> None:
    with pytest.raises(ValidationError):
        store.create(make_task(employeeId=employee_id))
    assert store.count() == 0


def test_stats_keeps_a_status_named_total_apart(store: TaskStore) -> None:
    store.create(make_task(status="total"))
    store.create(make_task(status="pending"))

    assert store.stats() == {"pending": 1, "status:total": 1, "total": 2}
