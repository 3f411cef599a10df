import math
from pathlib import Path
from types import SimpleNamespace

import pytest

from haulops.persistence import database
from haulops.persistence.cache import TTLCache
from haulops.persistence.filesystem import FileStorage


class FakeQuery:
    """Chainable stand-in for a supabase-py table query."""

    def __init__(self, client: "FakeSupabase", table: str) -> None:
        self.client = client
        self.table = table
        self.rows = list(client.tables.get(table, []))
        self.columns = None

    def select(self, columns, **kwargs):
        self.columns = columns
        return self

    def eq(self, column, value):
        self.rows = [row for row in self.rows if row.get(column) == value]
        return self

    def in_(self, column, values):
        self.client.in_filters.append((self.table, column, list(values)))
        self.rows = [row for row in self.rows if row.get(column) in values]
        return self

    def limit(self, count):
        self.rows = self.rows[:count]
        return self

    def insert(self, records):
        self.client.inserted.setdefault(self.table, []).extend(records)
        self.rows = list(records)
        return self

    def execute(self):
        if self.table in self.client.failing:
            raise ConnectionError(f"{self.table} unavailable")
        return SimpleNamespace(data=self.rows)


class FakeSupabase:
    def __init__(self, tables: dict | None = None, failing: set[str] | None = None) -> None:
        self.tables = tables or {}
        self.failing = failing or set()
        self.inserted: dict[str, list] = {}
        self.in_filters: list = []

    def table(self, name: str) -> FakeQuery:
        return FakeQuery(self, name)


def test_file_storage_creates_run_directory(tmp_path: Path) -> None:
    storage = FileStorage(root=tmp_path)
    run_dir = storage.make_run_directory(prefix="auto_assign")

    assert run_dir.exists()
    assert run_dir.is_dir()
    assert run_dir.parent == tmp_path / "outputs"
    assert run_dir.name.startswith("auto_assign_")


def test_file_storage_writes_json_and_csv(tmp_path: Path) -> None:
    storage = FileStorage(root=tmp_path)
    run_dir = storage.make_run_directory()

    summary_path = run_dir / "summary.json"
    assignments_path = run_dir / "assignments.csv"

    storage.write_json(summary_path, {"status": "ok"})
    storage.write_csv(assignments_path, "a,b\n1,2\n")

    assert summary_path.read_text(encoding="utf-8") == '{\n  "status": "ok"\n}'
    assert assignments_path.read_text(encoding="utf-8") == "a,b\n1,2\n"


def test_fetch_houses_coerces_coordinates(monkeypatch):
    client = FakeSupabase(
        {
            "houses": [
                {"id": "H1", "address": "1 Elm St", "latitude": "42.36", "longitude": -71.06},
                {"id": "H2", "address": None, "latitude": None, "longitude": "bad"},
            ]
        }
    )
    monkeypatch.setattr(database, "get_supabase_client", lambda: client)

    houses = database.fetch_houses()

    assert houses[0].id == "H1"
    assert houses[0].latitude == 42.36
    assert houses[0].address == "1 Elm St"
    assert math.isnan(houses[1].latitude)
    assert math.isnan(houses[1].longitude)
    assert houses[1].address == ""


def test_fetch_active_assignment_house_ids_filters_status(monkeypatch):
    client = FakeSupabase(
        {
            "assignments": [
                {"house_id": "H1", "status": "pending"},
                {"house_id": "H2", "status": "completed"},
                {"house_id": "H3", "status": "assigned"},
            ]
        }
    )
    monkeypatch.setattr(database, "get_supabase_client", lambda: client)

    assert database.fetch_active_assignment_house_ids(("pending", "assigned")) == {"H1", "H3"}


def test_fetch_online_workers(monkeypatch):
    client = FakeSupabase(
        {
            "employee_locations": [
                {"employee_id": "E1", "latitude": 42.36, "longitude": -71.06, "is_online": True},
                {"employee_id": "E2", "latitude": 42.30, "longitude": -71.10, "is_online": False},
            ]
        }
    )
    monkeypatch.setattr(database, "get_supabase_client", lambda: client)

    workers = database.fetch_online_workers()

    assert [worker.employee_id for worker in workers] == ["E1"]
    assert workers[0].is_online is True


def test_fetch_worker_names_uses_cache(monkeypatch):
    client = FakeSupabase(
        {
            "profiles": [
                {"id": "E1", "full_name": "Dana Reyes", "email": "dana@example.com"},
                {"id": "E2", "full_name": None, "email": "sam@example.com"},
            ]
        }
    )
    monkeypatch.setattr(database, "get_supabase_client", lambda: client)
    cache: TTLCache[str] = TTLCache(300)

    first = database.fetch_worker_names(["E1", "E2", "E3"], cache=cache)
    second = database.fetch_worker_names(["E1", "E2"], cache=cache)

    assert first == {"E1": "Dana Reyes", "E2": "sam@example.com"}
    assert second == first
    assert len(client.in_filters) == 1


def test_fetch_worker_names_tolerates_failures(monkeypatch):
    client = FakeSupabase(failing={"profiles"})
    monkeypatch.setattr(database, "get_supabase_client", lambda: client)

    assert database.fetch_worker_names(["E1"]) == {}


def test_insert_assignments(monkeypatch):
    client = FakeSupabase()
    monkeypatch.setattr(database, "get_supabase_client", lambda: client)
    records = [{"house_id": "H1", "employee_id": "E1", "route_order": 0, "cluster_id": 0}]

    assert database.insert_assignments(records) == 1
    assert database.insert_assignments([]) == 0
    assert client.inserted["assignments"] == records


def test_unconfigured_database_raises_value_error(monkeypatch):
    monkeypatch.setattr(database, "get_supabase_client", lambda: None)

    with pytest.raises(ValueError, match="Supabase not configured"):
        database.fetch_houses()


def test_query_failures_raise_runtime_error(monkeypatch):
    client = FakeSupabase(failing={"houses", "assignments"})
    monkeypatch.setattr(database, "get_supabase_client", lambda: client)

    with pytest.raises(RuntimeError, match="houses"):
        database.fetch_houses()
    with pytest.raises(RuntimeError, match="insert"):
        database.insert_assignments([{"house_id": "H1"}])
