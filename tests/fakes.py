"""
In-memory stand-in for the supabase-py / PostgREST query builder.

Supports the subset of the fluent API the services use, with unique
constraints and upsert-on-conflict so conflict paths behave like Postgres.
"""
import copy
import uuid
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Tuple

from postgrest.exceptions import APIError

UNIQUE_CONSTRAINTS: Dict[str, List[Tuple[str, ...]]] = {
    "tenants": [("slug",)],
    "tenant_domains": [("hostname",)],
    "tenant_keys": [("tenant_id", "key_type")],
    "site_config": [("key",)],
    "admins": [("email",)],
}


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


TABLE_DEFAULTS: Dict[str, Dict[str, Callable[[], Any]]] = {
    "tenants": {
        "id": lambda: str(uuid.uuid4()),
        "template": lambda: "preconstruction-v1",
        "theme_preset": lambda: "luxury-blue",
        "feature_flags": dict,
        "supabase_project_ref": lambda: None,
        "schema_version": lambda: None,
        "created_at": _now,
        "updated_at": _now,
    },
    "tenant_domains": {
        "id": lambda: str(uuid.uuid4()),
        "is_primary": lambda: False,
        "ssl_status": lambda: "pending",
        "verified_at": lambda: None,
        "created_at": _now,
    },
    "tenant_keys": {
        "id": lambda: str(uuid.uuid4()),
        "validated_at": lambda: None,
        "updated_at": _now,
    },
    "tenant_jobs": {
        "id": lambda: str(uuid.uuid4()),
        "status": lambda: "pending",
        "steps": list,
        "error": lambda: None,
        "created_at": _now,
        "completed_at": lambda: None,
    },
}


class FakeResponse:
    def __init__(self, data: Any):
        self.data = data


class _Negation:
    def __init__(self, query: "FakeQuery"):
        self._query = query

    def is_(self, column: str, value: str) -> "FakeQuery":
        return self._query._filter(lambda row: not _is(row.get(column), value))


def _is(actual: Any, value: str) -> bool:
    if value == "null":
        return actual is None
    return str(actual).lower() == value


class FakeQuery:
    def __init__(self, db: "FakeSupabase", table: str):
        self.db = db
        self.table = table
        self.op = "select"
        self.columns: Optional[List[str]] = None
        self.payload: Any = None
        self.on_conflict: Optional[str] = None
        self.filters: List[Callable[[Dict[str, Any]], bool]] = []
        self.order_by: List[Tuple[str, bool]] = []
        self.single_mode: Optional[str] = None

    # ── Verbs ──────────────────────────────────────────────

    def select(self, columns: str = "*") -> "FakeQuery":
        if self.op == "select":
            cols = [c.strip() for c in columns.split(",") if c.strip()]
            self.columns = None if cols == ["*"] else cols
        return self

    def insert(self, payload: Any) -> "FakeQuery":
        self.op, self.payload = "insert", payload
        return self

    def update(self, payload: Dict[str, Any]) -> "FakeQuery":
        self.op, self.payload = "update", payload
        return self

    def upsert(self, payload: Any, on_conflict: str = "") -> "FakeQuery":
        self.op, self.payload, self.on_conflict = "upsert", payload, on_conflict
        return self

    def delete(self) -> "FakeQuery":
        self.op = "delete"
        return self

    # ── Filters and modifiers ──────────────────────────────

    def _filter(self, predicate: Callable[[Dict[str, Any]], bool]) -> "FakeQuery":
        self.filters.append(predicate)
        return self

    def eq(self, column: str, value: Any) -> "FakeQuery":
        return self._filter(lambda row: row.get(column) == value)

    def neq(self, column: str, value: Any) -> "FakeQuery":
        return self._filter(lambda row: row.get(column) != value)

    def in_(self, column: str, values: List[Any]) -> "FakeQuery":
        allowed = list(values)
        return self._filter(lambda row: row.get(column) in allowed)

    def is_(self, column: str, value: str) -> "FakeQuery":
        return self._filter(lambda row: _is(row.get(column), value))

    @property
    def not_(self) -> _Negation:
        return _Negation(self)

    def order(self, column: str, desc: bool = False) -> "FakeQuery":
        self.order_by.append((column, desc))
        return self

    def maybe_single(self) -> "FakeQuery":
        self.single_mode = "maybe"
        return self

    def single(self) -> "FakeQuery":
        self.single_mode = "single"
        return self

    # ── Execution ──────────────────────────────────────────

    def execute(self) -> FakeResponse:
        self.db.calls.append((self.table, self.op))
        failure = self.db.failures.get((self.table, self.op))
        if failure is not None:
            raise failure

        rows = self.db.tables.setdefault(self.table, [])
        if self.op == "select":
            return self._select(rows)
        if self.op == "insert":
            return FakeResponse([self.db._insert(self.table, row) for row in _as_list(self.payload)])
        if self.op == "upsert":
            return FakeResponse(self.db._upsert(self.table, _as_list(self.payload), self.on_conflict))
        if self.op == "update":
            matched = [row for row in rows if self._matches(row)]
            for row in matched:
                row.update(copy.deepcopy(self.payload))
            return FakeResponse(copy.deepcopy(matched))
        if self.op == "delete":
            matched = [row for row in rows if self._matches(row)]
            self.db.tables[self.table] = [row for row in rows if not self._matches(row)]
            return FakeResponse(copy.deepcopy(matched))
        raise AssertionError(f"unsupported op {self.op}")

    def _matches(self, row: Dict[str, Any]) -> bool:
        return all(predicate(row) for predicate in self.filters)

    def _select(self, rows: List[Dict[str, Any]]) -> FakeResponse:
        matched = [row for row in rows if self._matches(row)]
        for column, desc in reversed(self.order_by):
            matched.sort(key=lambda row: (row.get(column) is None, row.get(column) or ""), reverse=desc)
        projected = [
            {k: v for k, v in row.items() if self.columns is None or k in self.columns}
            for row in matched
        ]
        projected = copy.deepcopy(projected)

        if self.single_mode is None:
            return FakeResponse(projected)
        if len(projected) > 1:
            raise APIError({"code": "PGRST116", "message": "multiple rows returned"})
        if not projected:
            if self.single_mode == "single":
                raise APIError({"code": "PGRST116", "message": "no rows returned"})
            return FakeResponse(None)
        return FakeResponse(projected[0])


def _as_list(payload: Any) -> List[Dict[str, Any]]:
    return payload if isinstance(payload, list) else [payload]


class FakeSupabase:
    """Drop-in for supabase.Client as far as table() queries go."""

    def __init__(self):
        self.tables: Dict[str, List[Dict[str, Any]]] = {}
        self.failures: Dict[Tuple[str, str], Exception] = {}
        self.calls: List[Tuple[str, str]] = []

    def table(self, name: str) -> FakeQuery:
        return FakeQuery(self, name)

    def fail(self, table: str, op: str, error: Optional[Exception] = None) -> None:
        """Make every `op` on `table` raise until cleared."""
        self.failures[(table, op)] = error or APIError({"code": "XX000", "message": f"{op} on {table} failed"})

    def clear_failures(self) -> None:
        self.failures.clear()

    def rows(self, table: str) -> List[Dict[str, Any]]:
        return copy.deepcopy(self.tables.get(table, []))

    def row(self, table: str, **match: Any) -> Optional[Dict[str, Any]]:
        for row in self.tables.get(table, []):
            if all(row.get(k) == v for k, v in match.items()):
                return copy.deepcopy(row)
        return None

    def _conflict(self, table: str, row: Dict[str, Any], ignore: Optional[Dict[str, Any]] = None) -> None:
        for columns in UNIQUE_CONSTRAINTS.get(table, []):
            key = tuple(row.get(c) for c in columns)
            for existing in self.tables.get(table, []):
                if existing is ignore:
                    continue
                if tuple(existing.get(c) for c in columns) == key:
                    raise APIError({
                        "code": "23505",
                        "message": f'duplicate key value violates unique constraint "{table}_{"_".join(columns)}_key"',
                        "details": f"Key ({', '.join(columns)}) already exists.",
                        "hint": None,
                    })

    def _insert(self, table: str, row: Dict[str, Any]) -> Dict[str, Any]:
        stored = {name: default() for name, default in TABLE_DEFAULTS.get(table, {}).items()}
        stored.update(copy.deepcopy(row))
        self._conflict(table, stored)
        self.tables.setdefault(table, []).append(stored)
        return copy.deepcopy(stored)

    def _upsert(self, table: str, rows: List[Dict[str, Any]], on_conflict: str) -> List[Dict[str, Any]]:
        columns = [c.strip() for c in on_conflict.split(",") if c.strip()]
        written = []
        for row in rows:
            existing = None
            if columns:
                existing = next(
                    (r for r in self.tables.get(table, []) if all(r.get(c) == row.get(c) for c in columns)),
                    None,
                )
            if existing is None:
                written.append(self._insert(table, row))
            else:
                existing.update(copy.deepcopy(row))
                written.append(copy.deepcopy(existing))
        return written
