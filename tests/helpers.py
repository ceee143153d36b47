"""
tests/helpers.py — Fakes and factories shared by the test modules
"""
from __future__ import annotations

import uuid
from collections import defaultdict
from typing import Any, Optional

from app.clients.supabase_client import UNIQUE_VIOLATION, StoreError
from app.config import Settings

ALICE = "11111111-1111-4111-8111-111111111111"
BOB = "22222222-2222-4222-8222-222222222222"
CAROL = "33333333-3333-4333-8333-333333333333"

ALICE_AUTH = {"Authorization": "Bearer alice-token"}
BOB_AUTH = {"Authorization": "Bearer bob-token"}
ADMIN_KEY = "test-admin-key"


class FakeClock:
    """Millisecond clock advanced by hand."""

    def __init__(self, start: int = 1_700_000_000_000) -> None:
        self.now = start

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


class FakeStore:
    """In-memory stand-in for SupabaseClient: equality filters, ordering, likes uniqueness."""

    def __init__(self) -> None:
        self.tables: dict[str, list[dict[str, Any]]] = defaultdict(list)
        self.tokens: dict[str, dict[str, Any]] = {}
        self.blocked: set[frozenset] = set()
        self.failing_tables: set[str] = set()
        self._seq = 0

    def add_user(self, token: str, user_id: str) -> None:
        self.tokens[token] = {"id": user_id, "email": f"{user_id[:4]}@example.com"}

    def add_row(self, table: str, row: dict[str, Any]) -> dict[str, Any]:
        self._seq += 1
        stored = {"id": str(uuid.uuid4()), "created_at": f"2026-01-01T00:00:{self._seq:06d}", **row}
        self.tables[table].append(stored)
        return dict(stored)

    def get_user(self, access_token: str) -> Optional[dict[str, Any]]:
        return self.tokens.get(access_token)

    @staticmethod
    def _matches(row: dict[str, Any], filters: dict[str, Any]) -> bool:
        return all(str(row.get(k)) == str(v) for k, v in filters.items())

    def select(self, table, filters=None, order=None, limit=None):
        rows = [dict(r) for r in self.tables[table] if self._matches(r, filters or {})]
        if order:
            column, _, direction = order.partition(".")
            rows.sort(key=lambda r: str(r.get(column, "")), reverse=direction == "desc")
        if limit is not None:
            rows = rows[:limit]
        return rows

    def select_one(self, table, filters=None):
        rows = self.select(table, filters, limit=1)
        return rows[0] if rows else None

    def insert(self, table, row):
        if table in self.failing_tables:
            raise StoreError("insert failed", status_code=500)
        if table == "likes" and self.select(
            "likes", {"liker_id": row["liker_id"], "liked_id": row["liked_id"]}, limit=1
        ):
            raise StoreError("duplicate key value", code=UNIQUE_VIOLATION, status_code=409)
        return self.add_row(table, row)

    def delete(self, table, filters):
        self.tables[table] = [r for r in self.tables[table] if not self._matches(r, filters)]

    def rpc(self, function, params):
        if function == "validate_user_action":
            return frozenset({params["p_user_id"], params["p_target_user_id"]}) not in self.blocked
        raise StoreError(f"unknown function {function}", status_code=404)

    def close(self) -> None:
        pass


def make_settings(**overrides: Any) -> Settings:
    values: dict[str, Any] = {
        "environment": "testing",
        "admin_api_key": ADMIN_KEY,
        "persist_security_events": False,
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


def policies_with(**limits: int) -> dict[str, dict[str, int]]:
    """Default policy table with some max_attempts overridden."""
    policies = {k: dict(v) for k, v in Settings.model_fields["rate_limit_policies"].default.items()}
    for action, max_attempts in limits.items():
        policies[action]["max_attempts"] = max_attempts
    return policies
