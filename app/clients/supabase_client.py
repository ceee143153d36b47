"""
app/clients/supabase_client.py — Supabase REST client (auth, PostgREST tables, RPC)
The hosted database is a black box reached over HTTP:
  GET    /auth/v1/user              resolve a bearer token to a user
  GET    /rest/v1/<table>?col=eq.v  select
  POST   /rest/v1/<table>           insert (Prefer: return=representation)
  DELETE /rest/v1/<table>?col=eq.v  delete
  POST   /rest/v1/rpc/<fn>          stored procedure
Server-side calls use the service-role key; handlers enforce ownership themselves.
"""
from __future__ import annotations

import time
from typing import Any, Optional

import httpx

from app.core import logging as app_logging

UNIQUE_VIOLATION = "23505"


class StoreError(Exception):
    """A Supabase call failed. `code` carries the Postgres error code when present."""

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        status_code: Optional[int] = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.status_code = status_code

    @property
    def is_unique_violation(self) -> bool:
        return self.code == UNIQUE_VIOLATION


def _eq_params(filters: Optional[dict[str, Any]]) -> dict[str, str]:
    return {column: f"eq.{value}" for column, value in (filters or {}).items()}


class SupabaseClient:
    def __init__(
        self,
        url: str,
        anon_key: str,
        service_role_key: str,
        timeout: float = 10.0,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self._anon_key = anon_key
        self._service_key = service_role_key
        self._http = httpx.Client(
            base_url=url.rstrip("/"),
            timeout=timeout,
            transport=transport,
        )

    def close(self) -> None:
        self._http.close()

    # ── Internals ─────────────────────────────────────────────────────────────

    def _service_headers(self, extra: Optional[dict[str, str]] = None) -> dict[str, str]:
        headers = {
            "apikey": self._service_key,
            "Authorization": f"Bearer {self._service_key}",
        }
        if extra:
            headers.update(extra)
        return headers

    def _send(
        self,
        method: str,
        path: str,
        target: str,
        operation: str,
        **kwargs: Any,
    ) -> httpx.Response:
        start = time.monotonic()
        try:
            response = self._http.request(method, path, **kwargs)
        except httpx.HTTPError as exc:
            app_logging.log_store_operation(
                target, operation, False, (time.monotonic() - start) * 1000, error=str(exc)
            )
            raise StoreError(f"{operation} {target} failed: {exc}") from exc

        latency_ms = (time.monotonic() - start) * 1000
        if response.is_error:
            try:
                body = response.json()
            except ValueError:
                body = {}
            if not isinstance(body, dict):
                body = {}
            message = body.get("message") or body.get("msg") or response.text or "request failed"
            app_logging.log_store_operation(
                target, operation, False, latency_ms, response.status_code, message
            )
            raise StoreError(message, code=body.get("code"), status_code=response.status_code)

        app_logging.log_store_operation(target, operation, True, latency_ms, response.status_code)
        return response

    # ── Auth ──────────────────────────────────────────────────────────────────

    def get_user(self, access_token: str) -> Optional[dict[str, Any]]:
        """Return the user for a bearer token, or None if the token is rejected."""
        try:
            response = self._send(
                "GET", "/auth/v1/user", "auth", "get_user",
                headers={
                    "apikey": self._anon_key,
                    "Authorization": f"Bearer {access_token}",
                },
            )
        except StoreError as exc:
            if exc.status_code in (401, 403):
                return None
            raise
        user = response.json()
        if not isinstance(user, dict) or not user.get("id"):
            return None
        return user

    # ── Tables ────────────────────────────────────────────────────────────────

    def select(
        self,
        table: str,
        filters: Optional[dict[str, Any]] = None,
        order: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> list[dict[str, Any]]:
        """Rows matching every equality filter. `order` is PostgREST syntax, e.g. created_at.desc."""
        params: dict[str, Any] = {"select": "*", **_eq_params(filters)}
        if order:
            params["order"] = order
        if limit is not None:
            params["limit"] = limit
        response = self._send(
            "GET", f"/rest/v1/{table}", table, "select",
            params=params, headers=self._service_headers(),
        )
        return response.json()

    def select_one(
        self,
        table: str,
        filters: Optional[dict[str, Any]] = None,
    ) -> Optional[dict[str, Any]]:
        rows = self.select(table, filters, limit=1)
        return rows[0] if rows else None

    def insert(self, table: str, row: dict[str, Any]) -> dict[str, Any]:
        """Insert one row and return it as stored."""
        response = self._send(
            "POST", f"/rest/v1/{table}", table, "insert",
            json=row,
            headers=self._service_headers({"Prefer": "return=representation"}),
        )
        rows = response.json()
        if isinstance(rows, list):
            return rows[0] if rows else {}
        return rows

    def delete(self, table: str, filters: dict[str, Any]) -> None:
        if not filters:
            raise ValueError("Refusing unfiltered delete")
        self._send(
            "DELETE", f"/rest/v1/{table}", table, "delete",
            params=_eq_params(filters), headers=self._service_headers(),
        )

    def rpc(self, function: str, params: dict[str, Any]) -> Any:
        response = self._send(
            "POST", f"/rest/v1/rpc/{function}", function, "rpc",
            json=params, headers=self._service_headers(),
        )
        if not response.content:
            return None
        return response.json()
