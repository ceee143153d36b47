"""
app/services/security_log.py — security_events table writes and reads
EventPersister is the recorder's fire-and-forget persistence hook: the insert
runs on a small thread pool and failures are only logged.
"""
from __future__ import annotations

import threading
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any, Optional

from loguru import logger

from app.clients.supabase_client import SupabaseClient
from app.core import logging as app_logging
from app.models import SecurityEvent

TABLE = "security_events"


def event_row(event: SecurityEvent) -> dict[str, Any]:
    """Map a recorded event onto the security_events table columns."""
    details = dict(event.details)
    description = details.pop("description", None)
    return {
        "user_id": event.actor_id,
        "event_type": event.kind.value,
        "severity": event.severity.value,
        "description": description,
        "metadata": details,
        "user_agent": event.user_agent,
        "created_at": event.observed_at.isoformat(),
    }


def insert_client_event(
    store: SupabaseClient,
    user_id: str,
    event_type: str,
    severity: str,
    description: Optional[str],
    metadata: Optional[dict[str, Any]],
    user_agent: Optional[str],
) -> dict[str, Any]:
    """Insert an event reported by a client. Raises StoreError on failure."""
    return store.insert(TABLE, {
        "user_id": user_id,
        "event_type": event_type,
        "severity": severity,
        "description": description,
        "metadata": metadata,
        "user_agent": user_agent,
    })


def list_user_events(store: SupabaseClient, user_id: str, limit: int) -> list[dict[str, Any]]:
    return store.select(TABLE, {"user_id": user_id}, order="created_at.desc", limit=limit)


class EventPersister:
    """
    Inserts run on a small thread pool. At most max_pending inserts are queued
    or running; events arriving beyond that are dropped with a warning.
    """

    def __init__(self, store: SupabaseClient, max_workers: int = 2, max_pending: int = 1000) -> None:
        self._store = store
        self._pool = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="security-persist")
        self._max_pending = max_pending
        self._pending = 0
        self._lock = threading.Lock()

    @property
    def pending(self) -> int:
        with self._lock:
            return self._pending

    def __call__(self, event: SecurityEvent) -> Optional[Future]:
        with self._lock:
            if self._pending >= self._max_pending:
                logger.warning(
                    f"Persistence queue full ({self._max_pending}); dropping security event {event.event_id}"
                )
                return None
            self._pending += 1
        future = self._pool.submit(self._store.insert, TABLE, event_row(event))
        future.add_done_callback(lambda f: self._on_done(f, event))
        return future

    def _on_done(self, future: Future, event: SecurityEvent) -> None:
        with self._lock:
            self._pending -= 1
        exc = future.exception()
        if exc is not None:
            app_logging.log_error(
                "security_log", "persist", exc, {"event_id": event.event_id}
            )

    def shutdown(self) -> None:
        logger.info("Draining security event persistence pool.")
        self._pool.shutdown(wait=True)
