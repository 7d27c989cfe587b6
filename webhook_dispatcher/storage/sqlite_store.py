"""SQLite-backed subscription store for deployments that need durability."""

import json
import sqlite3
import threading
from datetime import datetime
from pathlib import Path
from typing import Iterable, List, Optional

import structlog
from pydantic import BaseModel

from webhook_dispatcher.core.errors import NotFoundError, StorageError
from webhook_dispatcher.storage.models import (
    Subscription,
    new_subscription_id,
    validate_registration,
)

logger = structlog.get_logger(__name__)

SCHEMA = """
CREATE TABLE IF NOT EXISTS subscriptions (
    seq INTEGER PRIMARY KEY AUTOINCREMENT,
    id TEXT NOT NULL UNIQUE,
    url TEXT NOT NULL,
    events TEXT NOT NULL,
    secret TEXT,
    enabled INTEGER NOT NULL DEFAULT 1,
    created_at TEXT NOT NULL
);
"""


class SQLiteConfig(BaseModel):
    """Configuration for SQLite storage."""

    db_path: str
    require_secret: bool = False


class SQLiteSubscriptionStore:
    """Subscription store persisted to a SQLite file.

    Writes go through a store-wide lock so mutations of the same ID are
    serialized even across worker threads.
    """

    def __init__(self, config: SQLiteConfig):
        """Initialize SQLite storage.

        Args:
            config: SQLite configuration
        """
        self.require_secret = config.require_secret
        self.db_path = Path(config.db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._lock = threading.RLock()

        with self._get_connection() as conn:
            conn.executescript(SCHEMA)

    def _get_connection(self) -> sqlite3.Connection:
        """Get SQLite connection with row factory."""
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        return conn

    @staticmethod
    def _row_to_subscription(row: sqlite3.Row) -> Subscription:
        return Subscription(
            id=row["id"],
            url=row["url"],
            events=frozenset(json.loads(row["events"])),
            secret=row["secret"],
            enabled=bool(row["enabled"]),
            created_at=datetime.fromisoformat(row["created_at"]),
        )

    def register(
        self,
        url: str,
        events: Iterable[str],
        secret: Optional[str] = None,
        enabled: bool = True,
    ) -> Subscription:
        event_set = validate_registration(url, events, secret, self.require_secret)
        subscription = Subscription(
            id=new_subscription_id(),
            url=url,
            events=event_set,
            secret=secret or None,
            enabled=bool(enabled),
        )

        try:
            with self._lock, self._get_connection() as conn:
                conn.execute(
                    """
                    INSERT INTO subscriptions (id, url, events, secret, enabled, created_at)
                    VALUES (?, ?, ?, ?, ?, ?)
                    """,
                    (
                        subscription.id,
                        subscription.url,
                        json.dumps(sorted(subscription.events)),
                        subscription.secret,
                        int(subscription.enabled),
                        subscription.created_at.isoformat(),
                    ),
                )
        except sqlite3.Error as e:
            logger.error("subscription_store_failed", operation="register", error=str(e))
            raise StorageError(f"Failed to store subscription: {e}") from e

        logger.info(
            "subscription_registered",
            subscription_id=subscription.id,
            url=url,
            events=sorted(event_set),
        )
        return subscription

    def get(self, subscription_id: str) -> Subscription:
        with self._get_connection() as conn:
            row = conn.execute(
                "SELECT * FROM subscriptions WHERE id = ?", (subscription_id,)
            ).fetchone()
        if row is None:
            raise NotFoundError(subscription_id)
        return self._row_to_subscription(row)

    def list(self) -> List[Subscription]:
        with self._get_connection() as conn:
            rows = conn.execute("SELECT * FROM subscriptions ORDER BY seq").fetchall()
        return [self._row_to_subscription(row) for row in rows]

    def delete(self, subscription_id: str) -> bool:
        with self._lock, self._get_connection() as conn:
            cursor = conn.execute("DELETE FROM subscriptions WHERE id = ?", (subscription_id,))
            deleted = cursor.rowcount > 0
        if deleted:
            logger.info("subscription_deleted", subscription_id=subscription_id)
        return deleted

    def set_enabled(self, subscription_id: str, enabled: bool) -> Subscription:
        with self._lock:
            with self._get_connection() as conn:
                cursor = conn.execute(
                    "UPDATE subscriptions SET enabled = ? WHERE id = ?",
                    (int(bool(enabled)), subscription_id),
                )
                if cursor.rowcount == 0:
                    raise NotFoundError(subscription_id)
            subscription = self.get(subscription_id)

        logger.info("subscription_updated", subscription_id=subscription_id, enabled=enabled)
        return subscription
