"""Portfolio data store — DuckDB key-value gateway.

Every collection (holdings, dividends, scenarios, ...) is stored as a
JSON document under a fixed key. Reads never raise: a missing or
corrupt value yields the caller's default. Writes come in two flavours:
``save`` logs and reports failures as ``False`` for ordinary mutations,
``put`` raises ``StorageError`` for callers that must react to a failed
write (migration, rollback).
"""

from __future__ import annotations

import json
import logging
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

import duckdb

if TYPE_CHECKING:
    from collections.abc import Iterator

logger = logging.getLogger(__name__)


class StorageError(Exception):
    """A value could not be written to the store."""


class PortfolioStore:
    """JSON key-value store on top of a DuckDB connection.

    Args:
        conn: Connection with the ``kv_store`` table already created
            (see ``init_portfolio_db`` / ``init_memory_db``).

    """

    def __init__(self, conn: duckdb.DuckDBPyConnection) -> None:
        self.conn = conn

    def get_raw(self, key: str) -> str | None:
        """Return the stored JSON text for *key*, or None if absent."""
        row = self.conn.execute(
            "SELECT value FROM kv_store WHERE key = ?", [key]
        ).fetchone()
        return None if row is None else row[0]

    def has(self, key: str) -> bool:
        """Return True if *key* holds a value."""
        return self.get_raw(key) is not None

    def load(self, key: str, default: Any = None) -> Any:
        """Load and decode the value stored under *key*.

        Args:
            key: Storage key.
            default: Returned when the key is absent or its value
                cannot be decoded.

        Returns:
            The decoded JSON value, or *default*.

        """
        try:
            raw = self.get_raw(key)
        except duckdb.Error:
            logger.exception("Error loading data for key %s", key)
            return default
        if raw is None:
            return default
        try:
            return json.loads(raw)
        except json.JSONDecodeError as exc:
            logger.warning("Corrupt value for key %s, using default: %s", key, exc)
            return default

    def put(self, key: str, value: Any) -> None:
        """Encode *value* as JSON and store it under *key*.

        Raises:
            StorageError: If the value is not serializable or the
                database rejects the write.

        """
        try:
            encoded = json.dumps(value)
        except (TypeError, ValueError) as exc:
            msg = f"Value for key '{key}' is not JSON serializable: {exc}"
            raise StorageError(msg) from exc

        now = datetime.now(tz=UTC).replace(tzinfo=None)
        try:
            self.conn.execute(
                """
                INSERT OR REPLACE INTO kv_store (key, value, updated_at)
                VALUES (?, ?, ?)
                """,
                [key, encoded, now],
            )
        except duckdb.Error as exc:
            msg = f"Error saving data for key '{key}': {exc}"
            raise StorageError(msg) from exc

    def put_many(self, items: dict[str, Any]) -> None:
        """Store several values in one transaction.

        Either every key is written or none is.

        Raises:
            StorageError: If any value is not serializable or the
                database rejects the write.

        """
        encoded: dict[str, str] = {}
        for key, value in items.items():
            try:
                encoded[key] = json.dumps(value)
            except (TypeError, ValueError) as exc:
                msg = f"Value for key '{key}' is not JSON serializable: {exc}"
                raise StorageError(msg) from exc

        now = datetime.now(tz=UTC).replace(tzinfo=None)
        self.conn.begin()
        try:
            for key, text in encoded.items():
                self.conn.execute(
                    """
                    INSERT OR REPLACE INTO kv_store (key, value, updated_at)
                    VALUES (?, ?, ?)
                    """,
                    [key, text, now],
                )
        except duckdb.Error as exc:
            self.conn.rollback()
            msg = f"Error saving data for keys {sorted(encoded)}: {exc}"
            raise StorageError(msg) from exc
        self.conn.commit()

    def save(self, key: str, value: Any) -> bool:
        """Store *value* under *key*, reporting failure instead of raising.

        Returns:
            True if the value was written.

        """
        try:
            self.put(key, value)
        except StorageError:
            logger.exception("Storage write failed; some data may not be saved")
            return False
        return True

    def delete(self, key: str) -> None:
        """Remove *key* if present."""
        self.conn.execute("DELETE FROM kv_store WHERE key = ?", [key])

    def keys(self) -> Iterator[str]:
        """Iterate over stored keys in sorted order."""
        rows = self.conn.execute("SELECT key FROM kv_store ORDER BY key").fetchall()
        for (key,) in rows:
            yield key

    def close(self) -> None:
        self.conn.close()
