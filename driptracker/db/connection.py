"""DuckDB connection management for DRIP Tracker.

Handles database initialization, schema creation, and connection
lifecycle. Portfolio state is kept in a single local file::

    ~/.driptracker/
      data/
        portfolio.duckdb

The data directory can be moved with the ``DRIPTRACKER_DATA_DIR``
environment variable.

"""

from __future__ import annotations

import logging
import os
from pathlib import Path

import duckdb

from driptracker.db.schema import ALL_TABLES

logger = logging.getLogger(__name__)

DATA_DIR_ENV = "DRIPTRACKER_DATA_DIR"
DB_FILENAME = "portfolio.duckdb"


def default_data_dir() -> Path:
    """Return the data directory, honouring ``DRIPTRACKER_DATA_DIR``."""
    override = os.environ.get(DATA_DIR_ENV)
    if override:
        return Path(override).expanduser()
    return Path.home() / ".driptracker" / "data"


def get_connection(db_path: str | Path | None = None) -> duckdb.DuckDBPyConnection:
    """Open a DuckDB connection, creating the parent directory if needed.

    Args:
        db_path: Path to the .duckdb file. None opens an in-memory
            database.

    """
    if db_path is None:
        return duckdb.connect(":memory:")

    path = Path(db_path)
    path.parent.mkdir(parents=True, exist_ok=True)
    return duckdb.connect(str(path))


def _apply_schema(conn: duckdb.DuckDBPyConnection) -> duckdb.DuckDBPyConnection:
    for ddl in ALL_TABLES:
        conn.execute(ddl)
    return conn


def init_portfolio_db(
    db_path: str | Path | None = None,
) -> duckdb.DuckDBPyConnection:
    """Open the portfolio store file and create ``kv_store`` if missing.

    Args:
        db_path: Store file. Defaults to ``<data dir>/portfolio.duckdb``.

    Returns:
        Connection ready for ``PortfolioStore``.

    """
    if db_path is None:
        db_path = default_data_dir() / DB_FILENAME

    conn = _apply_schema(get_connection(db_path))
    logger.info("Portfolio store opened at %s", db_path)
    return conn


def init_memory_db() -> duckdb.DuckDBPyConnection:
    """Throwaway in-memory store, used by ``--memory`` and the tests."""
    return _apply_schema(get_connection(None))
