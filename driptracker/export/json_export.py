"""JSON backup export for portfolio data.

Produces a full-state snapshot of the store: holdings, dividends,
scenarios and the current scenario, stamped with the export time and
format version.

"""

from __future__ import annotations

import json
import logging
from datetime import UTC, date, datetime
from pathlib import Path
from typing import TYPE_CHECKING, Any

import numpy as np

from driptracker.db.schema import (
    CURRENT_SCENARIO_KEY,
    DIVIDENDS_KEY,
    HOLDINGS_KEY,
    LAST_BACKUP_KEY,
    SCENARIOS_KEY,
)

if TYPE_CHECKING:
    from driptracker.db.portfolio_store import PortfolioStore

logger = logging.getLogger(__name__)

EXPORT_VERSION = "1.0.0"
BACKUP_FILENAME_PREFIX = "drip-portfolio-backup-"


class PortfolioEncoder(json.JSONEncoder):
    """JSON encoder that handles NumPy types and datetimes."""

    def default(self, o: Any) -> Any:
        """Convert non-serializable types to JSON-safe values."""
        if isinstance(o, np.ndarray):
            return o.tolist()
        if isinstance(o, np.integer):
            return int(o)
        if isinstance(o, np.floating):
            return float(o)
        if isinstance(o, datetime | date):
            return o.isoformat()
        return super().default(o)


def backup_filename(on: date | None = None) -> str:
    """Return ``drip-portfolio-backup-<YYYY-MM-DD>.json`` for *on* (UTC today)."""
    if on is None:
        on = datetime.now(tz=UTC).date()
    return f"{BACKUP_FILENAME_PREFIX}{on.isoformat()}.json"


def build_export_document(
    store: PortfolioStore,
    now: datetime | None = None,
) -> dict[str, Any]:
    """Snapshot the store into an export document.

    Args:
        store: Store to read.
        now: Export timestamp; defaults to the current UTC time.

    Returns:
        Dict with holdings, dividends, scenarios, currentScenario,
        exportDate (ISO-8601) and version.

    """
    if now is None:
        now = datetime.now(tz=UTC)
    return {
        "holdings": store.load(HOLDINGS_KEY, []),
        "dividends": store.load(DIVIDENDS_KEY, []),
        "scenarios": store.load(SCENARIOS_KEY, {}),
        "currentScenario": store.load(CURRENT_SCENARIO_KEY, "neutral"),
        "exportDate": now.isoformat(),
        "version": EXPORT_VERSION,
    }


def export_portfolio_data(
    store: PortfolioStore,
    output_dir: str | Path | None = None,
    now: datetime | None = None,
) -> dict[str, Any]:
    """Export the store as a JSON backup and record the backup time.

    Args:
        store: Store to export.
        output_dir: Directory to write the backup file into. If None,
            nothing is written to disk.
        now: Export timestamp; defaults to the current UTC time.

    Returns:
        Dict with ``document`` (the export document), ``filename`` and
        ``path`` (None when no file was written).

    """
    if now is None:
        now = datetime.now(tz=UTC)

    document = build_export_document(store, now=now)
    filename = backup_filename(now.date())

    path: str | None = None
    if output_dir is not None:
        target = Path(output_dir)
        target.mkdir(parents=True, exist_ok=True)
        out = target / filename
        out.write_text(
            json.dumps(document, cls=PortfolioEncoder, indent=2), encoding="utf-8"
        )
        path = str(out)
        logger.info("Portfolio exported to %s", path)

    store.save(LAST_BACKUP_KEY, now.isoformat())
    return {"document": document, "filename": filename, "path": path}


def get_last_backup_date(store: PortfolioStore) -> str | None:
    """Timestamp of the last export, or None if never exported."""
    return store.load(LAST_BACKUP_KEY, None)
