"""Backup import/export with status tracking.

``DataManager`` is what the UI talks to for backups. It keeps the
transient status flags the UI displays, refuses a second import while
one is still running, and reloads the portfolio once an import lands.

"""

from __future__ import annotations

import logging
import threading
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Any

from driptracker.export.json_export import export_portfolio_data, get_last_backup_date
from driptracker.ingest.json_import import import_portfolio_data

if TYPE_CHECKING:
    from driptracker.portfolio.operations import Portfolio

logger = logging.getLogger(__name__)


@dataclass
class DataManagementState:
    """Transient status of the current backup operation."""

    is_importing: bool = False
    is_exporting: bool = False
    message: str | None = None
    message_type: str | None = None

    def to_dict(self) -> dict[str, Any]:
        state = asdict(self)
        return {
            "isImporting": state["is_importing"],
            "isExporting": state["is_exporting"],
            "message": state["message"],
            "messageType": state["message_type"],
        }


class DataManager:
    """Export and import backups for a ``Portfolio``."""

    def __init__(self, portfolio: Portfolio) -> None:
        self.portfolio = portfolio
        self.state = DataManagementState()
        self._import_lock = threading.Lock()

    def _finish(self, message: str, message_type: str) -> None:
        self.state.message = message
        self.state.message_type = message_type

    def export_data(self, output_dir: str | Path | None = None) -> dict[str, Any]:
        """Export the current state as a backup document.

        Returns:
            Dict with success, message, filename, path and document.

        """
        self.state.is_exporting = True
        try:
            exported = export_portfolio_data(
                self.portfolio.store, output_dir=output_dir
            )
        except OSError as exc:
            logger.exception("Export failed")
            self._finish(f"Export failed: {exc}", "error")
            return {"success": False, "message": self.state.message}
        finally:
            self.state.is_exporting = False

        self._finish("Portfolio data exported successfully", "success")
        return {"success": True, "message": self.state.message, **exported}

    def import_data(self, file_path: str | Path | None) -> dict[str, Any]:
        """Import a backup file, rejecting overlapping imports.

        Returns:
            The import result dict (success, message, data).

        """
        if not self._import_lock.acquire(blocking=False):
            return {"success": False, "message": "An import is already in progress"}

        self.state.is_importing = True
        try:
            result = import_portfolio_data(self.portfolio.store, file_path)
            if result["success"]:
                self.portfolio.reload()
                counts = result["data"]
                self._finish(
                    f"Imported {counts['holdings']} holdings and "
                    f"{counts['dividends']} dividends",
                    "success",
                )
            else:
                self._finish(result["message"], "error")
            return result
        finally:
            self.state.is_importing = False
            self._import_lock.release()

    def clear_message(self) -> None:
        """Reset the status message after it has been displayed."""
        self.state.message = None
        self.state.message_type = None

    def last_backup_date(self) -> str | None:
        return get_last_backup_date(self.portfolio.store)

    def status(self) -> dict[str, Any]:
        return {**self.state.to_dict(), "lastBackupDate": self.last_backup_date()}
