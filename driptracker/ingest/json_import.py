"""JSON backup import.

Validates a backup document and, only if it is valid, overwrites the
stored holdings, dividends and scenarios (and the current scenario
when the document carries one). Every outcome is reported as a result
dict; nothing here raises.

"""

from __future__ import annotations

import json
import logging
import mimetypes
from pathlib import Path
from typing import TYPE_CHECKING, Any

from driptracker.db.portfolio_store import StorageError
from driptracker.db.schema import (
    CURRENT_SCENARIO_KEY,
    DIVIDENDS_KEY,
    HOLDINGS_KEY,
    SCENARIOS_KEY,
)

if TYPE_CHECKING:
    from driptracker.db.portfolio_store import PortfolioStore

logger = logging.getLogger(__name__)

JSON_MIME_TYPE = "application/json"

_REQUIRED_FIELDS = ("holdings", "dividends", "scenarios")


def _failure(message: str) -> dict[str, Any]:
    return {"success": False, "message": message}


def validate_import_data(data: Any) -> tuple[bool, str]:
    """Check the structure of a parsed backup document.

    Args:
        data: Parsed JSON value.

    Returns:
        Tuple of (valid, message).

    """
    if not isinstance(data, dict) or not data:
        return False, "Import failed: Invalid data format"

    for prop in _REQUIRED_FIELDS:
        if data.get(prop) is None:
            return False, f"Import failed: Missing required data: {prop}"

    if not isinstance(data["holdings"], list):
        return False, "Import failed: Holdings must be an array"
    if not isinstance(data["dividends"], list):
        return False, "Import failed: Dividends must be an array"
    if not isinstance(data["scenarios"], dict):
        return False, "Import failed: Scenarios must be an object"

    return True, "Data validated successfully"


def import_portfolio_document(
    store: PortfolioStore,
    data: Any,
) -> dict[str, Any]:
    """Validate a parsed backup document and write it to the store.

    Returns:
        Dict with success, message and, on success, ``data`` holding
        the imported holdings and dividends counts.

    """
    valid, message = validate_import_data(data)
    if not valid:
        logger.warning(message)
        return _failure(message)

    items = {
        HOLDINGS_KEY: data["holdings"],
        DIVIDENDS_KEY: data["dividends"],
        SCENARIOS_KEY: data["scenarios"],
    }
    if data.get("currentScenario"):
        items[CURRENT_SCENARIO_KEY] = data["currentScenario"]
    try:
        store.put_many(items)
    except StorageError:
        logger.exception("Error saving imported data")
        return _failure("Import failed: Could not save imported data")

    counts = {"holdings": len(data["holdings"]), "dividends": len(data["dividends"])}
    logger.info(
        "Imported %d holdings and %d dividends", counts["holdings"], counts["dividends"]
    )
    return {"success": True, "message": "Data imported successfully", "data": counts}


def import_portfolio_data(
    store: PortfolioStore,
    file_path: str | Path | None,
) -> dict[str, Any]:
    """Import a backup file into the store.

    The file must exist, be JSON-typed (``.json``), parse, and pass
    ``validate_import_data``. A rejected file leaves the store untouched.

    Args:
        store: Store to overwrite.
        file_path: Path to the backup file.

    Returns:
        Result dict, see ``import_portfolio_document``.

    """
    if file_path is None or str(file_path) == "":
        return _failure("No file selected")

    path = Path(file_path)
    mime_type, _ = mimetypes.guess_type(path.name)
    if mime_type != JSON_MIME_TYPE:
        return _failure("Selected file is not a JSON file")

    try:
        content = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError):
        logger.exception("Error reading file %s", path)
        return _failure("Error reading file")

    try:
        data = json.loads(content)
    except json.JSONDecodeError:
        logger.exception("Error parsing imported data")
        return _failure("Failed to parse imported data")

    return import_portfolio_document(store, data)
