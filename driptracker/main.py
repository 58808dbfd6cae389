"""DRIP Tracker sidecar entry point.

Communicates with the UI process via stdin/stdout using
newline-delimited JSON messages.

Protocol:
    Request:  {"id": "uuid", "method": "string", "params": {}}
    Response: {"id": "uuid", "result": {}}
    Error:    {"id": "uuid", "error": {"message": "string"}}

The schema migration runs before the first request is read, so no
mutation can touch storage that is still on an old layout.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
import traceback
from dataclasses import dataclass
from datetime import date
from pathlib import Path
from typing import Any

from driptracker import log_config
from driptracker.data_manager import DataManager
from driptracker.db.connection import init_memory_db, init_portfolio_db
from driptracker.db.migration import MigrationResult, perform_safe_migration
from driptracker.db.portfolio_store import PortfolioStore
from driptracker.export.json_export import PortfolioEncoder
from driptracker.portfolio.history import (
    dividend_calendar,
    latest_share_growth,
    monthly_dividend_totals,
)
from driptracker.portfolio.models import Holding
from driptracker.portfolio.operations import Portfolio
from driptracker.simulation.projection import DEFAULT_YEARS, combine_projections

logger = logging.getLogger(__name__)


def _parse_date(value: str | None) -> date | None:
    return None if value is None else date.fromisoformat(value)


@dataclass
class App:
    """Everything a request handler needs, opened after migration."""

    store: PortfolioStore
    portfolio: Portfolio
    data_manager: DataManager
    migration: MigrationResult

    @classmethod
    def open(cls, db_path: str | Path | None = None, memory: bool = False) -> App:
        """Open the store, migrate it, then load the portfolio.

        Args:
            db_path: Store file; defaults to the configured data dir.
            memory: Use a throwaway in-memory store instead.

        """
        conn = init_memory_db() if memory else init_portfolio_db(db_path)
        store = PortfolioStore(conn)
        migration = perform_safe_migration(store)
        portfolio = Portfolio(store)
        return cls(
            store=store,
            portfolio=portfolio,
            data_manager=DataManager(portfolio),
            migration=migration,
        )


def _handlers(app: App) -> dict[str, Any]:
    portfolio = app.portfolio
    data = app.data_manager
    return {
        # Engine
        "portfolio.summary": portfolio.summary,
        "portfolio.totals": portfolio.totals,
        "portfolio.state": portfolio.to_state,
        "dividends.upcoming": lambda today=None: portfolio.upcoming_dividends(
            _parse_date(today)
        ),
        "dividends.monthly_totals": lambda: monthly_dividend_totals(
            portfolio.dividends
        ),
        "dividends.calendar": lambda today=None, months=12: dividend_calendar(
            portfolio.dividends, _parse_date(today), months
        ),
        "dividends.latest_share_growth": lambda: latest_share_growth(
            portfolio.dividends
        ),
        "projection.generate": portfolio.projection,
        "projection.combined": lambda scenario_name, years=DEFAULT_YEARS: (
            combine_projections(portfolio.projection(scenario_name, years))
        ),
        "projection.compare": portfolio.compare_scenarios,
        "scenarios.trajectory": portfolio.current_trajectory,
        # Mutations
        "holdings.add": lambda holding: portfolio.add_holding(holding).to_dict(),
        "holdings.update": lambda holding: portfolio.update_holding(
            Holding.from_dict(holding)
        ),
        "holdings.delete": portfolio.delete_holding,
        "dividends.add": lambda dividend: portfolio.add_dividend(dividend).to_dict(),
        "scenarios.update": lambda scenarios: {
            name: s.to_dict()
            for name, s in portfolio.update_scenarios(scenarios).items()
        },
        "scenarios.set_current": portfolio.set_current_scenario,
        # Backups
        "data.export": data.export_data,
        "data.import": data.import_data,
        "data.status": data.status,
        "data.clear_message": data.clear_message,
        "migration.status": app.migration.to_dict,
    }


def dispatch(app: App, method: str, params: dict[str, Any]) -> Any:
    """Route a method call to the appropriate handler.

    Args:
        app: Opened application state.
        method: The method name (e.g., "projection.generate").
        params: Keyword arguments for the handler.

    Returns:
        The result of the method call.

    Raises:
        ValueError: If the method is not recognized.

    """
    handlers = _handlers(app)
    if method not in handlers:
        msg = f"Unknown method: {method}"
        raise ValueError(msg)
    return handlers[method](**params)


def serve(app: App) -> None:
    """Run the message loop until stdin is closed."""
    for raw_line in sys.stdin:
        stripped = raw_line.strip()
        if not stripped:
            continue

        request: dict[str, Any] = {}
        try:
            request = json.loads(stripped)
            request_id = request.get("id", "unknown")
            method = request["method"]
            params = request.get("params", {})
            result = dispatch(app, method, params)
            response: dict[str, Any] = {"id": request_id, "result": result}
        except Exception as exc:  # noqa: BLE001 — dispatcher must catch all errors and return them as JSON
            request_id = (
                request.get("id", "unknown") if isinstance(request, dict) else "unknown"
            )
            response = {
                "id": request_id,
                "error": {
                    "message": str(exc),
                    "traceback": traceback.format_exc(),
                },
            }
        sys.stdout.write(json.dumps(response, cls=PortfolioEncoder) + "\n")
        sys.stdout.flush()


def main(argv: list[str] | None = None) -> None:
    """Parse arguments, migrate the store and serve requests."""
    parser = argparse.ArgumentParser(prog="driptracker")
    parser.add_argument("--db-path", default=None, help="Path to the store file")
    parser.add_argument("--memory", action="store_true", help="Use an in-memory store")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    args = parser.parse_args(argv)

    log_config.setup(verbose=args.verbose)
    app = App.open(db_path=args.db_path, memory=args.memory)
    try:
        serve(app)
    finally:
        app.store.close()


if __name__ == "__main__":
    main()
