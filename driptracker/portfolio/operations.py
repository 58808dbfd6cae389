"""Portfolio mutations: holdings, dividends and scenarios.

``Portfolio`` owns the in-memory holding and dividend sets, applies
mutations, and writes each changed collection back to the store.
Derived views (summary, forecast, projection) are recomputed from the
current sets on every call.

"""

from __future__ import annotations

import logging
from dataclasses import replace
from datetime import date
from typing import TYPE_CHECKING, Any

import numpy as np

from driptracker.db.portfolio_store import StorageError
from driptracker.db.schema import (
    CURRENT_SCENARIO_KEY,
    DIVIDENDS_KEY,
    HOLDINGS_KEY,
    SCENARIOS_KEY,
)
from driptracker.portfolio.models import Dividend, Holding, next_id
from driptracker.portfolio.summary import get_portfolio_summary, get_portfolio_totals
from driptracker.portfolio.upcoming import get_upcoming_dividends
from driptracker.simulation.projection import (
    DEFAULT_YEARS,
    compare_scenarios,
    generate_projection,
)
from driptracker.simulation.scenarios import (
    DEFAULT_SCENARIO,
    Scenario,
    determine_current_trajectory,
    scenarios_from_dict,
    scenarios_to_dict,
    validate_scenario_name,
)

if TYPE_CHECKING:
    from driptracker.db.portfolio_store import PortfolioStore

logger = logging.getLogger(__name__)

_HEX_DIGITS = "0123456789ABCDEF"

_REQUIRED_HOLDING_FIELDS = {
    "ticker": "Ticker is required",
    "name": "Name is required",
    "initialInvestment": "Initial investment is required",
    "initialSharePrice": "Initial share price is required",
    "currentSharePrice": "Current share price is required",
}


def random_color(rng: np.random.Generator | None = None) -> str:
    """Return a random ``#RRGGBB`` chart color."""
    if rng is None:
        rng = np.random.default_rng()
    return "#" + "".join(_HEX_DIGITS[int(i)] for i in rng.integers(0, 16, size=6))


def _is_blank(value: Any) -> bool:
    return value is None or value == ""


def validate_holding_data(data: dict[str, Any]) -> dict[str, str]:
    """Check a new-holding record for missing or invalid fields.

    Returns:
        Dict mapping field name to error message; empty when valid.

    """
    errors = {
        field: message
        for field, message in _REQUIRED_HOLDING_FIELDS.items()
        if _is_blank(data.get(field))
    }
    numeric = ("initialInvestment", "initialSharePrice", "currentSharePrice", "shares")
    for field in numeric:
        if field in errors or _is_blank(data.get(field)):
            continue
        try:
            value = float(data[field])
        except (TypeError, ValueError):
            errors[field] = f"{field} must be a number"
            continue
        if value < 0:
            errors[field] = f"{field} must not be negative"
    return errors


def validate_dividend_data(data: dict[str, Any]) -> dict[str, str]:
    """Check a new-dividend record for missing or invalid fields.

    Returns:
        Dict mapping field name to error message; empty when valid.

    """
    errors: dict[str, str] = {}
    if _is_blank(data.get("holdingId")):
        errors["holdingId"] = "Holding is required"
    if _is_blank(data.get("date")):
        errors["date"] = "Pay date is required"
    if _is_blank(data.get("amount")):
        errors["amount"] = "Dividend amount is required"
    else:
        try:
            if float(data["amount"]) < 0:
                errors["amount"] = "Dividend amount must not be negative"
        except (TypeError, ValueError):
            errors["amount"] = "Dividend amount must be a number"

    if data.get("reinvested"):
        try:
            share_price = float(data.get("sharePrice") or 0)
        except (TypeError, ValueError):
            share_price = 0.0
        if share_price <= 0:
            errors["sharePrice"] = "Share price is required for reinvestment"
    return errors


def _raise_if_invalid(errors: dict[str, str]) -> None:
    if errors:
        msg = "; ".join(errors.values())
        raise ValueError(msg)


class Portfolio:
    """Holdings, dividends and scenarios backed by a ``PortfolioStore``.

    Args:
        store: Persistence gateway. Collections are loaded from it on
            construction and written back after every mutation.
        rng: Random generator for chart colors.

    """

    def __init__(
        self,
        store: PortfolioStore,
        rng: np.random.Generator | None = None,
    ) -> None:
        self.store = store
        self.rng = rng if rng is not None else np.random.default_rng()
        self.holdings: list[Holding] = []
        self.dividends: list[Dividend] = []
        self.scenarios: dict[str, Scenario] = {}
        self.current_scenario = DEFAULT_SCENARIO
        self.reload()

    # ── Loading / persistence ──

    def reload(self) -> None:
        """Re-read every collection from the store."""
        self.holdings = self._load_records(HOLDINGS_KEY, Holding)
        self.dividends = self._load_records(DIVIDENDS_KEY, Dividend)
        self.scenarios = scenarios_from_dict(self.store.load(SCENARIOS_KEY, {}))

        current = self.store.load(CURRENT_SCENARIO_KEY, DEFAULT_SCENARIO)
        try:
            self.current_scenario = validate_scenario_name(current)
        except LookupError:
            logger.warning(
                "Stored current scenario %r is unknown, using default", current
            )
            self.current_scenario = DEFAULT_SCENARIO

    def _load_records(self, key: str, cls: type[Any]) -> list[Any]:
        raw = self.store.load(key, [])
        if not isinstance(raw, list):
            logger.warning("Expected a list under %s, got %s", key, type(raw).__name__)
            return []
        records = []
        for item in raw:
            try:
                records.append(cls.from_dict(item))
            except (TypeError, ValueError, AttributeError):
                logger.warning("Skipping malformed record under %s: %r", key, item)
        return records

    # Writes go to the store first; memory only changes once they land.

    def _store_holdings(self, holdings: list[Holding]) -> None:
        self.store.put(HOLDINGS_KEY, [h.to_dict() for h in holdings])
        self.holdings = holdings

    def _store_dividends(self, dividends: list[Dividend]) -> None:
        self.store.put(DIVIDENDS_KEY, [d.to_dict() for d in dividends])
        self.dividends = dividends

    def get_holding(self, holding_id: int) -> Holding | None:
        for holding in self.holdings:
            if holding.id == holding_id:
                return holding
        return None

    # ── Holdings ──

    def add_holding(self, data: dict[str, Any]) -> Holding:
        """Create a holding from a camelCase record.

        ``shares`` defaults to ``initialInvestment / initialSharePrice``
        rounded to two decimals.

        Raises:
            ValueError: If required fields are missing or invalid.
            StorageError: If the holding could not be stored.

        """
        _raise_if_invalid(validate_holding_data(data))

        record = dict(data)
        if _is_blank(record.get("shares")):
            price = float(record["initialSharePrice"])
            if price <= 0:
                msg = "Number of shares is required"
                raise ValueError(msg)
            record["shares"] = round(float(record["initialInvestment"]) / price, 2)

        record["id"] = next_id(self.holdings)
        record["color"] = random_color(self.rng)
        holding = Holding.from_dict(record)

        self._store_holdings([*self.holdings, holding])
        logger.info("Added holding %s (%s)", holding.id, holding.ticker)
        return holding

    def update_holding(self, holding: Holding) -> bool:
        """Replace the holding with the same id.

        Returns:
            True if a holding was replaced, False if none matched.

        Raises:
            StorageError: If the change could not be stored; the
                in-memory holding is left as it was.

        """
        for i, existing in enumerate(self.holdings):
            if existing.id == holding.id:
                updated = list(self.holdings)
                updated[i] = holding
                self._store_holdings(updated)
                return True
        logger.warning("update_holding: no holding with id %s", holding.id)
        return False

    def delete_holding(self, holding_id: int) -> bool:
        """Delete a holding and every dividend it paid.

        Returns:
            True if the holding existed.

        Raises:
            StorageError: If the deletion could not be stored. Both
                collections are written in one transaction, so neither
                changes.

        """
        holdings = [h for h in self.holdings if h.id != holding_id]
        dividends = [d for d in self.dividends if d.holding_id != holding_id]
        removed_dividends = len(self.dividends) - len(dividends)
        found = len(holdings) < len(self.holdings)

        self.store.put_many(
            {
                HOLDINGS_KEY: [h.to_dict() for h in holdings],
                DIVIDENDS_KEY: [d.to_dict() for d in dividends],
            }
        )
        self.holdings = holdings
        self.dividends = dividends

        if found:
            logger.info(
                "Deleted holding %s and %d dividends",
                holding_id,
                removed_dividends,
            )
        else:
            logger.warning("delete_holding: no holding with id %s", holding_id)
        return found

    # ── Dividends ──

    def add_dividend(self, data: dict[str, Any]) -> Dividend:
        """Record a dividend payment.

        ``sharesOwned`` defaults to the holding's current share count;
        ``totalReceived`` and ``newShares`` are always derived here. A
        reinvested dividend grows the holding's shares, and that update
        is stored before the dividend itself. If the holding no longer
        exists the share update is skipped and the dividend is still
        recorded.

        Raises:
            ValueError: If required fields are missing or invalid.
            StorageError: If the share update or the dividend could not
                be stored. A failed share update records nothing; a
                failed dividend write reverts the share update.

        """
        _raise_if_invalid(validate_dividend_data(data))

        holding_id = int(data["holdingId"])
        holding = self.get_holding(holding_id)

        shares_owned = data.get("sharesOwned")
        if _is_blank(shares_owned):
            shares_owned = holding.shares if holding is not None else 0.0
        shares_owned = float(shares_owned)

        amount = float(data["amount"])
        reinvested = bool(data.get("reinvested", False))
        share_price = float(data.get("sharePrice") or 0)
        total_received = amount * shares_owned
        new_shares = total_received / share_price if reinvested else 0.0

        dividend = Dividend(
            id=next_id(self.dividends),
            holding_id=holding_id,
            date=str(data["date"]),
            ex_date=str(data.get("exDate") or ""),
            record_date=str(data.get("recordDate") or ""),
            declaration_date=str(data.get("declarationDate") or ""),
            amount=amount,
            shares_owned=shares_owned,
            total_received=total_received,
            reinvested=reinvested,
            share_price=share_price,
            new_shares=new_shares,
        )

        grown_from: Holding | None = None
        if reinvested:
            if holding is not None:
                grown = replace(holding, shares=holding.shares + new_shares)
                self.update_holding(grown)
                grown_from = holding
            else:
                logger.warning(
                    "Holding %s not found; reinvested shares not applied", holding_id
                )

        try:
            self._store_dividends([*self.dividends, dividend])
        except StorageError:
            if grown_from is not None:
                self._revert_share_update(grown_from)
            raise
        logger.info(
            "Added dividend %s for holding %s: %.2f received",
            dividend.id,
            holding_id,
            total_received,
        )
        return dividend

    def _revert_share_update(self, original: Holding) -> None:
        try:
            self.update_holding(original)
        except StorageError:
            logger.exception(
                "Could not revert share update for holding %s", original.id
            )

    # ── Scenarios ──

    def update_scenarios(self, new_scenarios: dict[str, Any]) -> dict[str, Scenario]:
        """Replace all three scenarios.

        Args:
            new_scenarios: Mapping of every scenario name to either a
                ``Scenario`` or a camelCase record.

        Raises:
            UnknownScenarioError: For an unrecognized scenario name.
            ValueError: If a scenario is missing.
            StorageError: If the scenarios could not be stored.

        """
        records = {
            name: s.to_dict() if isinstance(s, Scenario) else s
            for name, s in new_scenarios.items()
        }
        scenarios = scenarios_from_dict(records, strict=True)
        self.store.put(SCENARIOS_KEY, scenarios_to_dict(scenarios))
        self.scenarios = scenarios
        return self.scenarios

    def set_current_scenario(self, name: str) -> str:
        """Select the scenario the dashboard tracks against."""
        name = validate_scenario_name(name)
        self.store.put(CURRENT_SCENARIO_KEY, name)
        self.current_scenario = name
        return self.current_scenario

    # ── Derived views ──

    def summary(self) -> list[dict[str, Any]]:
        return get_portfolio_summary(self.holdings, self.dividends)

    def totals(self) -> dict[str, Any]:
        return get_portfolio_totals(self.summary())

    def upcoming_dividends(self, today: date | None = None) -> list[dict[str, Any]]:
        return get_upcoming_dividends(self.holdings, self.dividends, today=today)

    def projection(
        self,
        scenario_name: str,
        years: int = DEFAULT_YEARS,
    ) -> list[dict[str, Any]]:
        return generate_projection(self.holdings, self.scenarios, scenario_name, years)

    def compare_scenarios(
        self,
        years: int = DEFAULT_YEARS,
        holding_id: int | None = None,
    ) -> list[dict[str, Any]]:
        return compare_scenarios(self.holdings, self.scenarios, years, holding_id)

    def current_trajectory(self) -> str:
        return determine_current_trajectory(self.dividends, self.scenarios)

    def to_state(self) -> dict[str, Any]:
        """Full camelCase state, as stored."""
        return {
            "holdings": [h.to_dict() for h in self.holdings],
            "dividends": [d.to_dict() for d in self.dividends],
            "scenarios": scenarios_to_dict(self.scenarios),
            "currentScenario": self.current_scenario,
        }
