"""Shared pytest fixtures for DRIP Tracker tests."""

from __future__ import annotations

from typing import Any

import numpy as np
import pytest

from driptracker.db.connection import init_memory_db
from driptracker.db.portfolio_store import PortfolioStore
from driptracker.portfolio.models import Dividend, Holding
from driptracker.portfolio.operations import Portfolio
from driptracker.simulation.scenarios import Scenario, default_scenarios


@pytest.fixture
def store():
    """Provide an empty in-memory store."""
    s = PortfolioStore(init_memory_db())
    yield s
    s.close()


@pytest.fixture
def portfolio(store: PortfolioStore) -> Portfolio:
    """Provide an empty portfolio with a seeded color generator."""
    return Portfolio(store, rng=np.random.default_rng(seed=42))


@pytest.fixture
def msty_data() -> dict[str, Any]:
    """Provide a new-holding record for a $30k MSTY position."""
    return {
        "ticker": "MSTY",
        "name": "MSTY DRIP ETF",
        "initialInvestment": 30000,
        "initialSharePrice": 21,
        "currentSharePrice": 21,
        "shares": 1428.57,
        "purchaseDate": "2025-01-02",
    }


@pytest.fixture
def holding() -> Holding:
    return Holding(
        id=1,
        ticker="MSTY",
        name="MSTY DRIP ETF",
        initial_investment=30000.0,
        initial_share_price=21.0,
        current_share_price=21.0,
        shares=1428.57,
        purchase_date="2025-01-02",
        color="#8884D8",
    )


@pytest.fixture
def dividend() -> Dividend:
    return Dividend(
        id=1,
        holding_id=1,
        date="2025-02-14",
        ex_date="2025-02-13",
        record_date="2025-02-13",
        declaration_date="2024-12-24",
        amount=2.02,
        shares_owned=1428.57,
        total_received=2885.71,
        reinvested=True,
        share_price=21.35,
        new_shares=135.16,
    )


@pytest.fixture
def scenarios() -> dict[str, Scenario]:
    return default_scenarios()
