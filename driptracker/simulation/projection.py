"""Multi-year DRIP compounding projection.

Projects each holding forward under one scenario, reinvesting the
scenario's dividend yield every year.

For year k >= 1 the order of operations is fixed:

1. price_k = price_{k-1} * (1 + shareGrowth / 100)
2. income_k = annualDividend / 100 * value_{k-1}   (prior year's value)
3. shares_k = shares_{k-1} + income_k / price_k    (bought at the new price)
4. value_k = shares_k * price_k

Year 0 is the holding as it stands today, with its income computed on
today's value. ``annualDividend`` is a percent yield on value, not a
cash amount per share.

"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

import numpy as np

from driptracker.simulation.scenarios import SCENARIO_NAMES, get_scenario

if TYPE_CHECKING:
    from numpy.typing import NDArray

    from driptracker.portfolio.models import Holding
    from driptracker.simulation.scenarios import Scenario

logger = logging.getLogger(__name__)

DEFAULT_YEARS = 10


def _validate_years(years: int) -> None:
    if isinstance(years, bool) or not isinstance(years, int | np.integer):
        msg = f"years must be a positive integer, got {years!r}"
        raise ValueError(msg)
    if years < 1:
        msg = f"years must be a positive integer, got {years}"
        raise ValueError(msg)


def project_values(
    shares: NDArray[np.float64],
    prices: NDArray[np.float64],
    annual_dividend: float,
    share_growth: float,
    years: int,
) -> dict[str, NDArray[np.float64]]:
    """Run the compounding loop for a batch of positions.

    Args:
        shares: Starting share counts, shape (n,).
        prices: Starting share prices, shape (n,).
        annual_dividend: Dividend yield in percent of value.
        share_growth: Annual price growth in percent.
        years: Projection horizon.

    Returns:
        Dict with ``shares``, ``share_price``, ``dividend_income`` and
        ``total_value`` arrays, each of shape (n, years + 1).

    """
    n = len(shares)
    yield_rate = annual_dividend / 100
    growth_factor = 1 + share_growth / 100

    share_arr = np.empty((n, years + 1), dtype=np.float64)
    price_arr = np.empty((n, years + 1), dtype=np.float64)
    income_arr = np.empty((n, years + 1), dtype=np.float64)
    value_arr = np.empty((n, years + 1), dtype=np.float64)

    share_arr[:, 0] = shares
    price_arr[:, 0] = prices
    value_arr[:, 0] = share_arr[:, 0] * price_arr[:, 0]
    income_arr[:, 0] = yield_rate * value_arr[:, 0]

    for yr in range(1, years + 1):
        price_arr[:, yr] = price_arr[:, yr - 1] * growth_factor
        income_arr[:, yr] = yield_rate * value_arr[:, yr - 1]
        # A zero price cannot buy shares
        new_shares = np.divide(
            income_arr[:, yr],
            price_arr[:, yr],
            out=np.zeros(n, dtype=np.float64),
            where=price_arr[:, yr] > 0,
        )
        share_arr[:, yr] = share_arr[:, yr - 1] + new_shares
        value_arr[:, yr] = share_arr[:, yr] * price_arr[:, yr]

    return {
        "shares": share_arr,
        "share_price": price_arr,
        "dividend_income": income_arr,
        "total_value": value_arr,
    }


def generate_projection(
    holdings: list[Holding],
    scenarios: dict[str, Scenario],
    scenario_name: str,
    years: int = DEFAULT_YEARS,
) -> list[dict[str, Any]]:
    """Project every holding forward under one scenario.

    Args:
        holdings: Current holdings; live ``shares`` and
            ``current_share_price`` are the starting point.
        scenarios: Scenario map keyed by name.
        scenario_name: ``"bullish"``, ``"neutral"`` or ``"bearish"``.
        years: Horizon in years (positive integer).

    Returns:
        One dict per holding, in input order, with ``holdingId``,
        ``ticker`` and ``projectionData``: a list of yearly dicts
        (year 0..years) with year, ticker, shares, sharePrice,
        dividendIncome and totalValue.

    Raises:
        UnknownScenarioError: If the scenario name is not recognized.
        ValueError: If years is not a positive integer.

    """
    scenario = get_scenario(scenarios, scenario_name)
    _validate_years(years)

    if not holdings:
        return []

    arrays = project_values(
        shares=np.array([h.shares for h in holdings], dtype=np.float64),
        prices=np.array([h.current_share_price for h in holdings], dtype=np.float64),
        annual_dividend=scenario.annual_dividend,
        share_growth=scenario.share_growth,
        years=int(years),
    )
    shares = arrays["shares"].tolist()
    prices = arrays["share_price"].tolist()
    income = arrays["dividend_income"].tolist()
    values = arrays["total_value"].tolist()

    projection: list[dict[str, Any]] = []
    for i, holding in enumerate(holdings):
        yearly = [
            {
                "year": yr,
                "ticker": holding.ticker,
                "shares": shares[i][yr],
                "sharePrice": prices[i][yr],
                "dividendIncome": income[i][yr],
                "totalValue": values[i][yr],
            }
            for yr in range(int(years) + 1)
        ]
        projection.append(
            {
                "holdingId": holding.id,
                "ticker": holding.ticker,
                "projectionData": yearly,
            }
        )

    logger.debug(
        "Projected %d holdings over %d years (%s)", len(holdings), years, scenario_name
    )
    return projection


def combine_projections(projection: list[dict[str, Any]]) -> list[dict[str, Any]]:
    """Sum a per-holding projection into portfolio totals per year.

    Returns:
        List of dicts with year, totalValue, dividendIncome and
        totalShares, ordered by year.

    """
    combined: dict[int, dict[str, Any]] = {}
    for holding in projection:
        for point in holding["projectionData"]:
            year = point["year"]
            if year not in combined:
                combined[year] = {
                    "year": year,
                    "totalValue": 0.0,
                    "dividendIncome": 0.0,
                    "totalShares": 0.0,
                }
            combined[year]["totalValue"] += point["totalValue"]
            combined[year]["dividendIncome"] += point["dividendIncome"]
            combined[year]["totalShares"] += point["shares"]
    return [combined[year] for year in sorted(combined)]


def compare_scenarios(
    holdings: list[Holding],
    scenarios: dict[str, Scenario],
    years: int = DEFAULT_YEARS,
    holding_id: int | None = None,
) -> list[dict[str, Any]]:
    """Project all three scenarios side by side.

    Args:
        holdings: Current holdings.
        scenarios: Scenario map keyed by name.
        years: Horizon in years.
        holding_id: Restrict to one holding; None sums all holdings.

    Returns:
        One dict per year with ``year`` and, for each scenario name,
        ``<name>Value``, ``<name>Shares`` and ``<name>Income``.

    Raises:
        ValueError: If years is not a positive integer.

    """
    _validate_years(years)
    if holding_id is not None:
        selected = [h for h in holdings if h.id == holding_id]
        if not selected:
            logger.warning("Holding %s not found, comparison will be empty", holding_id)
    else:
        selected = list(holdings)

    rows = [{"year": yr} for yr in range(years + 1)]
    for name in SCENARIO_NAMES:
        totals = combine_projections(
            generate_projection(selected, scenarios, name, years)
        )
        by_year = {t["year"]: t for t in totals}
        for row in rows:
            point = by_year.get(row["year"])
            row[f"{name}Value"] = point["totalValue"] if point else 0.0
            row[f"{name}Shares"] = point["totalShares"] if point else 0.0
            row[f"{name}Income"] = point["dividendIncome"] if point else 0.0
    return rows
