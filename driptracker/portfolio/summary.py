"""Portfolio valuation summary.

Computes per-holding value, growth and dividends received from the
holding and dividend sets, plus portfolio-wide totals for the
dashboard. Nothing is cached; callers recompute on demand.

"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from driptracker.portfolio.models import Dividend, Holding


@dataclass
class PortfolioTotals:
    """Portfolio-wide totals.

    Attributes:
        total_initial_investment: Sum of initial investments.
        total_current_value: Sum of shares * current price.
        total_shares: Sum of shares across holdings.
        total_dividends: Sum of dividends received.
        overall_growth: total_current_value - total_initial_investment.
        overall_growth_percentage: Growth relative to the initial
            investment, 0.0 when nothing was invested.

    """

    total_initial_investment: float = 0.0
    total_current_value: float = 0.0
    total_shares: float = 0.0
    total_dividends: float = 0.0
    overall_growth: float = 0.0
    overall_growth_percentage: float = 0.0


def _growth_percentage(growth: float, invested: float) -> float:
    return (growth / invested * 100.0) if invested > 0 else 0.0


def get_portfolio_summary(
    holdings: list[Holding],
    dividends: list[Dividend],
) -> list[dict[str, Any]]:
    """Summarize every holding.

    Args:
        holdings: Holding set.
        dividends: Dividend set.

    Returns:
        One dict per holding, in input order: the holding's camelCase
        record plus totalDividends, currentValue, growth and
        growthPercentage.

    """
    received: dict[int, float] = {}
    for dividend in dividends:
        received[dividend.holding_id] = (
            received.get(dividend.holding_id, 0.0) + dividend.total_received
        )

    summary: list[dict[str, Any]] = []
    for holding in holdings:
        current_value = holding.shares * holding.current_share_price
        growth = current_value - holding.initial_investment
        summary.append(
            {
                **holding.to_dict(),
                "totalDividends": received.get(holding.id, 0.0),
                "currentValue": current_value,
                "growth": growth,
                "growthPercentage": _growth_percentage(
                    growth, holding.initial_investment
                ),
            }
        )
    return summary


def get_portfolio_totals(summary: list[dict[str, Any]]) -> dict[str, Any]:
    """Aggregate a portfolio summary into totals.

    Args:
        summary: Output of ``get_portfolio_summary``.

    Returns:
        Dict with totalInitialInvestment, totalCurrentValue,
        totalShares, totalDividends, overallGrowth and
        overallGrowthPercentage.

    """
    totals = PortfolioTotals()
    for row in summary:
        totals.total_initial_investment += float(row["initialInvestment"])
        totals.total_current_value += float(row["currentValue"])
        totals.total_shares += float(row["shares"])
        totals.total_dividends += float(row["totalDividends"])

    totals.overall_growth = totals.total_current_value - totals.total_initial_investment
    totals.overall_growth_percentage = _growth_percentage(
        totals.overall_growth, totals.total_initial_investment
    )

    return {
        "totalInitialInvestment": totals.total_initial_investment,
        "totalCurrentValue": totals.total_current_value,
        "totalShares": totals.total_shares,
        "totalDividends": totals.total_dividends,
        "overallGrowth": totals.overall_growth,
        "overallGrowthPercentage": totals.overall_growth_percentage,
    }
