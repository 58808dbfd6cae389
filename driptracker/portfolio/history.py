"""Dividend history views: monthly totals and a rolling calendar."""

from __future__ import annotations

from datetime import date
from typing import TYPE_CHECKING, Any

import pandas as pd

if TYPE_CHECKING:
    from driptracker.portfolio.models import Dividend


def _frame(dividends: list[Dividend]) -> pd.DataFrame:
    # "position" indexes back into the dividend list; unparseable dates drop out.
    frame = pd.DataFrame(
        {
            "position": range(len(dividends)),
            "date": pd.to_datetime(
                [d.date for d in dividends], errors="coerce", format="mixed"
            ),
            "total_received": [d.total_received for d in dividends],
        }
    ).dropna(subset=["date"])
    return frame.assign(month=frame["date"].dt.to_period("M"))


def monthly_dividend_totals(dividends: list[Dividend]) -> list[dict[str, Any]]:
    """Group dividends received by calendar month.

    Args:
        dividends: Dividend set.

    Returns:
        List of dicts with month (YYYY-MM), totalReceived and count,
        ordered by month ascending.

    """
    if not dividends:
        return []
    frame = _frame(dividends)
    if frame.empty:
        return []

    grouped = (
        frame.groupby("month", sort=True)["total_received"]
        .agg(total="sum", n_dividends="count")
        .reset_index()
    )
    return [
        {
            "month": row.month.strftime("%Y-%m"),
            "totalReceived": float(row.total),
            "count": int(row.n_dividends),
        }
        for row in grouped.itertuples(index=False)
    ]


def dividend_calendar(
    dividends: list[Dividend],
    today: date | None = None,
    months: int = 12,
) -> list[dict[str, Any]]:
    """Build a month-by-month calendar of recent dividends.

    Args:
        dividends: Dividend set.
        today: Reference date; defaults to the current date.
        months: Number of calendar months to cover, current month
            included.

    Returns:
        List of dicts, newest month first, with month (YYYY-MM),
        dividends (camelCase records, newest first) and totalReceived.

    """
    if today is None:
        today = date.today()

    frame = _frame(dividends).sort_values("date", ascending=False, kind="stable")
    current = pd.Period(today, freq="M")

    calendar: list[dict[str, Any]] = []
    for offset in range(months):
        period = current - offset
        rows = frame[frame["month"] == period]
        in_month = [dividends[i] for i in rows["position"]]
        calendar.append(
            {
                "month": period.strftime("%Y-%m"),
                "dividends": [d.to_dict() for d in in_month],
                "totalReceived": sum(d.total_received for d in in_month),
            }
        )
    return calendar


def latest_share_growth(dividends: list[Dividend]) -> float:
    """Shares added by the most recent dividend.

    Returns:
        ``newShares`` of the latest dividend by pay date, or 0.0 when
        fewer than two dividends are recorded.

    """
    if len(dividends) < 2:
        return 0.0
    frame = _frame(dividends)
    if frame.empty:
        return 0.0
    latest = frame.sort_values("date", kind="stable")["position"].iloc[-1]
    return dividends[latest].new_shares
