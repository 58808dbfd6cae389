"""Upcoming dividend forecast.

Heuristic: every holding is assumed to pay monthly. The next ex-date
is one calendar month after the most recent recorded pay date, the
pay date one day after that, and the amount the average of the last
three payments. Holdings whose inferred next date is not in the future
are left out.

"""

from __future__ import annotations

import logging
from datetime import date
from typing import TYPE_CHECKING, Any

import pandas as pd

if TYPE_CHECKING:
    from driptracker.portfolio.models import Dividend, Holding

logger = logging.getLogger(__name__)

# Number of recent payments averaged into the forecast amount
AVERAGE_WINDOW = 3


def _dated(dividends: list[Dividend]) -> list[tuple[pd.Timestamp, Dividend]]:
    """Pair dividends with parsed pay dates, dropping unparseable ones."""
    dated: list[tuple[pd.Timestamp, Dividend]] = []
    for dividend in dividends:
        ts = pd.to_datetime(dividend.date, errors="coerce")
        if pd.isna(ts):
            logger.warning(
                "Skipping dividend %s with invalid date %r", dividend.id, dividend.date
            )
            continue
        dated.append((ts, dividend))
    return dated


def get_upcoming_dividends(
    holdings: list[Holding],
    dividends: list[Dividend],
    today: date | None = None,
) -> list[dict[str, Any]]:
    """Forecast the next dividend for each holding.

    Args:
        holdings: Holding set.
        dividends: Dividend set.
        today: Reference date; defaults to the current date.

    Returns:
        One dict per qualifying holding, in holding order, with
        holdingId, ticker, exDate, payDate (YYYY-MM-DD), amount
        (average per-share amount) and estTotal (amount * current
        shares), both rounded to cents.

    """
    if today is None:
        today = date.today()

    by_holding: dict[int, list[Dividend]] = {}
    for dividend in dividends:
        by_holding.setdefault(dividend.holding_id, []).append(dividend)

    upcoming: list[dict[str, Any]] = []
    for holding in holdings:
        dated = _dated(by_holding.get(holding.id, []))
        if not dated:
            continue

        dated.sort(key=lambda pair: pair[0], reverse=True)
        latest_date = dated[0][0]
        next_date = latest_date + pd.DateOffset(months=1)
        if next_date.date() <= today:
            continue

        recent = [d for _, d in dated[:AVERAGE_WINDOW]]
        avg_amount = sum(d.amount for d in recent) / len(recent)
        pay_date = next_date + pd.Timedelta(days=1)

        upcoming.append(
            {
                "holdingId": holding.id,
                "ticker": holding.ticker,
                "exDate": next_date.strftime("%Y-%m-%d"),
                "amount": round(avg_amount, 2),
                "estTotal": round(avg_amount * holding.shares, 2),
                "payDate": pay_date.strftime("%Y-%m-%d"),
            }
        )
    return upcoming
