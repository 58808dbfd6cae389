"""Tests for dividend history views."""

from __future__ import annotations

from datetime import date

from driptracker.portfolio.history import (
    dividend_calendar,
    latest_share_growth,
    monthly_dividend_totals,
)
from driptracker.portfolio.models import Dividend


def _div(div_id, on, total, new_shares=0.0):
    return Dividend(
        id=div_id, holding_id=1, date=on, total_received=total, new_shares=new_shares
    )


class TestMonthlyTotals:
    """Tests for grouping by calendar month."""

    def test_groups_and_sorts(self):
        dividends = [
            _div(1, "2025-03-14", 100.0),
            _div(2, "2025-02-14", 50.0),
            _div(3, "2025-03-03", 25.0),
        ]
        totals = monthly_dividend_totals(dividends)
        assert totals == [
            {"month": "2025-02", "totalReceived": 50.0, "count": 1},
            {"month": "2025-03", "totalReceived": 125.0, "count": 2},
        ]

    def test_empty(self):
        assert monthly_dividend_totals([]) == []

    def test_non_iso_date_grouped_by_parsed_month(self):
        dividends = [_div(1, "2025-02-14", 50.0), _div(2, "02/28/2025", 10.0)]
        totals = monthly_dividend_totals(dividends)
        assert totals == [{"month": "2025-02", "totalReceived": 60.0, "count": 2}]

    def test_unparseable_date_skipped(self):
        dividends = [_div(1, "2025-02-14", 50.0), _div(2, "soon", 10.0)]
        assert monthly_dividend_totals(dividends)[0]["count"] == 1


class TestDividendCalendar:
    """Tests for the rolling monthly calendar."""

    def test_covers_requested_months(self):
        calendar = dividend_calendar([], today=date(2025, 3, 20), months=12)
        assert len(calendar) == 12
        assert calendar[0]["month"] == "2025-03"
        assert calendar[-1]["month"] == "2024-04"

    def test_places_dividends(self):
        dividends = [_div(1, "2025-02-14", 50.0), _div(2, "2025-02-28", 10.0)]
        calendar = dividend_calendar(dividends, today=date(2025, 3, 20), months=3)
        february = calendar[1]
        assert february["month"] == "2025-02"
        assert february["totalReceived"] == 60.0
        assert [d["id"] for d in february["dividends"]] == [2, 1]
        assert calendar[0]["dividends"] == []

    def test_matches_monthly_totals_for_non_iso_dates(self):
        dividends = [
            _div(1, "2025-02-14", 50.0),
            _div(2, "02/28/2025", 10.0),
            _div(3, "2025/01/31", 5.0),
        ]
        calendar = dividend_calendar(dividends, today=date(2025, 3, 20), months=3)
        by_month = {c["month"]: c for c in calendar}
        assert [d["id"] for d in by_month["2025-02"]["dividends"]] == [2, 1]
        assert [d["id"] for d in by_month["2025-01"]["dividends"]] == [3]
        for total in monthly_dividend_totals(dividends):
            assert by_month[total["month"]]["totalReceived"] == total["totalReceived"]


class TestLatestShareGrowth:
    """Tests for the last reinvestment's share growth."""

    def test_needs_two_dividends(self):
        assert latest_share_growth([_div(1, "2025-02-14", 50.0, 2.5)]) == 0.0

    def test_uses_most_recent(self):
        dividends = [
            _div(1, "2025-03-14", 50.0, 4.0),
            _div(2, "2025-02-14", 50.0, 2.5),
        ]
        assert latest_share_growth(dividends) == 4.0
