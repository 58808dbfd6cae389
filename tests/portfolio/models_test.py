"""Tests for holding and dividend records."""

from __future__ import annotations

import pytest

from driptracker.portfolio.models import Dividend, Holding, next_id


class TestHolding:
    """Tests for the Holding record."""

    def test_to_dict_uses_camel_case(self, holding):
        record = holding.to_dict()
        assert record["initialInvestment"] == 30000.0
        assert record["currentSharePrice"] == 21.0
        assert record["purchaseDate"] == "2025-01-02"
        assert "initial_investment" not in record

    def test_from_dict_ignores_unknown_keys(self):
        holding = Holding.from_dict(
            {"id": "3", "ticker": "JEPI", "shares": "10.5", "totalDividends": 12}
        )
        assert holding.id == 3
        assert holding.shares == 10.5
        assert holding.current_share_price == 0.0

    def test_negative_shares_rejected(self):
        with pytest.raises(ValueError, match="shares must be >= 0"):
            Holding(id=1, shares=-1)

    def test_current_value(self, holding):
        assert holding.current_value == holding.shares * holding.current_share_price


class TestDividend:
    """Tests for the Dividend record."""

    def test_dates_default_to_pay_date(self):
        dividend = Dividend(id=1, holding_id=1, date="2025-03-14")
        assert dividend.ex_date == "2025-03-14"
        assert dividend.record_date == "2025-03-14"
        assert dividend.declaration_date == ""

    def test_round_trip_record(self, dividend):
        assert Dividend.from_dict(dividend.to_dict()) == dividend

    def test_record_keys(self, dividend):
        record = dividend.to_dict()
        assert record["holdingId"] == 1
        assert record["newShares"] == 135.16
        assert record["reinvested"] is True


class TestNextId:
    """Tests for id allocation."""

    def test_empty_collection(self):
        assert next_id([]) == 1

    def test_max_plus_one(self):
        holdings = [Holding(id=4), Holding(id=2)]
        assert next_id(holdings) == 5
