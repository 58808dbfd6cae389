"""Holding and dividend records.

Records are stored and exported with camelCase keys (``holdingId``,
``currentSharePrice``, ...) so existing backups stay readable; the
Python side uses snake_case attributes and converts at the edges with
``to_dict`` / ``from_dict``.

"""

from __future__ import annotations

from dataclasses import dataclass, fields
from typing import Any


def _to_camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.capitalize() for part in rest)


def _from_record(cls: type, data: dict[str, Any]) -> dict[str, Any]:
    """Collect constructor kwargs for *cls* from a camelCase record."""
    kwargs: dict[str, Any] = {}
    for f in fields(cls):
        key = _to_camel(f.name)
        if key in data and data[key] is not None:
            kwargs[f.name] = data[key]
    return kwargs


@dataclass
class Holding:
    """One tracked position.

    Attributes:
        id: Unique positive identifier, assigned at creation.
        ticker: Ticker symbol for display.
        name: Display name.
        initial_investment: Amount originally invested.
        initial_share_price: Price per share at purchase.
        current_share_price: Latest known price per share.
        shares: Shares held; grows with every reinvested dividend.
        purchase_date: Purchase date (YYYY-MM-DD), may be empty.
        color: Chart color (``#RRGGBB``), fixed at creation.

    """

    id: int
    ticker: str = ""
    name: str = ""
    initial_investment: float = 0.0
    initial_share_price: float = 0.0
    current_share_price: float = 0.0
    shares: float = 0.0
    purchase_date: str = ""
    color: str = ""

    def __post_init__(self) -> None:
        """Coerce numeric fields read from JSON."""
        self.id = int(self.id)
        self.initial_investment = float(self.initial_investment)
        self.initial_share_price = float(self.initial_share_price)
        self.current_share_price = float(self.current_share_price)
        self.shares = float(self.shares)
        if self.shares < 0:
            msg = f"shares must be >= 0, got {self.shares}"
            raise ValueError(msg)

    @property
    def current_value(self) -> float:
        return self.shares * self.current_share_price

    def to_dict(self) -> dict[str, Any]:
        """Serialize to a camelCase record."""
        return {_to_camel(f.name): getattr(self, f.name) for f in fields(self)}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Holding:
        """Build a holding from a camelCase record, ignoring unknown keys."""
        return cls(**_from_record(cls, data))


@dataclass
class Dividend:
    """One dividend payment event, immutable once recorded.

    Attributes:
        id: Unique positive identifier within the dividend collection.
        holding_id: Identifier of the holding that paid it.
        date: Pay date (YYYY-MM-DD).
        ex_date: Ex-dividend date; defaults to the pay date.
        record_date: Record date; defaults to the pay date.
        declaration_date: Declaration date, may be empty.
        amount: Cash dividend per share.
        shares_owned: Shares held when the dividend was paid.
        total_received: ``amount * shares_owned``.
        reinvested: Whether the cash bought more shares.
        share_price: Reinvestment price per share.
        new_shares: Shares bought by the reinvestment, 0 if not reinvested.

    """

    id: int
    holding_id: int
    date: str = ""
    ex_date: str = ""
    record_date: str = ""
    declaration_date: str = ""
    amount: float = 0.0
    shares_owned: float = 0.0
    total_received: float = 0.0
    reinvested: bool = False
    share_price: float = 0.0
    new_shares: float = 0.0

    def __post_init__(self) -> None:
        """Coerce numeric fields and fill default dates."""
        self.id = int(self.id)
        self.holding_id = int(self.holding_id)
        self.amount = float(self.amount)
        self.shares_owned = float(self.shares_owned)
        self.total_received = float(self.total_received)
        self.reinvested = bool(self.reinvested)
        self.share_price = float(self.share_price)
        self.new_shares = float(self.new_shares)
        if not self.ex_date:
            self.ex_date = self.date
        if not self.record_date:
            self.record_date = self.date

    def to_dict(self) -> dict[str, Any]:
        """Serialize to a camelCase record."""
        return {_to_camel(f.name): getattr(self, f.name) for f in fields(self)}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Dividend:
        """Build a dividend from a camelCase record, ignoring unknown keys."""
        return cls(**_from_record(cls, data))


def next_id(records: list[Holding] | list[Dividend]) -> int:
    """Return ``max(existing ids) + 1``, or 1 for an empty collection."""
    if not records:
        return 1
    return max(r.id for r in records) + 1
