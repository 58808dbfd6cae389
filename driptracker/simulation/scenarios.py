"""Bullish / neutral / bearish scenario assumptions.

A scenario is a fixed set of forward assumptions used by the
projection engine. Exactly three exist; they are edited wholesale but
never created or deleted.

"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from driptracker.portfolio.models import Dividend

logger = logging.getLogger(__name__)

# Dividends considered by the trajectory heuristic
_TRAJECTORY_WINDOW = 6
_TRAJECTORY_AVERAGE = 3


class ScenarioName(Enum):
    """Supported scenario names."""

    BULLISH = "bullish"
    NEUTRAL = "neutral"
    BEARISH = "bearish"


SCENARIO_NAMES: tuple[str, ...] = tuple(s.value for s in ScenarioName)
DEFAULT_SCENARIO = ScenarioName.NEUTRAL.value


class UnknownScenarioError(LookupError):
    """Raised when a scenario name is not one of the known three."""

    def __init__(self, name: str) -> None:
        super().__init__(
            f"Unknown scenario '{name}', expected one of {list(SCENARIO_NAMES)}"
        )
        self.name = name


@dataclass
class Scenario:
    """Forward assumptions for one scenario.

    Attributes:
        monthly_dividend: Expected monthly dividend per share (display).
        annual_dividend: Annual dividend as a percent of portfolio
            value; the projection reinvests this yield each year.
        dividend_yield: Headline yield in percent (display, stored as
            ``yield``).
        share_growth: Annual share price growth in percent.

    """

    monthly_dividend: float
    annual_dividend: float
    dividend_yield: float
    share_growth: float

    def to_dict(self) -> dict[str, float]:
        return {
            "monthlyDividend": self.monthly_dividend,
            "annualDividend": self.annual_dividend,
            "yield": self.dividend_yield,
            "shareGrowth": self.share_growth,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Scenario:
        return cls(
            monthly_dividend=float(data.get("monthlyDividend", 0.0)),
            annual_dividend=float(data.get("annualDividend", 0.0)),
            dividend_yield=float(data.get("yield", 0.0)),
            share_growth=float(data.get("shareGrowth", 0.0)),
        )


DEFAULT_SCENARIOS: dict[str, Scenario] = {
    "bullish": Scenario(3.50, 42.00, 16.7, 8.0),
    "neutral": Scenario(2.25, 27.00, 10.7, 5.0),
    "bearish": Scenario(1.25, 15.00, 5.9, 2.0),
}


def default_scenarios() -> dict[str, Scenario]:
    """Return a fresh copy of the default scenario map."""
    return {
        name: Scenario(**vars(scenario)) for name, scenario in DEFAULT_SCENARIOS.items()
    }


def validate_scenario_name(name: str) -> str:
    """Return *name* if it is a known scenario.

    Raises:
        UnknownScenarioError: If the name is not recognized.

    """
    if name not in SCENARIO_NAMES:
        raise UnknownScenarioError(name)
    return name


def get_scenario(scenarios: dict[str, Scenario], name: str) -> Scenario:
    """Look up a scenario by name.

    Raises:
        UnknownScenarioError: If the name is not one of the three
            known scenarios or is missing from *scenarios*.

    """
    validate_scenario_name(name)
    try:
        return scenarios[name]
    except KeyError:
        raise UnknownScenarioError(name) from None


def scenarios_from_dict(
    data: dict[str, Any] | None,
    strict: bool = False,
) -> dict[str, Scenario]:
    """Parse a stored ``{name: {...}}`` scenario map.

    Args:
        data: Mapping of scenario name to camelCase scenario record.
        strict: If True, require exactly the three known names.
            Otherwise unknown names are dropped and missing ones are
            filled from the defaults.

    Returns:
        Dict of scenario name to Scenario, in canonical order.

    Raises:
        UnknownScenarioError: In strict mode, for an unrecognized name.
        ValueError: In strict mode, if a scenario is missing.

    """
    data = data or {}
    if strict:
        for name in data:
            validate_scenario_name(name)
        missing = [n for n in SCENARIO_NAMES if n not in data]
        if missing:
            msg = f"Scenarios missing: {missing}"
            raise ValueError(msg)

    defaults = default_scenarios()
    result: dict[str, Scenario] = {}
    for name in SCENARIO_NAMES:
        record = data.get(name)
        if isinstance(record, dict):
            result[name] = Scenario.from_dict(record)
        else:
            if name in data:
                logger.warning("Ignoring malformed scenario %s", name)
            result[name] = defaults[name]
    return result


def scenarios_to_dict(scenarios: dict[str, Scenario]) -> dict[str, dict[str, float]]:
    return {name: scenario.to_dict() for name, scenario in scenarios.items()}


def determine_current_trajectory(
    dividends: list[Dividend],
    scenarios: dict[str, Scenario],
) -> str:
    """Classify recent dividends against the scenario assumptions.

    Takes the last six dividends by pay date, averages the per-share
    amount of the three most recent, and compares it with thresholds
    halfway between the neutral and the bullish/bearish monthly
    dividend.

    Args:
        dividends: All recorded dividends.
        scenarios: Current scenario map.

    Returns:
        ``"bullish"``, ``"neutral"`` or ``"bearish"``. Neutral when
        fewer than three dividends exist.

    """
    recent = sorted(dividends, key=lambda d: d.date)[-_TRAJECTORY_WINDOW:]
    if len(recent) < _TRAJECTORY_AVERAGE:
        return ScenarioName.NEUTRAL.value

    last = recent[-_TRAJECTORY_AVERAGE:]
    avg_dividend = sum(d.amount for d in last) / len(last)

    bullish = get_scenario(scenarios, "bullish").monthly_dividend
    neutral = get_scenario(scenarios, "neutral").monthly_dividend
    bearish = get_scenario(scenarios, "bearish").monthly_dividend

    bullish_threshold = neutral + (bullish - neutral) / 2
    bearish_threshold = neutral - (neutral - bearish) / 2

    if avg_dividend >= bullish_threshold:
        return ScenarioName.BULLISH.value
    if avg_dividend <= bearish_threshold:
        return ScenarioName.BEARISH.value
    return ScenarioName.NEUTRAL.value
