"""Contracts for the externally supplied inputs of the prediction core.

Two inputs are produced outside this package and are slow to obtain:

* a Monte-Carlo style :class:`SimulationResult` (three outcome
  probabilities plus a most-likely scoreline), and
* a :class:`ContextEnhancement` distilled from news and injury reports
  (a list of :class:`ContextFactor` plus a list of
  :class:`OutlierScenario`).

The pipeline accepts providers for both through the abstract base classes
:class:`SimulationProvider` and :class:`EnhancementProvider` rather than
importing any concrete HTTP or LLM client.  This enables:

* **Unit testing**: inject a provider returning a fixed result, or one that
  sleeps past the timeout to exercise the fallback path.
* **Swapping sources**: a new news model or simulator only has to satisfy
  the ABC.

Design choices
--------------
* ABCs rather than ``typing.Protocol`` so the pipeline can ``isinstance``
  check what it was handed and authors have to read the contract.
* The DTOs are frozen and slotted so they can be shared across tasks.
* Derived figures (risk level, weighted score) are computed from fixed
  tables declared as module constants, so every consumer agrees on them.

Run tests with::

    pytest tests/test_interfaces.py -v
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Final, Sequence

from matchmind.core.entities import (
    ContextFactorType,
    Outcome,
    RiskLevel,
    Scoreline,
    Side,
    TeamStanding,
)
from matchmind.core.exceptions import InvalidProbabilityError, ValidationError


# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

#: Default weight applied to a factor's score when the producer supplies none.
#: Injuries and tactical changes move results more than weather does.
DEFAULT_FACTOR_WEIGHTS: Final[dict[ContextFactorType, float]] = {
    ContextFactorType.INJURIES: 1.5,
    ContextFactorType.TACTICAL_CHANGES: 1.3,
    ContextFactorType.TEAM_MORALE: 1.2,
    ContextFactorType.PRESSURE: 1.1,
    ContextFactorType.HISTORICAL_ANOMALY: 1.0,
    ContextFactorType.WEATHER: 0.8,
}

#: Scores at or above this are "high impact".
HIGH_IMPACT_SCORE: Final[int] = 8

#: Scores at or below this describe a negative influence.
NEGATIVE_SCORE: Final[int] = 4

#: (min probability, min impact, level), checked in order.
OUTLIER_RISK_TIERS: Final[tuple[tuple[float, int, RiskLevel], ...]] = (
    (0.7, 8, RiskLevel.HIGH),
    (0.5, 5, RiskLevel.MEDIUM),
)

#: (min mean weighted score, confidence adjustment in points), checked in order.
CONFIDENCE_ADJUSTMENT_TIERS: Final[tuple[tuple[float, int], ...]] = (
    (8.0, 15),
    (6.5, 10),
    (5.5, 5),
    (4.5, 0),
    (3.5, -5),
    (2.5, -10),
)
_FLOOR_CONFIDENCE_ADJUSTMENT: Final[int] = -15

#: Neutral context score reported when there are no factors.
NEUTRAL_CONTEXT_SCORE: Final[float] = 5.0

#: Allowed deviation of a simulation's probability triple from 1.0.
SIMULATION_SUM_TOLERANCE: Final[float] = 0.05


# ---------------------------------------------------------------------------
# Data transfer objects
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class ContextFactor:
    """One qualitative signal about the fixture.

    Attributes:
        type: What the signal is about.
        score: Strength on a 0-10 scale.
        description: Free text from the producer.  Used for side attribution
            when :attr:`side` is not given.
        weight: Multiplier on :attr:`score`.  ``None`` takes the default for
            :attr:`type` from :data:`DEFAULT_FACTOR_WEIGHTS`.
        side: Team the factor applies to, when the producer knows it.
    """

    type: ContextFactorType
    score: int
    description: str = ""
    weight: float | None = None
    side: Side | None = None

    def __post_init__(self) -> None:
        if not 0 <= self.score <= 10:
            raise ValidationError(f"context factor score must be in [0, 10], got {self.score!r}.")
        if self.weight is None:
            object.__setattr__(self, "weight", DEFAULT_FACTOR_WEIGHTS[self.type])
        elif self.weight < 0:
            raise ValidationError(f"context factor weight must be >= 0, got {self.weight!r}.")

    @property
    def weighted_score(self) -> float:
        return self.score * self.weight

    @property
    def is_high_impact(self) -> bool:
        return self.score >= HIGH_IMPACT_SCORE

    @property
    def is_negative(self) -> bool:
        return self.score <= NEGATIVE_SCORE


@dataclass(frozen=True, slots=True)
class OutlierScenario:
    """A low-likelihood, high-impact alternative to the expected result."""

    description: str
    probability: float
    impact_score: int
    supporting_factors: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        if not 0.0 <= self.probability <= 1.0:
            raise InvalidProbabilityError(
                f"outlier probability must be in [0, 1], got {self.probability!r}."
            )
        if not 0 <= self.impact_score <= 10:
            raise ValidationError(
                f"outlier impact_score must be in [0, 10], got {self.impact_score!r}."
            )

    @property
    def risk_level(self) -> RiskLevel:
        for min_prob, min_impact, level in OUTLIER_RISK_TIERS:
            if self.probability >= min_prob and self.impact_score >= min_impact:
                return level
        return RiskLevel.LOW


@dataclass(frozen=True, slots=True)
class SimulationResult:
    """Independent outcome estimate from an external simulator.

    The three probabilities must sum to 1.0 within
    :data:`SIMULATION_SUM_TOLERANCE` (checked by :meth:`validate`, which
    the pipeline calls on every provider result).
    """

    most_likely_scoreline: Scoreline
    home_win_prob: float
    draw_prob: float
    away_win_prob: float

    def validate(self, tol: float = SIMULATION_SUM_TOLERANCE) -> None:
        """Check the probability triple.

        Raises:
            InvalidProbabilityError: If any probability is outside
                ``[0, 1]`` or ``|home + draw + away - 1| > tol``.
        """
        for name, value in (
            ("home_win_prob", self.home_win_prob),
            ("draw_prob", self.draw_prob),
            ("away_win_prob", self.away_win_prob),
        ):
            if not 0.0 <= value <= 1.0:
                raise InvalidProbabilityError(f"{name} must be in [0, 1], got {value!r}.")
        total = self.home_win_prob + self.draw_prob + self.away_win_prob
        if abs(total - 1.0) > tol:
            raise InvalidProbabilityError(
                f"simulation probabilities sum to {total:.4f}, expected 1.0 ± {tol}."
            )

    @property
    def probabilities(self) -> dict[Outcome, float]:
        return {
            Outcome.HOME: self.home_win_prob,
            Outcome.DRAW: self.draw_prob,
            Outcome.AWAY: self.away_win_prob,
        }

    @property
    def confidence(self) -> int:
        """Probability-derived confidence: the favourite's probability x 100."""
        return min(max(int(max(self.probabilities.values()) * 100), 0), 100)


@dataclass(frozen=True, slots=True)
class ContextEnhancement:
    """Qualitative context for one fixture: factors plus outlier scenarios."""

    context_factors: tuple[ContextFactor, ...] = ()
    outlier_scenarios: tuple[OutlierScenario, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "context_factors", tuple(self.context_factors))
        object.__setattr__(self, "outlier_scenarios", tuple(self.outlier_scenarios))

    @property
    def risk_level(self) -> RiskLevel:
        """Most severe outlier risk; any high-impact factor means at least MEDIUM."""
        levels = [scenario.risk_level for scenario in self.outlier_scenarios]
        if any(factor.is_high_impact for factor in self.context_factors):
            levels.append(RiskLevel.MEDIUM)
        return RiskLevel.highest(levels)

    @property
    def overall_context_score(self) -> float:
        if not self.context_factors:
            return NEUTRAL_CONTEXT_SCORE
        return sum(f.weighted_score for f in self.context_factors) / len(self.context_factors)

    @property
    def confidence_adjustment(self) -> int:
        """Points to add to a confidence given the mean weighted score."""
        if not self.context_factors:
            return 0
        total_weight = sum(f.weight for f in self.context_factors)
        if total_weight <= 0:
            return 0
        average = sum(f.weighted_score for f in self.context_factors) / total_weight
        for threshold, adjustment in CONFIDENCE_ADJUSTMENT_TIERS:
            if average >= threshold:
                return adjustment
        return _FLOOR_CONFIDENCE_ADJUSTMENT

    def factors_of(self, factor_type: ContextFactorType) -> list[ContextFactor]:
        return [f for f in self.context_factors if f.type is factor_type]


# ---------------------------------------------------------------------------
# Provider interfaces
# ---------------------------------------------------------------------------


class SimulationProvider(ABC):
    """Asynchronous source of :class:`SimulationResult` objects."""

    name: str = "simulation"

    @abstractmethod
    async def simulate(
        self, home: TeamStanding, away: TeamStanding
    ) -> SimulationResult | None:
        """Return a simulation for the fixture, or ``None`` if unavailable."""


class EnhancementProvider(ABC):
    """Asynchronous source of :class:`ContextEnhancement` objects."""

    name: str = "enhancement"

    @abstractmethod
    async def enhance(
        self, home: TeamStanding, away: TeamStanding
    ) -> ContextEnhancement | None:
        """Return context for the fixture, or ``None`` if unavailable."""


def as_factor_tuple(factors: Sequence[ContextFactor] | None) -> tuple[ContextFactor, ...]:
    """Normalise an optional factor sequence to a tuple."""
    return tuple(factors) if factors else ()
