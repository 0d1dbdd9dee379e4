"""Immutable value objects produced and consumed by the prediction core.

Every object here is created fresh for one prediction request and never
mutated afterwards.  Corrections produce new objects; nothing edits a
:class:`BasePrediction` in place.

Design decisions
----------------
* Frozen, slotted dataclasses, the same shape as the engine result DTOs in
  :mod:`matchmind.core.interfaces`.  They can be cached, compared and passed
  across threads or event-loop tasks without copying.
* Constructors validate only what is a programmer error (a rank of 0, a
  negative goal count).  Range *clamping* of derived numbers is the job of
  the component that derives them.
* Enumerations subclass ``str`` so values serialise as plain strings in
  logs and JSON payloads built by the surrounding application.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Final, Mapping

from matchmind.core.exceptions import (
    InvalidOddsError,
    InvalidStandingError,
    ValidationError,
)


# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------


class Outcome(str, Enum):
    """1X2 outcome class of a scoreline, also used to name betting markets."""

    HOME = "HOME"
    DRAW = "DRAW"
    AWAY = "AWAY"


#: Betting markets are the three 1X2 outcomes.
Market = Outcome


class Side(str, Enum):
    HOME = "HOME"
    AWAY = "AWAY"


class DataSource(str, Enum):
    """Where a standings snapshot came from, best first."""

    API_OFFICIAL = "API_OFFICIAL"
    CALCULATED = "CALCULATED"
    PREVIOUS_SEASON = "PREVIOUS_SEASON"
    DEFAULT = "DEFAULT"


class MatchResult(str, Enum):
    WIN = "W"
    DRAW = "D"
    LOSS = "L"


class PlayerRole(str, Enum):
    GOALKEEPER = "GOALKEEPER"
    DEFENDER = "DEFENDER"
    MIDFIELDER = "MIDFIELDER"
    FORWARD = "FORWARD"
    UNKNOWN = "UNKNOWN"


class InjurySeverity(str, Enum):
    LONG_TERM = "LONG_TERM"
    MEDIUM_TERM = "MEDIUM_TERM"
    SHORT_TERM = "SHORT_TERM"
    DOUBTFUL = "DOUBTFUL"
    UNKNOWN = "UNKNOWN"


class PlayerImportance(str, Enum):
    KEY_PLAYER = "KEY_PLAYER"
    REGULAR_STARTER = "REGULAR_STARTER"
    ROTATION = "ROTATION"
    BACKUP = "BACKUP"
    UNKNOWN = "UNKNOWN"


class ContextFactorType(str, Enum):
    TEAM_MORALE = "TEAM_MORALE"
    INJURIES = "INJURIES"
    TACTICAL_CHANGES = "TACTICAL_CHANGES"
    WEATHER = "WEATHER"
    PRESSURE = "PRESSURE"
    HISTORICAL_ANOMALY = "HISTORICAL_ANOMALY"


class RiskLevel(str, Enum):
    """Ordered risk tiers.  Compare with :attr:`severity`, not ``<``."""

    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    VERY_HIGH = "VERY_HIGH"

    @property
    def severity(self) -> int:
        return _RISK_ORDER[self]

    @classmethod
    def highest(cls, levels) -> RiskLevel:
        """Return the most severe level in *levels* (``LOW`` if empty)."""
        return max(levels, key=lambda level: level.severity, default=cls.LOW)


_RISK_ORDER: Final[dict[RiskLevel, int]] = {
    RiskLevel.LOW: 0,
    RiskLevel.MEDIUM: 1,
    RiskLevel.HIGH: 2,
    RiskLevel.VERY_HIGH: 3,
}


class PredictionSource(str, Enum):
    """Which input dominated a :class:`FinalPrediction`."""

    ORACLE = "ORACLE"
    SIMULATION = "SIMULATION"
    CONTEXT = "CONTEXT"
    HYBRID = "HYBRID"


# ---------------------------------------------------------------------------
# Inputs
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class TeamStanding:
    """League-table snapshot for one team.

    Attributes:
        rank: League position, 1 = top.  Must be positive.
        points: League points, non-negative.
        goal_difference: Goals for minus goals against.
        games_played: Matches played this season.  Must be positive; the
            per-game rates divide by it.
        source: Provenance of the snapshot.  Drives source quality.
        team_name: Identifier for logging only.
    """

    rank: int
    points: int
    goal_difference: int
    games_played: int
    source: DataSource = DataSource.API_OFFICIAL
    team_name: str = ""

    def __post_init__(self) -> None:
        if self.games_played <= 0:
            raise InvalidStandingError(
                f"games_played must be > 0, got {self.games_played!r}"
                f" for team {self.team_name!r}."
            )
        if self.rank <= 0:
            raise InvalidStandingError(
                f"rank must be > 0, got {self.rank!r} for team {self.team_name!r}."
            )
        if self.points < 0:
            raise InvalidStandingError(
                f"points must be >= 0, got {self.points!r} for team {self.team_name!r}."
            )

    @property
    def points_per_game(self) -> float:
        return self.points / self.games_played

    @property
    def goal_difference_per_game(self) -> float:
        return self.goal_difference / self.games_played


@dataclass(frozen=True, slots=True)
class RecentResult:
    """One finished match from a team's point of view."""

    result: MatchResult
    side: Side = Side.HOME

    @property
    def points(self) -> int:
        if self.result is MatchResult.WIN:
            return 3
        if self.result is MatchResult.DRAW:
            return 1
        return 0


@dataclass(frozen=True, slots=True)
class PlayerInjury:
    """A single unavailable (or doubtful) player."""

    role: PlayerRole
    severity: InjurySeverity
    importance: PlayerImportance
    player_name: str = ""


# ---------------------------------------------------------------------------
# Scorelines
# ---------------------------------------------------------------------------

_SCORELINE_RE: Final = re.compile(r"^\s*(\d+)\s*-\s*(\d+)\s*$")


@dataclass(frozen=True, slots=True, order=True)
class Scoreline:
    """Home and away goal counts.  ``str(Scoreline(2, 1)) == "2-1"``."""

    home: int
    away: int

    def __post_init__(self) -> None:
        if self.home < 0 or self.away < 0:
            raise ValidationError(
                f"goal counts must be >= 0, got {self.home!r}-{self.away!r}."
            )

    @classmethod
    def parse(cls, text: str) -> Scoreline:
        """Parse ``"H-A"``.

        Raises:
            ValidationError: If *text* is not two non-negative integers
                separated by a dash.
        """
        match = _SCORELINE_RE.match(text)
        if match is None:
            raise ValidationError(f"malformed scoreline {text!r}, expected 'H-A'.")
        return cls(int(match.group(1)), int(match.group(2)))

    @classmethod
    def bounded(cls, home: float, away: float, low: int = 0, high: int = 5) -> Scoreline:
        """Build a scoreline from (possibly fractional) goals, truncated and clamped."""
        return cls(
            min(max(int(home), low), high),
            min(max(int(away), low), high),
        )

    @property
    def goal_difference(self) -> int:
        return self.home - self.away

    @property
    def outcome(self) -> Outcome:
        if self.home > self.away:
            return Outcome.HOME
        if self.home < self.away:
            return Outcome.AWAY
        return Outcome.DRAW

    def __str__(self) -> str:
        return f"{self.home}-{self.away}"


# ---------------------------------------------------------------------------
# Predictions
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class BasePrediction:
    """Deterministic power-score prediction.

    Attributes:
        scoreline: Threshold-selected scoreline.
        confidence: Integer in ``[0, 100]`` after source-quality scaling.
        home_power: Home power score, ``[0, 200]``, home bonus included.
        away_power: Away power score, ``[0, 200]``.
        reasoning_tag: Short machine-readable tag naming the delta band
            (``"strong_home"``, ``"even"``...).
    """

    scoreline: Scoreline
    confidence: int
    home_power: int
    away_power: int
    reasoning_tag: str

    @property
    def power_diff(self) -> int:
        return self.home_power - self.away_power


@dataclass(frozen=True, slots=True)
class AdjustedPrediction:
    """Base prediction after context corrections and simulation alignment."""

    scoreline: Scoreline
    confidence: int
    injury_correction: float
    form_correction: float
    pressure_correction: float
    alignment_factor: float
    notes: tuple[str, ...] = ()

    @property
    def total_correction(self) -> float:
        return self.injury_correction + self.form_correction + self.pressure_correction


@dataclass(frozen=True, slots=True)
class ScoreDistribution:
    """Probability distribution over a candidate set of scorelines.

    Attributes:
        probabilities: ``"H-A"`` to probability, in candidate order.  Sums to
            1.0 within floating-point error.
        raw_scores: Un-normalised candidate weights, each in ``[0.01, 0.95]``.
        most_likely: Arg-max of :attr:`probabilities`.
        power_diff: The power differential the candidate set was chosen for.
    """

    probabilities: Mapping[str, float]
    raw_scores: Mapping[str, float]
    most_likely: str
    power_diff: int

    def top(self, count: int = 3) -> list[tuple[str, float]]:
        """Return the *count* most likely scorelines, most likely first."""
        ranked = sorted(self.probabilities.items(), key=lambda kv: kv[1], reverse=True)
        return ranked[:count]

    def outcome_probabilities(self) -> dict[Outcome, float]:
        """Collapse the distribution onto the three 1X2 outcomes."""
        totals = {Outcome.HOME: 0.0, Outcome.DRAW: 0.0, Outcome.AWAY: 0.0}
        for text, prob in self.probabilities.items():
            totals[Scoreline.parse(text).outcome] += prob
        return totals


@dataclass(frozen=True, slots=True)
class FusionWeights:
    """Per-source fusion weights.  Non-negative, summing to 1.0."""

    oracle: float
    simulation: float
    context: float

    @property
    def total(self) -> float:
        return self.oracle + self.simulation + self.context

    def as_dict(self) -> dict[PredictionSource, float]:
        return {
            PredictionSource.ORACLE: self.oracle,
            PredictionSource.SIMULATION: self.simulation,
            PredictionSource.CONTEXT: self.context,
        }


@dataclass(frozen=True, slots=True)
class FinalPrediction:
    """Fused prediction handed to the staking engine.

    Attributes:
        scoreline: Fused scoreline, goals in ``[0, 5]``.
        confidence: Weighted confidence, ``[0, 100]``.
        primary_source: Source that dominated the fusion.
        home_prob: Fused home-win probability.
        draw_prob: Fused draw probability.
        away_prob: Fused away-win probability.
        weights: Fusion weights actually used.
        rule: Name of the override rule that produced :attr:`scoreline`.
        notes: Structured trace of what fired, for display or audit.
    """

    scoreline: Scoreline
    confidence: int
    primary_source: PredictionSource
    home_prob: float
    draw_prob: float
    away_prob: float
    weights: FusionWeights
    rule: str = "weighted_average"
    notes: tuple[str, ...] = ()

    @property
    def probabilities(self) -> dict[Outcome, float]:
        return {
            Outcome.HOME: self.home_prob,
            Outcome.DRAW: self.draw_prob,
            Outcome.AWAY: self.away_prob,
        }


# ---------------------------------------------------------------------------
# Odds and staking
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class OddsQuote:
    """Decimal 1X2 odds.  Any market may be unquoted (``None``)."""

    home: float | None = None
    draw: float | None = None
    away: float | None = None

    def get(self, market: Outcome) -> float | None:
        if market is Outcome.HOME:
            return self.home
        if market is Outcome.DRAW:
            return self.draw
        return self.away

    @property
    def is_empty(self) -> bool:
        return self.home is None and self.draw is None and self.away is None

    def validate(self) -> None:
        """Reject malformed prices coming out of a feed parser.

        Raises:
            InvalidOddsError: If any quoted price is ``<= 1.0``.
        """
        for market in Outcome:
            price = self.get(market)
            if price is not None and price <= 1.0:
                raise InvalidOddsError(
                    f"{market.value} odds must be > 1.0, got {price!r}."
                )


@dataclass(frozen=True, slots=True)
class MarketAssessment:
    """Kelly and value figures for one 1X2 market.

    Attributes:
        market: The outcome being priced.
        probability: Our probability for the outcome.
        odds: Opening decimal odds, ``None`` when unquoted.
        market_probability: Implied probability used for the edge (closing
            line when available), ``None`` when unquoted.
        full_kelly: Unscaled Kelly fraction, ``None`` for invalid inputs.
        kelly: Fractional, confidence-scaled Kelly, never above
            :attr:`full_kelly`; ``None`` for invalid inputs.
        edge: ``max(0, probability - market_probability)``.
        value_score: Integer in ``[0, 10]``.
    """

    market: Outcome
    probability: float
    odds: float | None
    market_probability: float | None
    full_kelly: float | None
    kelly: float | None
    edge: float
    value_score: int


@dataclass(frozen=True, slots=True)
class KellyResult:
    """Staking recommendation for one fixture.

    ``recommended_stake`` is ``None`` when no market carries a positive
    Kelly fraction; otherwise it lies in ``[min_stake, max_stake]``.
    """

    markets: Mapping[Outcome, MarketAssessment]
    best_market: Outcome
    recommended_stake: float | None
    risk_level: RiskLevel
    confidence: float
    is_empty: bool = False
    notes: tuple[str, ...] = field(default=())

    @classmethod
    def empty(cls, reason: str = "invalid probabilities") -> KellyResult:
        """Sentinel returned when the inputs cannot be staked."""
        return cls(
            markets={},
            best_market=Outcome.HOME,
            recommended_stake=None,
            risk_level=RiskLevel.HIGH,
            confidence=0.0,
            is_empty=True,
            notes=(reason,),
        )

    def kelly(self, market: Outcome) -> float | None:
        assessment = self.markets.get(market)
        return None if assessment is None else assessment.kelly

    def value_score(self, market: Outcome) -> int:
        assessment = self.markets.get(market)
        return 0 if assessment is None else assessment.value_score

    @property
    def has_value(self) -> bool:
        return self.recommended_stake is not None
