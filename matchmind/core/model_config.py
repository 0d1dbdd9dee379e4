"""Model configuration: every tunable constant of the pipeline in one place.

This module is the **registry** for the lookup tables and thresholds used by
the power-score model, the correction calculators, the context adjustment,
the score distribution, the fusion engine and the staking engine.  Nowhere
else in the code base should a role weight, a delta threshold or a stake cap
be hard-coded.

Architecture
------------
One frozen dataclass per component, bundled by :class:`ModelConfig`.
:meth:`ModelConfig.default` returns the calibrated defaults.  Components
accept their section at construction time, so a single constant can be
overridden for an experiment::

    from dataclasses import replace
    from matchmind.core.model_config import ModelConfig

    cfg = ModelConfig.default()
    cautious = replace(cfg, staking=replace(cfg.staking, max_stake=0.03))

Tier tables are tuples of ``(threshold, value)`` pairs, checked in order,
first match wins.  :func:`tier_at_least` and :func:`tier_at_most` do the
lookup so the direction of each comparison is visible at the call site.

The injury, form and context weights are empirically chosen.  They are
defaults, not normative constants; re-derive them if a calibration dataset
becomes available.
"""

from __future__ import annotations

import math
import os
from dataclasses import dataclass, field, replace
from typing import Final, Mapping, Sequence, TypeVar

from matchmind.core.entities import (
    DataSource,
    InjurySeverity,
    PlayerImportance,
    PlayerRole,
    RiskLevel,
)

T = TypeVar("T")

#: Prefix of every environment variable read by :meth:`ModelConfig.from_env`.
ENV_PREFIX: Final[str] = "MATCHMIND_"


# ---------------------------------------------------------------------------
# Tier lookups and numeric helpers
# ---------------------------------------------------------------------------


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from zero for positives.

    Python's built-in :func:`round` rounds halves to even (``round(2.5) == 2``),
    which makes scores jump unevenly as inputs grow.

    Examples::

        round_half_up(2.5)   →  3
        round_half_up(-0.5)  →  0
    """
    return math.floor(value + 0.5)


def clamp(value: float, low: float, high: float) -> float:
    """Clamp *value* to ``[low, high]``; NaN maps to *low*."""
    if math.isnan(value):
        return low
    return min(max(value, low), high)


def tier_at_least(value: float, tiers: Sequence[tuple[float, T]], floor: T) -> T:
    """Return the first tier value whose threshold ``<= value``, else *floor*.

    Examples::

        tier_at_least(10, ((12, 1.1), (9, 1.05)), 1.0)  →  1.05
        tier_at_least(2, ((12, 1.1), (9, 1.05)), 1.0)   →  1.0
    """
    for threshold, result in tiers:
        if value >= threshold:
            return result
    return floor


def tier_at_most(value: float, tiers: Sequence[tuple[float, T]], ceiling: T) -> T:
    """Return the first tier value whose threshold ``>= value``, else *ceiling*."""
    for threshold, result in tiers:
        if value <= threshold:
            return result
    return ceiling


def tier_below(value: float, tiers: Sequence[tuple[float, T]], ceiling: T) -> T:
    """Return the first tier value whose threshold ``> value``, else *ceiling*."""
    for threshold, result in tiers:
        if value < threshold:
            return result
    return ceiling


# ---------------------------------------------------------------------------
# Component sections
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class PowerScoreConfig:
    """Power-score formula, delta bands and missing-team defaults.

    ``power = base - rank x rank_multiplier + round(ppg x ppg_multiplier)
    + round(gdpg x gdpg_multiplier) [+ home_bonus]``, clamped to
    ``[min_power, max_power]``.
    """

    base_power: int = 100
    rank_multiplier: int = 3
    ppg_multiplier: int = 10
    gdpg_multiplier: int = 5
    home_bonus: int = 10
    min_power: int = 0
    max_power: int = 200

    # Delta bands: |delta| > strong → 3-0 / 0-3, > moderate → 2-1 / 1-2.
    strong_threshold: int = 30
    moderate_threshold: int = 15
    strong_confidence: int = 90
    moderate_confidence: int = 75
    even_confidence: int = 60

    # Mid-table synthetic standing for a team with no data.
    default_rank: int = 20
    default_points: int = 30
    default_goal_difference: int = 0
    default_games_played: int = 20

    source_quality: Mapping[DataSource, float] = field(
        default_factory=lambda: {
            DataSource.API_OFFICIAL: 1.0,
            DataSource.CALCULATED: 0.75,
            DataSource.PREVIOUS_SEASON: 0.7,
            DataSource.DEFAULT: 0.6,
        }
    )
    source_bonus: Mapping[DataSource, int] = field(
        default_factory=lambda: {
            DataSource.API_OFFICIAL: 10,
            DataSource.CALCULATED: 5,
            DataSource.PREVIOUS_SEASON: 0,
            DataSource.DEFAULT: -5,
        }
    )
    strong_gap_bonus: int = 15
    moderate_gap_bonus: int = 10
    rank_gap_labels: tuple[tuple[int, str], ...] = (
        (11, "massive"),
        (6, "significant"),
        (3, "moderate"),
    )


@dataclass(frozen=True)
class CorrectionConfig:
    """Form and injury correction tables."""

    form_window: int = 5
    #: (min points over the window, correction factor)
    form_tiers: tuple[tuple[int, float], ...] = (
        (12, 1.1),
        (9, 1.05),
        (6, 1.0),
        (3, 0.95),
    )
    form_floor: float = 0.9
    form_labels: tuple[tuple[int, str], ...] = (
        (12, "Excellent"),
        (9, "Good"),
        (6, "Average"),
        (3, "Poor"),
    )
    form_floor_label: str = "Terrible"
    streak_length: int = 3
    poor_form_max_points: int = 3
    momentum_min_results: int = 3

    role_weights: Mapping[PlayerRole, float] = field(
        default_factory=lambda: {
            PlayerRole.GOALKEEPER: 0.3,
            PlayerRole.DEFENDER: 0.2,
            PlayerRole.MIDFIELDER: 0.15,
            PlayerRole.FORWARD: 0.25,
            PlayerRole.UNKNOWN: 0.1,
        }
    )
    severity_multipliers: Mapping[InjurySeverity, float] = field(
        default_factory=lambda: {
            InjurySeverity.LONG_TERM: 1.5,
            InjurySeverity.MEDIUM_TERM: 1.2,
            InjurySeverity.SHORT_TERM: 1.0,
            InjurySeverity.DOUBTFUL: 0.7,
            InjurySeverity.UNKNOWN: 0.5,
        }
    )
    importance_multipliers: Mapping[PlayerImportance, float] = field(
        default_factory=lambda: {
            PlayerImportance.KEY_PLAYER: 1.5,
            PlayerImportance.REGULAR_STARTER: 1.2,
            PlayerImportance.ROTATION: 1.0,
            PlayerImportance.BACKUP: 0.7,
            PlayerImportance.UNKNOWN: 0.5,
        }
    )
    max_injury_impact: float = 0.6
    max_team_impact: float = 1.0
    #: (min injuries in one role, crisis multiplier)
    crisis_multipliers: tuple[tuple[int, float], ...] = ((3, 1.5), (2, 1.3))
    critical_key_players: int = 2


@dataclass(frozen=True)
class ContextConfig:
    """Context-adjusted predictor: factor tiers, shrink factors, alignment."""

    #: INJURIES factor score → confidence loss per factor.
    injury_factor_tiers: tuple[tuple[int, float], ...] = (
        (9, 0.3),
        (7, 0.2),
        (5, 0.15),
        (3, 0.1),
    )
    injury_factor_floor: float = 0.05
    max_injury_correction: float = 0.6

    #: TEAM_MORALE factor score → form points per factor.
    morale_points_tiers: tuple[tuple[int, int], ...] = ((9, 3), (7, 2), (5, 1), (3, 0))
    morale_points_floor: int = -1
    #: total form points (at most) → form correction.
    form_correction_tiers: tuple[tuple[int, float], ...] = ((-2, 0.2), (0, 0.15), (2, 0.05))
    form_correction_ceiling: float = 0.0

    #: PRESSURE factor score → pressure points per factor.
    pressure_points_tiers: tuple[tuple[int, int], ...] = ((9, 3), (7, 2), (5, 1))
    #: total pressure points (at least) → pressure correction.
    pressure_correction_tiers: tuple[tuple[int, float], ...] = ((3, 0.1), (2, 0.05))

    alignment_neutral: float = 1.0
    alignment_exact: float = 1.5
    alignment_outcome: float = 1.2
    alignment_mismatch: float = 0.8
    draw_pull: float = 0.3

    heavy_correction: float = 0.3
    light_correction: float = 0.1
    boost_correction: float = -0.1
    strong_gap: int = 30
    moderate_gap: int = 15
    heavy_shrink: float = 0.7
    underdog_boost: float = 1.3
    underdog_cap: int = 3
    light_shrink: float = 0.85
    favourite_boost: float = 1.15
    boost_cap: int = 4
    max_goals: int = 5

    dominant_gap: int = 50
    quick_fix_heavy_injuries: int = 8
    quick_fix_light_injuries: int = 4


@dataclass(frozen=True)
class DistributionConfig:
    """Candidate sets, prior table and multipliers of the distribution model."""

    #: (power diff strictly above, candidate scorelines), checked in order.
    candidate_buckets: tuple[tuple[int, tuple[str, ...]], ...] = (
        (50, ("3-0", "2-0", "2-1", "3-1", "4-0")),
        (30, ("2-0", "2-1", "1-0", "3-0", "3-1")),
        (15, ("2-1", "1-0", "1-1", "2-0", "0-0")),
        (0, ("1-1", "1-0", "0-0", "2-1", "0-1")),
        (-15, ("1-1", "0-1", "1-0", "0-0", "1-2")),
        (-30, ("0-1", "1-2", "0-2", "1-1", "0-0")),
    )
    fallback_candidates: tuple[str, ...] = ("0-2", "0-3", "1-2", "0-1", "1-3")

    priors: Mapping[str, float] = field(
        default_factory=lambda: {
            "3-0": 0.08,
            "2-0": 0.12,
            "2-1": 0.15,
            "1-0": 0.10,
            "1-1": 0.20,
            "0-0": 0.05,
            "0-1": 0.08,
            "0-2": 0.07,
            "1-2": 0.10,
            "0-3": 0.05,
        }
    )
    default_prior: float = 0.05

    strong_gap: int = 30
    moderate_gap: int = 15
    strong_alignment: float = 1.5
    moderate_alignment: float = 1.3
    draw_alignment: float = 1.2
    misalignment: float = 0.8

    injury_step: float = 0.1
    injury_floor: float = 0.5

    neutral_morale: int = 5
    #: (min morale, multiplier if the side wins, multiplier otherwise)
    high_morale_tiers: tuple[tuple[int, float, float], ...] = ((8, 1.3, 0.9), (6, 1.2, 0.95))
    #: (max morale, multiplier if the side wins, multiplier otherwise)
    low_morale_tiers: tuple[tuple[int, float, float], ...] = ((2, 0.7, 1.2), (4, 0.8, 1.1))

    #: (min pressure, multiplier if home scores, multiplier otherwise)
    pressure_tiers: tuple[tuple[int, float, float], ...] = (
        (8, 1.25, 0.9),
        (6, 1.15, 0.95),
        (4, 1.05, 0.98),
    )

    min_probability: float = 0.01
    max_probability: float = 0.95

    home_keywords: tuple[str, ...] = ("home", "thuis", "hosts")
    away_keywords: tuple[str, ...] = ("away", "uit", "visitors")


@dataclass(frozen=True)
class FusionConfig:
    """Fusion weights, override-rule thresholds and source confidences."""

    #: (base confidence strictly above, oracle weight)
    oracle_weight_tiers: tuple[tuple[int, float], ...] = ((80, 0.4), (60, 0.3))
    oracle_weight_floor: float = 0.2
    simulation_weight: float = 0.3
    context_weight: float = 0.3
    empty_context_weight: float = 0.1

    outlier_confidence: int = 80
    outlier_probability: float = 0.3
    #: (label, keywords, goal multiplier), checked in order.  Keywords match
    #: whole words only, and injury comes before weather.
    outlier_effects: tuple[tuple[str, tuple[str, ...], float], ...] = (
        ("red_card", ("red card", "sent off", "rode kaart", "rood"), 0.7),
        (
            "injury",
            ("injury", "injured", "ruled out", "strain", "hamstring",
             "blessure", "geblesseerd", "speler mist"),
            0.8,
        ),
        ("weather", ("weather", "rain", "snow", "storm", "weer"), 0.6),
    )

    draw_probability: float = 0.4
    high_risk_base_share: float = 0.75
    high_risk_goal_cap: int = 3
    max_goals: int = 5

    context_confidence: Mapping[RiskLevel, int] = field(
        default_factory=lambda: {
            RiskLevel.LOW: 80,
            RiskLevel.MEDIUM: 60,
            RiskLevel.HIGH: 40,
            RiskLevel.VERY_HIGH: 40,
        }
    )

    primary_weight: float = 0.5
    oracle_primary_confidence: int = 70
    simulation_primary_probability: float = 0.5
    context_primary_factors: int = 3

    #: Smallest goal rate fed to the Skellam outcome model.
    min_goal_rate: float = 0.25
    probability_floor: float = 1e-4


@dataclass(frozen=True)
class StakingConfig:
    """Fractional-Kelly sizing, value scoring and risk classification."""

    fractional_kelly: float = 0.25
    max_stake: float = 0.05
    min_stake: float = 0.005
    min_probability_sum: float = 0.95
    edge_multiplier_slope: float = 2.0
    max_edge_multiplier: float = 1.5

    kelly_value_tiers: tuple[tuple[float, int], ...] = (
        (0.02, 5),
        (0.01, 4),
        (0.005, 3),
        (0.002, 2),
    )
    edge_value_tiers: tuple[tuple[float, int], ...] = (
        (0.10, 5),
        (0.05, 4),
        (0.02, 3),
        (0.01, 2),
    )
    value_floor: int = 1
    max_value_score: int = 10

    kelly_risk_points: tuple[tuple[float, int], ...] = ((0.02, 40), (0.01, 30), (0.005, 20))
    kelly_risk_floor: int = 10
    #: (confidence strictly below, points)
    confidence_risk_points: tuple[tuple[float, int], ...] = ((0.3, 30), (0.6, 20))
    confidence_risk_floor: int = 10
    edge_risk_points: tuple[tuple[float, int], ...] = ((0.10, 10), (0.05, 20))
    edge_risk_floor: int = 30
    risk_tiers: tuple[tuple[int, RiskLevel], ...] = (
        (80, RiskLevel.VERY_HIGH),
        (60, RiskLevel.HIGH),
        (40, RiskLevel.MEDIUM),
    )


# ---------------------------------------------------------------------------
# Bundle
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ModelConfig:
    """Immutable configuration bundle for the whole pipeline.

    Attributes:
        power: Power-score model section.
        corrections: Form and injury calculators section.
        context: Context-adjusted predictor section.
        distribution: Score distribution section.
        fusion: Fusion engine section.
        staking: Staking engine section.
        provider_timeout: Seconds the pipeline waits for the simulation and
            enhancement providers before treating them as absent.
    """

    power: PowerScoreConfig = field(default_factory=PowerScoreConfig)
    corrections: CorrectionConfig = field(default_factory=CorrectionConfig)
    context: ContextConfig = field(default_factory=ContextConfig)
    distribution: DistributionConfig = field(default_factory=DistributionConfig)
    fusion: FusionConfig = field(default_factory=FusionConfig)
    staking: StakingConfig = field(default_factory=StakingConfig)
    provider_timeout: float = 8.0

    @classmethod
    def default(cls) -> ModelConfig:
        """Return the calibrated default configuration."""
        return cls()

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> ModelConfig:
        """Return the defaults with overrides read from the environment.

        Recognised variables (all optional)::

            MATCHMIND_FRACTIONAL_KELLY   default 0.25
            MATCHMIND_MAX_STAKE          default 0.05
            MATCHMIND_MIN_STAKE          default 0.005
            MATCHMIND_HOME_BONUS         default 10
            MATCHMIND_PROVIDER_TIMEOUT   default 8.0 (seconds)

        Args:
            environ: Mapping to read from.  Defaults to :data:`os.environ`.

        Raises:
            ValueError: If a variable is set but not numeric, the fractional
                Kelly is outside (0, 1], or the stake bounds are inverted.
        """
        env = os.environ if environ is None else environ
        cfg = cls()

        def _get(name: str, default: float) -> float:
            return float(env.get(ENV_PREFIX + name, default))

        staking = replace(
            cfg.staking,
            fractional_kelly=_get("FRACTIONAL_KELLY", cfg.staking.fractional_kelly),
            max_stake=_get("MAX_STAKE", cfg.staking.max_stake),
            min_stake=_get("MIN_STAKE", cfg.staking.min_stake),
        )
        if not 0.0 < staking.fractional_kelly <= 1.0:
            raise ValueError(
                f"fractional Kelly must satisfy 0 < fraction <= 1, got "
                f"{staking.fractional_kelly!r}."
            )
        if not 0.0 < staking.min_stake <= staking.max_stake <= 1.0:
            raise ValueError(
                f"stake bounds must satisfy 0 < min <= max <= 1, got "
                f"min={staking.min_stake!r}, max={staking.max_stake!r}."
            )
        power = replace(cfg.power, home_bonus=int(_get("HOME_BONUS", cfg.power.home_bonus)))
        return replace(
            cfg,
            power=power,
            staking=staking,
            provider_timeout=_get("PROVIDER_TIMEOUT", cfg.provider_timeout),
        )

    def __repr__(self) -> str:
        return (
            f"ModelConfig(home_bonus={self.power.home_bonus}, "
            f"fractional_kelly={self.staking.fractional_kelly}, "
            f"stake=[{self.staking.min_stake}, {self.staking.max_stake}], "
            f"timeout={self.provider_timeout})"
        )
