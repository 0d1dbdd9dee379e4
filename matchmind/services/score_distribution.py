"""
Score distribution model: probabilities over a candidate set of scorelines.

Independent of the base and adjusted predictions.  Given only the power
differential and the context factors it:

    1. Picks five candidate scorelines from one of seven power-diff buckets
       (very strong away ... very strong home).
    2. Starts each candidate at its prior from a fixed table.
    3. Multiplies by
         * power alignment  (goal difference agrees with the power gap)
         * injury impact    (fewer goals for a side with injuries)
         * morale           (TEAM_MORALE per side favours that side winning)
         * pressure         (PRESSURE helps the home side score)
    4. Clamps each raw value to [0.01, 0.95] and normalises to sum 1.

Side attribution of a factor uses its explicit ``side`` when the producer
set one, else a keyword match on the description ("home"/"thuis",
"away"/"uit", whole words only).
"""

import logging
import re
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np

from matchmind.core.entities import ContextFactorType, ScoreDistribution, Scoreline, Side
from matchmind.core.interfaces import ContextFactor, as_factor_tuple
from matchmind.core.model_config import DistributionConfig

logger = logging.getLogger(__name__)


class ScoreDistributionModel:
    """Builds a normalised :class:`ScoreDistribution` for a fixture."""

    def __init__(self, config: Optional[DistributionConfig] = None):
        self.config = config or DistributionConfig()
        self._side_patterns = {
            Side.HOME: self._keyword_pattern(self.config.home_keywords),
            Side.AWAY: self._keyword_pattern(self.config.away_keywords),
        }

    @staticmethod
    def _keyword_pattern(keywords: Sequence[str]):
        alternatives = "|".join(re.escape(k) for k in keywords)
        return re.compile(rf"\b(?:{alternatives})\b", re.IGNORECASE)

    # ------------------------------------------------------------------
    # Candidates
    # ------------------------------------------------------------------

    def candidates(self, power_diff: int) -> Tuple[str, ...]:
        for lower, scores in self.config.candidate_buckets:
            if power_diff > lower:
                return scores
        return self.config.fallback_candidates

    def prior(self, score: str) -> float:
        return self.config.priors.get(score, self.config.default_prior)

    # ------------------------------------------------------------------
    # Side attribution
    # ------------------------------------------------------------------

    def mentions(self, factor: ContextFactor, side: Side) -> bool:
        if factor.side is not None:
            return factor.side is side
        return bool(self._side_patterns[side].search(factor.description))

    def _first_score(self, factors: Sequence[ContextFactor], side: Side, default: int) -> int:
        for factor in factors:
            if self.mentions(factor, side):
                return factor.score
        return default

    # ------------------------------------------------------------------
    # Multipliers
    # ------------------------------------------------------------------

    def power_alignment(self, goal_diff: int, power_diff: int) -> float:
        cfg = self.config
        if power_diff > cfg.strong_gap and goal_diff >= 2:
            return cfg.strong_alignment
        if power_diff > cfg.moderate_gap and goal_diff >= 1:
            return cfg.moderate_alignment
        if power_diff > 0 and goal_diff == 0:
            return cfg.draw_alignment
        if power_diff < -cfg.strong_gap and goal_diff <= -2:
            return cfg.strong_alignment
        if power_diff < -cfg.moderate_gap and goal_diff <= -1:
            return cfg.moderate_alignment
        if power_diff < 0 and goal_diff == 0:
            return cfg.draw_alignment
        return cfg.misalignment

    def injury_impact(self, factors: Sequence[ContextFactor], scoreline: Scoreline) -> float:
        cfg = self.config
        injuries = [f for f in factors if f.type is ContextFactorType.INJURIES]
        if not injuries:
            return 1.0
        impact = 1.0
        for side, goals in ((Side.HOME, scoreline.home), (Side.AWAY, scoreline.away)):
            count = sum(1 for f in injuries if self.mentions(f, side))
            if count > 0 and goals > 0:
                impact *= max(1.0 - count * cfg.injury_step, cfg.injury_floor)
        return impact

    def _morale_multiplier(self, morale: int, side_wins: bool) -> float:
        cfg = self.config
        for threshold, if_wins, otherwise in cfg.high_morale_tiers:
            if morale >= threshold:
                return if_wins if side_wins else otherwise
        for threshold, if_wins, otherwise in cfg.low_morale_tiers:
            if morale <= threshold:
                return if_wins if side_wins else otherwise
        return 1.0

    def form_impact(self, factors: Sequence[ContextFactor], goal_diff: int) -> float:
        morale = [f for f in factors if f.type is ContextFactorType.TEAM_MORALE]
        if not morale:
            return 1.0
        neutral = self.config.neutral_morale
        home_morale = self._first_score(morale, Side.HOME, neutral)
        away_morale = self._first_score(morale, Side.AWAY, neutral)
        return (
            self._morale_multiplier(home_morale, goal_diff > 0)
            * self._morale_multiplier(away_morale, goal_diff < 0)
        )

    def pressure_impact(self, factors: Sequence[ContextFactor], home_goals: int) -> float:
        pressure = [f for f in factors if f.type is ContextFactorType.PRESSURE]
        if not pressure:
            return 1.0
        score = pressure[0].score
        for threshold, if_scores, otherwise in self.config.pressure_tiers:
            if score >= threshold:
                return if_scores if home_goals > 0 else otherwise
        return 1.0

    def raw_probability(self, score: str, power_diff: int, factors: Sequence[ContextFactor]) -> float:
        """Un-normalised weight of one candidate, clamped to ``[0.01, 0.95]``."""
        scoreline = Scoreline.parse(score)
        gd = scoreline.goal_difference
        value = (
            self.prior(score)
            * self.power_alignment(gd, power_diff)
            * self.injury_impact(factors, scoreline)
            * self.form_impact(factors, gd)
            * self.pressure_impact(factors, scoreline.home)
        )
        return float(np.clip(value, self.config.min_probability, self.config.max_probability))

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def distribute(
        self, power_diff: int, factors: Optional[Sequence[ContextFactor]] = None
    ) -> ScoreDistribution:
        """Probability distribution over the candidate scorelines for *power_diff*."""
        factors = as_factor_tuple(factors)
        scores = self.candidates(power_diff)
        raw = np.array([self.raw_probability(s, power_diff, factors) for s in scores])
        raw = np.nan_to_num(raw, nan=self.config.min_probability)
        probs = raw / raw.sum()

        probabilities: Dict[str, float] = {s: float(p) for s, p in zip(scores, probs)}
        raw_scores: Dict[str, float] = {s: float(r) for s, r in zip(scores, raw)}
        most_likely = scores[int(np.argmax(probs))]

        logger.debug("Distribution for diff=%d: mode %s (%.3f)", power_diff, most_likely, probabilities[most_likely])
        return ScoreDistribution(
            probabilities=probabilities,
            raw_scores=raw_scores,
            most_likely=most_likely,
            power_diff=power_diff,
        )

    def top_scores(
        self, power_diff: int, factors: Optional[Sequence[ContextFactor]] = None, count: int = 3
    ) -> List[Tuple[str, float]]:
        return self.distribute(power_diff, factors).top(count)
