"""
Power-score model: league standings to a deterministic base prediction.

Each team gets a bounded strength rating from its table position, points
per game and goal difference per game.  The home side gets a fixed bonus.
The difference between the two ratings picks one of five scoreline bands:

    delta < -30        0-3   confidence 90
    -30 <= delta < -15 1-2   confidence 75
    -15 <= delta <= 15 1-1   confidence 60
    15 < delta <= 30   2-1   confidence 75
    delta > 30         3-0   confidence 90

The band confidence is scaled by the quality of the home team's data
source, so a prediction built on last season's table or on a synthetic
mid-table default is trusted less than one built on the live table.
"""

import logging
from typing import Optional

from matchmind.core.entities import (
    BasePrediction,
    DataSource,
    Scoreline,
    TeamStanding,
)
from matchmind.core.exceptions import ValidationError
from matchmind.core.model_config import (
    PowerScoreConfig,
    clamp,
    round_half_up,
    tier_at_least,
)

logger = logging.getLogger(__name__)


class PowerScoreModel:
    """Standings-based oracle producing :class:`BasePrediction` objects."""

    def __init__(self, config: Optional[PowerScoreConfig] = None):
        self.config = config or PowerScoreConfig()

    # ------------------------------------------------------------------
    # Standings
    # ------------------------------------------------------------------

    def default_standing(self, team_name: str = "") -> TeamStanding:
        """Synthetic mid-table standing used when a team has no data."""
        cfg = self.config
        return TeamStanding(
            rank=cfg.default_rank,
            points=cfg.default_points,
            goal_difference=cfg.default_goal_difference,
            games_played=cfg.default_games_played,
            source=DataSource.DEFAULT,
            team_name=team_name,
        )

    def resolve(self, standing: Optional[TeamStanding], team_name: str = "") -> TeamStanding:
        if standing is not None:
            return standing
        logger.debug("No standing for %r, using mid-table default", team_name or "team")
        return self.default_standing(team_name)

    def source_quality(self, source: DataSource) -> float:
        return self.config.source_quality.get(source, self.config.source_quality[DataSource.DEFAULT])

    # ------------------------------------------------------------------
    # Scoring
    # ------------------------------------------------------------------

    def power_score(self, standing: TeamStanding, is_home: bool = False) -> int:
        """Bounded strength rating in ``[min_power, max_power]``.

        Non-decreasing in points and in goal difference for a fixed rank
        and games played.
        """
        cfg = self.config
        raw = (
            cfg.base_power
            - standing.rank * cfg.rank_multiplier
            + round_half_up(standing.points_per_game * cfg.ppg_multiplier)
            + round_half_up(standing.goal_difference_per_game * cfg.gdpg_multiplier)
        )
        if is_home:
            raw += cfg.home_bonus
        return int(clamp(raw, cfg.min_power, cfg.max_power))

    def compute_base(
        self,
        home: Optional[TeamStanding],
        away: Optional[TeamStanding],
        home_source_quality: Optional[float] = None,
    ) -> BasePrediction:
        """Build the deterministic base prediction for a fixture.

        Args:
            home: Home standing, or None for the mid-table default.
            away: Away standing, or None for the mid-table default.
            home_source_quality: Trust in the home data, ``[0, 1]``.  Defaults
                to the quality of ``home.source``.

        Raises:
            ValidationError: If ``home_source_quality`` is outside ``[0, 1]``.
        """
        home = self.resolve(home, "home")
        away = self.resolve(away, "away")
        if home_source_quality is None:
            home_source_quality = self.source_quality(home.source)
        if not 0.0 <= home_source_quality <= 1.0:
            raise ValidationError(
                f"home_source_quality must be in [0, 1], got {home_source_quality!r}."
            )

        home_power = self.power_score(home, is_home=True)
        away_power = self.power_score(away, is_home=False)
        delta = home_power - away_power
        scoreline, band_confidence, tag = self._band(delta)
        confidence = int(clamp(round_half_up(band_confidence * home_source_quality), 0, 100))

        logger.debug(
            "Base prediction %s (conf=%d, home=%d, away=%d, tag=%s)",
            scoreline, confidence, home_power, away_power, tag,
        )
        return BasePrediction(
            scoreline=scoreline,
            confidence=confidence,
            home_power=home_power,
            away_power=away_power,
            reasoning_tag=tag,
        )

    def _band(self, delta: int):
        cfg = self.config
        if delta < -cfg.strong_threshold:
            return Scoreline(0, 3), cfg.strong_confidence, "strong_away"
        if delta < -cfg.moderate_threshold:
            return Scoreline(1, 2), cfg.moderate_confidence, "away"
        if delta > cfg.strong_threshold:
            return Scoreline(3, 0), cfg.strong_confidence, "strong_home"
        if delta > cfg.moderate_threshold:
            return Scoreline(2, 1), cfg.moderate_confidence, "home"
        return Scoreline(1, 1), cfg.even_confidence, "even"

    # ------------------------------------------------------------------
    # Annotations
    # ------------------------------------------------------------------

    def rank_gap_label(self, home: TeamStanding, away: TeamStanding) -> str:
        """Qualitative size of the table gap: massive/significant/moderate/similar."""
        gap = abs(home.rank - away.rank)
        return tier_at_least(gap, self.config.rank_gap_labels, "similar")

    def betting_confidence(self, base: BasePrediction, home_source: DataSource) -> int:
        """Confidence for bet selection: band confidence plus gap and source bonuses."""
        cfg = self.config
        gap = abs(base.power_diff)
        bonus = 0
        if gap > cfg.strong_threshold:
            bonus += cfg.strong_gap_bonus
        elif gap > cfg.moderate_threshold:
            bonus += cfg.moderate_gap_bonus
        bonus += cfg.source_bonus.get(home_source, 0)
        return int(clamp(base.confidence + bonus, 0, 100))
