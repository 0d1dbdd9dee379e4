"""
Form correction from a team's recent results.

The last ``window`` results (default 5) are scored 3 per win and 1 per
draw.  The score picks one of five correction tiers:

    >= 12  →  1.10   (Excellent)
    >= 9   →  1.05   (Good)
    >= 6   →  1.00   (Average)
    >= 3   →  0.95   (Poor)
    else   →  0.90   (Terrible)

An empty history is neutral (1.0).  Results are ordered oldest first; the
window always takes the newest entries.
"""

import logging
from dataclasses import dataclass
from typing import Optional, Sequence

from matchmind.core.entities import MatchResult, RecentResult, Side
from matchmind.core.model_config import CorrectionConfig, tier_at_least

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FormSummary:
    """Everything the calculator knows about one team's recent form."""

    score: int
    correction: float
    label: str
    momentum: float
    winning_streak: bool
    losing_streak: bool
    poor_form: bool
    home_points_per_game: Optional[float]
    away_points_per_game: Optional[float]


class FormCalculator:
    """Pure calculator: the same result list always yields the same factor."""

    def __init__(self, config: Optional[CorrectionConfig] = None):
        self.config = config or CorrectionConfig()

    def _window(self, results: Sequence[RecentResult], window: Optional[int] = None):
        size = self.config.form_window if window is None else window
        if size <= 0:
            return []
        return list(results)[-size:]

    def form_score(self, results: Sequence[RecentResult], window: Optional[int] = None) -> int:
        return sum(r.points for r in self._window(results, window))

    def form_correction(self, results: Sequence[RecentResult], window: Optional[int] = None) -> float:
        """Multiplicative form factor in ``[0.9, 1.1]``; 1.0 for no results."""
        recent = self._window(results, window)
        if not recent:
            return 1.0
        score = sum(r.points for r in recent)
        return tier_at_least(score, self.config.form_tiers, self.config.form_floor)

    def form_label(self, results: Sequence[RecentResult], window: Optional[int] = None) -> str:
        if not self._window(results, window):
            return "Average"
        return tier_at_least(
            self.form_score(results, window),
            self.config.form_labels,
            self.config.form_floor_label,
        )

    def momentum(self, results: Sequence[RecentResult], window: Optional[int] = None) -> float:
        """Mean points of the newer half minus the older half of the window.

        Positive means the team is improving.  Needs at least
        ``momentum_min_results`` results, otherwise 0.0.
        """
        recent = self._window(results, window)
        if len(recent) < self.config.momentum_min_results:
            return 0.0
        mid = len(recent) // 2
        older, newer = recent[:mid], recent[mid:]
        older_avg = sum(r.points for r in older) / len(older)
        newer_avg = sum(r.points for r in newer) / len(newer)
        return newer_avg - older_avg

    def is_poor_form(self, results: Sequence[RecentResult]) -> bool:
        recent = self._window(results, self.config.streak_length)
        if len(recent) < self.config.streak_length:
            return False
        return sum(r.points for r in recent) <= self.config.poor_form_max_points

    def _streak(self, results: Sequence[RecentResult], outcome: MatchResult) -> bool:
        recent = self._window(results, self.config.streak_length)
        return len(recent) == self.config.streak_length and all(r.result is outcome for r in recent)

    def is_winning_streak(self, results: Sequence[RecentResult]) -> bool:
        return self._streak(results, MatchResult.WIN)

    def is_losing_streak(self, results: Sequence[RecentResult]) -> bool:
        return self._streak(results, MatchResult.LOSS)

    def home_away_split(self, results: Sequence[RecentResult]):
        """Points per game at home and away over the full list (None if no games)."""
        split = {}
        for side in (Side.HOME, Side.AWAY):
            games = [r for r in results if r.side is side]
            split[side] = sum(r.points for r in games) / len(games) if games else None
        return split[Side.HOME], split[Side.AWAY]

    def summarize(self, results: Sequence[RecentResult]) -> FormSummary:
        home_ppg, away_ppg = self.home_away_split(results)
        summary = FormSummary(
            score=self.form_score(results),
            correction=self.form_correction(results),
            label=self.form_label(results),
            momentum=self.momentum(results),
            winning_streak=self.is_winning_streak(results),
            losing_streak=self.is_losing_streak(results),
            poor_form=self.is_poor_form(results),
            home_points_per_game=home_ppg,
            away_points_per_game=away_ppg,
        )
        logger.debug("Form summary: %s", summary)
        return summary


def form_correction(results: Sequence[RecentResult], window: int = 5) -> float:
    """Module-level shortcut using the default tables."""
    return FormCalculator().form_correction(results, window)
