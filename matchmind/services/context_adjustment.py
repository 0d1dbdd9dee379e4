"""
Context-adjusted prediction: corrections from qualitative factors.

Takes the deterministic base prediction and applies what the context
factors say about the fixture:

    1. Injury correction   INJURIES factors, per-factor loss by score,
                           summed and capped at 0.6.
    2. Form correction     TEAM_MORALE factors scored into form points,
                           bad morale costs up to 0.2.
    3. Pressure correction PRESSURE factors, up to 0.1.
    4. Alignment factor    agreement with an independent simulation:
                           identical scoreline 1.5, same outcome 1.2,
                           disagreement 0.8, no simulation 1.0.

A large total correction shrinks the favourite's margin; a net positive
context (only reachable with a tuned table that gives negative
corrections) amplifies it.  Disagreement with the simulation pulls both
goal counts toward a draw.  Confidence is the base confidence scaled by
``(1 - injury) x (1 - form) x alignment``.
"""

import logging
from typing import List, Optional, Sequence, Tuple

from matchmind.core.entities import (
    AdjustedPrediction,
    BasePrediction,
    ContextFactorType,
    Scoreline,
)
from matchmind.core.interfaces import ContextFactor, SimulationResult, as_factor_tuple
from matchmind.core.model_config import (
    ContextConfig,
    clamp,
    tier_at_least,
    tier_at_most,
)

logger = logging.getLogger(__name__)


class ContextAdjustedPredictor:
    """Applies context corrections and simulation alignment to a base prediction."""

    def __init__(self, config: Optional[ContextConfig] = None):
        self.config = config or ContextConfig()

    # ------------------------------------------------------------------
    # Corrections
    # ------------------------------------------------------------------

    def injury_correction(self, factors: Sequence[ContextFactor]) -> float:
        cfg = self.config
        total = sum(
            tier_at_least(f.score, cfg.injury_factor_tiers, cfg.injury_factor_floor)
            for f in factors
            if f.type is ContextFactorType.INJURIES
        )
        return min(total, cfg.max_injury_correction)

    def form_correction(self, factors: Sequence[ContextFactor]) -> float:
        cfg = self.config
        morale = [f for f in factors if f.type is ContextFactorType.TEAM_MORALE]
        if not morale:
            return 0.0
        points = sum(
            tier_at_least(f.score, cfg.morale_points_tiers, cfg.morale_points_floor)
            for f in morale
        )
        return tier_at_most(points, cfg.form_correction_tiers, cfg.form_correction_ceiling)

    def pressure_correction(self, factors: Sequence[ContextFactor]) -> float:
        cfg = self.config
        points = sum(
            tier_at_least(f.score, cfg.pressure_points_tiers, 0)
            for f in factors
            if f.type is ContextFactorType.PRESSURE
        )
        return tier_at_least(points, cfg.pressure_correction_tiers, 0.0)

    def alignment_factor(self, base: BasePrediction, simulation: Optional[SimulationResult]) -> float:
        cfg = self.config
        if simulation is None:
            return cfg.alignment_neutral
        sim_score = simulation.most_likely_scoreline
        if sim_score == base.scoreline:
            return cfg.alignment_exact
        if sim_score.outcome is base.scoreline.outcome:
            return cfg.alignment_outcome
        return cfg.alignment_mismatch

    # ------------------------------------------------------------------
    # Scoreline adjustment
    # ------------------------------------------------------------------

    def _adjust_goals(
        self, base: BasePrediction, total: float, alignment: float, notes: List[str]
    ) -> Scoreline:
        cfg = self.config
        home, away = base.scoreline.home, base.scoreline.away
        diff = base.power_diff

        if total > cfg.heavy_correction:
            if diff > cfg.strong_gap:
                home = max(int(home * cfg.heavy_shrink), 1)
                away = min(int(away * cfg.underdog_boost), cfg.underdog_cap)
                notes.append("heavy_shrink_home")
            elif diff < -cfg.strong_gap:
                away = max(int(away * cfg.heavy_shrink), 1)
                home = min(int(home * cfg.underdog_boost), cfg.underdog_cap)
                notes.append("heavy_shrink_away")
        elif total > cfg.light_correction:
            if diff > cfg.moderate_gap:
                home = max(int(home * cfg.light_shrink), 1)
                notes.append("light_shrink_home")
            elif diff < -cfg.moderate_gap:
                away = max(int(away * cfg.light_shrink), 1)
                notes.append("light_shrink_away")
        elif total < cfg.boost_correction:
            if diff > 0:
                home = min(int(home * cfg.favourite_boost), cfg.boost_cap)
                notes.append("boost_home")
            elif diff < 0:
                away = min(int(away * cfg.favourite_boost), cfg.boost_cap)
                notes.append("boost_away")

        if alignment < 1.0:
            pull = 1.0 - (1.0 - alignment) * cfg.draw_pull
            home = max(int(home * pull), 0)
            away = max(int(away * pull), 0)
            notes.append("draw_pull")

        return Scoreline.bounded(home, away, 0, cfg.max_goals)

    def adjust(
        self,
        base: BasePrediction,
        factors: Optional[Sequence[ContextFactor]] = None,
        simulation: Optional[SimulationResult] = None,
    ) -> AdjustedPrediction:
        """Apply context corrections and simulation alignment.

        Args:
            base: Deterministic base prediction.
            factors: Context factors for the fixture.  None means no context.
            simulation: Independent simulation, if one is available.

        Returns:
            A new :class:`AdjustedPrediction`; *base* is left untouched.
        """
        factors = as_factor_tuple(factors)
        injury = self.injury_correction(factors)
        form = self.form_correction(factors)
        pressure = self.pressure_correction(factors)
        alignment = self.alignment_factor(base, simulation)
        total = injury + form + pressure

        notes: List[str] = []
        scoreline = self._adjust_goals(base, total, alignment, notes)
        raw_conf = base.confidence * (1.0 - injury) * (1.0 - form) * alignment
        confidence = int(clamp(raw_conf, 0, 100))

        logger.debug(
            "Context adjustment %s -> %s (inj=%.2f form=%.2f press=%.2f align=%.2f conf=%d)",
            base.scoreline, scoreline, injury, form, pressure, alignment, confidence,
        )
        return AdjustedPrediction(
            scoreline=scoreline,
            confidence=confidence,
            injury_correction=injury,
            form_correction=form,
            pressure_correction=pressure,
            alignment_factor=alignment,
            notes=tuple(notes),
        )

    # ------------------------------------------------------------------
    # Quick fix
    # ------------------------------------------------------------------

    def quick_fix(self, base: BasePrediction, factors: Optional[Sequence[ContextFactor]] = None) -> Scoreline:
        """Cheap scoreline correction for dominant favourites with known problems.

        Only touches fixtures with a power gap above ``strong_gap``: a big
        injury load turns a rout into 2-0, poor favourite morale into 2-1,
        and a moderate injury load at a smaller gap into 1-0.
        """
        cfg = self.config
        factors = as_factor_tuple(factors)
        gap = abs(base.power_diff)
        if gap <= cfg.strong_gap:
            return base.scoreline

        injury_load = sum(f.score for f in factors if f.type is ContextFactorType.INJURIES)
        poor_morale = any(
            f.type is ContextFactorType.TEAM_MORALE and f.is_negative for f in factors
        )

        fav, dog = self._quick_fix_goals(gap, injury_load, poor_morale)
        if fav is None:
            return base.scoreline
        if base.power_diff > 0:
            return Scoreline(fav, dog)
        return Scoreline(dog, fav)

    def _quick_fix_goals(self, gap: int, injury_load: int, poor_morale: bool) -> Tuple[Optional[int], int]:
        cfg = self.config
        if gap > cfg.dominant_gap and injury_load > cfg.quick_fix_heavy_injuries:
            return 2, 0
        if gap > cfg.dominant_gap and poor_morale:
            return 2, 1
        if injury_load > cfg.quick_fix_light_injuries:
            return 1, 0
        return None, 0
