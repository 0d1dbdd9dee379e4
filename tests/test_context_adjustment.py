"""
Tests for the context-adjusted predictor
Run with: pytest tests/test_context_adjustment.py -v
"""

import pytest

from matchmind.core.entities import BasePrediction, ContextFactorType, Scoreline
from matchmind.core.interfaces import ContextFactor, SimulationResult
from matchmind.core.model_config import ContextConfig
from matchmind.services.context_adjustment import ContextAdjustedPredictor

INJ = ContextFactorType.INJURIES
MORALE = ContextFactorType.TEAM_MORALE
PRESSURE = ContextFactorType.PRESSURE


def base(home=3, away=0, confidence=90, home_power=140, away_power=67):
    return BasePrediction(
        scoreline=Scoreline(home, away),
        confidence=confidence,
        home_power=home_power,
        away_power=away_power,
        reasoning_tag="test",
    )


def sim(home, away, probs=(0.5, 0.3, 0.2)):
    return SimulationResult(Scoreline(home, away), *probs)


class TestCorrections:
    """Test factor-derived corrections"""

    def test_no_factors_is_neutral(self):
        predictor = ContextAdjustedPredictor()
        result = predictor.adjust(base())
        assert result.scoreline == Scoreline(3, 0)
        assert result.confidence == 90
        assert result.total_correction == 0.0
        assert result.alignment_factor == 1.0

    def test_injury_tiers(self):
        predictor = ContextAdjustedPredictor()
        assert predictor.injury_correction([ContextFactor(INJ, 9)]) == 0.3
        assert predictor.injury_correction([ContextFactor(INJ, 7)]) == 0.2
        assert predictor.injury_correction([ContextFactor(INJ, 2)]) == 0.05

    def test_injury_correction_capped(self):
        predictor = ContextAdjustedPredictor()
        factors = [ContextFactor(INJ, 10) for _ in range(4)]
        assert predictor.injury_correction(factors) == 0.6

    def test_form_correction(self):
        predictor = ContextAdjustedPredictor()
        assert predictor.form_correction([ContextFactor(MORALE, 1), ContextFactor(MORALE, 2)]) == 0.2
        assert predictor.form_correction([ContextFactor(MORALE, 4)]) == 0.15
        assert predictor.form_correction([ContextFactor(MORALE, 6)]) == 0.05
        assert predictor.form_correction([ContextFactor(MORALE, 9)]) == 0.0

    def test_pressure_correction(self):
        predictor = ContextAdjustedPredictor()
        assert predictor.pressure_correction([ContextFactor(PRESSURE, 9)]) == 0.1
        assert predictor.pressure_correction([ContextFactor(PRESSURE, 7)]) == 0.05
        assert predictor.pressure_correction([ContextFactor(PRESSURE, 5)]) == 0.0


class TestAlignment:
    """Test agreement with the simulation"""

    def test_exact_match(self):
        assert ContextAdjustedPredictor().alignment_factor(base(), sim(3, 0)) == 1.5

    def test_same_outcome(self):
        assert ContextAdjustedPredictor().alignment_factor(base(), sim(2, 1)) == 1.2

    def test_mismatch(self):
        assert ContextAdjustedPredictor().alignment_factor(base(), sim(1, 1)) == 0.8

    def test_confidence_boosted_but_clamped(self):
        result = ContextAdjustedPredictor().adjust(base(), [], sim(3, 0))
        assert result.confidence == 100

    def test_mismatch_pulls_toward_draw(self):
        result = ContextAdjustedPredictor().adjust(base(), [], sim(0, 2))
        # pull = 1 - 0.2 x 0.3 = 0.94; int(3 x 0.94) = 2
        assert result.scoreline == Scoreline(2, 0)
        assert result.confidence == 72
        assert "draw_pull" in result.notes


class TestGoalAdjustment:
    """Test margin shrinking and amplification"""

    def test_heavy_correction_shrinks_strong_favourite(self):
        factors = [ContextFactor(INJ, 9), ContextFactor(INJ, 5)]  # 0.45
        result = ContextAdjustedPredictor().adjust(base(3, 0), factors)
        # home int(3 x 0.7) = 2, away int(0 x 1.3) = 0
        assert result.scoreline == Scoreline(2, 0)
        assert abs(result.injury_correction - 0.45) < 1e-9
        assert result.confidence == 49  # 90 x 0.55

    def test_heavy_correction_away_favourite(self):
        factors = [ContextFactor(INJ, 9), ContextFactor(INJ, 5)]
        result = ContextAdjustedPredictor().adjust(base(0, 3, home_power=59, away_power=134), factors)
        assert result.scoreline == Scoreline(0, 2)

    def test_light_correction_moderate_favourite(self):
        factors = [ContextFactor(INJ, 7)]  # 0.2
        result = ContextAdjustedPredictor().adjust(base(2, 1, 75, home_power=100, away_power=80), factors)
        # int(2 x 0.85) = 1, floor of 1
        assert result.scoreline == Scoreline(1, 1)

    def test_light_correction_ignores_small_gap(self):
        factors = [ContextFactor(INJ, 7)]
        result = ContextAdjustedPredictor().adjust(base(1, 1, 60, home_power=90, away_power=85), factors)
        assert result.scoreline == Scoreline(1, 1)

    def test_negative_total_amplifies_favourite(self):
        # A tuned table where excellent morale is a net positive
        cfg = ContextConfig(form_correction_ceiling=-0.15)
        predictor = ContextAdjustedPredictor(cfg)
        result = predictor.adjust(base(3, 1, home_power=140, away_power=100), [ContextFactor(MORALE, 10)])
        # int(3 x 1.15) = 3, capped at 4
        assert result.scoreline == Scoreline(3, 1)
        assert "boost_home" in result.notes

    def test_goals_stay_in_range(self):
        predictor = ContextAdjustedPredictor()
        for factors in ([], [ContextFactor(INJ, 10)] * 3, [ContextFactor(MORALE, 1)]):
            for simulation in (None, sim(0, 3), sim(3, 0)):
                result = predictor.adjust(base(3, 0), factors, simulation)
                assert 0 <= result.scoreline.home <= 5
                assert 0 <= result.scoreline.away <= 5
                assert 0 <= result.confidence <= 100

    def test_base_untouched(self):
        original = base()
        ContextAdjustedPredictor().adjust(original, [ContextFactor(INJ, 10)])
        assert original.scoreline == Scoreline(3, 0)


class TestQuickFix:
    """Test the dominant-favourite shortcut"""

    def test_heavy_injuries(self):
        b = base(3, 0, home_power=160, away_power=100)
        assert ContextAdjustedPredictor().quick_fix(b, [ContextFactor(INJ, 9)]) == Scoreline(2, 0)

    def test_poor_morale(self):
        b = base(3, 0, home_power=160, away_power=100)
        assert ContextAdjustedPredictor().quick_fix(b, [ContextFactor(MORALE, 3)]) == Scoreline(2, 1)

    def test_moderate_gap_injuries(self):
        b = base(3, 0, home_power=140, away_power=100)
        assert ContextAdjustedPredictor().quick_fix(b, [ContextFactor(INJ, 5)]) == Scoreline(1, 0)

    def test_away_mirrored(self):
        b = base(0, 3, home_power=100, away_power=160)
        assert ContextAdjustedPredictor().quick_fix(b, [ContextFactor(INJ, 9)]) == Scoreline(0, 2)

    def test_small_gap_untouched(self):
        b = base(1, 1, 60, home_power=100, away_power=95)
        assert ContextAdjustedPredictor().quick_fix(b, [ContextFactor(INJ, 10)]) == Scoreline(1, 1)


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
