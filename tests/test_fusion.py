"""
Tests for the hybrid fusion engine
Run with: pytest tests/test_fusion.py -v
"""

import pytest

from matchmind.core.entities import (
    BasePrediction,
    ContextFactorType,
    Outcome,
    PredictionSource,
    RiskLevel,
    Scoreline,
)
from matchmind.core.interfaces import (
    ContextEnhancement,
    ContextFactor,
    OutlierScenario,
    SimulationResult,
)
from matchmind.services.fusion import HybridFusionEngine


def base(home=3, away=0, confidence=90):
    return BasePrediction(
        scoreline=Scoreline(home, away),
        confidence=confidence,
        home_power=140,
        away_power=67,
        reasoning_tag="test",
    )


def sim(home=1, away=1, probs=(0.5, 0.3, 0.2)):
    return SimulationResult(Scoreline(home, away), *probs)


def factors(n, score=6):
    return tuple(ContextFactor(ContextFactorType.TACTICAL_CHANGES, score, f"factor {i}") for i in range(n))


def enhancement(n_factors=2, outliers=()):
    return ContextEnhancement(context_factors=factors(n_factors), outlier_scenarios=tuple(outliers))


class TestWeights:
    """Test dynamic weight computation"""

    def test_all_sources_confident_base(self):
        w = HybridFusionEngine().compute_weights(base(), sim(), enhancement())
        assert abs(w.oracle - 0.4) < 1e-9
        assert abs(w.simulation - 0.3) < 1e-9
        assert abs(w.context - 0.3) < 1e-9

    def test_low_confidence_base_renormalised(self):
        w = HybridFusionEngine().compute_weights(base(confidence=60), sim(), enhancement())
        assert abs(w.oracle - 0.25) < 1e-9
        assert abs(w.simulation - 0.375) < 1e-9

    def test_missing_simulation_redistributed(self):
        w = HybridFusionEngine().compute_weights(base(), None, enhancement())
        assert w.simulation == 0.0
        assert abs(w.oracle - 0.55) < 1e-9
        assert abs(w.context - 0.45) < 1e-9

    def test_missing_enhancement_redistributed(self):
        w = HybridFusionEngine().compute_weights(base(), sim(), None)
        assert w.context == 0.0
        assert abs(w.oracle - 0.55) < 1e-9
        assert abs(w.simulation - 0.45) < 1e-9

    def test_only_oracle(self):
        w = HybridFusionEngine().compute_weights(base(), None, None)
        assert w.oracle == 1.0
        assert w.simulation == 0.0 and w.context == 0.0

    def test_empty_enhancement_keeps_small_weight(self):
        w = HybridFusionEngine().compute_weights(base(), sim(), enhancement(0))
        assert abs(w.context - 0.1) < 1e-9
        assert abs(w.oracle - 0.5) < 1e-9
        assert abs(w.simulation - 0.4) < 1e-9

    @pytest.mark.parametrize("confidence", [0, 55, 61, 81, 100])
    @pytest.mark.parametrize("has_sim", [True, False])
    @pytest.mark.parametrize("n_factors", [None, 0, 3])
    def test_weights_sum_to_one(self, confidence, has_sim, n_factors):
        enh = None if n_factors is None else enhancement(n_factors)
        w = HybridFusionEngine().compute_weights(base(confidence=confidence), sim() if has_sim else None, enh)
        assert abs(w.total - 1.0) < 1e-9
        assert min(w.oracle, w.simulation, w.context) >= 0.0


class TestOverrideRules:
    """Test first-match-wins override rules"""

    def test_outlier_red_card(self):
        enh = enhancement(outliers=[OutlierScenario("Red card risk for home captain", 0.4, 7)])
        result = HybridFusionEngine().fuse(base(3, 0), sim(), enh)
        assert result.rule == "outlier_dominance"
        assert result.scoreline == Scoreline(2, 0)
        assert "outlier:red_card" in result.notes

    def test_outlier_weather(self):
        enh = enhancement(outliers=[OutlierScenario("Heavy snow forecast", 0.35, 6)])
        assert HybridFusionEngine().fuse(base(3, 0), sim(), enh).scoreline == Scoreline(1, 0)

    def test_outlier_injury_dutch(self):
        enh = enhancement(outliers=[OutlierScenario("Blessure bij de spits", 0.5, 6)])
        result = HybridFusionEngine().fuse(base(3, 0), sim(), enh)
        # int(3 x 0.8) = 2
        assert result.scoreline == Scoreline(2, 0)
        assert "outlier:injury" in result.notes

    @pytest.mark.parametrize("description", [
        "Striker injured in training",
        "Key defender out with hamstring strain",
        "Spits weer geblesseerd",
    ])
    def test_injury_wording_not_mistaken_for_weather(self, description):
        engine = HybridFusionEngine()
        assert engine.outlier_effect(OutlierScenario(description, 0.5, 7)) == ("injury", 0.8)
        result = engine.fuse(base(3, 0), sim(), enhancement(outliers=[OutlierScenario(description, 0.5, 7)]))
        assert result.scoreline == Scoreline(2, 0)
        assert "outlier:injury" in result.notes

    def test_keywords_match_whole_words(self):
        engine = HybridFusionEngine()
        assert engine.outlier_effect(OutlierScenario("Brainstorming session for the coaches", 0.5, 7)) == ("unclassified", 1.0)
        assert engine.outlier_effect(OutlierScenario("Storm warning for Saturday", 0.5, 7)) == ("weather", 0.6)

    def test_highest_impact_outlier_wins(self):
        enh = enhancement(outliers=[
            OutlierScenario("Heavy snow forecast", 0.5, 4),
            OutlierScenario("Red card suspension", 0.4, 9),
        ])
        assert "outlier:red_card" in HybridFusionEngine().fuse(base(3, 0), sim(), enh).notes

    def test_outlier_needs_confident_base(self):
        enh = enhancement(outliers=[OutlierScenario("Red card risk", 0.4, 7)])
        assert HybridFusionEngine().fuse(base(3, 0, confidence=80), sim(), enh).rule != "outlier_dominance"

    def test_outlier_needs_probability_above_threshold(self):
        enh = enhancement(outliers=[OutlierScenario("Red card risk", 0.3, 7)])
        assert HybridFusionEngine().fuse(base(3, 0), sim(), enh).rule != "outlier_dominance"

    def test_outlier_shadows_draw_bias(self):
        enh = enhancement(outliers=[OutlierScenario("Red card risk", 0.4, 7)])
        result = HybridFusionEngine().fuse(base(3, 0), sim(1, 1, (0.3, 0.45, 0.25)), enh)
        assert result.rule == "outlier_dominance"
        assert "shadowed:draw_bias" in result.notes

    def test_draw_bias_uses_simulated_draw(self):
        result = HybridFusionEngine().fuse(base(2, 1, 75), sim(1, 1, (0.3, 0.45, 0.25)), enhancement())
        assert result.rule == "draw_bias"
        assert result.scoreline == Scoreline(1, 1)

    def test_draw_bias_levels_close_scores(self):
        result = HybridFusionEngine().fuse(base(2, 1, 75), sim(0, 2, (0.3, 0.45, 0.25)), None)
        assert result.scoreline == Scoreline(1, 1)
        assert "draw:levelled" in result.notes

    def test_draw_bias_narrows_wide_scores(self):
        result = HybridFusionEngine().fuse(base(3, 0, 75), sim(4, 0, (0.5, 0.41, 0.09)), None)
        assert result.scoreline == Scoreline(2, 1)

    def test_high_risk_dampening(self):
        enh = enhancement(outliers=[OutlierScenario("Coach sacked on match eve", 0.75, 9)])
        assert enh.risk_level is RiskLevel.HIGH
        result = HybridFusionEngine().fuse(base(2, 1, 75), sim(3, 0), enh)
        assert result.rule == "high_risk_dampening"
        # int(0.75 x 2 + 0.25 x 3) = 2, int(0.75 x 1 + 0) = 0
        assert result.scoreline == Scoreline(2, 0)

    def test_weighted_average(self):
        result = HybridFusionEngine().fuse(base(3, 0), sim(1, 1), enhancement())
        assert result.rule == "weighted_average"
        # home (3 x 0.4 + 1 x 0.3) / 0.7 = 2.14, away 0.3 / 0.7 = 0.43
        assert result.scoreline == Scoreline(2, 0)

    def test_weighted_average_without_simulation_keeps_base(self):
        assert HybridFusionEngine().fuse(base(3, 0), None, None).scoreline == Scoreline(3, 0)

    def test_rules_are_ordered(self):
        names = [rule.name for rule in HybridFusionEngine().rules]
        assert names == ["outlier_dominance", "draw_bias", "high_risk_dampening", "weighted_average"]


class TestConfidenceAndSource:
    """Test fused confidence and primary source"""

    def test_weighted_confidence(self):
        result = HybridFusionEngine().fuse(base(3, 0), sim(), enhancement())
        w = result.weights
        # base 90, simulation 50 (favourite at 0.5), context 80 (LOW risk)
        assert result.confidence == int(90 * w.oracle + 50 * w.simulation + 80 * w.context)
        assert result.confidence in (74, 75)

    def test_oracle_only(self):
        result = HybridFusionEngine().fuse(base(3, 0), None, None)
        assert result.confidence == 90
        assert result.primary_source is PredictionSource.ORACLE

    def test_confident_oracle_is_primary(self):
        assert HybridFusionEngine().fuse(base(3, 0), sim(), enhancement()).primary_source is PredictionSource.ORACLE

    def test_simulation_primary(self):
        result = HybridFusionEngine().fuse(base(1, 1, 60), sim(2, 1, (0.6, 0.25, 0.15)), enhancement())
        assert result.primary_source is PredictionSource.SIMULATION

    def test_context_primary(self):
        result = HybridFusionEngine().fuse(base(1, 1, 60), sim(1, 1, (0.4, 0.3, 0.3)), enhancement(3))
        assert result.primary_source is PredictionSource.CONTEXT

    def test_hybrid_fallback(self):
        result = HybridFusionEngine().fuse(base(1, 1, 60), sim(1, 1, (0.4, 0.3, 0.3)), enhancement(1))
        assert result.primary_source is PredictionSource.HYBRID


class TestProbabilities:
    """Test fused 1X2 probabilities"""

    @pytest.mark.parametrize("simulation", [None, sim(), sim(0, 2, (0.2, 0.3, 0.5))])
    @pytest.mark.parametrize("enh", [None, enhancement(), enhancement(0)])
    def test_valid_triple(self, simulation, enh):
        result = HybridFusionEngine().fuse(base(3, 0), simulation, enh)
        probs = result.probabilities
        assert abs(sum(probs.values()) - 1.0) < 1e-9
        assert all(0.0 < p < 1.0 for p in probs.values())

    def test_home_favourite(self):
        result = HybridFusionEngine().fuse(base(3, 0), None, None)
        assert result.home_prob > result.draw_prob > result.away_prob

    def test_level_scoreline_symmetric(self):
        probs = HybridFusionEngine().scoreline_probabilities(Scoreline(1, 1))
        assert abs(probs[Outcome.HOME] - probs[Outcome.AWAY]) < 1e-9
        assert 0.25 < probs[Outcome.DRAW] < 0.35

    def test_idempotent(self):
        engine = HybridFusionEngine()
        enh = enhancement(outliers=[OutlierScenario("Red card risk", 0.4, 7)])
        assert engine.fuse(base(), sim(), enh) == engine.fuse(base(), sim(), enh)


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
