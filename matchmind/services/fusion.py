"""
Hybrid fusion engine: one final prediction from three sources.

Sources:
    * oracle       the deterministic power-score base prediction (always)
    * simulation   an external Monte-Carlo result (optional)
    * context      an external enhancement with factors and outliers (optional)

Weights start at oracle 0.2 / 0.3 / 0.4 (rising with base confidence),
simulation 0.3 and context 0.3.  An absent source hands its weight to the
present ones in equal shares; an enhancement without any factors keeps only
0.1.  The weights are then normalised to sum to 1.

The scoreline comes from an ordered list of override rules, first match
wins:

    1. outlier_dominance     confident base + a >30% outlier: shrink goals
                             by the outlier's effect (red card 0.7,
                             weather 0.6, injury 0.8)
    2. draw_bias             simulation draw probability > 0.4
    3. high_risk_dampening   enhancement risk HIGH: 75/25 blend, cap 3
    4. weighted_average      default blend of base and simulation

Rules 1 and 2 can both match (a confident base whose simulation leans
towards a draw).  Priority order resolves this in favour of the outlier
rule; the trace in ``FinalPrediction.notes`` records when rule 2 was
shadowed so the choice can be audited.

Outcome probabilities are needed downstream for staking but the oracle and
the context source are scorelines, not distributions.  Each scoreline is
turned into 1X2 probabilities with a Skellam model of the goal difference
(independent Poisson goals with the scoreline as rates), then blended with
the simulation's probabilities by the fusion weights.
"""

import logging
import re
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Sequence, Tuple

import numpy as np
from scipy.stats import skellam

from matchmind.core.entities import (
    BasePrediction,
    FinalPrediction,
    FusionWeights,
    Outcome,
    PredictionSource,
    RiskLevel,
    Scoreline,
)
from matchmind.core.interfaces import ContextEnhancement, OutlierScenario, SimulationResult
from matchmind.core.model_config import FusionConfig, clamp, round_half_up

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Rule plumbing
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class FusionInputs:
    """Everything a rule may look at."""

    base: BasePrediction
    simulation: Optional[SimulationResult]
    enhancement: Optional[ContextEnhancement]
    weights: FusionWeights

    @property
    def simulation_scoreline(self) -> Scoreline:
        # No simulation: the base scoreline stands in, so blends are neutral.
        if self.simulation is None:
            return self.base.scoreline
        return self.simulation.most_likely_scoreline


@dataclass(frozen=True)
class FusionRule:
    """One override: fires when ``predicate`` holds, ``handler`` picks the scoreline."""

    name: str
    predicate: Callable[[FusionInputs], bool]
    handler: Callable[[FusionInputs], Tuple[Scoreline, List[str]]]


# ---------------------------------------------------------------------------
# Engine
# ---------------------------------------------------------------------------

class HybridFusionEngine:
    """Combines base, simulation and context into a :class:`FinalPrediction`."""

    def __init__(self, config: Optional[FusionConfig] = None):
        self.config = config or FusionConfig()
        self._outlier_patterns = [
            (label, self._keyword_pattern(keywords), multiplier)
            for label, keywords, multiplier in self.config.outlier_effects
        ]
        self.rules: Tuple[FusionRule, ...] = (
            FusionRule("outlier_dominance", self._outlier_dominates, self._apply_outlier),
            FusionRule("draw_bias", self._draw_likely, self._apply_draw_bias),
            FusionRule("high_risk_dampening", self._high_risk, self._apply_high_risk),
            FusionRule("weighted_average", lambda inputs: True, self._apply_weighted_average),
        )

    # ------------------------------------------------------------------
    # Weights
    # ------------------------------------------------------------------

    def oracle_weight(self, confidence: int) -> float:
        for threshold, weight in self.config.oracle_weight_tiers:
            if confidence > threshold:
                return weight
        return self.config.oracle_weight_floor

    def compute_weights(
        self,
        base: BasePrediction,
        simulation: Optional[SimulationResult],
        enhancement: Optional[ContextEnhancement],
    ) -> FusionWeights:
        cfg = self.config
        weights = {
            PredictionSource.ORACLE: self.oracle_weight(base.confidence),
            PredictionSource.SIMULATION: cfg.simulation_weight,
            PredictionSource.CONTEXT: cfg.context_weight,
        }

        if enhancement is not None and not enhancement.context_factors:
            freed = max(weights[PredictionSource.CONTEXT] - cfg.empty_context_weight, 0.0)
            weights[PredictionSource.CONTEXT] = min(cfg.empty_context_weight, cfg.context_weight)
            weights[PredictionSource.ORACLE] += freed / 2
            weights[PredictionSource.SIMULATION] += freed / 2

        present = {
            PredictionSource.ORACLE: True,
            PredictionSource.SIMULATION: simulation is not None,
            PredictionSource.CONTEXT: enhancement is not None,
        }
        freed = sum(w for src, w in weights.items() if not present[src])
        receivers = [src for src, ok in present.items() if ok]
        for src in weights:
            if not present[src]:
                weights[src] = 0.0
        for src in receivers:
            weights[src] += freed / len(receivers)

        total = sum(weights.values())
        return FusionWeights(
            oracle=weights[PredictionSource.ORACLE] / total,
            simulation=weights[PredictionSource.SIMULATION] / total,
            context=weights[PredictionSource.CONTEXT] / total,
        )

    # ------------------------------------------------------------------
    # Rule 1: outlier dominance
    # ------------------------------------------------------------------

    def _significant_outliers(self, inputs: FusionInputs) -> List[OutlierScenario]:
        if inputs.enhancement is None:
            return []
        return [
            o for o in inputs.enhancement.outlier_scenarios
            if o.probability > self.config.outlier_probability
        ]

    def _outlier_dominates(self, inputs: FusionInputs) -> bool:
        return (
            inputs.base.confidence > self.config.outlier_confidence
            and bool(self._significant_outliers(inputs))
        )

    @staticmethod
    def _keyword_pattern(keywords: Sequence[str]):
        alternatives = "|".join(re.escape(k) for k in keywords)
        return re.compile(rf"\b(?:{alternatives})\b", re.IGNORECASE)

    def outlier_effect(self, outlier: OutlierScenario) -> Tuple[str, float]:
        """Classify an outlier by whole-word keyword: (label, goal multiplier)."""
        for label, pattern, multiplier in self._outlier_patterns:
            if pattern.search(outlier.description):
                return label, multiplier
        return "unclassified", 1.0

    def _apply_outlier(self, inputs: FusionInputs):
        outliers = self._significant_outliers(inputs)
        strongest = max(outliers, key=lambda o: o.impact_score)
        label, multiplier = self.outlier_effect(strongest)
        base = inputs.base.scoreline
        scoreline = Scoreline.bounded(base.home * multiplier, base.away * multiplier, 0, self.config.max_goals)
        notes = [f"outlier:{label}"]
        if self._draw_likely(inputs):
            notes.append("shadowed:draw_bias")
        return scoreline, notes

    # ------------------------------------------------------------------
    # Rule 2: draw bias
    # ------------------------------------------------------------------

    def _draw_likely(self, inputs: FusionInputs) -> bool:
        return inputs.simulation is not None and inputs.simulation.draw_prob > self.config.draw_probability

    def _apply_draw_bias(self, inputs: FusionInputs):
        sim = inputs.simulation_scoreline
        if sim.home == sim.away:
            return sim, ["draw:simulation"]
        base = inputs.base.scoreline
        home = (base.home + sim.home) // 2
        away = (base.away + sim.away) // 2
        if abs(home - away) <= 1:
            level = (home + away) // 2
            return Scoreline(level, level), ["draw:levelled"]
        if home > away:
            return Scoreline(home - 1, away + 1), ["draw:narrowed"]
        return Scoreline(home + 1, away - 1), ["draw:narrowed"]

    # ------------------------------------------------------------------
    # Rule 3: high risk dampening
    # ------------------------------------------------------------------

    def _high_risk(self, inputs: FusionInputs) -> bool:
        return inputs.enhancement is not None and inputs.enhancement.risk_level is RiskLevel.HIGH

    def _apply_high_risk(self, inputs: FusionInputs):
        cfg = self.config
        share = cfg.high_risk_base_share
        base, sim = inputs.base.scoreline, inputs.simulation_scoreline
        home = min(int(base.home * share + sim.home * (1 - share)), cfg.high_risk_goal_cap)
        away = min(int(base.away * share + sim.away * (1 - share)), cfg.high_risk_goal_cap)
        return Scoreline.bounded(home, away, 0, cfg.max_goals), ["risk:high"]

    # ------------------------------------------------------------------
    # Rule 4: weighted average
    # ------------------------------------------------------------------

    def _apply_weighted_average(self, inputs: FusionInputs):
        w_o, w_s = inputs.weights.oracle, inputs.weights.simulation
        base, sim = inputs.base.scoreline, inputs.simulation_scoreline
        if w_o + w_s <= 0:
            return base, ["average:base_only"]
        home = (base.home * w_o + sim.home * w_s) / (w_o + w_s)
        away = (base.away * w_o + sim.away * w_s) / (w_o + w_s)
        return (
            Scoreline.bounded(round_half_up(home), round_half_up(away), 0, self.config.max_goals),
            [],
        )

    # ------------------------------------------------------------------
    # Confidence and primary source
    # ------------------------------------------------------------------

    def context_confidence(self, enhancement: Optional[ContextEnhancement]) -> int:
        if enhancement is None:
            return 0
        return self.config.context_confidence.get(enhancement.risk_level, 0)

    def fused_confidence(
        self,
        base: BasePrediction,
        simulation: Optional[SimulationResult],
        enhancement: Optional[ContextEnhancement],
        weights: FusionWeights,
    ) -> int:
        sim_conf = simulation.confidence if simulation is not None else 0
        raw = (
            base.confidence * weights.oracle
            + sim_conf * weights.simulation
            + self.context_confidence(enhancement) * weights.context
        )
        return int(clamp(raw, 0, 100))

    def primary_source(
        self,
        base: BasePrediction,
        simulation: Optional[SimulationResult],
        enhancement: Optional[ContextEnhancement],
        weights: FusionWeights,
    ) -> PredictionSource:
        cfg = self.config
        for source, weight in weights.as_dict().items():
            if weight >= cfg.primary_weight:
                return source
        if base.confidence > cfg.oracle_primary_confidence:
            return PredictionSource.ORACLE
        if simulation is not None and max(simulation.home_win_prob, simulation.away_win_prob) > cfg.simulation_primary_probability:
            return PredictionSource.SIMULATION
        if enhancement is not None and len(enhancement.context_factors) >= cfg.context_primary_factors:
            return PredictionSource.CONTEXT
        return PredictionSource.HYBRID

    # ------------------------------------------------------------------
    # Outcome probabilities
    # ------------------------------------------------------------------

    def scoreline_probabilities(self, scoreline: Scoreline) -> Dict[Outcome, float]:
        """1X2 probabilities of a Skellam goal difference centred on *scoreline*."""
        rate = self.config.min_goal_rate
        mu_home = max(float(scoreline.home), rate)
        mu_away = max(float(scoreline.away), rate)
        draw = float(skellam.pmf(0, mu_home, mu_away))
        away = float(skellam.cdf(-1, mu_home, mu_away))
        return {
            Outcome.HOME: max(1.0 - draw - away, 0.0),
            Outcome.DRAW: draw,
            Outcome.AWAY: away,
        }

    def fused_probabilities(
        self,
        base: BasePrediction,
        simulation: Optional[SimulationResult],
        scoreline: Scoreline,
        weights: FusionWeights,
    ) -> Dict[Outcome, float]:
        order = (Outcome.HOME, Outcome.DRAW, Outcome.AWAY)
        oracle = self.scoreline_probabilities(base.scoreline)
        context = self.scoreline_probabilities(scoreline)
        sim = simulation.probabilities if simulation is not None else oracle
        blend = np.array([
            weights.oracle * oracle[o] + weights.simulation * sim[o] + weights.context * context[o]
            for o in order
        ])
        blend = np.nan_to_num(blend, nan=0.0)
        blend = np.maximum(blend, self.config.probability_floor)
        blend = blend / blend.sum()
        return {o: float(p) for o, p in zip(order, blend)}

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def select_rule(self, inputs: FusionInputs) -> FusionRule:
        for rule in self.rules:
            if rule.predicate(inputs):
                return rule
        return self.rules[-1]

    def fuse(
        self,
        base: BasePrediction,
        simulation: Optional[SimulationResult] = None,
        enhancement: Optional[ContextEnhancement] = None,
    ) -> FinalPrediction:
        """Fuse the three sources into a :class:`FinalPrediction`.

        Args:
            base: Deterministic base prediction.
            simulation: External simulation, or None when unavailable.
            enhancement: External context, or None when unavailable.
        """
        weights = self.compute_weights(base, simulation, enhancement)
        inputs = FusionInputs(base=base, simulation=simulation, enhancement=enhancement, weights=weights)
        rule = self.select_rule(inputs)
        scoreline, notes = rule.handler(inputs)

        confidence = self.fused_confidence(base, simulation, enhancement, weights)
        source = self.primary_source(base, simulation, enhancement, weights)
        probs = self.fused_probabilities(base, simulation, scoreline, weights)

        logger.debug(
            "Fusion rule=%s score=%s conf=%d source=%s weights=(%.2f, %.2f, %.2f)",
            rule.name, scoreline, confidence, source.value,
            weights.oracle, weights.simulation, weights.context,
        )
        return FinalPrediction(
            scoreline=scoreline,
            confidence=confidence,
            primary_source=source,
            home_prob=probs[Outcome.HOME],
            draw_prob=probs[Outcome.DRAW],
            away_prob=probs[Outcome.AWAY],
            weights=weights,
            rule=rule.name,
            notes=tuple([f"rule:{rule.name}"] + notes),
        )
