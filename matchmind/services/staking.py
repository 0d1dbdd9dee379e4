"""
Staking engine: fractional-Kelly stake, value score and risk level.

For each 1X2 market with a usable price the engine computes

    full Kelly      (b·p − q) / b               b = odds − 1
    kelly           full x 0.25 x confidence    clamped to [0, 0.05]
    edge            max(0, p − 1/odds)          closing odds when quoted
    value score     kelly tier + edge tier      0-10

The best market is the one with the highest value score (ties: larger
Kelly, then HOME/DRAW/AWAY).  The recommended stake for it is

    full Kelly x 0.25 x confidence x min(1 + 2·edge, 1.5)

clamped to [0.5%, 5%] of bankroll.  When no market has a positive Kelly
there is no stake (``None``).

Risk is a points score: Kelly size (up to 40), low confidence (up to 30)
and thin edge (up to 30), mapped to LOW / MEDIUM / HIGH / VERY_HIGH.

Invalid predictions (a probability outside (0, 1), or a triple summing to
0.95 or less) produce :meth:`KellyResult.empty`, never an exception.
"""

import logging
import math
from typing import Dict, Optional

from matchmind.core.entities import (
    FinalPrediction,
    KellyResult,
    MarketAssessment,
    OddsQuote,
    Outcome,
    RiskLevel,
)
from matchmind.core.kelly import edge_multiplier, fractional_kelly, full_kelly, value_edge
from matchmind.core.model_config import StakingConfig, clamp, tier_at_least, tier_below
from matchmind.core.odds_math import implied_probability, is_valid_price

logger = logging.getLogger(__name__)

_MARKET_ORDER = (Outcome.HOME, Outcome.DRAW, Outcome.AWAY)


class StakingEngine:
    """Turns a :class:`FinalPrediction` plus odds into a :class:`KellyResult`."""

    def __init__(self, config: Optional[StakingConfig] = None):
        self.config = config or StakingConfig()

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    def probabilities_valid(self, probabilities: Dict[Outcome, float]) -> bool:
        values = list(probabilities.values())
        if any(not math.isfinite(p) or not 0.0 < p < 1.0 for p in values):
            return False
        return sum(values) > self.config.min_probability_sum

    # ------------------------------------------------------------------
    # Scoring
    # ------------------------------------------------------------------

    def value_score(self, kelly: Optional[float], edge: float) -> int:
        cfg = self.config
        if kelly is None or kelly <= 0 or edge <= 0:
            return 0
        score = (
            tier_at_least(kelly, cfg.kelly_value_tiers, cfg.value_floor)
            + tier_at_least(edge, cfg.edge_value_tiers, cfg.value_floor)
        )
        return int(clamp(score, 0, cfg.max_value_score))

    def risk_level(self, best: Optional[MarketAssessment], confidence: float) -> RiskLevel:
        cfg = self.config
        if best is None or best.kelly is None or best.kelly <= 0:
            return RiskLevel.LOW
        points = (
            tier_at_least(best.kelly, cfg.kelly_risk_points, cfg.kelly_risk_floor)
            + tier_below(confidence, cfg.confidence_risk_points, cfg.confidence_risk_floor)
            + tier_at_least(best.edge, cfg.edge_risk_points, cfg.edge_risk_floor)
        )
        return tier_at_least(points, cfg.risk_tiers, RiskLevel.LOW)

    def assess_market(
        self,
        market: Outcome,
        probability: float,
        confidence: float,
        odds: OddsQuote,
        closing_odds: Optional[OddsQuote],
    ) -> MarketAssessment:
        cfg = self.config
        price = odds.get(market)
        closing = closing_odds.get(market) if closing_odds is not None else None
        reference = closing if is_valid_price(closing) else price
        market_prob = implied_probability(reference) if is_valid_price(reference) else None

        full = full_kelly(probability, price)
        kelly = fractional_kelly(
            probability,
            price,
            confidence=confidence,
            fraction=cfg.fractional_kelly,
            max_fraction=cfg.max_stake,
        )
        edge = value_edge(probability, market_prob)
        return MarketAssessment(
            market=market,
            probability=probability,
            odds=price,
            market_probability=market_prob,
            full_kelly=full,
            kelly=kelly,
            edge=edge,
            value_score=self.value_score(kelly, edge),
        )

    def best_market(self, markets: Dict[Outcome, MarketAssessment]) -> MarketAssessment:
        """Highest value score; ties by larger Kelly, then market order."""
        def key(market: Outcome):
            a = markets[market]
            kelly = a.kelly if a.kelly is not None else -math.inf
            return (a.value_score, kelly, -_MARKET_ORDER.index(market))

        return markets[max(markets, key=key)]

    def recommended_stake(self, best: MarketAssessment, confidence: float) -> Optional[float]:
        cfg = self.config
        if best.full_kelly is None or best.kelly is None or best.kelly <= 0:
            return None
        stake = (
            best.full_kelly
            * cfg.fractional_kelly
            * confidence
            * edge_multiplier(best.edge, slope=cfg.edge_multiplier_slope, cap=cfg.max_edge_multiplier)
        )
        return float(clamp(stake, cfg.min_stake, cfg.max_stake))

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def stake(
        self,
        prediction: FinalPrediction,
        odds: OddsQuote,
        closing_odds: Optional[OddsQuote] = None,
    ) -> KellyResult:
        """Size a bet on the fixture.

        Args:
            prediction: Fused prediction (probabilities and confidence).
            odds: Opening 1X2 quote.  Unquoted or invalid markets are
                reported with a ``None`` Kelly.
            closing_odds: Closing-line quote, used for the edge when present.

        Returns:
            A :class:`KellyResult`, or :meth:`KellyResult.empty` when the
            prediction's probabilities cannot be staked.
        """
        probabilities = prediction.probabilities
        if not self.probabilities_valid(probabilities):
            logger.debug("Refusing to stake: invalid probabilities %s", probabilities)
            return KellyResult.empty()

        confidence = clamp(prediction.confidence / 100.0, 0.0, 1.0)
        markets = {
            market: self.assess_market(market, probabilities[market], confidence, odds, closing_odds)
            for market in _MARKET_ORDER
        }
        best = self.best_market(markets)
        has_value = best.kelly is not None and best.kelly > 0
        stake = self.recommended_stake(best, confidence)
        risk = self.risk_level(best, confidence)

        notes = [f"best:{best.market.value}"]
        if not has_value:
            notes.append("no_value")
        if closing_odds is not None:
            notes.append("closing_line")

        logger.debug(
            "Stake %s on %s (kelly=%s, edge=%.3f, risk=%s)",
            stake, best.market.value, best.kelly, best.edge, risk.value,
        )
        return KellyResult(
            markets=markets,
            best_market=best.market,
            recommended_stake=stake,
            risk_level=risk,
            confidence=confidence,
            notes=tuple(notes),
        )
