"""
Prediction pipeline orchestration.

Runs the pure components in order for one fixture:

    standings ─► base prediction ─┬─► context adjustment
                                  ├─► score distribution
                                  └─► fusion ─► staking

The base prediction is synchronous and always available first.  The
simulation and context-enhancement providers are slow external lookups
(news, LLM, Monte Carlo) and are awaited concurrently with a timeout.  A
provider that times out, raises, or returns an invalid result is treated
as absent: fusion redistributes its weight and the refined prediction is
flagged ``degraded``.  Nothing a provider does can take away the base
prediction that :meth:`PredictionPipeline.stream` has already yielded.

Configuration comes from :meth:`ModelConfig.from_env`; a ``.env`` file in
the working directory is loaded on import.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import AsyncIterator, Dict, Optional, Sequence, Tuple

from dotenv import load_dotenv

from matchmind.core.entities import (
    AdjustedPrediction,
    BasePrediction,
    FinalPrediction,
    KellyResult,
    OddsQuote,
    PlayerInjury,
    RecentResult,
    ScoreDistribution,
    Side,
    TeamStanding,
)
from matchmind.core.exceptions import EnhancementUnavailable, MatchMindError
from matchmind.core.interfaces import (
    ContextEnhancement,
    EnhancementProvider,
    SimulationProvider,
    SimulationResult,
)
from matchmind.core.model_config import ModelConfig
from matchmind.services.context_adjustment import ContextAdjustedPredictor
from matchmind.services.form import FormCalculator, FormSummary
from matchmind.services.fusion import HybridFusionEngine
from matchmind.services.injuries import InjuryImpactCalculator, TeamInjuryMatrix
from matchmind.services.power_score import PowerScoreModel
from matchmind.services.score_distribution import ScoreDistributionModel
from matchmind.services.staking import StakingEngine

load_dotenv()

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Data structures
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class FixtureRequest:
    """Everything known about one fixture when a prediction is requested.

    Odds are checked on construction: a quoted price at or below 1.0 raises
    :class:`~matchmind.core.exceptions.InvalidOddsError`.
    """

    home: Optional[TeamStanding] = None
    away: Optional[TeamStanding] = None
    home_results: Sequence[RecentResult] = ()
    away_results: Sequence[RecentResult] = ()
    home_injuries: Sequence[PlayerInjury] = ()
    away_injuries: Sequence[PlayerInjury] = ()
    odds: Optional[OddsQuote] = None
    closing_odds: Optional[OddsQuote] = None
    home_source_quality: Optional[float] = None
    label: str = ""

    def __post_init__(self) -> None:
        if self.odds is not None:
            self.odds.validate()
        if self.closing_odds is not None:
            self.closing_odds.validate()


@dataclass(frozen=True)
class RefinedPrediction:
    """All outputs of the refinement stage."""

    base: BasePrediction
    adjusted: AdjustedPrediction
    distribution: ScoreDistribution
    final: FinalPrediction
    form: Dict[Side, FormSummary]
    injuries: Dict[Side, TeamInjuryMatrix]
    simulation: Optional[SimulationResult] = None
    enhancement: Optional[ContextEnhancement] = None
    degraded: bool = False
    notes: Tuple[str, ...] = ()


@dataclass(frozen=True)
class PipelineUpdate:
    """One emission of :meth:`PredictionPipeline.stream`."""

    stage: str  # "base" or "refined"
    base: BasePrediction
    refined: Optional[RefinedPrediction] = None
    staking: Optional[KellyResult] = None

    @property
    def is_final(self) -> bool:
        return self.stage == "refined"


# ---------------------------------------------------------------------------
# Pipeline
# ---------------------------------------------------------------------------

class PredictionPipeline:
    """Base prediction first, refined prediction and stake when providers answer."""

    def __init__(
        self,
        config: Optional[ModelConfig] = None,
        simulation_provider: Optional[SimulationProvider] = None,
        enhancement_provider: Optional[EnhancementProvider] = None,
    ):
        self.config = config or ModelConfig.default()
        self.simulation_provider = simulation_provider
        self.enhancement_provider = enhancement_provider

        self.power_model = PowerScoreModel(self.config.power)
        self.form_calculator = FormCalculator(self.config.corrections)
        self.injury_calculator = InjuryImpactCalculator(self.config.corrections)
        self.context_predictor = ContextAdjustedPredictor(self.config.context)
        self.distribution_model = ScoreDistributionModel(self.config.distribution)
        self.fusion_engine = HybridFusionEngine(self.config.fusion)
        self.staking_engine = StakingEngine(self.config.staking)

    # ------------------------------------------------------------------
    # Stage 1: base
    # ------------------------------------------------------------------

    def predict_base(self, request: FixtureRequest) -> BasePrediction:
        """Synchronous base prediction.  Never waits on a provider."""
        return self.power_model.compute_base(request.home, request.away, request.home_source_quality)

    # ------------------------------------------------------------------
    # Providers
    # ------------------------------------------------------------------

    async def _await_provider(self, name: str, coro):
        timeout = self.config.provider_timeout
        try:
            return await asyncio.wait_for(coro, timeout=timeout)
        except asyncio.TimeoutError as exc:
            raise EnhancementUnavailable(f"{name} timed out after {timeout:.1f}s") from exc
        except MatchMindError as exc:
            raise EnhancementUnavailable(f"{name} rejected input: {exc}") from exc
        except Exception as exc:
            logger.error("%s provider failed: %s", name, exc, exc_info=True)
            raise EnhancementUnavailable(f"{name} failed: {exc}") from exc

    async def fetch_simulation(self, home: TeamStanding, away: TeamStanding) -> Optional[SimulationResult]:
        if self.simulation_provider is None:
            return None
        result = await self._await_provider(
            self.simulation_provider.name, self.simulation_provider.simulate(home, away)
        )
        if result is not None:
            try:
                result.validate()
            except MatchMindError as exc:
                raise EnhancementUnavailable(f"invalid simulation result: {exc}") from exc
        return result

    async def fetch_enhancement(self, home: TeamStanding, away: TeamStanding) -> Optional[ContextEnhancement]:
        if self.enhancement_provider is None:
            return None
        return await self._await_provider(
            self.enhancement_provider.name, self.enhancement_provider.enhance(home, away)
        )

    async def _gather_sources(self, home: TeamStanding, away: TeamStanding):
        """Run both providers concurrently; failures become None plus a note."""
        sim_result, enh_result = await asyncio.gather(
            self.fetch_simulation(home, away),
            self.fetch_enhancement(home, away),
            return_exceptions=True,
        )
        notes = []
        outputs = []
        for label, outcome in (("simulation", sim_result), ("enhancement", enh_result)):
            if isinstance(outcome, (EnhancementUnavailable, asyncio.CancelledError)):
                logger.warning("Falling back without %s: %s", label, outcome or "cancelled")
                notes.append(f"fallback:{label}")
                outputs.append(None)
            elif isinstance(outcome, BaseException):
                raise outcome
            else:
                outputs.append(outcome)
        return outputs[0], outputs[1], notes

    # ------------------------------------------------------------------
    # Stage 2: refinement
    # ------------------------------------------------------------------

    def refine_with(
        self,
        request: FixtureRequest,
        base: BasePrediction,
        simulation: Optional[SimulationResult],
        enhancement: Optional[ContextEnhancement],
        notes: Sequence[str] = (),
    ) -> RefinedPrediction:
        """Synchronous refinement from already-fetched sources."""
        factors = list(enhancement.context_factors) if enhancement is not None else []
        adjusted = self.context_predictor.adjust(base, factors, simulation)
        distribution = self.distribution_model.distribute(base.power_diff, factors)
        final = self.fusion_engine.fuse(base, simulation, enhancement)

        form = {
            Side.HOME: self.form_calculator.summarize(request.home_results),
            Side.AWAY: self.form_calculator.summarize(request.away_results),
        }
        injuries = {
            Side.HOME: self.injury_calculator.build_matrix("home", request.home_injuries),
            Side.AWAY: self.injury_calculator.build_matrix("away", request.away_injuries),
        }
        return RefinedPrediction(
            base=base,
            adjusted=adjusted,
            distribution=distribution,
            final=final,
            form=form,
            injuries=injuries,
            simulation=simulation,
            enhancement=enhancement,
            degraded=bool(notes),
            notes=tuple(notes),
        )

    async def refine(self, request: FixtureRequest, base: BasePrediction) -> RefinedPrediction:
        home = self.power_model.resolve(request.home, "home")
        away = self.power_model.resolve(request.away, "away")
        simulation, enhancement, notes = await self._gather_sources(home, away)
        refined = self.refine_with(request, base, simulation, enhancement, notes)
        logger.info(
            "Refined %s: %s -> %s (conf %d, rule %s%s)",
            request.label or "fixture", base.scoreline, refined.final.scoreline,
            refined.final.confidence, refined.final.rule,
            ", degraded" if refined.degraded else "",
        )
        return refined

    def stake(self, request: FixtureRequest, final: FinalPrediction) -> Optional[KellyResult]:
        if request.odds is None or request.odds.is_empty:
            return None
        return self.staking_engine.stake(final, request.odds, request.closing_odds)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def stream(self, request: FixtureRequest) -> AsyncIterator[PipelineUpdate]:
        """Yield the base prediction immediately, then the refined one."""
        base = self.predict_base(request)
        logger.info("Base %s: %s (conf %d)", request.label or "fixture", base.scoreline, base.confidence)
        yield PipelineUpdate(stage="base", base=base)

        refined = await self.refine(request, base)
        yield PipelineUpdate(
            stage="refined",
            base=base,
            refined=refined,
            staking=self.stake(request, refined.final),
        )

    async def run(self, request: FixtureRequest) -> PipelineUpdate:
        """Run to completion and return the refined update."""
        update = None
        async for update in self.stream(request):
            pass
        return update


_pipeline: Optional[PredictionPipeline] = None


def get_prediction_pipeline() -> PredictionPipeline:
    """Process-wide pipeline configured from the environment, without providers."""
    global _pipeline
    if _pipeline is None:
        _pipeline = PredictionPipeline(ModelConfig.from_env())
        logger.info("Prediction pipeline initialised: %r", _pipeline.config)
    return _pipeline
