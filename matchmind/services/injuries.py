"""
Injury correction and squad availability analysis.

Quantifies how much a team's injury list should dent the prediction's
confidence.  Each unavailable player contributes

    role weight x severity multiplier x importance multiplier

Role weights reflect how hard a position is to cover (a first-choice
goalkeeper more than a midfielder); severity reflects how long the player
is out (a doubtful player counts for less than a long-term absentee);
importance reflects where he sits in the pecking order.

The summed impact is capped at 0.6 so that even a full crisis leaves a
correction factor of 0.4.  The tables are configuration defaults in
:class:`~matchmind.core.model_config.CorrectionConfig`, not measured
constants.
"""

import logging
from collections import Counter
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

from matchmind.core.entities import (
    InjurySeverity,
    PlayerImportance,
    PlayerInjury,
    PlayerRole,
)
from matchmind.core.model_config import CorrectionConfig, tier_at_least

logger = logging.getLogger(__name__)

_CRITICAL_SEVERITIES = frozenset({InjurySeverity.LONG_TERM, InjurySeverity.MEDIUM_TERM})


# ---------------------------------------------------------------------------
# Data structures
# ---------------------------------------------------------------------------

@dataclass
class TeamInjuryMatrix:
    """Aggregate injury state for a single team."""

    team: str
    injuries: List[PlayerInjury] = field(default_factory=list)
    total_impact: float = 0.0
    correction: float = 1.0
    positional_impact: Dict[PlayerRole, float] = field(default_factory=dict)
    critical: bool = False
    most_significant: Optional[PlayerInjury] = None


# ---------------------------------------------------------------------------
# Impact estimation
# ---------------------------------------------------------------------------

class InjuryImpactCalculator:
    """Pure calculator over an injury list.  Order never matters."""

    def __init__(self, config: Optional[CorrectionConfig] = None):
        self.config = config or CorrectionConfig()

    def player_impact(self, injury: PlayerInjury) -> float:
        cfg = self.config
        role = cfg.role_weights.get(injury.role, cfg.role_weights[PlayerRole.UNKNOWN])
        severity = cfg.severity_multipliers.get(
            injury.severity, cfg.severity_multipliers[InjurySeverity.UNKNOWN]
        )
        importance = cfg.importance_multipliers.get(
            injury.importance, cfg.importance_multipliers[PlayerImportance.UNKNOWN]
        )
        return role * severity * importance

    def injury_correction(self, injuries: Sequence[PlayerInjury]) -> float:
        """Multiplicative factor in ``[0.4, 1.0]``; 1.0 for no injuries."""
        if not injuries:
            return 1.0
        total = sum(self.player_impact(inj) for inj in injuries)
        return 1.0 - min(total, self.config.max_injury_impact)

    def team_injury_impact(self, injuries: Sequence[PlayerInjury]) -> float:
        """Uncapped-by-correction impact, clamped to ``[0, max_team_impact]``."""
        total = sum(self.player_impact(inj) for inj in injuries)
        return min(total, self.config.max_team_impact)

    def positional_impact(self, injuries: Sequence[PlayerInjury]) -> Dict[PlayerRole, float]:
        """Impact per role, amplified when several players in one role are out.

        Three or more injuries in a role multiply that role's impact by 1.5,
        two by 1.3.  Each role is clamped to ``max_team_impact``.
        """
        counts = Counter(inj.role for inj in injuries)
        impact: Dict[PlayerRole, float] = {}
        for role, count in counts.items():
            base = sum(self.player_impact(inj) for inj in injuries if inj.role is role)
            crisis = tier_at_least(count, self.config.crisis_multipliers, 1.0)
            impact[role] = min(base * crisis, self.config.max_team_impact)
        return impact

    def has_critical_injuries(self, injuries: Sequence[PlayerInjury]) -> bool:
        """Two or more key players out long or medium term."""
        key_out = sum(
            1 for inj in injuries
            if inj.importance is PlayerImportance.KEY_PLAYER and inj.severity in _CRITICAL_SEVERITIES
        )
        return key_out >= self.config.critical_key_players

    def most_significant_injury(self, injuries: Sequence[PlayerInjury]) -> Optional[PlayerInjury]:
        if not injuries:
            return None
        return max(injuries, key=self.player_impact)

    def build_matrix(self, team: str, injuries: Sequence[PlayerInjury]) -> TeamInjuryMatrix:
        matrix = TeamInjuryMatrix(
            team=team,
            injuries=list(injuries),
            total_impact=self.team_injury_impact(injuries),
            correction=self.injury_correction(injuries),
            positional_impact=self.positional_impact(injuries),
            critical=self.has_critical_injuries(injuries),
            most_significant=self.most_significant_injury(injuries),
        )
        if matrix.critical:
            logger.info(
                "%s: critical injury situation (%d players out, correction %.2f)",
                team, len(matrix.injuries), matrix.correction,
            )
        return matrix


def injury_correction(injuries: Sequence[PlayerInjury]) -> float:
    """Module-level shortcut using the default tables."""
    return InjuryImpactCalculator().injury_correction(injuries)
