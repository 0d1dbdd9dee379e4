"""Typed failures raised by the prediction and staking core.

Only programmer-error-class violations are raised: a standing with zero games
played, a rank of zero, a source quality of 1.3, odds of 0.95 coming out of a
feed parser.  Missing data is never an error; callers pass ``None`` and get
the neutral default documented on each component.

Every validation failure is also a :class:`ValueError`, so code written
against the plain ``ValueError`` contract of :mod:`matchmind.core.kelly`
keeps working.
"""

from __future__ import annotations


class MatchMindError(Exception):
    """Base class for every error raised by this package."""


class ValidationError(MatchMindError, ValueError):
    """An input violates a documented domain constraint."""


class InvalidStandingError(ValidationError):
    """Standings snapshot with non-positive rank or games played."""


class InvalidOddsError(ValidationError):
    """Decimal odds at or below 1.0 (a guaranteed loss or no price)."""


class InvalidProbabilityError(ValidationError):
    """Probability outside [0, 1] or a triple that does not sum to ~1."""


class EnhancementUnavailable(MatchMindError):
    """An asynchronous provider failed or timed out.

    Raised inside :mod:`matchmind.services.pipeline` and always converted
    into the "source absent" fallback before it reaches a caller.
    """
