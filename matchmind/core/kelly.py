"""Kelly criterion sizing, the single source of truth for bet sizing math.

All functions here are **pure**: no I/O, no logging.
Import from this module; never reimplement Kelly locally in services.

The functions cover the sizing steps of the staking engine:

1. :func:`full_kelly`: unscaled Kelly for a win/loss bet, ``None`` when the
   inputs do not describe a bet.
2. :func:`fractional_kelly`: full Kelly scaled by the fractional multiplier
   and by the prediction's confidence, capped at the maximum stake.
3. :func:`value_edge` and :func:`edge_multiplier`: the value edge over the
   market price and the bounded stake boost it earns.

Design decisions
----------------
* **Fractional Kelly** (25% of full Kelly) is the universal practice.  Full
  Kelly maximises long-run log-wealth only with exact probabilities; the
  power-score model's probabilities are coarse, and overbetting is punished
  asymmetrically (geometric ruin vs. forgone EV).
* **Confidence scaling** shrinks the stake further when the fused prediction
  is itself uncertain.  A 60-confidence prediction stakes 60% of what the
  same edge would stake at full confidence.
* **Nullable, not raising.**  A missing or malformed price is an expected
  condition in a 1X2 feed (books pull the draw line, parsers emit 1.0), so
  these functions return ``None`` and let the caller mark the market as
  unpriceable.  Feed validation that must fail loudly lives in
  :meth:`matchmind.core.entities.OddsQuote.validate`.
* The fractional result is never above the unscaled full Kelly.  For a
  negative-EV market the full Kelly itself (``<= 0``) is returned: the
  sign says "do not bet" and no stake is ever derived from it.

Run tests with::

    pytest tests/test_kelly.py -v
"""

from __future__ import annotations

from typing import Final

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

#: Fraction of full Kelly staked.
DEFAULT_FRACTIONAL_KELLY: Final[float] = 0.25

#: Hard cap on any single stake, as a fraction of bankroll.
MAX_STAKE_FRACTION: Final[float] = 0.05

#: Smallest stake worth placing, as a fraction of bankroll.
MIN_STAKE_FRACTION: Final[float] = 0.005

#: Stake boost per unit of value edge: ``1 + slope x edge``.
_EDGE_SLOPE: Final[float] = 2.0

#: Cap on the value-edge stake boost.
_MAX_EDGE_MULTIPLIER: Final[float] = 1.5


# ---------------------------------------------------------------------------
# Standard Kelly
# ---------------------------------------------------------------------------


def full_kelly(win_prob: float, decimal_odds: float | None) -> float | None:
    """Unscaled Kelly fraction for a simple win/loss outcome.

    The closed-form solution (Kelly 1956) is::

        f*  =  (p · b − q) / b                                   (1)

    where ``b = decimal_odds − 1`` is the profit per unit staked and
    ``q = 1 − p``.

    Args:
        win_prob: Our probability of the outcome, in ``(0, 1)``.
        decimal_odds: Decimal odds, stake included.

    Returns:
        ``f*`` (may be negative for a negative-EV bet), or ``None`` when the
        odds are missing or ``<= 1.0`` or ``win_prob`` is outside ``(0, 1)``.

    Examples::

        full_kelly(0.70, 1.5)  →  0.10
        full_kelly(0.20, 4.0)  → -0.0667
        full_kelly(0.70, 1.0)  →  None
    """
    if decimal_odds is None or decimal_odds <= 1.0:
        return None
    if not (0.0 < win_prob < 1.0):
        return None
    profit_per_unit = decimal_odds - 1.0
    loss_prob = 1.0 - win_prob
    return (profit_per_unit * win_prob - loss_prob) / profit_per_unit


def fractional_kelly(
    win_prob: float,
    decimal_odds: float | None,
    *,
    confidence: float = 1.0,
    fraction: float = DEFAULT_FRACTIONAL_KELLY,
    max_fraction: float = MAX_STAKE_FRACTION,
) -> float | None:
    """Confidence-scaled fractional Kelly for one market.

    ``f = clamp(f* · fraction · confidence, 0, max_fraction)``, and never
    more than ``f*``.

    Args:
        win_prob: Our probability of the outcome, in ``(0, 1)``.
        decimal_odds: Decimal odds, stake included.
        confidence: Prediction confidence in ``[0, 1]``.  Values outside are
            clamped.
        fraction: Fractional Kelly multiplier.  Default 0.25.
        max_fraction: Hard cap on the output.  Default 0.05.

    Returns:
        The scaled fraction, ``f*`` itself when ``f* <= 0``, or ``None`` for
        invalid inputs (see :func:`full_kelly`).

    Examples::

        fractional_kelly(0.70, 1.5)                  →  0.025
        fractional_kelly(0.70, 1.5, confidence=0.8)  →  0.020
        fractional_kelly(0.90, 3.0)                  →  0.05  (capped)
    """
    full = full_kelly(win_prob, decimal_odds)
    if full is None:
        return None
    if full <= 0.0:
        return full
    confidence = min(max(confidence, 0.0), 1.0)
    scaled = min(max(full * fraction * confidence, 0.0), max_fraction)
    return min(scaled, full)


# ---------------------------------------------------------------------------
# Value edge
# ---------------------------------------------------------------------------


def value_edge(win_prob: float, market_prob: float | None) -> float:
    """Edge of our probability over the market's, floored at 0.

    Returns 0.0 when the market is unpriced.
    """
    if market_prob is None:
        return 0.0
    return max(0.0, win_prob - market_prob)


def edge_multiplier(
    edge: float,
    *,
    slope: float = _EDGE_SLOPE,
    cap: float = _MAX_EDGE_MULTIPLIER,
) -> float:
    """Stake boost earned by a value edge: ``min(1 + slope · edge, cap)``.

    Examples::

        edge_multiplier(0.0)   →  1.0
        edge_multiplier(0.10)  →  1.2
        edge_multiplier(0.40)  →  1.5  (capped)
    """
    return min(1.0 + slope * max(edge, 0.0), cap)


# ---------------------------------------------------------------------------
# Utility: unit conversion
# ---------------------------------------------------------------------------


def stake_amount(stake_fraction: float, bankroll: float) -> float:
    """Convert a bankroll fraction into a currency amount.

    Examples::

        stake_amount(0.025, 1000.0)  →  25.0
    """
    return stake_fraction * bankroll


def kelly_to_units(fraction: float) -> float:
    """Convert a Kelly fraction to units (1 unit = 1% of bankroll).

    Examples::

        kelly_to_units(0.025) → 2.5
        kelly_to_units(0.005) → 0.5
    """
    return fraction * 100.0
