"""Odds mathematics for the 1X2 market, the single source of truth.

Every function here is **pure**: no I/O, no logging, no side effects.
Import from this module; never reimplement locally in services.

The pillars exposed are:

1. **Odds conversion**: American to decimal, decimal to implied probability.
2. **Market shape**: bookmaker margin (overround) of a three-way quote.
3. **Vig removal**: proportional normalisation of a three-way quote.

Design decisions
----------------
* Decimal odds are the native unit.  European football books quote
  decimals; American prices from US feeds are converted once at the edge
  with :func:`american_to_decimal`.
* The *edge* used for staking is measured against the raw implied
  probability ``1 / odds``, vig included.  A bet only has value if it beats
  the price actually on offer, so the margin is deliberately not removed
  there.  :func:`remove_vig` exists for display and for comparing books.
* Proportional normalisation rather than Shin: with three outcomes and
  typical football margins of 3-6% the favourite-longshot correction moves
  fair probabilities by well under a percentage point, below the resolution
  of the power-score model.

Run tests with::

    pytest tests/test_odds_math.py -v
"""

from __future__ import annotations

from typing import Final

from matchmind.core.entities import OddsQuote, Outcome
from matchmind.core.exceptions import InvalidOddsError

# ---------------------------------------------------------------------------
# Module-level constants
# ---------------------------------------------------------------------------

#: American-odds magnitude floor.  Feeds never return |odds| < 100; values
#: below this indicate a data error.
_MIN_AMERICAN_MAGNITUDE: Final[int] = 100

#: Decimal odds at or below this are not a price.
MIN_DECIMAL_ODDS: Final[float] = 1.0


# ---------------------------------------------------------------------------
# Odds conversion
# ---------------------------------------------------------------------------


def is_valid_price(decimal_odds: float | None) -> bool:
    """Return True when *decimal_odds* is a usable price (quoted and > 1.0)."""
    return decimal_odds is not None and decimal_odds > MIN_DECIMAL_ODDS


def american_to_decimal(american: int | float) -> float:
    """Convert American odds to decimal odds.

    Args:
        american: American odds, ``|american| >= 100``.

    Returns:
        Decimal odds (stake included), always ``> 1.0``.

    Raises:
        InvalidOddsError: If ``|american| < 100``.

    Examples::

        american_to_decimal(-110)  →  1.909
        american_to_decimal(+150)  →  2.500
    """
    if abs(american) < _MIN_AMERICAN_MAGNITUDE:
        raise InvalidOddsError(
            f"American odds must satisfy |odds| >= 100, got {american!r}."
        )
    if american > 0:
        return 1.0 + american / 100.0
    return 1.0 + 100.0 / abs(american)


def implied_probability(decimal_odds: float) -> float:
    """Raw implied probability ``1 / odds`` (bookmaker margin included).

    Raises:
        InvalidOddsError: If ``decimal_odds <= 1.0``.

    Examples::

        implied_probability(2.0)  →  0.5
        implied_probability(4.0)  →  0.25
    """
    if not is_valid_price(decimal_odds):
        raise InvalidOddsError(f"decimal odds must be > 1.0, got {decimal_odds!r}.")
    return 1.0 / decimal_odds


def implied_probabilities(quote: OddsQuote) -> dict[Outcome, float | None]:
    """Raw implied probability per market; ``None`` for unquoted or invalid prices."""
    probs: dict[Outcome, float | None] = {}
    for market in Outcome:
        price = quote.get(market)
        probs[market] = implied_probability(price) if is_valid_price(price) else None
    return probs


# ---------------------------------------------------------------------------
# Market shape
# ---------------------------------------------------------------------------


def bookmaker_margin(quote: OddsQuote) -> float | None:
    """Overround of a complete three-way quote.

    ``margin = Σ 1/odds − 1``.  A fair book has margin 0; a typical football
    book sits between 0.03 and 0.08.

    Returns:
        The margin, or ``None`` when any market is unquoted or invalid.

    Examples::

        bookmaker_margin(OddsQuote(2.0, 3.5, 4.0))  →  0.0357
    """
    probs = implied_probabilities(quote)
    if any(p is None for p in probs.values()):
        return None
    return sum(probs.values()) - 1.0


def remove_vig(quote: OddsQuote) -> dict[Outcome, float] | None:
    """Fair probabilities by proportional normalisation.

    Returns:
        Probabilities summing to exactly 1.0, or ``None`` when the quote is
        incomplete.
    """
    probs = implied_probabilities(quote)
    if any(p is None for p in probs.values()):
        return None
    total = sum(probs.values())
    return {market: p / total for market, p in probs.items()}
