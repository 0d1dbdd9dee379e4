"""MatchMind: football fixture prediction and fractional-Kelly staking."""

__version__ = "1.0.0"
