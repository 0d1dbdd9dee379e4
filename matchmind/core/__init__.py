"""Core value objects, configuration and mathematics for MatchMind.

This package contains pure building blocks:

- ``entities``: immutable inputs and results (standings, predictions, odds)
- ``interfaces``: externally supplied DTOs and the async provider ABCs
- ``model_config``: every tunable table and threshold of the pipeline
- ``odds_math``: decimal odds conversion, bookmaker margin, vig removal
- ``kelly``: fractional Kelly sizing and value-edge helpers
- ``exceptions``: typed validation failures

Nothing in this package imports from ``matchmind.services``.
All modules are side-effect-free and unit-testable in isolation.
"""
