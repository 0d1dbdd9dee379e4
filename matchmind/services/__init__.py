"""Prediction, correction and staking services built on :mod:`matchmind.core`."""
