"""
Tests for Kelly sizing math
Run with: pytest tests/test_kelly.py -v
"""

import pytest

from matchmind.core.kelly import (
    edge_multiplier,
    fractional_kelly,
    full_kelly,
    kelly_to_units,
    stake_amount,
    value_edge,
)


class TestFullKelly:
    """Test the closed-form Kelly fraction"""

    def test_positive_edge(self):
        # (0.5 x 0.70 - 0.30) / 0.5
        assert abs(full_kelly(0.70, 1.5) - 0.10) < 1e-9

    def test_negative_edge(self):
        assert abs(full_kelly(0.20, 4.0) - (-0.2 / 3)) < 1e-9

    def test_fair_price_is_zero(self):
        assert abs(full_kelly(0.5, 2.0)) < 1e-12

    @pytest.mark.parametrize("odds", [None, 1.0, 0.5, -2.0])
    def test_invalid_odds(self, odds):
        assert full_kelly(0.6, odds) is None

    @pytest.mark.parametrize("prob", [0.0, 1.0, -0.1, 1.2])
    def test_invalid_probability(self, prob):
        assert full_kelly(prob, 2.0) is None


class TestFractionalKelly:
    """Test scaling, capping and the never-above-full invariant"""

    def test_quarter_kelly(self):
        assert abs(fractional_kelly(0.70, 1.5) - 0.025) < 1e-9

    def test_confidence_scaling(self):
        assert abs(fractional_kelly(0.70, 1.5, confidence=0.8) - 0.02) < 1e-9

    def test_capped(self):
        assert fractional_kelly(0.90, 3.0) == 0.05

    def test_confidence_clamped(self):
        assert fractional_kelly(0.70, 1.5, confidence=3.0) == fractional_kelly(0.70, 1.5)
        assert fractional_kelly(0.70, 1.5, confidence=-1.0) == 0.0

    def test_negative_ev_returns_full(self):
        assert fractional_kelly(0.20, 4.0) == full_kelly(0.20, 4.0)

    def test_invalid_inputs(self):
        assert fractional_kelly(0.7, None) is None
        assert fractional_kelly(1.0, 2.0) is None

    def test_never_above_full(self):
        for p in (0.05, 0.2, 0.35, 0.5, 0.65, 0.8, 0.95):
            for odds in (1.01, 1.2, 1.5, 2.0, 3.5, 8.0, 50.0):
                full = full_kelly(p, odds)
                for fraction in (0.25, 1.0, 5.0):
                    f = fractional_kelly(p, odds, fraction=fraction, max_fraction=1.0)
                    assert f <= full + 1e-12


class TestEdge:
    """Test value edge and stake boost"""

    def test_value_edge(self):
        assert abs(value_edge(0.70, 0.60) - 0.10) < 1e-9
        assert value_edge(0.50, 0.60) == 0.0
        assert value_edge(0.50, None) == 0.0

    def test_edge_multiplier(self):
        assert edge_multiplier(0.0) == 1.0
        assert abs(edge_multiplier(0.10) - 1.2) < 1e-9
        assert edge_multiplier(0.40) == 1.5
        assert edge_multiplier(-0.2) == 1.0

    def test_units(self):
        assert stake_amount(0.025, 1000.0) == 25.0
        assert kelly_to_units(0.025) == 2.5


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
