"""
Tests for the power-score base model
Run with: pytest tests/test_power_score.py -v
"""

import pytest

from matchmind.core.entities import DataSource, Scoreline, TeamStanding
from matchmind.core.exceptions import InvalidStandingError, ValidationError
from matchmind.core.model_config import PowerScoreConfig
from matchmind.services.power_score import PowerScoreModel


def standing(rank=10, points=30, gd=0, games=20, source=DataSource.API_OFFICIAL):
    return TeamStanding(rank=rank, points=points, goal_difference=gd, games_played=games, source=source)


class TestPowerScore:
    """Test the bounded strength rating"""

    def test_formula(self):
        model = PowerScoreModel()
        # 100 - 3 + round(2.5 * 10) + round(1.5 * 5) = 97 + 25 + 8
        assert model.power_score(standing(rank=1, points=50, gd=30)) == 130

    def test_home_bonus(self):
        model = PowerScoreModel()
        team = standing()
        assert model.power_score(team, is_home=True) - model.power_score(team) == 10

    def test_clamped_to_bounds(self):
        model = PowerScoreModel()
        giant = standing(rank=1, points=300, gd=400, games=10)
        minnow = standing(rank=40, points=0, gd=-80, games=20)
        assert model.power_score(giant, is_home=True) == 200
        assert model.power_score(minnow) == 0

    def test_always_in_range(self):
        model = PowerScoreModel()
        for rank in (1, 5, 20, 35):
            for points in (0, 20, 60, 100):
                for gd in (-60, -10, 0, 10, 60):
                    score = model.power_score(standing(rank, points, gd), is_home=True)
                    assert 0 <= score <= 200

    def test_monotonic_in_points(self):
        model = PowerScoreModel()
        scores = [model.power_score(standing(points=p)) for p in range(0, 80)]
        assert all(b >= a for a, b in zip(scores, scores[1:]))

    def test_monotonic_in_goal_difference(self):
        model = PowerScoreModel()
        scores = [model.power_score(standing(gd=gd)) for gd in range(-40, 41)]
        assert all(b >= a for a, b in zip(scores, scores[1:]))


class TestBasePrediction:
    """Test scoreline and confidence bands"""

    def test_strong_home_favourite(self):
        model = PowerScoreModel()
        home = standing(rank=1, points=50, gd=30)
        away = standing(rank=15, points=25, gd=-5)
        base = model.compute_base(home, away, 1.0)

        assert base.power_diff > 30
        assert base.scoreline == Scoreline(3, 0)
        assert str(base.scoreline) == "3-0"
        assert base.confidence == 90

    def test_identical_standings_give_draw(self):
        model = PowerScoreModel()
        team = standing()
        base = model.compute_base(team, team, 1.0)

        # Only the home bonus separates them
        assert base.power_diff == 10
        assert base.scoreline == Scoreline(1, 1)
        assert base.confidence == 60

    def test_strong_away_favourite(self):
        model = PowerScoreModel()
        home = standing(rank=18, points=15, gd=-20)
        away = standing(rank=1, points=55, gd=35)
        base = model.compute_base(home, away, 1.0)

        assert base.power_diff < -30
        assert base.scoreline == Scoreline(0, 3)
        assert base.confidence == 90

    def test_moderate_bands(self):
        model = PowerScoreModel(PowerScoreConfig(home_bonus=0))
        home = standing(rank=5)
        away = standing(rank=12)
        # 7 places x 3 = 21 power points
        assert model.compute_base(home, away, 1.0).scoreline == Scoreline(2, 1)
        assert model.compute_base(away, home, 1.0).scoreline == Scoreline(1, 2)

    def test_band_edges(self):
        model = PowerScoreModel(PowerScoreConfig(home_bonus=0))
        # |delta| exactly 15 stays in the even band on both sides
        home = standing(rank=5)
        away = standing(rank=10)
        assert model.compute_base(home, away, 1.0).scoreline == Scoreline(1, 1)
        assert model.compute_base(away, home, 1.0).scoreline == Scoreline(1, 1)
        # one more place tips it
        assert model.compute_base(away, standing(rank=4), 1.0).scoreline == Scoreline(1, 2)

    def test_source_quality_scales_confidence(self):
        model = PowerScoreModel()
        team = standing()
        assert model.compute_base(team, team, 0.5).confidence == 30
        assert model.compute_base(team, team, 0.0).confidence == 0

    def test_quality_defaults_to_home_source(self):
        model = PowerScoreModel()
        home = standing(source=DataSource.CALCULATED)
        base = model.compute_base(home, standing())
        assert base.confidence == 45  # 60 x 0.75

    def test_missing_teams_default_to_mid_table(self):
        model = PowerScoreModel()
        base = model.compute_base(None, None, 1.0)
        assert base.scoreline == Scoreline(1, 1)
        assert base.confidence == 60

    def test_default_standing_values(self):
        default = PowerScoreModel().default_standing()
        assert (default.rank, default.points, default.goal_difference, default.games_played) == (20, 30, 0, 20)
        assert default.source is DataSource.DEFAULT

    def test_idempotent(self):
        model = PowerScoreModel()
        home, away = standing(rank=3, points=40, gd=12), standing(rank=9)
        assert model.compute_base(home, away, 0.9) == model.compute_base(home, away, 0.9)


class TestValidation:
    """Invalid inputs are rejected, never coerced"""

    def test_zero_games_rejected(self):
        with pytest.raises(InvalidStandingError):
            standing(games=0)

    def test_non_positive_rank_rejected(self):
        with pytest.raises(InvalidStandingError):
            standing(rank=0)

    def test_validation_errors_are_value_errors(self):
        with pytest.raises(ValueError):
            standing(games=-3)

    @pytest.mark.parametrize("quality", [-0.1, 1.01, float("nan")])
    def test_source_quality_out_of_range(self, quality):
        with pytest.raises(ValidationError):
            PowerScoreModel().compute_base(standing(), standing(), quality)


class TestAnnotations:
    """Rank gap labels and betting confidence"""

    def test_rank_gap_labels(self):
        model = PowerScoreModel()
        assert model.rank_gap_label(standing(rank=1), standing(rank=15)) == "massive"
        assert model.rank_gap_label(standing(rank=1), standing(rank=7)) == "significant"
        assert model.rank_gap_label(standing(rank=1), standing(rank=4)) == "moderate"
        assert model.rank_gap_label(standing(rank=1), standing(rank=3)) == "similar"

    def test_betting_confidence_bonuses(self):
        model = PowerScoreModel()
        base = model.compute_base(standing(rank=1, points=50, gd=30), standing(rank=15, points=25, gd=-5), 1.0)
        # 90 + 15 (strong gap) + 10 (official source), clamped
        assert model.betting_confidence(base, DataSource.API_OFFICIAL) == 100
        even = model.compute_base(standing(), standing(), 1.0)
        assert model.betting_confidence(even, DataSource.DEFAULT) == 55


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
