import pytest

from livequiz.services.games import scoring


@pytest.mark.parametrize('elapsed', [0.0, 0.3, 1.0])
@pytest.mark.parametrize('streak', [0, 1, 5])
@pytest.mark.parametrize('multiplier', [1, 2])
def test_incorrect_answer_scores_nothing(elapsed, streak, multiplier):
    assert scoring.points(False, elapsed, 1000, streak, multiplier) == 0


def test_instant_correct_answer_scores_full_base():
    assert scoring.points(True, 0.0, 1000, 1, 1) == 1000


def test_last_instant_correct_answer_scores_half():
    assert scoring.points(True, 1.0, 1000, 1, 1) == 500


def test_time_bonus_scales_linearly():
    assert scoring.points(True, 0.2, 1000, 1, 1) == 900
    assert scoring.points(True, 0.8, 1000, 1, 1) == 600


def test_streak_tiers():
    assert scoring.streak_multiplier(0) == 1.0
    assert scoring.streak_multiplier(1) == 1.0
    assert scoring.streak_multiplier(2) == 1.2
    assert scoring.streak_multiplier(3) == 1.5
    assert scoring.streak_multiplier(4) == 1.5
    assert scoring.streak_multiplier(5) == 2.0
    assert scoring.streak_multiplier(12) == 2.0


def test_streak_reaching_five_is_doubled_on_that_answer():
    assert scoring.points(True, 0.0, 1000, 5, 1) == 2000
    assert scoring.points(True, 0.0, 1000, 4, 1) == 1500


def test_modifier_multiplier_applies_after_streak():
    assert scoring.points(True, 0.0, 500, 2, 2) == 1200


def test_rounding_is_half_away_from_zero():
    assert scoring.round_half_away(2.5) == 3
    assert scoring.round_half_away(3.5) == 4
    assert scoring.round_half_away(-2.5) == -3
    assert scoring.round_half_away(2.4) == 2
    # base = round(333 * 0.75) = round(249.75) = 250; 250 * 1.5 = 375
    assert scoring.points(True, 0.5, 333, 3, 1) == 375
    # base = round(5 * 0.5) = round(2.5) = 3
    assert scoring.points(True, 1.0, 5, 1, 1) == 3


def test_elapsed_fraction_is_clamped():
    assert scoring.elapsed_fraction(0, 10) == 0.0
    assert scoring.elapsed_fraction(2000, 10) == pytest.approx(0.2)
    assert scoring.elapsed_fraction(15000, 10) == 1.0
    assert scoring.elapsed_fraction(-50, 10) == 0.0
