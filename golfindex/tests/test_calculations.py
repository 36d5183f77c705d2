import pytest

from golfindex.calculations import (
    AmbiguousCourseHandicap,
    InvalidRating,
    ScoreDataError,
    UnknownHandicapPolicy,
    apply_esc,
    compute_differential,
    compute_handicap_index,
    compute_nine_hole_differential,
    course_handicap,
    differentials_used_count,
    esc_max_per_hole,
    exceptional_score_reduction,
    format_handicap,
    handicap_adjustment,
    is_exceptional_score,
    net_score,
    playing_handicap,
    round1,
    select_differentials,
)
from golfindex.calculations.rounding import round_half_away
from golfindex.rounds.models import HoleScore
from golfindex.tests.factories import GOLDEN_STROKES, PEBBLE_PARS


@pytest.mark.parametrize("count", [0, 1, 2])
def test_index_is_none_below_three_differentials(count):
    assert compute_handicap_index([10.0] * count) is None
    assert differentials_used_count(count) == 0


@pytest.mark.parametrize(
    "diffs,expected_used,expected_adjustment,expected_index",
    [
        ([14.0, 10.0, 12.0], 1, -2.0, 8.0),
        ([14.0, 10.0, 12.0, 16.0], 1, -1.0, 9.0),
        ([14.0, 10.0, 12.0, 16.0, 18.0], 1, 0.0, 10.0),
        ([14.0, 10.0, 12.0, 16.0, 18.0, 20.0], 2, -1.0, 10.0),
        ([14.0, 10.0, 12.0, 16.0, 18.0, 20.0, 22.0], 2, 0.0, 11.0),
        ([float(v) for v in range(19, 0, -1)], 7, 0.0, 4.0),
        ([float(v) for v in range(20, 0, -1)], 8, 0.0, 4.5),
    ],
)
def test_selection_table_golden_values(
    diffs, expected_used, expected_adjustment, expected_index
):
    selection = select_differentials(diffs)

    assert len(selection.used) == expected_used
    assert selection.adjustment == expected_adjustment
    assert selection.index == expected_index
    assert differentials_used_count(len(diffs)) == expected_used
    assert handicap_adjustment(len(diffs)) == expected_adjustment


def test_only_most_recent_twenty_are_considered():
    recent = [float(v) for v in range(30, 10, -1)]  # 30.0 .. 11.0, newest first
    older = [1.0, 2.0, 3.0, 4.0, 5.0]

    selection = select_differentials(recent + older)

    assert selection.count == 20
    assert selection.used == (11.0, 12.0, 13.0, 14.0, 15.0, 16.0, 17.0, 18.0)
    assert selection.index == 14.5


def test_index_is_capped_at_54():
    assert compute_handicap_index([60.0, 61.0, 62.0]) == 54.0


def test_plus_index_passes_through_and_formats_with_plus():
    index = compute_handicap_index([-3.0, 5.0, 6.0])

    assert index == -5.0
    assert format_handicap(index) == "+5.0"


@pytest.mark.parametrize(
    "value,expected", [(None, "N/A"), (0.0, "0.0"), (12.3, "12.3"), (-0.4, "+0.4")]
)
def test_format_handicap(value, expected):
    assert format_handicap(value) == expected


@pytest.mark.parametrize(
    "value,expected",
    [(2.25, 2.3), (-2.25, -2.3), (0.15, 0.2), (2.35, 2.4), (7.403, 7.4), (-0.04, 0.0)],
)
def test_round1_is_half_away_from_zero(value, expected):
    assert round1(value) == expected


def test_round1_never_returns_negative_zero():
    assert str(round1(-0.04)) == "0.0"


@pytest.mark.parametrize("value,expected", [(15.5, 16), (-0.5, -1), (2.49, 2), (-2.3, -2)])
def test_round_half_away(value, expected):
    assert round_half_away(value) == expected


def test_differential_golden_value():
    assert compute_differential(85, 75.5, 145) == 7.4
    assert compute_differential(90, 70.0, 113) == 20.0


def test_nine_hole_differential_uses_half_rating_and_doubles():
    assert compute_nine_hole_differential(40, 70.0, 113) == 10.0


@pytest.mark.parametrize("rating,slope", [(72.0, 0), (72.0, -5), (0.0, 113), (-1.0, 113)])
def test_invalid_ratings_are_rejected(rating, slope):
    with pytest.raises(InvalidRating):
        compute_differential(85, rating, slope)


@pytest.mark.parametrize(
    "handicap,expected",
    [(10, 7), (19, 7), (20, 8), (26, 8), (29, 8), (30, 9), (39, 9), (40, 10), (54, 10)],
)
def test_esc_bands(handicap, expected):
    assert esc_max_per_hole(handicap) == expected


def test_esc_double_bogey_band_needs_par():
    assert esc_max_per_hole(9, par=4) == 6
    assert esc_max_per_hole(-2, par=3) == 5
    with pytest.raises(ScoreDataError):
        esc_max_per_hole(5)


def _holes(pars, strokes):
    return [
        HoleScore(hole_number=i, par=p, strokes=s)
        for i, (p, s) in enumerate(zip(pars, strokes), start=1)
    ]


def test_golden_round_is_not_adjusted_at_course_handicap_26():
    holes = _holes(PEBBLE_PARS, GOLDEN_STROKES)

    assert sum(GOLDEN_STROKES) == 85
    assert course_handicap(20.0, 145) == 26
    assert apply_esc(holes, 26) == 85


def test_esc_caps_blow_up_holes_and_stays_within_bounds():
    pars = [4, 3, 5, 4]
    strokes = [12, 3, 9, 4]
    holes = _holes(pars, strokes)

    adjusted = apply_esc(holes, 15)
    exceedance = sum(max(0, s - 7) for s in strokes)

    assert adjusted == 7 + 3 + 7 + 4
    assert adjusted <= sum(strokes)
    assert adjusted >= sum(strokes) - exceedance


def test_esc_skips_holes_without_strokes():
    holes = _holes([4, 4], [5, None])

    assert apply_esc(holes, 12) == 5


def test_esc_rejects_non_positive_strokes():
    with pytest.raises(ScoreDataError):
        apply_esc(_holes([4], [0]), 12)


def test_unknown_course_handicap_policies():
    holes = _holes([4, 4], [11, 4])

    assert apply_esc(holes, None) == 10 + 4
    assert apply_esc(holes, None, UnknownHandicapPolicy.MOST_LENIENT) == 14
    assert apply_esc(holes, None, UnknownHandicapPolicy.STRICTEST) == 6 + 4
    with pytest.raises(AmbiguousCourseHandicap):
        apply_esc(holes, None, UnknownHandicapPolicy.REJECT)


def test_projection_for_mid_handicap_on_sloped_tees():
    assert course_handicap(12.5, 138) == 15
    # 15.2655 + 0.3 = 15.5655
    assert playing_handicap(12.5, 138, 72.3, 72) == 16
    assert net_score(90, 16) == 74


def test_projection_of_plus_index_rounds_away_from_zero():
    assert course_handicap(-2.0, 130) == -2


def test_projection_rejects_bad_slope():
    with pytest.raises(InvalidRating):
        course_handicap(10.0, 0)
    with pytest.raises(InvalidRating):
        playing_handicap(10.0, 0, 72.0, 72)


def test_exceptional_score_detection():
    assert is_exceptional_score(5.0, 12.0)
    assert not is_exceptional_score(5.1, 12.0)
    assert exceptional_score_reduction(2.0, 12.0) == 2.0
    assert exceptional_score_reduction(4.0, 12.0) == 1.0
    assert exceptional_score_reduction(6.0, 12.0) == 0.0
