from datetime import time

import pytest

from agenda.core import (
    Interval,
    aligned_starts,
    contains,
    from_minutes,
    make_interval,
    merge,
    overlaps,
    subtract,
    subtract_all,
    to_minutes,
)


def test_touching_intervals_do_not_overlap() -> None:
    assert not overlaps(Interval(600, 630), Interval(630, 660))
    assert overlaps(Interval(600, 630), Interval(615, 645))
    assert overlaps(Interval(600, 700), Interval(620, 640))


def test_contains_accepts_exact_fit() -> None:
    assert contains(Interval(540, 1080), Interval(1065, 1080))
    assert not contains(Interval(540, 1080), Interval(1066, 1081))


@pytest.mark.parametrize(
    ("cut", "expected"),
    [
        (Interval(0, 100), [Interval(540, 1080)]),
        (Interval(500, 1200), []),
        (Interval(500, 600), [Interval(600, 1080)]),
        (Interval(1000, 1100), [Interval(540, 1000)]),
        (Interval(720, 780), [Interval(540, 720), Interval(780, 1080)]),
    ],
)
def test_subtract_returns_zero_one_or_two_fragments(cut: Interval, expected: list) -> None:
    assert subtract(Interval(540, 1080), cut) == expected


def test_merge_joins_overlapping_and_touching_intervals() -> None:
    merged = merge([Interval(780, 840), Interval(540, 600), Interval(600, 660), Interval(650, 700)])

    assert merged == [Interval(540, 700), Interval(780, 840)]


def test_subtract_all_carves_every_cut() -> None:
    free = subtract_all(
        [Interval(540, 1080)],
        [Interval(600, 630), Interval(720, 780), Interval(1050, 1200)],
    )

    assert free == [Interval(540, 600), Interval(630, 720), Interval(780, 1050)]


def test_aligned_starts_round_up_to_grid_and_leave_room_for_duration() -> None:
    assert aligned_starts(Interval(620, 700), 30, 15) == [630, 645, 660]
    assert aligned_starts(Interval(600, 620), 30, 15) == []


def test_make_interval_rejects_empty_and_multi_day_ranges() -> None:
    with pytest.raises(ValueError):
        make_interval(600, 600)
    with pytest.raises(ValueError):
        make_interval(1400, 1450)

    assert make_interval(0, 1440).length == 1440


def test_minutes_conversion() -> None:
    assert to_minutes(time(17, 45)) == 1065
    assert from_minutes(1065) == time(17, 45)
    with pytest.raises(ValueError):
        from_minutes(1440)
