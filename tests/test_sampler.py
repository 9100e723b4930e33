"""
Tests for the bisecting weighted-index sampler.
"""

import collections

import pytest

from dicecalc.distribution import (
    RAND_MAX,
    DegenerateDistributionError,
    RandomSource,
    divide_and_roll,
)


class FixedSource(RandomSource):
    """Always draws the same value."""

    def __init__(self, value: int) -> None:
        super().__init__(0)
        self.value = value
        self.draws = 0

    def rand(self) -> int:
        self.draws += 1
        return self.value


def test_single_slot_needs_no_draw():
    source = FixedSource(0)
    assert divide_and_roll([3.0], 0, 0, 3.0, source) == 0
    assert source.draws == 0


def test_lowest_draw_picks_first_slot():
    assert divide_and_roll([1, 1, 1, 1], 0, 3, 4, FixedSource(0)) == 0


def test_highest_draw_picks_last_slot():
    assert divide_and_roll([1, 1, 1, 1], 0, 3, 4, FixedSource(RAND_MAX - 1)) == 3


def test_first_split_uses_half_weight():
    # slots 0..2 hold 3/4 of the weight, so a draw just under 3/4 stays low
    # and a draw at 3/4 goes straight to the last slot
    threshold = int(RAND_MAX * 0.75)
    source = FixedSource(threshold)
    assert divide_and_roll([1, 1, 1, 1], 0, 3, 4, source) == 3
    assert source.draws == 1


def test_weight_on_last_slot():
    for value in (0, RAND_MAX // 2, RAND_MAX - 1):
        assert divide_and_roll([0, 0, 5], 0, 2, 5, FixedSource(value)) == 2


def test_weight_on_first_slot():
    for value in (0, RAND_MAX // 2, RAND_MAX - 1):
        assert divide_and_roll([5, 0, 0], 0, 2, 5, FixedSource(value)) == 0


def test_sub_slice():
    weights = [9, 0, 1, 1, 9]
    for _ in range(50):
        assert divide_and_roll(weights, 1, 3, 2, RandomSource(7)) in (2, 3)


def test_zero_weight_section():
    with pytest.raises(DegenerateDistributionError):
        divide_and_roll([0, 0, 0], 0, 2, 0, RandomSource(1))


def test_zero_weight_slots_never_drawn():
    source = RandomSource(42)
    weights = [0, 3, 0, 0, 2, 0]
    drawn = {divide_and_roll(weights, 0, 5, 5, source) for _ in range(2000)}
    assert drawn == {1, 4}


def test_frequencies_follow_weights():
    source = RandomSource(2024)
    weights = [1, 2, 3]
    n = 6000
    counts = collections.Counter(
        divide_and_roll(weights, 0, 2, 6, source) for _ in range(n)
    )
    for index, weight in enumerate(weights):
        assert counts[index] / n == pytest.approx(weight / 6, abs=0.03)


def test_seeded_source_is_repeatable():
    weights = [1] * 20
    first = [divide_and_roll(weights, 0, 19, 20, RandomSource(5)) for _ in range(10)]
    second = [divide_and_roll(weights, 0, 19, 20, RandomSource(5)) for _ in range(10)]
    assert first == second
