import bisect
import logging
import random
import typing

logger = logging.getLogger(__name__)

RAND_MAX = 2**31 - 1


class DiceRollError(ValueError):
    pass


class DegenerateDistributionError(DiceRollError):
    pass


class DistributionIndexError(DiceRollError):
    pass


class ReleasedDistributionError(DiceRollError):
    pass


class DistributionTracker:
    """Counts live distributions so leaks can be reported.

    Every distribution created through `create` registers with one tracker and
    unregisters on `release`. A nonzero live count once an expression has been
    fully reduced means some operator dropped a value without releasing it.
    """

    def __init__(self) -> None:
        self.live = 0
        self.created = 0
        self.released = 0

    def register(self) -> None:
        self.live += 1
        self.created += 1

    def unregister(self) -> None:
        self.live -= 1
        self.released += 1

    def check_leaks(self) -> int:
        if self.live > 0:
            logger.warning("Leaking distributions: %d", self.live)
        return self.live

    def __repr__(self) -> str:
        return "DistributionTracker(live=%d, created=%d, released=%d)" % (
            self.live,
            self.created,
            self.released,
        )


default_tracker = DistributionTracker()


class RandomSource:
    """Finite-resolution integer source used by the sampler.

    `rand()` draws from `[0, RAND_MAX)`, so a single draw can never tell apart
    probabilities finer than one part in `RAND_MAX`.
    """

    def __init__(self, seed: typing.Optional[int] = None) -> None:
        self._r = random.Random(seed)

    def rand(self) -> int:
        return self._r.randrange(RAND_MAX)

    def seed(self, seed: typing.Optional[int]) -> None:
        self._r.seed(seed)


default_rng = RandomSource()


class Distribution:
    __slots__ = ("constant", "_weights", "tracker", "released")

    def __init__(
        self, weights: typing.List[float], constant: float, tracker: DistributionTracker
    ) -> None:
        self.constant = constant
        self._weights = weights
        self.tracker = tracker
        self.released = False

    @property
    def weights(self) -> typing.List[float]:
        if self.released:
            raise ReleasedDistributionError("distribution used after release")
        return self._weights

    @property
    def size(self) -> int:
        return len(self.weights)

    def __repr__(self) -> str:
        if self.released:
            return "Distribution(<released>)"
        if not self._weights:
            return "Distribution(constant=%s)" % self.constant
        return "Distribution(constant=%s, weights=%s)" % (
            self.constant,
            self._weights,
        )


def create(
    size: int,
    init_value: float,
    constant: float,
    tracker: typing.Optional[DistributionTracker] = None,
) -> Distribution:
    if size < 0:
        raise DiceRollError("distribution size must not be negative, got %s" % size)
    if tracker is None:
        tracker = default_tracker
    result = Distribution([float(init_value)] * size, constant, tracker)
    tracker.register()
    return result


def release(d: Distribution) -> None:
    if d.released:
        raise ReleasedDistributionError("distribution released twice")
    d._weights = []
    d.released = True
    d.tracker.unregister()


def is_uncertain(d: Distribution) -> bool:
    return d.size > 0


def max_value(d: Distribution) -> float:
    return d.size + d.constant


def total_weight(d: Distribution) -> float:
    return sum(d.weights)


def _normalizer(d: Distribution) -> float:
    weight = total_weight(d)
    if weight <= 0:
        raise DegenerateDistributionError(
            "distribution has no weight to normalize: %s" % (d,)
        )
    return weight


def probability_table(d: Distribution) -> typing.Dict[float, float]:
    """Map every representable outcome of `d` to its probability.

    Slots with zero weight are kept, so the keys of an uncertain distribution
    always cover its full domain. `d` is not consumed.
    """
    if not is_uncertain(d):
        return {d.constant: 1.0}
    weight = _normalizer(d)
    return {d.constant + i + 1: w / weight for i, w in enumerate(d.weights)}


def _release_operands(d1: Distribution, d2: Distribution) -> None:
    # a value passed as both operands is consumed once
    try:
        release(d1)
    finally:
        if d2 is not d1:
            release(d2)


def _from_weights(
    weights: typing.List[float], constant: float, tracker: DistributionTracker
) -> Distribution:
    result = create(len(weights), 0, constant, tracker)
    result.weights[:] = weights
    return result


def add(d1: Distribution, d2: Distribution) -> Distribution:
    try:
        out = [0.0] * (d1.size + d2.size)
        if is_uncertain(d1) and is_uncertain(d2):
            weight1 = _normalizer(d1)
            weight2 = _normalizer(d2)
            for i, w1 in enumerate(d1.weights):
                p1 = w1 / weight1
                for j, w2 in enumerate(d2.weights):
                    # outcomes (i + 1) + (j + 1) land one slot past i + j
                    out[i + j + 1] += p1 * (w2 / weight2)
        elif is_uncertain(d1):
            out[: d1.size] = d1.weights
        elif is_uncertain(d2):
            out[: d2.size] = d2.weights
        return _from_weights(out, d1.constant + d2.constant, d1.tracker)
    finally:
        _release_operands(d1, d2)


def _accumulate(out: typing.List[float], index: int, value: float) -> None:
    if not 0 <= index < len(out):
        raise DistributionIndexError(
            "product outcome index %s outside table of size %s" % (index, len(out))
        )
    out[index] += value


def times(d1: Distribution, d2: Distribution) -> Distribution:
    """Product of two independent distributions.

    Uncertain products are indexed by value: outcome `v1 * v2` goes to slot
    `v1 * v2 - 1` of a table sized `max_value(d1) * max_value(d2)` with
    constant 0. Non-integral constants are truncated (`int`) when forming the
    slot index, so `1d6 * 1.5` folds 1.5 into slot 0 and 4.5 into slot 3.
    Products that cannot be placed in the table raise DistributionIndexError.
    """
    try:
        tracker = d1.tracker
        if not is_uncertain(d1) and not is_uncertain(d2):
            return create(0, 0, d1.constant * d2.constant, tracker)
        if (not is_uncertain(d1) and d1.constant == 0) or (
            not is_uncertain(d2) and d2.constant == 0
        ):
            return create(0, 0, 0, tracker)

        size = int(max_value(d1) * max_value(d2))
        if size <= 0:
            raise DistributionIndexError(
                "product of %s and %s has no positive outcomes" % (d1, d2)
            )
        out = [0.0] * size
        if is_uncertain(d1) and is_uncertain(d2):
            weight1 = _normalizer(d1)
            weight2 = _normalizer(d2)
            offset1 = int(d1.constant) + 1
            offset2 = int(d2.constant) + 1
            for i, w1 in enumerate(d1.weights):
                p1 = w1 / weight1
                for j, w2 in enumerate(d2.weights):
                    value = (i + offset1) * (j + offset2)
                    _accumulate(out, value - 1, p1 * (w2 / weight2))
        else:
            uncertain, certain = (d1, d2) if is_uncertain(d1) else (d2, d1)
            weight = _normalizer(uncertain)
            for i, w in enumerate(uncertain.weights):
                index = int((i + uncertain.constant + 1) * certain.constant) - 1
                _accumulate(out, index, w / weight)
        return _from_weights(out, 0, tracker)
    finally:
        _release_operands(d1, d2)


def _sample(d: Distribution, rng: RandomSource) -> float:
    if not is_uncertain(d):
        return d.constant
    index = divide_and_roll(d.weights, 0, d.size - 1, total_weight(d), rng)
    return d.constant + 1 + index


def dice(
    d1: Distribution, d2: Distribution, rng: typing.Optional[RandomSource] = None
) -> Distribution:
    """`NdM`: the sum of N independent M-sided dice.

    Uncertain operands are sampled first, so `(1d4)d6` is a single `kd6`
    table for one rolled `k`, not the mixture over every possible `k`.
    """
    if rng is None:
        rng = default_rng
    tracker = d1.tracker
    try:
        n_dice = int(round(_sample(d1, rng)))
        n_faces = int(round(_sample(d2, rng)))
    finally:
        _release_operands(d1, d2)

    if n_dice < 0:
        raise DiceRollError("attempted to roll %s dice" % n_dice)
    if n_faces < 0:
        raise DiceRollError("attempted to roll a die with %s faces" % n_faces)
    if n_dice == 0 or n_faces == 0:
        return create(0, 0, 0, tracker)

    die = create(n_faces, 1, 0, tracker)
    result = create(n_faces, 1, 0, tracker)
    for _ in range(n_dice - 1):
        # add() consumes both operands, so hand it a fresh copy of the die
        result = add(result, _from_weights(die.weights, 0, tracker))
    release(die)
    return result


def avg(d: Distribution) -> Distribution:
    try:
        if not is_uncertain(d):
            return create(0, 0, d.constant, d.tracker)
        weight = _normalizer(d)
        mean = 0.0
        for i, w in enumerate(d.weights):
            # slot i is outcome constant + i + 1 here too, so avg(3d6) == 10.5
            mean += w * (d.constant + i + 1)
        return create(0, 0, mean / weight, d.tracker)
    finally:
        release(d)


def roll(d: Distribution, rng: typing.Optional[RandomSource] = None) -> Distribution:
    if rng is None:
        rng = default_rng
    try:
        return create(0, 0, _sample(d, rng), d.tracker)
    finally:
        release(d)


def divide_and_roll(
    weights: typing.Sequence[float],
    start: int,
    end: int,
    section_weight: float,
    rng: typing.Optional[RandomSource] = None,
) -> int:
    """Pick an index of `weights[start:end + 1]` proportionally to its weight.

    A single draw scaled by the whole table would lose every probability
    finer than 1 / RAND_MAX. Instead the slice is split where its running
    weight first passes half of `section_weight`, and one draw decides only
    between the two halves; the chosen half is split again until a single
    index remains. Each decision compares against one ratio, so the rounding
    error stays bounded per level.

    If the second half would carry no weight, the boundary element moves into
    it. A slice whose weight sits entirely on its first element resolves to
    that element.
    """
    if rng is None:
        rng = default_rng
    if section_weight <= 0:
        raise DegenerateDistributionError(
            "cannot sample from a section with total weight %s" % section_weight
        )

    prefix = [0.0]
    for w in weights:
        prefix.append(prefix[-1] + w)

    while start != end:
        base = prefix[start]
        # first index whose running sum within the slice exceeds half
        divider = bisect.bisect_right(
            prefix, base + 0.5 * section_weight, start + 1, end + 2
        )
        divider = min(max(divider - 1, start), end)

        weight1 = prefix[divider + 1] - base
        weight2 = prefix[end + 1] - prefix[divider + 1]
        if weight2 == 0:
            weight1 -= weights[divider]
            weight2 += weights[divider]
            divider -= 1
            if divider < start:
                return start

        threshold = int(RAND_MAX * (weight1 / section_weight))
        if rng.rand() < threshold:
            end = divider
            section_weight = weight1
        else:
            start = divider + 1
            section_weight = weight2

    return start


def prob(
    d1: Distribution, d2: Distribution, rng: typing.Optional[RandomSource] = None
) -> Distribution:
    if rng is None:
        rng = default_rng
    try:
        target = _sample(d1, rng)
        probability = 0.0
        if is_uncertain(d2):
            offset = target - d2.constant
            if d2.constant < target <= max_value(d2) and offset == int(offset):
                probability = d2.weights[int(offset) - 1] / _normalizer(d2)
        elif target == d2.constant:
            probability = 1.0
        return create(0, 0, probability, d1.tracker)
    finally:
        _release_operands(d1, d2)


def resolve(d: Distribution, rng: typing.Optional[RandomSource] = None) -> float:
    if rng is None:
        rng = default_rng
    return _sample(d, rng)
