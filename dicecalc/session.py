import logging
import threading
import typing

import dicecalc.distribution as dist
import dicecalc.roll as roll
import dicecalc.roll_parser as roll_parser
from dicecalc.distribution import DistributionTracker, RandomSource

logger = logging.getLogger(__name__)


class Evaluation:
    def __init__(
        self,
        expression: roll.Expression,
        table: typing.Dict[float, float],
        result: float,
        uncertain: bool,
        leaked: int = 0,
    ) -> None:
        self.expression = expression
        self.table = table
        self.result = result
        self.uncertain = uncertain
        self.leaked = leaked

    @property
    def mean(self) -> float:
        return sum(value * p for value, p in self.table.items())

    def __repr__(self) -> str:
        return "%s => %r" % (self.expression, roll._Number(self.result))


class Session:
    """Evaluates input lines against one tracker and one random source.

    Each line is parsed, built into a single distribution, reported as a
    probability table, resolved to a number, and released. The tracker is
    checked for leaks after every line. Evaluations hold a lock, so lines
    handed to worker threads run one at a time.
    """

    def __init__(
        self,
        tracker: typing.Optional[DistributionTracker] = None,
        rng: typing.Optional[RandomSource] = None,
        seed: typing.Optional[int] = None,
    ) -> None:
        self.tracker = tracker if tracker is not None else DistributionTracker()
        self.rng = rng if rng is not None else RandomSource(seed)
        self.lock = threading.Lock()

    def distribution(
        self, text: str
    ) -> typing.Tuple[roll.Expression, dist.Distribution]:
        expression = roll_parser.parse(text)
        return expression, expression.distribution(self)

    def evaluate(self, text: str) -> Evaluation:
        logger.debug("evaluating %r", text)
        with self.lock:
            expression, d = self.distribution(text)
            try:
                table = dist.probability_table(d)
                result = dist.resolve(d, self.rng)
                uncertain = dist.is_uncertain(d)
            finally:
                dist.release(d)
            leaked = self.tracker.check_leaks()
        return Evaluation(expression, table, result, uncertain, leaked)

    @staticmethod
    def format(evaluation: Evaluation) -> str:
        lines = ["--------------------"]
        if evaluation.uncertain:
            lines.append("Distribution:")
            for value, probability in evaluation.table.items():
                lines.append("%r: %.6f" % (roll._Number(value), probability))
        lines.append("RESULT: %r" % roll._Number(evaluation.result))
        if evaluation.leaked > 0:
            lines.append("WARNING: Leaking distributions: %d" % evaluation.leaked)
        lines.append("--------------------")
        return "\n".join(lines)
