import typing

import dicecalc.distribution as dist
from dicecalc.distribution import DiceRollError, Distribution
from dicecalc.roll import Expression

if typing.TYPE_CHECKING:
    from dicecalc.session import Session


class FnOp(Expression):
    @classmethod
    def name(cls) -> str:
        raise NotImplementedError

    @classmethod
    def arity(cls) -> int:
        return 1

    @classmethod
    def description(cls) -> str:
        return ""

    @classmethod
    def help(cls) -> str:
        return "No help text available for this function."

    def __init__(self, *args: Expression):
        if len(args) != self.arity():
            raise DiceRollError(
                "'%s' expected %s arguments, got %s"
                % (self.name(), self.arity(), len(args))
            )
        self.args = args

    def op(self, session: "Session", *args: Distribution) -> Distribution:
        raise NotImplementedError

    def distribution(self, session: "Session") -> Distribution:
        evaluated: typing.List[Distribution] = []
        try:
            for arg in self.args:
                evaluated.append(arg.distribution(session))
        except BaseException:
            for d in evaluated:
                dist.release(d)
            raise
        return self.op(session, *evaluated)

    def __repr__(self):
        return "%s(%s)" % (self.name(), ", ".join(str(arg) for arg in self.args))


class Roll(FnOp):
    def op(self, session, arg):
        return dist.roll(arg, session.rng)

    @classmethod
    def name(cls):
        return "roll"

    @classmethod
    def description(cls) -> str:
        return "roll a value right now"

    @classmethod
    def help(cls) -> str:
        return """roll(<x>)

Arguments:
    x - Any expression

Result:
    Samples x once, weighted by its probability table,
    and uses the sampled number in place of x.
    Rolling a plain number returns it unchanged.

Examples:
    roll(3d6)
    roll(1d20) * 2
"""


class Avg(FnOp):
    def op(self, session, arg):
        return dist.avg(arg)

    @classmethod
    def name(cls):
        return "avg"

    @classmethod
    def description(cls) -> str:
        return "expected value"

    @classmethod
    def help(cls) -> str:
        return """avg(<x>)

Arguments:
    x - Any expression

Result:
    Returns the mean (aka expected value) of x.

Examples:
    avg(1d20)
    avg(3d6 + 2)
"""


class Prob(FnOp):
    @classmethod
    def arity(cls) -> int:
        return 2

    def op(self, session, target, value):
        return dist.prob(target, value, session.rng)

    @classmethod
    def name(cls):
        return "prob"

    @classmethod
    def description(cls) -> str:
        return "probability of rolling a value"

    @classmethod
    def help(cls) -> str:
        return """prob(<target>, <x>)

Arguments:
    target - The value to look for. If it is a dice
             roll, it is rolled first.
    x - Any expression

Result:
    Returns a number between 0 and 1 representing the
    probability that x rolls exactly target.

Examples:
    prob(3, 1d6)
    prob(10, 3d6)
    prob(1d6, 1d8)
"""


NAMES_TO_FUNCTIONS: typing.Dict[str, typing.Type[FnOp]] = {
    fn.name(): fn for fn in (Roll, Avg, Prob)
}


def resolve_function_call(name: str, *args: Expression) -> FnOp:
    name = name.lower()
    if name in NAMES_TO_FUNCTIONS:
        return NAMES_TO_FUNCTIONS[name](*args)
    else:
        raise DiceRollError("unknown function %s" % name)
