import typing

import dicecalc.distribution as dist
from dicecalc.distribution import DiceRollError, Distribution

if typing.TYPE_CHECKING:
    from dicecalc.session import Session


class _Number(float):
    def __repr__(self) -> str:
        result = f"{float(self):.2f}"
        if result.endswith(".00"):
            result = result[:-3]
        return result


class Expression:
    def distribution(self, session: "Session") -> Distribution:
        """Build a fresh distribution for this expression.

        The caller owns the result and must release it (or pass it on to an
        operator, which releases it).
        """
        raise NotImplementedError


class Number(Expression):
    def __init__(self, value):
        self.value = float(value)

    def distribution(self, session: "Session") -> Distribution:
        return dist.create(0, 0, self.value, session.tracker)

    def __repr__(self):
        return repr(_Number(self.value))


class BiOp(Expression):
    def op(
        self, session: "Session", lhs: Distribution, rhs: Distribution
    ) -> Distribution:
        raise NotImplementedError

    def __init__(self, lhs: Expression, rhs: Expression):
        self.lhs = lhs
        self.rhs = rhs

    def distribution(self, session: "Session") -> Distribution:
        lhs = self.lhs.distribution(session)
        try:
            rhs = self.rhs.distribution(session)
        except BaseException:
            dist.release(lhs)
            raise
        return self.op(session, lhs, rhs)


class Add(BiOp):
    def op(self, session, lhs, rhs):
        return dist.add(lhs, rhs)

    def __repr__(self):
        return "%s + %s" % (self.lhs, self.rhs)


class Mul(BiOp):
    def op(self, session, lhs, rhs):
        return dist.times(lhs, rhs)

    def __repr__(self):
        return "%s * %s" % (_paren(self.lhs, Add), _paren(self.rhs, (Add, Mul)))


class Dice(BiOp):
    def op(self, session, lhs, rhs):
        return dist.dice(lhs, rhs, session.rng)

    def __repr__(self):
        return "%sd%s" % (
            _paren(self.lhs, (Add, Mul)),
            _paren(self.rhs, (Add, Mul, Dice, Die)),
        )


class Die(Expression):
    def __init__(self, faces: Expression) -> None:
        self.faces = faces

    def distribution(self, session: "Session") -> Distribution:
        n_dice = dist.create(0, 0, 1, session.tracker)
        try:
            faces = self.faces.distribution(session)
        except BaseException:
            dist.release(n_dice)
            raise
        return dist.dice(n_dice, faces, session.rng)

    def __repr__(self) -> str:
        return "d%s" % _paren(self.faces, (Add, Mul, Dice, Die))


def _paren(expr: Expression, kinds) -> str:
    if isinstance(expr, kinds):
        return "(%s)" % expr
    return str(expr)
