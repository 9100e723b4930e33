import os
import typing

import lark

import dicecalc.functions as functions
import dicecalc.roll as roll


@lark.v_args(inline=True)
class _RollParser(lark.Transformer):
    number = roll.Number
    add = roll.Add
    mul = roll.Mul
    dice = roll.Dice
    die = roll.Die

    def args(self, *exprs: roll.Expression) -> typing.List[roll.Expression]:
        return list(exprs)

    def fn_call(self, name: lark.Token, args: typing.Optional[list]):
        return functions.resolve_function_call(str(name), *(args or ()))


_grammar_file = os.path.join(os.path.dirname(__file__), "roll.lark")
with open(_grammar_file) as f:
    _grammar = lark.Lark(f, parser="lalr")


def parse(text: str) -> roll.Expression:
    try:
        return _RollParser().transform(_grammar.parse(text))
    except lark.exceptions.VisitError as e:
        raise e.orig_exc
    except lark.exceptions.UnexpectedInput as e:
        raise roll.DiceRollError("syntax error:\n```\n%s\n```" % e)
