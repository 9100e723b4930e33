import argparse
import asyncio
import io
import logging
import os
import shutil
import sys
import typing

import discord
import discord.ext.commands as commands

import dicecalc.functions as roll_functions
import dicecalc.plot as plot
import dicecalc.settings as settings_
from dicecalc.distribution import DiceRollError
from dicecalc.roll import _Number
from dicecalc.session import Evaluation, Session

logger = logging.getLogger("dicecalc")

SETTINGS_FILE = "settings.yaml"


def repl(session: Session, stdin: typing.TextIO, stdout: typing.TextIO) -> int:
    stdout.write("Enter new Expression:\n")
    stdout.flush()
    for line in stdin:
        line = line.strip()
        if not line:
            continue
        try:
            evaluation = session.evaluate(line)
        except DiceRollError as e:
            stdout.write("Error in input: %s\n" % e.args[0])
        else:
            stdout.write(session.format(evaluation) + "\n")
        stdout.write("Enter new Expression:\n")
        stdout.flush()
    return 0


async def evaluate_in_background(
    session: Session, text: str, timeout: float
) -> Evaluation:
    """Evaluate `text` on a worker thread, giving up after `timeout` seconds.

    An abandoned evaluation keeps its thread until it finishes, and holds the
    session lock meanwhile, so later lines wait behind it.
    """
    return await asyncio.wait_for(asyncio.to_thread(session.evaluate, text), timeout)


def _plot(session: Session, text: str) -> typing.Tuple[Evaluation, bytes]:
    evaluation = session.evaluate(text)
    return evaluation, plot.plot_tables({str(evaluation.expression): evaluation.table})


def make_client(
    settings: typing.Dict[str, typing.Any], session: Session
) -> commands.Bot:
    intents = discord.Intents.default()
    intents.message_content = True
    client = commands.Bot(
        command_prefix=settings["prefix"],
        intents=intents,
        activity=discord.Game(name="%shelp" % settings["prefix"]),
        status=discord.Status.idle,
    )

    @client.event
    async def on_ready():
        logger.info("We have logged in as %s", client.user)

    @client.command(
        name="roll",
        brief="roll dice",
        description="""!roll <expr>

Parameters:
    expr - The expression to evaluate.

Result:
    Evaluates a dice expression. You can use usual XdY notation,
    dY for a single die, + and *, and the functions roll, avg
    and prob.

    For a list of functions you can use, call !rollhelp.
""",
    )
    async def roll_(ctx: commands.Context, *args: str):
        try:
            evaluation = await evaluate_in_background(
                session, " ".join(args), settings["timeout"]
            )
            message = "**Input:** %s\n" % evaluation.expression
            if evaluation.uncertain:
                message += "**Expected:** %r\n" % _Number(evaluation.mean)
            await ctx.send(message + "**Result:** %r" % evaluation)
        except asyncio.TimeoutError:
            await ctx.send("Your roll took too long to evaluate. Sorry!")
        except DiceRollError as e:
            await ctx.send("Error in input: %s" % e.args[0])
        except BaseException as e:
            try:
                await ctx.send("An internal error occured. Sorry!")
            except BaseException:
                pass
            raise e

    @client.command(
        name="plot",
        brief="graph a probability table",
        description="""!plot <expr>

Parameters:
    expr - The expression to graph.

Result:
    Draws the probability table of the expression as a bar chart.
""",
    )
    async def plot_(ctx: commands.Context, *args: str):
        text = " ".join(args)
        try:
            evaluation, data = await asyncio.wait_for(
                asyncio.to_thread(_plot, session, text), settings["timeout"]
            )
            await ctx.send(
                "**Input:** %s" % evaluation.expression,
                file=discord.File(io.BytesIO(data), filename="image.png"),
            )
        except asyncio.TimeoutError:
            await ctx.send("Your plot took too long to draw. Sorry!")
        except DiceRollError as e:
            await ctx.send("Error in input: %s" % e.args[0])
        except BaseException as e:
            try:
                await ctx.send("An internal error occured. Sorry!")
            except BaseException:
                pass
            raise e

    @client.command(
        brief="get or list functions for !roll",
        description="""!rollhelp [<fn>]

Parameters:
    fn - Optional. The function to describe.

Result:
    Prints help on a !roll function, or if no specific function was
    given, prints a list of all valid functions.
""",
    )
    async def rollhelp(ctx: commands.Context, *args: str):
        if not args:
            await ctx.send(function_list())
        else:
            for arg in args:
                fn = roll_functions.NAMES_TO_FUNCTIONS.get(arg.lower())
                if fn is None:
                    await ctx.send("error: function %s not found." % arg)
                else:
                    await ctx.send("```\n" + fn.help() + "\n```")

    return client


def function_list() -> str:
    message = "```\n"
    max_namelen = max(len(x) for x in roll_functions.NAMES_TO_FUNCTIONS.keys())
    for name, fn in sorted(roll_functions.NAMES_TO_FUNCTIONS.items()):
        message += name + " " * (max_namelen - len(name) + 2) + fn.description() + "\n"
    message += "\nType !rollhelp <name> to get help on the function <name>.```"
    return message


def main(argv: typing.List[str] = sys.argv) -> int:
    parser = argparse.ArgumentParser(prog="dicecalc")
    parser.add_argument("--settings", default=SETTINGS_FILE)
    parser.add_argument("mode", choices=("repl", "bot"), nargs="?", default="repl")
    args = parser.parse_args(argv[1:])

    if os.path.exists(args.settings):
        try:
            settings = settings_.load_settings(args.settings)
        except settings_.SettingsError as e:
            print("Error in settings: %s" % e.args[0])
            return 1
    elif args.mode == "bot":
        shutil.copy(settings_.DEFAULT_SETTINGS_FILE, args.settings)
        print(
            "%s not detected!"
            " A default one has been provided."
            " Please edit that file and re-run this program." % args.settings
        )
        return 1
    else:
        settings = settings_.default_settings()

    logging.basicConfig(
        level=settings["log_level"],
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    session = Session(seed=settings["seed"])

    if args.mode == "repl":
        return repl(session, sys.stdin, sys.stdout)

    client = make_client(settings, session)
    client.run(settings["token"], log_handler=None)
    return 0


if __name__ == "__main__":
    sys.exit(main())
