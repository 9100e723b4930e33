import io
import typing

import pandas
import plotly.express as px

from dicecalc.roll import _Number


def table_frame(
    tables: typing.Dict[str, typing.Dict[float, float]]
) -> pandas.DataFrame:
    """One row per outcome, one probability column per labelled table."""
    possible_values = set()
    for probtab in tables.values():
        possible_values.update(probtab.keys())
    possible_values = sorted(possible_values)

    columns = {"value": [repr(_Number(x)) for x in possible_values]}
    for label, probtab in tables.items():
        columns[label] = [probtab.get(value, 0.0) for value in possible_values]
    return pandas.DataFrame(columns)


def plot_tables(tables: typing.Dict[str, typing.Dict[float, float]]) -> bytes:
    data = table_frame(tables)
    fig = px.bar(data, x="value", y=list(data.columns[1:]), barmode="overlay")
    fig.update_xaxes(title_text="value")
    fig.update_yaxes(title_text="probability", tickformat="%")
    stream = io.BytesIO()
    fig.write_image(file=stream, format="png")
    return stream.getvalue()
