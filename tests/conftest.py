import pytest

from arenagrad.engine import Graph


@pytest.fixture
def graph():
    return Graph()


@pytest.fixture
def expression(graph):
    """L = (a * b + c) * f with intermediate results labelled e and d."""
    ids = {
        "a": graph.create_leaf("a", 2.0),
        "b": graph.create_leaf("b", -3.0),
        "c": graph.create_leaf("c", 10.0),
        "f": graph.create_leaf("f", -2.0),
    }
    ids["e"] = graph.mul(ids["a"], ids["b"])
    graph.relabel(ids["e"], "e")
    ids["d"] = graph.add(ids["e"], ids["c"])
    graph.relabel(ids["d"], "d")
    ids["L"] = graph.mul(ids["d"], ids["f"])
    graph.relabel(ids["L"], "L")
    return ids
