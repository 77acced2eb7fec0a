import pytest
from graphviz import Digraph

from arenagrad.engine import Op, UnknownNodeError
from arenagrad.utils import draw_dot, export_graph, trace


def test_trace_reference_expression(graph, expression):
    nodes, edges = trace(graph, expression["L"])
    assert set(nodes) == {"a", "b", "c", "d", "e", "f", "L"}
    assert edges == {
        ("a", "e"), ("b", "e"),
        ("e", "d"), ("c", "d"),
        ("d", "L"), ("f", "L"),
    }


def test_trace_only_follows_operands(graph, expression):
    nodes, edges = trace(graph, expression["d"])
    assert set(nodes) == {"a", "b", "c", "d", "e"}
    assert ("d", "L") not in edges


def test_trace_deduplicates_labels(graph):
    x1 = graph.create_leaf("x", 1.0)
    x2 = graph.create_leaf("x", 2.0)
    s = graph.add(x1, x2)
    nodes, edges = trace(graph, s)
    assert set(nodes) == {"x", "(x + x)"}
    assert edges == {("x", "(x + x)")}


def test_trace_diamond_counts_each_pair_once(graph):
    a = graph.create_leaf("a", 3.0)
    b = graph.mul(a, a)
    c = graph.add(b, a)
    nodes, edges = trace(graph, c)
    assert len(nodes) == 3
    assert edges == {("a", "(a * a)"), ("(a * a)", "((a * a) + a)"), ("a", "((a * a) + a)")}


def test_trace_unknown_root(graph):
    with pytest.raises(UnknownNodeError):
        trace(graph, 0)


def test_export_graph_views(graph, expression):
    graph.backward(expression["L"])
    export = export_graph(graph, expression["L"])

    L = export.nodes["L"]
    assert L.op is Op.MUL
    assert L.data == -8.0
    assert L.grad == 1.0
    assert L.annotation == "* | L | data -8.0000 | grad 1.0000"

    a = export.nodes["a"]
    assert a.op is None
    assert a.op_tag == ""
    assert a.annotation == " | a | data 2.0000 | grad 6.0000"
    assert len(export.edges) == 6


def test_export_graph_is_a_snapshot(graph, expression):
    export = export_graph(graph, expression["L"])
    graph.get(expression["a"]).data = 100.0
    assert export.nodes["a"].data == 2.0


def test_export_graph_does_not_mutate(graph, expression):
    graph.backward(expression["L"])
    before = [(v.label, v.data, v.grad) for v in graph]
    export_graph(graph, expression["L"])
    draw_dot(graph, expression["L"])
    assert [(v.label, v.data, v.grad) for v in graph] == before


def test_draw_dot(graph, expression):
    graph.backward(expression["L"])
    dot = draw_dot(graph, expression["L"])
    assert isinstance(dot, Digraph)
    assert dot.format == "svg"

    source = dot.source
    assert "rankdir=LR" in source
    assert "shape=record" in source
    assert "data -8.0000" in source
    assert "grad 6.0000" in source

    # 6 operand edges plus one op -> value edge for each of e, d and L
    assert sum(1 for line in dot.body if "->" in line) == 9


def test_draw_dot_options(graph, expression):
    dot = draw_dot(graph, expression["L"], format="png", rankdir="TB")
    assert dot.format == "png"
    assert "rankdir=TB" in dot.source


def test_draw_dot_rejects_bad_rankdir(graph, expression):
    with pytest.raises(AssertionError):
        draw_dot(graph, expression["L"], rankdir="RL")


def test_draw_dot_escapes_record_labels(graph):
    a = graph.create_leaf("a|b", 1.0)
    dot = draw_dot(graph, a)
    assert r"a\|b" in dot.source
