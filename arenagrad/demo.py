"""
Command-line walkthrough of the arena autograd engine.

Builds L = (a * b + c) * f, backpropagates, prints every Value and can
optionally run a few caller-side update steps and render the graph.
"""

import argparse
import logging
import os

from arenagrad.engine import Graph
from arenagrad.utils import draw_dot

logger = logging.getLogger(__name__)

LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
FORMATS = ["svg", "png", "pdf"]

LEAVES = {"a": 2.0, "b": -3.0, "c": 10.0, "f": -2.0}


def build_expression(graph, leaves):
    """
    Record L = (a * b + c) * f on ``graph`` from existing leaf ids.

    Returns:
        dict: label -> id for e, d and L
    """
    e = graph.mul(leaves["a"], leaves["b"])
    graph.relabel(e, "e")
    d = graph.add(e, leaves["c"])
    graph.relabel(d, "d")
    L = graph.mul(d, leaves["f"])
    graph.relabel(L, "L")
    return {"e": e, "d": d, "L": L}


def run(steps=0, learning_rate=0.01):
    """
    Build the expression, differentiate it and apply ``steps`` updates.

    Each update nudges every leaf by ``learning_rate * grad`` (moving L up),
    then records the expression again from the updated leaves, since Values
    are evaluated when they are created.

    Returns:
        tuple: (graph, ids) with ids mapping labels to the latest Values
    """
    graph = Graph()
    leaves = {label: graph.create_leaf(label, data) for label, data in LEAVES.items()}
    ids = dict(leaves, **build_expression(graph, leaves))
    graph.backward(ids["L"])

    for step in range(steps):
        for leaf in leaves.values():
            v = graph.get(leaf)
            v.data += learning_rate * v.grad
        graph.zero_grad()
        ids.update(build_expression(graph, leaves))
        graph.backward(ids["L"])
        logger.info("step %d: L = %.4f", step + 1, graph.get(ids["L"]).data)

    return graph, ids


def main(argv=None):
    parser = argparse.ArgumentParser(
        description="Differentiate L = (a * b + c) * f with the arena autograd engine."
    )
    parser.add_argument(
        "--steps",
        type=int,
        default=0,
        help="Number of update steps to apply after the first backward pass (default: 0)",
    )
    parser.add_argument(
        "--learning-rate",
        type=float,
        default=0.01,
        help="Step size for the leaf updates (default: 0.01)",
    )
    parser.add_argument(
        "--render",
        metavar="PATH",
        default=os.getenv("ARENAGRAD_OUTPUT"),
        help="Render the graph with Graphviz to PATH (default: $ARENAGRAD_OUTPUT, unset skips rendering)",
    )
    parser.add_argument(
        "--format",
        choices=FORMATS,
        default="svg",
        help="Graphviz output format (default: svg)",
    )
    parser.add_argument(
        "--rankdir",
        choices=["LR", "TB"],
        default="LR",
        help="Graph direction (default: LR)",
    )
    parser.add_argument(
        "--log-level",
        type=str.upper,
        choices=LOG_LEVELS,
        default=os.getenv("ARENAGRAD_LOG_LEVEL", "INFO"),
        help="Logging level (default: $ARENAGRAD_LOG_LEVEL or INFO)",
    )
    args = parser.parse_args(argv)
    # choices are not checked against defaults taken from the environment
    if args.log_level not in LOG_LEVELS:
        parser.error(f"invalid $ARENAGRAD_LOG_LEVEL: {args.log_level!r}")

    logging.basicConfig(
        level=args.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    graph, ids = run(steps=args.steps, learning_rate=args.learning_rate)

    for label in ["a", "b", "c", "f", "e", "d", "L"]:
        print(graph.get(ids[label]))

    if args.render:
        dot = draw_dot(graph, ids["L"], format=args.format, rankdir=args.rankdir)
        path = dot.render(args.render, cleanup=True)
        print(f"\nGraph rendered to {path}")

    return 0


if __name__ == "__main__":
    raise SystemExit(main())
