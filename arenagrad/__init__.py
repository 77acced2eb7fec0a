"""
Arenagrad: a scalar autograd engine whose Values live in an arena.

Every Value of a computation is stored in a Graph and referred to by its
integer id. The Graph builds expressions eagerly and backpropagates
gradients through them.
"""

from arenagrad.engine import Graph, Op, UnknownNodeError, Value
from arenagrad import nn
from arenagrad.utils import draw_dot, export_graph

__version__ = "0.1.0"
__all__ = ["Graph", "Op", "UnknownNodeError", "Value", "nn", "draw_dot", "export_graph"]
