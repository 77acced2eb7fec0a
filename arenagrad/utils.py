"""
Visualization utilities for arenagrad computation graphs.

This module projects the part of a Graph reachable from a root Value into a
plain node/edge view and turns that view into a Graphviz diagram showing the
flow of data and gradients through operations.

Nodes are identified by their label in the exported view: two Values sharing
a label are drawn as one box, and edges are kept once per
(source label, destination label) pair.
"""

from collections import namedtuple

from graphviz import Digraph


class NodeView(namedtuple('NodeView', ['label', 'op', 'data', 'grad'])):
    """Read-only snapshot of one exported Value."""

    __slots__ = ()

    @property
    def op_tag(self):
        return self.op.value if self.op is not None else ""

    @property
    def annotation(self):
        """Operation, label, data and gradient formatted for display."""
        return f"{self.op_tag} | {self.label} | data {self.data:.4f} | grad {self.grad:.4f}"


GraphExport = namedtuple('GraphExport', ['nodes', 'edges'])
GraphExport.__doc__ = """
Node/edge projection of a computation graph.

Attributes:
    nodes: dict mapping label -> NodeView, in traversal order
    edges: set of (source_label, destination_label) pairs, source being the operand
"""


def trace(graph, root):
    """
    Trace the computation graph reachable from ``root``.

    Walks operands depth-first with an explicit stack and collects the
    reachable Values, keeping the first Value seen for every label, along
    with the label pairs of the edges between them.

    Args:
        graph: the Graph holding the Values
        root: id of the Value to start from (typically the loss)

    Returns:
        tuple: (nodes, edges) where:
            - nodes: dict of label -> Value
            - edges: set of (operand_label, result_label) tuples

    Raises:
        UnknownNodeError: if ``root`` is not in ``graph``

    Example:
        >>> from arenagrad.engine import Graph
        >>> g = Graph()
        >>> x = g.create_leaf('x', 2.0)
        >>> y = g.create_leaf('y', 3.0)
        >>> z = g.add(g.mul(x, y), x)
        >>> nodes, edges = trace(g, z)
        >>> len(nodes)  # x, y, (x * y) and ((x * y) + x)
        4
    """
    nodes, edges = {}, set()
    visited = set()
    stack = [graph.get(root).id]

    while stack:
        node_id = stack.pop()
        if node_id in visited:
            continue
        visited.add(node_id)

        v = graph.get(node_id)
        nodes.setdefault(v.label, v)
        for child_id in v.operands:
            edges.add((graph.get(child_id).label, v.label))
            stack.append(child_id)

    return nodes, edges


def export_graph(graph, root):
    """
    Snapshot the graph reachable from ``root`` as a GraphExport.

    The export copies data and gradients, so later changes to the Graph do
    not show up in it.
    """
    nodes, edges = trace(graph, root)
    views = {
        label: NodeView(label, v.op, float(v.data), float(v.grad))
        for label, v in nodes.items()
    }
    return GraphExport(views, edges)


def _escape_record(text):
    """Escape characters with a meaning inside Graphviz record labels."""
    for ch in '\\{}|<>':
        text = text.replace(ch, '\\' + ch)
    return text


def draw_dot(graph, root, format='svg', rankdir='LR'):
    """
    Visualize the computation graph below ``root`` as a directed graph.

    Creates a Graphviz diagram showing:
    - Value nodes with their label, data and gradient
    - Operation nodes (+, *, tanh, ReLU)
    - Edges showing data flow through the computation

    Args:
        graph: the Graph holding the Values
        root: id of the Value to visualize from
        format: Output format ('svg', 'png', 'pdf', etc.)
        rankdir: Graph direction - 'LR' (left-right) or 'TB' (top-bottom)

    Returns:
        Digraph: A graphviz Digraph object that can be rendered or displayed

    Example:
        >>> from arenagrad.engine import Graph
        >>> g = Graph()
        >>> x = g.create_leaf('x', 2.0)
        >>> y = g.create_leaf('y', -3.0)
        >>> z = g.mul(x, y)
        >>> g.relabel(z, 'z')
        >>> g.backward(z)
        >>> dot = draw_dot(g, z)
        >>> dot.render('computation_graph')  # needs the Graphviz binaries

    Note:
        Rendering requires the Graphviz system package
        (apt install graphviz / brew install graphviz); building the
        Digraph does not.
    """
    assert rankdir in ['LR', 'TB'], "rankdir must be 'LR' (left-right) or 'TB' (top-bottom)"

    export = export_graph(graph, root)

    dot = Digraph(format=format, graph_attr={'rankdir': rankdir})

    # Labels are free text, so Graphviz gets positional names instead
    names = {label: f"v{i}" for i, label in enumerate(export.nodes)}

    for label, n in export.nodes.items():
        uid = names[label]
        record = f"{{ {_escape_record(label)} | data {n.data:.4f} | grad {n.grad:.4f} }}"
        dot.node(name=uid, label=record, shape='record')

        # Derived values get a separate operation node feeding into them
        if n.op is not None:
            dot.node(name=uid + '_op', label=n.op_tag)
            dot.edge(uid + '_op', uid)

    for src, dst in sorted(export.edges):
        # A label shared with a leaf may have been exported as that leaf
        suffix = '_op' if export.nodes[dst].op is not None else ''
        dot.edge(names[src], names[dst] + suffix)

    return dot
