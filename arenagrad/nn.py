"""
Neural network building blocks for arenagrad.

This module provides scalar neurons, layers and multi-layer perceptrons whose
parameters live as leaf Values in a shared Graph.

Inputs and targets are either plain real numbers, which become new leaves,
or Value objects already stored in the Graph. Bare integers are numbers here,
never arena ids.
"""

import numbers

import numpy as np

from arenagrad.engine import UnknownNodeError, Value


class Module:
    """
    Base class for all neural network modules.

    Provides common functionality for managing parameters and gradients.
    Parameters are arena ids of leaf Values in ``self.graph``.
    """

    graph = None

    def zero_grad(self):
        """
        Reset all parameter gradients to zero.

        Call this before each backward pass to avoid accumulating gradients
        from multiple backward passes.
        """
        self.graph.zero_grad(self.parameters())

    def parameters(self):
        """
        Return a list of all trainable parameter ids (weights and biases).

        Override this in subclasses to return actual parameters.
        """
        return []


def _as_id(graph, x, label):
    """Return the arena id for a Value of ``graph``, or a new leaf for a number."""
    if isinstance(x, Value):
        # Another graph may hold a node under the same id
        if graph.get(x.id) is not x:
            raise UnknownNodeError(x.id)
        return x.id
    if isinstance(x, numbers.Real) and not isinstance(x, bool):
        return graph.create_leaf(label, float(x))
    raise TypeError(f"expected a real number or a Value, got {type(x).__name__}")


def _as_inputs(graph, x):
    """Turn numbers into input leaves labelled x0, x1, ...; Values give their ids."""
    return [_as_id(graph, xi, f"x{i}") for i, xi in enumerate(x)]


class Neuron(Module):
    """
    A single neuron: out = tanh(w . x + b).

    Args:
        graph: Graph the parameters are created in
        nin: Number of inputs
        nonlin: If True, apply tanh to the weighted sum (default: True)
        name: Prefix for parameter labels, keeping them distinct in graph exports
        rng: Optional numpy Generator used for uniform(-1, 1) initialization

    Example:
        >>> from arenagrad.engine import Graph
        >>> g = Graph()
        >>> n = Neuron(g, 2, name='n')
        >>> out = n([1, -2.0])
        >>> g.get(out).label
        'tanh((((n.w0 * x0) + (n.w1 * x1)) + n.b))'
    """

    def __init__(self, graph, nin, nonlin=True, name="", rng=None):
        rng = rng if rng is not None else np.random.default_rng()
        self.graph = graph
        self.name = name
        self.nonlin = nonlin
        self.w = [
            graph.create_leaf(f"{name}.w{i}", rng.uniform(-1.0, 1.0))
            for i in range(nin)
        ]
        self.b = graph.create_leaf(f"{name}.b", rng.uniform(-1.0, 1.0))

    def __call__(self, x):
        """
        Forward pass: build the neuron's expression on top of the inputs.

        Args:
            x: Sequence of real numbers or Values, one per weight

        Returns:
            Id of the neuron's output Value
        """
        if len(x) != len(self.w):
            raise ValueError(f"{self!r} expects {len(self.w)} inputs, got {len(x)}")
        return self._forward(_as_inputs(self.graph, x))

    def _forward(self, ids):
        g = self.graph
        act = None
        for wi, xi in zip(self.w, ids):
            term = g.mul(wi, xi)
            act = term if act is None else g.add(act, term)
        act = self.b if act is None else g.add(act, self.b)

        return g.tanh(act) if self.nonlin else act

    def parameters(self):
        return self.w + [self.b]

    def __repr__(self):
        kind = 'Tanh' if self.nonlin else 'Linear'
        return f"{kind}Neuron({len(self.w)})"


class Layer(Module):
    """A list of independent neurons sharing the same inputs."""

    def __init__(self, graph, nin, nout, nonlin=True, name="", rng=None):
        self.graph = graph
        self.nin = nin
        self.neurons = [
            Neuron(graph, nin, nonlin=nonlin, name=f"{name}.n{i}", rng=rng)
            for i in range(nout)
        ]

    def __call__(self, x):
        if len(x) != self.nin:
            raise ValueError(f"layer expects {self.nin} inputs, got {len(x)}")
        # Convert once so every neuron shares the same input leaves
        return self._forward(_as_inputs(self.graph, x))

    def _forward(self, ids):
        return [n._forward(ids) for n in self.neurons]

    def parameters(self):
        return [p for n in self.neurons for p in n.parameters()]

    def __repr__(self):
        return f"Layer of [{', '.join(str(n) for n in self.neurons)}]"


class MLP(Module):
    """
    Multi-Layer Perceptron: a sequence of fully-connected layers.

    Args:
        graph: Graph the parameters are created in
        nin: Number of input features
        nouts: List of output sizes for each layer, at least one
               Example: [4, 4, 1] creates 3 layers: input→4→4→1
        linear_output: If True the last layer skips tanh (default: False)
        seed: Optional seed for parameter initialization

    Example:
        >>> from arenagrad.engine import Graph
        >>> g = Graph()
        >>> mlp = MLP(g, 3, [4, 4, 1], seed=0)
        >>> loss = mse_loss(g, [mlp([2.0, 3.0, -1.0])], [1.0])
        >>> mlp.zero_grad()
        >>> g.backward(loss)
        >>> for p in mlp.parameters():
        ...     g.get(p).data -= 0.05 * g.get(p).grad

    Every call appends a fresh expression to the Graph; parameters are shared
    between calls.
    """

    def __init__(self, graph, nin, nouts, linear_output=False, seed=None):
        nouts = list(nouts)
        if not nouts:
            raise ValueError("MLP needs at least one layer")
        rng = np.random.default_rng(seed)
        self.graph = graph
        sizes = [nin] + nouts
        self.layers = []
        for i in range(len(nouts)):
            is_output_layer = (i == len(nouts) - 1)
            self.layers.append(Layer(
                graph,
                sizes[i],
                sizes[i + 1],
                nonlin=not (linear_output and is_output_layer),
                name=f"layer{i}",
                rng=rng,
            ))

    def __call__(self, x):
        """
        Forward pass: pass input through all layers sequentially.

        Returns:
            A single id when the last layer has one neuron, else a list of ids
        """
        ids = self.layers[0](x)
        for layer in self.layers[1:]:
            ids = layer._forward(ids)
        return ids[0] if len(ids) == 1 else ids

    def parameters(self):
        """Return all trainable parameters from all layers."""
        return [p for layer in self.layers for p in layer.parameters()]

    def __repr__(self):
        layer_str = '\n  '.join(str(layer) for layer in self.layers)
        return f"MLP of [\n  {layer_str}\n]"


def mse_loss(graph, predictions, targets):
    """
    Sum of squared errors: sum((prediction - target)²).

    Args:
        graph: Graph holding the predictions
        predictions: ids of predicted Values
        targets: real numbers or Values, aligned with ``predictions``

    Returns:
        Id of the loss Value
    """
    if not predictions:
        raise ValueError("mse_loss needs at least one prediction")
    if len(predictions) != len(targets):
        raise ValueError(
            f"got {len(predictions)} predictions for {len(targets)} targets"
        )
    minus_one = graph.create_leaf("-1", -1.0)

    loss = None
    for i, (pred, target) in enumerate(zip(predictions, targets)):
        target = _as_id(graph, target, f"y{i}")
        diff = graph.add(pred, graph.mul(target, minus_one))
        sq = graph.mul(diff, diff)
        loss = sq if loss is None else graph.add(loss, sq)

    return loss
