import enum
import logging

import numpy as np

logger = logging.getLogger(__name__)


class Op(enum.Enum):
    """Closed set of operations a derived Value can represent."""

    ADD = '+'
    MUL = '*'
    TANH = 'tanh'
    RELU = 'ReLU'


class UnknownNodeError(LookupError):
    """Raised when an id was never assigned by the Graph it is used with."""

    def __init__(self, node_id):
        super().__init__(f"unknown node id: {node_id!r}")
        self.node_id = node_id


class Value:
    """
    One scalar node stored in a Graph.

    A Value never holds references to other Values. Its inputs are recorded
    as arena ids in ``operands``, which keeps shared sub-expressions and
    gradient back-propagation free of ownership cycles.

    Only ``label``, ``data`` and ``grad`` may change after creation.
    """

    __slots__ = ('_id', '_op', '_operands', 'label', 'data', 'grad')

    def __init__(self, id, label, data, op=None, operands=()):
        self._id = id
        self._op = op
        self._operands = tuple(operands)
        self.label = label
        self.data = np.float64(data)
        self.grad = np.float64(0.0)

    @property
    def id(self):
        return self._id

    @property
    def op(self):
        return self._op

    @property
    def operands(self):
        return self._operands

    @property
    def is_leaf(self):
        return self._op is None

    def __str__(self):
        return f"{{ {self.label} | data {self.data:.4f} | grad {self.grad:.4f} }}"

    def __repr__(self):
        label_str = f"'{self.label}' " if self.label else ""
        op_str = f" from {self._op.value}{list(self._operands)}" if self._op else ""
        return f"Value(#{self._id} {label_str}data={self.data}, grad={self.grad}{op_str})"


class Graph:
    """
    Arena owning every Value of a computation and the autograd over them.

    Values are addressed by the integer id returned when they are created.
    Ids are assigned in creation order and never reused; nothing is ever
    removed from the arena.

    Example:
        >>> g = Graph()
        >>> x = g.create_leaf('x', 2.0)
        >>> y = g.create_leaf('y', 3.0)
        >>> z = g.add(g.mul(x, y), x)
        >>> g.backward(z)
        >>> print(g.get(x).grad)  # dz/dx = y + 1
        4.0
    """

    def __init__(self):
        self._nodes = []

    def __len__(self):
        return len(self._nodes)

    def __iter__(self):
        return iter(self._nodes)

    def __contains__(self, node_id):
        return self._is_valid(node_id)

    def _is_valid(self, node_id):
        # bool is an int subclass but never a node id
        return (
            isinstance(node_id, (int, np.integer))
            and not isinstance(node_id, bool)
            and 0 <= node_id < len(self._nodes)
        )

    def _push(self, label, data, op=None, operands=()):
        node_id = len(self._nodes)
        self._nodes.append(Value(node_id, label, data, op, operands))
        logger.debug(
            "created #%d (%s), %d nodes in graph",
            node_id, op.value if op else "leaf", len(self._nodes),
        )
        return node_id

    # Arena access

    def get(self, node_id):
        """
        Return the Value stored under ``node_id``.

        The returned object is the live node: setting its ``label``, ``data``
        or ``grad`` changes the arena.

        Raises:
            UnknownNodeError: if ``node_id`` was not created by this graph.
        """
        if not self._is_valid(node_id):
            raise UnknownNodeError(node_id)
        return self._nodes[node_id]

    def create_leaf(self, label, data):
        """Insert an input Value with no operands and return its id."""
        return self._push(label, data)

    def relabel(self, node_id, label):
        """Rename a Value, typically to annotate an intermediate result."""
        self.get(node_id).label = label

    # Forward operations

    def add(self, a, b):
        """
        Addition node: data = a + b.

        Example:
            >>> g = Graph()
            >>> c = g.add(g.create_leaf('a', 1.0), g.create_leaf('b', 2.0))
            >>> g.get(c).label
            '(a + b)'
        """
        va, vb = self.get(a), self.get(b)
        with np.errstate(all='ignore'):
            data = va.data + vb.data
        return self._push(f"({va.label} + {vb.label})", data, Op.ADD, (a, b))

    def mul(self, a, b):
        """Multiplication node: data = a * b."""
        va, vb = self.get(a), self.get(b)
        with np.errstate(all='ignore'):
            data = va.data * vb.data
        return self._push(f"({va.label} * {vb.label})", data, Op.MUL, (a, b))

    def tanh(self, a):
        """
        Hyperbolic tangent node: data = (e^2x - 1) / (e^2x + 1).

        The fraction is evaluated after multiplying through by e^-2|x| so
        large inputs saturate at +-1 instead of overflowing to inf / inf.
        """
        va = self.get(a)
        x = va.data
        with np.errstate(all='ignore'):
            e = np.exp(-2.0 * abs(x))
            t = np.sign(x) * (1.0 - e) / (1.0 + e)
        return self._push(f"tanh({va.label})", t, Op.TANH, (a,))

    def relu(self, a):
        """ReLU node: data = max(0, a)."""
        va = self.get(a)
        with np.errstate(all='ignore'):
            data = np.maximum(0.0, va.data)
        return self._push(f"relu({va.label})", data, Op.RELU, (a,))

    # Backward pass

    def topological_order(self, root):
        """
        Return the ids reachable from ``root`` with operands before users.

        Every reachable id appears exactly once. The walk uses an explicit
        stack so deep chains do not hit the interpreter's recursion limit.
        """
        self.get(root)
        topo = []
        visited = {root}
        # (node id, index of the next operand to visit)
        stack = [(root, 0)]
        while stack:
            node_id, i = stack[-1]
            operands = self._nodes[node_id].operands
            if i < len(operands):
                stack[-1] = (node_id, i + 1)
                child = operands[i]
                if child not in visited:
                    visited.add(child)
                    stack.append((child, 0))
            else:
                stack.pop()
                topo.append(node_id)
        return topo

    def backward(self, root):
        """
        Backpropagate from ``root``: add d(root)/d(node) to every reachable grad.

        The root's gradient is set to 1.0, then each edge of the reachable
        sub-graph is processed exactly once in reverse topological order.
        Gradients of other nodes are accumulated, not overwritten, so call
        ``zero_grad`` before differentiating again unless accumulation is
        what you want.

        Example:
            >>> g = Graph()
            >>> a = g.create_leaf('a', 3.0)
            >>> b = g.add(g.mul(a, a), a)
            >>> g.backward(b)
            >>> print(g.get(a).grad)  # 2a + 1
            7.0
        """
        topo = self.topological_order(root)
        nodes = self._nodes

        # Contributions of this pass only, so a repeated call adds exactly
        # one more pass on top of the stored gradients
        grads = dict.fromkeys(topo, np.float64(0.0))
        grads[root] = np.float64(1.0)

        with np.errstate(all='ignore'):
            for node_id in reversed(topo):
                node = nodes[node_id]
                out_grad = grads[node_id]
                if node.op is None:
                    continue
                if node.op is Op.ADD:
                    for operand in node.operands:
                        grads[operand] += out_grad
                elif node.op is Op.MUL:
                    a, b = node.operands
                    grads[a] += out_grad * nodes[b].data
                    grads[b] += out_grad * nodes[a].data
                elif node.op is Op.TANH:
                    grads[node.operands[0]] += out_grad * (1.0 - node.data ** 2)
                elif node.op is Op.RELU:
                    grads[node.operands[0]] += out_grad * (node.data > 0)
                else:
                    raise NotImplementedError(f"no gradient rule for {node.op}")

        for node_id, grad in grads.items():
            if node_id == root:
                nodes[node_id].grad = np.float64(1.0)
            else:
                nodes[node_id].grad += grad

        logger.debug("backward from #%d touched %d nodes", root, len(topo))

    def zero_grad(self, node_ids=None):
        """
        Reset gradients to zero.

        Args:
            node_ids: ids to reset; all Values in the arena when omitted
        """
        if node_ids is None:
            targets = self._nodes
        else:
            targets = [self.get(node_id) for node_id in node_ids]
        for node in targets:
            node.grad = np.float64(0.0)
