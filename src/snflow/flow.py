"""Node-split flow formulation of the overflow offloading problem.

Every sensor ``v`` becomes an in-vertex and an out-vertex so that per-node
limits can be attached to the traffic passing through it. With ``n``
sensors the vertex space is::

    0            source
    1 .. n       node-in   (k-th sensor in topology order)
    n+1 .. 2n    node-out
    2n+1         sink

One non-negative integer variable ``x[u][v]`` exists for every ordered
vertex pair. Pairs that do not correspond to a usable edge are kept as
variables and pinned to zero by a single aggregate equality row.

The builder produces a solver-neutral :class:`FlowModel`; see
:mod:`snflow.optimizer` for the adapters that solve it.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum, auto

import numpy as np
from scipy import sparse

from snflow.energy import edge_cost, receiving_cost, transmission_cost
from snflow.models import DataNode, SensorNode, StorageNode, Topology


class VertexKind(Enum):
    SOURCE = auto()
    SINK = auto()
    NODE_IN = auto()
    NODE_OUT = auto()


@dataclass(frozen=True)
class Vertex:
    """A vertex of the split graph; ``node_id`` is set for in/out vertices."""

    kind: VertexKind
    node_id: int | None = None

    @classmethod
    def source(cls) -> Vertex:
        return cls(VertexKind.SOURCE)

    @classmethod
    def sink(cls) -> Vertex:
        return cls(VertexKind.SINK)

    @classmethod
    def node_in(cls, node: SensorNode) -> Vertex:
        return cls(VertexKind.NODE_IN, node.node_id)

    @classmethod
    def node_out(cls, node: SensorNode) -> Vertex:
        return cls(VertexKind.NODE_OUT, node.node_id)


class VertexIndex:
    """Dense numbering of split-graph vertices and of the edge variables."""

    def __init__(self, nodes: list[SensorNode]) -> None:
        self.n = len(nodes)
        self.size = 2 * self.n + 2
        self._position = {node.node_id: k for k, node in enumerate(nodes, start=1)}
        self._vertices: list[Vertex] = [Vertex.source()]
        self._vertices += [Vertex.node_in(node) for node in nodes]
        self._vertices += [Vertex.node_out(node) for node in nodes]
        self._vertices.append(Vertex.sink())

    @property
    def num_variables(self) -> int:
        return self.size * self.size

    def index(self, vertex: Vertex) -> int:
        if vertex.kind is VertexKind.SOURCE:
            return 0
        if vertex.kind is VertexKind.SINK:
            return self.size - 1
        k = self._position[vertex.node_id]
        return k if vertex.kind is VertexKind.NODE_IN else k + self.n

    def vertex(self, index: int) -> Vertex:
        return self._vertices[index]

    def variable(self, tail: Vertex, head: Vertex) -> int:
        """Column of ``x[tail][head]``."""
        return self.index(tail) * self.size + self.index(head)

    def edge(self, column: int) -> tuple[Vertex, Vertex]:
        tail, head = divmod(column, self.size)
        return self._vertices[tail], self._vertices[head]


class FlowMode(Enum):
    FEASIBILITY = auto()
    MIN_COST = auto()


class ObjectiveSense(Enum):
    MAXIMIZE = auto()
    MINIMIZE = auto()


@dataclass
class FlowModel:
    """Solver-neutral integer program.

    Rows read ``row_lower <= constraints @ x <= row_upper``; an infinite
    bound means the row is one-sided.

    Attributes:
        mode: Which question the model answers.
        index: Vertex/variable numbering used to build the model.
        lower_bounds: Per-variable lower bounds.
        upper_bounds: Per-variable upper bounds (``inf`` when unlimited).
        integrality: 1 where the variable must be integral.
        constraints: Sparse constraint matrix, one row per constraint.
        row_lower: Lower bound of each row.
        row_upper: Upper bound of each row.
        row_names: Human-readable name of each row.
        objective: Objective coefficient of each variable.
        sense: Whether ``objective`` is maximized or minimized.
        target_flow: Packets that must leave the source for full offload.
    """

    mode: FlowMode
    index: VertexIndex
    lower_bounds: np.ndarray
    upper_bounds: np.ndarray
    integrality: np.ndarray
    constraints: sparse.csr_matrix
    row_lower: np.ndarray
    row_upper: np.ndarray
    row_names: list[str]
    objective: np.ndarray
    sense: ObjectiveSense
    target_flow: int

    @property
    def num_variables(self) -> int:
        return self.index.num_variables

    @property
    def num_constraints(self) -> int:
        return len(self.row_names)

    def variable_name(self, column: int) -> str:
        tail, head = divmod(column, self.index.size)
        return f"x_{tail}_{head}"


class _Rows:
    """Accumulates sparse constraint rows."""

    def __init__(self) -> None:
        self.data: list[float] = []
        self.rows: list[int] = []
        self.cols: list[int] = []
        self.lower: list[float] = []
        self.upper: list[float] = []
        self.names: list[str] = []

    def add(
        self, name: str, coeffs: dict[int, float], lower: float, upper: float
    ) -> None:
        row = len(self.names)
        for col, value in coeffs.items():
            if value != 0:
                self.rows.append(row)
                self.cols.append(col)
                self.data.append(value)
        self.lower.append(lower)
        self.upper.append(upper)
        self.names.append(name)

    def matrix(self, num_variables: int) -> sparse.csr_matrix:
        return sparse.csr_matrix(
            (self.data, (self.rows, self.cols)),
            shape=(len(self.names), num_variables),
        )


class FlowModelBuilder:
    """Builds node-split flow models for one topology.

    Args:
        topology: The sensor network to model. It is read, never modified.
    """

    def __init__(self, topology: Topology) -> None:
        self.topology = topology
        self.index = VertexIndex(topology.nodes)
        self._source = Vertex.source()
        self._sink = Vertex.sink()

    def _permitted_cost(self, tail: Vertex, head: Vertex) -> int | None:
        """Cost of a usable edge, or ``None`` if the edge is not allowed."""
        topo = self.topology
        if tail.kind is VertexKind.SOURCE:
            if head.kind is VertexKind.NODE_IN and isinstance(
                topo.node(head.node_id), DataNode
            ):
                return 0
            return None
        if tail.kind is VertexKind.NODE_IN:
            if head.kind is VertexKind.NODE_OUT and head.node_id == tail.node_id:
                return 0
            return None
        if tail.kind is VertexKind.NODE_OUT:
            sender = topo.node(tail.node_id)
            if head.kind is VertexKind.SINK:
                return 0 if isinstance(sender, StorageNode) else None
            if head.kind is VertexKind.NODE_IN and head.node_id != tail.node_id:
                receiver = topo.node(head.node_id)
                if topo.are_adjacent(sender, receiver):
                    return edge_cost(sender, receiver)
            return None
        return None

    def edge_cost_matrix(self) -> np.ma.MaskedArray:
        """Per-packet cost of every split-graph edge.

        Disallowed edges are masked rather than given a large number, so
        they can never leak into a cost sum.
        """
        size = self.index.size
        costs = np.zeros((size, size), dtype=np.int64)
        mask = np.ones((size, size), dtype=bool)
        for i in range(size):
            tail = self.index.vertex(i)
            for j in range(size):
                cost = self._permitted_cost(tail, self.index.vertex(j))
                if cost is not None:
                    costs[i, j] = cost
                    mask[i, j] = False
        return np.ma.MaskedArray(costs, mask=mask)

    def _x(self, tail: Vertex, head: Vertex) -> int:
        return self.index.variable(tail, head)

    def _inflow(self, node: SensorNode, coeffs: dict[int, float], weight: float) -> None:
        """Add ``weight`` to every edge from another sensor into ``node``'s in-vertex."""
        head = Vertex.node_in(node)
        for other in self.topology.nodes:
            if other.node_id == node.node_id:
                continue
            coeffs[self._x(Vertex.node_in(other), head)] = weight
            coeffs[self._x(Vertex.node_out(other), head)] = weight

    def _outflow(
        self,
        node: SensorNode,
        coeffs: dict[int, float],
        weights: Callable[[SensorNode], float],
    ) -> None:
        """Add ``weights(other)`` to every edge from ``node``'s out-vertex to another sensor."""
        tail = Vertex.node_out(node)
        for other in self.topology.nodes:
            if other.node_id == node.node_id:
                continue
            w = weights(other)
            coeffs[self._x(tail, Vertex.node_in(other))] = w
            coeffs[self._x(tail, Vertex.node_out(other))] = w

    def build(self, mode: FlowMode) -> FlowModel:
        """Assemble variables, constraints and objective for ``mode``.

        In FEASIBILITY mode the offload rows are upper bounds and total flow
        out of the source is maximized. In MIN_COST mode every data node must
        offload all of its packets and total transmission plus receiving
        energy is minimized.
        """
        topo = self.topology
        num_vars = self.index.num_variables
        cost = self.edge_cost_matrix()
        rows = _Rows()

        disallowed = np.flatnonzero(np.ma.getmaskarray(cost).ravel())
        rows.add("no_edge", {int(c): 1.0 for c in disallowed}, 0.0, 0.0)

        for dn in topo.data_nodes:
            q = float(dn.overflow_packets)
            lower = q if mode is FlowMode.MIN_COST else -np.inf
            rows.add(
                f"offload_{dn.name}",
                {self._x(self._source, Vertex.node_in(dn)): 1.0},
                lower,
                q,
            )

        for sn in topo.storage_nodes:
            rows.add(
                f"storage_{sn.name}",
                {self._x(Vertex.node_out(sn), self._sink): 1.0},
                -np.inf,
                float(sn.capacity),
            )

        for dn in topo.data_nodes:
            coeffs: dict[int, float] = {self._x(self._source, Vertex.node_in(dn)): 1.0}
            self._inflow(dn, coeffs, 1.0)
            self._outflow(dn, coeffs, lambda _other: -1.0)
            rows.add(f"conserve_{dn.name}", coeffs, 0.0, 0.0)

        for sn in topo.storage_nodes:
            coeffs = {self._x(Vertex.node_out(sn), self._sink): -1.0}
            self._inflow(sn, coeffs, 1.0)
            self._outflow(sn, coeffs, lambda _other: -1.0)
            rows.add(f"conserve_{sn.name}", coeffs, 0.0, 0.0)

        rx = float(receiving_cost(1))
        for node in topo.nodes:
            coeffs = {}
            self._inflow(node, coeffs, rx)
            self._outflow(
                node,
                coeffs,
                lambda other, node=node: float(transmission_cost(node, other, 1)),
            )
            rows.add(f"energy_{node.name}", coeffs, -np.inf, float(node.energy))

        objective = np.zeros(num_vars)
        if mode is FlowMode.FEASIBILITY:
            sense = ObjectiveSense.MAXIMIZE
            for dn in topo.data_nodes:
                objective[self._x(self._source, Vertex.node_in(dn))] = 1.0
        else:
            sense = ObjectiveSense.MINIMIZE
            objective = cost.filled(0).ravel().astype(float)

        return FlowModel(
            mode=mode,
            index=self.index,
            lower_bounds=np.zeros(num_vars),
            upper_bounds=np.full(num_vars, np.inf),
            integrality=np.ones(num_vars, dtype=np.int8),
            constraints=rows.matrix(num_vars),
            row_lower=np.array(rows.lower, dtype=float),
            row_upper=np.array(rows.upper, dtype=float),
            row_names=rows.names,
            objective=objective,
            sense=sense,
            target_flow=sum(dn.overflow_packets for dn in topo.data_nodes),
        )
