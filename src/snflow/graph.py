"""Sensor field generation, proximity graph construction and connectivity."""

from __future__ import annotations

import itertools
import logging
import random
from collections.abc import Iterable, Sequence

import numpy as np

from snflow.models import (
    RANGE_TOLERANCE,
    AdjacencyMap,
    DataNode,
    NetworkConfig,
    SensorNode,
    StorageNode,
    Topology,
)

logger = logging.getLogger(__name__)

DATA_ROLE = "d"
STORAGE_ROLE = "s"

Placement = tuple[str, float, float]


class TopologyGenerationError(RuntimeError):
    """No connected topology was found within the allowed attempts."""


class _NodeFactory:
    """Hands out sequential ids and per-role names for one topology."""

    def __init__(self, config: NetworkConfig) -> None:
        self.config = config
        self._ids = itertools.count(1)
        self._data_seq = itertools.count(1)
        self._storage_seq = itertools.count(1)

    def make(self, role: str, x: float, y: float) -> SensorNode:
        cfg = self.config
        if role == DATA_ROLE:
            return DataNode(
                next(self._ids),
                f"{DataNode.prefix}{next(self._data_seq):02d}",
                x,
                y,
                cfg.transmission_range,
                cfg.battery_capacity,
                cfg.packets_per_node,
            )
        if role == STORAGE_ROLE:
            return StorageNode(
                next(self._ids),
                f"{StorageNode.prefix}{next(self._storage_seq):02d}",
                x,
                y,
                cfg.transmission_range,
                cfg.battery_capacity,
                cfg.storage_capacity,
            )
        raise ValueError(f"unknown node role {role!r}, expected 'd' or 's'")


def build_adjacency(nodes: Sequence[SensorNode]) -> AdjacencyMap:
    """Link every pair of nodes within their joint transmission range.

    Each unordered pair is tested once; the result is symmetric and has an
    entry (possibly empty) for every node.
    """
    adj: AdjacencyMap = {n.node_id: set() for n in nodes}
    if len(nodes) < 2:
        return adj

    xs = np.array([n.x for n in nodes], dtype=float)
    ys = np.array([n.y for n in nodes], dtype=float)
    ranges = np.array([n.transmission_range for n in nodes], dtype=float)

    dist = np.sqrt(
        (xs[:, None] - xs[None, :]) ** 2 + (ys[:, None] - ys[None, :]) ** 2
    )
    reach = np.minimum.outer(ranges, ranges) + RANGE_TOLERANCE

    rows, cols = np.triu_indices(len(nodes), k=1)
    linked = dist[rows, cols] <= reach[rows, cols]
    for i, j in zip(rows[linked], cols[linked], strict=True):
        a, b = nodes[i].node_id, nodes[j].node_id
        adj[a].add(b)
        adj[b].add(a)
    return adj


def _make_topology(config: NetworkConfig, nodes: list[SensorNode]) -> Topology:
    data_nodes = [n for n in nodes if isinstance(n, DataNode)]
    storage_nodes = [n for n in nodes if isinstance(n, StorageNode)]
    return Topology(
        config=config,
        nodes=nodes,
        data_nodes=data_nodes,
        storage_nodes=storage_nodes,
        adjacency=build_adjacency(nodes),
    )


def generate_topology(config: NetworkConfig, seed: int | None = None) -> Topology:
    """Scatter ``config.node_count`` nodes uniformly over the field.

    Each slot becomes a data node with probability
    ``remaining_quota / remaining_slots``. Once no more slots are left than
    data nodes still owed, the slot is forced to a data node, so exactly
    ``config.data_node_count`` data nodes are placed.
    """
    rng = random.Random(seed)
    factory = _NodeFactory(config)
    quota = config.data_node_count

    nodes: list[SensorNode] = []
    for index in range(config.node_count):
        x = config.width * rng.random()
        y = config.length * rng.random()
        remaining_slots = config.node_count - index

        if remaining_slots <= quota or (
            quota > 0 and rng.random() < quota / remaining_slots
        ):
            role = DATA_ROLE
            quota -= 1
        else:
            role = STORAGE_ROLE
        nodes.append(factory.make(role, x, y))

    return _make_topology(config, nodes)


def assemble_topology(
    width: float,
    length: float,
    transmission_range: float,
    packets_per_node: int,
    storage_capacity: int,
    battery_capacity: int,
    placements: Iterable[Placement],
) -> Topology:
    """Build a topology from explicit ``(role, x, y)`` placements."""
    placements = list(placements)
    config = NetworkConfig(
        width=width,
        length=length,
        node_count=len(placements),
        transmission_range=transmission_range,
        data_node_count=sum(1 for role, _, _ in placements if role == DATA_ROLE),
        packets_per_node=packets_per_node,
        storage_capacity=storage_capacity,
        battery_capacity=battery_capacity,
    )
    factory = _NodeFactory(config)
    nodes = [factory.make(role, x, y) for role, x, y in placements]
    return _make_topology(config, nodes)


def is_connected(topology: Topology) -> bool:
    """True if every node can reach every other node, directly or by relay."""
    if topology.node_count <= 1:
        return True

    start = topology.nodes[0].node_id
    seen = {start}
    stack = [start]
    while stack:
        node = stack.pop()
        for neighbor in topology.adjacency.get(node, ()):
            if neighbor not in seen:
                seen.add(neighbor)
                stack.append(neighbor)

    return len(seen) == topology.node_count


def is_feasible(topology: Topology) -> bool:
    """True if total storage can hold every overflow packet.

    Necessary but not sufficient: connectivity and energy are ignored.
    """
    return _has_room(topology.config)


def _has_room(config: NetworkConfig) -> bool:
    return config.total_packets <= config.storage_node_count * config.storage_capacity


def generate_connected_topology(
    config: NetworkConfig,
    max_attempts: int | None = None,
    seed: int | None = None,
) -> Topology:
    """Regenerate random topologies until one is connected.

    Args:
        config: Field parameters.
        max_attempts: Upper bound on generated topologies
            (default ``1000 * node_count``).
        seed: Seed for the whole sequence of attempts.

    Raises:
        ValueError: If storage can never hold all overflow packets.
        TopologyGenerationError: If no connected topology was found.
    """
    if not _has_room(config):
        raise ValueError(
            f"infeasible parameters: {config.total_packets} packets exceed "
            f"{config.storage_node_count} storage nodes x {config.storage_capacity}"
        )
    if max_attempts is None:
        max_attempts = config.node_count * 1000
    if max_attempts < 1:
        raise ValueError(f"max_attempts must be >= 1, got {max_attempts}")

    rng = random.Random(seed)
    for attempt in range(1, max_attempts + 1):
        topology = generate_topology(config, seed=rng.getrandbits(64))
        if is_connected(topology):
            logger.info("Generated connected topology after %d attempt(s)", attempt)
            return topology
        logger.debug("Attempt %d produced a disconnected topology", attempt)

    raise TopologyGenerationError(
        f"no feasible topology found within {max_attempts} attempts"
    )
