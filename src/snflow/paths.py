"""Minimum energy-cost paths between sensor nodes."""

from __future__ import annotations

import heapq
from collections.abc import Sequence

from snflow.energy import edge_cost
from snflow.models import SensorNode, Topology


def min_cost_path(
    topology: Topology,
    source: SensorNode,
    target: SensorNode,
) -> list[SensorNode]:
    """Cheapest path from ``source`` to ``target`` under single-packet hop costs.

    Dijkstra with lazy deletion: stale heap entries for already settled
    nodes are skipped when popped. Entries are ordered by
    ``(cost, node_id)`` so equal-cost alternatives resolve to the lower id.

    Returns:
        Nodes from ``source`` to ``target`` inclusive, or an empty list if
        ``target`` cannot be reached.
    """
    heap: list[tuple[int, int, int | None]] = [(0, source.node_id, None)]
    settled: dict[int, int | None] = {}

    while heap:
        cost, node_id, prev = heapq.heappop(heap)
        if node_id in settled:
            continue
        settled[node_id] = prev
        if node_id == target.node_id:
            break

        node = topology.node(node_id)
        for neighbor in topology.neighbors(node):
            if neighbor.node_id not in settled:
                heapq.heappush(
                    heap,
                    (cost + edge_cost(node, neighbor), neighbor.node_id, node_id),
                )

    if target.node_id not in settled:
        return []

    path: list[SensorNode] = []
    current: int | None = target.node_id
    while current is not None:
        path.append(topology.node(current))
        current = settled[current]
    path.reverse()
    return path


def calculate_cost_of_path(path: Sequence[SensorNode]) -> int:
    """Total energy to move one packet along ``path``; 0 for fewer than two nodes."""
    return sum(edge_cost(a, b) for a, b in zip(path, path[1:], strict=False))


def calculate_min_cost(
    topology: Topology,
    source: SensorNode,
    target: SensorNode,
) -> int | None:
    """Cost of the cheapest path, memoised per topology.

    Returns ``None`` when ``target`` is unreachable from ``source``.
    """
    key = (source.node_id, target.node_id)
    if key in topology.cost_cache:
        return topology.cost_cache[key]

    path = min_cost_path(topology, source, target)
    cost = calculate_cost_of_path(path) if path else None
    topology.cost_cache[key] = cost
    return cost
