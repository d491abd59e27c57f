"""DIMACS min-cost flow export for external solvers such as CS2."""

from __future__ import annotations

import logging
from os import PathLike
from pathlib import Path

from snflow.models import Topology
from snflow.paths import calculate_min_cost

logger = logging.getLogger(__name__)

SOURCE_ID = 0


def export_flow_network(topology: Topology) -> str:
    """Render ``topology`` as a DIMACS ``p min`` problem.

    The source (node 0) supplies every overflow packet and the sink
    (node N+1) absorbs them. Each data node gets an arc from the source,
    each storage node an arc to the sink bounded by its capacity, and each
    data/storage pair with a path an arc priced at that path's minimum
    cost. Pairs without a path get no arc.
    """
    sink_id = topology.node_count + 1
    node_total = topology.node_count + 2
    supply = sum(dn.overflow_packets for dn in topology.data_nodes)

    arcs: list[tuple[int, int, int, int, int]] = []
    for dn in topology.data_nodes:
        arcs.append((SOURCE_ID, dn.node_id, 0, dn.overflow_packets, 0))

    for dn in topology.data_nodes:
        for sn in topology.storage_nodes:
            cost = calculate_min_cost(topology, dn, sn)
            if cost is None:
                logger.debug("No path from %s to %s, arc omitted", dn.name, sn.name)
                continue
            arcs.append((dn.node_id, sn.node_id, 0, dn.overflow_packets, cost))

    for sn in topology.storage_nodes:
        arcs.append((sn.node_id, sink_id, 0, sn.capacity, 0))

    lines = [
        f"c Min-Cost flow problem with {node_total} nodes and {len(arcs)} arcs (edges)",
        f"p min {node_total} {len(arcs)}",
        "",
        f'c Supply of {supply} at node {SOURCE_ID} ("Source")',
        f"n {SOURCE_ID} {supply}",
        "",
        f'c Demand of {-supply} at node {sink_id} ("Sink")',
        f"n {sink_id} {-supply}",
        "",
        "c arc list follows",
        "c arc has <tail> <head> <capacity l.b.> <capacity u.b> <cost>",
    ]
    lines.extend(" ".join(["a", *map(str, arc)]) for arc in arcs)
    return "\n".join(lines) + "\n"


def save_flow_network(topology: Topology, path: str | PathLike[str]) -> None:
    Path(path).write_text(export_flow_network(topology))
    logger.info("Saved flow network in file %s", path)
