"""Reader and writer for ``.sn`` sensor network files.

Layout::

    width length transmission_range
    packets_per_data_node storage_capacity_per_node
    node_count battery_capacity
    (d|s) x y        # one line per node, node_count lines
"""

from __future__ import annotations

import logging
from os import PathLike
from pathlib import Path

from snflow.graph import DATA_ROLE, STORAGE_ROLE, Placement, assemble_topology
from snflow.models import DataNode, Topology

logger = logging.getLogger(__name__)


class TopologyFormatError(ValueError):
    """A ``.sn`` document is malformed."""


def dumps(topology: Topology) -> str:
    """Serialize ``topology``; floats use ``repr`` so reloading is exact."""
    cfg = topology.config
    lines = [
        f"{cfg.width!r} {cfg.length!r} {cfg.transmission_range!r}",
        f"{cfg.packets_per_node} {cfg.storage_capacity}",
        f"{topology.node_count} {cfg.battery_capacity}",
    ]
    for node in topology.nodes:
        role = DATA_ROLE if isinstance(node, DataNode) else STORAGE_ROLE
        lines.append(f"{role} {node.x!r} {node.y!r}")
    return "\n".join(lines) + "\n"


def _fields(line: str, lineno: int, count: int) -> list[str]:
    parts = line.split()
    if len(parts) != count:
        raise TopologyFormatError(
            f"line {lineno}: expected {count} fields, got {len(parts)}: {line!r}"
        )
    return parts


def _number(kind: type, token: str, lineno: int) -> float:
    try:
        return kind(token)
    except ValueError as exc:
        raise TopologyFormatError(
            f"line {lineno}: {token!r} is not a valid {kind.__name__}"
        ) from exc


def loads(text: str) -> Topology:
    """Parse a ``.sn`` document.

    Raises:
        TopologyFormatError: On a wrong number of lines or fields, a bad
            number, or an unknown role. Nothing is built in that case.
    """
    lines = text.splitlines()
    while lines and not lines[-1].strip():
        lines.pop()
    if len(lines) < 3:
        raise TopologyFormatError(
            f"expected at least 3 header lines, got {len(lines)}"
        )

    width, length, tr = (
        _number(float, tok, 1) for tok in _fields(lines[0], 1, 3)
    )
    packets, capacity = (_number(int, tok, 2) for tok in _fields(lines[1], 2, 2))
    node_count, battery = (_number(int, tok, 3) for tok in _fields(lines[2], 3, 2))

    body = lines[3:]
    if len(body) != node_count:
        raise TopologyFormatError(
            f"header declares {node_count} nodes but {len(body)} node lines follow"
        )

    placements: list[Placement] = []
    for lineno, line in enumerate(body, start=4):
        role, x, y = _fields(line, lineno, 3)
        if role not in (DATA_ROLE, STORAGE_ROLE):
            raise TopologyFormatError(f"line {lineno}: unknown node role {role!r}")
        placements.append((role, _number(float, x, lineno), _number(float, y, lineno)))

    try:
        return assemble_topology(width, length, tr, packets, capacity, battery, placements)
    except ValueError as exc:
        raise TopologyFormatError(str(exc)) from exc


def save(topology: Topology, path: str | PathLike[str]) -> None:
    Path(path).write_text(dumps(topology))
    logger.info("Saved sensor network in file %s", path)


def load(
    path: str | PathLike[str],
    overflow_packets: int | None = None,
    storage_capacity: int | None = None,
    battery_capacity: int | None = None,
) -> Topology:
    """Load a ``.sn`` file, optionally overriding its per-node parameters."""
    topology = loads(Path(path).read_text())
    if overflow_packets is not None:
        topology.set_overflow_packets(overflow_packets)
    if storage_capacity is not None:
        topology.set_storage_capacity(storage_capacity)
    if battery_capacity is not None:
        topology.set_battery_capacity(battery_capacity)
    logger.debug("Loaded %d nodes from %s", topology.node_count, path)
    return topology
