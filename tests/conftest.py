"""Shared test fixtures for the snflow test suite."""

from __future__ import annotations

import pytest

from snflow.graph import assemble_topology
from snflow.models import NetworkConfig, Topology


def make_topology(
    placements: list[tuple[str, float, float]],
    transmission_range: float = 10.0,
    packets_per_node: int = 2,
    storage_capacity: int = 3,
    battery_capacity: int = 10_000,
    width: float = 100.0,
    length: float = 100.0,
) -> Topology:
    return assemble_topology(
        width,
        length,
        transmission_range,
        packets_per_node,
        storage_capacity,
        battery_capacity,
        placements,
    )


@pytest.fixture
def chain_topology() -> Topology:
    """Three nodes on a line, 10 m apart, range 10 m.

    Topology:
        DN01(1) -- SN01(2) -- SN02(3)

    Every hop costs 352 (transmit) + 320 (receive) = 672.
    """
    return make_topology([("d", 0.0, 0.0), ("s", 10.0, 0.0), ("s", 20.0, 0.0)])


@pytest.fixture
def pair_topology() -> Topology:
    """One data node and one storage node within range of each other."""
    return make_topology([("d", 0.0, 0.0), ("s", 10.0, 0.0)])


@pytest.fixture
def square_topology() -> Topology:
    """Four nodes on the corners of a 10 m square; diagonals out of range.

    Topology:
        C(3) -- D(4)
         |       |
        A(1) -- B(2)
    """
    return make_topology(
        [("d", 0.0, 0.0), ("s", 10.0, 0.0), ("s", 0.0, 10.0), ("s", 10.0, 10.0)]
    )


@pytest.fixture
def small_config() -> NetworkConfig:
    return NetworkConfig(
        width=50.0,
        length=50.0,
        node_count=12,
        transmission_range=25.0,
        data_node_count=4,
        packets_per_node=3,
        storage_capacity=5,
        battery_capacity=50_000,
    )


@pytest.fixture
def topology_from():
    """Factory building a topology from ``(role, x, y)`` placements."""
    return make_topology
