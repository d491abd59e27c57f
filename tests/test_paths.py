"""Tests for snflow.paths module."""

from __future__ import annotations

from snflow.paths import calculate_cost_of_path, calculate_min_cost, min_cost_path


def _ids(path) -> list[int]:
    return [n.node_id for n in path]


class TestMinCostPath:
    def test_chain(self, chain_topology):
        topo = chain_topology
        path = min_cost_path(topo, topo.node(1), topo.node(3))
        assert _ids(path) == [1, 2, 3]
        assert calculate_cost_of_path(path) == 2 * 672

    def test_direct_edge_is_cheaper(self, topology_from):
        topo = topology_from(
            [("d", 0.0, 0.0), ("s", 10.0, 0.0), ("s", 20.0, 0.0)],
            transmission_range=20.0,
        )
        path = min_cost_path(topo, topo.node(1), topo.node(3))
        assert _ids(path) == [1, 3]
        assert calculate_cost_of_path(path) == 768 < 2 * 672

    def test_long_hop_beats_two_short_hops(self, topology_from):
        # 0 -> 30 direct costs 320 + 288 + 320 = 928; via 15 costs 2 * 712 = 1424
        topo = topology_from(
            [("d", 0.0, 0.0), ("s", 15.0, 0.0), ("s", 30.0, 0.0)],
            transmission_range=30.0,
        )
        assert _ids(min_cost_path(topo, topo.node(1), topo.node(3))) == [1, 3]

    def test_unreachable_returns_empty(self, topology_from):
        topo = topology_from([("d", 0.0, 0.0), ("s", 50.0, 0.0)])
        assert min_cost_path(topo, topo.node(1), topo.node(2)) == []

    def test_source_is_target(self, chain_topology):
        node = chain_topology.node(2)
        assert min_cost_path(chain_topology, node, node) == [node]

    def test_equal_cost_tie_prefers_lower_id(self, square_topology):
        topo = square_topology
        path = min_cost_path(topo, topo.node(1), topo.node(4))
        assert _ids(path) == [1, 2, 4]

    def test_reverse_direction(self, chain_topology):
        topo = chain_topology
        assert _ids(min_cost_path(topo, topo.node(3), topo.node(1))) == [3, 2, 1]


class TestCalculateCostOfPath:
    def test_empty_and_single(self, chain_topology):
        assert calculate_cost_of_path([]) == 0
        assert calculate_cost_of_path([chain_topology.node(1)]) == 0

    def test_single_hop(self, chain_topology):
        topo = chain_topology
        assert calculate_cost_of_path([topo.node(1), topo.node(2)]) == 672


class TestCalculateMinCost:
    def test_memoised(self, chain_topology):
        topo = chain_topology
        assert calculate_min_cost(topo, topo.node(1), topo.node(3)) == 1344
        assert topo.cost_cache[(1, 3)] == 1344

    def test_cache_hit_short_circuits(self, chain_topology):
        topo = chain_topology
        topo.cost_cache[(1, 3)] = 5
        assert calculate_min_cost(topo, topo.node(1), topo.node(3)) == 5

    def test_unreachable_is_none(self, topology_from):
        topo = topology_from([("d", 0.0, 0.0), ("s", 50.0, 0.0)])
        assert calculate_min_cost(topo, topo.node(1), topo.node(2)) is None

    def test_reconfiguration_invalidates_cache(self, chain_topology):
        topo = chain_topology
        topo.cost_cache[(1, 3)] = 5
        topo.set_overflow_packets(4)
        assert calculate_min_cost(topo, topo.node(1), topo.node(3)) == 1344
