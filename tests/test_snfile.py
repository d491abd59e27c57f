"""Tests for snflow.snfile module."""

from __future__ import annotations

import pytest

from snflow import snfile
from snflow.graph import generate_topology
from snflow.models import DataNode
from snflow.snfile import TopologyFormatError

VALID = """\
100.0 50.0 10.0
2 3
3 500
d 0.0 0.0
s 10.0 0.0
s 20.0 0.0
"""


class TestLoads:
    def test_parses_header_and_nodes(self):
        topo = snfile.loads(VALID)
        cfg = topo.config
        assert (cfg.width, cfg.length, cfg.transmission_range) == (100.0, 50.0, 10.0)
        assert (cfg.packets_per_node, cfg.storage_capacity) == (2, 3)
        assert (cfg.node_count, cfg.battery_capacity) == (3, 500)
        assert cfg.data_node_count == 1
        assert [n.name for n in topo.nodes] == ["DN01", "SN01", "SN02"]
        assert topo.adjacency == {1: {2}, 2: {1, 3}, 3: {2}}

    def test_trailing_blank_lines_ignored(self):
        assert snfile.loads(VALID + "\n\n").node_count == 3

    def test_missing_node_line(self):
        text = VALID.rsplit("s 20.0", 1)[0]
        with pytest.raises(TopologyFormatError, match="declares 3 nodes but 2"):
            snfile.loads(text)

    def test_extra_node_line(self):
        with pytest.raises(TopologyFormatError, match="declares 3 nodes but 4"):
            snfile.loads(VALID + "s 30.0 0.0\n")

    def test_unknown_role(self):
        with pytest.raises(TopologyFormatError, match="unknown node role 'x'"):
            snfile.loads(VALID.replace("s 10.0 0.0", "x 10.0 0.0"))

    def test_wrong_field_count(self):
        with pytest.raises(TopologyFormatError, match="line 5: expected 3 fields"):
            snfile.loads(VALID.replace("s 10.0 0.0", "s 1 10.0 0.0"))

    def test_bad_number(self):
        with pytest.raises(TopologyFormatError, match="'abc' is not a valid float"):
            snfile.loads(VALID.replace("s 10.0 0.0", "s abc 0.0"))

    def test_empty(self):
        with pytest.raises(TopologyFormatError, match="header"):
            snfile.loads("")

    def test_invalid_header_values(self):
        with pytest.raises(TopologyFormatError, match="width"):
            snfile.loads(VALID.replace("100.0 50.0", "0.0 50.0"))

    def test_nan_width(self):
        with pytest.raises(TopologyFormatError, match="width"):
            snfile.loads(VALID.replace("100.0 50.0", "nan 50.0"))


class TestRoundTrip:
    def test_generated_topology(self, small_config):
        original = generate_topology(small_config, seed=21)
        restored = snfile.loads(snfile.dumps(original))

        assert restored.config == original.config
        assert len(restored.nodes) == len(original.nodes)
        for a, b in zip(original.nodes, restored.nodes, strict=True):
            assert a.node_id == b.node_id
            assert type(a) is type(b)
            assert (a.x, a.y) == (b.x, b.y)
        assert restored.adjacency == original.adjacency

    def test_roles_written(self, chain_topology):
        lines = snfile.dumps(chain_topology).splitlines()
        assert lines[:3] == ["100.0 100.0 10.0", "2 3", "3 10000"]
        assert [line.split()[0] for line in lines[3:]] == ["d", "s", "s"]


class TestSaveLoad:
    def test_save_then_load(self, chain_topology, tmp_path):
        path = tmp_path / "network.sn"
        snfile.save(chain_topology, path)
        topo = snfile.load(path)
        assert topo.adjacency == chain_topology.adjacency

    def test_load_with_overrides(self, tmp_path):
        path = tmp_path / "network.sn"
        path.write_text(VALID)
        topo = snfile.load(path, overflow_packets=7, storage_capacity=9, battery_capacity=42)
        dn = topo.data_nodes[0]
        assert isinstance(dn, DataNode)
        assert dn.overflow_packets == 7
        assert all(sn.capacity == 9 for sn in topo.storage_nodes)
        assert all(n.energy == 42 for n in topo.nodes)
        assert topo.config.packets_per_node == 7

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            snfile.load(tmp_path / "nope.sn")
