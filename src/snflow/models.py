"""Data models for sensor nodes, network parameters and topologies."""

from __future__ import annotations

import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass, field, replace

from snflow import energy

RANGE_TOLERANCE = 1e-4

# Node id -> ids of the nodes within joint transmission range
AdjacencyMap = dict[int, set[int]]


class CapacityError(ValueError):
    """Raised when a send or store request exceeds what a node can take."""


@dataclass(frozen=True)
class NetworkConfig:
    """Parameters of a sensor network field.

    Attributes:
        width: Field width in meters.
        length: Field length in meters.
        node_count: Total number of sensor nodes (N).
        transmission_range: Radio range of every node in meters.
        data_node_count: Number of data nodes (p).
        packets_per_node: Overflow packets each data node holds (q).
        storage_capacity: Packets each storage node can store (m).
        battery_capacity: Battery of every node in micro-joules (c).
    """

    width: float
    length: float
    node_count: int
    transmission_range: float
    data_node_count: int
    packets_per_node: int
    storage_capacity: int
    battery_capacity: int

    def __post_init__(self) -> None:
        if not self.width > 0:
            raise ValueError(f"width must be > 0, got {self.width}")
        if not self.length > 0:
            raise ValueError(f"length must be > 0, got {self.length}")
        if self.node_count < 1:
            raise ValueError(f"node_count must be >= 1, got {self.node_count}")
        if self.transmission_range < 0:
            raise ValueError(
                f"transmission_range must be >= 0, got {self.transmission_range}"
            )
        if not 0 <= self.data_node_count <= self.node_count:
            raise ValueError(
                f"data_node_count must be in [0, {self.node_count}], "
                f"got {self.data_node_count}"
            )
        if self.packets_per_node < 0:
            raise ValueError(
                f"packets_per_node must be >= 0, got {self.packets_per_node}"
            )
        if self.storage_capacity < 0:
            raise ValueError(
                f"storage_capacity must be >= 0, got {self.storage_capacity}"
            )
        if self.battery_capacity < 0:
            raise ValueError(
                f"battery_capacity must be >= 0, got {self.battery_capacity}"
            )

    @property
    def storage_node_count(self) -> int:
        return self.node_count - self.data_node_count

    @property
    def total_packets(self) -> int:
        """Packets that must be offloaded across the whole network."""
        return self.data_node_count * self.packets_per_node


class SensorNode(ABC):
    """A sensor with a fixed position and a rechargeable energy budget.

    Identity is the integer ``node_id``: two nodes placed at the same
    coordinates are still different nodes.
    """

    def __init__(
        self,
        node_id: int,
        name: str,
        x: float,
        y: float,
        transmission_range: float,
        battery_capacity: int,
    ) -> None:
        self._node_id = node_id
        self._name = name
        self._x = x
        self._y = y
        self._transmission_range = transmission_range
        self.battery_capacity = battery_capacity
        self.energy = battery_capacity

    @property
    def node_id(self) -> int:
        return self._node_id

    @property
    def name(self) -> str:
        return self._name

    @property
    def x(self) -> float:
        return self._x

    @property
    def y(self) -> float:
        return self._y

    @property
    def transmission_range(self) -> float:
        return self._transmission_range

    def distance_to(self, other: SensorNode) -> float:
        return energy.distance(self, other)

    def in_range_of(self, other: SensorNode) -> bool:
        """True if both nodes can reach each other over the radio."""
        reach = min(self.transmission_range, other.transmission_range)
        return self.distance_to(other) <= reach + RANGE_TOLERANCE

    def transmission_cost(self, receiver: SensorNode, packets: int = 1) -> int:
        return energy.transmission_cost(self, receiver, packets)

    def receiving_cost(self, packets: int = 1) -> int:
        return energy.receiving_cost(packets)

    def has_energy(self) -> bool:
        return self.energy > 0

    def can_transmit(self, receiver: SensorNode) -> bool:
        return self.transmission_cost(receiver) <= self.energy

    def can_receive(self) -> bool:
        return self.receiving_cost() <= self.energy

    def reset_energy(self) -> None:
        self.energy = self.battery_capacity

    def set_battery_capacity(self, battery_capacity: int) -> None:
        if battery_capacity < 0:
            raise ValueError(
                f"battery_capacity must be >= 0, got {battery_capacity}"
            )
        self.battery_capacity = battery_capacity
        self.reset_energy()

    @abstractmethod
    def reset_packets(self) -> None:
        """Restore the node's packet counter to its configured value."""

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, SensorNode):
            return NotImplemented
        return self._node_id == other._node_id

    def __hash__(self) -> int:
        return hash(self._node_id)

    def __str__(self) -> str:
        return f"{self.name:<14s}({self.x:.6f}, {self.y:.6f}) [{self.node_id}]"

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(node_id={self.node_id}, name={self.name!r}, "
            f"x={self.x!r}, y={self.y!r})"
        )


class DataNode(SensorNode):
    """Sensor node holding overflow packets that must be offloaded."""

    prefix = "DN"

    def __init__(
        self,
        node_id: int,
        name: str,
        x: float,
        y: float,
        transmission_range: float,
        battery_capacity: int,
        overflow_packets: int,
    ) -> None:
        super().__init__(node_id, name, x, y, transmission_range, battery_capacity)
        self.set_overflow_packets(overflow_packets)

    def set_overflow_packets(self, overflow_packets: int) -> None:
        if overflow_packets < 0:
            raise ValueError(
                f"overflow_packets must be >= 0, got {overflow_packets}"
            )
        self.overflow_packets = overflow_packets
        self.packets_left = overflow_packets

    def is_empty(self) -> bool:
        return self.packets_left < 1

    def can_remove_packets(self, packets: int) -> bool:
        return 0 <= packets <= self.packets_left

    def remove_packets(self, packets: int) -> None:
        if not self.can_remove_packets(packets):
            raise CapacityError(
                f"{self.name} cannot remove {packets} packets "
                f"({self.packets_left}/{self.overflow_packets} left)"
            )
        self.packets_left -= packets

    def reset_packets(self) -> None:
        self.packets_left = self.overflow_packets


class StorageNode(SensorNode):
    """Sensor node with spare room for offloaded packets."""

    prefix = "SN"

    def __init__(
        self,
        node_id: int,
        name: str,
        x: float,
        y: float,
        transmission_range: float,
        battery_capacity: int,
        capacity: int,
    ) -> None:
        super().__init__(node_id, name, x, y, transmission_range, battery_capacity)
        self.set_capacity(capacity)

    def set_capacity(self, capacity: int) -> None:
        if capacity < 0:
            raise ValueError(f"capacity must be >= 0, got {capacity}")
        self.capacity = capacity
        self.used_space = 0

    @property
    def space_left(self) -> int:
        return self.capacity - self.used_space

    def is_full(self) -> bool:
        return self.used_space >= self.capacity

    def can_store(self, packets: int) -> bool:
        return 0 <= packets <= self.space_left

    def store_packets(self, packets: int) -> None:
        if not self.can_store(packets):
            raise CapacityError(
                f"{self.name} cannot store {packets} packets "
                f"({self.used_space}/{self.capacity} full)"
            )
        self.used_space += packets

    def reset_packets(self) -> None:
        self.used_space = 0


@dataclass
class Topology:
    """A placed sensor field and its proximity graph.

    Attributes:
        config: Parameters the field was built or loaded with.
        nodes: All nodes in creation order.
        data_nodes: Data nodes, in creation order.
        storage_nodes: Storage nodes, in creation order.
        adjacency: Node id -> ids of adjacent nodes (symmetric, irreflexive).
    """

    config: NetworkConfig
    nodes: list[SensorNode]
    data_nodes: list[DataNode]
    storage_nodes: list[StorageNode]
    adjacency: AdjacencyMap
    cost_cache: dict[tuple[int, int], int | None] = field(
        default_factory=dict, repr=False, compare=False
    )
    _lock: threading.Lock = field(
        default_factory=threading.Lock, repr=False, compare=False
    )

    def __post_init__(self) -> None:
        self._by_id = {n.node_id: n for n in self.nodes}

    @property
    def node_count(self) -> int:
        return len(self.nodes)

    @property
    def edge_count(self) -> int:
        """Number of undirected radio links."""
        return sum(len(nbrs) for nbrs in self.adjacency.values()) // 2

    def node(self, node_id: int) -> SensorNode:
        return self._by_id[node_id]

    def neighbors(self, node: SensorNode) -> list[SensorNode]:
        return [self._by_id[i] for i in sorted(self.adjacency.get(node.node_id, ()))]

    def are_adjacent(self, a: SensorNode, b: SensorNode) -> bool:
        return b.node_id in self.adjacency.get(a.node_id, ())

    def can_send_packets(self, dn: DataNode, sn: StorageNode, packets: int) -> bool:
        return dn.can_remove_packets(packets) and sn.can_store(packets)

    def send_packets(self, dn: DataNode, sn: StorageNode, packets: int) -> None:
        """Move ``packets`` from a data node into a storage node.

        Raises:
            CapacityError: If the data node has too few packets left or the
                storage node has too little space left.
        """
        with self._lock:
            if not self.can_send_packets(dn, sn, packets):
                raise CapacityError(
                    f"Cannot send {packets} packets from {dn.name} "
                    f"({dn.packets_left}/{dn.overflow_packets} packets left) -> "
                    f"{sn.name} ({sn.space_left}/{sn.capacity} space left)"
                )
            dn.remove_packets(packets)
            sn.store_packets(packets)

    def reset_packets(self) -> None:
        with self._lock:
            for node in self.nodes:
                node.reset_packets()

    def set_overflow_packets(self, overflow_packets: int) -> None:
        with self._lock:
            for dn in self.data_nodes:
                dn.set_overflow_packets(overflow_packets)
            self._reconfigure(packets_per_node=overflow_packets)

    def set_storage_capacity(self, storage_capacity: int) -> None:
        with self._lock:
            for sn in self.storage_nodes:
                sn.set_capacity(storage_capacity)
            self._reconfigure(storage_capacity=storage_capacity)

    def set_battery_capacity(self, battery_capacity: int) -> None:
        with self._lock:
            for node in self.nodes:
                node.set_battery_capacity(battery_capacity)
            self._reconfigure(battery_capacity=battery_capacity)

    def _reconfigure(self, **changes: int) -> None:
        self.config = replace(self.config, **changes)
        self.cost_cache.clear()
