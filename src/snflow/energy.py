"""First-order radio energy model.

Costs are integer micro-joules: a joule figure is multiplied by 1e6 and
rounded half-up.
"""

from __future__ import annotations

import math
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from snflow.models import SensorNode

BITS_PER_PACKET = 3200
E_ELEC = 100e-9  # J/bit, transmitter/receiver electronics
E_AMP = 100e-12  # J/bit/m^2, transmit amplifier
MICRO = 1e6


def _to_micro(joules: float) -> int:
    return int(math.floor(joules * MICRO + 0.5))


def distance(a: SensorNode, b: SensorNode) -> float:
    """Euclidean distance between two nodes in meters."""
    return math.sqrt((a.x - b.x) ** 2 + (a.y - b.y) ** 2)


def transmission_cost(sender: SensorNode, receiver: SensorNode, packets: int = 1) -> int:
    """Energy ``sender`` spends to transmit ``packets`` to ``receiver``."""
    bits = packets * BITS_PER_PACKET
    return _to_micro(bits * (E_ELEC + E_AMP * distance(sender, receiver) ** 2))


def receiving_cost(packets: int = 1) -> int:
    """Energy any node spends to receive ``packets``."""
    return _to_micro(packets * BITS_PER_PACKET * E_ELEC)


def edge_cost(sender: SensorNode, receiver: SensorNode) -> int:
    """Cost of moving one packet across a single hop."""
    return transmission_cost(sender, receiver, 1) + receiving_cost(1)
