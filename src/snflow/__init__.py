"""Sensor Network Flow (snflow).

Topology construction, radio energy costs, minimum-cost paths and
node-split flow models for deciding whether the overflow packets of data
nodes can be stored at storage nodes in a wireless sensor network.
"""

__version__ = "0.1.0"
