#!/usr/bin/env python3
"""Quick start example: can the overflow data be stored?

Demonstrates the core workflow:
  1. Generate a connected sensor field
  2. Inspect nodes, links and the cheapest path between two nodes
  3. Decide feasibility and the minimum energy via ILP
  4. Save the field and a DIMACS min-cost flow instance
"""

import logging

from snflow import snfile
from snflow.export import save_flow_network
from snflow.graph import generate_connected_topology, is_connected, is_feasible
from snflow.models import NetworkConfig
from snflow.optimizer import FlowAnalyzer
from snflow.paths import calculate_cost_of_path, min_cost_path

logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

# --- 1. Generate the field ---
config = NetworkConfig(
    width=500.0,
    length=500.0,
    node_count=15,
    transmission_range=220.0,
    data_node_count=5,
    packets_per_node=2,
    storage_capacity=3,
    battery_capacity=20_000,
)
topology = generate_connected_topology(config, seed=42)

print("Generator Nodes   Coordinates")
for dn in topology.data_nodes:
    print(f"  {dn}")
print("Storage Nodes    Coordinates")
for sn in topology.storage_nodes:
    print(f"  {sn}")
print(f"\n{topology.edge_count} radio links")

# --- 2. Cheapest path ---
dn, sn = topology.data_nodes[0], topology.storage_nodes[-1]
path = min_cost_path(topology, dn, sn)
print(f"Cheapest path {dn.name} -> {sn.name}: {' -> '.join(n.name for n in path)}")
print(f"  cost per packet: {calculate_cost_of_path(path)} uJ")

# --- 3. Feasibility and minimum energy ---
analyzer = FlowAnalyzer(topology)
print(f"\nNetwork is connected: {is_connected(topology)}")
print(f"Network is feasible: {is_feasible(topology)}")
print(f"Network is feasible (Max Flow): {analyzer.is_max_flow_feasible()}")

result = analyzer.min_cost_flow()
if result.is_optimal:
    print(f"MCF total cost: {result.objective:.0f} uJ")
else:
    print(f"Min-cost flow not solved: {result.status.name} ({result.message})")

# --- 4. Save ---
snfile.save(topology, "sensor_network.sn")
save_flow_network(topology, "output_sensor_flow_diagram.inp")
