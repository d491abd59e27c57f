#!/usr/bin/env python3
"""Network analysis example: how battery size limits offloading.

Loads a hand-placed field and sweeps the per-node battery capacity,
reporting how many packets can be stored and at what minimum energy.
"""

from snflow import snfile
from snflow.optimizer import FlowAnalyzer, SolverBackend

FIELD = """\
100.0 100.0 30.0
3 4
8 0
d 10.0 10.0
d 15.0 40.0
d 40.0 15.0
s 35.0 45.0
s 60.0 40.0
s 65.0 70.0
s 85.0 60.0
s 90.0 90.0
"""

topology = snfile.loads(FIELD)
print(f"{topology.node_count} nodes, {topology.edge_count} links, "
      f"{topology.config.total_packets} packets to offload")

print(f"\n{'battery (uJ)':>14} {'max flow':>9} {'feasible':>9} {'min cost (uJ)':>14}")
for battery in (500, 1_000, 2_000, 4_000, 8_000):
    topology.set_battery_capacity(battery)
    analyzer = FlowAnalyzer(topology, backend=SolverBackend.SCIPY)

    flow = analyzer.max_flow()
    feasible = analyzer.is_max_flow_feasible()
    cost = analyzer.min_cost_flow()

    flow_str = f"{flow.objective:.0f}" if flow.is_optimal else flow.status.name
    cost_str = f"{cost.objective:.0f}" if cost.is_optimal else cost.status.name
    print(f"{battery:>14} {flow_str:>9} {str(feasible):>9} {cost_str:>14}")
