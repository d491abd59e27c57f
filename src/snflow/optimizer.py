"""Solver adapters for node-split flow models.

PuLP with CBC (default), SciPy with HiGHS, or Gurobi.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum, auto

import numpy as np

from snflow.flow import FlowMode, FlowModel, FlowModelBuilder, ObjectiveSense
from snflow.models import Topology

logger = logging.getLogger(__name__)


class SolverBackend(Enum):
    PULP = auto()
    SCIPY = auto()
    GUROBI = auto()


class SolveStatus(Enum):
    OPTIMAL = auto()
    INFEASIBLE = auto()
    ERROR = auto()


@dataclass
class SolveResult:
    """Outcome of solving a flow model.

    Attributes:
        status: Solver status.
        objective: Optimal objective value; ``None`` unless status is OPTIMAL.
        values: Variable values by column, when the solver produced them.
        message: Raw status reported by the backend.
    """

    status: SolveStatus
    objective: float | None = None
    values: np.ndarray | None = field(default=None, repr=False)
    message: str = ""

    @property
    def is_optimal(self) -> bool:
        return self.status is SolveStatus.OPTIMAL


def solve(
    model: FlowModel,
    backend: SolverBackend = SolverBackend.PULP,
    time_limit: float | None = None,
) -> SolveResult:
    """Solve ``model`` with the chosen backend.

    Args:
        model: Model built by :class:`snflow.flow.FlowModelBuilder`.
        backend: Solver backend to use.
        time_limit: Solver time limit in seconds (optional).

    Returns:
        SolveResult; a time-out without a proven optimum is reported as ERROR.
    """
    if backend is SolverBackend.GUROBI:
        result = _solve_gurobi(model, time_limit)
    elif backend is SolverBackend.SCIPY:
        result = _solve_scipy(model, time_limit)
    else:
        result = _solve_pulp(model, time_limit)
    logger.info(
        "%s model solved with %s: %s (objective=%s)",
        model.mode.name,
        backend.name,
        result.status.name,
        result.objective,
    )
    return result


def _row_terms(model: FlowModel, row: int) -> tuple[np.ndarray, np.ndarray]:
    matrix = model.constraints
    start, end = matrix.indptr[row], matrix.indptr[row + 1]
    return matrix.indices[start:end], matrix.data[start:end]


def _solve_pulp(model: FlowModel, time_limit: float | None) -> SolveResult:
    """Solve using PuLP with the CBC solver."""
    import pulp

    if model.sense is ObjectiveSense.MAXIMIZE:
        sense = pulp.LpMaximize
    else:
        sense = pulp.LpMinimize
    prob = pulp.LpProblem(f"SensorFlow_{model.mode.name}", sense)

    x = []
    for col in range(model.num_variables):
        upper = model.upper_bounds[col]
        x.append(
            pulp.LpVariable(
                model.variable_name(col),
                lowBound=float(model.lower_bounds[col]),
                upBound=None if np.isinf(upper) else float(upper),
                cat="Integer" if model.integrality[col] else "Continuous",
            )
        )

    prob += pulp.lpSum(
        float(model.objective[col]) * x[col] for col in np.flatnonzero(model.objective)
    )

    for row, name in enumerate(model.row_names):
        cols, coeffs = _row_terms(model, row)
        expr = pulp.lpSum(float(v) * x[c] for c, v in zip(cols, coeffs, strict=True))
        lower, upper = model.row_lower[row], model.row_upper[row]
        if lower == upper:
            prob += expr == float(upper), name
            continue
        if not np.isinf(lower):
            prob += expr >= float(lower), f"{name}_lo"
        if not np.isinf(upper):
            prob += expr <= float(upper), name

    solver = pulp.PULP_CBC_CMD(msg=0, timeLimit=time_limit)
    prob.solve(solver)

    message = pulp.LpStatus[prob.status]
    if (
        prob.status == pulp.LpStatusOptimal
        and prob.sol_status == pulp.LpSolutionOptimal
    ):
        values = np.array([v.varValue or 0.0 for v in x])
        return SolveResult(
            status=SolveStatus.OPTIMAL,
            objective=float(pulp.value(prob.objective) or 0.0),
            values=values,
            message=message,
        )
    if prob.status == pulp.LpStatusInfeasible:
        return SolveResult(status=SolveStatus.INFEASIBLE, message=message)
    return SolveResult(status=SolveStatus.ERROR, message=message)


def _solve_scipy(model: FlowModel, time_limit: float | None) -> SolveResult:
    """Solve using SciPy's ``milp`` (HiGHS)."""
    from scipy.optimize import Bounds, LinearConstraint, milp

    c = model.objective
    if model.sense is ObjectiveSense.MAXIMIZE:
        c = -c

    options = {} if time_limit is None else {"time_limit": time_limit}
    res = milp(
        c,
        integrality=model.integrality,
        bounds=Bounds(model.lower_bounds, model.upper_bounds),
        constraints=LinearConstraint(model.constraints, model.row_lower, model.row_upper),
        options=options,
    )

    # milp status: 0 optimal, 1 limit reached, 2 infeasible, 3 unbounded, 4 other
    if res.status == 0:
        objective = float(res.fun)
        if model.sense is ObjectiveSense.MAXIMIZE:
            objective = -objective
        return SolveResult(
            status=SolveStatus.OPTIMAL,
            objective=objective + 0.0,
            values=np.asarray(res.x),
            message=res.message,
        )
    if res.status == 2:
        return SolveResult(status=SolveStatus.INFEASIBLE, message=res.message)
    return SolveResult(status=SolveStatus.ERROR, message=res.message)


def _solve_gurobi(model: FlowModel, time_limit: float | None) -> SolveResult:
    """Solve using Gurobi (requires gurobipy)."""
    try:
        import gurobipy as gp
    except ImportError as exc:
        raise ImportError(
            "Gurobi backend requires gurobipy. "
            "Install with: pip install gurobipy"
        ) from exc

    m = gp.Model(f"SensorFlow_{model.mode.name}")
    m.Params.LogToConsole = 0
    if time_limit is not None:
        m.Params.TimeLimit = time_limit

    x = m.addMVar(
        model.num_variables,
        lb=model.lower_bounds,
        ub=np.where(np.isinf(model.upper_bounds), gp.GRB.INFINITY, model.upper_bounds),
        vtype=np.where(model.integrality == 1, gp.GRB.INTEGER, gp.GRB.CONTINUOUS),
        name="x",
    )
    sense = gp.GRB.MAXIMIZE if model.sense is ObjectiveSense.MAXIMIZE else gp.GRB.MINIMIZE
    m.setObjective(model.objective @ x, sense)

    lower = np.where(np.isinf(model.row_lower), -gp.GRB.INFINITY, model.row_lower)
    upper = np.where(np.isinf(model.row_upper), gp.GRB.INFINITY, model.row_upper)
    m.addConstr(model.constraints @ x >= lower)
    m.addConstr(model.constraints @ x <= upper)

    m.optimize()

    if m.Status == gp.GRB.OPTIMAL:
        return SolveResult(
            status=SolveStatus.OPTIMAL,
            objective=float(m.ObjVal),
            values=np.asarray(x.X),
            message="Optimal",
        )
    if m.Status in (gp.GRB.INFEASIBLE, gp.GRB.INF_OR_UNBD):
        return SolveResult(status=SolveStatus.INFEASIBLE, message="Infeasible")
    return SolveResult(status=SolveStatus.ERROR, message=f"Gurobi status {m.Status}")


class FlowAnalyzer:
    """Answers offloading questions about a topology via an ILP solver.

    Args:
        topology: Sensor network to analyze.
        backend: Solver backend to use.
    """

    def __init__(
        self,
        topology: Topology,
        backend: SolverBackend = SolverBackend.PULP,
    ) -> None:
        self.topology = topology
        self.backend = backend
        self.builder = FlowModelBuilder(topology)

    def max_flow(self, time_limit: float | None = None) -> SolveResult:
        """Maximum number of packets that can be offloaded and stored."""
        model = self.builder.build(FlowMode.FEASIBILITY)
        return solve(model, self.backend, time_limit)

    def is_max_flow_feasible(self, time_limit: float | None = None) -> bool:
        """True if every overflow packet can reach storage within all budgets."""
        model = self.builder.build(FlowMode.FEASIBILITY)
        result = solve(model, self.backend, time_limit)
        if not result.is_optimal:
            return False
        logger.debug(
            "Max flow %s, packets to offload %d", result.objective, model.target_flow
        )
        return round(result.objective) == model.target_flow

    def min_cost_flow(self, time_limit: float | None = None) -> SolveResult:
        """Minimum total energy (micro-joules) to offload every packet.

        The result's ``objective`` is ``None`` unless the solver proved
        optimality, so a failed solve is never mistaken for a zero cost.
        """
        model = self.builder.build(FlowMode.MIN_COST)
        return solve(model, self.backend, time_limit)
