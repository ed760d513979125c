"""
Solver collaborator for the network design MILP.

Wraps a PuLP solver command and reports the outcome as a
TerminationStatus instead of raising.
"""

import logging
from enum import Enum
from typing import Optional

import pulp

from ..config import SolverConfig

logger = logging.getLogger(__name__)


class TerminationStatus(str, Enum):
    """Outcome of a solve."""
    OPTIMAL = "Optimal"
    SUBOPTIMAL = "Suboptimal"
    INFEASIBLE = "Infeasible"
    UNBOUNDED = "Unbounded"
    NOT_SOLVED = "Not Solved"
    OTHER = "Other"

    @classmethod
    def from_pulp(cls, status: int, sol_status: Optional[int] = None) -> "TerminationStatus":
        """
        Map PuLP's problem status (and solution status) to a TerminationStatus.

        CBC reports LpStatusOptimal with an integer-feasible solution status
        when it stops on a time limit; that is treated as suboptimal.
        """
        if status == pulp.LpStatusOptimal:
            if sol_status == pulp.LpSolutionIntegerFeasible:
                return cls.SUBOPTIMAL
            return cls.OPTIMAL
        if status == pulp.LpStatusInfeasible:
            return cls.INFEASIBLE
        if status == pulp.LpStatusUnbounded:
            return cls.UNBOUNDED
        if status == pulp.LpStatusNotSolved:
            return cls.NOT_SOLVED
        return cls.OTHER


class MILPSolver:
    """
    Solves a PuLP problem with the configured solver command.

    Exposes solve() -> TerminationStatus and value(variable) -> float.
    """

    def __init__(self, config: Optional[SolverConfig] = None):
        """
        Initialize solver.

        Args:
            config: Solver settings (defaults to CBC with a 300s limit)
        """
        self.config = config or SolverConfig()
        self.status: Optional[TerminationStatus] = None

    def _make_solver(self):
        """Instantiate the PuLP solver command."""
        kwargs = {"msg": self.config.msg, "timeLimit": self.config.time_limit}
        if self.config.gap_rel is not None:
            kwargs["gapRel"] = self.config.gap_rel

        name = self.config.solver_name
        if name == 'PULP_CBC_CMD':
            return pulp.PULP_CBC_CMD(**kwargs)
        elif name == 'GUROBI_CMD':
            return pulp.GUROBI_CMD(**kwargs)
        elif name == 'HiGHS_CMD':
            return pulp.HiGHS_CMD(**kwargs)

        logger.warning("Unknown solver %r; falling back to PULP_CBC_CMD", name)
        return pulp.PULP_CBC_CMD(**kwargs)

    def solve(self, problem: pulp.LpProblem) -> TerminationStatus:
        """
        Solve the problem in place.

        Args:
            problem: PuLP problem; variable values are attached by the solver

        Returns:
            TerminationStatus of the run
        """
        try:
            problem.solve(self._make_solver())
        except pulp.PulpSolverError as e:
            logger.error("Solver %s failed on %s: %s", self.config.solver_name, problem.name, e)
            self.status = TerminationStatus.OTHER
            return self.status

        self.status = TerminationStatus.from_pulp(problem.status, problem.sol_status)
        logger.info("Solved %s: %s", problem.name, self.status.value)
        return self.status

    @staticmethod
    def value(variable) -> float:
        """Primal value of a variable or expression (0.0 when unset)."""
        val = pulp.value(variable)
        return float(val) if val is not None else 0.0

    @staticmethod
    def objective_value(problem: pulp.LpProblem) -> Optional[float]:
        """Objective value including constant terms, None when unavailable."""
        if problem.objective is None:
            return None
        val = pulp.value(problem.objective)
        return float(val) if val is not None else None
