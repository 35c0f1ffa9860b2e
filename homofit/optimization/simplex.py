"""Derivative-free minimisation with the Nelder-Mead simplex method."""

import logging
import math
import numpy as np
from typing import Callable, List, NamedTuple, Optional, Tuple

from homofit.errors import ConvergenceFailure, InputValidationError

logger = logging.getLogger(__name__)

Objective = Callable[[np.ndarray], float]


class SimplexResult(NamedTuple):
    """Best vertex of a converged search plus bookkeeping."""
    x: np.ndarray
    fun: float
    iterations: int
    evaluations: int


class NelderMeadOptimizer:
    """Minimise a scalar objective over an n-dimensional real vector."""

    def __init__(self, tolerance: float = 1e-6, max_iterations: int = 5000,
                 initial_step: float = 0.05, reflection: float = 1.0,
                 expansion: float = 2.0, contraction: float = 0.5,
                 shrink: float = 0.5):
        self.tolerance = tolerance
        self.max_iterations = max_iterations
        self.initial_step = initial_step
        self.reflection = reflection
        self.expansion = expansion
        self.contraction = contraction
        self.shrink = shrink

    def optimize(self, objective: Objective, initial_guess,
                 tolerance: Optional[float] = None,
                 max_iterations: Optional[int] = None) -> np.ndarray:
        """Return the parameter vector minimising ``objective``."""
        return self.minimize(objective, initial_guess, tolerance, max_iterations).x

    def minimize(self, objective: Objective, initial_guess,
                 tolerance: Optional[float] = None,
                 max_iterations: Optional[int] = None) -> SimplexResult:
        """
        Run the simplex search from ``initial_guess``.

        Args:
            objective: Function mapping a parameter vector to a real value
            initial_guess: Starting parameter vector
            tolerance: Stop once worst and best vertex values differ by less
            max_iterations: Iteration cap; exhausting it is a failure

        Returns:
            SimplexResult with the best vertex and its objective value

        Raises:
            ConvergenceFailure: if the cap is hit before the tolerance is met
        """
        tolerance = self.tolerance if tolerance is None else tolerance
        max_iterations = self.max_iterations if max_iterations is None else max_iterations
        x0 = self._validate(initial_guess, tolerance, max_iterations)
        n = x0.shape[0]
        evaluations = 0

        def evaluate(point: np.ndarray) -> float:
            nonlocal evaluations
            evaluations += 1
            value = float(objective(point))
            return math.inf if math.isnan(value) else value

        # Vertices live only for this call; each carries its cached value.
        simplex: List[Tuple[np.ndarray, float]] = [(x0, evaluate(x0))]
        for i in range(n):
            point = x0.copy()
            point[i] += self.initial_step
            simplex.append((point, evaluate(point)))

        spread = math.inf
        for iteration in range(max_iterations):
            simplex.sort(key=lambda vertex: vertex[1])

            best_value = simplex[0][1]
            worst_point, worst_value = simplex[-1]
            spread = worst_value - best_value
            if spread < tolerance:
                logger.debug("Nelder-Mead converged after %d iterations "
                             "(%d evaluations, f=%.6e)", iteration, evaluations, best_value)
                return SimplexResult(simplex[0][0].copy(), best_value, iteration, evaluations)

            centroid = np.mean([point for point, _ in simplex[:-1]], axis=0)

            reflected = centroid + self.reflection * (centroid - worst_point)
            reflected_value = evaluate(reflected)

            if reflected_value < best_value:
                expanded = centroid + self.expansion * (reflected - centroid)
                expanded_value = evaluate(expanded)
                if expanded_value < reflected_value:
                    simplex[-1] = (expanded, expanded_value)
                else:
                    simplex[-1] = (reflected, reflected_value)
            elif reflected_value < simplex[-2][1]:
                simplex[-1] = (reflected, reflected_value)
            else:
                contracted = centroid + self.contraction * (worst_point - centroid)
                contracted_value = evaluate(contracted)
                if contracted_value < worst_value:
                    simplex[-1] = (contracted, contracted_value)
                else:
                    best_point = simplex[0][0]
                    for i in range(1, len(simplex)):
                        point = best_point + self.shrink * (simplex[i][0] - best_point)
                        simplex[i] = (point, evaluate(point))

        logger.warning("Nelder-Mead exhausted %d iterations (spread %.3e > tolerance %.3e)",
                       max_iterations, spread, tolerance)
        raise ConvergenceFailure(max_iterations, spread, tolerance)

    @staticmethod
    def _validate(initial_guess, tolerance: float, max_iterations: int) -> np.ndarray:
        try:
            x0 = np.array(initial_guess, dtype=np.float64)
        except (TypeError, ValueError) as exc:
            raise InputValidationError(f"Initial guess must be numeric: {exc}") from exc
        if x0.ndim != 1 or x0.size == 0:
            raise InputValidationError("Initial guess must be a non-empty 1-D vector")
        if not np.all(np.isfinite(x0)):
            raise InputValidationError("Initial guess must be finite")
        if not tolerance >= 0:
            raise InputValidationError("Tolerance must be non-negative")
        if isinstance(max_iterations, bool) or not isinstance(max_iterations, (int, np.integer)) \
                or max_iterations < 0:
            raise InputValidationError("max_iterations must be a non-negative integer")
        return x0


def optimize(objective: Objective, initial_guess, tolerance: float = 1e-6,
             max_iterations: int = 5000) -> np.ndarray:
    """Minimise ``objective`` from ``initial_guess`` with default coefficients."""
    return NelderMeadOptimizer(tolerance, max_iterations).optimize(objective, initial_guess)
