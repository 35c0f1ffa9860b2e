"""Homography error model and Nelder-Mead based estimation."""

import logging
import math
from dataclasses import dataclass
from functools import partial
from typing import Callable, Iterable, Optional, Sequence

import numpy as np

from homofit.errors import ConvergenceFailure, InputValidationError
from homofit.optimization.simplex import NelderMeadOptimizer
from homofit.primitives import Correspondence, as_points, split_correspondences

logger = logging.getLogger(__name__)

N_PARAMETERS = 8
MIN_CORRESPONDENCES = 4
IDENTITY_PARAMETERS = (1.0, 0.0, 0.0, 0.0, 1.0, 0.0, 0.0, 0.0)


@dataclass(frozen=True)
class ObjectiveContext:
    """Scene/image points an objective evaluation runs against."""
    scene_points: np.ndarray
    image_points: np.ndarray

    @classmethod
    def from_points(cls, scene_points, image_points,
                    min_correspondences: int = MIN_CORRESPONDENCES) -> 'ObjectiveContext':
        scene = as_points(scene_points, 'scene_points')
        image = as_points(image_points, 'image_points')
        if len(scene) != len(image):
            raise InputValidationError(
                f"Scene and image point counts differ ({len(scene)} vs {len(image)})"
            )
        if len(scene) < min_correspondences:
            raise InputValidationError(
                f"At least {min_correspondences} point correspondences are required, "
                f"got {len(scene)}"
            )
        return cls(scene, image)

    @classmethod
    def from_correspondences(cls, correspondences: Iterable[Correspondence],
                             min_correspondences: int = MIN_CORRESPONDENCES) -> 'ObjectiveContext':
        scene, image = split_correspondences(correspondences)
        return cls.from_points(scene, image, min_correspondences)

    def __len__(self) -> int:
        return len(self.scene_points)


def evaluate_objective(h: Sequence[float], context: ObjectiveContext) -> float:
    """
    Sum of squared reprojection errors of ``context`` under parameters ``h``.

    Returns infinity when a scene point maps to the line at infinity
    (w == 0) so a search steers away from that candidate.
    """
    x = context.scene_points[:, 0]
    y = context.scene_points[:, 1]
    w = h[6] * x + h[7] * y + 1.0
    if np.any(w == 0.0):
        return math.inf

    with np.errstate(over='ignore', invalid='ignore'):
        u_projected = (h[0] * x + h[1] * y + h[2]) / w
        v_projected = (h[3] * x + h[4] * y + h[5]) / w
        du = context.image_points[:, 0] - u_projected
        dv = context.image_points[:, 1] - v_projected
        error = float(np.sum(du * du + dv * dv))

    return error if math.isfinite(error) else math.inf


def build_objective(correspondences: Iterable[Correspondence]) -> Callable[[np.ndarray], float]:
    """Objective function over the 8 homography parameters."""
    return partial(evaluate_objective, context=ObjectiveContext.from_correspondences(correspondences))


def reconstruct_matrix(h: Sequence[float]) -> np.ndarray:
    """Lay the 8 parameters out as a 3x3 matrix with the last entry fixed to 1."""
    params = np.asarray(h, dtype=np.float64).reshape(-1)
    if params.shape != (N_PARAMETERS,):
        raise InputValidationError(f"Expected {N_PARAMETERS} parameters, got {params.size}")
    return np.append(params, 1.0).reshape(3, 3)


def matrix_to_parameters(H) -> np.ndarray:
    """Scale a 3x3 homography so its last entry is 1 and return the other 8."""
    matrix = np.asarray(H, dtype=np.float64)
    if matrix.shape != (3, 3):
        raise InputValidationError("Homography matrix must be a 3x3 matrix")
    if matrix[2, 2] == 0:
        raise InputValidationError("Homography with a zero bottom-right entry cannot be normalised")
    return (matrix / matrix[2, 2]).reshape(-1)[:N_PARAMETERS].copy()


@dataclass(frozen=True)
class HomographyFit:
    """Outcome of a successful estimation."""
    matrix: np.ndarray
    parameters: np.ndarray
    residual: float
    iterations: int
    evaluations: int
    restarts: int = 0

    def to_dict(self) -> dict:
        return {
            'matrix': self.matrix.tolist(),
            'parameters': self.parameters.tolist(),
            'residual': self.residual,
            'iterations': self.iterations,
            'evaluations': self.evaluations,
            'restarts': self.restarts
        }


class HomographyEstimator:
    """Fit the 8 free homography entries by minimising reprojection error."""

    def __init__(self, tolerance: float = 1e-10, max_iterations: int = 20000,
                 initial_guess: Sequence[float] = IDENTITY_PARAMETERS,
                 min_correspondences: int = MIN_CORRESPONDENCES,
                 max_restarts: int = 100,
                 optimizer: Optional[NelderMeadOptimizer] = None):
        if min_correspondences < MIN_CORRESPONDENCES:
            raise InputValidationError(
                f"min_correspondences cannot be below {MIN_CORRESPONDENCES}"
            )
        if isinstance(max_restarts, bool) or not isinstance(max_restarts, int) or max_restarts < 0:
            raise InputValidationError("max_restarts must be a non-negative integer")
        self.tolerance = tolerance
        self.max_iterations = max_iterations
        self.initial_guess = self._check_guess(initial_guess)
        self.min_correspondences = min_correspondences
        self.max_restarts = max_restarts
        self.optimizer = optimizer or NelderMeadOptimizer()

    def estimate(self, scene_points, image_points,
                 initial_guess: Optional[Sequence[float]] = None) -> HomographyFit:
        """
        Estimate the homography mapping scene points onto image points.

        Args:
            scene_points: (N, 2) scene plane points, N >= 4
            image_points: (N, 2) image plane points matched by index
            initial_guess: Optional 8 starting parameters (identity by default)

        Returns:
            HomographyFit with the 3x3 matrix and the final residual

        Raises:
            InputValidationError: mismatched or too few points
            ConvergenceFailure: a search hit its iteration cap, or the residual
                was still decreasing after max_restarts restarts
        """
        context = ObjectiveContext.from_points(scene_points, image_points,
                                               self.min_correspondences)
        return self._fit(context, initial_guess)

    def estimate_from_correspondences(self, correspondences: Iterable[Correspondence],
                                      initial_guess: Optional[Sequence[float]] = None) -> HomographyFit:
        """Estimate from a sequence of (scene, image) pairs."""
        context = ObjectiveContext.from_correspondences(correspondences,
                                                        self.min_correspondences)
        return self._fit(context, initial_guess)

    def _fit(self, context: ObjectiveContext,
             initial_guess: Optional[Sequence[float]]) -> HomographyFit:
        guess = self.initial_guess if initial_guess is None else self._check_guess(initial_guess)
        objective = partial(evaluate_objective, context=context)

        result = self.optimizer.minimize(objective, guess,
                                         tolerance=self.tolerance,
                                         max_iterations=self.max_iterations)
        iterations = result.iterations
        evaluations = result.evaluations

        # A collapsed simplex can meet the spread test far from the minimum;
        # restart from the best vertex until the residual stops decreasing.
        restarts = 0
        while restarts < self.max_restarts:
            previous = result.fun
            restart = self.optimizer.minimize(objective, result.x,
                                              tolerance=self.tolerance,
                                              max_iterations=self.max_iterations)
            restarts += 1
            iterations += restart.iterations
            evaluations += restart.evaluations
            if restart.fun < result.fun:
                result = restart
            if previous - restart.fun <= self.tolerance:
                break
        else:
            if self.max_restarts:
                logger.warning("Residual still decreasing after %d restarts (%.3e)",
                               restarts, result.fun)
                raise ConvergenceFailure(iterations, previous - result.fun, self.tolerance)

        logger.info("Homography estimated from %d correspondences "
                    "(residual %.3e, %d iterations, %d restarts)",
                    len(context), result.fun, iterations, restarts)
        return HomographyFit(
            matrix=reconstruct_matrix(result.x),
            parameters=result.x,
            residual=result.fun,
            iterations=iterations,
            evaluations=evaluations,
            restarts=restarts
        )

    @staticmethod
    def _check_guess(guess: Sequence[float]) -> np.ndarray:
        params = np.asarray(guess, dtype=np.float64).reshape(-1)
        if params.shape != (N_PARAMETERS,):
            raise InputValidationError(
                f"Initial guess must have {N_PARAMETERS} parameters, got {params.size}"
            )
        if not np.all(np.isfinite(params)):
            raise InputValidationError("Initial guess must be finite")
        return params
