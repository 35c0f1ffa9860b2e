"""Pair scene points with image points from an affinity (degree) matrix."""

import logging
from collections import Counter
from typing import List

import numpy as np
from scipy.optimize import linear_sum_assignment

from homofit.errors import InputValidationError, NoMatchError
from homofit.primitives import Correspondence, as_points, to_point

logger = logging.getLogger(__name__)

STRATEGIES = ('greedy', 'optimal')


class CorrespondenceMatcher:
    """
    Select an image point for every scene point.

    The default ``greedy`` strategy takes, independently for each row, the
    column with the highest degree (first column on ties). Two scene points
    may therefore share an image point. ``optimal`` solves a one-to-one
    assignment maximising the total degree instead.
    """

    def __init__(self, min_degree: float = float('-inf'), strategy: str = 'greedy'):
        if strategy not in STRATEGIES:
            raise InputValidationError(f"Unknown matching strategy '{strategy}', "
                                       f"expected one of {STRATEGIES}")
        self.min_degree = min_degree
        self.strategy = strategy

    def match(self, scene_points, image_points, degree_matrix) -> List[Correspondence]:
        """
        Match scene points to image points.

        Args:
            scene_points: (R, 2) scene points, one per degree matrix row
            image_points: (C, 2) image points, one per degree matrix column
            degree_matrix: (R, C) affinity scores

        Returns:
            One Correspondence per scene point, in scene order

        Raises:
            InputValidationError: the matrix does not fit the point sets
            NoMatchError: a row has no admissible column
        """
        scene = as_points(scene_points, 'scene_points')
        image = as_points(image_points, 'image_points')
        degrees = self._as_matrix(degree_matrix)

        if degrees.shape != (len(scene), len(image)):
            raise InputValidationError(
                f"Degree matrix shape {degrees.shape} does not match "
                f"{len(scene)} scene points and {len(image)} image points"
            )

        columns = self.match_indices(degrees)
        return [Correspondence(to_point(scene[i]), to_point(image[j]))
                for i, j in enumerate(columns)]

    def match_indices(self, degree_matrix) -> np.ndarray:
        """Return the selected image column for every scene row."""
        degrees = self._as_matrix(degree_matrix)
        if degrees.shape[0] == 0:
            return np.empty(0, dtype=int)

        admissible = degrees > self.min_degree
        for row in range(degrees.shape[0]):
            if not admissible[row].any():
                raise NoMatchError(row)

        if self.strategy == 'optimal':
            return self._optimal(degrees, admissible)
        return self._greedy(degrees, admissible)

    def _greedy(self, degrees: np.ndarray, admissible: np.ndarray) -> np.ndarray:
        # argmax returns the first maximum, so ties go to the lowest column
        candidates = np.where(admissible, degrees, -np.inf)
        columns = np.argmax(candidates, axis=1)

        shared = sorted(col for col, count in Counter(columns.tolist()).items() if count > 1)
        if shared:
            logger.warning("Greedy matching assigned image points %s to more than one scene point",
                           shared)
        return columns

    def _optimal(self, degrees: np.ndarray, admissible: np.ndarray) -> np.ndarray:
        n_rows, n_cols = degrees.shape
        if n_rows > n_cols:
            raise InputValidationError(
                f"One-to-one matching needs at least as many image points ({n_cols}) "
                f"as scene points ({n_rows})"
            )

        scores = self._assignment_scores(degrees, admissible)

        rows, columns = linear_sum_assignment(scores, maximize=True)
        assignment = np.empty(n_rows, dtype=int)
        assignment[rows] = columns
        for row, col in enumerate(assignment):
            if not admissible[row, col]:
                raise NoMatchError(row, f"No admissible one-to-one match for scene point {row}")
        return assignment

    @staticmethod
    def _assignment_scores(degrees: np.ndarray, admissible: np.ndarray) -> np.ndarray:
        # linear_sum_assignment only accepts finite costs. +inf is capped above
        # every finite sum and inadmissible cells sit below every admissible one.
        n_rows = degrees.shape[0]
        allowed = degrees[admissible]
        finite = allowed[np.isfinite(allowed)]
        low, high = (float(finite.min()), float(finite.max())) if finite.size else (0.0, 0.0)
        with np.errstate(over='ignore', invalid='ignore'):
            top = high + (high - low + 1.0) * n_rows
            floor = low - (top - low + 1.0) * n_rows
        if np.isfinite(top) and np.isfinite(floor):
            return np.where(admissible, np.minimum(degrees, top), floor)

        # Magnitudes too large to offset: keep only the order of the entries.
        values, ranks = np.unique(allowed, return_inverse=True)
        scores = np.full(degrees.shape, -float(len(values) * (n_rows + 1)))
        scores[admissible] = ranks.reshape(-1)
        return scores

    @staticmethod
    def _as_matrix(degree_matrix) -> np.ndarray:
        try:
            degrees = np.asarray(degree_matrix, dtype=np.float64)
        except (TypeError, ValueError) as exc:
            raise InputValidationError(f"Degree matrix must be numeric: {exc}") from exc
        if degrees.ndim != 2:
            if degrees.size == 0:
                return np.empty((0, 0), dtype=np.float64)
            raise InputValidationError("Degree matrix must be two-dimensional")
        return degrees
