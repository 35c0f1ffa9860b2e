"""Forward and inverse projection of points through a homography."""

import numpy as np
from typing import Optional

from homofit.errors import (DegenerateProjectionError, InputValidationError,
                            SingularMatrixError)
from homofit.primitives import Point2D, as_point, as_points

SINGULAR_EPSILON = 1e-12


def as_homography(H) -> np.ndarray:
    """Validate and return ``H`` as a float64 3x3 array."""
    try:
        matrix = np.asarray(H, dtype=np.float64)
    except (TypeError, ValueError) as exc:
        raise InputValidationError(f"Homography matrix must be numeric: {exc}") from exc
    if matrix.shape != (3, 3):
        raise InputValidationError("Homography matrix must be a 3x3 matrix")
    if not np.all(np.isfinite(matrix)):
        raise InputValidationError("Homography matrix must be finite")
    return matrix


def invert_homography(H, epsilon: float = SINGULAR_EPSILON) -> np.ndarray:
    """Inverse of ``H``; raises SingularMatrixError when it has none."""
    matrix = as_homography(H)
    det = float(np.linalg.det(matrix))
    if abs(det) <= epsilon:
        raise SingularMatrixError(f"Homography matrix is singular (det={det:.3e})")
    try:
        return np.linalg.inv(matrix)
    except np.linalg.LinAlgError as exc:
        raise SingularMatrixError(f"Homography matrix is singular: {exc}") from exc


def project(point, H) -> Point2D:
    """
    Map a 2D point through ``H``.

    Args:
        point: (x, y) point
        H: 3x3 homography

    Returns:
        Projected point after perspective division
    """
    p = as_point(point)
    projected = as_homography(H) @ np.array([p[0], p[1], 1.0])
    if projected[2] == 0.0:
        raise DegenerateProjectionError(
            f"Point ({p[0]}, {p[1]}) projects to infinity (zero homogeneous coordinate)"
        )
    return Point2D(float(projected[0] / projected[2]), float(projected[1] / projected[2]))


def back_project(point, H, epsilon: float = SINGULAR_EPSILON) -> Point2D:
    """Map a 2D point through the inverse of ``H``."""
    return project(point, invert_homography(H, epsilon))


def project_points(points, H) -> np.ndarray:
    """Vectorised ``project`` for an (N, 2) array."""
    pts = as_points(points)
    matrix = as_homography(H)
    points_h = np.hstack([pts, np.ones((pts.shape[0], 1))])
    transformed = (matrix @ points_h.T).T
    if np.any(transformed[:, 2] == 0.0):
        bad = int(np.flatnonzero(transformed[:, 2] == 0.0)[0])
        raise DegenerateProjectionError(f"Point {bad} projects to infinity")
    return transformed[:, :2] / transformed[:, 2:]


class CoordinateTransformer:
    """Transform between scene and image coordinates."""

    def __init__(self, homography_matrix=None, epsilon: float = SINGULAR_EPSILON):
        """
        Initialize coordinate transformer.

        Args:
            homography_matrix: Optional 3x3 scene-to-image homography
            epsilon: Determinant magnitude at or below which H is singular
        """
        self.epsilon = epsilon
        self.H: Optional[np.ndarray] = None
        self._H_inv: Optional[np.ndarray] = None
        if homography_matrix is not None:
            self.set_homography(homography_matrix)

    def set_homography(self, homography_matrix):
        """Set or update the homography matrix."""
        self.H = as_homography(homography_matrix)
        self._H_inv = None

    @property
    def H_inv(self) -> np.ndarray:
        self._require_matrix()
        if self._H_inv is None:
            self._H_inv = invert_homography(self.H, self.epsilon)
        return self._H_inv

    def scene_to_image(self, point) -> Point2D:
        """Project a scene point into the image."""
        self._require_matrix()
        return project(point, self.H)

    def image_to_scene(self, point) -> Point2D:
        """Back-project an image point onto the scene plane."""
        return project(point, self.H_inv)

    def _require_matrix(self):
        if self.H is None:
            raise InputValidationError("No homography matrix set")
