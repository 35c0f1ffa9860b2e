"""Homography validation and reprojection reports."""

import logging
from dataclasses import dataclass, field
from typing import List, Tuple

import numpy as np

from homofit.coordinates.transformer import SINGULAR_EPSILON, project_points
from homofit.errors import InputValidationError
from homofit.primitives import Point2D, as_points, to_point
from homofit.utils.metrics import point_errors

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PointError:
    index: int
    projected: Point2D
    actual: Point2D
    error: float


@dataclass(frozen=True)
class ReprojectionReport:
    """Per-point and aggregate reprojection errors for one point set."""
    points: List[PointError] = field(default_factory=list)

    @property
    def total_error(self) -> float:
        return float(sum(p.error for p in self.points))

    @property
    def mean_error(self) -> float:
        return self.total_error / len(self.points) if self.points else 0.0

    @property
    def max_error(self) -> float:
        return max((p.error for p in self.points), default=0.0)

    def to_dict(self) -> dict:
        return {
            'points': [
                {'index': p.index, 'projected': list(p.projected),
                 'actual': list(p.actual), 'error': p.error}
                for p in self.points
            ],
            'total_error': self.total_error,
            'mean_error': self.mean_error,
            'max_error': self.max_error
        }


class HomographyValidator:
    """Validate homography matrices and the fits they produce."""

    def __init__(self, epsilon: float = SINGULAR_EPSILON):
        self.epsilon = epsilon

    def validate_transformation(self, H) -> Tuple[bool, str]:
        """Validate homography matrix properties."""
        if H is None:
            return False, "Matrix is None"

        H = np.asarray(H, dtype=np.float64)
        if H.shape != (3, 3):
            return False, "Invalid matrix shape"

        if not np.all(np.isfinite(H)):
            return False, "Matrix has non-finite entries"

        det = np.linalg.det(H)
        if abs(det) <= self.epsilon:
            return False, "Matrix is singular"

        if H[2, 2] == 0:
            return False, "Invalid normalization"

        return True, "Valid"

    def reprojection_report(self, H, scene_points, image_points) -> ReprojectionReport:
        """
        Project scene points through ``H`` and compare with the observed image points.

        Args:
            H: 3x3 homography
            scene_points: (N, 2) scene points
            image_points: (N, 2) observed image points

        Returns:
            ReprojectionReport with one entry per point
        """
        scene = as_points(scene_points, 'scene_points')
        image = as_points(image_points, 'image_points')
        if len(scene) != len(image):
            raise InputValidationError(
                f"Scene and image point counts differ ({len(scene)} vs {len(image)})"
            )

        projected = project_points(scene, H)
        errors = point_errors(projected, image)

        entries = []
        for i, (proj, actual, error) in enumerate(zip(projected, image, errors)):
            logger.debug("Point %d: projected=(%.6f, %.6f) actual=(%.6f, %.6f) error=%.6e",
                         i, proj[0], proj[1], actual[0], actual[1], error)
            entries.append(PointError(i, to_point(proj), to_point(actual), float(error)))

        report = ReprojectionReport(entries)
        logger.info("Total reprojection error over %d points: %.6e",
                    len(entries), report.total_error)
        return report
