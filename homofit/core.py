"""
homofit Core Processor
Main entry point for homography estimation, validation and projection
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from homofit import __version__
from homofit.calibration.homography import HomographyEstimator, HomographyFit
from homofit.calibration.matcher import CorrespondenceMatcher
from homofit.config import DEFAULT_CONFIG, merge_config
from homofit.coordinates.transformer import back_project, project
from homofit.coordinates.validator import HomographyValidator, ReprojectionReport
from homofit.errors import InputValidationError, Result
from homofit.optimization.simplex import NelderMeadOptimizer
from homofit.primitives import Correspondence, as_points, split_correspondences
from homofit.utils.metrics import PerformanceMetrics

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CalibrationOutcome:
    """Everything a successful calibration produced."""
    fit: HomographyFit
    report: ReprojectionReport
    holdout_report: Optional[ReprojectionReport] = None
    matches: List[Correspondence] = field(default_factory=list)
    processing_time_ms: float = 0.0

    @property
    def matrix(self):
        return self.fit.matrix

    def to_dict(self) -> Dict[str, Any]:
        return {
            "system": "homofit",
            "version": __version__,
            "timestamp": datetime.now().isoformat(),
            "calibration": self.fit.to_dict(),
            "validation": self.report.to_dict(),
            "holdout_validation": self.holdout_report.to_dict() if self.holdout_report else None,
            "matches": [
                {"scene": list(m.scene), "image": list(m.image)} for m in self.matches
            ],
            "processing_metadata": {
                "processing_time_ms": round(self.processing_time_ms, 3)
            }
        }


class HomographyProcessor:
    """Estimate, validate and apply homographies from point correspondences."""

    def __init__(self, config: Dict[str, Any] = None):
        """
        Initialize the processor.

        Args:
            config: Configuration dictionary merged over DEFAULT_CONFIG (optional)
        """
        self.config = merge_config(DEFAULT_CONFIG, config or {})

        opt_cfg = self.config["optimizer"]
        est_cfg = self.config["estimation"]
        match_cfg = self.config["matching"]
        self.epsilon = self.config["projection"]["singular_epsilon"]

        # Search tolerance and iteration cap come from the estimation section.
        self.optimizer = NelderMeadOptimizer(
            initial_step=opt_cfg["initial_step"],
            reflection=opt_cfg["reflection"],
            expansion=opt_cfg["expansion"],
            contraction=opt_cfg["contraction"],
            shrink=opt_cfg["shrink"]
        )
        self.estimator = HomographyEstimator(
            tolerance=est_cfg["tolerance"],
            max_iterations=est_cfg["max_iterations"],
            initial_guess=est_cfg["initial_guess"],
            min_correspondences=est_cfg["min_correspondences"],
            max_restarts=est_cfg["max_restarts"],
            optimizer=self.optimizer
        )
        self.matcher = CorrespondenceMatcher(
            min_degree=match_cfg["min_degree"],
            strategy=match_cfg["strategy"]
        )
        self.validator = HomographyValidator(epsilon=self.epsilon)

    def calculate(self, scene_points, image_points) -> Result:
        """
        Estimate a homography and validate it on the same points.

        Returns:
            Result holding a CalibrationOutcome, or the failure that stopped it
        """
        return self._run("calculate", self._calibrate, scene_points, image_points)

    def calculate_with_degree_matrix(self, scene_points, image_points, degree_matrix) -> Result:
        """Match points through the degree matrix, then estimate and validate."""
        def work():
            matches = self.matcher.match(scene_points, image_points, degree_matrix)
            matched_scene, matched_image = split_correspondences(matches)
            return self._calibrate(matched_scene, matched_image, matches=matches)

        return self._run("calculate_with_degree_matrix", work)

    def calculate_with_holdout(self, fit_scene, fit_image, check_scene, check_image) -> Result:
        """
        Estimate on one point set and measure reprojection error on another.

        Args:
            fit_scene, fit_image: Correspondences used for estimation
            check_scene, check_image: Held-out correspondences for evaluation
        """
        def work():
            check_scene_pts = as_points(check_scene, 'check_scene')
            check_image_pts = as_points(check_image, 'check_image')
            if len(check_scene_pts) == 0:
                raise InputValidationError("At least one held-out correspondence is required")
            if len(check_scene_pts) != len(check_image_pts):
                raise InputValidationError(
                    f"Held-out point counts differ ({len(check_scene_pts)} vs {len(check_image_pts)})"
                )
            return self._calibrate(fit_scene, fit_image,
                                   holdout=(check_scene_pts, check_image_pts))

        return self._run("calculate_with_holdout", work)

    def project_point(self, point, H) -> Result:
        """Project a scene point into the image."""
        return Result.capture(project, point, H)

    def back_project_point(self, point, H) -> Result:
        """Back-project an image point onto the scene plane."""
        return Result.capture(back_project, point, H, self.epsilon)

    def _calibrate(self, scene_points, image_points, matches=None, holdout=None) -> CalibrationOutcome:
        metrics = PerformanceMetrics()
        metrics.start_timer("calibration")

        fit = self.estimator.estimate(scene_points, image_points)

        valid, reason = self.validator.validate_transformation(fit.matrix)
        if not valid:
            logger.warning("Estimated homography failed validation: %s", reason)

        report = self.validator.reprojection_report(fit.matrix, scene_points, image_points)
        holdout_report = None
        if holdout is not None:
            holdout_report = self.validator.reprojection_report(fit.matrix, *holdout)

        return CalibrationOutcome(
            fit=fit,
            report=report,
            holdout_report=holdout_report,
            matches=list(matches or []),
            processing_time_ms=metrics.stop_timer("calibration")
        )

    def _run(self, name: str, func, *args) -> Result:
        result = Result.capture(func, *args)
        if not result.ok:
            logger.error("%s failed: %s: %s", name, result.kind, result.error)
        return result
