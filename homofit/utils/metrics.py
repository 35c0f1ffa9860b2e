"""Reprojection error metrics and timing."""

import numpy as np
from typing import Dict
from time import perf_counter

from homofit.errors import InputValidationError
from homofit.primitives import as_point, as_points


def reprojection_error(projected, actual) -> float:
    """Euclidean distance between a projected point and its observation."""
    return float(np.linalg.norm(as_point(projected, 'projected') - as_point(actual, 'actual')))


def point_errors(projected, actual) -> np.ndarray:
    """Per-point Euclidean distances between two (N, 2) point sets."""
    projected = as_points(projected, 'projected')
    actual = as_points(actual, 'actual')
    if projected.shape != actual.shape:
        raise InputValidationError(
            f"Point sets differ in size ({len(projected)} vs {len(actual)})"
        )
    return np.linalg.norm(projected - actual, axis=1)


def total_error(projected, actual) -> float:
    """Sum of per-point reprojection errors."""
    return float(np.sum(point_errors(projected, actual)))


class PerformanceMetrics:
    """Track performance metrics."""

    def __init__(self):
        self.start_times = {}
        self.durations = {}

    def start_timer(self, name: str):
        """Start timing an operation."""
        self.start_times[name] = perf_counter()

    def stop_timer(self, name: str) -> float:
        """Stop timing and return duration in milliseconds."""
        if name not in self.start_times:
            return 0.0
        duration = (perf_counter() - self.start_times.pop(name)) * 1000
        self.durations[name] = duration
        return duration

    def get_summary(self) -> Dict[str, float]:
        """Get summary of all timings."""
        return self.durations.copy()


class AccuracyMetrics:
    """Calculate accuracy metrics."""

    @staticmethod
    def calculate_reprojection_error(predicted, ground_truth) -> Dict[str, float]:
        """Calculate reprojection error statistics."""
        errors = point_errors(predicted, ground_truth)
        if errors.size == 0:
            return {'mean_error': 0.0, 'median_error': 0.0, 'max_error': 0.0,
                    'std_error': 0.0, 'total_error': 0.0}
        return {
            'mean_error': float(np.mean(errors)),
            'median_error': float(np.median(errors)),
            'max_error': float(np.max(errors)),
            'std_error': float(np.std(errors)),
            'total_error': float(np.sum(errors))
        }
