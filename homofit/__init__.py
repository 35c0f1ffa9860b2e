"""
homofit - planar homography estimation

Fits the 8 free entries of a homography to point correspondences with a
Nelder-Mead simplex search and projects points through the result.
"""

__version__ = '1.0.0'

from .errors import (ConvergenceFailure, DegenerateProjectionError, HomographyError,
                     InputValidationError, NoMatchError, Result, SingularMatrixError)
from .primitives import Correspondence, Point2D
from .optimization.simplex import NelderMeadOptimizer, optimize
from .calibration.homography import (HomographyEstimator, HomographyFit, build_objective,
                                     reconstruct_matrix)
from .calibration.matcher import CorrespondenceMatcher
from .coordinates.transformer import CoordinateTransformer, back_project, project
from .utils.metrics import reprojection_error, total_error
from .core import HomographyProcessor

__all__ = [
    'ConvergenceFailure', 'DegenerateProjectionError', 'HomographyError',
    'InputValidationError', 'NoMatchError', 'Result', 'SingularMatrixError',
    'Correspondence', 'Point2D',
    'NelderMeadOptimizer', 'optimize',
    'HomographyEstimator', 'HomographyFit', 'build_objective', 'reconstruct_matrix',
    'CorrespondenceMatcher',
    'CoordinateTransformer', 'back_project', 'project',
    'reprojection_error', 'total_error',
    'HomographyProcessor',
]
