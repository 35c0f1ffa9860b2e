"""JSON input/output for matrices, correspondences and results."""

import json
import numpy as np
from pathlib import Path
from typing import Dict, Optional, Tuple

from homofit.errors import InputValidationError
from homofit.primitives import as_points

MATRIX_KEYS = (('m00', 'm01', 'm02'),
               ('m10', 'm11', 'm12'),
               ('m20', 'm21', 'm22'))


def matrix_to_dict(H) -> Dict[str, float]:
    """Flatten a 3x3 matrix into m00..m22 entries."""
    matrix = np.asarray(H, dtype=np.float64)
    if matrix.shape != (3, 3):
        raise InputValidationError("Homography matrix must be a 3x3 matrix")
    return {key: float(matrix[r, c])
            for r, row in enumerate(MATRIX_KEYS) for c, key in enumerate(row)}


def matrix_from_dict(entries: Dict[str, float]) -> np.ndarray:
    """Rebuild a 3x3 matrix from m00..m22 entries."""
    try:
        return np.array([[float(entries[key]) for key in row] for row in MATRIX_KEYS])
    except KeyError as exc:
        raise InputValidationError(f"Matrix entry {exc.args[0]} is missing") from exc


class JSONWriter:
    """Write results to JSON."""

    @staticmethod
    def save_results(output_dict: Dict, output_path: str, indent: int = 2):
        """Save results to JSON file."""
        Path(output_path).parent.mkdir(parents=True, exist_ok=True)
        with open(output_path, 'w') as f:
            json.dump(output_dict, f, indent=indent)

    @staticmethod
    def load_results(input_path: str) -> Dict:
        """Load results from JSON file."""
        with open(input_path, 'r') as f:
            return json.load(f)


def load_correspondences(input_path: str) -> Tuple[np.ndarray, np.ndarray, Optional[np.ndarray]]:
    """
    Load point sets from a JSON document.

    The document holds ``scene_points`` and ``image_points`` as lists of
    [x, y] pairs and optionally a ``degree_matrix`` (list of rows).

    Returns:
        Tuple of (scene points, image points, degree matrix or None)
    """
    document = JSONWriter.load_results(input_path)
    if not isinstance(document, dict):
        raise InputValidationError(f"{input_path} must contain a JSON object")

    for key in ('scene_points', 'image_points'):
        if key not in document:
            raise InputValidationError(f"{input_path} is missing '{key}'")

    scene = as_points(document['scene_points'], 'scene_points')
    image = as_points(document['image_points'], 'image_points')

    degree_matrix = document.get('degree_matrix')
    if degree_matrix is not None:
        try:
            degree_matrix = np.asarray(degree_matrix, dtype=np.float64)
        except (TypeError, ValueError) as exc:
            raise InputValidationError(
                f"{input_path}: degree_matrix must be a numeric list of rows: {exc}"
            ) from exc
        if degree_matrix.ndim != 2:
            raise InputValidationError(f"{input_path}: degree_matrix must be two-dimensional")

    return scene, image, degree_matrix
