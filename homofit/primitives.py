"""Point and correspondence types plus array coercion helpers."""

import numpy as np
from typing import Iterable, List, NamedTuple, Sequence

from homofit.errors import InputValidationError


class Point2D(NamedTuple):
    """Immutable 2D point."""
    x: float
    y: float

    def as_array(self) -> np.ndarray:
        return np.array([self.x, self.y], dtype=np.float64)


class Correspondence(NamedTuple):
    """A scene point paired with the image point believed to match it."""
    scene: Point2D
    image: Point2D


def as_point(point, name: str = 'point') -> np.ndarray:
    """Coerce a single 2D point to a float64 array of shape (2,)."""
    try:
        arr = np.asarray(point, dtype=np.float64).reshape(-1)
    except (TypeError, ValueError) as exc:
        raise InputValidationError(f"{name} must be numeric: {exc}") from exc
    if arr.shape != (2,):
        raise InputValidationError(f"{name} must have exactly 2 coordinates (x, y)")
    if not np.all(np.isfinite(arr)):
        raise InputValidationError(f"{name} must be finite")
    return arr


def as_points(points, name: str = 'points') -> np.ndarray:
    """Coerce a sequence of 2D points to a float64 array of shape (N, 2)."""
    try:
        arr = np.asarray(points, dtype=np.float64)
    except (TypeError, ValueError) as exc:
        raise InputValidationError(f"{name} must be numeric: {exc}") from exc
    if arr.size == 0:
        return np.empty((0, 2), dtype=np.float64)
    if arr.ndim != 2 or arr.shape[1] != 2:
        raise InputValidationError(f"{name} must have shape (N, 2), got {arr.shape}")
    if not np.all(np.isfinite(arr)):
        raise InputValidationError(f"{name} must be finite")
    return arr


def to_point(arr: Sequence[float]) -> Point2D:
    return Point2D(float(arr[0]), float(arr[1]))


def pair_points(scene_points, image_points) -> List[Correspondence]:
    """Zip index-matched scene and image points into correspondences."""
    scene = as_points(scene_points, 'scene_points')
    image = as_points(image_points, 'image_points')
    if len(scene) != len(image):
        raise InputValidationError(
            f"Scene and image point counts differ ({len(scene)} vs {len(image)})"
        )
    return [Correspondence(to_point(s), to_point(i)) for s, i in zip(scene, image)]


def split_correspondences(correspondences: Iterable[Correspondence]):
    """Return (scene, image) arrays from a correspondence sequence."""
    pairs = list(correspondences)
    if not pairs:
        empty = np.empty((0, 2), dtype=np.float64)
        return empty, empty.copy()
    try:
        scene = as_points([pair[0] for pair in pairs], 'scene_points')
        image = as_points([pair[1] for pair in pairs], 'image_points')
    except (TypeError, IndexError) as exc:
        raise InputValidationError(f"Malformed correspondence: {exc}") from exc
    return scene, image
