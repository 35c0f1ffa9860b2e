"""Error taxonomy and the Result wrapper used by the processing layer."""

from dataclasses import dataclass
from typing import Any, Callable, Optional


class HomographyError(Exception):
    """Base class for every failure raised by homofit."""


class InputValidationError(HomographyError, ValueError):
    """Malformed input: wrong shapes, mismatched lengths, too few points."""


class NoMatchError(HomographyError):
    """A degree matrix row has no admissible candidate column."""

    def __init__(self, row: int, message: Optional[str] = None):
        self.row = row
        super().__init__(message or f"No valid match found for scene point {row}")


class ConvergenceFailure(HomographyError):
    """The simplex search ran out of iterations before meeting the tolerance."""

    def __init__(self, iterations: int, spread: float, tolerance: float):
        self.iterations = iterations
        self.spread = spread
        self.tolerance = tolerance
        super().__init__(
            f"Nelder-Mead did not converge within {iterations} iterations "
            f"(spread {spread:.3e}, tolerance {tolerance:.3e})"
        )


class SingularMatrixError(HomographyError, ArithmeticError):
    """The homography cannot be inverted."""


class DegenerateProjectionError(HomographyError, ArithmeticError):
    """The homogeneous coordinate of a projected point is zero."""


@dataclass(frozen=True)
class Result:
    """
    Success-or-failure outcome of an operation.

    Exactly one of ``value`` and ``error`` is meaningful. Callers inspect
    ``ok`` (or ``kind`` for the failure class name) or call ``unwrap`` to get
    the value back and re-raise the stored error.
    """

    value: Any = None
    error: Optional[HomographyError] = None

    @classmethod
    def success(cls, value: Any) -> 'Result':
        return cls(value=value)

    @classmethod
    def failure(cls, error: HomographyError) -> 'Result':
        return cls(error=error)

    @classmethod
    def capture(cls, func: Callable, *args, **kwargs) -> 'Result':
        """Run ``func`` and wrap a raised HomographyError as a failure."""
        try:
            return cls.success(func(*args, **kwargs))
        except HomographyError as exc:
            return cls.failure(exc)

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def kind(self) -> Optional[str]:
        return type(self.error).__name__ if self.error is not None else None

    def unwrap(self) -> Any:
        if self.error is not None:
            raise self.error
        return self.value

    def to_dict(self) -> dict:
        if self.ok:
            value = self.value.to_dict() if hasattr(self.value, 'to_dict') else self.value
            return {'success': True, 'result': value}
        return {
            'success': False,
            'error': {'kind': self.kind, 'message': str(self.error)}
        }
