"""Tests for the Nelder-Mead simplex optimizer."""

import threading

import numpy as np
import pytest

from homofit.errors import ConvergenceFailure, InputValidationError
from homofit.optimization.simplex import NelderMeadOptimizer, SimplexResult, optimize


def quadratic(center):
    center = np.asarray(center, dtype=np.float64)

    def objective(x):
        return float(np.sum((x - center) ** 2))
    return objective


def rosenbrock(x):
    return float((1 - x[0]) ** 2 + 100 * (x[1] - x[0] ** 2) ** 2)


class TestNelderMeadOptimizer:
    """Test simplex search behaviour."""

    def test_optimizer_initialization(self):
        """Test default coefficients."""
        optimizer = NelderMeadOptimizer()
        assert optimizer.tolerance == 1e-6
        assert optimizer.max_iterations == 5000
        assert optimizer.initial_step == 0.05
        assert optimizer.reflection == 1.0
        assert optimizer.expansion == 2.0
        assert optimizer.contraction == 0.5
        assert optimizer.shrink == 0.5

    def test_minimizes_quadratic(self):
        """Test convergence to the minimum of a separable quadratic."""
        center = [0.3, -0.2, 0.5]
        x = optimize(quadratic(center), [0.0, 0.0, 0.0], tolerance=1e-14)
        assert np.allclose(x, center, atol=1e-4)

    def test_minimizes_rosenbrock(self):
        """Test convergence along a curved valley."""
        x = optimize(rosenbrock, [-1.2, 1.0], tolerance=1e-14, max_iterations=5000)
        assert np.allclose(x, [1.0, 1.0], atol=1e-3)

    def test_minimize_reports_bookkeeping(self):
        """Test SimplexResult fields."""
        optimizer = NelderMeadOptimizer(tolerance=1e-12)
        result = optimizer.minimize(quadratic([1.0, 2.0]), [0.0, 0.0])
        assert isinstance(result, SimplexResult)
        assert result.fun < 1e-10
        assert result.iterations > 0
        assert result.evaluations >= 3
        assert result.fun == pytest.approx(quadratic([1.0, 2.0])(result.x))

    def test_returns_initial_guess_when_already_converged(self):
        """Test termination on the first iteration for a flat objective."""
        x = optimize(lambda v: 1.0, [4.0, 5.0])
        assert np.array_equal(x, [4.0, 5.0])

    def test_does_not_modify_initial_guess(self):
        """Test the caller's vector is left untouched."""
        guess = np.array([0.0, 0.0])
        optimize(quadratic([1.0, 1.0]), guess)
        assert np.array_equal(guess, [0.0, 0.0])

    def test_deterministic(self):
        """Test identical runs give bit-identical results."""
        first = optimize(rosenbrock, [-1.2, 1.0], tolerance=1e-10)
        second = optimize(rosenbrock, [-1.2, 1.0], tolerance=1e-10)
        assert np.array_equal(first, second)

    def test_zero_iterations_raise_convergence_failure(self):
        """Test an exhausted iteration cap is surfaced."""
        with pytest.raises(ConvergenceFailure) as excinfo:
            optimize(quadratic([1.0]), [0.0], max_iterations=0)
        assert excinfo.value.iterations == 0

    def test_small_iteration_cap_raises(self):
        """Test a cap too small for the tolerance is reported."""
        with pytest.raises(ConvergenceFailure):
            optimize(rosenbrock, [-1.2, 1.0], tolerance=1e-14, max_iterations=10)

    def test_nan_objective_treated_as_worst(self):
        """Test NaN values do not stop the search."""
        def objective(x):
            if x[0] < -0.5:
                return float('nan')
            return float((x[0] - 1.0) ** 2)

        x = optimize(objective, [0.0], tolerance=1e-14)
        assert np.allclose(x, [1.0], atol=1e-5)

    @pytest.mark.parametrize("guess", [[], [[1.0, 2.0]], [np.nan, 0.0], "abc"])
    def test_invalid_initial_guess(self, guess):
        """Test malformed starting vectors are rejected."""
        with pytest.raises(InputValidationError):
            optimize(quadratic([0.0]), guess)

    def test_invalid_settings(self):
        """Test negative tolerance and iteration caps are rejected."""
        with pytest.raises(InputValidationError):
            optimize(quadratic([0.0]), [1.0], tolerance=-1.0)
        with pytest.raises(InputValidationError):
            optimize(quadratic([0.0]), [1.0], max_iterations=-1)
        with pytest.raises(InputValidationError):
            optimize(quadratic([0.0]), [1.0], max_iterations=2.5)

    def test_shared_optimizer_across_threads(self):
        """Test one optimizer instance serves concurrent calls independently."""
        optimizer = NelderMeadOptimizer(tolerance=1e-12)
        centers = [[float(i), -float(i)] for i in range(6)]
        results = [None] * len(centers)

        def work(i):
            results[i] = optimizer.optimize(quadratic(centers[i]), [0.0, 0.0])

        threads = [threading.Thread(target=work, args=(i,)) for i in range(len(centers))]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        for center, x in zip(centers, results):
            assert np.array_equal(x, optimizer.optimize(quadratic(center), [0.0, 0.0]))
            assert np.allclose(x, center, atol=1e-4)
