"""Integration tests for complete workflows."""

from concurrent.futures import ThreadPoolExecutor

import numpy as np
import pytest

from homofit import HomographyProcessor, Result
from homofit.core import CalibrationOutcome
from homofit.coordinates.transformer import project_points
from homofit.utils.io_handler import JSONWriter, matrix_from_dict, matrix_to_dict

UNIT_SQUARE = np.array([[0, 0], [1, 0], [0, 1], [1, 1]], dtype=np.float64)
CENTERED_SQUARE = UNIT_SQUARE * 2.0 - 1.0

H_TRUE = np.array([[0.9, -0.1, 0.4],
                   [0.15, 1.1, 0.2],
                   [-0.02, 0.03, 1.0]])


class TestHomographyProcessor:
    """Test end-to-end calibration workflows."""

    def test_identity_scenario(self):
        """Test the unit square mapped by the identity."""
        result = HomographyProcessor().calculate(UNIT_SQUARE, UNIT_SQUARE)

        assert isinstance(result, Result)
        assert result.ok
        outcome = result.value
        assert isinstance(outcome, CalibrationOutcome)
        assert np.allclose(outcome.matrix, np.eye(3), atol=1e-6)
        assert outcome.report.total_error == pytest.approx(0.0, abs=1e-6)
        assert outcome.holdout_report is None

    def test_three_points_fail(self):
        """Test too few correspondences come back as a failure."""
        result = HomographyProcessor().calculate(UNIT_SQUARE[:3], UNIT_SQUARE[:3])
        assert not result.ok
        assert result.kind == 'InputValidationError'

    def test_convergence_failure(self):
        """Test an exhausted iteration cap comes back as a failure."""
        processor = HomographyProcessor({'estimation': {'max_iterations': 0}})
        result = processor.calculate(UNIT_SQUARE, UNIT_SQUARE + 1.0)
        assert result.kind == 'ConvergenceFailure'
        assert result.value is None

    def test_degree_matrix_workflow(self):
        """Test matching then estimating from shuffled image points."""
        scene = np.array([[x, y] for x in (-1.0, 0.0, 1.0) for y in (-1.0, 1.0)])
        image = project_points(scene, H_TRUE)
        order = np.array([3, 0, 5, 1, 4, 2])
        shuffled = image[order]

        degrees = np.zeros((len(scene), len(shuffled)))
        for row in range(len(scene)):
            degrees[row, int(np.flatnonzero(order == row)[0])] = 1.0

        result = HomographyProcessor().calculate_with_degree_matrix(scene, shuffled, degrees)

        assert result.ok
        outcome = result.value
        assert len(outcome.matches) == len(scene)
        assert outcome.report.total_error < 1e-3
        assert np.allclose(outcome.matrix, H_TRUE, atol=1e-2)

    def test_degree_matrix_no_match(self):
        """Test an empty degree matrix row aborts the workflow."""
        degrees = np.eye(4)
        degrees[2, :] = -np.inf
        result = HomographyProcessor().calculate_with_degree_matrix(UNIT_SQUARE, UNIT_SQUARE, degrees)
        assert result.kind == 'NoMatchError'

    def test_degree_matrix_dimension_mismatch(self):
        """Test a degree matrix that does not fit the point sets."""
        result = HomographyProcessor().calculate_with_degree_matrix(
            UNIT_SQUARE, UNIT_SQUARE, np.eye(3))
        assert result.kind == 'InputValidationError'

    def test_holdout_workflow(self):
        """Test estimation on five points and evaluation on three others."""
        fit_scene = np.array([[-1, -1], [1, -1], [1, 1], [-1, 1], [0, 0]], dtype=np.float64)
        check_scene = np.array([[0.5, 0.25], [-0.5, 0.75], [0.2, -0.6]])
        result = HomographyProcessor().calculate_with_holdout(
            fit_scene, project_points(fit_scene, H_TRUE),
            check_scene, project_points(check_scene, H_TRUE))

        assert result.ok
        assert len(result.value.holdout_report.points) == 3
        assert result.value.holdout_report.total_error < 1e-3

    def test_holdout_requires_points(self):
        """Test the held-out set cannot be empty."""
        result = HomographyProcessor().calculate_with_holdout(
            UNIT_SQUARE, UNIT_SQUARE, np.empty((0, 2)), np.empty((0, 2)))
        assert result.kind == 'InputValidationError'

    def test_project_and_back_project(self):
        """Test projection helpers wrap their outcomes."""
        processor = HomographyProcessor()
        projected = processor.project_point((2.0, 3.0), H_TRUE)
        assert projected.ok
        back = processor.back_project_point(projected.value, H_TRUE)
        assert np.allclose(back.unwrap(), (2.0, 3.0))

        singular = processor.back_project_point((1.0, 1.0), np.zeros((3, 3)))
        assert singular.kind == 'SingularMatrixError'

        degenerate = processor.project_point((0.0, 1.0), [[1, 0, 0], [0, 1, 0], [1, 0, 0]])
        assert degenerate.kind == 'DegenerateProjectionError'

    def test_results_to_json(self, tmp_path):
        """Test calibration output can be written and the matrix read back."""
        result = HomographyProcessor().calculate(CENTERED_SQUARE, CENTERED_SQUARE * 2.0)
        data = result.to_dict()
        data['matrix'] = matrix_to_dict(result.value.matrix)
        path = tmp_path / 'result.json'
        JSONWriter.save_results(data, str(path))

        loaded = JSONWriter.load_results(str(path))
        assert loaded['success'] is True
        assert loaded['result']['system'] == 'homofit'
        assert np.allclose(matrix_from_dict(loaded['matrix']), result.value.matrix)

    def test_parallel_estimations_match_serial(self):
        """Test independent estimations can run concurrently."""
        processor = HomographyProcessor()
        offsets = [np.array([dx, -dx]) for dx in (0.0, 0.1, 0.2, 0.3)]
        jobs = [(CENTERED_SQUARE, CENTERED_SQUARE + off) for off in offsets]

        with ThreadPoolExecutor(max_workers=4) as pool:
            parallel = list(pool.map(lambda job: processor.calculate(*job), jobs))
        serial = [processor.calculate(*job) for job in jobs]

        for p, s in zip(parallel, serial):
            assert p.ok and s.ok
            assert np.array_equal(p.value.matrix, s.value.matrix)
