"""Basic usage example for homofit."""

import numpy as np
from homofit import HomographyProcessor
from homofit.utils.io_handler import JSONWriter, matrix_to_dict
from homofit.utils.logger import setup_logger


def main():
    """Estimate a homography, then project and back-project a point."""
    scene_points = np.array([[0, 0], [1, 0], [1, 1], [0, 1], [0.5, 0.5]], dtype=np.float64)
    image_points = np.array([[0.10, 0.12], [1.08, 0.06], [1.04, 1.14], [0.06, 1.08], [0.57, 0.60]])

    setup_logger("homofit")
    processor = HomographyProcessor()

    print("Estimating homography...")
    result = processor.calculate(scene_points, image_points)
    if not result.ok:
        print(f"Error: {result.kind}: {result.error}")
        return

    outcome = result.value
    print("Homography Matrix:")
    print(outcome.matrix)
    print(f"Total reprojection error: {outcome.report.total_error:.6f}")

    projected = processor.project_point((0.25, 0.75), outcome.matrix)
    print(f"Projected point: {projected.unwrap()}")
    back = processor.back_project_point(projected.value, outcome.matrix)
    print(f"Back-projected scene point: {back.unwrap()}")

    output = outcome.to_dict()
    output['matrix'] = matrix_to_dict(outcome.matrix)
    output_path = "output/basic_homography.json"
    JSONWriter.save_results(output, output_path)
    print(f"Results saved to {output_path}")


if __name__ == "__main__":
    main()
