"""Batch processing example for multiple correspondence files."""

from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

from homofit import HomographyProcessor
from homofit.config import load_config
from homofit.utils.io_handler import JSONWriter, load_correspondences
from homofit.utils.logger import create_session_log_file, setup_logger


def process_file(processor, path):
    """Calibrate one correspondence file."""
    scene, image, degree_matrix = load_correspondences(str(path))
    if degree_matrix is not None:
        result = processor.calculate_with_degree_matrix(scene, image, degree_matrix)
    else:
        result = processor.calculate(scene, image)
    output = result.to_dict()
    output['file_name'] = path.name
    return output


def main():
    """Process every correspondence file in a directory."""
    config_path = Path("config.yaml")
    config = load_config(config_path if config_path.exists() else None)
    logger = setup_logger('homofit', config['logging']['level'],
                          config['logging']['log_file'] or create_session_log_file())

    processor = HomographyProcessor(config)

    input_dir = Path("test_data/correspondences")
    files = sorted(input_dir.glob("*.json"))
    logger.info(f"Processing {len(files)} correspondence files...")

    # Each estimation owns its simplex, so files can be fitted concurrently.
    with ThreadPoolExecutor(max_workers=4) as pool:
        results = list(pool.map(lambda path: process_file(processor, path), files))

    failures = [r for r in results if not r['success']]
    for failure in failures:
        logger.warning(f"{failure['file_name']}: {failure['error']['kind']}")

    JSONWriter.save_results(results, "output/batch_results.json")
    logger.info(f"Batch processing complete ({len(results) - len(failures)}/{len(results)} succeeded)")


if __name__ == "__main__":
    main()
