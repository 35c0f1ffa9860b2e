"""
Configuration management for homofit
"""

import copy
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml

from homofit.errors import InputValidationError

DEFAULT_CONFIG = {
    "optimizer": {
        "initial_step": 0.05,
        "reflection": 1.0,
        "expansion": 2.0,
        "contraction": 0.5,
        "shrink": 0.5
    },
    "estimation": {
        "tolerance": 1e-10,
        "max_iterations": 20000,
        "max_restarts": 100,
        "min_correspondences": 4,
        "initial_guess": [1.0, 0.0, 0.0, 0.0, 1.0, 0.0, 0.0, 0.0]
    },
    "matching": {
        "strategy": "greedy",
        "min_degree": float("-inf")
    },
    "projection": {
        "singular_epsilon": 1e-12
    },
    "logging": {
        "level": "INFO",
        "log_file": None
    }
}


def merge_config(base: Dict[str, Any], overrides: Dict[str, Any]) -> Dict[str, Any]:
    """Recursively merge ``overrides`` into a copy of ``base``."""
    merged = copy.deepcopy(base)
    for key, value in overrides.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = merge_config(merged[key], value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged


def load_config(path: Optional[Union[str, Path]] = None,
                overrides: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """
    Load configuration from a YAML file layered over the defaults.

    Args:
        path: Optional YAML file; sections it omits keep their defaults
        overrides: Optional dict applied last

    Returns:
        Complete configuration dictionary
    """
    config = copy.deepcopy(DEFAULT_CONFIG)

    if path is not None:
        with open(path, 'r') as f:
            document = yaml.safe_load(f)
        if document is None:
            document = {}
        if not isinstance(document, dict):
            raise InputValidationError(f"Configuration file {path} must contain a mapping")
        config = merge_config(config, document)

    if overrides:
        config = merge_config(config, overrides)

    return config
