import os
from dataclasses import dataclass, asdict
from typing import Any, Dict, IO, Union

import yaml


@dataclass
class OrthoSfMConfig:
    ##################################
    # Params for orthographic essential matrix estimation
    ##################################
    # Upper bound of the squared pixel error of an inlier (inf -> parameter free)
    ortho_essential_precision: float = float("inf")
    # Number of AC-RANSAC trials per pair
    ortho_essential_max_iterations: int = 4096
    # A pair is kept if it has more than ratio * minimal sample size inliers
    ortho_essential_min_inliers_ratio: float = 2.5
    # Seed of the sampling generator. Negative values leave sampling unseeded
    ortho_essential_seed: int = -1

    ##################################
    # Params for guided matching
    ##################################
    # Try to recover more matches once the pair geometry is known
    guided_matching: bool = False
    # Ratio test used when re-matching along epipolar lines
    guided_matching_distance_ratio: float = 0.6

    ##################################
    # Params for robust matching
    ##################################
    # Pairs with fewer putative matches are not estimated at all
    robust_matching_min_match: int = 0

    ##################################
    # Params for multi-processing/threading
    ##################################
    # Number of threads to use
    processes: int = 1


def default_config() -> Dict[str, Any]:
    """Return default configuration"""
    return asdict(OrthoSfMConfig())


def load_config(filepath) -> Dict[str, Any]:
    """Load config from a config.yaml filepath"""
    if not os.path.isfile(filepath):
        return default_config()

    with open(filepath) as fin:
        return load_config_from_fileobject(fin)


def load_config_from_fileobject(
    f: Union[IO[bytes], IO[str], bytes, str]
) -> Dict[str, Any]:
    """Load config from a config.yaml fileobject"""
    config = default_config()

    new_config = yaml.safe_load(f)
    if new_config:
        for k, v in new_config.items():
            config[k] = v

    return config
