# pyre-unsafe
from typing import List, Tuple

import numpy as np
import pytest
from orthosfm import types
from orthosfm.feature_loading import InMemoryRegionsProvider
from orthosfm.test import data_generation


@pytest.fixture
def pair_eight_inliers() -> Tuple[
    types.SfMData, InMemoryRegionsProvider, Tuple[str, str], List[Tuple[int, int]]
]:
    np.random.seed(42)
    return data_generation.ortho_pair_scene(8, 2)


@pytest.fixture
def pair_fisheye() -> Tuple[
    types.SfMData, InMemoryRegionsProvider, Tuple[str, str], List[Tuple[int, int]]
]:
    return data_generation.ortho_pair_scene(
        20, 0, projection_types=("perspective", "fisheye")
    )
