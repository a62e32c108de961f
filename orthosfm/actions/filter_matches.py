# pyre-strict
from timeit import default_timer as timer
from typing import Dict, List, Tuple

import numpy as np
from orthosfm import feature_loading, io, matching
from orthosfm.dataset_base import DataSetBase


def run_dataset(data: DataSetBase) -> None:
    """Keep the putative matches consistent with an orthographic geometry."""

    images = data.images()

    start = timer()
    sfm_data = data.load_sfm_data()
    regions_provider = feature_loading.FeatureLoader(data)
    putative_matches = matching.load_putative_matches(data, images)
    geometric_matches = matching.filter_pairs(
        data, sfm_data, regions_provider, putative_matches, {}
    )
    matching.save_geometric_matches(data, images, geometric_matches)
    regions_provider.clear_cache()
    end = timer()
    write_report(data, putative_matches, geometric_matches, end - start)


def write_report(
    data: DataSetBase,
    putative_matches: Dict[Tuple[str, str], np.ndarray],
    geometric_matches: Dict[Tuple[str, str], np.ndarray],
    wall_time: float,
) -> None:
    pairs: List[Tuple[str, str]] = list(geometric_matches.keys())
    report = {
        "wall_time": wall_time,
        "num_putative_pairs": len(putative_matches),
        "num_pairs": len(pairs),
        "pairs": pairs,
        "num_matches": {
            "{}-{}".format(im1, im2): [
                len(putative_matches[im1, im2]),
                len(geometric_matches[im1, im2]),
            ]
            for im1, im2 in pairs
        },
    }
    data.save_report(io.json_dumps(report), "geometric_matches.json")
