# pyre-unsafe
import logging
import math
import random
from abc import ABC, abstractmethod
from dataclasses import dataclass
from timeit import default_timer as timer
from typing import Any, Dict, Generator, List, Optional, Sequence, Tuple

import numpy as np
from orthosfm import context, log, multiview, robust, types
from orthosfm.camera import PinholeCamera
from orthosfm.dataset_base import DataSetBase
from orthosfm.feature_loading import RegionsProvider


logger: logging.Logger = logging.getLogger(__name__)


TPair = Tuple[str, str]


def pinhole_cameras(
    data: types.SfMData, pair: TPair
) -> Optional[Tuple[PinholeCamera, PinholeCamera]]:
    """Pinhole intrinsics of both views of a pair.

    Returns None if a view has no size, no known camera or a camera
    not of the pinhole family. Unknown view ids raise KeyError.
    """
    pinholes = []
    for image in pair:
        view = data.views[image]
        if view.width <= 0 or view.height <= 0:
            return None
        camera = data.get_camera(view)
        pinhole = camera.as_pinhole() if camera is not None else None
        if pinhole is None:
            return None
        pinholes.append(pinhole)
    return pinholes[0], pinholes[1]


def pairs_to_matrices(
    pair: TPair,
    matches: Sequence[Any],
    data: types.SfMData,
    regions_provider: RegionsProvider,
) -> Tuple[np.ndarray, np.ndarray]:
    """Pixel coordinates of the putative matches of a pair.

    Row i of both arrays holds the locations of the features of the
    i-th match, in the first and the second view respectively.
    """
    indices = np.array(matches, dtype=int).reshape(-1, 2)
    if len(indices) and indices.min() < 0:
        raise IndexError("Negative feature index in matches of {}".format(pair))

    points1 = regions_provider.points(data.views[pair[0]])
    points2 = regions_provider.points(data.views[pair[1]])
    return points1[indices[:, 0]], points2[indices[:, 1]]


class GuidedMatcher(ABC):
    """Recover more matches of a pair once its geometry is known."""

    @abstractmethod
    def match(
        self,
        data: types.SfMData,
        regions_provider: RegionsProvider,
        pair: TPair,
        distance_ratio: float,
        matches: List[Any],
    ) -> bool:
        """Add the matches found to `matches`, return whether any was found."""
        pass


class UnimplementedGuidedMatcher(GuidedMatcher):
    """Guided matcher that never finds anything."""

    def match(
        self,
        data: types.SfMData,
        regions_provider: RegionsProvider,
        pair: TPair,
        distance_ratio: float,
        matches: List[Any],
    ) -> bool:
        return False


@dataclass
class EstimationResult:
    """Orthographic essential matrix of a pair and its support.

    `inliers` index the putative matches the estimation was run on.
    """

    model: np.ndarray
    inliers: List[int]
    error_max: float
    nfa: float
    accepted: bool


class EssentialOrthoFilter:
    """Geometric filtering of putative matches with an orthographic
    essential matrix estimated by AC-RANSAC.

    The filter only holds settings, it can be shared by concurrent
    estimations.
    """

    def __init__(
        self,
        precision: float = math.inf,
        max_iterations: int = 4096,
        min_inliers_ratio: float = 2.5,
        seed: Optional[int] = None,
        guided_matcher: Optional[GuidedMatcher] = None,
    ) -> None:
        self.precision = precision
        self.max_iterations = max_iterations
        self.min_inliers_ratio = min_inliers_ratio
        self.seed = seed
        self.guided_matcher: GuidedMatcher = (
            guided_matcher if guided_matcher is not None else UnimplementedGuidedMatcher()
        )

    @classmethod
    def from_config(cls, config: Dict[str, Any]) -> "EssentialOrthoFilter":
        seed = config["ortho_essential_seed"]
        return cls(
            precision=float(config["ortho_essential_precision"]),
            max_iterations=config["ortho_essential_max_iterations"],
            min_inliers_ratio=config["ortho_essential_min_inliers_ratio"],
            seed=seed if seed is not None and seed >= 0 else None,
        )

    def min_inliers(self) -> float:
        return self.min_inliers_ratio * multiview.EssentialOrthoKernel.required_samples

    def estimate(
        self,
        data: types.SfMData,
        regions_provider: RegionsProvider,
        pair: TPair,
        putative_matches: Sequence[Any],
    ) -> Optional[EstimationResult]:
        """Estimate the essential matrix of a pair.

        Returns None when the views have no usable pinhole camera.
        """
        cameras = pinhole_cameras(data, pair)
        if cameras is None:
            logger.debug("No pinhole cameras for pair {} - {}".format(*pair))
            return None
        camera1, camera2 = cameras
        view1, view2 = data.views[pair[0]], data.views[pair[1]]

        x1, x2 = pairs_to_matrices(pair, putative_matches, data, regions_provider)
        kernel = multiview.EssentialOrthoKernel(
            x1,
            (view1.width, view1.height),
            x2,
            (view2.width, view2.height),
            camera1.get_K_in_pixel_coordinates(view1.width, view1.height),
            camera2.get_K_in_pixel_coordinates(view2.width, view2.height),
        )

        rng = random.Random(self.seed) if self.seed is not None else random.Random()
        result = robust.ac_ransac(kernel, self.max_iterations, self.precision, rng)
        return EstimationResult(
            model=result.model,
            inliers=result.inliers,
            error_max=result.error_max,
            nfa=result.nfa,
            accepted=len(result.inliers) > self.min_inliers(),
        )

    def robust_estimation(
        self,
        data: types.SfMData,
        regions_provider: RegionsProvider,
        pair: TPair,
        putative_matches: Sequence[Any],
    ) -> Tuple[bool, List[Any]]:
        """Keep the putative matches consistent with the pair geometry.

        Returns whether the pair is geometrically valid and, if so, the
        inlier matches taken from `putative_matches` as is.
        """
        result = self.estimate(data, regions_provider, pair, putative_matches)
        if result is None:
            return False, []
        if not result.accepted:
            logger.debug(
                "Pair {} - {} rejected: {} inliers, {:.1f} needed".format(
                    pair[0], pair[1], len(result.inliers), self.min_inliers()
                )
            )
            return False, []
        return True, [putative_matches[i] for i in result.inliers]

    def geometry_guided_matching(
        self,
        data: types.SfMData,
        regions_provider: RegionsProvider,
        pair: TPair,
        distance_ratio: float,
        matches: List[Any],
    ) -> bool:
        return self.guided_matcher.match(
            data, regions_provider, pair, distance_ratio, matches
        )


def robust_estimate(
    data: types.SfMData,
    regions_provider: RegionsProvider,
    pair: TPair,
    putative_matches: Sequence[Any],
) -> Tuple[bool, List[Any]]:
    """Geometric filtering of a pair with the default settings."""
    return EssentialOrthoFilter().robust_estimation(
        data, regions_provider, pair, putative_matches
    )


def guided_match(
    data: types.SfMData,
    regions_provider: RegionsProvider,
    pair: TPair,
    distance_ratio: float,
    matches: List[Any],
) -> bool:
    """Guided matching with the default settings. Never finds anything."""
    return EssentialOrthoFilter().geometry_guided_matching(
        data, regions_provider, pair, distance_ratio, matches
    )


def filter_pairs(
    data: DataSetBase,
    sfm_data: types.SfMData,
    regions_provider: RegionsProvider,
    pairs_matches: Dict[TPair, np.ndarray],
    config_override: Dict[str, Any],
) -> Dict[TPair, np.ndarray]:
    """Geometric filtering of many pairs.

    Pairs that fail are dropped from the result.
    """
    overriden_config = data.config.copy()
    overriden_config.update(config_override)

    estimator = EssentialOrthoFilter.from_config(overriden_config)
    args = list(
        filter_arguments(
            pairs_matches, sfm_data, regions_provider, estimator, overriden_config
        )
    )

    # Filter all pairs in parallel
    start = timer()
    logger.info("Filtering {} image pairs".format(len(args)))
    mem_per_process = 256
    jobs_per_process = 2
    processes = context.processes_that_fit_in_memory(
        overriden_config["processes"], mem_per_process
    )
    logger.info("Computing geometric filtering with %d processes" % processes)
    results = context.parallel_map(
        filter_unwrap_args, args, processes, jobs_per_process
    )

    resulting_pairs = {}
    for im1, im2, m in results:
        if len(m) > 0:
            resulting_pairs[im1, im2] = m
    logger.info(
        "Filtered {} pairs {} in {} seconds ({} seconds/pair). {} pairs kept.".format(
            len(args),
            log_projection_types(list(pairs_matches), sfm_data),
            timer() - start,
            (timer() - start) / len(args) if args else 0,
            len(resulting_pairs),
        )
    )
    return resulting_pairs


def log_projection_types(pairs: List[TPair], sfm_data: types.SfMData) -> str:
    if not pairs:
        return ""

    projection_type_pairs = {}
    for im1, im2 in pairs:
        pts = []
        for im in (im1, im2):
            camera = sfm_data.get_camera(sfm_data.views[im])
            pts.append(camera.projection_type if camera else "unknown")
        pt1, pt2 = pts
        projection_type_pairs.setdefault(pt1, {}).setdefault(pt2, []).append(
            (im1, im2)
        )

    output = "("
    for pt1 in projection_type_pairs:
        for pt2 in projection_type_pairs[pt1]:
            output += "{}-{}: {}, ".format(
                pt1, pt2, len(projection_type_pairs[pt1][pt2])
            )

    return output[:-2] + ")"


def filter_arguments(
    pairs_matches: Dict[TPair, np.ndarray],
    sfm_data: types.SfMData,
    regions_provider: RegionsProvider,
    estimator: EssentialOrthoFilter,
    config: Dict[str, Any],
) -> Generator[
    Tuple[
        str,
        str,
        np.ndarray,
        types.SfMData,
        RegionsProvider,
        EssentialOrthoFilter,
        Dict[str, Any],
    ],
    None,
    None,
]:
    """Generate arguments for parallel processing of pair filtering"""
    for (im1, im2), matches in pairs_matches.items():
        yield im1, im2, matches, sfm_data, regions_provider, estimator, config


def filter_unwrap_args(
    args: Tuple[
        str,
        str,
        np.ndarray,
        types.SfMData,
        RegionsProvider,
        EssentialOrthoFilter,
        Dict[str, Any],
    ]
) -> Tuple[str, str, np.ndarray]:
    """Wrapper for parallel processing of pair filtering."""
    log.setup()
    im1, im2, matches, sfm_data, regions_provider, estimator, config = args
    rmatches = filter_pair(
        im1, im2, matches, sfm_data, regions_provider, estimator, config
    )
    return im1, im2, rmatches


def filter_pair(
    im1: str,
    im2: str,
    matches: np.ndarray,
    sfm_data: types.SfMData,
    regions_provider: RegionsProvider,
    estimator: EssentialOrthoFilter,
    config: Dict[str, Any],
) -> np.ndarray:
    """Geometric filtering of the putative matches of a pair."""
    robust_matching_min_match = config["robust_matching_min_match"]
    if len(matches) < robust_matching_min_match:
        logger.debug(
            "Filtering {} and {}. Matches: {} FAILED (less than {})".format(
                im1, im2, len(matches), robust_matching_min_match
            )
        )
        return np.empty((0, 2), dtype=int)

    t = timer()
    pair = (im1, im2)
    success, inliers = estimator.robust_estimation(
        sfm_data, regions_provider, pair, matches
    )
    inliers = list(inliers)
    guided = False
    if success and config["guided_matching"]:
        guided = estimator.geometry_guided_matching(
            sfm_data,
            regions_provider,
            pair,
            config["guided_matching_distance_ratio"],
            inliers,
        )
    time_robust_matching = timer() - t

    logger.debug(
        "Filtering {} and {}. T-robust: {:1.3f} "
        "Matches: {} Robust: {} Guided: {} Success: {}".format(
            im1,
            im2,
            time_robust_matching,
            len(matches),
            len(inliers),
            guided,
            success,
        )
    )

    if not success:
        return np.empty((0, 2), dtype=int)
    return np.array(inliers, dtype=int).reshape(-1, 2)


def load_putative_matches(
    data: DataSetBase, images: Optional[List[str]] = None
) -> Dict[TPair, np.ndarray]:
    """Putative matches of the dataset indexed by pair."""
    if images is None:
        images = data.images()

    pairs_matches = {}
    for im1 in images:
        if not data.matches_exists(im1):
            continue
        for im2, matches in data.load_matches(im1).items():
            pairs_matches[im1, im2] = np.asarray(matches, dtype=int).reshape(-1, 2)
    return pairs_matches


def save_geometric_matches(
    data: DataSetBase,
    images_ref: List[str],
    matched_pairs: Dict[TPair, np.ndarray],
) -> None:
    """Given pairwise matches (image 1, image 2) - > matches,
    save them such as only {image E images_ref} will store the matches.
    """
    images_ref_set = set(images_ref)
    matches_per_im1 = {im: {} for im in images_ref}
    for (im1, im2), m in matched_pairs.items():
        if im1 in images_ref_set:
            matches_per_im1[im1][im2] = m
        elif im2 in images_ref_set:
            matches_per_im1[im2][im1] = m[:, ::-1]
        else:
            raise RuntimeError(
                "Couldn't save matches for {}. No image found in images_ref.".format(
                    (im1, im2)
                )
            )

    for im1, im1_matches in matches_per_im1.items():
        data.save_geometric_matches(im1, im1_matches)
