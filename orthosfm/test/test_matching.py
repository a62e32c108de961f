# pyre-unsafe
import math

import numpy as np
import pytest
from orthosfm import config, feature_loading, matching, robust, types
from orthosfm.test import data_generation


def seeded_filter(**kwargs) -> matching.EssentialOrthoFilter:
    return matching.EssentialOrthoFilter(seed=42, **kwargs)


def test_pinhole_cameras(pair_eight_inliers) -> None:
    data, _, pair, _ = pair_eight_inliers
    cameras = matching.pinhole_cameras(data, pair)
    assert cameras is not None
    assert [c.id for c in cameras] == ["camera_0", "camera_1"]


def test_pinhole_cameras_non_pinhole(pair_fisheye) -> None:
    data, _, pair, _ = pair_fisheye
    assert matching.pinhole_cameras(data, pair) is None


def test_pinhole_cameras_missing_camera() -> None:
    data = types.SfMData()
    data.add_camera(data_generation.create_camera("perspective"))
    data.add_view(types.View("1.jpg", "", 100, 100))
    data.add_view(types.View("2.jpg", "unknown", 100, 100))
    assert matching.pinhole_cameras(data, ("1.jpg", "2.jpg")) is None


def test_pinhole_cameras_sizeless_view(pair_eight_inliers) -> None:
    data, _, pair, _ = pair_eight_inliers
    data.views["2.jpg"] = types.View("2.jpg", "camera_1", 0, 0)
    assert matching.pinhole_cameras(data, pair) is None


def test_pinhole_cameras_unknown_view(pair_eight_inliers) -> None:
    data, _, _, _ = pair_eight_inliers
    with pytest.raises(KeyError):
        matching.pinhole_cameras(data, ("1.jpg", "missing.jpg"))


def test_pairs_to_matrices(pair_eight_inliers) -> None:
    data, regions_provider, pair, matches = pair_eight_inliers
    x1, x2 = matching.pairs_to_matrices(pair, matches, data, regions_provider)

    assert x1.shape == x2.shape == (len(matches), 2)
    points1 = regions_provider.points(data.views[pair[0]])
    points2 = regions_provider.points(data.views[pair[1]])
    for i, (f1, f2) in enumerate(matches):
        assert np.array_equal(x1[i], points1[f1])
        assert np.array_equal(x2[i], points2[f2])


def test_pairs_to_matrices_bad_index(pair_eight_inliers) -> None:
    data, regions_provider, pair, matches = pair_eight_inliers
    with pytest.raises(IndexError):
        matching.pairs_to_matrices(
            pair, matches + [(0, 1000)], data, regions_provider
        )
    with pytest.raises(IndexError):
        matching.pairs_to_matrices(pair, [(-1, 0)], data, regions_provider)


def test_pairs_to_matrices_missing_features(pair_eight_inliers) -> None:
    data, _, pair, matches = pair_eight_inliers
    regions_provider = feature_loading.InMemoryRegionsProvider({})
    with pytest.raises(KeyError):
        matching.pairs_to_matrices(pair, matches, data, regions_provider)


def test_robust_estimation_eight_inliers(pair_eight_inliers) -> None:
    data, regions_provider, pair, matches = pair_eight_inliers

    success, inliers = seeded_filter().robust_estimation(
        data, regions_provider, pair, matches
    )

    assert success
    assert sorted(inliers) == sorted(matches[:8])


def test_robust_estimation_returns_input_matches(pair_eight_inliers) -> None:
    data, regions_provider, pair, matches = pair_eight_inliers

    success, inliers = seeded_filter().robust_estimation(
        data, regions_provider, pair, matches
    )

    assert success
    assert len(inliers) <= len(matches)
    for m in inliers:
        assert any(m is p for p in matches)
    assert len(set(inliers)) == len(inliers)


def test_robust_estimation_array_matches(pair_eight_inliers) -> None:
    data, regions_provider, pair, matches = pair_eight_inliers
    array_matches = np.array(matches)

    success, inliers = seeded_filter().robust_estimation(
        data, regions_provider, pair, array_matches
    )

    assert success
    assert sorted(map(tuple, inliers)) == sorted(matches[:8])


@pytest.mark.parametrize("num_inliers", [6, 7])
def test_robust_estimation_not_enough_inliers(num_inliers) -> None:
    data, regions_provider, pair, matches = data_generation.ortho_pair_scene(
        num_inliers, 10 - num_inliers
    )

    success, inliers = seeded_filter().robust_estimation(
        data, regions_provider, pair, matches
    )

    assert not success
    assert inliers == []


def test_estimate_meaningful_below_floor() -> None:
    data, regions_provider, pair, matches = data_generation.ortho_pair_scene(7, 3)

    result = seeded_filter().estimate(data, regions_provider, pair, matches)

    assert result is not None
    assert sorted(result.inliers) == list(range(7))
    assert result.nfa < 0
    assert not result.accepted


def test_estimate_model(pair_eight_inliers) -> None:
    data, regions_provider, pair, matches = pair_eight_inliers

    result = seeded_filter().estimate(data, regions_provider, pair, matches)

    assert result is not None
    assert result.accepted
    expected = data_generation.ortho_essential(data_generation.ortho_rotation())
    assert np.allclose(np.abs(result.model), np.abs(expected), atol=1e-6)
    assert result.error_max < 1e-3


def test_acceptance_floor_with_precision() -> None:
    estimator = seeded_filter(precision=2.0)

    data, regions_provider, pair, matches = data_generation.ortho_pair_scene(9, 3)
    success, inliers = estimator.robust_estimation(
        data, regions_provider, pair, matches
    )
    assert success
    assert sorted(inliers) == sorted(matches[:9])

    data, regions_provider, pair, matches = data_generation.ortho_pair_scene(6, 6)
    success, inliers = estimator.robust_estimation(
        data, regions_provider, pair, matches
    )
    assert not success
    assert inliers == []


def test_precision_is_squared_pixels() -> None:
    # Points shifted by 0.002 normalized, 2 pixels, are 8 px^2 off their line
    data, regions_provider, pair, matches = data_generation.ortho_pair_scene(
        9, 3, outlier_shift=0.002
    )

    success, inliers = seeded_filter(precision=5.0).robust_estimation(
        data, regions_provider, pair, matches
    )
    assert success
    assert sorted(inliers) == sorted(matches[:9])

    success, inliers = seeded_filter(precision=9.0).robust_estimation(
        data, regions_provider, pair, matches
    )
    assert success
    assert sorted(inliers) == sorted(matches)


def test_precision_passed_to_ac_ransac(monkeypatch, pair_eight_inliers) -> None:
    data, regions_provider, pair, matches = pair_eight_inliers
    precisions = []
    ac_ransac = robust.ac_ransac

    def recording_ac_ransac(kernel, max_iterations, precision, rng):
        precisions.append(precision)
        return ac_ransac(kernel, max_iterations, precision, rng)

    monkeypatch.setattr(robust, "ac_ransac", recording_ac_ransac)
    seeded_filter(precision=5.0).estimate(data, regions_provider, pair, matches)

    assert precisions == [5.0]


def test_robust_estimation_noisy_inliers() -> None:
    data, regions_provider, pair, matches = data_generation.ortho_pair_scene(
        12, 3, noise=0.5
    )

    success, inliers = seeded_filter().robust_estimation(
        data, regions_provider, pair, matches
    )

    assert success
    assert set(inliers) <= set(matches[:12])
    assert len(inliers) >= 10


def test_robust_estimation_noisy_inliers_with_precision() -> None:
    data, regions_provider, pair, matches = data_generation.ortho_pair_scene(
        9, 3, noise=0.2
    )

    success, inliers = seeded_filter(precision=4.0).robust_estimation(
        data, regions_provider, pair, matches
    )

    assert success
    assert sorted(inliers) == sorted(matches[:9])


@pytest.mark.parametrize("seed", [1, 2, 3])
def test_robust_estimation_random_outliers(seed) -> None:
    data, regions_provider, pair, matches = data_generation.ortho_pair_scene(
        12, 8, seed=seed, random_outliers=True
    )

    success, inliers = seeded_filter().robust_estimation(
        data, regions_provider, pair, matches
    )

    # A random outlier may fall on its epipolar line by chance
    assert success
    assert set(matches[:12]) <= set(inliers)
    assert len(inliers) <= 13


def test_min_inliers_ratio_is_configurable() -> None:
    data, regions_provider, pair, matches = data_generation.ortho_pair_scene(7, 3)

    success, inliers = seeded_filter(min_inliers_ratio=2.0).robust_estimation(
        data, regions_provider, pair, matches
    )

    assert success
    assert sorted(inliers) == sorted(matches[:7])


def test_robust_estimation_deterministic() -> None:
    data, regions_provider, pair, matches = data_generation.ortho_pair_scene(12, 8)
    estimator = seeded_filter()

    first = estimator.estimate(data, regions_provider, pair, matches)
    second = estimator.estimate(data, regions_provider, pair, matches)

    assert first is not None and second is not None
    assert first.inliers == second.inliers
    assert np.array_equal(first.model, second.model)


def test_robust_estimation_non_pinhole(pair_fisheye) -> None:
    data, regions_provider, pair, matches = pair_fisheye
    estimator = seeded_filter()

    for _ in range(2):
        assert estimator.robust_estimation(data, regions_provider, pair, matches) == (
            False,
            [],
        )
    assert estimator.estimate(data, regions_provider, pair, matches) is None


def test_robust_estimation_missing_camera(pair_eight_inliers) -> None:
    data, regions_provider, pair, matches = pair_eight_inliers
    no_cameras = types.SfMData(data.views, {})

    success, inliers = matching.robust_estimate(
        no_cameras, regions_provider, pair, matches
    )

    assert not success
    assert inliers == []


def test_robust_estimation_few_matches(pair_eight_inliers) -> None:
    data, regions_provider, pair, matches = pair_eight_inliers

    success, inliers = matching.robust_estimate(
        data, regions_provider, pair, matches[:3]
    )

    assert not success
    assert inliers == []


def test_robust_estimate_default(pair_eight_inliers) -> None:
    data, regions_provider, pair, matches = pair_eight_inliers

    success, inliers = matching.robust_estimate(data, regions_provider, pair, matches)

    assert success
    assert sorted(inliers) == sorted(matches[:8])


def test_guided_match_is_noop(pair_eight_inliers) -> None:
    data, regions_provider, pair, matches = pair_eight_inliers
    before = list(matches)

    assert not matching.guided_match(data, regions_provider, pair, 0.6, matches)
    assert matches == before


def test_custom_guided_matcher(pair_eight_inliers) -> None:
    data, regions_provider, pair, matches = pair_eight_inliers

    class AppendingMatcher(matching.GuidedMatcher):
        def match(self, data, regions_provider, pair, distance_ratio, matches):
            matches.append((0, 0))
            return True

    estimator = matching.EssentialOrthoFilter(guided_matcher=AppendingMatcher())
    found = []
    assert estimator.geometry_guided_matching(
        data, regions_provider, pair, 0.6, found
    )
    assert found == [(0, 0)]


def test_from_config() -> None:
    estimator = matching.EssentialOrthoFilter.from_config(config.default_config())
    assert estimator.precision == math.inf
    assert estimator.max_iterations == 4096
    assert estimator.min_inliers_ratio == 2.5
    assert estimator.seed is None
    assert isinstance(estimator.guided_matcher, matching.UnimplementedGuidedMatcher)

    overriden = config.default_config()
    overriden.update({"ortho_essential_seed": 3, "ortho_essential_precision": 4})
    estimator = matching.EssentialOrthoFilter.from_config(overriden)
    assert estimator.seed == 3
    assert estimator.precision == 4.0


def test_filter_pairs(tmpdir) -> None:
    data = data_generation.create_ortho_test_folder(tmpdir)
    sfm_data = data.load_sfm_data()
    regions_provider = feature_loading.FeatureLoader(data)
    putative = matching.load_putative_matches(data)

    assert set(putative) == {("1.jpg", "2.jpg"), ("1.jpg", "3.jpg")}

    filtered = matching.filter_pairs(data, sfm_data, regions_provider, putative, {})

    assert list(filtered) == [("1.jpg", "2.jpg")]
    rmatches = filtered["1.jpg", "2.jpg"]
    assert rmatches.shape == (10, 2)
    putative_rows = {tuple(m) for m in putative["1.jpg", "2.jpg"][:10]}
    assert {tuple(m) for m in rmatches} == putative_rows


def test_filter_pairs_sizeless_view(tmpdir) -> None:
    data = data_generation.create_ortho_test_folder(tmpdir)
    sfm_data = data.load_sfm_data()
    sfm_data.views["3.jpg"] = types.View("3.jpg", "camera_0", 0, 0)
    regions_provider = feature_loading.FeatureLoader(data)
    putative = matching.load_putative_matches(data)

    filtered = matching.filter_pairs(data, sfm_data, regions_provider, putative, {})

    assert list(filtered) == [("1.jpg", "2.jpg")]
    assert filtered["1.jpg", "2.jpg"].shape == (10, 2)


def test_filter_pairs_min_match(tmpdir) -> None:
    data = data_generation.create_ortho_test_folder(tmpdir)
    sfm_data = data.load_sfm_data()
    regions_provider = feature_loading.FeatureLoader(data)
    putative = matching.load_putative_matches(data)

    filtered = matching.filter_pairs(
        data,
        sfm_data,
        regions_provider,
        putative,
        {"robust_matching_min_match": 20, "processes": 2},
    )

    assert filtered == {}


def test_save_geometric_matches(tmpdir) -> None:
    data = data_generation.create_ortho_test_folder(tmpdir)
    m = np.array([[0, 1], [2, 3]])

    matching.save_geometric_matches(data, ["2.jpg"], {("1.jpg", "2.jpg"): m})

    assert data.geometric_matches_exists("2.jpg")
    assert np.array_equal(data.load_geometric_matches("2.jpg")["1.jpg"], m[:, ::-1])
    with pytest.raises(RuntimeError):
        matching.save_geometric_matches(data, ["3.jpg"], {("1.jpg", "2.jpg"): m})
