# pyre-unsafe
import logging
from abc import ABC, abstractmethod
from functools import lru_cache
from typing import Dict, Optional

import numpy as np
from orthosfm import features as ft, types
from orthosfm.dataset_base import DataSetBase


logger: logging.Logger = logging.getLogger(__name__)


class RegionsProvider(ABC):
    """Resolve the features of a view to image locations."""

    @abstractmethod
    def points(self, view: types.View) -> np.ndarray:
        """Feature locations of a view as a (N, 2) array of pixel coordinates.

        Row i is the location of the feature of index i.
        """
        pass


class InMemoryRegionsProvider(RegionsProvider):
    """Regions provider over pixel coordinates already in memory."""

    def __init__(self, points: Dict[str, np.ndarray]) -> None:
        self._points = {k: np.asarray(v, dtype=float) for k, v in points.items()}

    def points(self, view: types.View) -> np.ndarray:
        return self._points[view.id]


class FeatureLoader(RegionsProvider):
    """Regions provider reading the features stored in a dataset."""

    def __init__(self, data: DataSetBase) -> None:
        self.data = data

    def clear_cache(self) -> None:
        self._load_features.cache_clear()
        self._load_points.cache_clear()

    def points(self, view: types.View) -> np.ndarray:
        points = self._load_points(view)
        if points is None:
            raise IOError("Could not load features for view {}".format(view.id))
        return points

    @lru_cache(1000)
    def _load_points(self, view: types.View) -> Optional[np.ndarray]:
        features_data = self._load_features(view.id)
        if features_data is None:
            return None
        return ft.denormalized_image_coordinates(
            features_data.points[:, :2], view.width, view.height
        )

    @lru_cache(20)
    def _load_features(self, image: str) -> Optional[ft.FeaturesData]:
        features_data = self.data.load_features(image)
        if features_data is None:
            logger.error("Could not load features for image {}".format(image))
            return None
        features_data.points = np.array(features_data.points[:, :3], dtype=float)
        return features_data
