"""Feature points storage."""

from typing import Any, Dict, Optional

import numpy as np


class FeaturesData:
    """Features of an image.

    Points are stored in normalized image coordinates (see
    normalized_image_coordinates), with an optional third column
    holding the feature scale.
    """

    points: np.ndarray
    descriptors: Optional[np.ndarray]
    colors: np.ndarray

    FEATURES_VERSION: int = 1
    FEATURES_HEADER: str = "ORTHOSFM_FEATURES_VERSION"

    def __init__(
        self,
        points: np.ndarray,
        descriptors: Optional[np.ndarray],
        colors: np.ndarray,
    ):
        self.points = points
        self.descriptors = descriptors
        self.colors = colors

    def __len__(self) -> int:
        return len(self.points)

    def save(self, fileobject: Any) -> None:
        """Save features to file (path like or file object like)"""
        np.savez_compressed(
            fileobject,
            points=self.points.astype(np.float32),
            descriptors=self.descriptors.astype(np.float32)
            if self.descriptors is not None
            else np.zeros((len(self.points), 0), dtype=np.float32),
            colors=self.colors,
            ORTHOSFM_FEATURES_VERSION=self.FEATURES_VERSION,
        )

    @classmethod
    def from_file(cls, fileobject: Any) -> "FeaturesData":
        """Load features from file (path like or file object like)"""
        s = np.load(fileobject)
        version = cls._features_file_version(s)
        return getattr(cls, "_from_file_v%d" % version)(s)

    @classmethod
    def _features_file_version(cls, obj: Dict[str, Any]) -> int:
        """Retrieve features file version. Return 0 if none"""
        if cls.FEATURES_HEADER in obj:
            return int(obj[cls.FEATURES_HEADER])
        else:
            return 0

    @classmethod
    def _from_file_v0(cls, data: Dict[str, np.ndarray]) -> "FeaturesData":
        """Base version of features file, points only."""
        points = data["points"]
        colors = data["colors"] if "colors" in data else np.zeros((len(points), 3))
        return FeaturesData(points, None, colors.astype(float))

    @classmethod
    def _from_file_v1(cls, data: Dict[str, np.ndarray]) -> "FeaturesData":
        """Version 1 of features file

        Empty descriptors are stored as a zero width array.
        """
        descriptors = data["descriptors"]
        if descriptors.shape[1] == 0:
            descriptors = None
        return FeaturesData(data["points"], descriptors, data["colors"].astype(float))


def normalized_image_coordinates(
    pixel_coords: np.ndarray, width: int, height: int
) -> np.ndarray:
    size = max(width, height)
    p = np.empty((len(pixel_coords), 2))
    p[:, 0] = (pixel_coords[:, 0] + 0.5 - width / 2.0) / size
    p[:, 1] = (pixel_coords[:, 1] + 0.5 - height / 2.0) / size
    return p


def denormalized_image_coordinates(
    norm_coords: np.ndarray, width: int, height: int
) -> np.ndarray:
    size = max(width, height)
    p = np.empty((len(norm_coords), 2))
    p[:, 0] = norm_coords[:, 0] * size - 0.5 + width / 2.0
    p[:, 1] = norm_coords[:, 1] * size - 0.5 + height / 2.0
    return p
