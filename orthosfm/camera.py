# pyre-unsafe
"""Camera intrinsic models.

Only the pinhole family (a projection that can be expressed with a
calibration matrix K) is usable for essential matrix estimation. The
other models are still loaded so that datasets mixing camera types
can be read and filtered pair by pair.
"""
from typing import Optional

import numpy as np


PINHOLE_PROJECTIONS = ("perspective", "simple_radial", "radial", "brown")
PANORAMA_PROJECTIONS = ("spherical", "equirectangular")


class Camera:
    """Base camera intrinsic.

    Attributes:
        id: camera identifier, referenced by the views
        width: image width in pixels
        height: image height in pixels
    """

    projection_type: str = "undefined"

    def __init__(self) -> None:
        self.id: str = ""
        self.width: int = 0
        self.height: int = 0

    def __repr__(self) -> str:
        return "<{} {} {}x{}>".format(
            type(self).__name__, self.id, self.width, self.height
        )

    def as_pinhole(self) -> Optional["PinholeCamera"]:
        """Return the camera as a pinhole camera, None if it is not one."""
        return None

    @staticmethod
    def is_panorama(projection_type: str) -> bool:
        return projection_type in PANORAMA_PROJECTIONS

    @staticmethod
    def is_pinhole(projection_type: str) -> bool:
        return projection_type in PINHOLE_PROJECTIONS

    @staticmethod
    def create_perspective(focal: float, k1: float, k2: float) -> "PerspectiveCamera":
        return PerspectiveCamera(focal, k1, k2)

    @staticmethod
    def create_simple_radial(
        focal: float, aspect_ratio: float, principal_point: np.ndarray, k1: float
    ) -> "SimpleRadialCamera":
        return SimpleRadialCamera(focal, aspect_ratio, principal_point, k1)

    @staticmethod
    def create_radial(
        focal: float,
        aspect_ratio: float,
        principal_point: np.ndarray,
        distortion: np.ndarray,
    ) -> "RadialCamera":
        return RadialCamera(focal, aspect_ratio, principal_point, distortion)

    @staticmethod
    def create_brown(
        focal: float,
        aspect_ratio: float,
        principal_point: np.ndarray,
        distortion: np.ndarray,
    ) -> "BrownCamera":
        return BrownCamera(focal, aspect_ratio, principal_point, distortion)

    @staticmethod
    def create_fisheye(focal: float, k1: float, k2: float) -> "FisheyeCamera":
        return FisheyeCamera(focal, k1, k2)

    @staticmethod
    def create_spherical(projection_type: str = "spherical") -> "SphericalCamera":
        return SphericalCamera(projection_type)


class PinholeCamera(Camera):
    """Camera whose projection is described by a calibration matrix.

    Focal and principal point are expressed in normalized image
    coordinates, i.e. relative to max(width, height) with the origin at
    the image center.
    """

    def __init__(
        self,
        focal: float,
        aspect_ratio: float = 1.0,
        principal_point: Optional[np.ndarray] = None,
    ) -> None:
        super().__init__()
        self.focal = float(focal)
        self.aspect_ratio = float(aspect_ratio)
        if principal_point is None:
            principal_point = np.zeros(2)
        self.principal_point = np.asarray(principal_point, dtype=float)

    def as_pinhole(self) -> Optional["PinholeCamera"]:
        return self

    def get_K(self) -> np.ndarray:
        """Calibration matrix in normalized image coordinates."""
        return np.array(
            [
                [self.focal, 0.0, self.principal_point[0]],
                [0.0, self.focal * self.aspect_ratio, self.principal_point[1]],
                [0.0, 0.0, 1.0],
            ]
        )

    def get_K_in_pixel_coordinates(
        self, width: Optional[int] = None, height: Optional[int] = None
    ) -> np.ndarray:
        """Calibration matrix in pixel coordinates.

        Defaults to the camera own image size.
        """
        w = self.width if width is None else width
        h = self.height if height is None else height
        size = max(w, h)
        if size <= 0:
            raise ValueError(
                "Camera {} has no image size, cannot compute K".format(self.id)
            )
        normalized_to_pixel = np.array(
            [
                [size, 0, (w - 1) / 2.0],
                [0, size, (h - 1) / 2.0],
                [0, 0, 1],
            ]
        )
        return np.dot(normalized_to_pixel, self.get_K())


class PerspectiveCamera(PinholeCamera):
    projection_type = "perspective"

    def __init__(self, focal: float, k1: float = 0.0, k2: float = 0.0) -> None:
        super().__init__(focal)
        self.k1 = float(k1)
        self.k2 = float(k2)


class SimpleRadialCamera(PinholeCamera):
    projection_type = "simple_radial"

    def __init__(
        self,
        focal: float,
        aspect_ratio: float,
        principal_point: np.ndarray,
        k1: float,
    ) -> None:
        super().__init__(focal, aspect_ratio, principal_point)
        self.k1 = float(k1)


class RadialCamera(PinholeCamera):
    projection_type = "radial"

    def __init__(
        self,
        focal: float,
        aspect_ratio: float,
        principal_point: np.ndarray,
        distortion: np.ndarray,
    ) -> None:
        super().__init__(focal, aspect_ratio, principal_point)
        self.k1, self.k2 = (float(d) for d in distortion)


class BrownCamera(PinholeCamera):
    projection_type = "brown"

    def __init__(
        self,
        focal: float,
        aspect_ratio: float,
        principal_point: np.ndarray,
        distortion: np.ndarray,
    ) -> None:
        super().__init__(focal, aspect_ratio, principal_point)
        self.k1, self.k2, self.k3, self.p1, self.p2 = (float(d) for d in distortion)


class FisheyeCamera(Camera):
    projection_type = "fisheye"

    def __init__(self, focal: float, k1: float = 0.0, k2: float = 0.0) -> None:
        super().__init__()
        self.focal = float(focal)
        self.k1 = float(k1)
        self.k2 = float(k2)


class SphericalCamera(Camera):
    def __init__(self, projection_type: str = "spherical") -> None:
        super().__init__()
        if not Camera.is_panorama(projection_type):
            raise ValueError("Not a panorama projection: {}".format(projection_type))
        self.projection_type = projection_type
