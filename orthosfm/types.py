# pyre-unsafe
"""Basic types describing the views of a reconstruction dataset."""
from typing import Dict, Optional

from orthosfm.camera import Camera


class View:
    """An image of the dataset.

    Attributes:
        id: view identifier (the image name)
        camera: identifier of the camera intrinsic used by the image
        width: image width in pixels
        height: image height in pixels
    """

    __slots__ = ("id", "camera", "width", "height")

    def __init__(self, id: str, camera: str, width: int, height: int) -> None:
        self.id = id
        self.camera = camera
        self.width = int(width)
        self.height = int(height)

    def __repr__(self) -> str:
        return "<View {} camera={} {}x{}>".format(
            self.id, self.camera, self.width, self.height
        )

    def __eq__(self, other) -> bool:
        if not isinstance(other, View):
            return NotImplemented
        return (self.id, self.camera, self.width, self.height) == (
            other.id,
            other.camera,
            other.width,
            other.height,
        )

    def __hash__(self) -> int:
        return hash((self.id, self.camera, self.width, self.height))


class SfMData:
    """Views of a dataset together with their camera intrinsics.

    Attributes:
        views (Dict(View)): views indexed by id.
        cameras (Dict(Camera)): camera intrinsics indexed by id.
    """

    def __init__(
        self,
        views: Optional[Dict[str, View]] = None,
        cameras: Optional[Dict[str, Camera]] = None,
    ) -> None:
        self.views: Dict[str, View] = views if views is not None else {}
        self.cameras: Dict[str, Camera] = cameras if cameras is not None else {}

    def __repr__(self) -> str:
        return "<SfMData views={} cameras={}>".format(
            len(self.views), len(self.cameras)
        )

    def add_camera(self, camera: Camera) -> None:
        self.cameras[camera.id] = camera

    def add_view(self, view: View) -> None:
        self.views[view.id] = view

    def get_camera(self, view: View) -> Optional[Camera]:
        """Camera intrinsic of a view, None if it is unknown."""
        return self.cameras.get(view.camera)
