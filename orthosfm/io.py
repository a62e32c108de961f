# pyre-unsafe
import json
import os
import shutil
from abc import ABC, abstractmethod
from typing import Any, Dict, IO, List, Union

import numpy as np
from orthosfm import types
from orthosfm.camera import Camera


def camera_from_json(key: str, obj: Dict[str, Any]) -> Camera:
    """
    Read camera from a json object
    """
    camera = None
    pt = obj.get("projection_type", "perspective")
    if pt == "perspective":
        camera = Camera.create_perspective(
            obj["focal"], obj.get("k1", 0.0), obj.get("k2", 0.0)
        )
    elif pt == "brown":
        camera = Camera.create_brown(
            obj["focal_x"],
            obj["focal_y"] / obj["focal_x"],
            np.array([obj.get("c_x", 0.0), obj.get("c_y", 0.0)]),
            np.array(
                [
                    obj.get("k1", 0.0),
                    obj.get("k2", 0.0),
                    obj.get("k3", 0.0),
                    obj.get("p1", 0.0),
                    obj.get("p2", 0.0),
                ]
            ),
        )
    elif pt == "radial":
        camera = Camera.create_radial(
            obj["focal_x"],
            obj["focal_y"] / obj["focal_x"],
            np.array([obj.get("c_x", 0.0), obj.get("c_y", 0.0)]),
            np.array([obj.get("k1", 0.0), obj.get("k2", 0.0)]),
        )
    elif pt == "simple_radial":
        camera = Camera.create_simple_radial(
            obj["focal_x"],
            obj["focal_y"] / obj["focal_x"],
            np.array([obj.get("c_x", 0.0), obj.get("c_y", 0.0)]),
            obj.get("k1", 0.0),
        )
    elif pt == "fisheye":
        camera = Camera.create_fisheye(
            obj["focal"], obj.get("k1", 0.0), obj.get("k2", 0.0)
        )
    elif Camera.is_panorama(pt):
        camera = Camera.create_spherical(pt)
    else:
        raise NotImplementedError("Unknown projection type: {}".format(pt))
    camera.id = key
    camera.width = int(obj.get("width", 0))
    camera.height = int(obj.get("height", 0))
    return camera


def cameras_from_json(obj: Dict[str, Any]) -> Dict[str, Camera]:
    """
    Read cameras from a json object
    """
    cameras = {}
    for key, value in obj.items():
        cameras[key] = camera_from_json(key, value)
    return cameras


def camera_to_json(camera: Camera) -> Dict[str, Any]:
    """
    Write camera to a json object
    """
    obj = {
        "projection_type": camera.projection_type,
        "width": camera.width,
        "height": camera.height,
    }
    if camera.projection_type in ("perspective", "fisheye"):
        obj.update({"focal": camera.focal, "k1": camera.k1, "k2": camera.k2})
    elif Camera.is_pinhole(camera.projection_type):
        obj.update(
            {
                "focal_x": camera.focal,
                "focal_y": camera.focal * camera.aspect_ratio,
                "c_x": float(camera.principal_point[0]),
                "c_y": float(camera.principal_point[1]),
                "k1": camera.k1,
            }
        )
        if camera.projection_type in ("radial", "brown"):
            obj["k2"] = camera.k2
        if camera.projection_type == "brown":
            obj.update({"k3": camera.k3, "p1": camera.p1, "p2": camera.p2})
    elif not Camera.is_panorama(camera.projection_type):
        raise NotImplementedError(
            "Unknown projection type: {}".format(camera.projection_type)
        )
    return obj


def cameras_to_json(cameras: Dict[str, Camera]) -> Dict[str, Dict[str, Any]]:
    """
    Write cameras to a json object
    """
    obj = {}
    for camera in cameras.values():
        obj[camera.id] = camera_to_json(camera)
    return obj


def view_from_json(key: str, obj: Dict[str, Any]) -> types.View:
    return types.View(key, obj["camera"], obj.get("width", 0), obj.get("height", 0))


def views_from_json(obj: Dict[str, Any]) -> Dict[str, types.View]:
    return {key: view_from_json(key, value) for key, value in obj.items()}


def view_to_json(view: types.View) -> Dict[str, Any]:
    return {"camera": view.camera, "width": view.width, "height": view.height}


def views_to_json(views: Dict[str, types.View]) -> Dict[str, Dict[str, Any]]:
    return {view.id: view_to_json(view) for view in views.values()}


def json_dump_kwargs(minify: bool = False) -> Dict[str, Any]:
    if minify:
        indent, separators = None, (",", ":")
    else:
        indent, separators = 4, None
    return {"indent": indent, "ensure_ascii": False, "separators": separators}


def json_dump(data, fout: IO[str], minify: bool = False) -> None:
    kwargs = json_dump_kwargs(minify)
    return json.dump(data, fout, **kwargs)


def json_dumps(data, minify: bool = False) -> str:
    kwargs = json_dump_kwargs(minify)
    return json.dumps(data, **kwargs)


def json_load(fp: Union[IO[str], IO[bytes]]) -> Any:
    return json.load(fp)


def json_loads(text: Union[str, bytes]) -> Any:
    return json.loads(text)


def open_wt(path: str) -> IO[Any]:
    """Open a file in text mode for writing utf-8."""
    return open(path, "w", encoding="utf-8")


class IoFilesystemBase(ABC):
    @classmethod
    @abstractmethod
    def exists(cls, path: str):
        pass

    @classmethod
    def ls(cls, path: str):
        pass

    @classmethod
    @abstractmethod
    def isfile(cls, path: str):
        pass

    @classmethod
    @abstractmethod
    def isdir(cls, path: str):
        pass

    @classmethod
    def rm_if_exist(cls, filename: str):
        pass

    @classmethod
    @abstractmethod
    def open(cls, *args, **kwargs) -> IO[Any]:
        pass

    @classmethod
    @abstractmethod
    def open_wt(cls, path: str):
        pass

    @classmethod
    @abstractmethod
    def open_rt(cls, path: str):
        pass

    @classmethod
    @abstractmethod
    def mkdir_p(cls, path: str):
        pass


class IoFilesystemDefault(IoFilesystemBase):
    def __init__(self) -> None:
        self.type = "default"

    @classmethod
    def exists(cls, path: str) -> bool:
        return os.path.exists(path)

    @classmethod
    def ls(cls, path: str) -> List[str]:
        return os.listdir(path)

    @classmethod
    def isfile(cls, path: str) -> bool:
        return os.path.isfile(path)

    @classmethod
    def isdir(cls, path: str) -> bool:
        return os.path.isdir(path)

    @classmethod
    def rm_if_exist(cls, filename: str) -> None:
        if os.path.islink(filename):
            os.unlink(filename)
        if os.path.exists(filename):
            if os.path.isdir(filename):
                shutil.rmtree(filename)
            else:
                os.remove(filename)

    @classmethod
    def open(cls, *args, **kwargs) -> IO[Any]:
        return open(*args, **kwargs)

    @classmethod
    def open_wt(cls, path: str):
        return cls.open(path, "w", encoding="utf-8")

    @classmethod
    def open_rt(cls, path: str):
        return cls.open(path, "r", encoding="utf-8")

    @classmethod
    def mkdir_p(cls, path: str):
        return os.makedirs(path, exist_ok=True)
