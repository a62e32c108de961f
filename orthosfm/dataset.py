# pyre-unsafe
import gzip
import importlib
import logging
import os
import pickle
from io import BytesIO
from typing import Dict, List, Optional

import numpy as np
from orthosfm import config, features, io, types
from orthosfm.camera import Camera
from orthosfm.dataset_base import DataSetBase

logger: logging.Logger = logging.getLogger(__name__)


class MatchingUnpickler(pickle.Unpickler):
    """Unpickler restricted to the numpy types stored in match files.

    'pickle.load' is RCE-prone, any other global is refused.
    """

    allowed_globals = {
        ("numpy.core.multiarray", "_reconstruct"),
        ("numpy.core.multiarray", "scalar"),
        ("numpy._core.multiarray", "_reconstruct"),
        ("numpy._core.multiarray", "scalar"),
        ("numpy", "ndarray"),
        ("numpy", "dtype"),
    }

    def find_class(self, module, name):
        if (module, name) not in self.allowed_globals:
            raise pickle.UnpicklingError(
                "global '%s.%s' is forbidden" % (module, name)
            )
        return getattr(importlib.import_module(module), name)


class DataSet(DataSetBase):
    """Accessors to the main input and output data.

    Data include the views and their cameras, the features and the
    putative matches produced upstream, and the geometric matches
    kept after robust filtering.

    All data is stored inside a single folder with a specific subfolder
    structure.

    It is possible to store data remotely or in different formats
    by subclassing this class and overloading its methods.
    """

    io_handler: io.IoFilesystemBase = io.IoFilesystemDefault()
    config = None

    def __init__(self, data_path: str, io_handler=io.IoFilesystemDefault) -> None:
        """Init dataset associated to a folder."""
        self.io_handler = io_handler
        self.data_path = data_path
        self.load_config()

    def _config_file(self) -> str:
        return os.path.join(self.data_path, "config.yaml")

    def load_config(self) -> None:
        config_file_path = self._config_file()
        if self.io_handler.isfile(config_file_path):
            with self.io_handler.open(config_file_path) as f:
                self.config = config.load_config_from_fileobject(f)
        else:
            self.config = config.default_config()

    def images(self) -> List[str]:
        """List of the view ids of the dataset."""
        if not self.io_handler.isfile(self._views_file()):
            return []
        return sorted(self.load_views())

    def _camera_models_file(self) -> str:
        """Return path of camera model file"""
        return os.path.join(self.data_path, "camera_models.json")

    def load_camera_models(self) -> Dict[str, Camera]:
        """Return camera models data"""
        with self.io_handler.open_rt(self._camera_models_file()) as fin:
            obj = io.json_load(fin)
            return io.cameras_from_json(obj)

    def save_camera_models(self, camera_models: Dict[str, Camera]) -> None:
        """Save camera models data"""
        with self.io_handler.open_wt(self._camera_models_file()) as fout:
            obj = io.cameras_to_json(camera_models)
            io.json_dump(obj, fout)

    def _views_file(self) -> str:
        """Return path of the views file"""
        return os.path.join(self.data_path, "views.json")

    def load_views(self) -> Dict[str, types.View]:
        """Return the views of the dataset"""
        with self.io_handler.open_rt(self._views_file()) as fin:
            return io.views_from_json(io.json_load(fin))

    def save_views(self, views: Dict[str, types.View]) -> None:
        """Save the views of the dataset"""
        with self.io_handler.open_wt(self._views_file()) as fout:
            io.json_dump(io.views_to_json(views), fout)

    def load_sfm_data(self) -> types.SfMData:
        """Views and cameras of the dataset.

        A dataset without camera models file has no usable camera.
        """
        cameras = {}
        if self.io_handler.isfile(self._camera_models_file()):
            cameras = self.load_camera_models()
        else:
            logger.warning("No camera models found in {}".format(self.data_path))
        return types.SfMData(self.load_views(), cameras)

    def _feature_path(self) -> str:
        """Return path of feature files directory"""
        return os.path.join(self.data_path, "features")

    def _feature_file(self, image: str) -> str:
        """
        Return path of feature file for specified image
        :param image: Image name, with extension (i.e. 123.jpg)
        """
        return os.path.join(self._feature_path(), image + ".features.npz")

    def load_features(self, image: str) -> Optional[features.FeaturesData]:
        with self.io_handler.open(self._feature_file(image), "rb") as f:
            return features.FeaturesData.from_file(f)

    def save_features(self, image: str, features_data: features.FeaturesData) -> None:
        self.io_handler.mkdir_p(self._feature_path())
        with self.io_handler.open(self._feature_file(image), "wb") as fwb:
            features_data.save(fwb)

    def _matches_path(self) -> str:
        """Return path of putative matches directory"""
        return os.path.join(self.data_path, "matches")

    def _geometric_matches_path(self) -> str:
        """Return path of geometric matches directory"""
        return os.path.join(self.data_path, "geometric_matches")

    def _matches_file(self, image: str, path: Optional[str] = None) -> str:
        """File for matches for an image"""
        return os.path.join(
            path or self._matches_path(), "{}_matches.pkl.gz".format(image)
        )

    def _load_matches_file(self, filepath: str) -> Dict[str, np.ndarray]:
        with self.io_handler.open(filepath, "rb") as fin:
            matches = MatchingUnpickler(BytesIO(gzip.decompress(fin.read()))).load()
        return matches

    def _save_matches_file(
        self, filepath: str, matches: Dict[str, np.ndarray]
    ) -> None:
        self.io_handler.mkdir_p(os.path.dirname(filepath))

        with BytesIO() as buffer:
            with gzip.GzipFile(fileobj=buffer, mode="w") as fzip:
                pickle.dump(matches, fzip)
            with self.io_handler.open(filepath, "wb") as fw:
                fw.write(buffer.getvalue())

    def matches_exists(self, image: str) -> bool:
        return self.io_handler.isfile(self._matches_file(image))

    def load_matches(self, image: str) -> Dict[str, np.ndarray]:
        return self._load_matches_file(self._matches_file(image))

    def save_matches(self, image: str, matches: Dict[str, np.ndarray]) -> None:
        self._save_matches_file(self._matches_file(image), matches)

    def geometric_matches_exists(self, image: str) -> bool:
        return self.io_handler.isfile(
            self._matches_file(image, self._geometric_matches_path())
        )

    def load_geometric_matches(self, image: str) -> Dict[str, np.ndarray]:
        return self._load_matches_file(
            self._matches_file(image, self._geometric_matches_path())
        )

    def save_geometric_matches(
        self, image: str, matches: Dict[str, np.ndarray]
    ) -> None:
        self._save_matches_file(
            self._matches_file(image, self._geometric_matches_path()), matches
        )

    def append_to_profile_log(self, content: str) -> None:
        """Append content to the profile.log file."""
        path = os.path.join(self.data_path, "profile.log")
        with self.io_handler.open(path, "a") as fp:
            fp.write(content)

    def _report_path(self) -> str:
        return os.path.join(self.data_path, "reports")

    def load_report(self, path: str) -> str:
        """Load a report file as a string."""
        with self.io_handler.open_rt(os.path.join(self._report_path(), path)) as fin:
            return fin.read()

    def save_report(self, report_str: str, path: str) -> None:
        """Save report string to a file."""
        filepath = os.path.join(self._report_path(), path)
        self.io_handler.mkdir_p(os.path.dirname(filepath))
        with self.io_handler.open_wt(filepath) as fout:
            return fout.write(report_str)

    def clean_up(self) -> None:
        pass
