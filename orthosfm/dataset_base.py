# pyre-unsafe
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

import numpy as np
from orthosfm import features, io, types
from orthosfm.camera import Camera


class DataSetBase(ABC):
    """Base for dataset classes providing i/o access to persistent data.

    It is possible to store data remotely or in different formats
    by subclassing this class and overloading its methods.
    """

    @property
    @abstractmethod
    def io_handler(self) -> io.IoFilesystemBase:
        pass

    @property
    @abstractmethod
    def config(self) -> Dict[str, Any]:
        pass

    @abstractmethod
    def images(self) -> List[str]:
        pass

    @abstractmethod
    def load_camera_models(self) -> Dict[str, Camera]:
        pass

    @abstractmethod
    def save_camera_models(self, camera_models: Dict[str, Camera]) -> None:
        pass

    @abstractmethod
    def load_views(self) -> Dict[str, types.View]:
        pass

    @abstractmethod
    def save_views(self, views: Dict[str, types.View]) -> None:
        pass

    @abstractmethod
    def load_sfm_data(self) -> types.SfMData:
        pass

    @abstractmethod
    def load_features(self, image: str) -> Optional[features.FeaturesData]:
        pass

    @abstractmethod
    def save_features(self, image: str, features_data: features.FeaturesData) -> None:
        pass

    @abstractmethod
    def matches_exists(self, image: str) -> bool:
        pass

    @abstractmethod
    def load_matches(self, image: str) -> Dict[str, np.ndarray]:
        pass

    @abstractmethod
    def save_matches(self, image: str, matches: Dict[str, np.ndarray]) -> None:
        pass

    @abstractmethod
    def geometric_matches_exists(self, image: str) -> bool:
        pass

    @abstractmethod
    def load_geometric_matches(self, image: str) -> Dict[str, np.ndarray]:
        pass

    @abstractmethod
    def save_geometric_matches(
        self, image: str, matches: Dict[str, np.ndarray]
    ) -> None:
        pass

    @abstractmethod
    def load_report(self, path: str) -> str:
        pass

    @abstractmethod
    def save_report(self, report_str: str, path: str) -> None:
        pass

    @abstractmethod
    def append_to_profile_log(self, content: str) -> None:
        pass
