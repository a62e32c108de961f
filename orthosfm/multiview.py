# pyre-unsafe
import math
from typing import List, Sequence, Tuple

import numpy as np


def homogeneous(x: np.ndarray) -> np.ndarray:
    """Add a column of ones to x."""
    s = x.shape[:-1] + (1,)
    return np.hstack((x, np.ones(s)))


def euclidean(x: np.ndarray) -> np.ndarray:
    """Divide by last column and drop it."""
    return x[..., :-1] / x[..., -1:]


def apply_transformation(T: np.ndarray, x: np.ndarray) -> np.ndarray:
    """Apply the 3x3 projective transformation T to 2D points x."""
    return euclidean(homogeneous(x).dot(T.T))


def essential_ortho_three_points(x1: np.ndarray, x2: np.ndarray) -> List[np.ndarray]:
    """Essential matrix of two orthographic cameras.

    Under orthographic projection the epipolar constraint x2^T E x1 = 0
    is linear in the image coordinates and E has the form

        [[0, 0, a],
         [0, 0, b],
         [c, d, 0]]

    so that each correspondence gives one equation

        a * x2 + b * y2 + c * x1 + d * y1 = 0

    Three correspondences determine (a, b, c, d) up to scale. More
    correspondences are solved in the least squares sense.

    Return a list with the unit norm solution, or an empty list for
    degenerate samples.

    >>> x1 = np.array([[1., 0.], [0., 1.], [2., 3.]])
    >>> x2 = np.array([[1., 5.], [0., 2.], [2., -1.]])
    >>> E = essential_ortho_three_points(x1, x2)[0]
    >>> np.allclose(orthographic_symmetric_epipolar_error(E, x1, x2), 0)
    True
    """
    x1 = np.asarray(x1, dtype=float)
    x2 = np.asarray(x2, dtype=float)
    A = np.column_stack((x2[:, 0], x2[:, 1], x1[:, 0], x1[:, 1]))

    _, s, vh = np.linalg.svd(A)
    if len(s) < 3 or s[2] <= 1e-12 * s[0]:
        return []

    a, b, c, d = vh[-1]
    if math.hypot(a, b) < 1e-12 or math.hypot(c, d) < 1e-12:
        return []

    E = np.array([[0.0, 0.0, a], [0.0, 0.0, b], [c, d, 0.0]])
    return [E / np.linalg.norm(E)]


def orthographic_symmetric_epipolar_error(
    E: np.ndarray, x1: np.ndarray, x2: np.ndarray
) -> np.ndarray:
    """Squared symmetric epipolar distance of the correspondences.

    Sum of the squared distances of x2 to the epipolar line E x1 and of
    x1 to the epipolar line E^T x2.
    """
    x1h = homogeneous(np.asarray(x1, dtype=float))
    x2h = homogeneous(np.asarray(x2, dtype=float))
    l2 = x1h.dot(E.T)
    l1 = x2h.dot(E)
    r = np.sum(x2h * l2, axis=1)
    n1 = l1[:, 0] ** 2 + l1[:, 1] ** 2
    n2 = l2[:, 0] ** 2 + l2[:, 1] ** 2
    return r * r * (1.0 / n1 + 1.0 / n2)


class EssentialOrthoKernel:
    """A-contrario kernel for the orthographic essential matrix.

    Points are given in pixels and normalized with the inverse of the
    calibration matrices. Models and residuals live in normalized
    coordinates; the kernel converts error bounds to and from pixels
    of the second image.

    >>> x1 = np.array([[10., 20.], [30., 5.], [7., 42.], [15., 15.]])
    >>> x2 = np.array([[10., 3.], [30., 40.], [7., 1.], [15., 33.]])
    >>> K = np.array([[100., 0., 25.], [0., 100., 25.], [0., 0., 1.]])
    >>> kernel = EssentialOrthoKernel(x1, (50, 50), x2, (50, 50), K, K)
    >>> kernel.num_samples()
    4
    >>> models = kernel.fit([0, 1, 2])
    >>> np.allclose(kernel.evaluate(models[0]), 0)
    True
    """

    required_samples = 3
    max_models = 1
    # residuals are squared point to line distances
    mult_error = 0.5

    def __init__(
        self,
        x1: np.ndarray,
        size1: Tuple[int, int],
        x2: np.ndarray,
        size2: Tuple[int, int],
        K1: np.ndarray,
        K2: np.ndarray,
    ) -> None:
        x1 = np.asarray(x1, dtype=float)
        x2 = np.asarray(x2, dtype=float)
        if x1.shape != x2.shape or x1.ndim != 2 or x1.shape[1] != 2:
            raise ValueError(
                "Expected two (N, 2) point arrays, got {} and {}".format(
                    x1.shape, x2.shape
                )
            )
        self.x1 = x1
        self.x2 = x2
        self.size1 = size1
        self.size2 = size2
        self.N1: np.ndarray = np.linalg.inv(K1)
        self.N2: np.ndarray = np.linalg.inv(K2)
        self.x1k: np.ndarray = apply_transformation(self.N1, x1)
        self.x2k: np.ndarray = apply_transformation(self.N2, x2)

        # Probability for a random point to lie close to an epipolar line
        width, height = size2
        diagonal = math.hypot(width, height)
        area = float(width) * float(height)
        self.logalpha0: float = math.log10(2.0 * diagonal / area / self.N2[0, 0])

    def num_samples(self) -> int:
        return len(self.x1)

    def fit(self, samples: Sequence[int]) -> List[np.ndarray]:
        samples = list(samples)
        return essential_ortho_three_points(self.x1k[samples], self.x2k[samples])

    def evaluate(self, model: np.ndarray) -> np.ndarray:
        return orthographic_symmetric_epipolar_error(model, self.x1k, self.x2k)

    def normalize_precision(self, precision: float) -> float:
        """Squared pixel error bound to normalized residual units."""
        return precision * self.N2[0, 0] * self.N2[0, 0]

    def unnormalize_error(self, error: float) -> float:
        """Normalized residual to pixel error."""
        return math.sqrt(error) / self.N2[0, 0]
