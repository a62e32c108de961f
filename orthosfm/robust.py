# pyre-unsafe
"""A-contrario RANSAC.

Instead of classifying residuals against a fixed threshold, every
hypothesis is scored by the expected number of false alarms (NFA) of
its best inlier/outlier split: the number of models times the number
of ways to pick the inliers, times the probability that that many
uniformly distributed points explain the model that well. The split
and the model minimizing the NFA are kept. A pair is meaningful when
its NFA is below one (log10 below zero).

Reference: L. Moisan, P. Moulon, P. Monasse. Automatic homographic
registration of a pair of images, with a contrario elimination of
outliers. IPOL 2012.
"""
import logging
import math
import random
from dataclasses import dataclass, field
from typing import Any, List, Optional, Tuple

import numpy as np
from scipy.special import gammaln


logger: logging.Logger = logging.getLogger(__name__)


FLOAT_EPSILON = float(np.finfo(np.float32).eps)

# With a finite precision, a model turns on the a-contrario scoring once
# more than this ratio of the minimal sample size is below the bound.
MEANINGFUL_INLIERS_RATIO = 2.5


@dataclass
class ACRansacResult:
    """Output of AC-RANSAC.

    Attributes:
        model: best model found, identity if none
        inliers: indices of the inliers, sorted by increasing residual
        error_max: residual of the worst inlier, in pixels
        nfa: log10 of the number of false alarms of the best model
    """

    model: np.ndarray = field(default_factory=lambda: np.identity(3))
    inliers: List[int] = field(default_factory=list)
    error_max: float = math.inf
    nfa: float = math.inf


def log_combinations(n: Any, k: Any) -> np.ndarray:
    """log10 of the binomial coefficient C(n, k).

    >>> float(np.round(10 ** log_combinations(5, 2), 6))
    10.0
    """
    n = np.asarray(n, dtype=float)
    k = np.asarray(k, dtype=float)
    return (gammaln(n + 1) - gammaln(k + 1) - gammaln(n - k + 1)) / math.log(10)


def best_nfa(
    sorted_errors: np.ndarray,
    sample_size: int,
    logalpha0: float,
    loge0: float,
    max_threshold: float,
    logc_n: np.ndarray,
    logc_k: np.ndarray,
    mult_error: float,
) -> Tuple[float, int]:
    """Most meaningful inlier count for residuals sorted in increasing order.

    Returns the log NFA and the number of inliers k > sample_size. The
    scan stops at the first residual above max_threshold.
    """
    n = len(sorted_errors)
    k = np.arange(sample_size + 1, n + 1)
    errors = sorted_errors[sample_size:]
    above = np.flatnonzero(~(errors <= max_threshold))
    if len(above):
        k = k[: above[0]]
        errors = errors[: above[0]]
    if len(k) == 0:
        return math.inf, sample_size

    logalpha = logalpha0 + mult_error * np.log10(errors + FLOAT_EPSILON)
    nfa = loge0 + logalpha * (k - sample_size) + logc_n[k] + logc_k[k]
    best = int(np.argmin(nfa))
    return float(nfa[best]), int(k[best])


def ac_ransac(
    kernel: Any,
    max_iterations: int = 4096,
    precision: float = math.inf,
    rng: Optional[random.Random] = None,
) -> ACRansacResult:
    """Robustly fit a model to data with AC-RANSAC.

    The kernel provides `required_samples`, `max_models`, `mult_error`,
    `logalpha0`, `num_samples()`, `fit(samples)`, `evaluate(model)`,
    `normalize_precision(precision)` and `unnormalize_error(error)`.

    Args:
        kernel: the a-contrario kernel
        max_iterations: number of samples drawn (10% of which are kept
            for refinement around the best inlier set)
        precision: upper bound of the squared pixel residual of an
            inlier. Infinity lets the estimator pick it.
        rng: random generator used for sampling

    Never fails: the best hypothesis is returned even if not meaningful,
    in which case the inlier list is empty.
    """
    if rng is None:
        rng = random.Random()

    sample_size = kernel.required_samples
    n = kernel.num_samples()
    if n <= sample_size:
        return ACRansacResult(error_max=0.0, nfa=0.0)

    ac_mode = math.isinf(precision)
    max_threshold = math.inf if ac_mode else kernel.normalize_precision(precision)

    loge0 = math.log10(kernel.max_models * (n - sample_size))
    counts = np.arange(n + 1)
    logc_n = log_combinations(n, counts)
    logc_k = np.zeros(n + 1)
    logc_k[sample_size:] = log_combinations(counts[sample_size:], sample_size)

    best = ACRansacResult()
    all_indices = list(range(n))
    index_pool = all_indices

    n_iter_reserve = max_iterations // 10
    n_iter = max_iterations - n_iter_reserve

    i = 0
    while i < n_iter:
        samples = rng.sample(index_pool if ac_mode else all_indices, sample_size)

        better = False
        for model in kernel.fit(samples):
            errors = kernel.evaluate(model)

            if not ac_mode:
                num_inliers = np.count_nonzero(errors <= max_threshold)
                ac_mode = num_inliers > MEANINGFUL_INLIERS_RATIO * sample_size
            if not ac_mode:
                continue

            order = np.argsort(errors, kind="stable")
            sorted_errors = errors[order]
            nfa, num_inliers = best_nfa(
                sorted_errors,
                sample_size,
                kernel.logalpha0,
                loge0,
                max_threshold,
                logc_n,
                logc_k,
                kernel.mult_error,
            )
            if nfa < best.nfa:
                better = True
                best = ACRansacResult(
                    model,
                    order[:num_inliers].tolist(),
                    float(sorted_errors[num_inliers - 1]),
                    nfa,
                )

        # Refinement: draw the remaining samples among the best inliers
        if ac_mode and ((better and best.nfa < 0) or (i + 1 == n_iter and n_iter_reserve)):
            if not best.inliers:
                # No model at all so far, keep looking with the reserve
                n_iter += 1
                n_iter_reserve -= 1
            else:
                index_pool = best.inliers
                if n_iter_reserve:
                    n_iter = i + 1 + n_iter_reserve
                    n_iter_reserve = 0
        i += 1

    if best.nfa >= 0 or not best.inliers:
        logger.debug(
            "AC-RANSAC found no meaningful model in {} iterations".format(i)
        )
        return ACRansacResult(best.model, [], math.inf, best.nfa)

    logger.debug(
        "AC-RANSAC: {} inliers out of {}, NFA {:.2f}, {} iterations".format(
            len(best.inliers), n, best.nfa, i
        )
    )
    return ACRansacResult(
        best.model,
        best.inliers,
        kernel.unnormalize_error(best.error_max),
        best.nfa,
    )
