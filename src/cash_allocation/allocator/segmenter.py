"""
RegimeSegmenter: K-means regime segmentation of per-day features.

Partitions feature-matrix rows into k regimes with Lloyd's algorithm:
- k-means++ seeding (scikit-learn) with an injectable seed
- Euclidean distance on (optionally standardized) feature columns
- iterate until assignments stop changing or max_iter is reached
- equidistant points go to the lower-indexed cluster

The regime signal for a day is the mean return of the cluster it belongs to.

A feature matrix whose rows are all identical yields a single-cluster
assignment rather than an error.
"""

import logging
from dataclasses import dataclass
from typing import Optional, Union

import numpy as np
import pandas as pd
from sklearn.cluster import kmeans_plusplus

from ..config.pipeline_config import (
    DEFAULT_K_CLUSTERS,
    DEFAULT_MAX_ITER,
    DEFAULT_SEED,
    check_segmenter_params,
)
from ..errors import ClusteringError, InputValidationError, NonFiniteValueError
from .validate import require_finite

logger = logging.getLogger(__name__)

ArrayLike = Union[np.ndarray, pd.DataFrame]


def nearest_centroid(points: np.ndarray, centroids: np.ndarray) -> np.ndarray:
    """
    Index of the closest centroid for every point.

    np.argmin returns the first minimum, so ties resolve to the lower index.
    """
    diff = points[:, np.newaxis, :] - centroids[np.newaxis, :, :]
    distances = np.einsum("ijk,ijk->ij", diff, diff)
    return np.argmin(distances, axis=1)


def update_centroids(points: np.ndarray, labels: np.ndarray, centroids: np.ndarray) -> np.ndarray:
    """Mean of each cluster's points; empty clusters keep their previous centroid."""
    updated = centroids.copy()
    for j in range(len(centroids)):
        members = points[labels == j]
        if len(members) > 0:
            updated[j] = members.mean(axis=0)
    return updated


@dataclass
class ClusterAssignment:
    """
    Result of one segmentation.

    labels and centroids live in the scaled feature space; feature_mean and
    feature_scale map raw features into it (see transform).
    """

    labels: np.ndarray
    centroids: np.ndarray
    feature_mean: np.ndarray
    feature_scale: np.ndarray
    n_iter: int
    converged: bool
    degenerate: bool = False

    @property
    def k(self) -> int:
        return len(self.centroids)

    @property
    def cluster_sizes(self) -> np.ndarray:
        return np.bincount(self.labels, minlength=self.k)

    @property
    def occupied(self) -> np.ndarray:
        return np.flatnonzero(self.cluster_sizes > 0)

    def transform(self, features: ArrayLike) -> np.ndarray:
        """Map raw feature rows into the clustering space."""
        points = np.asarray(features, dtype=np.float64)
        return (points - self.feature_mean) / self.feature_scale

    def predict(self, features: ArrayLike) -> np.ndarray:
        """
        Assign new raw feature rows to the nearest occupied cluster.

        Empty clusters are skipped so that every prediction maps to a
        cluster with a defined mean return.
        """
        occupied = self.occupied
        idx = nearest_centroid(self.transform(features), self.centroids[occupied])
        return occupied[idx]

    def cluster_mean_returns(self, returns: np.ndarray) -> np.ndarray:
        """Mean return per cluster (NaN for empty clusters)."""
        returns = np.asarray(returns, dtype=np.float64)
        if len(returns) != len(self.labels):
            raise InputValidationError(
                f"returns length {len(returns)} does not match {len(self.labels)} labels",
                stage="RegimeSegmenter",
            )
        sums = np.bincount(self.labels, weights=returns, minlength=self.k)
        sizes = self.cluster_sizes
        means = np.full(self.k, np.nan)
        np.divide(sums, sizes, out=means, where=sizes > 0)
        return means

    def regime_signal(self, returns: np.ndarray, labels: Optional[np.ndarray] = None) -> np.ndarray:
        """
        Per-day regime signal: mean historical return of each day's cluster.

        Args:
            returns: Returns of the clustered (historical) days
            labels: Cluster ids to map; defaults to the fitted labels

        Returns:
            Array with one regime signal per label
        """
        means = self.cluster_mean_returns(returns)
        labels = self.labels if labels is None else np.asarray(labels)
        signal = means[labels]
        require_finite("regime_signal", signal, stage="RegimeSegmenter", error_cls=NonFiniteValueError)
        return signal


class RegimeSegmenter:
    """
    K-means regime segmenter.

    The iterative loop is local to each fit call; the segmenter keeps no
    state between calls beyond its parameters.
    """

    VERSION = "v1.0"

    def __init__(
        self,
        k_clusters: int = DEFAULT_K_CLUSTERS,
        max_iter: int = DEFAULT_MAX_ITER,
        seed: Optional[int] = DEFAULT_SEED,
        standardize: bool = True,
    ):
        """
        Initialize RegimeSegmenter.

        Args:
            k_clusters: Default cluster count, capped at the number of days
            max_iter: Maximum Lloyd iterations
            seed: k-means++ seed. Fixed for reproducible output; None draws
                  fresh entropy on every fit.
            standardize: Z-score feature columns before clustering
        """
        check_segmenter_params(k_clusters, max_iter)

        self.k_clusters = k_clusters
        self.max_iter = max_iter
        self.seed = seed
        self.standardize = standardize

        logger.debug(
            f"[RegimeSegmenter] Initialized (version {self.VERSION}): "
            f"k={k_clusters}, max_iter={max_iter}, seed={seed}, standardize={standardize}"
        )

    def fit(self, feature_matrix: ArrayLike, k_clusters: Optional[int] = None) -> ClusterAssignment:
        """
        Cluster feature-matrix rows into regimes.

        Args:
            feature_matrix: Days x features (DataFrame or 2-D array)
            k_clusters: Explicit cluster count. Unlike the default, an explicit
                        value is not capped and must not exceed the number of days.

        Returns:
            ClusterAssignment

        Raises:
            ClusteringError: If an explicit k_clusters exceeds the number of days
            InputValidationError: If the matrix is empty, not 2-D, non-finite, or k < 1
        """
        points = np.asarray(feature_matrix, dtype=np.float64)
        if points.ndim != 2 or points.shape[0] == 0 or points.shape[1] == 0:
            raise InputValidationError(
                f"feature_matrix must be a non-empty 2-D array, got shape {points.shape}",
                stage="RegimeSegmenter",
            )
        require_finite("feature_matrix", points.ravel(), stage="RegimeSegmenter")

        n_days = points.shape[0]
        k = self._resolve_k(n_days, k_clusters)

        mean, scale = self._scaler(points)
        scaled = (points - mean) / scale

        if np.all(points == points[0]):
            logger.info(
                f"[RegimeSegmenter] All {n_days} rows identical, returning single-cluster assignment"
            )
            return ClusterAssignment(
                labels=np.zeros(n_days, dtype=np.intp),
                centroids=scaled[:1].copy(),
                feature_mean=mean,
                feature_scale=scale,
                n_iter=0,
                converged=True,
                degenerate=True,
            )

        centroids, _ = kmeans_plusplus(scaled, n_clusters=k, random_state=self.seed)
        centroids = np.asarray(centroids, dtype=np.float64)

        labels = None
        converged = False
        n_iter = 0
        for n_iter in range(1, self.max_iter + 1):
            new_labels = nearest_centroid(scaled, centroids)
            if labels is not None and np.array_equal(new_labels, labels):
                converged = True
                break
            labels = new_labels
            centroids = update_centroids(scaled, labels, centroids)

        if not converged:
            logger.warning(
                f"[RegimeSegmenter] Did not converge within {self.max_iter} iterations"
            )

        assignment = ClusterAssignment(
            labels=labels,
            centroids=centroids,
            feature_mean=mean,
            feature_scale=scale,
            n_iter=n_iter,
            converged=converged,
        )
        logger.info(
            f"[RegimeSegmenter] k={k}, iterations={n_iter}, converged={converged}, "
            f"sizes={assignment.cluster_sizes.tolist()}"
        )
        return assignment

    def _resolve_k(self, n_days: int, k_clusters: Optional[int]) -> int:
        if k_clusters is None:
            k = min(self.k_clusters, n_days)
            if k < self.k_clusters:
                logger.debug(f"[RegimeSegmenter] Default k={self.k_clusters} capped at {k} days")
            return k

        if isinstance(k_clusters, bool) or not isinstance(k_clusters, (int, np.integer)) or k_clusters < 1:
            raise InputValidationError(
                f"k_clusters must be a positive integer, got {k_clusters!r}", stage="RegimeSegmenter"
            )
        if k_clusters > n_days:
            raise ClusteringError(
                f"k_clusters={k_clusters} exceeds the number of days ({n_days})",
                stage="RegimeSegmenter",
            )
        return int(k_clusters)

    def _scaler(self, points: np.ndarray):
        n_features = points.shape[1]
        if not self.standardize:
            return np.zeros(n_features), np.ones(n_features)

        mean = points.mean(axis=0)
        std = points.std(axis=0)
        scale = np.where(std > 0, std, 1.0)
        return mean, scale

    def describe(self) -> dict:
        return {
            "agent": "RegimeSegmenter",
            "version": self.VERSION,
            "role": "Cluster per-day features into return regimes",
            "k_clusters": self.k_clusters,
            "max_iter": self.max_iter,
            "seed": self.seed,
            "standardize": self.standardize,
        }
