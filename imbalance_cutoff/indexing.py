"""
Nearest neighbor search over minority-class rows.
"""

import numpy as np
from typing import Tuple
from abc import ABC, abstractmethod
from scipy.spatial import distance as scipy_distance
from sklearn.neighbors import KDTree, BallTree


def compute_all_distances(point: np.ndarray, data: np.ndarray) -> np.ndarray:
    """
    Compute Euclidean distances from a point to all points in a dataset.

    Args:
        point: Query point as 1D numpy array
        data: Dataset as 2D numpy array (n_samples, n_features)

    Returns:
        Array of distances (n_samples,)
    """
    return scipy_distance.cdist([point], data, metric='euclidean')[0]


class IndexStrategy(ABC):
    """Abstract base class for indexing strategies."""

    @abstractmethod
    def build(self, X: np.ndarray) -> None:
        """Build the index from data."""
        pass

    @abstractmethod
    def query(self, point: np.ndarray, k: int) -> Tuple[np.ndarray, np.ndarray]:
        """
        Query for k nearest neighbors.

        Returns:
            distances: Array of distances (k,), ascending
            indices: Array of indices (k,)
        """
        pass

    def query_batch(self, X: np.ndarray, k: int) -> Tuple[np.ndarray, np.ndarray]:
        """Query every row of X; returns (n, k) distance and index arrays."""
        results = [self.query(point, k) for point in X]
        distances = np.vstack([d for d, _ in results])
        indices = np.vstack([i for _, i in results])
        return distances, indices


class BruteForceIndex(IndexStrategy):
    """Brute force search - computes all distances."""

    def __init__(self):
        self.X = None

    def build(self, X: np.ndarray) -> None:
        """Store the data."""
        self.X = X

    def query(self, point: np.ndarray, k: int) -> Tuple[np.ndarray, np.ndarray]:
        """Find k nearest neighbors by computing all distances."""
        distances = compute_all_distances(point, self.X)
        # stable sort keeps ties in row order
        indices = np.argsort(distances, kind='stable')[:k]
        return distances[indices], indices


class KDTreeIndex(IndexStrategy):
    """K-D Tree for fast nearest neighbor search (best for low dimensions)."""

    def __init__(self, leaf_size: int = 30):
        self.leaf_size = leaf_size
        self.tree = None

    def build(self, X: np.ndarray) -> None:
        """Build K-D tree."""
        self.tree = KDTree(X, leaf_size=self.leaf_size, metric='euclidean')

    def query(self, point: np.ndarray, k: int) -> Tuple[np.ndarray, np.ndarray]:
        """Query K-D tree for k nearest neighbors."""
        distances, indices = self.tree.query([point], k=k)
        return distances[0], indices[0]

    def query_batch(self, X: np.ndarray, k: int) -> Tuple[np.ndarray, np.ndarray]:
        return self.tree.query(X, k=k)


class BallTreeIndex(IndexStrategy):
    """Ball Tree for nearest neighbor search (better for high dimensions)."""

    def __init__(self, leaf_size: int = 30):
        self.leaf_size = leaf_size
        self.tree = None

    def build(self, X: np.ndarray) -> None:
        """Build Ball tree."""
        self.tree = BallTree(X, leaf_size=self.leaf_size, metric='euclidean')

    def query(self, point: np.ndarray, k: int) -> Tuple[np.ndarray, np.ndarray]:
        """Query Ball tree for k nearest neighbors."""
        distances, indices = self.tree.query([point], k=k)
        return distances[0], indices[0]

    def query_batch(self, X: np.ndarray, k: int) -> Tuple[np.ndarray, np.ndarray]:
        return self.tree.query(X, k=k)


def create_index(method: str = 'kd_tree', **kwargs) -> IndexStrategy:
    """
    Factory function to create an index.

    Args:
        method: One of 'brute', 'kd_tree', 'ball_tree'
        **kwargs: Additional arguments for the index

    Returns:
        IndexStrategy instance
    """
    if method == 'brute':
        return BruteForceIndex()
    elif method == 'kd_tree':
        return KDTreeIndex(**kwargs)
    elif method == 'ball_tree':
        return BallTreeIndex(**kwargs)
    else:
        raise ValueError(f"Unknown index method: {method}")


def neighbor_table(X: np.ndarray, k: int, method: str = 'kd_tree') -> Tuple[np.ndarray, np.ndarray]:
    """
    k nearest *other* rows for every row of X.

    Each row is queried for k + 1 neighbors and its own position is
    dropped. When duplicates make the row appear after another zero-distance
    row, the farthest of the k + 1 results is dropped instead.

    Args:
        X: Data (n_samples, n_features), n_samples > k
        k: Neighbors per row
        method: Index method passed to create_index

    Returns:
        distances: (n_samples, k)
        indices: (n_samples, k)
    """
    n = len(X)
    if k >= n:
        raise ValueError(f"k={k} neighbors requested from only {n} rows")

    index = create_index(method)
    index.build(X)
    distances, indices = index.query_batch(X, k + 1)

    out_dist = np.empty((n, k))
    out_idx = np.empty((n, k), dtype=int)
    for row in range(n):
        keep = indices[row] != row
        if keep.all():
            keep[-1] = False
        out_dist[row] = distances[row][keep]
        out_idx[row] = indices[row][keep]
    return out_dist, out_idx
