"""
Resampling strategies that rebalance an imbalanced training set.

All strategies share the ``resample(train) -> ResampledDataset`` contract.
Original rows always come first, in their original order, followed by the
generated rows; ``parents`` and ``partners`` on the result record which
train rows each generated row came from.
"""

import logging
import math
from abc import ABC, abstractmethod
from typing import Dict, List, Optional, Tuple, Type, Union

import numpy as np
import pandas as pd
from imblearn.over_sampling import RandomOverSampler
from scipy.sparse.csgraph import dijkstra
from sklearn.cluster import DBSCAN
from sklearn.neighbors import radius_neighbors_graph
from sklearn.utils import check_random_state

from .dataset import DUPLICATE, ORIGINAL, SYNTHETIC, Dataset, ResampledDataset
from .exceptions import InsufficientDataError, InsufficientMinorityError
from .indexing import neighbor_table

logger = logging.getLogger(__name__)

RandomStateLike = Optional[Union[int, np.random.RandomState]]


def class_roles(labels: np.ndarray) -> Tuple[int, int]:
    """
    Identify (minority, majority) labels; a tie makes label 1 the minority.

    Raises:
        InsufficientDataError: if one of the classes is absent
    """
    n_pos = int(np.sum(labels == 1))
    n_neg = int(np.sum(labels == 0))
    if n_pos == 0 or n_neg == 0:
        raise InsufficientDataError(
            f"Resampling needs both classes (positives={n_pos}, negatives={n_neg})"
        )
    return (1, 0) if n_pos <= n_neg else (0, 1)


def _rows_needed(n_minority: int, n_majority: int, ratio: float) -> int:
    return max(int(round(ratio * n_majority)) - n_minority, 0)


def _append_rows(
    train: Dataset,
    strategy: str,
    new_X: np.ndarray,
    new_labels: np.ndarray,
    tag: str,
    parents: np.ndarray,
    partners: np.ndarray
) -> ResampledDataset:
    """Original train rows followed by the generated ones."""
    n_orig = train.n_rows
    n_new = len(new_labels)
    new_index = [f"{strategy}-{i}" for i in range(n_new)]
    generated = pd.DataFrame(new_X.reshape(n_new, train.n_features),
                             columns=train.feature_names, index=new_index)
    original = train.features
    original.columns = train.feature_names
    features = pd.concat([original, generated]) if n_new else original

    return ResampledDataset(
        features,
        np.concatenate([train.y, np.asarray(new_labels, dtype=int)]),
        np.concatenate([train.provenance, np.array([tag] * n_new, dtype=object)]),
        strategy=strategy,
        parents=np.concatenate([np.arange(n_orig), parents]),
        partners=np.concatenate([np.full(n_orig, -1), partners])
    )


class Resampler(ABC):
    """Abstract base class for resampling strategies."""

    name = "base"

    def __init__(self, random_state: RandomStateLike = None):
        self.random_state = random_state

    @abstractmethod
    def resample(self, train: Dataset) -> ResampledDataset:
        """Return a rebalanced copy of ``train``."""
        pass

    def _log_result(self, train: Dataset, result: ResampledDataset) -> None:
        logger.info("%s: %s -> %s (%d rows generated)",
                    self.name, train.class_counts(), result.class_counts(),
                    int(result.is_synthetic.sum()))

    def __repr__(self) -> str:
        params = ", ".join(f"{k}={v!r}" for k, v in self.get_params().items())
        return f"{type(self).__name__}({params})"

    def get_params(self) -> Dict:
        return dict(vars(self))


class NoResample(Resampler):
    """Pass-through strategy; the train set is used as is."""

    name = "none"

    def resample(self, train: Dataset) -> ResampledDataset:
        empty = np.empty(0, dtype=int)
        return _append_rows(train, self.name, np.empty((0, train.n_features)),
                            empty, ORIGINAL, empty, empty)


class RandomOverSample(Resampler):
    """
    Duplicate minority rows, sampled with replacement, until the
    minority/majority ratio reaches ``ratio``.

    Duplicates are tagged ``"duplicate"`` so overfitting on repeated rows
    can be traced.
    """

    name = "random"

    def __init__(self, ratio: float = 1.0, random_state: RandomStateLike = None):
        super().__init__(random_state)
        if ratio <= 0:
            raise ValueError(f"ratio must be positive, got {ratio}")
        self.ratio = ratio

    def resample(self, train: Dataset) -> ResampledDataset:
        minority, majority = class_roles(train.y)
        minority_pos = np.flatnonzero(train.y == minority)
        n_majority = int(np.sum(train.y == majority))
        n_needed = _rows_needed(len(minority_pos), n_majority, self.ratio)

        sampler = RandomOverSampler(
            sampling_strategy={minority: len(minority_pos) + n_needed},
            random_state=check_random_state(self.random_state)
        )
        sampler.fit_resample(train.X, train.y)
        # fit_resample keeps the input rows first; the rest index the duplicated rows
        picks = np.asarray(sampler.sample_indices_[train.n_rows:], dtype=int)

        result = _append_rows(train, self.name, train.X[picks],
                              np.full(n_needed, minority), DUPLICATE,
                              picks, np.full(n_needed, -1))
        self._log_result(train, result)
        return result


class SMOTE(Resampler):
    """
    Synthetic Minority Oversampling Technique.

    Each synthetic row is ``x + gap * (neighbor - x)`` where ``x`` is a
    minority row drawn uniformly, ``neighbor`` one of its ``k_neighbors``
    nearest minority rows (Euclidean), and ``gap ~ U[0, 1]``.

    Args:
        k_neighbors: Minority neighbors considered per row (default: 5)
        ratio: Target minority/majority ratio (default: 1.0, balanced)
        index_method: Neighbor index, one of 'brute', 'kd_tree', 'ball_tree'
        random_state: Seed or RandomState

    Raises:
        InsufficientMinorityError: if the minority class has <= k_neighbors rows
    """

    name = "smote"

    def __init__(
        self,
        k_neighbors: int = 5,
        ratio: float = 1.0,
        index_method: str = 'kd_tree',
        random_state: RandomStateLike = None
    ):
        super().__init__(random_state)
        if k_neighbors < 1:
            raise ValueError(f"k_neighbors must be >= 1, got {k_neighbors}")
        if ratio <= 0:
            raise ValueError(f"ratio must be positive, got {ratio}")
        self.k_neighbors = k_neighbors
        self.ratio = ratio
        self.index_method = index_method

    def resample(self, train: Dataset) -> ResampledDataset:
        minority, majority = class_roles(train.y)
        minority_pos = np.flatnonzero(train.y == minority)
        n_minority = len(minority_pos)
        if n_minority <= self.k_neighbors:
            raise InsufficientMinorityError(
                f"SMOTE with k={self.k_neighbors} needs more than {self.k_neighbors} "
                f"minority rows, got {n_minority}"
            )
        n_needed = _rows_needed(n_minority, int(np.sum(train.y == majority)), self.ratio)

        X_min = train.X[minority_pos]
        _, neighbors = neighbor_table(X_min, self.k_neighbors, self.index_method)

        rng = check_random_state(self.random_state)
        base = rng.randint(0, n_minority, size=n_needed)
        partner = neighbors[base, rng.randint(0, self.k_neighbors, size=n_needed)]
        gaps = rng.uniform(0.0, 1.0, size=(n_needed, 1))
        synthetic = X_min[base] + gaps * (X_min[partner] - X_min[base])

        result = _append_rows(train, self.name, synthetic,
                              np.full(n_needed, minority), SYNTHETIC,
                              minority_pos[base], minority_pos[partner])
        self._log_result(train, result)
        return result


class _ClusterPaths:
    """Shortest paths from every member of one cluster to its pseudo-centroid."""

    def __init__(self, members: np.ndarray, X: np.ndarray, eps: float):
        self.members = members
        X_cluster = X[members]
        graph = radius_neighbors_graph(X_cluster, radius=eps, mode='distance',
                                       include_self=False)
        # zero-length edges between duplicate rows must stay edges
        graph.data = graph.data + 1e-12
        self.graph = graph.tocsr()

        center = X_cluster.mean(axis=0)
        self.centroid = int(np.argmin(np.linalg.norm(X_cluster - center, axis=1)))
        lengths, self.predecessors = dijkstra(self.graph, directed=False,
                                              indices=self.centroid,
                                              return_predecessors=True)
        self.reachable = np.flatnonzero(np.isfinite(lengths))

    def path_to_centroid(self, node: int) -> List[int]:
        path = [node]
        while path[-1] != self.centroid:
            path.append(int(self.predecessors[path[-1]]))
        return path

    def neighbors_of(self, node: int) -> np.ndarray:
        return self.graph.indices[self.graph.indptr[node]:self.graph.indptr[node + 1]]


class DBSMOTE(Resampler):
    """
    Density-based SMOTE.

    Minority rows are clustered with DBSCAN. Inside each cluster the rows
    within ``eps`` of each other form a weighted graph and every row is
    joined to the cluster's pseudo-centroid (the member nearest the cluster
    mean) by its shortest path. A synthetic row is placed at a uniform
    random point on a random edge of the path from a randomly chosen
    clustered row to its pseudo-centroid, so generation stays inside
    density-connected regions. Rows DBSCAN labels as noise never seed or
    anchor synthetic rows.

    Args:
        eps: DBSCAN radius (default: median distance to the
             ``min_samples``-th nearest minority neighbor)
        min_samples: DBSCAN density threshold (default:
                     ``max(2, ceil(log2(n_minority)))``)
        ratio: Target minority/majority ratio (default: 1.0)
        random_state: Seed or RandomState
    """

    name = "dbsmote"

    def __init__(
        self,
        eps: Optional[float] = None,
        min_samples: Optional[int] = None,
        ratio: float = 1.0,
        random_state: RandomStateLike = None
    ):
        super().__init__(random_state)
        if eps is not None and eps <= 0:
            raise ValueError(f"eps must be positive, got {eps}")
        if min_samples is not None and min_samples < 2:
            raise ValueError(f"min_samples must be >= 2, got {min_samples}")
        if ratio <= 0:
            raise ValueError(f"ratio must be positive, got {ratio}")
        self.eps = eps
        self.min_samples = min_samples
        self.ratio = ratio

    def _resolve_density(self, X_min: np.ndarray) -> Tuple[float, int]:
        n_minority = len(X_min)
        min_samples = self.min_samples
        if min_samples is None:
            min_samples = max(2, int(math.ceil(math.log2(n_minority))))
        if n_minority <= min_samples:
            raise InsufficientMinorityError(
                f"DBSMOTE with min_samples={min_samples} needs more than {min_samples} "
                f"minority rows, got {n_minority}"
            )

        eps = self.eps
        if eps is None:
            distances, _ = neighbor_table(X_min, min_samples)
            kth = distances[:, -1]
            positive = kth[kth > 0]
            eps = float(np.median(positive)) if len(positive) else 1.0
        return eps, min_samples

    def resample(self, train: Dataset) -> ResampledDataset:
        minority, majority = class_roles(train.y)
        minority_pos = np.flatnonzero(train.y == minority)
        X_min = train.X[minority_pos]
        eps, min_samples = self._resolve_density(X_min)
        n_needed = _rows_needed(len(minority_pos), int(np.sum(train.y == majority)), self.ratio)

        cluster_labels = DBSCAN(eps=eps, min_samples=min_samples).fit(X_min).labels_
        cluster_ids = sorted(set(cluster_labels.tolist()) - {-1})
        if not cluster_ids:
            raise InsufficientDataError(
                f"DBSCAN (eps={eps:.4g}, min_samples={min_samples}) labelled all "
                f"{len(X_min)} minority rows as noise"
            )
        clusters = [_ClusterPaths(np.flatnonzero(cluster_labels == c), X_min, eps)
                    for c in cluster_ids]
        logger.debug("DBSMOTE: eps=%.4g, min_samples=%d, %d clusters, %d noise rows",
                     eps, min_samples, len(clusters), int(np.sum(cluster_labels == -1)))

        # (cluster, local node) for every row that can seed a synthetic row
        seeds = [(ci, node) for ci, cluster in enumerate(clusters) for node in cluster.reachable]

        rng = check_random_state(self.random_state)
        synthetic = np.empty((n_needed, train.n_features))
        parents = np.empty(n_needed, dtype=int)
        partners = np.empty(n_needed, dtype=int)
        for i, pick in enumerate(rng.randint(0, len(seeds), size=n_needed)):
            ci, node = seeds[pick]
            cluster = clusters[ci]
            path = cluster.path_to_centroid(node)
            if len(path) == 1:
                start = node
                end = int(rng.choice(cluster.neighbors_of(node)))
            else:
                edge = rng.randint(0, len(path) - 1)
                start, end = path[edge], path[edge + 1]
            a = cluster.members[start]
            b = cluster.members[end]
            synthetic[i] = X_min[a] + rng.uniform(0.0, 1.0) * (X_min[b] - X_min[a])
            parents[i] = minority_pos[a]
            partners[i] = minority_pos[b]

        result = _append_rows(train, self.name, synthetic, np.full(n_needed, minority),
                              SYNTHETIC, parents, partners)
        self._log_result(train, result)
        return result


class ROSE(Resampler):
    """
    Random Over-Sampling Examples (smoothed bootstrap).

    Builds a wholly synthetic training set of ``n_samples`` rows. The number
    of positives is drawn from Binomial(n_samples, positive_fraction); each
    row resamples a row of its class and adds Gaussian noise whose
    per-feature scale is

        shrink * (4 / ((d + 2) * n_c)) ** (1 / (d + 4)) * sd_c

    (Silverman's rule for a multivariate normal kernel), where ``n_c`` and
    ``sd_c`` are the class size and per-feature standard deviation.

    Args:
        shrink: Bandwidth multiplier; 0 turns ROSE into a plain bootstrap
        n_samples: Size of the generated set (default: size of train)
        positive_fraction: Expected share of positives (default: 0.5)
        random_state: Seed or RandomState
    """

    name = "rose"

    def __init__(
        self,
        shrink: float = 1.0,
        n_samples: Optional[int] = None,
        positive_fraction: float = 0.5,
        random_state: RandomStateLike = None
    ):
        super().__init__(random_state)
        if shrink < 0:
            raise ValueError(f"shrink must be non-negative, got {shrink}")
        if n_samples is not None and n_samples < 1:
            raise ValueError(f"n_samples must be >= 1, got {n_samples}")
        if not 0.0 < positive_fraction < 1.0:
            raise ValueError(f"positive_fraction must be in (0, 1), got {positive_fraction}")
        self.shrink = shrink
        self.n_samples = n_samples
        self.positive_fraction = positive_fraction

    def bandwidths(self, X_class: np.ndarray) -> np.ndarray:
        """Per-feature kernel scale for one class."""
        n_class, n_features = X_class.shape
        if n_class < 2:
            return np.zeros(n_features)
        factor = (4.0 / ((n_features + 2) * n_class)) ** (1.0 / (n_features + 4))
        return self.shrink * factor * X_class.std(axis=0, ddof=1)

    def resample(self, train: Dataset) -> ResampledDataset:
        class_roles(train.y)
        rng = check_random_state(self.random_state)
        n_total = self.n_samples or train.n_rows
        n_positive = int(rng.binomial(n_total, self.positive_fraction))

        blocks = []
        labels = []
        parents = []
        for label, n_new in ((0, n_total - n_positive), (1, n_positive)):
            class_pos = np.flatnonzero(train.y == label)
            X_class = train.X[class_pos]
            picks = rng.randint(0, len(class_pos), size=n_new)
            noise = rng.standard_normal((n_new, train.n_features)) * self.bandwidths(X_class)
            blocks.append(X_class[picks] + noise)
            labels.append(np.full(n_new, label))
            parents.append(class_pos[picks])

        order = rng.permutation(n_total)
        X_new = np.vstack(blocks)[order]
        y_new = np.concatenate(labels)[order]
        parent_pos = np.concatenate(parents)[order]

        features = pd.DataFrame(X_new, columns=train.feature_names,
                                index=[f"{self.name}-{i}" for i in range(n_total)])
        result = ResampledDataset(features, y_new, [SYNTHETIC] * n_total,
                                  strategy=self.name, parents=parent_pos,
                                  partners=np.full(n_total, -1))
        self._log_result(train, result)
        return result


RESAMPLERS: Dict[str, Type[Resampler]] = {
    NoResample.name: NoResample,
    RandomOverSample.name: RandomOverSample,
    SMOTE.name: SMOTE,
    DBSMOTE.name: DBSMOTE,
    ROSE.name: ROSE,
}


def create_resampler(name: Optional[str] = 'none', **kwargs) -> Resampler:
    """
    Factory function to create a resampler.

    Args:
        name: One of 'none', 'random', 'smote', 'dbsmote', 'rose'
              (``None`` is treated as 'none')
        **kwargs: Constructor arguments for the resampler

    Returns:
        Resampler instance
    """
    if name is None:
        name = NoResample.name
    try:
        resampler_cls = RESAMPLERS[name]
    except KeyError:
        raise ValueError(f"Unknown resampling strategy: {name}. "
                         f"Use one of {sorted(RESAMPLERS)}.") from None
    return resampler_cls(**kwargs)
