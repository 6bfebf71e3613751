"""
Tabular containers for binary classification data.
"""

from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Sequence, Union

import numpy as np
import pandas as pd

ORIGINAL = "original"
DUPLICATE = "duplicate"
SYNTHETIC = "synthetic"

_PROVENANCE_VALUES = (ORIGINAL, DUPLICATE, SYNTHETIC)


def _read_only(array: np.ndarray) -> np.ndarray:
    array = np.array(array, copy=True)
    array.flags.writeable = False
    return array


class Dataset:
    """
    Read-only table of named numeric features plus one binary label.

    Row identity is the index of the feature frame, so subsets and splits
    can always be traced back to the rows they came from.

    Example:
        >>> ds = Dataset(pd.DataFrame({"a": [0.1, 0.2]}), [0, 1])
        >>> ds.class_counts()
        {0: 1, 1: 1}
    """

    def __init__(
        self,
        features: pd.DataFrame,
        labels: Union[np.ndarray, pd.Series, List[int]],
        provenance: Optional[Sequence[str]] = None
    ):
        """
        Args:
            features: Feature frame (n_rows, n_features), numeric columns only
            labels: Binary labels (n_rows,), values in {0, 1}
            provenance: Optional per-row origin tag; defaults to "original"
        """
        if not isinstance(features, pd.DataFrame):
            raise TypeError(f"features must be a pandas DataFrame, got {type(features).__name__}")

        labels = np.asarray(labels)
        if labels.ndim != 1:
            raise ValueError(f"labels must be one-dimensional (got shape {labels.shape})")
        if len(features) != len(labels):
            raise ValueError(f"features and labels must have same length "
                             f"(got {len(features)} and {len(labels)})")
        if pd.isna(labels).any():
            raise ValueError("labels must not contain missing values")
        if not np.isin(labels, (0, 1)).all():
            raise ValueError(f"labels must be binary 0/1 (got values {np.unique(labels).tolist()})")

        non_numeric = [c for c in features.columns if not pd.api.types.is_numeric_dtype(features[c])]
        if non_numeric:
            raise ValueError(f"Feature columns must be numeric: {non_numeric}")
        if features.isna().to_numpy().any():
            raise ValueError("features must not contain missing values")

        if provenance is None:
            provenance = [ORIGINAL] * len(labels)
        provenance = np.asarray(provenance, dtype=object)
        if len(provenance) != len(labels):
            raise ValueError(f"provenance has {len(provenance)} items, expected {len(labels)}")
        unknown = set(provenance.tolist()) - set(_PROVENANCE_VALUES)
        if unknown:
            raise ValueError(f"Unknown provenance tags: {sorted(unknown)}")

        self._features = features.astype(float).copy()
        self._labels = _read_only(labels.astype(int))
        self._provenance = _read_only(provenance)
        self._X = _read_only(self._features.to_numpy(dtype=float))

    @classmethod
    def from_frame(
        cls,
        frame: pd.DataFrame,
        label_column: str,
        feature_columns: Optional[List[str]] = None,
        label_rule: Optional[Callable[[pd.Series], pd.Series]] = None
    ) -> "Dataset":
        """
        Build a dataset from a cleaned frame.

        Args:
            frame: Source frame holding features and the outcome column
            label_column: Column the binary label is taken (or derived) from
            feature_columns: Feature columns to keep (default: all others)
            label_rule: Optional rule mapping the raw outcome to a boolean,
                        e.g. ``lambda quality: quality >= 8``

        Returns:
            Dataset
        """
        if label_column not in frame.columns:
            raise ValueError(f"Label column '{label_column}' not found in frame")

        if feature_columns is None:
            feature_columns = [c for c in frame.columns if c != label_column]
        missing = [c for c in feature_columns if c not in frame.columns]
        if missing:
            raise ValueError(f"Feature columns not found in frame: {missing}")

        outcome = frame[label_column]
        if label_rule is not None:
            outcome = label_rule(outcome)
        labels = np.asarray(outcome).astype(int)

        return cls(frame[list(feature_columns)], labels)

    @property
    def features(self) -> pd.DataFrame:
        return self._features.copy()

    @property
    def X(self) -> np.ndarray:
        return self._X

    @property
    def y(self) -> np.ndarray:
        return self._labels

    @property
    def provenance(self) -> np.ndarray:
        return self._provenance

    @property
    def feature_names(self) -> List[str]:
        return [str(c) for c in self._features.columns]

    @property
    def row_ids(self) -> List:
        return self._features.index.tolist()

    @property
    def n_rows(self) -> int:
        return len(self._labels)

    @property
    def n_features(self) -> int:
        return self._features.shape[1]

    @property
    def positive_rate(self) -> float:
        if self.n_rows == 0:
            return 0.0
        return float(self._labels.mean())

    @property
    def is_synthetic(self) -> np.ndarray:
        """Mask of rows that were not present in the source data."""
        return self._provenance != ORIGINAL

    def class_counts(self) -> Dict[int, int]:
        """Row count for each of the two labels (zero counts included)."""
        return {0: int(np.sum(self._labels == 0)), 1: int(np.sum(self._labels == 1))}

    def subset(self, positions: Union[np.ndarray, List[int]]) -> "Dataset":
        """Rows at the given positions, keeping their row identities."""
        positions = np.asarray(positions, dtype=int)
        return Dataset(
            self._features.iloc[positions],
            self._labels[positions],
            self._provenance[positions]
        )

    def select_features(self, columns: List[str]) -> "Dataset":
        """Same rows restricted to ``columns``."""
        missing = [c for c in columns if c not in self._features.columns]
        if missing:
            raise ValueError(f"Feature columns not found: {missing}")
        return Dataset(self._features[list(columns)], self._labels, self._provenance)

    def to_frame(self, label_column: str = "label") -> pd.DataFrame:
        frame = self._features.copy()
        frame[label_column] = self._labels
        return frame

    def __len__(self) -> int:
        return self.n_rows

    def __repr__(self) -> str:
        counts = self.class_counts()
        return (f"Dataset(n_rows={self.n_rows}, n_features={self.n_features}, "
                f"positives={counts[1]}, negatives={counts[0]})")


class ResampledDataset(Dataset):
    """
    Dataset produced by a resampler.

    ``parents`` holds, for each row, the position in the source train set of
    the row it was generated from, and ``partners`` the position of the
    neighbour it was interpolated towards (``-1`` where not applicable).
    Original rows are their own parent.
    """

    def __init__(
        self,
        features: pd.DataFrame,
        labels: Union[np.ndarray, List[int]],
        provenance: Sequence[str],
        strategy: str,
        parents: Optional[np.ndarray] = None,
        partners: Optional[np.ndarray] = None
    ):
        super().__init__(features, labels, provenance)
        n = self.n_rows
        parents = np.full(n, -1, dtype=int) if parents is None else np.asarray(parents, dtype=int)
        partners = np.full(n, -1, dtype=int) if partners is None else np.asarray(partners, dtype=int)
        if len(parents) != n or len(partners) != n:
            raise ValueError(f"parents and partners must have {n} items")
        self.strategy = strategy
        self._parents = _read_only(parents)
        self._partners = _read_only(partners)

    @property
    def parents(self) -> np.ndarray:
        return self._parents

    @property
    def partners(self) -> np.ndarray:
        return self._partners

    def __repr__(self) -> str:
        counts = self.class_counts()
        return (f"ResampledDataset(strategy='{self.strategy}', n_rows={self.n_rows}, "
                f"positives={counts[1]}, negatives={counts[0]}, "
                f"generated={int(self.is_synthetic.sum())})")


@dataclass(frozen=True)
class Split:
    """Disjoint stratified train/test partition of one dataset."""

    train: Dataset
    test: Dataset
