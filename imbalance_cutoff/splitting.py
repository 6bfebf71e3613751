"""
Stratified train/test partitioning.
"""

import logging
from typing import Optional, Union

import numpy as np
from sklearn.utils import check_random_state

from .dataset import Dataset, Split
from .exceptions import InsufficientDataError

logger = logging.getLogger(__name__)


def stratified_split(
    dataset: Dataset,
    train_fraction: float = 0.7,
    seed: Optional[Union[int, np.random.RandomState]] = None,
    shuffle: bool = True
) -> Split:
    """
    Split a dataset into train and test sets preserving the class ratio.

    Each label's row positions are permuted independently and the first
    ``round(train_fraction * n_class)`` of them go to train, so both halves
    carry the original positive rate up to one row.

    Args:
        dataset: Dataset to partition
        train_fraction: Share of each class assigned to train, in (0, 1)
        seed: Seed or RandomState making the partition reproducible
        shuffle: Shuffle rows within train and test after concatenation
                 (otherwise negatives come first, then positives)

    Returns:
        Split with disjoint ``train`` and ``test`` datasets

    Raises:
        InsufficientDataError: if either class has fewer than 2 rows
    """
    if not 0.0 < train_fraction < 1.0:
        raise ValueError(f"train_fraction must be in (0, 1), got {train_fraction}")

    counts = dataset.class_counts()
    too_small = {label: n for label, n in counts.items() if n < 2}
    if too_small:
        raise InsufficientDataError(
            f"Cannot stratify: every class needs at least 2 rows (class counts: {counts})"
        )

    rng = check_random_state(seed)
    labels = dataset.y

    train_parts = []
    test_parts = []
    for label in (0, 1):
        positions = np.flatnonzero(labels == label)
        n_train = int(round(train_fraction * len(positions)))
        n_train = min(max(n_train, 1), len(positions) - 1)
        permuted = rng.permutation(positions)
        train_parts.append(permuted[:n_train])
        test_parts.append(permuted[n_train:])

    train_idx = np.concatenate(train_parts)
    test_idx = np.concatenate(test_parts)
    if shuffle:
        train_idx = rng.permutation(train_idx)
        test_idx = rng.permutation(test_idx)

    split = Split(train=dataset.subset(train_idx), test=dataset.subset(test_idx))
    logger.info("Stratified split: %d train rows (positive rate %.4f), %d test rows (positive rate %.4f)",
                split.train.n_rows, split.train.positive_rate,
                split.test.n_rows, split.test.positive_rate)
    return split
