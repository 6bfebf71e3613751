"""Shared fixtures for imbalance-cutoff tests."""

import numpy as np
import pandas as pd
import pytest

from imbalance_cutoff.dataset import Dataset


def make_imbalanced(n_negative=360, n_positive=40, n_features=3, shift=1.5, seed=0):
    """Gaussian blobs: negatives around 0, positives shifted by ``shift``."""
    rng = np.random.RandomState(seed)
    X_neg = rng.randn(n_negative, n_features)
    X_pos = rng.randn(n_positive, n_features) + shift
    X = np.vstack([X_neg, X_pos])
    y = np.concatenate([np.zeros(n_negative, dtype=int), np.ones(n_positive, dtype=int)])
    order = rng.permutation(len(y))
    columns = [f"x{i}" for i in range(n_features)]
    return Dataset(pd.DataFrame(X[order], columns=columns), y[order])


def make_separable(n_negative=60, n_positive=60, gap=10.0, seed=0):
    """Two Gaussian blobs far enough apart that a line splits the classes."""
    rng = np.random.RandomState(seed)
    X = np.vstack([rng.randn(n_negative, 2), rng.randn(n_positive, 2) + gap])
    y = np.concatenate([np.zeros(n_negative, dtype=int), np.ones(n_positive, dtype=int)])
    return Dataset(pd.DataFrame(X, columns=["a", "b"]), y)


@pytest.fixture
def imbalanced_dataset():
    """400 rows, 10% positives, 3 features."""
    return make_imbalanced()


@pytest.fixture
def clustered_minority_dataset():
    """Minority rows in two tight clusters plus two isolated outliers."""
    rng = np.random.RandomState(3)
    negatives = rng.randn(200, 2) * 3.0
    cluster_a = rng.randn(15, 2) * 0.1 + np.array([5.0, 5.0])
    cluster_b = rng.randn(15, 2) * 0.1 + np.array([-5.0, 5.0])
    outliers = np.array([[20.0, -20.0], [-20.0, -20.0]])
    X = np.vstack([negatives, cluster_a, cluster_b, outliers])
    y = np.concatenate([np.zeros(200, dtype=int), np.ones(32, dtype=int)])
    return Dataset(pd.DataFrame(X, columns=["a", "b"]), y)


@pytest.fixture
def scenario_scores():
    """Five scored rows with a hand-checked confusion matrix at 0.5."""
    labels = np.array([1, 0, 0, 1, 0])
    probabilities = np.array([0.9, 0.2, 0.4, 0.6, 0.8])
    return probabilities, labels
