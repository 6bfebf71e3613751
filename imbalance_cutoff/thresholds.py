"""
Cost-sensitive decision threshold search.

A row is labelled positive iff its probability is strictly greater than
the cutoff. The sweep evaluates every cutoff of an ascending grid at once,
so the resulting curve is ordered by cutoff by construction.
"""

import logging
from dataclasses import dataclass
from typing import Iterator, List, NamedTuple, Optional, Sequence, Tuple, Union

import numpy as np
import pandas as pd
from sklearn.metrics import auc as trapezoid_auc

from .exceptions import DegenerateEvaluationError

logger = logging.getLogger(__name__)

ArrayLike = Union[np.ndarray, Sequence[float], pd.Series]


@dataclass(frozen=True)
class CostMatrix:
    """
    Loss of a single false positive and a single false negative.

    Correct decisions cost nothing.
    """

    cost_fp: float
    cost_fn: float

    def __post_init__(self):
        for name in ("cost_fp", "cost_fn"):
            value = getattr(self, name)
            if not np.isfinite(value) or value < 0:
                raise ValueError(f"{name} must be a non-negative finite number, got {value}")

    def expected_cost(self, fp: Union[int, np.ndarray], fn: Union[int, np.ndarray]):
        return self.cost_fp * fp + self.cost_fn * fn


class CutoffPoint(NamedTuple):
    cutoff: float
    true_positive_rate: float
    false_positive_rate: float
    accuracy: float
    expected_cost: float


def cutoff_grid(start: float = 0.01, end: float = 0.90, step: float = 0.001) -> np.ndarray:
    """
    Ascending grid ``start, start + step, ...`` up to and including ``end``.

    The default reproduces a 0.01 to 0.90 sweep in steps of 0.001.
    """
    if step <= 0:
        raise ValueError(f"step must be positive, got {step}")
    if end < start:
        raise ValueError(f"end ({end}) must not be smaller than start ({start})")
    n_points = int(np.floor((end - start) / step + 1e-9)) + 1
    # rounding keeps grid values free of accumulated float error
    return np.round(start + step * np.arange(n_points), 12)


def validate_scores(probabilities: ArrayLike, labels: ArrayLike) -> Tuple[np.ndarray, np.ndarray]:
    """Coerce probabilities and labels to checked 1-D arrays of equal length."""
    probabilities = np.asarray(probabilities, dtype=float)
    labels = np.asarray(labels)
    if probabilities.ndim != 1 or labels.ndim != 1:
        raise ValueError("probabilities and labels must be one-dimensional")
    if len(probabilities) != len(labels):
        raise ValueError(f"probabilities and labels must have same length "
                         f"(got {len(probabilities)} and {len(labels)})")
    if not np.all(np.isfinite(probabilities)):
        raise ValueError("probabilities must be finite")
    if not np.isin(labels, (0, 1)).all():
        raise ValueError("labels must be binary 0/1")
    return probabilities, labels.astype(int)


def compute_auc(fpr: ArrayLike, tpr: ArrayLike) -> float:
    """
    Area under the ROC curve by trapezoidal integration.

    The points are anchored with (0, 0) and (1, 1) and sorted by ascending
    false positive rate (true positive rate breaks ties).
    """
    fpr = np.concatenate([[0.0], np.asarray(fpr, dtype=float), [1.0]])
    tpr = np.concatenate([[0.0], np.asarray(tpr, dtype=float), [1.0]])
    order = np.lexsort((tpr, fpr))
    return float(trapezoid_auc(fpr[order], tpr[order]))


class CutoffCurve:
    """
    Confusion counts and rates at every cutoff of an ascending grid.

    Rates are non-increasing in the cutoff for fixed probabilities.
    """

    def __init__(
        self,
        cutoffs: np.ndarray,
        tp: np.ndarray,
        fp: np.ndarray,
        tn: np.ndarray,
        fn: np.ndarray,
        cost_matrix: CostMatrix
    ):
        self.cutoffs = np.asarray(cutoffs, dtype=float)
        self.tp = np.asarray(tp, dtype=int)
        self.fp = np.asarray(fp, dtype=int)
        self.tn = np.asarray(tn, dtype=int)
        self.fn = np.asarray(fn, dtype=int)
        self.cost_matrix = cost_matrix

        n = self.tp + self.fp + self.tn + self.fn
        self.true_positive_rate = self.tp / (self.tp + self.fn)
        self.false_positive_rate = self.fp / (self.fp + self.tn)
        self.accuracy = (self.tp + self.tn) / n
        self.expected_cost = cost_matrix.expected_cost(self.fp, self.fn).astype(float)

    def __len__(self) -> int:
        return len(self.cutoffs)

    def __getitem__(self, i: int) -> CutoffPoint:
        return CutoffPoint(
            cutoff=float(self.cutoffs[i]),
            true_positive_rate=float(self.true_positive_rate[i]),
            false_positive_rate=float(self.false_positive_rate[i]),
            accuracy=float(self.accuracy[i]),
            expected_cost=float(self.expected_cost[i])
        )

    def __iter__(self) -> Iterator[CutoffPoint]:
        for i in range(len(self)):
            yield self[i]

    def points(self) -> List[CutoffPoint]:
        return list(self)

    def roc_points(self) -> Tuple[np.ndarray, np.ndarray]:
        """(false positive rates, true positive rates), one pair per cutoff."""
        return self.false_positive_rate.copy(), self.true_positive_rate.copy()

    def auc(self) -> float:
        return compute_auc(self.false_positive_rate, self.true_positive_rate)

    def to_frame(self) -> pd.DataFrame:
        """One row per cutoff, for tabulation or plotting collaborators."""
        return pd.DataFrame({
            "cutoff": self.cutoffs,
            "true_positive_rate": self.true_positive_rate,
            "false_positive_rate": self.false_positive_rate,
            "accuracy": self.accuracy,
            "expected_cost": self.expected_cost,
            "tp": self.tp,
            "fp": self.fp,
            "tn": self.tn,
            "fn": self.fn,
        })

    def __repr__(self) -> str:
        return (f"CutoffCurve(n_cutoffs={len(self)}, "
                f"range=[{self.cutoffs[0]:.4g}, {self.cutoffs[-1]:.4g}])")


def sweep_cutoffs(
    probabilities: ArrayLike,
    labels: ArrayLike,
    grid: ArrayLike,
    cost_matrix: CostMatrix
) -> CutoffCurve:
    """
    Confusion counts at every cutoff of ``grid``.

    Raises:
        DegenerateEvaluationError: if ``labels`` contains a single class
    """
    probabilities, labels = validate_scores(probabilities, labels)
    grid = np.sort(np.asarray(grid, dtype=float))
    if grid.size == 0:
        raise ValueError("cutoff grid must not be empty")

    n_pos = int(np.sum(labels == 1))
    n_neg = int(np.sum(labels == 0))
    if n_pos == 0 or n_neg == 0:
        raise DegenerateEvaluationError(
            f"ROC needs both classes (positives={n_pos}, negatives={n_neg})"
        )

    # count positives scored above each cutoff via sorted scores
    pos_scores = np.sort(probabilities[labels == 1])
    neg_scores = np.sort(probabilities[labels == 0])
    tp = n_pos - np.searchsorted(pos_scores, grid, side='right')
    fp = n_neg - np.searchsorted(neg_scores, grid, side='right')

    return CutoffCurve(grid, tp, fp, n_neg - fp, n_pos - tp, cost_matrix)


class ThresholdResult(NamedTuple):
    curve: CutoffCurve
    best_cutoff: float
    best_index: int
    auc: float

    @property
    def best_point(self) -> CutoffPoint:
        return self.curve[self.best_index]


class ThresholdOptimizer:
    """
    Pick the cutoff minimizing expected misclassification cost.

    Ties in cost go to the smallest cutoff, the one flagging the most
    positives.

    Example:
        >>> optimizer = ThresholdOptimizer(CostMatrix(cost_fp=10, cost_fn=100))
        >>> result = optimizer.optimize(probabilities, labels)
        >>> result.best_cutoff, result.auc
    """

    def __init__(self, cost_matrix: CostMatrix, grid: Optional[ArrayLike] = None):
        self.cost_matrix = cost_matrix
        self.grid = cutoff_grid() if grid is None else np.sort(np.asarray(grid, dtype=float))

    def optimize(self, probabilities: ArrayLike, labels: ArrayLike) -> ThresholdResult:
        curve = sweep_cutoffs(probabilities, labels, self.grid, self.cost_matrix)
        # argmin returns the first minimum, i.e. the smallest cutoff
        best_index = int(np.argmin(curve.expected_cost))
        result = ThresholdResult(
            curve=curve,
            best_cutoff=float(curve.cutoffs[best_index]),
            best_index=best_index,
            auc=curve.auc()
        )
        logger.info("Cost-optimal cutoff %.4f (expected cost %.2f, AUC %.4f)",
                    result.best_cutoff, curve.expected_cost[best_index], result.auc)
        return result

    def __repr__(self) -> str:
        return (f"ThresholdOptimizer(cost_fp={self.cost_matrix.cost_fp}, "
                f"cost_fn={self.cost_matrix.cost_fn}, n_cutoffs={len(self.grid)})")


def optimize_threshold(
    probabilities: ArrayLike,
    labels: ArrayLike,
    grid: ArrayLike,
    cost_matrix: CostMatrix
) -> Tuple[CutoffCurve, float]:
    """
    Functional form of ThresholdOptimizer.

    Returns:
        curve: CutoffCurve over ``grid``
        best_cutoff: Cost-minimizing cutoff
    """
    result = ThresholdOptimizer(cost_matrix, grid).optimize(probabilities, labels)
    return result.curve, result.best_cutoff
