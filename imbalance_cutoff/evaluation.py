"""
Confusion matrix at a fixed cutoff and the metrics derived from it.
"""

from dataclasses import asdict, dataclass
from typing import Any, Dict, Optional

from sklearn.metrics import confusion_matrix

from .thresholds import ArrayLike, CostMatrix, validate_scores


def _ratio(numerator: int, denominator: int) -> Optional[float]:
    if denominator == 0:
        return None
    return numerator / denominator


@dataclass(frozen=True)
class ConfusionMatrix:
    """
    Counts of a binary decision. Derived metrics are computed on access and
    are ``None`` when their denominator is zero.
    """

    tp: int
    fp: int
    tn: int
    fn: int

    def __post_init__(self):
        for name in ("tp", "fp", "tn", "fn"):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} must be non-negative")

    @property
    def n(self) -> int:
        return self.tp + self.fp + self.tn + self.fn

    @property
    def accuracy(self) -> Optional[float]:
        return _ratio(self.tp + self.tn, self.n)

    @property
    def sensitivity(self) -> Optional[float]:
        """True positive rate (recall)."""
        return _ratio(self.tp, self.tp + self.fn)

    @property
    def specificity(self) -> Optional[float]:
        """True negative rate."""
        return _ratio(self.tn, self.tn + self.fp)

    @property
    def positive_predictive_value(self) -> Optional[float]:
        """Precision."""
        return _ratio(self.tp, self.tp + self.fp)

    @property
    def negative_predictive_value(self) -> Optional[float]:
        return _ratio(self.tn, self.tn + self.fn)

    @property
    def f1(self) -> Optional[float]:
        return _ratio(2 * self.tp, 2 * self.tp + self.fp + self.fn)

    def expected_cost(self, cost_matrix: CostMatrix) -> float:
        return float(cost_matrix.expected_cost(self.fp, self.fn))

    def to_dict(self) -> Dict[str, Any]:
        """Counts and derived metrics (JSON-ready; missing values are None)."""
        result = asdict(self)
        result.update({
            "n": self.n,
            "accuracy": self.accuracy,
            "sensitivity": self.sensitivity,
            "specificity": self.specificity,
            "positive_predictive_value": self.positive_predictive_value,
            "negative_predictive_value": self.negative_predictive_value,
            "f1": self.f1,
        })
        return result

    def summary(self) -> str:
        def fmt(value: Optional[float]) -> str:
            return "n/a" if value is None else f"{value:.4f}"

        lines = [
            "              predicted 1   predicted 0",
            f"actual 1      {self.tp:>11d}   {self.fn:>11d}",
            f"actual 0      {self.fp:>11d}   {self.tn:>11d}",
            f"Accuracy: {fmt(self.accuracy)}  Sensitivity: {fmt(self.sensitivity)}  "
            f"Specificity: {fmt(self.specificity)}  PPV: {fmt(self.positive_predictive_value)}",
        ]
        return "\n".join(lines)


def evaluate(probabilities: ArrayLike, labels: ArrayLike, cutoff: float = 0.5) -> ConfusionMatrix:
    """
    Confusion matrix of the decision ``probability > cutoff``.

    Args:
        probabilities: Positive-class probabilities (n_rows,)
        labels: True binary labels (n_rows,)
        cutoff: Decision threshold

    Returns:
        ConfusionMatrix
    """
    probabilities, labels = validate_scores(probabilities, labels)
    predicted = (probabilities > cutoff).astype(int)
    tn, fp, fn, tp = confusion_matrix(labels, predicted, labels=[0, 1]).ravel()
    return ConfusionMatrix(tp=int(tp), fp=int(fp), tn=int(tn), fn=int(fn))
