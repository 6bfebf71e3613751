"""
Report objects handed to presentation collaborators.
"""

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional, Union

import pandas as pd

from .classifier import FittedModel
from .evaluation import ConfusionMatrix
from .thresholds import CostMatrix, CutoffCurve


def _fmt(value: Optional[float]) -> str:
    return "n/a" if value is None else f"{value:.4f}"


class ExperimentReport:
    """
    Outcome of one experiment run.
    """

    def __init__(
        self,
        name: str,
        strategy: str,
        classifier_config: Dict[str, Any],
        cost_matrix: CostMatrix,
        curve: CutoffCurve,
        best_cutoff: float,
        auc: float,
        confusion: ConfusionMatrix,
        default_confusion: ConfusionMatrix,
        train_counts: Dict[int, int],
        resampled_counts: Dict[int, int],
        test_counts: Dict[int, int],
        model: FittedModel,
        seed: Optional[int] = None
    ):
        """
        Initialize report.

        Args:
            name: Experiment name
            strategy: Resampling strategy name
            classifier_config: Classifier parameters
            cost_matrix: Costs used for the threshold search
            curve: Test-set CutoffCurve
            best_cutoff: Cost-minimizing cutoff
            auc: Area under the test-set ROC curve
            confusion: Test-set confusion matrix at ``best_cutoff``
            default_confusion: Test-set confusion matrix at cutoff 0.5
            train_counts: Class counts of the train set before resampling
            resampled_counts: Class counts the classifier was fitted on
            test_counts: Class counts of the test set
            model: Fitted model
            seed: Experiment seed
        """
        self.name = name
        self.strategy = strategy
        self.classifier_config = classifier_config
        self.cost_matrix = cost_matrix
        self.curve = curve
        self.best_cutoff = best_cutoff
        self.auc = auc
        self.confusion = confusion
        self.default_confusion = default_confusion
        self.train_counts = train_counts
        self.resampled_counts = resampled_counts
        self.test_counts = test_counts
        self.model = model
        self.seed = seed

    @property
    def expected_cost(self) -> float:
        """Test-set cost at the selected cutoff."""
        return self.confusion.expected_cost(self.cost_matrix)

    @property
    def default_expected_cost(self) -> float:
        return self.default_confusion.expected_cost(self.cost_matrix)

    def summary(self) -> str:
        """Generate a text summary of the report."""
        lines = []
        lines.append("=" * 60)
        lines.append(f"EXPERIMENT: {self.name}")
        lines.append("=" * 60)
        lines.append(f"Resampling: {self.strategy}")
        lines.append(f"Classifier: {self.classifier_config.get('classifier')}")
        if self.model.C is not None:
            lines.append(f"Selected C: {self.model.C:.4g}")
        lines.append(f"Costs: FP={self.cost_matrix.cost_fp:g}, FN={self.cost_matrix.cost_fn:g}")
        lines.append(f"Train counts: {self.train_counts} -> resampled {self.resampled_counts}")
        lines.append(f"Test counts: {self.test_counts}")
        lines.append("")
        lines.append(f"AUC: {self.auc:.4f}")
        lines.append(f"Best cutoff: {self.best_cutoff:.4f} "
                     f"(expected cost {self.expected_cost:g}, "
                     f"vs {self.default_expected_cost:g} at 0.5)")
        lines.append("-" * 60)
        lines.append(self.confusion.summary())
        lines.append("-" * 60)
        lines.append(f"At cutoff 0.5: sensitivity {_fmt(self.default_confusion.sensitivity)}, "
                     f"specificity {_fmt(self.default_confusion.specificity)}")
        lines.append("=" * 60)
        return "\n".join(lines)

    def to_dict(self) -> Dict[str, Any]:
        """Export report as dictionary (for JSON serialization)."""
        return {
            "name": self.name,
            "strategy": self.strategy,
            "classifier": dict(self.classifier_config),
            "cost_matrix": asdict(self.cost_matrix),
            "seed": self.seed,
            "train_counts": self.train_counts,
            "resampled_counts": self.resampled_counts,
            "test_counts": self.test_counts,
            "auc": float(self.auc),
            "best_cutoff": float(self.best_cutoff),
            "expected_cost": self.expected_cost,
            "confusion": self.confusion.to_dict(),
            "default_confusion": self.default_confusion.to_dict(),
            "model": {
                "features": list(self.model.feature_columns),
                "coefficients": self.model.coefficients,
                "intercept": self.model.intercept,
                "C": self.model.C,
            },
            "curve": {column: values.tolist() for column, values in self.curve.to_frame().items()},
        }

    def __repr__(self) -> str:
        return (f"ExperimentReport(name='{self.name}', strategy='{self.strategy}', "
                f"auc={self.auc:.4f}, best_cutoff={self.best_cutoff:.4f})")


@dataclass(frozen=True)
class FailedRun:
    """A configuration skipped because of a recoverable pipeline error."""

    name: str
    strategy: str
    error_kind: str
    message: str


@dataclass
class SweepResult:
    """Outcomes of a multi-configuration sweep, in config order."""

    outcomes: List[Union[ExperimentReport, FailedRun]] = field(default_factory=list)

    @property
    def reports(self) -> List[ExperimentReport]:
        return [o for o in self.outcomes if not isinstance(o, FailedRun)]

    @property
    def failures(self) -> List[FailedRun]:
        return [o for o in self.outcomes if isinstance(o, FailedRun)]

    def best_by_cost(self) -> Optional[ExperimentReport]:
        """Successful run with the lowest test-set expected cost (first on ties)."""
        reports = self.reports
        if not reports:
            return None
        return min(reports, key=lambda report: report.expected_cost)

    def to_frame(self) -> pd.DataFrame:
        """One row per configuration, failed runs included, in config order."""
        rows = []
        for position, outcome in enumerate(self.outcomes):
            if isinstance(outcome, FailedRun):
                rows.append({
                    "config_index": position,
                    "name": outcome.name,
                    "strategy": outcome.strategy,
                    "status": "failed",
                    "error": outcome.error_kind,
                })
            else:
                rows.append({
                    "config_index": position,
                    "name": outcome.name,
                    "strategy": outcome.strategy,
                    "status": "ok",
                    "auc": outcome.auc,
                    "best_cutoff": outcome.best_cutoff,
                    "expected_cost": outcome.expected_cost,
                    "sensitivity": outcome.confusion.sensitivity,
                    "specificity": outcome.confusion.specificity,
                    "ppv": outcome.confusion.positive_predictive_value,
                    "error": None,
                })
        return pd.DataFrame(rows, columns=["config_index", "name", "strategy", "status", "auc",
                                           "best_cutoff", "expected_cost", "sensitivity",
                                           "specificity", "ppv", "error"])
