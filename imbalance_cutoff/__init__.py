"""
Imbalance-Cutoff: Resampling and Cost-Sensitive Threshold Optimization

Rebalances imbalanced binary training sets (random oversampling, SMOTE,
DBSMOTE, ROSE), fits logistic models and picks the decision cutoff that
minimizes expected misclassification cost.
"""

from .classifier import LassoLogisticClassifier, LogisticClassifier, create_classifier
from .dataset import Dataset, ResampledDataset, Split
from .evaluation import ConfusionMatrix, evaluate
from .exceptions import (
    DegenerateEvaluationError,
    ImbalanceCutoffError,
    InsufficientDataError,
    InsufficientMinorityError,
    SchemaMismatchError,
    SeparationError,
)
from .experiment import Experiment, ExperimentConfig, run_sweep
from .report import ExperimentReport, FailedRun, SweepResult
from .resampling import DBSMOTE, ROSE, SMOTE, RandomOverSample, create_resampler
from .splitting import stratified_split
from .thresholds import CostMatrix, CutoffCurve, ThresholdOptimizer, cutoff_grid, optimize_threshold

__version__ = "0.1.0"
__all__ = [
    "Dataset", "ResampledDataset", "Split", "stratified_split",
    "RandomOverSample", "SMOTE", "DBSMOTE", "ROSE", "create_resampler",
    "LogisticClassifier", "LassoLogisticClassifier", "create_classifier",
    "CostMatrix", "CutoffCurve", "ThresholdOptimizer", "cutoff_grid", "optimize_threshold",
    "ConfusionMatrix", "evaluate",
    "Experiment", "ExperimentConfig", "ExperimentReport", "FailedRun", "SweepResult", "run_sweep",
    "ImbalanceCutoffError", "InsufficientDataError", "InsufficientMinorityError",
    "SeparationError", "SchemaMismatchError", "DegenerateEvaluationError",
]
