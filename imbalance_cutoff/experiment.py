"""
End-to-end experiment orchestration.

One experiment is: stratified split, resample the train set, fit, score
the test set, search the cost-optimal cutoff and evaluate it. Sweeps run
many independent experiments and record failing configurations instead of
aborting.
"""

import inspect
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Union

import numpy as np
from joblib import Parallel, delayed

from .classifier import CLASSIFIERS, create_classifier
from .dataset import Dataset
from .evaluation import evaluate
from .exceptions import ImbalanceCutoffError, SchemaMismatchError
from .report import ExperimentReport, FailedRun, SweepResult
from .resampling import create_resampler
from .splitting import stratified_split
from .thresholds import CostMatrix, ThresholdOptimizer, cutoff_grid

logger = logging.getLogger(__name__)

DEFAULT_CUTOFF = 0.5


def derive_seeds(seed: Optional[int]) -> Dict[str, int]:
    """
    Independent integer seeds for the split, the resampler and
    cross-validation, all derived from one experiment seed.
    """
    split_seed, resample_seed, cv_seed = np.random.SeedSequence(seed).generate_state(3)
    return {"split": int(split_seed), "resample": int(resample_seed), "cv": int(cv_seed)}


@dataclass(frozen=True)
class ExperimentConfig:
    """
    One configuration: resampling strategy x classifier x cost assumption.

    Attributes:
        name: Label used in reports and logs
        resampler: 'none', 'random', 'smote', 'dbsmote' or 'rose'
        resampler_params: Extra resampler constructor arguments
        classifier: 'logistic' or 'lasso'
        classifier_params: Extra classifier constructor arguments
        cost_matrix: False positive / false negative costs
        grid_start, grid_end, grid_step: Cutoff grid
        train_fraction: Share of each class used for training
        seed: Seed all randomness is derived from
        feature_columns: Columns the model uses (default: all)
    """

    name: str
    resampler: Optional[str] = "none"
    resampler_params: Dict[str, Any] = field(default_factory=dict)
    classifier: str = "logistic"
    classifier_params: Dict[str, Any] = field(default_factory=dict)
    cost_matrix: CostMatrix = CostMatrix(cost_fp=1.0, cost_fn=1.0)
    grid_start: float = 0.01
    grid_end: float = 0.90
    grid_step: float = 0.001
    train_fraction: float = 0.7
    seed: Optional[int] = 42
    feature_columns: Optional[Sequence[str]] = None

    def __post_init__(self):
        if not 0.0 < self.train_fraction < 1.0:
            raise ValueError(f"train_fraction must be in (0, 1), got {self.train_fraction}")
        if self.classifier not in CLASSIFIERS:
            raise ValueError(f"Unknown classifier: {self.classifier}. "
                             f"Use one of {sorted(CLASSIFIERS)}.")

    @property
    def strategy(self) -> str:
        return self.resampler or "none"

    def grid(self) -> np.ndarray:
        return cutoff_grid(self.grid_start, self.grid_end, self.grid_step)


class Experiment:
    """
    Run one configuration end to end.

    Example:
        >>> config = ExperimentConfig("smote-cost10", resampler="smote",
        ...                           cost_matrix=CostMatrix(1, 10))
        >>> report = Experiment(config).run(dataset)
        >>> print(report.summary())
    """

    def __init__(self, config: ExperimentConfig):
        self.config = config

    def _classifier_params(self, cv_seed: int) -> Dict[str, Any]:
        params = dict(self.config.classifier_params)
        accepted = inspect.signature(CLASSIFIERS[self.config.classifier]).parameters
        if "random_state" in accepted:
            params.setdefault("random_state", cv_seed)
        return params

    def run(self, dataset: Dataset) -> ExperimentReport:
        """
        Execute the experiment.

        Raises:
            ImbalanceCutoffError: any pipeline error; the run is aborted and
                no partial report is produced
        """
        cfg = self.config
        seeds = derive_seeds(cfg.seed)
        logger.info("Experiment '%s': resampler=%s, classifier=%s, costs FP=%g FN=%g",
                    cfg.name, cfg.strategy, cfg.classifier,
                    cfg.cost_matrix.cost_fp, cfg.cost_matrix.cost_fn)

        # neighbor search and kernel smoothing only see the model's columns
        if cfg.feature_columns is not None:
            missing = [c for c in cfg.feature_columns if c not in dataset.feature_names]
            if missing:
                raise SchemaMismatchError(f"Dataset lacks configured feature columns {missing}")
            dataset = dataset.select_features(list(cfg.feature_columns))
        split = stratified_split(dataset, cfg.train_fraction, seed=seeds["split"])

        resampler_params = {"random_state": seeds["resample"]}
        resampler_params.update(cfg.resampler_params)
        resampler = create_resampler(cfg.resampler, **resampler_params)
        resampled = resampler.resample(split.train)

        classifier = create_classifier(cfg.classifier, **self._classifier_params(seeds["cv"]))
        model = classifier.fit(resampled, cfg.feature_columns)
        probabilities = classifier.predict(model, split.test)

        result = ThresholdOptimizer(cfg.cost_matrix, cfg.grid()).optimize(probabilities,
                                                                          split.test.y)
        confusion = evaluate(probabilities, split.test.y, result.best_cutoff)
        default_confusion = evaluate(probabilities, split.test.y, DEFAULT_CUTOFF)

        return ExperimentReport(
            name=cfg.name,
            strategy=cfg.strategy,
            classifier_config=classifier.get_config(),
            cost_matrix=cfg.cost_matrix,
            curve=result.curve,
            best_cutoff=result.best_cutoff,
            auc=result.auc,
            confusion=confusion,
            default_confusion=default_confusion,
            train_counts=split.train.class_counts(),
            resampled_counts=resampled.class_counts(),
            test_counts=split.test.class_counts(),
            model=model,
            seed=cfg.seed
        )


def run_experiment(dataset: Dataset, config: ExperimentConfig) -> Union[ExperimentReport, FailedRun]:
    """Run one configuration, turning pipeline errors into a FailedRun."""
    try:
        return Experiment(config).run(dataset)
    except ImbalanceCutoffError as exc:
        logger.warning("Skipping experiment '%s' (%s): %s: %s",
                       config.name, config.strategy, type(exc).__name__, exc)
        return FailedRun(name=config.name, strategy=config.strategy,
                         error_kind=type(exc).__name__, message=str(exc))


def run_sweep(
    dataset: Dataset,
    configs: Sequence[ExperimentConfig],
    n_jobs: int = 1
) -> SweepResult:
    """
    Run independent experiments, optionally in parallel.

    Args:
        dataset: Dataset shared (read-only) by every configuration
        configs: Configurations to run
        n_jobs: joblib worker count (1 = sequential, -1 = all CPUs)

    Returns:
        SweepResult holding one report or failed run per config, in config order
    """
    outcomes: List[Union[ExperimentReport, FailedRun]] = Parallel(n_jobs=n_jobs)(
        delayed(run_experiment)(dataset, config) for config in configs
    )
    sweep = SweepResult(outcomes=list(outcomes))
    logger.info("Sweep finished: %d succeeded, %d failed",
                len(sweep.reports), len(sweep.failures))
    return sweep
