"""Tests for imbalance_cutoff.experiment module."""

import numpy as np
import pytest

from imbalance_cutoff.exceptions import InsufficientMinorityError, SchemaMismatchError
from imbalance_cutoff.experiment import (
    DEFAULT_CUTOFF,
    Experiment,
    ExperimentConfig,
    derive_seeds,
    run_experiment,
    run_sweep,
)
from imbalance_cutoff.report import ExperimentReport, FailedRun
from imbalance_cutoff.thresholds import CostMatrix

from conftest import make_separable


class TestDeriveSeeds:
    def test_deterministic(self):
        assert derive_seeds(7) == derive_seeds(7)

    def test_streams_differ(self):
        seeds = derive_seeds(7)
        assert len(set(seeds.values())) == 3
        assert derive_seeds(8) != seeds


class TestExperimentConfig:
    def test_defaults(self):
        config = ExperimentConfig("baseline")
        assert config.strategy == "none"
        assert config.cost_matrix == CostMatrix(1.0, 1.0)
        assert len(config.grid()) == 891

    def test_none_resampler_strategy(self):
        assert ExperimentConfig("x", resampler=None).strategy == "none"

    def test_invalid_train_fraction(self):
        with pytest.raises(ValueError, match="train_fraction"):
            ExperimentConfig("x", train_fraction=1.0)

    def test_unknown_classifier(self):
        with pytest.raises(ValueError, match="Unknown classifier"):
            ExperimentConfig("x", classifier="forest")


class TestExperiment:
    @pytest.mark.parametrize("strategy", ["none", "random", "smote", "dbsmote", "rose"])
    def test_runs_every_strategy(self, imbalanced_dataset, strategy):
        config = ExperimentConfig(strategy, resampler=strategy, cost_matrix=CostMatrix(1, 10))
        report = Experiment(config).run(imbalanced_dataset)

        assert isinstance(report, ExperimentReport)
        assert report.strategy == strategy
        assert 0.5 < report.auc <= 1.0
        assert config.grid_start <= report.best_cutoff <= config.grid_end
        assert report.confusion.n == sum(report.test_counts.values())
        assert report.expected_cost == report.curve.expected_cost.min()

    def test_counts_reflect_split_and_resampling(self, imbalanced_dataset):
        config = ExperimentConfig("random", resampler="random")
        report = Experiment(config).run(imbalanced_dataset)
        assert report.train_counts == {0: 252, 1: 28}
        assert report.test_counts == {0: 108, 1: 12}
        assert report.resampled_counts == {0: 252, 1: 252}

    def test_default_cutoff_reported(self, imbalanced_dataset):
        config = ExperimentConfig("baseline")
        report = Experiment(config).run(imbalanced_dataset)
        curve_index = int(np.argmin(np.abs(report.curve.cutoffs - DEFAULT_CUTOFF)))
        assert report.default_confusion.fp == report.curve.fp[curve_index]
        assert report.default_confusion.fn == report.curve.fn[curve_index]

    def test_same_seed_reproduces_report(self, imbalanced_dataset):
        config = ExperimentConfig("smote", resampler="smote", cost_matrix=CostMatrix(1, 5), seed=11)
        first = Experiment(config).run(imbalanced_dataset).to_dict()
        second = Experiment(config).run(imbalanced_dataset).to_dict()
        assert first == second

    def test_different_seed_changes_split(self, imbalanced_dataset):
        a = Experiment(ExperimentConfig("a", seed=1)).run(imbalanced_dataset)
        b = Experiment(ExperimentConfig("b", seed=2)).run(imbalanced_dataset)
        assert a.model.coefficients != b.model.coefficients

    def test_feature_columns_restrict_model(self, imbalanced_dataset):
        config = ExperimentConfig("subset", resampler="smote", feature_columns=["x0", "x2"])
        report = Experiment(config).run(imbalanced_dataset)
        assert list(report.model.feature_columns) == ["x0", "x2"]
        assert set(report.model.coefficients) == {"x0", "x2"}

    def test_missing_feature_column(self, imbalanced_dataset):
        config = ExperimentConfig("bad", feature_columns=["x0", "nope"])
        with pytest.raises(SchemaMismatchError, match="nope"):
            Experiment(config).run(imbalanced_dataset)

    def test_resampler_params_forwarded(self, imbalanced_dataset):
        config = ExperimentConfig("smote-k50", resampler="smote",
                                  resampler_params={"k_neighbors": 50})
        with pytest.raises(InsufficientMinorityError):
            Experiment(config).run(imbalanced_dataset)

    def test_lasso_gets_cv_seed(self, imbalanced_dataset):
        config = ExperimentConfig("lasso", classifier="lasso",
                                  classifier_params={"Cs": 4, "n_folds": 3}, seed=5)
        report = Experiment(config).run(imbalanced_dataset)
        assert report.classifier_config["classifier"] == "lasso"
        assert report.classifier_config["random_state"] == derive_seeds(5)["cv"]
        assert report.model.C is not None


class TestRunSweep:
    def test_failure_is_recorded(self, imbalanced_dataset):
        report = run_experiment(
            imbalanced_dataset,
            ExperimentConfig("bad", resampler="smote", resampler_params={"k_neighbors": 50})
        )
        assert isinstance(report, FailedRun)
        assert report.error_kind == "InsufficientMinorityError"
        assert report.strategy == "smote"

    def test_missing_feature_column_is_recorded(self, imbalanced_dataset):
        configs = [
            ExperimentConfig("ok"),
            ExperimentConfig("bad", feature_columns=["x0", "nope"]),
        ]
        sweep = run_sweep(imbalanced_dataset, configs)
        assert [r.name for r in sweep.reports] == ["ok"]
        assert len(sweep.failures) == 1
        assert sweep.failures[0].error_kind == "SchemaMismatchError"
        assert "nope" in sweep.failures[0].message

    def test_separable_data_is_recorded(self):
        dataset = make_separable(n_negative=200, n_positive=40)
        outcome = run_experiment(dataset, ExperimentConfig("separable"))
        assert isinstance(outcome, FailedRun)
        assert outcome.error_kind == "SeparationError"

    def test_outcomes_keep_config_order(self, imbalanced_dataset):
        configs = [
            ExperimentConfig("bad-1", resampler="smote", resampler_params={"k_neighbors": 50}),
            ExperimentConfig("none"),
            ExperimentConfig("bad-2", feature_columns=["missing"]),
            ExperimentConfig("random", resampler="random"),
        ]
        sweep = run_sweep(imbalanced_dataset, configs)
        assert [o.name for o in sweep.outcomes] == ["bad-1", "none", "bad-2", "random"]
        frame = sweep.to_frame()
        assert frame["status"].tolist() == ["failed", "ok", "failed", "ok"]
        assert frame["config_index"].tolist() == [0, 1, 2, 3]

    def test_sweep_keeps_going(self, imbalanced_dataset):
        configs = [
            ExperimentConfig("none", cost_matrix=CostMatrix(1, 10)),
            ExperimentConfig("bad", resampler="smote", resampler_params={"k_neighbors": 50}),
            ExperimentConfig("rose", resampler="rose", cost_matrix=CostMatrix(1, 10)),
        ]
        sweep = run_sweep(imbalanced_dataset, configs)
        assert [r.name for r in sweep.reports] == ["none", "rose"]
        assert [f.name for f in sweep.failures] == ["bad"]

    def test_parallel_matches_sequential(self, imbalanced_dataset):
        configs = [ExperimentConfig(s, resampler=s, seed=3) for s in ("none", "random", "smote")]
        sequential = run_sweep(imbalanced_dataset, configs, n_jobs=1)
        parallel = run_sweep(imbalanced_dataset, configs, n_jobs=2)
        assert [r.to_dict() for r in sequential.reports] == [r.to_dict() for r in parallel.reports]

    def test_empty_sweep(self, imbalanced_dataset):
        sweep = run_sweep(imbalanced_dataset, [])
        assert sweep.reports == [] and sweep.failures == []
        assert sweep.best_by_cost() is None
