"""Tests for imbalance_cutoff.report module."""

import json

import pytest

from imbalance_cutoff.experiment import Experiment, ExperimentConfig
from imbalance_cutoff.report import FailedRun, SweepResult
from imbalance_cutoff.thresholds import CostMatrix


@pytest.fixture
def report(imbalanced_dataset):
    config = ExperimentConfig("smote-fn10", resampler="smote", cost_matrix=CostMatrix(1, 10))
    return Experiment(config).run(imbalanced_dataset)


class TestExperimentReport:
    def test_summary(self, report):
        text = report.summary()
        assert "EXPERIMENT: smote-fn10" in text
        assert "Resampling: smote" in text
        assert "Best cutoff:" in text

    def test_to_dict_is_json_ready(self, report):
        d = report.to_dict()
        assert d["name"] == "smote-fn10"
        assert d["cost_matrix"] == {"cost_fp": 1, "cost_fn": 10}
        assert set(d["model"]["coefficients"]) == {"x0", "x1", "x2"}
        assert len(d["curve"]["cutoff"]) == 891
        json.dumps(d)

    def test_repr(self, report):
        assert "smote-fn10" in repr(report)


class TestSweepResult:
    def test_best_by_cost(self, imbalanced_dataset, report):
        other = Experiment(ExperimentConfig("none-fn10", cost_matrix=CostMatrix(1, 10))).run(
            imbalanced_dataset)
        sweep = SweepResult(outcomes=[report, other])
        best = sweep.best_by_cost()
        assert best.expected_cost == min(report.expected_cost, other.expected_cost)

    def test_to_frame(self, report):
        failure = FailedRun("bad", "dbsmote", "InsufficientDataError", "all noise")
        frame = SweepResult(outcomes=[report, failure]).to_frame()
        assert frame["status"].tolist() == ["ok", "failed"]
        assert frame["config_index"].tolist() == [0, 1]
        assert frame.loc[1, "error"] == "InsufficientDataError"
        assert frame.loc[0, "auc"] == pytest.approx(report.auc)

    def test_to_frame_keeps_config_order(self, report):
        failure = FailedRun("bad", "smote", "InsufficientMinorityError", "k too large")
        sweep = SweepResult(outcomes=[failure, report, failure])
        frame = sweep.to_frame()
        assert frame["status"].tolist() == ["failed", "ok", "failed"]
        assert frame["name"].tolist() == ["bad", "smote-fn10", "bad"]
        assert sweep.reports == [report]
        assert len(sweep.failures) == 2

    def test_best_by_cost_ignores_failures(self, report):
        failure = FailedRun("bad", "dbsmote", "InsufficientDataError", "all noise")
        assert SweepResult(outcomes=[failure, report]).best_by_cost() is report
        assert SweepResult(outcomes=[failure]).best_by_cost() is None
