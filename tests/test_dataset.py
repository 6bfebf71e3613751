"""Tests for imbalance_cutoff.dataset module."""

import warnings

import numpy as np
import pandas as pd
import pytest

from imbalance_cutoff.dataset import Dataset, ResampledDataset, ORIGINAL, SYNTHETIC


@pytest.fixture
def frame():
    return pd.DataFrame({
        "alcohol": [9.4, 9.8, 12.8, 10.0, 13.1],
        "sulphates": [0.56, 0.68, 0.80, 0.58, 0.75],
        "quality": [5, 5, 8, 6, 9],
    })


class TestInit:
    def test_basic_init(self, frame):
        ds = Dataset(frame[["alcohol", "sulphates"]], [0, 0, 1, 0, 1])
        assert ds.n_rows == 5
        assert ds.n_features == 2
        assert ds.feature_names == ["alcohol", "sulphates"]

    def test_mismatched_lengths_raises(self, frame):
        with pytest.raises(ValueError, match="same length"):
            Dataset(frame[["alcohol"]], [0, 1])

    def test_non_binary_labels_raise(self, frame):
        with pytest.raises(ValueError, match="binary"):
            Dataset(frame[["alcohol"]], [0, 1, 2, 0, 1])

    def test_missing_feature_values_raise(self, frame):
        features = frame[["alcohol"]].copy()
        features.iloc[0, 0] = np.nan
        with pytest.raises(ValueError, match="missing"):
            Dataset(features, [0, 0, 1, 0, 1])

    def test_non_numeric_feature_raises(self):
        with pytest.raises(ValueError, match="numeric"):
            Dataset(pd.DataFrame({"colour": ["red", "white"]}), [0, 1])

    def test_requires_dataframe(self):
        with pytest.raises(TypeError):
            Dataset(np.zeros((2, 2)), [0, 1])

    def test_arrays_are_read_only(self, frame):
        ds = Dataset(frame[["alcohol"]], [0, 0, 1, 0, 1])
        with pytest.raises(ValueError):
            ds.y[0] = 1
        with pytest.raises(ValueError):
            ds.X[0, 0] = 0.0

    def test_source_frame_is_copied(self, frame):
        features = frame[["alcohol"]].copy()
        ds = Dataset(features, [0, 0, 1, 0, 1])
        features.iloc[0, 0] = 100.0
        assert ds.X[0, 0] == pytest.approx(9.4)

    def test_build_emits_no_warnings(self, frame):
        with warnings.catch_warnings():
            warnings.simplefilter("error")
            ds = Dataset(frame[["alcohol", "quality"]], [0, 0, 1, 0, 1])
        assert ds.features["quality"].dtype == float

    def test_float_frame_is_copied(self, frame):
        features = frame[["alcohol", "sulphates"]].copy()
        ds = Dataset(features, [0, 0, 1, 0, 1])
        features.loc[0, "sulphates"] = -1.0
        assert ds.features.loc[0, "sulphates"] == pytest.approx(0.56)

    def test_default_provenance(self, frame):
        ds = Dataset(frame[["alcohol"]], [0, 0, 1, 0, 1])
        assert list(ds.provenance) == [ORIGINAL] * 5
        assert not ds.is_synthetic.any()

    def test_unknown_provenance_raises(self, frame):
        with pytest.raises(ValueError, match="provenance"):
            Dataset(frame[["alcohol"]], [0, 0, 1, 0, 1], ["imported"] * 5)


class TestFromFrame:
    def test_label_rule(self, frame):
        ds = Dataset.from_frame(frame, "quality", label_rule=lambda q: q >= 8)
        assert ds.y.tolist() == [0, 0, 1, 0, 1]
        assert ds.feature_names == ["alcohol", "sulphates"]

    def test_explicit_feature_columns(self, frame):
        ds = Dataset.from_frame(frame, "quality", feature_columns=["alcohol"],
                                label_rule=lambda q: q >= 8)
        assert ds.feature_names == ["alcohol"]

    def test_missing_label_column(self, frame):
        with pytest.raises(ValueError, match="Label column"):
            Dataset.from_frame(frame, "rating")

    def test_missing_feature_column(self, frame):
        with pytest.raises(ValueError, match="not found"):
            Dataset.from_frame(frame, "quality", feature_columns=["density"],
                               label_rule=lambda q: q >= 8)

    def test_raw_outcome_must_be_binary_without_rule(self, frame):
        with pytest.raises(ValueError, match="binary"):
            Dataset.from_frame(frame, "quality")


class TestAccessors:
    def test_class_counts(self, frame):
        ds = Dataset(frame[["alcohol"]], [0, 0, 1, 0, 1])
        assert ds.class_counts() == {0: 3, 1: 2}
        assert ds.positive_rate == pytest.approx(0.4)

    def test_class_counts_include_absent_class(self, frame):
        ds = Dataset(frame[["alcohol"]], [0, 0, 0, 0, 0])
        assert ds.class_counts() == {0: 5, 1: 0}

    def test_subset_keeps_row_ids(self, frame):
        ds = Dataset(frame[["alcohol"]], [0, 0, 1, 0, 1])
        sub = ds.subset([4, 2])
        assert sub.row_ids == [4, 2]
        assert sub.y.tolist() == [1, 1]

    def test_select_features(self, frame):
        ds = Dataset(frame[["alcohol", "sulphates"]], [0, 0, 1, 0, 1])
        assert ds.select_features(["sulphates"]).feature_names == ["sulphates"]
        with pytest.raises(ValueError, match="not found"):
            ds.select_features(["density"])

    def test_to_frame(self, frame):
        ds = Dataset(frame[["alcohol"]], [0, 0, 1, 0, 1])
        out = ds.to_frame(label_column="exceptional")
        assert list(out.columns) == ["alcohol", "exceptional"]
        assert out["exceptional"].tolist() == [0, 0, 1, 0, 1]

    def test_repr(self, frame):
        ds = Dataset(frame[["alcohol"]], [0, 0, 1, 0, 1])
        assert "positives=2" in repr(ds)


class TestResampledDataset:
    def test_parents_default_to_minus_one(self):
        ds = ResampledDataset(pd.DataFrame({"a": [1.0, 2.0]}), [0, 1],
                              [ORIGINAL, SYNTHETIC], strategy="smote")
        assert ds.parents.tolist() == [-1, -1]
        assert ds.is_synthetic.tolist() == [False, True]
        assert "smote" in repr(ds)

    def test_parent_length_checked(self):
        with pytest.raises(ValueError, match="parents"):
            ResampledDataset(pd.DataFrame({"a": [1.0, 2.0]}), [0, 1],
                             [ORIGINAL, ORIGINAL], strategy="none", parents=[0])
