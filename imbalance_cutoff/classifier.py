"""
Probabilistic classifiers fitted on (possibly resampled) training sets.

Models are fitted on an explicit list of feature columns; ``predict``
looks those columns up by name so extra columns in the scoring data are
ignored and missing ones are reported.
"""

import logging
import re
import warnings
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

import numpy as np
import sklearn
from sklearn.exceptions import ConvergenceWarning
from sklearn.linear_model import LogisticRegression
from sklearn.model_selection import StratifiedKFold
from sklearn.pipeline import Pipeline, make_pipeline
from sklearn.preprocessing import StandardScaler

from .dataset import Dataset
from .exceptions import InsufficientDataError, SchemaMismatchError, SeparationError

logger = logging.getLogger(__name__)


def _sklearn_version_tuple(ver: str) -> Tuple[int, int, int]:
    nums = re.findall(r"\d+", ver)
    nums = (nums + ["0", "0", "0"])[:3]
    return (int(nums[0]), int(nums[1]), int(nums[2]))


SKLEARN_VER = _sklearn_version_tuple(getattr(sklearn, "__version__", "0.0.0"))


def _unpenalized_kwargs() -> Dict[str, Any]:
    # scikit-learn >= 1.8 deprecates `penalty`; C=inf means no penalty there.
    if SKLEARN_VER >= (1, 8, 0):
        return {"C": np.inf}
    return {"penalty": None}


def _l1_kwargs(C: float) -> Dict[str, Any]:
    if SKLEARN_VER >= (1, 8, 0):
        return {"C": C, "l1_ratio": 1.0}
    return {"C": C, "penalty": "l1"}


def binomial_deviance(y: np.ndarray, probabilities: np.ndarray) -> float:
    """-2 * log-likelihood of binary labels under the given probabilities."""
    p = np.clip(probabilities, 1e-15, 1.0 - 1e-15)
    return float(-2.0 * np.sum(y * np.log(p) + (1 - y) * np.log(1.0 - p)))


def _fit_converged(estimator: Pipeline, X: np.ndarray, y: np.ndarray, what: str) -> Pipeline:
    """Fit, turning convergence failures into SeparationError."""
    with warnings.catch_warnings():
        warnings.simplefilter("error", ConvergenceWarning)
        try:
            estimator.fit(X, y)
        except ConvergenceWarning as exc:
            raise SeparationError(f"{what} did not converge: {exc}") from exc

    coef = estimator[-1].coef_
    intercept = estimator[-1].intercept_
    if not (np.all(np.isfinite(coef)) and np.all(np.isfinite(intercept))):
        raise SeparationError(f"{what} produced non-finite coefficients")
    return estimator


def _check_separation(estimator: Pipeline, X: np.ndarray, y: np.ndarray, what: str) -> None:
    """
    Raise SeparationError when no maximum-likelihood estimate exists: the
    fitted linear score puts every positive at or above every negative, or
    some fitted probabilities are numerically 0 or 1.
    """
    scores = estimator.decision_function(X)
    pos_scores = scores[y == 1]
    neg_scores = scores[y == 0]
    if np.ptp(scores) > 0 and pos_scores.min() >= neg_scores.max():
        raise SeparationError(
            f"{what}: the classes are perfectly separated by the fitted linear score, "
            f"so maximum-likelihood estimates do not exist"
        )

    eps = 10 * np.finfo(float).eps
    probabilities = estimator.predict_proba(X)[:, 1]
    n_extreme = int(np.sum((probabilities < eps) | (probabilities > 1.0 - eps)))
    if n_extreme:
        raise SeparationError(f"{what}: {n_extreme} fitted probabilities numerically 0 or 1")


class FittedModel:
    """
    Fitted state of one classifier.

    Only the classifier instance that produced it may use it for
    prediction.
    """

    def __init__(
        self,
        estimator: Pipeline,
        feature_columns: List[str],
        owner: "Classifier",
        C: Optional[float] = None
    ):
        self.estimator = estimator
        self.feature_columns = list(feature_columns)
        self.owner = owner
        self.C = C

    @property
    def coefficients(self) -> Dict[str, float]:
        """Coefficients on the standardized scale when the model standardizes."""
        coef = self.estimator[-1].coef_[0]
        return {name: float(value) for name, value in zip(self.feature_columns, coef)}

    @property
    def intercept(self) -> float:
        return float(self.estimator[-1].intercept_[0])

    @property
    def n_iter(self) -> int:
        return int(np.max(self.estimator[-1].n_iter_))

    def selected_features(self) -> List[str]:
        """Features with a non-zero coefficient (all of them for unpenalized fits)."""
        return [name for name, value in self.coefficients.items() if value != 0.0]

    def __repr__(self) -> str:
        c_str = f", C={self.C:.4g}" if self.C is not None else ""
        return (f"FittedModel(owner={type(self.owner).__name__}, "
                f"n_features={len(self.feature_columns)}{c_str})")


class Classifier(ABC):
    """Abstract base class for probabilistic binary classifiers."""

    name = "base"

    def fit(self, dataset: Dataset, feature_columns: Optional[Sequence[str]] = None) -> FittedModel:
        """
        Fit on ``dataset`` using ``feature_columns`` (default: all features).

        Raises:
            SeparationError: if the optimizer does not converge or, for
                maximum-likelihood fits, the classes are separated
        """
        columns = list(feature_columns) if feature_columns is not None else dataset.feature_names
        missing = [c for c in columns if c not in dataset.feature_names]
        if missing:
            raise SchemaMismatchError(f"Training data lacks feature columns {missing}")
        counts = dataset.class_counts()
        if min(counts.values()) == 0:
            raise InsufficientDataError(f"Cannot fit a binary classifier on one class ({counts})")

        X = dataset.select_features(columns).X
        model = self._fit(X, dataset.y, columns)
        logger.info("Fitted %s on %d rows x %d features (%d iterations)",
                    self.name, dataset.n_rows, len(columns), model.n_iter)
        return model

    def predict(self, model: FittedModel, dataset: Dataset) -> np.ndarray:
        """
        Probability of the positive class for every row of ``dataset``.

        Raises:
            SchemaMismatchError: if fit-time columns are missing
        """
        if model.owner is not self:
            raise ValueError("Model was fitted by a different classifier instance")
        missing = [c for c in model.feature_columns if c not in dataset.feature_names]
        if missing:
            raise SchemaMismatchError(
                f"Prediction data lacks feature columns used at fit time: {missing}"
            )
        X = dataset.select_features(model.feature_columns).X
        return model.estimator.predict_proba(X)[:, 1]

    @abstractmethod
    def _fit(self, X: np.ndarray, y: np.ndarray, columns: List[str]) -> FittedModel:
        pass

    def get_config(self) -> Dict[str, Any]:
        """Constructor parameters, for reports."""
        config = {"classifier": self.name}
        config.update({k: v for k, v in vars(self).items() if not k.endswith("_")})
        return config

    def _scaled(self, estimator: LogisticRegression, standardize: bool) -> Pipeline:
        if standardize:
            return make_pipeline(StandardScaler(), estimator)
        return Pipeline([("logisticregression", estimator)])


class LogisticClassifier(Classifier):
    """
    Maximum-likelihood logistic regression.

    Uses scikit-learn's Newton solver ('newton-cholesky'), which performs
    the same updates as iteratively reweighted least squares.

    Args:
        standardize: Standardize features before fitting (probabilities are
                     unaffected, conditioning improves)
        max_iter: Newton iterations before declaring non-convergence
        tol: Solver tolerance
    """

    name = "logistic"

    def __init__(self, standardize: bool = True, max_iter: int = 100, tol: float = 1e-8):
        self.standardize = standardize
        self.max_iter = max_iter
        self.tol = tol

    def _fit(self, X: np.ndarray, y: np.ndarray, columns: List[str]) -> FittedModel:
        estimator = self._scaled(
            LogisticRegression(solver="newton-cholesky", max_iter=self.max_iter,
                               tol=self.tol, **_unpenalized_kwargs()),
            self.standardize
        )
        what = "Maximum-likelihood logistic regression"
        _fit_converged(estimator, X, y, what)
        _check_separation(estimator, X, y, what)
        return FittedModel(estimator, columns, owner=self)


class LassoLogisticClassifier(Classifier):
    """
    L1-penalized logistic regression with cross-validated strength.

    Every candidate inverse strength ``C`` is scored by stratified k-fold
    cross-validation on held-out binomial deviance; the ``C`` with the
    lowest mean deviance (the smallest ``C`` on ties) is refitted on the
    whole training set.

    Args:
        Cs: Candidate inverse strengths, or a count of log-spaced values
            between 1e-4 and 1e4
        n_folds: Cross-validation folds
        standardize: Standardize features (recommended for L1)
        max_iter: Solver iteration cap
        tol: Solver tolerance
        random_state: Seed for fold assignment and the solver

    Attributes:
        Cs_: Candidate grid actually used
        cv_deviance_: Mean held-out deviance per candidate
    """

    name = "lasso"

    def __init__(
        self,
        Cs: Union[int, Sequence[float]] = 20,
        n_folds: int = 5,
        standardize: bool = True,
        max_iter: int = 1000,
        tol: float = 1e-6,
        random_state: Optional[int] = None
    ):
        if n_folds < 2:
            raise ValueError(f"n_folds must be >= 2, got {n_folds}")
        self.Cs = Cs
        self.n_folds = n_folds
        self.standardize = standardize
        self.max_iter = max_iter
        self.tol = tol
        self.random_state = random_state
        self.Cs_ = None
        self.cv_deviance_ = None

    def _candidates(self) -> np.ndarray:
        if isinstance(self.Cs, int):
            return np.logspace(-4, 4, self.Cs)
        return np.sort(np.asarray(self.Cs, dtype=float))

    def _estimator(self, C: float) -> Pipeline:
        return self._scaled(
            LogisticRegression(solver="liblinear", max_iter=self.max_iter, tol=self.tol,
                               random_state=self.random_state, **_l1_kwargs(C)),
            self.standardize
        )

    def _fit(self, X: np.ndarray, y: np.ndarray, columns: List[str]) -> FittedModel:
        smallest_class = int(min(np.sum(y == 0), np.sum(y == 1)))
        if smallest_class < self.n_folds:
            raise InsufficientDataError(
                f"{self.n_folds}-fold cross-validation needs at least {self.n_folds} rows "
                f"per class, smallest class has {smallest_class}"
            )

        Cs = self._candidates()
        folds = StratifiedKFold(n_splits=self.n_folds, shuffle=True,
                                random_state=self.random_state)
        deviance = np.zeros(len(Cs))
        for fold, (train_idx, held_idx) in enumerate(folds.split(X, y)):
            for i, C in enumerate(Cs):
                estimator = _fit_converged(self._estimator(C), X[train_idx], y[train_idx],
                                           f"L1 logistic regression (C={C:.4g}, fold {fold})")
                held_prob = estimator.predict_proba(X[held_idx])[:, 1]
                deviance[i] += binomial_deviance(y[held_idx], held_prob)
            logger.debug("Fold %d done (%d held-out rows)", fold, len(held_idx))
        deviance /= self.n_folds

        # argmin returns the first (smallest C, strongest penalty) on ties
        best = int(np.argmin(deviance))
        self.Cs_ = Cs
        self.cv_deviance_ = deviance
        logger.info("Cross-validated L1 strength: C=%.4g (mean deviance %.4f)",
                    Cs[best], deviance[best])

        estimator = _fit_converged(self._estimator(Cs[best]), X, y,
                                   f"L1 logistic regression (C={Cs[best]:.4g})")
        return FittedModel(estimator, columns, owner=self, C=float(Cs[best]))


CLASSIFIERS = {
    LogisticClassifier.name: LogisticClassifier,
    LassoLogisticClassifier.name: LassoLogisticClassifier,
}


def create_classifier(name: str = 'logistic', **kwargs) -> Classifier:
    """
    Factory function to create a classifier.

    Args:
        name: One of 'logistic', 'lasso'
        **kwargs: Constructor arguments for the classifier

    Returns:
        Classifier instance
    """
    try:
        classifier_cls = CLASSIFIERS[name]
    except KeyError:
        raise ValueError(f"Unknown classifier: {name}. "
                         f"Use one of {sorted(CLASSIFIERS)}.") from None
    return classifier_cls(**kwargs)
