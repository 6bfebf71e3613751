"""
Quickstart example for imbalance-cutoff.

Compares resampling strategies under two cost assumptions on a synthetic
dataset where about 5% of rows are "exceptional".
"""

import logging

import pandas as pd
from sklearn.datasets import make_classification

from imbalance_cutoff import CostMatrix, Dataset, ExperimentConfig, SweepResult, run_sweep

FEATURES = ['fixed_acidity', 'volatile_acidity', 'citric_acid', 'residual_sugar',
            'chlorides', 'sulphates', 'alcohol']


def make_dataset() -> Dataset:
    X, y = make_classification(
        n_samples=2000, n_features=len(FEATURES), n_informative=4, n_redundant=1,
        weights=[0.95], flip_y=0.01, class_sep=1.0, random_state=42
    )
    frame = pd.DataFrame(X, columns=FEATURES)
    frame['exceptional'] = y
    return Dataset.from_frame(frame, label_column='exceptional')


def main():
    logging.basicConfig(level=logging.WARNING, format="%(levelname)s %(name)s: %(message)s")

    print("=" * 60)
    print("Imbalance-Cutoff Quickstart Example")
    print("=" * 60)
    print()

    dataset = make_dataset()
    print(dataset)
    print(f"Positive rate: {dataset.positive_rate:.2%}")
    print()

    configs = []
    for cost_fn in (10.0, 100.0):
        costs = CostMatrix(cost_fp=10.0, cost_fn=cost_fn)
        for strategy in ('none', 'random', 'smote', 'dbsmote', 'rose'):
            configs.append(ExperimentConfig(
                name=f"{strategy}/fn={cost_fn:g}",
                resampler=strategy,
                cost_matrix=costs,
                seed=42,
            ))
        configs.append(ExperimentConfig(
            name=f"smote+lasso/fn={cost_fn:g}",
            resampler='smote',
            classifier='lasso',
            classifier_params={'Cs': 10, 'n_folds': 5},
            cost_matrix=costs,
            seed=42,
        ))

    print(f"Running {len(configs)} experiments...")
    sweep = run_sweep(dataset, configs, n_jobs=-1)
    print()

    with pd.option_context('display.width', 120, 'display.max_columns', 20):
        print(sweep.to_frame().round(4).to_string(index=False))
    print()

    for failure in sweep.failures:
        print(f"[FAILED] {failure.name}: {failure.error_kind} - {failure.message}")

    for cost_fn in (10.0, 100.0):
        same_costs = SweepResult(
            outcomes=[r for r in sweep.reports if r.cost_matrix.cost_fn == cost_fn]
        )
        best = same_costs.best_by_cost()
        if best is not None:
            print(f"Lowest expected cost with FN cost {cost_fn:g}:")
            print(best.summary())
            print()

    print()
    print("=" * 60)
    print("Example complete!")
    print("=" * 60)


if __name__ == '__main__':
    main()
