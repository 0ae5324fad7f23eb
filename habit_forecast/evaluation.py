from __future__ import annotations

"""
Offline evaluation helpers: ensemble scoring, contiguous k-fold cross-validation,
learning curves and data-quality diagnostics for the engineered training set.
"""

import logging
from typing import Iterable, Optional, Sequence

import numpy as np
from sklearn.model_selection import PredefinedSplit

from .constants import (
    DEFAULT_ENERGY,
    DEFAULT_MOOD,
    DEFAULT_SLEEP,
    DEFAULT_STRESS,
    ENERGY_COL,
    EVAL_LR,
    EVAL_MAX_DEPTH,
    EVAL_MAX_ITER,
    EVAL_MIN_SAMPLES_SPLIT,
    LEARNING_CURVE_SIZES,
    MIN_LEARNING_CURVE_SAMPLES,
    MOOD_COL,
    SLEEP_COL,
    STRESS_COL,
    SUCCESS_RATE_COL,
    WEATHER_COLS,
)
from .data_prep import create_training_data
from .logreg import LogisticRegressionGD
from .metrics import accuracy, threshold_probabilities
from .records import CrossValidationScores, DataQuality, Habit, HabitLog, LearningCurvePoint, TrainingData
from .tree import DecisionTreeGini

logger = logging.getLogger(__name__)


def ensemble_probabilities(logistic, tree, X, logistic_weight: float = 0.5):
    """Weighted average of the two models' probabilities."""
    lr_probs = np.asarray(logistic.predict_proba(X), dtype=float)
    dt_probs = np.asarray(tree.predict_proba(X), dtype=float)
    return logistic_weight * lr_probs + (1 - logistic_weight) * dt_probs


def _fit_pair(X_train: np.ndarray, y_train: np.ndarray):
    logistic = LogisticRegressionGD(lr=EVAL_LR, max_iter=EVAL_MAX_ITER).fit(X_train, y_train)
    tree = DecisionTreeGini(max_depth=EVAL_MAX_DEPTH, min_samples_split=EVAL_MIN_SAMPLES_SPLIT).fit(
        X_train, y_train
    )
    return logistic, tree


def _as_arrays(features, labels):
    X = np.asarray(features, dtype=float)
    y = np.asarray(labels, dtype=int)
    if len(X) != len(y):
        raise ValueError(f"features has {len(X)} rows but labels has {len(y)}")
    return X, y


def contiguous_fold_ids(n_samples: int, folds: int) -> np.ndarray:
    """Fold number of every sample, in order; the last fold absorbs the remainder."""
    fold_size = n_samples // folds
    return np.minimum(np.arange(n_samples) // fold_size, folds - 1)


def perform_cross_validation(
    features, labels, folds: int = 5, ensemble_weight: float = 0.5
) -> CrossValidationScores:
    """
    Contiguous (unshuffled) k-fold accuracy for the logistic model, the tree and
    their ensemble. Fresh models are trained for every fold. Each fold holds
    ``n // folds`` samples and the last one also takes the remainder.
    """
    if folds < 2:
        raise ValueError(f"folds must be at least 2, got {folds}")
    X, y = _as_arrays(features, labels)
    if len(y) < 2:
        return CrossValidationScores(logistic=[], tree=[], ensemble=[])
    if len(y) < folds:
        logger.warning("Only %d samples, reducing cross-validation to %d folds", len(y), len(y))
        folds = len(y)

    scores = CrossValidationScores(logistic=[], tree=[], ensemble=[])
    for train_idx, test_idx in PredefinedSplit(contiguous_fold_ids(len(y), folds)).split():
        logistic, tree = _fit_pair(X[train_idx], y[train_idx])
        X_test, y_test = X[test_idx], y[test_idx]

        scores.logistic.append(accuracy(logistic.predict(X_test), y_test))
        scores.tree.append(accuracy(tree.predict(X_test), y_test))
        ens = ensemble_probabilities(logistic, tree, X_test, ensemble_weight)
        scores.ensemble.append(accuracy(threshold_probabilities(ens), y_test))
    return scores


def generate_learning_curve(
    features,
    labels,
    sizes: Sequence[float] = LEARNING_CURVE_SIZES,
    ensemble_weight: float = 0.5,
    min_samples: int = MIN_LEARNING_CURVE_SAMPLES,
) -> list[LearningCurvePoint]:
    """
    Train/validation accuracy of a fresh ensemble on growing prefixes of the data.
    Each prefix is split 80/20 in order; prefixes that are too small are skipped.
    """
    X, y = _as_arrays(features, labels)
    curve = []
    for size in sizes:
        if not 0 < size <= 1:
            raise ValueError(f"Learning curve sizes must be in (0, 1], got {size}")
        sample_size = int(len(y) * size)
        split_at = int(sample_size * 0.8)
        if sample_size < min_samples or split_at == 0 or split_at == sample_size:
            logger.debug("Skipping learning-curve size %.2f (%d samples)", size, sample_size)
            continue

        X_train, y_train = X[:split_at], y[:split_at]
        X_val, y_val = X[split_at:sample_size], y[split_at:sample_size]
        logistic, tree = _fit_pair(X_train, y_train)

        train_preds = threshold_probabilities(ensemble_probabilities(logistic, tree, X_train, ensemble_weight))
        val_preds = threshold_probabilities(ensemble_probabilities(logistic, tree, X_val, ensemble_weight))
        curve.append(
            LearningCurvePoint(
                train_size=sample_size,
                train_score=accuracy(train_preds, y_train),
                val_score=accuracy(val_preds, y_val),
            )
        )
    return curve


def _missing_slots(X: np.ndarray) -> np.ndarray:
    """Per-sample flags for the five context slots that hold their 'absent' encoding."""
    return np.column_stack(
        [
            X[:, MOOD_COL] == DEFAULT_MOOD,
            X[:, SLEEP_COL] == DEFAULT_SLEEP,
            X[:, ENERGY_COL] == DEFAULT_ENERGY,
            X[:, STRESS_COL] == DEFAULT_STRESS,
            X[:, WEATHER_COLS].sum(axis=1) == 0,
        ]
    )


def iqr_outlier_rate(values) -> float:
    """Share of values outside the 1.5 * IQR fences."""
    ordered = np.sort(np.asarray(values, dtype=float))
    if ordered.size == 0:
        return 0.0
    q1 = ordered[int(ordered.size * 0.25)]
    q3 = ordered[int(ordered.size * 0.75)]
    iqr = q3 - q1
    outside = (ordered < q1 - 1.5 * iqr) | (ordered > q3 + 1.5 * iqr)
    return float(outside.mean())


def assess_data_quality(
    habits: Iterable[Habit],
    logs: Sequence[HabitLog],
    training: Optional[TrainingData] = None,
) -> DataQuality:
    """Size, class balance, missing-context rate and success-rate outliers of the training set."""
    training = training if training is not None else create_training_data(habits, logs)
    if len(training) == 0:
        return DataQuality(total_samples=0, positive=0, negative=0, missing_value_rate=0.0, outlier_rate=0.0)

    X = training.features
    positive = int(training.labels.sum())
    return DataQuality(
        total_samples=len(training),
        positive=positive,
        negative=len(training) - positive,
        missing_value_rate=float(_missing_slots(X).mean()),
        outlier_rate=iqr_outlier_rate(X[:, SUCCESS_RATE_COL]),
    )
