from __future__ import annotations

"""
Binary classification metrics shared by the engine and the evaluator.
"""

import numpy as np
from sklearn import metrics

from .records import ClassificationReport, ClassScores, ConfusionCounts, ModelMetrics


def _check_lengths(**arrays: np.ndarray):
    lengths = {name: len(arr) for name, arr in arrays.items()}
    if len(set(lengths.values())) > 1:
        raise ValueError(f"Length mismatch: {lengths}")


def threshold_probabilities(probs, threshold: float = 0.5) -> np.ndarray:
    """1 where the probability is strictly above the threshold."""
    return (np.asarray(probs, dtype=float) > threshold).astype(int)


def calculate_roc_auc(actuals, probabilities) -> float:
    """
    Area under the ROC curve, with tied probabilities forming one threshold step.
    Returns 0.5 when only one class is present.
    """
    y_true = np.asarray(actuals, dtype=int)
    probs = np.asarray(probabilities, dtype=float)
    _check_lengths(actuals=y_true, probabilities=probs)
    if len(np.unique(y_true)) < 2:
        return 0.5
    try:
        return float(metrics.roc_auc_score(y_true, probs))
    except ValueError:
        return 0.5


def _empty_metrics(with_auc: bool) -> ModelMetrics:
    zero = ClassScores(precision=0.0, recall=0.0, f1=0.0)
    return ModelMetrics(
        accuracy=0.0,
        precision=0.0,
        recall=0.0,
        f1=0.0,
        confusion=ConfusionCounts(0, 0, 0, 0),
        report=ClassificationReport(
            positive=ClassScores(0.0, 0.0, 0.0, support=0),
            negative=ClassScores(0.0, 0.0, 0.0, support=0),
            macro=zero,
            weighted=zero,
        ),
        roc_auc=0.5 if with_auc else None,
    )


def compute_classification_metrics(predictions, actuals, probabilities=None) -> ModelMetrics:
    """
    Confusion counts, per-class precision/recall/F1, macro and support-weighted
    averages, and ROC AUC when probabilities are given. Undefined ratios are 0.
    """
    y_pred = np.asarray(predictions, dtype=int)
    y_true = np.asarray(actuals, dtype=int)
    _check_lengths(predictions=y_pred, actuals=y_true)
    if probabilities is not None:
        _check_lengths(actuals=y_true, probabilities=np.asarray(probabilities))
    if len(y_true) == 0:
        return _empty_metrics(with_auc=probabilities is not None)

    (tn, fp), (fn, tp) = metrics.confusion_matrix(y_true, y_pred, labels=[0, 1])
    precision, recall, f1, support = metrics.precision_recall_fscore_support(
        y_true, y_pred, labels=[0, 1], average=None, zero_division=0
    )

    negative = ClassScores(float(precision[0]), float(recall[0]), float(f1[0]), int(support[0]))
    positive = ClassScores(float(precision[1]), float(recall[1]), float(f1[1]), int(support[1]))
    weights = support / support.sum()
    report = ClassificationReport(
        positive=positive,
        negative=negative,
        macro=ClassScores(
            precision=float(precision.mean()), recall=float(recall.mean()), f1=float(f1.mean())
        ),
        weighted=ClassScores(
            precision=float(precision @ weights),
            recall=float(recall @ weights),
            f1=float(f1 @ weights),
        ),
    )

    return ModelMetrics(
        accuracy=float((tp + tn) / len(y_true)),
        precision=positive.precision,
        recall=positive.recall,
        f1=positive.f1,
        confusion=ConfusionCounts(
            true_positive=int(tp), true_negative=int(tn), false_positive=int(fp), false_negative=int(fn)
        ),
        report=report,
        roc_auc=calculate_roc_auc(y_true, probabilities) if probabilities is not None else None,
    )


def accuracy(predictions, actuals) -> float:
    y_pred = np.asarray(predictions, dtype=int)
    y_true = np.asarray(actuals, dtype=int)
    _check_lengths(predictions=y_pred, actuals=y_true)
    if len(y_true) == 0:
        return 0.0
    return float(metrics.accuracy_score(y_true, y_pred))
