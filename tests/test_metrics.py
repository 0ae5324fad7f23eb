import numpy as np
import pytest

from habit_forecast.metrics import (
    accuracy,
    calculate_roc_auc,
    compute_classification_metrics,
    threshold_probabilities,
)


def test_metrics_from_confusion_counts():
    m = compute_classification_metrics([1, 0, 1, 1, 0], [1, 0, 0, 1, 1])

    c = m.confusion
    assert (c.true_positive, c.true_negative, c.false_positive, c.false_negative) == (2, 1, 1, 1)
    assert c.total == 5
    assert m.accuracy == pytest.approx(0.6)
    assert m.precision == pytest.approx(2 / 3)
    assert m.recall == pytest.approx(2 / 3)
    assert m.f1 == pytest.approx(2 / 3)
    assert m.roc_auc is None

    report = m.report
    assert report.negative.precision == pytest.approx(0.5)
    assert report.negative.recall == pytest.approx(0.5)
    assert (report.positive.support, report.negative.support) == (3, 2)
    assert report.macro.precision == pytest.approx(7 / 12)
    assert report.weighted.precision == pytest.approx(0.6)
    assert c.as_matrix().tolist() == [[1, 1], [1, 2]]


def test_metrics_zero_denominators_are_zero():
    m = compute_classification_metrics([0, 0, 0], [0, 0, 1])

    assert m.precision == 0.0
    assert m.recall == 0.0
    assert m.f1 == 0.0
    assert not np.isnan(m.report.macro.f1)
    assert m.confusion.total == 3


def test_metrics_include_auc_with_probabilities():
    m = compute_classification_metrics([0, 1], [0, 1], probabilities=[0.2, 0.9])

    assert m.roc_auc == pytest.approx(1.0)
    assert m.accuracy == 1.0


def test_metrics_empty_input():
    m = compute_classification_metrics([], [], probabilities=[])

    assert m.accuracy == 0.0
    assert m.confusion.total == 0
    assert m.roc_auc == 0.5


def test_metrics_length_mismatch():
    with pytest.raises(ValueError):
        compute_classification_metrics([1, 0], [1])
    with pytest.raises(ValueError):
        compute_classification_metrics([1, 0], [1, 0], probabilities=[0.3])


def test_roc_auc_perfect_and_inverted():
    assert calculate_roc_auc([0, 0, 1, 1], [0.1, 0.2, 0.8, 0.9]) == pytest.approx(1.0)
    assert calculate_roc_auc([1, 1, 0, 0], [0.1, 0.2, 0.8, 0.9]) == pytest.approx(0.0)


def test_roc_auc_ties_and_degenerate():
    assert calculate_roc_auc([0, 1, 0, 1], [0.5, 0.5, 0.5, 0.5]) == pytest.approx(0.5)
    assert calculate_roc_auc([1, 0, 1, 0], [0.9, 0.9, 0.5, 0.1]) == pytest.approx(0.625)
    assert calculate_roc_auc([1, 1, 1], [0.2, 0.4, 0.9]) == 0.5
    assert calculate_roc_auc([], []) == 0.5


def test_threshold_and_accuracy():
    assert threshold_probabilities([0.5, 0.51, 0.2]).tolist() == [0, 1, 0]
    assert accuracy([1, 0, 1], [1, 1, 1]) == pytest.approx(2 / 3)
    assert accuracy([], []) == 0.0
