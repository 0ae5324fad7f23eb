from __future__ import annotations

"""
Report figures: ROC curve of the held-out ensemble, learning curve and feature
importance. Figures are written to PNG files with the non-interactive backend.
"""

from pathlib import Path

import matplotlib

matplotlib.use("Agg")

import matplotlib.pyplot as plt
from sklearn.metrics import auc, roc_curve

from .data_prep import summarize_feature_importance
from .records import ModelPerformanceReport


def plot_roc_curve(actuals, probabilities, filename: Path, title: str = "Ensemble") -> bool:
    """Returns False (and writes nothing) when the held-out set has a single class."""
    if len(set(actuals)) < 2:
        return False
    fpr, tpr, _ = roc_curve(actuals, probabilities)
    roc_auc = auc(fpr, tpr)

    plt.figure(figsize=(8, 6))
    plt.plot(fpr, tpr, color="darkorange", lw=2, label=f"ROC curve (area = {roc_auc:.3f})")
    plt.plot([0, 1], [0, 1], color="navy", lw=2, linestyle="--")
    plt.xlim([0.0, 1.0])
    plt.ylim([0.0, 1.05])
    plt.xlabel("False Positive Rate")
    plt.ylabel("True Positive Rate")
    plt.title(f"ROC Curve: {title}")
    plt.legend(loc="lower right")
    plt.grid(True)
    plt.tight_layout()
    plt.savefig(filename)
    plt.close()
    return True


def plot_learning_curve(curve, filename: Path) -> bool:
    if not curve:
        return False
    sizes = [point.train_size for point in curve]
    plt.figure(figsize=(8, 6))
    plt.plot(sizes, [point.train_score for point in curve], marker="o", label="Train accuracy")
    plt.plot(sizes, [point.val_score for point in curve], marker="o", label="Validation accuracy")
    plt.ylim([0.0, 1.05])
    plt.xlabel("Training samples")
    plt.ylabel("Accuracy")
    plt.title("Learning Curve (ensemble)")
    plt.legend(loc="lower right")
    plt.grid(True)
    plt.tight_layout()
    plt.savefig(filename)
    plt.close()
    return True


def plot_feature_importance(importance: dict[str, float], filename: Path, top_k: int = 10) -> bool:
    top = summarize_feature_importance(importance, top_k=top_k)
    if top.empty:
        return False
    plt.figure(figsize=(8, 6))
    top[::-1].plot(kind="barh", color="steelblue")
    plt.xlabel("|Pearson r| with completion")
    plt.title("Feature Importance")
    plt.tight_layout()
    plt.savefig(filename)
    plt.close()
    return True


def save_report_plots(report: ModelPerformanceReport, output_dir: Path) -> list[Path]:
    """Write every figure that has data to ``output_dir``; returns the written paths."""
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)
    written = []

    roc_path = output_dir / "roc_ensemble.png"
    if plot_roc_curve(report.test_actuals, report.test_probabilities, roc_path):
        written.append(roc_path)
    curve_path = output_dir / "learning_curve.png"
    if plot_learning_curve(report.learning_curve, curve_path):
        written.append(curve_path)
    importance_path = output_dir / "feature_importance.png"
    if plot_feature_importance(report.feature_importance, importance_path):
        written.append(importance_path)
    return written
