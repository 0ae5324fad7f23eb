from __future__ import annotations

"""
CLI entrypoint: train the habit-completion ensemble on CSV exports (or generated
sample data), print the evaluation report and today's/tomorrow's predictions.
"""

import argparse
import logging
from pathlib import Path

from habit_forecast import (
    EngineConfig,
    PredictionEngine,
    load_habits_csv,
    load_logs_csv,
)
from habit_forecast.data_prep import summarize_feature_importance
from habit_forecast.plots import save_report_plots
from habit_forecast.sample_data import generate_sample_data


def describe_data_quality(quality):
    """Print dataset size, class balance and quality rates."""
    print(f"Training samples: {quality.total_samples}")
    print(f"Class balance: {quality.positive} completed / {quality.negative} missed")
    print(
        f"Missing context rate: {quality.missing_value_rate:.3f} | "
        f"Success-rate outliers: {quality.outlier_rate:.3f}"
    )


def print_metrics(label: str, metrics):
    """Nicely format a ModelMetrics record."""
    roc_auc = metrics.roc_auc if metrics.roc_auc is not None else float("nan")
    print(
        f"[{label}] Acc {metrics.accuracy:.3f} | "
        f"Prec {metrics.precision:.3f} | Rec {metrics.recall:.3f} | "
        f"F1 {metrics.f1:.3f} | ROC-AUC {roc_auc:.3f}"
    )
    print(f"    Confusion matrix [[TN, FP], [FN, TP]]: {metrics.confusion.as_matrix().tolist()}")
    macro, weighted = metrics.report.macro, metrics.report.weighted
    print(
        f"    Macro P/R/F1 {macro.precision:.3f}/{macro.recall:.3f}/{macro.f1:.3f} | "
        f"Weighted P/R/F1 {weighted.precision:.3f}/{weighted.recall:.3f}/{weighted.f1:.3f}"
    )


def print_predictions(label: str, predictions):
    print(f"\n{label}:")
    for p in predictions:
        print(f"  {p.habit_name:<24} {p.probability:.2f} ({p.confidence}, {p.source}) {p.explanation}")


def build_arg_parser():
    """CLI parser with knobs for the data source and engine hyperparameters."""
    parser = argparse.ArgumentParser(
        description="Predict which habits will be completed today and tomorrow."
    )
    parser.add_argument("--habits-csv", type=Path, help="CSV with one row per habit.")
    parser.add_argument("--logs-csv", type=Path, help="CSV with one row per habit log.")
    parser.add_argument(
        "--sample-days",
        type=int,
        default=60,
        help="Days of generated sample data when no CSVs are given.",
    )
    parser.add_argument("--seed", type=int, default=42, help="Random seed for sample data.")
    parser.add_argument("--min-logs", type=int, default=10, help="Logs required before using ML.")
    parser.add_argument("--test-size", type=float, default=0.2)
    parser.add_argument("--lr", type=float, default=0.01, help="Learning rate for logistic GD.")
    parser.add_argument("--max-iter", type=int, default=500, help="Gradient descent steps.")
    parser.add_argument("--max-depth", type=int, default=4, help="Decision tree depth.")
    parser.add_argument("--min-samples-split", type=int, default=3)
    parser.add_argument(
        "--live-blend",
        type=float,
        default=0.6,
        help="Logistic weight in live predictions (tree gets the rest).",
    )
    parser.add_argument(
        "--eval-blend",
        type=float,
        default=0.5,
        help="Logistic weight in evaluation ensembles.",
    )
    parser.add_argument("--cv-folds", type=int, default=5)
    parser.add_argument("--top", type=int, default=5, help="Predictions to show per day.")
    parser.add_argument("--plots-dir", type=Path, help="Write ROC/learning-curve/importance PNGs here.")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging.")
    return parser


def config_from_args(args: argparse.Namespace) -> EngineConfig:
    return EngineConfig(
        min_logs_for_ml=args.min_logs,
        test_size=args.test_size,
        lr=args.lr,
        max_iter=args.max_iter,
        max_depth=args.max_depth,
        min_samples_split=args.min_samples_split,
        live_blend=args.live_blend,
        eval_blend=args.eval_blend,
        cv_folds=args.cv_folds,
    )


def load_data(args: argparse.Namespace):
    if args.habits_csv and args.logs_csv:
        return load_habits_csv(args.habits_csv), load_logs_csv(args.logs_csv)
    if args.habits_csv or args.logs_csv:
        raise SystemExit("--habits-csv and --logs-csv must be given together")
    return generate_sample_data(num_days=args.sample_days, seed=args.seed)


def main(args: argparse.Namespace | None = None):
    """Train, report and predict."""
    args = args or build_arg_parser().parse_args()
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    habits, logs = load_data(args)
    print(f"Habits: {len(habits)}, logs: {len(logs)}")

    engine = PredictionEngine(config_from_args(args))
    state = engine.train(habits, logs)
    report = engine.performance_report

    if report is None:
        reason = f" ({state.last_error})" if state.last_error else ""
        print(f"Model not trained{reason}; using heuristic predictions.")
    else:
        describe_data_quality(report.data_quality)
        print_metrics("Logistic regression", report.logistic)
        print_metrics("Decision tree", report.tree)
        print_metrics("Ensemble", report.ensemble)

        cv = report.cross_validation
        for name, scores in (("logistic", cv.logistic), ("tree", cv.tree), ("ensemble", cv.ensemble)):
            if scores:
                print(f"CV accuracy ({name}): {[round(s, 3) for s in scores]}")

        print("\nLearning curve (samples: train / validation accuracy):")
        for point in report.learning_curve:
            print(f"  {point.train_size}: {point.train_score:.3f} / {point.val_score:.3f}")

        print("\nTop features by |correlation|:")
        print(summarize_feature_importance(report.feature_importance, top_k=8))

        if args.plots_dir:
            for path in save_report_plots(report, args.plots_dir):
                print(f"Saved {path}")

    top = engine.get_top_predictions(habits, logs, count=args.top)
    print_predictions("Today", top["today"])
    print_predictions("Tomorrow", top["tomorrow"])


if __name__ == "__main__":
    main()
