from __future__ import annotations

"""
Prediction engine: trains the logistic/tree ensemble on a user's history,
produces the evaluation report, and ranks habits by completion probability.
Habits with short histories, or an untrained engine, fall back to a heuristic.
"""

import logging
import threading
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Iterable, Optional, Sequence

import numpy as np

from .constants import LEARNING_CURVE_SIZES
from .data_prep import (
    calculate_feature_importance,
    calculate_habit_stats,
    create_training_data,
    encode_features,
    extract_features,
    make_chronological_split,
)
from .evaluation import (
    assess_data_quality,
    ensemble_probabilities,
    generate_learning_curve,
    perform_cross_validation,
)
from .logreg import LogisticRegressionGD
from .metrics import compute_classification_metrics, threshold_probabilities
from .records import (
    Habit,
    HabitLog,
    HabitStats,
    MLModelState,
    ModelPerformanceReport,
    Prediction,
    TrainingData,
)
from .tree import DecisionTreeGini

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EngineConfig:
    min_logs_for_ml: int = 10
    test_size: float = 0.2
    lr: float = 0.01
    max_iter: int = 500
    max_depth: int = 4
    min_samples_split: int = 3
    # Logistic share of the blend; live predictions and evaluation use different weights
    live_blend: float = 0.6
    eval_blend: float = 0.5
    cv_folds: int = 5
    learning_curve_sizes: tuple = LEARNING_CURVE_SIZES
    high_confidence_samples: int = 20
    medium_confidence_samples: int = 10
    heuristic_floor: float = 0.1
    heuristic_ceiling: float = 0.9


@dataclass(frozen=True)
class _TrainedBundle:
    logistic: LogisticRegressionGD
    tree: DecisionTreeGini
    report: ModelPerformanceReport
    state: MLModelState


def _as_day(value) -> date:
    return value.date() if isinstance(value, datetime) else value


class PredictionEngine:
    """
    Owns one trained ensemble at a time. ``train`` builds new models off to the
    side and swaps them in once the whole pipeline has succeeded; concurrent
    ``train`` calls are serialized, predictions never wait on training.
    """

    def __init__(self, config: Optional[EngineConfig] = None):
        self.config = config or EngineConfig()
        self._train_lock = threading.Lock()
        self._bundle: Optional[_TrainedBundle] = None
        self._state = MLModelState(is_trained=False, total_samples=0)

    @property
    def state(self) -> MLModelState:
        bundle = self._bundle
        return bundle.state if bundle else self._state

    @property
    def is_trained(self) -> bool:
        return self._bundle is not None

    @property
    def models(self) -> Optional[tuple[LogisticRegressionGD, DecisionTreeGini]]:
        """The fitted (logistic, tree) pair, or None when untrained."""
        bundle = self._bundle
        return (bundle.logistic, bundle.tree) if bundle else None

    @property
    def performance_report(self) -> Optional[ModelPerformanceReport]:
        bundle = self._bundle
        return bundle.report if bundle else None

    def _reset(self, total_samples: int, error: Optional[str] = None) -> MLModelState:
        self._state = MLModelState(is_trained=False, total_samples=total_samples, last_error=error)
        self._bundle = None
        return self._state

    def train(self, habits: Sequence[Habit], logs: Sequence[HabitLog]) -> MLModelState:
        """
        Fit both models on the earliest 80% of samples, evaluate on the rest and
        build the performance report. Insufficient data or any failure leaves the
        engine untrained; this method does not raise.
        """
        with self._train_lock:
            if len(logs) < self.config.min_logs_for_ml:
                logger.warning(
                    "Not enough logs to train (%d < %d)", len(logs), self.config.min_logs_for_ml
                )
                return self._reset(total_samples=len(logs))

            training = None
            try:
                training = create_training_data(habits, logs)
                if len(training) == 0:
                    logger.warning("No training samples could be built from %d logs", len(logs))
                    return self._reset(total_samples=0)

                bundle = self._fit_bundle(habits, logs, training)
            except Exception as exc:
                logger.exception("Training failed")
                return self._reset(
                    total_samples=len(training) if training is not None else 0, error=str(exc)
                )

            self._bundle = bundle
            logger.info(
                "Trained on %d samples, ensemble accuracy %.3f",
                bundle.state.total_samples,
                bundle.state.accuracy,
            )
            return bundle.state

    def _fit_bundle(
        self, habits: Sequence[Habit], logs: Sequence[HabitLog], training: TrainingData
    ) -> _TrainedBundle:
        cfg = self.config
        X, y = training.features, training.labels
        train_idx, test_idx = make_chronological_split(
            [day for _, day in training.metadata], test_size=cfg.test_size
        )
        if len(train_idx) == 0:
            raise ValueError(f"Chronological split left no training samples out of {len(y)}")
        X_train, y_train = X[train_idx], y[train_idx]
        X_test, y_test = X[test_idx], y[test_idx]

        logistic = LogisticRegressionGD(lr=cfg.lr, max_iter=cfg.max_iter).fit(X_train, y_train)
        tree = DecisionTreeGini(
            max_depth=cfg.max_depth, min_samples_split=cfg.min_samples_split
        ).fit(X_train, y_train)

        lr_probs = np.asarray(logistic.predict_proba(X_test), dtype=float)
        dt_probs = np.asarray(tree.predict_proba(X_test), dtype=float)
        ens_probs = ensemble_probabilities(logistic, tree, X_test, cfg.eval_blend)

        def _metrics(probs):
            return compute_classification_metrics(threshold_probabilities(probs), y_test, probs)

        ensemble_metrics = _metrics(ens_probs)
        importance = calculate_feature_importance(X, y)
        report = ModelPerformanceReport(
            logistic=_metrics(lr_probs),
            tree=_metrics(dt_probs),
            ensemble=ensemble_metrics,
            cross_validation=perform_cross_validation(X, y, cfg.cv_folds, cfg.eval_blend),
            learning_curve=generate_learning_curve(
                X, y, cfg.learning_curve_sizes, ensemble_weight=cfg.eval_blend
            ),
            feature_importance=importance,
            data_quality=assess_data_quality(habits, logs, training=training),
            test_actuals=[int(v) for v in y_test],
            test_probabilities=[float(p) for p in ens_probs],
        )
        state = MLModelState(
            is_trained=True,
            total_samples=len(y),
            training_date=datetime.now(),
            accuracy=ensemble_metrics.accuracy,
            feature_importance=importance,
        )
        return _TrainedBundle(logistic=logistic, tree=tree, report=report, state=state)

    def _confidence(self, n_logs: int) -> str:
        if n_logs >= self.config.high_confidence_samples:
            return "high"
        if n_logs >= self.config.medium_confidence_samples:
            return "medium"
        return "low"

    def heuristic_probability(self, stats: HabitStats) -> float:
        probability = 0.5
        probability += (stats.success_rate - 0.5) * 0.4
        probability += min(stats.current_streak / 7, 1) * 0.3
        probability -= min(stats.days_since_last_log / 7, 1) * 0.3
        return min(max(probability, self.config.heuristic_floor), self.config.heuristic_ceiling)

    def _heuristic_prediction(self, habit: Habit, stats: HabitStats) -> Prediction:
        notes = []
        if stats.success_rate > 0.7:
            notes.append("Good track record.")
        if stats.current_streak > 3:
            notes.append("Strong current streak.")
        if stats.days_since_last_log > 3:
            notes.append("Haven't logged recently.")
        if stats.total_logs < self.config.min_logs_for_ml:
            notes.append(f"Only {stats.total_logs} logs so far.")

        return Prediction(
            habit_id=habit.id,
            habit_name=habit.name,
            category=habit.category,
            probability=self.heuristic_probability(stats),
            confidence=self._confidence(stats.total_logs),
            explanation="Heuristic prediction: " + " ".join(notes),
            streak=stats.current_streak,
            success_rate=stats.success_rate,
            source="heuristic",
        )

    def _ml_prediction(
        self,
        bundle: _TrainedBundle,
        habit: Habit,
        history: Sequence[HabitLog],
        stats: HabitStats,
        target: date,
    ) -> Prediction:
        record = extract_features(habit, history, target)
        x = encode_features(record)
        probability = float(
            ensemble_probabilities(bundle.logistic, bundle.tree, x, self.config.live_blend)
        )

        factors = []
        if stats.success_rate >= 0.7:
            factors.append(f"strong success rate ({stats.success_rate:.0%})")
        elif stats.success_rate < 0.4:
            factors.append(f"low success rate ({stats.success_rate:.0%})")
        if stats.current_streak >= 3:
            factors.append(f"{stats.current_streak}-day streak")
        if stats.days_since_last_log > 3:
            factors.append(f"{stats.days_since_last_log} days since last log")
        if record.is_weekend:
            factors.append("weekend")
        if habit.preferred_time != "anytime":
            factors.append(f"{habit.preferred_time} habit")
        explanation = "Ensemble model prediction"
        if factors:
            explanation += " based on " + ", ".join(factors)

        return Prediction(
            habit_id=habit.id,
            habit_name=habit.name,
            category=habit.category,
            probability=float(min(max(probability, 0.0), 1.0)),
            confidence=self._confidence(stats.total_logs),
            explanation=explanation + ".",
            streak=stats.current_streak,
            success_rate=stats.success_rate,
            source="ensemble",
        )

    def predict_habit(self, habit: Habit, logs: Iterable[HabitLog], target_date) -> Prediction:
        return self._predict(self._bundle, habit, logs, target_date)

    def _predict(
        self, bundle: Optional[_TrainedBundle], habit: Habit, logs: Iterable[HabitLog], target_date
    ) -> Prediction:
        target = _as_day(target_date)
        history = [log for log in logs if log.habit_id == habit.id and log.date <= target]
        stats = calculate_habit_stats(habit, history, as_of=target)

        if bundle is None or stats.total_logs < self.config.min_logs_for_ml:
            return self._heuristic_prediction(habit, stats)
        return self._ml_prediction(bundle, habit, history, stats, target)

    def predict_for_date(
        self, habits: Sequence[Habit], logs: Sequence[HabitLog], target_date
    ) -> list[Prediction]:
        """One prediction per active habit, most likely first (ties keep input order)."""
        bundle = self._bundle
        predictions = [
            self._predict(bundle, habit, logs, target_date)
            for habit in habits
            if habit.is_active
        ]
        return sorted(predictions, key=lambda p: -p.probability)

    def get_top_predictions(
        self,
        habits: Sequence[Habit],
        logs: Sequence[HabitLog],
        count: int = 5,
        today: Optional[date] = None,
    ) -> dict[str, list[Prediction]]:
        today = _as_day(today) if today is not None else date.today()
        return {
            "today": self.predict_for_date(habits, logs, today)[:count],
            "tomorrow": self.predict_for_date(habits, logs, today + timedelta(days=1))[:count],
        }
