"""
Predict whether a user will complete each habit on a given day.

This package contains habit feature engineering, a small logistic-regression and
decision-tree ensemble implemented from scratch, evaluation utilities, and the
prediction engine used by main.py.
"""

from .data_prep import (
    calculate_feature_importance,
    calculate_habit_stats,
    create_training_data,
    encode_features,
    extract_features,
    load_habits_csv,
    load_logs_csv,
)
from .engine import EngineConfig, PredictionEngine
from .evaluation import assess_data_quality, generate_learning_curve, perform_cross_validation
from .logreg import LogisticRegressionGD
from .metrics import calculate_roc_auc, compute_classification_metrics
from .records import Habit, HabitLog, MLModelState, ModelPerformanceReport, Prediction
from .tree import DecisionTreeGini, gini_impurity

__all__ = [
    "calculate_feature_importance",
    "calculate_habit_stats",
    "create_training_data",
    "encode_features",
    "extract_features",
    "load_habits_csv",
    "load_logs_csv",
    "EngineConfig",
    "PredictionEngine",
    "assess_data_quality",
    "generate_learning_curve",
    "perform_cross_validation",
    "LogisticRegressionGD",
    "calculate_roc_auc",
    "compute_classification_metrics",
    "Habit",
    "HabitLog",
    "MLModelState",
    "ModelPerformanceReport",
    "Prediction",
    "DecisionTreeGini",
    "gini_impurity",
]
