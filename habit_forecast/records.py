from __future__ import annotations

"""
Plain records passed between the feature pipeline, the models and the engine.
"""

from dataclasses import asdict, dataclass, field, replace
from datetime import date, datetime
from typing import Optional

import numpy as np

from .constants import MOODS, TIMES_OF_DAY, WEATHER


def _as_date(value) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value))


def _check_level(name: str, value: Optional[int]):
    if value is not None and not 1 <= value <= 5:
        raise ValueError(f"{name} must be between 1 and 5, got {value}")


@dataclass(frozen=True)
class Habit:
    """A tracked habit. Only ``is_active`` changes after the habit is logged against."""

    id: str
    name: str
    category: str
    preferred_time: str
    created_at: datetime
    is_active: bool = True

    def __post_init__(self):
        if self.preferred_time not in TIMES_OF_DAY:
            raise ValueError(f"Unknown preferred time: {self.preferred_time}")

    def deactivated(self) -> "Habit":
        return replace(self, is_active=False)


@dataclass(frozen=True)
class HabitLog:
    """One day's outcome for a habit, with optional context about the day."""

    id: str
    habit_id: str
    date: date
    completed: bool
    logged_at: Optional[datetime] = None
    mood: Optional[str] = None
    sleep_hours: Optional[float] = None
    energy_level: Optional[int] = None
    stress_level: Optional[int] = None
    weather: Optional[str] = None

    def __post_init__(self):
        object.__setattr__(self, "date", _as_date(self.date))
        if self.mood is not None and self.mood not in MOODS:
            raise ValueError(f"Unknown mood: {self.mood}")
        if self.weather is not None and self.weather not in WEATHER:
            raise ValueError(f"Unknown weather: {self.weather}")
        if self.sleep_hours is not None and self.sleep_hours < 0:
            raise ValueError(f"sleep_hours must be non-negative, got {self.sleep_hours}")
        _check_level("energy_level", self.energy_level)
        _check_level("stress_level", self.stress_level)


@dataclass(frozen=True)
class HabitStats:
    habit_id: str
    total_logs: int
    completed_logs: int
    success_rate: float
    current_streak: int
    longest_streak: int
    days_since_last_log: int


@dataclass(frozen=True)
class FeatureRecord:
    """Un-encoded features for one (habit, history, target date) triple."""

    habit_id: str
    day_of_week: int  # 0=Sunday .. 6=Saturday
    time_of_day: str
    streak: int
    days_since_last_log: int
    success_rate: float
    category: str
    days_since_created: int
    is_weekend: bool
    mood: Optional[str] = None
    sleep_hours: Optional[float] = None
    energy_level: Optional[int] = None
    stress_level: Optional[int] = None
    weather: Optional[str] = None


@dataclass(frozen=True)
class TrainingData:
    features: np.ndarray
    labels: np.ndarray
    metadata: list[tuple[str, date]] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.labels)


@dataclass(frozen=True)
class Prediction:
    habit_id: str
    habit_name: str
    category: str
    probability: float
    confidence: str
    explanation: str
    streak: int
    success_rate: float
    source: str = "heuristic"

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class ConfusionCounts:
    true_positive: int
    true_negative: int
    false_positive: int
    false_negative: int

    @property
    def total(self) -> int:
        return self.true_positive + self.true_negative + self.false_positive + self.false_negative

    def as_matrix(self) -> np.ndarray:
        """[[TN, FP], [FN, TP]], the same layout sklearn uses."""
        return np.array(
            [[self.true_negative, self.false_positive], [self.false_negative, self.true_positive]]
        )


@dataclass(frozen=True)
class ClassScores:
    precision: float
    recall: float
    f1: float
    support: Optional[int] = None


@dataclass(frozen=True)
class ClassificationReport:
    positive: ClassScores
    negative: ClassScores
    macro: ClassScores
    weighted: ClassScores


@dataclass(frozen=True)
class ModelMetrics:
    accuracy: float
    precision: float
    recall: float
    f1: float
    confusion: ConfusionCounts
    report: ClassificationReport
    roc_auc: Optional[float] = None


@dataclass(frozen=True)
class CrossValidationScores:
    logistic: list[float]
    tree: list[float]
    ensemble: list[float]


@dataclass(frozen=True)
class LearningCurvePoint:
    train_size: int
    train_score: float
    val_score: float


@dataclass(frozen=True)
class DataQuality:
    total_samples: int
    positive: int
    negative: int
    missing_value_rate: float
    outlier_rate: float


@dataclass(frozen=True)
class ModelPerformanceReport:
    logistic: ModelMetrics
    tree: ModelMetrics
    ensemble: ModelMetrics
    cross_validation: CrossValidationScores
    learning_curve: list[LearningCurvePoint]
    feature_importance: dict[str, float]
    data_quality: DataQuality
    test_actuals: list[int] = field(default_factory=list)
    test_probabilities: list[float] = field(default_factory=list)

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class MLModelState:
    is_trained: bool
    total_samples: int
    training_date: Optional[datetime] = None
    accuracy: Optional[float] = None
    feature_importance: dict[str, float] = field(default_factory=dict)
    last_error: Optional[str] = None
