from __future__ import annotations

"""
Feature engineering for habit completion: per-habit statistics, point-in-time
feature extraction, fixed-order encoding and training-set construction.
"""

import logging
import math
from datetime import date, datetime
from pathlib import Path
from typing import Iterable, Optional, Sequence

import numpy as np
import pandas as pd

from .constants import (
    AGE_SCALE,
    DEFAULT_ENERGY,
    DEFAULT_MOOD,
    DEFAULT_SLEEP,
    DEFAULT_STRESS,
    FEATURE_NAMES,
    MOOD_SCALE,
    NO_LOG_SENTINEL_DAYS,
    RECENCY_CAP_DAYS,
    SLEEP_CAP_HOURS,
    STREAK_SCALE,
    TIMES_OF_DAY,
    WEATHER,
)
from .records import FeatureRecord, Habit, HabitLog, HabitStats, TrainingData

logger = logging.getLogger(__name__)


def _logs_for(habit: Habit, logs: Iterable[HabitLog]) -> list[HabitLog]:
    return [log for log in logs if log.habit_id == habit.id]


def calculate_habit_stats(
    habit: Habit, logs: Iterable[HabitLog], as_of: Optional[date] = None
) -> HabitStats:
    """
    Summarize a habit's history as seen on ``as_of`` (defaults to today).

    The current streak counts completed logs newest-first and stops at the
    first failure or at a missing day between two logs. The longest streak is
    the longest run of completed logs scanned oldest-first.
    """
    as_of = as_of or date.today()
    habit_logs = sorted(_logs_for(habit, logs), key=lambda log: log.date, reverse=True)

    total = len(habit_logs)
    completed = sum(1 for log in habit_logs if log.completed)
    success_rate = completed / total if total else 0.0

    current_streak = 0
    previous_day = None
    for log in habit_logs:
        if not log.completed:
            break
        if previous_day is not None and (previous_day - log.date).days > 1:
            break
        current_streak += 1
        previous_day = log.date

    longest_streak = run = 0
    for log in reversed(habit_logs):
        run = run + 1 if log.completed else 0
        longest_streak = max(longest_streak, run)

    if habit_logs:
        days_since_last_log = (as_of - habit_logs[0].date).days
    else:
        days_since_last_log = NO_LOG_SENTINEL_DAYS

    return HabitStats(
        habit_id=habit.id,
        total_logs=total,
        completed_logs=completed,
        success_rate=success_rate,
        current_streak=current_streak,
        longest_streak=longest_streak,
        days_since_last_log=days_since_last_log,
    )


def _as_day(value) -> date:
    return value.date() if isinstance(value, datetime) else value


def extract_features(habit: Habit, logs: Iterable[HabitLog], target_date) -> FeatureRecord:
    """
    Build the feature record for ``habit`` on ``target_date``.

    Only logs dated on or before the target date are visible, so the same call
    works for live predictions and for point-in-time training samples.
    """
    target = _as_day(target_date)
    history = [log for log in _logs_for(habit, logs) if log.date <= target]
    stats = calculate_habit_stats(habit, history, as_of=target)
    recent = max(history, key=lambda log: log.date) if history else None

    weekday = (target.weekday() + 1) % 7  # Sunday=0
    days_since_created = max((target - _as_day(habit.created_at)).days, 0)

    return FeatureRecord(
        habit_id=habit.id,
        day_of_week=weekday,
        time_of_day=habit.preferred_time,
        streak=stats.current_streak,
        days_since_last_log=stats.days_since_last_log,
        success_rate=stats.success_rate,
        category=habit.category,
        days_since_created=days_since_created,
        is_weekend=weekday in (0, 6),
        mood=recent.mood if recent else None,
        sleep_hours=recent.sleep_hours if recent else None,
        energy_level=recent.energy_level if recent else None,
        stress_level=recent.stress_level if recent else None,
        weather=recent.weather if recent else None,
    )


def category_hash(category: str) -> int:
    """Rolling hash (h * 31 + code unit) over UTF-16 code units, masked to 16 bits."""
    raw = category.encode("utf-16-le")
    value = 0
    for i in range(0, len(raw), 2):
        code = raw[i] | (raw[i + 1] << 8)
        value = ((value << 5) - value + code) & 0xFFFF
    return value


def _one_hot(value: Optional[str], vocabulary: Sequence[str]) -> list[float]:
    return [1.0 if value == item else 0.0 for item in vocabulary]


def encode_features(record: FeatureRecord) -> np.ndarray:
    """Encode a feature record into the vector laid out by ``FEATURE_NAMES``."""
    mood = MOOD_SCALE[record.mood] if record.mood is not None else DEFAULT_MOOD
    sleep = (
        min(max(record.sleep_hours / SLEEP_CAP_HOURS, 0.0), 1.0)
        if record.sleep_hours is not None
        else DEFAULT_SLEEP
    )
    energy = (record.energy_level - 1) / 4 if record.energy_level is not None else DEFAULT_ENERGY
    stress = (
        1 - (record.stress_level - 1) / 4 if record.stress_level is not None else DEFAULT_STRESS
    )

    encoded = [record.day_of_week / 6]
    encoded += _one_hot(record.time_of_day, TIMES_OF_DAY)
    encoded += [mood, sleep, energy, stress]
    encoded += _one_hot(record.weather, WEATHER)
    encoded += [
        min(math.log1p(record.streak) / STREAK_SCALE, 1.0),
        min(record.days_since_last_log / RECENCY_CAP_DAYS, 1.0),
        record.success_rate,
        (category_hash(record.category) % 100) / 100,
        min(math.log1p(record.days_since_created) / AGE_SCALE, 1.0),
        1.0 if record.is_weekend else 0.0,
    ]
    return np.asarray(encoded, dtype=float)


def create_training_data(habits: Iterable[Habit], logs: Sequence[HabitLog]) -> TrainingData:
    """
    One sample per (habit, log) pair, labelled with the log's outcome.

    Each sample is engineered from the logs dated on or before its own date,
    so no sample sees later history. Samples come back in chronological order
    (ties keep habit order, then log order).
    """
    rows: list[np.ndarray] = []
    labels: list[int] = []
    metadata: list[tuple[str, date]] = []

    for habit in habits:
        habit_logs = _logs_for(habit, logs)
        for log in habit_logs:
            record = extract_features(habit, habit_logs, log.date)
            rows.append(encode_features(record))
            labels.append(1 if log.completed else 0)
            metadata.append((habit.id, log.date))

    if not rows:
        return TrainingData(
            features=np.empty((0, len(FEATURE_NAMES))), labels=np.empty(0, dtype=int), metadata=[]
        )

    order = np.argsort([day.toordinal() for _, day in metadata], kind="stable")
    features = np.vstack(rows)[order]
    label_arr = np.asarray(labels, dtype=int)[order]
    logger.debug("Built %d training samples from %d logs", len(label_arr), len(logs))
    return TrainingData(
        features=features, labels=label_arr, metadata=[metadata[i] for i in order]
    )


def pearson_correlation(x, y) -> float:
    """Pearson r; 0.0 for empty input or when either side is constant."""
    x_arr = np.asarray(x, dtype=float)
    y_arr = np.asarray(y, dtype=float)
    if x_arr.shape != y_arr.shape:
        raise ValueError(f"Length mismatch: {x_arr.shape} vs {y_arr.shape}")
    if x_arr.size == 0:
        return 0.0
    dx = x_arr - x_arr.mean()
    dy = y_arr - y_arr.mean()
    denom = math.sqrt(float(np.sum(dx * dx)) * float(np.sum(dy * dy)))
    if denom == 0:
        return 0.0
    return float(np.sum(dx * dy) / denom)


def feature_names_for(n_features: int) -> list[str]:
    if n_features == len(FEATURE_NAMES):
        return list(FEATURE_NAMES)
    return [f"feature_{i}" for i in range(n_features)]


def calculate_feature_importance(features, labels) -> dict[str, float]:
    """Absolute correlation of every feature column with the label."""
    X = np.asarray(features, dtype=float)
    y = np.asarray(labels, dtype=float)
    if X.ndim != 2:
        X = X.reshape(len(y), -1) if X.size else np.empty((0, len(FEATURE_NAMES)))
    if len(X) != len(y):
        raise ValueError(f"features has {len(X)} rows but labels has {len(y)}")

    names = feature_names_for(X.shape[1])
    return {name: abs(pearson_correlation(X[:, i], y)) for i, name in enumerate(names)}


def summarize_feature_importance(importance: dict[str, float], top_k: int = 5) -> pd.Series:
    return pd.Series(importance, dtype=float).sort_values(ascending=False, kind="stable").head(top_k)


def make_chronological_split(dates: Sequence[date], test_size: float = 0.2):
    """Earlier samples train, the latest ``test_size`` share is held out."""
    if not 0 <= test_size < 1:
        raise ValueError(f"test_size must be in [0, 1), got {test_size}")
    ordered = np.argsort([_as_day(d).toordinal() for d in dates], kind="stable")
    split_at = int(len(ordered) * (1 - test_size))
    return ordered[:split_at], ordered[split_at:]


def _optional(value):
    if value is None or (isinstance(value, float) and math.isnan(value)):
        return None
    return value


def _to_bool(value) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "yes", "y")
    return bool(value)


def load_habits_csv(csv_path: Path) -> list[Habit]:
    """Columns: id, name, category, preferred_time, created_at[, is_active]."""
    df = pd.read_csv(csv_path, dtype={"id": str})
    df["created_at"] = pd.to_datetime(df["created_at"])
    if "is_active" not in df.columns:
        df["is_active"] = True

    return [
        Habit(
            id=row.id,
            name=row.name,
            category=row.category,
            preferred_time=row.preferred_time,
            created_at=row.created_at.to_pydatetime(),
            is_active=_to_bool(row.is_active),
        )
        for row in df.itertuples(index=False)
    ]


LOG_CONTEXT_COLUMNS = ("mood", "sleep_hours", "energy_level", "stress_level", "weather")


def load_logs_csv(csv_path: Path) -> list[HabitLog]:
    """Columns: id, habit_id, date, completed[, logged_at, mood, sleep_hours, energy_level, stress_level, weather]."""
    df = pd.read_csv(csv_path, dtype={"id": str, "habit_id": str})
    df["date"] = pd.to_datetime(df["date"]).dt.date
    for col in ("logged_at",) + LOG_CONTEXT_COLUMNS:
        if col not in df.columns:
            df[col] = None
    df = df.astype(object).where(df.notna(), None)

    logs = []
    for row in df.itertuples(index=False):
        logged_at = _optional(row.logged_at)
        energy = _optional(row.energy_level)
        stress = _optional(row.stress_level)
        sleep = _optional(row.sleep_hours)
        logs.append(
            HabitLog(
                id=row.id,
                habit_id=row.habit_id,
                date=row.date,
                completed=_to_bool(row.completed),
                logged_at=pd.Timestamp(logged_at).to_pydatetime() if logged_at is not None else None,
                mood=_optional(row.mood),
                sleep_hours=float(sleep) if sleep is not None else None,
                energy_level=int(energy) if energy is not None else None,
                stress_level=int(stress) if stress is not None else None,
                weather=_optional(row.weather),
            )
        )
    return logs
