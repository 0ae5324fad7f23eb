from __future__ import annotations

"""
Shared vocabularies and normalization constants for habit features.
"""

import math

TIMES_OF_DAY = ("morning", "afternoon", "evening", "anytime")
MOODS = ("great", "good", "okay", "poor")
WEATHER = ("sunny", "cloudy", "rainy", "snowy")

MOOD_SCALE = {"poor": 0.0, "okay": 0.33, "good": 0.67, "great": 1.0}

# Encoded values used when the most recent log carries no context
DEFAULT_MOOD = 0.5
DEFAULT_SLEEP = 0.75
DEFAULT_ENERGY = 0.5
DEFAULT_STRESS = 0.5

NO_LOG_SENTINEL_DAYS = 999

STREAK_SCALE = math.log1p(30)
AGE_SCALE = math.log1p(365)
RECENCY_CAP_DAYS = 30
SLEEP_CAP_HOURS = 10

FEATURE_NAMES = (
    "day_of_week",
    "time_of_day_morning",
    "time_of_day_afternoon",
    "time_of_day_evening",
    "time_of_day_anytime",
    "mood",
    "sleep_hours",
    "energy_level",
    "stress_level",
    "weather_sunny",
    "weather_cloudy",
    "weather_rainy",
    "weather_snowy",
    "streak",
    "days_since_last_log",
    "success_rate",
    "category",
    "days_since_created",
    "is_weekend",
)

MOOD_COL = FEATURE_NAMES.index("mood")
SLEEP_COL = FEATURE_NAMES.index("sleep_hours")
ENERGY_COL = FEATURE_NAMES.index("energy_level")
STRESS_COL = FEATURE_NAMES.index("stress_level")
WEATHER_COLS = slice(FEATURE_NAMES.index("weather_sunny"), FEATURE_NAMES.index("weather_snowy") + 1)
SUCCESS_RATE_COL = FEATURE_NAMES.index("success_rate")

# Helper models trained inside cross-validation and learning curves
EVAL_LR = 0.01
EVAL_MAX_ITER = 300
EVAL_MAX_DEPTH = 4
EVAL_MIN_SAMPLES_SPLIT = 3

LEARNING_CURVE_SIZES = (0.1, 0.2, 0.4, 0.6, 0.8, 1.0)
MIN_LEARNING_CURVE_SAMPLES = 10
