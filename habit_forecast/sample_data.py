from __future__ import annotations

"""
Synthetic habit histories with weekday, preferred-time and improvement patterns,
for demos and for exercising the training pipeline.
"""

from datetime import date, datetime, time, timedelta
from typing import Optional

import numpy as np

from .constants import TIMES_OF_DAY
from .records import Habit, HabitLog

CATEGORIES = ["Health", "Learning", "Productivity", "Wellness", "Exercise"]
HABIT_NAMES = [
    "Morning Meditation",
    "Read for 30min",
    "Write in Journal",
    "Drink 8 Glasses Water",
    "Go to Gym",
    "Learn New Language",
]
# (weekday, weekend) multipliers
HABIT_PATTERNS = {
    "Morning Meditation": (1.1, 0.9),
    "Go to Gym": (0.8, 1.3),
    "Read for 30min": (0.9, 1.2),
}
TIME_PATTERNS = {"morning": (1.1, 0.8), "evening": (0.9, 1.1)}

MOODS_LOW_TO_HIGH = ["poor", "okay", "good", "great"]
MOOD_WEIGHTS_COMPLETED = [0.05, 0.15, 0.4, 0.4]
MOOD_WEIGHTS_MISSED = [0.2, 0.4, 0.3, 0.1]
MOOD_ENERGY = {"great": 4.5, "good": 3.5, "okay": 2.5, "poor": 1.5}
MOOD_STRESS = {"poor": 4, "okay": 3, "good": 2, "great": 1}
WEATHER_WEIGHTS = {"sunny": 0.4, "cloudy": 0.35, "rainy": 0.2, "snowy": 0.05}

LOG_PROBABILITY = 0.85


def generate_sample_data(
    num_days: int = 30, seed: Optional[int] = None, today: Optional[date] = None
) -> tuple[list[Habit], list[HabitLog]]:
    """Six habits logged over the ``num_days`` days before ``today``."""
    rng = np.random.default_rng(seed)
    today = today or date.today()
    start = today - timedelta(days=num_days)

    habits = [
        Habit(
            id=f"h{i + 1}",
            name=HABIT_NAMES[i],
            category=CATEGORIES[(i // 2) % len(CATEGORIES)],
            preferred_time=TIMES_OF_DAY[i % 4],
            created_at=datetime.combine(start + timedelta(days=i // 2), time()),
        )
        for i in range(6)
    ]

    logs: list[HabitLog] = []
    for day in range(num_days):
        current = start + timedelta(days=day)
        weekday = (current.weekday() + 1) % 7  # Sunday=0
        weekend = weekday in (0, 6)

        base_rate = 0.6 * (0.8 if weekend else 1.0) * (0.7 if weekday == 1 else 1.0)
        progress = 1 + (day / num_days) * 0.2

        for habit in habits:
            if current < habit.created_at.date() or rng.random() >= LOG_PROBABILITY:
                continue

            habit_mult = HABIT_PATTERNS.get(habit.name, (1.0, 1.0))[int(weekend)]
            time_mult = TIME_PATTERNS.get(habit.preferred_time, (1.0, 1.0))[int(weekend)]
            completed = bool(rng.random() < min(base_rate * habit_mult * time_mult * progress, 0.95))

            weights = MOOD_WEIGHTS_COMPLETED if completed else MOOD_WEIGHTS_MISSED
            mood = str(rng.choice(MOODS_LOW_TO_HIGH, p=weights))
            sleep = float(np.clip(7.5 + (rng.random() - 0.5) * 3, 4, 11))
            energy = int(np.clip(round(MOOD_ENERGY[mood] + (sleep - 7) * 0.3 + rng.random() - 0.5), 1, 5))
            stress = int(
                np.clip(round(MOOD_STRESS[mood] + (-0.5 if weekend else 0.5) + rng.random() - 0.5), 1, 5)
            )
            weather = str(rng.choice(list(WEATHER_WEIGHTS), p=list(WEATHER_WEIGHTS.values())))

            logs.append(
                HabitLog(
                    id=f"{habit.id}-{current.isoformat()}",
                    habit_id=habit.id,
                    date=current,
                    completed=completed,
                    logged_at=datetime.combine(current, time()) + timedelta(hours=float(rng.random() * 24)),
                    mood=mood,
                    sleep_hours=round(sleep * 2) / 2,
                    energy_level=energy,
                    stress_level=stress,
                    weather=weather,
                )
            )

    return habits, logs
