from datetime import date, datetime, timedelta

import pytest

from habit_forecast.records import Habit, HabitLog
from habit_forecast.sample_data import generate_sample_data

TODAY = date(2024, 3, 1)


def make_habit(habit_id="h1", name="Exercise", category="Health", preferred_time="morning", **kwargs):
    return Habit(
        id=habit_id,
        name=name,
        category=category,
        preferred_time=preferred_time,
        created_at=kwargs.pop("created_at", datetime(2024, 1, 1)),
        **kwargs,
    )


def make_log(habit_id, day, completed, **context):
    day = date.fromisoformat(day) if isinstance(day, str) else day
    return HabitLog(
        id=f"{habit_id}-{day.isoformat()}",
        habit_id=habit_id,
        date=day,
        completed=completed,
        logged_at=datetime.combine(day, datetime.min.time()),
        **context,
    )


def daily_logs(habit_id, start, outcomes, **context):
    return [make_log(habit_id, start + timedelta(days=i), done, **context) for i, done in enumerate(outcomes)]


@pytest.fixture(scope="session")
def sample_data():
    return generate_sample_data(num_days=40, seed=7, today=TODAY)
