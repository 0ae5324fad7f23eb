import threading
from datetime import date, timedelta

import pytest

from habit_forecast.data_prep import (
    create_training_data,
    encode_features,
    extract_features,
    make_chronological_split,
)
from habit_forecast.engine import EngineConfig, PredictionEngine
from habit_forecast.records import HabitStats

from conftest import TODAY, daily_logs, make_habit, make_log


@pytest.fixture(scope="module")
def trained_engine(sample_data):
    habits, logs = sample_data
    engine = PredictionEngine()
    engine.train(habits, logs)
    return engine


def _stats(success_rate=0.0, streak=0, days_since=999, total=0):
    return HabitStats("h", total, 0, success_rate, streak, streak, days_since)


def test_too_few_logs_stays_untrained():
    habits = [make_habit()]
    logs = daily_logs("h1", date(2024, 1, 1), [True, False, True, True, False])

    engine = PredictionEngine()
    state = engine.train(habits, logs)

    assert state.is_trained is False
    assert state.total_samples == 5
    assert engine.performance_report is None
    predictions = engine.predict_for_date(habits, logs, date(2024, 1, 6))
    assert len(predictions) == 1
    assert predictions[0].source == "heuristic"


def test_logs_without_matching_habits_stay_untrained():
    logs = daily_logs("ghost", date(2024, 1, 1), [True] * 12)

    state = PredictionEngine().train([make_habit()], logs)

    assert state.is_trained is False
    assert state.total_samples == 0


def test_training_builds_report(trained_engine, sample_data):
    _, logs = sample_data
    state = trained_engine.state
    report = trained_engine.performance_report

    assert state.is_trained
    assert state.total_samples == len(logs)
    assert 0.0 <= state.accuracy <= 1.0
    assert state.accuracy == report.ensemble.accuracy
    assert state.training_date is not None
    assert len(report.cross_validation.ensemble) == 5
    assert report.learning_curve
    assert set(state.feature_importance) == set(report.feature_importance)
    assert report.data_quality.total_samples == len(logs)
    assert len(report.test_actuals) == len(logs) - int(len(logs) * (1 - 0.2))
    assert report.ensemble.confusion.total == len(report.test_actuals)
    assert 0.0 <= report.logistic.roc_auc <= 1.0
    assert "logistic" in report.to_dict()


def test_predict_for_date_active_sorted(trained_engine, sample_data):
    habits, logs = sample_data
    habits = habits[:-1] + [habits[-1].deactivated()]

    predictions = trained_engine.predict_for_date(habits, logs, TODAY)

    assert [p.habit_id for p in predictions if p.habit_id == habits[-1].id] == []
    assert len(predictions) == len(habits) - 1
    probs = [p.probability for p in predictions]
    assert probs == sorted(probs, reverse=True)
    assert all(0.0 <= p <= 1.0 for p in probs)


def test_habits_with_long_history_use_ensemble(trained_engine):
    habits = [make_habit("long"), make_habit("short", name="Read", category="Learning")]
    logs = daily_logs("long", date(2024, 1, 1), [True, False, True] * 9)
    logs += daily_logs("short", date(2024, 1, 20), [True, True])

    by_id = {p.habit_id: p for p in trained_engine.predict_for_date(habits, logs, date(2024, 1, 28))}

    assert by_id["long"].source == "ensemble"
    assert by_id["long"].confidence == "high"
    assert by_id["long"].explanation.startswith("Ensemble model prediction")
    assert by_id["short"].source == "heuristic"
    assert by_id["short"].confidence == "low"


def test_live_predictions_weight_logistic_over_tree(trained_engine):
    habits = [make_habit("long")]
    logs = daily_logs("long", date(2024, 1, 1), [True, False, True] * 9)
    target = date(2024, 1, 28)
    logistic, tree = trained_engine.models
    x = encode_features(extract_features(habits[0], logs, target))

    [prediction] = trained_engine.predict_for_date(habits, logs, target)

    assert prediction.source == "ensemble"
    assert prediction.probability == pytest.approx(
        0.6 * logistic.predict_proba(x) + 0.4 * tree.predict_proba(x)
    )


def test_held_out_probabilities_average_both_models(trained_engine, sample_data):
    habits, logs = sample_data
    training = create_training_data(habits, logs)
    _, test_idx = make_chronological_split([day for _, day in training.metadata], test_size=0.2)
    X_test = training.features[test_idx]
    logistic, tree = trained_engine.models

    expected = 0.5 * logistic.predict_proba(X_test) + 0.5 * tree.predict_proba(X_test)

    report = trained_engine.performance_report
    assert report.test_actuals == training.labels[test_idx].tolist()
    assert report.test_probabilities == pytest.approx(expected.tolist())


def test_state_and_models_swap_together(sample_data):
    habits, logs = sample_data
    engine = PredictionEngine()
    assert engine.models is None and not engine.state.is_trained

    trained = engine.train(habits, logs)
    assert engine.state is trained
    assert engine.models is not None and engine.state.is_trained

    engine.train(habits, logs[:3])
    assert engine.models is None
    assert not engine.state.is_trained
    assert engine.state.total_samples == 3


def test_training_failure_resets_to_untrained(monkeypatch, sample_data):
    habits, logs = sample_data
    engine = PredictionEngine(EngineConfig(max_iter=50))
    assert engine.train(habits, logs).is_trained

    def boom(*args, **kwargs):
        raise RuntimeError("boom")

    monkeypatch.setattr("habit_forecast.engine.perform_cross_validation", boom)
    state = engine.train(habits, logs)

    assert state.is_trained is False
    assert state.last_error == "boom"
    assert state.total_samples == len(logs)
    assert engine.performance_report is None
    assert len(engine.predict_for_date(habits, logs, TODAY)) == len(habits)


def test_heuristic_probability_is_clamped():
    engine = PredictionEngine()

    assert engine.heuristic_probability(_stats(1.0, 7, 0)) == pytest.approx(0.9)
    assert engine.heuristic_probability(_stats()) == pytest.approx(0.1)
    assert engine.heuristic_probability(_stats(0.5, 0, 0)) == pytest.approx(0.5)
    assert engine.heuristic_probability(_stats(0.75, 2, 1)) == pytest.approx(
        0.5 + 0.1 + 0.3 * 2 / 7 - 0.3 / 7
    )


def test_ties_keep_input_order():
    habits = [make_habit("a"), make_habit("b"), make_habit("c")]

    predictions = PredictionEngine().predict_for_date(habits, [], TODAY)

    assert [p.habit_id for p in predictions] == ["a", "b", "c"]


def test_heuristic_sees_only_logs_up_to_target():
    habit = make_habit()
    logs = daily_logs("h1", date(2024, 1, 1), [True] * 5) + [make_log("h1", "2024-01-10", False)]

    prediction = PredictionEngine().predict_for_date([habit], logs, date(2024, 1, 5))[0]

    assert prediction.streak == 5
    assert prediction.success_rate == 1.0


def test_top_predictions_for_today_and_tomorrow(sample_data):
    habits, logs = sample_data

    top = PredictionEngine().get_top_predictions(habits, logs, count=2, today=TODAY)

    assert set(top) == {"today", "tomorrow"}
    assert len(top["today"]) == 2
    assert len(top["tomorrow"]) == 2


def test_concurrent_training_is_serialized(sample_data):
    habits, logs = sample_data
    engine = PredictionEngine(EngineConfig(max_iter=50, cv_folds=2, learning_curve_sizes=(1.0,)))
    results = []

    def run():
        results.append(engine.train(habits, logs))

    threads = [threading.Thread(target=run) for _ in range(2)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert all(state.is_trained for state in results)
    assert engine.is_trained
    assert engine.state is results[-1] or engine.state is results[0]
    assert engine.predict_for_date(habits, logs, TODAY + timedelta(days=1))
