from datetime import date

import pytest

from garmin_collector import (
    GarminCollector,
    build_entry,
    daily_training_load,
    extract_hrv_value,
    extract_readiness,
    extract_rhr_value,
    extract_sleep_hours,
    extract_stress,
    extract_vo2max
)


class FakeGarmin:
    """Stands in for garminconnect.Garmin with canned payloads."""

    def __init__(self, fail=()):
        self.fail = set(fail)
        self.calls = []

    def _answer(self, name, date_str, payload):
        self.calls.append((name, date_str))
        if name in self.fail:
            raise ConnectionError(f"{name} unavailable")
        return payload

    def get_sleep_data(self, date_str):
        return self._answer("get_sleep_data", date_str, {"dailySleepDTO": {"sleepTimeSeconds": 27000}})

    def get_hrv_data(self, date_str):
        return self._answer("get_hrv_data", date_str, {"hrvSummary": {"lastNightAvg": 48, "weeklyAvg": 51}})

    def get_rhr_day(self, date_str):
        return self._answer("get_rhr_day", date_str, {
            "allMetrics": {"metricsMap": {"WELLNESS_RESTING_HEART_RATE": [{"value": 53.0}]}}
        })

    def get_stats(self, date_str):
        return self._answer("get_stats", date_str, {"totalSteps": 8421, "restingHeartRate": 54})

    def get_stress_data(self, date_str):
        return self._answer("get_stress_data", date_str, {"avgStressLevel": 31})

    def get_max_metrics(self, date_str):
        return self._answer("get_max_metrics", date_str, [{"generic": {"vo2MaxPreciseValue": 47.3}}])

    def get_training_readiness(self, date_str):
        return self._answer("get_training_readiness", date_str, [{"score": 72}, {"score": 65}])

    def get_activities_by_date(self, start, end):
        self.calls.append(("get_activities_by_date", start, end))
        return [
            {"startTimeLocal": "2026-03-30 07:12:00", "activityTrainingLoad": 120.5},
            {"startTimeLocal": "2026-03-30 18:40:00", "activityTrainingLoad": 80.0},
            {"startTimeLocal": "2026-03-31 06:00:00", "activityTrainingLoad": 210.0},
        ]


@pytest.fixture(autouse=True)
def no_credentials(monkeypatch):
    for name in ("GARMIN_EMAIL", "GARMIN_CONNECT_EMAIL", "GARMIN_PASSWORD"):
        monkeypatch.delenv(name, raising=False)


def test_extract_sleep_hours():
    assert extract_sleep_hours({"dailySleepDTO": {"sleepTimeSeconds": 27000}}) == 7.5
    assert extract_sleep_hours({"sleepTimeSeconds": 3600}) == 1.0
    assert extract_sleep_hours({"dailySleepDTO": {"sleepTimeSeconds": None}}) is None
    assert extract_sleep_hours(None) is None


def test_extract_hrv_value_variants():
    assert extract_hrv_value({"hrvSummary": {"lastNightAvg": 48}}) == 48
    assert extract_hrv_value({"hrvSummary": {"lastNightAvg": None, "weeklyAvg": 51}}) == 51
    assert extract_hrv_value({"lastNightAvg": 44}) == 44
    assert extract_hrv_value({"dailyHrv": {"hrvValue": 39}}) == 39
    assert extract_hrv_value({}) is None
    assert extract_hrv_value("bad") is None


def test_extract_rhr_value_falls_back_to_stats():
    assert extract_rhr_value({"restingHeartRate": 52}) == 52
    assert extract_rhr_value(None, {"restingHeartRate": 57}) == 57
    assert extract_rhr_value(None, None) is None


def test_extract_vo2max_prefers_precise_value():
    assert extract_vo2max([{"generic": {"vo2MaxPreciseValue": 47.3, "vo2MaxValue": 47}}]) == 47.3
    assert extract_vo2max({"generic": None, "cycling": {"vo2MaxValue": 52}}) == 52
    assert extract_vo2max([]) is None


def test_extract_readiness_and_stress():
    assert extract_readiness([{"score": None}, {"score": 64}]) == 64
    assert extract_readiness({"score": 80}) == 80
    assert extract_readiness(None) is None
    assert extract_stress({"avgStressLevel": 28}) == 28
    assert extract_stress({"avgStressLevel": -1}) is None
    assert extract_stress({}) is None


def test_daily_training_load_sums_per_day():
    loads = daily_training_load([
        {"startTimeLocal": "2026-03-30 07:12:00", "activityTrainingLoad": 120.5},
        {"startTimeLocal": "2026-03-30 18:40:00", "activityTrainingLoad": 80.0},
        {"startTimeLocal": "garbage", "activityTrainingLoad": 50.0},
        {"startTimeLocal": "2026-03-29 10:00:00", "activityTrainingLoad": None},
    ])
    assert loads == {date(2026, 3, 30): 200.5}
    assert daily_training_load(None) == {}


def test_build_entry_maps_all_metrics():
    client = FakeGarmin()
    payloads = {
        "sleep": client.get_sleep_data("2026-03-31"),
        "hrv": client.get_hrv_data("2026-03-31"),
        "rhr": client.get_rhr_day("2026-03-31"),
        "stats": client.get_stats("2026-03-31"),
        "stress": client.get_stress_data("2026-03-31"),
        "max_metrics": client.get_max_metrics("2026-03-31"),
        "training_readiness": client.get_training_readiness("2026-03-31"),
    }
    entry = build_entry(date(2026, 3, 31), payloads, training_load=210.0)

    assert entry.date == date(2026, 3, 31)
    assert entry.sleep_hours == 7.5
    assert entry.hrv_ms == 48
    assert entry.resting_hr == 53.0
    assert entry.vo2max == 47.3
    assert entry.steps == 8421
    assert entry.training_load == 210.0
    assert entry.readiness_score == 72
    assert entry.stress_score == 31


def test_build_entry_with_no_payloads():
    entry = build_entry(date(2026, 3, 31), {})
    assert entry.sleep_hours is None
    assert entry.steps is None
    assert entry.training_load is None


def test_history_presets():
    assert GarminCollector(history_preset="extended").history_days == 180
    assert GarminCollector(history_days=45).history_days == 45
    assert GarminCollector().history_days == 90


def test_authenticate_requires_credentials():
    with pytest.raises(ValueError):
        GarminCollector().authenticate()


def test_fetch_requires_client():
    with pytest.raises(RuntimeError):
        GarminCollector().fetch_day(date(2026, 3, 31))


def test_failing_endpoint_yields_none():
    collector = GarminCollector(client=FakeGarmin(fail={"get_hrv_data"}))
    payloads = collector.fetch_day(date(2026, 3, 31))

    assert payloads["hrv"] is None
    assert payloads["sleep"] is not None
    assert set(payloads) == set(GarminCollector.DAILY_ENDPOINTS)


def test_collect_entries_covers_window_oldest_first():
    client = FakeGarmin()
    collector = GarminCollector(history_days=3, client=client)
    entries = collector.collect_entries(date(2026, 3, 31))

    assert [e.date for e in entries] == [date(2026, 3, 29), date(2026, 3, 30), date(2026, 3, 31)]
    assert [e.training_load for e in entries] == [None, 200.5, 210.0]
    assert ("get_activities_by_date", "2026-03-29", "2026-03-31") in client.calls
