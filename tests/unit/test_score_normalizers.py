import pytest

from score_normalizers import (
    SLEEP_HOURS_ANCHORS,
    interpolate,
    normalize_activity,
    normalize_hrv,
    normalize_load_balance,
    normalize_readiness,
    normalize_rhr,
    normalize_sleep,
    normalize_steps_ratio,
    normalize_stress,
    normalize_vo2max,
    score_load_balance_ratio,
    score_step_consistency,
    score_training_trend
)


@pytest.mark.parametrize("hours,expected", [
    (4.0, 40.0),
    (5.0, 40.0),
    (5.5, 50.0),
    (7.5, 87.5),
    (8.0, 95.0),
    (9.5, 85.0),
    (10.0, 80.0),
    (13.0, 80.0),
])
def test_sleep_interpolation(hours, expected):
    assert interpolate(hours, SLEEP_HOURS_ANCHORS) == pytest.approx(expected)
    assert normalize_sleep(hours, None, None) == pytest.approx(expected)


def test_sleep_falls_back_to_longer_windows():
    assert normalize_sleep(None, 6.0, 8.0) == pytest.approx(60.0)
    assert normalize_sleep(None, None, 8.0) == pytest.approx(95.0)
    assert normalize_sleep(None, None, None) is None


def test_hrv_ratio_against_baseline():
    assert normalize_hrv(50.0, 50.0, None) == pytest.approx(80.0)
    assert normalize_hrv(55.0, 50.0, None) == pytest.approx(90.0)
    assert normalize_hrv(30.0, 50.0, None) == pytest.approx(40.0)
    # 28-day baseline only when the 90-day one is missing
    assert normalize_hrv(60.0, None, 50.0) == pytest.approx(95.0)
    assert normalize_hrv(60.0, 60.0, 50.0) == pytest.approx(80.0)


@pytest.mark.parametrize("args", [
    (None, 50.0, 50.0),
    (50.0, None, None),
    (50.0, 0.0, 50.0),
    (50.0, -1.0, None),
])
def test_hrv_needs_positive_baseline(args):
    assert normalize_hrv(*args) is None


def test_rhr_delta():
    assert normalize_rhr(55.0, 55.0) == pytest.approx(75.0)
    assert normalize_rhr(52.0, 55.0) == pytest.approx(88.0)
    assert normalize_rhr(45.0, 55.0) == pytest.approx(95.0)
    assert normalize_rhr(57.0, 55.0) == pytest.approx(60.0)
    assert normalize_rhr(65.0, 55.0) == pytest.approx(40.0)
    assert normalize_rhr(55.0, None) is None
    assert normalize_rhr(55.0, 0.0) is None


def test_vo2max_ratio():
    assert normalize_vo2max(45.0, 45.0) == pytest.approx(75.0)
    assert normalize_vo2max(40.0, 45.0) == pytest.approx(60.0)
    assert normalize_vo2max(49.5, 45.0) == pytest.approx(95.0)
    assert normalize_vo2max(45.0, None) is None


def test_stress_lower_is_better():
    assert normalize_stress(10.0) == pytest.approx(90.0)
    assert normalize_stress(37.5) == pytest.approx(82.5)
    assert normalize_stress(100.0) == pytest.approx(45.0)
    assert normalize_stress(None) is None


def test_readiness_is_clamped_identity():
    assert normalize_readiness(72.5) == pytest.approx(72.5)
    assert normalize_readiness(130.0) == 100.0
    assert normalize_readiness(None) is None


@pytest.mark.parametrize("ratio,expected", [
    (0.59, 45.0),
    (0.6, 60.0),
    (0.7, 75.0),
    (0.8, 90.0),
    (1.0, 90.0),
    (1.2, 90.0),
    (1.25, 75.0),
    (1.3, 60.0),
    (1.39, 60.0),
    (1.4, 45.0),
    (2.0, 45.0),
])
def test_load_balance_bands(ratio, expected):
    assert score_load_balance_ratio(ratio) == expected


def test_load_balance_needs_chronic_baseline():
    assert normalize_load_balance(300.0, 300.0) == 90.0
    assert normalize_load_balance(300.0, None) is None
    assert normalize_load_balance(None, 300.0) is None


@pytest.mark.parametrize("ratio,expected", [
    (1.2, 90.0),
    (1.1, 90.0),
    (1.0, 80.0),
    (0.9, 80.0),
    (0.8, 65.0),
    (0.7, 65.0),
    (0.5, 50.0),
])
def test_training_trend_bands(ratio, expected):
    assert score_training_trend(ratio) == expected


@pytest.mark.parametrize("days,expected", [
    (0, 40.0), (1, 55.0), (2, 55.0), (3, 75.0), (4, 75.0), (5, 90.0), (7, 90.0),
])
def test_step_consistency(days, expected):
    assert score_step_consistency(days) == expected


def test_steps_ratio():
    assert normalize_steps_ratio(9000.0, 9000.0) == pytest.approx(80.0)
    assert normalize_steps_ratio(5000.0, 10000.0) == pytest.approx(55.0)
    assert normalize_steps_ratio(9000.0, None) is None


def test_activity_blend():
    assert normalize_activity(9000.0, 9000.0, 7) == pytest.approx(0.7 * 80.0 + 0.3 * 90.0)
    assert normalize_activity(9000.0, 9000.0, 0) == pytest.approx(0.7 * 80.0 + 0.3 * 40.0)


def test_activity_consistency_alone():
    assert normalize_activity(None, None, 3) == pytest.approx(75.0)
    assert normalize_activity(None, None, 0) is None
