"""
Score Normalizers - The Expert Curves
Pure functions mapping averaged metric values (or ratios to a personal
baseline) onto 0-100 sub-scores. None in, None out: a metric that cannot be
scored never gets a made-up value here.
"""

from typing import Optional, Sequence, Tuple

import numpy as np

Anchors = Sequence[Tuple[float, float]]

# (x, y) anchor points, x strictly increasing
SLEEP_HOURS_ANCHORS: Anchors = (
    (5.0, 40.0),
    (6.0, 60.0),
    (7.0, 80.0),
    (8.0, 95.0),
    (9.0, 90.0),
    (10.0, 80.0),
)

HRV_RATIO_ANCHORS: Anchors = (
    (0.75, 40.0),
    (0.85, 60.0),
    (1.00, 80.0),
    (1.10, 90.0),
    (1.20, 95.0),
)

# x is baseline minus 7-day mean: positive means the heart rate dropped
RHR_DELTA_ANCHORS: Anchors = (
    (-5.0, 40.0),
    (-2.0, 60.0),
    (0.0, 75.0),
    (3.0, 88.0),
    (6.0, 95.0),
)

VO2MAX_RATIO_ANCHORS: Anchors = (
    (0.95, 60.0),
    (1.00, 75.0),
    (1.05, 88.0),
    (1.10, 95.0),
)

STRESS_ANCHORS: Anchors = (
    (0.0, 90.0),
    (25.0, 90.0),
    (50.0, 75.0),
    (75.0, 60.0),
    (100.0, 45.0),
)

STEPS_RATIO_ANCHORS: Anchors = (
    (0.70, 55.0),
    (0.85, 70.0),
    (1.00, 80.0),
    (1.15, 90.0),
    (1.30, 95.0),
)

ACTIVITY_RATIO_WEIGHT = 0.7
ACTIVITY_CONSISTENCY_WEIGHT = 0.3


def clamp_score(value: float) -> float:
    return min(100.0, max(0.0, value))


def interpolate(value: float, anchors: Anchors) -> float:
    """
    Piecewise-linear interpolation over anchor points.
    Values below the first anchor take its y, values above the last take its y.
    """
    xs = [x for x, _ in anchors]
    ys = [y for _, y in anchors]
    return float(np.interp(value, xs, ys))


def _ratio(value: Optional[float], baseline: Optional[float]) -> Optional[float]:
    if value is None or baseline is None or baseline <= 0:
        return None
    return value / baseline


def normalize_sleep(avg_7d: Optional[float], avg_28d: Optional[float],
                    avg_90d: Optional[float]) -> Optional[float]:
    """Score sleep duration from the freshest available window."""
    hours = next((v for v in (avg_7d, avg_28d, avg_90d) if v is not None), None)
    if hours is None:
        return None
    return interpolate(hours, SLEEP_HOURS_ANCHORS)


def normalize_hrv(avg_7d: Optional[float], baseline_90d: Optional[float],
                  baseline_28d: Optional[float]) -> Optional[float]:
    """Score the 7-day HRV against the 90-day baseline (28-day if the former is missing)."""
    baseline = baseline_90d if baseline_90d is not None else baseline_28d
    ratio = _ratio(avg_7d, baseline)
    if ratio is None:
        return None
    return interpolate(ratio, HRV_RATIO_ANCHORS)


def normalize_rhr(avg_7d: Optional[float], baseline_90d: Optional[float]) -> Optional[float]:
    if avg_7d is None or baseline_90d is None or baseline_90d <= 0:
        return None
    return interpolate(baseline_90d - avg_7d, RHR_DELTA_ANCHORS)


def normalize_readiness(avg_7d: Optional[float]) -> Optional[float]:
    if avg_7d is None:
        return None
    return clamp_score(avg_7d)


def normalize_stress(avg_7d: Optional[float]) -> Optional[float]:
    if avg_7d is None:
        return None
    return interpolate(avg_7d, STRESS_ANCHORS)


def normalize_vo2max(avg_7d: Optional[float], baseline_90d: Optional[float]) -> Optional[float]:
    ratio = _ratio(avg_7d, baseline_90d)
    if ratio is None:
        return None
    return interpolate(ratio, VO2MAX_RATIO_ANCHORS)


def acute_chronic_ratio(acute_7d: Optional[float], chronic_28d: Optional[float]) -> Optional[float]:
    return _ratio(acute_7d, chronic_28d)


def score_load_balance_ratio(ratio: float) -> float:
    """Band lookup for the acute/chronic workload ratio; 0.8-1.2 is the sweet spot."""
    if 0.8 <= ratio <= 1.2:
        return 90.0
    if 0.7 <= ratio < 0.8 or 1.2 < ratio < 1.3:
        return 75.0
    if 0.6 <= ratio < 0.7 or 1.3 <= ratio < 1.4:
        return 60.0
    return 45.0


def normalize_load_balance(acute_7d: Optional[float], chronic_28d: Optional[float]) -> Optional[float]:
    ratio = acute_chronic_ratio(acute_7d, chronic_28d)
    if ratio is None:
        return None
    return score_load_balance_ratio(ratio)


def score_training_trend(ratio: float) -> float:
    """Fitness trend from the 7d/28d training load ratio: building, maintaining or detraining."""
    if ratio >= 1.1:
        return 90.0
    if ratio >= 0.9:
        return 80.0
    if ratio >= 0.7:
        return 65.0
    return 50.0


def score_step_consistency(consistent_days: int) -> float:
    if consistent_days >= 5:
        return 90.0
    if consistent_days >= 3:
        return 75.0
    if consistent_days >= 1:
        return 55.0
    return 40.0


def normalize_steps_ratio(steps_7d: Optional[float], steps_90d: Optional[float]) -> Optional[float]:
    ratio = _ratio(steps_7d, steps_90d)
    if ratio is None:
        return None
    return interpolate(ratio, STEPS_RATIO_ANCHORS)


def normalize_activity(steps_7d: Optional[float], steps_90d: Optional[float],
                       consistent_days_7d: int) -> Optional[float]:
    """
    Blend of the steps ratio (70%) and weekly consistency (30%).

    With a ratio available the blend always applies (zero consistent days
    score 40). Without a ratio, consistency stands alone only if at least one
    day in the last week reached the step threshold; otherwise None.
    """
    ratio_score = normalize_steps_ratio(steps_7d, steps_90d)
    consistency_score = score_step_consistency(consistent_days_7d)

    if ratio_score is not None:
        return ACTIVITY_RATIO_WEIGHT * ratio_score + ACTIVITY_CONSISTENCY_WEIGHT * consistency_score
    if consistent_days_7d > 0:
        return consistency_score
    return None
