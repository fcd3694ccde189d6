"""
Health Analyzer - The Cleaning Layer
Sanitizes raw daily entries, measures per-metric coverage and computes the
rolling averages the normalizers work from.
All windows are anchored on the most recent day present in the data, never on
wall-clock today.
"""

import logging
from dataclasses import dataclass
from datetime import date
from typing import Dict, Iterable, List, Optional

import numpy as np
import pandas as pd

from health_models import CleanedEntry, CoverageTier, HealthMetric, RawDailyEntry
from scoring_config import ScoringConfiguration

logger = logging.getLogger(__name__)


def sanitize(value: Optional[float], metric: HealthMetric,
             outlier_counts: Optional[Dict[HealthMetric, int]] = None) -> Optional[float]:
    """
    Validate a single raw value for a metric.

    Missing, zero, NaN and infinite values mean "not measured" and return None.
    Values outside the metric's valid range also return None and are counted
    in outlier_counts when a counter is supplied.
    """
    if value is None:
        return None
    value = float(value)
    if value == 0 or not np.isfinite(value):
        return None

    low, high = metric.valid_range
    if value < low or value > high:
        if outlier_counts is not None:
            outlier_counts[metric] = outlier_counts.get(metric, 0) + 1
        return None

    return value


@dataclass(frozen=True)
class CoverageResult:
    """Valid-day counts, tiers and gap flags per metric."""
    coverage90: Dict[HealthMetric, int]
    coverage14: Dict[HealthMetric, int]
    tiers: Dict[HealthMetric, CoverageTier]
    data_gaps: Dict[HealthMetric, bool]

    def tier(self, metric: HealthMetric) -> CoverageTier:
        return self.tiers.get(metric, CoverageTier.UNAVAILABLE)


@dataclass(frozen=True)
class Averages:
    """Window means per metric; None whenever the window holds no valid value."""
    sleep_7d: Optional[float] = None
    sleep_28d: Optional[float] = None
    sleep_90d: Optional[float] = None
    hrv_7d: Optional[float] = None
    hrv_28d: Optional[float] = None
    hrv_90d: Optional[float] = None
    rhr_7d: Optional[float] = None
    rhr_90d: Optional[float] = None
    vo2max_7d: Optional[float] = None
    vo2max_90d: Optional[float] = None
    readiness_7d: Optional[float] = None
    stress_7d: Optional[float] = None
    training_load_7d: Optional[float] = None
    training_load_28d: Optional[float] = None
    steps_7d: Optional[float] = None
    steps_90d: Optional[float] = None
    consistent_step_days_7d: int = 0


class HealthAnalyzer:
    """
    Cleans a full window of RawDailyEntry values once and answers coverage and
    averaging questions about it.
    """

    SHORT_WINDOW_DAYS = 7
    FRESHNESS_WINDOW_DAYS = 14
    CHRONIC_WINDOW_DAYS = 28
    GAP_TRACKED_METRICS = (HealthMetric.SLEEP_HOURS, HealthMetric.HRV_MS)

    def __init__(self, entries: Iterable[RawDailyEntry],
                 config: Optional[ScoringConfiguration] = None):
        """
        Args:
            entries: Raw days in any order; on duplicate dates the last one wins
            config: Scoring thresholds (defaults to ScoringConfiguration())
        """
        self.config = config or ScoringConfiguration()
        self.outlier_counts: Dict[HealthMetric, int] = {metric: 0 for metric in HealthMetric}
        self.cleaned: Dict[date, CleanedEntry] = self._clean_entries(entries)
        self.sorted_dates: List[date] = sorted(self.cleaned)
        self.total_days = len(self.sorted_dates)
        self.frame = self._build_dataframe()

    def _clean_entries(self, entries: Iterable[RawDailyEntry]) -> Dict[date, CleanedEntry]:
        latest: Dict[date, RawDailyEntry] = {}
        for entry in entries:
            latest[entry.date] = entry

        cleaned = {}
        for day in sorted(latest):
            raw = latest[day]
            values = {
                metric.value: sanitize(raw.value_for(metric), metric, self.outlier_counts)
                for metric in HealthMetric
            }
            cleaned[day] = CleanedEntry(date=day, **values)
        return cleaned

    def _build_dataframe(self) -> pd.DataFrame:
        """One row per day, one float column per metric, NaN where nothing valid was measured."""
        columns = [metric.value for metric in HealthMetric]
        records = []
        for day in self.sorted_dates:
            entry = self.cleaned[day]
            record = {"date": pd.Timestamp(day)}
            for metric in HealthMetric:
                record[metric.value] = entry.value_for(metric)
            records.append(record)

        if not records:
            return pd.DataFrame(columns=columns, dtype="float64")

        frame = pd.DataFrame(records).set_index("date").sort_index()
        return frame[columns].astype("float64")

    def analyze_coverage(self) -> CoverageResult:
        """Count valid days per metric over the whole window and the last 14 present days."""
        recent = self.frame.tail(self.FRESHNESS_WINDOW_DAYS)

        coverage90 = {}
        coverage14 = {}
        tiers = {}
        for metric in HealthMetric:
            coverage90[metric] = int(self.frame[metric.value].notna().sum())
            coverage14[metric] = int(recent[metric.value].notna().sum())
            tiers[metric] = CoverageTier.from_valid_days(coverage90[metric])

        data_gaps = {metric: self._has_data_gap(metric) for metric in self.GAP_TRACKED_METRICS}

        return CoverageResult(
            coverage90=coverage90,
            coverage14=coverage14,
            tiers=tiers,
            data_gaps=data_gaps
        )

    def _has_data_gap(self, metric: HealthMetric) -> bool:
        """
        True if more than gap_penalty_days consecutive present days carry no
        valid value. Only dates in the input are walked; absent dates are skipped.
        """
        if self.frame.empty:
            return False

        missing = self.frame[metric.value].isna()

        # each day with a valid value starts a new run; sum the missing days in every run
        run_ids = (~missing).cumsum()
        longest_run = int(missing.groupby(run_ids).sum().max())
        return longest_run > self.config.gap_penalty_days

    def _window_mask(self, days: int) -> np.ndarray:
        anchor = self.frame.index.max()
        days_ago = (anchor - self.frame.index).days
        return np.asarray((days_ago >= 0) & (days_ago < days))

    def _mean(self, metric: HealthMetric, mask: Optional[np.ndarray] = None) -> Optional[float]:
        series = self.frame[metric.value]
        if mask is not None:
            series = series[mask]
        value = series.mean()
        return None if pd.isna(value) else float(value)

    def compute_averages(self) -> Averages:
        """7-day, 28-day and full-window means plus the 7-day step consistency count."""
        if self.frame.empty:
            return Averages()

        last_7 = self._window_mask(self.SHORT_WINDOW_DAYS)
        last_28 = self._window_mask(self.CHRONIC_WINDOW_DAYS)

        recent_steps = self.frame[HealthMetric.STEPS.value][last_7]
        consistent_days = int((recent_steps >= self.config.consistency_steps_threshold).sum())

        averages = Averages(
            sleep_7d=self._mean(HealthMetric.SLEEP_HOURS, last_7),
            sleep_28d=self._mean(HealthMetric.SLEEP_HOURS, last_28),
            sleep_90d=self._mean(HealthMetric.SLEEP_HOURS),
            hrv_7d=self._mean(HealthMetric.HRV_MS, last_7),
            hrv_28d=self._mean(HealthMetric.HRV_MS, last_28),
            hrv_90d=self._mean(HealthMetric.HRV_MS),
            rhr_7d=self._mean(HealthMetric.RESTING_HR, last_7),
            rhr_90d=self._mean(HealthMetric.RESTING_HR),
            vo2max_7d=self._mean(HealthMetric.VO2MAX, last_7),
            vo2max_90d=self._mean(HealthMetric.VO2MAX),
            readiness_7d=self._mean(HealthMetric.READINESS_SCORE, last_7),
            stress_7d=self._mean(HealthMetric.STRESS_SCORE, last_7),
            training_load_7d=self._mean(HealthMetric.TRAINING_LOAD, last_7),
            training_load_28d=self._mean(HealthMetric.TRAINING_LOAD, last_28),
            steps_7d=self._mean(HealthMetric.STEPS, last_7),
            steps_90d=self._mean(HealthMetric.STEPS),
            consistent_step_days_7d=consistent_days
        )
        logger.debug("Averages over %d days anchored at %s: %s",
                     self.total_days, self.sorted_dates[-1], averages)
        return averages
