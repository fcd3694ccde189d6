"""
Health Score Engine - The Scoring Core
Turns a window of raw daily entries into a 0-100 HealthScore and a 0-100
ReliabilityScore.

Pipeline:
    sanitize -> coverage + averages -> normalize -> domain aggregation
    -> weight renormalization over available domains -> reliability
"""

import logging
from dataclasses import dataclass, replace
from typing import Iterable, List, Optional, Tuple

from health_analyzer import Averages, CoverageResult, HealthAnalyzer
from health_models import (
    CoverageTier,
    DomainBreakdown,
    HealthDomain,
    HealthMetric,
    HealthScoringResult,
    MetricBreakdown,
    RawDailyEntry
)
from score_normalizers import (
    acute_chronic_ratio,
    clamp_score,
    normalize_activity,
    normalize_hrv,
    normalize_load_balance,
    normalize_readiness,
    normalize_rhr,
    normalize_sleep,
    normalize_stress,
    normalize_vo2max,
    score_training_trend
)
from scoring_config import ScoringConfiguration

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DomainResult:
    """Provisional per-domain outcome; breakdown.normalized_weight is still 0.0."""
    domain: HealthDomain
    score: float
    breakdown: DomainBreakdown
    is_available: bool


class HealthScoreEngine:
    """
    Deterministic health scoring over a historical window.
    Holds no state between calls; one instance can serve any number of threads.
    """

    NEUTRAL_HEALTH_SCORE = 50.0
    HIGH_COVERAGE_BONUS = 2.0

    # Recovery members and their internal weights
    RECOVERY_WEIGHTS = (
        (HealthMetric.HRV_MS, 0.35),
        (HealthMetric.RESTING_HR, 0.25),
        (HealthMetric.READINESS_SCORE, 0.30),
        (HealthMetric.STRESS_SCORE, 0.10),
    )
    FITNESS_VO2MAX_WEIGHT = 0.7
    FITNESS_TREND_WEIGHT = 0.3

    SLEEP_DEFAULT_SCORE = 50.0
    LOAD_BALANCE_DEFAULT_SCORE = 75.0
    ACTIVITY_DEFAULT_SCORE = 50.0

    # (metric, max points, coverage target attribute on the configuration)
    RELIABILITY_COVERAGE = (
        (HealthMetric.SLEEP_HOURS, 20.0, "coverage_target_sleep"),
        (HealthMetric.HRV_MS, 20.0, "coverage_target_hrv"),
        (HealthMetric.RESTING_HR, 15.0, "coverage_target_others"),
        (HealthMetric.TRAINING_LOAD, 15.0, "coverage_target_others"),
        (HealthMetric.STEPS, 10.0, "coverage_target_others"),
    )
    # (metric, minimum valid days in the last 14, points)
    RELIABILITY_FRESHNESS = (
        (HealthMetric.SLEEP_HOURS, 8, 6.0),
        (HealthMetric.HRV_MS, 8, 6.0),
        (HealthMetric.RESTING_HR, 10, 3.0),
        (HealthMetric.TRAINING_LOAD, 10, 3.0),
        (HealthMetric.STEPS, 10, 2.0),
    )
    GAP_PENALTY = 10.0
    OUTLIER_PENALTY = 5.0
    OUTLIER_TRACKED_METRICS = (HealthMetric.SLEEP_HOURS, HealthMetric.HRV_MS, HealthMetric.RESTING_HR)

    def __init__(self, config: Optional[ScoringConfiguration] = None):
        self.config = config or ScoringConfiguration()

    def calculate(self, entries: Iterable[RawDailyEntry]) -> HealthScoringResult:
        """
        Score a window of daily entries.

        Args:
            entries: RawDailyEntry values in any order; duplicate dates keep the last entry

        Returns:
            A fresh HealthScoringResult. Never raises for missing or invalid data.
        """
        analyzer = HealthAnalyzer(entries, self.config)
        coverage = analyzer.analyze_coverage()
        averages = analyzer.compute_averages()

        domain_results = self.calculate_domains(averages, coverage)
        health_score, included, excluded = self.finalize(domain_results)

        if included:
            reliability_score = self.calculate_reliability(
                coverage, analyzer.outlier_counts, analyzer.total_days
            )
        else:
            reliability_score = 0.0

        logger.debug("HealthScore=%.2f Reliability=%.2f included=%d excluded=%s days=%d",
                     health_score, reliability_score, len(included), list(excluded),
                     analyzer.total_days)

        return HealthScoringResult(
            health_score=health_score,
            reliability_score=reliability_score,
            included_domains=included,
            excluded_domains=excluded,
            metric_coverage90={m.key: coverage.coverage90[m] for m in HealthMetric},
            metric_coverage14={m.key: coverage.coverage14[m] for m in HealthMetric},
            outlier_counts={m.key: analyzer.outlier_counts[m] for m in HealthMetric},
            data_gap_flags={m.key: flag for m, flag in coverage.data_gaps.items()}
        )

    # ------------------------------------------------------------------ domains

    def calculate_domains(self, averages: Averages, coverage: CoverageResult) -> List[DomainResult]:
        results = [
            self.recovery_domain(averages, coverage),
            self.sleep_domain(averages, coverage),
            self.fitness_domain(averages, coverage),
            self.load_balance_domain(averages, coverage),
            self.activity_domain(averages, coverage),
        ]
        for result in results:
            logger.debug("Domain[%s]: score=%.2f available=%s metrics=%d",
                         result.domain.value, result.score, result.is_available,
                         len(result.breakdown.used_metrics))
        return results

    def _metric_breakdown(self, name: str, metric: HealthMetric, raw_value: Optional[float],
                          score: float, coverage: CoverageResult, notes: str = "") -> MetricBreakdown:
        tier = coverage.tier(metric)
        return MetricBreakdown(
            metric_name=name,
            raw_value=raw_value,
            normalized_score=clamp_score(score),
            coverage90=coverage.coverage90.get(metric, 0),
            coverage14=coverage.coverage14.get(metric, 0),
            coverage_tier=tier,
            weight_multiplier=tier.weight_multiplier,
            notes=notes
        )

    @staticmethod
    def _domain_result(domain: HealthDomain, score: float,
                       metrics: Tuple[MetricBreakdown, ...] = (), notes: str = "",
                       available: bool = True) -> DomainResult:
        score = clamp_score(score) if available else 0.0
        return DomainResult(
            domain=domain,
            score=score,
            breakdown=DomainBreakdown(
                domain=domain,
                raw_weight=domain.base_weight,
                normalized_weight=0.0,
                domain_score=score,
                used_metrics=metrics,
                notes=notes
            ),
            is_available=available
        )

    @staticmethod
    def _recovery_member(metric: HealthMetric, averages: Averages) -> Tuple[Optional[float], Optional[float]]:
        """(normalized score, raw value) for one recovery member."""
        if metric is HealthMetric.HRV_MS:
            return normalize_hrv(averages.hrv_7d, averages.hrv_90d, averages.hrv_28d), averages.hrv_7d
        if metric is HealthMetric.RESTING_HR:
            return normalize_rhr(averages.rhr_7d, averages.rhr_90d), averages.rhr_7d
        if metric is HealthMetric.READINESS_SCORE:
            return normalize_readiness(averages.readiness_7d), averages.readiness_7d
        if metric is HealthMetric.STRESS_SCORE:
            return normalize_stress(averages.stress_7d), averages.stress_7d
        raise ValueError(f"{metric} is not a recovery metric")

    def recovery_domain(self, averages: Averages, coverage: CoverageResult) -> DomainResult:
        """Coverage-weighted mean of HRV, resting HR, readiness and stress."""
        domain = HealthDomain.RECOVERY
        metrics = []
        total_weight = 0.0
        weighted_sum = 0.0

        for metric, internal_weight in self.RECOVERY_WEIGHTS:
            tier = coverage.tier(metric)
            if tier is CoverageTier.UNAVAILABLE:
                continue

            score, raw_value = self._recovery_member(metric, averages)
            if score is None:
                continue

            weight = internal_weight * tier.weight_multiplier
            total_weight += weight
            weighted_sum += score * weight
            metrics.append(self._metric_breakdown(metric.key, metric, raw_value, score, coverage))

        if total_weight <= 0:
            return self._domain_result(domain, 0.0, notes="Insufficient data for recovery domain",
                                       available=False)

        score = weighted_sum / total_weight
        if (coverage.tier(HealthMetric.HRV_MS) is CoverageTier.HIGH_COVERAGE
                or coverage.tier(HealthMetric.RESTING_HR) is CoverageTier.HIGH_COVERAGE):
            score = min(100.0, score + self.HIGH_COVERAGE_BONUS)

        return self._domain_result(domain, score, tuple(metrics))

    def sleep_domain(self, averages: Averages, coverage: CoverageResult) -> DomainResult:
        domain = HealthDomain.SLEEP
        metric = HealthMetric.SLEEP_HOURS
        tier = coverage.tier(metric)

        if tier is CoverageTier.UNAVAILABLE:
            return self._domain_result(domain, 0.0, notes="Insufficient sleep data", available=False)

        hours = next((v for v in (averages.sleep_7d, averages.sleep_28d, averages.sleep_90d)
                      if v is not None), None)
        normalized = normalize_sleep(averages.sleep_7d, averages.sleep_28d, averages.sleep_90d)
        notes = ""
        if normalized is None:
            normalized = self.SLEEP_DEFAULT_SCORE
            notes = "No recent sleep average, neutral score used"

        score = normalized
        if tier is CoverageTier.HIGH_COVERAGE:
            score = min(100.0, normalized + self.HIGH_COVERAGE_BONUS)

        breakdown = self._metric_breakdown(metric.key, metric, hours, normalized, coverage, notes)
        return self._domain_result(domain, score, (breakdown,))

    def fitness_domain(self, averages: Averages, coverage: CoverageResult) -> DomainResult:
        """VO2max against its baseline (70%) plus the training load trend (30%)."""
        domain = HealthDomain.FITNESS
        metrics = []
        total_weight = 0.0
        weighted_sum = 0.0

        vo2_tier = coverage.tier(HealthMetric.VO2MAX)
        if vo2_tier is not CoverageTier.UNAVAILABLE:
            vo2_score = normalize_vo2max(averages.vo2max_7d, averages.vo2max_90d)
            if vo2_score is not None:
                weight = self.FITNESS_VO2MAX_WEIGHT * vo2_tier.weight_multiplier
                total_weight += weight
                weighted_sum += vo2_score * weight
                metrics.append(self._metric_breakdown(
                    HealthMetric.VO2MAX.key, HealthMetric.VO2MAX, averages.vo2max_7d, vo2_score, coverage
                ))

        load_tier = coverage.tier(HealthMetric.TRAINING_LOAD)
        load_ratio = acute_chronic_ratio(averages.training_load_7d, averages.training_load_28d)
        if load_tier is not CoverageTier.UNAVAILABLE and load_ratio is not None:
            trend_score = score_training_trend(load_ratio)
            weight = self.FITNESS_TREND_WEIGHT * load_tier.weight_multiplier
            total_weight += weight
            weighted_sum += trend_score * weight
            metrics.append(self._metric_breakdown(
                "trainingLoadTrend", HealthMetric.TRAINING_LOAD, load_ratio, trend_score, coverage
            ))

        if total_weight <= 0:
            return self._domain_result(domain, 0.0, notes="Insufficient fitness data", available=False)

        return self._domain_result(domain, weighted_sum / total_weight, tuple(metrics))

    def load_balance_domain(self, averages: Averages, coverage: CoverageResult) -> DomainResult:
        domain = HealthDomain.LOAD_BALANCE
        metric = HealthMetric.TRAINING_LOAD
        if coverage.tier(metric) is CoverageTier.UNAVAILABLE:
            return self._domain_result(domain, 0.0, notes="Insufficient training load data",
                                       available=False)

        ratio = acute_chronic_ratio(averages.training_load_7d, averages.training_load_28d)
        score = normalize_load_balance(averages.training_load_7d, averages.training_load_28d)
        notes = ""
        if score is None:
            score = self.LOAD_BALANCE_DEFAULT_SCORE
            notes = "Acute/chronic ratio unavailable, default score used"

        breakdown = self._metric_breakdown("acuteChronicRatio", metric, ratio, score, coverage, notes)
        return self._domain_result(domain, score, (breakdown,))

    def activity_domain(self, averages: Averages, coverage: CoverageResult) -> DomainResult:
        domain = HealthDomain.ACTIVITY
        metric = HealthMetric.STEPS
        if coverage.tier(metric) is CoverageTier.UNAVAILABLE:
            return self._domain_result(domain, 0.0, notes="Insufficient steps data", available=False)

        score = normalize_activity(averages.steps_7d, averages.steps_90d, averages.consistent_step_days_7d)
        if score is None:
            score = self.ACTIVITY_DEFAULT_SCORE

        threshold = int(self.config.consistency_steps_threshold)
        notes = f"Consistency: {averages.consistent_step_days_7d}/7 days >= {threshold} steps"
        breakdown = self._metric_breakdown(metric.key, metric, averages.steps_7d, score, coverage, notes)
        return self._domain_result(domain, score, (breakdown,))

    # ---------------------------------------------------------------- finalizer

    def finalize(self, domain_results: List[DomainResult]) -> Tuple[float, Tuple[DomainBreakdown, ...], Tuple[str, ...]]:
        """
        Weighted HealthScore over available domains only.

        Base weights are renormalized over the available domains so a missing
        domain drops out of the denominator as well as the numerator.
        """
        available = [r for r in domain_results if r.is_available]
        if not available:
            return (self.NEUTRAL_HEALTH_SCORE, (),
                    tuple(domain.display_name for domain in HealthDomain))

        excluded = tuple(r.domain.display_name for r in domain_results if not r.is_available)
        total_weight = sum(r.domain.base_weight for r in available)

        included = []
        weighted_sum = 0.0
        for result in available:
            normalized_weight = result.domain.base_weight / total_weight
            weighted_sum += result.score * normalized_weight
            included.append(replace(result.breakdown, normalized_weight=normalized_weight))

        return clamp_score(weighted_sum), tuple(included), excluded

    # -------------------------------------------------------------- reliability

    def calculate_reliability(self, coverage: CoverageResult,
                              outlier_counts: dict, total_days: int) -> float:
        """
        Data-quality meta score.

        coverage (0-80) + freshness (0-20) - gap penalty (10) - outlier penalty (5),
        clamped to 0-100.

        total_days counts unique dates, so the outlier share is taken over
        deduplicated days rather than over every submitted entry.
        """
        coverage_component = 0.0
        for metric, points, target_name in self.RELIABILITY_COVERAGE:
            target = getattr(self.config, target_name)
            ratio = coverage.coverage90.get(metric, 0) / float(self.config.window_days)
            coverage_component += points * min(1.0, ratio / target)

        freshness_component = 0.0
        for metric, min_days, points in self.RELIABILITY_FRESHNESS:
            if coverage.coverage14.get(metric, 0) >= min_days:
                freshness_component += points

        penalties = 0.0
        if any(coverage.data_gaps.get(metric, False) for metric in HealthAnalyzer.GAP_TRACKED_METRICS):
            penalties += self.GAP_PENALTY

        total_outliers = sum(outlier_counts.get(metric, 0) for metric in self.OUTLIER_TRACKED_METRICS)
        checked_values = total_days * len(self.OUTLIER_TRACKED_METRICS)
        if checked_values > 0 and total_outliers / checked_values > self.config.outlier_penalty_threshold:
            penalties += self.OUTLIER_PENALTY

        logger.debug("Reliability: coverage=%.2f freshness=%.1f penalties=%.1f",
                     coverage_component, freshness_component, penalties)
        return clamp_score(coverage_component + freshness_component - penalties)
