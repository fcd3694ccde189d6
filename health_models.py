"""
Health Models - The Data Contract
Enums and immutable records shared by every stage of the scoring pipeline:
raw daily entries in, sanitized entries in the middle, breakdowns and the
final HealthScoringResult out.
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Dict, Any, Optional, Tuple


class CoverageTier(Enum):
    """Discrete coverage bucket derived from the number of valid days in the window."""
    UNAVAILABLE = "unavailable"      # < 5 valid days
    LIMITED = "limited"              # 5-13 valid days
    GOOD = "good"                    # 14-29 valid days
    HIGH_COVERAGE = "highCoverage"   # >= 30 valid days

    @property
    def weight_multiplier(self) -> float:
        return _TIER_MULTIPLIERS[self]

    @classmethod
    def from_valid_days(cls, valid_days: int) -> "CoverageTier":
        if valid_days < 5:
            return cls.UNAVAILABLE
        if valid_days < 14:
            return cls.LIMITED
        if valid_days < 30:
            return cls.GOOD
        return cls.HIGH_COVERAGE


_TIER_MULTIPLIERS = {
    CoverageTier.UNAVAILABLE: 0.0,
    CoverageTier.LIMITED: 0.6,
    CoverageTier.GOOD: 1.0,
    CoverageTier.HIGH_COVERAGE: 1.05,
}


class HealthDomain(Enum):
    """The five physiological domains that make up the HealthScore."""
    RECOVERY = "recovery"
    SLEEP = "sleep"
    FITNESS = "fitness"
    LOAD_BALANCE = "loadBalance"
    ACTIVITY = "activityBase"

    @property
    def base_weight(self) -> float:
        return _DOMAIN_TABLE[self][0]

    @property
    def display_name(self) -> str:
        return _DOMAIN_TABLE[self][1]


_DOMAIN_TABLE = {
    HealthDomain.RECOVERY: (0.30, "Recovery"),
    HealthDomain.SLEEP: (0.20, "Sleep"),
    HealthDomain.FITNESS: (0.20, "Fitness"),
    HealthDomain.LOAD_BALANCE: (0.20, "Load Balance"),
    HealthDomain.ACTIVITY: (0.10, "Activity"),
}


class HealthMetric(Enum):
    """
    Biometric signals tracked per day.
    The value doubles as the attribute name on RawDailyEntry / CleanedEntry.
    """
    SLEEP_HOURS = "sleep_hours"
    HRV_MS = "hrv_ms"
    RESTING_HR = "resting_hr"
    VO2MAX = "vo2max"
    STEPS = "steps"
    TRAINING_LOAD = "training_load"
    STRESS_SCORE = "stress_score"
    READINESS_SCORE = "readiness_score"

    @property
    def valid_range(self) -> Tuple[float, float]:
        """Inclusive physiological bounds; anything outside is an outlier."""
        return _METRIC_TABLE[self][0]

    @property
    def domain(self) -> HealthDomain:
        return _METRIC_TABLE[self][1]

    @property
    def key(self) -> str:
        """camelCase identifier used in result maps and breakdowns."""
        return _METRIC_TABLE[self][2]


_METRIC_TABLE = {
    HealthMetric.SLEEP_HOURS: ((2.0, 12.0), HealthDomain.SLEEP, "sleepHours"),
    HealthMetric.HRV_MS: ((15.0, 150.0), HealthDomain.RECOVERY, "hrvMs"),
    HealthMetric.RESTING_HR: ((35.0, 100.0), HealthDomain.RECOVERY, "restingHR"),
    HealthMetric.VO2MAX: ((25.0, 85.0), HealthDomain.FITNESS, "vo2max"),
    HealthMetric.STEPS: ((500.0, 80000.0), HealthDomain.ACTIVITY, "steps"),
    HealthMetric.TRAINING_LOAD: ((0.0, 5000.0), HealthDomain.LOAD_BALANCE, "trainingLoad"),
    HealthMetric.STRESS_SCORE: ((0.0, 100.0), HealthDomain.RECOVERY, "stressScore"),
    HealthMetric.READINESS_SCORE: ((0.0, 100.0), HealthDomain.RECOVERY, "readinessScore"),
}


def _coerce_date(value: Any) -> date:
    # datetime is a subclass of date, check it first
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    raise TypeError(f"date must be a datetime.date, got {type(value).__name__}")


@dataclass(frozen=True)
class RawDailyEntry:
    """One calendar day of biometric data as delivered by the data source."""
    date: date
    sleep_hours: Optional[float] = None
    hrv_ms: Optional[float] = None
    resting_hr: Optional[float] = None
    vo2max: Optional[float] = None
    steps: Optional[float] = None
    training_load: Optional[float] = None
    readiness_score: Optional[float] = None
    stress_score: Optional[float] = None  # 0-100, lower is better

    def __post_init__(self):
        object.__setattr__(self, "date", _coerce_date(self.date))

    def value_for(self, metric: HealthMetric) -> Optional[float]:
        return getattr(self, metric.value)


@dataclass(frozen=True)
class CleanedEntry:
    """Per-day view holding only values that passed sanitization."""
    date: date
    sleep_hours: Optional[float] = None
    hrv_ms: Optional[float] = None
    resting_hr: Optional[float] = None
    vo2max: Optional[float] = None
    steps: Optional[float] = None
    training_load: Optional[float] = None
    readiness_score: Optional[float] = None
    stress_score: Optional[float] = None

    def value_for(self, metric: HealthMetric) -> Optional[float]:
        return getattr(self, metric.value)


@dataclass(frozen=True)
class MetricBreakdown:
    """Evidence for one metric's contribution to a domain."""
    metric_name: str
    raw_value: Optional[float]
    normalized_score: float
    coverage90: int
    coverage14: int
    coverage_tier: CoverageTier
    weight_multiplier: float
    notes: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "metricName": self.metric_name,
            "rawValue": self.raw_value,
            "normalizedScore": self.normalized_score,
            "coverage90": self.coverage90,
            "coverage14": self.coverage14,
            "coverageStatus": self.coverage_tier.value,
            "weightMultiplier": self.weight_multiplier,
            "notes": self.notes,
        }


@dataclass(frozen=True)
class DomainBreakdown:
    """
    Evidence for one domain.
    normalized_weight stays 0.0 until the finalizer produces the weighted copy.
    """
    domain: HealthDomain
    raw_weight: float
    normalized_weight: float
    domain_score: float
    used_metrics: Tuple[MetricBreakdown, ...] = ()
    notes: str = ""

    @property
    def domain_name(self) -> str:
        return self.domain.display_name

    def to_dict(self) -> Dict[str, Any]:
        return {
            "domainName": self.domain_name,
            "rawWeight": self.raw_weight,
            "normalizedWeight": self.normalized_weight,
            "domainScore": self.domain_score,
            "usedMetrics": [m.to_dict() for m in self.used_metrics],
            "notes": self.notes,
        }


@dataclass(frozen=True)
class HealthScoringResult:
    """The only thing the engine hands back to its caller."""
    health_score: float
    reliability_score: float
    included_domains: Tuple[DomainBreakdown, ...]
    excluded_domains: Tuple[str, ...]
    metric_coverage90: Dict[str, int]
    metric_coverage14: Dict[str, int]
    outlier_counts: Dict[str, int]
    data_gap_flags: Dict[str, bool]
    calculated_at: datetime = field(default_factory=datetime.now, compare=False)

    @property
    def health_score_int(self) -> int:
        return int(round(self.health_score))

    @property
    def reliability_score_int(self) -> int:
        return int(round(self.reliability_score))

    @property
    def is_high_reliability(self) -> bool:
        return self.reliability_score >= 70

    @property
    def is_low_reliability(self) -> bool:
        return self.reliability_score < 40

    def to_dict(self) -> Dict[str, Any]:
        """Plain JSON-ready representation (no enums, no datetimes)."""
        return {
            "healthScore": self.health_score,
            "healthScoreInt": self.health_score_int,
            "reliabilityScore": self.reliability_score,
            "reliabilityScoreInt": self.reliability_score_int,
            "isHighReliability": self.is_high_reliability,
            "isLowReliability": self.is_low_reliability,
            "includedDomains": [d.to_dict() for d in self.included_domains],
            "excludedDomains": list(self.excluded_domains),
            "metricCoverage90": dict(self.metric_coverage90),
            "metricCoverage14": dict(self.metric_coverage14),
            "outlierCounts": dict(self.outlier_counts),
            "dataGapFlags": dict(self.data_gap_flags),
            "calculatedAt": self.calculated_at.isoformat(),
        }


