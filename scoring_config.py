"""
Scoring Configuration
Tunable constants for gap detection, reliability targets and the activity
consistency threshold. Anchor tables and domain weights are not configurable.
"""

import os
from dataclasses import dataclass, replace
from typing import Optional


@dataclass(frozen=True)
class ScoringConfiguration:
    """Thresholds used by the coverage analyzer, averager and reliability score."""
    gap_penalty_days: int = 5  # a run longer than this is a data gap
    outlier_penalty_threshold: float = 0.05
    coverage_target_sleep: float = 0.6
    coverage_target_hrv: float = 0.6
    coverage_target_others: float = 0.8
    consistency_steps_threshold: float = 6000.0
    window_days: int = 90

    @classmethod
    def from_env(cls, base: Optional["ScoringConfiguration"] = None) -> "ScoringConfiguration":
        """
        Build a configuration from environment overrides.

        Recognised variables:
            HEALTH_SCORE_GAP_DAYS          - consecutive missing days before a gap is flagged
            HEALTH_SCORE_OUTLIER_THRESHOLD - outlier share that triggers the reliability penalty
            HEALTH_SCORE_STEPS_THRESHOLD   - steps needed for a day to count as consistent
        """
        config = base or cls()
        overrides = {}

        gap_days = os.environ.get("HEALTH_SCORE_GAP_DAYS")
        if gap_days:
            overrides["gap_penalty_days"] = int(gap_days)

        outlier_threshold = os.environ.get("HEALTH_SCORE_OUTLIER_THRESHOLD")
        if outlier_threshold:
            overrides["outlier_penalty_threshold"] = float(outlier_threshold)

        steps_threshold = os.environ.get("HEALTH_SCORE_STEPS_THRESHOLD")
        if steps_threshold:
            overrides["consistency_steps_threshold"] = float(steps_threshold)

        return replace(config, **overrides) if overrides else config
