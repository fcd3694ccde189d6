"""
Garmin Data Collector - The Ingestion Layer
Authenticates with Garmin Connect, fetches a historical window of daily
payloads and maps each day onto a RawDailyEntry for the scoring engine.
Nothing is cached or persisted here; every collection is a fresh fetch.
"""

import logging
import os
from collections import defaultdict
from datetime import date, datetime, timedelta
from typing import Optional, Dict, Any, List

from garminconnect import Garmin

from health_models import RawDailyEntry

logger = logging.getLogger(__name__)


def extract_sleep_hours(sleep_data: Optional[Dict[str, Any]]) -> Optional[float]:
    """Total sleep time in hours from a Garmin sleep payload."""
    if not sleep_data or not isinstance(sleep_data, dict):
        return None
    daily_sleep = sleep_data.get("dailySleepDTO") or sleep_data
    seconds = daily_sleep.get("sleepTimeSeconds")
    if not seconds:
        return None
    return seconds / 3600.0


def extract_hrv_value(hrv_data: Optional[Dict[str, Any]]) -> Optional[float]:
    """Extract HRV rMSSD value from the various Garmin HRV structures."""
    if not hrv_data or not isinstance(hrv_data, dict):
        return None
    if "hrvSummary" in hrv_data:
        summary = hrv_data["hrvSummary"]
        if isinstance(summary, dict):
            return summary.get("lastNightAvg") or summary.get("weeklyAvg")
    if "lastNightAvg" in hrv_data:
        return hrv_data["lastNightAvg"]
    if "hrvValue" in hrv_data:
        return hrv_data["hrvValue"]
    if "dailyHrv" in hrv_data and hrv_data["dailyHrv"]:
        return hrv_data["dailyHrv"].get("hrvValue")
    return None


def extract_rhr_value(rhr_data: Optional[Dict[str, Any]],
                      stats: Optional[Dict[str, Any]] = None) -> Optional[float]:
    """Extract resting heart rate, falling back to the daily stats summary."""
    if rhr_data and isinstance(rhr_data, dict):
        # get_rhr_day format: allMetrics.metricsMap.WELLNESS_RESTING_HEART_RATE[0].value
        if "allMetrics" in rhr_data:
            metrics_map = (rhr_data.get("allMetrics") or {}).get("metricsMap", {})
            rhr_list = metrics_map.get("WELLNESS_RESTING_HEART_RATE", [])
            if rhr_list and isinstance(rhr_list, list):
                return rhr_list[0].get("value")
        if "restingHeartRate" in rhr_data:
            return rhr_data["restingHeartRate"]
        if "value" in rhr_data:
            return rhr_data["value"]
    if stats and isinstance(stats, dict):
        return stats.get("restingHeartRate")
    return None


def extract_vo2max(max_metrics: Optional[Any]) -> Optional[float]:
    """VO2max from get_max_metrics; prefers the precise running value."""
    if not max_metrics:
        return None
    records = max_metrics if isinstance(max_metrics, list) else [max_metrics]
    for record in records:
        if not isinstance(record, dict):
            continue
        for sport in ("generic", "cycling"):
            values = record.get(sport)
            if isinstance(values, dict):
                value = values.get("vo2MaxPreciseValue") or values.get("vo2MaxValue")
                if value:
                    return value
    return None


def extract_readiness(readiness_data: Optional[Any]) -> Optional[float]:
    """Training readiness score (0-100) from the first reading Garmin returns for the day."""
    if not readiness_data:
        return None
    records = readiness_data if isinstance(readiness_data, list) else [readiness_data]
    scores = [r.get("score") for r in records if isinstance(r, dict) and r.get("score") is not None]
    return scores[0] if scores else None


def extract_stress(stress_data: Optional[Dict[str, Any]]) -> Optional[float]:
    """Average daily stress level. Garmin uses negative values for 'not enough data'."""
    if not stress_data or not isinstance(stress_data, dict):
        return None
    value = stress_data.get("avgStressLevel")
    if value is None or value < 0:
        return None
    return value


def daily_training_load(activities: Optional[List[Dict[str, Any]]]) -> Dict[date, float]:
    """Sum activityTrainingLoad per local start date."""
    totals: Dict[date, float] = defaultdict(float)
    for activity in activities or []:
        load = activity.get("activityTrainingLoad")
        start = activity.get("startTimeLocal")
        if not load or not start:
            continue
        try:
            day = datetime.strptime(str(start)[:10], "%Y-%m-%d").date()
        except ValueError:
            logger.warning("Skipping activity with unparseable start time: %s", start)
            continue
        totals[day] += float(load)
    return dict(totals)


def build_entry(day: date, payloads: Dict[str, Any],
                training_load: Optional[float] = None) -> RawDailyEntry:
    """Map one day's Garmin payloads onto a RawDailyEntry."""
    stats = payloads.get("stats")
    steps = stats.get("totalSteps") if isinstance(stats, dict) else None
    return RawDailyEntry(
        date=day,
        sleep_hours=extract_sleep_hours(payloads.get("sleep")),
        hrv_ms=extract_hrv_value(payloads.get("hrv")),
        resting_hr=extract_rhr_value(payloads.get("rhr"), stats),
        vo2max=extract_vo2max(payloads.get("max_metrics")),
        steps=steps,
        training_load=training_load,
        readiness_score=extract_readiness(payloads.get("training_readiness")),
        stress_score=extract_stress(payloads.get("stress"))
    )


class GarminCollector:
    """
    Garmin Connect data source for the health score engine.
    Fetches a configurable history window (default 90 days).
    """

    DEFAULT_HISTORY_DAYS = 90

    HISTORY_PRESETS = {
        "minimal": 30,
        "standard": 90,
        "extended": 180,
        "comprehensive": 365
    }

    # payload key -> Garmin client method taking a YYYY-MM-DD string
    DAILY_ENDPOINTS = {
        "sleep": "get_sleep_data",
        "hrv": "get_hrv_data",
        "rhr": "get_rhr_day",
        "stats": "get_stats",
        "stress": "get_stress_data",
        "max_metrics": "get_max_metrics",
        "training_readiness": "get_training_readiness",
    }

    def __init__(self, email: Optional[str] = None, password: Optional[str] = None,
                 history_days: Optional[int] = None, history_preset: Optional[str] = None,
                 client: Optional[Garmin] = None):
        """
        Initialize the Garmin collector.

        Args:
            email: Garmin Connect email (or set GARMIN_EMAIL env var)
            password: Garmin Connect password (or set GARMIN_PASSWORD env var)
            history_days: Number of days to fetch (default: 90)
            history_preset: Use a preset period ('minimal', 'standard', 'extended', 'comprehensive')
            client: Already authenticated Garmin client
        """
        self.email = email or os.environ.get("GARMIN_EMAIL") or os.environ.get("GARMIN_CONNECT_EMAIL")
        self.password = password or os.environ.get("GARMIN_PASSWORD")
        self.client = client

        if history_preset and history_preset in self.HISTORY_PRESETS:
            self.history_days = self.HISTORY_PRESETS[history_preset]
        elif history_days:
            self.history_days = history_days
        else:
            self.history_days = self.DEFAULT_HISTORY_DAYS

    def authenticate(self) -> bool:
        """
        Authenticate with Garmin Connect.

        Returns:
            True if authentication successful, False otherwise.
        """
        if not self.email or not self.password:
            raise ValueError(
                "Garmin credentials required. Set GARMIN_EMAIL and GARMIN_PASSWORD "
                "environment variables or pass them to the constructor."
            )

        try:
            self.client = Garmin(self.email, self.password)
            self.client.login()
            return True
        except Exception as e:
            logger.error("Authentication failed: %s", e)
            self.client = None
            return False

    def _format_date(self, day: date) -> str:
        return day.strftime("%Y-%m-%d")

    def _require_client(self) -> Garmin:
        if not self.client:
            raise RuntimeError("Not authenticated. Call authenticate() first.")
        return self.client

    def fetch_day(self, day: date) -> Dict[str, Any]:
        """
        Fetch every daily payload for one date.
        An endpoint that fails yields None for its key instead of aborting the day.
        """
        client = self._require_client()
        date_str = self._format_date(day)

        payloads = {}
        for key, method_name in self.DAILY_ENDPOINTS.items():
            try:
                payloads[key] = getattr(client, method_name)(date_str)
            except Exception as e:
                logger.warning("Error fetching %s for %s: %s", key, date_str, e)
                payloads[key] = None
        return payloads

    def fetch_activities(self, start_date: date, end_date: date) -> List[Dict[str, Any]]:
        client = self._require_client()
        try:
            return client.get_activities_by_date(
                self._format_date(start_date), self._format_date(end_date)
            ) or []
        except Exception as e:
            logger.warning("Error fetching activities from %s to %s: %s", start_date, end_date, e)
            return []

    def collect_entries(self, end_date: Optional[date] = None) -> List[RawDailyEntry]:
        """
        Collect the history window ending at end_date (defaults to today).

        Returns:
            One RawDailyEntry per calendar day, oldest first
        """
        end_date = end_date or date.today()
        start_date = end_date - timedelta(days=self.history_days - 1)
        logger.info("Collecting %d days of Garmin data (%s to %s)",
                    self.history_days, start_date, end_date)

        loads = daily_training_load(self.fetch_activities(start_date, end_date))

        entries = []
        current = start_date
        while current <= end_date:
            logger.debug("Collecting data for %s", current)
            entries.append(build_entry(current, self.fetch_day(current), loads.get(current)))
            current += timedelta(days=1)

        return entries
