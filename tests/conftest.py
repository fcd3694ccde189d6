from datetime import date, timedelta
from typing import Callable, List, Optional, Union

import pytest

from health_models import RawDailyEntry

END_DATE = date(2026, 3, 31)

Value = Union[None, float, Callable[[int], Optional[float]]]

GOOD_DAY = {
    "sleep_hours": 8.0,
    "hrv_ms": 50.0,
    "resting_hr": 55.0,
    "vo2max": 45.0,
    "steps": 9000.0,
    "training_load": 300.0,
    "readiness_score": 80.0,
}


def build_history(days: int = 90, end: date = END_DATE, **values: Value) -> List[RawDailyEntry]:
    """
    Build one entry per day, oldest first.
    Each keyword is a RawDailyEntry field; callables receive the day index
    (0 = oldest, days - 1 = end) and return the value for that day.
    """
    entries = []
    for i in range(days):
        fields = {}
        for name, value in values.items():
            fields[name] = value(i) if callable(value) else value
        entries.append(RawDailyEntry(date=end - timedelta(days=days - 1 - i), **fields))
    return entries


@pytest.fixture
def history():
    return build_history


@pytest.fixture
def good_history():
    return build_history(**GOOD_DAY)
