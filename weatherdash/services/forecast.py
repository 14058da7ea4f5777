"""
Collapse the 3-hourly OpenWeather forecast into one entry per day.

For every local calendar day the sample closest to 12:00 wins; on a tie the
earlier sample is kept. Days keep the order in which they first appear in the
upstream list.
"""
from datetime import date, datetime, timedelta, timezone
from typing import Dict, Iterable, List, Tuple

from weatherdash.models import DailyForecastEntry, OWForecastSample, browser_round

DAYS_TO_KEEP = 5
NOON = 12

_WEEKDAYS = ("Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun")
_MONTHS = ("Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")


def local_time(dt: int, tz_offset_seconds: int = 0) -> datetime:
    return datetime.fromtimestamp(dt, tz=timezone.utc) + timedelta(seconds=tz_offset_seconds)


def day_label(moment: datetime) -> str:
    return _WEEKDAYS[moment.weekday()]


def date_label(moment: datetime) -> str:
    return f"{_MONTHS[moment.month - 1]} {moment.day}"


def to_entry(sample: OWForecastSample, moment: datetime) -> DailyForecastEntry:
    condition = sample.weather[0]
    return DailyForecastEntry(
        day=day_label(moment),
        date=date_label(moment),
        temp=browser_round(sample.main.temp),
        description=condition.description,
        icon=condition.icon,
        humidity=sample.main.humidity,
        wind_speed=sample.wind.speed,
    )


def reduce_daily(
    samples: Iterable[OWForecastSample],
    tz_offset_seconds: int = 0,
    max_days: int = DAYS_TO_KEEP,
) -> List[DailyForecastEntry]:
    best: Dict[date, Tuple[int, OWForecastSample, datetime]] = {}

    for sample in samples:
        moment = local_time(sample.dt, tz_offset_seconds)
        distance = abs(moment.hour - NOON)
        current = best.get(moment.date())
        if current is None or distance < current[0]:
            # dict keeps first-insertion order even when the value is replaced
            best[moment.date()] = (distance, sample, moment)

    return [to_entry(sample, moment) for _, sample, moment in list(best.values())[:max_days]]
