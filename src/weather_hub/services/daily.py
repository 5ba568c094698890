"""Daily summaries derived from the 3-hour forecast."""

from dataclasses import dataclass
from datetime import UTC, date, timedelta, timezone, tzinfo

from weather_hub.services.models import ICON_URL_TEMPLATE, ForecastItem, ForecastResponse
from weather_hub.services.state import LoadingState, Success

# Local hours whose sample best represents the day's weather
MIDDAY_HOURS = range(12, 16)


@dataclass(frozen=True)
class DailyForecast:
    """One calendar day of the forecast."""

    day: date
    max_temp: float
    min_temp: float
    precipitation_chance: float
    icon: str | None
    description: str

    @property
    def icon_url(self) -> str | None:
        return ICON_URL_TEMPLATE.format(icon=self.icon) if self.icon else None


def forecast_timezone(forecast: ForecastResponse) -> tzinfo:
    """Fixed-offset zone of the forecast's city, or UTC when unknown."""
    if forecast.city is None or not forecast.city.timezone:
        return UTC
    return timezone(timedelta(seconds=forecast.city.timezone))


def derive_daily_forecasts(state: LoadingState, tz: tzinfo | None = None) -> list[DailyForecast]:
    """Group a successful forecast into one entry per calendar day.

    Day boundaries come from each sample's absolute timestamp converted to
    ``tz`` (the city's UTC offset by default), never from the process's
    local zone.

    Args:
        state: Forecast slot; anything other than ``Success`` yields no days
        tz: Reference zone for day boundaries

    Returns:
        Daily entries in ascending day order
    """
    if not isinstance(state, Success) or not isinstance(state.value, ForecastResponse):
        return []

    forecast = state.value
    zone = tz if tz is not None else forecast_timezone(forecast)

    groups: dict[date, list[ForecastItem]] = {}
    for item in forecast.items:
        groups.setdefault(item.time.astimezone(zone).date(), []).append(item)

    daily = []
    for day, items in groups.items():
        representative = next(
            (item for item in items if item.time.astimezone(zone).hour in MIDDAY_HOURS),
            items[0],
        )
        condition = representative.weather[0] if representative.weather else None
        daily.append(
            DailyForecast(
                day=day,
                max_temp=max(item.main.temp_max for item in items),
                min_temp=min(item.main.temp_min for item in items),
                precipitation_chance=max(item.pop for item in items),
                icon=condition.icon if condition else None,
                description=condition.description if condition else "",
            )
        )

    return sorted(daily, key=lambda entry: entry.day)
