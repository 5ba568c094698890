"""Typed OpenWeatherMap payloads."""

from datetime import UTC, datetime
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field

ICON_URL_TEMPLATE = "https://openweathermap.org/img/wn/{icon}@2x.png"

AQI_LABELS = {
    1: "Good",
    2: "Fair",
    3: "Moderate",
    4: "Poor",
    5: "Very Poor",
}


class UpstreamModel(BaseModel):
    """Base for upstream payloads: immutable, tolerant of extra fields."""

    model_config = ConfigDict(frozen=True, extra="ignore", populate_by_name=True)


class Coordinates(UpstreamModel):
    """Geographic coordinates as returned by the API."""

    lat: float
    lon: float


class WeatherCondition(UpstreamModel):
    """One weather condition entry (id, group, description, icon code)."""

    id: int
    main: str
    description: str
    icon: str

    @property
    def icon_url(self) -> str:
        return ICON_URL_TEMPLATE.format(icon=self.icon)


class MainReadings(UpstreamModel):
    """Temperature, pressure and humidity readings."""

    temp: float
    feels_like: float | None = None
    temp_min: float
    temp_max: float
    pressure: int | None = None
    humidity: int | None = None


class Wind(UpstreamModel):
    speed: float
    deg: int | None = None
    gust: float | None = None


class Clouds(UpstreamModel):
    all: int


class SystemInfo(UpstreamModel):
    country: str | None = None
    sunrise: int | None = None
    sunset: int | None = None


class CurrentWeather(UpstreamModel):
    """Current conditions for a coordinate (`/weather`)."""

    id: int = 0
    name: str = ""
    coord: Coordinates
    weather: list[WeatherCondition] = Field(default_factory=list)
    main: MainReadings
    wind: Wind | None = None
    clouds: Clouds | None = None
    visibility: int | None = None
    dt: int
    timezone: int = 0
    sys: SystemInfo = Field(default_factory=SystemInfo)

    @property
    def icon_url(self) -> str | None:
        return self.weather[0].icon_url if self.weather else None


class ForecastItem(UpstreamModel):
    """One 3-hour step of the forecast time series."""

    dt: int
    main: MainReadings
    weather: list[WeatherCondition] = Field(default_factory=list)
    wind: Wind | None = None
    clouds: Clouds | None = None
    pop: float = 0.0
    dt_txt: str | None = None

    @property
    def time(self) -> datetime:
        """Absolute timestamp of the sample."""
        return datetime.fromtimestamp(self.dt, UTC)


class City(UpstreamModel):
    """Location descriptor attached to forecast and alerts responses."""

    id: int = 0
    name: str = ""
    coord: Coordinates | None = None
    country: str | None = None
    population: int = 0
    timezone: int = 0
    sunrise: int | None = None
    sunset: int | None = None


class ForecastResponse(UpstreamModel):
    """5-day / 3-hour forecast (`/forecast`)."""

    items: list[ForecastItem] = Field(alias="list")
    city: City | None = None


class AirQualityIndex(UpstreamModel):
    aqi: int

    @property
    def label(self) -> str:
        return AQI_LABELS.get(self.aqi, "Unknown")


class AirQualityComponents(UpstreamModel):
    """Pollutant concentrations in μg/m³."""

    co: float | None = None
    no: float | None = None
    no2: float | None = None
    o3: float | None = None
    so2: float | None = None
    pm2_5: float | None = None
    pm10: float | None = None
    nh3: float | None = None


class AirQualityItem(UpstreamModel):
    dt: int
    main: AirQualityIndex
    components: AirQualityComponents = Field(default_factory=AirQualityComponents)


class AirQualityResponse(UpstreamModel):
    """Air pollution readings (`/air_pollution`)."""

    coord: Coordinates | None = None
    items: list[AirQualityItem] = Field(alias="list")


class WeatherAlert(UpstreamModel):
    """A national weather alert."""

    sender_name: str
    event: str
    start: int
    end: int
    description: str
    tags: list[str] = Field(default_factory=list)


class AlertsResponse(UpstreamModel):
    """Alerts for a coordinate, together with the location they apply to."""

    alerts: list[WeatherAlert] | None = None
    city: City

    @property
    def count(self) -> int:
        return len(self.alerts or [])


class GeocodingResult(UpstreamModel):
    """A place matching a geocoding query (`/direct`)."""

    name: str
    lat: float
    lon: float
    country: str
    state: str | None = None


class MapLayer(StrEnum):
    """Weather map tile layers."""

    CLOUDS = "clouds_new"
    PRECIPITATION = "precipitation_new"
    PRESSURE = "pressure_new"
    WIND = "wind_new"
    TEMPERATURE = "temp_new"

    @property
    def display_name(self) -> str:
        return {
            MapLayer.CLOUDS: "Clouds",
            MapLayer.PRECIPITATION: "Precipitation",
            MapLayer.PRESSURE: "Pressure",
            MapLayer.WIND: "Wind Speed",
            MapLayer.TEMPERATURE: "Temperature",
        }[self]
