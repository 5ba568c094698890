"""Tests for OpenWeatherMap client."""

from typing import Any

import httpx
import pytest
import respx
from httpx import Response

from weather_hub.config import Settings
from weather_hub.services.endpoints import (
    AlertsEndpoint,
    CurrentWeatherEndpoint,
    ForecastEndpoint,
    GeocodingEndpoint,
    MapTileEndpoint,
)
from weather_hub.services.errors import (
    ApiError,
    ErrorKind,
    InvalidDataError,
    InvalidResponseError,
    InvalidURLError,
    NetworkError,
    NetworkTimeoutError,
)
from weather_hub.services.models import (
    AirQualityResponse,
    CurrentWeather,
    ForecastResponse,
    GeocodingResult,
    MapLayer,
)
from weather_hub.services.openweather import OpenWeatherClient, response_adapter

WEATHER_URL = "https://api.openweathermap.org/data/2.5/weather"
FORECAST_URL = "https://api.openweathermap.org/data/2.5/forecast"
AIR_URL = "https://api.openweathermap.org/data/2.5/air_pollution"
GEO_URL = "https://api.openweathermap.org/geo/1.0/direct"


class TestBuildUrl:
    """Tests for URL resolution."""

    def test_coordinate_endpoint_params(self, openweather_client: OpenWeatherClient) -> None:
        url = openweather_client.build_url(CurrentWeatherEndpoint(51.5, -0.12))

        assert url.host == "api.openweathermap.org"
        assert url.path == "/data/2.5/weather"
        assert url.params["lat"] == "51.5"
        assert url.params["lon"] == "-0.12"
        assert url.params["units"] == "metric"
        assert url.params["appid"] == "test-key"
        assert "lang" not in url.params

    def test_deterministic(self, openweather_client: OpenWeatherClient) -> None:
        endpoint = ForecastEndpoint(51.5, -0.12)
        assert openweather_client.build_url(endpoint) == openweather_client.build_url(endpoint)

    def test_lang_appended_when_configured(self, http_client: httpx.AsyncClient) -> None:
        client = OpenWeatherClient(Settings(api_key="k", lang="de"), http_client)
        url = client.build_url(ForecastEndpoint(51.5, -0.12))
        assert url.path == "/data/2.5/forecast"
        assert url.params["lang"] == "de"

    def test_geocoding_has_no_units(self, openweather_client: OpenWeatherClient) -> None:
        url = openweather_client.build_url(GeocodingEndpoint("London", limit=3))

        assert str(url).startswith(GEO_URL)
        assert url.params["q"] == "London"
        assert url.params["limit"] == "3"
        assert url.params["appid"] == "test-key"
        assert "units" not in url.params

    def test_map_tile_url(self, openweather_client: OpenWeatherClient) -> None:
        url = openweather_client.map_tile_url(MapLayer.TEMPERATURE, 2, 1, 1)
        assert url == "https://tile.openweathermap.org/maps/temp_new/2/1/1.png?appid=test-key"

    def test_alerts_have_no_url(self, openweather_client: OpenWeatherClient) -> None:
        with pytest.raises(InvalidURLError):
            openweather_client.build_url(AlertsEndpoint(51.5, -0.12))

    @pytest.mark.parametrize(
        "endpoint",
        [
            CurrentWeatherEndpoint(float("nan"), 0.0),
            ForecastEndpoint(91.0, 0.0),
            GeocodingEndpoint("   "),
            GeocodingEndpoint("London", limit=0),
            MapTileEndpoint(MapLayer.CLOUDS, 2, 4, 0),
            MapTileEndpoint("sunshine", 2, 0, 0),  # type: ignore[arg-type]
        ],
    )
    def test_invalid_endpoints(self, openweather_client: OpenWeatherClient, endpoint: Any) -> None:
        with pytest.raises(InvalidURLError) as exc_info:
            openweather_client.build_url(endpoint)
        assert exc_info.value.kind == ErrorKind.INVALID_URL

    def test_malformed_base_url(self, http_client: httpx.AsyncClient) -> None:
        client = OpenWeatherClient(Settings(data_base_url="not a url"), http_client)
        with pytest.raises(InvalidURLError):
            client.build_url(CurrentWeatherEndpoint(51.5, -0.12))


class TestFetch:
    """Tests for requests and error classification."""

    @respx.mock
    @pytest.mark.asyncio
    async def test_get_current_weather_success(
        self, openweather_client: OpenWeatherClient, current_weather_payload: dict[str, Any]
    ) -> None:
        """Test successful weather fetch."""
        ok = Response(200, json=current_weather_payload)
        route = respx.get(WEATHER_URL).mock(return_value=ok)

        result = await openweather_client.get_current_weather(51.5, -0.12)

        assert isinstance(result, CurrentWeather)
        assert result.name == "London"
        assert result.main.temp == 15.2
        assert result.weather[0].icon == "03d"
        assert result.icon_url == "https://openweathermap.org/img/wn/03d@2x.png"
        assert route.call_count == 1
        assert route.calls.last.request.url.params["appid"] == "test-key"

    @respx.mock
    @pytest.mark.asyncio
    async def test_get_forecast_success(
        self, openweather_client: OpenWeatherClient, forecast_payload: dict[str, Any]
    ) -> None:
        respx.get(FORECAST_URL).mock(return_value=Response(200, json=forecast_payload))

        result = await openweather_client.get_forecast(51.5, -0.12)

        assert isinstance(result, ForecastResponse)
        assert len(result.items) == 4
        assert result.items[1].pop == 0.4
        assert result.city is not None and result.city.name == "London"

    @respx.mock
    @pytest.mark.asyncio
    async def test_get_air_quality_success(
        self, openweather_client: OpenWeatherClient, air_quality_payload: dict[str, Any]
    ) -> None:
        respx.get(AIR_URL).mock(return_value=Response(200, json=air_quality_payload))

        result = await openweather_client.get_air_quality(51.5, -0.12)

        assert isinstance(result, AirQualityResponse)
        assert result.items[0].main.aqi == 2
        assert result.items[0].main.label == "Fair"
        assert result.items[0].components.pm2_5 == 0.5

    @respx.mock
    @pytest.mark.asyncio
    async def test_search_locations(
        self, openweather_client: OpenWeatherClient, geocoding_payload: list[dict[str, Any]]
    ) -> None:
        respx.get(GEO_URL).mock(return_value=Response(200, json=geocoding_payload))

        results = await openweather_client.search_locations("London")

        assert [r.country for r in results] == ["GB", "CA"]
        assert results[0].state == "England"

    @respx.mock
    @pytest.mark.asyncio
    async def test_get_map_tile_returns_bytes(self, openweather_client: OpenWeatherClient) -> None:
        respx.get("https://tile.openweathermap.org/maps/clouds_new/1/0/1.png").mock(
            return_value=Response(200, content=b"\x89PNG")
        )

        tile = await openweather_client.get_map_tile(MapLayer.CLOUDS, 1, 0, 1)

        assert tile == b"\x89PNG"

    @respx.mock
    @pytest.mark.asyncio
    async def test_api_error_uses_body_message(self, openweather_client: OpenWeatherClient) -> None:
        """Test error message is taken from the JSON body."""
        respx.get(WEATHER_URL).mock(
            return_value=Response(401, json={"cod": 401, "message": "Invalid API key."})
        )

        with pytest.raises(ApiError) as exc_info:
            await openweather_client.get_current_weather(51.5, -0.12)

        assert exc_info.value.status_code == 401
        assert exc_info.value.message == "Invalid API key."
        assert exc_info.value.kind == ErrorKind.API_ERROR

    @respx.mock
    @pytest.mark.asyncio
    async def test_api_error_falls_back_to_status_code(
        self, openweather_client: OpenWeatherClient
    ) -> None:
        """Test API error handling without a structured body."""
        respx.get(WEATHER_URL).mock(return_value=Response(500, text="Internal Server Error"))

        with pytest.raises(ApiError) as exc_info:
            await openweather_client.get_current_weather(51.5, -0.12)

        assert exc_info.value.status_code == 500
        assert str(exc_info.value) == "Status code: 500"

    @respx.mock
    @pytest.mark.asyncio
    async def test_missing_fields_raise_invalid_data(
        self, openweather_client: OpenWeatherClient
    ) -> None:
        """Test a payload without required fields is rejected."""
        respx.get(WEATHER_URL).mock(
            return_value=Response(200, json={"coord": {"lat": 51.5, "lon": -0.12}})
        )

        with pytest.raises(InvalidDataError):
            await openweather_client.get_current_weather(51.5, -0.12)

    @respx.mock
    @pytest.mark.asyncio
    async def test_non_json_body_raises_invalid_data(
        self, openweather_client: OpenWeatherClient
    ) -> None:
        respx.get(FORECAST_URL).mock(return_value=Response(200, text="<html>oops</html>"))

        with pytest.raises(InvalidDataError):
            await openweather_client.get_forecast(51.5, -0.12)

    @respx.mock
    @pytest.mark.asyncio
    async def test_timeout(self, openweather_client: OpenWeatherClient) -> None:
        """Test timeout handling."""
        respx.get(WEATHER_URL).mock(side_effect=httpx.ReadTimeout("timeout"))

        with pytest.raises(NetworkTimeoutError) as exc_info:
            await openweather_client.get_current_weather(51.5, -0.12)

        assert exc_info.value.kind == ErrorKind.NETWORK_ERROR
        assert isinstance(exc_info.value.underlying, httpx.TimeoutException)

    @respx.mock
    @pytest.mark.asyncio
    async def test_connection_error(self, openweather_client: OpenWeatherClient) -> None:
        respx.get(AIR_URL).mock(side_effect=httpx.ConnectError("connection refused"))

        with pytest.raises(NetworkError) as exc_info:
            await openweather_client.get_air_quality(51.5, -0.12)

        assert not isinstance(exc_info.value, NetworkTimeoutError)
        assert isinstance(exc_info.value.underlying, httpx.ConnectError)

    @respx.mock
    @pytest.mark.asyncio
    async def test_protocol_error_is_invalid_response(
        self, openweather_client: OpenWeatherClient
    ) -> None:
        respx.get(WEATHER_URL).mock(side_effect=httpx.RemoteProtocolError("bad status line"))

        with pytest.raises(InvalidResponseError):
            await openweather_client.get_current_weather(51.5, -0.12)

    @pytest.mark.asyncio
    async def test_invalid_url_makes_no_request(
        self, openweather_client: OpenWeatherClient
    ) -> None:
        with respx.mock(assert_all_mocked=True) as router:
            with pytest.raises(InvalidURLError):
                await openweather_client.get_current_weather(100.0, 0.0)
            assert router.calls.call_count == 0


class TestResponseAdapter:
    """Tests for response validators."""

    def test_one_adapter_per_type(self) -> None:
        assert response_adapter(list[GeocodingResult]) is response_adapter(list[GeocodingResult])
        assert response_adapter(CurrentWeather) is not response_adapter(ForecastResponse)

    @pytest.mark.asyncio
    async def test_repeated_fetches_share_adapter(
        self, openweather_client: OpenWeatherClient, forecast_payload: dict[str, Any]
    ) -> None:
        response_adapter.cache_clear()
        with respx.mock:
            respx.get(FORECAST_URL).mock(return_value=Response(200, json=forecast_payload))

            await openweather_client.get_forecast(51.5, -0.12)
            await openweather_client.get_forecast(51.5, -0.12)

        info = response_adapter.cache_info()
        assert (info.misses, info.hits) == (1, 1)

    @pytest.mark.asyncio
    async def test_http_client_open_during_test(self, http_client: httpx.AsyncClient) -> None:
        assert not http_client.is_closed
