import logging
from datetime import datetime, timezone

import requests
from django.conf import settings
from django.core.cache import cache

logger = logging.getLogger(__name__)


class WeatherError(Exception):
    """Raised when weather data cannot be obtained (missing key, timeout, bad response)"""


def celsius_to_fahrenheit(celsius: float) -> int:
    return round((celsius * 9 / 5) + 32)


class WeatherService:
    """
    Best-effort current-conditions lookup against OpenWeatherMap
    Results are cached per coordinate pair in the Django cache
    """

    def __init__(self, api_key: str = None, base_url: str = None, timeout: float = None):  # type: ignore
        self.api_key = api_key if api_key is not None else settings.OPENWEATHERMAP_API_KEY
        self.base_url = (base_url or settings.OPENWEATHERMAP_BASE_URL).rstrip("/")
        self.timeout = timeout or settings.WEATHER_TIMEOUT_SECONDS

    @staticmethod
    def cache_key(lat: float, lng: float) -> str:
        return f"weather:current:{lat}:{lng}"

    def get_current_weather(self, lat: float, lng: float) -> dict:
        """
        Fetch current conditions for a coordinate

        Args:
            lat: Latitude
            lng: Longitude

        Returns:
            dict with temperature (F), humidity, pressure, wind (mph) and conditions

        Raises:
            WeatherError: If the API key is missing or the lookup fails in any way
        """
        if not self.api_key:
            raise WeatherError("OPENWEATHERMAP_API_KEY not configured")

        key = self.cache_key(lat, lng)
        cached = cache.get(key)
        if cached is not None:
            return cached

        try:
            response = requests.get(
                f"{self.base_url}/weather",
                params={"lat": lat, "lon": lng, "appid": self.api_key, "units": "metric"},
                timeout=self.timeout,
            )
            response.raise_for_status()
            data = response.json()
        except requests.RequestException as e:
            raise WeatherError(f"Weather lookup failed: {str(e)}") from e
        except ValueError as e:
            raise WeatherError(f"Weather response was not valid JSON: {str(e)}") from e

        try:
            weather = self._parse_current(data)
        except (KeyError, TypeError, ValueError) as e:
            raise WeatherError(f"Malformed weather response: {str(e)}") from e

        cache.set(key, weather, settings.WEATHER_CACHE_SECONDS)
        return weather

    def get_weather_data(self, lat: float, lng: float) -> dict:
        """Current conditions wrapped with lookup time and location"""
        current = self.get_current_weather(lat, lng)
        return {
            "current": current,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "location": {"lat": lat, "lng": lng},
        }

    @staticmethod
    def _parse_current(data: dict) -> dict:
        main = data["main"]
        wind = data.get("wind") or {}
        conditions = (data.get("weather") or [{}])[0]

        return {
            "temp": celsius_to_fahrenheit(main["temp"]),
            "feels_like": celsius_to_fahrenheit(main["feels_like"]),
            "humidity": main["humidity"],
            "pressure": main["pressure"],
            "wind_speed": round(wind["speed"] * 2.237) if wind.get("speed") else 0,  # m/s -> mph
            "wind_direction": wind.get("deg"),
            "visibility": round(data["visibility"] / 1000) if data.get("visibility") else None,  # km
            "conditions": conditions.get("main", "Unknown"),
            "icon": conditions.get("icon", "01d"),
            "description": conditions.get("description", "Unknown"),
        }
