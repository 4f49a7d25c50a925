from unittest.mock import Mock, patch

import requests
from django.core.cache import cache
from django.test import SimpleTestCase

from .services import WeatherError, WeatherService, celsius_to_fahrenheit

OWM_RESPONSE = {
    "main": {"temp": 20.0, "feels_like": 18.0, "humidity": 55, "pressure": 1013},
    "wind": {"speed": 5.0, "deg": 270},
    "visibility": 10000,
    "weather": [{"main": "Clouds", "icon": "03d", "description": "scattered clouds"}],
}


def ok_response(payload):
    response = Mock()
    response.raise_for_status.return_value = None
    response.json.return_value = payload
    return response


class WeatherServiceTests(SimpleTestCase):
    def setUp(self):
        cache.clear()
        self.service = WeatherService(api_key="test-key", base_url="https://weather.example/data/2.5/", timeout=2)

    @patch("apps.weather.services.requests.get")
    def test_current_weather_is_converted(self, get):
        get.return_value = ok_response(OWM_RESPONSE)

        weather = self.service.get_current_weather(40.0, -74.0)

        self.assertEqual(weather["temp"], 68)
        self.assertEqual(weather["feels_like"], 64)
        self.assertEqual(weather["wind_speed"], 11)
        self.assertEqual(weather["visibility"], 10)
        self.assertEqual(weather["conditions"], "Clouds")
        self.assertEqual(weather["description"], "scattered clouds")
        get.assert_called_once_with(
            "https://weather.example/data/2.5/weather",
            params={"lat": 40.0, "lon": -74.0, "appid": "test-key", "units": "metric"},
            timeout=2,
        )

    @patch("apps.weather.services.requests.get")
    def test_lookups_are_cached_per_coordinate(self, get):
        get.return_value = ok_response(OWM_RESPONSE)

        self.service.get_current_weather(40.0, -74.0)
        self.service.get_current_weather(40.0, -74.0)
        self.service.get_current_weather(41.0, -74.0)

        self.assertEqual(get.call_count, 2)

    @patch("apps.weather.services.requests.get")
    def test_weather_data_includes_location(self, get):
        get.return_value = ok_response(OWM_RESPONSE)

        data = self.service.get_weather_data(40.0, -74.0)

        self.assertEqual(data["location"], {"lat": 40.0, "lng": -74.0})
        self.assertEqual(data["current"]["temp"], 68)
        self.assertIn("timestamp", data)

    @patch("apps.weather.services.requests.get")
    def test_missing_api_key(self, get):
        service = WeatherService(api_key="")

        with self.assertRaises(WeatherError):
            service.get_current_weather(40.0, -74.0)
        get.assert_not_called()

    @patch("apps.weather.services.requests.get", side_effect=requests.Timeout("read timed out"))
    def test_timeout_raises_weather_error(self, get):
        with self.assertRaises(WeatherError):
            self.service.get_current_weather(40.0, -74.0)

    @patch("apps.weather.services.requests.get")
    def test_http_error_raises_weather_error(self, get):
        response = Mock()
        response.raise_for_status.side_effect = requests.HTTPError("401 Unauthorized")
        get.return_value = response

        with self.assertRaises(WeatherError):
            self.service.get_current_weather(40.0, -74.0)

    @patch("apps.weather.services.requests.get")
    def test_malformed_response_raises_weather_error(self, get):
        get.return_value = ok_response({"cod": 200})

        with self.assertRaises(WeatherError):
            self.service.get_current_weather(40.0, -74.0)
        self.assertIsNone(cache.get(WeatherService.cache_key(40.0, -74.0)))

    @patch("apps.weather.services.requests.get")
    def test_invalid_json_raises_weather_error(self, get):
        response = Mock()
        response.raise_for_status.return_value = None
        response.json.side_effect = ValueError("Expecting value")
        get.return_value = response

        with self.assertRaises(WeatherError):
            self.service.get_current_weather(40.0, -74.0)

    def test_celsius_to_fahrenheit(self):
        self.assertEqual(celsius_to_fahrenheit(0), 32)
        self.assertEqual(celsius_to_fahrenheit(-40), -40)
        self.assertEqual(celsius_to_fahrenheit(37), 99)
