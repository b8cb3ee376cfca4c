import unittest

import httpx

from app.services.weather import WeatherService


class TestWeatherService(unittest.IsolatedAsyncioTestCase):
    def _service(self, handler) -> WeatherService:
        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        self.addAsyncCleanup(client.aclose)
        return WeatherService(api_url="https://weather.test/v1/forecast", client=client)

    async def test_current_conditions(self):
        seen = {}

        def handler(request: httpx.Request):
            seen.update(request.url.params)
            return httpx.Response(200, json={"current": {"temperature_2m": 21.0, "weather_code": 2}})

        weather = await self._service(handler).get_current_weather(12.97, 77.59)
        self.assertEqual(weather.description, "Partly cloudy")
        self.assertEqual(weather.as_context(), "21°C, Partly cloudy")
        self.assertEqual(seen["current"], "temperature_2m,weather_code")
        self.assertEqual(seen["latitude"], "12.97")
        self.assertEqual(set(seen), {"latitude", "longitude", "current"})

    async def test_unknown_code(self):
        handler = lambda request: httpx.Response(200, json={"current": {"temperature_2m": 30.5, "weather_code": 42}})
        weather = await self._service(handler).get_current_weather(1, 2)
        self.assertEqual(weather.as_context(), "30.5°C, Unknown")

    async def test_failures_resolve_to_none(self):
        handlers = [
            lambda request: httpx.Response(500),
            lambda request: httpx.Response(200, json={}),
            lambda request: httpx.Response(200, text="<html>"),
            lambda request: httpx.Response(200, json={"current": {"temperature_2m": 20}}),
        ]
        for handler in handlers:
            with self.subTest(handler=handler):
                self.assertIsNone(await self._service(handler).get_current_weather(1, 2))

    async def test_network_error_resolves_to_none(self):
        def handler(request):
            raise httpx.ConnectError("offline")

        self.assertIsNone(await self._service(handler).get_current_weather(1, 2))

    async def test_missing_coordinates(self):
        def handler(request):
            raise AssertionError("should not be called")

        self.assertIsNone(await self._service(handler).get_current_weather(None, 2))


if __name__ == '__main__':
    unittest.main()
