import logging
from typing import Optional

import httpx

from app.constants.weather import describe_weather_code
from app.schemas.scan import WeatherData

logger = logging.getLogger(__name__)


class WeatherService:
    """Current conditions from Open-Meteo. Every failure resolves to None."""

    def __init__(self, api_url: str = "https://api.open-meteo.com/v1/forecast", timeout: float = 10.0,
                 client: Optional[httpx.AsyncClient] = None):
        self.api_url = api_url
        self.timeout = timeout
        self.client = client

    async def get_current_weather(self, latitude: Optional[float], longitude: Optional[float]) -> Optional[WeatherData]:
        if latitude is None or longitude is None:
            logger.info("No coordinates for this session, skipping weather lookup")
            return None

        params = {
            "latitude": latitude,
            "longitude": longitude,
            "current": "temperature_2m,weather_code",
        }
        try:
            if self.client is not None:
                response = await self.client.get(self.api_url, params=params, timeout=self.timeout)
            else:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    response = await client.get(self.api_url, params=params)
            response.raise_for_status()
            current = response.json().get("current")
            if not current:
                return None
            code = int(current["weather_code"])
            return WeatherData(
                temperature=current["temperature_2m"],
                condition_code=code,
                description=describe_weather_code(code)
            )
        except (httpx.HTTPError, ValueError, KeyError, TypeError) as e:
            logger.warning(f"Weather fetch failed: {e}")
            return None
