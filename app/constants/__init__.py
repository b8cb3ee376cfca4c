# Constants package
from app.constants.languages import (
    Language,
    DEFAULT_LANGUAGE,
    get_prompt_language
)
from app.constants.weather import WEATHER_CODES, describe_weather_code

__all__ = [
    'Language',
    'DEFAULT_LANGUAGE',
    'get_prompt_language',
    'WEATHER_CODES',
    'describe_weather_code'
]
