#!/usr/bin/env python3
"""Weather finder - displays current weather for a city via OpenWeatherMap."""

import logging
import os
import sys
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

import requests

from envfile import ConfigReadError, load_env_file

logger = logging.getLogger(__name__)

BASE_URL = "https://api.openweathermap.org/data/2.5/weather"
DEFAULT_CITY = "London"
API_KEY_VAR = "WEATHER_API_KEY"
LOG_LEVEL_VAR = "WEATHER_LOG_LEVEL"

MISSING_KEY_HELP = f"""Error: {API_KEY_VAR} is not set.
Add it to the .env file in the project directory:
  {API_KEY_VAR}=your_api_key_here
Get a free key at https://openweathermap.org/api"""


class WeatherError(Exception):
    """Base error for anything that stops a weather lookup."""


class MissingCredentialError(WeatherError):
    """No API key was found in the environment."""


class NetworkError(WeatherError):
    """The request never got a response."""


class ResponseParseError(WeatherError):
    """The response body was not the JSON we expected."""


class ProviderReportedError(WeatherError):
    """The provider answered with a non-OK status."""


class EmptyResultError(WeatherError):
    """The provider answered OK but with no conditions for the city."""


@dataclass(frozen=True)
class Settings:
    """API key and city for one run."""

    api_key: str
    city: str = DEFAULT_CITY

    @classmethod
    def from_env(cls, environ=None, argv=None):
        """
        Resolve settings from environment variables and CLI arguments.

        Args:
            environ (dict): Environment mapping, defaults to os.environ
            argv (list): Positional arguments, the first one is the city

        Returns:
            Settings: Resolved settings

        Raises:
            MissingCredentialError: If the API key is absent or empty
        """
        if environ is None:
            environ = os.environ
        api_key = environ.get(API_KEY_VAR, "")
        if not api_key:
            raise MissingCredentialError(f"{API_KEY_VAR} is not set")
        city = argv[0] if argv else DEFAULT_CITY
        return cls(api_key=api_key, city=city)


@dataclass(frozen=True)
class WeatherRecord:
    """Current conditions for one city, in metric units."""

    city: str
    temperature: float
    feels_like: float
    humidity: int
    description: str
    wind_speed: float

    @classmethod
    def from_payload(cls, payload: dict) -> "WeatherRecord":
        """Build a record from a successful payload with at least one condition."""
        try:
            main = payload.get("main") or {}
            wind = payload.get("wind") or {}
            return cls(
                city=str(payload.get("name", "")),
                temperature=_number(main.get("temp", 0), float),
                feels_like=_number(main.get("feels_like", 0), float),
                humidity=_number(main.get("humidity", 0), int),
                description=str(payload["weather"][0].get("description", "")),
                wind_speed=_number(wind.get("speed", 0), float),
            )
        except (AttributeError, IndexError, KeyError, TypeError, ValueError) as e:
            raise ResponseParseError(f"failed to parse API response: {e}") from e


def _number(value, kind):
    # bool is an int subclass but never a valid reading
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise TypeError(f"expected a number, got {value!r}")
    if kind is int and isinstance(value, float) and not value.is_integer():
        raise ValueError(f"expected an integer, got {value!r}")
    return kind(value)


class WeatherClient:
    """Client for the OpenWeatherMap current weather endpoint."""

    def __init__(self, api_key: str, base_url: str = BASE_URL):
        self.api_key = api_key
        self.base_url = base_url

    def fetch(self, city: str) -> WeatherRecord:
        """
        Fetch current weather for a city.

        Args:
            city (str): City name to get weather for

        Returns:
            WeatherRecord: Parsed current conditions

        Raises:
            NetworkError: If the request fails before a response arrives
            ResponseParseError: If an OK response is not valid JSON
            ProviderReportedError: If the provider returns a non-OK status
            EmptyResultError: If the provider has no conditions for the city
        """
        params = {
            "q": city,
            "appid": self.api_key,
            "units": "metric",
            "lang": "en",
        }

        logger.debug(f"Fetching current weather for {city!r}")
        try:
            response = requests.get(self.base_url, params=params)
        except requests.RequestException as e:
            raise NetworkError(f"network error: {e}") from e

        with response:
            logger.debug(f"Provider answered {response.status_code} for {city!r}")
            return self._parse(response, city)

    def _parse(self, response, city):
        ok = response.status_code == requests.codes.ok
        status_text = f"{response.status_code} {response.reason or ''}".strip()

        # Error payloads carry a "message" even on 4xx, so decode regardless
        try:
            payload = response.json()
            if not isinstance(payload, dict):
                raise ValueError(f"expected a JSON object, got {type(payload).__name__}")
        except ValueError as e:
            if not ok:
                raise ProviderReportedError(
                    f"API returned unexpected status: {status_text}"
                ) from e
            raise ResponseParseError(f"failed to parse API response: {e}") from e

        if not ok:
            message = payload.get("message")
            if message:
                raise ProviderReportedError(f"API error: {message}")
            raise ProviderReportedError(f"API returned unexpected status: {status_text}")

        if not payload.get("weather"):
            raise EmptyResultError(f'API returned no weather data for "{city}"')

        return WeatherRecord.from_payload(payload)


def fetch_weather(city, api_key):
    """Fetch current weather for a city with a one-off client."""
    return WeatherClient(api_key).fetch(city)


def capitalize_first(text):
    """Upper-case the first character when it is an ASCII lowercase letter."""
    if text and "a" <= text[0] <= "z":
        return text[0].upper() + text[1:]
    return text


def render(record: WeatherRecord, now: Optional[datetime] = None) -> str:
    """
    Format a weather record for display.

    Args:
        record (WeatherRecord): Weather to show
        now (datetime): Timestamp to print, defaults to the local time

    Returns:
        str: Seven labeled lines
    """
    if now is None:
        now = datetime.now()

    return "\n".join([
        f"City:        {record.city}",
        f"Time:        {now.strftime('%d %b %Y, %H:%M')}",
        f"Temperature: {record.temperature:.1f}°C",
        f"Feels like:  {record.feels_like:.1f}°C",
        f"Weather:     {capitalize_first(record.description)}",
        f"Humidity:    {record.humidity}%",
        f"Wind speed:  {record.wind_speed:.1f} m/s",
    ])


def display(record):
    print(render(record))


def setup_logging(environ=None):
    if environ is None:
        environ = os.environ
    level = environ.get(LOG_LEVEL_VAR, "WARNING").upper()
    logging.basicConfig(
        level=getattr(logging, level, logging.WARNING),
        format="%(levelname)s: %(message)s",
        stream=sys.stderr,
    )


def main(argv=None):
    """Main function to get and display weather."""
    if argv is None:
        argv = sys.argv[1:]

    try:
        load_env_file(".env")
    except ConfigReadError as e:
        # Shown regardless of WEATHER_LOG_LEVEL
        print(f"Warning: could not read .env file: {e}", file=sys.stderr)

    # .env may carry the log level, so configure logging after loading it
    setup_logging()

    try:
        settings = Settings.from_env(argv=argv)
    except MissingCredentialError:
        print(MISSING_KEY_HELP, file=sys.stderr)
        sys.exit(1)

    try:
        record = WeatherClient(settings.api_key).fetch(settings.city)
    except WeatherError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    display(record)


if __name__ == "__main__":
    main()
