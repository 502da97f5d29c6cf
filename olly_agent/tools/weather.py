"""getWeather 工具：地理编码 -> 网格点 -> 预报，严格串行，任一阶段失败即短路。"""

from __future__ import annotations

import json
from typing import Any, Awaitable, Callable, Dict

from olly_agent.domain.exceptions import LocationNotSupported
from olly_agent.domain.models import WeatherPeriod
from olly_agent.infrastructure.logging.logger import logger
from olly_agent.providers.weather import WeatherClient
from olly_agent.tools.definitions import MAX_WEATHER_DAYS, MIN_WEATHER_DAYS


ToolFunc = Callable[[Dict[str, Any]], Awaitable[str]]


def _clamp_days(raw: Any) -> int:
    try:
        days = int(raw) if raw is not None else MIN_WEATHER_DAYS
    except (TypeError, ValueError):
        days = MIN_WEATHER_DAYS
    return max(MIN_WEATHER_DAYS, min(days, MAX_WEATHER_DAYS))


def period_count(days: int) -> int:
    """预报按白天/夜间交替排列：1 天只取当前时段，多天取 days * 2 个时段。"""

    return 1 if days == 1 else days * 2


def _make_get_weather_tool(client: WeatherClient) -> ToolFunc:
    async def _run(args: Dict[str, Any]) -> str:
        location = str(args.get("location") or "").strip()
        days = _clamp_days(args.get("days"))
        if not location:
            return json.dumps({
                "error": "Location not found",
                "message": 'No location was provided. Please use a format like "City, State" (e.g., "Boston, MA").',
            }, ensure_ascii=False)

        try:
            logger.info(f"Fetching weather for: {location}, days: {days}")
            geo = await client.geocode(location)
            if geo is None:
                return json.dumps({
                    "error": "Location not found",
                    "message": (
                        f'Could not find coordinates for "{location}". Please try a different location '
                        'format like "City, State" (e.g., "Boston, MA").'
                    ),
                }, ensure_ascii=False)
            logger.info(f"Found coordinates: {geo.lat}, {geo.lon} for {geo.display_name}")

            try:
                forecast_url = await client.resolve_forecast_url(geo.lat, geo.lon)
            except LocationNotSupported:
                return json.dumps({
                    "error": "Location not supported",
                    "message": (
                        f'Weather.gov only provides forecasts for US locations. "{location}" appears '
                        "to be outside the US coverage area."
                    ),
                }, ensure_ascii=False)

            periods = await client.fetch_periods(forecast_url)
            forecast = [WeatherPeriod.from_raw(p).to_dict() for p in periods[:period_count(days)]]
        except Exception as exc:
            logger.error(f"Error fetching weather data: {exc}")
            return json.dumps({
                "error": "Failed to fetch weather data",
                "message": str(exc),
                "details": "Please check the location format and try again. Use 'City, State' format for US locations.",
            }, ensure_ascii=False)

        if days == 1:
            message = (
                f"Current weather forecast for {geo.display_name}. Provide a clear, concise summary "
                "of the weather conditions."
            )
        else:
            message = (
                f"{days}-day weather forecast for {geo.display_name}. Provide a helpful summary of "
                "the weather conditions over the forecast period."
            )
        return json.dumps({
            "message": message,
            "location": geo.display_name,
            "coordinates": {"lat": geo.lat, "lon": geo.lon},
            "days": days,
            "periodsReturned": len(forecast),
            "forecast": forecast,
        }, ensure_ascii=False)

    return _run


def weather_tools(client: WeatherClient) -> Dict[str, ToolFunc]:
    return {"getWeather": _make_get_weather_tool(client)}
