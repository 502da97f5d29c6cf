"""天气与地理编码 HTTP 适配器。

三个端点分别对应天气查询的三个阶段：

- geocode: Nominatim 自由文本查询 -> 候选列表（取第一个）。
- resolve_forecast_url: weather.gov /points/{lat},{lon} -> properties.forecast。
- fetch_periods: 预报 URL -> properties.periods。

每个阶段的结构异常都抛出对应的 WeatherLookupError 子类，由处理器统一转换。
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import httpx

from olly_agent.config.settings import settings
from olly_agent.domain.exceptions import (
    ForecastError,
    GeocodeError,
    GridPointError,
    LocationNotSupported,
    NetworkError,
)


@dataclass(frozen=True)
class GeoLocation:
    lat: float
    lon: float
    display_name: str


class WeatherClient:
    name = "weather.gov"

    def __init__(self, cfg=settings):
        self._settings = cfg

    async def geocode(self, location: str) -> Optional[GeoLocation]:
        resp = await self._get(
            self._settings.geocoding_url,
            params={"q": location, "format": "json"},
        )
        if resp.status_code >= 400:
            raise GeocodeError(
                code="GEOCODE_ERROR",
                message=f"Failed to fetch coordinates: {resp.status_code}",
                http_status=resp.status_code,
            )
        data = resp.json()
        if not data:
            return None
        if not isinstance(data, list):
            raise GeocodeError(code="GEOCODE_ERROR", message="Invalid geocoding response structure")
        first = data[0]
        try:
            return GeoLocation(
                lat=float(first["lat"]),
                lon=float(first["lon"]),
                display_name=str(first.get("display_name") or location),
            )
        except (KeyError, TypeError, ValueError) as exc:
            raise GeocodeError(
                code="GEOCODE_ERROR",
                message=f"Invalid geocoding response structure: {exc}",
            ) from exc

    async def resolve_forecast_url(self, lat: float, lon: float) -> str:
        # weather.gov 对超过 4 位小数的坐标返回重定向
        url = f"{self._settings.weather_points_url}/{lat:.4f},{lon:.4f}"
        resp = await self._get(url)
        if resp.status_code == 404:
            raise LocationNotSupported(url)
        if resp.status_code >= 400:
            raise GridPointError(
                code="GRID_POINT_ERROR",
                message=f"Weather.gov points API error: {resp.status_code}",
                http_status=resp.status_code,
            )
        forecast_url = _dig(resp.json(), "properties", "forecast")
        if not isinstance(forecast_url, str) or not forecast_url:
            raise GridPointError(code="GRID_POINT_ERROR", message="Invalid weather.gov points response structure")
        return forecast_url

    async def fetch_periods(self, forecast_url: str) -> List[Dict[str, Any]]:
        resp = await self._get(forecast_url)
        if resp.status_code >= 400:
            raise ForecastError(
                code="FORECAST_ERROR",
                message=f"Weather.gov forecast API error: {resp.status_code}",
                http_status=resp.status_code,
            )
        periods = _dig(resp.json(), "properties", "periods")
        if not isinstance(periods, list):
            raise ForecastError(code="FORECAST_ERROR", message="Invalid weather.gov forecast response structure")
        return periods

    async def _get(self, url: str, params: Optional[Dict[str, Any]] = None) -> httpx.Response:
        try:
            async with httpx.AsyncClient(
                timeout=self._settings.http_timeout,
                headers={"User-Agent": self._settings.weather_user_agent},
                follow_redirects=True,
            ) as client:
                return await client.get(url, params=params)
        except httpx.RequestError as e:
            raise NetworkError(code="NETWORK_ERROR", message=str(e))


def _dig(data: Any, *keys: str) -> Any:
    for key in keys:
        if not isinstance(data, dict):
            return None
        data = data.get(key)
    return data
