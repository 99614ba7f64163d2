"""
Weather Models
==============
Pydantic models mirroring the OpenWeatherMap "current weather" response.

We only model the parts the weather map shows. Everything else in the
API response is dropped on validation.

Data Source:
    HTTP GET https://api.openweathermap.org/data/2.5/weather
        ?lat=<lat>&lon=<lon>&appid=<key>&units=metric
    or  ?q=<place name>&appid=<key>&units=metric
"""

from pydantic import BaseModel, Field
from typing import Optional


class WeatherMain(BaseModel):
    temp: float = Field(..., description="Temperature (°C)")
    humidity: float = Field(..., description="Relative humidity (%)")
    pressure: float = Field(..., description="Pressure (hPa)")
    feels_like: Optional[float] = Field(None, description="Feels-like temperature (°C)")


class WeatherCondition(BaseModel):
    main: str = Field(..., description="Condition group, e.g. 'Rain'")
    description: str = Field(..., description="e.g. 'moderate rain'")
    icon: Optional[str] = Field(None, description="OpenWeatherMap icon code")


class Wind(BaseModel):
    speed: float = Field(..., description="Wind speed (m/s)")
    deg: Optional[float] = Field(None, description="Wind direction (degrees)")
    gust: Optional[float] = Field(None, description="Wind gust (m/s)")


class WeatherData(BaseModel):
    """
    Current conditions at a point.

    `wind_compass` is filled in by the service from `wind.deg`
    (e.g. 225 -> "SW").
    """
    main: WeatherMain
    weather: list[WeatherCondition] = Field(default_factory=list)
    wind: Wind
    visibility: Optional[int] = Field(None, description="Visibility (m)")
    name: str = Field("", description="Place name reported by the API")
    wind_compass: str = Field("", description="16-point compass direction")


class MonitoredLocation(BaseModel):
    """A fixed point we keep a weather widget on."""
    lat: float
    lng: float
    name: str


class MonitoredWeather(BaseModel):
    location: MonitoredLocation
    weather: WeatherData


class MonitoredWeatherResponse(BaseModel):
    results: list[MonitoredWeather]
    requested: int = Field(..., description="Locations we asked for")
    succeeded: int = Field(..., description="Locations that answered")
