"""
Prometheus gauges for the latest reading and the FastAPI app that serves them.
"""
import time
from typing import Optional

from fastapi import FastAPI, HTTPException, Response
from prometheus_client import CONTENT_TYPE_LATEST, CollectorRegistry, Gauge, generate_latest
from pydantic import BaseModel

from zeromon import __version__
from zeromon.environment import Reading, SharedEnvironment


class MetricsRegistry:
    """Gauges labeled by room, kept in a private registry"""

    def __init__(self, room: str, registry: Optional[CollectorRegistry] = None):
        self.room = room
        self.registry = registry or CollectorRegistry()
        self.temperature = Gauge(
            "temperature", "Current temperature value of the sensor.", ["room"], registry=self.registry
        )
        self.humidity = Gauge(
            "humidity", "Current humidity value of the sensor.", ["room"], registry=self.registry
        )
        self.time = Gauge(
            "time", "UnixTime the sensor was last checked.", ["room"], registry=self.registry
        )

    def update(self, reading: Reading) -> None:
        self.temperature.labels(room=self.room).set(reading.temperature)
        self.humidity.labels(room=self.room).set(reading.humidity)
        self.time.labels(room=self.room).set(int(reading.timestamp))

    def export(self) -> bytes:
        return generate_latest(self.registry)


class LatestReadingResponse(BaseModel):
    """Most recent accepted reading"""
    room: str
    temperature: float
    humidity: float
    unit: str
    timestamp: float
    age_seconds: float


class HealthResponse(BaseModel):
    status: str
    room: str
    version: str
    has_data: bool


def create_app(metrics: MetricsRegistry, environment: SharedEnvironment) -> FastAPI:
    app = FastAPI(
        title="zeromon",
        version=__version__,
        description="Temperature and humidity metrics",
    )

    @app.get("/metrics")
    def fetch_metrics():
        """Prometheus scrape endpoint"""
        return Response(content=metrics.export(), media_type=CONTENT_TYPE_LATEST)

    @app.get("/readings/latest", response_model=LatestReadingResponse)
    def fetch_latest_reading():
        reading = environment.read()
        if not reading.is_fresh:
            raise HTTPException(status_code=404, detail="No reading acquired yet")
        return LatestReadingResponse(
            room=metrics.room,
            temperature=reading.temperature,
            humidity=reading.humidity,
            unit=reading.unit,
            timestamp=reading.timestamp,
            age_seconds=max(0.0, time.time() - reading.timestamp),
        )

    @app.get("/health", response_model=HealthResponse)
    def health():
        return HealthResponse(
            status="ok",
            room=metrics.room,
            version=__version__,
            has_data=environment.read().is_fresh,
        )

    return app
