"""
Gateway: health dashboard over the product and order services.
"""

import logging
from collections.abc import AsyncIterator
from typing import Annotated

import httpx
from fastapi import Depends, FastAPI
from prometheus_client import make_asgi_app

from . import health
from .config import Settings, get_settings

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)

app = FastAPI(title="Gateway", description="Aggregates health of the backend services.")

metrics_app = make_asgi_app()
app.mount("/metrics", metrics_app)


async def get_http_client(
    settings: Annotated[Settings, Depends(get_settings)],
) -> AsyncIterator[httpx.AsyncClient]:
    async with httpx.AsyncClient(timeout=settings.HEALTH_CHECK_TIMEOUT) as client:
        yield client


@app.get("/health")
async def health_dashboard(
    client: Annotated[httpx.AsyncClient, Depends(get_http_client)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> dict:
    """Overall status: UP when every service is UP, DEGRADED otherwise."""
    return await health.build_health_dashboard(client, settings.service_urls())


@app.get("/services")
async def services_status(
    client: Annotated[httpx.AsyncClient, Depends(get_http_client)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> dict:
    return await health.build_services_status(client, settings.service_urls())
