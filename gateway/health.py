"""
Health aggregation for the gateway dashboard.

Every downstream service is checked in parallel. A failing check is reported as
DOWN for that service instead of failing the whole dashboard.
"""

import asyncio
import logging
from datetime import datetime, timezone

import httpx

logger = logging.getLogger(__name__)

STATUS_UP = "UP"
STATUS_DOWN = "DOWN"
STATUS_DEGRADED = "DEGRADED"
STATUS_ERROR = "ERROR"


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def parse_health_status(body: object) -> dict:
    if isinstance(body, dict) and body.get("status") == STATUS_UP:
        return {"status": STATUS_UP, "healthy": True}
    return {"status": STATUS_DOWN, "healthy": False}


async def fetch_health(client: httpx.AsyncClient, base_url: str) -> object:
    response = await client.get(f"{base_url}/health")
    response.raise_for_status()
    return response.json()


async def check_service_health(client: httpx.AsyncClient, base_url: str) -> dict:
    try:
        body = await fetch_health(client, base_url)
    except Exception as e:
        logger.warning("Health check of %s failed: %s", base_url, e)
        return parse_health_status(None)
    return parse_health_status(body)


def calculate_overall_status(services: dict[str, dict]) -> str:
    for service in services.values():
        if service.get("status") != STATUS_UP:
            return STATUS_DEGRADED
    return STATUS_UP


def create_error_dashboard() -> dict:
    return {
        "timestamp": _now(),
        "gateway": STATUS_UP,
        "overall_status": STATUS_ERROR,
        "message": "Unable to fetch service health",
    }


async def build_health_dashboard(client: httpx.AsyncClient, service_urls: dict[str, str]) -> dict:
    try:
        results = await asyncio.gather(
            *(check_service_health(client, url) for url in service_urls.values())
        )
    except Exception:
        logger.exception("Unable to fetch service health")
        return create_error_dashboard()

    services = dict(zip(service_urls, results))
    return {
        "timestamp": _now(),
        "gateway": STATUS_UP,
        "services": services,
        "overall_status": calculate_overall_status(services),
    }


async def get_service_info(client: httpx.AsyncClient, name: str, base_url: str) -> dict:
    info = {"name": name, "uri": base_url}
    try:
        body = await fetch_health(client, base_url)
    except Exception as e:
        logger.warning("Service info request to %s failed: %s", base_url, e)
        info.update({"status": STATUS_DOWN, "error": str(e)})
        return info
    info.update({"status": STATUS_UP, "health": parse_health_status(body)})
    return info


async def build_services_status(client: httpx.AsyncClient, service_urls: dict[str, str]) -> dict:
    infos = await asyncio.gather(
        *(get_service_info(client, name, url) for name, url in service_urls.items())
    )
    result: dict = {info["name"]: info for info in infos}
    result["timestamp"] = _now()
    return result
