"""Authenticated JSON-over-HTTP helper shared by every service client."""

import logging
from collections.abc import Mapping
from typing import Any

import httpx

from src.clients.auth import get_auth_token
from src.config import get_settings
from src.errors import NetworkError, ServiceError

logger = logging.getLogger(__name__)

MAX_ERROR_TEXT = 500


def auth_headers() -> dict[str, str]:
    """Build the bearer authorization header for a backend call."""
    return {"Authorization": f"Bearer {get_auth_token()}"}


def error_detail(response: httpx.Response, fallback: str) -> str:
    """Prefer the service's ``detail`` message; fall back to the status code."""
    try:
        body: object = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict):
        detail = body.get("detail")  # pyright: ignore[reportUnknownMemberType, reportUnknownVariableType]
        if isinstance(detail, str) and detail:
            return detail
    return f"{fallback}: HTTP {response.status_code}"


async def service_request(
    method: str,
    url: str,
    *,
    json: Mapping[str, Any] | None = None,
    files: Mapping[str, Any] | None = None,
    failure_message: str = "API error",
) -> Any:
    """Make an authenticated request and return the decoded JSON body.

    Raises:
        NetworkError: connection failure or timeout.
        ServiceError: non-2xx status or a body that is not JSON.
    """
    timeout = get_settings().request_timeout_seconds
    headers = {"Accept": "application/json", **auth_headers()}

    try:
        async with httpx.AsyncClient(timeout=timeout) as client:
            response = await client.request(method, url, headers=headers, json=json, files=files)
            _ = response.raise_for_status()
    except httpx.TimeoutException as e:
        raise NetworkError(f"Request to {url} timed out after {timeout}s") from e
    except httpx.HTTPStatusError as e:
        logger.info("%s %s failed: HTTP %d - %s", method, url, e.response.status_code, e.response.text[:MAX_ERROR_TEXT])
        raise ServiceError(error_detail(e.response, failure_message), status_code=e.response.status_code) from e
    except httpx.TransportError as e:
        raise NetworkError(f"Cannot connect to {url}: {e}") from e

    try:
        return response.json()
    except ValueError as e:
        raise ServiceError(f"{failure_message}: response was not JSON", status_code=response.status_code) from e
