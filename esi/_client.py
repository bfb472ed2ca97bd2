"""ESI HTTP client and shared utilities.

This module contains the request helper and error type shared by the
SSO (OAuth) and skill data modules.
"""

from __future__ import annotations

from typing import Any

import httpx

from monitor.base import ProgressSourceError

ESI_API_URL = "https://esi.evetech.net"
SSO_URL = "https://login.eveonline.com"
USER_AGENT = "eve-skill-monitor/1.0"
REQUEST_TIMEOUT = 30.0


class EsiError(ProgressSourceError):
    """ESI or SSO request failed."""


def _error_message(response: httpx.Response) -> str:
    try:
        data = response.json()
    except ValueError:
        return response.text
    if isinstance(data, dict):
        return data.get("error_description") or data.get("error") or response.text
    return response.text


async def esi_request(
    method: str,
    url: str,
    *,
    access_token: str | None = None,
    params: dict | None = None,
    json_data: Any = None,
    form_data: dict | None = None,
    auth: tuple[str, str] | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> Any:
    """Make an ESI or SSO request.

    Args:
        method: HTTP method
        url: Absolute URL
        access_token: Bearer token for authenticated ESI routes
        params: Query parameters
        json_data: JSON body
        form_data: Form-encoded body (SSO token endpoint)
        auth: HTTP basic credentials (SSO token endpoint)
        transport: Alternative httpx transport

    Returns:
        Parsed JSON response

    Raises:
        EsiError: On transport errors, error status codes or invalid JSON
    """
    headers = {"User-Agent": USER_AGENT, "Accept": "application/json"}
    if access_token:
        headers["Authorization"] = f"Bearer {access_token}"

    try:
        async with httpx.AsyncClient(transport=transport, timeout=REQUEST_TIMEOUT) as client:
            response = await client.request(
                method,
                url,
                headers=headers,
                params=params,
                json=json_data,
                data=form_data,
                auth=auth,
            )
    except httpx.HTTPError as e:
        raise EsiError(f"{method} {url} failed: {e}") from e

    if response.status_code >= 400:
        raise EsiError(f"ESI error ({response.status_code}): {_error_message(response)}")

    try:
        return response.json()
    except ValueError as e:
        raise EsiError(f"Invalid JSON from {url}: {e}") from e
