"""Authenticated JSON GETs against payment authority REST APIs."""
from typing import Any, Dict, Optional

import httpx

from app.core.errors import PaymentAuthorityError


async def get_json(
    provider: str,
    api_base: str,
    secret_key: Optional[str],
    path: str,
    params: Optional[Dict[str, Any]] = None,
    timeout: float = 10.0,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> Dict[str, Any]:
    """
    GET `path` with a bearer secret key and return the decoded JSON object.

    Raises:
        PaymentAuthorityError: missing key, transport failure, non-2xx status,
            or a body that is not a JSON object.
    """
    if not secret_key:
        raise PaymentAuthorityError(f"{provider} secret key is not configured")

    try:
        async with httpx.AsyncClient(
            base_url=api_base,
            headers={"Authorization": f"Bearer {secret_key}"},
            timeout=timeout,
            transport=transport,
        ) as client:
            response = await client.get(path, params=params)
            response.raise_for_status()
            data = response.json()
    except httpx.HTTPStatusError as e:
        raise PaymentAuthorityError(
            f"{provider} returned HTTP {e.response.status_code} for {path}"
        ) from e
    except httpx.HTTPError as e:
        raise PaymentAuthorityError(f"{provider} request failed for {path}: {str(e)}") from e
    except ValueError as e:
        raise PaymentAuthorityError(f"{provider} returned invalid JSON for {path}") from e

    if not isinstance(data, dict):
        raise PaymentAuthorityError(f"Unexpected {provider} response shape for {path}")
    return data
