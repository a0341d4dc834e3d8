"""JSON helpers shared by the adapters: JSON-RPC 2.0 calls and object-body decoding."""

import logging
from typing import Any, Union

import httpx

from custodex.errors import RPCError

logger = logging.getLogger(__name__)


def json_object(response: httpx.Response) -> dict:
    """Decode a JSON object body.

    Raises:
        ValueError: If the body is not JSON or not a JSON object
    """
    data = response.json()
    if not isinstance(data, dict):
        raise ValueError(f"expected a JSON object, got {type(data).__name__}")
    return data


async def json_rpc(
    client: httpx.AsyncClient,
    url: str,
    method: str,
    params: Union[list, dict],
    chain: str,
    step: str,
    request_id: Union[int, str] = 1,
) -> Any:
    """POST a JSON-RPC request and return ``result``.

    Raises:
        RPCError: On transport failure, non-200 status, an ``error`` member
            or a missing ``result``
    """
    payload = {"jsonrpc": "2.0", "id": request_id, "method": method, "params": params}
    try:
        response = await client.post(url, json=payload)
    except httpx.HTTPError as e:
        raise RPCError(chain, step, f"{method} request failed: {e}") from e

    if response.status_code != 200:
        logger.error(f"{chain}: {method} returned HTTP {response.status_code}: {response.text}")
        raise RPCError(chain, step, f"{method} HTTP {response.status_code}: {response.text}",
                       code=response.status_code)

    try:
        data = json_object(response)
    except ValueError as e:
        raise RPCError(chain, step, f"{method} returned invalid JSON: {e}") from e

    error = data.get("error")
    if error:
        if isinstance(error, dict):
            message = error.get("message") or str(error)
            data_field = error.get("data")
            if data_field:
                message = f"{message} ({data_field})"
            code = error.get("code")
        else:
            message, code = str(error), None
        logger.error(f"{chain}: {method} RPC error: {message}")
        raise RPCError(chain, step, f"{method} RPC error: {message}",
                       code=code if isinstance(code, int) else None)

    if "result" not in data:
        raise RPCError(chain, step, f"{method} response has no result")
    return data["result"]
