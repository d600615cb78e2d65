from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Mapping, Optional, Sequence

from loguru import logger

ALLOW_METHODS = "GET, POST, OPTIONS"
ALLOW_HEADERS = "Content-Type, Authorization, X-Requested-With"
MAX_AGE_SECONDS = 86400


@dataclass(frozen=True)
class FunctionResponse:
    status: int
    body: Optional[dict[str, Any]]
    headers: dict[str, str] = field(default_factory=dict)


def cors_headers(origin: Optional[str], allowed_origins: Sequence[str]) -> dict[str, str]:
    """Echo an allow-listed origin; anything else gets the wildcard."""
    allow_origin = origin if origin and origin in allowed_origins else "*"
    return {
        "Access-Control-Allow-Origin": allow_origin,
        "Access-Control-Allow-Methods": ALLOW_METHODS,
        "Access-Control-Allow-Headers": ALLOW_HEADERS,
        "Access-Control-Allow-Credentials": "true",
        "Access-Control-Max-Age": str(MAX_AGE_SECONDS),
    }


def utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


async def invoke_with_cors(
    handler: Callable[[Mapping[str, str]], Awaitable[dict[str, Any]]],
    method: str,
    query: Mapping[str, str],
    origin: Optional[str],
    allowed_origins: Sequence[str],
) -> FunctionResponse:
    """
    Run one function behind the CORS wrapper.

    Preflight requests are answered with 204 and no body. Any exception the
    handler raises becomes a 500 ``{success: false, error}`` envelope.
    """
    headers = cors_headers(origin, allowed_origins)

    if method.upper() == "OPTIONS":
        return FunctionResponse(status=204, body=None, headers=headers)

    try:
        body = await handler(query)
    except Exception as e:
        logger.exception(f"Function handler failed: {e}")
        return FunctionResponse(
            status=500,
            body={
                "success": False,
                "error": "Internal server error",
                "details": str(e),
                "timestamp": utc_timestamp(),
            },
            headers=headers,
        )
    return FunctionResponse(status=200, body=body, headers=headers)
