"""
AWS Lambda entrypoint for the authenticated HubSpot proxy.
"""

from __future__ import annotations

import asyncio
import base64
import logging
from functools import lru_cache
from typing import Any, Dict, Optional

from app.core.config import get_settings
from app.core.logging import configure_logging
from app.dependencies import get_call_wrapper
from app.services import HubSpotCallWrapper

logger = logging.getLogger(__name__)

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": (
        "Content-Type, X-HubSpot-Region, X-Requested-Path, X-HubSpot-Portal-Id"
    ),
    "Access-Control-Allow-Methods": "GET, POST, PUT, PATCH, DELETE, OPTIONS",
}


@lru_cache()
def _bootstrap() -> HubSpotCallWrapper:
    """Initialize shared singletons once per Lambda container."""
    settings = get_settings()
    configure_logging(settings.log_level)
    return get_call_wrapper()


def _request_body(event: Dict[str, Any]) -> Optional[str | bytes]:
    body = event.get("body")
    if not body:
        return None
    if event.get("isBase64Encoded"):
        return base64.b64decode(body)
    return body


def lambda_handler(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
    """
    AWS Lambda handler invoked by API Gateway proxy integration.

    The portal id, target path and region come from the same headers and query
    parameters the FastAPI proxy route reads.
    """
    method = (event.get("httpMethod") or "GET").upper()
    if method == "OPTIONS":
        return {"statusCode": 200, "headers": CORS_HEADERS, "body": ""}

    headers = {key.lower(): value for key, value in (event.get("headers") or {}).items()}
    query = event.get("queryStringParameters") or {}
    tenant_id = headers.get("x-hubspot-portal-id") or query.get("portalId")
    path = headers.get("x-requested-path") or query.get("path")

    wrapper = _bootstrap()
    result = asyncio.run(
        wrapper.perform(
            tenant_id,
            method,
            path,
            base_url=headers.get("x-hubspot-region"),
            body=_request_body(event),
        )
    )
    logger.info(
        "Proxied %s %s -> %s (%s)", method, path, result.status_code, result.outcome.value
    )

    content, media_type = result.encode_body()
    return {
        "statusCode": result.status_code,
        "headers": {**CORS_HEADERS, "Content-Type": media_type},
        "body": content,
    }


__all__ = ["lambda_handler"]
