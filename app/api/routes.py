"""
FastAPI routes for the HubSpot OAuth proxy.
"""

from __future__ import annotations

import logging
from http import HTTPStatus
from typing import Annotated, Any

from fastapi import APIRouter, Depends, Query, Request, Response
from fastapi.responses import HTMLResponse, PlainTextResponse, RedirectResponse

from app.api.pages import is_stale_code_error, render_error_page, render_success_page
from app.core.errors import ConfigurationError, ProviderError, ValidationError
from app.dependencies import (
    get_call_wrapper,
    get_hubspot_oauth_client,
    get_token_refresher,
)
from app.services.hubspot_calls import ProviderCallResult

router = APIRouter()
logger = logging.getLogger(__name__)

_NO_CACHE = {"Cache-Control": "no-cache"}


@router.get("/health", status_code=HTTPStatus.OK)
async def healthcheck() -> dict:
    """Simple health endpoint for monitoring."""
    return {"status": "ok"}


@router.get("/oauth/install")
async def start_hubspot_install(
    oauth_client: Annotated[Any, Depends(get_hubspot_oauth_client)],
) -> Response:
    """Redirect the installing user to HubSpot's consent screen."""
    try:
        authorization_url = oauth_client.build_authorization_url()
    except ConfigurationError as exc:
        logger.error("Cannot start install flow: %s", exc)
        return PlainTextResponse(str(exc), status_code=HTTPStatus.INTERNAL_SERVER_ERROR)

    logger.info("Redirecting user to HubSpot's OAuth URL")
    return RedirectResponse(
        url=authorization_url, status_code=HTTPStatus.FOUND, headers=_NO_CACHE
    )


@router.get("/oauth/callback", response_class=HTMLResponse)
async def handle_hubspot_oauth_callback(
    refresher: Annotated[Any, Depends(get_token_refresher)],
    code: str | None = Query(default=None, description="Authorization code from HubSpot."),
) -> HTMLResponse:
    """Exchange the authorization code and store the portal's first token pair."""
    try:
        record = await refresher.exchange_authorization_code(code)
    except ValidationError as exc:
        return HTMLResponse(
            render_error_page(str(exc)), status_code=HTTPStatus.BAD_REQUEST, headers=_NO_CACHE
        )
    except ConfigurationError as exc:
        logger.error("Cannot complete install flow: %s", exc)
        return HTMLResponse(
            render_error_page(str(exc)),
            status_code=HTTPStatus.INTERNAL_SERVER_ERROR,
            headers=_NO_CACHE,
        )
    except ProviderError as exc:
        logger.error("Error exchanging authorization code: %s", exc.to_dict())
        status_code = (
            HTTPStatus.INTERNAL_SERVER_ERROR
            if exc.status_code >= HTTPStatus.INTERNAL_SERVER_ERROR
            else HTTPStatus.BAD_REQUEST
        )
        return HTMLResponse(
            render_error_page(exc.message, stale_code=is_stale_code_error(exc)),
            status_code=status_code,
            headers=_NO_CACHE,
        )

    return HTMLResponse(
        render_success_page(record.tenant_id), status_code=HTTPStatus.OK, headers=_NO_CACHE
    )


@router.api_route("/hubspot/proxy", methods=["GET", "POST", "PUT", "PATCH", "DELETE"])
async def proxy_hubspot_request(
    request: Request,
    wrapper: Annotated[Any, Depends(get_call_wrapper)],
    path: str | None = Query(default=None, description="HubSpot API path to call."),
    portal_id: str | None = Query(
        default=None, alias="portalId", description="HubSpot portal (hub) id."
    ),
) -> Response:
    """Relay a request to the HubSpot API with the portal's credentials attached."""
    tenant_id = request.headers.get("x-hubspot-portal-id") or portal_id
    requested_path = request.headers.get("x-requested-path") or path
    region = request.headers.get("x-hubspot-region")
    raw_body = await request.body()

    result = await wrapper.perform(
        tenant_id,
        request.method,
        requested_path,
        base_url=region,
        body=raw_body or None,
    )
    return _to_response(result)


def _to_response(result: ProviderCallResult) -> Response:
    if result.status_code == HTTPStatus.NO_CONTENT:
        return Response(status_code=result.status_code)
    content, media_type = result.encode_body()
    return Response(content=content, status_code=result.status_code, media_type=media_type)


__all__ = ["router"]
