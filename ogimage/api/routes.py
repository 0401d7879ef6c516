"""API endpoints: preview images, config discovery and image debugging."""

import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse, Response

from ogimage.api.handler import PreviewRequestHandler, first_values, not_found_response
from ogimage.api.models import ImageDebugResponse, OgConfigResponse
from ogimage.net.url_gate import check_url_shape, is_supported_image_format, reconstruct_truncated_image_url
from ogimage.security.route_path import build_api_endpoint
from ogimage.settings import AppSettings

logger = logging.getLogger(__name__)
router = APIRouter()

CONFIG_CACHE_CONTROL = "public, max-age=30, s-maxage=30"


def get_settings(request: Request) -> AppSettings:
    return request.app.state.settings


def get_handler(request: Request) -> PreviewRequestHandler:
    return request.app.state.preview_handler


@router.get("/og-config")
async def og_config(settings: AppSettings = Depends(get_settings)) -> Response:
    """Tell clients which endpoint to call and whether to sign requests."""
    if not settings.config_endpoint_enabled:
        return not_found_response({"Cache-Control": "no-store"})
    body = OgConfigResponse(
        endpoint=build_api_endpoint(settings.security.primary_route_key),
        signature_required=settings.security.has_signature_protection,
    )
    return JSONResponse(
        content=body.model_dump(by_alias=True),
        headers={"Cache-Control": CONFIG_CACHE_CONTROL},
    )


@router.get("/debug")
async def image_debug(request: Request, settings: AppSettings = Depends(get_settings)) -> Response:
    """Explain how the ``image`` parameter would be reconstructed and vetted.

    Only the synchronous URL checks run here; no DNS lookups are made.
    """
    if not settings.debug_enabled:
        return not_found_response()
    params = first_values(request.url.query)
    image = params.get("image", "")
    reconstructed = reconstruct_truncated_image_url(image, params)
    body = ImageDebugResponse(
        original_image=image,
        reconstructed_image=reconstructed,
        is_valid_url=check_url_shape(reconstructed) is not None,
        is_supported_format=is_supported_image_format(reconstructed),
        all_params=params,
    )
    return JSONResponse(content=body.model_dump(by_alias=True))


@router.get("/{route_key}")
async def preview_image(
    route_key: str,
    request: Request,
    handler: PreviewRequestHandler = Depends(get_handler),
) -> Response:
    """Render a preview image for a signed (or open-mode) request."""
    return await handler.handle(route_key, str(request.url))
