"""Per-request client metadata dependency."""

from typing import Annotated

from asgi_correlation_id import correlation_id
from fastapi import Depends, Request

from src.console.core.config import get_settings
from src.console.core.request_metadata import RequestMetadata, get_client_ip


def get_request_metadata(request: Request) -> RequestMetadata:
    """Capture client IP, user agent, coarse location and request ID."""
    settings = get_settings()
    return RequestMetadata.build(
        ip_address=get_client_ip(
            request.headers.get("x-forwarded-for"),
            request.client.host if request.client else None,
            settings.trusted_proxy_ips,
        ),
        user_agent=request.headers.get("user-agent"),
        location=request.headers.get(settings.location_header),
        request_id=correlation_id.get(),
    )


RequestMeta = Annotated[RequestMetadata, Depends(get_request_metadata)]
