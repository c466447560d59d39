"""
Shared route dependencies: database session, gateway client, raw body and
the two static-key guards (router and admin).
"""
import hmac

from fastapi import Header, Query, Request

from hotspot.core.config import settings
from hotspot.core.errors import AuthError
from hotspot.services.gateway.client import MonnifyClient, get_gateway_client
from hotspot.services.router_bridge import check_router_key


def get_gateway() -> MonnifyClient:
    return get_gateway_client()


async def raw_body(request: Request) -> bytes:
    """The exact bytes received; the webhook HMAC is computed over these, never a re-serialization."""
    return await request.body()


def require_router_key(
    x_api_key: str | None = Header(default=None),
    api_key: str | None = Query(default=None),
) -> None:
    check_router_key(x_api_key or api_key)


def require_admin(x_admin_key: str | None = Header(default=None)) -> None:
    expected = settings.admin_api_key
    if not expected or not x_admin_key or not hmac.compare_digest(
        x_admin_key.encode("utf-8"), expected.encode("utf-8")
    ):
        raise AuthError("unauthorized", status_code=401)
