"""
D-Money merchant shim - FastAPI application

Authenticates against the D-Money gateway, creates signed preorders, builds
the hosted checkout URL and exposes order queries and the payment webhook.
"""
import json
import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional

import httpx
from fastapi import APIRouter, Depends, FastAPI, Query, Request
from fastapi.responses import JSONResponse

from .client import DMoneyClient
from .config import Settings, get_settings
from .exceptions import GatewayError, InvalidGatewayResponse, KeyUnavailable
from .keys import resolve_private_key
from .orders import (
    build_checkout_url,
    build_preorder_request,
    build_query_request,
    generate_nonce,
    get_timestamp,
    make_order_id,
)

logger = logging.getLogger(__name__)

router = APIRouter()


def configure_logging(settings: Settings) -> None:
    if logging.getLogger().handlers:
        # already configured by the host (uvicorn --log-config, pytest)
        return
    handlers = [logging.StreamHandler()]
    if settings.log_file:
        handlers.append(logging.FileHandler(settings.log_file))
    logging.basicConfig(
        level=getattr(logging, settings.log_level),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=handlers,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Configure logging and resolve the signing key once per process."""
    settings: Settings = app.state.settings
    configure_logging(settings)

    app.state.private_key = resolve_private_key(settings)
    logger.info(f"Private key {'loaded' if app.state.private_key else 'absent'}")

    missing = settings.missing_credentials()
    if missing:
        logger.warning(f"Gateway configuration incomplete, not set: {', '.join(missing)}")
    if not settings.verify_tls:
        logger.warning(
            "TLS certificate verification is DISABLED for D-Money calls; "
            "never run this configuration in production"
        )

    logger.info(f"Server started on http://{settings.host}:{settings.port}")
    yield
    logger.info("Shutting down D-Money shim")


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def require_private_key(request: Request) -> str:
    """Signing key resolved at startup; KeyUnavailable before any gateway call."""
    private_key = request.app.state.private_key
    if not private_key:
        raise KeyUnavailable()
    return private_key


def get_gateway(request: Request) -> DMoneyClient:
    return DMoneyClient(request.app.state.settings, transport=request.app.state.transport)


async def gateway_error_handler(request: Request, exc: GatewayError):
    """Render shim errors as {"error": ..., "apiResponse": ...}."""
    api_response = getattr(exc, "api_response", None)
    logger.error(
        f"Error in {request.url.path}: {exc.error_code} - {exc.message}",
        extra={"details": exc.details, "api_response": api_response},
    )
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.message, "apiResponse": api_response},
    )


@router.get("/")
async def health(settings: Settings = Depends(get_app_settings)):
    return {
        "status": "ok",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "api_base": settings.api_base,
    }


@router.get("/auth")
async def auth(gateway: DMoneyClient = Depends(get_gateway)):
    data = await gateway.fetch_token()
    logger.info("Authentication successful")
    return data


@router.get("/checkout-url")
async def checkout_url(
    amount: Optional[str] = Query(None, pattern=r"^\d+(\.\d{1,2})?$", description="e.g. 3000"),
    title: Optional[str] = Query(None, min_length=1, max_length=64),
    settings: Settings = Depends(get_app_settings),
    private_key: str = Depends(require_private_key),
    gateway: DMoneyClient = Depends(get_gateway),
):
    """Create a preorder and return the signed hosted checkout URL."""
    logger.info("Requesting authentication token for checkout")
    token = await gateway.bearer_token()

    nonce_str = generate_nonce()
    timestamp = get_timestamp()
    order_id = make_order_id(timestamp)

    payload = build_preorder_request(
        settings, private_key, order_id, nonce_str, timestamp,
        total_amount=amount, title=title,
    )
    data = await gateway.create_preorder(token, payload)

    prepay_id = data.get("prepay_id")
    if not prepay_id:
        raise InvalidGatewayResponse("No prepay_id in response", data)

    url = build_checkout_url(settings, private_key, prepay_id, nonce_str, timestamp)
    logger.info(f"Checkout URL ready for order {order_id}")
    return {"checkoutURL": url}


@router.get("/query-order/{order_id}")
async def query_order(
    order_id: str,
    settings: Settings = Depends(get_app_settings),
    private_key: str = Depends(require_private_key),
    gateway: DMoneyClient = Depends(get_gateway),
):
    logger.info(f"Querying order status for orderId: {order_id}")
    token = await gateway.bearer_token()
    payload = build_query_request(settings, private_key, order_id, generate_nonce(), get_timestamp())
    return await gateway.query_order(token, payload)


@router.post("/webhooks/payment")
async def payment_webhook(request: Request):
    """
    Accept payment notifications from D-Money.

    The notification is only logged; its signature is not verified.
    """
    body = await request.body()
    if not body.strip():
        data = {}
    else:
        try:
            data = json.loads(body)
        except ValueError as e:
            logger.warning(f"Rejected webhook with invalid JSON: {e}")
            return JSONResponse(status_code=400, content={"error": "Invalid JSON body"})

    logger.info(f"Received webhook notification: {json.dumps(data, indent=2, ensure_ascii=False)}")
    return {"message": "Webhook received"}


def create_app(
    settings: Optional[Settings] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None
) -> FastAPI:
    """
    Build the shim application.

    Args:
        settings: Configuration; defaults to the environment
        transport: Optional httpx transport for gateway calls (tests)
    """
    app = FastAPI(title="D-Money Merchant Shim", version="1.0", lifespan=lifespan)
    app.state.settings = settings or get_settings()
    app.state.transport = transport
    app.state.private_key = None
    app.add_exception_handler(GatewayError, gateway_error_handler)
    app.include_router(router)
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    settings = get_settings()
    uvicorn.run(app, host=settings.host, port=settings.port)
