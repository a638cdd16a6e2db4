"""
main.py — FastAPI Entry Point for the Checkout Service

This module provides the REST API between the storefront pricing calculators
and the order platform.

Responsibilities:
    • Accept signed checkout submissions (POST /checkout)
    • Answer CORS preflights with the signing headers the browser must send
    • Create the draft order through the checkout workflow and return its invoice URL
    • Provide system health information

Run with:
    uvicorn checkout_service.asgi:app
"""

import uuid
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .clients import ShopifyClient
from .config import Settings
from .errors import CheckoutError, InternalError, OriginNotAllowedError, PayloadTooLargeError
from .logging_config import get_logger, setup_logging
from .signature import SIGNATURE_HEADER, TIMESTAMP_HEADER
from .workflow import CheckoutHandler

log = get_logger(__name__)

CORS_METHODS = ["POST", "OPTIONS"]
CORS_HEADERS = ["Content-Type", TIMESTAMP_HEADER, SIGNATURE_HEADER]

# Same cap as the storefront's JSON body parser (1 MiB)
MAX_BODY_BYTES = 1024 * 1024


def origin_allowed(settings: Settings, origin: Optional[str]) -> bool:
    """An empty allow-list reflects any origin."""
    if not settings.allowed_origins:
        return True
    return origin in settings.allowed_origins


def register_cors_middleware(app: FastAPI, settings: Settings) -> None:
    """
    Adds Starlette's CORSMiddleware. Allowed origins are echoed exactly, never
    as `*`; an empty allow-list accepts every origin.
    """
    origins = list(settings.allowed_origins)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_origin_regex=None if origins else ".*",
        allow_methods=CORS_METHODS,
        allow_headers=CORS_HEADERS,
        max_age=600,
    )


async def read_body(request: Request, limit: int = MAX_BODY_BYTES) -> bytes:
    """
    Reads the raw body, refusing anything larger than `limit` bytes.

    Raises:
        PayloadTooLargeError: Declared or actual length exceeds the limit.
    """
    declared = request.headers.get("content-length")
    if declared and declared.isdigit() and int(declared) > limit:
        raise PayloadTooLargeError()

    body = bytearray()
    async for chunk in request.stream():
        body.extend(chunk)
        if len(body) > limit:
            raise PayloadTooLargeError()
    return bytes(body)


def error_response(exc: CheckoutError, request_id: str) -> JSONResponse:
    body = exc.to_dict()
    body["requestId"] = request_id
    return JSONResponse(status_code=exc.status_code, content=body)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Closes the platform client on shutdown when the app created it."""
    log.info(f"Checkout-Service startet (Shop: {app.state.settings.shop}).")
    yield
    owned_gateway = getattr(app.state, "owned_gateway", None)
    if owned_gateway is not None:
        await owned_gateway.aclose()
        log.info("Shopify-Client geschlossen.")


def create_app(settings: Optional[Settings] = None, gateway=None) -> FastAPI:
    """
    Builds the FastAPI app.

    Args:
        settings (Settings | None): Injected settings; loaded from the environment
            (and logging configured) if None.
        gateway: Order platform client; a ShopifyClient is created, and closed on
            shutdown, if None.

    Raises:
        ConfigurationError: Settings are not injected and the environment is incomplete.
    """
    if settings is None:
        settings = Settings.from_env()
        setup_logging(settings.log_level, settings.log_file)

    app = FastAPI(title="Glazing Checkout Service", lifespan=lifespan)
    app.state.settings = settings
    app.state.owned_gateway = None
    if gateway is None:
        gateway = app.state.owned_gateway = ShopifyClient(settings)
    app.state.handler = CheckoutHandler(settings, gateway)
    register_cors_middleware(app, settings)

    @app.options("/checkout", status_code=204)
    async def checkout_preflight():
        return Response(status_code=204)

    @app.post("/checkout")
    async def checkout(request: Request):
        """
        Receives a signed calculator submission and creates a draft order.

        Returns:
            dict: invoiceUrl, orderId, calculatorType, grandTotal, totalUnitsQty,
            upgradesApplied and requestId.

        Error bodies carry `error`, a stable `reason` code and `requestId`.
        """
        request_id = uuid.uuid4().hex
        log_prefix = f"[Request: {request_id}]"
        handler: CheckoutHandler = request.app.state.handler

        try:
            if not origin_allowed(handler.settings, request.headers.get("origin")):
                raise OriginNotAllowedError()
            raw_body = await read_body(request)
            return await handler.handle(request.headers, raw_body, request_id)

        except CheckoutError as e:
            if e.status_code >= 500:
                log.error(f"{log_prefix} Checkout fehlgeschlagen ({e.reason}): {e.message}")
            else:
                log.warning(f"{log_prefix} Checkout abgelehnt ({e.reason}): {e.message}")
            return error_response(e, request_id)

        except Exception as e:
            log.critical(f"{log_prefix} Unbekannter Fehler im Checkout: {e}", exc_info=True)
            return error_response(InternalError(), request_id)

    @app.get("/")
    @app.get("/health")
    def health_check():
        """
        Simple health check endpoint for monitoring systems and container orchestrators.

        Returns:
            dict: A basic JSON object indicating service availability.
        """
        return {"status": "ok"}

    return app
