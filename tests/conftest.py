import hashlib
import hmac
import json
import time
from typing import Any, Dict, Optional
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

from checkout_service.config import Settings
from checkout_service.main import create_app
from checkout_service.models import ExternalOrderResult

SECRET = "test-frontend-secret"
INVOICE_URL = "https://test-shop.myshopify.com/invoices/abc123"
ORDER_ID = "gid://shopify/DraftOrder/1001"


def make_settings(**overrides) -> Settings:
    values: Dict[str, Any] = {
        "shared_secret": SECRET,
        "shop": "test-shop.myshopify.com",
        "admin_token": "shpat_test",
        "log_file": "",
    }
    values.update(overrides)
    return Settings(**values)


def sign(body: bytes, ts: Optional[int] = None, secret: str = SECRET) -> Dict[str, str]:
    """Signs a body the way the storefront does and returns the request headers."""
    ts = int(time.time() * 1000) if ts is None else ts
    digest = hmac.new(secret.encode(), f"{ts}.".encode() + body, hashlib.sha256).hexdigest()
    return {
        "Content-Type": "application/json",
        "X-RG-Timestamp": str(ts),
        "X-RG-Signature": digest,
    }


def dgu_unit(**overrides) -> Dict[str, Any]:
    unit = {
        "outerGlass": "4mm Clear",
        "innerGlass": "4mm Clear",
        "cavityWidth": "16mm",
        "spacer": "Black",
        "selfCleaning": "No",
        "widthMm": 1000,
        "heightMm": 1000,
        "qty": 1,
    }
    unit.update(overrides)
    return unit


def skylight_unit(**overrides) -> Dict[str, Any]:
    unit = {
        "unitStrength": "Standard",
        "glazingSpec": "Triple Glazed",
        "tint": "",
        "solarControl": "No",
        "selfCleaning": "Yes",
        "internalWidthMm": 1200,
        "internalHeightMm": 800,
        "externalWidthMm": 1400,
        "externalHeightMm": 1000,
        "qty": 2,
        "unitPrice": 250.00,
        "lineTotal": 500.00,
    }
    unit.update(overrides)
    return unit


def encode(payload: Any) -> bytes:
    return json.dumps(payload).encode()


@pytest.fixture
def settings() -> Settings:
    return make_settings()


@pytest.fixture
def gateway():
    """Stands in for the Shopify client; no network calls."""
    fake = MagicMock()
    fake.create_order = AsyncMock(return_value=ExternalOrderResult(order_id=ORDER_ID, invoice_url=None))
    fake.resolve_invoice_url = AsyncMock(return_value=INVOICE_URL)
    return fake


@pytest.fixture
def client(settings, gateway):
    with TestClient(create_app(settings, gateway)) as c:
        yield c


@pytest.fixture
def post_checkout(client):
    def _post(payload: Any, headers: Optional[Dict[str, str]] = None, ts: Optional[int] = None):
        body = payload if isinstance(payload, bytes) else encode(payload)
        return client.post("/checkout", content=body, headers=headers or sign(body, ts))
    return _post
