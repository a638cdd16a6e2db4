from dataclasses import replace

import httpx
import pytest

from checkout_service.assembler import assemble
from checkout_service.calculators import DguCalculator
from checkout_service.clients import ShopifyClient
from checkout_service.errors import CollaboratorError, InvoiceUnavailableError
from checkout_service.models import ExternalOrderResult
from mock_services.mock_shopify_admin import create_mock_app

from conftest import dgu_unit, make_settings


class RecordingSleep:
    def __init__(self):
        self.delays = []

    async def __call__(self, delay):
        self.delays.append(delay)


def _order(settings, **unit):
    calc = DguCalculator(settings)
    return assemble(calc, [calc.build_unit(1, dgu_unit(**unit))], request_id="req-test")


def _client(settings, mock_app=None, transport=None, sleep=None):
    transport = transport or httpx.ASGITransport(app=mock_app)
    return ShopifyClient(settings, client=httpx.AsyncClient(transport=transport),
                         sleep=sleep or RecordingSleep())


@pytest.mark.asyncio
async def test_create_order_with_immediate_invoice():
    settings = make_settings()
    mock_app = create_mock_app(invoice_ready_after=0)
    client = _client(settings, mock_app)
    try:
        result = await client.create_order(_order(settings))
        assert result.order_id.startswith("gid://shopify/DraftOrder/")
        assert result.invoice_url.startswith("https://mock-shop.myshopify.com/invoices/")
        stored = mock_app.state.draft_orders[result.order_id]
        assert stored["lineItems"][0]["originalUnitPriceWithCurrency"]["amount"] == "145.00"
        assert await client.resolve_invoice_url(result) == result.invoice_url
        assert client.sleep.delays == []
    finally:
        await client.aclose()


@pytest.mark.asyncio
async def test_invoice_url_is_polled_until_available():
    settings = make_settings(invoice_poll_attempts=10, invoice_poll_delay_ms=250)
    mock_app = create_mock_app(invoice_ready_after=3)
    client = _client(settings, mock_app)
    try:
        result = await client.create_order(_order(settings))
        assert result.invoice_url is None
        url = await client.resolve_invoice_url(result)
        assert url.startswith("https://mock-shop.myshopify.com/invoices/")
        assert client.sleep.delays == [0.25, 0.25, 0.25]
        assert mock_app.state.lookups[result.order_id] == 3
    finally:
        await client.aclose()


@pytest.mark.asyncio
async def test_invoice_polling_is_bounded():
    settings = make_settings(invoice_poll_attempts=4)
    mock_app = create_mock_app(invoice_ready_after=100)
    client = _client(settings, mock_app)
    try:
        result = await client.create_order(_order(settings))
        with pytest.raises(InvoiceUnavailableError) as exc:
            await client.resolve_invoice_url(result)
        assert exc.value.order_id == result.order_id
        assert exc.value.status_code == 502
        assert exc.value.to_dict()["orderId"] == result.order_id
        assert len(client.sleep.delays) == 4
    finally:
        await client.aclose()


@pytest.mark.asyncio
async def test_lookup_failures_are_retried():
    settings = make_settings(invoice_poll_attempts=3)
    calls = {"count": 0}

    def handler(request):
        calls["count"] += 1
        if calls["count"] < 3:
            return httpx.Response(503, text="unavailable")
        return httpx.Response(200, json={"data": {"draftOrder": {"id": "d1", "invoiceUrl": "https://i/1"}}})

    client = _client(settings, transport=httpx.MockTransport(handler))
    try:
        assert await client.resolve_invoice_url(ExternalOrderResult("d1")) == "https://i/1"
        assert calls["count"] == 3
    finally:
        await client.aclose()


@pytest.mark.asyncio
async def test_user_errors_are_surfaced_without_retry():
    settings = make_settings(store_name="REJECT")
    mock_app = create_mock_app()
    client = _client(settings, mock_app)
    try:
        with pytest.raises(CollaboratorError) as exc:
            await client.create_order(_order(settings))
        assert exc.value.status_code == 400
        assert exc.value.reason == "order_rejected"
        assert exc.value.user_errors == ["Note contains blocked content"]
        assert mock_app.state.draft_orders == {}
    finally:
        await client.aclose()


@pytest.mark.asyncio
async def test_platform_line_item_validation_is_surfaced():
    settings = make_settings()
    order = _order(settings)
    order = replace(order, line_items=[replace(order.line_items[0], quantity=11)])
    client = _client(settings, create_mock_app())
    try:
        with pytest.raises(CollaboratorError) as exc:
            await client.create_order(order)
        assert exc.value.to_dict()["userErrors"] == ["Quantity must be less than or equal to 10"]
    finally:
        await client.aclose()


@pytest.mark.asyncio
async def test_graphql_errors_are_platform_errors():
    settings = make_settings(store_name="GRAPHQL_ERROR")
    client = _client(settings, create_mock_app())
    try:
        with pytest.raises(CollaboratorError) as exc:
            await client.create_order(_order(settings))
        assert exc.value.status_code == 502
        assert exc.value.reason == "platform_error"
    finally:
        await client.aclose()


@pytest.mark.asyncio
async def test_http_error_status_is_a_platform_error():
    settings = make_settings(admin_token="")
    client = _client(settings, create_mock_app())
    try:
        with pytest.raises(CollaboratorError) as exc:
            await client.create_order(_order(settings))
        assert exc.value.status_code == 502
        assert "401" in exc.value.message
    finally:
        await client.aclose()


@pytest.mark.asyncio
@pytest.mark.parametrize("response", [
    httpx.Response(200, text="<html>maintenance</html>"),
    httpx.Response(200, json=["unexpected"]),
    httpx.Response(200, json={"data": {"draftOrderCreate": None}}),
    httpx.Response(200, json={"data": {"draftOrderCreate": {"draftOrder": {"invoiceUrl": None}, "userErrors": []}}}),
])
async def test_malformed_responses_are_platform_errors(response):
    settings = make_settings()
    client = _client(settings, transport=httpx.MockTransport(lambda request: response))
    try:
        with pytest.raises(CollaboratorError) as exc:
            await client.create_order(_order(settings))
        assert exc.value.status_code == 502
    finally:
        await client.aclose()


@pytest.mark.asyncio
async def test_network_errors_are_not_retried():
    settings = make_settings()
    calls = {"count": 0}

    def handler(request):
        calls["count"] += 1
        raise httpx.ConnectError("connection refused", request=request)

    client = _client(settings, transport=httpx.MockTransport(handler))
    try:
        with pytest.raises(CollaboratorError) as exc:
            await client.create_order(_order(settings))
        assert exc.value.reason == "platform_error"
        assert calls["count"] == 1
    finally:
        await client.aclose()


@pytest.mark.asyncio
async def test_request_targets_admin_graphql_endpoint():
    settings = make_settings(api_version="2025-10")
    seen = {}

    def handler(request):
        seen["url"] = str(request.url)
        seen["token"] = request.headers.get("X-Shopify-Access-Token")
        return httpx.Response(200, json={"data": {"draftOrderCreate": {
            "draftOrder": {"id": "gid://shopify/DraftOrder/9", "invoiceUrl": "https://i/9"},
            "userErrors": [],
        }}})

    client = _client(settings, transport=httpx.MockTransport(handler))
    try:
        result = await client.create_order(_order(settings))
        assert result == ExternalOrderResult("gid://shopify/DraftOrder/9", "https://i/9")
        assert seen["url"] == "https://test-shop.myshopify.com/admin/api/2025-10/graphql.json"
        assert seen["token"] == "shpat_test"
    finally:
        await client.aclose()
