"""
This module provides the communication client for the external order platform
used by the checkout service:
- Shopify Admin API (GraphQL over HTTPS)

The client encapsulates the protocol, error translation and connection
management. It is the only component that makes network calls.

Retry policy:
    • Draft order creation is never retried (a retry could create a duplicate order).
    • Invoice URL lookup is read-only and is polled a bounded number of times,
      because the platform may populate the URL shortly after creation.
"""

import asyncio
from typing import Any, Awaitable, Callable, Dict, List, Optional

import httpx

from .config import Settings
from .errors import CollaboratorError, InvoiceUnavailableError
from .logging_config import get_logger
from .models import ExternalOrderResult, OrderRequest
from .assembler import to_draft_order_input

log = get_logger(__name__)

Sleep = Callable[[float], Awaitable[Any]]

DRAFT_ORDER_CREATE = """
mutation draftOrderCreate($input: DraftOrderInput!) {
  draftOrderCreate(input: $input) {
    draftOrder { id invoiceUrl }
    userErrors { field message }
  }
}
"""

DRAFT_ORDER_QUERY = """
query draftOrder($id: ID!) {
  draftOrder(id: $id) { id invoiceUrl }
}
"""


class ShopifyClient:
    """
    Client for the Shopify Admin GraphQL API.
    Creates draft orders and resolves their invoice URLs.
    """
    def __init__(self, settings: Settings, client: Optional[httpx.AsyncClient] = None,
                 sleep: Sleep = asyncio.sleep):
        """
        Initializes the HTTP client with proper timeout configuration.

        Args:
            settings (Settings): Shop domain, token, API version and polling settings.
            client (httpx.AsyncClient | None): Pre-built client, e.g. bound to a mock transport.
            sleep: Coroutine used between invoice lookups; injectable for tests.
        """
        self.settings = settings
        self.sleep = sleep
        if client is None:
            timeout_config = httpx.Timeout(5.0, read=8.0)
            client = httpx.AsyncClient(timeout=timeout_config)
        self.client = client

    async def aclose(self):
        """Closes the HTTP client session."""
        await self.client.aclose()

    async def _graphql(self, query: str, variables: Dict[str, Any], log_prefix: str = "") -> Dict[str, Any]:
        """
        Posts one GraphQL operation and returns its `data` object.

        Raises:
            CollaboratorError: Network failure, non-2xx status, top-level GraphQL
                errors or a body without `data`.
        """
        headers = {
            "Content-Type": "application/json",
            "X-Shopify-Access-Token": self.settings.admin_token,
        }
        try:
            response = await self.client.post(self.settings.graphql_url,
                                              json={"query": query, "variables": variables},
                                              headers=headers)
        except httpx.HTTPError as e:
            log.error(f"{log_prefix} Shopify nicht erreichbar: {type(e).__name__}")
            raise CollaboratorError("Order platform unreachable") from e

        if not response.is_success:
            log.error(f"{log_prefix} HTTP-Fehler von Shopify: {response.status_code}")
            raise CollaboratorError(f"Order platform returned HTTP {response.status_code}")

        try:
            body = response.json()
        except ValueError:
            log.error(f"{log_prefix} Shopify-Antwort ist kein JSON.")
            raise CollaboratorError("Malformed response from order platform") from None

        if not isinstance(body, dict):
            raise CollaboratorError("Malformed response from order platform")
        if body.get("errors"):
            log.error(f"{log_prefix} GraphQL-Fehler von Shopify: {body['errors']}")
            raise CollaboratorError("Order platform rejected the request")
        data = body.get("data")
        if not isinstance(data, dict):
            raise CollaboratorError("Malformed response from order platform")
        return data

    async def create_order(self, order: OrderRequest, log_prefix: str = "") -> ExternalOrderResult:
        """
        Creates a draft order.

        Args:
            order (OrderRequest): The assembled order.
            log_prefix (str): Request correlation prefix for log lines.

        Returns:
            ExternalOrderResult: The draft order id and, if already available, its invoice URL.

        Raises:
            CollaboratorError: Platform failure (502) or non-empty userErrors (400).
        """
        data = await self._graphql(DRAFT_ORDER_CREATE, {"input": to_draft_order_input(order)}, log_prefix)

        payload = data.get("draftOrderCreate")
        if not isinstance(payload, dict):
            raise CollaboratorError("Malformed response from order platform")

        user_errors: List[str] = [
            str(err.get("message")) for err in payload.get("userErrors") or []
            if isinstance(err, dict) and err.get("message")
        ]
        if user_errors:
            log.warning(f"{log_prefix} Shopify hat den Auftrag abgelehnt: {user_errors}")
            raise CollaboratorError("Order platform rejected the order", user_errors=user_errors)

        draft = payload.get("draftOrder")
        if not isinstance(draft, dict) or not draft.get("id"):
            raise CollaboratorError("Malformed response from order platform")

        return ExternalOrderResult(order_id=str(draft["id"]), invoice_url=draft.get("invoiceUrl") or None)

    async def fetch_invoice_url(self, order_id: str, log_prefix: str = "") -> Optional[str]:
        """Returns the draft order's invoice URL, or None if it is not populated yet."""
        data = await self._graphql(DRAFT_ORDER_QUERY, {"id": order_id}, log_prefix)
        draft = data.get("draftOrder")
        if not isinstance(draft, dict):
            return None
        return draft.get("invoiceUrl") or None

    async def resolve_invoice_url(self, result: ExternalOrderResult, log_prefix: str = "") -> str:
        """
        Returns the invoice URL, polling for it when creation did not include one.

        State machine: CREATED(no url) -> poll up to N times with a fixed delay ->
        RESOLVED(url) or EXHAUSTED. Lookup failures count as an empty attempt.

        Raises:
            InvoiceUnavailableError: All attempts exhausted. The order exists.
        """
        if result.invoice_url:
            return result.invoice_url

        attempts = self.settings.invoice_poll_attempts
        delay = self.settings.invoice_poll_delay_ms / 1000
        for attempt in range(1, attempts + 1):
            await self.sleep(delay)
            try:
                url = await self.fetch_invoice_url(result.order_id, log_prefix)
            except CollaboratorError as e:
                log.warning(f"{log_prefix} Invoice-Abfrage {attempt}/{attempts} fehlgeschlagen: {e.message}")
                continue
            if url:
                log.info(f"{log_prefix} Invoice-URL nach {attempt} Versuch(en) verfügbar.")
                return url

        log.critical(f"{log_prefix} Draft Order {result.order_id} ohne Invoice-URL. BENÖTIGT MANUELLE AKTION!")
        raise InvoiceUnavailableError(result.order_id)
