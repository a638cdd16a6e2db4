"""
workflow.py — Core Orchestration Logic for Checkout Processing

This module contains the main workflow for one storefront checkout submission.
It runs every step in a fixed order and stops at the first failure, so no
order is ever created for a partially priced submission.

Workflow Overview:
1. Verify the frontend signature over the raw body
2. Parse the payload and select the calculator variant
3. Normalize and price every unit (fail the whole order on any unpriced unit)
4. Assemble the draft order and cross-check declared totals
5. Create the draft order on the platform and resolve its invoice URL
"""

import json
from typing import Any, Callable, Dict, Mapping, Optional

from pydantic import ValidationError as PydanticValidationError

from . import signature
from .assembler import assemble
from .calculators import Calculator, CalculatorType, build_calculators
from .clients import ShopifyClient
from .config import Settings
from .errors import AuthenticationError, ValidationError
from .logging_config import get_logger
from .models import CheckoutRequest
from .pricing import money

log = get_logger(__name__)

AUTH_MESSAGES = {
    signature.MISSING_HEADERS: "Signature headers missing",
    signature.BAD_TIMESTAMP: "Signature timestamp is not valid",
    signature.TIMESTAMP_SKEW: "Signature expired",
    signature.BAD_SIGNATURE: "Signature invalid",
}


class CheckoutHandler:
    """
    Runs the checkout pipeline for single requests.

    Holds only read-only collaborators (settings, calculators, gateway); every
    call to `handle` works on its own request-scoped values.
    """
    def __init__(self, settings: Settings, gateway: ShopifyClient,
                 clock: Callable[[], int] = signature.now_ms):
        self.settings = settings
        self.gateway = gateway
        self.clock = clock
        self.calculators = build_calculators(settings)

    def verify(self, headers: Mapping[str, str], raw_body: bytes):
        result = signature.verify(
            self.settings.shared_secret,
            headers.get(signature.TIMESTAMP_HEADER),
            raw_body,
            headers.get(signature.SIGNATURE_HEADER),
            self.settings.max_skew_ms,
            current_ms=self.clock(),
        )
        if not result.ok:
            raise AuthenticationError(AUTH_MESSAGES[result.reason], reason=result.reason)

    def parse(self, raw_body: bytes) -> CheckoutRequest:
        try:
            payload = json.loads(raw_body)
        except (ValueError, UnicodeDecodeError):
            raise ValidationError("Body is not valid JSON", reason="invalid_json") from None
        if not isinstance(payload, dict):
            raise ValidationError("Body must be a JSON object")

        try:
            request = CheckoutRequest.model_validate(payload)
        except PydanticValidationError:
            raise ValidationError("Invalid request payload") from None

        if not request.units:
            raise ValidationError("No units provided", reason="no_units")
        return request

    def select(self, calculator_type: Any) -> Calculator:
        return self.calculators[CalculatorType.parse(calculator_type)]

    async def handle(self, headers: Mapping[str, str], raw_body: bytes,
                     request_id: str) -> Dict[str, Any]:
        """
        Executes the complete checkout workflow for a single request.

        Args:
            headers (Mapping[str, str]): Request headers (case-insensitive mapping).
            raw_body (bytes): Body exactly as received, used for the signature.
            request_id (str): Correlation id used in logs, the order and the response.

        Returns:
            dict: Response body with the invoice URL and the computed totals.

        Raises:
            AuthenticationError: Signature missing, expired or invalid. Nothing else runs.
            ValidationError: Malformed JSON, unknown calculator type or no units.
            PricingError: A unit is invalid or unpriced, or declared totals disagree.
                Raised before any network call.
            CollaboratorError: The platform failed or rejected the order.
            InvoiceUnavailableError: The order exists but has no invoice URL.
        """
        log_prefix = f"[Request: {request_id}]"

        # --- 1. Signatur ---
        self.verify(headers, raw_body)

        # --- 2. Payload ---
        request = self.parse(raw_body)
        calculator = self.select(request.calculatorType)
        log.info(f"{log_prefix} {calculator.label}-Anfrage mit {len(request.units)} Einheit(en) erhalten.")

        # --- 3. Normalisierung & Preise ---
        priced = [calculator.build_unit(i, raw) for i, raw in enumerate(request.units, start=1)]

        # --- 4. Auftrag zusammenstellen ---
        order = assemble(calculator, priced,
                         declared_total_quantity=request.totalUnitsQty,
                         declared_grand_total=request.grandTotal,
                         request_id=request_id)
        calculator.check_declared_totals(order, log_prefix)
        grand_total = money(order.computed_grand_total)
        log.info(f"{log_prefix} Summe {grand_total} {order.currency} für {order.total_quantity} Einheit(en), "
                 f"{order.upgrades_applied} Upgrade(s).")

        # --- 5. Shopify ---
        result = await self.gateway.create_order(order, log_prefix)
        log.info(f"{log_prefix} Draft Order erstellt (ID: {result.order_id}).")
        invoice_url = await self.gateway.resolve_invoice_url(result, log_prefix)

        return {
            "invoiceUrl": invoice_url,
            "orderId": result.order_id,
            "calculatorType": order.calculator_type,
            "grandTotal": float(grand_total),
            "totalUnitsQty": order.total_quantity,
            "upgradesApplied": order.upgrades_applied,
            "requestId": request_id,
        }
