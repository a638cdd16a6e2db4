"""
mock_shopify_admin.py — Mock Implementation of the Shopify Admin API (GraphQL)

This module provides a simulated order platform for testing the checkout workflow.
It exposes a FastAPI application that mimics the parts of the Admin GraphQL API
the checkout service uses.

Simulation Scenarios:
    • Successful draft order creation
    • Invoice URL populated only after a number of lookups (eventual consistency)
    • Rejected draft order (userErrors): a note containing "REJECT" or a line quantity above 10
    • Top-level GraphQL error: a note containing "GRAPHQL_ERROR"
    • Missing access token (HTTP 401)

Endpoints:
    POST /admin/api/{version}/graphql.json — draftOrderCreate mutation and draftOrder query.

Port:
    Default: 8002 (HTTP)
"""

import logging
import os
import uuid
from typing import Any, Dict, Optional

from fastapi import FastAPI, Header, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

logging.basicConfig(level=logging.INFO)
INVOICE_READY_AFTER = int(os.environ.get("MOCK_INVOICE_READY_AFTER", "1"))


class GraphQLRequest(BaseModel):
    """
    Represents a GraphQL request payload.

    Attributes:
        query (str): The GraphQL document.
        variables (dict): Operation variables.
    """
    query: str
    variables: Dict[str, Any] = Field(default_factory=dict)


def create_mock_app(invoice_ready_after: int = INVOICE_READY_AFTER) -> FastAPI:
    """
    Builds the mock Admin API.

    Args:
        invoice_ready_after (int): Number of `draftOrder` lookups before the invoice
            URL appears. 0 returns it directly from `draftOrderCreate`.
    """
    app = FastAPI(title="Mock Shopify Admin API")
    app.state.draft_orders = {}
    app.state.lookups = {}

    def invoice_url(order_id: str) -> str:
        return f"https://mock-shop.myshopify.com/invoices/{order_id.rsplit('/', 1)[-1]}"

    def draft_order_create(request: Request, variables: Dict[str, Any]) -> Dict[str, Any]:
        draft_input = variables.get("input") or {}
        note = draft_input.get("note") or ""
        line_items = draft_input.get("lineItems") or []

        if "GRAPHQL_ERROR" in note:
            return {"errors": [{"message": "Throttled", "extensions": {"code": "THROTTLED"}}]}

        user_errors = []
        if "REJECT" in note:
            user_errors.append({"field": ["note"], "message": "Note contains blocked content"})
        if not line_items:
            user_errors.append({"field": ["lineItems"], "message": "Add at least 1 product"})
        for i, item in enumerate(line_items):
            if int(item.get("quantity", 0)) > 10:
                user_errors.append({"field": ["lineItems", str(i), "quantity"],
                                    "message": "Quantity must be less than or equal to 10"})
        if user_errors:
            logging.warning(f"[SHOP] Draft Order abgelehnt: {user_errors}")
            return {"data": {"draftOrderCreate": {"draftOrder": None, "userErrors": user_errors}}}

        order_id = f"gid://shopify/DraftOrder/{uuid.uuid4().int % 10**12}"
        request.app.state.draft_orders[order_id] = draft_input
        request.app.state.lookups[order_id] = 0
        logging.info(f"[SHOP] Draft Order {order_id} erstellt ({len(line_items)} Positionen).")

        url = invoice_url(order_id) if invoice_ready_after == 0 else None
        return {"data": {"draftOrderCreate": {
            "draftOrder": {"id": order_id, "invoiceUrl": url},
            "userErrors": [],
        }}}

    def draft_order(request: Request, variables: Dict[str, Any]) -> Dict[str, Any]:
        order_id = variables.get("id")
        if order_id not in request.app.state.draft_orders:
            return {"data": {"draftOrder": None}}
        request.app.state.lookups[order_id] += 1
        ready = request.app.state.lookups[order_id] >= invoice_ready_after
        return {"data": {"draftOrder": {
            "id": order_id,
            "invoiceUrl": invoice_url(order_id) if ready else None,
        }}}

    @app.post("/admin/api/{version}/graphql.json")
    def graphql(
            version: str,
            body: GraphQLRequest,
            request: Request,
            access_token: Optional[str] = Header(None, alias="X-Shopify-Access-Token"),
    ):
        """
        Handles the draftOrderCreate mutation and the draftOrder query.

        Returns:
            dict: A GraphQL response body (`data` and/or `errors`).
        """
        if not access_token:
            return JSONResponse(status_code=401,
                                content={"errors": "[API] Invalid API key or access token"})

        if "draftOrderCreate" in body.query:
            return draft_order_create(request, body.variables)
        if "draftOrder(" in body.query:
            return draft_order(request, body.variables)

        return JSONResponse(status_code=400, content={"errors": [{"message": "Unsupported operation"}]})

    return app


app = create_mock_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8002)
