"""Business record actions.

Supports:
- assign_product: record a purchased product on the client (find-or-create)
- mark_status: set the status of a business record
"""

from typing import Any, Dict

import structlog

from actions.base import ActionResult, BaseAction
from core.constants import PRODUCT_CATALOG
from services.client_service import ClientService

logger = structlog.get_logger(__name__)


def _amount(value: Any):
    if value in (None, ""):
        return None
    return float(value)


class AssignProductAction(BaseAction):
    """Assign a product to the client named in context.company_name.

    Params:
        sku: Product SKU; known SKUs get a display name from the catalog

    Assigning the same SKU twice leaves a single entry.
    """

    action_type = "assign_product"
    display_name = "Assign Product"
    description = "Record a purchased product on the client, creating the client if needed"

    async def execute(self, params: Dict[str, Any], context: Dict[str, Any]) -> ActionResult:
        sku = params.get("sku")
        if not sku:
            return ActionResult.fail("Missing required param: sku", retryable=False)
        company_name = context.get("company_name")
        if not company_name:
            return ActionResult.fail("Missing company_name in context", retryable=False)

        product_name = PRODUCT_CATALOG.get(sku, sku)

        async with self.deps.session_factory() as session:
            async with session.begin():
                client, created = await ClientService(session).assign_product(
                    company_name=company_name,
                    sku=sku,
                    product_name=product_name,
                    amount=_amount(context.get("amount")),
                )

        logger.info("Product assigned", sku=sku, company_name=company_name, created=created)
        return ActionResult.ok(client_id=client.id, sku=sku, created=created)

    @classmethod
    def get_params_schema(cls) -> Dict[str, Any]:
        return {"type": "object", "required": ["sku"], "properties": {"sku": {"type": "string"}}}


class MarkStatusAction(BaseAction):
    """Set a status on a business record.

    Params:
        status: New status value
        target: "client" updates the client named in context.company_name;
            other targets have no backing record and succeed as no-ops
    """

    action_type = "mark_status"
    display_name = "Mark Status"
    description = "Update the status of a business record"

    async def execute(self, params: Dict[str, Any], context: Dict[str, Any]) -> ActionResult:
        status = params.get("status")
        target = params.get("target")
        if target != "client":
            return ActionResult.ok(target=target, status=status, updated=False)
        if not status:
            return ActionResult.fail("Missing required param: status", retryable=False)

        async with self.deps.session_factory() as session:
            async with session.begin():
                updated = await ClientService(session).set_status(context.get("company_name") or "", status)

        if not updated:
            logger.warning("No client to mark", company_name=context.get("company_name"), status=status)
        return ActionResult.ok(target=target, status=status, updated=updated)


RECORD_ACTION_TYPES = {
    "assign_product": AssignProductAction,
    "mark_status": MarkStatusAction,
}
