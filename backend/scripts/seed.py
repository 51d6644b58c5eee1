"""Database seed script — creates the example purchase workflow.

Run: python -m scripts.seed
"""

import asyncio
import sys
import os

# Ensure project root is in path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))


PURCHASE_WORKFLOW = {
    "workflow_key": "sb553-purchase-onboarding",
    "name": "SB 553 plan purchase onboarding",
    "description": "Confirm the purchase, assign the plan, notify the team, and send the setup guide after an hour.",
    "trigger_type": "purchase",
    "trigger_value": "SB553-PLAN",
    "is_active": True,
    "steps": [
        {"action": "send_email", "params": {"template": "purchase_confirmation", "to": "buyer"}},
        {"action": "assign_product", "params": {"sku": "SB553-PLAN"}},
        {"action": "generate_plan", "params": {"plan_type": "WVPP"}},
        {
            "action": "internal_notify",
            "params": {
                "type": "email",
                "message": "New SB 553 purchase from {{company_name}} ({{customer_email}}) for ${{amount}}",
            },
        },
        {"action": "mark_status", "params": {"status": "active", "target": "client"}},
        {"action": "delay", "params": {"minutes": 60}},
        {"action": "send_email", "params": {"template": "admin_setup_guide", "to": "buyer"}},
    ],
}


async def seed():
    """Create or refresh the seeded workflow definitions."""
    from db.database import AsyncSessionLocal, init_db
    from services.definition_service import WorkflowDefinitionService

    await init_db()

    async with AsyncSessionLocal() as db:
        data = dict(PURCHASE_WORKFLOW)
        key = data.pop("workflow_key")
        definition = await WorkflowDefinitionService(db).upsert(key, data)
        await db.commit()
        print(f"[seed] Workflow '{definition.workflow_key}' ready ({len(definition.steps)} steps)")

    print("[seed] Database seeded successfully!")


if __name__ == "__main__":
    asyncio.run(seed())
