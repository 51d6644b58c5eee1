"""Outbound message actions.

Supports:
- send_email: templated email to the buyer, the admin or a literal address
- generate_plan: deliver the plan-builder link for a purchased plan
- internal_notify: alert the operations team about a workflow event
"""

from typing import Any, Dict

import structlog

from actions.base import ActionResult, BaseAction
from actions.implementations.email_templates import internal_alert, plan_generated, render_template
from core.utils import render_placeholders, utcnow
from notifications.channels import Notification, NotificationChannel

logger = structlog.get_logger(__name__)

BUYER_ALIASES = ("buyer", "customer")

INTERNAL_ALERT_DEFAULTS = {
    "company_name": "Unknown Company",
    "customer_email": "Unknown Email",
    "amount": "Unknown Amount",
}


def resolve_recipient(to: Any, context: Dict[str, Any], settings) -> str:
    """Turn a recipient alias into an address; empty string if none is known."""
    if to in BUYER_ALIASES:
        return str(context.get("customer_email") or "")
    if to == "admin":
        return settings.ADMIN_EMAIL or ""
    return str(to or "")


class SendEmailAction(BaseAction):
    """Send a templated email.

    Params:
        template: purchase_confirmation, admin_setup_guide, or anything else for a generic notice
        to: "buyer" / "customer" (context.customer_email), "admin", or an address
    """

    action_type = "send_email"
    display_name = "Send Email"
    description = "Send a templated email to the buyer, the admin or a literal address"

    async def execute(self, params: Dict[str, Any], context: Dict[str, Any]) -> ActionResult:
        to = params.get("to")
        template = params.get("template", "")
        recipient = resolve_recipient(to, context, self.deps.settings)
        if not recipient:
            return ActionResult.fail(f"No email address found for recipient: {to}", retryable=False)

        content = render_template(template, context, self.deps.settings)
        delivery = await self.deps.notifications.send_email(
            to=recipient,
            subject=content.subject,
            text=content.text,
            html=content.html,
            template=template,
        )
        if not delivery.success:
            return ActionResult.fail(delivery.error or "Email delivery failed")

        logger.info("Email sent", template=template, recipient=recipient)
        return ActionResult.ok(recipient=recipient, template=template, subject=content.subject)

    @classmethod
    def get_params_schema(cls) -> Dict[str, Any]:
        return {
            "type": "object",
            "required": ["to"],
            "properties": {
                "template": {"type": "string"},
                "to": {"type": "string", "description": "buyer, customer, admin or an email address"},
            },
        }


class GeneratePlanAction(BaseAction):
    """Deliver a generated compliance plan.

    Params:
        plan_type: "WVPP" sends the plan-builder link to context.customer_email;
            other plan types have no generator and succeed without side effects
    """

    action_type = "generate_plan"
    display_name = "Generate Plan"
    description = "Generate a plan document and deliver its link to the buyer"

    async def execute(self, params: Dict[str, Any], context: Dict[str, Any]) -> ActionResult:
        plan_type = params.get("plan_type")
        if plan_type != "WVPP":
            logger.info("No generator for plan type", plan_type=plan_type)
            return ActionResult.ok(plan_type=plan_type, generated=False)

        recipient = str(context.get("customer_email") or "")
        if not recipient:
            return ActionResult.fail("No email address found for recipient: customer", retryable=False)

        content = plan_generated(context, self.deps.settings)
        delivery = await self.deps.notifications.send_email(
            to=recipient,
            subject=content.subject,
            text=content.text,
            html=content.html,
            plan_type=plan_type,
        )
        if not delivery.success:
            return ActionResult.fail(delivery.error or "Email delivery failed")

        return ActionResult.ok(plan_type=plan_type, generated=True, link=self.deps.settings.PLAN_BUILDER_URL)


class InternalNotifyAction(BaseAction):
    """Alert the operations team.

    Params:
        type: "email" mails ADMIN_EMAIL, "webhook" posts to the internal alert
            webhook; other types are only logged
        message: Text with optional {{company_name}}, {{customer_email}}, {{amount}}
    """

    action_type = "internal_notify"
    display_name = "Internal Notification"
    description = "Notify the internal team about a workflow event"

    async def execute(self, params: Dict[str, Any], context: Dict[str, Any]) -> ActionResult:
        notify_type = params.get("type")
        message = render_placeholders(str(params.get("message") or ""), context, INTERNAL_ALERT_DEFAULTS)
        settings = self.deps.settings

        if notify_type == "email":
            content = internal_alert(message, context, utcnow().isoformat(timespec="seconds"), settings)
            delivery = await self.deps.notifications.send_email(
                to=settings.ADMIN_EMAIL,
                subject=content.subject,
                text=content.text,
                html=content.html,
            )
        elif notify_type == "webhook":
            delivery = await self.deps.notifications.send(Notification(
                title="Workflow Notification",
                message=message,
                channel=NotificationChannel.WEBHOOK,
                metadata={k: context.get(k) for k in INTERNAL_ALERT_DEFAULTS},
            ))
        else:
            logger.info("Internal notification", type=notify_type, message=message)
            return ActionResult.ok(type=notify_type, message=message, delivered=False)

        if not delivery.success:
            return ActionResult.fail(delivery.error or "Notification delivery failed")
        return ActionResult.ok(type=notify_type, message=message, delivered=True)


NOTIFY_ACTION_TYPES = {
    "send_email": SendEmailAction,
    "generate_plan": GeneratePlanAction,
    "internal_notify": InternalNotifyAction,
}
