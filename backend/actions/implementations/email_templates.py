"""Email content for the outbound message actions.

Each builder returns an EmailContent with a subject, a plain-text body
and an HTML body. Values come from the execution context and may be
missing; builders fall back to the company name or leave a line out.
"""

from dataclasses import dataclass
from datetime import date
from html import escape
from typing import Any, Callable, Dict

PRODUCT_TITLE = "SB 553 Workplace Violence Prevention Plan"


@dataclass
class EmailContent:
    subject: str
    text: str
    html: str


def _wrap(brand: str, body: str) -> str:
    return (
        '<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto; padding: 20px;">'
        f'<h1 style="color: #655DC6; margin: 0 0 24px 0; text-align: center;">{escape(brand)}</h1>'
        f"{body}"
        '<div style="margin-top: 40px; padding-top: 20px; border-top: 1px solid #eee; text-align: center; color: #666;">'
        f"<p>Best regards,<br><strong>The {escape(brand)} Team</strong></p>"
        "</div></div>"
    )


def _greeting_name(context: Dict[str, Any]) -> str:
    return str(context.get("customer_name") or context.get("company_name") or "there")


def purchase_confirmation(context: Dict[str, Any], settings) -> EmailContent:
    name = _greeting_name(context)
    company = str(context.get("company_name") or "")
    amount = context.get("amount")
    today = date.today().isoformat()

    lines = [
        f"Hi {name},",
        f"We've processed your payment for the {PRODUCT_TITLE}.",
        f"Company: {company}",
    ]
    if amount:
        lines.append(f"Amount: ${amount}")
    lines.append(f"Date: {today}")
    lines.append("Your customized plan will be generated and sent to you within the next hour.")

    amount_row = f"<p><strong>Amount:</strong> ${escape(str(amount))}</p>" if amount else ""
    body = (
        '<h2 style="color: #333;">Thank you for your purchase!</h2>'
        f"<p>Hi {escape(name)},</p>"
        f"<p>We've successfully processed your payment for the {PRODUCT_TITLE}.</p>"
        '<div style="background: #f8f9ff; padding: 20px; border-radius: 8px; border-left: 4px solid #655DC6;">'
        f"<p><strong>Product:</strong> {PRODUCT_TITLE}</p>"
        f"<p><strong>Company:</strong> {escape(company)}</p>"
        f"{amount_row}"
        f"<p><strong>Date:</strong> {today}</p>"
        "</div>"
        "<p>Your customized workplace violence prevention plan will be generated and sent "
        "to you within the next hour.</p>"
    )
    return EmailContent(
        subject=f"Purchase Confirmation - Thank you {name}!",
        text="\n".join(lines),
        html=_wrap(settings.EMAIL_FROM_NAME, body),
    )


def admin_setup_guide(context: Dict[str, Any], settings) -> EmailContent:
    name = _greeting_name(context)
    company = str(context.get("company_name") or "")
    link = settings.PLAN_BUILDER_URL
    steps = [
        ("Review Your Plan", "Access your customized plan using the link above"),
        ("Customize Details", "Tailor the plan to your specific workplace"),
        ("Train Your Team", "Share the plan with managers and employees"),
        ("Implement Procedures", "Put the safety measures into practice"),
        ("Regular Updates", "Review and update your plan periodically"),
    ]
    items = "".join(f"<li><strong>{title}:</strong> {detail}</li>" for title, detail in steps)
    body = (
        '<h2 style="color: #333;">Your SB 553 Plan is Ready!</h2>'
        f"<p>Hi {escape(name)},</p>"
        "<p>Your customized plan has been generated and is ready for implementation.</p>"
        f'<p style="text-align: center;"><a href="{escape(link)}">Open Plan Builder</a></p>'
        f'<h3 style="color: #655DC6;">Implementation Steps</h3><ol>{items}</ol>'
    )
    text = "\n".join(
        [f"Hi {name},", "Your SB 553 plan is ready.", f"Plan builder: {link}", ""]
        + [f"{i}. {title}: {detail}" for i, (title, detail) in enumerate(steps, 1)]
    )
    return EmailContent(
        subject=f"Your SB 553 Plan is Ready - Implementation Guide for {company}",
        text=text,
        html=_wrap(settings.EMAIL_FROM_NAME, body),
    )


def plan_generated(context: Dict[str, Any], settings) -> EmailContent:
    company = str(context.get("company_name") or "")
    link = settings.PLAN_BUILDER_URL
    body = (
        '<h2 style="color: #333;">Your SB 553 Plan Generation is Complete!</h2>'
        f"<p>Hi {escape(company)},</p>"
        "<p>Your customized SB 553 Workplace Violence Prevention Plan has been generated successfully.</p>"
        f'<p style="text-align: center;"><a href="{escape(link)}">Open Your Plan</a></p>'
    )
    return EmailContent(
        subject=f"Your {PRODUCT_TITLE} - {company}",
        text=f"Hi {company},\nYour plan has been generated: {link}",
        html=_wrap(settings.EMAIL_FROM_NAME, body),
    )


def default_notice(template: str, settings) -> EmailContent:
    body = (
        '<h2 style="color: #655DC6;">Notification</h2>'
        "<p>This is an automated message from the workflow system.</p>"
        f"<p>Template: {escape(str(template))}</p>"
    )
    return EmailContent(
        subject=f"Notification from {settings.EMAIL_FROM_NAME}",
        text=f"This is an automated message from the workflow system.\nTemplate: {template}",
        html=_wrap(settings.EMAIL_FROM_NAME, body),
    )


def internal_alert(message: str, context: Dict[str, Any], sent_at: str, settings) -> EmailContent:
    company = str(context.get("company_name") or "Unknown")
    email = str(context.get("customer_email") or "Unknown")
    body = (
        '<h2 style="color: #655DC6;">Workflow Notification</h2>'
        f"<p>{escape(message)}</p>"
        '<div style="background: #f9f9f9; padding: 20px; border-radius: 8px;">'
        f"<p><strong>Company:</strong> {escape(company)}</p>"
        f"<p><strong>Email:</strong> {escape(email)}</p>"
        f"<p><strong>Timestamp:</strong> {sent_at}</p>"
        "</div>"
    )
    return EmailContent(
        subject="Workflow Notification",
        text=f"{message}\n\nCompany: {company}\nEmail: {email}\nTimestamp: {sent_at}",
        html=_wrap(settings.EMAIL_FROM_NAME, body),
    )


CUSTOMER_TEMPLATES: Dict[str, Callable[[Dict[str, Any], Any], EmailContent]] = {
    "purchase_confirmation": purchase_confirmation,
    "admin_setup_guide": admin_setup_guide,
}


def render_template(template: str, context: Dict[str, Any], settings) -> EmailContent:
    builder = CUSTOMER_TEMPLATES.get(template)
    if builder is None:
        return default_notice(template, settings)
    return builder(context, settings)
