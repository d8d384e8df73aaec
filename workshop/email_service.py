"""
Customer emails for job milestones, rendered from MJML and sent with Resend
"""

import logging
from typing import Optional

import resend
from mjml import mjml_to_html

from .config import EMAIL_FROM_ADDRESS, RESEND_API_KEY
from .email_templates import job_booked_template, job_ready_for_pickup_template, tracker_url_for

logger = logging.getLogger(__name__)

resend.api_key = RESEND_API_KEY


class EmailDeliveryError(Exception):
    """A job email could not be rendered or handed to Resend"""


def render_html(mjml_content: str) -> str:
    result = mjml_to_html(mjml_content)
    errors = getattr(result, "errors", None) or []
    if errors:
        logger.warning(f"⚠️ MJML rendered with {len(errors)} warning(s): {errors}")
    return result.html


async def send_email(to: str, subject: str, mjml_content: str, from_address: Optional[str] = None) -> dict:
    """Render mjml_content and send it to a single customer address"""
    if not RESEND_API_KEY:
        raise EmailDeliveryError("RESEND_API_KEY is not set")

    try:
        html_content = render_html(mjml_content)
        response = resend.Emails.send(
            {
                "from": from_address or EMAIL_FROM_ADDRESS,
                "to": [to],
                "subject": subject,
                "html": html_content,
            }
        )
    except Exception as e:
        raise EmailDeliveryError(f"Could not send '{subject}' to {to}: {e}") from e

    logger.info(f"📧 Sent '{subject}' to {to}")
    return response


async def send_job_booked_email(
    to: str, customer_name: str, business_name: str, business_id: int, job: dict
) -> dict:
    """Send the booking receipt for a newly created job"""
    mjml_content = job_booked_template(
        customer_name=customer_name,
        business_name=business_name,
        job=job,
        tracker_url=tracker_url_for(job, business_id),
    )
    return await send_email(
        to=to,
        subject=f"Job {job.get('jobCode')} booked in - {business_name}",
        mjml_content=mjml_content,
    )


async def send_job_ready_for_pickup_email(
    to: str, customer_name: str, business_name: str, job: dict
) -> dict:
    """Tell the customer their equipment can be collected"""
    mjml_content = job_ready_for_pickup_template(
        customer_name=customer_name,
        business_name=business_name,
        job=job,
    )
    return await send_email(
        to=to,
        subject=f"Job {job.get('jobCode')} is ready for pickup - {business_name}",
        mjml_content=mjml_content,
    )
