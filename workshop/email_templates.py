"""
MJML Email Templates
Customer-facing job emails, compiled to HTML by email_service
"""

from html import escape
from typing import Optional

from .config import FRONTEND_URL

THEME = {
    "primary": "#2563eb",
    "primary_dark": "#1d4ed8",
    "background": "#f8fafc",
    "text_primary": "#0f172a",
    "text_secondary": "#334155",
    "text_muted": "#64748b",
    "border": "#e2e8f0",
    "success": "#16a34a",
}


def get_base_template(
    title: str,
    preview_text: str,
    content_sections: str,
    business_name: str,
    cta_url: Optional[str] = None,
    cta_label: Optional[str] = None,
) -> str:
    """Base MJML template wrapper for all emails"""

    cta_section = ""
    if cta_url and cta_label:
        cta_section = f"""
        <mj-section padding="20px 0">
          <mj-column>
            <mj-button
              href="{cta_url}"
              background-color="{THEME['primary']}"
              color="#ffffff"
              font-weight="600"
              border-radius="8px"
              padding="18px 40px"
              font-size="16px">
              {cta_label}
            </mj-button>
          </mj-column>
        </mj-section>
        """

    return f"""
    <mjml>
      <mj-head>
        <mj-title>{title}</mj-title>
        <mj-preview>{preview_text}</mj-preview>
        <mj-attributes>
          <mj-all font-family="-apple-system, BlinkMacSystemFont, 'Segoe UI', 'Helvetica Neue', Arial, sans-serif" />
          <mj-text font-size="16px" line-height="1.6" color="{THEME['text_secondary']}" />
        </mj-attributes>
      </mj-head>
      <mj-body background-color="{THEME['background']}">
        <mj-section background-color="#ffffff" padding="32px 40px 0 40px">
          <mj-column>
            <mj-text font-size="18px" font-weight="700" color="{THEME['text_primary']}" padding="0">
              {business_name}
            </mj-text>
            <mj-divider border-color="{THEME['border']}" border-width="1px" padding="24px 0 32px 0" />
          </mj-column>
        </mj-section>

        <mj-section background-color="#ffffff" padding="0 40px 48px 40px">
          <mj-column>
            <mj-text font-size="24px" font-weight="600" color="{THEME['text_primary']}" line-height="1.3" padding="0 0 16px 0">
              {title}
            </mj-text>

            {content_sections}
          </mj-column>
        </mj-section>

        {cta_section}

        <mj-section padding="32px 20px">
          <mj-column>
            <mj-text align="center" font-size="13px" color="#94a3b8" padding="0">
              You're receiving this because {business_name} is working on your equipment.
            </mj-text>
          </mj-column>
        </mj-section>
      </mj-body>
    </mjml>
    """


def _job_details_section(job: dict) -> str:
    rows = [("Job number", job.get("jobCode"))]
    if job.get("equipmentDescription"):
        rows.append(("Equipment", job["equipmentDescription"]))
    if job.get("description"):
        rows.append(("Work requested", job["description"]))

    lines = "".join(
        f"<tr><td style=\"padding:4px 16px 4px 0;color:{THEME['text_muted']}\">{label}</td>"
        f"<td style=\"padding:4px 0;font-weight:600\">{escape(str(value))}</td></tr>"
        for label, value in rows
    )
    return f"""
    <mj-table padding="16px 0">
      {lines}
    </mj-table>
    """


def job_booked_template(customer_name: str, business_name: str, job: dict, tracker_url: str) -> str:
    """Receipt sent when a job is booked in"""
    content = f"""
    <mj-text>
      Hi {escape(customer_name)},
    </mj-text>

    <mj-text>
      Thanks for choosing {escape(business_name)}. We've booked your equipment in and will keep you
      posted as the work progresses.
    </mj-text>

    {_job_details_section(job)}

    <mj-text color="{THEME['text_muted']}" font-size="14px">
      Keep your job number handy; you can use it with your email address to track progress online.
    </mj-text>
    """

    return get_base_template(
        title="Your job has been booked in",
        preview_text=f"Job {job.get('jobCode')} booked in with {business_name}",
        content_sections=content,
        business_name=escape(business_name),
        cta_url=tracker_url,
        cta_label="Track Your Job",
    )


def job_ready_for_pickup_template(customer_name: str, business_name: str, job: dict) -> str:
    """Notice sent when a job moves into Ready for Pickup"""
    content = f"""
    <mj-text>
      Hi {escape(customer_name)},
    </mj-text>

    <mj-text>
      Good news! The work on your equipment is finished and it is ready to be collected.
    </mj-text>

    {_job_details_section(job)}

    <mj-text color="{THEME['success']}" font-weight="600">
      Please bring your job number when you come to collect.
    </mj-text>
    """

    return get_base_template(
        title="Your equipment is ready for pickup",
        preview_text=f"Job {job.get('jobCode')} is ready for pickup",
        content_sections=content,
        business_name=escape(business_name),
    )


def tracker_url_for(job: dict, business_id: int) -> str:
    return f"{FRONTEND_URL}/job-tracker?jobId={job.get('jobCode')}&businessId={business_id}"
