from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from html import escape
from typing import Optional
from zoneinfo import ZoneInfo

from pydantic import BaseModel, ConfigDict, Field

from domain.models import ApplicationStatus


class StatusEmailRequest(BaseModel):
    """Payload of the notification function (camelCase on the wire)."""

    model_config = ConfigDict(populate_by_name=True)

    student_email: str = Field(alias="studentEmail", min_length=3)
    student_name: Optional[str] = Field(default=None, alias="studentName")
    application_number: str = Field(alias="applicationNumber")
    course_name: str = Field(alias="courseName")
    status: ApplicationStatus
    admit_card_number: Optional[str] = Field(default=None, alias="admitCardNumber")
    remarks: Optional[str] = None


@dataclass(frozen=True)
class StatusDetails:
    subject: str
    title: str
    message: str
    color: str


STATUS_DETAILS: dict[ApplicationStatus, StatusDetails] = {
    ApplicationStatus.SUBMITTED: StatusDetails(
        "Application Submitted Successfully",
        "Your Application Has Been Submitted",
        "Thank you for submitting your application. Our team will review it shortly.",
        "#3b82f6",
    ),
    ApplicationStatus.UNDER_REVIEW: StatusDetails(
        "Application Under Review",
        "Your Application is Under Review",
        "Your application is currently being reviewed by our admissions team. "
        "We will notify you once a decision has been made.",
        "#f59e0b",
    ),
    ApplicationStatus.APPROVED: StatusDetails(
        "Congratulations! Application Approved",
        "Your Application Has Been Approved!",
        "We are pleased to inform you that your application has been approved. Your admit card "
        "has been generated and is available for download in your dashboard.",
        "#10b981",
    ),
    ApplicationStatus.REJECTED: StatusDetails(
        "Application Status Update",
        "Application Decision",
        "After careful review, we regret to inform you that your application has not been "
        "approved at this time.",
        "#ef4444",
    ),
}
DEFAULT_DETAILS = StatusDetails(
    "Application Status Update",
    "Application Status Update",
    "Your application status has been updated.",
    "#6b7280",
)


def _row(label: str, value: str, color: str = "#1f2937") -> str:
    return (
        f'<tr><td style="padding:8px 0;color:#6b7280;font-size:14px;">{label}:</td>'
        f'<td style="padding:8px 0;color:{color};font-size:14px;font-weight:600;">{value}</td></tr>'
    )


def render_status_email(
    req: StatusEmailRequest, now: datetime, tz: str = "Asia/Kolkata"
) -> tuple[str, str]:
    """(subject, html) for one status-change email. All user values are escaped."""
    details = STATUS_DETAILS.get(req.status, DEFAULT_DETAILS)
    when = now.astimezone(ZoneInfo(tz)).strftime("%A, %d %B %Y at %I:%M %p")
    status_label = req.status.value.replace("_", " ").upper()

    rows = [
        _row("Application Number", escape(req.application_number)),
        _row("Course Applied", escape(req.course_name)),
        _row("Status", status_label, details.color),
        _row("Date &amp; Time", when),
    ]
    if req.admit_card_number:
        rows.append(_row("Admit Card Number", escape(req.admit_card_number), "#10b981"))

    remarks = ""
    if req.remarks:
        remarks = (
            '<div style="background-color:#fef3c7;border-left:4px solid #f59e0b;padding:15px;margin:20px 0;">'
            '<h4 style="color:#92400e;margin:0 0 8px 0;font-size:14px;">Remarks from Admin:</h4>'
            f'<p style="color:#78350f;margin:0;font-size:14px;">{escape(req.remarks)}</p></div>'
        )
    approved = ""
    if req.status == ApplicationStatus.APPROVED:
        approved = (
            '<div style="background-color:#d1fae5;border-radius:8px;padding:20px;margin:20px 0;text-align:center;">'
            '<p style="color:#065f46;font-size:16px;margin:0;">'
            "Please login to your dashboard to download your admit card.</p></div>"
        )

    html = f"""<!DOCTYPE html>
<html><head><meta charset="utf-8"></head>
<body style="margin:0;padding:0;font-family:'Segoe UI',Tahoma,Geneva,Verdana,sans-serif;background-color:#f4f4f5;">
<div style="max-width:600px;margin:0 auto;padding:20px;">
<div style="background-color:white;border-radius:12px;overflow:hidden;">
<div style="background-color:{details.color};padding:30px;text-align:center;">
<h1 style="color:white;margin:0;font-size:24px;">{details.title}</h1></div>
<div style="padding:30px;">
<p style="color:#374151;font-size:16px;">Dear <strong>{escape(req.student_name or "Student")}</strong>,</p>
<p style="color:#374151;font-size:16px;">{details.message}</p>
<div style="background-color:#f9fafb;border-radius:8px;padding:20px;margin:20px 0;">
<h3 style="color:#1f2937;margin-top:0;">Application Details</h3>
<table style="width:100%;border-collapse:collapse;">{''.join(rows)}</table></div>
{remarks}{approved}
<p style="color:#6b7280;font-size:14px;">If you have any questions, please don't hesitate to contact our admissions office.</p>
<p style="color:#374151;font-size:14px;">Best regards,<br><strong>Admissions Office</strong></p>
</div>
<div style="background-color:#f9fafb;padding:20px;text-align:center;border-top:1px solid #e5e7eb;">
<p style="color:#9ca3af;font-size:12px;margin:0;">This is an automated email. Please do not reply directly to this message.</p>
</div></div></div></body></html>"""
    return details.subject, html
