import logging
import smtplib
from datetime import date
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText

from vetbook.core.config import settings

logger = logging.getLogger(__name__)


def _send_email_sync(to_email: str, subject: str, html_body: str) -> None:
    """Send email via SMTP (blocking). Use from background task."""
    if not settings.email_enabled:
        logger.debug("Email disabled (SMTP not configured), skipping send")
        return
    msg = MIMEMultipart("alternative")
    msg["Subject"] = subject
    msg["From"] = f"{settings.from_name} <{settings.from_email}>"
    msg["To"] = to_email
    msg.attach(MIMEText(html_body, "html", "utf-8"))
    try:
        with smtplib.SMTP(settings.smtp_host, settings.smtp_port) as server:
            server.starttls()
            server.login(settings.smtp_user, settings.smtp_password)
            server.sendmail(settings.from_email, [to_email], msg.as_string())
        logger.info("Email sent to %s", to_email)
    except Exception as e:
        logger.exception("Failed to send email to %s: %s", to_email, e)


def _html_escape(s: str) -> str:
    return (
        s.replace("&", "&amp;")
        .replace("<", "&lt;")
        .replace(">", "&gt;")
        .replace('"', "&quot;")
    )


def build_appointment_email_html(
    recipient_name: str,
    headline: str,
    intro: str,
    pet_name: str,
    appointment_day: date,
    start_time: str,
    end_time: str,
    timezone: str,
    meeting_link: str | None,
) -> str:
    """Build HTML body for a booking or reschedule confirmation."""
    date_str = appointment_day.strftime("%A, %B %d, %Y")
    slot_display = f"{start_time} – {end_time} ({_html_escape(timezone)})"
    logo_html = ""
    if settings.email_logo_url:
        logo_html = f'<img src="{settings.email_logo_url}" alt="{settings.site_name}" width="120" style="display:block;margin-bottom:24px;" />'
    link_section = ""
    if meeting_link:
        link_section = f"""
        <p style="margin:0 0 24px 0;"><a href="{_html_escape(meeting_link)}" style="color:#2563eb;font-weight:600;">Join the video consultation</a></p>
        """
    return f"""
<!DOCTYPE html>
<html>
<head>
  <meta charset="utf-8">
  <meta name="viewport" content="width=device-width, initial-scale=1.0">
  <title>{headline}</title>
</head>
<body style="margin:0;padding:0;font-family:-apple-system,BlinkMacSystemFont,'Segoe UI',Roboto,Oxygen,Ubuntu,sans-serif;background-color:#f3f4f6;">
  <table role="presentation" width="100%" cellspacing="0" cellpadding="0" style="background-color:#f3f4f6;">
    <tr>
      <td align="center" style="padding:40px 16px;">
        <table role="presentation" width="100%" cellspacing="0" cellpadding="0" style="max-width:560px;background:#ffffff;border-radius:12px;overflow:hidden;">
          <tr>
            <td style="padding:32px 32px 24px 32px;">
              {logo_html}
              <h1 style="margin:0 0 8px 0;font-size:22px;font-weight:600;color:#111827;">{headline}</h1>
              <p style="margin:0 0 24px 0;font-size:15px;color:#6b7280;">Hi {recipient_name or 'there'}, {intro}</p>
              <table role="presentation" width="100%" cellspacing="0" cellpadding="0" style="background:#f9fafb;border-radius:8px;margin-bottom:24px;">
                <tr>
                  <td style="padding:20px 24px;">
                    <p style="margin:0 0 8px 0;font-size:12px;text-transform:uppercase;color:#6b7280;">Patient</p>
                    <p style="margin:0;font-size:16px;font-weight:600;color:#111827;">{pet_name}</p>
                    <p style="margin:12px 0 0 0;font-size:12px;text-transform:uppercase;color:#6b7280;">Date</p>
                    <p style="margin:0;font-size:16px;font-weight:600;color:#111827;">{date_str}</p>
                    <p style="margin:12px 0 0 0;font-size:12px;text-transform:uppercase;color:#6b7280;">Time</p>
                    <p style="margin:0;font-size:16px;font-weight:600;color:#111827;">{slot_display}</p>
                  </td>
                </tr>
              </table>
              {link_section}
            </td>
          </tr>
          <tr>
            <td style="padding:24px 32px 32px 32px;background:#f9fafb;border-top:1px solid #e5e7eb;">
              <p style="margin:0 0 4px 0;font-size:13px;font-weight:600;color:#111827;">{settings.site_name}</p>
              <p style="margin:0;font-size:13px;color:#6b7280;">{settings.contact_email}</p>
            </td>
          </tr>
        </table>
      </td>
    </tr>
  </table>
</body>
</html>
"""


def send_appointment_confirmation_emails(
    provider_email: str | None,
    provider_name: str | None,
    owner_email: str | None,
    owner_name: str | None,
    pet_name: str | None,
    appointment_day: date,
    start_time: str,
    end_time: str,
    timezone: str,
    meeting_link: str | None,
    rescheduled: bool = False,
) -> None:
    """Compose and send the pet owner and provider confirmations (call from background task)."""
    headline = "Appointment Rescheduled" if rescheduled else "Appointment Confirmed"
    subject = f"{settings.site_name} – {headline}"
    pet = _html_escape(pet_name or "your pet")
    common = dict(
        headline=headline,
        pet_name=pet,
        appointment_day=appointment_day,
        start_time=start_time,
        end_time=end_time,
        timezone=timezone,
        meeting_link=meeting_link,
    )
    vet = _html_escape(provider_name or "your veterinarian")
    owner = _html_escape(owner_name or "a pet parent")
    if rescheduled:
        owner_intro = f"your consultation with {vet} has been rescheduled."
        provider_intro = f"your consultation with {owner} has been rescheduled."
    else:
        owner_intro = f"your consultation with {vet} is booked."
        provider_intro = f"you have a consultation with {owner}."
    if owner_email:
        html = build_appointment_email_html(
            recipient_name=_html_escape(owner_name or ""),
            intro=owner_intro,
            **common,
        )
        _send_email_sync(owner_email, subject, html)
    if provider_email:
        html = build_appointment_email_html(
            recipient_name=_html_escape(provider_name or ""),
            intro=provider_intro,
            **common,
        )
        _send_email_sync(provider_email, subject, html)
