"""Review-completed e-mail to the reporter.

Delivery goes through the Resend HTTP API. Without an API key the
notifier only logs what it would have sent.
"""

from html import escape
from string import Template
from typing import Protocol

import httpx

from ..config import get_settings
from ..errors import NotificationError
from ..logging import get_context_logger
from ..reports.models import ReportRecord

logger = get_context_logger(__name__)

SUBJECT = "Your report has been reviewed"
DEFAULT_NOTES = "The moderator has completed the review of your report."

REVIEW_EMAIL_TEMPLATE = Template("""\
<!DOCTYPE html>
<html lang="en">
<head>
  <meta charset="UTF-8">
  <title>Report Review Completed</title>
</head>
<body style="margin: 0; padding: 0; background-color: #f5f5f5; font-family: 'Segoe UI', Tahoma, sans-serif;">
  <table role="presentation" style="max-width: 600px; margin: 0 auto; background-color: #ffffff; border: 1px solid #e0e0e0;">
    <tr>
      <td style="padding: 32px 40px; background-color: #1a1a1a; border-bottom: 3px solid #2563eb;">
        <h1 style="margin: 0; font-size: 22px; color: #ffffff;">Report Review Notification</h1>
      </td>
    </tr>
    <tr>
      <td style="padding: 40px;">
        <p>Dear $reporter_name,</p>
        <p>We are writing to inform you that your report concerning
          <strong>$institution_name</strong> has been reviewed by $moderator_name.</p>
        <div style="background-color: #fafafa; border: 1px solid #e0e0e0; padding: 24px;">
          <p style="font-size: 13px; font-weight: 600; text-transform: uppercase;">Review Summary</p>
          <p style="white-space: pre-line;">$review_notes</p>
        </div>
        <p><strong>Report Reference ID:</strong></p>
        <p style="font-family: 'Courier New', monospace;">$report_id</p>
        <p>We appreciate your contribution to maintaining institutional compliance and transparency.</p>
      </td>
    </tr>
    <tr>
      <td style="padding: 24px 40px; background-color: #fafafa; font-size: 12px; color: #888888; text-align: center;">
        This is an automated notification. Please do not reply to this email.
      </td>
    </tr>
  </table>
</body>
</html>
""")


class Notifier(Protocol):
    """Sends the review-completed notification for a report."""

    async def notify(
        self,
        report: ReportRecord,
        review_notes: str | None,
        moderator_name: str | None,
    ) -> None: ...


def render_review_email(
    report: ReportRecord,
    review_notes: str | None,
    moderator_name: str | None,
) -> str:
    """Render the HTML body of the review-completed e-mail.

    All interpolated values are HTML-escaped.
    """
    notes = review_notes.strip() if review_notes and review_notes.strip() else DEFAULT_NOTES
    institution = report.institution_name or report.reported_institution or "your institution"

    return REVIEW_EMAIL_TEMPLATE.substitute(
        reporter_name=escape(report.reporter_name or "Reporter"),
        institution_name=escape(institution),
        moderator_name=escape(moderator_name or "our team"),
        review_notes=escape(notes),
        report_id=escape(report.report_id),
    )


class ResendNotifier:
    """Notifier delivering through the Resend e-mail API."""

    def __init__(
        self,
        api_key: str | None = None,
        from_email: str | None = None,
        base_url: str | None = None,
        http_client: httpx.AsyncClient | None = None,
    ):
        settings = get_settings()
        self._api_key = api_key or settings.resend_api_key
        self._from_email = from_email or settings.resend_from_email
        self._base_url = (base_url or settings.resend_api_url).rstrip("/")
        self._timeout = settings.notification_timeout_seconds
        self._http_client = http_client

    @property
    def http_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(timeout=httpx.Timeout(self._timeout))
        return self._http_client

    async def close(self):
        """Close HTTP client."""
        if self._http_client is not None:
            await self._http_client.aclose()
            self._http_client = None

    async def notify(
        self,
        report: ReportRecord,
        review_notes: str | None,
        moderator_name: str | None,
    ) -> None:
        """Send the review-completed e-mail to the reporter.

        Reports without a reporter e-mail are skipped.

        Raises:
            NotificationError: If the API is unreachable or rejects the message
        """
        if not report.reporter_email:
            logger.warning(
                "Skipping review email because reporter_email is missing",
                extra={"report_id": report.report_id},
            )
            return

        payload = {
            "from": self._from_email,
            "to": [report.reporter_email],
            "subject": SUBJECT,
            "html": render_review_email(report, review_notes, moderator_name),
        }

        try:
            response = await self.http_client.post(
                f"{self._base_url}/emails",
                json=payload,
                headers={"Authorization": f"Bearer {self._api_key}"},
            )
        except httpx.HTTPError as e:
            raise NotificationError(f"Failed to reach e-mail API: {e}") from e

        if not response.is_success:
            raise NotificationError(
                f"E-mail API rejected message with status {response.status_code}"
            )

        logger.info(
            "Review email sent",
            extra={"report_id": report.report_id, "recipient": report.reporter_email},
        )


class LoggingNotifier:
    """Notifier used when e-mail delivery is not configured."""

    async def notify(
        self,
        report: ReportRecord,
        review_notes: str | None,
        moderator_name: str | None,
    ) -> None:
        logger.info(
            "E-mail disabled, review notification not sent",
            extra={
                "report_id": report.report_id,
                "recipient": report.reporter_email or None,
                "moderator_name": moderator_name,
            },
        )


# Singleton instance
_notifier: Notifier | None = None


def get_notifier() -> Notifier:
    """Get the notifier singleton.

    Uses Resend when an API key is configured, logging otherwise.
    """
    global _notifier
    if _notifier is None:
        if get_settings().email_enabled:
            _notifier = ResendNotifier()
        else:
            logger.warning("RESEND_API_KEY is not set; review e-mails are disabled")
            _notifier = LoggingNotifier()
    return _notifier


async def close_notifier() -> None:
    """Release the notifier's HTTP client (for shutdown)."""
    global _notifier
    if isinstance(_notifier, ResendNotifier):
        await _notifier.close()
    _notifier = None
