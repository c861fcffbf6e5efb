"""Notification service for transactional email.

Handles all customer-facing messages of the booking core:
- Welcome email for newly registered customers
- Account upgrade email when a guest sets a password
- Booking confirmation (pay on arrival)
- Payment confirmation (online payment verified)

Messages are queued on the database session and only delivered once that
session has committed, so a rolled-back change never produces an email and
no row lock is held during delivery. Delivery is best-effort: failures are
logged and never raised.
"""

import logging
from datetime import UTC, datetime
from html import escape
from typing import Any

import httpx
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings

logger = logging.getLogger(__name__)


class NotificationService:
    """Service for sending notifications to customers."""

    # Template kinds
    WELCOME = "welcome"
    ACCOUNT_UPGRADED = "account_upgraded"
    BOOKING_CONFIRMATION = "booking_confirmation"
    PAYMENT_CONFIRMATION = "payment_confirmation"

    SENDGRID_URL = "https://api.sendgrid.com/v3/mail/send"

    # Session.info key holding messages waiting for commit
    PENDING_KEY = "pending_notifications"

    def __init__(self) -> None:
        """Initialize notification service."""
        self._http_client: httpx.AsyncClient | None = None

    @property
    def http_client(self) -> httpx.AsyncClient:
        """Lazy-load HTTP client."""
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(timeout=settings.notification_timeout_seconds)
        return self._http_client

    async def close(self) -> None:
        """Close HTTP client."""
        if self._http_client:
            await self._http_client.aclose()
            self._http_client = None

    # ==================== QUEUE ====================

    def queue(self, db: AsyncSession, to_address: str, template_kind: str, data: dict[str, Any]) -> None:
        """Hold a message until ``db`` commits."""
        db.info.setdefault(self.PENDING_KEY, []).append(
            {"to_address": to_address, "template_kind": template_kind, "data": data}
        )

    def discard(self, db: AsyncSession) -> int:
        """Drop the messages of a rolled-back transaction."""
        dropped = db.info.pop(self.PENDING_KEY, [])
        if dropped:
            logger.info(f"Dropped {len(dropped)} notification(s) of a rolled-back transaction")
        return len(dropped)

    async def dispatch_pending(self, db: AsyncSession) -> int:
        """Deliver the messages queued on ``db``. Call only after commit.

        With ``notification_queue_enabled`` the messages go to the Celery
        worker; otherwise they are sent in-process.

        Returns:
            int: Number of messages delivered or handed to the worker
        """
        pending = db.info.pop(self.PENDING_KEY, [])
        delivered = 0
        for message in pending:
            try:
                if settings.notification_queue_enabled:
                    from app.tasks import send_notification_task

                    send_notification_task.delay(**message)
                    sent = True
                else:
                    sent = await self.send(**message)
            except Exception as e:
                logger.error(
                    f"'{message['template_kind']}' notification to {message['to_address']} failed: {e}"
                )
                continue
            if sent:
                delivered += 1
            else:
                logger.warning(
                    f"'{message['template_kind']}' notification to {message['to_address']} was not sent"
                )
        return delivered

    # ==================== DELIVERY ====================

    async def send(self, to_address: str, template_kind: str, data: dict[str, Any]) -> bool:
        """Render ``template_kind`` with ``data`` and email it to ``to_address``.

        Returns:
            bool: True if the provider accepted the message
        """
        try:
            subject, body_lines = self._render(template_kind, data)
        except (KeyError, ValueError) as e:
            logger.error(f"Cannot render '{template_kind}' notification for {to_address}: {e}")
            return False

        return await self.send_email(
            to_email=to_address,
            subject=subject,
            html_content=self._generate_email_html(subject, body_lines, data.get("action_url")),
            text_content="\n".join(body_lines),
        )

    async def send_email(
        self,
        to_email: str,
        subject: str,
        html_content: str,
        text_content: str | None = None,
    ) -> bool:
        """Send an email via SendGrid.

        Args:
            to_email: Recipient email
            subject: Email subject
            html_content: HTML body
            text_content: Plain text body

        Returns:
            bool: True if sent successfully
        """
        if not settings.sendgrid_api_key:
            logger.warning(f"Email to {to_email} skipped: SendGrid is not configured")
            return False

        try:
            headers = {
                "Authorization": f"Bearer {settings.sendgrid_api_key}",
                "Content-Type": "application/json",
            }

            payload: dict[str, Any] = {
                "personalizations": [
                    {
                        "to": [{"email": to_email}],
                    }
                ],
                "from": {
                    "email": settings.email_from_address,
                    "name": settings.email_from_name,
                },
                "subject": subject,
                "content": [{"type": "text/html", "value": html_content}],
            }
            if text_content:
                payload["content"].insert(0, {"type": "text/plain", "value": text_content})

            response = await self.http_client.post(
                self.SENDGRID_URL,
                headers=headers,
                json=payload,
            )
            if response.status_code not in (200, 202):
                logger.warning(f"Email to {to_email} rejected by provider: HTTP {response.status_code}")
                return False
            return True
        except Exception as e:
            logger.error(f"Email to {to_email} failed: {e}")
            return False

    # ==================== TEMPLATES ====================

    def _render(self, template_kind: str, data: dict[str, Any]) -> tuple[str, list[str]]:
        """Build subject and body lines for a template kind."""
        name = data.get("customer_name") or "Customer"

        if template_kind == self.WELCOME:
            return (
                f"Welcome to {settings.email_from_name}, {name}!",
                [
                    f"Hello {name}!",
                    "Your account has been created. You can now book vehicles and manage your reservations online.",
                    f"Email: {data['email']}",
                ],
            )

        if template_kind == self.ACCOUNT_UPGRADED:
            return (
                "Your account has been upgraded",
                [
                    f"Hello {name}!",
                    "Your guest account now has a password. Log in with your email to see your booking history.",
                    f"Email: {data['email']}",
                ],
            )

        if template_kind in (self.BOOKING_CONFIRMATION, self.PAYMENT_CONFIRMATION):
            lines = [
                f"Hello {name}!",
                f"Order number: {data['order_number']}",
            ]
            if data.get("invoice_no"):
                lines.append(f"Invoice number: {data['invoice_no']}")
            lines += [
                f"Vehicle: {data['vehicle_name']}",
                f"Pick-up: {data['start_date']} {data.get('pickup_time') or ''} {data.get('pickup_location') or ''}".rstrip(),
                f"Drop-off: {data['end_date']} {data.get('dropoff_time') or ''} {data.get('dropoff_location') or ''}".rstrip(),
                f"Total: {data['total_price']} {data.get('currency', settings.currency)}",
                f"Payment: {data['payment_status']}",
            ]
            for extra in data.get("extras") or []:
                lines.append(f"Extra: {extra.get('name')} x{extra.get('quantity', 1)}")

            if template_kind == self.PAYMENT_CONFIRMATION:
                subject = f"Payment Confirmed #{data['order_number']}"
            else:
                subject = f"Booking Confirmation #{data['order_number']}"
            return subject, lines

        raise ValueError(f"Unknown template kind: {template_kind}")

    def _generate_email_html(self, title: str, body_lines: list[str], action_url: str | None) -> str:
        """Generate simple HTML email content.

        Args:
            title: Email title
            body_lines: Paragraphs of the body
            action_url: CTA button URL

        Returns:
            str: HTML email content
        """
        button_html = ""
        if action_url:
            button_html = f"""
            <p style="margin-top: 24px;">
                <a href="{escape(action_url)}"
                   style="background-color: #4CAF50; color: white; padding: 12px 24px;
                          text-decoration: none; border-radius: 6px; display: inline-block;">
                    View Booking
                </a>
            </p>
            """
        paragraphs = "".join(
            f'<p style="color: #4b5563; font-size: 16px; line-height: 1.6;">{escape(line)}</p>'
            for line in body_lines
        )

        return f"""
        <!DOCTYPE html>
        <html>
        <head>
            <meta charset="utf-8">
            <meta name="viewport" content="width=device-width, initial-scale=1.0">
        </head>
        <body style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto; padding: 20px; color: #333;">
            <div style="background-color: #f9fafb; border-radius: 8px; padding: 24px;">
                <h1 style="color: #111827; font-size: 24px; margin-bottom: 16px;">{escape(title)}</h1>
                {paragraphs}
                {button_html}
            </div>
            <p style="color: #9ca3af; font-size: 12px; margin-top: 24px; text-align: center;">
                &copy; {datetime.now(UTC).year} {escape(settings.email_from_name)}. All rights reserved.
            </p>
        </body>
        </html>
        """

    # ==================== SPECIFIC NOTIFICATION HELPERS ====================

    def notify_welcome(self, db: AsyncSession, email: str, customer_name: str) -> None:
        """Welcome a newly created customer."""
        self.queue(db, email, self.WELCOME, {"email": email, "customer_name": customer_name})

    def notify_account_upgraded(self, db: AsyncSession, email: str, customer_name: str) -> None:
        """Tell a former guest their account now has a password."""
        self.queue(db, email, self.ACCOUNT_UPGRADED, {"email": email, "customer_name": customer_name})

    def notify_booking_confirmed(self, db: AsyncSession, email: str, booking_data: dict[str, Any]) -> None:
        """Confirm a pay-on-arrival booking."""
        self.queue(db, email, self.BOOKING_CONFIRMATION, booking_data)

    def notify_payment_confirmed(self, db: AsyncSession, email: str, booking_data: dict[str, Any]) -> None:
        """Confirm a verified online payment."""
        self.queue(db, email, self.PAYMENT_CONFIRMATION, booking_data)


# Singleton instance
notification_service = NotificationService()
