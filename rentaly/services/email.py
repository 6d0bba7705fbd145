# Rentaly API - Car Rental Marketplace Backend
# Copyright (C) 2025 Rentaly Authors
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU Affero General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.
#
# This program is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
# GNU Affero General Public License for more details.
#
# You should have received a copy of the GNU Affero General Public License
# along with this program.  If not, see <https://www.gnu.org/licenses/>.

"""Email service using Resend API or SMTP."""

import html as html_lib
import logging
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Any, Dict, Optional

from rentaly.config import get_settings

logger = logging.getLogger(__name__)


class EmailService:
    """Email service for sending notifications via Resend or SMTP."""

    def __init__(self):
        self.settings = get_settings()
        self._resend_client = None

    @property
    def provider(self) -> str:
        return self.settings.email.provider.lower()

    @property
    def enabled(self) -> bool:
        return self.settings.email.enabled

    @property
    def resend_client(self):
        """Lazy-load Resend client."""
        if self._resend_client is None and self.provider == "resend":
            import resend

            resend.api_key = self.settings.email.api_key
            self._resend_client = resend
        return self._resend_client

    async def _send_via_smtp(
        self,
        to: str,
        subject: str,
        html: str,
        text: Optional[str] = None,
    ) -> Dict[str, Any]:
        import aiosmtplib

        email_config = self.settings.email

        msg = MIMEMultipart("alternative")
        msg["From"] = f"{email_config.from_name} <{email_config.from_address}>"
        msg["To"] = to
        msg["Subject"] = subject

        if text:
            msg.attach(MIMEText(text, "plain", "utf-8"))
        msg.attach(MIMEText(html, "html", "utf-8"))

        await aiosmtplib.send(
            msg,
            hostname=email_config.smtp_host,
            port=email_config.smtp_port,
            username=email_config.smtp_username or None,
            password=email_config.smtp_password or None,
            start_tls=email_config.smtp_use_tls,
            use_tls=email_config.smtp_use_ssl,
        )
        return {"success": True, "provider": "smtp"}

    async def _send_via_resend(
        self,
        to: str,
        subject: str,
        html: str,
        text: Optional[str] = None,
    ) -> Dict[str, Any]:
        params = {
            "from": f"{self.settings.email.from_name} <{self.settings.email.from_address}>",
            "to": [to],
            "subject": subject,
            "html": html,
        }
        if text:
            params["text"] = text

        result = self.resend_client.Emails.send(params)
        return {"id": result.get("id"), "success": True, "provider": "resend"}

    async def send_email(
        self,
        to: str,
        subject: str,
        html: str,
        text: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Send an email via the configured provider.

        Returns a skipped marker when email is disabled in config.
        """
        if not self.enabled:
            logger.debug("Email disabled, skipping '%s' to %s", subject, to)
            return {"success": False, "skipped": True}

        if self.provider == "smtp":
            return await self._send_via_smtp(to, subject, html, text)
        return await self._send_via_resend(to, subject, html, text)

    async def send_new_booking_alert(self, email: str, name: str, booking: dict) -> Dict[str, Any]:
        """Tell an admin about a booking request that needs confirmation."""
        driver = booking.get("primaryDriver") or {}
        pricing = booking.get("pricing") or {}
        subject_item = (booking.get("listing") or {}).get("fullName") or (
            (booking.get("transferZone") or {}).get("zoneName") or booking.get("bookingType")
        )
        esc = html_lib.escape

        rows = [
            ("Reference", booking.get("bookingReference")),
            ("Vehicle / zone", subject_item),
            ("Driver", f"{driver.get('name', '')} {driver.get('surname', '')}".strip()),
            ("Phone", driver.get("phoneNumber")),
            ("Pickup", f"{booking.get('pickupTime')} @ {booking.get('pickupLocation')}"),
            ("Dropoff", f"{booking.get('dropoffTime') or '-'} @ {booking.get('dropoffLocation')}"),
            ("Total", f"{pricing.get('totalAmount')} {pricing.get('currency', '')}"),
        ]
        table = "".join(
            f"<tr><td style='padding:4px 12px 4px 0;color:#666'>{esc(label)}</td>"
            f"<td style='padding:4px 0'><strong>{esc(str(value or ''))}</strong></td></tr>"
            for label, value in rows
        )
        admin_url = f"{self.settings.app.frontend_url.rstrip('/')}/admin/bookings/{booking.get('id')}"

        html = f"""
        <div style="font-family: Arial, sans-serif; max-width: 600px;">
            <h2>New booking request</h2>
            <p>Hello {esc(name)}, a new booking is waiting for confirmation.</p>
            <table>{table}</table>
            <p><a href="{esc(admin_url)}">Open in admin panel</a></p>
        </div>
        """
        text = "New booking request\n\n" + "\n".join(f"{label}: {value or ''}" for label, value in rows)

        return await self.send_email(
            to=email,
            subject=f"New booking {booking.get('bookingReference')} - {self.settings.app.name}",
            html=html,
            text=text,
        )


_email_service: Optional[EmailService] = None


def get_email_service() -> EmailService:
    """Get the email service instance."""
    global _email_service
    if _email_service is None or _email_service.settings is not get_settings():
        _email_service = EmailService()
    return _email_service
