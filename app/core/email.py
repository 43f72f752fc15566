"""
Outgoing email through the Resend REST API.

Sends are fire-and-forget from the caller's point of view: they never touch
grading state. A failed send raises NotificationFailure; a missing API key
skips the send with a warning.
"""

import html
import logging
from typing import List, Optional

import httpx

from app.core.errors import NotificationFailure

logger = logging.getLogger(__name__)

RESEND_URL = "https://api.resend.com/emails"


def _paragraph(text: str) -> str:
    return html.escape(text).replace("\n", "<br/>")


class EmailNotifier:
    def __init__(
        self,
        api_key: str,
        from_email: str,
        portal_url: str = "",
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = api_key
        self.from_email = from_email
        self.portal_url = portal_url
        self._transport = transport

    async def send(self, to_email: str, subject: str, body_html: str) -> dict:
        if not self.api_key:
            logger.warning(f"RESEND_API_KEY not configured. Skipping email to {to_email}")
            return {"sent": False, "id": None}

        payload = {
            "from": self.from_email,
            "to": [to_email],
            "subject": subject,
            "html": body_html,
        }
        headers = {"Authorization": f"Bearer {self.api_key}"}

        try:
            async with httpx.AsyncClient(transport=self._transport, timeout=15.0) as client:
                response = await client.post(RESEND_URL, json=payload, headers=headers)
                response.raise_for_status()
        except httpx.HTTPStatusError as e:
            logger.error(f"Email to {to_email} rejected ({e.response.status_code}): {e.response.text}")
            raise NotificationFailure(f"Email provider rejected the message ({e.response.status_code})") from e
        except httpx.HTTPError as e:
            logger.error(f"Email to {to_email} failed: {e}")
            raise NotificationFailure(f"Could not reach the email provider: {e}") from e

        logger.info(f"Email '{subject}' sent to {to_email}")
        try:
            email_id = response.json().get("id")
        except ValueError:
            logger.warning(f"Email provider returned a non-JSON body for {to_email}")
            email_id = None
        return {"sent": True, "id": email_id}

    async def send_tutor_alert(
        self,
        tutor_email: str,
        tutor_name: str,
        student_name: str,
        group_name: str,
        criteria: List[str],
        description: str,
    ) -> dict:
        items = "".join(f"<li>{html.escape(c)}</li>" for c in criteria)
        body = f"""
        <html>
          <body style="font-family: Arial, sans-serif; line-height: 1.6;">
            <h2>Behaviour Alert</h2>
            <p>Dear {html.escape(tutor_name)},</p>
            <p>A behaviour report was filed for <strong>{html.escape(student_name)}</strong>
            in group <strong>{html.escape(group_name)}</strong>.</p>
            <h3>Reasons</h3>
            <ul>{items}</ul>
            <h3>Description</h3>
            <p style="padding: 10px; border: 1px solid #ccc; border-radius: 5px;">{_paragraph(description)}</p>
            <p>Please take whatever action you consider appropriate.</p>
          </body>
        </html>
        """
        subject = f"Behaviour alert: {student_name} - Group {group_name}"
        return await self.send(tutor_email, subject, body)

    async def send_parent_alert(self, parent_email: str, student_name: str, group_name: str, message: str) -> dict:
        body = f"""
        <html>
          <body style="font-family: Arial, sans-serif; line-height: 1.6;">
            <h2>Important Notice</h2>
            <p>Dear parent or guardian,</p>
            <p>We are writing to you about <strong>{html.escape(student_name)}</strong>
            from group <strong>{html.escape(group_name)}</strong>.</p>
            <h3>Message</h3>
            <p style="padding: 10px; border: 1px solid #ccc; border-radius: 5px;">{_paragraph(message)}</p>
            <p>Please contact the school if you have any questions.</p>
          </body>
        </html>
        """
        subject = f"Notice about {student_name} - Group {group_name}"
        return await self.send(parent_email, subject, body)

    async def send_welcome_email(self, to_email: str, name: str) -> dict:
        body = f"""
        <h1>Hello {html.escape(name)}!</h1>
        <p>Your account has been approved.</p>
        <p>You can now sign in and start using the portal.</p>
        <a href="{html.escape(self.portal_url, quote=True)}">Go to the portal</a>
        """
        return await self.send(to_email, "Welcome to the portal!", body)
