"""
Feature request notification mail via SendGrid.

Mail is an outside collaborator: when it is not configured or the send
fails, the failure is logged and reported as False, never raised.
"""
import asyncio
import html
import logging

import sendgrid
from sendgrid.helpers.mail import Content, Email, Mail, To

from estatemap.schemas import FeatureRequestRecord

logger = logging.getLogger(__name__)

SUBJECT = "New Feature Request - EstateMap"


class FeatureRequestMailer:
    """Mails each new feature request to the maintainers"""

    def __init__(self, api_key: str, sender: str, recipient: str):
        self.sender = sender
        self.recipient = recipient
        self.client = None
        if api_key and recipient:
            self.client = sendgrid.SendGridAPIClient(api_key=api_key)
        else:
            logger.warning("No email configuration found. Feature request emails will not be sent.")

    @property
    def configured(self) -> bool:
        return self.client is not None

    def build_message(self, request: FeatureRequestRecord) -> Mail:
        submitter = request.submitter_email or "Anonymous"
        body = html.escape(request.description).replace("\n", "<br>")
        content = Content(
            "text/html",
            f"""
            <h2>New Feature Request</h2>
            <p><strong>From:</strong> {html.escape(submitter)}</p>
            <p><strong>Feature Description:</strong></p>
            <div style="background-color: #f5f5f5; padding: 15px; border-radius: 5px; margin: 10px 0;">
              {body}
            </div>
            <p><em>Request #{request.id}</em></p>
            """,
        )
        return Mail(
            from_email=Email(self.sender),
            to_emails=To(self.recipient),
            subject=SUBJECT,
            html_content=content,
        )

    async def send_feature_request(self, request: FeatureRequestRecord) -> bool:
        if not self.configured:
            logger.info("Email transporter not configured, feature request %s not mailed", request.id)
            return False

        message = self.build_message(request)
        try:
            response = await asyncio.to_thread(self.client.send, message)
        except Exception as exc:
            # Mail never fails the originating request
            logger.error("Error sending feature request email for %s: %s", request.id, exc)
            return False

        if response.status_code >= 300:
            logger.error("Failed to send feature request email. Status code: %s", response.status_code)
            return False
        logger.info("Feature request email sent for request %s", request.id)
        return True
