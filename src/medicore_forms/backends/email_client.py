import logging
from typing import Dict, Optional

from mailgun.client import Client

logger = logging.getLogger(__name__)


class EmailClient:
    """Thin Mailgun wrapper used for doctor notifications"""

    def __init__(self, config: dict):
        self.domain = config["mailgun_domain"]
        self.sender_email = config["sender_email"]
        self.enabled = bool(config.get("mailgun_api_key") and self.domain)

        self.client = Client(auth=("api", config["mailgun_api_key"]))

    async def send_email(
        self,
        to: str,
        text: str,
        subject: str,
        reply_to: Optional[str] = None,
        tag: str = "form-submission",
    ) -> Dict:
        """
        Send a plain-text email through Mailgun

        Args:
            to: Recipient email address
            text: Email body text
            subject: Email subject
            reply_to: Optional Reply-To address, e.g. the patient's email
            tag: Mailgun tag used for delivery analytics

        Returns:
            Dict containing Mailgun API response

        Raises:
            RuntimeError: If Mailgun is not configured or sending fails
        """
        if not self.enabled:
            raise RuntimeError("Mailgun is not configured")

        data = {
            "from": self.sender_email,
            "to": to,
            "subject": subject,
            "text": text,
            "o:tag": tag,
        }
        if reply_to:
            data["h:Reply-To"] = reply_to

        try:
            req = self.client.messages.create(data=data, domain=self.domain)
            response = req.json()
        except Exception as e:
            logger.error(f"Failed to reach Mailgun for {to}: {e}")
            raise RuntimeError(f"Email sending failed: {e}") from e

        if req.status_code != 200:
            logger.error(f"Mailgun API error: {req.status_code} - {response}")
            raise RuntimeError(f"Failed to send email: {response}")

        logger.info(f"Email sent to {to}: {response.get('id', 'unknown')}")
        return response
