"""Email service for notifying doctors about new submissions"""

import logging
from typing import Dict, List

from medicore_forms.backends.email_client import EmailClient
from medicore_forms.models.field_type import FieldTypeRegistry
from medicore_forms.models.form import Form
from medicore_forms.models.form_field import FormField
from medicore_forms.models.form_submission import FormSubmission
from medicore_forms.services.submission_viewer import SubmissionViewer

logger = logging.getLogger(__name__)


class EmailService:
    """Builds and sends the plain-text notification for a new submission"""

    def __init__(self, email_config: dict, registry: FieldTypeRegistry):
        self.email_client = EmailClient(email_config)
        self.viewer = SubmissionViewer(registry)
        self.app_base_url = email_config.get("app_base_url", "").rstrip("/")

    @property
    def enabled(self) -> bool:
        return self.email_client.enabled

    async def notify_new_submission(
        self,
        form: Form,
        fields: List[FormField],
        submission: FormSubmission,
    ) -> bool:
        """
        Send the form's notification address a summary of the submission.

        Args:
            form: The form that was submitted
            fields: The form's fields, used to label the answers
            submission: The stored submission

        Returns:
            bool: True if email was sent successfully, False otherwise
        """
        if not form.notification_email:
            return False
        if not self.enabled:
            logger.info("Mailgun not configured, skipping submission notification")
            return False

        try:
            email_content = self._build_email(form, fields, submission)
        except Exception as e:
            logger.error(f"Failed to build notification for submission {submission.id}: {e}")
            return False

        return await self._send_email(
            form.notification_email,
            email_content,
            reply_to=submission.patient_email,
        )

    def _build_email(
        self, form: Form, fields: List[FormField], submission: FormSubmission
    ) -> Dict[str, str]:
        view = self.viewer.reconstruct(submission, fields)

        details = []
        if submission.patient_name:
            details.append(f"Name: {submission.patient_name}")
        if submission.patient_email:
            details.append(f"Email: {submission.patient_email}")
        if submission.patient_phone:
            details.append(f"Phone: {submission.patient_phone}")

        answers = [f"{response.label}: {response.display()}" for response in view.responses]
        files = [f"{a.file_name} ({a.size_display}): {a.file_url}" for a in view.attachments]

        body = f"You have a new response to {form.title}.\n"
        if details:
            body += "\nContact Details:\n" + "\n".join(details) + "\n"
        body += "\nResponses:\n" + "\n".join(answers) + "\n"
        if files:
            body += "\nFiles:\n" + "\n".join(files) + "\n"
        if self.app_base_url:
            body += f"\nView it at {self.app_base_url}/api/submissions/{submission.id}\n"

        return {"subject": f"New submission for {form.title}", "body": body}

    async def _send_email(
        self, to_email: str, email_content: Dict[str, str], reply_to=None
    ) -> bool:
        """Send email using the email client"""
        try:
            await self.email_client.send_email(
                to=to_email,
                text=email_content["body"],
                subject=email_content["subject"],
                reply_to=reply_to,
            )
            logger.info(f"Email sent successfully to {to_email}")
            return True
        except Exception as e:
            logger.error(f"Failed to send email to {to_email}: {e}")
            return False
