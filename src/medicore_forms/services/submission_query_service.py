"""Submission queries for the doctor dashboard"""

import logging
import uuid
from datetime import datetime, timezone
from typing import Dict, List, Optional

from sqlalchemy import or_
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, col, select

from medicore_forms.exceptions import NotFoundError, StorageError
from medicore_forms.models.form import Form
from medicore_forms.models.form_submission import FormSubmission

logger = logging.getLogger(__name__)


class SubmissionQueryService:
    """Read and triage submissions belonging to one doctor"""

    def __init__(self, db_session: Session, doctor_id: str):
        if not doctor_id:
            raise ValueError("SubmissionQueryService requires a doctor_id")
        self.db = db_session
        self.doctor_id = doctor_id

    def list_submissions(
        self,
        form_id: Optional[uuid.UUID] = None,
        is_read: Optional[bool] = None,
        search: Optional[str] = None,
    ) -> List[FormSubmission]:
        """
        List this doctor's submissions, newest first

        Args:
            form_id: Only submissions of this form
            is_read: Only read (True) or unread (False) submissions
            search: Case-insensitive match on patient name, patient email or form title

        Returns:
            List of FormSubmission
        """
        statement = select(FormSubmission).where(
            FormSubmission.doctor_id == self.doctor_id
        )
        if form_id is not None:
            statement = statement.where(FormSubmission.form_id == form_id)
        if is_read is not None:
            statement = statement.where(FormSubmission.is_read == is_read)
        if search and search.strip():
            pattern = f"%{search.strip()}%"
            statement = statement.join(Form, Form.id == FormSubmission.form_id).where(
                or_(
                    col(FormSubmission.patient_name).ilike(pattern),
                    col(FormSubmission.patient_email).ilike(pattern),
                    col(Form.title).ilike(pattern),
                )
            )
        statement = statement.order_by(col(FormSubmission.submitted_at).desc())

        try:
            return list(self.db.exec(statement).all())
        except SQLAlchemyError as e:
            logger.error(f"Error listing submissions for doctor {self.doctor_id}: {e}")
            raise StorageError(f"Failed to list submissions: {e}") from e

    def form_titles(self) -> Dict[uuid.UUID, str]:
        """Titles of this doctor's forms keyed by form id, for labelling submissions"""
        statement = select(Form.id, Form.title).where(Form.doctor_id == self.doctor_id)
        try:
            return {form_id: title for form_id, title in self.db.exec(statement).all()}
        except SQLAlchemyError as e:
            logger.error(f"Error loading form titles for doctor {self.doctor_id}: {e}")
            raise StorageError(f"Failed to load forms: {e}") from e

    def get_submission(self, submission_id: uuid.UUID) -> FormSubmission:
        statement = select(FormSubmission).where(
            FormSubmission.id == submission_id,
            FormSubmission.doctor_id == self.doctor_id,
        )
        submission = self.db.exec(statement).first()
        if not submission:
            raise NotFoundError("Submission not found")
        return submission

    def mark_read(self, submission_id: uuid.UUID) -> FormSubmission:
        """Mark a submission as read; viewed_at keeps the first viewing time"""
        submission = self.get_submission(submission_id)
        if submission.is_read:
            return submission

        try:
            submission.is_read = True
            submission.viewed_at = datetime.now(timezone.utc)
            self.db.add(submission)
            self.db.commit()
            self.db.refresh(submission)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Error marking submission {submission_id} as read: {e}")
            raise StorageError(f"Failed to update submission: {e}") from e

        logger.info(f"Submission {submission_id} marked as read")
        return submission
