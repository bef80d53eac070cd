"""Database service for storing draft applications"""

from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from intake.models.database import LoanApplication
from intake.models.intake import ApplicationPayload
from intake.utils.logger import LoggerMixin

AGENT_VIEW_PATH = "/agent/application/{id}"


class DatabaseService(LoggerMixin):
    """Service for draft application storage"""

    def __init__(self, db_session: Session):
        self.db = db_session

    def create_application(self, payload: ApplicationPayload) -> LoanApplication:
        """Insert a new draft from the fields the client sent"""
        try:
            application = LoanApplication()
            application.apply(payload)
            self.db.add(application)
            self.db.commit()
            self.db.refresh(application)

            self.logger.info("Created application", application_id=application.id)
            return application
        except SQLAlchemyError as e:
            self.db.rollback()
            self.logger.error("Failed to create application", error=str(e))
            raise

    def get_application(self, application_id: str) -> Optional[LoanApplication]:
        """Get application by ID"""
        try:
            return (
                self.db.query(LoanApplication)
                .filter(LoanApplication.id == application_id)
                .first()
            )
        except SQLAlchemyError as e:
            self.logger.error(
                "Failed to get application",
                error=str(e),
                application_id=application_id,
            )
            raise

    def find_incomplete_by_email(self, email: str) -> Optional[LoanApplication]:
        """Most recent application for this email that is not yet finished"""
        try:
            return (
                self.db.query(LoanApplication)
                .filter(LoanApplication.email == email)
                .filter(LoanApplication.is_completed.is_(False))
                .filter(LoanApplication.is_full_application_completed.is_(False))
                .order_by(LoanApplication.updated_at.desc())
                .first()
            )
        except SQLAlchemyError as e:
            self.logger.error("Failed to look up application by email", error=str(e))
            raise

    def update_application(
        self, application_id: str, payload: ApplicationPayload
    ) -> Optional[LoanApplication]:
        """Merge the sent fields into an existing application.

        Returns None when no application has this ID.
        """
        try:
            application = self.get_application(application_id)
            if application is None:
                return None

            application.apply(payload)
            completed = application.is_completed or application.is_full_application_completed
            if completed and not application.agent_view_url:
                application.agent_view_url = AGENT_VIEW_PATH.format(id=application.id)
            self.db.commit()
            self.db.refresh(application)

            self.logger.info(
                "Updated application",
                application_id=application_id,
                current_step=application.current_step,
                completed=application.is_full_application_completed,
            )
            return application
        except SQLAlchemyError as e:
            self.db.rollback()
            self.logger.error(
                "Failed to update application",
                error=str(e),
                application_id=application_id,
            )
            raise

    def save_application(self, payload: ApplicationPayload) -> LoanApplication:
        """Create a draft, reusing an unfinished one with the same email"""
        if payload.email:
            existing = self.find_incomplete_by_email(payload.email)
            if existing is not None:
                self.logger.info(
                    "Reusing unfinished application for email",
                    application_id=existing.id,
                )
                return self.update_application(existing.id, payload)
        return self.create_application(payload)
