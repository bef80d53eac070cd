"""Database models for draft application persistence"""

import uuid

from sqlalchemy import Boolean, Column, DateTime, Integer, String, Text, create_engine
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool
from sqlalchemy.sql import func

from intake.config import settings
from intake.models.intake import ApplicationPayload, ApplicationRecord

Base = declarative_base()


class LoanApplication(Base):
    """A draft or completed loan application"""

    __tablename__ = "loan_applications"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))

    # Intake fields
    email = Column(String, nullable=True, index=True)
    full_name = Column(String, nullable=True)
    phone = Column(String, nullable=True)
    business_name = Column(String, nullable=True)
    industry = Column(String, nullable=True)
    ein = Column(String, nullable=True)
    time_in_business = Column(String, nullable=True)
    monthly_revenue = Column(String, nullable=True)
    average_monthly_revenue = Column(String, nullable=True)
    credit_score = Column(String, nullable=True)
    requested_amount = Column(String, nullable=True)  # whole dollars, digits only
    use_of_funds = Column(String, nullable=True)
    business_address = Column(String, nullable=True)
    city = Column(String, nullable=True)
    state = Column(String, nullable=True)
    zip_code = Column(String, nullable=True)
    ownership = Column(String, nullable=True)
    business_type = Column(String, nullable=True)
    has_outstanding_loans = Column(Boolean, nullable=True)
    outstanding_loans_amount = Column(String, nullable=True)
    bank_name = Column(String, nullable=True)

    # Full application fields
    legal_business_name = Column(String, nullable=True)
    doing_business_as = Column(String, nullable=True)
    company_website = Column(String, nullable=True)
    business_start_date = Column(String, nullable=True)
    state_of_incorporation = Column(String, nullable=True)
    do_you_process_credit_cards = Column(String, nullable=True)
    mca_balance_amount = Column(String, nullable=True)
    mca_balance_bank_name = Column(String, nullable=True)

    # Owner specifics
    social_security_number = Column(String, nullable=True)
    fico_score_exact = Column(String, nullable=True)
    date_of_birth = Column(String, nullable=True)
    owner_address1 = Column(String, nullable=True)
    owner_address2 = Column(String, nullable=True)
    owner_city = Column(String, nullable=True)
    owner_state = Column(String, nullable=True)
    owner_zip = Column(String, nullable=True)
    business_email = Column(String, nullable=True)

    company_email = Column(String, nullable=True)
    business_street_address = Column(String, nullable=True)
    business_csz = Column(String, nullable=True)  # "City, ST 12345"
    owner_csz = Column(String, nullable=True)
    personal_credit_score_range = Column(String, nullable=True)

    applicant_signature = Column(Text, nullable=True)

    # Agent tracking
    agent_name = Column(String, nullable=True)
    agent_email = Column(String, nullable=True)
    agent_ghl_id = Column(String, nullable=True)

    # Quiz metadata
    quiz_source = Column(String, nullable=True)
    quiz_answers = Column(Text, nullable=True)
    consent_marketing = Column(Boolean, nullable=True)

    # System fields
    agent_view_url = Column(String, nullable=True)
    current_step = Column(Integer, default=1, nullable=False)
    is_completed = Column(Boolean, default=False, nullable=False)
    is_full_application_completed = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, default=func.now(), nullable=False)
    updated_at = Column(
        DateTime, default=func.now(), onupdate=func.now(), nullable=False
    )

    def apply(self, payload: ApplicationPayload) -> None:
        """Copy every field the client sent onto the row"""
        for field, value in payload.model_dump(exclude_unset=True).items():
            if field in {"current_step", "is_completed", "is_full_application_completed"}:
                if value is None:
                    continue
            setattr(self, field, value)

    def to_record(self) -> ApplicationRecord:
        """Convert to the camelCase wire model"""
        values = {
            name: getattr(self, name)
            for name in ApplicationRecord.model_fields
            if hasattr(self, name)
        }
        return ApplicationRecord(**values)


# Database setup
def create_database_engine(database_url: str | None = None):
    """Create database engine"""
    database_url = database_url or settings.database_url
    connect_args = {"check_same_thread": False} if "sqlite" in database_url else {}
    if database_url in ("sqlite://", "sqlite:///:memory:"):
        return create_engine(
            database_url, connect_args=connect_args, poolclass=StaticPool, echo=False
        )
    return create_engine(database_url, connect_args=connect_args, echo=False)


def create_tables(engine):
    """Create all tables"""
    Base.metadata.create_all(bind=engine)


def get_session_maker(engine):
    """Get session maker"""
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)
