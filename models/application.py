from sqlalchemy import JSON, Boolean, Column, Date, DateTime, Integer, Numeric, String, Text, func
from sqlalchemy.orm import relationship

from database import Base


def _money(**kwargs):
    return Column(Numeric(14, 2), nullable=False, default=0, server_default="0", **kwargs)


def _count(**kwargs):
    return Column(Integer, nullable=False, default=0, server_default="0", **kwargs)


class LoanApplication(Base):
    __tablename__ = "loan_applications"

    id = Column(String(64), primary_key=True, index=True)
    reference_number = Column(String(32), unique=True, nullable=False, index=True)

    # Lifecycle; status only changes through the state machine
    status = Column(String(32), nullable=False, default="DRAFT", index=True)
    current_step = Column(Integer, nullable=False, default=1)
    submitted_at = Column(DateTime(timezone=True), nullable=True)
    vetting_started_at = Column(DateTime(timezone=True), nullable=True)
    approved_at = Column(DateTime(timezone=True), nullable=True)
    disbursement_at = Column(DateTime(timezone=True), nullable=True)
    funds_released_at = Column(DateTime(timezone=True), nullable=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    cancelled_at = Column(DateTime(timezone=True), nullable=True)

    # Decision
    approved_amount = Column(Numeric(14, 2), nullable=True)
    interest_rate = Column(Numeric(6, 3), nullable=True)
    approval_notes = Column(Text, nullable=True)
    rejection_reason = Column(Text, nullable=True)

    # Caller ids from the gateway; not tied to the local users table
    created_by_id = Column(String(64), nullable=True, index=True)
    processed_by_id = Column(String(64), nullable=True)

    # Step 1: application type
    application_type = Column(String(16), nullable=False, default="NEW")
    referral_source = Column(String(256), nullable=True)

    # Step 2: loan details
    loan_product_type = Column(String(16), nullable=False, default="PERSONAL")
    loan_amount = _money()
    loan_term_months = Column(Integer, nullable=False, default=12)
    loan_purpose = Column(Text, nullable=True)

    # Step 3: personal info and present address
    first_name = Column(String(128), nullable=False, default="")
    middle_name = Column(String(128), nullable=True)
    last_name = Column(String(128), nullable=False, default="")
    suffix = Column(String(16), nullable=True)
    date_of_birth = Column(Date, nullable=True)
    gender = Column(String(16), nullable=True)
    civil_status = Column(String(16), nullable=True)
    nationality = Column(String(64), nullable=False, default="Filipino")
    mother_maiden_name = Column(String(256), nullable=True)
    mobile_number = Column(String(32), nullable=True)
    telephone_number = Column(String(32), nullable=True)
    email_address = Column(String(256), nullable=True)
    present_street = Column(String(256), nullable=True)
    present_barangay = Column(String(128), nullable=True)
    present_city = Column(String(128), nullable=True)
    present_province = Column(String(128), nullable=True)
    present_region = Column(String(128), nullable=True)
    present_zip_code = Column(String(16), nullable=True)
    present_years_stay = _count()

    # Step 4: identification
    primary_id_type = Column(String(64), nullable=True)
    primary_id_number = Column(String(64), nullable=True)
    primary_id_expiry = Column(Date, nullable=True)
    tin = Column(String(32), nullable=True)
    sss_gsis = Column(String(32), nullable=True)
    highest_education = Column(String(64), nullable=True)

    # Step 5: collateral
    collateral_type = Column(String(32), nullable=True)
    collateral_description = Column(Text, nullable=True)
    collateral_value = _money()

    # Step 6: residence and permanent address
    residence_ownership = Column(String(32), nullable=True)
    monthly_rent = _money()
    residence_years = _count()
    permanent_same_as_present = Column(Boolean, nullable=False, default=True)
    permanent_street = Column(String(256), nullable=True)
    permanent_barangay = Column(String(128), nullable=True)
    permanent_city = Column(String(128), nullable=True)
    permanent_province = Column(String(128), nullable=True)
    permanent_region = Column(String(128), nullable=True)
    permanent_zip_code = Column(String(16), nullable=True)

    # Step 7: family
    spouse_first_name = Column(String(128), nullable=True)
    spouse_last_name = Column(String(128), nullable=True)
    spouse_monthly_income = _money()
    number_of_dependents = _count()

    # Step 8: income source
    primary_income_source = Column(String(32), nullable=True)
    employer_name = Column(String(256), nullable=True)
    job_position = Column(String(128), nullable=True)
    monthly_net_salary = _money()
    business_name = Column(String(256), nullable=True)
    business_net_income = _money()
    monthly_expenses = _money()
    existing_loan_payments = _money()

    # Step 9: co-borrower
    has_co_borrower = Column(Boolean, nullable=False, default=False)
    co_borrower_first_name = Column(String(128), nullable=True)
    co_borrower_last_name = Column(String(128), nullable=True)
    co_borrower_relationship = Column(String(64), nullable=True)
    co_borrower_monthly_income = _money()

    # Step 10: references (lists of {name, contact, relationship})
    character_references = Column(JSON, nullable=False, default=list)
    trade_references = Column(JSON, nullable=False, default=list)

    # Step 11: undertaking
    undertaking_signed = Column(Boolean, nullable=False, default=False)
    privacy_notice_signed = Column(Boolean, nullable=False, default=False)
    signed_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    receipts = relationship(
        "ORCRReceipt",
        back_populates="application",
        order_by="ORCRReceipt.issued_at.desc()",
    )
