from __future__ import annotations

from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, field_validator
from pydantic.alias_generators import to_camel

LOAN_TERMS = (6, 12, 18, 24, 36, 48, 60)


class ApplicationType(str, Enum):
    NEW = "NEW"
    RENEWAL = "RENEWAL"


class LoanProductType(str, Enum):
    PERSONAL = "PERSONAL"
    AUTO = "AUTO"
    HOUSING = "HOUSING"
    BUSINESS = "BUSINESS"


class Gender(str, Enum):
    MALE = "MALE"
    FEMALE = "FEMALE"


class CivilStatus(str, Enum):
    SINGLE = "SINGLE"
    MARRIED = "MARRIED"
    WIDOWED = "WIDOWED"
    SEPARATED = "SEPARATED"


class CollateralType(str, Enum):
    NONE = "NONE"
    VEHICLE = "VEHICLE"
    REAL_ESTATE = "REAL_ESTATE"
    OTHER = "OTHER"


class ResidenceOwnership(str, Enum):
    OWNED = "OWNED"
    RENTED = "RENTED"
    LIVING_WITH_RELATIVES = "LIVING_WITH_RELATIVES"


class IncomeSource(str, Enum):
    EMPLOYMENT = "EMPLOYMENT"
    BUSINESS = "BUSINESS"
    REMITTANCE = "REMITTANCE"
    OTHER = "OTHER"


_CAMEL = {
    "alias_generator": to_camel,
    "populate_by_name": True,
    "str_strip_whitespace": True,
    "use_enum_values": True,
}


class ReferenceEntry(BaseModel):
    name: str = Field(..., min_length=1)
    contact: Optional[str] = None
    relationship: Optional[str] = None

    model_config = {**_CAMEL, "extra": "forbid"}


class ApplicationFields(BaseModel):
    """
    Every field the wizard can write. All optional: only fields present in
    the request are merged into the stored draft.
    """

    # Step 1
    application_type: Optional[ApplicationType] = None
    referral_source: Optional[str] = None
    # Step 2
    loan_product_type: Optional[LoanProductType] = None
    loan_amount: Optional[Decimal] = Field(None, ge=0, max_digits=14, decimal_places=2)
    loan_term_months: Optional[int] = None
    loan_purpose: Optional[str] = None
    # Step 3
    first_name: Optional[str] = None
    middle_name: Optional[str] = None
    last_name: Optional[str] = None
    suffix: Optional[str] = None
    date_of_birth: Optional[date] = None
    gender: Optional[Gender] = None
    civil_status: Optional[CivilStatus] = None
    nationality: Optional[str] = None
    mother_maiden_name: Optional[str] = None
    mobile_number: Optional[str] = None
    telephone_number: Optional[str] = None
    email_address: Optional[str] = None
    present_street: Optional[str] = None
    present_barangay: Optional[str] = None
    present_city: Optional[str] = None
    present_province: Optional[str] = None
    present_region: Optional[str] = None
    present_zip_code: Optional[str] = None
    present_years_stay: Optional[int] = Field(None, ge=0)
    # Step 4
    primary_id_type: Optional[str] = None
    primary_id_number: Optional[str] = None
    primary_id_expiry: Optional[date] = None
    tin: Optional[str] = None
    sss_gsis: Optional[str] = None
    highest_education: Optional[str] = None
    # Step 5
    collateral_type: Optional[CollateralType] = None
    collateral_description: Optional[str] = None
    collateral_value: Optional[Decimal] = Field(None, ge=0, max_digits=14, decimal_places=2)
    # Step 6
    residence_ownership: Optional[ResidenceOwnership] = None
    monthly_rent: Optional[Decimal] = Field(None, ge=0, max_digits=14, decimal_places=2)
    residence_years: Optional[int] = Field(None, ge=0)
    permanent_same_as_present: Optional[bool] = None
    permanent_street: Optional[str] = None
    permanent_barangay: Optional[str] = None
    permanent_city: Optional[str] = None
    permanent_province: Optional[str] = None
    permanent_region: Optional[str] = None
    permanent_zip_code: Optional[str] = None
    # Step 7
    spouse_first_name: Optional[str] = None
    spouse_last_name: Optional[str] = None
    spouse_monthly_income: Optional[Decimal] = Field(None, ge=0, max_digits=14, decimal_places=2)
    number_of_dependents: Optional[int] = Field(None, ge=0)
    # Step 8
    primary_income_source: Optional[IncomeSource] = None
    employer_name: Optional[str] = None
    job_position: Optional[str] = None
    monthly_net_salary: Optional[Decimal] = Field(None, ge=0, max_digits=14, decimal_places=2)
    business_name: Optional[str] = None
    business_net_income: Optional[Decimal] = Field(None, ge=0, max_digits=14, decimal_places=2)
    monthly_expenses: Optional[Decimal] = Field(None, ge=0, max_digits=14, decimal_places=2)
    existing_loan_payments: Optional[Decimal] = Field(None, ge=0, max_digits=14, decimal_places=2)
    # Step 9
    has_co_borrower: Optional[bool] = None
    co_borrower_first_name: Optional[str] = None
    co_borrower_last_name: Optional[str] = None
    co_borrower_relationship: Optional[str] = None
    co_borrower_monthly_income: Optional[Decimal] = Field(None, ge=0, max_digits=14, decimal_places=2)
    # Step 10
    character_references: Optional[list[ReferenceEntry]] = None
    trade_references: Optional[list[ReferenceEntry]] = None
    # Step 11
    undertaking_signed: Optional[bool] = None
    privacy_notice_signed: Optional[bool] = None

    model_config = {**_CAMEL, "extra": "forbid"}

    @field_validator("loan_term_months")
    @classmethod
    def _known_term(cls, v: Optional[int]) -> Optional[int]:
        if v is not None and v not in LOAN_TERMS:
            raise ValueError(f"must be one of {', '.join(str(t) for t in LOAN_TERMS)}")
        return v


class ApproveRequest(BaseModel):
    approved_amount: Optional[Decimal] = Field(None, gt=0, max_digits=14, decimal_places=2)
    interest_rate: Optional[Decimal] = Field(None, ge=0, le=100)
    notes: Optional[str] = None

    model_config = _CAMEL


class ReasonRequest(BaseModel):
    reason: Optional[str] = None

    model_config = {"populate_by_name": True}


class TransitionRequest(BaseModel):
    """Body of POST /api/applications/{id}/transitions; payload keys sit beside ``action``."""

    action: str

    model_config = {**_CAMEL, "extra": "allow"}

    def payload(self) -> dict:
        return dict(self.model_extra or {})
