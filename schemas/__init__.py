from schemas.application import (
    LOAN_TERMS,
    ApplicationFields,
    ApplicationType,
    ApproveRequest,
    CivilStatus,
    CollateralType,
    Gender,
    IncomeSource,
    LoanProductType,
    ReasonRequest,
    ReferenceEntry,
    ResidenceOwnership,
    TransitionRequest,
)
from schemas.receipt import PaymentMethod, ReceiptCreate, ReceiptType, ReceiptVoid

__all__ = [
    "LOAN_TERMS",
    "ApplicationFields",
    "ApplicationType",
    "ApproveRequest",
    "CivilStatus",
    "CollateralType",
    "Gender",
    "IncomeSource",
    "LoanProductType",
    "ReasonRequest",
    "ReferenceEntry",
    "ResidenceOwnership",
    "TransitionRequest",
    "PaymentMethod",
    "ReceiptCreate",
    "ReceiptType",
    "ReceiptVoid",
]
