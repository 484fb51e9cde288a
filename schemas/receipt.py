from __future__ import annotations

from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel


class ReceiptType(str, Enum):
    OFFICIAL_RECEIPT = "OFFICIAL_RECEIPT"
    COLLECTION_RECEIPT = "COLLECTION_RECEIPT"


class PaymentMethod(str, Enum):
    CASH = "cash"
    CHECK = "check"
    BANK_TRANSFER = "bank_transfer"
    GCASH = "gcash"
    MAYA = "maya"
    CREDIT_CARD = "credit_card"


class ReceiptCreate(BaseModel):
    application_id: str = Field(..., min_length=1)
    receipt_type: ReceiptType
    amount: Decimal = Field(..., gt=0, max_digits=14, decimal_places=2)
    payment_method: PaymentMethod = PaymentMethod.CASH
    payment_reference: Optional[str] = None
    payment_date: date
    payor_name: str = Field(..., min_length=1)
    payor_address: Optional[str] = None
    particulars: Optional[str] = None

    model_config = {
        "alias_generator": to_camel,
        "populate_by_name": True,
        "str_strip_whitespace": True,
        "use_enum_values": True,
        "extra": "forbid",
    }


class ReceiptVoid(BaseModel):
    reason: Optional[str] = None

    model_config = {"populate_by_name": True}
