from sqlalchemy import Boolean, Column, Date, DateTime, ForeignKey, Numeric, String, Text, func
from sqlalchemy.orm import relationship

from database import Base


class ORCRReceipt(Base):
    __tablename__ = "orcr_receipts"

    id = Column(String(64), primary_key=True, index=True)
    receipt_number = Column(String(32), unique=True, nullable=False, index=True)
    application_id = Column(String(64), ForeignKey("loan_applications.id"), nullable=False, index=True)
    receipt_type = Column(String(32), nullable=False)
    amount = Column(Numeric(14, 2), nullable=False)
    payment_method = Column(String(32), nullable=False)
    payment_reference = Column(String(128), nullable=True)
    payment_date = Column(Date, nullable=False)
    payor_name = Column(String(256), nullable=False)
    payor_address = Column(Text, nullable=True)
    particulars = Column(Text, nullable=True)
    issued_by_id = Column(String(64), nullable=True)
    issued_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    # Only these change after issuance, and only once
    is_voided = Column(Boolean, nullable=False, default=False)
    voided_by_id = Column(String(64), nullable=True)
    voided_at = Column(DateTime(timezone=True), nullable=True)
    void_reason = Column(Text, nullable=True)

    application = relationship("LoanApplication", back_populates="receipts")
