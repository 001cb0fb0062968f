"""Fee payment: append-only record of money received from or for a student."""

import uuid
from datetime import datetime

from sqlalchemy import CheckConstraint, Column, Date, DateTime, ForeignKey, Numeric, String, Text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship

from school_ledger.db.session import Base


class FeePayment(Base):
    """Recorded fee payment. Student name and grade are snapshots taken at payment time."""

    __tablename__ = "fee_payments"
    __table_args__ = (
        CheckConstraint("amount_paid > 0", name="chk_fee_payment_amount_positive"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    school_id = Column(UUID(as_uuid=True), ForeignKey("schools.id", ondelete="CASCADE"), nullable=False, index=True)
    payment_id_display = Column(String(50), nullable=False)
    student_id_display = Column(String(50), nullable=False, index=True)
    student_name = Column(String(255), nullable=True)
    grade_level = Column(String(50), nullable=True)
    amount_paid = Column(Numeric(12, 2), nullable=False)
    payment_date = Column(Date, nullable=False)
    payment_method = Column(String(30), nullable=False)  # Cash, Mobile Money, Bank, Card
    term_paid_for = Column(String(50), nullable=True)
    notes = Column(Text, nullable=True)
    received_by_name = Column(String(255), nullable=True)
    received_by_user_id = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)

    school = relationship("School")
    received_by_user = relationship("User", foreign_keys=[received_by_user_id])
