"""Fee schedule entry (tuition, books, ...) per grade level and academic year."""

import uuid
from datetime import datetime

from sqlalchemy import CheckConstraint, Column, DateTime, ForeignKey, Numeric, String
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship

from school_ledger.db.session import Base


class FeeItem(Base):
    """Several items may share a grade/year; the amount due is their sum."""

    __tablename__ = "school_fee_items"
    __table_args__ = (
        CheckConstraint("amount >= 0", name="chk_fee_item_amount_non_negative"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    school_id = Column(UUID(as_uuid=True), ForeignKey("schools.id", ondelete="CASCADE"), nullable=False, index=True)
    grade_level = Column(String(50), nullable=False)
    academic_year = Column(String(9), nullable=False, index=True)  # e.g. "2024-2025"
    description = Column(String(255), nullable=True)
    amount = Column(Numeric(12, 2), nullable=False)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)

    school = relationship("School")
