"""Student arrear: unpaid balance carried forward from one academic year to the next."""

import uuid
from datetime import datetime

from sqlalchemy import CheckConstraint, Column, DateTime, ForeignKey, Integer, Numeric, String, Text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship

from school_ledger.core.enums import ArrearStatus
from school_ledger.db.session import Base


class StudentArrear(Base):
    """
    Carried-forward balance for one student and one (academic_year_from, academic_year_to) pair.

    Rows for a (school_id, academic_year_from, academic_year_to) triple belong to the latest
    recalculation run, which deletes and re-inserts the whole set. amount only decreases through
    settlements. version guards concurrent settlements (optimistic locking).
    """

    __tablename__ = "student_arrears"
    __table_args__ = (
        CheckConstraint("amount >= 0", name="chk_student_arrear_amount_non_negative"),
        CheckConstraint(
            "status IN ('outstanding','partially_paid','cleared','waived')",
            name="chk_student_arrear_status",
        ),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    school_id = Column(UUID(as_uuid=True), ForeignKey("schools.id", ondelete="CASCADE"), nullable=False, index=True)
    student_id_display = Column(String(50), nullable=False, index=True)
    student_name = Column(String(255), nullable=False)
    grade_level_at_arrear = Column(String(50), nullable=False)
    academic_year_from = Column(String(9), nullable=False)
    academic_year_to = Column(String(9), nullable=False)
    amount = Column(Numeric(12, 2), nullable=False)
    status = Column(String(20), nullable=False, default=ArrearStatus.outstanding.value)
    notes = Column(Text, nullable=True)
    created_by_user_id = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    version = Column(Integer, nullable=False)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    __mapper_args__ = {"version_id_col": version}

    school = relationship("School")
    created_by_user = relationship("User", foreign_keys=[created_by_user_id])
