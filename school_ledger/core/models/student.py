import uuid
from datetime import datetime

from sqlalchemy import Column, DateTime, ForeignKey, String, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship

from school_ledger.db.session import Base


class Student(Base):
    """
    Enrolled student. grade_level changes on promotion; rows are never hard-deleted
    because arrears and payments reference student_id_display.
    """

    __tablename__ = "students"
    __table_args__ = (
        # Display id is the public student number, unique within a school
        UniqueConstraint("school_id", "student_id_display", name="uq_student_school_display_id"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    school_id = Column(UUID(as_uuid=True), ForeignKey("schools.id", ondelete="CASCADE"), nullable=False, index=True)
    student_id_display = Column(String(50), nullable=False)
    full_name = Column(String(255), nullable=False)
    grade_level = Column(String(50), nullable=False)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    school = relationship("School", back_populates="students")
