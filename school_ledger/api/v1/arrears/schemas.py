"""Arrears schemas."""

from datetime import date, datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field

from school_ledger.core.enums import ArrearStatus

ACADEMIC_YEAR_PATTERN = r"^\d{4}-\d{4}$"


class AcademicYearRequest(BaseModel):
    """Source academic year of a recalculation or end-of-year run."""

    academic_year: str = Field(..., pattern=ACADEMIC_YEAR_PATTERN, description="e.g. 2024-2025")


# --- Balances ---
class StudentBalance(BaseModel):
    """Amount due, paid and outstanding for one student in one academic year."""

    student_id_display: str
    student_name: str
    grade_level: str
    due: Decimal
    paid: Decimal
    balance: Decimal


class RecalculationResponse(BaseModel):
    success: bool
    message: str
    academic_year_from: str
    academic_year_to: str
    arrears_created: int
    total_amount: Decimal


class EndOfYearResponse(RecalculationResponse):
    students_promoted: int


# --- Arrears ---
class ArrearResponse(BaseModel):
    id: UUID
    school_id: UUID
    student_id_display: str
    student_name: str
    grade_level_at_arrear: str
    academic_year_from: str
    academic_year_to: str
    amount: Decimal
    status: ArrearStatus
    notes: Optional[str] = None
    version: int
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class ArrearListItem(ArrearResponse):
    current_grade_level: str = "N/A"


class ArrearUpdate(BaseModel):
    """Settle an arrear (amount_paid_now) and/or change its status and notes."""

    status: Optional[ArrearStatus] = Field(
        None, description="Omit to keep the current status; cleared or waived acknowledges an overpayment"
    )
    notes: Optional[str] = None
    amount_paid_now: Optional[Decimal] = Field(None, ge=0)
    payment_method: str = Field("Cash", min_length=1, max_length=30)
    expected_version: Optional[int] = Field(
        None, description="Version the client last saw; a mismatch rejects the update"
    )


# --- Receipt ---
class PaymentReceipt(BaseModel):
    """Printable receipt for a payment recorded against an arrear."""

    payment_id: str
    student_id: str
    student_name: str
    grade_level: str
    amount_paid: Decimal
    payment_date: date
    payment_method: str
    term_paid_for: str
    notes: Optional[str] = None
    school_name: str
    school_location: str
    school_logo_url: Optional[str] = None
    received_by: str


class ArrearSettlementResponse(BaseModel):
    success: bool
    message: str
    arrear: ArrearResponse
    receipt: Optional[PaymentReceipt] = None
