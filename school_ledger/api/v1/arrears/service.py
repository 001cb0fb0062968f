"""Arrears service: balance calculation, ledger recalculation, settlement, listing and end-of-year run."""

import logging
import time
from datetime import date
from typing import List, Optional
from uuid import UUID

from fastapi import status
from sqlalchemy import delete, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

from school_ledger.core.enums import GRADUATED, ArrearStatus
from school_ledger.core.exceptions import ArrearConflictError, ServiceError
from school_ledger.core.models import FeeItem, FeePayment, School, Student, StudentArrear

from .ledger import (
    ZERO,
    academic_year_window,
    arrear_candidates,
    compute_balances,
    next_academic_year,
    next_grade_level,
    remaining_after_payment,
    resolve_settlement_status,
    round2,
    to_decimal,
)
from .schemas import (
    ArrearListItem,
    ArrearResponse,
    ArrearSettlementResponse,
    ArrearUpdate,
    EndOfYearResponse,
    PaymentReceipt,
    RecalculationResponse,
    StudentBalance,
)

logger = logging.getLogger(__name__)

ARREARS_TERM = "Arrears"


def _arrear_to_response(arrear: StudentArrear) -> ArrearResponse:
    return ArrearResponse(
        id=arrear.id,
        school_id=arrear.school_id,
        student_id_display=arrear.student_id_display,
        student_name=arrear.student_name,
        grade_level_at_arrear=arrear.grade_level_at_arrear,
        academic_year_from=arrear.academic_year_from,
        academic_year_to=arrear.academic_year_to,
        amount=to_decimal(arrear.amount),
        status=arrear.status,
        notes=arrear.notes,
        version=arrear.version,
        created_at=arrear.created_at,
        updated_at=arrear.updated_at,
    )


async def _get_school(db: AsyncSession, school_id: UUID) -> School:
    school = await db.get(School, school_id)
    if not school:
        raise ServiceError("School not found", status.HTTP_404_NOT_FOUND)
    return school


async def _get_arrear(db: AsyncSession, school_id: UUID, arrear_id: UUID) -> Optional[StudentArrear]:
    return (
        await db.execute(
            select(StudentArrear).where(
                StudentArrear.id == arrear_id,
                StudentArrear.school_id == school_id,
            )
        )
    ).scalar_one_or_none()


# --- Balance Calculator ---
async def calculate_balances(
    db: AsyncSession,
    school_id: UUID,
    academic_year: str,
) -> List[StudentBalance]:
    """Due, paid and balance for every student of the school in academic_year."""
    window_start, window_end = academic_year_window(academic_year)
    await _get_school(db, school_id)

    students = (
        await db.execute(
            select(Student)
            .where(Student.school_id == school_id)
            .order_by(Student.student_id_display)
        )
    ).scalars().all()
    fee_rows = (
        await db.execute(
            select(FeeItem.grade_level, FeeItem.amount).where(
                FeeItem.school_id == school_id,
                FeeItem.academic_year == academic_year,
            )
        )
    ).all()
    payment_rows = (
        await db.execute(
            select(FeePayment.student_id_display, FeePayment.amount_paid).where(
                FeePayment.school_id == school_id,
                FeePayment.payment_date >= window_start,
                FeePayment.payment_date <= window_end,
            )
        )
    ).all()
    return compute_balances(students, fee_rows, payment_rows)


# --- Ledger Writer ---
async def _replace_arrears(
    db: AsyncSession,
    school_id: UUID,
    academic_year: str,
    candidates: List[StudentBalance],
    created_by: Optional[UUID],
) -> RecalculationResponse:
    """Delete the year pair's arrears and insert the candidates. Caller owns the commit."""
    year_to = next_academic_year(academic_year)
    await db.execute(
        delete(StudentArrear).where(
            StudentArrear.school_id == school_id,
            StudentArrear.academic_year_from == academic_year,
            StudentArrear.academic_year_to == year_to,
        )
    )
    for c in candidates:
        db.add(
            StudentArrear(
                school_id=school_id,
                student_id_display=c.student_id_display,
                student_name=c.student_name,
                grade_level_at_arrear=c.grade_level,
                academic_year_from=academic_year,
                academic_year_to=year_to,
                amount=c.balance,
                status=ArrearStatus.outstanding.value,
                created_by_user_id=created_by,
            )
        )
    await db.flush()

    total = sum((c.balance for c in candidates), ZERO)
    if candidates:
        message = f"{len(candidates)} arrear(s) carried forward from {academic_year} to {year_to}"
    else:
        message = f"No arrears found for {academic_year}"
    return RecalculationResponse(
        success=True,
        message=message,
        academic_year_from=academic_year,
        academic_year_to=year_to,
        arrears_created=len(candidates),
        total_amount=total,
    )


async def recalculate_arrears(
    db: AsyncSession,
    school_id: UUID,
    academic_year: str,
    created_by: Optional[UUID] = None,
) -> RecalculationResponse:
    """
    Recompute arrears carried from academic_year into the next year.
    Delete and insert commit together; a failure leaves the previous ledger in place.
    """
    candidates = arrear_candidates(await calculate_balances(db, school_id, academic_year))
    try:
        result = await _replace_arrears(db, school_id, academic_year, candidates, created_by)
        await db.commit()
    except SQLAlchemyError:
        await db.rollback()
        logger.exception("Arrears recalculation failed for school %s year %s", school_id, academic_year)
        raise ServiceError("Failed to recalculate arrears", status.HTTP_500_INTERNAL_SERVER_ERROR)
    logger.info(
        "Recalculated arrears for school %s: %s -> %s, %d row(s), total %s",
        school_id, result.academic_year_from, result.academic_year_to,
        result.arrears_created, result.total_amount,
    )
    return result


# --- End of year ---
async def _promote_students(db: AsyncSession, school_id: UUID) -> int:
    students = (
        await db.execute(
            select(Student).where(
                Student.school_id == school_id,
                Student.grade_level != GRADUATED,
            )
        )
    ).scalars().all()
    promoted = 0
    for s in students:
        nxt = next_grade_level(s.grade_level)
        if nxt is None:
            continue
        s.grade_level = nxt
        promoted += 1
    await db.flush()
    return promoted


async def run_end_of_year(
    db: AsyncSession,
    school_id: UUID,
    academic_year: str,
    created_by: Optional[UUID] = None,
) -> EndOfYearResponse:
    """Carry academic_year's balances forward as arrears, then promote students one grade."""
    candidates = arrear_candidates(await calculate_balances(db, school_id, academic_year))
    try:
        result = await _replace_arrears(db, school_id, academic_year, candidates, created_by)
        promoted = await _promote_students(db, school_id)
        await db.commit()
    except SQLAlchemyError:
        await db.rollback()
        logger.exception("End of year process failed for school %s year %s", school_id, academic_year)
        raise ServiceError("End of year process failed", status.HTTP_500_INTERNAL_SERVER_ERROR)
    logger.info(
        "End of year %s for school %s: %d arrear(s), %d student(s) promoted",
        academic_year, school_id, result.arrears_created, promoted,
    )
    return EndOfYearResponse(
        **result.model_dump(),
        students_promoted=promoted,
    )


# --- Settlement Processor ---
async def settle_arrear(
    db: AsyncSession,
    school_id: UUID,
    arrear_id: UUID,
    payload: ArrearUpdate,
    received_by_id: Optional[UUID] = None,
    received_by_name: Optional[str] = None,
) -> ArrearSettlementResponse:
    """
    Apply amount_paid_now against an arrear and/or change its status and notes.

    Paying more than the arrear requires an explicit cleared or waived status. The payment row
    and the arrear update commit together. A stale version is rejected with 409.
    """
    amount = to_decimal(payload.amount_paid_now)
    if not amount.is_finite() or amount < 0:
        raise ServiceError("Payment amount must be a finite number of at least 0", status.HTTP_400_BAD_REQUEST)
    # Payments are kept in whole cents, like the Numeric(12, 2) columns that store them
    amount = round2(amount)

    arrear = await _get_arrear(db, school_id, arrear_id)
    if not arrear:
        raise ServiceError("Arrear record not found", status.HTTP_404_NOT_FOUND)
    if payload.expected_version is not None and payload.expected_version != arrear.version:
        raise ArrearConflictError("Arrear was modified by another user; reload and try again")

    original = to_decimal(arrear.amount)
    if amount > original and payload.status not in (ArrearStatus.cleared, ArrearStatus.waived):
        logger.warning(
            "Rejected overpayment of %s against arrear %s (outstanding %s)", amount, arrear_id, original
        )
        raise ServiceError(
            "Payment exceeds the outstanding arrear. Set status to cleared or waived to record it.",
            status.HTTP_400_BAD_REQUEST,
        )
    school = await _get_school(db, school_id)

    remaining = remaining_after_payment(original, amount)
    final_status = resolve_settlement_status(
        original, amount, remaining, payload.status, ArrearStatus(arrear.status)
    )
    notes = payload.notes if payload.notes is not None else arrear.notes

    receipt: Optional[PaymentReceipt] = None
    try:
        if amount > 0:
            today = date.today()
            payment_id_display = f"AR-{int(time.time() * 1000)}"
            method = payload.payment_method.strip()
            db.add(
                FeePayment(
                    school_id=school_id,
                    payment_id_display=payment_id_display,
                    student_id_display=arrear.student_id_display,
                    student_name=arrear.student_name,
                    grade_level=arrear.grade_level_at_arrear,
                    amount_paid=amount,
                    payment_date=today,
                    payment_method=method,
                    term_paid_for=ARREARS_TERM,
                    notes=f"Payment towards arrear from {arrear.academic_year_from}. {payload.notes or ''}".strip(),
                    received_by_name=received_by_name,
                    received_by_user_id=received_by_id,
                )
            )
            receipt = PaymentReceipt(
                payment_id=payment_id_display,
                student_id=arrear.student_id_display,
                student_name=arrear.student_name,
                grade_level=arrear.grade_level_at_arrear,
                amount_paid=amount,
                payment_date=today,
                payment_method=method,
                term_paid_for=ARREARS_TERM,
                notes=f"Payment for arrear from {arrear.academic_year_from}.",
                school_name=school.name or "School",
                school_location=school.address or "N/A",
                school_logo_url=school.logo_url,
                received_by=received_by_name or "Admin",
            )
        arrear.amount = remaining
        arrear.status = final_status.value
        arrear.notes = notes
        await db.commit()
    except StaleDataError:
        await db.rollback()
        logger.warning("Concurrent update rejected for arrear %s", arrear_id)
        raise ArrearConflictError("Arrear was modified by another user; reload and try again")
    except SQLAlchemyError:
        await db.rollback()
        logger.exception("Failed to settle arrear %s", arrear_id)
        raise ServiceError("Failed to update arrear", status.HTTP_500_INTERNAL_SERVER_ERROR)

    await db.refresh(arrear)
    logger.info(
        "Arrear %s settled: paid %s, remaining %s, status %s", arrear_id, amount, remaining, final_status.value
    )
    return ArrearSettlementResponse(
        success=True,
        message="Arrear updated successfully.",
        arrear=_arrear_to_response(arrear),
        receipt=receipt,
    )


# --- Listing / delete ---
async def list_arrears(
    db: AsyncSession,
    school_id: UUID,
    status_filter: Optional[ArrearStatus] = None,
    academic_year_from: Optional[str] = None,
    academic_year_to: Optional[str] = None,
    search: Optional[str] = None,
) -> List[ArrearListItem]:
    """School arrears with each student's current grade level ("N/A" if the student is gone)."""
    stmt = select(StudentArrear).where(StudentArrear.school_id == school_id)
    if status_filter is not None:
        stmt = stmt.where(StudentArrear.status == status_filter.value)
    if academic_year_from:
        stmt = stmt.where(StudentArrear.academic_year_from == academic_year_from)
    if academic_year_to:
        stmt = stmt.where(StudentArrear.academic_year_to == academic_year_to)
    term = (search or "").strip()
    if term:
        # Search text is literal; LIKE wildcards typed by the user are escaped
        escaped = term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
        pattern = f"%{escaped}%"
        stmt = stmt.where(
            or_(
                StudentArrear.student_name.ilike(pattern, escape="\\"),
                StudentArrear.student_id_display.ilike(pattern, escape="\\"),
            )
        )
    stmt = stmt.order_by(StudentArrear.academic_year_from.desc(), StudentArrear.student_name)
    arrears = (await db.execute(stmt)).scalars().all()

    grade_rows = (
        await db.execute(
            select(Student.student_id_display, Student.grade_level).where(Student.school_id == school_id)
        )
    ).all()
    grade_map = {sid: grade for sid, grade in grade_rows}
    return [
        ArrearListItem(
            **_arrear_to_response(a).model_dump(),
            current_grade_level=grade_map.get(a.student_id_display, "N/A"),
        )
        for a in arrears
    ]


async def get_arrear(db: AsyncSession, school_id: UUID, arrear_id: UUID) -> Optional[ArrearResponse]:
    arrear = await _get_arrear(db, school_id, arrear_id)
    return _arrear_to_response(arrear) if arrear else None


async def delete_arrear(db: AsyncSession, school_id: UUID, arrear_id: UUID) -> bool:
    arrear = await _get_arrear(db, school_id, arrear_id)
    if not arrear:
        return False
    try:
        await db.delete(arrear)
        await db.commit()
    except SQLAlchemyError:
        await db.rollback()
        logger.exception("Failed to delete arrear %s", arrear_id)
        raise ServiceError("Failed to delete arrear", status.HTTP_500_INTERNAL_SERVER_ERROR)
    logger.info("Deleted arrear %s for school %s", arrear_id, school_id)
    return True
