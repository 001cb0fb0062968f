"""
Pure arrears arithmetic: academic year parsing, payment windows, balance aggregation
and settlement status rules. No database access; the service feeds it plain rows.

Academic year "YYYY-YYYY" runs September to August; payments dated from August 1 of the
start year to July 31 of the end year (inclusive) count towards that year.
"""

import re
from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from typing import Dict, Iterable, List, Optional, Tuple

from fastapi import status

from school_ledger.core.enums import GRADE_LEVELS, GRADUATED, ArrearStatus
from school_ledger.core.exceptions import ServiceError

from .schemas import ACADEMIC_YEAR_PATTERN, StudentBalance

_ACADEMIC_YEAR_RE = re.compile(ACADEMIC_YEAR_PATTERN)

CENT = Decimal("0.01")
CLEARED_TOLERANCE = Decimal("0.001")
ZERO = Decimal("0")


def to_decimal(val) -> Decimal:
    if val is None:
        return ZERO
    return val if isinstance(val, Decimal) else Decimal(str(val))


def round2(value) -> Decimal:
    return to_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def parse_academic_year(value: str) -> Tuple[int, int]:
    if not isinstance(value, str) or not _ACADEMIC_YEAR_RE.fullmatch(value):
        raise ServiceError(
            "Academic year must be in the format YYYY-YYYY (e.g. 2024-2025)",
            status.HTTP_400_BAD_REQUEST,
        )
    start, end = value.split("-")
    return int(start), int(end)


def next_academic_year(value: str) -> str:
    """2024-2025 -> 2025-2026."""
    start, end = parse_academic_year(value)
    return f"{start + 1}-{end + 1}"


def academic_year_window(value: str) -> Tuple[date, date]:
    start, end = parse_academic_year(value)
    return date(start, 8, 1), date(end, 7, 31)


def compute_balances(
    students: Iterable,
    fee_rows: Iterable[Tuple[str, Decimal]],
    payment_rows: Iterable[Tuple[str, Decimal]],
) -> List[StudentBalance]:
    """
    One StudentBalance per student.

    students: objects with student_id_display, full_name and grade_level.
    fee_rows: (grade_level, amount); several rows for a grade are summed.
    payment_rows: (student_id_display, amount_paid), already limited to the year window.
    """
    fees_by_grade: Dict[str, Decimal] = {}
    for grade_level, amount in fee_rows:
        fees_by_grade[grade_level] = fees_by_grade.get(grade_level, ZERO) + to_decimal(amount)

    paid_by_student: Dict[str, Decimal] = {}
    for student_id_display, amount_paid in payment_rows:
        paid_by_student[student_id_display] = (
            paid_by_student.get(student_id_display, ZERO) + to_decimal(amount_paid)
        )

    out = []
    for s in students:
        due = fees_by_grade.get(s.grade_level, ZERO)
        paid = paid_by_student.get(s.student_id_display, ZERO)
        out.append(
            StudentBalance(
                student_id_display=s.student_id_display,
                student_name=s.full_name,
                grade_level=s.grade_level,
                due=due,
                paid=paid,
                balance=due - paid,
            )
        )
    return out


def arrear_candidates(balances: Iterable[StudentBalance]) -> List[StudentBalance]:
    """Positive balances only. Overpayments are dropped, never carried as credit."""
    return [b for b in balances if b.balance > 0]


def remaining_after_payment(original, amount_paid) -> Decimal:
    return max(ZERO, round2(to_decimal(original) - to_decimal(amount_paid)))


def resolve_settlement_status(
    original: Decimal,
    amount_paid: Decimal,
    remaining: Decimal,
    explicit: Optional[ArrearStatus],
    current: ArrearStatus,
) -> ArrearStatus:
    """
    Final arrear status after a settlement.

    explicit is the status the caller asked for (None when omitted); current is the arrear's
    status before the update. Only an explicit waived survives a payment that clears the
    balance. Without a payment the requested status is applied verbatim.
    """
    requested = explicit or current
    if amount_paid > 0 and remaining <= CLEARED_TOLERANCE:
        return ArrearStatus.waived if explicit == ArrearStatus.waived else ArrearStatus.cleared
    if amount_paid > 0 and ZERO < remaining < original and requested == ArrearStatus.outstanding:
        return ArrearStatus.partially_paid
    return requested


def next_grade_level(grade_level: str) -> Optional[str]:
    """Grade after grade_level on the ladder, or None when it stays (unknown or graduated)."""
    if grade_level == GRADUATED or grade_level not in GRADE_LEVELS:
        return None
    return GRADE_LEVELS[GRADE_LEVELS.index(grade_level) + 1]
