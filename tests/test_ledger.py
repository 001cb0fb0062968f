"""Unit tests for the pure arrears arithmetic."""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal

import pytest

from school_ledger.api.v1.arrears.ledger import (
    academic_year_window,
    arrear_candidates,
    compute_balances,
    next_academic_year,
    next_grade_level,
    parse_academic_year,
    remaining_after_payment,
    resolve_settlement_status,
    round2,
)
from school_ledger.core.enums import ArrearStatus
from school_ledger.core.exceptions import ServiceError


@dataclass
class _Student:
    student_id_display: str
    full_name: str
    grade_level: str


def test_parse_academic_year() -> None:
    assert parse_academic_year("2024-2025") == (2024, 2025)


@pytest.mark.parametrize("value", ["2024/2025", "24-25", "2024-2025 ", "", "abcd-efgh"])
def test_parse_academic_year_rejects_malformed(value: str) -> None:
    with pytest.raises(ServiceError) as exc:
        parse_academic_year(value)
    assert exc.value.status_code == 400


def test_next_academic_year_increments_both_years() -> None:
    assert next_academic_year("2024-2025") == "2025-2026"
    assert next_academic_year("1999-2000") == "2000-2001"


def test_academic_year_window_runs_august_to_july() -> None:
    assert academic_year_window("2024-2025") == (date(2024, 8, 1), date(2025, 7, 31))


def test_fee_items_for_a_grade_are_summed() -> None:
    students = [_Student("S1", "Esi Owusu", "Basic 1")]
    fees = [("Basic 1", Decimal("800.00")), ("Basic 1", Decimal("200.00")), ("Basic 2", Decimal("50.00"))]
    [balance] = compute_balances(students, fees, [])
    assert balance.due == Decimal("1000.00")
    assert balance.paid == Decimal("0")
    assert balance.balance == Decimal("1000.00")


def test_balance_is_due_minus_paid_for_every_student() -> None:
    students = [
        _Student("S1", "Esi Owusu", "Basic 1"),
        _Student("S2", "Yaw Asante", "Basic 2"),
        _Student("S3", "Akosua Darko", "Basic 1"),
    ]
    fees = [("Basic 1", Decimal("1000.00"))]
    payments = [("S1", Decimal("250.00")), ("S1", Decimal("350.00")), ("S2", Decimal("75.00")), ("S3", Decimal("1200.00"))]
    balances = {b.student_id_display: b for b in compute_balances(students, fees, payments)}

    assert balances["S1"].balance == Decimal("400.00")
    # No fee item for Basic 2: nothing due, the payment makes the balance negative
    assert balances["S2"].due == Decimal("0")
    assert balances["S2"].balance == Decimal("-75.00")
    assert balances["S3"].balance == Decimal("-200.00")


def test_only_positive_balances_become_arrears() -> None:
    students = [
        _Student("S1", "Esi Owusu", "Basic 1"),
        _Student("S2", "Yaw Asante", "Basic 2"),
        _Student("S3", "Akosua Darko", "Basic 1"),
        _Student("S4", "Kwame Ofori", "Basic 1"),
    ]
    fees = [("Basic 1", Decimal("1000.00"))]
    payments = [("S1", Decimal("600.00")), ("S2", Decimal("75.00")), ("S3", Decimal("1000.00"))]
    candidates = arrear_candidates(compute_balances(students, fees, payments))
    assert [(c.student_id_display, c.balance) for c in candidates] == [
        ("S1", Decimal("400.00")),
        ("S4", Decimal("1000.00")),
    ]


def test_round2_and_remaining() -> None:
    assert round2(Decimal("10.005")) == Decimal("10.01")
    assert remaining_after_payment(Decimal("400.00"), Decimal("150.50")) == Decimal("249.50")
    assert remaining_after_payment(Decimal("400.00"), Decimal("500.00")) == Decimal("0")


def test_full_payment_clears() -> None:
    status = resolve_settlement_status(
        Decimal("400.00"), Decimal("400.00"), Decimal("0.00"), None, ArrearStatus.outstanding
    )
    assert status == ArrearStatus.cleared


def test_full_payment_keeps_explicit_waived() -> None:
    status = resolve_settlement_status(
        Decimal("400.00"), Decimal("400.00"), Decimal("0.00"), ArrearStatus.waived, ArrearStatus.outstanding
    )
    assert status == ArrearStatus.waived


def test_full_payment_on_already_waived_arrear_clears() -> None:
    status = resolve_settlement_status(
        Decimal("400.00"), Decimal("400.00"), Decimal("0.00"), None, ArrearStatus.waived
    )
    assert status == ArrearStatus.cleared


def test_partial_payment_on_outstanding_is_partially_paid() -> None:
    status = resolve_settlement_status(
        Decimal("400.00"), Decimal("100.00"), Decimal("300.00"), None, ArrearStatus.outstanding
    )
    assert status == ArrearStatus.partially_paid


def test_without_payment_requested_status_is_used_verbatim() -> None:
    for requested in ArrearStatus:
        assert resolve_settlement_status(
            Decimal("400.00"), Decimal("0"), Decimal("400.00"), requested, ArrearStatus.outstanding
        ) == requested
        assert resolve_settlement_status(
            Decimal("400.00"), Decimal("0"), Decimal("400.00"), None, requested
        ) == requested


def test_next_grade_level() -> None:
    assert next_grade_level("Basic 1") == "Basic 2"
    assert next_grade_level("KG 2") == "Basic 1"
    assert next_grade_level("JHS 3") == "Graduated"
    assert next_grade_level("Graduated") is None
    assert next_grade_level("Form 7") is None
