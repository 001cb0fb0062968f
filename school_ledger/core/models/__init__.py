from school_ledger.core.models.school import School
from school_ledger.core.models.student import Student
from school_ledger.core.models.fee_item import FeeItem
from school_ledger.core.models.fee_payment import FeePayment
from school_ledger.core.models.student_arrear import StudentArrear

__all__ = [
    "School",
    "Student",
    "FeeItem",
    "FeePayment",
    "StudentArrear",
]

# Registers User/Role with the mapper so relationships on School and the ledger rows resolve
from school_ledger.auth.models import Role, User  # noqa: E402,F401
