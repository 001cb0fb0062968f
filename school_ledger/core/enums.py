from enum import Enum


class ArrearStatus(str, Enum):
    outstanding = "outstanding"
    partially_paid = "partially_paid"
    cleared = "cleared"
    waived = "waived"


# Promotion order; a student advances one step per end-of-year run.
GRADE_LEVELS = [
    "Creche",
    "Nursery 1",
    "Nursery 2",
    "KG 1",
    "KG 2",
    "Basic 1",
    "Basic 2",
    "Basic 3",
    "Basic 4",
    "Basic 5",
    "Basic 6",
    "JHS 1",
    "JHS 2",
    "JHS 3",
    "Graduated",
]

GRADUATED = "Graduated"
