"""Arrears router: balances preview, recalculation, end-of-year run, settlement, listing, delete."""

from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from school_ledger.auth.dependencies import get_current_user
from school_ledger.auth.rbac import check_permission
from school_ledger.auth.schemas import CurrentUser
from school_ledger.core.enums import ArrearStatus
from school_ledger.core.exceptions import ServiceError
from school_ledger.db.session import get_db

from .schemas import (
    ACADEMIC_YEAR_PATTERN,
    AcademicYearRequest,
    ArrearListItem,
    ArrearResponse,
    ArrearSettlementResponse,
    ArrearUpdate,
    EndOfYearResponse,
    RecalculationResponse,
    StudentBalance,
)
from . import service

router = APIRouter(prefix="/api/v1/arrears", tags=["arrears"])


@router.get(
    "/balances",
    response_model=List[StudentBalance],
    dependencies=[Depends(check_permission("fees", "read"))],
)
async def read_balances(
    academic_year: str = Query(..., pattern=ACADEMIC_YEAR_PATTERN, description="e.g. 2024-2025"),
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> List[StudentBalance]:
    try:
        return await service.calculate_balances(db, current_user.school_id, academic_year)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.post(
    "/recalculate",
    response_model=RecalculationResponse,
    dependencies=[Depends(check_permission("fees", "create"))],
)
async def recalculate_arrears(
    payload: AcademicYearRequest,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> RecalculationResponse:
    """Replace the arrears carried from academic_year into the following year."""
    try:
        return await service.recalculate_arrears(
            db, current_user.school_id, payload.academic_year, created_by=current_user.id
        )
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.post(
    "/end-of-year",
    response_model=EndOfYearResponse,
    dependencies=[Depends(check_permission("fees", "create"))],
)
async def end_of_year(
    payload: AcademicYearRequest,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> EndOfYearResponse:
    try:
        return await service.run_end_of_year(
            db, current_user.school_id, payload.academic_year, created_by=current_user.id
        )
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get(
    "",
    response_model=List[ArrearListItem],
    dependencies=[Depends(check_permission("fees", "read"))],
)
async def list_arrears(
    arrear_status: Optional[ArrearStatus] = Query(None, alias="status"),
    academic_year_from: Optional[str] = Query(None),
    academic_year_to: Optional[str] = Query(None),
    search: Optional[str] = Query(None, description="Matches student name or student id"),
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> List[ArrearListItem]:
    return await service.list_arrears(
        db,
        current_user.school_id,
        status_filter=arrear_status,
        academic_year_from=academic_year_from,
        academic_year_to=academic_year_to,
        search=search,
    )


@router.get(
    "/{arrear_id}",
    response_model=ArrearResponse,
    dependencies=[Depends(check_permission("fees", "read"))],
)
async def get_arrear(
    arrear_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> ArrearResponse:
    result = await service.get_arrear(db, current_user.school_id, arrear_id)
    if not result:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Arrear record not found",
        )
    return result


@router.patch(
    "/{arrear_id}",
    response_model=ArrearSettlementResponse,
    dependencies=[Depends(check_permission("fees", "update"))],
)
async def update_arrear(
    arrear_id: UUID,
    payload: ArrearUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> ArrearSettlementResponse:
    """Record a payment against an arrear and/or change its status and notes."""
    try:
        return await service.settle_arrear(
            db,
            current_user.school_id,
            arrear_id,
            payload,
            received_by_id=current_user.id,
            received_by_name=current_user.full_name,
        )
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.delete(
    "/{arrear_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(check_permission("fees", "delete"))],
)
async def delete_arrear(
    arrear_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> Response:
    try:
        deleted = await service.delete_arrear(db, current_user.school_id, arrear_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    if not deleted:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Arrear record not found",
        )
    return Response(status_code=status.HTTP_204_NO_CONTENT)
