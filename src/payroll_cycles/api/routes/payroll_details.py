"""Payroll detail API endpoints: bonuses, deductions and previews."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Path, Query

from payroll_cycles.api.dependencies import (
    AppSettings,
    DbSession,
    OptionalActorId,
    Repository,
)
from payroll_cycles.api.schemas import (
    AdjustmentRequest,
    ErrorResponse,
    PayrollDetailResponse,
    PreviewRequest,
    PreviewResponse,
)
from payroll_cycles.errors import DetailNotFoundError
from payroll_cycles.services.adjustment_service import AdjustmentService

router = APIRouter(prefix="/payroll-details", tags=["payroll-details"])

DetailIdPath = Annotated[UUID, Path()]
ExpectedVersion = Annotated[int | None, Query()]

ADJUSTMENT_ERRORS = {
    404: {"model": ErrorResponse},
    409: {"model": ErrorResponse},
    422: {"model": ErrorResponse},
    423: {"model": ErrorResponse},
}


def _service(repository: Repository, settings: AppSettings) -> AdjustmentService:
    return AdjustmentService(repository, max_reason_length=settings.max_reason_length)


@router.get(
    "/{detail_id}",
    response_model=PayrollDetailResponse,
    responses={404: {"model": ErrorResponse}},
)
async def get_payroll_detail(
    repository: Repository,
    detail_id: DetailIdPath,
) -> PayrollDetailResponse:
    """Get a specific payroll detail by ID."""
    detail = await repository.get_detail(detail_id)
    if detail is None:
        raise DetailNotFoundError(detail_id)
    return PayrollDetailResponse.model_validate(detail)


# ============================================================================
# Bonus
# ============================================================================


@router.put("/{detail_id}/bonus", response_model=PayrollDetailResponse, responses=ADJUSTMENT_ERRORS)
async def set_bonus(
    db: DbSession,
    repository: Repository,
    settings: AppSettings,
    actor_id: OptionalActorId,
    detail_id: DetailIdPath,
    payload: AdjustmentRequest,
) -> PayrollDetailResponse:
    """Set the bonus of a detail. A positive amount needs a reason."""
    detail = await _service(repository, settings).set_bonus(
        detail_id,
        payload.amount,
        payload.reason,
        actor_id=actor_id,
        expected_version=payload.expected_version,
    )
    await db.commit()
    return PayrollDetailResponse.model_validate(detail)


@router.delete("/{detail_id}/bonus", response_model=PayrollDetailResponse, responses=ADJUSTMENT_ERRORS)
async def clear_bonus(
    db: DbSession,
    repository: Repository,
    settings: AppSettings,
    actor_id: OptionalActorId,
    detail_id: DetailIdPath,
    expected_version: ExpectedVersion = None,
) -> PayrollDetailResponse:
    """Remove the bonus of a detail."""
    detail = await _service(repository, settings).clear_bonus(
        detail_id, actor_id=actor_id, expected_version=expected_version
    )
    await db.commit()
    return PayrollDetailResponse.model_validate(detail)


# ============================================================================
# Deduction
# ============================================================================


@router.put(
    "/{detail_id}/deduction", response_model=PayrollDetailResponse, responses=ADJUSTMENT_ERRORS
)
async def set_deduction(
    db: DbSession,
    repository: Repository,
    settings: AppSettings,
    actor_id: OptionalActorId,
    detail_id: DetailIdPath,
    payload: AdjustmentRequest,
) -> PayrollDetailResponse:
    """Set the deduction of a detail. Net pay may become negative."""
    detail = await _service(repository, settings).set_deduction(
        detail_id,
        payload.amount,
        payload.reason,
        actor_id=actor_id,
        expected_version=payload.expected_version,
    )
    await db.commit()
    return PayrollDetailResponse.model_validate(detail)


@router.delete(
    "/{detail_id}/deduction", response_model=PayrollDetailResponse, responses=ADJUSTMENT_ERRORS
)
async def clear_deduction(
    db: DbSession,
    repository: Repository,
    settings: AppSettings,
    actor_id: OptionalActorId,
    detail_id: DetailIdPath,
    expected_version: ExpectedVersion = None,
) -> PayrollDetailResponse:
    """Remove the deduction of a detail."""
    detail = await _service(repository, settings).clear_deduction(
        detail_id, actor_id=actor_id, expected_version=expected_version
    )
    await db.commit()
    return PayrollDetailResponse.model_validate(detail)


# ============================================================================
# Preview
# ============================================================================


@router.post(
    "/{detail_id}/preview",
    response_model=PreviewResponse,
    responses={404: {"model": ErrorResponse}, 422: {"model": ErrorResponse}},
)
async def preview_net_pay(
    repository: Repository,
    settings: AppSettings,
    detail_id: DetailIdPath,
    payload: PreviewRequest,
) -> PreviewResponse:
    """Show the net pay a proposed bonus/deduction would produce. Read-only."""
    preview = await _service(repository, settings).preview(
        detail_id, bonus=payload.bonus, deduction=payload.deduction
    )
    return PreviewResponse.model_validate(preview.to_dict())
