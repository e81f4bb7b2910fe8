"""Payroll cycle API endpoints."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Path, status

from payroll_cycles.api.dependencies import (
    ActorId,
    AppSettings,
    DbSession,
    OptionalActorId,
    Repository,
)
from payroll_cycles.api.schemas import (
    CalculationResponse,
    ErrorResponse,
    FinalizationResponse,
    FinalizeRequest,
    PayrollCycleCreate,
    PayrollCycleListResponse,
    PayrollCycleResponse,
    ResetResponse,
    SummaryResponse,
)
from payroll_cycles.services.cycle_service import CycleService
from payroll_cycles.services.finalization_service import FinalizationService

router = APIRouter(prefix="/payroll-cycles", tags=["payroll-cycles"])

CycleIdPath = Annotated[UUID, Path()]


# ============================================================================
# Payroll cycle CRUD
# ============================================================================


@router.post(
    "",
    response_model=PayrollCycleResponse,
    status_code=status.HTTP_201_CREATED,
    responses={422: {"model": ErrorResponse}},
)
async def create_payroll_cycle(
    db: DbSession,
    repository: Repository,
    settings: AppSettings,
    actor_id: OptionalActorId,
    payload: PayrollCycleCreate,
) -> PayrollCycleResponse:
    """Create an active payroll cycle."""
    service = CycleService(repository, settings)
    cycle = await service.create_cycle(
        payload.start_date,
        payload.end_date,
        name=payload.name,
        actor_id=actor_id,
    )
    await db.commit()
    return PayrollCycleResponse.model_validate(cycle)


@router.get("", response_model=PayrollCycleListResponse)
async def list_payroll_cycles(
    repository: Repository,
    settings: AppSettings,
) -> PayrollCycleListResponse:
    """List payroll cycles, newest first."""
    cycles = await CycleService(repository, settings).list_cycles()
    return PayrollCycleListResponse(
        items=[PayrollCycleResponse.model_validate(cycle) for cycle in cycles],
        total=len(cycles),
    )


@router.get(
    "/{cycle_id}",
    response_model=PayrollCycleResponse,
    responses={404: {"model": ErrorResponse}},
)
async def get_payroll_cycle(
    repository: Repository,
    settings: AppSettings,
    cycle_id: CycleIdPath,
) -> PayrollCycleResponse:
    """Get a specific payroll cycle by ID."""
    cycle = await CycleService(repository, settings).get_cycle(cycle_id)
    return PayrollCycleResponse.model_validate(cycle)


# ============================================================================
# Calculation
# ============================================================================


@router.post(
    "/{cycle_id}/calculate",
    response_model=CalculationResponse,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}, 423: {"model": ErrorResponse}},
)
async def calculate_payroll_cycle(
    db: DbSession,
    repository: Repository,
    settings: AppSettings,
    actor_id: OptionalActorId,
    cycle_id: CycleIdPath,
) -> CalculationResponse:
    """Calculate base pay for every employee with worked days.

    Safe to repeat: bonuses, deductions and their reasons are preserved.
    """
    result = await CycleService(repository, settings).calculate(cycle_id, actor_id=actor_id)
    await db.commit()
    return CalculationResponse.model_validate(result.to_dict())


@router.delete(
    "/{cycle_id}/details",
    response_model=ResetResponse,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}, 423: {"model": ErrorResponse}},
)
async def reset_payroll_cycle(
    db: DbSession,
    repository: Repository,
    settings: AppSettings,
    actor_id: OptionalActorId,
    cycle_id: CycleIdPath,
) -> ResetResponse:
    """Delete all payroll details of an active cycle."""
    deleted = await CycleService(repository, settings).reset(cycle_id, actor_id=actor_id)
    await db.commit()
    return ResetResponse(cycle_id=cycle_id, deleted=deleted)


# ============================================================================
# Summary and finalization
# ============================================================================


@router.get(
    "/{cycle_id}/summary",
    response_model=SummaryResponse,
    responses={404: {"model": ErrorResponse}},
)
async def get_payroll_cycle_summary(
    repository: Repository,
    settings: AppSettings,
    cycle_id: CycleIdPath,
) -> SummaryResponse:
    """Totals, validation issues and branch breakdown for a cycle."""
    summary = await CycleService(repository, settings).get_summary(cycle_id)
    return SummaryResponse.model_validate(summary.to_dict())


@router.post(
    "/{cycle_id}/finalize",
    response_model=FinalizationResponse,
    responses={
        400: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        409: {"model": ErrorResponse},
    },
)
async def finalize_payroll_cycle(
    db: DbSession,
    repository: Repository,
    actor_id: ActorId,
    cycle_id: CycleIdPath,
    payload: FinalizeRequest | None = None,
) -> FinalizationResponse:
    """Finalize a cycle. Irreversible; the cycle is locked afterwards."""
    expected_version = payload.expected_version if payload else None
    record = await FinalizationService(repository).finalize(
        cycle_id, actor_id, expected_version=expected_version
    )
    await db.commit()
    return FinalizationResponse.model_validate(record.to_dict())
