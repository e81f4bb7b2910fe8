"""Pydantic schemas for API request/response models.

Money fields are Decimals and serialize as strings.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


# ============================================================================
# Payroll cycle schemas
# ============================================================================


class PayrollCycleCreate(BaseModel):
    """Schema for creating a payroll cycle. The name is generated when omitted."""

    start_date: date
    end_date: date
    name: str | None = Field(default=None, max_length=200)


class PayrollCycleResponse(BaseModel):
    """Schema for payroll cycle response."""

    model_config = ConfigDict(from_attributes=True)

    cycle_id: UUID
    name: str
    start_date: date
    end_date: date
    status: str
    finalized_at: datetime | None = None
    finalized_by: str | None = None
    total_employees: int | None = None
    total_amount: Decimal | None = None
    created_by: str | None = None
    version: int
    created_at: datetime


class PayrollCycleListResponse(BaseModel):
    """Schema for listing payroll cycles."""

    items: list[PayrollCycleResponse]
    total: int


class ResetResponse(BaseModel):
    """Schema for the result of deleting a cycle's details."""

    cycle_id: UUID
    deleted: int


# ============================================================================
# Calculation schemas
# ============================================================================


class DayCalculationResponse(BaseModel):
    """One calendar day of an employee's calculation."""

    work_date: date
    hours: Decimal
    method: str
    pay: Decimal


class EmployeeCalculationResponse(BaseModel):
    """Aggregated figures for one employee."""

    employee_id: UUID
    total_hours: Decimal
    total_days_worked: int
    base_pay: Decimal
    calculation_method: str
    daily_breakdown: list[DayCalculationResponse]


class CalculationResponse(BaseModel):
    """Schema for cycle calculation results."""

    cycle_id: UUID
    total_employees: int
    total_hours: Decimal
    total_base_pay: Decimal
    details_created: int
    details_updated: int
    details_zeroed: int
    employees: list[EmployeeCalculationResponse]


# ============================================================================
# Summary schemas
# ============================================================================


class SummaryTotalsResponse(BaseModel):
    total_employees: int
    total_base_pay: Decimal
    total_overtime_pay: Decimal
    total_bonus: Decimal
    total_deduction: Decimal
    total_net_pay: Decimal
    average_net_pay: Decimal


class ValidationIssueResponse(BaseModel):
    type: str
    employee_id: UUID
    employee_name: str | None = None
    employee_code: str | None = None
    detail_id: UUID | None = None
    net_pay: Decimal | None = None


class SummaryValidationResponse(BaseModel):
    can_finalize: bool
    issues_count: int
    counts_by_type: dict[str, int]
    issues: list[ValidationIssueResponse]


class BranchBreakdownResponse(BaseModel):
    branch_key: str
    branch_name: str
    employee_count: int
    total_base_pay: Decimal
    total_overtime_pay: Decimal
    total_bonus: Decimal
    total_deduction: Decimal
    total_net_pay: Decimal


class SummaryResponse(BaseModel):
    """Schema for a cycle summary. Always computed fresh."""

    cycle_id: UUID
    name: str
    status: str
    start_date: date
    end_date: date
    version: int
    totals: SummaryTotalsResponse
    validation: SummaryValidationResponse
    branch_breakdown: list[BranchBreakdownResponse]
    employee_details: list[dict[str, Any]]
    finalization: dict[str, Any] | None = None


# ============================================================================
# Finalization schemas
# ============================================================================


class FinalizeRequest(BaseModel):
    """Optional body for finalization."""

    expected_version: int | None = None


class FinalizationResponse(BaseModel):
    """Schema for finalization result."""

    finalization_id: UUID
    cycle_id: UUID
    finalized_at: datetime
    finalized_by: str
    total_employees: int
    total_amount: Decimal
    cycle_version: int


# ============================================================================
# Payroll detail schemas
# ============================================================================


class PayrollDetailResponse(BaseModel):
    """Schema for payroll detail response."""

    model_config = ConfigDict(from_attributes=True)

    detail_id: UUID
    cycle_id: UUID
    employee_id: UUID
    base_pay: Decimal
    overtime_pay: Decimal
    bonus: Decimal
    bonus_reason: str
    deduction: Decimal
    deduction_reason: str
    net_pay: Decimal
    total_hours: Decimal
    total_days_worked: int
    calculation_method: str
    hourly_rate_used: Decimal
    daily_rate_used: Decimal
    version: int
    updated_at: datetime


class AdjustmentRequest(BaseModel):
    """Schema for setting a bonus or deduction.

    ``amount`` is validated by the engine so that bad values are reported
    with the same error shape as every other validation failure.
    """

    amount: Any
    reason: str | None = None
    expected_version: int | None = None


class PreviewRequest(BaseModel):
    """Proposed amounts for a net pay preview."""

    bonus: Any = None
    deduction: Any = None


class PayFiguresResponse(BaseModel):
    base_pay: Decimal
    overtime_pay: Decimal
    bonus: Decimal
    bonus_reason: str
    deduction: Decimal
    deduction_reason: str
    net_pay: Decimal


class PreviewResponse(BaseModel):
    """Schema for a net pay preview. Nothing is written."""

    current: PayFiguresResponse
    proposed: PayFiguresResponse
    net_pay: Decimal
    difference: Decimal
    breakdown: list[str]
    warning: str | None = None


# ============================================================================
# Error schemas
# ============================================================================


class ErrorResponse(BaseModel):
    """Schema for error response."""

    detail: str
    code: str | None = None
    field: str | None = None
    issues: list[ValidationIssueResponse] | None = None
