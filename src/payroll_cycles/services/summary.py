"""Cycle summary: totals, validation issues and branch breakdown.

The summary is always derived from the current details; it is never
stored. Issues are collected, never raised. Finalization uses the same
summary as its gate.
"""

from __future__ import annotations

from collections.abc import Collection, Iterable, Mapping
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import TYPE_CHECKING, Any
from uuid import UUID

from payroll_cycles.calculators.rounding import ZERO, round_money, sum_money
from payroll_cycles.services.state_machine import CycleStatus

if TYPE_CHECKING:
    from payroll_cycles.models import (
        Branch,
        CycleFinalization,
        Employee,
        PayrollCycle,
        PayrollDetail,
    )

NO_BRANCH = "no_branch"
NO_BRANCH_NAME = "No branch"


class IssueType(str, Enum):
    NEGATIVE_NET_PAY = "negative_net_pay"
    MISSING_DATA = "missing_data"


@dataclass(frozen=True)
class EmployeeRef:
    """Identity and branch of an employee as shown in a summary."""

    employee_id: UUID
    full_name: str
    employee_code: str | None = None
    branch_id: UUID | None = None
    branch_name: str | None = None

    @classmethod
    def from_model(cls, employee: Employee, branch: Branch | None = None) -> EmployeeRef:
        return cls(
            employee_id=employee.employee_id,
            full_name=employee.full_name,
            employee_code=employee.employee_code,
            branch_id=employee.branch_id,
            branch_name=branch.name if branch is not None else None,
        )


@dataclass(frozen=True)
class ValidationIssue:
    """A condition that blocks finalization."""

    type: IssueType
    employee_id: UUID
    employee_name: str | None = None
    employee_code: str | None = None
    detail_id: UUID | None = None
    net_pay: Decimal | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type.value,
            "employee_id": str(self.employee_id),
            "employee_name": self.employee_name,
            "employee_code": self.employee_code,
            "detail_id": str(self.detail_id) if self.detail_id else None,
            "net_pay": str(self.net_pay) if self.net_pay is not None else None,
        }


@dataclass
class SummaryTotals:
    total_employees: int = 0
    total_base_pay: Decimal = ZERO
    total_overtime_pay: Decimal = ZERO
    total_bonus: Decimal = ZERO
    total_deduction: Decimal = ZERO
    total_net_pay: Decimal = ZERO
    average_net_pay: Decimal = ZERO

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_employees": self.total_employees,
            "total_base_pay": str(self.total_base_pay),
            "total_overtime_pay": str(self.total_overtime_pay),
            "total_bonus": str(self.total_bonus),
            "total_deduction": str(self.total_deduction),
            "total_net_pay": str(self.total_net_pay),
            "average_net_pay": str(self.average_net_pay),
        }


@dataclass
class SummaryValidation:
    can_finalize: bool
    issues: list[ValidationIssue] = field(default_factory=list)

    @property
    def issues_count(self) -> int:
        return len(self.issues)

    @property
    def counts_by_type(self) -> dict[str, int]:
        counts = {issue_type.value: 0 for issue_type in IssueType}
        for issue in self.issues:
            counts[issue.type.value] += 1
        return counts

    def to_dict(self) -> dict[str, Any]:
        return {
            "can_finalize": self.can_finalize,
            "issues_count": self.issues_count,
            "counts_by_type": self.counts_by_type,
            "issues": [issue.to_dict() for issue in self.issues],
        }


@dataclass
class BranchBreakdown:
    branch_key: str
    branch_name: str
    employee_count: int = 0
    total_base_pay: Decimal = ZERO
    total_overtime_pay: Decimal = ZERO
    total_bonus: Decimal = ZERO
    total_deduction: Decimal = ZERO
    total_net_pay: Decimal = ZERO

    def add(self, detail: PayrollDetail) -> None:
        self.employee_count += 1
        self.total_base_pay = round_money(self.total_base_pay + detail.base_pay)
        self.total_overtime_pay = round_money(self.total_overtime_pay + detail.overtime_pay)
        self.total_bonus = round_money(self.total_bonus + detail.bonus)
        self.total_deduction = round_money(self.total_deduction + detail.deduction)
        self.total_net_pay = round_money(self.total_net_pay + detail.net_pay)

    def to_dict(self) -> dict[str, Any]:
        return {
            "branch_key": self.branch_key,
            "branch_name": self.branch_name,
            "employee_count": self.employee_count,
            "total_base_pay": str(self.total_base_pay),
            "total_overtime_pay": str(self.total_overtime_pay),
            "total_bonus": str(self.total_bonus),
            "total_deduction": str(self.total_deduction),
            "total_net_pay": str(self.total_net_pay),
        }


@dataclass
class CycleSummary:
    cycle_id: UUID
    name: str
    status: str
    start_date: Any
    end_date: Any
    version: int
    totals: SummaryTotals
    validation: SummaryValidation
    branch_breakdown: list[BranchBreakdown] = field(default_factory=list)
    employee_details: list[dict[str, Any]] = field(default_factory=list)
    finalization: dict[str, Any] | None = None

    @property
    def can_finalize(self) -> bool:
        return self.validation.can_finalize

    @property
    def issues(self) -> list[ValidationIssue]:
        return self.validation.issues

    def snapshot(self) -> dict[str, Any]:
        """Totals, branch breakdown and per-employee figures for archiving."""
        return {
            "totals": self.totals.to_dict(),
            "branch_breakdown": [branch.to_dict() for branch in self.branch_breakdown],
            "employee_details": list(self.employee_details),
        }

    def to_dict(self) -> dict[str, Any]:
        data = {
            "cycle_id": str(self.cycle_id),
            "name": self.name,
            "status": self.status,
            "start_date": self.start_date.isoformat(),
            "end_date": self.end_date.isoformat(),
            "version": self.version,
            "validation": self.validation.to_dict(),
            "finalization": self.finalization,
        }
        data.update(self.snapshot())
        return data


def _detail_row(detail: PayrollDetail, employee: EmployeeRef | None) -> dict[str, Any]:
    return {
        "detail_id": str(detail.detail_id),
        "employee_id": str(detail.employee_id),
        "employee_name": employee.full_name if employee else None,
        "employee_code": employee.employee_code if employee else None,
        "branch_name": employee.branch_name if employee else None,
        "base_pay": str(detail.base_pay),
        "overtime_pay": str(detail.overtime_pay),
        "bonus": str(detail.bonus),
        "bonus_reason": detail.bonus_reason,
        "deduction": str(detail.deduction),
        "deduction_reason": detail.deduction_reason,
        "net_pay": str(detail.net_pay),
        "total_hours": str(detail.total_hours),
        "total_days_worked": detail.total_days_worked,
        "calculation_method": detail.calculation_method,
    }


def _issue(
    issue_type: IssueType,
    employee_id: UUID,
    employee: EmployeeRef | None,
    detail: PayrollDetail | None = None,
) -> ValidationIssue:
    return ValidationIssue(
        type=issue_type,
        employee_id=employee_id,
        employee_name=employee.full_name if employee else None,
        employee_code=employee.employee_code if employee else None,
        detail_id=detail.detail_id if detail is not None else None,
        net_pay=detail.net_pay if detail is not None else None,
    )


def collect_issues(
    status: str,
    details: Iterable[PayrollDetail],
    employees: Mapping[UUID, EmployeeRef],
    worked_employee_ids: Collection[UUID],
) -> list[ValidationIssue]:
    """Issues in detail order, then employees that worked without a detail."""
    issues: list[ValidationIssue] = []
    covered: set[UUID] = set()

    for detail in details:
        covered.add(detail.employee_id)
        employee = employees.get(detail.employee_id)
        if detail.net_pay < 0:
            issues.append(_issue(IssueType.NEGATIVE_NET_PAY, detail.employee_id, employee, detail))
        if employee is None or (detail.base_pay == 0 and detail.total_days_worked == 0):
            issues.append(_issue(IssueType.MISSING_DATA, detail.employee_id, employee, detail))

    # Uncalculated attendance only matters while the cycle can still change
    if status == CycleStatus.ACTIVE:
        for employee_id in sorted(set(worked_employee_ids) - covered, key=str):
            issues.append(
                _issue(IssueType.MISSING_DATA, employee_id, employees.get(employee_id))
            )

    return issues


def branch_breakdown(
    details: Iterable[PayrollDetail],
    employees: Mapping[UUID, EmployeeRef],
) -> list[BranchBreakdown]:
    """Group details by the employee's branch, ordered by branch name."""
    groups: dict[str, BranchBreakdown] = {}
    for detail in details:
        employee = employees.get(detail.employee_id)
        if employee is None or employee.branch_id is None:
            key, name = NO_BRANCH, NO_BRANCH_NAME
        else:
            key = str(employee.branch_id)
            name = employee.branch_name or key
        group = groups.get(key)
        if group is None:
            group = groups[key] = BranchBreakdown(branch_key=key, branch_name=name)
        group.add(detail)
    return sorted(groups.values(), key=lambda group: (group.branch_name, group.branch_key))


def summarize_totals(details: list[PayrollDetail]) -> SummaryTotals:
    count = len(details)
    total_net = sum_money(detail.net_pay for detail in details)
    return SummaryTotals(
        total_employees=count,
        total_base_pay=sum_money(detail.base_pay for detail in details),
        total_overtime_pay=sum_money(detail.overtime_pay for detail in details),
        total_bonus=sum_money(detail.bonus for detail in details),
        total_deduction=sum_money(detail.deduction for detail in details),
        total_net_pay=total_net,
        average_net_pay=round_money(total_net / count) if count else ZERO,
    )


def finalization_to_dict(finalization: CycleFinalization) -> dict[str, Any]:
    return {
        "finalization_id": str(finalization.finalization_id),
        "finalized_at": finalization.finalized_at.isoformat(),
        "finalized_by": finalization.finalized_by,
        "cycle_version": finalization.cycle_version,
        "totals": finalization.totals_json,
    }


def build_cycle_summary(
    cycle: PayrollCycle,
    details: Iterable[PayrollDetail],
    employees: Mapping[UUID, EmployeeRef],
    worked_employee_ids: Collection[UUID] = (),
    finalization: CycleFinalization | None = None,
) -> CycleSummary:
    """Build the summary of a cycle from its details.

    Args:
        cycle: The cycle being summarized
        details: All payroll details of the cycle
        employees: Employee identity keyed by id; ids missing from the
            mapping are treated as unknown employees
        worked_employee_ids: Employees with qualifying time entries in the
            cycle range
        finalization: Snapshot of a completed cycle, if any

    Returns:
        CycleSummary with totals, issues and branch breakdown
    """
    details = list(details)
    totals = summarize_totals(details)
    issues = collect_issues(cycle.status, details, employees, worked_employee_ids)

    can_finalize = (
        cycle.status == CycleStatus.ACTIVE
        and not issues
        and totals.total_employees > 0
    )

    return CycleSummary(
        cycle_id=cycle.cycle_id,
        name=cycle.name,
        status=cycle.status,
        start_date=cycle.start_date,
        end_date=cycle.end_date,
        version=cycle.version,
        totals=totals,
        validation=SummaryValidation(can_finalize=can_finalize, issues=issues),
        branch_breakdown=branch_breakdown(details, employees),
        employee_details=[
            _detail_row(detail, employees.get(detail.employee_id)) for detail in details
        ],
        finalization=finalization_to_dict(finalization) if finalization else None,
    )
