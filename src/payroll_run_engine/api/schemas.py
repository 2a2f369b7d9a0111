"""Pydantic schemas for API request/response models.

Monetary fields are ``Decimal`` and serialize as JSON strings.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Any, Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


# ============================================================================
# Requests
# ============================================================================


class GenerateDraftRequest(BaseModel):
    """Schema for generating a draft payroll run."""

    entity: str = Field(min_length=1)
    payroll_period: date


class RejectRequest(BaseModel):
    """Schema for rejecting a run; the reason is validated by the workflow."""

    reason: str | None = None


class PaymentStatusRequest(BaseModel):
    """Disbursement outcome for one payslip."""

    payment_status: Literal["pending", "paid"]


# ============================================================================
# Payslip schemas
# ============================================================================


class ExceptionFlagResponse(BaseModel):
    """Schema for an exception flag attached to a payslip."""

    code: str
    message: str
    severity: Literal["warn", "error"]
    field: str | None = None


class EarningLineResponse(BaseModel):
    name: str
    amount: Decimal


class EarningsDetailsResponse(BaseModel):
    base_salary: Decimal
    allowances: list[EarningLineResponse] = []
    bonuses: list[EarningLineResponse] = []
    benefits: list[EarningLineResponse] = []
    refunds: list[EarningLineResponse] = []


class TaxLineResponse(BaseModel):
    name: str
    rate: Decimal
    amount: Decimal


class InsuranceLineResponse(BaseModel):
    name: str
    employee_rate: Decimal
    amount: Decimal


class PenaltyLineResponse(BaseModel):
    reason: str
    amount: Decimal


class PenaltiesResponse(BaseModel):
    penalties: list[PenaltyLineResponse] = []


class DeductionsDetailsResponse(BaseModel):
    taxes: list[TaxLineResponse] = []
    insurances: list[InsuranceLineResponse] = []
    penalties: PenaltiesResponse = PenaltiesResponse()


class PaySlipResponse(BaseModel):
    """Schema for one employee's payslip."""

    model_config = ConfigDict(from_attributes=True)

    payslip_id: UUID
    payroll_run_id: UUID
    employee_id: str
    earnings_details: EarningsDetailsResponse
    deductions_details: DeductionsDetailsResponse
    total_gross_salary: Decimal
    total_deductions: Decimal
    net_pay: Decimal
    exceptions_flags: list[ExceptionFlagResponse]
    has_exceptions: bool
    payment_status: str
    bank_status: str
    hr_events: list[str]
    calculation_id: UUID


class PaySlipListResponse(BaseModel):
    """Schema for listing the payslips of a run."""

    items: list[PaySlipResponse]
    total: int


class PayslipExceptionResponse(BaseModel):
    """One exception flag with the payslip it belongs to."""

    payslip_id: UUID
    employee_id: str
    code: str
    message: str
    severity: Literal["warn", "error"]
    field: str | None = None


class ExceptionListResponse(BaseModel):
    items: list[PayslipExceptionResponse]
    total: int


# ============================================================================
# Payroll run schemas
# ============================================================================


class RunWarningResponse(BaseModel):
    """Schema for a run-level warning (skipped employee)."""

    model_config = ConfigDict(from_attributes=True)

    employee_id: str
    code: str
    message: str


class PayrollRunResponse(BaseModel):
    """Schema for payroll run response."""

    model_config = ConfigDict(from_attributes=True)

    payroll_run_id: UUID
    run_id: str
    entity: str
    payroll_period: date
    status: str
    specialist_id: str
    manager_id: str | None = None
    finance_approver_id: str | None = None
    created_at: datetime
    manager_approval_date: datetime | None = None
    finance_approval_date: datetime | None = None
    locked_at: datetime | None = None
    employee_count: int
    exception_count: int
    total_net_pay: Decimal
    rejection_reason: str | None = None
    supersedes_run_id: UUID | None = None


class PayrollRunDetailResponse(PayrollRunResponse):
    """Payroll run with its run-level warnings."""

    warnings: list[RunWarningResponse] = []


class PayrollRunListResponse(BaseModel):
    """Schema for listing payroll runs."""

    items: list[PayrollRunResponse]
    total: int


class GenerateDraftResponse(BaseModel):
    """Schema for a generated draft."""

    payroll_run_id: UUID
    run: PayrollRunDetailResponse
    skipped_employees: list[str]


# ============================================================================
# Error schemas
# ============================================================================


class ErrorResponse(BaseModel):
    """Schema for error response."""

    detail: str
    code: str | None = None
    context: dict[str, Any] | None = None
