"""Payroll run API endpoints."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Path, Query, status

from payroll_run_engine.api.dependencies import Approvals, CurrentActor, RunService
from payroll_run_engine.api.schemas import (
    ErrorResponse,
    ExceptionListResponse,
    GenerateDraftRequest,
    GenerateDraftResponse,
    PaymentStatusRequest,
    PayrollRunDetailResponse,
    PayrollRunListResponse,
    PayrollRunResponse,
    PayslipExceptionResponse,
    PaySlipListResponse,
    PaySlipResponse,
    RejectRequest,
)
from payroll_run_engine.services import DraftResult, PayrollRunStatus

router = APIRouter(prefix="/payroll", tags=["payroll-runs"])

_NOT_FOUND = {404: {"model": ErrorResponse}}
_CONFLICT = {404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}}

RunId = Annotated[UUID, Path()]


def _draft_response(result: DraftResult) -> GenerateDraftResponse:
    return GenerateDraftResponse(
        payroll_run_id=result.run.payroll_run_id,
        run=PayrollRunDetailResponse.model_validate(result.run),
        skipped_employees=result.skipped_employee_ids,
    )


# ============================================================================
# Draft generation
# ============================================================================


@router.post(
    "/generate-draft",
    response_model=GenerateDraftResponse,
    status_code=status.HTTP_201_CREATED,
    responses={409: {"model": ErrorResponse}},
)
async def generate_draft(
    service: RunService,
    actor: CurrentActor,
    payload: GenerateDraftRequest,
) -> GenerateDraftResponse:
    """Generate a draft run for every employee of an entity for one month."""
    result = await service.generate_draft(payload.entity, payload.payroll_period, actor)
    return _draft_response(result)


@router.post(
    "/runs/{payroll_run_id}/regenerate",
    response_model=GenerateDraftResponse,
    status_code=status.HTTP_201_CREATED,
    responses=_CONFLICT,
)
async def regenerate_draft(
    service: RunService,
    actor: CurrentActor,
    payroll_run_id: RunId,
) -> GenerateDraftResponse:
    """Create a new draft superseding a rejected run."""
    result = await service.regenerate_draft(payroll_run_id, actor)
    return _draft_response(result)


# ============================================================================
# Queries
# ============================================================================


@router.get("/runs", response_model=PayrollRunListResponse)
async def list_runs(
    service: RunService,
    entity: str | None = None,
    status_filter: Annotated[PayrollRunStatus | None, Query(alias="status")] = None,
) -> PayrollRunListResponse:
    """List payroll runs, newest period first."""
    runs = await service.list_runs(entity=entity, status=status_filter)
    return PayrollRunListResponse(
        items=[PayrollRunResponse.model_validate(r) for r in runs],
        total=len(runs),
    )


@router.get(
    "/runs/{payroll_run_id}",
    response_model=PayrollRunDetailResponse,
    responses=_NOT_FOUND,
)
async def get_run(service: RunService, payroll_run_id: RunId) -> PayrollRunDetailResponse:
    """Get a run with its summary and warnings."""
    run = await service.get_run(payroll_run_id)
    return PayrollRunDetailResponse.model_validate(run)


@router.get(
    "/runs/{payroll_run_id}/employees",
    response_model=PaySlipListResponse,
    responses=_NOT_FOUND,
)
async def get_run_employees(
    service: RunService,
    payroll_run_id: RunId,
    only_exceptions: bool = False,
) -> PaySlipListResponse:
    """List the payslips of a run."""
    payslips = await service.get_run_employees(payroll_run_id, only_exceptions=only_exceptions)
    return PaySlipListResponse(
        items=[PaySlipResponse.model_validate(p) for p in payslips],
        total=len(payslips),
    )


@router.get(
    "/runs/{payroll_run_id}/employees/{employee_id}",
    response_model=PaySlipResponse,
    responses=_NOT_FOUND,
)
async def get_payslip(
    service: RunService,
    payroll_run_id: RunId,
    employee_id: str,
) -> PaySlipResponse:
    payslip = await service.get_payslip(payroll_run_id, employee_id)
    return PaySlipResponse.model_validate(payslip)


@router.get(
    "/runs/{payroll_run_id}/exceptions",
    response_model=ExceptionListResponse,
    responses=_NOT_FOUND,
)
async def get_exceptions(
    service: RunService,
    payroll_run_id: RunId,
    employee_id: str | None = None,
) -> ExceptionListResponse:
    """Flattened exception flags of a run."""
    exceptions = await service.get_exceptions(payroll_run_id, employee_id=employee_id)
    return ExceptionListResponse(
        items=[
            PayslipExceptionResponse(
                payslip_id=e.payslip_id,
                employee_id=e.employee_id,
                code=e.flag.code,
                message=e.flag.message,
                severity=e.flag.severity.value,
                field=e.flag.field,
            )
            for e in exceptions
        ],
        total=len(exceptions),
    )


# ============================================================================
# Approval workflow
# ============================================================================


@router.post(
    "/runs/{payroll_run_id}/publish",
    response_model=PayrollRunResponse,
    responses=_CONFLICT,
)
async def publish_run(
    approvals: Approvals,
    actor: CurrentActor,
    payroll_run_id: RunId,
) -> PayrollRunResponse:
    """Send a draft to manager review."""
    run = await approvals.publish(payroll_run_id, actor)
    return PayrollRunResponse.model_validate(run)


@router.post(
    "/runs/{payroll_run_id}/manager-approve",
    response_model=PayrollRunResponse,
    responses=_CONFLICT,
)
async def manager_approve_run(
    approvals: Approvals,
    actor: CurrentActor,
    payroll_run_id: RunId,
) -> PayrollRunResponse:
    run = await approvals.manager_approve(payroll_run_id, actor)
    return PayrollRunResponse.model_validate(run)


@router.post(
    "/runs/{payroll_run_id}/finance-approve",
    response_model=PayrollRunResponse,
    responses=_CONFLICT,
)
async def finance_approve_run(
    approvals: Approvals,
    actor: CurrentActor,
    payroll_run_id: RunId,
) -> PayrollRunResponse:
    run = await approvals.finance_approve(payroll_run_id, actor)
    return PayrollRunResponse.model_validate(run)


@router.post(
    "/runs/{payroll_run_id}/reject",
    response_model=PayrollRunResponse,
    responses={**_CONFLICT, 422: {"model": ErrorResponse}},
)
async def reject_run(
    approvals: Approvals,
    actor: CurrentActor,
    payroll_run_id: RunId,
    payload: RejectRequest,
) -> PayrollRunResponse:
    """Reject a run; a non-empty reason is required."""
    run = await approvals.reject(payroll_run_id, actor, payload.reason)
    return PayrollRunResponse.model_validate(run)


@router.post(
    "/runs/{payroll_run_id}/lock",
    response_model=PayrollRunResponse,
    responses=_CONFLICT,
)
async def lock_run(
    approvals: Approvals,
    actor: CurrentActor,
    payroll_run_id: RunId,
) -> PayrollRunResponse:
    """Freeze an approved run. Terminal."""
    run = await approvals.lock(payroll_run_id, actor)
    return PayrollRunResponse.model_validate(run)


# ============================================================================
# Payslip maintenance
# ============================================================================


@router.post(
    "/runs/{payroll_run_id}/employees/{employee_id}/recalculate",
    response_model=PaySlipResponse,
    responses={**_CONFLICT, 422: {"model": ErrorResponse}},
)
async def recalculate_employee(
    service: RunService,
    actor: CurrentActor,
    payroll_run_id: RunId,
    employee_id: str,
) -> PaySlipResponse:
    """Re-resolve and recompute one payslip of a draft run."""
    payslip = await service.recalculate_employee(payroll_run_id, employee_id, actor)
    return PaySlipResponse.model_validate(payslip)


@router.post(
    "/runs/{payroll_run_id}/employees/{employee_id}/clear-exceptions",
    response_model=PaySlipResponse,
    responses=_CONFLICT,
)
async def clear_exceptions(
    service: RunService,
    actor: CurrentActor,
    payroll_run_id: RunId,
    employee_id: str,
) -> PaySlipResponse:
    payslip = await service.clear_exceptions(payroll_run_id, employee_id, actor)
    return PaySlipResponse.model_validate(payslip)


@router.post(
    "/runs/{payroll_run_id}/employees/{employee_id}/payment-status",
    response_model=PaySlipResponse,
    responses=_CONFLICT,
)
async def mark_payment_status(
    service: RunService,
    actor: CurrentActor,
    payroll_run_id: RunId,
    employee_id: str,
    payload: PaymentStatusRequest,
) -> PaySlipResponse:
    """Record the downstream disbursement outcome for a payslip."""
    payslip = await service.mark_payment_status(
        payroll_run_id, employee_id, payload.payment_status, actor
    )
    return PaySlipResponse.model_validate(payslip)
