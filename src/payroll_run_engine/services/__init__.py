"""Payroll run engine services."""

from payroll_run_engine.services.state_machine import (
    Actor,
    ActorRole,
    InvalidTransitionError,
    PayrollAction,
    PayrollRunStateMachine,
    PayrollRunStatus,
    RejectionReasonRequiredError,
    RunLockedError,
)
from payroll_run_engine.services.input_resolver import (
    CompensationInputResolver,
    MissingEmployeeDataError,
)
from payroll_run_engine.services.payroll_run_service import (
    DraftResult,
    DuplicateRunError,
    PayrollRunNotFoundError,
    PayrollRunService,
)
from payroll_run_engine.services.approval_service import ApprovalService

__all__ = [
    "Actor",
    "ActorRole",
    "InvalidTransitionError",
    "PayrollAction",
    "PayrollRunStateMachine",
    "PayrollRunStatus",
    "RejectionReasonRequiredError",
    "RunLockedError",
    "CompensationInputResolver",
    "MissingEmployeeDataError",
    "DraftResult",
    "DuplicateRunError",
    "PayrollRunNotFoundError",
    "PayrollRunService",
    "ApprovalService",
]
