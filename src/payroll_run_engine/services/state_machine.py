"""Payroll run approval state machine with role-gated transitions."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class PayrollRunStatus(str, Enum):
    """Payroll run status values."""

    DRAFT = "draft"
    UNDER_REVIEW = "under_review"
    PENDING_FINANCE_APPROVAL = "pending_finance_approval"
    APPROVED = "approved"
    REJECTED = "rejected"
    LOCKED = "locked"


class ActorRole(str, Enum):
    """Roles that act on a payroll run."""

    PAYROLL_SPECIALIST = "payroll_specialist"
    PAYROLL_MANAGER = "payroll_manager"
    FINANCE_STAFF = "finance_staff"


@dataclass(frozen=True)
class Actor:
    """The authenticated user performing an action."""

    actor_id: str
    role: ActorRole

    def __post_init__(self) -> None:
        object.__setattr__(self, "role", ActorRole(self.role))


class PayrollAction(str, Enum):
    """Lifecycle actions on a payroll run."""

    PUBLISH = "publish"
    MANAGER_APPROVE = "manager_approve"
    FINANCE_APPROVE = "finance_approve"
    REJECT = "reject"
    LOCK = "lock"
    REGENERATE = "regenerate"


class PayslipMutation(str, Enum):
    """Writes against the payslips of an existing run."""

    RECALCULATE = "recalculate"
    CLEAR_EXCEPTIONS = "clear_exceptions"
    PAYMENT_STATUS = "payment_status"


class InvalidTransitionError(Exception):
    """Raised when an action is not allowed from the run's status or for the actor's role."""

    def __init__(
        self,
        status: str,
        action: str,
        reason: str | None = None,
        role: str | None = None,
    ):
        self.status = _value(status)
        self.action = _value(action)
        self.role = _value(role) if role is not None else None
        self.reason = reason
        msg = f"Cannot {self.action} a payroll run in status '{self.status}'"
        if reason:
            msg += f": {reason}"
        super().__init__(msg)


class RunLockedError(InvalidTransitionError):
    """Raised on any write against a locked run or its payslips."""

    def __init__(self, action: str, run_id: object | None = None):
        self.run_id = run_id
        reason = "run is locked and immutable"
        if run_id is not None:
            reason = f"run {run_id} is locked and immutable"
        super().__init__(PayrollRunStatus.LOCKED, action, reason)


class RejectionReasonRequiredError(ValueError):
    """Raised when a rejection has no reason."""

    def __init__(self) -> None:
        super().__init__("A non-empty rejection reason is required")


class PayrollRunStateMachine:
    """State machine for payroll run lifecycle.

    Allowed transitions (action, role):
    - draft → under_review                      (publish, specialist)
    - under_review → pending_finance_approval   (manager_approve, manager)
    - under_review → rejected                   (reject, manager)
    - pending_finance_approval → approved       (finance_approve, finance)
    - pending_finance_approval → rejected       (reject, finance)
    - approved → locked                         (lock, manager)
    - rejected → draft                          (regenerate, specialist; new run)

    Locked is terminal.
    """

    # {(from_status, action): (allowed_roles, to_status)}
    TRANSITIONS: dict[
        tuple[PayrollRunStatus, PayrollAction],
        tuple[frozenset[ActorRole], PayrollRunStatus],
    ] = {
        (PayrollRunStatus.DRAFT, PayrollAction.PUBLISH): (
            frozenset({ActorRole.PAYROLL_SPECIALIST}),
            PayrollRunStatus.UNDER_REVIEW,
        ),
        (PayrollRunStatus.UNDER_REVIEW, PayrollAction.MANAGER_APPROVE): (
            frozenset({ActorRole.PAYROLL_MANAGER}),
            PayrollRunStatus.PENDING_FINANCE_APPROVAL,
        ),
        (PayrollRunStatus.UNDER_REVIEW, PayrollAction.REJECT): (
            frozenset({ActorRole.PAYROLL_MANAGER}),
            PayrollRunStatus.REJECTED,
        ),
        (PayrollRunStatus.PENDING_FINANCE_APPROVAL, PayrollAction.FINANCE_APPROVE): (
            frozenset({ActorRole.FINANCE_STAFF}),
            PayrollRunStatus.APPROVED,
        ),
        (PayrollRunStatus.PENDING_FINANCE_APPROVAL, PayrollAction.REJECT): (
            frozenset({ActorRole.FINANCE_STAFF}),
            PayrollRunStatus.REJECTED,
        ),
        (PayrollRunStatus.APPROVED, PayrollAction.LOCK): (
            frozenset({ActorRole.PAYROLL_MANAGER}),
            PayrollRunStatus.LOCKED,
        ),
        (PayrollRunStatus.REJECTED, PayrollAction.REGENERATE): (
            frozenset({ActorRole.PAYROLL_SPECIALIST}),
            PayrollRunStatus.DRAFT,
        ),
    }

    # {mutation: (allowed_statuses, allowed_roles)}
    PAYSLIP_MUTATIONS: dict[
        PayslipMutation, tuple[frozenset[PayrollRunStatus], frozenset[ActorRole]]
    ] = {
        PayslipMutation.RECALCULATE: (
            frozenset({PayrollRunStatus.DRAFT}),
            frozenset({ActorRole.PAYROLL_SPECIALIST}),
        ),
        PayslipMutation.CLEAR_EXCEPTIONS: (
            frozenset({PayrollRunStatus.UNDER_REVIEW}),
            frozenset({ActorRole.PAYROLL_MANAGER}),
        ),
        PayslipMutation.PAYMENT_STATUS: (
            frozenset({PayrollRunStatus.APPROVED}),
            frozenset({ActorRole.FINANCE_STAFF}),
        ),
    }

    # Who acts next once a run reaches a status (for notifications)
    NEXT_ACTOR: dict[PayrollRunStatus, ActorRole | None] = {
        PayrollRunStatus.DRAFT: ActorRole.PAYROLL_SPECIALIST,
        PayrollRunStatus.UNDER_REVIEW: ActorRole.PAYROLL_MANAGER,
        PayrollRunStatus.PENDING_FINANCE_APPROVAL: ActorRole.FINANCE_STAFF,
        PayrollRunStatus.APPROVED: ActorRole.PAYROLL_MANAGER,
        PayrollRunStatus.REJECTED: ActorRole.PAYROLL_SPECIALIST,
        PayrollRunStatus.LOCKED: None,
    }

    @classmethod
    def next_status(
        cls,
        status: str,
        action: str,
        role: str,
    ) -> PayrollRunStatus:
        """Return the status an action leads to, or raise.

        Raises:
            RunLockedError: the run is locked
            InvalidTransitionError: wrong status or wrong role for the action
        """
        current = PayrollRunStatus(status)
        act = PayrollAction(action)
        if current == PayrollRunStatus.LOCKED:
            raise RunLockedError(act)

        entry = cls.TRANSITIONS.get((current, act))
        if entry is None:
            raise InvalidTransitionError(current, act, role=role)

        roles, to_status = entry
        if ActorRole(role) not in roles:
            raise InvalidTransitionError(
                current,
                act,
                f"role '{_value(role)}' may not {act.value}; "
                f"requires {', '.join(sorted(r.value for r in roles))}",
                role=role,
            )
        return to_status

    @classmethod
    def validate_generate(cls, role: str) -> None:
        """Only a payroll specialist may generate a draft run."""
        if ActorRole(role) != ActorRole.PAYROLL_SPECIALIST:
            raise InvalidTransitionError(
                "none",
                "generate_draft",
                f"role '{_value(role)}' may not generate a draft; "
                f"requires {ActorRole.PAYROLL_SPECIALIST.value}",
                role=role,
            )

    @classmethod
    def can_transition(cls, status: str, action: str, role: str) -> bool:
        """Check if an action is allowed for a role in a status."""
        try:
            cls.next_status(status, action, role)
        except InvalidTransitionError:
            return False
        return True

    @classmethod
    def allowed_actions(cls, status: str, role: str | None = None) -> list[PayrollAction]:
        """Actions available from a status, optionally for one role only."""
        current = PayrollRunStatus(status)
        actions: list[PayrollAction] = []
        for (from_status, action), (roles, _) in cls.TRANSITIONS.items():
            if from_status != current:
                continue
            if role is not None and ActorRole(role) not in roles:
                continue
            actions.append(action)
        return actions

    @classmethod
    def validate_payslip_mutation(cls, status: str, mutation: str, role: str) -> None:
        """Validate a write against a run's payslips.

        Raises:
            RunLockedError: the run is locked
            InvalidTransitionError: wrong status or wrong role for the mutation
        """
        current = PayrollRunStatus(status)
        kind = PayslipMutation(mutation)
        if current == PayrollRunStatus.LOCKED:
            raise RunLockedError(kind)

        statuses, roles = cls.PAYSLIP_MUTATIONS[kind]
        if current not in statuses:
            raise InvalidTransitionError(
                current,
                kind,
                f"payslips can only be changed this way in status "
                f"{', '.join(sorted(s.value for s in statuses))}",
                role=role,
            )
        if ActorRole(role) not in roles:
            raise InvalidTransitionError(
                current,
                kind,
                f"role '{_value(role)}' may not {kind.value}",
                role=role,
            )

    @classmethod
    def next_actor_role(cls, status: str) -> ActorRole | None:
        """Role expected to act next on a run in this status."""
        return cls.NEXT_ACTOR[PayrollRunStatus(status)]

    @classmethod
    def is_terminal(cls, status: str) -> bool:
        return PayrollRunStatus(status) == PayrollRunStatus.LOCKED

    @staticmethod
    def validate_rejection_reason(reason: str | None) -> str:
        """Return the stripped reason, or raise if it is empty."""
        if reason is None or not reason.strip():
            raise RejectionReasonRequiredError()
        return reason.strip()


def _value(item: object) -> str:
    return item.value if isinstance(item, Enum) else str(item)
