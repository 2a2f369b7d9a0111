"""External collaborator interfaces and in-memory adapters."""

from payroll_run_engine.collaborators.base import (
    Collaborators,
    CompensationSource,
    DisputeSource,
    EmployeeDirectory,
    EmployeeRecord,
    LeaveAttendanceSource,
)
from payroll_run_engine.collaborators.memory import (
    InMemoryCompensationSource,
    InMemoryDisputes,
    InMemoryEmployeeDirectory,
    InMemoryLeaveAttendance,
    in_memory_collaborators,
    load_collaborators_fixture,
)

__all__ = [
    "Collaborators",
    "CompensationSource",
    "DisputeSource",
    "EmployeeDirectory",
    "EmployeeRecord",
    "LeaveAttendanceSource",
    "InMemoryCompensationSource",
    "InMemoryDisputes",
    "InMemoryEmployeeDirectory",
    "InMemoryLeaveAttendance",
    "in_memory_collaborators",
    "load_collaborators_fixture",
]
