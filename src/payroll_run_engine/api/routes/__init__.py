"""API routes."""

from payroll_run_engine.api.routes.health import router as health_router
from payroll_run_engine.api.routes.payroll_runs import router as payroll_runs_router

__all__ = ["payroll_runs_router", "health_router"]
