"""FastAPI dependencies for dependency injection."""

from collections.abc import AsyncGenerator
from typing import Annotated

from fastapi import Depends, Header, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from payroll_run_engine.collaborators import Collaborators
from payroll_run_engine.events import EventEmitter
from payroll_run_engine.services import (
    Actor,
    ActorRole,
    ApprovalService,
    PayrollRunService,
)


async def get_db_session(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """Get database session dependency."""
    async with request.app.state.session_factory() as session:
        try:
            yield session
        finally:
            await session.close()


async def get_actor(
    x_actor_id: Annotated[str | None, Header()] = None,
    x_actor_role: Annotated[str | None, Header()] = None,
) -> Actor:
    """Extract the acting user from headers set by the auth gateway."""
    if not x_actor_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="X-Actor-ID header is required",
        )
    if not x_actor_role:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="X-Actor-Role header is required",
        )
    try:
        role = ActorRole(x_actor_role)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid X-Actor-Role '{x_actor_role}'",
        ) from None
    return Actor(actor_id=x_actor_id, role=role)


def get_collaborators(request: Request) -> Collaborators:
    return request.app.state.collaborators


def get_emitter(request: Request) -> EventEmitter:
    return request.app.state.emitter


# Type aliases for cleaner dependency injection
DbSession = Annotated[AsyncSession, Depends(get_db_session)]
CurrentActor = Annotated[Actor, Depends(get_actor)]
AppCollaborators = Annotated[Collaborators, Depends(get_collaborators)]
AppEmitter = Annotated[EventEmitter, Depends(get_emitter)]


def get_payroll_run_service(
    db: DbSession,
    collaborators: AppCollaborators,
    emitter: AppEmitter,
) -> PayrollRunService:
    return PayrollRunService(db, collaborators, emitter)


def get_approval_service(db: DbSession, emitter: AppEmitter) -> ApprovalService:
    return ApprovalService(db, emitter)


RunService = Annotated[PayrollRunService, Depends(get_payroll_run_service)]
Approvals = Annotated[ApprovalService, Depends(get_approval_service)]
