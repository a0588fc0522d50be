"""Automation runs router: execution reports from workflows and the dashboard's recent-runs list."""

from uuid import UUID

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.database.dependencies import get_db_session
from src.features.auth.service_auth import ServiceAuthContext, require_service_or_owner, require_service_or_user

from .schemas import AutomationRunCreateRequest, AutomationRunResponse, AutomationRunUpdateRequest
from .service import AutomationRunService

router = APIRouter(prefix="/automation-runs", tags=["Automation"])


@router.get("", response_model=list[AutomationRunResponse])
async def list_automation_runs(
    auth: ServiceAuthContext = Depends(require_service_or_user),
    session: AsyncSession = Depends(get_db_session),
):
    """List the ten most recent runs of the acting user."""
    return await AutomationRunService.list_recent(session, auth.user_id)


@router.post("", response_model=AutomationRunResponse, status_code=status.HTTP_201_CREATED)
async def create_automation_run(
    data: AutomationRunCreateRequest,
    auth: ServiceAuthContext = Depends(require_service_or_owner),
    session: AsyncSession = Depends(get_db_session),
):
    """Record the start (or the whole outcome) of a workflow execution.

    - **workflow_name**: Workflow name (1-100 characters)
    - **status**: running (default), completed or error
    """
    run = await AutomationRunService.create_run(session, auth.user_id, data)
    await session.commit()
    return run


@router.put("/{run_id}", response_model=AutomationRunResponse)
async def update_automation_run(
    run_id: UUID,
    data: AutomationRunUpdateRequest,
    auth: ServiceAuthContext = Depends(require_service_or_owner),
    session: AsyncSession = Depends(get_db_session),
):
    """Report progress on a run; a final status stamps ``completed_at``."""
    run = await AutomationRunService.update_run(session, auth.user_id, run_id, data)
    await session.commit()
    return run
