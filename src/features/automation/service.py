"""Automation run service layer."""

import logging
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.database.base import utcnow
from src.shared.observability.metrics import emit_metric

from .exceptions import AutomationRunNotFound, NoFieldsToUpdate
from .models import AutomationRun, RunStatus
from .schemas import AutomationRunCreateRequest, AutomationRunUpdateRequest

logger = logging.getLogger(__name__)

RECENT_RUNS_LIMIT = 10


class AutomationRunService:
    """Service for workflow executions reported by the automation orchestrator."""

    @staticmethod
    async def list_recent(session: AsyncSession, user_id: UUID) -> list[AutomationRun]:
        stmt = (
            select(AutomationRun)
            .where(AutomationRun.user_id == user_id)
            .order_by(AutomationRun.started_at.desc())
            .limit(RECENT_RUNS_LIMIT)
        )
        result = await session.execute(stmt)
        return list(result.scalars().all())

    @staticmethod
    async def create_run(session: AsyncSession, user_id: UUID, data: AutomationRunCreateRequest) -> AutomationRun:
        run = AutomationRun(
            user_id=user_id,
            production_id=data.production_id,
            workflow_name=data.workflow_name,
            workflow_id=data.workflow_id or None,
            execution_id=data.execution_id or None,
            status=data.status,
            error_message=data.error_message or None,
        )
        if data.status != RunStatus.RUNNING:
            run.completed_at = utcnow()
        session.add(run)
        await session.flush()
        await session.refresh(run)

        emit_metric("automation.run.create", run.status)
        logger.info(f"Automation run created: {run.id} ({run.workflow_name}) for user {user_id}")
        return run

    @staticmethod
    async def update_run(
        session: AsyncSession, user_id: UUID, run_id: UUID, data: AutomationRunUpdateRequest
    ) -> AutomationRun:
        """Apply a status report to a run.

        A status other than ``running`` stamps ``completed_at``. ``error_message``
        is applied whenever the request sends it, including an explicit null.

        Raises:
            NoFieldsToUpdate: If the request carries nothing to apply
            AutomationRunNotFound: If the run does not exist or belongs to another user

        """
        has_status = data.status is not None
        has_error_message = "error_message" in data.model_fields_set
        if not has_status and not has_error_message:
            raise NoFieldsToUpdate()

        stmt = select(AutomationRun).where(AutomationRun.id == run_id, AutomationRun.user_id == user_id)
        run = (await session.execute(stmt)).scalar_one_or_none()
        if run is None:
            emit_metric("automation.run.not_found")
            raise AutomationRunNotFound()

        if has_status:
            run.status = data.status
            if data.status != RunStatus.RUNNING:
                run.completed_at = utcnow()
        if has_error_message:
            run.error_message = data.error_message

        await session.flush()
        await session.refresh(run)

        emit_metric("automation.run.update", run.status)
        logger.info(f"Automation run {run.id} updated: status={run.status}")
        return run
