"""FastAPI dependencies for dependency injection."""

from collections.abc import AsyncGenerator
from typing import Annotated

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from salary_engine.services.job_queue import SalaryJobQueue
from salary_engine.services.ledger_service import PayrollLedgerService


async def get_db_session(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """Get database session dependency."""
    async with request.app.state.session_factory() as session:
        try:
            yield session
        finally:
            await session.close()


def get_job_queue(request: Request) -> SalaryJobQueue:
    """Job queue started by the application lifespan."""
    return request.app.state.job_queue


DbSession = Annotated[AsyncSession, Depends(get_db_session)]
JobQueue = Annotated[SalaryJobQueue, Depends(get_job_queue)]


def get_ledger_service(db: DbSession, queue: JobQueue) -> PayrollLedgerService:
    """Ledger service sharing the queue's per-key lock registry."""
    return PayrollLedgerService(db, key_lock=queue.key_lock, tz=queue.tz)


Ledger = Annotated[PayrollLedgerService, Depends(get_ledger_service)]
