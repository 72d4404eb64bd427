from __future__ import annotations

import asyncio
import logging
from http import HTTPStatus
from typing import Sequence

from .db.base import JobRepository
from .errors import AppError, DownstreamError
from .types import TaskPayload


log = logging.getLogger(__name__)


def _raise_downstream(error: BaseException, what: str) -> None:
    if isinstance(error, AppError):
        raise error
    raise DownstreamError(f"{what} failed: {error}") from error


class TaskDispatcher:
    """Submits task payloads to the job system, at most ``max_requests`` at a time.

    Tasks that were accepted before a later submission failed are not
    retracted; a failed ``submit`` means some tasks may already exist.
    """

    def __init__(self, jobs: JobRepository, max_requests: int) -> None:
        if max_requests < 1:
            raise ValueError(f"max_requests must be >= 1, got {max_requests}")
        self.jobs = jobs
        self.max_requests = max_requests

    async def submit(self, job_id: str, tasks: Sequence[TaskPayload]) -> None:
        limit = asyncio.Semaphore(self.max_requests)

        async def _create(task: TaskPayload) -> str:
            async with limit:
                return await self.jobs.create_task(job_id, task)

        results = await asyncio.gather(*(_create(t) for t in tasks), return_exceptions=True)
        failures = [r for r in results if isinstance(r, BaseException)]
        if not failures:
            log.info("Created %d tasks for job %s", len(tasks), job_id)
            return

        for err in failures[1:]:
            log.error("Task creation failed for job %s: %s", job_id, err)
        log.error("%d of %d task creations failed for job %s", len(failures), len(tasks), job_id)
        first = failures[0]
        if isinstance(first, asyncio.CancelledError):
            raise first
        _raise_downstream(first, f"creating tasks for job {job_id}")

    async def report_count(self, job_id: str, file_count: int) -> None:
        try:
            job = await self.jobs.get_job(job_id)
        except Exception as e:
            _raise_downstream(e, f"fetching job {job_id}")
        if job is None:
            raise DownstreamError(f"job {job_id} not found in job system", HTTPStatus.NOT_FOUND)

        parameters = {**job.parameters, "filesCount": file_count}
        try:
            await self.jobs.update_job(job_id, parameters)
        except Exception as e:
            _raise_downstream(e, f"updating job {job_id}")
        log.info("Updated job %s with filesCount=%d", job_id, file_count)
