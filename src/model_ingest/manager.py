from __future__ import annotations

import enum
import logging
from typing import List

from .batching import TaskBatcher
from .db.base import JobRepository
from .dispatch import TaskDispatcher
from .errors import AppError, DownstreamError
from .providers.base import StorageProvider
from .spool import SpoolStore
from .types import IngestionPayload, IngestionResponse


log = logging.getLogger(__name__)


class PipelineState(str, enum.Enum):
    INITIALIZED = "initialized"
    ENUMERATING = "enumerating"
    BATCHING = "batching"
    DISPATCHING = "dispatching"
    REPORTING = "reporting"
    CLEANED = "cleaned"
    FAILED = "failed"


class IngestionManager:
    """Runs one model through enumerate -> batch -> dispatch -> report.

    The model's spool is deleted on every exit path. Nothing is retried here;
    the caller owns retries of the whole pipeline.
    """

    def __init__(
        self,
        provider: StorageProvider,
        spool: SpoolStore,
        batcher: TaskBatcher,
        dispatcher: TaskDispatcher,
        jobs: JobRepository,
        batch_size: int,
        job_type: str = "Ingestion",
    ) -> None:
        self.provider = provider
        self.spool = spool
        self.batcher = batcher
        self.dispatcher = dispatcher
        self.jobs = jobs
        self.batch_size = batch_size
        self.job_type = job_type
        self.last_states: List[PipelineState] = []

    async def create_job(self, payload: IngestionPayload) -> IngestionResponse:
        try:
            job_id = await self.jobs.create_job(self.job_type, payload.to_parameters())
        except AppError:
            raise
        except Exception as e:
            raise DownstreamError(f"creating job for model {payload.model_id} failed: {e}") from e
        log.info("Created job %s for model %s", job_id, payload.model_name)
        return IngestionResponse(job_id=job_id, status="In-Progress")

    async def create_model(self, payload: IngestionPayload, job_id: str) -> int:
        """Enumerate, batch and dispatch one model into ``job_id``. Returns the file count."""
        states = self.last_states = [PipelineState.INITIALIZED]
        model_id = payload.model_id
        log.info("Creating tasks for model %s (%s), job %s", payload.model_name, model_id, job_id)

        try:
            self.spool.create(model_id)

            states.append(PipelineState.ENUMERATING)
            log.info("Starts writing content to spool")
            files_count = await self.provider.stream_paths_to_spool(model_id, payload.path_to_tileset, payload.model_name)

            states.append(PipelineState.BATCHING)
            log.info("Finished writing %d paths to spool. Creating tasks", files_count)
            tasks = self.batcher.build_tasks(self.batch_size, model_id)

            states.append(PipelineState.DISPATCHING)
            log.info("Built %d tasks, submitting", len(tasks))
            await self.dispatcher.submit(job_id, tasks)

            states.append(PipelineState.REPORTING)
            await self.dispatcher.report_count(job_id, files_count)
        except BaseException:
            states.append(PipelineState.FAILED)
            log.error("Failed in creating tasks for model %s, job %s", model_id, job_id)
            self._cleanup(model_id)
            raise

        self._cleanup(model_id)
        states.append(PipelineState.CLEANED)
        return files_count

    async def ingest(self, payload: IngestionPayload) -> IngestionResponse:
        response = await self.create_job(payload)
        await self.create_model(payload, response.job_id)
        return response

    def _cleanup(self, model_id: str) -> None:
        try:
            self.spool.delete(model_id)
        except Exception:
            log.exception("Failed deleting spool for model %s", model_id)
