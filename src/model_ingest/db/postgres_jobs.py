from __future__ import annotations

import asyncio
import json
import uuid
from typing import Any, Dict, List, Optional

from sqlalchemy import Table, Column, Text, TIMESTAMP, JSON, MetaData, ForeignKey, func, select, update
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.engine import Engine

from .base import JobRepository, Job, Task
from ..orm.session import create_engine_from_db
from ..types import Db, TaskPayload


_JSON = JSON().with_variant(JSONB(), "postgresql")


def _params(raw: Any) -> Dict[str, Any]:
    if isinstance(raw, dict):
        return raw
    return json.loads(raw or "{}")


class PostgresJobRepository(JobRepository):
    def __init__(self, db: Optional[Db] = None, table_prefix: str = "ingest", engine: Optional[Engine] = None) -> None:
        if engine is None:
            if db is None:
                raise ValueError("PostgresJobRepository requires a Db or an Engine")
            engine = create_engine_from_db(db)
        self.engine = engine
        self.metadata = MetaData()
        self.jobs = Table(
            f"{table_prefix}_jobs",
            self.metadata,
            Column("id", Text, primary_key=True),
            Column("type", Text, nullable=False),
            Column("parameters", _JSON, nullable=False),
            Column("status", Text, nullable=False, server_default="Pending"),
            Column("created_at", TIMESTAMP(timezone=True), server_default=func.now()),
            Column("updated_at", TIMESTAMP(timezone=True), server_default=func.now()),
            extend_existing=True,
        )
        self.tasks = Table(
            f"{table_prefix}_tasks",
            self.metadata,
            Column("id", Text, primary_key=True),
            Column("job_id", Text, ForeignKey(f"{table_prefix}_jobs.id"), nullable=False, index=True),
            Column("type", Text, nullable=False),
            Column("parameters", _JSON, nullable=False),
            Column("status", Text, nullable=False, server_default="Pending"),
            Column("created_at", TIMESTAMP(timezone=True), server_default=func.now()),
            extend_existing=True,
        )
        self._ensured = False
        self._ensure_lock = asyncio.Lock()

    async def ensure(self) -> None:
        def _ensure():
            self.metadata.create_all(self.engine, tables=[self.jobs, self.tasks])

        async with self._ensure_lock:
            if self._ensured:
                return
            await asyncio.to_thread(_ensure)
            self._ensured = True

    async def create_job(self, job_type: str, parameters: Dict[str, Any]) -> str:
        await self.ensure()
        job_id = str(uuid.uuid4())

        def _ins() -> None:
            with self.engine.begin() as conn:
                conn.execute(self.jobs.insert().values(id=job_id, type=job_type, parameters=parameters, status="In-Progress"))

        await asyncio.to_thread(_ins)
        return job_id

    async def get_job(self, job_id: str) -> Optional[Job]:
        await self.ensure()

        def _get() -> Optional[Job]:
            with self.engine.begin() as conn:
                r = conn.execute(select(self.jobs).where(self.jobs.c.id == job_id)).mappings().first()
                if not r:
                    return None
                return Job(
                    id=str(r["id"]),
                    type=str(r["type"]),
                    parameters=_params(r["parameters"]),
                    status=str(r["status"]),
                    created_at=r.get("created_at"),
                    updated_at=r.get("updated_at"),
                )

        return await asyncio.to_thread(_get)

    async def update_job(self, job_id: str, parameters: Dict[str, Any]) -> None:
        await self.ensure()

        def _run():
            with self.engine.begin() as conn:
                conn.execute(
                    update(self.jobs)
                    .where(self.jobs.c.id == job_id)
                    .values(parameters=parameters, updated_at=func.now())
                )

        await asyncio.to_thread(_run)

    async def create_task(self, job_id: str, task: TaskPayload) -> str:
        await self.ensure()
        task_id = str(uuid.uuid4())

        def _ins() -> None:
            with self.engine.begin() as conn:
                conn.execute(
                    self.tasks.insert().values(
                        id=task_id,
                        job_id=job_id,
                        type=task.type,
                        parameters=task.parameters.to_dict(),
                        status="Pending",
                    )
                )

        await asyncio.to_thread(_ins)
        return task_id

    async def list_tasks(self, job_id: str) -> List[Task]:
        await self.ensure()

        def _list() -> List[Task]:
            with self.engine.begin() as conn:
                res = conn.execute(
                    select(self.tasks).where(self.tasks.c.job_id == job_id).order_by(self.tasks.c.created_at)
                )
                return [
                    Task(
                        id=str(r["id"]),
                        job_id=str(r["job_id"]),
                        type=str(r["type"]),
                        parameters=_params(r["parameters"]),
                        status=str(r["status"]),
                        created_at=r.get("created_at"),
                    )
                    for r in res.mappings()
                ]

        return await asyncio.to_thread(_list)
