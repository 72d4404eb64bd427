from __future__ import annotations

import json
import time
import uuid
from datetime import datetime
from typing import Any, Dict, List, Optional

import redis.asyncio as redis

from .base import JobRepository, Job, Task
from ..types import TaskPayload


class RedisJobRepository(JobRepository):
    """Redis-backed JobRepository.

    - Keys (namespace = ns):
        ns:job:<id>                -> HASH (type, parameters JSON, status, timestamps)
        ns:job:<id>:tasks          -> LIST of task IDs in creation order
        ns:task:<id>               -> HASH (job_id, type, parameters JSON, status, created_at)
    """

    def __init__(self, url: str, namespace: str = "ingest", client: Any = None) -> None:
        self.url = url
        self.ns = namespace
        self._client = client

    async def _r(self):
        if self._client is not None:
            return self._client
        return redis.from_url(self.url, encoding="utf-8", decode_responses=True)

    async def _release(self, r) -> None:
        if r is not self._client and hasattr(r, "aclose"):
            await r.aclose()

    def _k(self, name: str) -> str:
        return f"{self.ns}:{name}"

    @staticmethod
    def _now() -> str:
        return datetime.fromtimestamp(time.time()).isoformat()

    @staticmethod
    def _parse_iso(s: Optional[str]) -> Optional[datetime]:
        if not s:
            return None
        try:
            return datetime.fromisoformat(s)
        except ValueError:
            return None

    @staticmethod
    def _loads(raw: Any) -> Dict[str, Any]:
        if isinstance(raw, str):
            return json.loads(raw or "{}")
        return raw or {}

    async def ensure(self) -> None:
        r = await self._r()
        try:
            await r.ping()
        finally:
            await self._release(r)

    async def create_job(self, job_type: str, parameters: Dict[str, Any]) -> str:
        r = await self._r()
        try:
            job_id = str(uuid.uuid4())
            now = self._now()
            await r.hset(self._k(f"job:{job_id}"), mapping={
                "id": job_id,
                "type": job_type,
                "parameters": json.dumps(parameters, ensure_ascii=False),
                "status": "In-Progress",
                "created_at": now,
                "updated_at": now,
            })
            return job_id
        finally:
            await self._release(r)

    async def get_job(self, job_id: str) -> Optional[Job]:
        r = await self._r()
        try:
            h = await r.hgetall(self._k(f"job:{job_id}"))
            if not h:
                return None
            return Job(
                id=h.get("id") or job_id,
                type=h.get("type") or "",
                parameters=self._loads(h.get("parameters")),
                status=h.get("status") or "",
                created_at=self._parse_iso(h.get("created_at")),
                updated_at=self._parse_iso(h.get("updated_at")),
            )
        finally:
            await self._release(r)

    async def update_job(self, job_id: str, parameters: Dict[str, Any]) -> None:
        r = await self._r()
        try:
            await r.hset(self._k(f"job:{job_id}"), mapping={
                "parameters": json.dumps(parameters, ensure_ascii=False),
                "updated_at": self._now(),
            })
        finally:
            await self._release(r)

    async def create_task(self, job_id: str, task: TaskPayload) -> str:
        r = await self._r()
        try:
            task_id = str(uuid.uuid4())
            pipe = r.pipeline()
            pipe.hset(self._k(f"task:{task_id}"), mapping={
                "id": task_id,
                "job_id": job_id,
                "type": task.type,
                "parameters": json.dumps(task.parameters.to_dict(), ensure_ascii=False),
                "status": "Pending",
                "created_at": self._now(),
            })
            pipe.rpush(self._k(f"job:{job_id}:tasks"), task_id)
            await pipe.execute()
            return task_id
        finally:
            await self._release(r)

    async def list_tasks(self, job_id: str) -> List[Task]:
        r = await self._r()
        try:
            ids = await r.lrange(self._k(f"job:{job_id}:tasks"), 0, -1)
            if not ids:
                return []
            pipe = r.pipeline()
            for tid in ids:
                pipe.hgetall(self._k(f"task:{tid}"))
            rows = await pipe.execute()
            out: List[Task] = []
            for h in rows:
                if not h:
                    continue
                out.append(
                    Task(
                        id=h.get("id") or "",
                        job_id=h.get("job_id") or job_id,
                        type=h.get("type") or "",
                        parameters=self._loads(h.get("parameters")),
                        status=h.get("status") or "",
                        created_at=self._parse_iso(h.get("created_at")),
                    )
                )
            return out
        finally:
            await self._release(r)
