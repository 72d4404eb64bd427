from __future__ import annotations

import asyncio
from typing import Any, Dict, List, Optional

import requests

from .base import JobRepository, Job, Task
from ..errors import DownstreamError
from ..types import TaskPayload


class HttpJobRepository(JobRepository):
    """Client for a REST job-manager service.

    Endpoints: POST /jobs, GET/PUT /jobs/{id}, POST/GET /jobs/{id}/tasks.
    requests is blocking, so every call runs in a worker thread.
    """

    def __init__(self, base_url: str, timeout: float = 30.0, session: Optional[requests.Session] = None) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()

    def _request(self, method: str, path: str, *, json: Any = None, allow_404: bool = False) -> Any:
        url = f"{self.base_url}{path}"
        try:
            resp = self.session.request(method, url, json=json, timeout=self.timeout)
        except requests.RequestException as e:
            raise DownstreamError(f"job manager {method} {url} failed: {e}") from e
        if allow_404 and resp.status_code == 404:
            return None
        if resp.status_code >= 400:
            raise DownstreamError(
                f"job manager {method} {url} returned {resp.status_code}: {resp.text[:200]}",
                resp.status_code,
            )
        if not resp.content:
            return {}
        return resp.json()

    async def ensure(self) -> None:
        return None

    async def create_job(self, job_type: str, parameters: Dict[str, Any]) -> str:
        body = {"type": job_type, "parameters": parameters, "status": "In-Progress"}
        data = await asyncio.to_thread(self._request, "POST", "/jobs", json=body)
        return str(data["id"])

    async def get_job(self, job_id: str) -> Optional[Job]:
        data = await asyncio.to_thread(self._request, "GET", f"/jobs/{job_id}", allow_404=True)
        if data is None:
            return None
        return Job(
            id=str(data.get("id", job_id)),
            type=str(data.get("type", "")),
            parameters=dict(data.get("parameters") or {}),
            status=str(data.get("status", "")),
        )

    async def update_job(self, job_id: str, parameters: Dict[str, Any]) -> None:
        await asyncio.to_thread(self._request, "PUT", f"/jobs/{job_id}", json={"parameters": parameters})

    async def create_task(self, job_id: str, task: TaskPayload) -> str:
        data = await asyncio.to_thread(self._request, "POST", f"/jobs/{job_id}/tasks", json=task.to_dict())
        return str(data.get("id", ""))

    async def list_tasks(self, job_id: str) -> List[Task]:
        rows = await asyncio.to_thread(self._request, "GET", f"/jobs/{job_id}/tasks")
        return [
            Task(
                id=str(r.get("id", "")),
                job_id=str(r.get("jobId", job_id)),
                type=str(r.get("type", "")),
                parameters=dict(r.get("parameters") or {}),
                status=str(r.get("status", "")),
            )
            for r in rows or []
        ]
