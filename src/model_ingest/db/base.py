from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, List, Optional
from datetime import datetime

from ..types import TaskPayload


@dataclass
class Job:
    id: str
    type: str
    parameters: Dict[str, Any]
    status: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


@dataclass
class Task:
    id: str
    job_id: str
    type: str
    parameters: Dict[str, Any]
    status: str
    created_at: Optional[datetime] = None


class JobRepository(ABC):
    """Client of the external job system the pipeline hands its tasks to."""

    @abstractmethod
    async def ensure(self) -> None:  # pragma: no cover
        ...

    @abstractmethod
    async def create_job(self, job_type: str, parameters: Dict[str, Any]) -> str:  # pragma: no cover
        ...

    @abstractmethod
    async def get_job(self, job_id: str) -> Optional[Job]:  # pragma: no cover
        ...

    @abstractmethod
    async def update_job(self, job_id: str, parameters: Dict[str, Any]) -> None:  # pragma: no cover
        ...

    @abstractmethod
    async def create_task(self, job_id: str, task: TaskPayload) -> str:  # pragma: no cover
        ...

    @abstractmethod
    async def list_tasks(self, job_id: str) -> List[Task]:  # pragma: no cover
        ...
