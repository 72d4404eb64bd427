from __future__ import annotations

import logging
from typing import Iterable, List

from .spool import SpoolStore
from .types import TaskParameters, TaskPayload


log = logging.getLogger(__name__)


def file_extension(path: str) -> str:
    """Text after the final dot, or '' when the path has none."""
    _, dot, ext = path.rpartition(".")
    return ext if dot else ""


class TaskBatcher:
    def __init__(self, spool: SpoolStore, task_type: str, blacklist: Iterable[str] = ()) -> None:
        self.spool = spool
        self.task_type = task_type
        self.blacklist = frozenset(e.lstrip(".") for e in blacklist if e.lstrip("."))

    def is_blacklisted(self, path: str) -> bool:
        return file_extension(path) in self.blacklist

    def build_tasks(self, batch_size: int, model_id: str) -> List[TaskPayload]:
        if batch_size < 1:
            raise ValueError(f"batch_size must be >= 1, got {batch_size}")

        tasks: List[TaskPayload] = []
        chunk: List[str] = []
        for path in self.spool.read_lines(model_id):
            if self.is_blacklisted(path):
                log.warning("The file is in the blacklist, ignored: %s", path)
                continue
            chunk.append(path)
            if len(chunk) == batch_size:
                tasks.append(self.build_task(chunk, model_id))
                chunk = []

        # remainder
        if chunk:
            tasks.append(self.build_task(chunk, model_id))
        return tasks

    def build_task(self, chunk: List[str], model_id: str) -> TaskPayload:
        return TaskPayload(type=self.task_type, parameters=TaskParameters(paths=tuple(chunk), model_id=model_id))
