from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Tuple


@dataclass(frozen=True)
class Db:
    host: str
    port: int
    user: str
    password: str
    database: str


@dataclass(frozen=True)
class IngestionPayload:
    model_id: str
    model_name: str
    path_to_tileset: str
    metadata: Dict[str, Any] = field(default_factory=dict)

    def to_parameters(self) -> Dict[str, Any]:
        params: Dict[str, Any] = dict(self.metadata)
        params.update({
            "modelId": self.model_id,
            "modelName": self.model_name,
            "pathToTileset": self.path_to_tileset,
        })
        return params


@dataclass(frozen=True)
class TaskParameters:
    paths: Tuple[str, ...]
    model_id: str
    last_index_error: int = -1

    def to_dict(self) -> Dict[str, Any]:
        return {
            "paths": list(self.paths),
            "modelId": self.model_id,
            "lastIndexError": self.last_index_error,
        }


@dataclass(frozen=True)
class TaskPayload:
    """A bounded group of paths handed to the job system as one task."""

    type: str
    parameters: TaskParameters

    def to_dict(self) -> Dict[str, Any]:
        return {"type": self.type, "parameters": self.parameters.to_dict()}


@dataclass(frozen=True)
class IngestionResponse:
    job_id: str
    status: str
