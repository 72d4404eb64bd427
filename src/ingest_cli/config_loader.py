from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import List

import yaml

from model_ingest.types import IngestionPayload


@dataclass
class IngestConfig:
    models: List[IngestionPayload]
    batch_size: int | None = None
    max_requests: int | None = None


def load_config(path: Path) -> IngestConfig:
    with path.open("r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    return config_from_dict(data)


def config_from_dict(data: dict) -> IngestConfig:
    models: List[IngestionPayload] = []
    for item in data.get("models", []):
        missing = [k for k in ("model_id", "model_name", "path") if not item.get(k)]
        if missing:
            raise ValueError(f"Model entry {item!r} is missing: {', '.join(missing)}")
        models.append(
            IngestionPayload(
                model_id=str(item["model_id"]),
                model_name=str(item["model_name"]),
                path_to_tileset=str(item["path"]).rstrip("/"),
                metadata=dict(item.get("metadata") or {}),
            )
        )

    return IngestConfig(
        models=models,
        batch_size=data.get("batch_size"),
        max_requests=data.get("max_requests"),
    )
