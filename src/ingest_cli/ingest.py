from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import List, Optional

from model_ingest.config import Settings, settings
from model_ingest.errors import AppError, DownstreamError
from model_ingest.factory import build_manager
from model_ingest.logging import setup_logging
from model_ingest.manager import IngestionManager
from model_ingest.types import IngestionPayload
from ingest_cli.config_loader import load_config


async def run_models(manager: IngestionManager, models: List[IngestionPayload], job_id: Optional[str] = None) -> List[tuple[str, str, int]]:
    log = logging.getLogger(__name__)
    try:
        await manager.jobs.ensure()
    except AppError:
        raise
    except Exception as e:
        raise DownstreamError(f"job system unavailable: {e}") from e
    results: List[tuple[str, str, int]] = []
    for payload in models:
        if job_id:
            target = job_id
        else:
            target = (await manager.create_job(payload)).job_id
        count = await manager.create_model(payload, target)
        log.info("Model %s ingested into job %s (%d files)", payload.model_name, target, count)
        results.append((payload.model_name, target, count))
    return results


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="List a model's files and dispatch them as ingestion tasks.")
    parser.add_argument("--model-id", type=str, default=None, help="Model identifier (single-model mode)")
    parser.add_argument("--model-name", type=str, default=None, help="Model name (single-model mode)")
    parser.add_argument("--path", type=str, default=None, help="Path to the tileset inside the bucket (single-model mode)")
    parser.add_argument("--config", type=Path, default=None, help="YAML file listing several models")
    parser.add_argument("--job-id", type=str, default=None, help="Attach tasks to an existing job instead of creating one")
    parser.add_argument("--batch-size", type=int, default=None, help="Paths per task (overrides APP_BATCH_SIZE)")
    parser.add_argument("--max-requests", type=int, default=None, help="Concurrent task creations (overrides APP_MAX_REQUESTS)")
    args = parser.parse_args(argv)

    setup_logging(settings.log_level)

    if args.config:
        cfg = load_config(args.config)
        models = cfg.models
        batch_size = args.batch_size or cfg.batch_size
        max_requests = args.max_requests or cfg.max_requests
    else:
        if not (args.model_id and args.model_name and args.path):
            parser.error("Either provide --config or all of --model-id, --model-name and --path")
        models = [IngestionPayload(model_id=args.model_id, model_name=args.model_name, path_to_tileset=args.path.rstrip("/"))]
        batch_size = args.batch_size
        max_requests = args.max_requests

    overrides = {}
    if batch_size is not None:
        overrides["batch_size"] = batch_size
    if max_requests is not None:
        overrides["max_requests"] = max_requests
    try:
        # re-validate so CLI overrides get the same bounds as env settings
        cfg_settings = Settings.model_validate({**settings.model_dump(), **overrides}) if overrides else settings
        manager = build_manager(cfg_settings)
        results = asyncio.run(run_models(manager, models, job_id=args.job_id))
    except AppError as e:
        print(f"Ingestion failed ({e.status_code}): {e}", file=sys.stderr)
        return 1
    except ValueError as e:
        print(f"Ingestion failed: {e}", file=sys.stderr)
        return 1

    for name, job_id, count in results:
        print(f"{name}: job {job_id}, {count} files")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
