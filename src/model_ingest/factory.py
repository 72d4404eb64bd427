from __future__ import annotations

from pathlib import Path
from typing import Optional

from .batching import TaskBatcher
from .config import Settings, settings as default_settings
from .db.base import JobRepository
from .db.http_jobs import HttpJobRepository
from .db.postgres_jobs import PostgresJobRepository
from .db.redis_jobs import RedisJobRepository
from .dispatch import TaskDispatcher
from .manager import IngestionManager
from .providers.base import StorageProvider
from .providers.s3 import S3Config, S3Provider
from .spool import SpoolStore


def build_job_repo(cfg: Settings) -> JobRepository:
    backend = (cfg.job_backend or "postgres").lower()
    if backend == "postgres":
        return PostgresJobRepository(db=cfg.db, table_prefix=cfg.job_table_prefix)
    if backend == "redis":
        if not cfg.redis_url:
            raise ValueError("APP_REDIS_URL is required when APP_JOB_BACKEND=redis")
        return RedisJobRepository(url=cfg.redis_url, namespace=cfg.redis_namespace)
    if backend == "http":
        if not cfg.job_manager_url:
            raise ValueError("APP_JOB_MANAGER_URL is required when APP_JOB_BACKEND=http")
        return HttpJobRepository(base_url=cfg.job_manager_url, timeout=cfg.job_manager_timeout_sec)
    raise ValueError(f"Unsupported job backend: {backend}")


def build_provider(cfg: Settings, spool: SpoolStore) -> StorageProvider:
    kind = (cfg.provider or "s3").lower()
    if kind != "s3":
        raise ValueError(f"Unsupported storage provider: {kind}")
    if not cfg.s3_bucket:
        raise ValueError("APP_S3_BUCKET is required for the s3 provider")
    s3 = S3Config(
        bucket=cfg.s3_bucket,
        region=cfg.s3_region,
        endpoint_url=cfg.s3_endpoint_url,
        access_key_id=cfg.s3_access_key_id,
        secret_access_key=cfg.s3_secret_access_key,
        force_path_style=cfg.s3_force_path_style,
        max_attempts=cfg.s3_max_attempts,
        sig_version=cfg.s3_sig_version,
    )
    return S3Provider(s3, spool)


def build_manager(
    cfg: Optional[Settings] = None,
    *,
    provider: Optional[StorageProvider] = None,
    jobs: Optional[JobRepository] = None,
) -> IngestionManager:
    cfg = cfg or default_settings
    spool = SpoolStore(root=Path(cfg.spool_dir))
    if provider is None:
        provider = build_provider(cfg, spool)
    else:
        spool = provider.spool
    if jobs is None:
        jobs = build_job_repo(cfg)
    return IngestionManager(
        provider=provider,
        spool=spool,
        batcher=TaskBatcher(spool, task_type=cfg.task_type, blacklist=cfg.blacklist),
        dispatcher=TaskDispatcher(jobs, max_requests=cfg.max_requests),
        jobs=jobs,
        batch_size=cfg.batch_size,
        job_type=cfg.ingestion_job_type,
    )
