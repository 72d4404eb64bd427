# src/model_ingest/config.py
from typing import Optional
from pydantic import Field
from pydantic_settings import BaseSettings
from .types import Db

class Settings(BaseSettings):
    # Task batching
    batch_size: int = Field(default=100, ge=1)  # paths per task
    task_type: str = "tilesCopying"
    ingestion_job_type: str = "Ingestion"
    # Max concurrent task-creation requests against the job system
    max_requests: int = Field(default=5, ge=1)
    # File extensions that never make it into a task, e.g. ["zip", "bak"]
    blacklist: list[str] = []
    # Scratch directory for per-model spool files
    spool_dir: str = ".spool"

    # Storage provider: only s3 for now
    provider: str = "s3"
    s3_bucket: Optional[str] = None
    s3_region: Optional[str] = None
    s3_endpoint_url: Optional[str] = None  # e.g., http://minio:9000
    s3_access_key_id: Optional[str] = None
    s3_secret_access_key: Optional[str] = None
    s3_force_path_style: bool = False
    s3_max_attempts: int = Field(default=3, ge=1)
    s3_sig_version: str = "s3v4"

    # Job backend selection: postgres (default) | redis | http
    job_backend: str = "postgres"
    job_table_prefix: str = "ingest"
    redis_url: Optional[str] = None  # e.g., redis://localhost:6379/0
    redis_namespace: str = "ingest"
    job_manager_url: Optional[str] = None  # e.g., http://job-manager:8080
    job_manager_timeout_sec: float = 30.0

    # Database (postgres backend)
    pg_host: Optional[str] = None
    pg_port: int = 5432
    pg_user: Optional[str] = None
    pg_password: Optional[str] = None
    pg_database: Optional[str] = None

    log_level: Optional[str] = None

    @property
    def db(self) -> Db:
        if not all([self.pg_host, self.pg_user, self.pg_password, self.pg_database]):
            raise ValueError("Postgres settings missing: set APP_PG_HOST, APP_PG_USER, APP_PG_PASSWORD, APP_PG_DATABASE")
        return Db(
            host=self.pg_host,  # type: ignore[arg-type]
            port=self.pg_port,
            user=self.pg_user,  # type: ignore[arg-type]
            password=self.pg_password,  # type: ignore[arg-type]
            database=self.pg_database,  # type: ignore[arg-type]
        )

    class Config:
        env_prefix = "APP_"
        extra = "ignore"

settings = Settings()
