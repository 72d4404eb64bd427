from .types import Db, IngestionPayload, IngestionResponse, TaskParameters, TaskPayload
from .errors import AppError, DownstreamError, IntegrityError, NotFoundError, ProviderError, SpoolIOError
from .spool import SpoolStore, SpoolReader
from .batching import TaskBatcher
from .dispatch import TaskDispatcher
from .manager import IngestionManager, PipelineState

__all__ = [
    "Db",
    "IngestionPayload",
    "IngestionResponse",
    "TaskParameters",
    "TaskPayload",
    "AppError",
    "DownstreamError",
    "IntegrityError",
    "NotFoundError",
    "ProviderError",
    "SpoolIOError",
    "SpoolStore",
    "SpoolReader",
    "TaskBatcher",
    "TaskDispatcher",
    "IngestionManager",
    "PipelineState",
]
