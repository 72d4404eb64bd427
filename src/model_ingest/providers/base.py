from __future__ import annotations

from abc import ABC, abstractmethod

from ..spool import SpoolStore


class StorageProvider(ABC):
    def __init__(self, spool: SpoolStore) -> None:
        self.spool = spool

    @abstractmethod
    async def stream_paths_to_spool(self, model_id: str, root_prefix: str, model_name: str) -> int:
        """Append every object path under ``root_prefix`` to the model's spool.

        Returns the number of leaf objects written. Raises NotFoundError when
        nothing was found.
        """
        raise NotImplementedError
