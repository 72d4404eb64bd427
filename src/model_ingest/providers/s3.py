from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from http import HTTPStatus
from typing import Any, Dict, List, Optional, Tuple

import boto3
from botocore.config import Config
from botocore.exceptions import ClientError

from .base import StorageProvider
from ..errors import IntegrityError, NotFoundError, ProviderError
from ..spool import SpoolStore


log = logging.getLogger(__name__)

DELIMITER = "/"


@dataclass
class S3Config:
    bucket: str
    region: Optional[str] = None
    endpoint_url: Optional[str] = None
    access_key_id: Optional[str] = None
    secret_access_key: Optional[str] = None
    force_path_style: bool = False
    max_attempts: int = 3
    sig_version: str = "s3v4"

    def client(self):
        cfg = Config(
            signature_version=self.sig_version,
            retries={"max_attempts": self.max_attempts, "mode": "standard"},
            s3={"addressing_style": "path" if self.force_path_style else "auto"},
        )
        kwargs: Dict[str, Any] = {"config": cfg}
        if self.region:
            kwargs["region_name"] = self.region
        if self.endpoint_url:
            kwargs["endpoint_url"] = self.endpoint_url
        if self.access_key_id and self.secret_access_key:
            kwargs["aws_access_key_id"] = self.access_key_id
            kwargs["aws_secret_access_key"] = self.secret_access_key
        return boto3.client("s3", **kwargs)


class S3Provider(StorageProvider):
    """Lists a model's objects with ListObjects (v1, marker pagination).

    Discovery order is depth first: a page's objects, then each of its
    sub-prefixes in full, then the continuation of the page itself.
    """

    def __init__(self, config: S3Config, spool: SpoolStore, client: Any = None) -> None:
        super().__init__(spool)
        self.config = config
        self._s3 = client if client is not None else config.client()

    async def stream_paths_to_spool(self, model_id: str, root_prefix: str, model_name: str) -> int:
        files_count = await self._list_to_spool(model_id, root_prefix + DELIMITER)

        if self.spool.is_empty(model_id):
            raise NotFoundError(
                f"Model {model_name} doesn't exist in bucket {self.config.bucket}! Path: {root_prefix}"
            )

        log.info("Finished listing the files: files_count=%d model=%s model_id=%s", files_count, model_name, model_id)
        return files_count

    async def _list_to_spool(self, model_id: str, prefix: str) -> int:
        files_count = 0
        # (prefix, marker); continuation pages sit below their sub-prefixes
        stack: List[Tuple[str, Optional[str]]] = [(prefix, None)]
        while stack:
            current, marker = stack.pop()
            page = await self._list_page(model_id, current, marker)

            last_key: Optional[str] = None
            for content in page.get("Contents") or []:
                key = content.get("Key")
                if not key:
                    raise IntegrityError("found content without file name")
                # one key must stay one spool line
                if "\n" in key or "\r" in key:
                    raise IntegrityError(f"found file name with a line break: {key!r}")
                self.spool.append(model_id, key)
                files_count += 1
                last_key = key

            prefixes = [c.get("Prefix") for c in page.get("CommonPrefixes") or [] if c.get("Prefix")]

            if page.get("IsTruncated"):
                # without NextMarker, resume after the greatest entry of the page
                seen = [k for k in (last_key, prefixes[-1] if prefixes else None) if k]
                next_marker = page.get("NextMarker") or (max(seen) if seen else None)
                if not next_marker:
                    raise ProviderError(
                        f"listing of {current} is truncated without a continuation marker, bucket: {self.config.bucket}"
                    )
                stack.append((page.get("Prefix") or current, next_marker))

            for sub in reversed(prefixes):
                stack.append((sub, None))

            log.debug("Listed %d files so far, model_id=%s", files_count, model_id)
        return files_count

    async def _list_page(self, model_id: str, prefix: str, marker: Optional[str]) -> Dict[str, Any]:
        params: Dict[str, Any] = {
            "Bucket": self.config.bucket,
            "Delimiter": DELIMITER,
            "Prefix": prefix,
        }
        if marker:
            params["Marker"] = marker
        try:
            return await asyncio.to_thread(self._s3.list_objects, **params)
        except Exception as e:
            log.error("failed in listing the model: model_id=%s prefix=%s error=%s", model_id, prefix, e)
            raise self._provider_error(e) from e

    def _provider_error(self, error: Exception) -> ProviderError:
        if isinstance(error, ClientError):
            meta = error.response.get("ResponseMetadata") or {}
            err = error.response.get("Error") or {}
            status = meta.get("HTTPStatusCode") or HTTPStatus.INTERNAL_SERVER_ERROR
            message = f"{err.get('Code', type(error).__name__)}, message: {err.get('Message', str(error))}, bucket: {self.config.bucket}"
            return ProviderError(message, status)
        return ProviderError(f"Didn't throw a S3 exception: {error}, bucket: {self.config.bucket}")
