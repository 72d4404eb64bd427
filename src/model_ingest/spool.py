"""Per-model scratch log of discovered storage paths.

Enumeration appends one path per line, batching reads them back in the same
order. Each model id owns exactly one file under ``root``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterator, Optional, TextIO
from urllib.parse import quote

from .errors import SpoolIOError


log = logging.getLogger(__name__)


class SpoolReader:
    """Forward-only reader over one spool file. Not restartable."""

    def __init__(self, path: Path) -> None:
        self.path = path
        try:
            self._fh: Optional[TextIO] = path.open("r", encoding="utf-8")
        except OSError as e:
            raise SpoolIOError(f"failed opening spool {path}: {e}") from e

    def readline(self) -> Optional[str]:
        """Return the next path, or None once the spool is exhausted."""
        if self._fh is None:
            return None
        try:
            line = self._fh.readline()
        except OSError as e:
            raise SpoolIOError(f"failed reading spool {self.path}: {e}") from e
        if not line:
            self.close()
            return None
        return line.rstrip("\n")

    def close(self) -> None:
        if self._fh is not None:
            self._fh.close()
            self._fh = None

    def __iter__(self) -> Iterator[str]:
        while True:
            data = self.readline()
            if data is None:
                return
            yield data

    def __enter__(self) -> "SpoolReader":
        return self

    def __exit__(self, *exc) -> None:
        self.close()


@dataclass
class SpoolStore:
    root: Path
    _writers: Dict[str, TextIO] = field(default_factory=dict, init=False, repr=False)

    def _ensure(self) -> None:
        self.root.mkdir(parents=True, exist_ok=True)

    def path_for(self, model_id: str) -> Path:
        # ids are opaque; separators and ".." must not leave ``root``
        return self.root / f"{quote(model_id, safe='')}.txt"

    def create(self, model_id: str) -> None:
        self._close_writer(model_id)
        path = self.path_for(model_id)
        try:
            self._ensure()
            self._writers[model_id] = path.open("w", encoding="utf-8")
        except OSError as e:
            raise SpoolIOError(f"failed creating spool for model {model_id} at {path}: {e}") from e
        log.debug("Created spool %s", path)

    def append(self, model_id: str, path: str) -> None:
        fh = self._writers.get(model_id)
        try:
            if fh is None:
                self._ensure()
                fh = self.path_for(model_id).open("a", encoding="utf-8")
                self._writers[model_id] = fh
            fh.write(path + "\n")
        except OSError as e:
            raise SpoolIOError(f"failed appending to spool for model {model_id}: {e}") from e

    def exists(self, model_id: str) -> bool:
        return self.path_for(model_id).exists()

    def is_empty(self, model_id: str) -> bool:
        self._flush_writer(model_id)
        try:
            return self.path_for(model_id).stat().st_size == 0
        except FileNotFoundError:
            return True
        except OSError as e:
            raise SpoolIOError(f"failed inspecting spool for model {model_id}: {e}") from e

    def reader(self, model_id: str) -> SpoolReader:
        # readers only ever see fully written data
        self._close_writer(model_id)
        return SpoolReader(self.path_for(model_id))

    def read_lines(self, model_id: str) -> Iterator[str]:
        with self.reader(model_id) as r:
            yield from r

    def delete(self, model_id: str) -> None:
        self._close_writer(model_id)
        path = self.path_for(model_id)
        try:
            path.unlink(missing_ok=True)
        except OSError as e:
            raise SpoolIOError(f"failed deleting spool for model {model_id} at {path}: {e}") from e
        log.debug("Deleted spool %s", path)

    def _flush_writer(self, model_id: str) -> None:
        fh = self._writers.get(model_id)
        if fh is None:
            return
        try:
            fh.flush()
        except OSError as e:
            raise SpoolIOError(f"failed flushing spool for model {model_id}: {e}") from e

    def _close_writer(self, model_id: str) -> None:
        fh = self._writers.pop(model_id, None)
        if fh is None:
            return
        try:
            fh.close()
        except OSError as e:
            raise SpoolIOError(f"failed closing spool for model {model_id}: {e}") from e
