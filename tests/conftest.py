from __future__ import annotations

from pathlib import Path

import pytest

from model_ingest.spool import SpoolStore


@pytest.fixture
def spool(tmp_path: Path) -> SpoolStore:
    return SpoolStore(root=tmp_path / "spool")
