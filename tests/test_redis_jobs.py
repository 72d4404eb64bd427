from __future__ import annotations

import asyncio

import pytest

from model_ingest.db.redis_jobs import RedisJobRepository
from model_ingest.dispatch import TaskDispatcher
from model_ingest.types import TaskParameters, TaskPayload
from fakes import FakeRedis


@pytest.fixture
def redis_client() -> FakeRedis:
    return FakeRedis()


@pytest.fixture
def repo(redis_client: FakeRedis) -> RedisJobRepository:
    return RedisJobRepository(url="redis://unused:6379/0", namespace="test", client=redis_client)


def test_job_round_trip(repo: RedisJobRepository, redis_client: FakeRedis):
    async def run():
        job_id = await repo.create_job("Ingestion", {"modelId": "m1"})
        return job_id, await repo.get_job(job_id)

    job_id, job = asyncio.run(run())

    assert job is not None
    assert job.id == job_id
    assert job.type == "Ingestion"
    assert job.parameters == {"modelId": "m1"}
    assert job.status == "In-Progress"
    assert job.created_at is not None
    assert f"test:job:{job_id}" in redis_client.hashes


def test_get_unknown_job_returns_none(repo: RedisJobRepository):
    assert asyncio.run(repo.get_job("nope")) is None


def test_list_tasks_for_job_without_tasks(repo: RedisJobRepository):
    assert asyncio.run(repo.list_tasks("nope")) == []


def test_dispatch_and_report_against_redis_hashes(repo: RedisJobRepository, redis_client: FakeRedis):
    tasks = [
        TaskPayload(type="tilesCopying", parameters=TaskParameters(paths=("a", "b"), model_id="m1")),
        TaskPayload(type="tilesCopying", parameters=TaskParameters(paths=("c",), model_id="m1")),
    ]

    async def run():
        job_id = await repo.create_job("Ingestion", {"modelId": "m1", "modelName": "One"})
        dispatcher = TaskDispatcher(repo, max_requests=2)
        await dispatcher.submit(job_id, tasks)
        await dispatcher.report_count(job_id, 3)
        return job_id, await repo.get_job(job_id), await repo.list_tasks(job_id)

    job_id, job, stored = asyncio.run(run())

    assert job.parameters == {"modelId": "m1", "modelName": "One", "filesCount": 3}
    assert len(stored) == 2
    assert sorted(t.parameters["paths"] for t in stored) == [["a", "b"], ["c"]]
    assert {t.parameters["lastIndexError"] for t in stored} == {-1}
    assert {t.status for t in stored} == {"Pending"}
    assert {t.job_id for t in stored} == {job_id}
    # tasks are stored, not queued for workers
    assert set(redis_client.lists) == {f"test:job:{job_id}:tasks"}


def test_ensure_propagates_connection_failures():
    repo = RedisJobRepository(url="redis://unused:6379/0", client=FakeRedis(down=True))

    with pytest.raises(ConnectionError):
        asyncio.run(repo.ensure())
