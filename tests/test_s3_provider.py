from __future__ import annotations

import asyncio

import pytest
from botocore.exceptions import ClientError, EndpointConnectionError

from model_ingest.errors import IntegrityError, NotFoundError, ProviderError
from model_ingest.spool import SpoolStore
from fakes import FakeS3, ScriptedS3, make_provider


TREE = [
    "models/m1/tileset.json",
    "models/m1/a/0.b3dm",
    "models/m1/a/1.b3dm",
    "models/m1/a/deep/2.b3dm",
    "models/m1/a/deep/3.b3dm",
    "models/m1/b/4.b3dm",
    "models/m1/b/5.b3dm",
    "models/m1/c.json",
    "models/m1/d.json",
    "models/other/x.b3dm",
]


def _run(provider, model_id="m1", prefix="models/m1", name="Model One") -> int:
    provider.spool.create(model_id)
    return asyncio.run(provider.stream_paths_to_spool(model_id, prefix, name))


@pytest.mark.parametrize("page_size", [1, 2, 3, 1000])
def test_truncated_and_nested_listing_finds_every_leaf_once(spool: SpoolStore, page_size: int):
    client = FakeS3(TREE, page_size=page_size)
    provider = make_provider(spool, client)

    count = _run(provider)

    lines = list(spool.read_lines("m1"))
    expected = sorted(k for k in TREE if k.startswith("models/m1/"))
    assert sorted(lines) == expected
    assert len(lines) == len(set(lines))
    assert count == len(lines)


def test_listing_uses_delimiter_and_trailing_slash(spool: SpoolStore):
    client = FakeS3(TREE)
    _run(make_provider(spool, client))

    first = client.calls[0]
    assert first == {"Bucket": "models", "Delimiter": "/", "Prefix": "models/m1/"}
    assert all(call["Delimiter"] == "/" for call in client.calls)


def test_subprefixes_are_listed_before_the_continuation_page(spool: SpoolStore):
    pages = {
        ("root/", None): {
            "Prefix": "root/",
            "Contents": [{"Key": "root/x"}],
            "CommonPrefixes": [{"Prefix": "root/a/"}, {"Prefix": "root/b/"}],
            "IsTruncated": True,
            "NextMarker": "root/b/",
        },
        ("root/a/", None): {"Prefix": "root/a/", "Contents": [{"Key": "root/a/1"}], "IsTruncated": False},
        ("root/b/", None): {"Prefix": "root/b/", "Contents": [{"Key": "root/b/2"}], "IsTruncated": False},
        ("root/", "root/b/"): {"Prefix": "root/", "Contents": [{"Key": "root/y"}], "IsTruncated": False},
    }
    provider = make_provider(spool, ScriptedS3(pages))

    count = _run(provider, prefix="root")

    assert list(spool.read_lines("m1")) == ["root/x", "root/a/1", "root/b/2", "root/y"]
    assert count == 4


def test_two_page_example(spool: SpoolStore):
    pages = {
        ("p/", None): {"Prefix": "p/", "Contents": [{"Key": "x"}, {"Key": "y"}], "IsTruncated": True, "NextMarker": "M"},
        ("p/", "M"): {"Prefix": "p/", "Contents": [{"Key": "z"}], "IsTruncated": False},
    }
    client = ScriptedS3(pages)

    count = _run(make_provider(spool, client), prefix="p")

    assert list(spool.read_lines("m1")) == ["x", "y", "z"]
    assert count == 3
    assert client.calls[1]["Marker"] == "M"


def test_missing_next_marker_falls_back_to_last_key(spool: SpoolStore):
    client = FakeS3(["r/a", "r/b", "r/c"], page_size=2, emit_next_marker=False)

    count = _run(make_provider(spool, client), prefix="r")

    assert list(spool.read_lines("m1")) == ["r/a", "r/b", "r/c"]
    assert count == 3
    assert client.calls[1]["Marker"] == "r/b"


def test_truncated_page_of_only_prefixes_resumes_after_last_prefix(spool: SpoolStore):
    client = FakeS3(["r/a/1", "r/b/2", "r/c/3"], page_size=2, emit_next_marker=False)

    count = _run(make_provider(spool, client), prefix="r")

    assert list(spool.read_lines("m1")) == ["r/a/1", "r/b/2", "r/c/3"]
    assert count == 3
    assert {"Prefix": "r/", "Delimiter": "/", "Bucket": "models", "Marker": "r/b/"} in client.calls


def test_empty_prefix_is_not_found(spool: SpoolStore):
    provider = make_provider(spool, FakeS3(TREE))

    with pytest.raises(NotFoundError) as ei:
        _run(provider, prefix="models/missing", name="Ghost")

    msg = str(ei.value)
    assert "Ghost" in msg and "models/missing" in msg and "models" in msg
    assert ei.value.status_code == 404


def test_object_without_key_aborts_the_page(spool: SpoolStore):
    pages = {
        ("r/", None): {
            "Prefix": "r/",
            "Contents": [{"Key": "r/a"}, {"Size": 3}, {"Key": "r/c"}],
            "IsTruncated": False,
        },
    }

    with pytest.raises(IntegrityError):
        _run(make_provider(spool, ScriptedS3(pages)), prefix="r")

    assert list(spool.read_lines("m1")) == ["r/a"]


def test_client_error_maps_status_and_names_bucket(spool: SpoolStore):
    denied = ClientError(
        {"Error": {"Code": "AccessDenied", "Message": "Access Denied"}, "ResponseMetadata": {"HTTPStatusCode": 403}},
        "ListObjects",
    )
    provider = make_provider(spool, ScriptedS3({("r/", None): denied}))

    with pytest.raises(ProviderError) as ei:
        _run(provider, prefix="r")

    assert ei.value.status_code == 403
    assert "AccessDenied" in str(ei.value)
    assert "bucket: models" in str(ei.value)


def test_error_in_nested_prefix_fails_whole_enumeration(spool: SpoolStore):
    pages = {
        ("r/", None): {"Prefix": "r/", "Contents": [{"Key": "r/a"}], "CommonPrefixes": [{"Prefix": "r/s/"}], "IsTruncated": False},
        ("r/s/", None): EndpointConnectionError(endpoint_url="http://minio:9000"),
    }

    with pytest.raises(ProviderError) as ei:
        _run(make_provider(spool, ScriptedS3(pages)), prefix="r")

    assert ei.value.status_code == 500


def test_provider_is_reusable_with_fresh_counts(spool: SpoolStore):
    provider = make_provider(spool, FakeS3(TREE, page_size=2))

    first = _run(provider, model_id="m1", prefix="models/m1")
    second = _run(provider, model_id="m2", prefix="models/other")

    assert first == 9
    assert second == 1


def test_concurrent_enumerations_keep_separate_counts(spool: SpoolStore):
    provider = make_provider(spool, FakeS3(TREE, page_size=2))
    spool.create("m1")
    spool.create("m2")

    async def both():
        return await asyncio.gather(
            provider.stream_paths_to_spool("m1", "models/m1", "one"),
            provider.stream_paths_to_spool("m2", "models/other", "two"),
        )

    assert asyncio.run(both()) == [9, 1]
    assert list(spool.read_lines("m2")) == ["models/other/x.b3dm"]


@pytest.mark.parametrize("bad", ["r/a\nb.obj", "r/a\rb.obj"])
def test_key_with_line_break_is_rejected(spool: SpoolStore, bad: str):
    client = FakeS3([bad, "r/c.obj"])

    with pytest.raises(IntegrityError):
        _run(make_provider(spool, client), prefix="r")

    assert list(spool.read_lines("m1")) == []
