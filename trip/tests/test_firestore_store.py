import asyncio
import json
from datetime import datetime, timezone

import httpx
import pytest

from trip.infra.Firestore_Store import (
    FirestoreDocumentStore, decode_fields, encode_fields, parse_timestamp
)
from trip.tests.fakes import PATH, T0
from trip.utilities.errors import SubscriptionFailure, WriteFailure

DOCS = f"/v1/projects/demo/databases/(default)/documents/{PATH}"


def _doc(key, **fields):
    return {
        "name": f"projects/demo/databases/(default)/documents/{PATH}/{key}",
        "fields": encode_fields(fields),
    }


def _store(handler, **kwargs):
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return FirestoreDocumentStore("demo", client=client, **kwargs)


def test_codec_handles_plan_documents():
    encoded = encode_fields({"title": "Fireworks", "lastUpdatedBy": "u1", "timestamp": T0, "n": 3, "ok": True})
    assert encoded["title"] == {"stringValue": "Fireworks"}
    assert encoded["timestamp"] == {"timestampValue": "2024-07-01T12:00:00Z"}
    assert encoded["n"] == {"integerValue": "3"}
    assert encoded["ok"] == {"booleanValue": True}
    assert decode_fields(encoded) == {"title": "Fireworks", "lastUpdatedBy": "u1", "timestamp": T0, "n": 3, "ok": True}


def test_parse_timestamp_with_nanoseconds():
    parsed = parse_timestamp("2024-07-04T21:30:05.123456789Z")
    assert parsed == datetime(2024, 7, 4, 21, 30, 5, 123456, tzinfo=timezone.utc)


@pytest.mark.asyncio
async def test_write_merge_sends_update_mask_and_token():
    requests = []

    def handler(request):
        requests.append(request)
        return httpx.Response(200, json={"name": "x", "fields": {}})

    store = _store(handler, token_supplier=lambda: "id-token")
    await store.write_merge(PATH, "2024-07-04", {"title": "Fireworks", "lastUpdatedBy": "u1", "timestamp": T0})

    req = requests[0]
    assert req.method == "PATCH"
    assert req.url.path == f"{DOCS}/2024-07-04"
    assert req.url.params.get_list("updateMask.fieldPaths") == ["title", "lastUpdatedBy", "timestamp"]
    assert req.headers["Authorization"] == "Bearer id-token"
    body = json.loads(req.content)
    assert body["fields"]["title"] == {"stringValue": "Fireworks"}
    assert "description" not in body["fields"]
    await store.aclose()


@pytest.mark.asyncio
async def test_rejected_write_raises_write_failure():
    def handler(request):
        return httpx.Response(403, json={"error": {
            "code": 403, "message": "Missing or insufficient permissions.", "status": "PERMISSION_DENIED"}})

    store = _store(handler)
    with pytest.raises(WriteFailure) as info:
        await store.write_merge(PATH, "2024-07-04", {"title": "x"})
    assert str(info.value) == "PERMISSION_DENIED: Missing or insufficient permissions. (HTTP 403)"
    with pytest.raises(WriteFailure):
        await store.delete(PATH, "2024-07-04")


@pytest.mark.asyncio
async def test_unreachable_store_raises_write_failure():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    store = _store(handler)
    with pytest.raises(WriteFailure) as info:
        await store.delete(PATH, "2024-07-04")
    assert "Store unreachable" in str(info.value)


@pytest.mark.asyncio
async def test_delete_targets_document():
    requests = []

    def handler(request):
        requests.append(request)
        return httpx.Response(200, json={})

    store = _store(handler)
    await store.delete(PATH, "2024-07-04")
    assert requests[0].method == "DELETE"
    assert requests[0].url.path == f"{DOCS}/2024-07-04"
    assert "Authorization" not in requests[0].headers


@pytest.mark.asyncio
async def test_list_documents_follows_page_tokens():
    def handler(request):
        if request.url.params.get("pageToken") == "p2":
            return httpx.Response(200, json={"documents": [_doc("2024-07-03", title="b")]})
        return httpx.Response(200, json={"documents": [_doc("2024-07-02", title="a")], "nextPageToken": "p2"})

    store = _store(handler)
    snapshot = await store.list_documents(PATH)
    assert snapshot == {"2024-07-02": {"title": "a"}, "2024-07-03": {"title": "b"}}


@pytest.mark.asyncio
async def test_empty_collection_listing():
    store = _store(lambda request: httpx.Response(200, json={}))
    assert await store.list_documents(PATH) == {}


@pytest.mark.asyncio
async def test_polling_listener_pushes_changes_and_reports_outages():
    responses = [
        httpx.Response(200, json={"documents": [_doc("2024-07-02", title="a")]}),
        httpx.Response(200, json={"documents": [_doc("2024-07-02", title="a")]}),
        httpx.Response(503, json={"error": {"code": 503, "message": "unavailable", "status": "UNAVAILABLE"}}),
        httpx.Response(503, json={"error": {"code": 503, "message": "unavailable", "status": "UNAVAILABLE"}}),
        httpx.Response(200, json={"documents": [_doc("2024-07-02", title="a")]}),
    ]
    latest = httpx.Response(200, json={"documents": [_doc("2024-07-02", title="a"), _doc("2024-07-05", title="b")]})

    def handler(request):
        return responses.pop(0) if responses else latest

    store = _store(handler, poll_interval=0.001)
    snapshots, errors = [], []
    unsubscribe = store.subscribe(PATH, snapshots.append, errors.append)
    for _ in range(500):
        if len(snapshots) >= 3:
            break
        await asyncio.sleep(0.005)
    unsubscribe()

    assert [sorted(s) for s in snapshots[:3]] == [
        ["2024-07-02"], ["2024-07-02"], ["2024-07-02", "2024-07-05"]
    ]
    assert len(errors) == 1
    assert isinstance(errors[0], SubscriptionFailure)
    assert "UNAVAILABLE" in str(errors[0])
    await store.aclose()


def test_project_id_is_required():
    with pytest.raises(ValueError):
        FirestoreDocumentStore("")
