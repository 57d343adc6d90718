"""Cloud Firestore document store over the REST API (v1).

write_merge -> PATCH .../documents/{path}/{key}?updateMask.fieldPaths=f1&updateMask.fieldPaths=f2
               (only the masked fields change; the rest of the document is preserved)
delete      -> DELETE .../documents/{path}/{key}
subscribe   -> polling listener: lists the whole collection every ``poll_interval``
               seconds and pushes a full snapshot whenever the content changed.
               Fetch errors go to ``on_error`` once per outage; polling continues
               and the first snapshot after an outage is pushed even if unchanged.
"""
from __future__ import annotations
import asyncio
import logging
import re
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Mapping, Optional

import httpx

from trip.infra.Document_Store import ErrorCallback, Snapshot, SnapshotCallback, Unsubscribe
from trip.infra.Firebase_Auth import error_message
from trip.utilities.config import HTTP_TIMEOUT, POLL_INTERVAL
from trip.utilities.errors import SubscriptionFailure, WriteFailure

logger = logging.getLogger(__name__)

FIRESTORE_URL = "https://firestore.googleapis.com/v1"
PAGE_SIZE = 300

_FRACTION_RE = re.compile(r"\.(\d+)")


# -------------------- Value codec --------------------
def encode_value(value: Any) -> Dict[str, Any]:
    if value is None:
        return {"nullValue": None}
    if isinstance(value, bool):
        return {"booleanValue": value}
    if isinstance(value, int):
        return {"integerValue": str(value)}
    if isinstance(value, float):
        return {"doubleValue": value}
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return {"timestampValue": value.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")}
    if isinstance(value, Mapping):
        return {"mapValue": {"fields": encode_fields(value)}}
    if isinstance(value, (list, tuple)):
        return {"arrayValue": {"values": [encode_value(v) for v in value]}}
    return {"stringValue": str(value)}


def encode_fields(fields: Mapping[str, Any]) -> Dict[str, Any]:
    return {name: encode_value(v) for name, v in fields.items()}


def parse_timestamp(raw: str) -> datetime:
    """Parse an RFC 3339 timestamp (Firestore sends up to nanosecond precision)."""
    text = raw.replace("Z", "+00:00")
    text = _FRACTION_RE.sub(lambda m: "." + m.group(1)[:6].ljust(6, "0"), text, count=1)
    return datetime.fromisoformat(text)


def decode_value(value: Mapping[str, Any]) -> Any:
    if "nullValue" in value:
        return None
    if "booleanValue" in value:
        return bool(value["booleanValue"])
    if "integerValue" in value:
        return int(value["integerValue"])
    if "doubleValue" in value:
        return float(value["doubleValue"])
    if "timestampValue" in value:
        return parse_timestamp(value["timestampValue"])
    if "stringValue" in value:
        return value["stringValue"]
    if "mapValue" in value:
        return decode_fields(value["mapValue"].get("fields", {}))
    if "arrayValue" in value:
        return [decode_value(v) for v in value["arrayValue"].get("values", [])]
    # referenceValue, geoPointValue, bytesValue: passed through as-is
    return next(iter(value.values()), None)


def decode_fields(fields: Mapping[str, Any]) -> Dict[str, Any]:
    return {name: decode_value(v) for name, v in fields.items()}


def document_key(name: str) -> str:
    """Last path segment of a full document resource name."""
    return name.rsplit("/", 1)[-1]


# -------------------- Store --------------------
class FirestoreDocumentStore:
    def __init__(self, project_id: str, client: Optional[httpx.AsyncClient] = None,
                 token_supplier: Optional[Callable[[], Optional[str]]] = None,
                 poll_interval: float = POLL_INTERVAL, timeout: float = HTTP_TIMEOUT,
                 base_url: str = FIRESTORE_URL, database: str = "(default)"):
        if not project_id:
            raise ValueError("Firestore project id is required")
        self.project_id = project_id
        self.poll_interval = poll_interval
        self.timeout = timeout
        self.documents_url = f"{base_url.rstrip('/')}/projects/{project_id}/databases/{database}/documents"
        self._client = client
        self._owns_client = client is None
        self._token_supplier = token_supplier
        self._tasks: set = set()

    # --- boundary operations ---
    def subscribe(self, collection_path: str, on_snapshot: SnapshotCallback,
                  on_error: ErrorCallback) -> Unsubscribe:
        task = asyncio.get_running_loop().create_task(self._poll(collection_path, on_snapshot, on_error))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        logger.info(f"Polling listener started for {collection_path} every {self.poll_interval}s")

        def _unsubscribe():
            if not task.done():
                task.cancel()
                logger.info(f"Polling listener stopped for {collection_path}")
        return _unsubscribe

    async def write_merge(self, collection_path: str, document_key: str,
                          fields: Mapping[str, Any]) -> None:
        params = [("updateMask.fieldPaths", name) for name in fields]
        try:
            response = await self._http().patch(
                self._doc_url(collection_path, document_key), params=params,
                json={"fields": encode_fields(fields)}, headers=self._headers())
        except httpx.HTTPError as e:
            raise WriteFailure(f"Store unreachable: {e}", cause=e) from e
        if response.status_code != 200:
            raise WriteFailure(error_message(response))

    async def delete(self, collection_path: str, document_key: str) -> None:
        try:
            response = await self._http().delete(
                self._doc_url(collection_path, document_key), headers=self._headers())
        except httpx.HTTPError as e:
            raise WriteFailure(f"Store unreachable: {e}", cause=e) from e
        if response.status_code != 200:
            raise WriteFailure(error_message(response))

    async def list_documents(self, collection_path: str) -> Snapshot:
        """Fetch the whole collection as {key: fields}, following page tokens."""
        snapshot: Snapshot = {}
        page_token: Optional[str] = None
        while True:
            params: Dict[str, Any] = {"pageSize": PAGE_SIZE}
            if page_token:
                params["pageToken"] = page_token
            try:
                response = await self._http().get(
                    f"{self.documents_url}/{collection_path}", params=params, headers=self._headers())
            except httpx.HTTPError as e:
                raise SubscriptionFailure(f"Store unreachable: {e}", cause=e) from e
            if response.status_code != 200:
                raise SubscriptionFailure(error_message(response))
            try:
                body = response.json() or {}
                for doc in body.get("documents", []):
                    snapshot[document_key(doc["name"])] = decode_fields(doc.get("fields", {}))
            except (ValueError, KeyError, AttributeError) as e:
                raise SubscriptionFailure(f"Malformed listing for {collection_path}: {e}", cause=e) from e
            page_token = body.get("nextPageToken")
            if not page_token:
                return snapshot

    async def aclose(self) -> None:
        for task in list(self._tasks):
            task.cancel()
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    # --- internals ---
    async def _poll(self, collection_path: str, on_snapshot: SnapshotCallback,
                    on_error: ErrorCallback) -> None:
        last: Optional[Snapshot] = None
        failing = False
        while True:
            try:
                snapshot = await self.list_documents(collection_path)
            except SubscriptionFailure as e:
                if not failing:
                    on_error(e)
                failing = True
                # the first successful fetch after an outage is always pushed
                last = None
            else:
                failing = False
                if snapshot != last:
                    last = snapshot
                    on_snapshot(snapshot)
            await asyncio.sleep(self.poll_interval)

    def _doc_url(self, collection_path: str, document_key: str) -> str:
        return f"{self.documents_url}/{collection_path}/{document_key}"

    def _headers(self) -> Dict[str, str]:
        token = self._token_supplier() if self._token_supplier else None
        return {"Authorization": f"Bearer {token}"} if token else {}

    def _http(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout)
        return self._client


__all__ = ['FirestoreDocumentStore', 'encode_value', 'decode_value', 'encode_fields', 'decode_fields']
