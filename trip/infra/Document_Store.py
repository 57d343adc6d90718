"""Remote document store boundary and an in-process implementation.

The sync engine only needs three operations on a keyed collection:

    subscribe(path, on_snapshot, on_error) -> unsubscribe
    await write_merge(path, key, fields)    # supplied fields merged, others preserved
    await delete(path, key)

``on_snapshot`` always receives the *full* collection ({key: fields}).

InMemoryDocumentStore keeps one shared collection per path and pushes a new
full snapshot to every listener after each change, so several sessions
created against the same store behave like several clients of one database.
Delivery is queued per listener and flushed on the next loop iteration
(``auto_deliver=True``) or explicitly with ``deliver_pending()``.
"""
from __future__ import annotations
import asyncio
import copy
import logging
from collections import defaultdict, deque
from typing import Any, Callable, Deque, Dict, List, Mapping, Optional, Protocol

from trip.utilities.errors import SubscriptionFailure, WriteFailure

logger = logging.getLogger(__name__)

Snapshot = Dict[str, Dict[str, Any]]
SnapshotCallback = Callable[[Snapshot], None]
ErrorCallback = Callable[[BaseException], None]
Unsubscribe = Callable[[], None]


class DocumentStore(Protocol):
    def subscribe(self, collection_path: str, on_snapshot: SnapshotCallback,
                  on_error: ErrorCallback) -> Unsubscribe: ...

    async def write_merge(self, collection_path: str, document_key: str,
                          fields: Mapping[str, Any]) -> None: ...

    async def delete(self, collection_path: str, document_key: str) -> None: ...


class _Listener:
    def __init__(self, path: str, on_snapshot: SnapshotCallback, on_error: ErrorCallback):
        self.path = path
        self.on_snapshot = on_snapshot
        self.on_error = on_error
        self.pending: Deque[Any] = deque()
        self.active = True


class InMemoryDocumentStore:
    def __init__(self, auto_deliver: bool = True):
        self.auto_deliver = auto_deliver
        self._collections: Dict[str, Dict[str, Dict[str, Any]]] = defaultdict(dict)
        self._listeners: List[_Listener] = []
        self._failed: List[_Listener] = []
        self._write_failures: Deque[BaseException] = deque()
        self._delete_failures: Deque[BaseException] = deque()
        self.subscription_failure: Optional[BaseException] = None
        self.operations: List[tuple] = []

    # --- boundary operations ---
    def subscribe(self, collection_path: str, on_snapshot: SnapshotCallback,
                  on_error: ErrorCallback) -> Unsubscribe:
        listener = _Listener(collection_path, on_snapshot, on_error)
        self.operations.append(("subscribe", collection_path))
        if self.subscription_failure is not None:
            listener.pending.append(self.subscription_failure)
            listener.active = False
            self._failed.append(listener)
            self._schedule(listener)
            return lambda: None
        self._listeners.append(listener)
        listener.pending.append(self.snapshot(collection_path))
        self._schedule(listener)

        def _unsubscribe():
            listener.active = False
            listener.pending.clear()
            if listener in self._listeners:
                self._listeners.remove(listener)
        return _unsubscribe

    async def write_merge(self, collection_path: str, document_key: str,
                          fields: Mapping[str, Any]) -> None:
        await asyncio.sleep(0)
        self.operations.append(("write_merge", collection_path, document_key, dict(fields)))
        if self._write_failures:
            raise self._write_failures.popleft()
        doc = self._collections[collection_path].setdefault(document_key, {})
        doc.update(copy.deepcopy(dict(fields)))
        self._notify(collection_path)

    async def delete(self, collection_path: str, document_key: str) -> None:
        await asyncio.sleep(0)
        self.operations.append(("delete", collection_path, document_key))
        if self._delete_failures:
            raise self._delete_failures.popleft()
        self._collections[collection_path].pop(document_key, None)
        self._notify(collection_path)

    # --- inspection / fault injection ---
    def snapshot(self, collection_path: str) -> Snapshot:
        return copy.deepcopy(self._collections.get(collection_path, {}))

    def document(self, collection_path: str, document_key: str) -> Optional[Dict[str, Any]]:
        doc = self._collections.get(collection_path, {}).get(document_key)
        return copy.deepcopy(doc) if doc is not None else None

    def seed(self, collection_path: str, documents: Mapping[str, Mapping[str, Any]]) -> None:
        """Put documents in place without notifying listeners."""
        for key, fields in documents.items():
            self._collections[collection_path][key] = copy.deepcopy(dict(fields))

    def fail_next_write(self, error: Optional[BaseException] = None) -> None:
        self._write_failures.append(error or WriteFailure("permission-denied: Missing or insufficient permissions."))

    def fail_next_delete(self, error: Optional[BaseException] = None) -> None:
        self._delete_failures.append(error or WriteFailure("permission-denied: Missing or insufficient permissions."))

    def emit_error(self, collection_path: str, error: Optional[BaseException] = None) -> None:
        """Interrupt every listener of a path with an error (listeners stay registered)."""
        error = error or SubscriptionFailure("unavailable: The service is currently unavailable.")
        for listener in self._listeners:
            if listener.path == collection_path:
                listener.pending.append(error)
                self._schedule(listener)

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    def deliver_pending(self) -> int:
        """Deliver every queued snapshot/error in order; returns how many were delivered."""
        delivered = 0
        for listener in self._failed + list(self._listeners):
            delivered += self._flush(listener)
        return delivered

    # --- internals ---
    def _notify(self, collection_path: str) -> None:
        snap = self.snapshot(collection_path)
        for listener in self._listeners:
            if listener.path == collection_path:
                listener.pending.append(copy.deepcopy(snap))
                self._schedule(listener)

    def _schedule(self, listener: _Listener) -> None:
        if not self.auto_deliver:
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            self._flush(listener)
            return
        loop.call_soon(self._flush, listener)

    def _flush(self, listener: _Listener) -> int:
        delivered = 0
        while listener.pending:
            item = listener.pending.popleft()
            delivered += 1
            if isinstance(item, BaseException):
                listener.on_error(item)
            else:
                listener.on_snapshot(item)
        if listener in self._failed:
            self._failed.remove(listener)
        return delivered


__all__ = ['DocumentStore', 'InMemoryDocumentStore', 'Snapshot', 'Unsubscribe']
