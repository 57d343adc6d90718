"""Plan Store Sync Engine: keeps PlanCollection a live mirror of the remote collection.

Rules:
  - One standing subscription to the whole collection (no server-side filter).
  - Every push replaces PlanCollection with the full decoded snapshot; the new
    mapping is built completely before the swap, so readers never see a
    partial state. Malformed documents are skipped, not fatal.
  - Subscription errors keep the previous PlanCollection (stale but present).
  - Writes are merge writes of the supplied fields plus lastUpdatedBy/timestamp.
    Nothing is applied locally: the outcome arrives through the next snapshot
    (or the raised WriteFailure).
"""
from __future__ import annotations
import logging
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Mapping, Optional

from trip.domain.Plan import Plan
from trip.domain.PlanCollection import PlanCollection
from trip.events.Event_Bus import (
    EventBus, PLANS_SNAPSHOT, PLANS_SUBSCRIPTION_ERROR, PLAN_WRITTEN, PLAN_WRITE_FAILED
)
from trip.infra.Document_Store import DocumentStore, Unsubscribe
from trip.infra.Identity_Provider import IdentityProviderAdapter
from trip.utilities.constants import (
    FIELD_DESCRIPTION, FIELD_LAST_UPDATED_BY, FIELD_TIMESTAMP, FIELD_TITLE
)
from trip.utilities.dates import date_from_key
from trip.utilities.errors import (
    NotReadyError, SubscriptionFailure, ValidationFailure, WriteFailure, describe
)

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def decode_snapshot(documents: Mapping[str, Mapping[str, Any]]):
    """Decode a full snapshot into {date_key: Plan}; returns (plans, skipped_count)."""
    plans: Dict[str, Plan] = {}
    skipped = 0
    for key, fields in documents.items():
        try:
            date_from_key(key)
            plans[key] = Plan.from_dict(key, fields)
        except ValidationFailure as e:
            skipped += 1
            logger.warning(f"Skipping document {key!r}: {e}")
    return plans, skipped


class PlanSyncEngine:
    def __init__(self, store: DocumentStore, collection_path: str, identity: IdentityProviderAdapter,
                 plans: PlanCollection, bus: Optional[EventBus] = None,
                 clock: Callable[[], datetime] = _utcnow):
        self.store = store
        self.collection_path = collection_path
        self.identity = identity
        self.plans = plans
        self.bus = bus or EventBus()
        self.clock = clock
        self._unsubscribe: Optional[Unsubscribe] = None
        self._active = False
        self.has_snapshot = False
        self.last_error: Optional[SubscriptionFailure] = None

    @property
    def is_subscribed(self) -> bool:
        return self._active

    @property
    def ready(self) -> bool:
        """Identity set and at least one snapshot applied."""
        return self.identity.is_ready and self.has_snapshot

    # -------------------- Subscription --------------------
    def subscribe(self) -> None:
        """Open the standing subscription (idempotent). Requires the identity to be set."""
        if self._active:
            return
        if not self.identity.is_ready:
            raise NotReadyError("Identity is not set; acquire it before subscribing")
        self._active = True
        try:
            self._unsubscribe = self.store.subscribe(self.collection_path, self._on_snapshot, self._on_error)
        except Exception as e:
            self._active = False
            self._on_error(e)
            return
        logger.info(f"Subscribed to {self.collection_path}")

    def unsubscribe(self) -> None:
        """Tear down the standing subscription; later deliveries are ignored."""
        was_active = self._active
        self._active = False
        if self._unsubscribe is not None:
            handle, self._unsubscribe = self._unsubscribe, None
            handle()
        if was_active:
            logger.info(f"Unsubscribed from {self.collection_path}")

    def resubscribe(self) -> None:
        """Drop the current listener and open a fresh one.

        A listener that failed to establish stays failed; this is the retry path.
        """
        self.unsubscribe()
        self.subscribe()

    def _on_snapshot(self, documents: Mapping[str, Mapping[str, Any]]) -> None:
        if not self._active:
            return
        plans, skipped = decode_snapshot(documents)
        self.plans.replace(plans)
        self.has_snapshot = True
        self.last_error = None
        logger.info(f"Snapshot applied: {len(plans)} plans ({skipped} skipped)")
        self.bus.publish(PLANS_SNAPSHOT, {'count': len(plans), 'skipped': skipped})

    def _on_error(self, cause: BaseException) -> None:
        if isinstance(cause, SubscriptionFailure):
            failure = cause
        else:
            failure = SubscriptionFailure(describe(cause), cause=cause)
        self.last_error = failure
        logger.warning(f"Subscription to {self.collection_path} failed: {failure}")
        self.bus.publish(PLANS_SUBSCRIPTION_ERROR, {'error': failure})

    # -------------------- Writes --------------------
    async def upsert(self, date_key: str, title: Optional[str] = None,
                     description: Optional[str] = None) -> None:
        """Merge-write the supplied fields; raises WriteFailure if the store rejects it."""
        fields: Dict[str, Any] = {}
        if title is not None:
            fields[FIELD_TITLE] = title
        if description is not None:
            fields[FIELD_DESCRIPTION] = description
        fields[FIELD_LAST_UPDATED_BY] = self._writer(date_key)
        fields[FIELD_TIMESTAMP] = self.clock()
        await self._run_write("upsert", date_key, self.store.write_merge(self.collection_path, date_key, fields))

    async def remove(self, date_key: str) -> None:
        """Delete the whole document; raises WriteFailure if the store rejects it."""
        self._writer(date_key)
        await self._run_write("remove", date_key, self.store.delete(self.collection_path, date_key))

    def _writer(self, date_key: str) -> str:
        date_from_key(date_key)
        if not self.identity.is_ready:
            raise NotReadyError("Identity is not set; writes need an author")
        return self.identity.identity

    async def _run_write(self, action: str, date_key: str, operation) -> None:
        try:
            await operation
        except WriteFailure as e:
            failure = e
        except Exception as e:
            failure = WriteFailure(describe(e), cause=e)
        else:
            logger.info(f"{action} {date_key} accepted by the store")
            self.bus.publish(PLAN_WRITTEN, {'date_key': date_key, 'action': action})
            return
        logger.error(f"{action} {date_key} failed: {failure}")
        self.bus.publish(PLAN_WRITE_FAILED, {'date_key': date_key, 'action': action, 'error': failure})
        raise failure


__all__ = ['PlanSyncEngine', 'decode_snapshot']
