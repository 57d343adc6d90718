"""Session context: builds and owns every component of one planner session.

    async with SessionContext.from_config() as ctx:
        await ctx.wait_ready()
        ctx.controller.select_date(date(2024, 7, 4))
        ...

Startup order: identity first, then the subscription (writes are stamped
with the identity). ``close()`` cancels the standing subscription and
releases the HTTP adapters; writes already in flight are not cancelled.
"""
from __future__ import annotations
import asyncio
import logging
from datetime import date, datetime
from typing import Awaitable, Callable, List, Optional

import httpx

from trip.domain.PlanCollection import PlanCollection
from trip.events.Event_Bus import EventBus, PLANS_SNAPSHOT
from trip.infra.Document_Store import DocumentStore
from trip.infra.Firebase_Auth import FirebaseAuthProvider
from trip.infra.Firestore_Store import FirestoreDocumentStore
from trip.infra.Identity_Provider import IdentityProvider, IdentityProviderAdapter
from trip.logic.session.controller import PlannerSessionController
from trip.logic.sync.engine import PlanSyncEngine
from trip.utilities import config

logger = logging.getLogger(__name__)


class SessionContext:
    def __init__(self, store: DocumentStore, identity_provider: Optional[IdentityProvider],
                 collection_path: str, initial_token: Optional[str] = None,
                 today: Optional[date] = None, clock: Optional[Callable[[], datetime]] = None,
                 id_factory: Optional[Callable[[], str]] = None):
        self.bus = EventBus()
        self.store = store
        adapter_kwargs = {'id_factory': id_factory} if id_factory else {}
        self.identity = IdentityProviderAdapter(identity_provider, initial_token, bus=self.bus, **adapter_kwargs)
        self.plans = PlanCollection()
        engine_kwargs = {'clock': clock} if clock else {}
        self.engine = PlanSyncEngine(store, collection_path, self.identity, self.plans, self.bus, **engine_kwargs)
        self.controller = PlannerSessionController(self.engine, today=today)
        self._closers: List[Callable[[], Awaitable[None]]] = []
        self.closed = False

    @classmethod
    def from_config(cls, app_id: str = config.APP_ID, firebase_config: Optional[dict] = None,
                    initial_token: Optional[str] = config.INITIAL_AUTH_TOKEN,
                    client: Optional[httpx.AsyncClient] = None, **kwargs) -> "SessionContext":
        """Session against Firebase Auth + Firestore, configured from the environment."""
        cfg = config.load_firebase_config() if firebase_config is None else firebase_config
        auth = FirebaseAuthProvider(cfg.get('apiKey'), client=client)
        store = FirestoreDocumentStore(cfg.get('projectId', ''), client=client,
                                       token_supplier=lambda: auth.id_token,
                                       poll_interval=config.POLL_INTERVAL)
        ctx = cls(store, auth, config.collection_path(app_id), initial_token=initial_token, **kwargs)
        ctx._closers.extend([store.aclose, auth.aclose])
        return ctx

    async def start(self) -> PlannerSessionController:
        user_id = await self.identity.acquire_identity()
        self.engine.subscribe()
        logger.info(f"Session started for {user_id} on {self.engine.collection_path}")
        return self.controller

    async def wait_ready(self, timeout: Optional[float] = None) -> bool:
        """Wait until identity and the first snapshot are in; False on timeout."""
        if self.controller.ready:
            return True
        event = asyncio.Event()

        def _on_snapshot(event_name, payload):
            event.set()
        self.bus.subscribe(PLANS_SNAPSHOT, _on_snapshot)
        try:
            await asyncio.wait_for(event.wait(), timeout)
        except asyncio.TimeoutError:
            return False
        finally:
            self.bus.unsubscribe(PLANS_SNAPSHOT, _on_snapshot)
        return self.controller.ready

    async def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        self.engine.unsubscribe()
        self.controller.detach()
        for closer in self._closers:
            try:
                await closer()
            except Exception as e:
                logger.warning(f"Error while releasing {closer}: {e}")
        self.bus.clear()
        logger.info("Session closed")

    async def __aenter__(self) -> "SessionContext":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()
