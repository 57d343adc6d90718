"""Identity Provider Adapter: obtains the session's user id exactly once.

Resolution order:
  1. the provider already has a signed-in user -> use it
  2. a continuation token is configured         -> exchange it
  3. otherwise (or if 2 failed)                 -> anonymous sign-in
  4. everything failed                          -> local random id + warning

The identity only stamps ``lastUpdatedBy`` on writes; a fallback id keeps the
session usable but is not recognized by other clients or later sessions.
"""
from __future__ import annotations
import asyncio
import logging
import uuid
from typing import Callable, Optional, Protocol, Tuple

from trip.events.Event_Bus import EventBus, IDENTITY_ACQUIRED
from trip.utilities.errors import IdentityFailure, describe

logger = logging.getLogger(__name__)


class IdentityProvider(Protocol):
    def current_user_id(self) -> Optional[str]: ...

    async def sign_in_anonymously(self) -> str: ...

    async def sign_in_with_custom_token(self, token: str) -> str: ...


class IdentityProviderAdapter:
    def __init__(self, provider: Optional[IdentityProvider], initial_token: Optional[str] = None,
                 bus: Optional[EventBus] = None, id_factory: Callable[[], str] = lambda: str(uuid.uuid4())):
        self._provider = provider
        self._initial_token = initial_token
        self._bus = bus
        self._id_factory = id_factory
        self._identity: Optional[str] = None
        self._task: Optional[asyncio.Future] = None
        self.is_fallback = False
        self.warning: Optional[str] = None

    @property
    def identity(self) -> Optional[str]:
        return self._identity

    @property
    def is_ready(self) -> bool:
        return self._identity is not None

    async def acquire_identity(self) -> str:
        """Resolve the identity; concurrent and repeated calls share one resolution."""
        if self._identity is not None:
            return self._identity
        if self._task is None:
            self._task = asyncio.ensure_future(self._resolve_once())
        return await self._task

    async def _resolve_once(self) -> str:
        user_id, failure = await self._resolve()
        if user_id is None:
            user_id = self._id_factory()
            self.is_fallback = True
            self.warning = f"Authentication failed: {describe(failure)}. Using a temporary local ID for this session."
            logger.warning(f"Identity provider failed ({describe(failure)}); using local id {user_id}")
        else:
            logger.info(f"Identity acquired: {user_id}")
        self._identity = user_id
        if self._bus is not None:
            self._bus.publish(IDENTITY_ACQUIRED, {
                'user_id': user_id, 'fallback': self.is_fallback, 'warning': self.warning
            })
        return user_id

    async def _resolve(self) -> Tuple[Optional[str], Optional[BaseException]]:
        if self._provider is None:
            return None, IdentityFailure("no identity provider configured")
        try:
            current = self._provider.current_user_id()
        except Exception as e:
            logger.warning(f"Could not query the current user: {e}")
            current = None
        if current:
            return current, None

        failure: Optional[BaseException] = None
        if self._initial_token:
            try:
                user_id = await self._provider.sign_in_with_custom_token(self._initial_token)
                if user_id:
                    return user_id, None
                failure = IdentityFailure("custom token sign-in returned no user id")
            except Exception as e:
                logger.warning(f"Custom token sign-in failed: {e}")
                failure = e
        try:
            user_id = await self._provider.sign_in_anonymously()
            if user_id:
                return user_id, None
            failure = IdentityFailure("anonymous sign-in returned no user id")
        except Exception as e:
            logger.warning(f"Anonymous sign-in failed: {e}")
            failure = e
        return None, failure


__all__ = ['IdentityProvider', 'IdentityProviderAdapter']
