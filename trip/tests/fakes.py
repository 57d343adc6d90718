"""Test doubles for the identity boundary plus small async helpers."""
import asyncio
from datetime import datetime, timezone
from typing import List, Optional

from trip.context import SessionContext
from trip.infra.Document_Store import InMemoryDocumentStore
from trip.utilities.config import collection_path
from trip.utilities.errors import IdentityFailure

PATH = collection_path("test-app")
T0 = datetime(2024, 7, 1, 12, 0, tzinfo=timezone.utc)


class FakeAuthProvider:
    def __init__(self, anonymous_id: Optional[str] = "anon-1", token_id: Optional[str] = "token-user",
                 current: Optional[str] = None, fail_anonymous: bool = False, fail_token: bool = False):
        self.anonymous_id = anonymous_id
        self.token_id = token_id
        self.current = current
        self.fail_anonymous = fail_anonymous
        self.fail_token = fail_token
        self.calls: List[str] = []

    def current_user_id(self) -> Optional[str]:
        return self.current

    async def sign_in_anonymously(self) -> str:
        self.calls.append("anonymous")
        await asyncio.sleep(0)
        if self.fail_anonymous:
            raise IdentityFailure("auth/network-request-failed")
        self.current = self.anonymous_id
        return self.anonymous_id

    async def sign_in_with_custom_token(self, token: str) -> str:
        self.calls.append(f"token:{token}")
        await asyncio.sleep(0)
        if self.fail_token:
            raise IdentityFailure("auth/invalid-custom-token")
        self.current = self.token_id
        return self.token_id


async def settle(rounds: int = 3) -> None:
    """Let queued store deliveries run."""
    for _ in range(rounds):
        await asyncio.sleep(0)


def make_context(store: InMemoryDocumentStore, user_id: str = "u1", **kwargs) -> SessionContext:
    kwargs.setdefault("today", datetime(2024, 7, 1).date())
    kwargs.setdefault("clock", lambda: T0)
    return SessionContext(store, FakeAuthProvider(anonymous_id=user_id), PATH, **kwargs)
