from datetime import date

import httpx
import pytest

from trip.context import SessionContext
from trip.infra.Document_Store import InMemoryDocumentStore
from trip.infra.Firestore_Store import encode_fields
from trip.tests.fakes import PATH, FakeAuthProvider, make_context, settle


@pytest.mark.asyncio
async def test_two_sessions_share_one_collection():
    store = InMemoryDocumentStore()
    alice = make_context(store, "alice")
    bob = make_context(store, "bob")
    await alice.start()
    await bob.start()
    assert await alice.wait_ready(timeout=1)
    assert await bob.wait_ready(timeout=1)

    alice.controller.select_date(date(2024, 7, 4))
    alice.controller.update_draft(title="Fireworks")
    assert await alice.controller.commit_draft()
    await settle()

    plan = bob.plans.get("2024-07-04")
    assert plan.title == "Fireworks"
    assert plan.last_updated_by == "alice"
    assert bob.controller.has_plan(date(2024, 7, 4))
    await alice.close()
    await bob.close()


@pytest.mark.asyncio
async def test_close_releases_subscription_and_is_idempotent():
    store = InMemoryDocumentStore()
    async with make_context(store) as ctx:
        await settle()
        assert store.listener_count == 1
    assert ctx.closed
    assert store.listener_count == 0
    await ctx.close()
    assert store.listener_count == 0


@pytest.mark.asyncio
async def test_identity_fallback_is_visible_but_session_works():
    store = InMemoryDocumentStore()
    ctx = SessionContext(store, FakeAuthProvider(fail_anonymous=True), PATH,
                         today=date(2024, 7, 1), id_factory=lambda: "local-1")
    await ctx.start()
    assert await ctx.wait_ready(timeout=1)
    assert ctx.controller.user_id == "local-1"
    assert ctx.controller.state.error.startswith("Authentication failed")
    assert ctx.controller.state.error_kind == "IdentityFailure"

    ctx.controller.select_date(date(2024, 7, 4))
    ctx.controller.update_draft(title="Fireworks")
    assert await ctx.controller.commit_draft()
    assert store.document(PATH, "2024-07-04")["lastUpdatedBy"] == "local-1"
    await ctx.close()


@pytest.mark.asyncio
async def test_wait_ready_times_out_without_snapshot():
    store = InMemoryDocumentStore(auto_deliver=False)
    ctx = make_context(store)
    await ctx.start()
    assert not await ctx.wait_ready(timeout=0.01)
    store.deliver_pending()
    assert await ctx.wait_ready(timeout=0.01)
    await ctx.close()


@pytest.mark.asyncio
async def test_from_config_talks_to_firebase():
    requests = []

    def handler(request):
        requests.append(request)
        if request.url.host == "identitytoolkit.googleapis.com":
            return httpx.Response(200, json={"localId": "anon-5", "idToken": "id-tok"})
        return httpx.Response(200, json={"documents": [{
            "name": "projects/demo/databases/(default)/documents/x/2024-07-02",
            "fields": encode_fields({"title": "Arrive", "lastUpdatedBy": "u2"}),
        }]})

    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    ctx = SessionContext.from_config(app_id="my-trip", firebase_config={"apiKey": "k", "projectId": "demo"},
                                     initial_token=None, client=client, today=date(2024, 7, 1))
    async with ctx:
        assert await ctx.wait_ready(timeout=1)
        assert ctx.controller.user_id == "anon-5"
        assert ctx.plans.get("2024-07-02").title == "Arrive"

    listing = [r for r in requests if r.method == "GET"][0]
    assert listing.url.path == "/v1/projects/demo/databases/(default)/documents/artifacts/my-trip/public/data/tripPlans"
    assert listing.headers["Authorization"] == "Bearer id-tok"
    await client.aclose()


def test_from_config_requires_project_id():
    with pytest.raises(ValueError):
        SessionContext.from_config(firebase_config={"apiKey": "k"}, initial_token=None)
