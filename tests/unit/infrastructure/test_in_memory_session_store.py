"""Unit tests for InMemorySessionStore.

Key Test Scenarios:
1. Registration indexes the origin key and the raiser
2. Routing selection stays within the user's open set
3. Closed sessions are unreachable and their ids never reused
4. Dangling routing entries are healed, not surfaced
"""

import asyncio

import pytest

from refdesk.domain.errors import SessionNotFoundError, SessionNotOpenError
from refdesk.domain.models.dispute_session import IssueCategory
from refdesk.infrastructure.persistence import InMemorySessionStore
from tests.helpers import make_session


@pytest.fixture
def store() -> InMemorySessionStore:
    return InMemorySessionStore()


class TestRegistration:
    @pytest.mark.asyncio
    async def test_register_indexes_origin_and_raiser(self, store: InMemorySessionStore) -> None:
        session = make_session("session-1")
        await store.register_session(session)

        assert await store.find_by_origin(session.origin_key) == session
        assert await store.open_sessions("raiser-1") == frozenset({"session-1"})
        assert await store.selected_session("raiser-1") == "session-1"

    @pytest.mark.asyncio
    async def test_duplicate_registration_rejected(self, store: InMemorySessionStore) -> None:
        await store.register_session(make_session("session-1"))
        with pytest.raises(ValueError):
            await store.register_session(make_session("session-1"))

    @pytest.mark.asyncio
    async def test_require_open_unknown_session(self, store: InMemorySessionStore) -> None:
        with pytest.raises(SessionNotFoundError):
            await store.require_open("session-404")

    @pytest.mark.asyncio
    async def test_mark_trigger_only_once(self, store: InMemorySessionStore) -> None:
        assert await store.mark_trigger("chan", "msg") is True
        assert await store.mark_trigger("chan", "msg") is False
        assert await store.mark_trigger("chan", "other") is True


class TestRouting:
    @pytest.mark.asyncio
    async def test_single_session_is_the_target(self, store: InMemorySessionStore) -> None:
        await store.register_session(make_session("session-1"))
        lookup = await store.lookup_route("raiser-1")
        assert lookup.target == "session-1"
        assert not lookup.needs_choice

    @pytest.mark.asyncio
    async def test_second_session_drops_automatic_selection(
        self, store: InMemorySessionStore
    ) -> None:
        await store.register_session(make_session("session-1"))
        await store.register_session(make_session("session-2"))

        lookup = await store.lookup_route("raiser-1")
        assert lookup.candidates == ("session-1", "session-2")
        assert lookup.target is None
        assert lookup.needs_choice
        assert await store.selected_session("raiser-1") is None

    @pytest.mark.asyncio
    async def test_explicit_choice_survives_new_session(
        self, store: InMemorySessionStore
    ) -> None:
        await store.register_session(make_session("session-1"))
        await store.register_session(make_session("session-2"))
        assert await store.select_session("raiser-1", "session-2") is True

        await store.register_session(make_session("session-3"))

        lookup = await store.lookup_route("raiser-1")
        assert lookup.target == "session-2"
        assert store.check_routing_invariant()

    @pytest.mark.asyncio
    async def test_back_to_one_session_routes_there(self, store: InMemorySessionStore) -> None:
        await store.register_session(make_session("session-1"))
        await store.register_session(make_session("session-2"))
        await store.remove_participant("raiser-1", "session-1")

        lookup = await store.lookup_route("raiser-1")
        assert lookup.target == "session-2"

    @pytest.mark.asyncio
    async def test_removing_selected_session_requires_choice(
        self, store: InMemorySessionStore
    ) -> None:
        await store.register_session(make_session("session-1"))
        await store.register_session(make_session("session-2"))
        await store.register_session(make_session("session-3"))
        assert await store.select_session("raiser-1", "session-1") is True
        await store.remove_participant("raiser-1", "session-1")

        lookup = await store.lookup_route("raiser-1")
        assert lookup.target is None
        assert await store.selected_session("raiser-1") is None
        assert lookup.needs_choice
        assert store.check_routing_invariant()

    @pytest.mark.asyncio
    async def test_select_session_outside_open_set_rejected(
        self, store: InMemorySessionStore
    ) -> None:
        await store.register_session(make_session("session-1"))
        assert await store.select_session("raiser-1", "session-9") is False
        assert await store.select_session("someone-else", "session-1") is False
        assert await store.select_session("raiser-1", "session-1") is True

    @pytest.mark.asyncio
    async def test_assign_parties_reindexes_users(self, store: InMemorySessionStore) -> None:
        await store.register_session(make_session("session-1"))
        await store.assign_parties("session-1", "p-a", "p-b")
        assert await store.open_sessions("p-a") == frozenset({"session-1"})

        await store.assign_parties("session-1", "p-a", "p-c")
        assert await store.open_sessions("p-b") == frozenset()
        assert await store.open_sessions("p-c") == frozenset({"session-1"})
        assert store.check_routing_invariant()

    @pytest.mark.asyncio
    async def test_dangling_entry_is_healed(self, store: InMemorySessionStore) -> None:
        await store.register_session(make_session("session-1"))
        store.inject_dangling_route("raiser-1", "session-ghost")

        lookup = await store.lookup_route("raiser-1")
        assert lookup.candidates == ("session-1",)
        assert lookup.target == "session-1"
        assert store.check_routing_invariant()


class TestClosing:
    @pytest.mark.asyncio
    async def test_unregister_returns_affected_users(self, store: InMemorySessionStore) -> None:
        await store.register_session(make_session("session-1"))
        await store.assign_parties("session-1", "p-a", "p-b")

        affected = await store.unregister_routing("session-1")
        assert affected == frozenset({"raiser-1", "p-a", "p-b"})
        assert await store.open_sessions("p-a") == frozenset()

    @pytest.mark.asyncio
    async def test_purge_makes_session_unreachable(self, store: InMemorySessionStore) -> None:
        session = make_session("session-1")
        await store.register_session(session)

        closed = await store.purge_session("session-1")
        assert not closed.is_open
        assert await store.get_session("session-1") is None
        assert await store.find_by_origin(session.origin_key) is None
        with pytest.raises(SessionNotOpenError):
            await store.require_open("session-1")
        with pytest.raises(SessionNotOpenError):
            await store.purge_session("session-1")

    @pytest.mark.asyncio
    async def test_closed_id_cannot_be_registered_again(self, store: InMemorySessionStore) -> None:
        await store.register_session(make_session("session-1"))
        await store.purge_session("session-1")
        with pytest.raises(ValueError):
            await store.register_session(make_session("session-1"))

    @pytest.mark.asyncio
    async def test_update_rejected_after_close(self, store: InMemorySessionStore) -> None:
        await store.register_session(make_session("session-1"))
        await store.purge_session("session-1")
        with pytest.raises(SessionNotOpenError):
            await store.update_session("session-1", lambda s: s.with_issue(IssueCategory.LAG))


class TestConcurrency:
    @pytest.mark.asyncio
    async def test_concurrent_routing_edits_keep_invariant(
        self, store: InMemorySessionStore
    ) -> None:
        for index in range(5):
            await store.register_session(make_session(f"session-{index}"))

        await asyncio.gather(
            *[store.select_session("raiser-1", f"session-{i}") for i in range(5)],
            *[store.remove_participant("raiser-1", f"session-{i}") for i in range(0, 5, 2)],
            *[store.lookup_route("raiser-1") for _ in range(5)],
        )

        assert store.check_routing_invariant()
        assert await store.open_sessions("raiser-1") == frozenset({"session-1", "session-3"})


class TestBoundedTombstones:
    @pytest.mark.asyncio
    async def test_oldest_trigger_marks_are_forgotten(self) -> None:
        store = InMemorySessionStore(max_remembered=2)
        for message_id in ("m-1", "m-2", "m-3"):
            assert await store.mark_trigger("chan", message_id) is True

        assert await store.mark_trigger("chan", "m-3") is False
        assert await store.mark_trigger("chan", "m-1") is True

    @pytest.mark.asyncio
    async def test_forgotten_closed_id_still_reads_not_open(self) -> None:
        store = InMemorySessionStore(max_remembered=1)
        for session_id in ("session-1", "session-2"):
            await store.register_session(make_session(session_id))
            await store.purge_session(session_id)

        with pytest.raises(SessionNotOpenError) as recent:
            await store.require_open("session-2")
        with pytest.raises(SessionNotOpenError) as forgotten:
            await store.require_open("session-1")

        assert not isinstance(recent.value, SessionNotFoundError)
        assert isinstance(forgotten.value, SessionNotFoundError)

    def test_capacity_must_be_positive(self) -> None:
        with pytest.raises(ValueError):
            InMemorySessionStore(max_remembered=0)
