"""Tests for NotificationBroadcaster scoping and connection lifecycle."""

from __future__ import annotations

import asyncio
import json
import logging

import pytest

from sourceverifier.api.broadcaster import (
    Connection,
    NotificationBroadcaster,
)
from sourceverifier.constants import ConnectionState, Role, SSEEvent
from sourceverifier.services.events import (
    SubmissionCreated,
    SubmissionDeleted,
    SubmissionUpdated,
    SubmissionVerified,
)
from sourceverifier.workflow.value_objects import Actor, Submission
from tests.conftest import (
    ADMIN,
    CONTRIBUTOR,
    GH_VERIFIER,
    NG_VERIFIER,
    OTHER_CONTRIBUTOR,
)


def _submission(country: str = "GH") -> Submission:
    return Submission(
        id=f"s-{country.lower()}",
        url="https://example.org/report",
        title="Annual report",
        publisher="Example",
        country=country,
        category="primary",
        submitter_id=CONTRIBUTOR.user_id,
    )


def _drain(conn: Connection) -> list[dict[str, str]]:
    messages: list[dict[str, str]] = []
    while not conn.queue.empty():
        message = conn.queue.get_nowait()
        if message is None:
            break
        messages.append(message)
    return messages


def _events(conn: Connection) -> list[str]:
    return [
        m["event"]
        for m in _drain(conn)
        if m["event"] != SSEEvent.CONNECTED
    ]


class TestConnect:
    async def test_first_message_is_connected(self) -> None:
        broadcaster = NotificationBroadcaster()
        conn = await broadcaster.register(GH_VERIFIER)

        first = conn.queue.get_nowait()
        assert first is not None
        assert first["event"] == SSEEvent.CONNECTED
        payload = json.loads(first["data"])
        assert payload["user_id"] == GH_VERIFIER.user_id
        assert payload["role"] == "verifier"
        assert payload["country"] == "GH"
        assert conn.state == ConnectionState.OPEN

    async def test_deregister_is_idempotent(self) -> None:
        broadcaster = NotificationBroadcaster()
        conn = await broadcaster.register(CONTRIBUTOR)
        await broadcaster.deregister(conn)
        await broadcaster.deregister(conn)
        assert conn.state == ConnectionState.CLOSED
        assert broadcaster.connections_for(CONTRIBUTOR.user_id) == []

    async def test_concurrent_tabs_same_user(self) -> None:
        broadcaster = NotificationBroadcaster()
        conns = await asyncio.gather(
            *(broadcaster.register(ADMIN) for _ in range(10))
        )
        assert len(broadcaster.connections_for(ADMIN.user_id)) == 10

        await asyncio.gather(
            *(broadcaster.deregister(c) for c in conns[:7])
        )
        assert len(broadcaster.connections_for(ADMIN.user_id)) == 3
        assert broadcaster.connection_stats()["total"] == 3


class TestScoping:
    async def test_country_scoping(self) -> None:
        broadcaster = NotificationBroadcaster()
        gh = await broadcaster.register(GH_VERIFIER)
        ng = await broadcaster.register(NG_VERIFIER)
        admin = await broadcaster.register(ADMIN)

        broadcaster.publish(
            SubmissionUpdated(_submission("GH"), action="updated")
        )
        broadcaster.publish(
            SubmissionUpdated(_submission("NG"), action="updated")
        )

        gh_ids = [
            json.loads(m["data"])["submission"]["id"]
            for m in _drain(gh)
            if m["event"] != SSEEvent.CONNECTED
        ]
        ng_ids = [
            json.loads(m["data"])["submission"]["id"]
            for m in _drain(ng)
            if m["event"] != SSEEvent.CONNECTED
        ]
        assert gh_ids == ["s-gh"]
        assert ng_ids == ["s-ng"]
        assert len(_events(admin)) == 2

    async def test_submitter_gets_own_events_only(self) -> None:
        broadcaster = NotificationBroadcaster()
        owner = await broadcaster.register(CONTRIBUTOR)
        other = await broadcaster.register(OTHER_CONTRIBUTOR)

        broadcaster.publish(
            SubmissionVerified(_submission(), action="approved")
        )

        assert _events(owner) == [SSEEvent.SUBMISSION_VERIFIED]
        assert _events(other) == []

    async def test_scope_fixed_at_connect(self) -> None:
        broadcaster = NotificationBroadcaster()
        moved = Actor(GH_VERIFIER.user_id, Role.VERIFIER, "GH")
        conn = await broadcaster.register(moved)
        # the same user reconnecting with a new country opens a new scope
        await broadcaster.register(
            Actor(GH_VERIFIER.user_id, Role.VERIFIER, "NG")
        )
        broadcaster.publish(
            SubmissionUpdated(_submission("NG"), action="updated")
        )
        assert _events(conn) == []

    async def test_event_names_and_payload(self) -> None:
        broadcaster = NotificationBroadcaster()
        admin = await broadcaster.register(ADMIN)
        s = _submission()

        for event in (
            SubmissionCreated(s, action="created"),
            SubmissionVerified(s, action="approved"),
            SubmissionUpdated(s, action="batch_reject"),
            SubmissionDeleted(s, action="deleted"),
        ):
            broadcaster.publish(event)

        messages = [
            m for m in _drain(admin) if m["event"] != SSEEvent.CONNECTED
        ]
        assert [m["event"] for m in messages] == [
            SSEEvent.NEW_SUBMISSION,
            SSEEvent.SUBMISSION_VERIFIED,
            SSEEvent.SUBMISSION_UPDATED,
            SSEEvent.SUBMISSION_UPDATED,
        ]
        last = json.loads(messages[-1]["data"])
        assert last["action"] == "deleted"
        assert set(last) == {"action", "submission", "message"}

    async def test_no_connections_drops_event(self) -> None:
        broadcaster = NotificationBroadcaster()
        delivered = broadcaster.publish(
            SubmissionUpdated(_submission(), action="updated")
        )
        assert delivered == 0

    async def test_broadcast_to_predicate(self) -> None:
        broadcaster = NotificationBroadcaster()
        admin = await broadcaster.register(ADMIN)
        gh = await broadcaster.register(GH_VERIFIER)

        delivered = broadcaster.broadcast_to(
            lambda actor: actor.role == Role.ADMIN,
            {"event": "submission-updated", "data": "{}"},
        )
        assert delivered == 1
        assert len(_events(admin)) == 1
        assert _events(gh) == []


class TestPruning:
    async def test_full_queue_is_pruned(
        self, caplog: pytest.LogCaptureFixture
    ) -> None:
        broadcaster = NotificationBroadcaster(queue_size=2)
        slow = await broadcaster.register(ADMIN)
        event = SubmissionUpdated(_submission(), action="updated")

        with caplog.at_level(logging.WARNING):
            broadcaster.publish(event)  # fills the queue
            broadcaster.publish(event)  # overflows

        assert slow.state == ConnectionState.CLOSED
        assert broadcaster.connections_for(ADMIN.user_id) == []
        assert "event=connection_pruned" in caplog.text
        assert slow.queue.get_nowait() is None

    async def test_pruning_spares_other_connections(self) -> None:
        broadcaster = NotificationBroadcaster(queue_size=2)
        slow = await broadcaster.register(ADMIN)
        fast = await broadcaster.register(GH_VERIFIER)
        event = SubmissionUpdated(_submission(), action="updated")

        broadcaster.publish(event)
        _drain(fast)
        broadcaster.publish(event)

        assert slow.state == ConnectionState.CLOSED
        assert fast.state == ConnectionState.OPEN
        assert _events(fast) == [SSEEvent.SUBMISSION_UPDATED]

    async def test_close_all_ends_streams(self) -> None:
        broadcaster = NotificationBroadcaster()
        conn = await broadcaster.register(CONTRIBUTOR)
        await broadcaster.close_all()
        assert conn.queue.get_nowait() is None
        assert broadcaster.connection_stats()["total"] == 0


class TestStats:
    async def test_stats_by_role_and_country(self) -> None:
        broadcaster = NotificationBroadcaster()
        await broadcaster.register(GH_VERIFIER)
        await broadcaster.register(GH_VERIFIER)
        await broadcaster.register(NG_VERIFIER)
        await broadcaster.register(CONTRIBUTOR)

        stats = broadcaster.connection_stats()
        assert stats["total"] == 4
        assert stats["users"] == 3
        assert stats["by_role"] == {"verifier": 3, "contributor": 1}
        assert stats["by_country"] == {"GH": 3, "NG": 1}
