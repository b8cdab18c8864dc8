# tests/test_concurrency.py
import threading
from concurrent.futures import ThreadPoolExecutor

import pytest

from helpdesk_mini.backend.app.db import SessionLocal
from helpdesk_mini.backend.app.errors import VersionConflict
from helpdesk_mini.backend.app.models.ticket import Ticket
from helpdesk_mini.backend.app.models.user import User
from helpdesk_mini.backend.app.services import tickets


def test_second_writer_with_same_version_conflicts(db, make_user):
    user = make_user("john")
    agent = make_user("jane", role="agent")
    ticket_id = tickets.create_ticket(db, user, "Login Issue", "details").id

    other = SessionLocal()
    try:
        other_agent = other.get(User, agent.id)
        first = tickets.update_ticket(db, agent, ticket_id, 1, {"status": "in_progress"})
        assert first.version == 2

        with pytest.raises(VersionConflict) as exc:
            tickets.update_ticket(other, other_agent, ticket_id, 1, {"status": "closed"})
        assert exc.value.current_version == 2
    finally:
        other.close()

    db.expire_all()
    stored = db.get(Ticket, ticket_id)
    assert stored.status == "in_progress"
    assert stored.version == 2


def test_concurrent_updates_exactly_one_wins(db, make_user):
    user = make_user("john")
    agent_id = make_user("jane", role="agent").id
    ticket_id = tickets.create_ticket(db, user, "Login Issue", "details").id

    workers = 8
    barrier = threading.Barrier(workers)
    statuses = ["in_progress", "resolved", "closed", "open"]

    def attempt(i):
        session = SessionLocal()
        try:
            actor = session.get(User, agent_id)
            barrier.wait()
            try:
                updated = tickets.update_ticket(
                    session, actor, ticket_id, 1, {"status": statuses[i % 4]}
                )
                return ("ok", updated.version)
            except VersionConflict as exc:
                return ("conflict", exc.current_version)
        finally:
            session.close()

    with ThreadPoolExecutor(max_workers=workers) as pool:
        results = list(pool.map(attempt, range(workers)))

    winners = [r for r in results if r[0] == "ok"]
    losers = [r for r in results if r[0] == "conflict"]
    assert len(winners) == 1
    assert winners[0][1] == 2
    assert len(losers) == workers - 1
    assert all(version == 2 for _, version in losers)

    db.expire_all()
    assert db.get(Ticket, ticket_id).version == 2


def test_retry_after_conflict_succeeds(db, make_user):
    user = make_user("john")
    agent = make_user("jane", role="agent")
    ticket_id = tickets.create_ticket(db, user, "Login Issue", "details").id
    tickets.update_ticket(db, agent, ticket_id, 1, {"priority": "high"})

    with pytest.raises(VersionConflict) as exc:
        tickets.update_ticket(db, agent, ticket_id, 1, {"status": "resolved"})

    updated = tickets.update_ticket(
        db, agent, ticket_id, exc.value.current_version, {"status": "resolved"}
    )
    assert updated.version == 3
    assert updated.priority == "high"
    assert updated.status == "resolved"
