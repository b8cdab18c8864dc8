# tests/test_tickets.py
from datetime import datetime, timedelta


def _create(client, headers, title="Login Issue", description="Cannot log in", **extra):
    r = client.post(
        "/tickets",
        json={"title": title, "description": description, **extra},
        headers=headers,
    )
    assert r.status_code == 201, r.text
    return r.json()["ticket"]


def test_create_ticket_defaults(client, register):
    headers, user = register("john")

    r = client.post(
        "/tickets",
        json={"title": "Login Issue", "description": "Cannot log in since today", "priority": "high"},
        headers=headers,
    )
    assert r.status_code == 201
    ticket = r.json()["ticket"]

    assert ticket["status"] == "open"
    assert ticket["priority"] == "high"
    assert ticket["version"] == 1
    assert ticket["assigned_to"] is None
    assert ticket["created_by"]["id"] == user["id"]
    assert ticket["is_sla_breached"] is False

    created_at = datetime.fromisoformat(ticket["created_at"])
    due_at = datetime.fromisoformat(ticket["due_at"])
    assert due_at - created_at == timedelta(hours=24)


def test_create_ticket_default_priority_and_trimming(client, register):
    headers, _ = register("john")
    ticket = _create(client, headers, title="  Printer  ", description="  jammed ")
    assert ticket["priority"] == "medium"
    assert ticket["title"] == "Printer"
    assert ticket["description"] == "jammed"


def test_create_ticket_validation(client, register):
    headers, _ = register("john")

    r = client.post("/tickets", json={"description": "x"}, headers=headers)
    assert r.status_code == 400
    assert r.json()["error"]["code"] == "FIELD_REQUIRED"
    assert r.json()["error"]["field"] == "title"

    r = client.post("/tickets", json={"title": "x", "description": "   "}, headers=headers)
    assert r.status_code == 400
    assert r.json()["error"]["field"] == "description"

    r = client.post("/tickets", json={"title": "x" * 201, "description": "y"}, headers=headers)
    assert r.status_code == 400
    assert r.json()["error"]["code"] == "VALIDATION_ERROR"
    assert r.json()["error"]["field"] == "title"

    r = client.post("/tickets", json={"title": "x", "description": "y" * 2001}, headers=headers)
    assert r.status_code == 400
    assert r.json()["error"]["field"] == "description"

    r = client.post(
        "/tickets", json={"title": "x", "description": "y", "priority": "critical"}, headers=headers
    )
    assert r.status_code == 400
    assert r.json()["error"]["field"] == "priority"

    # Nothing was persisted by the failed attempts
    assert client.get("/tickets", headers=headers).json()["total_returned"] == 0


def test_users_only_see_their_own_tickets(client, register):
    john, _ = register("john")
    mary, _ = register("mary")
    agent, _ = register("jane", role="agent")

    _create(client, john, title="John's ticket")
    _create(client, mary, title="Mary's ticket")

    titles = [t["title"] for t in client.get("/tickets", headers=john).json()["items"]]
    assert titles == ["John's ticket"]

    titles = [t["title"] for t in client.get("/tickets", headers=agent).json()["items"]]
    assert sorted(titles) == ["John's ticket", "Mary's ticket"]


def test_list_pagination_newest_first(client, register, clock):
    headers, _ = register("john")
    for i in range(5):
        _create(client, headers, title=f"Ticket {i}")
        clock.advance(seconds=1)

    page = client.get("/tickets?limit=2&offset=0", headers=headers).json()
    assert [t["title"] for t in page["items"]] == ["Ticket 4", "Ticket 3"]
    assert page["next_offset"] == 2
    assert page["total_returned"] == 2

    page = client.get("/tickets?limit=2&offset=4", headers=headers).json()
    assert [t["title"] for t in page["items"]] == ["Ticket 0"]
    assert page["next_offset"] is None

    page = client.get("/tickets?limit=5", headers=headers).json()
    assert page["next_offset"] is None
    assert page["total_returned"] == 5


def test_list_rejects_bad_paging(client, register):
    headers, _ = register("john")
    r = client.get("/tickets?limit=0", headers=headers)
    assert r.status_code == 400
    assert r.json()["error"]["code"] == "VALIDATION_ERROR"
    assert r.json()["error"]["field"] == "limit"


def test_search_matches_title_description_and_comments(client, register):
    headers, _ = register("john")
    by_title = _create(client, headers, title="VPN outage", description="nothing")
    by_desc = _create(client, headers, title="Other", description="the vpn drops hourly")
    by_comment = _create(client, headers, title="Email", description="slow inbox")
    _create(client, headers, title="Unrelated", description="printer")

    r = client.post(
        f"/tickets/{by_comment['id']}/comments",
        json={"text": "Could be the VPN client"},
        headers=headers,
    )
    assert r.status_code == 201

    items = client.get("/tickets?q=vpn", headers=headers).json()["items"]
    assert sorted(t["id"] for t in items) == sorted(
        [by_title["id"], by_desc["id"], by_comment["id"]]
    )


def test_search_treats_wildcards_literally(client, register):
    headers, _ = register("john")
    _create(client, headers, title="100% broken")
    _create(client, headers, title="1000 errors")

    items = client.get("/tickets", params={"q": "100%"}, headers=headers).json()["items"]
    assert [t["title"] for t in items] == ["100% broken"]


def test_list_filters_by_status_and_priority(client, register):
    user, _ = register("john")
    agent, _ = register("jane", role="agent")
    high = _create(client, user, title="High one", priority="high")
    _create(client, user, title="Low one", priority="low")

    client.patch(f"/tickets/{high['id']}", json={"status": "resolved", "version": 1}, headers=agent)

    items = client.get("/tickets?priority=high", headers=agent).json()["items"]
    assert [t["title"] for t in items] == ["High one"]

    items = client.get("/tickets?status=open", headers=agent).json()["items"]
    assert [t["title"] for t in items] == ["Low one"]


def test_get_ticket_detail_and_permissions(client, register):
    john, _ = register("john")
    mary, _ = register("mary")
    agent, _ = register("jane", role="agent")
    ticket = _create(client, john)

    client.post(f"/tickets/{ticket['id']}/comments", json={"text": "first"}, headers=john)

    r = client.get(f"/tickets/{ticket['id']}", headers=john)
    assert r.status_code == 200
    assert r.json()["ticket"]["id"] == ticket["id"]
    assert [c["text"] for c in r.json()["comments"]] == ["first"]

    assert client.get(f"/tickets/{ticket['id']}", headers=agent).status_code == 200

    r = client.get(f"/tickets/{ticket['id']}", headers=mary)
    assert r.status_code == 403
    assert r.json()["error"]["code"] == "INSUFFICIENT_PERMISSIONS"

    r = client.get("/tickets/9999", headers=john)
    assert r.status_code == 404
    assert r.json()["error"]["code"] == "TICKET_NOT_FOUND"


def test_patch_requires_agent_or_admin(client, register):
    john, _ = register("john")
    ticket = _create(client, john)

    r = client.patch(
        f"/tickets/{ticket['id']}", json={"status": "closed", "version": 1}, headers=john
    )
    assert r.status_code == 403
    assert r.json()["error"]["code"] == "INSUFFICIENT_PERMISSIONS"


def test_patch_applies_fields_and_bumps_version(client, register, clock):
    john, _ = register("john")
    agent, agent_user = register("jane", role="agent")
    ticket = _create(client, john)

    clock.advance(minutes=5)
    r = client.patch(
        f"/tickets/{ticket['id']}",
        json={"status": "in_progress", "assigned_to": agent_user["id"], "version": 1},
        headers=agent,
    )
    assert r.status_code == 200
    updated = r.json()["ticket"]
    assert updated["status"] == "in_progress"
    assert updated["priority"] == ticket["priority"]
    assert updated["assigned_to"]["id"] == agent_user["id"]
    assert updated["version"] == 2
    assert updated["updated_at"] != ticket["updated_at"]
    assert updated["created_at"] == ticket["created_at"]
    assert updated["due_at"] == ticket["due_at"]

    r = client.patch(
        f"/tickets/{ticket['id']}",
        json={"priority": "urgent", "assigned_to": None, "version": 2},
        headers=agent,
    )
    updated = r.json()["ticket"]
    assert updated["priority"] == "urgent"
    assert updated["status"] == "in_progress"
    assert updated["assigned_to"] is None
    assert updated["version"] == 3


def test_patch_stale_version_conflicts_without_writing(client, register):
    john, _ = register("john")
    agent, _ = register("jane", role="agent")
    ticket = _create(client, john)

    first = client.patch(
        f"/tickets/{ticket['id']}", json={"status": "in_progress", "version": 1}, headers=agent
    )
    assert first.status_code == 200

    second = client.patch(
        f"/tickets/{ticket['id']}", json={"status": "closed", "version": 1}, headers=agent
    )
    assert second.status_code == 409
    error = second.json()["error"]
    assert error["code"] == "VERSION_CONFLICT"
    assert error["current_version"] == 2

    current = client.get(f"/tickets/{ticket['id']}", headers=agent).json()["ticket"]
    assert current["status"] == "in_progress"
    assert current["version"] == 2


def test_patch_validation_and_not_found(client, register):
    john, _ = register("john")
    agent, _ = register("jane", role="agent")
    ticket = _create(client, john)

    r = client.patch(f"/tickets/{ticket['id']}", json={"status": "done", "version": 1}, headers=agent)
    assert r.status_code == 400
    assert r.json()["error"]["field"] == "status"

    r = client.patch(f"/tickets/{ticket['id']}", json={"assigned_to": 4242, "version": 1}, headers=agent)
    assert r.status_code == 400
    assert r.json()["error"]["field"] == "assigned_to"

    r = client.patch(f"/tickets/{ticket['id']}", json={"status": "closed"}, headers=agent)
    assert r.status_code == 400
    assert r.json()["error"]["code"] == "FIELD_REQUIRED"
    assert r.json()["error"]["field"] == "version"

    r = client.patch("/tickets/9999", json={"status": "closed", "version": 1}, headers=agent)
    assert r.status_code == 404

    # None of the rejected patches moved the version
    current = client.get(f"/tickets/{ticket['id']}", headers=agent).json()["ticket"]
    assert current["version"] == 1


def test_any_status_transition_is_allowed(client, register):
    john, _ = register("john")
    admin, _ = register("root", role="admin")
    ticket = _create(client, john)

    version = 1
    for status in ["closed", "open", "resolved", "in_progress"]:
        r = client.patch(
            f"/tickets/{ticket['id']}", json={"status": status, "version": version}, headers=admin
        )
        assert r.status_code == 200
        version = r.json()["ticket"]["version"]
    assert version == 5


def test_patch_missing_ticket_is_not_found_before_patch_checks(client, register):
    agent, _ = register("jane", role="agent")

    r = client.patch("/tickets/9999", json={"assigned_to": 4242, "version": 1}, headers=agent)
    assert r.status_code == 404
    assert r.json()["error"]["code"] == "TICKET_NOT_FOUND"


def test_ids_too_large_to_store_match_nothing(client, register):
    john, _ = register("john")
    agent, _ = register("jane", role="agent")
    ticket = _create(client, john)
    huge = 10**20

    r = client.get(f"/tickets/{huge}", headers=john)
    assert r.status_code == 404
    assert r.json()["error"]["code"] == "TICKET_NOT_FOUND"

    r = client.patch(f"/tickets/{huge}", json={"status": "closed", "version": 1}, headers=agent)
    assert r.status_code == 404

    r = client.patch(f"/tickets/{ticket['id']}", json={"assigned_to": huge, "version": 1}, headers=agent)
    assert r.status_code == 400
    assert r.json()["error"]["field"] == "assigned_to"

    r = client.patch(f"/tickets/{ticket['id']}", json={"status": "closed", "version": huge}, headers=agent)
    assert r.status_code == 409
    assert r.json()["error"]["current_version"] == 1

    r = client.get("/tickets", params={"offset": huge}, headers=john)
    assert r.status_code == 400
