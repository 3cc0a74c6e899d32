"""Gamification: permission snapshots, level-gated thread actions and karma records.

Invariants:
    - Superlike needs level 3, hide level 4, mark-resource level 2
    - Superlike and mark-resource pay the author once; repeats are conflicts
    - The audit corrects stored reputation to the expected total
"""

from datetime import datetime, timezone

from sqlalchemy import select

from loophub.models.notification import Notification
from loophub.models.profile import Profile
from loophub.models.thread import Thread


async def test_my_permissions(client, make_profile, auth_headers):
    member = await make_profile("member", reputation=150)
    res = await client.get("/api/v1/me/permissions", headers=auth_headers(member))
    body = res.json()
    assert body["success"] is True
    assert body["error"] is None
    data = body["data"]
    assert data["level"] == 2
    assert data["level_name"] == "Contributor"
    assert "create_special_threads" in data["permissions"]
    assert "superlike" not in data["permissions"]
    assert data["karma_to_next_level"] == 350


async def test_superlike_pays_and_notifies(
    client, test_db, forum, author, make_profile, make_thread, auth_headers, reload,
):
    expert = await make_profile("expert", reputation=500)
    thread = await make_thread(forum, author, title="Great")
    res = await client.post(f"/api/v1/posts/{thread.id}/superlike", headers=auth_headers(expert))
    assert res.json() == {"success": True, "data": {"karma_awarded": 2}, "error": None}
    assert (await reload(Profile, author.id)).reputation == 2

    note = await test_db.scalar(select(Notification).where(Notification.user_id == author.id))
    assert note.type == "superlike"

    again = await client.post(f"/api/v1/posts/{thread.id}/superlike", headers=auth_headers(expert))
    assert again.status_code == 409


async def test_superlike_rules(client, forum, author, reader, make_profile, make_thread, auth_headers):
    expert = await make_profile("expert", reputation=500)
    own = await make_thread(forum, expert)
    res = await client.post(f"/api/v1/posts/{own.id}/superlike", headers=auth_headers(expert))
    assert res.json()["error"]["code"] == "SUPERLIKE_OWN_THREAD"

    orphan = await make_thread(forum, None)
    res = await client.post(f"/api/v1/posts/{orphan.id}/superlike", headers=auth_headers(expert))
    assert res.json()["error"]["code"] == "SUPERLIKE_NO_AUTHOR"

    thread = await make_thread(forum, author)
    res = await client.post(f"/api/v1/posts/{thread.id}/superlike", headers=auth_headers(reader))
    assert res.status_code == 403


async def test_hide_post(client, forum, author, make_profile, make_thread, auth_headers, reload):
    master = await make_profile("master", reputation=2000)
    thread = await make_thread(forum, author)
    res = await client.post(f"/api/v1/posts/{thread.id}/hide", headers=auth_headers(master))
    hidden_until = datetime.fromisoformat(res.json()["data"]["hidden_until"])
    assert hidden_until > datetime.now(timezone.utc)

    stored = await reload(Thread, thread.id)
    assert stored.is_hidden
    assert stored.hidden_by == master.id

    listing = await client.get(f"/api/v1/forums/{forum.slug}/threads")
    assert listing.json()["threads"] == []


async def test_hide_needs_level_four(client, forum, author, make_profile, make_thread, auth_headers):
    expert = await make_profile("expert", reputation=1999)
    thread = await make_thread(forum, author)
    res = await client.post(f"/api/v1/posts/{thread.id}/hide", headers=auth_headers(expert))
    assert res.status_code == 403


async def test_mark_resource_once(
    client, forum, author, make_profile, make_thread, auth_headers, reload,
):
    curator = await make_profile("curator", reputation=100)
    thread = await make_thread(forum, author)
    res = await client.post(
        f"/api/v1/posts/{thread.id}/mark-resource", headers=auth_headers(curator),
    )
    assert res.json()["data"] == {"marked": True}
    assert (await reload(Profile, author.id)).reputation == 10
    assert (await reload(Thread, thread.id)).is_resource

    again = await client.post(
        f"/api/v1/posts/{thread.id}/mark-resource", headers=auth_headers(curator),
    )
    assert again.status_code == 409
    assert (await reload(Profile, author.id)).reputation == 10


async def test_actions_on_missing_thread_are_404(client, make_profile, auth_headers):
    master = await make_profile("master", reputation=2000)
    res = await client.post(
        "/api/v1/posts/00000000-0000-0000-0000-000000000006/hide",
        headers=auth_headers(master),
    )
    assert res.status_code == 404


async def test_karma_audit_corrects_drift(
    client, forum, author, admin, make_thread, auth_headers, reload,
):
    await make_thread(forum, author)
    res = await client.get(f"/api/v1/karma/audit/{author.id}", headers=auth_headers(admin))
    data = res.json()["data"]
    assert data == {"current": 0, "calculated": 5, "difference": 5, "fixed": True}
    assert (await reload(Profile, author.id)).reputation == 5

    again = await client.get(f"/api/v1/karma/audit/{author.id}", headers=auth_headers(admin))
    assert again.json()["data"]["fixed"] is False
    assert again.json()["data"]["difference"] == 0


async def test_karma_audit_is_admin_only(client, author, reader, admin, auth_headers):
    res = await client.get(f"/api/v1/karma/audit/{author.id}", headers=auth_headers(reader))
    assert res.status_code == 403
    missing = await client.get(
        "/api/v1/karma/audit/00000000-0000-0000-0000-000000000007", headers=auth_headers(admin),
    )
    assert missing.status_code == 404


async def test_karma_history_is_newest_first(client, forum, reader, auth_headers):
    headers = auth_headers(reader)
    await client.post(
        f"/api/v1/forums/{forum.slug}/threads",
        json={"title": "Hello", "content": "First post"}, headers=headers,
    )
    res = await client.get("/api/v1/karma/history", headers=headers)
    entries = res.json()["data"]
    assert sum(e["amount"] for e in entries) == 15
    assert {e["source_type"] for e in entries} == {"thread", "manual"}

    limited = await client.get("/api/v1/karma/history?limit=1", headers=headers)
    assert len(limited.json()["data"]) == 1
