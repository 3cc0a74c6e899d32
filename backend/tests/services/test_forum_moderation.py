"""Forum moderation: appointments, per-flag permissions, thread locks and the moderation log.

Invariants:
    - Only admins appoint or remove moderators; a user moderates a forum once
    - A moderator acts only in their own forum and only with the matching flag
    - Locked threads refuse new comments until unlocked
    - Actions on other people's content land in the log, newest first
"""

import uuid
from types import SimpleNamespace

import pytest
from sqlalchemy import select

from loophub.models.forum_moderator import ForumModerator, ModerationLog
from loophub.models.profile import Profile
from loophub.models.thread import Thread


@pytest.fixture
async def moderator(make_profile):
    return await make_profile("mod")


async def _appoint(client, headers, forum_slug, user, permissions=None):
    body = {"userId": str(user.id)}
    if permissions is not None:
        body["permissions"] = permissions
    return await client.post(
        f"/api/v1/forums/{forum_slug}/moderators", json=body, headers=headers,
    )


# ─── Appointments ───────────────────────────────────────────────

async def test_admin_appoints_moderator(client, forum, admin, moderator, auth_headers):
    res = await _appoint(client, auth_headers(admin), "general", moderator)
    assert res.status_code == 201
    assert res.json()["permissions"]["can_lock_threads"] is True

    listed = (await client.get("/api/v1/forums/general/moderators")).json()["moderators"]
    assert [m["username"] for m in listed] == ["mod"]
    assert all(listed[0]["permissions"].values())

    dup = await _appoint(client, auth_headers(admin), "general", moderator)
    assert dup.status_code == 409


async def test_appointment_checks(client, forum, admin, reader, moderator, auth_headers):
    by_reader = await _appoint(client, auth_headers(reader), "general", moderator)
    assert by_reader.status_code == 403

    unknown_flag = await _appoint(
        client, auth_headers(admin), "general", moderator, {"can_ban_everyone": True},
    )
    assert unknown_flag.json()["error"]["code"] == "INVALID_PERMISSION"

    missing_user = await _appoint(
        client, auth_headers(admin), "general", SimpleNamespace(id=uuid.uuid4()),
    )
    assert missing_user.status_code == 404


async def test_narrowed_permissions_are_stored(
    client, test_db, forum, admin, moderator, auth_headers,
):
    await _appoint(
        client, auth_headers(admin), "general", moderator, {"can_delete_threads": False},
    )
    appointment = await test_db.scalar(select(ForumModerator))
    assert appointment.permissions["can_delete_threads"] is False
    assert appointment.permissions["can_pin_threads"] is True


async def test_remove_moderator(client, forum, admin, moderator, auth_headers):
    await _appoint(client, auth_headers(admin), "general", moderator)
    url = f"/api/v1/forums/general/moderators/{moderator.id}"

    denied = await client.delete(url, headers=auth_headers(moderator))
    assert denied.status_code == 403

    res = await client.delete(url, headers=auth_headers(admin))
    assert res.json() == {"success": True}
    assert (await client.get("/api/v1/forums/general/moderators")).json()["moderators"] == []
    assert (await client.delete(url, headers=auth_headers(admin))).status_code == 404


async def test_moderation_status(client, forum, admin, reader, moderator, auth_headers):
    await _appoint(client, auth_headers(admin), "general", moderator, {"can_pin_threads": False})
    url = "/api/v1/forums/general/moderation"

    anonymous = (await client.get(url)).json()
    assert anonymous == {"isModerator": False, "isAdmin": False, "permissions": {}}

    plain = (await client.get(url, headers=auth_headers(reader))).json()
    assert plain["isModerator"] is False

    mod = (await client.get(url, headers=auth_headers(moderator))).json()
    assert mod["isModerator"] is True
    assert mod["isAdmin"] is False
    assert mod["permissions"]["can_pin_threads"] is False

    boss = (await client.get(url, headers=auth_headers(admin))).json()
    assert boss["isAdmin"] is True
    assert all(boss["permissions"].values())


# ─── Locks ──────────────────────────────────────────────────────

async def test_lock_blocks_comments_until_unlocked(
    client, forum, admin, author, reader, moderator, make_thread, auth_headers, reload,
):
    await _appoint(client, auth_headers(admin), "general", moderator)
    thread = await make_thread(forum, author)
    lock_url = f"/api/v1/threads/{thread.id}/lock"
    comments_url = f"/api/v1/threads/{thread.id}/comments"

    denied = await client.post(lock_url, headers=auth_headers(author))
    assert denied.status_code == 403

    res = await client.post(lock_url, json={"reason": "Flame war"}, headers=auth_headers(moderator))
    assert res.json() == {"success": True, "is_locked": True}
    locked = await reload(Thread, thread.id)
    assert locked.is_locked and locked.locked_by == moderator.id
    assert (await client.get(f"/api/v1/threads/{thread.id}")).json()["is_locked"] is True

    refused = await client.post(comments_url, json={"content": "one more"}, headers=auth_headers(reader))
    assert refused.json()["error"]["code"] == "THREAD_LOCKED"

    idempotent = await client.post(lock_url, headers=auth_headers(moderator))
    assert idempotent.json()["is_locked"] is True

    unlocked = await client.delete(lock_url, headers=auth_headers(admin))
    assert unlocked.json() == {"success": True, "is_locked": False}
    assert (await reload(Thread, thread.id)).locked_at is None
    allowed = await client.post(comments_url, json={"content": "calm now"}, headers=auth_headers(reader))
    assert allowed.status_code == 201


async def test_flags_and_forums_bound_moderators(
    client, make_forum, forum, admin, author, make_profile, make_thread, auth_headers,
):
    await make_forum("offtopic")
    narrow = await make_profile("narrow")
    await _appoint(client, auth_headers(admin), "general", narrow, {"can_lock_threads": False})
    elsewhere = await make_profile("elsewhere")
    await _appoint(client, auth_headers(admin), "offtopic", elsewhere)
    thread = await make_thread(forum, author)

    for profile in (narrow, elsewhere):
        res = await client.post(f"/api/v1/threads/{thread.id}/lock", headers=auth_headers(profile))
        assert res.status_code == 403


# ─── Pins & deletion ────────────────────────────────────────────

async def test_moderator_pins_and_deletes_others_threads(
    client, test_db, forum, admin, author, moderator, make_thread, auth_headers, reload,
):
    await _appoint(client, auth_headers(admin), "general", moderator)
    thread = await make_thread(forum, author, title="Off topic")

    pinned = await client.post(f"/api/v1/threads/{thread.id}/pin", headers=auth_headers(moderator))
    assert pinned.json() == {"success": True, "is_pinned": True}

    res = await client.delete(
        f"/api/v1/threads/{thread.id}?reason=spam", headers=auth_headers(moderator),
    )
    assert res.status_code == 200
    assert await reload(Thread, thread.id) is None
    assert (await reload(Profile, author.id)).reputation == -15

    result = await test_db.execute(
        select(ModerationLog.action_type, ModerationLog.reason)
        .order_by(ModerationLog.created_at.asc())
    )
    assert [tuple(row) for row in result.all()] == [
        ("pin_thread", None), ("delete_thread", "spam"),
    ]


async def test_own_pin_is_not_logged(client, test_db, forum, author, make_thread, auth_headers):
    thread = await make_thread(forum, author)
    await client.post(f"/api/v1/threads/{thread.id}/pin", headers=auth_headers(author))
    assert await test_db.scalar(select(ModerationLog)) is None


async def test_moderator_without_delete_flag_is_refused(
    client, forum, admin, author, moderator, make_thread, auth_headers,
):
    await _appoint(
        client, auth_headers(admin), "general", moderator, {"can_delete_threads": False},
    )
    thread = await make_thread(forum, author)
    res = await client.delete(f"/api/v1/threads/{thread.id}", headers=auth_headers(moderator))
    assert res.status_code == 403


# ─── Log ────────────────────────────────────────────────────────

async def test_moderation_log_newest_first(
    client, forum, admin, author, reader, moderator, make_thread, auth_headers,
):
    await _appoint(client, auth_headers(admin), "general", moderator)
    thread = await make_thread(forum, author)
    await client.post(f"/api/v1/threads/{thread.id}/lock", json={"reason": "heat"}, headers=auth_headers(moderator))
    await client.delete(f"/api/v1/threads/{thread.id}/lock", headers=auth_headers(admin))
    url = "/api/v1/forums/general/moderation-log"

    assert (await client.get(url, headers=auth_headers(reader))).status_code == 403

    entries = (await client.get(url, headers=auth_headers(moderator))).json()["entries"]
    assert [(e["action_type"], e["moderator_username"]) for e in entries] == [
        ("unlock_thread", "admin"), ("lock_thread", "mod"),
    ]
    assert entries[1]["reason"] == "heat"
    assert entries[1]["target_id"] == str(thread.id)

    latest = (await client.get(f"{url}?limit=1", headers=auth_headers(admin))).json()["entries"]
    assert [e["action_type"] for e in latest] == ["unlock_thread"]
