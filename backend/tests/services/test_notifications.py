"""Notifications: inbox listing, read state, ownership and delivery settings."""

from datetime import datetime, timedelta, timezone

import pytest

from loophub.config import get_settings

from loophub.models.notification import Notification


async def _seed(test_db, user, count=1, read=False):
    now = datetime.now(timezone.utc)
    notes = [
        Notification(
            user_id=user.id, type="comment", content=f"note {i}", read=read,
            created_at=now - timedelta(minutes=count - i),
        )
        for i in range(count)
    ]
    test_db.add_all(notes)
    await test_db.commit()
    return notes


async def test_inbox_is_newest_first(client, test_db, reader, auth_headers):
    await _seed(test_db, reader, count=3)
    res = await client.get("/api/v1/notifications", headers=auth_headers(reader))
    body = res.json()
    assert [n["content"] for n in body["notifications"]] == ["note 2", "note 1", "note 0"]
    assert body["unreadCount"] == 3
    assert body["total"] == 3


async def test_total_is_page_size(client, test_db, reader, auth_headers):
    await _seed(test_db, reader, count=3)
    res = await client.get("/api/v1/notifications?limit=2", headers=auth_headers(reader))
    body = res.json()
    assert body["total"] == 2
    assert body["unreadCount"] == 3


async def test_unread_filter(client, test_db, reader, auth_headers):
    await _seed(test_db, reader, count=2, read=True)
    await _seed(test_db, reader, count=1)
    res = await client.get("/api/v1/notifications?unread=true", headers=auth_headers(reader))
    assert len(res.json()["notifications"]) == 1


async def test_inbox_requires_auth(client):
    res = await client.get("/api/v1/notifications")
    assert res.status_code == 401
    assert res.headers["www-authenticate"] == "Bearer"


async def test_mark_all_read(client, test_db, reader, author, auth_headers):
    await _seed(test_db, reader, count=2)
    await _seed(test_db, author, count=1)
    res = await client.post("/api/v1/notifications/read-all", headers=auth_headers(reader))
    assert res.json() == {"success": True, "count": 2}
    inbox = await client.get("/api/v1/notifications", headers=auth_headers(author))
    assert inbox.json()["unreadCount"] == 1


async def test_mark_one_read(client, test_db, reader, auth_headers):
    [note] = await _seed(test_db, reader)
    res = await client.patch(
        f"/api/v1/notifications/{note.id}", json={"read": True}, headers=auth_headers(reader),
    )
    assert res.status_code == 200
    assert res.json()["read"] is True


async def test_cannot_touch_others_notification(client, test_db, reader, author, auth_headers):
    [note] = await _seed(test_db, reader)
    res = await client.patch(
        f"/api/v1/notifications/{note.id}", json={"read": True}, headers=auth_headers(author),
    )
    assert res.status_code == 403


async def test_missing_notification_is_404(client, reader, auth_headers):
    res = await client.patch(
        "/api/v1/notifications/00000000-0000-0000-0000-000000000004",
        json={"read": True}, headers=auth_headers(reader),
    )
    assert res.status_code == 404


async def test_default_settings(client, reader, auth_headers):
    res = await client.get("/api/v1/notifications/settings", headers=auth_headers(reader))
    assert res.json()["settings"] == {
        "comment": True, "reply": True, "follow": True, "superlike": True,
        "badge": True, "subscription": True, "email_digest": False,
    }


async def test_update_settings_is_partial(client, reader, auth_headers):
    headers = auth_headers(reader)
    res = await client.put(
        "/api/v1/notifications/settings", json={"follow": False, "email_digest": True},
        headers=headers,
    )
    settings = res.json()["settings"]
    assert settings["follow"] is False
    assert settings["email_digest"] is True
    assert settings["comment"] is True

    again = await client.get("/api/v1/notifications/settings", headers=headers)
    assert again.json()["settings"]["follow"] is False


async def test_muted_follow_is_not_delivered(client, reader, author, auth_headers):
    await client.put(
        "/api/v1/notifications/settings", json={"follow": False}, headers=auth_headers(author),
    )
    await client.post(f"/api/v1/users/{author.id}/follow", headers=auth_headers(reader))
    inbox = await client.get("/api/v1/notifications", headers=auth_headers(author))
    assert inbox.json()["notifications"] == []


@pytest.fixture
def public_base(monkeypatch):
    monkeypatch.setattr(get_settings(), "base_url", "https://forum.example/")
    return "https://forum.example"


async def test_links_point_at_thread_then_sender(
    client, test_db, forum, author, reader, make_thread, auth_headers, public_base,
):
    thread = await make_thread(forum, author)
    test_db.add_all([
        Notification(user_id=reader.id, type="comment", content="on thread",
                     thread_id=thread.id, from_user_id=author.id),
        Notification(user_id=reader.id, type="follow", content="followed",
                     from_user_id=author.id,
                     created_at=datetime.now(timezone.utc) - timedelta(minutes=1)),
        Notification(user_id=reader.id, type="badge", content="badge",
                     created_at=datetime.now(timezone.utc) - timedelta(minutes=2)),
    ])
    await test_db.commit()

    res = await client.get("/api/v1/notifications", headers=auth_headers(reader))
    urls = [n["url"] for n in res.json()["notifications"]]
    assert urls == [
        f"{public_base}/thread/{thread.id}",
        f"{public_base}/profile/{author.id}",
        None,
    ]


async def test_deployment_host_used_without_base_url(
    client, test_db, reader, author, auth_headers, monkeypatch,
):
    monkeypatch.setattr(get_settings(), "base_url", None)
    monkeypatch.setattr(get_settings(), "vercel_url", "preview.vercel.app")
    test_db.add(Notification(user_id=reader.id, type="follow", content="x",
                             from_user_id=author.id))
    await test_db.commit()
    [note] = (await client.get(
        "/api/v1/notifications", headers=auth_headers(reader),
    )).json()["notifications"]
    assert note["url"] == f"https://preview.vercel.app/profile/{author.id}"
