"""Threads: detail, ownership rules, pin limit, view counts and deletion penalties.

Invariants:
    - Only the author edits; the author or a forum moderator (admins included) deletes and pins
    - A forum has at most three pinned threads
    - View counting never bumps updated_at
    - An admin deleting someone else's thread costs the author 15 karma
"""

from loophub.config import get_settings
from loophub.models.karma_history import KarmaHistory
from loophub.models.profile import Profile
from loophub.models.thread import Thread
from sqlalchemy import select


async def test_get_thread_detail(client, forum, author, make_thread):
    thread = await make_thread(forum, author, title="Detail")
    res = await client.get(f"/api/v1/threads/{thread.id}")
    assert res.status_code == 200
    body = res.json()
    assert body["title"] == "Detail"
    assert body["forum"]["slug"] == forum.slug
    assert body["profile"]["id"] == str(author.id)
    assert body["_count"]["comments"] == 0


async def test_thread_payload_links_to_public_site(client, forum, author, make_thread, monkeypatch):
    monkeypatch.setattr(get_settings(), "base_url", None)
    monkeypatch.setattr(get_settings(), "vercel_url", None)
    thread = await make_thread(forum, author)
    res = await client.get(f"/api/v1/threads/{thread.id}")
    assert res.json()["url"] == f"https://loophub.vercel.app/thread/{thread.id}"


async def test_missing_thread_is_404(client):
    res = await client.get("/api/v1/threads/00000000-0000-0000-0000-000000000000")
    assert res.status_code == 404


async def test_malformed_thread_id_is_400(client):
    res = await client.get("/api/v1/threads/not-a-uuid")
    assert res.status_code == 400


async def test_author_edits_thread(client, forum, author, make_thread, auth_headers):
    thread = await make_thread(forum, author)
    await client.get(f"/api/v1/threads/{thread.id}")

    res = await client.put(
        f"/api/v1/threads/{thread.id}",
        json={"title": "Edited <script>x</script>"},
        headers=auth_headers(author),
    )
    assert res.status_code == 200
    assert res.json()["title"] == "Edited "
    detail = await client.get(f"/api/v1/threads/{thread.id}")
    assert detail.json()["title"] == "Edited "


async def test_others_cannot_edit(client, forum, author, reader, make_thread, auth_headers):
    thread = await make_thread(forum, author)
    res = await client.put(
        f"/api/v1/threads/{thread.id}", json={"content": "hijack"},
        headers=auth_headers(reader),
    )
    assert res.status_code == 403


async def test_empty_update_is_rejected(client, forum, author, make_thread, auth_headers):
    thread = await make_thread(forum, author)
    res = await client.put(
        f"/api/v1/threads/{thread.id}", json={}, headers=auth_headers(author),
    )
    assert res.status_code == 400


async def test_owner_delete_has_no_penalty(
    client, forum, author, make_thread, auth_headers, reload,
):
    thread = await make_thread(forum, author)
    res = await client.delete(f"/api/v1/threads/{thread.id}", headers=auth_headers(author))
    assert res.status_code == 200
    assert await reload(Thread, thread.id) is None
    assert (await reload(Profile, author.id)).reputation == 0


async def test_admin_delete_penalizes_author(
    client, test_db, forum, author, admin, make_thread, auth_headers, reload,
):
    thread = await make_thread(forum, author, title="Spam")
    res = await client.delete(f"/api/v1/threads/{thread.id}", headers=auth_headers(admin))
    assert res.status_code == 200
    assert (await reload(Profile, author.id)).reputation == -15
    entry = await test_db.scalar(
        select(KarmaHistory).where(KarmaHistory.user_id == author.id)
    )
    assert entry.source_type == "moderation"
    assert entry.reason.startswith("Penalty: Thread removed by moderator")


async def test_stranger_cannot_delete(client, forum, author, reader, make_thread, auth_headers):
    thread = await make_thread(forum, author)
    res = await client.delete(f"/api/v1/threads/{thread.id}", headers=auth_headers(reader))
    assert res.status_code == 403


async def test_pin_and_unpin(client, forum, author, make_thread, auth_headers, reload):
    thread = await make_thread(forum, author)
    res = await client.post(f"/api/v1/threads/{thread.id}/pin", headers=auth_headers(author))
    assert res.json() == {"success": True, "is_pinned": True}
    assert (await reload(Thread, thread.id)).is_pinned

    res = await client.delete(f"/api/v1/threads/{thread.id}/pin", headers=auth_headers(author))
    assert res.json() == {"success": True, "is_pinned": False}
    assert not (await reload(Thread, thread.id)).is_pinned


async def test_pin_limit_per_forum(client, forum, author, make_thread, auth_headers):
    for i in range(3):
        await make_thread(forum, author, title=f"pinned {i}", is_pinned=True)
    extra = await make_thread(forum, author)
    res = await client.post(f"/api/v1/threads/{extra.id}/pin", headers=auth_headers(author))
    assert res.status_code == 400
    assert res.json()["error"]["code"] == "PIN_LIMIT_REACHED"


async def test_admin_may_pin_others_thread(client, forum, author, admin, make_thread, auth_headers):
    thread = await make_thread(forum, author)
    res = await client.post(f"/api/v1/threads/{thread.id}/pin", headers=auth_headers(admin))
    assert res.status_code == 200


async def test_reader_cannot_pin(client, forum, author, reader, make_thread, auth_headers):
    thread = await make_thread(forum, author)
    res = await client.post(f"/api/v1/threads/{thread.id}/pin", headers=auth_headers(reader))
    assert res.status_code == 403


async def test_view_counter(client, forum, author, make_thread, reload):
    thread = await make_thread(forum, author)
    before = (await reload(Thread, thread.id)).updated_at

    await client.post(f"/api/v1/threads/{thread.id}/view")
    res = await client.post(f"/api/v1/threads/{thread.id}/view")
    assert res.json() == {"success": True, "view_count": 2}

    after = await reload(Thread, thread.id)
    assert after.view_count == 2
    assert after.updated_at == before
