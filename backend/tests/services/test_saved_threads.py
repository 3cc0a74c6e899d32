"""Bookmarks & Subscriptions: toggle, membership checks and newest-first listings."""

from datetime import datetime, timedelta, timezone

from loophub.models.bookmark import Bookmark


async def test_bookmark_toggle(client, forum, author, reader, make_thread, auth_headers):
    thread = await make_thread(forum, author)
    headers = auth_headers(reader)

    res = await client.post("/api/v1/bookmarks", json={"threadId": str(thread.id)}, headers=headers)
    body = res.json()
    assert body["bookmarked"] is True
    assert body["id"]

    check = await client.get(f"/api/v1/bookmarks?threadId={thread.id}", headers=headers)
    assert check.json() == {"bookmarked": True}

    res = await client.post("/api/v1/bookmarks", json={"threadId": str(thread.id)}, headers=headers)
    assert res.json() == {"bookmarked": False}


async def test_bookmark_missing_thread_is_404(client, reader, auth_headers):
    res = await client.post(
        "/api/v1/bookmarks",
        json={"threadId": "00000000-0000-0000-0000-000000000003"},
        headers=auth_headers(reader),
    )
    assert res.status_code == 404


async def test_bookmark_list_is_newest_first_with_threads(
    client, test_db, forum, author, reader, make_thread, auth_headers,
):
    older = await make_thread(forum, author, title="older")
    newer = await make_thread(forum, author, title="newer")
    now = datetime.now(timezone.utc)
    test_db.add_all([
        Bookmark(user_id=reader.id, thread_id=older.id, created_at=now - timedelta(hours=1)),
        Bookmark(user_id=reader.id, thread_id=newer.id, created_at=now),
    ])
    await test_db.commit()

    res = await client.get("/api/v1/bookmarks?limit=1", headers=auth_headers(reader))
    body = res.json()
    assert body["hasMore"] is True
    [item] = body["bookmarks"]
    assert item["thread"]["title"] == "newer"
    assert item["thread"]["forum"]["slug"] == forum.slug
    assert item["thread"]["profile"]["username"] == "author"

    rest = await client.get("/api/v1/bookmarks?limit=1&offset=1", headers=auth_headers(reader))
    assert rest.json()["hasMore"] is False
    assert rest.json()["bookmarks"][0]["thread"]["title"] == "older"


async def test_bookmarks_are_private(client, forum, author, reader, make_thread, auth_headers):
    thread = await make_thread(forum, author)
    await client.post("/api/v1/bookmarks", json={"threadId": str(thread.id)}, headers=auth_headers(reader))
    res = await client.get("/api/v1/bookmarks", headers=auth_headers(author))
    assert res.json() == {"bookmarks": [], "hasMore": False}


async def test_subscription_toggle_and_list(client, forum, author, reader, make_thread, auth_headers):
    thread = await make_thread(forum, author)
    headers = auth_headers(reader)

    res = await client.post(
        "/api/v1/subscriptions", json={"threadId": str(thread.id)}, headers=headers,
    )
    assert res.json()["subscribed"] is True

    check = await client.get(f"/api/v1/subscriptions?threadId={thread.id}", headers=headers)
    assert check.json() == {"subscribed": True}

    listing = await client.get("/api/v1/subscriptions", headers=headers)
    assert [s["thread"]["id"] for s in listing.json()["subscriptions"]] == [str(thread.id)]

    res = await client.post(
        "/api/v1/subscriptions", json={"threadId": str(thread.id)}, headers=headers,
    )
    assert res.json() == {"subscribed": False}


async def test_subscriber_hears_about_new_comments(
    client, forum, author, reader, make_profile, make_thread, auth_headers,
):
    commenter = await make_profile("commenter")
    thread = await make_thread(forum, author)
    await client.post(
        "/api/v1/subscriptions", json={"threadId": str(thread.id)}, headers=auth_headers(reader),
    )
    await client.post(
        f"/api/v1/threads/{thread.id}/comments",
        json={"content": "news"}, headers=auth_headers(commenter),
    )
    inbox = await client.get("/api/v1/notifications", headers=auth_headers(reader))
    assert [n["type"] for n in inbox.json()["notifications"]] == ["subscription"]
