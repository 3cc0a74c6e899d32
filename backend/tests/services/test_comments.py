"""Comments: listing, creation side effects (karma, notifications), edits and deletion.

Invariants:
    - Pages are oldest first
    - A comment pays +2 and the first one adds the FIRST_COMMENT milestone
    - Reply, comment and subscription notifications reach each recipient once,
      never the commenter, and respect muted settings
    - Moderator removal costs the author 5 karma; locked threads refuse comments
"""

from datetime import datetime, timedelta, timezone

from sqlalchemy import select

from loophub.models.comment import Comment
from loophub.models.forum_moderator import ModerationLog
from loophub.models.notification import Notification, NotificationSettings
from loophub.models.profile import Profile
from loophub.models.thread_subscription import ThreadSubscription


async def _notifications_for(test_db, user_id):
    result = await test_db.execute(
        select(Notification).where(Notification.user_id == user_id)
    )
    return list(result.scalars().all())


async def test_list_comments_oldest_first(client, test_db, forum, author, make_thread):
    thread = await make_thread(forum, author)
    now = datetime.now(timezone.utc)
    test_db.add_all([
        Comment(thread_id=thread.id, user_id=author.id, content="second", created_at=now),
        Comment(thread_id=thread.id, user_id=author.id, content="first",
                created_at=now - timedelta(minutes=5)),
    ])
    await test_db.commit()

    res = await client.get(f"/api/v1/threads/{thread.id}/comments")
    body = res.json()
    assert [c["content"] for c in body["comments"]] == ["first", "second"]
    assert body["comments"][0]["profile"]["username"] == "author"
    assert body["pagination"]["limit"] == 50


async def test_comments_of_missing_thread_is_404(client):
    res = await client.get("/api/v1/threads/00000000-0000-0000-0000-000000000001/comments")
    assert res.status_code == 404


async def test_create_comment_pays_karma(
    client, forum, author, reader, make_thread, auth_headers, reload,
):
    thread = await make_thread(forum, author)
    res = await client.post(
        f"/api/v1/threads/{thread.id}/comments",
        json={"content": "Nice one"}, headers=auth_headers(reader),
    )
    assert res.status_code == 201
    assert res.json()["parent_id"] is None
    assert (await reload(Profile, reader.id)).reputation == 7


async def test_comment_notifies_thread_author(
    client, test_db, forum, author, reader, make_thread, auth_headers,
):
    thread = await make_thread(forum, author, title="Question")
    await client.post(
        f"/api/v1/threads/{thread.id}/comments",
        json={"content": "Answer"}, headers=auth_headers(reader),
    )
    [note] = await _notifications_for(test_db, author.id)
    assert note.type == "comment"
    assert note.from_user_id == reader.id
    assert '"Question"' in note.content
    assert await _notifications_for(test_db, reader.id) == []


async def test_reply_notifies_parent_author_once(
    client, test_db, forum, author, reader, make_profile, make_thread, make_comment, auth_headers,
):
    third = await make_profile("third")
    thread = await make_thread(forum, author)
    parent = await make_comment(thread, author, "parent")
    test_db.add(ThreadSubscription(user_id=third.id, thread_id=thread.id))
    await test_db.commit()

    res = await client.post(
        f"/api/v1/threads/{thread.id}/comments",
        json={"content": "reply", "parentId": str(parent.id)},
        headers=auth_headers(reader),
    )
    assert res.status_code == 201

    author_notes = await _notifications_for(test_db, author.id)
    assert [n.type for n in author_notes] == ["reply"]
    assert [n.type for n in await _notifications_for(test_db, third.id)] == ["subscription"]


async def test_muted_type_is_not_delivered(
    client, test_db, forum, author, reader, make_thread, auth_headers,
):
    test_db.add(NotificationSettings(
        user_id=author.id, comment=False, reply=True, follow=True,
        superlike=True, badge=True, subscription=True, email_digest=False,
    ))
    await test_db.commit()
    thread = await make_thread(forum, author)
    await client.post(
        f"/api/v1/threads/{thread.id}/comments",
        json={"content": "quiet"}, headers=auth_headers(reader),
    )
    assert await _notifications_for(test_db, author.id) == []


async def test_parent_from_other_thread_is_rejected(
    client, forum, author, make_thread, make_comment, auth_headers,
):
    thread = await make_thread(forum, author)
    elsewhere = await make_thread(forum, author)
    stray = await make_comment(elsewhere, author)
    res = await client.post(
        f"/api/v1/threads/{thread.id}/comments",
        json={"content": "x", "parentId": str(stray.id)},
        headers=auth_headers(author),
    )
    assert res.status_code == 400
    assert res.json()["error"]["code"] == "INVALID_PARENT"


async def test_new_comment_refreshes_cached_page(
    client, forum, author, make_thread, auth_headers,
):
    thread = await make_thread(forum, author)
    assert (await client.get(f"/api/v1/threads/{thread.id}/comments")).json()["comments"] == []
    await client.post(
        f"/api/v1/threads/{thread.id}/comments",
        json={"content": "hello"}, headers=auth_headers(author),
    )
    comments = (await client.get(f"/api/v1/threads/{thread.id}/comments")).json()["comments"]
    assert [c["content"] for c in comments] == ["hello"]


async def test_edit_own_comment_only(
    client, forum, author, reader, make_thread, make_comment, auth_headers,
):
    thread = await make_thread(forum, author)
    comment = await make_comment(thread, author, "draft")

    denied = await client.put(
        f"/api/v1/comments/{comment.id}", json={"content": "mine now"},
        headers=auth_headers(reader),
    )
    assert denied.status_code == 403

    res = await client.put(
        f"/api/v1/comments/{comment.id}", json={"content": "final"},
        headers=auth_headers(author),
    )
    assert res.json()["content"] == "final"


async def test_delete_own_comment(
    client, forum, author, make_thread, make_comment, auth_headers, reload,
):
    thread = await make_thread(forum, author)
    comment = await make_comment(thread, author)
    res = await client.delete(f"/api/v1/comments/{comment.id}", headers=auth_headers(author))
    assert res.status_code == 200
    assert await reload(Comment, comment.id) is None


async def test_admin_removal_penalizes_author(
    client, forum, author, reader, admin, make_thread, make_comment, auth_headers, reload,
):
    thread = await make_thread(forum, author)
    comment = await make_comment(thread, reader)

    denied = await client.delete(
        f"/api/v1/moderation/comments/{comment.id}", headers=auth_headers(author),
    )
    assert denied.status_code == 403

    res = await client.delete(
        f"/api/v1/moderation/comments/{comment.id}", headers=auth_headers(admin),
    )
    assert res.status_code == 200
    assert (await reload(Profile, reader.id)).reputation == -5


async def test_comments_are_rate_limited(client, forum, author, make_thread, auth_headers):
    thread = await make_thread(forum, author)
    headers = auth_headers(author)
    for i in range(10):
        res = await client.post(
            f"/api/v1/threads/{thread.id}/comments", json={"content": f"c{i}"}, headers=headers,
        )
        assert res.status_code == 201
    res = await client.post(
        f"/api/v1/threads/{thread.id}/comments", json={"content": "spam"}, headers=headers,
    )
    assert res.status_code == 429


async def test_forum_moderator_removes_comment_with_reason(
    client, test_db, forum, author, reader, admin, make_profile, make_thread, make_comment,
    auth_headers, reload,
):
    moderator = await make_profile("mod")
    await client.post(
        "/api/v1/forums/general/moderators",
        json={"userId": str(moderator.id), "permissions": {"can_delete_comments": True}},
        headers=auth_headers(admin),
    )
    thread = await make_thread(forum, author)
    comment = await make_comment(thread, reader)

    res = await client.delete(
        f"/api/v1/moderation/comments/{comment.id}?reason=rude", headers=auth_headers(moderator),
    )
    assert res.status_code == 200
    assert await reload(Comment, comment.id) is None
    assert (await reload(Profile, reader.id)).reputation == -5
    entry = await test_db.scalar(select(ModerationLog))
    assert (entry.action_type, entry.target_id, entry.reason) == ("delete_comment", comment.id, "rude")


async def test_locked_thread_refuses_comments(
    client, forum, author, make_thread, auth_headers,
):
    thread = await make_thread(forum, author, is_locked=True)
    res = await client.post(
        f"/api/v1/threads/{thread.id}/comments", json={"content": "late"}, headers=auth_headers(author),
    )
    assert res.status_code == 400
    assert res.json()["error"]["code"] == "THREAD_LOCKED"
