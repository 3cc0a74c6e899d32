"""Reactions: toggling, summaries for anonymous and signed-in viewers, reactor lists."""

from datetime import datetime, timedelta, timezone

from loophub.models.reaction import Reaction


async def _toggle(client, headers, content_id, reaction_type="fire", content_type="thread"):
    return await client.post(
        "/api/v1/reactions",
        json={
            "contentType": content_type,
            "contentId": str(content_id),
            "reactionType": reaction_type,
        },
        headers=headers,
    )


async def test_toggle_adds_then_removes(client, forum, author, reader, make_thread, auth_headers):
    thread = await make_thread(forum, author)
    headers = auth_headers(reader)

    added = await _toggle(client, headers, thread.id)
    assert added.json() == {
        "success": True,
        "action": "added",
        "reactions": [{"type": "fire", "count": 1, "hasReacted": True}],
    }

    removed = await _toggle(client, headers, thread.id)
    assert removed.json()["action"] == "removed"
    assert removed.json()["reactions"] == []


async def test_several_types_per_user(client, forum, author, reader, make_thread, auth_headers):
    thread = await make_thread(forum, author)
    headers = auth_headers(reader)
    await _toggle(client, headers, thread.id, "party")
    res = await _toggle(client, headers, thread.id, "thumbs_up")
    assert [r["type"] for r in res.json()["reactions"]] == ["thumbs_up", "party"]


async def test_invalid_requests(client, forum, author, make_thread, auth_headers):
    thread = await make_thread(forum, author)
    headers = auth_headers(author)
    bad_type = await _toggle(client, headers, thread.id, "angry")
    assert bad_type.status_code == 400
    assert bad_type.json()["error"]["message"] == "Invalid reaction type"
    bad_content = await _toggle(client, headers, thread.id, content_type="forum")
    assert bad_content.json()["error"]["message"] == "Invalid content type"
    bad_id = await _toggle(client, headers, "nope")
    assert bad_id.status_code == 400


async def test_reacting_to_missing_content_is_404(client, author, auth_headers):
    res = await _toggle(
        client, auth_headers(author), "00000000-0000-0000-0000-000000000002", content_type="comment",
    )
    assert res.status_code == 404


async def test_summary_for_anonymous_viewer(client, forum, author, reader, make_thread, auth_headers):
    thread = await make_thread(forum, author)
    await _toggle(client, auth_headers(reader), thread.id, "heart")
    res = await client.get(f"/api/v1/reactions?contentType=thread&contentId={thread.id}")
    assert res.json()["reactions"] == [{"type": "heart", "count": 1, "hasReacted": False}]


async def test_summary_marks_viewer_reactions(client, forum, author, reader, make_thread, auth_headers):
    thread = await make_thread(forum, author)
    await _toggle(client, auth_headers(reader), thread.id, "heart")
    res = await client.get(
        f"/api/v1/reactions?contentType=thread&contentId={thread.id}",
        headers=auth_headers(reader),
    )
    assert res.json()["reactions"][0]["hasReacted"] is True


async def test_bad_token_on_optional_auth_is_rejected(client, forum, author, make_thread):
    thread = await make_thread(forum, author)
    res = await client.get(
        f"/api/v1/reactions?contentType=thread&contentId={thread.id}",
        headers={"Authorization": "Bearer not-a-jwt"},
    )
    assert res.status_code == 401


async def test_reactors_newest_first_with_viewer_on_top(
    client, test_db, forum, author, reader, make_profile, make_thread, auth_headers,
):
    late = await make_profile("late")
    thread = await make_thread(forum, author)
    now = datetime.now(timezone.utc)
    test_db.add_all([
        Reaction(user_id=reader.id, content_type="thread", content_id=thread.id,
                 reaction_type="fire", created_at=now - timedelta(minutes=10)),
        Reaction(user_id=author.id, content_type="thread", content_id=thread.id,
                 reaction_type="fire", created_at=now - timedelta(minutes=5)),
        Reaction(user_id=late.id, content_type="thread", content_id=thread.id,
                 reaction_type="fire", created_at=now),
    ])
    await test_db.commit()

    url = f"/api/v1/reactions/users?contentType=thread&contentId={thread.id}&reactionType=fire"
    anonymous = await client.get(url)
    assert [r["username"] for r in anonymous.json()["reactors"]] == ["late", "author", "reader"]
    assert anonymous.json()["totalCount"] == 3

    mine = await client.get(url, headers=auth_headers(reader))
    reactors = mine.json()["reactors"]
    assert reactors[0]["username"] == "reader"
    assert set(reactors[0]) == {"userId", "username", "avatarUrl", "reactedAt"}


async def test_reactors_limit_keeps_total(client, test_db, forum, author, make_profile, make_thread):
    thread = await make_thread(forum, author)
    for _ in range(3):
        fan = await make_profile()
        test_db.add(Reaction(
            user_id=fan.id, content_type="thread", content_id=thread.id, reaction_type="party",
        ))
    await test_db.commit()
    res = await client.get(
        f"/api/v1/reactions/users?contentType=thread&contentId={thread.id}"
        "&reactionType=party&limit=2"
    )
    assert len(res.json()["reactors"]) == 2
    assert res.json()["totalCount"] == 3
