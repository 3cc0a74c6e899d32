"""Profiles & Usernames: own profile, public pages, onboarding and cooldown-limited changes."""

import uuid
from datetime import datetime, timedelta, timezone

from loophub.models.profile import Profile
from loophub.models.user_follow import UserFollow


async def test_first_request_creates_profile(client, make_token, reload):
    user_id = uuid.uuid4()
    token = make_token(user_id, email="new@example.com")
    res = await client.get("/api/v1/profile", headers={"Authorization": f"Bearer {token}"})
    assert res.status_code == 200
    body = res.json()
    assert body["id"] == str(user_id)
    assert body["username"] is None
    assert body["email"] == "new@example.com"
    assert body["permissions"]["level"] == 0

    stored = await reload(Profile, user_id)
    assert stored.reputation == 0


async def test_update_profile(client, reader, auth_headers):
    res = await client.put(
        "/api/v1/profile",
        json={"bio": "  Hi there  ", "website": "https://example.com", "location": " "},
        headers=auth_headers(reader),
    )
    body = res.json()
    assert body["bio"] == "Hi there"
    assert body["website"] == "https://example.com"
    assert body["location"] is None


async def test_invalid_website_is_rejected(client, reader, auth_headers):
    res = await client.put(
        "/api/v1/profile", json={"website": "javascript:alert(1)"}, headers=auth_headers(reader),
    )
    assert res.status_code == 400
    assert res.json()["error"]["code"] == "VALIDATION_ERROR"


async def test_public_profile(client, test_db, author, reader, make_profile):
    fan = await make_profile("fan")
    test_db.add_all([
        UserFollow(follower_id=reader.id, following_id=author.id),
        UserFollow(follower_id=fan.id, following_id=author.id),
        UserFollow(follower_id=author.id, following_id=fan.id),
    ])
    await test_db.commit()

    res = await client.get(f"/api/v1/profile/{author.id}")
    body = res.json()
    assert body["username"] == "author"
    assert body["follower_count"] == 2
    assert body["following_count"] == 1
    assert body["level"]["name"] == "Novice"
    assert "is_admin" not in body
    assert "email" not in body


async def test_public_profile_of_unknown_user_is_404(client):
    res = await client.get(f"/api/v1/profile/{uuid.uuid4()}")
    assert res.status_code == 404


async def test_check_username(client, author):
    taken = await client.post("/api/v1/username/check", json={"username": "author"})
    assert taken.json() == {"available": False, "error": "Username is already taken"}
    free = await client.post("/api/v1/username/check", json={"username": "newcomer"})
    assert free.json() == {"available": True, "error": None}


async def test_check_username_format(client):
    res = await client.post("/api/v1/username/check", json={"username": "no spaces"})
    assert res.status_code == 400
    assert res.json()["error"]["message"] == (
        "Username can only contain letters, numbers and underscores"
    )


async def test_username_check_is_rate_limited(client):
    for i in range(5):
        res = await client.post("/api/v1/username/check", json={"username": f"name_{i}"})
        assert res.status_code == 200
    res = await client.post("/api/v1/username/check", json={"username": "name_x"})
    assert res.status_code == 429
    assert "retry-after" in res.headers


async def test_set_username_once(client, make_token, author, reload):
    user_id = uuid.uuid4()
    headers = {"Authorization": f"Bearer {make_token(user_id)}"}

    taken = await client.post("/api/v1/username/set", json={"username": "author"}, headers=headers)
    assert taken.status_code == 409

    res = await client.post("/api/v1/username/set", json={"username": "fresh"}, headers=headers)
    assert res.json() == {"success": True}
    assert (await reload(Profile, user_id)).username == "fresh"

    again = await client.post("/api/v1/username/set", json={"username": "other"}, headers=headers)
    assert again.json()["error"]["code"] == "USERNAME_ALREADY_SET"


async def test_change_username(client, reader, auth_headers, reload):
    res = await client.post(
        "/api/v1/username/change", json={"username": "renamed"}, headers=auth_headers(reader),
    )
    body = res.json()
    assert body["previous_username"] == "reader"
    assert body["new_username"] == "renamed"
    assert body["can_change"] is False
    assert (await reload(Profile, reader.id)).username_changed_at is not None


async def test_change_username_cooldown(client, test_db, reader, auth_headers):
    reader.username_changed_at = datetime.now(timezone.utc) - timedelta(days=10)
    await test_db.commit()
    res = await client.post(
        "/api/v1/username/change", json={"username": "again"}, headers=auth_headers(reader),
    )
    error = res.json()["error"]
    assert error["code"] == "USERNAME_COOLDOWN"
    assert "20 days" in error["message"]


async def test_change_username_after_cooldown(client, test_db, reader, auth_headers):
    reader.username_changed_at = datetime.now(timezone.utc) - timedelta(days=31)
    await test_db.commit()
    res = await client.post(
        "/api/v1/username/change", json={"username": "again"}, headers=auth_headers(reader),
    )
    assert res.status_code == 200


async def test_change_to_same_or_taken_name(client, author, reader, auth_headers):
    same = await client.post(
        "/api/v1/username/change", json={"username": "reader"}, headers=auth_headers(reader),
    )
    assert same.json()["error"]["code"] == "USERNAME_UNCHANGED"
    taken = await client.post(
        "/api/v1/username/change", json={"username": "author"}, headers=auth_headers(reader),
    )
    assert taken.status_code == 409
