"""Reports: filing, the admin queue and review outcomes."""

from loophub.models.profile import Profile


async def _report(client, headers, content, content_type="thread", reason="Spam link"):
    return await client.post(
        "/api/v1/reports",
        json={"content_type": content_type, "content_id": str(content.id), "reason": reason},
        headers=headers,
    )


async def test_file_report(client, forum, author, reader, make_thread, auth_headers):
    thread = await make_thread(forum, author)
    res = await _report(client, auth_headers(reader), thread, reason="  Spam link  ")
    assert res.status_code == 201
    body = res.json()
    assert body["status"] == "pending"
    assert body["reason"] == "Spam link"
    assert body["reporter_id"] == str(reader.id)


async def test_report_validation(client, forum, author, reader, make_thread, auth_headers):
    thread = await make_thread(forum, author)
    blank = await _report(client, auth_headers(reader), thread, reason="   ")
    assert blank.status_code == 400
    wrong_type = await _report(client, auth_headers(reader), thread, content_type="forum")
    assert wrong_type.status_code == 400


async def test_report_missing_comment_is_404(client, forum, author, reader, make_thread, auth_headers):
    thread = await make_thread(forum, author)
    res = await _report(client, auth_headers(reader), thread, content_type="comment")
    assert res.status_code == 404


async def test_reports_are_rate_limited(client, forum, author, reader, make_thread, auth_headers):
    thread = await make_thread(forum, author)
    for _ in range(5):
        assert (await _report(client, auth_headers(reader), thread)).status_code == 201
    assert (await _report(client, auth_headers(reader), thread)).status_code == 429


async def test_queue_is_admin_only_and_filterable(
    client, forum, author, reader, admin, make_thread, auth_headers,
):
    thread = await make_thread(forum, author)
    filed = (await _report(client, auth_headers(reader), thread)).json()

    denied = await client.get("/api/v1/admin/reports", headers=auth_headers(reader))
    assert denied.status_code == 403

    pending = await client.get("/api/v1/admin/reports?status=pending", headers=auth_headers(admin))
    assert [r["id"] for r in pending.json()["reports"]] == [filed["id"]]
    resolved = await client.get(
        "/api/v1/admin/reports?status=resolved", headers=auth_headers(admin),
    )
    assert resolved.json()["reports"] == []


async def test_resolving_with_penalty(
    client, forum, author, reader, admin, make_thread, auth_headers, reload,
):
    thread = await make_thread(forum, author)
    filed = (await _report(client, auth_headers(reader), thread)).json()
    res = await client.patch(
        f"/api/v1/admin/reports/{filed['id']}",
        json={"status": "resolved", "penalize": True},
        headers=auth_headers(admin),
    )
    body = res.json()
    assert body["status"] == "resolved"
    assert body["penalized"] is True
    assert body["reviewed_by"] == str(admin.id)
    assert (await reload(Profile, author.id)).reputation == -10


async def test_dismissing_never_penalizes(
    client, forum, author, reader, admin, make_thread, auth_headers, reload,
):
    thread = await make_thread(forum, author)
    filed = (await _report(client, auth_headers(reader), thread)).json()
    res = await client.patch(
        f"/api/v1/admin/reports/{filed['id']}",
        json={"status": "dismissed", "penalize": True},
        headers=auth_headers(admin),
    )
    assert res.json()["penalized"] is False
    assert (await reload(Profile, author.id)).reputation == 0


async def test_report_reviewed_once(
    client, forum, author, reader, admin, make_thread, auth_headers,
):
    thread = await make_thread(forum, author)
    filed = (await _report(client, auth_headers(reader), thread)).json()
    url = f"/api/v1/admin/reports/{filed['id']}"
    await client.patch(url, json={"status": "dismissed"}, headers=auth_headers(admin))
    res = await client.patch(url, json={"status": "resolved"}, headers=auth_headers(admin))
    assert res.json()["error"]["code"] == "REPORT_REVIEWED"
