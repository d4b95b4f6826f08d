import pytest
from aiohttp import test_utils, web

from colloquium.models import BotExecutionContext, TriggeredBy
from colloquium.sdk import BotApiError, BotClient, create_bot_client


@pytest.fixture
async def api_server():
    """A stand-in host API that records every request it receives."""
    received = []
    stored = {"progress": {"done": 2}}

    async def record(request):
        body = await request.json() if request.can_read_body else None
        received.append((request.method, request.path, request.headers.get("X-Bot-Token"), body))
        return body

    async def manuscript(request):
        await record(request)
        return web.json_response({"id": "ms-1", "title": "Graph Methods for Open Peer Review"})

    async def files(request):
        await record(request)
        return web.json_response(
            {"files": [{"id": "f1", "fileType": "SOURCE"}, {"id": "f2", "fileType": "SUPPLEMENTARY"}]}
        )

    async def upload(request):
        body = await record(request)
        return web.json_response({"files": [{"id": "f3", **body}]}, status=201)

    async def download(request):
        await record(request)
        return web.Response(text="# Manuscript", content_type="text/markdown")

    async def users(request):
        await record(request)
        return web.json_response({"users": [{"username": request.query["search"]}]})

    async def assignments(request):
        await record(request)
        return web.json_response({"assignments": [{"id": "assign-1", "reviewerId": "rev-1"}]})

    async def echo(request):
        body = await record(request)
        return web.json_response(body, status=201)

    async def storage_get(request):
        await record(request)
        key = request.match_info["key"]
        if key == "broken":
            return web.json_response({"detail": "boom"}, status=500)
        if key not in stored:
            return web.json_response({"detail": f"Key {key} not found"}, status=404)
        return web.json_response({"key": key, "value": stored[key]})

    async def storage_put(request):
        body = await record(request)
        stored[request.match_info["key"]] = body["value"]
        return web.json_response({"key": request.match_info["key"], "value": body["value"]})

    async def storage_delete(request):
        await record(request)
        stored.pop(request.match_info["key"], None)
        return web.Response(status=204)

    app = web.Application()
    app.router.add_get("/api/articles/ms-1", manuscript)
    app.router.add_get("/api/articles/ms-1/files", files)
    app.router.add_post("/api/articles/ms-1/files", upload)
    app.router.add_get("/api/articles/ms-1/files/{file_id}/download", download)
    app.router.add_get("/api/users", users)
    app.router.add_get("/api/reviewers/assignments/ms-1", assignments)
    app.router.add_post("/api/articles/ms-1/reviewers", echo)
    app.router.add_post("/api/bots/invoke", echo)
    app.router.add_get("/api/bot-storage/{key}", storage_get)
    app.router.add_put("/api/bot-storage/{key}", storage_put)
    app.router.add_delete("/api/bot-storage/{key}", storage_delete)

    server = test_utils.TestServer(app)
    await server.start_server()
    server.received = received
    server.base_url = str(server.make_url(""))
    yield server
    await server.close()


@pytest.fixture
async def client(api_server):
    bot_client = BotClient(api_server.base_url, "service-token", "ms-1")
    yield bot_client
    await bot_client.close()


@pytest.mark.asyncio
async def test_every_request_carries_the_service_token(client, api_server):
    manuscript = await client.manuscripts.get()
    assignments = await client.reviewers.list()

    assert manuscript["title"] == "Graph Methods for Open Peer Review"
    assert assignments == [{"id": "assign-1", "reviewerId": "rev-1"}]
    assert {token for _, _, token, _ in api_server.received} == {"service-token"}


@pytest.mark.asyncio
async def test_files(client, api_server):
    assert [f["id"] for f in await client.files.list()] == ["f1", "f2"]
    assert [f["id"] for f in await client.files.list(file_type="SUPPLEMENTARY")] == ["f2"]
    assert await client.files.download("f1") == "# Manuscript"

    uploaded = await client.files.upload("report.md", "# Report", mimetype="text/markdown")

    assert uploaded == {"id": "f3", "filename": "report.md", "content": "# Report", "mimetype": "text/markdown"}
    assert api_server.received[-1][3] == {"filename": "report.md", "content": "# Report", "mimetype": "text/markdown"}


@pytest.mark.asyncio
async def test_users_and_reviewer_assignment(client, api_server):
    assert await client.users.search("smith") == [{"username": "smith"}]

    created = await client.reviewers.assign("rev-3", due_date="2026-11-15")

    assert created == {"reviewerId": "rev-3", "dueDate": "2026-11-15"}


@pytest.mark.asyncio
async def test_storage(client, api_server):
    assert await client.storage.get("progress") == {"done": 2}
    assert await client.storage.get("missing") is None

    await client.storage.set("progress", {"done": 3})
    assert await client.storage.get("progress") == {"done": 3}

    assert await client.storage.delete("progress") is None
    assert await client.storage.get("progress") is None


@pytest.mark.asyncio
async def test_server_errors_raise(client):
    with pytest.raises(BotApiError) as exc:
        await client.storage.get("broken")

    assert exc.value.status == 500
    assert "boom" in exc.value.body


@pytest.mark.asyncio
async def test_invoke_another_bot(client, api_server):
    await client.bots.invoke("bot-reviewer-checklist", "generate", {"reviewer": "@DrSmith"})

    method, path, _, body = api_server.received[-1]
    assert (method, path) == ("POST", "/api/bots/invoke")
    assert body == {"botId": "bot-reviewer-checklist", "command": "generate", "parameters": {"reviewer": "@DrSmith"}}


@pytest.mark.asyncio
async def test_create_bot_client_prefers_configured_api_url(api_server):
    context = BotExecutionContext(
        bot_id="bot-reviewer-checklist",
        manuscript_id="ms-1",
        triggered_by=TriggeredBy(user_id="editor-1"),
        config={"apiUrl": api_server.base_url},
        service_token="context-token",
        api_url="http://unreachable.invalid",
    )

    async with create_bot_client(context) as client:
        await client.manuscripts.get()
        session = client.http.session

    assert session.closed
    assert api_server.received[-1][2] == "context-token"
