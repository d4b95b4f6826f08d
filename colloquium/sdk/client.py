"""
FilePath: "/colloquium/sdk/client.py"
Project: Colloquium Bot Framework
Component: Bot SDK Client
Description: Resource clients bots use to call back into the host API with their
             per-invocation service token: manuscripts, files, users, reviewers,
             bot storage and bot-to-bot invocation.
Author: "Colloquium Contributors"
Date created: "19/10/2026"
Version: "1.0.0"
"""

from typing import Any, Dict, List, Optional
from urllib.parse import quote

import aiohttp

from ..settings import get_settings
from .http import BotApiError, BotHttpClient


class ManuscriptClient:
    def __init__(self, http: BotHttpClient, manuscript_id: str):
        self.http = http
        self.manuscript_id = manuscript_id

    async def get(self) -> Dict[str, Any]:
        return await self.http.get_json(f"/api/articles/{self.manuscript_id}")


class FileClient:
    def __init__(self, http: BotHttpClient, manuscript_id: str):
        self.http = http
        self.manuscript_id = manuscript_id

    async def list(self, file_type: Optional[str] = None) -> List[Dict[str, Any]]:
        data = await self.http.get_json(f"/api/articles/{self.manuscript_id}/files")
        files = (data or {}).get("files") or []
        if file_type:
            return [f for f in files if f.get("fileType") == file_type]
        return files

    async def download(self, file_id: str) -> str:
        return await self.http.get_text(f"/api/articles/{self.manuscript_id}/files/{file_id}/download")

    async def upload(
        self,
        filename: str,
        content: str,
        file_type: Optional[str] = None,
        mimetype: Optional[str] = None,
    ) -> Dict[str, Any]:
        payload = {"filename": filename, "content": content, "fileType": file_type, "mimetype": mimetype}
        data = await self.http.post_json(
            f"/api/articles/{self.manuscript_id}/files",
            {k: v for k, v in payload.items() if v is not None},
        )
        return data["files"][0]


class UserClient:
    def __init__(self, http: BotHttpClient):
        self.http = http

    async def get(self, user_id: str) -> Dict[str, Any]:
        return await self.http.get_json(f"/api/users/{quote(user_id, safe='')}")

    async def search(self, query: str) -> List[Dict[str, Any]]:
        data = await self.http.get_json("/api/users", params={"search": query})
        return (data or {}).get("users") or []


class ReviewerClient:
    def __init__(self, http: BotHttpClient, manuscript_id: str):
        self.http = http
        self.manuscript_id = manuscript_id

    async def list(self) -> List[Dict[str, Any]]:
        data = await self.http.get_json(f"/api/reviewers/assignments/{self.manuscript_id}")
        return (data or {}).get("assignments") or []

    async def assign(
        self, reviewer_id: str, status: Optional[str] = None, due_date: Optional[str] = None
    ) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"reviewerId": reviewer_id}
        if status:
            payload["status"] = status
        if due_date:
            payload["dueDate"] = due_date
        return await self.http.post_json(f"/api/articles/{self.manuscript_id}/reviewers", payload)


class StorageClient:
    """Key-value store scoped to the calling bot and manuscript."""

    def __init__(self, http: BotHttpClient):
        self.http = http

    async def get(self, key: str) -> Any:
        try:
            data = await self.http.get_json(f"/api/bot-storage/{quote(key, safe='')}")
        except BotApiError as e:
            if e.status == 404:
                return None
            raise
        return (data or {}).get("value")

    async def set(self, key: str, value: Any) -> None:
        await self.http.put_json(f"/api/bot-storage/{quote(key, safe='')}", {"value": value})

    async def delete(self, key: str) -> None:
        await self.http.delete(f"/api/bot-storage/{quote(key, safe='')}")

    async def list(self) -> List[Dict[str, Any]]:
        data = await self.http.get_json("/api/bot-storage")
        return (data or {}).get("items") or []


class BotInvocationClient:
    def __init__(self, http: BotHttpClient):
        self.http = http

    async def invoke(self, bot_id: str, command: str, parameters: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        return await self.http.post_json(
            "/api/bots/invoke", {"botId": bot_id, "command": command, "parameters": parameters or {}}
        )


class BotClient:
    """
    Async context manager owning one aiohttp session:

        async with create_bot_client(context) as client:
            assignments = await client.reviewers.list()
    """

    def __init__(
        self,
        api_url: str,
        service_token: str,
        manuscript_id: str,
        session: Optional[aiohttp.ClientSession] = None,
    ):
        self.api_url = api_url
        self.manuscript_id = manuscript_id
        self.http = BotHttpClient(api_url, service_token, session=session)
        self.manuscripts = ManuscriptClient(self.http, manuscript_id)
        self.files = FileClient(self.http, manuscript_id)
        self.users = UserClient(self.http)
        self.reviewers = ReviewerClient(self.http, manuscript_id)
        self.storage = StorageClient(self.http)
        self.bots = BotInvocationClient(self.http)

    async def close(self) -> None:
        await self.http.close()

    async def __aenter__(self) -> "BotClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()


def create_bot_client(context, session: Optional[aiohttp.ClientSession] = None) -> BotClient:
    """Builds a client from a BotExecutionContext."""
    api_url = (context.config or {}).get("apiUrl") or context.api_url or get_settings().API_URL
    return BotClient(api_url, context.service_token, context.manuscript_id, session=session)
