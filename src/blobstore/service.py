"""
Adapters for the remote messaging service, reached through its HTTP gateway.
Blobs are document messages; the index document is the text of the pinned message.
"""
import asyncio
import logging
from typing import Any, Iterable, Optional, Union

import httpx
from serde import from_dict, serde

from namespace.errors import BackendUnavailable, FsError, NotFound
from namespace.nodes import Handle

from .base import BlobBackend, BlobStat, DocumentStore

logger = logging.getLogger(__name__)


@serde
class MessageInfo:
    size: int = 0
    date: int = 0
    edit_date: int = 0


@serde
class PinnedMessage:
    id: Union[int, str]
    text: str = ""


class MessageServiceClient:
    """
    Thin httpx wrapper applying a per-call timeout and bounded retries.
    Transport errors, timeouts and 5xx responses are retried; 404 is NotFound.
    A request marked non-idempotent is retried only when the connection was
    never established, since any later failure may have taken effect.
    """
    client: httpx.AsyncClient
    retries: int
    backoff: float

    def __init__(self, base_url: str, token: str = "", timeout: float = 30.0,
                 retries: int = 3, backoff: float = 0.5,
                 transport: Optional[httpx.AsyncBaseTransport] = None):
        headers = {"Authorization": f"Bearer {token}"} if token else {}
        self.client = httpx.AsyncClient(base_url=base_url, headers=headers,
                                        timeout=timeout, transport=transport)
        self.retries = max(1, retries)
        self.backoff = backoff

    async def request(self, method: str, url: str, idempotent: bool = True,
                      **kwargs: Any) -> httpx.Response:
        last_error = ""
        for attempt in range(1, self.retries + 1):
            try:
                response = await self.client.request(method, url, **kwargs)
            except (httpx.ConnectError, httpx.ConnectTimeout) as e:
                last_error = f"{type(e).__name__}: {e}"
            except httpx.HTTPError as e:
                last_error = f"{type(e).__name__}: {e}"
                if not idempotent:
                    break
            else:
                if response.status_code == 404:
                    raise NotFound(f"{method} {url}: not found")
                if response.status_code < 400:
                    return response
                if response.status_code < 500:
                    raise FsError(f"{method} {url} rejected with {response.status_code}: {response.text}")
                last_error = f"HTTP {response.status_code}"
                if not idempotent:
                    break
            logger.warning("%s %s failed (attempt %d/%d): %s",
                           method, url, attempt, self.retries, last_error)
            if attempt < self.retries:
                await asyncio.sleep(self.backoff * attempt)
        raise BackendUnavailable(f"{method} {url} failed after {attempt} attempts: {last_error}")

    async def aclose(self):
        await self.client.aclose()


class ServiceBlobBackend(BlobBackend):
    def __init__(self, client: MessageServiceClient):
        self.client = client

    async def create_blob(self, data: bytes) -> Handle:
        response = await self.client.request("POST", "/messages", idempotent=False, content=data)
        return response.json()["id"]

    async def read_blob(self, handle: Handle) -> bytes:
        response = await self.client.request("GET", f"/messages/{handle}/document")
        return response.content

    async def replace_blob(self, handle: Handle, data: bytes) -> None:
        await self.client.request("PUT", f"/messages/{handle}/document", content=data)

    async def delete_blobs(self, handles: Iterable[Handle]) -> None:
        ids = list(handles)
        if not ids:
            return
        await self.client.request("POST", "/messages/delete", json={"ids": ids})

    async def stat_blob(self, handle: Handle) -> BlobStat:
        response = await self.client.request("GET", f"/messages/{handle}")
        info = from_dict(MessageInfo, response.json())
        return BlobStat(info.size, max(info.date, info.edit_date))


class PinnedDocumentStore(DocumentStore):
    """Keeps the index document as the text of the chat's pinned message."""
    message_id: Optional[Handle]

    def __init__(self, client: MessageServiceClient):
        self.client = client
        self.message_id = None

    async def _pinned(self) -> Optional[PinnedMessage]:
        try:
            response = await self.client.request("GET", "/pinned")
        except NotFound:
            return None
        pinned = from_dict(PinnedMessage, response.json())
        self.message_id = pinned.id
        return pinned

    async def read_document(self) -> Optional[str]:
        pinned = await self._pinned()
        return pinned.text if pinned is not None else None

    async def write_document(self, text: str) -> None:
        if self.message_id is None and await self._pinned() is None:
            response = await self.client.request("POST", "/messages/text", idempotent=False,
                                                  json={"text": text})
            self.message_id = response.json()["id"]
            await self.client.request("POST", "/pinned", json={"id": self.message_id})
            logger.info("Pinned new index message %s", self.message_id)
            return
        await self.client.request("PUT", f"/messages/{self.message_id}/text", json={"text": text})
