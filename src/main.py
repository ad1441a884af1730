"""
Main entry point for the filesystem service.
"""
import asyncio
import logging
import sys

from serde import serde
from serde.json import from_json
import uvicorn

from blobstore.base import BlobBackend, DocumentStore
from blobstore.memory import MemoryBlobBackend, MemoryDocumentStore
from blobstore.service import MessageServiceClient, PinnedDocumentStore, ServiceBlobBackend
from filesystem.fs_operations import FSOperations
from filesystem.index_store import IndexStore
from networking.api_server import create_app

logger = logging.getLogger(__name__)


@serde
class Config:
    host: str = "0.0.0.0"
    port: int = 8080
    service_url: str = "http://localhost:8081"
    service_token: str = ""
    timeout: float = 30.0
    retries: int = 3
    log_level: str = "INFO"
    in_memory: bool = False


def load_config(path: str) -> Config:
    with open(path, "r") as f:
        return from_json(Config, f.read())


def build_backends(config: Config) -> tuple[BlobBackend, DocumentStore, MessageServiceClient | None]:
    if config.in_memory:
        logger.warning("Using in-memory backends; nothing will be persisted")
        return MemoryBlobBackend(), MemoryDocumentStore(), None
    client = MessageServiceClient(config.service_url, config.service_token,
                                  timeout=config.timeout, retries=config.retries)
    return ServiceBlobBackend(client), PinnedDocumentStore(client), client


async def main() -> None:
    if len(sys.argv) != 2:
        print("usage: python3 main.py configname")
        sys.exit(2)
    config = load_config(sys.argv[1])
    logging.basicConfig(level=config.log_level)

    blobs, documents, client = build_backends(config)
    index = IndexStore(documents)
    await index.load_namespace()
    app = create_app(FSOperations(blobs, index))

    uconfig = uvicorn.Config(app=app)
    uconfig.host = config.host
    uconfig.port = config.port
    server = uvicorn.Server(config=uconfig)
    try:
        await server.serve()
    finally:
        if client is not None:
            await client.aclose()


if __name__ == "__main__":
    asyncio.run(main())
