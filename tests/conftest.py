"""Shared test fixtures."""

import hashlib
import json
from collections import Counter
from pathlib import Path
from typing import Dict

import pytest
import pytest_asyncio
from aiohttp import web
from aiohttp.test_utils import TestServer

from loadout.download import AssetFetcher


def digest(algorithm: str, payload: bytes) -> str:
    return hashlib.new(algorithm, payload).hexdigest()


def write_manifest(directory: Path, data: dict) -> Path:
    path = directory / "manifest.json"
    path.write_text(json.dumps(data), encoding="utf-8")
    return path


class AssetServer:
    """serves registered payloads under /files/<name> and counts requests"""

    def __init__(self):
        self.files: Dict[str, bytes] = {}
        self.hits: Counter = Counter()
        self.base_url = ""

    def add(self, name: str, payload: bytes) -> str:
        self.files[name] = payload
        return self.url(name)

    def url(self, name: str) -> str:
        return f"{self.base_url}/files/{name}"

    async def handle(self, request: web.Request) -> web.Response:
        name = request.match_info["name"]
        self.hits[name] += 1
        if name not in self.files:
            raise web.HTTPNotFound()
        return web.Response(body=self.files[name])


@pytest_asyncio.fixture
async def asset_server():
    state = AssetServer()
    app = web.Application()
    app.router.add_get("/files/{name}", state.handle)

    server = TestServer(app)
    await server.start_server()
    state.base_url = f"http://{server.host}:{server.port}"
    try:
        yield state
    finally:
        await server.close()


@pytest_asyncio.fixture
async def fetcher():
    instance = AssetFetcher()
    try:
        yield instance
    finally:
        await instance.close()


@pytest.fixture
def payload() -> bytes:
    return b"loadout test payload\n" * 64
