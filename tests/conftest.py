"""Shared fixtures for mdpuml tests."""

from __future__ import annotations

from collections.abc import Callable, Iterator
from pathlib import Path

import httpx
import pytest
from loguru import logger

SERVER_URL = "http://puml.test/plantuml"
SHORTENER_URL = "http://short.test/api-create.php"


class FakeServices:
    """In-process stand-in for the PlantUML server and link shortener."""

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self.status_for_format: dict[str, int] = {}
        self.shortener_status = 200

    @property
    def shortened(self) -> list[str]:
        return [
            str(r.url.params["url"]) for r in self.requests if r.url.host == "short.test"
        ]

    @property
    def renders(self) -> list[str]:
        return [r.url.path for r in self.requests if r.url.host == "puml.test"]

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.url.host == "short.test":
            if self.shortener_status != 200:
                return httpx.Response(self.shortener_status, text="unavailable")
            return httpx.Response(200, text=f"https://tiny.test/{len(self.shortened)}")

        image_format = request.url.path.split("/")[-2]
        status = self.status_for_format.get(image_format, 200)
        if status != 200:
            return httpx.Response(status, content=b"<svg>error</svg>")
        return httpx.Response(200, content=f"<{image_format}>".encode())

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)


@pytest.fixture
def services() -> FakeServices:
    return FakeServices()


@pytest.fixture
def make_client(services: FakeServices) -> Callable[[], object]:
    from mdpuml.http_client import RenderClient

    def _make() -> RenderClient:
        return RenderClient(
            SERVER_URL, shortener_url=SHORTENER_URL, transport=services.transport()
        )

    return _make


@pytest.fixture
def write_file(tmp_path: Path) -> Callable[[str, str], Path]:
    """Write a file under tmp_path, creating parent directories."""

    def _write(relative: str, content: str) -> Path:
        path = tmp_path / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
        return path.resolve()

    return _write


@pytest.fixture
def log_messages() -> Iterator[list[str]]:
    """Collect loguru messages at WARNING and above."""
    messages: list[str] = []
    handler_id = logger.add(lambda m: messages.append(m.record["message"]), level="WARNING")
    yield messages
    logger.remove(handler_id)
