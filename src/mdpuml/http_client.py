"""Async HTTP client for the PlantUML render service and link shortener.

Wraps a single ``httpx.AsyncClient`` so connections are pooled across all
render and shorten calls in a pass.

Usage:
    async with RenderClient("https://www.plantuml.com/plantuml") as client:
        url = client.render_url("svg", encoded)
        short = await client.shorten(url)
        png = await client.fetch_image("png", encoded)
"""

from __future__ import annotations

from types import TracebackType
from typing import Any

import httpx

from mdpuml.errors import RenderError
from mdpuml.logging import log

__all__ = ["DEFAULT_SHORTENER_URL", "DEFAULT_TIMEOUT", "RenderClient"]

# Default timeout for HTTP requests (seconds)
DEFAULT_TIMEOUT = 30.0

DEFAULT_SHORTENER_URL = "https://tinyurl.com/api-create.php"

USER_AGENT = "mdpuml/1.0"


class RenderClient:
    """Client for rendering encoded diagrams and shortening render URLs."""

    def __init__(
        self,
        server_url: str,
        *,
        shortener_url: str = DEFAULT_SHORTENER_URL,
        timeout: float = DEFAULT_TIMEOUT,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            server_url: Base URL of the PlantUML server (no trailing slash needed)
            shortener_url: TinyURL-compatible endpoint taking a ``url`` query param
            timeout: Request timeout in seconds
            transport: Optional transport override (used by tests)
        """
        self.server_url = server_url.rstrip("/")
        self.shortener_url = shortener_url
        kwargs: dict[str, Any] = {
            "timeout": httpx.Timeout(timeout),
            "follow_redirects": True,
            "headers": {"User-Agent": USER_AGENT},
        }
        if transport is not None:
            kwargs["transport"] = transport
        self._client = httpx.AsyncClient(**kwargs)

    async def __aenter__(self) -> RenderClient:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Close the underlying connection pool."""
        await self._client.aclose()

    def render_url(self, image_format: str, encoded: str) -> str:
        """Build the full render URL for an encoded diagram."""
        return f"{self.server_url}/{image_format}/{encoded}"

    async def fetch_image(self, image_format: str, encoded: str) -> bytes:
        """Download a rendered image.

        Args:
            image_format: Image format path segment (png, svg)
            encoded: PlantUML-encoded diagram source

        Returns:
            Response body bytes

        Raises:
            RenderError: On transport errors or non-2xx responses. The response
                body is attached so callers can keep the server's error image.
        """
        url = self.render_url(image_format, encoded)
        with log("render.fetch", format=image_format, url_length=len(url)) as span:
            try:
                resp = await self._client.get(url)
            except httpx.RequestError as e:
                span.add(error=str(e))
                raise RenderError(f"Request to {self.server_url} failed: {e}") from e

            span.add(status=resp.status_code)
            if resp.is_error:
                raise RenderError(
                    f"Render failed ({resp.status_code}) for {url}",
                    status_code=resp.status_code,
                    body=resp.content,
                )

            span.add(size=len(resp.content))
            return resp.content

    async def shorten(self, url: str) -> str:
        """Shorten a render URL through the link-shortening service.

        Raises:
            RenderError: If the shortener is unreachable or rejects the URL.
        """
        with log("render.shorten", url_length=len(url)) as span:
            try:
                resp = await self._client.get(self.shortener_url, params={"url": url})
            except httpx.RequestError as e:
                raise RenderError(f"Link shortening failed: {e}") from e

            span.add(status=resp.status_code)
            if resp.is_error:
                raise RenderError(
                    f"Link shortening failed ({resp.status_code}): {resp.text[:200]}",
                    status_code=resp.status_code,
                    body=resp.content,
                )

            return resp.text.strip()
