from __future__ import annotations

import asyncio
import io
import logging
from dataclasses import dataclass
from typing import Sequence

import httpx
from reportlab.lib.utils import ImageReader

from surveyreport.config import get_settings
from surveyreport.errors import ImageFetchError


logger = logging.getLogger(__name__)


@dataclass
class ImageFetchConfig:
    timeout_seconds: float
    concurrency: int
    max_bytes: int
    user_agent: str


@dataclass
class FetchResult:
    url: str
    data: bytes | None = None
    width: int = 0
    height: int = 0
    error: ImageFetchError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.data is not None


def _failure(url: str, reason: str) -> FetchResult:
    return FetchResult(url=url, error=ImageFetchError(url, reason))


def _decode_size(data: bytes) -> tuple[int, int]:
    # Decode every pixel; a header read alone accepts truncated bodies.
    image = ImageReader(io.BytesIO(data))
    image.getRGBData()
    width, height = image.getSize()
    return int(width), int(height)


class ImageFetcher:
    """Downloads report photos into memory; failures come back as values, never raised."""

    def __init__(self, cfg: ImageFetchConfig, *, transport: httpx.AsyncBaseTransport | None = None):
        self.cfg = cfg
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=max(1.0, float(self.cfg.timeout_seconds)),
            follow_redirects=True,
            headers={'User-Agent': self.cfg.user_agent},
            transport=self._transport,
        )

    async def fetch(self, client: httpx.AsyncClient, url: str) -> FetchResult:
        try:
            response = await client.get(url)
        except httpx.HTTPError as exc:
            return _failure(url, f'request failed: {exc.__class__.__name__}')
        except Exception as exc:
            # Bad URL strings (IDNA, empty host) raise outside the httpx hierarchy.
            return _failure(url, f'invalid url: {exc.__class__.__name__}: {exc}')

        if response.status_code < 200 or response.status_code >= 300:
            return _failure(url, f'HTTP {response.status_code}')

        data = response.content
        if not data:
            return _failure(url, 'empty body')
        if len(data) > int(self.cfg.max_bytes):
            return _failure(url, f'image too large: {len(data)} bytes')

        try:
            width, height = _decode_size(data)
        except Exception as exc:
            return _failure(url, f'undecodable image: {exc}')
        if width <= 0 or height <= 0:
            return _failure(url, 'image has no pixels')

        return FetchResult(url=url, data=data, width=width, height=height)

    async def fetch_all(self, urls: Sequence[str]) -> list[FetchResult]:
        """Fetch concurrently; ``results[i]`` always belongs to ``urls[i]``."""
        if not urls:
            return []
        limit = asyncio.Semaphore(max(1, int(self.cfg.concurrency)))

        async with self._client() as client:

            async def _bounded(url: str) -> FetchResult:
                async with limit:
                    return await self.fetch(client, url)

            results = await asyncio.gather(*(_bounded(url) for url in urls))

        failed = [row for row in results if not row.ok]
        for row in failed:
            logger.warning('Photo unavailable, using placeholder: %s', row.error)
        logger.info('Fetched %s/%s report photos', len(results) - len(failed), len(results))
        return list(results)

    def fetch_all_blocking(self, urls: Sequence[str]) -> list[FetchResult]:
        return asyncio.run(self.fetch_all(urls))


def build_image_fetcher() -> ImageFetcher:
    settings = get_settings()
    return ImageFetcher(
        ImageFetchConfig(
            timeout_seconds=settings.image_fetch_timeout_seconds,
            concurrency=settings.image_fetch_concurrency,
            max_bytes=settings.image_max_bytes,
            user_agent=settings.image_user_agent,
        )
    )
