"""
In-memory stand-ins for the Playwright objects the downloader touches.
"""

import asyncio
from typing import Any, Dict, List, Optional

from vsco_downloader.models.config_models import DownloaderConfig
from vsco_downloader.models.download_models import (
    ImageMetadata,
    WorkItem,
)


class FakeResponse:
    """Stand-in for ``playwright.async_api.Response``."""

    def __init__(self, status: int = 200, body: bytes = b"image-bytes"):
        self.status = status
        self._body = body

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300

    async def body(self) -> bytes:
        return self._body


class FakePage:
    """Stand-in for ``playwright.async_api.Page``."""

    def __init__(self, context: "FakeContext", responses: Dict[str, FakeResponse]):
        self.context = context
        self.responses = responses
        self.visited: List[str] = []
        self.closed = False
        self.fail_close = False

    async def goto(self, url: str, **kwargs: Any) -> Optional[FakeResponse]:
        self.visited.append(url)
        return self.responses.get(url, FakeResponse())

    async def close(self) -> None:
        if self.fail_close:
            raise RuntimeError("page close failed")
        self.closed = True
        if self in self.context._pages:
            self.context._pages.remove(self)


class FakeContext:
    """Stand-in for ``playwright.async_api.BrowserContext``."""

    def __init__(self, name: str, responses: Dict[str, FakeResponse]):
        self.name = name
        self.responses = responses
        self._pages: List[FakePage] = []
        self.opened_pages: List[FakePage] = []
        self.closed = False

    @property
    def pages(self) -> List[FakePage]:
        return list(self._pages)

    async def new_page(self) -> FakePage:
        page = FakePage(self, self.responses)
        self._pages.append(page)
        self.opened_pages.append(page)
        return page

    async def close(self) -> None:
        self.closed = True


class FakeEngine:
    """In-memory browser engine with the ``PlaywrightBrowserEngine`` interface."""

    def __init__(
        self,
        fail_launch: bool = False,
        create_delay: float = 0.0,
    ):
        self.fail_launch = fail_launch
        self.create_delay = create_delay
        self.responses: Dict[str, FakeResponse] = {}
        self.launched = False
        self.closed = False
        self.launch_calls = 0
        self.fail_new_context = False
        self.fail_close_context = False
        self.contexts: List[FakeContext] = []
        self.closed_contexts: List[FakeContext] = []

    async def launch(self) -> None:
        self.launch_calls += 1
        if self.fail_launch:
            raise RuntimeError("Executable doesn't exist")
        self.launched = True

    async def new_context(self) -> FakeContext:
        if self.create_delay:
            await asyncio.sleep(self.create_delay)
        if self.fail_new_context:
            raise RuntimeError("Target closed")
        context = FakeContext(f"context-{len(self.contexts) + 1}", self.responses)
        self.contexts.append(context)
        return context

    async def close_context(self, context: FakeContext) -> None:
        if self.fail_close_context:
            raise RuntimeError("context close failed")
        await context.close()
        self.closed_contexts.append(context)

    async def close(self) -> None:
        self.closed = True


class RecordingSleep:
    """Sleep replacement that records requested delays and yields once."""

    def __init__(self) -> None:
        self.calls: List[float] = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)
        await asyncio.sleep(0)


def make_items(count: int, username: str = "someuser") -> List[WorkItem]:
    return [
        WorkItem(
            id=f"{username}/{index:024x}",
            metadata=ImageMetadata(author="Some User", username=username),
        )
        for index in range(1, count + 1)
    ]


def make_config(**download: Any) -> DownloaderConfig:
    pool = download.pop("pool", {})
    return DownloaderConfig(download=download, pool=pool)
