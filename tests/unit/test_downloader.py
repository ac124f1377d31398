"""
Tests for the single-item downloader.
"""

import asyncio
from unittest.mock import AsyncMock

import pytest

from vsco_downloader.core.downloader import SingleItemDownloader
from vsco_downloader.core.file_storage import FileSystemStorage
from vsco_downloader.models.download_models import (
    EmptyResourceError,
    ExtractedMetadata,
    ExtractionError,
    ResourceFetchError,
    WorkItem,
)
from vsco_downloader.models.pool_models import ResourceContext

from ..fakes import FakeContext, FakeResponse, RecordingSleep, make_config, make_items

IMAGE_URL = "https://im.vsco.co/aws-us-west-2/abc/image.jpg"


@pytest.fixture
def storage(tmp_path):
    return FileSystemStorage(tmp_path)


@pytest.fixture
def context():
    return FakeContext("context-1", {})


@pytest.fixture
def rc(context):
    return ResourceContext(
        context_id="ctx-1", context=context, created_at=0.0, last_used_at=0.0
    )


@pytest.fixture
def item():
    return make_items(1)[0]


def make_downloader(storage, extractor, sleep=None, **download):
    return SingleItemDownloader(
        make_config(**download), storage, extractor, sleep=sleep or RecordingSleep()
    )


class TestBackoff:
    """Test retry delay schedule"""

    def test_delay_doubles_per_attempt(self):
        """Attempt n waits 2**n seconds"""
        assert SingleItemDownloader.backoff_delay(1) == 2.0
        assert SingleItemDownloader.backoff_delay(2) == 4.0
        assert SingleItemDownloader.backoff_delay(3) == 8.0


class TestAttempt:
    """Test a single download attempt"""

    @pytest.mark.asyncio
    async def test_existing_file_is_skipped_without_opening_a_page(
        self, storage, rc, context, item, tmp_path
    ):
        """An already-saved item is reported as skipped with no network work"""
        existing = tmp_path / f"{item.id}.jpg"
        existing.parent.mkdir(parents=True)
        existing.write_bytes(b"12345")
        extractor = AsyncMock()

        result = await make_downloader(storage, extractor).attempt(item, rc)

        assert result.success and result.skipped
        assert result.size_bytes == 5
        assert result.filepath == existing.resolve()
        assert context.opened_pages == []
        extractor.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_skip_takes_precedence_over_dry_run(self, storage, rc, item, tmp_path):
        """Skip detection runs before the dry-run short circuit"""
        existing = tmp_path / f"{item.id}.png"
        existing.parent.mkdir(parents=True)
        existing.write_bytes(b"png")

        result = await make_downloader(storage, AsyncMock(), dry_run=True).attempt(
            item, rc
        )

        assert result.skipped
        assert not result.dry_run

    @pytest.mark.asyncio
    async def test_dry_run_does_not_save(self, storage, rc, context, item, tmp_path):
        """Dry run succeeds without touching the page or the disk"""
        result = await make_downloader(storage, AsyncMock(), dry_run=True).attempt(
            item, rc
        )

        assert result.success and result.dry_run
        assert result.filepath is None
        assert context.opened_pages == []
        assert not (tmp_path / "someuser").exists()

    @pytest.mark.asyncio
    async def test_success_saves_file(self, storage, rc, context, item, extracted, tmp_path):
        """A successful attempt extracts, fetches and saves the image"""
        extractor = AsyncMock(return_value=extracted)

        result = await make_downloader(storage, extractor).attempt(item, rc)

        saved = tmp_path / f"{item.id}.jpg"
        assert result.success
        assert not result.skipped
        assert result.filepath == saved.resolve()
        assert result.size_bytes == len(b"image-bytes")
        assert result.retrieved_metadata is extracted
        assert result.author == "Some User"
        assert saved.read_bytes() == b"image-bytes"

        page = context.opened_pages[0]
        extractor.assert_awaited_once_with(page, item.source_url())
        assert page.visited == [IMAGE_URL]
        assert page.closed

    @pytest.mark.asyncio
    async def test_extension_follows_resource_url(self, storage, rc, item, tmp_path):
        """The saved file keeps an accepted extension from the resource URL"""
        extractor = AsyncMock(
            return_value=ExtractedMetadata(resource_url="https://im.vsco.co/x/photo.png")
        )

        result = await make_downloader(storage, extractor).attempt(item, rc)

        assert result.filepath.suffix == ".png"

    @pytest.mark.asyncio
    async def test_unaccepted_extension_saves_under_first_accepted(self, rc, item, tmp_path):
        """A file saved with a fallback extension is found again on the next run"""
        storage = FileSystemStorage(tmp_path, [".png", ".webp"])
        extractor = AsyncMock(
            return_value=ExtractedMetadata(resource_url="https://im.vsco.co/x/photo.jpg")
        )
        downloader = make_downloader(storage, extractor)

        first = await downloader.attempt(item, rc)
        second = await downloader.attempt(item, rc)

        assert first.filepath.suffix == ".png"
        assert second.skipped
        assert second.filepath == first.filepath
        assert extractor.await_count == 1

    @pytest.mark.asyncio
    async def test_missing_resource_url_raises(self, storage, rc, context, item):
        """No resource URL is an extraction error and the page is still closed"""
        extractor = AsyncMock(return_value=ExtractedMetadata(resource_url=""))

        with pytest.raises(ExtractionError):
            await make_downloader(storage, extractor).attempt(item, rc)

        assert context.opened_pages[0].closed

    @pytest.mark.asyncio
    async def test_http_error_raises_fetch_error(self, storage, rc, context, item, extracted):
        """A non-OK response raises ResourceFetchError with the status"""
        context.responses[IMAGE_URL] = FakeResponse(status=404)

        with pytest.raises(ResourceFetchError) as exc_info:
            await make_downloader(storage, AsyncMock(return_value=extracted)).attempt(
                item, rc
            )

        assert exc_info.value.status == 404
        assert exc_info.value.item_id == item.id

    @pytest.mark.asyncio
    async def test_missing_response_raises_fetch_error(
        self, storage, rc, context, item, extracted
    ):
        """A navigation without a response is a fetch error"""
        context.responses[IMAGE_URL] = None

        with pytest.raises(ResourceFetchError, match="No response"):
            await make_downloader(storage, AsyncMock(return_value=extracted)).attempt(
                item, rc
            )

    @pytest.mark.asyncio
    async def test_empty_body_raises(self, storage, rc, context, item, extracted, tmp_path):
        """An empty body is rejected and nothing is written"""
        context.responses[IMAGE_URL] = FakeResponse(body=b"")

        with pytest.raises(EmptyResourceError):
            await make_downloader(storage, AsyncMock(return_value=extracted)).attempt(
                item, rc
            )

        assert not (tmp_path / f"{item.id}.jpg").exists()


class TestDownloadWithRetry:
    """Test the retry loop"""

    @pytest.mark.asyncio
    async def test_exhausted_retries_return_failure(self, storage, rc, context, item, extracted):
        """After all attempts fail the last error is returned, not raised"""
        context.responses[IMAGE_URL] = FakeResponse(status=500)
        sleep = RecordingSleep()
        downloader = make_downloader(
            storage, AsyncMock(return_value=extracted), sleep=sleep, retries=3
        )

        result = await downloader.download_with_retry(item, rc)

        assert not result.success
        assert "HTTP 500" in result.error
        assert result.work_item_id == item.id
        assert sleep.calls == [2.0, 4.0]
        assert len(context.opened_pages) == 3

    @pytest.mark.asyncio
    async def test_single_attempt_does_not_sleep(self, storage, rc, item):
        """With one attempt there is no backoff"""
        sleep = RecordingSleep()
        extractor = AsyncMock(side_effect=RuntimeError("page crashed"))
        downloader = make_downloader(storage, extractor, sleep=sleep, retries=1)

        result = await downloader.download_with_retry(item, rc)

        assert result.error == "page crashed"
        assert sleep.calls == []

    @pytest.mark.asyncio
    async def test_recovers_on_later_attempt(self, storage, rc, item, extracted):
        """A transient failure followed by success yields a success"""
        sleep = RecordingSleep()
        extractor = AsyncMock(side_effect=[RuntimeError("flaky"), extracted])
        downloader = make_downloader(storage, extractor, sleep=sleep, retries=3)

        result = await downloader.download_with_retry(item, rc)

        assert result.success
        assert sleep.calls == [2.0]
        assert extractor.await_count == 2

    @pytest.mark.asyncio
    async def test_cancellation_propagates(self, storage, rc, item):
        """Cancellation is not swallowed by the retry loop"""
        extractor = AsyncMock(side_effect=asyncio.CancelledError())
        downloader = make_downloader(storage, extractor, retries=3)

        with pytest.raises(asyncio.CancelledError):
            await downloader.download_with_retry(item, rc)

    @pytest.mark.asyncio
    async def test_unstorable_id_fails_without_retrying(self, storage, rc, context):
        """An id that escapes the storage root fails at once with no backoff"""
        sleep = RecordingSleep()
        extractor = AsyncMock()
        downloader = make_downloader(storage, extractor, sleep=sleep, retries=3)

        result = await downloader.download_with_retry(WorkItem(id="../outside"), rc)

        assert not result.success
        assert "escapes" in result.error
        assert sleep.calls == []
        assert context.opened_pages == []
        extractor.assert_not_awaited()
