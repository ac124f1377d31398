"""
Tests for download data models.
"""

from pathlib import Path

from vsco_downloader.models.download_models import (
    BatchJob,
    DownloadResult,
    ImageMetadata,
    ProfileData,
    ResourceFetchError,
    StoredFile,
    WorkItem,
)


class TestWorkItem:
    """Test source URL derivation"""

    def test_source_url_from_id(self):
        assert WorkItem(id="someuser/abc").source_url() == "https://vsco.co/someuser/media/abc"

    def test_explicit_page_url_wins(self):
        item = WorkItem(id="someuser/abc", metadata=ImageMetadata(page_url="https://x/y"))

        assert item.source_url() == "https://x/y"

    def test_bare_id(self):
        assert WorkItem(id="someuser").source_url() == "https://vsco.co/someuser"


class TestDownloadResult:
    """Test result helpers"""

    def test_failure_carries_item_details(self):
        item = WorkItem(id="someuser/abc", metadata=ImageMetadata(author="Some User"))

        result = DownloadResult.failure(item, "HTTP 404")

        assert not result.success
        assert result.error == "HTTP 404"
        assert result.author == "Some User"
        assert result.filename is None

    def test_filename(self):
        result = DownloadResult(
            success=True, work_item_id="u/abc", filepath=Path("/tmp/u/abc.jpg")
        )

        assert result.filename == "abc.jpg"


class TestSmallModels:
    def test_batch_job_bounds(self):
        job = BatchJob(index=1, start=3, items=[WorkItem(id="a"), WorkItem(id="b")])

        assert len(job) == 2
        assert job.end == 5

    def test_stored_file_filename(self):
        assert StoredFile(exists=True, path=Path("/x/a.png"), size=1).filename == "a.png"
        assert StoredFile(exists=False).filename is None

    def test_profile_data(self):
        profile = ProfileData(username="someuser", images=[ImageMetadata(image_id="a")])

        assert profile.profile_url == "https://vsco.co/someuser"
        assert profile.image_count == 1

    def test_fetch_error_status(self):
        error = ResourceFetchError("HTTP 503", item_id="u/a", status=503)

        assert error.status == 503
        assert error.item_id == "u/a"
        assert str(error) == "HTTP 503"
