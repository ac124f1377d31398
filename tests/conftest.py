"""
Shared pytest fixtures.
"""

import pytest

from vsco_downloader.models.download_models import ExtractedMetadata

from .fakes import FakeEngine, RecordingSleep


@pytest.fixture
def engine() -> FakeEngine:
    return FakeEngine()


@pytest.fixture
def recording_sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def extracted() -> ExtractedMetadata:
    return ExtractedMetadata(
        resource_url="https://im.vsco.co/aws-us-west-2/abc/image.jpg",
        upload_date="2024-05-01T10:00:00Z",
        srcset="https://im.vsco.co/a.jpg?w=480 480w, https://im.vsco.co/a.jpg?w=960 960w",
        available_sizes=("480w", "960w"),
        original_width=960,
        original_height=640,
    )
