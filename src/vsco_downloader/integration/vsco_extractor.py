"""
Default extraction strategy: finds the full-size image URL and auxiliary
metadata on a VSCO media page.
"""

import logging
import re
from typing import Any, Dict, List, Optional, Tuple

from playwright.async_api import Error as PlaywrightError

from ..models.download_models import VSCO_BASE_URL, ExtractedMetadata, ExtractionError

logger = logging.getLogger(__name__)

IMAGE_SELECTORS = [
    'img[data-test="photo"]',
    "img.responsive-image",
    'img[src*="vsco.co"]',
    'img[class*="image"]',
    ".image-container img",
    ".photo-container img",
]

IMAGE_EXTENSIONS = (".jpg", ".jpeg", ".png", ".webp")

SRCSET_WIDTH_PATTERN = re.compile(r"(\d+)w$")

COLLECT_CANDIDATES_JS = r"""
() => {
    const urls = [];
    document.querySelectorAll('img').forEach(img => {
        const src = img.getAttribute('src');
        if (src && (src.includes('vsco') || src.startsWith('http'))) {
            urls.push(src);
        }
    });
    document.querySelectorAll('script').forEach(script => {
        const matches = (script.textContent || '').match(/https:\/\/[^"'\s]*\.(?:jpg|jpeg|png|webp)/gi);
        if (matches) {
            urls.push(...matches);
        }
    });
    return urls;
}
"""

COLLECT_METADATA_JS = """
() => {
    const result = {};
    const time = document.querySelector('time[datetime]');
    if (time) {
        result.uploadDate = time.getAttribute('datetime');
    }
    const img = document.querySelector('img[srcset]');
    if (img) {
        result.srcset = img.getAttribute('srcset');
        result.width = img.getAttribute('width');
        result.height = img.getAttribute('height');
    }
    return result;
}
"""


def normalize_image_url(url: str) -> str:
    """Make protocol-relative and root-relative URLs absolute."""
    if url.startswith("//"):
        return f"https:{url}"
    if url.startswith("/"):
        return f"{VSCO_BASE_URL}{url}"
    return url


def pick_image_url(candidates: List[str]) -> Optional[str]:
    """First candidate that looks like an image file."""
    for url in candidates:
        lowered = url.lower()
        if any(ext in lowered for ext in IMAGE_EXTENSIONS):
            return url
    return None


def parse_srcset_sizes(srcset: Optional[str]) -> Tuple[str, ...]:
    """Width descriptors (``"480w"``) listed in a srcset attribute, in order."""
    if not srcset:
        return ()

    sizes = []
    for entry in srcset.split(","):
        match = SRCSET_WIDTH_PATTERN.search(entry.strip())
        if match:
            sizes.append(f"{match.group(1)}w")
    return tuple(sizes)


def parse_dimension(value: Optional[str]) -> Optional[int]:
    if not value:
        return None
    match = re.match(r"\s*(\d+)", value)
    return int(match.group(1)) if match else None


class VscoImageExtractor:
    """Callable extraction strategy ``(page, source_url) -> ExtractedMetadata``."""

    def __init__(
        self,
        timeout_ms: int = 30000,
        settle_ms: int = 2000,
        selector_timeout_ms: int = 1000,
    ):
        self.timeout_ms = timeout_ms
        self.settle_ms = settle_ms
        self.selector_timeout_ms = selector_timeout_ms

    async def __call__(self, page: Any, source_url: str) -> ExtractedMetadata:
        """
        Open ``source_url`` and extract the image URL and metadata.

        Raises:
            ExtractionError: If no image URL can be found
        """
        logger.debug(f"Extracting image from {source_url}")
        await page.goto(source_url, wait_until="domcontentloaded", timeout=self.timeout_ms)
        await page.wait_for_timeout(self.settle_ms)

        image_url = await self._find_by_selector(page)
        if not image_url:
            candidates = await page.evaluate(COLLECT_CANDIDATES_JS)
            image_url = pick_image_url(candidates or [])

        if not image_url:
            raise ExtractionError(f"Could not extract image URL from {source_url}")

        details: Dict[str, Any] = await page.evaluate(COLLECT_METADATA_JS) or {}
        srcset = details.get("srcset") or None

        return ExtractedMetadata(
            resource_url=normalize_image_url(image_url),
            upload_date=details.get("uploadDate") or None,
            srcset=srcset,
            available_sizes=parse_srcset_sizes(srcset),
            original_width=parse_dimension(details.get("width")),
            original_height=parse_dimension(details.get("height")),
        )

    async def _find_by_selector(self, page: Any) -> Optional[str]:
        for selector in IMAGE_SELECTORS:
            element = page.locator(selector).first
            try:
                await element.wait_for(state="visible", timeout=self.selector_timeout_ms)
                src = await element.get_attribute("src")
            except PlaywrightError:
                continue

            if src:
                logger.debug(f"Found image with selector {selector}")
                return src
        return None
