"""
VSCO profile scraper: turns a username into an ordered work queue.
"""

import hashlib
import logging
import re
from pathlib import PurePosixPath
from typing import Any, Dict, List, Optional
from urllib.parse import urlparse

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from ..models.download_models import (
    VSCO_BASE_URL,
    ImageMetadata,
    ProfileData,
    WorkItem,
)

logger = logging.getLogger(__name__)

USERNAME_PATTERN = re.compile(r"^[A-Za-z0-9_-]{2,50}$")

IMAGE_ID_PATTERNS = [
    re.compile(r"/([a-f0-9]{24})/vsco[a-f0-9]+\.(?:jpg|png|webp)", re.IGNORECASE),
    re.compile(r"/([a-f0-9]{24})/[^/]+\.(?:jpg|png|webp)", re.IGNORECASE),
    re.compile(r"/([a-f0-9]+)(?:\.|/|$)", re.IGNORECASE),
    re.compile(r"/media/([a-f0-9]+)", re.IGNORECASE),
    re.compile(r"/gallery/([a-f0-9]+)", re.IGNORECASE),
    re.compile(r"id=([a-f0-9]+)", re.IGNORECASE),
    re.compile(r"vsco([a-f0-9]+)\.", re.IGNORECASE),
]

SIZE_PARAM_PATTERN = re.compile(r"[?&](?:w|dpr)=\d+.*$")

GALLERY_SELECTOR = '[data-testid="UserProfileGallery"]'
THUMBNAIL_SELECTORS = [
    f"{GALLERY_SELECTOR} figure.MediaThumbnail img",
    f"{GALLERY_SELECTOR} .MediaThumbnail img",
    f"{GALLERY_SELECTOR} img",
]
DISPLAY_NAME_SELECTORS = [
    ".ProfileHeader-displayName",
    ".Profile-displayName",
    '[class*="displayName"]',
    "h1",
    '[data-testid="display-name"]',
]
LOAD_MORE_SELECTOR = "#loadMore-Button"
MAX_LOAD_MORE_CLICKS = 10


class ProfileScrapeError(Exception):
    """Raised when a profile cannot be scraped."""

    def __init__(self, message: str, username: Optional[str] = None):
        super().__init__(message)
        self.username = username


class ProfileNotFoundError(ProfileScrapeError):
    pass


class PrivateProfileError(ProfileScrapeError):
    pass


def is_valid_username(username: str) -> bool:
    return bool(USERNAME_PATTERN.match(username))


def clean_username(value: str) -> Optional[str]:
    """
    Normalise ``@name`` or a profile URL to a lowercase username.

    Returns:
        The username, or None if the input does not contain a valid one
    """
    cleaned = value.strip()
    cleaned = re.sub(r"^@", "", cleaned)
    cleaned = re.sub(r"^https?://(www\.)?vsco\.co/", "", cleaned)
    cleaned = re.sub(r"/.*$", "", cleaned)

    if is_valid_username(cleaned):
        return cleaned.lower()
    return None


def extract_image_id(url: str) -> Optional[str]:
    """Image id embedded in a VSCO image URL, trying the most specific pattern first."""
    for pattern in IMAGE_ID_PATTERNS:
        match = pattern.search(url)
        if match:
            return match.group(1)
    return None


def fallback_image_id(url: str) -> str:
    """Stable id for URLs no pattern recognises: the file stem, or a short hash."""
    stem = PurePosixPath(urlparse(url).path).stem
    if len(stem) > 5:
        return stem
    return hashlib.sha1(url.encode("utf-8")).hexdigest()[:12]


def to_original_url(url: str) -> str:
    """Strip resizing parameters and force an absolute https URL."""
    processed = SIZE_PARAM_PATTERN.sub("", url)
    if processed.startswith("//"):
        processed = f"https:{processed}"
    elif processed.startswith("http://"):
        processed = "https://" + processed[len("http://") :]
    return processed


def to_work_items(profile: ProfileData) -> List[WorkItem]:
    """One work item per scraped image, in gallery order."""
    author = profile.display_name or profile.username
    return [
        WorkItem(
            id=f"{profile.username}/{image.image_id}",
            metadata=ImageMetadata(
                author=author,
                username=profile.username,
                image_id=image.image_id,
                page_url=f"{VSCO_BASE_URL}/{profile.username}/media/{image.image_id}",
                direct_image_url=image.direct_image_url,
                thumbnail_url=image.thumbnail_url,
                width=image.width,
                height=image.height,
                description=image.description,
            ),
        )
        for image in profile.images
    ]


class VscoProfileScraper:
    """Scrapes a public VSCO profile gallery with a Playwright page."""

    def __init__(
        self,
        timeout_ms: int = 30000,
        settle_ms: int = 3000,
        load_more_wait_ms: int = 2000,
    ):
        self.timeout_ms = timeout_ms
        self.settle_ms = settle_ms
        self.load_more_wait_ms = load_more_wait_ms

    async def scrape_profile(
        self, page: Any, username: str, limit: Optional[int] = None
    ) -> ProfileData:
        """
        Collect profile metadata and gallery images.

        Args:
            page: Playwright page to drive
            username: Cleaned VSCO username
            limit: Stop after this many images (all when None)

        Raises:
            ProfileNotFoundError: If the profile does not exist
            PrivateProfileError: If the profile is private
            ProfileScrapeError: If the gallery never loads
        """
        profile_url = f"{VSCO_BASE_URL}/{username}"
        logger.info(f"Scraping VSCO profile @{username} ({profile_url})")

        await self._navigate(page, profile_url)
        await self._wait_for_gallery(page, username)

        display_name = await self._extract_display_name(page, username)
        images = await self._extract_images(page, username, limit)

        logger.info(f"Found {len(images)} images on @{username}")
        return ProfileData(username=username, display_name=display_name, images=images)

    @retry(
        retry=retry_if_exception_type(PlaywrightTimeoutError),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=1, max=10),
        reraise=True,
    )
    async def _navigate(self, page: Any, url: str) -> None:
        await page.goto(url, wait_until="domcontentloaded", timeout=self.timeout_ms)

    async def _wait_for_gallery(self, page: Any, username: str) -> None:
        try:
            await page.wait_for_selector(
                f"{GALLERY_SELECTOR}, .MediaThumbnail", timeout=10000
            )
            return
        except PlaywrightTimeoutError:
            pass

        body = ""
        try:
            body = await page.text_content("body") or ""
        except PlaywrightError as e:
            logger.debug(f"Could not read page content for @{username}: {e}")

        if "Page Not Found" in body or "User not found" in body:
            raise ProfileNotFoundError(f"VSCO profile @{username} not found", username)
        if "private" in body.lower():
            raise PrivateProfileError(f"VSCO profile @{username} is private", username)
        raise ProfileScrapeError(f"Failed to load VSCO profile @{username}", username)

    async def _extract_display_name(self, page: Any, username: str) -> Optional[str]:
        for selector in DISPLAY_NAME_SELECTORS:
            try:
                element = await page.query_selector(selector)
                if element is None:
                    continue
                text = (await element.text_content() or "").strip()
            except PlaywrightError as e:
                logger.debug(f"Display name selector {selector} failed: {e}")
                continue

            if text and text != username:
                return text
        return None

    async def _extract_images(
        self, page: Any, username: str, limit: Optional[int]
    ) -> List[ImageMetadata]:
        images: List[ImageMetadata] = []
        seen_ids: set = set()
        seen_urls: set = set()
        clicks = 0

        await page.wait_for_timeout(self.settle_ms)

        while True:
            for image in await self._extract_visible_images(page):
                if image.image_id in seen_ids or image.direct_image_url in seen_urls:
                    logger.debug(f"Skipping duplicate image {image.image_id}")
                    continue

                seen_ids.add(image.image_id)
                seen_urls.add(image.direct_image_url)
                images.append(image)

                if limit and len(images) >= limit:
                    logger.info(f"Reached image limit of {limit}")
                    return images

            logger.debug(f"Collected {len(images)} images so far")

            load_more = page.locator(LOAD_MORE_SELECTOR)
            try:
                visible = await load_more.is_visible()
            except PlaywrightError:
                visible = False

            if not visible:
                break
            if clicks >= MAX_LOAD_MORE_CLICKS:
                logger.info(f"Stopped after {MAX_LOAD_MORE_CLICKS} 'Load More' clicks")
                break

            try:
                await load_more.click()
            except PlaywrightError as e:
                logger.warning(f"Could not click 'Load More': {e}")
                break

            clicks += 1
            await page.wait_for_timeout(self.load_more_wait_ms)

        return images

    async def _extract_visible_images(self, page: Any) -> List[ImageMetadata]:
        elements: List[Any] = []
        for selector in THUMBNAIL_SELECTORS:
            found = await page.query_selector_all(selector)
            if len(found) > len(elements):
                elements = found

        images = []
        for element in elements:
            try:
                info = await self._image_info(element)
            except PlaywrightError as e:
                logger.debug(f"Could not read thumbnail: {e}")
                continue
            if info is not None:
                images.append(info)
        return images

    async def _image_info(self, element: Any) -> Optional[ImageMetadata]:
        src = await element.get_attribute("src")
        if not src or "vsco" not in src:
            return None

        image_id = extract_image_id(src) or fallback_image_id(src)
        size: Dict[str, int] = await element.evaluate(
            "el => ({width: el.naturalWidth, height: el.naturalHeight})"
        )
        alt = (await element.get_attribute("alt") or "").strip()

        return ImageMetadata(
            image_id=image_id,
            direct_image_url=to_original_url(src),
            thumbnail_url=src,
            width=size.get("width") or None,
            height=size.get("height") or None,
            description=alt or None,
        )
