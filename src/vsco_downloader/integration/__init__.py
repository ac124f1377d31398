"""
Playwright-backed integrations with vsco.co.
"""

from .browser_engine import BrowserEngineError, PlaywrightBrowserEngine
from .profile_scraper import (
    PrivateProfileError,
    ProfileNotFoundError,
    ProfileScrapeError,
    VscoProfileScraper,
    clean_username,
)
from .vsco_extractor import VscoImageExtractor

__all__ = [
    "PlaywrightBrowserEngine",
    "BrowserEngineError",
    "VscoProfileScraper",
    "ProfileScrapeError",
    "ProfileNotFoundError",
    "PrivateProfileError",
    "clean_username",
    "VscoImageExtractor",
]
