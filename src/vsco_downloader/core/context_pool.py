"""
Bounded pool of isolated browser contexts with use-count and age recycling.
"""

import asyncio
import itertools
import logging
import time
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Callable, List, Optional

from ..models.config_models import DownloaderConfig
from ..models.pool_models import ResourceContext

logger = logging.getLogger(__name__)


class ContextPoolError(Exception):
    """Base exception for context pool errors."""

    pass


class PoolExhaustedError(ContextPoolError):
    """Raised when every pooled context is leased and the pool is full."""

    pass


class ContextPool:
    """
    Owns up to ``max_pool_size`` browser contexts and leases them to tasks.

    A context is either leased to exactly one caller or available. Contexts
    are replaced once they reach ``max_context_uses`` leases or outlive
    ``context_lifetime_ms``. All pool mutation happens under one lock, so a
    context-creation await cannot let two callers grow the pool past its
    bound.
    """

    def __init__(
        self,
        config: DownloaderConfig,
        engine: Any,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Initialize context pool.

        Args:
            config: Downloader configuration (pool section and concurrency)
            engine: Browser engine with ``launch``, ``new_context``,
                ``close_context`` and ``close`` coroutines
            clock: Monotonic clock in seconds, injectable for tests
        """
        self.config = config
        self.engine = engine
        self.clock = clock
        self.max_pool_size = config.max_pool_size
        self.context_lifetime = config.pool.context_lifetime_ms / 1000
        self.max_context_uses = config.pool.max_context_uses

        self._contexts: List[ResourceContext] = []
        self._lock = asyncio.Lock()
        self._id_counter = itertools.count(1)
        self._initialized = False

    @property
    def is_initialized(self) -> bool:
        return self._initialized

    def pool_size(self) -> int:
        """Number of contexts currently owned by the pool."""
        return len(self._contexts)

    def available_count(self) -> int:
        """Number of pooled contexts not currently leased."""
        return sum(1 for rc in self._contexts if not rc.in_use)

    def in_use_count(self) -> int:
        return sum(1 for rc in self._contexts if rc.in_use)

    async def initialize(self) -> None:
        """
        Launch the browser engine and create the first context.

        Raises:
            ContextPoolError: If the engine cannot be launched
        """
        async with self._lock:
            if self._initialized:
                return

            try:
                await self.engine.launch()
                self._contexts.append(await self._create_context())
            except Exception as e:
                logger.error(f"Failed to initialize context pool: {e}")
                await self._close_engine()
                raise ContextPoolError(f"Context pool initialization failed: {e}") from e

            self._initialized = True
            logger.info(
                f"Initialized context pool (max size {self.max_pool_size}, "
                f"lifetime {self.context_lifetime:.0f}s, "
                f"max uses {self.max_context_uses})"
            )

    async def get_context(self) -> ResourceContext:
        """
        Lease an available context, creating one if the pool has room.

        Returns:
            The leased context, marked in use

        Raises:
            ContextPoolError: If the pool has not been initialized
            PoolExhaustedError: If every context is leased and the pool is full
        """
        async with self._lock:
            if not self._initialized:
                raise ContextPoolError("Context pool not initialized")

            await self._cleanup_stale_locked()

            rc = next((c for c in self._contexts if not c.in_use), None)

            if rc is None and len(self._contexts) < self.max_pool_size:
                rc = await self._create_context()
                self._contexts.append(rc)

            if rc is None:
                raise PoolExhaustedError(
                    f"All {len(self._contexts)} contexts are in use "
                    f"(max pool size {self.max_pool_size})"
                )

            rc.mark_leased(self.clock())
            logger.debug(
                f"Leased context {rc.context_id} (use {rc.use_count}, "
                f"{self.available_count()}/{len(self._contexts)} available)"
            )
            return rc

    async def release_context(self, rc: ResourceContext) -> None:
        """
        Return a leased context to the pool.

        Pages opened in the context are closed. Unknown contexts are logged
        and ignored.
        """
        async with self._lock:
            if not any(c is rc for c in self._contexts):
                logger.warning(
                    f"Ignoring release of unknown context "
                    f"{getattr(rc, 'context_id', rc)}"
                )
                return

            await self._close_pages(rc)
            rc.mark_released()
            logger.debug(f"Released context {rc.context_id}")

            if rc.use_count >= self.max_context_uses:
                logger.debug(
                    f"Context {rc.context_id} reached {rc.use_count} uses, replacing"
                )
                await self._replace_context(rc)

    @asynccontextmanager
    async def lease(self) -> AsyncIterator[ResourceContext]:
        """Lease a context for the duration of an ``async with`` block."""
        rc = await self.get_context()
        try:
            yield rc
        finally:
            await self.release_context(rc)

    async def cleanup_stale_contexts(self) -> int:
        """
        Replace idle contexts that are too old or overused.

        Returns:
            Number of contexts replaced
        """
        async with self._lock:
            return await self._cleanup_stale_locked()

    async def cleanup(self) -> None:
        """Close every pooled context and the browser engine. Safe to repeat."""
        async with self._lock:
            if not self._initialized and not self._contexts:
                return

            logger.debug(f"Cleaning up {len(self._contexts)} pooled contexts")
            for rc in self._contexts:
                try:
                    await self.engine.close_context(rc.context)
                except Exception as e:
                    logger.warning(f"Error closing context {rc.context_id}: {e}")

            self._contexts.clear()
            self._initialized = False
            await self._close_engine()
            logger.info("Context pool cleaned up")

    async def _cleanup_stale_locked(self) -> int:
        now = self.clock()
        stale = [
            rc
            for rc in self._contexts
            if not rc.in_use
            and (
                rc.age(now) > self.context_lifetime
                or rc.use_count >= self.max_context_uses
            )
        ]

        for rc in stale:
            logger.debug(
                f"Context {rc.context_id} is stale "
                f"(age {rc.age(now):.0f}s, {rc.use_count} uses)"
            )
            await self._replace_context(rc)

        return len(stale)

    async def _replace_context(self, rc: ResourceContext) -> Optional[ResourceContext]:
        """Drop ``rc`` and create a fresh context in its place. Caller holds the lock."""
        self._contexts = [c for c in self._contexts if c is not rc]

        try:
            await self.engine.close_context(rc.context)
        except Exception as e:
            logger.warning(f"Error closing context {rc.context_id}: {e}")

        if len(self._contexts) >= self.max_pool_size:
            return None

        try:
            replacement = await self._create_context()
        except Exception as e:
            logger.warning(
                f"Failed to create replacement for context {rc.context_id}: {e}"
            )
            return None

        self._contexts.append(replacement)
        logger.debug(f"Replaced context {rc.context_id} with {replacement.context_id}")
        return replacement

    async def _create_context(self) -> ResourceContext:
        context = await self.engine.new_context()
        now = self.clock()
        rc = ResourceContext(
            context_id=f"ctx-{next(self._id_counter)}",
            context=context,
            created_at=now,
            last_used_at=now,
        )
        logger.debug(f"Created context {rc.context_id}")
        return rc

    async def _close_pages(self, rc: ResourceContext) -> None:
        for page in list(getattr(rc.context, "pages", [])):
            try:
                await page.close()
            except Exception as e:
                logger.warning(f"Error closing page in context {rc.context_id}: {e}")

    async def _close_engine(self) -> None:
        try:
            await self.engine.close()
        except Exception as e:
            logger.warning(f"Error closing browser engine: {e}")
