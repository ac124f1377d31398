"""
Tests for the browser context pool.
"""

import logging

import pytest

from vsco_downloader.core.context_pool import (
    ContextPool,
    ContextPoolError,
    PoolExhaustedError,
)
from vsco_downloader.models.pool_models import ResourceContext

from ..fakes import FakeEngine, make_config


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


def make_pool(engine, clock=None, **download):
    config = make_config(**download)
    if clock is None:
        return ContextPool(config, engine)
    return ContextPool(config, engine, clock=clock)


class TestContextPoolLifecycle:
    """Test initialization and cleanup"""

    @pytest.mark.asyncio
    async def test_initialize_launches_engine_and_creates_one_context(self, engine):
        """Initialization launches the browser and creates a first context"""
        pool = make_pool(engine, max_concurrency=3)

        await pool.initialize()

        assert engine.launched
        assert pool.is_initialized
        assert pool.pool_size() == 1
        assert pool.available_count() == 1
        assert pool.max_pool_size == 3

    @pytest.mark.asyncio
    async def test_initialize_is_idempotent(self, engine):
        """A second initialize does nothing"""
        pool = make_pool(engine)

        await pool.initialize()
        await pool.initialize()

        assert engine.launch_calls == 1
        assert pool.pool_size() == 1

    @pytest.mark.asyncio
    async def test_launch_failure_raises_pool_error(self):
        """A browser that cannot launch surfaces as ContextPoolError"""
        engine = FakeEngine(fail_launch=True)
        pool = make_pool(engine)

        with pytest.raises(ContextPoolError, match="initialization failed"):
            await pool.initialize()

        assert not pool.is_initialized
        assert engine.closed

    @pytest.mark.asyncio
    async def test_get_before_initialize_raises(self, engine):
        """Leasing from an uninitialized pool is an error"""
        pool = make_pool(engine)

        with pytest.raises(ContextPoolError, match="not initialized"):
            await pool.get_context()

    @pytest.mark.asyncio
    async def test_cleanup_closes_everything_and_is_repeatable(self, engine):
        """cleanup closes every context and the browser, and can run twice"""
        pool = make_pool(engine, max_concurrency=2)
        await pool.initialize()
        first = await pool.get_context()
        await pool.get_context()

        await pool.cleanup()
        await pool.cleanup()

        assert pool.pool_size() == 0
        assert not pool.is_initialized
        assert engine.closed
        assert first.context.closed
        assert len(engine.closed_contexts) == 2

    @pytest.mark.asyncio
    async def test_cleanup_survives_close_errors(self, engine, caplog):
        """Errors closing a context are logged, not raised"""
        pool = make_pool(engine)
        await pool.initialize()
        engine.fail_close_context = True

        with caplog.at_level(logging.WARNING):
            await pool.cleanup()

        assert engine.closed
        assert "Error closing context" in caplog.text


class TestContextPoolLeasing:
    """Test leasing, growth and exhaustion"""

    @pytest.mark.asyncio
    async def test_lease_marks_context_in_use(self, engine):
        """A leased context is marked in use and counted"""
        pool = make_pool(engine)
        await pool.initialize()

        rc = await pool.get_context()

        assert rc.in_use
        assert rc.use_count == 1
        assert pool.available_count() == 0
        assert pool.in_use_count() == 1

    @pytest.mark.asyncio
    async def test_released_context_is_reused(self, engine):
        """Releasing makes the same context available again"""
        pool = make_pool(engine)
        await pool.initialize()

        rc = await pool.get_context()
        await pool.release_context(rc)
        again = await pool.get_context()

        assert again is rc
        assert again.use_count == 2
        assert len(engine.contexts) == 1

    @pytest.mark.asyncio
    async def test_grows_to_max_then_exhausts(self, engine):
        """The pool grows on demand up to its bound, then refuses"""
        pool = make_pool(engine, max_concurrency=2)
        await pool.initialize()

        first = await pool.get_context()
        second = await pool.get_context()

        assert first is not second
        assert pool.pool_size() == 2

        with pytest.raises(PoolExhaustedError):
            await pool.get_context()

        assert pool.pool_size() == 2

    @pytest.mark.asyncio
    async def test_explicit_pool_size_above_concurrency(self, engine):
        """max_pool_size can exceed the concurrency limit"""
        pool = make_pool(engine, max_concurrency=1, pool={"max_pool_size": 3})
        await pool.initialize()

        leased = [await pool.get_context() for _ in range(3)]

        assert len({rc.context_id for rc in leased}) == 3

    @pytest.mark.asyncio
    async def test_release_closes_open_pages(self, engine):
        """Pages left open by a task are closed on release"""
        pool = make_pool(engine)
        await pool.initialize()
        rc = await pool.get_context()
        page = await rc.context.new_page()

        await pool.release_context(rc)

        assert page.closed
        assert rc.context.pages == []

    @pytest.mark.asyncio
    async def test_release_unknown_context_is_ignored(self, engine, caplog):
        """Releasing a context the pool does not own only logs a warning"""
        pool = make_pool(engine)
        await pool.initialize()
        stranger = ResourceContext(
            context_id="ctx-x", context=object(), created_at=0.0, last_used_at=0.0
        )

        with caplog.at_level(logging.WARNING):
            await pool.release_context(stranger)

        assert "unknown context" in caplog.text
        assert pool.pool_size() == 1

    @pytest.mark.asyncio
    async def test_lease_context_manager_releases(self, engine):
        """lease() releases even when the body raises"""
        pool = make_pool(engine)
        await pool.initialize()

        with pytest.raises(RuntimeError):
            async with pool.lease() as rc:
                assert rc.in_use
                raise RuntimeError("boom")

        assert pool.available_count() == 1


class TestContextPoolRecycling:
    """Test use-count and age based replacement"""

    @pytest.mark.asyncio
    async def test_context_replaced_after_max_uses(self, engine):
        """A context that reaches max uses is replaced on release"""
        pool = make_pool(engine, pool={"max_context_uses": 2})
        await pool.initialize()

        rc = await pool.get_context()
        await pool.release_context(rc)
        rc = await pool.get_context()
        await pool.release_context(rc)

        assert rc.context.closed
        assert pool.pool_size() == 1
        replacement = await pool.get_context()
        assert replacement is not rc
        assert replacement.use_count == 1

    @pytest.mark.asyncio
    async def test_stale_context_replaced_on_next_lease(self, engine):
        """Idle contexts older than the lifetime are replaced"""
        clock = FakeClock()
        pool = make_pool(engine, clock=clock, pool={"context_lifetime_ms": 1000})
        await pool.initialize()
        original = pool._contexts[0]

        clock.now += 2.0
        rc = await pool.get_context()

        assert rc is not original
        assert original.context.closed

    @pytest.mark.asyncio
    async def test_leased_context_is_never_evicted(self, engine):
        """Contexts in use are left alone by stale cleanup"""
        clock = FakeClock()
        pool = make_pool(engine, clock=clock, pool={"context_lifetime_ms": 1000})
        await pool.initialize()
        rc = await pool.get_context()

        clock.now += 10.0
        replaced = await pool.cleanup_stale_contexts()

        assert replaced == 0
        assert not rc.context.closed

    @pytest.mark.asyncio
    async def test_failed_replacement_shrinks_pool(self, engine, caplog):
        """If a replacement cannot be created the pool shrinks and logs"""
        pool = make_pool(engine, pool={"max_context_uses": 1})
        await pool.initialize()
        rc = await pool.get_context()
        engine.fail_new_context = True

        with caplog.at_level(logging.WARNING):
            await pool.release_context(rc)

        assert pool.pool_size() == 0
        assert "Failed to create replacement" in caplog.text
