import asyncio
import logging

import pytest

from core import db, dispatch
from core.errors import DeadlineExceededError, InternalError, NotFoundError


async def _use_connection_then(result, delay: float = 0.0):
    await db.current_lease().connection()
    if delay:
        await asyncio.sleep(delay)
    return result


class TestDispatch:
    """Tests for deadline-bounded handler execution."""

    @pytest.mark.asyncio
    async def test_returns_handler_result_and_releases(self, fake_pool):
        result = await dispatch.dispatch(_use_connection_then, {"id": 7}, timeout_s=1.0)

        assert result == {"id": 7}
        assert fake_pool.acquired == 1
        assert fake_pool.in_use == 0

    @pytest.mark.asyncio
    async def test_handler_gets_its_own_lease(self, fake_pool):
        seen = []

        async def handler():
            seen.append(db.current_lease())

        await dispatch.dispatch(handler, timeout_s=1.0)

        assert seen[0] is not None
        assert seen[0].released
        assert db.current_lease() is None

    @pytest.mark.asyncio
    async def test_typed_errors_pass_through(self, fake_pool):
        async def handler():
            await db.current_lease().connection()
            raise NotFoundError("Product not found")

        with pytest.raises(NotFoundError) as exc_info:
            await dispatch.dispatch(handler, timeout_s=1.0)

        assert exc_info.value.message == "Product not found"
        assert fake_pool.in_use == 0

    @pytest.mark.asyncio
    async def test_unexpected_errors_become_internal_errors(self, fake_pool, caplog):
        async def handler():
            raise KeyError("imageMimetype")

        with pytest.raises(InternalError) as exc_info:
            await dispatch.dispatch(handler, timeout_s=1.0, label="get_product")

        assert exc_info.value.message == "Internal server error"
        assert "imageMimetype" not in exc_info.value.message
        assert "Unhandled error in get_product" in caplog.text

    @pytest.mark.asyncio
    async def test_timeout_abandons_handler_but_still_releases(self, fake_pool):
        with pytest.raises(DeadlineExceededError):
            await dispatch.dispatch(_use_connection_then, "late", 0.2, timeout_s=0.02)

        # The zombie still holds its connection until it finishes.
        assert dispatch.abandoned_count() == 1
        assert fake_pool.in_use == 1

        assert await dispatch.drain_abandoned(2.0) == 0
        assert dispatch.abandoned_count() == 0
        assert fake_pool.acquired == 1
        assert fake_pool.in_use == 0

    @pytest.mark.asyncio
    async def test_late_failure_is_discarded(self, fake_pool, caplog):
        async def handler():
            await db.current_lease().connection()
            await asyncio.sleep(0.1)
            raise RuntimeError("too late to matter")

        with pytest.raises(DeadlineExceededError):
            await dispatch.dispatch(handler, timeout_s=0.01, label="slow")

        await dispatch.drain_abandoned(2.0)

        assert fake_pool.in_use == 0
        assert "Abandoned handler slow failed after its deadline" in caplog.text

    @pytest.mark.asyncio
    async def test_caller_cancellation_abandons_handler(self, fake_pool, caplog):
        caplog.set_level(logging.INFO, logger="core.dispatch")
        started = asyncio.Event()

        async def handler():
            await db.current_lease().connection()
            started.set()
            await asyncio.sleep(0.1)

        caller = asyncio.create_task(dispatch.dispatch(handler, timeout_s=5.0, label="upload_image"))
        await started.wait()
        caller.cancel()
        with pytest.raises(asyncio.CancelledError):
            await caller

        assert dispatch.abandoned_count() == 1
        await dispatch.drain_abandoned(2.0)
        assert fake_pool.in_use == 0
        assert (
            "Abandoned handler upload_image finished after the request was cancelled"
            in caplog.text
        )

    @pytest.mark.asyncio
    async def test_drain_with_nothing_pending(self):
        assert await dispatch.drain_abandoned(0.1) == 0
