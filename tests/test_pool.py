import asyncio

from fakes import FakeDriver

from filterprobe.pool import PagePool


def test_initialize_creates_pool_pages():
    async def main():
        driver = FakeDriver()
        pool = PagePool(driver, size=3)
        await pool.initialize()
        return driver, pool

    driver, pool = asyncio.run(main())
    assert len(driver.pages) == 3
    assert pool.stats()["available"] == 3


def test_exhausted_pool_hands_out_transient_pages():
    async def main():
        driver = FakeDriver()
        pool = PagePool(driver, size=1)
        await pool.initialize()
        pooled = await pool.acquire()
        extra = await pool.acquire()
        assert extra is not pooled
        assert extra in pool.transient
        await pool.release(extra)
        await pool.release(pooled)
        return driver, pool, pooled, extra

    driver, pool, pooled, extra = asyncio.run(main())
    assert extra.closed
    assert not pooled.closed
    assert pool.available == [pooled]
    assert pool.created_transient == 1


def test_pages_are_reset_on_acquire():
    async def main():
        driver = FakeDriver()
        pool = PagePool(driver, size=1)
        await pool.initialize()
        page = await pool.acquire()
        await pool.release(page)
        again = await pool.acquire()
        return page, again

    page, again = asyncio.run(main())
    assert page is again
    assert page.resets == 2


def test_failed_reset_replaces_page():
    async def main():
        driver = FakeDriver()
        pool = PagePool(driver, size=1)
        await pool.initialize()
        driver.fail_reset = True
        page = await pool.acquire()
        return driver, pool, page

    driver, pool, page = asyncio.run(main())
    old = driver.pages[0]
    assert old.closed
    assert page is not old
    assert page in pool.in_use
    assert pool.replaced == 1
    assert pool.owned == 1


def test_discarded_slot_is_refilled_lazily():
    async def main():
        driver = FakeDriver()
        pool = PagePool(driver, size=1)
        await pool.initialize()
        page = await pool.acquire()
        await pool.discard(page)
        assert pool.owned == 0
        fresh = await pool.acquire()
        return pool, page, fresh

    pool, page, fresh = asyncio.run(main())
    assert page.closed
    assert fresh is not page
    assert fresh in pool.in_use
    assert not pool.transient


def test_concurrent_refills_do_not_overfill():
    async def main():
        driver = FakeDriver()
        pool = PagePool(driver, size=2)
        pages = await asyncio.gather(*(pool.acquire() for _ in range(4)))
        return pool, pages

    pool, pages = asyncio.run(main())
    assert len(pool.in_use) == 2
    assert len(pool.transient) == 2
    assert len(set(pages)) == 4


def test_sweep_and_destroy_close_everything():
    async def main():
        driver = FakeDriver()
        pool = PagePool(driver, size=1)
        await pool.initialize()
        await pool.acquire()
        await pool.acquire()
        driver.fail_close = True
        swept = await pool.sweep()
        await pool.destroy()
        return driver, pool, swept

    driver, pool, swept = asyncio.run(main())
    assert swept == 1
    assert driver.open_pages == []
    assert pool.owned == 0


def test_initialize_survives_driver_failures():
    async def main():
        driver = FakeDriver()
        driver.fail_new_page = True
        pool = PagePool(driver, size=2)
        await pool.initialize()
        return pool

    pool = asyncio.run(main())
    assert pool.available == []


def test_acquire_release_cycles_reuse_one_page():
    async def main():
        driver = FakeDriver()
        pool = PagePool(driver, size=1)
        await pool.initialize()
        for _ in range(5):
            page = await pool.acquire()
            await pool.release(page)
        return driver, pool

    driver, pool = asyncio.run(main())
    assert len(driver.pages) == 1
    assert pool.created_transient == 0
    assert len(pool.available) == 1
