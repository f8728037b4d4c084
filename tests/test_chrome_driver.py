import asyncio
import json
import time

from filterprobe.config import ScanConfig
from filterprobe.drivers import create_driver
from filterprobe.drivers.base import matches_requested
from filterprobe.drivers.chrome import ChromeDriver, ChromePage, document_responses, pick_statuses


def entry(method, kind, url, status):
    message = {"message": {"method": method, "params": {"type": kind, "response": {"url": url, "status": status}}}}
    return {"message": json.dumps(message)}


def test_document_responses_keeps_only_documents():
    entries = [
        entry("Network.responseReceived", "Document", "https://old.com/", 301),
        entry("Network.responseReceived", "Script", "https://old.com/app.js", 200),
        entry("Network.requestWillBeSent", "Document", "https://old.com/", 0),
        {"message": "not json"},
        entry("Network.responseReceived", "Document", "https://new.com/", 200),
    ]
    assert document_responses(entries) == [("https://old.com/", 301), ("https://new.com/", 200)]


def test_pick_statuses_for_redirect():
    responses = [("https://old.com/", 301), ("https://new.com/", 200)]
    assert pick_statuses(responses, "https://old.com", "https://new.com/") == (200, 301)


def test_pick_statuses_falls_back_to_last_document():
    responses = [("https://a.com/", 200)]
    assert pick_statuses(responses, "https://b.com", "https://c.com/") == (200, None)
    assert pick_statuses([], "https://a.com", "https://a.com/") == (None, None)


def test_matches_requested_ignores_trailing_slash():
    assert matches_requested("https://a.com/", "https://a.com")
    assert matches_requested("https://a.com", "https://a.com/")
    assert not matches_requested("https://www.a.com/", "https://a.com")


class SlowBrowser:
    """Blocking stand-in for a WebDriver session."""

    def __init__(self, delay):
        self.delay = delay
        self.current_url = "about:blank"
        self.log = []
        self.quit_called = False

    def set_page_load_timeout(self, timeout):
        pass

    def get_log(self, kind):
        entries, self.log = self.log, []
        return entries

    def get(self, url):
        time.sleep(self.delay)
        self.current_url = url + "/"
        self.log = [entry("Network.responseReceived", "Document", url + "/", 200)]

    def quit(self):
        self.quit_called = True


def test_concurrent_navigations_do_not_wait_for_threads(tmp_path):
    async def main():
        driver = ChromeDriver(max_workers=24)
        await driver.start()
        browsers = [SlowBrowser(0.3) for _ in range(12)]
        pages = [ChromePage(b, tmp_path / f"profile{i}", driver.executor) for i, b in enumerate(browsers)]
        try:
            responses = await asyncio.gather(
                *(asyncio.wait_for(page.goto(f"https://site{i}.com", 5), 0.75) for i, page in enumerate(pages))
            )
            for page in pages:
                await page.close()
        finally:
            await driver.close()
        return browsers, responses

    browsers, responses = asyncio.run(main())
    assert [r.status for r in responses] == [200] * 12
    assert responses[3].url == "https://site3.com/"
    assert all(b.quit_called for b in browsers)


def test_chrome_driver_thread_pool_follows_concurrency():
    driver = create_driver("chrome", ScanConfig(concurrency=12))
    assert driver.max_workers == 2 * 12 + 10
    assert driver.executor is None
