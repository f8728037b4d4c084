"""
Headless Chrome page driver built on Selenium.

Each page handle owns its own WebDriver session: a session serializes
commands and has a single active window, so two concurrent navigations
can never share one. Selenium calls block, so they run in worker threads.
"""

import asyncio
import functools
import json
import logging
import shutil
import tempfile
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

from selenium import webdriver
from selenium.common.exceptions import TimeoutException, WebDriverException
from selenium.webdriver.chrome.options import Options as ChromeOptions

from ..config import USER_AGENT
from .base import BLANK_URL, NavigationError, NavigationResponse, Page, PageDriver, matches_requested

logger = logging.getLogger(__name__)

RESET_LOAD_TIMEOUT = 5
DEFAULT_MAX_WORKERS = 32


def chrome_options(
    profile_dir: Path,
    user_agent: str = USER_AGENT,
    headless: bool = True,
    disable_sandbox: bool = False,
    extra_args: Sequence[str] = (),
) -> ChromeOptions:
    opts = ChromeOptions()
    if headless:
        opts.add_argument("--headless=new")
    opts.add_argument("--disable-dev-shm-usage")
    opts.add_argument("--disable-gpu")
    opts.add_argument("--disable-extensions")
    opts.add_argument("--disable-notifications")
    opts.add_argument("--blink-settings=imagesEnabled=false")
    opts.add_argument("--ignore-certificate-errors")
    opts.add_argument("--ignore-certificate-errors-spki-list")
    opts.add_argument("--log-level=3")
    opts.add_argument(f"--user-agent={user_agent}")
    opts.add_argument(f"--user-data-dir={profile_dir}")
    if disable_sandbox:
        opts.add_argument("--no-sandbox")
        opts.add_argument("--disable-setuid-sandbox")
    for arg in extra_args:
        opts.add_argument(arg)
    opts.accept_insecure_certs = True
    # return after DOMContentLoaded
    opts.page_load_strategy = "eager"
    opts.set_capability("goog:loggingPrefs", {"performance": "ALL"})
    return opts


def document_responses(log_entries) -> List[Tuple[str, int]]:
    """Pull (url, status) of document responses out of Chrome performance log entries."""
    responses = []
    for entry in log_entries:
        try:
            message = json.loads(entry["message"])["message"]
        except (KeyError, TypeError, ValueError):
            continue
        if message.get("method") != "Network.responseReceived":
            continue
        params = message.get("params", {})
        if params.get("type") != "Document":
            continue
        response = params.get("response", {})
        url = response.get("url")
        status = response.get("status")
        if url and status is not None:
            responses.append((url, int(status)))
    return responses


def pick_statuses(responses: List[Tuple[str, int]], requested: str, final_url: str) -> Tuple[Optional[int], Optional[int]]:
    """Return (final status, initial status) for a navigation."""
    initial = next((status for url, status in responses if matches_requested(url, requested)), None)
    final = None
    for url, status in reversed(responses):
        if matches_requested(url, final_url):
            final = status
            break
    if final is None and responses:
        final = responses[-1][1]
    return final, initial


class ChromePage(Page):
    def __init__(self, browser, profile_dir: Path, executor: Optional[ThreadPoolExecutor] = None):
        self.browser = browser
        self.profile_dir = profile_dir
        self.executor = executor

    async def _call(self, func, *args):
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(self.executor, functools.partial(func, *args))

    def _goto_sync(self, url: str, timeout: float) -> Optional[NavigationResponse]:
        br = self.browser
        br.set_page_load_timeout(timeout)
        # drain entries left by earlier navigations
        br.get_log("performance")
        try:
            br.get(url)
        except TimeoutException as e:
            raise NavigationError(f"net::ERR_CONNECTION_TIMED_OUT: navigation timeout of {timeout}s exceeded ({e.msg})")
        except WebDriverException as e:
            raise NavigationError(e.msg or str(e))
        final_url = br.current_url
        responses = document_responses(br.get_log("performance"))
        if not responses:
            return None
        final, initial = pick_statuses(responses, url, final_url)
        return NavigationResponse(status=final, url=final_url, initial_status=initial)

    async def goto(self, url: str, timeout: float) -> Optional[NavigationResponse]:
        return await self._call(self._goto_sync, url, timeout)

    def _reset_sync(self) -> None:
        br = self.browser
        br.set_page_load_timeout(RESET_LOAD_TIMEOUT)
        br.execute_cdp_cmd("Network.clearBrowserCookies", {})
        br.get(BLANK_URL)

    async def reset(self) -> None:
        await self._call(self._reset_sync)

    async def close(self) -> None:
        try:
            await self._call(self.browser.quit)
        finally:
            shutil.rmtree(self.profile_dir, ignore_errors=True)


class ChromeDriver(PageDriver):
    name = "chrome"

    def __init__(
        self,
        user_agent: str = USER_AGENT,
        headless: bool = True,
        disable_sandbox: bool = False,
        extra_args: Sequence[str] = (),
        max_workers: int = DEFAULT_MAX_WORKERS,
    ):
        self.user_agent = user_agent
        self.headless = headless
        self.disable_sandbox = disable_sandbox
        self.extra_args = tuple(extra_args)
        # one thread per in-flight Selenium call; a force-aborted navigation
        # keeps its thread until Selenium returns
        self.max_workers = max(1, max_workers)
        self.executor: Optional[ThreadPoolExecutor] = None
        self._profile_base: Optional[Path] = None
        self._counter = 0

    async def start(self) -> None:
        if self.executor is None:
            self.executor = ThreadPoolExecutor(max_workers=self.max_workers, thread_name_prefix="filterprobe-chrome")
        if self._profile_base is not None:
            return
        self._profile_base = Path(tempfile.mkdtemp(prefix="filterprobe_profiles_"))
        logger.debug("Chrome profiles under %s", self._profile_base)

    def _launch(self, profile_dir: Path):
        opts = chrome_options(
            profile_dir,
            user_agent=self.user_agent,
            headless=self.headless,
            disable_sandbox=self.disable_sandbox,
            extra_args=self.extra_args,
        )
        return webdriver.Chrome(options=opts)

    async def new_page(self) -> Page:
        if self._profile_base is None or self.executor is None:
            await self.start()
        self._counter += 1
        profile_dir = Path(tempfile.mkdtemp(prefix=f"page_{self._counter}_", dir=str(self._profile_base)))
        try:
            loop = asyncio.get_running_loop()
            browser = await loop.run_in_executor(self.executor, self._launch, profile_dir)
        except WebDriverException:
            shutil.rmtree(profile_dir, ignore_errors=True)
            raise
        logger.debug("Launched Chrome session %d", self._counter)
        return ChromePage(browser, profile_dir, self.executor)

    async def close(self) -> None:
        if self.executor is not None:
            self.executor.shutdown(wait=False, cancel_futures=True)
            self.executor = None
        if self._profile_base is not None:
            shutil.rmtree(self._profile_base, ignore_errors=True)
            self._profile_base = None
