"""
Browserless page driver on aiohttp. Much cheaper than Chrome, but it sees
only what the server answers: no scripts, no client-side redirects.
"""

import asyncio
import errno
import logging
import socket
from typing import Optional

import aiohttp
from aiohttp import ClientTimeout

from ..config import USER_AGENT
from .base import NavigationError, NavigationResponse, Page, PageDriver, matches_requested

logger = logging.getLogger(__name__)

DEFAULT_HEADERS = {
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.9",
    "Cache-Control": "no-cache",
    "Pragma": "no-cache",
}


def client_error_text(e: BaseException) -> str:
    """Describe a client failure, prefixing the Chrome error name its type maps to.

    aiohttp wraps socket errors in texts like "Cannot connect to host h:443
    ssl:default [Connect call failed ...]" that do not name the cause, so the
    exception type and the wrapped OSError decide the prefix.
    """
    detail = f"{type(e).__name__}: {e}"
    if isinstance(e, aiohttp.ClientConnectorDNSError):
        return f"net::ERR_NAME_NOT_RESOLVED ({detail})"
    if isinstance(e, (aiohttp.ClientConnectorCertificateError, aiohttp.ClientSSLError)):
        return f"net::ERR_CERT_INVALID ({detail})"
    os_error = getattr(e, "os_error", e)
    if isinstance(os_error, socket.gaierror):
        return f"net::ERR_NAME_NOT_RESOLVED ({detail})"
    if isinstance(os_error, ConnectionRefusedError) or getattr(os_error, "errno", None) == errno.ECONNREFUSED:
        return f"net::ERR_CONNECTION_REFUSED ({detail})"
    if isinstance(os_error, ConnectionResetError):
        return f"net::ERR_CONNECTION_RESET ({detail})"
    if getattr(os_error, "errno", None) in (errno.ENETUNREACH, errno.EHOSTUNREACH):
        return f"net::ERR_ADDRESS_UNREACHABLE ({detail})"
    return detail


class HttpPage(Page):
    def __init__(self, session: aiohttp.ClientSession):
        self.session = session

    async def goto(self, url: str, timeout: float) -> Optional[NavigationResponse]:
        try:
            async with self.session.get(url, allow_redirects=True, timeout=ClientTimeout(total=timeout)) as resp:
                initial = None
                for hop in list(resp.history) + [resp]:
                    if matches_requested(str(hop.url), url):
                        initial = hop.status
                        break
                return NavigationResponse(status=resp.status, url=str(resp.url), initial_status=initial)
        except asyncio.TimeoutError:
            raise NavigationError(f"net::ERR_CONNECTION_TIMED_OUT: navigation timeout of {timeout}s exceeded")
        except (aiohttp.ClientError, OSError) as e:
            raise NavigationError(client_error_text(e)) from e

    async def reset(self) -> None:
        self.session.cookie_jar.clear()

    async def close(self) -> None:
        await self.session.close()


class HttpDriver(PageDriver):
    name = "http"

    def __init__(self, user_agent: str = USER_AGENT, verify_ssl: bool = False, limit: int = 100):
        self.user_agent = user_agent
        self.verify_ssl = verify_ssl
        self.limit = limit
        self.connector: Optional[aiohttp.TCPConnector] = None

    async def start(self) -> None:
        if self.connector is None:
            self.connector = aiohttp.TCPConnector(
                limit=self.limit,
                ssl=self.verify_ssl,
                ttl_dns_cache=120,
                enable_cleanup_closed=True,
            )

    async def new_page(self) -> Page:
        await self.start()
        headers = dict(DEFAULT_HEADERS)
        headers["User-Agent"] = self.user_agent
        session = aiohttp.ClientSession(
            connector=self.connector,
            connector_owner=False,
            headers=headers,
            cookie_jar=aiohttp.CookieJar(unsafe=True),
            trust_env=False,
        )
        return HttpPage(session)

    async def close(self) -> None:
        if self.connector is not None:
            try:
                await self.connector.close()
            finally:
                self.connector = None
