"""Interface every page driver implements."""

import abc
from dataclasses import dataclass
from typing import Optional

from ..errors import NavigationError

__all__ = ["NavigationError", "NavigationResponse", "Page", "PageDriver"]

BLANK_URL = "about:blank"


@dataclass(frozen=True)
class NavigationResponse:
    # status of the final document, url after redirects, status of the first
    # response that matched the requested url
    status: Optional[int]
    url: str
    initial_status: Optional[int] = None


class Page(abc.ABC):
    """A reusable navigation handle."""

    @abc.abstractmethod
    async def goto(self, url: str, timeout: float) -> Optional[NavigationResponse]:
        """Navigate to url; raise NavigationError on failure, return None when no response arrived."""

    @abc.abstractmethod
    async def reset(self) -> None:
        """Drop cookies and any loaded document."""

    @abc.abstractmethod
    async def close(self) -> None:
        ...


class PageDriver(abc.ABC):
    name = "driver"

    async def start(self) -> None:
        pass

    @abc.abstractmethod
    async def new_page(self) -> Page:
        ...

    async def close(self) -> None:
        pass

    async def __aenter__(self):
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.close()


def matches_requested(response_url: str, requested: str) -> bool:
    return response_url == requested or response_url == requested + "/" or response_url + "/" == requested
