"""Base class for all transport implementations.

The login flow only needs to issue requests and read the status, headers and
body of the response. Header lookups on the response are case-insensitive.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from multidict import CIMultiDict, CIMultiDictProxy
from yarl import URL

if TYPE_CHECKING:
    from hilink import DeviceConfig


@dataclass(frozen=True)
class TransportResponse:
    """Status, headers and raw body of a device response."""

    status: int
    headers: CIMultiDictProxy[str] = field(
        default_factory=lambda: CIMultiDictProxy(CIMultiDict())
    )
    body: bytes = b""

    @classmethod
    def create(
        cls, status: int, headers: Mapping[str, str] | None = None, body: bytes = b""
    ) -> TransportResponse:
        """Create a response from any header mapping."""
        return cls(status, CIMultiDictProxy(CIMultiDict(headers or {})), body)

    def header(self, name: str) -> str | None:
        """Return the value of header ``name`` regardless of its case."""
        return self.headers.get(name)


class BaseTransport(ABC):
    """Base class for all HiLink transports."""

    DEFAULT_TIMEOUT = 10

    def __init__(
        self,
        *,
        config: DeviceConfig,
    ) -> None:
        """Create a transport object."""
        self._config = config
        self._host = config.host
        if not config.timeout:
            config.timeout = self.DEFAULT_TIMEOUT
        self._timeout = config.timeout
        self._base_url = config.base_url

    @property
    def host(self) -> str:
        """The device host."""
        return self._host

    def url(self, path: str) -> URL:
        """Return the absolute url for a path on the device."""
        return self._base_url.with_path(path)

    @abstractmethod
    async def request(
        self,
        method: str,
        url: URL,
        *,
        headers: Mapping[str, str] | None = None,
        data: str | bytes | None = None,
    ) -> TransportResponse:
        """Send a request to the device and return its response."""

    async def get(
        self, path: str, *, headers: Mapping[str, str] | None = None
    ) -> TransportResponse:
        """GET a path on the device."""
        return await self.request("GET", self.url(path), headers=headers)

    async def post(
        self,
        path: str,
        data: str | bytes,
        *,
        headers: Mapping[str, str] | None = None,
    ) -> TransportResponse:
        """POST a body to a path on the device."""
        return await self.request("POST", self.url(path), headers=headers, data=data)

    @abstractmethod
    async def close(self) -> None:
        """Close the transport.  Abstract method to be overriden."""
