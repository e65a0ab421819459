"""aiohttp based transport for the HiLink web interface."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping

import aiohttp
from yarl import URL

from ..deviceconfig import DeviceConfig
from ..exceptions import (
    HiLinkException,
    TimeoutError,
    _ConnectionError,
)
from .basetransport import BaseTransport, TransportResponse

_LOGGER = logging.getLogger(__name__)


def get_cookie_jar() -> aiohttp.CookieJar:
    """Return a new cookie jar with the correct options for device communication."""
    return aiohttp.CookieJar(unsafe=True, quote_cookie=False)


class HttpTransport(BaseTransport):
    """Plain http(s) transport.

    The device identifies the web session by a ``SessionID`` cookie set on
    the first request, so one cookie jar is kept for the transport's lifetime.
    Redirects are followed.
    """

    def __init__(self, *, config: DeviceConfig) -> None:
        super().__init__(config=config)
        self._client_session: aiohttp.ClientSession | None = None
        _LOGGER.debug("Created http transport for %s", self._host)

    @property
    def client(self) -> aiohttp.ClientSession:
        """Return the underlying http client."""
        if self._config.http_client and issubclass(
            self._config.http_client.__class__, aiohttp.ClientSession
        ):
            return self._config.http_client

        if not self._client_session:
            self._client_session = aiohttp.ClientSession(cookie_jar=get_cookie_jar())
        return self._client_session

    async def request(
        self,
        method: str,
        url: URL,
        *,
        headers: Mapping[str, str] | None = None,
        data: str | bytes | None = None,
    ) -> TransportResponse:
        """Send an http request to the device."""
        _LOGGER.debug("%s %s", method, url)
        if (verb := method.upper()) not in ("GET", "POST"):
            raise HiLinkException(f"Unsupported http method {method}")
        client_timeout = aiohttp.ClientTimeout(total=self._timeout)
        send = self.client.post if verb == "POST" else self.client.get
        kwargs = {} if data is None else {"data": data}
        try:
            resp = await send(
                url,
                headers=dict(headers) if headers else None,
                timeout=client_timeout,
                allow_redirects=True,
                ssl=False,
                **kwargs,
            )
            async with resp:
                response_data = await resp.read()
        except (aiohttp.ServerDisconnectedError, aiohttp.ClientOSError) as ex:
            raise _ConnectionError(
                f"Device connection error: {self._host}: {ex}", ex
            ) from ex
        except (aiohttp.ServerTimeoutError, asyncio.TimeoutError) as ex:
            raise TimeoutError(
                "Unable to query the device, " + f"timed out: {self._host}: {ex}",
                ex,
            ) from ex
        except Exception as ex:
            raise HiLinkException(
                f"Unable to query the device: {self._host}: {ex}", ex
            ) from ex

        if resp.status != 200:
            _LOGGER.debug(
                "Device %s received status code %s with response %s",
                self._host,
                resp.status,
                response_data,
            )

        return TransportResponse(resp.status, resp.headers, response_data)

    def get_cookie(self, cookie_name: str) -> str | None:
        """Return the cookie with cookie_name."""
        if cookie := self.client.cookie_jar.filter_cookies(self._base_url).get(
            cookie_name
        ):
            return cookie.value
        return None

    async def close(self) -> None:
        """Close the ClientSession."""
        client = self._client_session
        self._client_session = None
        if client:
            await client.close()
