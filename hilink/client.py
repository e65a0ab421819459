"""Client for logging into a HiLink device.

>>> from hilink import Credentials, HiLinkClient
>>> client = HiLinkClient(
>>>     "192.168.8.1", credentials=Credentials("admin", "great_password")
>>> )
>>> session = await client.login()
>>> print(session.device_key.exponent)
010001
>>> await client.close()

"""

from __future__ import annotations

import asyncio
import logging
from types import TracebackType

from .credentials import Credentials
from .deviceconfig import DeviceConfig
from .exceptions import AuthenticationError
from .keystore import BaseKeyStore, MemoryKeyStore
from .login import LoginListener, LoginSession, ScramLogin
from .transports import BaseTransport, HttpTransport

_LOGGER = logging.getLogger(__name__)


class HiLinkClient:
    """Bind a device, its transport and a trusted key store.

    The key store is shared by every login made through this client. Pass
    the same store to several clients to share the trusted key between them.
    """

    def __init__(
        self,
        host: str | None = None,
        *,
        credentials: Credentials | None = None,
        config: DeviceConfig | None = None,
        transport: BaseTransport | None = None,
        key_store: BaseKeyStore | None = None,
    ) -> None:
        if config is None:
            if host is None:
                raise ValueError("Either host or config must be given")
            config = DeviceConfig(host, credentials=credentials)
        elif credentials is not None:
            config.credentials = credentials
        self._config = config
        self._transport = transport or HttpTransport(config=config)
        self._key_store = key_store or MemoryKeyStore()
        self._session: LoginSession | None = None

    def __repr__(self) -> str:
        return f"<HiLinkClient {self.host} logged_in={self._session is not None}>"

    @property
    def host(self) -> str:
        """The device host."""
        return self._config.host

    @property
    def config(self) -> DeviceConfig:
        """The device configuration."""
        return self._config

    @property
    def key_store(self) -> BaseKeyStore:
        """The trusted key store."""
        return self._key_store

    @property
    def session(self) -> LoginSession | None:
        """Result of the last successful login."""
        return self._session

    async def login(
        self,
        *,
        cancel_event: asyncio.Event | None = None,
        listener: LoginListener | None = None,
    ) -> LoginSession:
        """Log into the device and verify its identity.

        :param cancel_event: set it to abort the login between two phases
        :param listener: called with a :class:`LoginEvent` on every state change
        """
        credentials = self._config.credentials
        if not credentials or not credentials.username:
            raise AuthenticationError(
                f"Credentials must be supplied to connect to {self.host}"
            )
        attempt = ScramLogin(
            self._transport,
            credentials,
            self._key_store,
            timeout=self._config.timeout,
            cancel_event=cancel_event,
            listener=listener,
        )
        self._session = None
        self._session = await attempt.login()
        _LOGGER.debug("Logged into %s", self.host)
        return self._session

    async def close(self) -> None:
        """Close the transport."""
        self._session = None
        await self._transport.close()

    async def __aenter__(self) -> HiLinkClient:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        await self.close()
