"""Configuration for connecting to a HiLink device.

>>> from hilink import Credentials, DeviceConfig
>>> config = DeviceConfig("192.168.8.1", credentials=Credentials("admin", "secret"))
>>> print(config.base_url)
http://192.168.8.1
>>> config.to_dict()["https"]
False

"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from typing import Any, Self

from aiohttp import ClientSession
from mashumaro import field_options
from mashumaro.config import BaseConfig
from mashumaro.types import SerializationStrategy
from yarl import URL

from .credentials import Credentials
from .json import DataClassJSONMixin

_LOGGER = logging.getLogger(__name__)


class _DeviceConfigBaseMixin(DataClassJSONMixin):
    """Base class for serialization mixin."""

    class Config(BaseConfig):
        """Serialization config."""

        omit_none = True


class _DoNotSerialize(SerializationStrategy):
    def serialize(self, value: Any) -> None:
        return None

    def deserialize(self, value: Any) -> None:
        return None


@dataclass
class DeviceConfig(_DeviceConfigBaseMixin):
    """Class to represent paramaters that determine how to connect to devices."""

    DEFAULT_TIMEOUT = 10
    #: IP address or hostname
    host: str
    #: Timeout in seconds for each network phase of a login
    timeout: int | None = DEFAULT_TIMEOUT
    #: Override the default 80/443 port
    port_override: int | None = None
    #: Credentials of the web administration account
    credentials: Credentials | None = None
    #: True if the web interface is served over https
    https: bool = False

    # compare=False will be excluded from object comparison.
    #: Set a custom http_client for the device to use.
    http_client: ClientSession | None = field(
        default=None,
        compare=False,
        metadata=field_options(serialization_strategy=_DoNotSerialize()),
    )

    def __pre_serialize__(self) -> Self:
        return replace(self, http_client=None)

    @property
    def base_url(self) -> URL:
        """Root url of the device's web interface."""
        return URL.build(
            scheme="https" if self.https else "http",
            host=self.host,
            port=self.port_override,
        )
