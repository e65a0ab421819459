"""Python interface for logging into Huawei HiLink web interfaces.

The login follows the SCRAM exchange the web interface uses: the password is
never sent, the device proves it knows it too, and the RSA public key it
advertises is accepted only if it is signed with the shared server key.

>>> from hilink import Credentials, HiLinkClient
>>> async with HiLinkClient(
>>>     "192.168.8.1", credentials=Credentials("admin", "great_password")
>>> ) as client:
>>>     session = await client.login()

Errors raised by the library derive from :class:`HiLinkException`; failed
logins raise a subclass of :class:`AuthenticationError`.
"""

from importlib.metadata import version

from hilink.client import HiLinkClient
from hilink.credentials import Credentials
from hilink.deviceconfig import DeviceConfig
from hilink.endpoints import Endpoint
from hilink.exceptions import (
    AuthenticationError,
    CryptoError,
    DeviceError,
    HiLinkErrorCode,
    HiLinkException,
    IdentityCheck,
    IdentityError,
    LoginCancelledError,
    ProtocolError,
    RateLimitError,
    SessionError,
    TimeoutError,
)
from hilink.keystore import (
    BaseKeyStore,
    JsonFileKeyStore,
    MemoryKeyStore,
    TrustedDeviceKey,
)
from hilink.login import LoginEvent, LoginSession, LoginState, ScramLogin
from hilink.scram import ProofSet, ScramParameters
from hilink.transports import BaseTransport, HttpTransport, TransportResponse

__version__ = version("python-hilink")

__all__ = [
    "AuthenticationError",
    "BaseKeyStore",
    "BaseTransport",
    "Credentials",
    "CryptoError",
    "DeviceConfig",
    "DeviceError",
    "Endpoint",
    "HiLinkClient",
    "HiLinkErrorCode",
    "HiLinkException",
    "HttpTransport",
    "IdentityCheck",
    "IdentityError",
    "JsonFileKeyStore",
    "LoginCancelledError",
    "LoginEvent",
    "LoginSession",
    "LoginState",
    "MemoryKeyStore",
    "ProofSet",
    "ProtocolError",
    "RateLimitError",
    "ScramLogin",
    "ScramParameters",
    "SessionError",
    "TimeoutError",
    "TransportResponse",
    "TrustedDeviceKey",
    "__version__",
]
