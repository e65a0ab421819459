"""python-hilink exceptions."""

from __future__ import annotations

from asyncio import TimeoutError as _asyncioTimeoutError
from enum import Enum, IntEnum
from functools import cache
from typing import Any


class HiLinkException(Exception):
    """Base exception for library errors."""


class TimeoutError(HiLinkException, _asyncioTimeoutError):
    """Timeout exception for device errors."""

    def __repr__(self) -> str:
        return HiLinkException.__repr__(self)

    def __str__(self) -> str:
        return HiLinkException.__str__(self)


class _ConnectionError(HiLinkException):
    """Connection exception for device errors."""


class LoginCancelledError(HiLinkException):
    """The caller cancelled a login attempt between two phases."""


class DeviceError(HiLinkException):
    """Base exception for device errors."""

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        self.error_code: HiLinkErrorCode | None = kwargs.get("error_code")
        super().__init__(*args)

    def __repr__(self) -> str:
        err_code = self.error_code.__repr__() if self.error_code else ""
        return f"{self.__class__.__name__}({err_code})"

    def __str__(self) -> str:
        err_code = f" (error_code={self.error_code.name})" if self.error_code else ""
        return super().__str__() + err_code


class AuthenticationError(DeviceError):
    """Base exception for device authentication errors."""


class SessionError(AuthenticationError):
    """The initial web session could not be established."""


class ProtocolError(AuthenticationError):
    """A token, header or field the login protocol requires was missing."""


class CryptoError(AuthenticationError):
    """Key derivation or proof computation failed on its inputs."""


class RateLimitError(AuthenticationError):
    """The device locked out logins after too many failed attempts."""

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        #: Minutes to wait before the next attempt, as reported by the device
        self.wait_minutes: int | None = kwargs.get("wait_minutes")
        super().__init__(*args, **kwargs)


class IdentityCheck(Enum):
    """Which of the two device identity checks failed."""

    ServerProof = "server_proof"
    PublicKey = "public_key"


class IdentityError(AuthenticationError):
    """The device could not prove it knows the shared secret."""

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        self.check: IdentityCheck | None = kwargs.get("check")
        super().__init__(*args, **kwargs)


class HiLinkErrorCode(IntEnum):
    """Enum for the codes returned in <error> documents."""

    def __str__(self) -> str:
        return f"{self.name}({self.value})"

    @staticmethod
    @cache
    def from_int(value: int) -> HiLinkErrorCode:
        """Convert an integer to a HiLinkErrorCode."""
        return HiLinkErrorCode(value)

    # System errors
    UNKNOWN_ERROR = 100001
    NOT_SUPPORTED = 100002
    NO_RIGHTS = 100003
    SYSTEM_BUSY = 100004
    FORMAT_ERROR = 100005
    PARAMETER_ERROR = 100006

    # Login errors
    USERNAME_WRONG = 108001
    PASSWORD_WRONG = 108002
    ALREADY_LOGGED_IN = 108003
    USERNAME_PWD_WRONG = 108006
    USERNAME_PWD_OVERRUN = 108007

    # Session and token errors
    WRONG_TOKEN = 125001
    WRONG_SESSION = 125002
    WRONG_SESSION_TOKEN = 125003

    # Library internal for unknown error codes
    INTERNAL_UNKNOWN_ERROR = -100_000


HILINK_AUTHENTICATION_ERRORS = [
    HiLinkErrorCode.USERNAME_WRONG,
    HiLinkErrorCode.PASSWORD_WRONG,
    HiLinkErrorCode.USERNAME_PWD_WRONG,
]

HILINK_SESSION_ERRORS = [
    HiLinkErrorCode.WRONG_TOKEN,
    HiLinkErrorCode.WRONG_SESSION,
    HiLinkErrorCode.WRONG_SESSION_TOKEN,
]
