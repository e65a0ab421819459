"""Web API paths of HiLink devices."""

from __future__ import annotations

from enum import Enum


class Endpoint(str, Enum):
    """Paths used by the login flow, relative to the device root."""

    Root = "/"
    Token = "/api/webserver/token"
    ChallengeLogin = "/api/user/challenge_login"
    AuthenticationLogin = "/api/user/authentication_login"
    #: Device control (reboot), not used during login
    DeviceControl = "/api/device/control"
