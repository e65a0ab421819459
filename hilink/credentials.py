"""Credentials class for username / passwords."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class Credentials:
    """Credentials for authentication."""

    #: Username of the device's web administration account
    username: str = field(default="", repr=False)
    #: Password of the device's web administration account
    password: str = field(default="", repr=False)
