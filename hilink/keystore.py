"""Storage for the RSA public key of the last verified device.

After a successful login the device's public key (``rsan`` modulus and
``rsae`` exponent, both hex) is trusted and kept in a key store. Each
successful login overwrites it; concurrent logins serialize their writes
and the last writer wins.

>>> store = MemoryKeyStore()
>>> await store.load() is None
True
>>> await store.store(TrustedDeviceKey("c0ffee", "010001"))
>>> await store.load()
TrustedDeviceKey(modulus='c0ffee', exponent='010001')
"""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path

from cryptography.hazmat.primitives.asymmetric import rsa

from .exceptions import CryptoError, HiLinkException
from .json import DataClassJSONMixin, dumps, loads

_LOGGER = logging.getLogger(__name__)

MODULUS_KEY = "rsan"
EXPONENT_KEY = "rsae"


@dataclass(frozen=True)
class TrustedDeviceKey(DataClassJSONMixin):
    """RSA public key advertised by a verified device."""

    #: hex encoded modulus
    modulus: str
    #: hex encoded public exponent
    exponent: str

    def to_values(self) -> dict[str, str]:
        """Return the key as stored, under ``rsan`` and ``rsae``."""
        return {MODULUS_KEY: self.modulus, EXPONENT_KEY: self.exponent}

    @classmethod
    def from_values(cls, values: dict[str, str]) -> TrustedDeviceKey | None:
        """Return the key from stored values, None if nothing is stored."""
        modulus = values.get(MODULUS_KEY)
        exponent = values.get(EXPONENT_KEY)
        if not modulus or not exponent:
            return None
        return cls(modulus, exponent)

    def public_key(self) -> rsa.RSAPublicKey:
        """Return the key as a cryptography RSA public key."""
        try:
            numbers = rsa.RSAPublicNumbers(
                int(self.exponent, 16), int(self.modulus, 16)
            )
            return numbers.public_key()
        except ValueError as ex:
            raise CryptoError(f"Invalid device public key: {ex}") from ex


class BaseKeyStore(ABC):
    """Base class for trusted key stores."""

    def __init__(self) -> None:
        self._lock = asyncio.Lock()

    async def load(self) -> TrustedDeviceKey | None:
        """Return the trusted key, None before the first successful login."""
        async with self._lock:
            values = await self._read()
        return TrustedDeviceKey.from_values(values)

    async def store(self, key: TrustedDeviceKey) -> None:
        """Overwrite the trusted key."""
        async with self._lock:
            await self._write(key.to_values())
        _LOGGER.debug("Stored trusted device key with exponent %s", key.exponent)

    @abstractmethod
    async def _read(self) -> dict[str, str]:
        """Read the stored values."""

    @abstractmethod
    async def _write(self, values: dict[str, str]) -> None:
        """Replace the stored values."""


class MemoryKeyStore(BaseKeyStore):
    """Key store living for the lifetime of the process."""

    def __init__(self) -> None:
        super().__init__()
        self._values: dict[str, str] = {}

    async def _read(self) -> dict[str, str]:
        return dict(self._values)

    async def _write(self, values: dict[str, str]) -> None:
        self._values = dict(values)


class JsonFileKeyStore(BaseKeyStore):
    """Key store persisted as a small JSON document."""

    def __init__(self, path: str | Path) -> None:
        super().__init__()
        self._path = Path(path)

    @property
    def path(self) -> Path:
        """Location of the JSON document."""
        return self._path

    def _read_file(self) -> dict[str, str]:
        if not self._path.exists():
            return {}
        try:
            values = loads(self._path.read_bytes())
        except ValueError as ex:
            raise HiLinkException(f"Key store {self._path} is corrupt: {ex}") from ex
        if not isinstance(values, dict):
            raise HiLinkException(f"Key store {self._path} does not hold an object")
        return values

    def _write_file(self, values: dict[str, str]) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self._path.with_suffix(self._path.suffix + ".tmp")
        tmp.write_text(dumps(values, indent=True))
        tmp.replace(self._path)

    async def _read(self) -> dict[str, str]:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self._read_file)

    async def _write(self, values: dict[str, str]) -> None:
        loop = asyncio.get_running_loop()
        await loop.run_in_executor(None, self._write_file, values)
