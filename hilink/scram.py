"""SCRAM key derivation and proofs used by the HiLink web login.

The device and the client share the admin password. Neither side sends it;
instead both derive two keys from it with PBKDF2:

    salted_password = PBKDF2-HMAC-SHA256(password, salt, iterations, 32)
    client_key = HMAC-SHA256(key=b"Client Key", msg=salted_password)
    server_key = HMAC-SHA256(key=b"Server Key", msg=salted_password)

and authenticate the exchange through the auth message

    auth_message = client_nonce + "," + server_nonce + "," + server_nonce

client proof: the client sends client_key XOR HMAC(auth_message, sha256(client_key))
which the device can check against its stored sha256(client_key).

server proof: the device answers with HMAC(auth_message, server_key) which only a
party knowing the password can compute.

public key signature: the device also signs its RSA modulus with
HMAC(server_key, modulus). Note that here the server key is the HMAC key,
the reverse of the server proof.
"""

from __future__ import annotations

import binascii
import hashlib
import hmac
import secrets
import struct
from dataclasses import dataclass

from .exceptions import CryptoError

CLIENT_KEY_LABEL = "Client Key"
SERVER_KEY_LABEL = "Server Key"
KEY_LABELS = (CLIENT_KEY_LABEL, SERVER_KEY_LABEL)

NONCE_BYTES = 32
#: PBKDF2 output length, eight 32-bit words
KEY_SIZE = 32

_WORDS = struct.Struct(">8I")


def generate_nonce() -> str:
    """Return a fresh 256 bit client nonce, hex encoded."""
    return secrets.token_bytes(NONCE_BYTES).hex()


def _unhex(value: str, what: str) -> bytes:
    try:
        return binascii.unhexlify(value)
    except (binascii.Error, TypeError, ValueError) as ex:
        raise CryptoError(f"Invalid hex encoded {what}: {value!r}") from ex


def _salted_password(password: str, salt: bytes, iterations: int) -> bytes:
    return hashlib.pbkdf2_hmac(
        "sha256", password.encode(), salt, iterations, dklen=KEY_SIZE
    )


def _hmac_sha256(key: bytes, msg: bytes) -> bytes:
    return hmac.new(key, msg, hashlib.sha256).digest()


def derive_key(password: str, salt_hex: str, iterations: int, label: str) -> bytes:
    """Derive the client or server key from the shared password.

    :param password: the shared password
    :param salt_hex: hex encoded salt issued by the device
    :param iterations: PBKDF2 iteration count issued by the device
    :param label: either ``"Client Key"`` or ``"Server Key"``
    :return: 32 byte key
    """
    if label not in KEY_LABELS:
        raise CryptoError(f"Unknown key label {label!r}")
    if isinstance(iterations, bool) or not isinstance(iterations, int):
        raise CryptoError(f"Iteration count must be an integer, got {iterations!r}")
    if iterations <= 0:
        raise CryptoError(f"Iteration count must be positive, got {iterations}")
    salt = _unhex(salt_hex, "salt")
    if not salt:
        raise CryptoError("Salt must not be empty")

    return _hmac_sha256(label.encode(), _salted_password(password, salt, iterations))


def xor_words(left: bytes, right: bytes) -> bytes:
    """XOR two 32 byte buffers as eight big-endian 32-bit words."""
    if len(left) != KEY_SIZE or len(right) != KEY_SIZE:
        raise CryptoError(
            f"Expected two {KEY_SIZE} byte buffers, got {len(left)} and {len(right)}"
        )
    return _WORDS.pack(
        *(a ^ b for a, b in zip(_WORDS.unpack(left), _WORDS.unpack(right)))
    )


def verify_proof(expected: str, received: str | None) -> bool:
    """Compare two hex digests in constant time, ignoring case."""
    if not received:
        return False
    return hmac.compare_digest(expected.lower().encode(), received.lower().encode())


@dataclass(frozen=True)
class ScramParameters:
    """Parameters of one login attempt.

    All four values are required together; the constructor rejects partial
    or malformed parameters so proofs are never computed from them.
    """

    client_nonce: str
    server_nonce: str
    #: hex encoded salt
    salt: str
    iterations: int

    def __post_init__(self) -> None:
        if not self.client_nonce or not self.server_nonce:
            raise CryptoError("Client and server nonce are both required")
        if isinstance(self.iterations, bool) or not isinstance(self.iterations, int):
            raise CryptoError(
                f"Iteration count must be an integer, got {self.iterations!r}"
            )
        if self.iterations <= 0:
            raise CryptoError(f"Iteration count must be positive, got {self.iterations}")
        if not self.salt:
            raise CryptoError("Salt must not be empty")
        _unhex(self.salt, "salt")

    @property
    def auth_message(self) -> bytes:
        """Message authenticated by both the client and the server proof."""
        return ",".join(
            (self.client_nonce, self.server_nonce, self.server_nonce)
        ).encode()

    def derive_key(self, password: str, label: str) -> bytes:
        """Derive the client or server key for these parameters."""
        return derive_key(password, self.salt, self.iterations, label)


@dataclass(frozen=True)
class ProofSet:
    """All digests of one login attempt, hex encoded."""

    client_proof: str
    stored_key_digest: str
    signature_digest: str
    server_proof: str
    public_key_signature: str | None = None


def _client_digests(params: ScramParameters, password: str) -> tuple[bytes, ...]:
    client_key = params.derive_key(password, CLIENT_KEY_LABEL)
    stored_key = hashlib.sha256(client_key).digest()
    signature = _hmac_sha256(params.auth_message, stored_key)
    return xor_words(client_key, signature), stored_key, signature


def client_proof(params: ScramParameters, password: str) -> str:
    """Return the proof the client sends with its final nonce."""
    proof, _, _ = _client_digests(params, password)
    return proof.hex()


def server_proof(params: ScramParameters, password: str) -> str:
    """Return the server signature a legitimate device must send back."""
    server_key = params.derive_key(password, SERVER_KEY_LABEL)
    return _hmac_sha256(params.auth_message, server_key).hex()


def public_key_signature(
    params: ScramParameters, password: str, public_key_hex: str
) -> str:
    """Return the signature a legitimate device must send for its public key."""
    server_key = params.derive_key(password, SERVER_KEY_LABEL)
    public_key = _unhex(public_key_hex, "public key")
    return _hmac_sha256(server_key, public_key).hex()


def compute_proofs(
    params: ScramParameters, password: str, public_key_hex: str | None = None
) -> ProofSet:
    """Compute every digest of the exchange at once."""
    proof, stored_key, signature = _client_digests(params, password)
    return ProofSet(
        client_proof=proof.hex(),
        stored_key_digest=stored_key.hex(),
        signature_digest=signature.hex(),
        server_proof=server_proof(params, password),
        public_key_signature=(
            public_key_signature(params, password, public_key_hex)
            if public_key_hex is not None
            else None
        ),
    )
